"""Audio intake: validation, media-type correction and reference-URL resolution."""

import ipaddress
import posixpath
import socket
import urllib.error
import urllib.request
from dataclasses import dataclass, replace
from datetime import timedelta
from urllib.parse import unquote, urlparse

from voice2post.errors import AudioFetchError, AudioTooLargeError

MIN_AUDIO_BYTES = 100
MAX_AUDIO_URL_LENGTH = 2048
DEFAULT_AUDIO_MIME_TYPE = 'audio/wav'
DEFAULT_URL_FILENAME = 'audio.m4a'
DEFAULT_URL_MIME_TYPE = 'audio/mp4'
GENERIC_MIME_TYPES = {'', 'application/octet-stream'}

VALID_AUDIO_TYPES = (
    'audio/wav', 'audio/wave', 'audio/x-wav',
    'audio/mp3', 'audio/mpeg',
    'audio/mp4', 'audio/m4a',
    'audio/webm', 'audio/ogg',
    'video/webm',
)

EXTENSION_MIME_TYPES = (
    ('.wav', 'audio/wav'),
    ('.mp3', 'audio/mpeg'),
    ('.m4a', 'audio/mp4'),
    ('.webm', 'audio/webm'),
    ('.ogg', 'audio/ogg'),
)

STRATEGY_SIGNED_URL = 'signed_url'
STRATEGY_REFERENCE_URL = 'reference_url'
STRATEGY_DIRECT_DOWNLOAD = 'direct_download'


@dataclass(frozen=True)
class AudioPayload:
    data: bytes
    filename: str
    mime_type: str
    source: str = 'upload'

    @property
    def size(self):
        return len(self.data or b'')

    def with_mime_type(self, mime_type):
        return replace(self, mime_type=mime_type)


@dataclass(frozen=True)
class FetchAttempt:
    strategy: str
    error: str
    timed_out: bool = False


def is_json_like(mime_type):
    return 'json' in str(mime_type or '').lower()


def is_supported_audio(mime_type, filename):
    mime = str(mime_type or '').lower()
    name = str(filename or '').lower()
    for audio_type in VALID_AUDIO_TYPES:
        subtype = audio_type.split('/', 1)[1]
        if subtype in mime or subtype in name:
            return True
    return False


def too_large_message(max_bytes):
    return f'Audio file is too large (max {max_bytes // (1024 * 1024)}MB).'


def validate_audio(payload, max_bytes):
    """Return an error message for an unusable payload, or '' when it is fine."""
    if payload.size < MIN_AUDIO_BYTES or is_json_like(payload.mime_type):
        return 'Invalid audio file. Please upload a valid audio file (WAV, MP3, M4A, etc.)'
    if payload.size > max_bytes:
        return too_large_message(max_bytes)
    if not is_supported_audio(payload.mime_type, payload.filename):
        return f'Unsupported file type: {payload.mime_type or "unknown"}. Please use WAV, MP3, M4A, WebM, or OGG format.'
    return ''


def correct_mime_type(mime_type, filename):
    mime = str(mime_type or '').split(';', 1)[0].strip().lower()
    if mime in GENERIC_MIME_TYPES or is_json_like(mime):
        name = str(filename or '').lower()
        for extension, inferred in EXTENSION_MIME_TYPES:
            if extension in name:
                return inferred
        return DEFAULT_AUDIO_MIME_TYPE
    return mime


def payload_from_upload(file_storage):
    data = file_storage.read() or b''
    mime_type = file_storage.mimetype or file_storage.content_type or ''
    return AudioPayload(data=data, filename=file_storage.filename or '', mime_type=mime_type, source='upload')


def is_restricted_ip(ip):
    return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_multicast or ip.is_reserved or ip.is_unspecified


def is_blocked_hostname(hostname):
    host = str(hostname or '').strip().lower()
    if not host:
        return True
    if host in {'localhost', 'localhost.localdomain'}:
        return True
    if host.endswith('.local') or host.endswith('.internal'):
        return True
    try:
        if is_restricted_ip(ipaddress.ip_address(host)):
            return True
    except ValueError:
        pass
    return False


def resolves_to_restricted_ip(host, port, resolver):
    for _family, _kind, _proto, _canonname, sockaddr in resolver(host, port, proto=socket.IPPROTO_TCP):
        if is_restricted_ip(ipaddress.ip_address(sockaddr[0].split('%', 1)[0])):
            return True
    return False


def validate_audio_url(raw_url, *, resolver=socket.getaddrinfo):
    url = str(raw_url or '').strip()
    if not url:
        return '', 'No audio URL provided'
    if len(url) > MAX_AUDIO_URL_LENGTH:
        return '', 'Audio URL is too long.'
    try:
        parsed = urlparse(url)
        port = parsed.port
    except ValueError:
        return '', 'Audio URL is invalid.'
    scheme = parsed.scheme.lower()
    if scheme not in {'http', 'https'}:
        return '', 'Only HTTP(S) audio URLs are supported.'
    if parsed.username or parsed.password:
        return '', 'Audio URL credentials are not allowed.'
    host = (parsed.hostname or '').strip().lower()
    if is_blocked_hostname(host):
        return '', 'This audio host is not allowed.'
    # Numeric shorthands like 127.1 or 0x7f000001 only show up after resolution.
    try:
        if resolves_to_restricted_ip(host, port or (443 if scheme == 'https' else 80), resolver):
            return '', 'This audio host resolves to a restricted network address.'
    except (socket.gaierror, UnicodeError):
        return '', 'Could not resolve the audio URL host.'
    return url, ''


class ValidatingRedirectHandler(urllib.request.HTTPRedirectHandler):
    """Follows a redirect only when the target passes ``validate_audio_url``."""

    def __init__(self, resolver=socket.getaddrinfo):
        super().__init__()
        self.resolver = resolver

    def redirect_request(self, req, fp, code, msg, headers, newurl):
        _url, error = validate_audio_url(newurl, resolver=self.resolver)
        if error:
            raise urllib.error.HTTPError(newurl, code, f'Redirect blocked: {error}', headers, fp)
        return super().redirect_request(req, fp, code, msg, headers, newurl)


def build_audio_opener(resolver=socket.getaddrinfo):
    """Return an ``http_open(url, timeout=...)`` callable that re-validates redirects."""
    return urllib.request.build_opener(ValidatingRedirectHandler(resolver)).open


def extract_storage_path(audio_url, bucket_name):
    """Return the object path when ``audio_url`` points into ``bucket_name``, else ''."""
    if not bucket_name:
        return ''
    parsed = urlparse(str(audio_url or ''))
    host = (parsed.hostname or '').lower()
    path = parsed.path or ''
    if host == 'firebasestorage.googleapis.com':
        prefix = f'/v0/b/{bucket_name}/o/'
        return unquote(path[len(prefix):]) if path.startswith(prefix) else ''
    if host == 'storage.googleapis.com':
        prefix = f'/{bucket_name}/'
        return unquote(path[len(prefix):]) if path.startswith(prefix) else ''
    if host == f'{bucket_name}.storage.googleapis.com':
        return unquote(path.lstrip('/'))
    return ''


def is_timeout_error(exc):
    if isinstance(exc, TimeoutError):
        return True
    return isinstance(exc, urllib.error.URLError) and isinstance(getattr(exc, 'reason', None), TimeoutError)


def fetch_url_bytes(url, *, http_open, timeout, max_bytes):
    """Read at most ``max_bytes``; a longer body raises ``AudioTooLargeError``."""
    with http_open(url, timeout=timeout) as response:
        headers = getattr(response, 'headers', None) or {}
        declared = str(headers.get('Content-Length', '') or '').strip()
        if declared.isdigit() and int(declared) > max_bytes:
            raise AudioTooLargeError(too_large_message(max_bytes))
        data = response.read(max_bytes + 1)
        content_type = headers.get('Content-Type', '')
    if len(data) > max_bytes:
        raise AudioTooLargeError(too_large_message(max_bytes))
    return data, content_type


def _filename_for(storage_path, url):
    name = posixpath.basename(storage_path or '') or posixpath.basename(unquote(urlparse(url).path or ''))
    return name or DEFAULT_URL_FILENAME


def resolve_audio_url(audio_url, *, bucket, http_open, timeout, signed_url_ttl_seconds, max_bytes, logger):
    """Fetch a previously stored audio file through an ordered list of strategies.

    1. mint a short-lived signed URL for the storage path and fetch through it;
    2. fetch the reference URL as given, only when no signed URL was issued;
    3. download the storage path directly with the service account.

    The first strategy that yields bytes wins. A body above ``max_bytes`` stops
    the chain with ``AudioTooLargeError``. When all fail, ``AudioFetchError``
    carries the last error and whether it was a timeout.
    """
    storage_path = extract_storage_path(audio_url, getattr(bucket, 'name', ''))
    filename = _filename_for(storage_path, audio_url)
    state = {'signed_url_issued': False}

    def _payload(data, content_type, source):
        mime_type = str(content_type or '').split(';', 1)[0].strip() or DEFAULT_URL_MIME_TYPE
        return AudioPayload(data=data, filename=filename, mime_type=mime_type, source=source)

    def _via_signed_url():
        if not storage_path:
            return None
        signed_url = bucket.blob(storage_path).generate_signed_url(
            version='v4',
            expiration=timedelta(seconds=signed_url_ttl_seconds),
            method='GET',
        )
        state['signed_url_issued'] = True
        data, content_type = fetch_url_bytes(signed_url, http_open=http_open, timeout=timeout, max_bytes=max_bytes)
        return _payload(data, content_type, STRATEGY_SIGNED_URL)

    def _via_reference_url():
        if state['signed_url_issued']:
            return None
        data, content_type = fetch_url_bytes(audio_url, http_open=http_open, timeout=timeout, max_bytes=max_bytes)
        return _payload(data, content_type, STRATEGY_REFERENCE_URL)

    def _via_direct_download():
        if not storage_path:
            return None
        blob = bucket.blob(storage_path)
        blob.reload(timeout=timeout)
        if blob.size is not None and blob.size > max_bytes:
            raise AudioTooLargeError(too_large_message(max_bytes))
        data = blob.download_as_bytes(timeout=timeout)
        if len(data) > max_bytes:
            raise AudioTooLargeError(too_large_message(max_bytes))
        return _payload(data, getattr(blob, 'content_type', '') or '', STRATEGY_DIRECT_DOWNLOAD)

    strategies = [
        (STRATEGY_SIGNED_URL, _via_signed_url),
        (STRATEGY_REFERENCE_URL, _via_reference_url),
        (STRATEGY_DIRECT_DOWNLOAD, _via_direct_download),
    ]
    attempts = []
    for name, strategy in strategies:
        try:
            payload = strategy()
        except AudioTooLargeError:
            logger.warning("Audio fetch via %s refused: body above %s bytes", name, max_bytes)
            raise
        except Exception as exc:
            attempt = FetchAttempt(name, str(exc) or exc.__class__.__name__, is_timeout_error(exc))
            attempts.append(attempt)
            logger.warning("Audio fetch via %s failed: %s", name, attempt.error)
            continue
        if payload is None:
            continue
        logger.info("Audio fetched via %s (%s bytes)", name, payload.size)
        return payload

    if not attempts:
        raise AudioFetchError('No fetch strategy applies to this URL')
    last = attempts[-1]
    raise AudioFetchError(last.error, timed_out=last.timed_out, attempts=attempts)
