"""Authentication utility helpers."""

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from voice2post.errors import AuthTimeoutError


def run_with_timeout(fn, timeout_seconds, *args, **kwargs):
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(fn, *args, **kwargs)
    try:
        return future.result(timeout=timeout_seconds)
    except FutureTimeoutError as exc:
        future.cancel()
        raise AuthTimeoutError(f'Auth check timed out after {timeout_seconds}s') from exc
    finally:
        executor.shutdown(wait=False)


def extract_bearer_token(request):
    auth_header = request.headers.get('Authorization', '')
    if not auth_header.startswith('Bearer '):
        return ''
    return auth_header.split('Bearer ', 1)[1].strip()


def verify_request_user(request, *, auth_module, session_cookie_name, timeout_seconds, logger):
    """Return decoded Firebase claims for the caller, or None when invalid/missing.

    A Bearer ID token wins over the session cookie. Timeouts raise
    ``AuthTimeoutError`` so callers can answer with a distinct status.
    """
    token = extract_bearer_token(request)
    if token:
        verifier, credential = auth_module.verify_id_token, token
    else:
        credential = request.cookies.get(session_cookie_name, '')
        if not credential:
            return None
        verifier = auth_module.verify_session_cookie
    try:
        return run_with_timeout(verifier, timeout_seconds, credential)
    except AuthTimeoutError:
        raise
    except Exception as exc:
        if logger is not None:
            logger.info(f"Token verification failed: {exc}")
        return None


def verify_session_cookie(cookie_value, *, auth_module, timeout_seconds, logger):
    """Session lookup for page requests; every failure means "no session"."""
    if not cookie_value:
        return None
    try:
        return run_with_timeout(auth_module.verify_session_cookie, timeout_seconds, cookie_value)
    except Exception as exc:
        if logger is not None:
            logger.warning(f"Session verification failed: {exc}")
        return None
