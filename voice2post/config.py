import json
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from .errors import ConfigurationError

DEV_ENV_NAMES = {'development', 'dev', 'local', 'test'}
TRUTHY_VALUES = {'1', 'true', 'yes', 'on'}
FIREBASE_CREDENTIALS_FILE = 'firebase-credentials.json'


def _env(name, default=''):
    return (os.getenv(name, default) or default).strip()


def _env_bool(name, default=False):
    raw = _env(name, '1' if default else '0').lower()
    return raw in TRUTHY_VALUES


def _env_int(name, default, minimum=1, maximum=10_000_000):
    try:
        value = int(_env(name, str(default)))
    except ValueError:
        return default
    return max(minimum, min(maximum, value))


def _env_float(name, default, minimum=0.0):
    try:
        value = float(_env(name, str(default)))
    except ValueError:
        return default
    return max(minimum, value)


@dataclass(frozen=True)
class AppConfig:
    """Central runtime configuration, resolved once at startup."""

    flask_secret_key: str = ''
    runtime_env: str = 'production'
    log_level: str = 'INFO'

    gemini_api_key: str = ''
    gemini_model: str = 'gemini-2.5-flash'
    post_output_language: str = 'Thai'
    ai_timeout_seconds: float = 60.0

    firebase_credentials: dict = field(default_factory=dict)
    firebase_credentials_path: str = ''
    storage_bucket: str = ''
    audio_storage_prefix: str = 'audio-files'
    signed_url_ttl_seconds: int = 300

    stripe_secret_key: str = ''
    stripe_publishable_key: str = ''
    stripe_webhook_secret: str = ''
    stripe_price_plus_monthly: str = ''
    stripe_price_plus_yearly: str = ''
    app_url: str = 'http://localhost:5000'

    free_daily_limit: int = 3
    demo_transcript_fallback: bool = True
    auth_timeout_seconds: float = 10.0
    audio_fetch_timeout_seconds: float = 15.0
    max_audio_upload_bytes: int = 20 * 1024 * 1024

    session_cookie_name: str = 'v2p_session'
    session_duration_seconds: int = 5 * 24 * 3600

    sentry_dsn: str = ''
    sentry_environment: str = 'production'
    sentry_release: str = 'voice2post'
    sentry_traces_sample_rate: float = 0.0

    @property
    def is_dev_like(self):
        return self.runtime_env in DEV_ENV_NAMES


def _resolve_runtime_env():
    return (
        os.getenv('SENTRY_ENVIRONMENT')
        or os.getenv('FLASK_ENV')
        or os.getenv('ENV')
        or ('production' if os.getenv('RENDER') else 'development')
    ).strip().lower()


def _load_firebase_credentials():
    if os.path.exists(FIREBASE_CREDENTIALS_FILE):
        return {}, FIREBASE_CREDENTIALS_FILE
    raw = _env('FIREBASE_CREDENTIALS')
    if not raw:
        return {}, ''
    try:
        creds = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f'FIREBASE_CREDENTIALS is not valid JSON: {exc}') from exc
    if not isinstance(creds, dict):
        raise ConfigurationError('FIREBASE_CREDENTIALS must be a JSON object.')
    return creds, ''


def load_config() -> AppConfig:
    load_dotenv()
    runtime_env = _resolve_runtime_env()
    firebase_credentials, firebase_credentials_path = _load_firebase_credentials()
    config = AppConfig(
        flask_secret_key=_env('FLASK_SECRET_KEY'),
        runtime_env=runtime_env,
        log_level=_env('LOG_LEVEL', 'INFO').upper(),
        gemini_api_key=_env('GEMINI_API_KEY'),
        gemini_model=_env('GEMINI_MODEL', 'gemini-2.5-flash'),
        post_output_language=_env('POST_OUTPUT_LANGUAGE', 'Thai'),
        ai_timeout_seconds=_env_float('AI_TIMEOUT_SECONDS', 60.0, minimum=1.0),
        firebase_credentials=firebase_credentials,
        firebase_credentials_path=firebase_credentials_path,
        storage_bucket=_env('FIREBASE_STORAGE_BUCKET'),
        audio_storage_prefix=_env('AUDIO_STORAGE_PREFIX', 'audio-files').strip('/'),
        stripe_secret_key=_env('STRIPE_SECRET_KEY'),
        stripe_publishable_key=_env('STRIPE_PUBLISHABLE_KEY'),
        stripe_webhook_secret=_env('STRIPE_WEBHOOK_SECRET'),
        stripe_price_plus_monthly=_env('STRIPE_PRICE_PLUS_MONTHLY'),
        stripe_price_plus_yearly=_env('STRIPE_PRICE_PLUS_YEARLY'),
        app_url=_env('APP_URL', 'http://localhost:5000').rstrip('/'),
        free_daily_limit=_env_int('FREE_DAILY_LIMIT', 3),
        demo_transcript_fallback=_env_bool('DEMO_TRANSCRIPT_FALLBACK', default=True),
        auth_timeout_seconds=_env_float('AUTH_TIMEOUT_SECONDS', 10.0, minimum=0.5),
        audio_fetch_timeout_seconds=_env_float('AUDIO_FETCH_TIMEOUT_SECONDS', 15.0, minimum=0.5),
        max_audio_upload_bytes=_env_int('MAX_AUDIO_UPLOAD_BYTES', 20 * 1024 * 1024, minimum=1024),
        session_cookie_name=_env('SESSION_COOKIE_NAME', 'v2p_session'),
        session_duration_seconds=_env_int('SESSION_DURATION_SECONDS', 5 * 24 * 3600, minimum=300, maximum=14 * 24 * 3600),
        sentry_dsn=_env('SENTRY_DSN'),
        sentry_environment=runtime_env or 'production',
        sentry_release=_env('SENTRY_RELEASE', 'voice2post'),
        sentry_traces_sample_rate=_env_float('SENTRY_TRACES_SAMPLE_RATE', 0.0),
    )
    validate_config(config)
    return config


def validate_config(config: AppConfig) -> None:
    """Raise ConfigurationError listing every missing required setting."""
    missing = []
    if not config.gemini_api_key:
        missing.append('GEMINI_API_KEY')
    if not config.stripe_secret_key:
        missing.append('STRIPE_SECRET_KEY')
    if not config.stripe_webhook_secret:
        missing.append('STRIPE_WEBHOOK_SECRET')
    if not config.storage_bucket:
        missing.append('FIREBASE_STORAGE_BUCKET')
    if not config.firebase_credentials and not config.firebase_credentials_path:
        missing.append('FIREBASE_CREDENTIALS')
    if not config.is_dev_like and not config.flask_secret_key:
        missing.append('FLASK_SECRET_KEY')
    if missing:
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")
