"""Composition root: external clients built once per process and shared by handlers."""

import random
import socket
import time
import uuid
from datetime import datetime, timezone

import firebase_admin
import sentry_sdk
import stripe
from firebase_admin import auth, credentials, firestore, storage
from flask import current_app, g, request
from google import genai
from google.genai import types
from sentry_sdk.integrations.flask import FlaskIntegration

from .logging_config import get_logger
from .services.audio_service import build_audio_opener

EXTENSION_KEY = 'voice2post'


def utc_today():
    return datetime.now(timezone.utc).date()


class AppContext:
    """Holds every external capability a request handler may touch.

    Built once by ``create_app`` and passed to services explicitly; tests build
    one from in-memory doubles instead.
    """

    def __init__(
        self,
        config,
        *,
        db,
        auth_module,
        bucket,
        genai_client,
        genai_types=types,
        firestore_module=firestore,
        stripe_module=stripe,
        http_open=None,
        resolve_host=socket.getaddrinfo,
        today=utc_today,
        clock=time.time,
        rng=None,
        logger=None,
    ):
        self.config = config
        self.db = db
        self.auth = auth_module
        self.bucket = bucket
        self.genai_client = genai_client
        self.genai_types = genai_types
        self.firestore = firestore_module
        self.stripe = stripe_module
        self.resolve_host = resolve_host
        self.http_open = http_open or build_audio_opener(resolve_host)
        self.today = today
        self.clock = clock
        self.rng = rng or random.Random()
        self.logger = logger or get_logger()


def _firebase_credential(config):
    if config.firebase_credentials_path:
        return credentials.Certificate(config.firebase_credentials_path)
    return credentials.Certificate(config.firebase_credentials)


def build_app_context(config):
    logger = get_logger()
    if not firebase_admin._apps:
        firebase_admin.initialize_app(_firebase_credential(config), {'storageBucket': config.storage_bucket})
    db = firestore.client()
    bucket = storage.bucket(config.storage_bucket)

    genai_client = genai.Client(
        api_key=config.gemini_api_key,
        http_options=types.HttpOptions(timeout=int(config.ai_timeout_seconds * 1000)),
    )

    stripe.api_key = config.stripe_secret_key
    logger.info("External clients ready (bucket=%s, model=%s)", config.storage_bucket, config.gemini_model)
    return AppContext(
        config,
        db=db,
        auth_module=auth,
        bucket=bucket,
        genai_client=genai_client,
        logger=logger,
    )


def init_sentry(config):
    if not config.sentry_dsn:
        return False
    sentry_sdk.init(
        dsn=config.sentry_dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=config.sentry_traces_sample_rate,
        send_default_pii=False,
        environment=config.sentry_environment,
        release=config.sentry_release,
    )
    return True


def _attach_request_context():
    request_id = str(request.headers.get('X-Request-ID', '') or '').strip()[:120] or uuid.uuid4().hex
    g.request_id = request_id
    scope = sentry_sdk.get_current_scope()
    scope.set_tag('request.id', request_id)
    scope.set_tag('route.path', request.path)
    scope.set_tag('route.method', request.method)
    scope.set_tag('route.endpoint', request.endpoint or '')


def _attach_response_context(response):
    request_id = str(getattr(g, 'request_id', '') or '').strip()
    if request_id:
        response.headers['X-Request-ID'] = request_id
    sentry_sdk.get_current_scope().set_tag('route.status_code', str(response.status_code))
    return response


def init_extensions(app, app_ctx) -> None:
    app.extensions[EXTENSION_KEY] = app_ctx
    init_sentry(app_ctx.config)
    app.before_request(_attach_request_context)
    app.after_request(_attach_response_context)


def get_app_context():
    return current_app.extensions[EXTENSION_KEY]
