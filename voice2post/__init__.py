import os

from flask import Flask, jsonify
from werkzeug.exceptions import RequestEntityTooLarge

from .blueprints import auth_bp, pages_bp, payments_bp, posts_bp, records_bp, storage_bp, usage_bp
from .config import load_config
from .extensions import build_app_context, init_extensions
from .logging_config import configure_logging, get_logger
from .session_gate import init_session_gate

# Headroom for multipart boundaries and form fields around the audio file.
FORM_OVERHEAD_BYTES = 1024 * 1024


def _handle_too_large(error):
    return jsonify({'error': 'Audio file too large'}), 413


def create_app(config=None, app_ctx=None):
    """App factory entrypoint.

    Tests pass a prebuilt ``app_ctx`` so no external client is created.
    """
    if config is None:
        config = app_ctx.config if app_ctx is not None else load_config()
    configure_logging(config.log_level)
    if app_ctx is None:
        app_ctx = build_app_context(config)

    app = Flask(__name__)
    app.secret_key = config.flask_secret_key or os.urandom(32).hex()
    app.config['MAX_CONTENT_LENGTH'] = config.max_audio_upload_bytes + FORM_OVERHEAD_BYTES
    app.register_error_handler(RequestEntityTooLarge, _handle_too_large)

    init_extensions(app, app_ctx)
    init_session_gate(app)
    for blueprint in (auth_bp, posts_bp, usage_bp, records_bp, storage_bp, payments_bp, pages_bp):
        app.register_blueprint(blueprint)

    get_logger().info("Voice2Post ready (env=%s)", config.runtime_env)
    return app
