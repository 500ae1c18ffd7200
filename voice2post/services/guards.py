"""Request guards shared by the API handlers: auth, quota and usage bookkeeping."""

import logging

from flask import jsonify

from voice2post.errors import AuthTimeoutError, UsageLedgerError
from voice2post.logging_config import log_event
from voice2post.repositories import usage_logs_repo

from . import auth_service, usage_ledger_service

ACTION_TRANSCRIBE = 'transcribe'
ACTION_GENERATE_POST = 'generate_post'
UPGRADE_PATH = '/upgrade'


def authenticate(app_ctx, request):
    """Return ``(decoded_token, error_response)``; exactly one of them is set."""
    try:
        decoded_token = auth_service.verify_request_user(
            request,
            auth_module=app_ctx.auth,
            session_cookie_name=app_ctx.config.session_cookie_name,
            timeout_seconds=app_ctx.config.auth_timeout_seconds,
            logger=app_ctx.logger,
        )
    except AuthTimeoutError as exc:
        app_ctx.logger.error(f"Auth check timed out: {exc}")
        return None, (jsonify({'error': 'Authentication check timed out'}), 504)
    if not decoded_token or not decoded_token.get('uid'):
        return None, (jsonify({'error': 'Unauthorized'}), 401)
    return decoded_token, None


def quota_check_failed_response():
    return jsonify({'error': 'Failed to check usage limit', 'code': 'quota_check_failed'}), 500


def check_quota(app_ctx, uid):
    """Return an error response when ``uid`` may not act now, else None."""
    try:
        allowed = usage_ledger_service.can_perform_action(
            uid,
            db=app_ctx.db,
            today=app_ctx.today(),
            now_ts=app_ctx.clock(),
            free_limit=app_ctx.config.free_daily_limit,
            logger=app_ctx.logger,
        )
    except UsageLedgerError as exc:
        app_ctx.logger.error(f"Error checking usage limit for user {uid}: {exc}")
        return quota_check_failed_response()
    if not allowed:
        log_event(app_ctx.logger, logging.INFO, 'quota_exceeded', uid=uid)
        return jsonify({
            'error': 'Usage limit exceeded. Please upgrade to Plus for unlimited usage.',
            'upgrade_url': UPGRADE_PATH,
        }), 429
    return None


def record_usage(app_ctx, uid, action, processing_ms):
    """Increment the ledger and append a usage log. Failures are logged, never raised."""
    try:
        usage_ledger_service.record_action(
            uid,
            db=app_ctx.db,
            today=app_ctx.today(),
            now_ts=app_ctx.clock(),
            firestore_module=app_ctx.firestore,
        )
    except UsageLedgerError as exc:
        app_ctx.logger.error(f"Failed to increment usage for user {uid} ({action}): {exc}")
    try:
        usage_logs_repo.add_doc(app_ctx.db, {
            'uid': uid,
            'action': action,
            'processing_time': format_processing_time(processing_ms),
            'created_at': app_ctx.clock(),
        })
    except Exception as exc:
        app_ctx.logger.error(f"Failed to write usage log for user {uid} ({action}): {exc}")


def elapsed_ms(app_ctx, started_at):
    return max(0, int((app_ctx.clock() - started_at) * 1000))


def format_processing_time(processing_ms):
    return f'{int(processing_ms)}ms'
