"""Business logic handlers for the usage API."""

from flask import jsonify

from voice2post.errors import UsageLedgerError

from . import guards, usage_ledger_service


def get_usage(app_ctx, request):
    decoded_token, error_response = guards.authenticate(app_ctx, request)
    if error_response:
        return error_response
    uid = decoded_token['uid']

    try:
        status = usage_ledger_service.get_usage_status(
            uid,
            db=app_ctx.db,
            today=app_ctx.today(),
            now_ts=app_ctx.clock(),
            free_limit=app_ctx.config.free_daily_limit,
            logger=app_ctx.logger,
        )
    except UsageLedgerError as e:
        app_ctx.logger.error(f"Error checking usage limit for user {uid}: {e}")
        return guards.quota_check_failed_response()

    return jsonify({
        'canUse': status['can_use'],
        'profile': {
            'plan': status['plan'],
            'usageCount': status['usage_count'],
            'usageResetDate': status['usage_reset_date'],
            'maxUsage': status['max_usage'],
        },
    })


def increment_usage(app_ctx, request):
    decoded_token, error_response = guards.authenticate(app_ctx, request)
    if error_response:
        return error_response
    uid = decoded_token['uid']

    try:
        usage_ledger_service.record_action(
            uid,
            db=app_ctx.db,
            today=app_ctx.today(),
            now_ts=app_ctx.clock(),
            firestore_module=app_ctx.firestore,
        )
    except UsageLedgerError as e:
        app_ctx.logger.error(f"Error incrementing usage for user {uid}: {e}")
        return jsonify({'error': 'Failed to update usage count'}), 500
    return jsonify({'success': True})
