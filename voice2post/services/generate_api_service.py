"""Business logic handler for the post generation API."""

import logging

from flask import jsonify

from voice2post.errors import UsageLedgerError
from voice2post.logging_config import log_event
from voice2post.repositories import records_repo

from . import guards, post_generator_service, usage_ledger_service
from .prompt_registry import POST_STYLES


def _current_plan(app_ctx, uid):
    try:
        profile = usage_ledger_service.get_or_create_profile(
            uid, db=app_ctx.db, today=app_ctx.today(), now_ts=app_ctx.clock(),
        )
    except UsageLedgerError as exc:
        app_ctx.logger.error(f"Could not load plan for user {uid}: {exc}")
        return usage_ledger_service.PLAN_FREE
    return usage_ledger_service.normalize_plan(profile.get('plan'))


def save_record(app_ctx, uid, record_id, record_data):
    """Insert a record, or update the caller's own record when ``record_id`` is set."""
    now_ts = app_ctx.clock()
    try:
        if record_id:
            updated = records_repo.update_owned_doc(app_ctx.db, uid, record_id, dict(record_data, updated_at=now_ts))
            if not updated:
                app_ctx.logger.warning(f"Record {record_id} not found for user {uid}; nothing updated")
                return None
            return record_id
        return records_repo.add_doc(app_ctx.db, dict(record_data, uid=uid, created_at=now_ts, updated_at=now_ts))
    except Exception as exc:
        app_ctx.logger.error(f"Failed to save record for user {uid}: {exc}")
        return None


def generate_post(app_ctx, request):
    started_at = app_ctx.clock()
    decoded_token, error_response = guards.authenticate(app_ctx, request)
    if error_response:
        return error_response
    uid = decoded_token['uid']

    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid JSON body'}), 400
    transcript = str(data.get('transcript') or '').strip()
    style = str(data.get('style') or post_generator_service.DEFAULT_STYLE).strip()
    record_id = str(data.get('recordId') or '').strip()
    if not transcript:
        return jsonify({'error': 'No transcript provided'}), 400
    if not post_generator_service.is_valid_style(style):
        return jsonify({'error': f"Invalid style. Choose one of: {', '.join(POST_STYLES)}"}), 400

    quota_error = guards.check_quota(app_ctx, uid)
    if quota_error:
        return quota_error

    try:
        result = post_generator_service.generate_post(
            transcript,
            style,
            client=app_ctx.genai_client,
            types_module=app_ctx.genai_types,
            model=app_ctx.config.gemini_model,
            output_language=app_ctx.config.post_output_language,
        )
    except Exception as exc:
        app_ctx.logger.error(f"Generate post error for user {uid}: {exc}")
        return jsonify({'error': 'Failed to generate post', 'details': str(exc)}), 500
    if result.is_fallback:
        log_event(app_ctx.logger, logging.WARNING, 'generation_unparsed', uid=uid, style=style)

    processing_ms = guards.elapsed_ms(app_ctx, started_at)
    saved_record_id = None
    if _current_plan(app_ctx, uid) == usage_ledger_service.PLAN_PLUS:
        saved_record_id = save_record(app_ctx, uid, record_id, {
            'transcript': transcript,
            'summary': result.summary,
            'generated_post': result.post,
            'style': style,
            'processing_time': guards.format_processing_time(processing_ms),
        })
    guards.record_usage(app_ctx, uid, guards.ACTION_GENERATE_POST, processing_ms)

    return jsonify({
        'summary': result.summary,
        'post': result.post,
        'style': style,
        'success': True,
        'recordId': saved_record_id,
        'processingTime': guards.format_processing_time(processing_ms),
    })
