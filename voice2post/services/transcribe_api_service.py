"""Business logic handler for the transcription API."""

import logging

from flask import jsonify

from voice2post.errors import AudioFetchError, AudioTooLargeError
from voice2post.logging_config import log_event

from . import audio_service, guards, transcription_service


def _payload_from_json(app_ctx, request):
    body = request.get_json(silent=True) or {}
    if not isinstance(body, dict):
        return None, (jsonify({'error': 'Invalid JSON body'}), 400)
    audio_url, url_error = audio_service.validate_audio_url(body.get('audioUrl', ''), resolver=app_ctx.resolve_host)
    if not audio_url:
        return None, (jsonify({'error': url_error}), 400)
    config = app_ctx.config
    try:
        payload = audio_service.resolve_audio_url(
            audio_url,
            bucket=app_ctx.bucket,
            http_open=app_ctx.http_open,
            timeout=config.audio_fetch_timeout_seconds,
            signed_url_ttl_seconds=config.signed_url_ttl_seconds,
            max_bytes=config.max_audio_upload_bytes,
            logger=app_ctx.logger,
        )
    except AudioTooLargeError as exc:
        return None, (jsonify({'error': str(exc)}), 400)
    except AudioFetchError as exc:
        if exc.timed_out:
            return None, (jsonify({'error': 'Audio download timed out', 'details': str(exc)}), 504)
        return None, (jsonify({'error': f'Failed to download audio: {exc}'}), 400)
    return payload, None


def _payload_from_form(request):
    audio_file = request.files.get('audio')
    if audio_file is None or not audio_file.filename:
        return None, (jsonify({'error': 'No audio file provided'}), 400)
    return audio_service.payload_from_upload(audio_file), None


def transcribe(app_ctx, request):
    started_at = app_ctx.clock()
    decoded_token, error_response = guards.authenticate(app_ctx, request)
    if error_response:
        return error_response
    uid = decoded_token['uid']

    quota_error = guards.check_quota(app_ctx, uid)
    if quota_error:
        return quota_error

    if request.is_json:
        payload, error_response = _payload_from_json(app_ctx, request)
    else:
        payload, error_response = _payload_from_form(request)
    if error_response:
        return error_response

    validation_error = audio_service.validate_audio(payload, app_ctx.config.max_audio_upload_bytes)
    if validation_error:
        app_ctx.logger.info(
            "Rejected audio for user %s: %s (size=%s type=%s)",
            uid, validation_error, payload.size, payload.mime_type,
        )
        return jsonify({'error': validation_error}), 400
    payload = payload.with_mime_type(audio_service.correct_mime_type(payload.mime_type, payload.filename))

    result = transcription_service.transcribe_with_fallback(
        payload,
        client=app_ctx.genai_client,
        types_module=app_ctx.genai_types,
        model=app_ctx.config.gemini_model,
        demo_fallback_enabled=app_ctx.config.demo_transcript_fallback,
        rng=app_ctx.rng,
        logger=app_ctx.logger,
    )
    if not result.success:
        app_ctx.logger.error(f"Transcription failed for user {uid}: {result.error}")
        return jsonify({'error': 'Failed to process audio', 'details': result.error}), 500

    processing_ms = guards.elapsed_ms(app_ctx, started_at)
    guards.record_usage(app_ctx, uid, guards.ACTION_TRANSCRIBE, processing_ms)
    log_event(
        app_ctx.logger, logging.INFO, 'transcribe_completed',
        uid=uid, source=payload.source, mime_type=payload.mime_type,
        size_bytes=payload.size, fallback=result.is_fallback, processing_ms=processing_ms,
    )
    return jsonify({
        'transcript': result.transcript,
        'success': True,
        'fallback': result.is_fallback,
        'processingTime': guards.format_processing_time(processing_ms),
    })
