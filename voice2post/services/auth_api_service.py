"""Business logic handlers for session cookie APIs."""

from datetime import timedelta

from flask import jsonify

from . import auth_service


def _cookie_secure(app_ctx, request):
    return bool(request.is_secure or not app_ctx.config.is_dev_like)


def create_session(app_ctx, request):
    id_token = auth_service.extract_bearer_token(request)
    if not id_token:
        return jsonify({'error': 'Missing ID token'}), 400

    config = app_ctx.config
    try:
        auth_service.run_with_timeout(app_ctx.auth.verify_id_token, config.auth_timeout_seconds, id_token)
        session_cookie = app_ctx.auth.create_session_cookie(
            id_token,
            expires_in=timedelta(seconds=config.session_duration_seconds),
        )
    except Exception as e:
        app_ctx.logger.warning(f"Could not create session cookie: {e}")
        return jsonify({'error': 'Unauthorized'}), 401

    response = jsonify({'ok': True})
    response.set_cookie(
        config.session_cookie_name,
        session_cookie,
        max_age=config.session_duration_seconds,
        httponly=True,
        secure=_cookie_secure(app_ctx, request),
        samesite='Lax',
        path='/',
    )
    return response


def clear_session(app_ctx, request):
    response = jsonify({'ok': True})
    response.set_cookie(
        app_ctx.config.session_cookie_name,
        '',
        expires=0,
        max_age=0,
        httponly=True,
        secure=_cookie_secure(app_ctx, request),
        samesite='Lax',
        path='/',
    )
    return response
