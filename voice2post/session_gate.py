"""Page-level session gate run before every request."""

from enum import Enum

from flask import redirect, request

from .extensions import get_app_context
from .services import auth_service

SKIPPED_PREFIXES = ('/static', '/api')
PUBLIC_ROUTES = ('/login', '/plan', '/pricing', '/about')
AUTH_FLOW_ROUTES = ('/auth',)
PROTECTED_ROUTES = ('/record', '/generate', '/history', '/upgrade')
LOGIN_PATH = '/login'
HOME_WITH_SESSION = '/record'
HOME_WITHOUT_SESSION = '/plan'


class RouteKind(Enum):
    SKIPPED = 'skipped'
    ROOT = 'root'
    PUBLIC = 'public'
    AUTH_FLOW = 'auth_flow'
    PROTECTED = 'protected'
    OTHER = 'other'


def _matches(path, routes):
    return any(path == route or path.startswith(route + '/') for route in routes)


def classify_path(path):
    path = path or '/'
    if _matches(path, SKIPPED_PREFIXES) or '.' in path:
        return RouteKind.SKIPPED
    if path == '/':
        return RouteKind.ROOT
    if _matches(path, PUBLIC_ROUTES):
        return RouteKind.PUBLIC
    if _matches(path, AUTH_FLOW_ROUTES):
        return RouteKind.AUTH_FLOW
    if _matches(path, PROTECTED_ROUTES):
        return RouteKind.PROTECTED
    return RouteKind.OTHER


def gate_decision(kind, has_session):
    """Return the redirect target for a page request, or None to let it through."""
    if kind == RouteKind.ROOT:
        return HOME_WITH_SESSION if has_session else HOME_WITHOUT_SESSION
    if kind == RouteKind.PROTECTED and not has_session:
        return LOGIN_PATH
    return None


def _has_session(app_ctx):
    config = app_ctx.config
    claims = auth_service.verify_session_cookie(
        request.cookies.get(config.session_cookie_name, ''),
        auth_module=app_ctx.auth,
        timeout_seconds=config.auth_timeout_seconds,
        logger=app_ctx.logger,
    )
    return bool(claims)


def enforce_session_gate():
    kind = classify_path(request.path)
    if kind not in (RouteKind.ROOT, RouteKind.PROTECTED):
        return None
    app_ctx = get_app_context()
    target = gate_decision(kind, _has_session(app_ctx))
    if target is None:
        return None
    app_ctx.logger.debug("Session gate: %s -> %s", request.path, target)
    return redirect(target)


def init_session_gate(app):
    app.before_request(enforce_session_gate)
