from flask import Blueprint, request

from voice2post.extensions import get_app_context
from voice2post.services import auth_api_service

auth_bp = Blueprint('auth_api', __name__)


@auth_bp.route('/api/session/login', methods=['POST'])
def create_session():
    return auth_api_service.create_session(get_app_context(), request)


@auth_bp.route('/api/session/logout', methods=['POST'])
def clear_session():
    return auth_api_service.clear_session(get_app_context(), request)
