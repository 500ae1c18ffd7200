from flask import Blueprint, request

from voice2post.extensions import get_app_context
from voice2post.services import usage_api_service

usage_bp = Blueprint('usage_api', __name__)


@usage_bp.route('/api/usage', methods=['GET'])
def get_usage():
    return usage_api_service.get_usage(get_app_context(), request)


@usage_bp.route('/api/usage', methods=['POST'])
def increment_usage():
    return usage_api_service.increment_usage(get_app_context(), request)
