from flask import Blueprint, request

from voice2post.extensions import get_app_context
from voice2post.services import storage_api_service

storage_bp = Blueprint('storage_api', __name__)


@storage_bp.route('/api/storage-info', methods=['GET'])
def storage_info():
    return storage_api_service.get_storage_info(get_app_context(), request)
