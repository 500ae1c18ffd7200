from flask import Blueprint, request

from voice2post.extensions import get_app_context
from voice2post.services import records_api_service

records_bp = Blueprint('records_api', __name__)


@records_bp.route('/api/records', methods=['GET'])
def list_records():
    return records_api_service.list_records(get_app_context(), request)


@records_bp.route('/api/records/<record_id>', methods=['DELETE'])
def delete_record(record_id):
    return records_api_service.delete_record(get_app_context(), request, record_id)
