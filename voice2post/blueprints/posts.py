from flask import Blueprint, request

from voice2post.extensions import get_app_context
from voice2post.services import generate_api_service, transcribe_api_service

posts_bp = Blueprint('posts_api', __name__)


@posts_bp.route('/api/transcribe', methods=['POST'])
def transcribe():
    return transcribe_api_service.transcribe(get_app_context(), request)


@posts_bp.route('/api/generate-post', methods=['POST'])
def generate_post():
    return generate_api_service.generate_post(get_app_context(), request)
