from flask import Blueprint, request

from voice2post.extensions import get_app_context
from voice2post.services import payments_api_service

payments_bp = Blueprint('payments_api', __name__)


@payments_bp.route('/api/config', methods=['GET'])
def get_config():
    return payments_api_service.get_config(get_app_context())


@payments_bp.route('/api/stripe/checkout', methods=['POST'])
def create_checkout_session():
    return payments_api_service.create_checkout_session(get_app_context(), request)


@payments_bp.route('/api/stripe/portal', methods=['POST'])
def create_portal_session():
    return payments_api_service.create_portal_session(get_app_context(), request)


@payments_bp.route('/api/stripe-webhook', methods=['POST'])
def stripe_webhook():
    return payments_api_service.stripe_webhook(get_app_context(), request)
