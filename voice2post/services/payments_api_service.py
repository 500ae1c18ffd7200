"""Business logic handlers for billing APIs."""

from flask import jsonify

from voice2post.errors import UsageLedgerError

from . import billing_service, guards, usage_ledger_service

CHECKOUT_INTERVALS = ('monthly', 'yearly')


def _plan_catalogue(config):
    return {
        usage_ledger_service.PLAN_FREE: {
            'name': 'Free',
            'max_usage': config.free_daily_limit,
        },
        usage_ledger_service.PLAN_PLUS: {
            'name': 'Plus',
            'max_usage': usage_ledger_service.UNLIMITED,
            'prices': {
                'monthly': config.stripe_price_plus_monthly,
                'yearly': config.stripe_price_plus_yearly,
            },
        },
    }


def get_config(app_ctx):
    return jsonify({
        'stripe_publishable_key': app_ctx.config.stripe_publishable_key,
        'plans': _plan_catalogue(app_ctx.config),
    })


def _base_url(app_ctx, request):
    return (app_ctx.config.app_url or request.host_url).rstrip('/')


def create_checkout_session(app_ctx, request):
    decoded_token, error_response = guards.authenticate(app_ctx, request)
    if error_response:
        return error_response
    uid = decoded_token['uid']

    data = request.get_json(silent=True) or {}
    interval = str(data.get('interval') or 'monthly').strip().lower() if isinstance(data, dict) else ''
    if interval not in CHECKOUT_INTERVALS:
        return jsonify({'error': 'Invalid billing interval'}), 400
    price_id = app_ctx.config.stripe_price_plus_yearly if interval == 'yearly' else app_ctx.config.stripe_price_plus_monthly
    if not price_id:
        app_ctx.logger.error(f"No Stripe price configured for interval '{interval}'")
        return jsonify({'error': 'Plan pricing is not configured'}), 500

    base_url = _base_url(app_ctx, request)
    params = {
        'mode': 'subscription',
        'line_items': [{'price': price_id, 'quantity': 1}],
        'success_url': base_url + '/record?upgrade=success',
        'cancel_url': base_url + '/upgrade?upgrade=cancelled',
        'metadata': {'userId': uid},
        'subscription_data': {'metadata': {'userId': uid}},
    }
    email = decoded_token.get('email', '')
    if email:
        params['customer_email'] = email
    try:
        checkout_session = app_ctx.stripe.checkout.Session.create(**params)
    except Exception as e:
        app_ctx.logger.error(f"Stripe checkout error: {e}")
        return jsonify({'error': 'Could not create checkout session. Please try again.'}), 500
    return jsonify({'sessionId': checkout_session.id, 'url': checkout_session.url})


def create_portal_session(app_ctx, request):
    decoded_token, error_response = guards.authenticate(app_ctx, request)
    if error_response:
        return error_response
    uid = decoded_token['uid']

    try:
        profile = usage_ledger_service.get_or_create_profile(
            uid, db=app_ctx.db, today=app_ctx.today(), now_ts=app_ctx.clock(), logger=app_ctx.logger,
        )
    except UsageLedgerError as e:
        app_ctx.logger.error(f"Portal profile lookup failed for user {uid}: {e}")
        return jsonify({'error': 'Could not load billing profile'}), 500
    customer_id = profile.get('stripe_customer_id')
    if not customer_id:
        return jsonify({'error': 'No billing account found'}), 400

    try:
        portal_session = app_ctx.stripe.billing_portal.Session.create(
            customer=customer_id,
            return_url=_base_url(app_ctx, request) + '/upgrade',
        )
    except Exception as e:
        app_ctx.logger.error(f"Stripe portal error: {e}")
        return jsonify({'error': 'Could not open billing portal. Please try again.'}), 500
    return jsonify({'url': portal_session.url})


def stripe_webhook(app_ctx, request):
    payload = request.get_data()
    sig_header = request.headers.get('Stripe-Signature', '')
    if not sig_header:
        return jsonify({'error': 'No signature'}), 400

    try:
        event = billing_service.verify_event(
            payload, sig_header, app_ctx.config.stripe_webhook_secret, stripe_module=app_ctx.stripe,
        )
    except billing_service.WebhookSignatureError as e:
        app_ctx.logger.warning(f"Stripe webhook signature verification failed: {e}")
        return jsonify({'error': 'Webhook signature verification failed'}), 400

    try:
        billing_service.dispatch_event(event, db=app_ctx.db, now_ts=app_ctx.clock(), logger=app_ctx.logger)
    except Exception as e:
        app_ctx.logger.error(f"Stripe webhook handler error for {event.get('type')}: {e}")
        return jsonify({'error': 'Webhook handler failed'}), 500
    return jsonify({'received': True})
