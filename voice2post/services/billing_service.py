"""Stripe webhook verification and plan transitions."""

import json
import logging
from enum import Enum

from voice2post.logging_config import log_event
from voice2post.repositories import profiles_repo

from .usage_ledger_service import PLAN_FREE, PLAN_PLUS

ACTIVE_SUBSCRIPTION_STATUS = 'active'
SIGNATURE_TOLERANCE_SECONDS = 300


class WebhookEventKind(Enum):
    CHECKOUT_COMPLETED = 'checkout.session.completed'
    SUBSCRIPTION_UPDATED = 'customer.subscription.updated'
    SUBSCRIPTION_DELETED = 'customer.subscription.deleted'
    UNHANDLED = ''

    @classmethod
    def from_type(cls, event_type):
        try:
            return cls(str(event_type or ''))
        except ValueError:
            return cls.UNHANDLED


class WebhookSignatureError(ValueError):
    pass


def verify_event(payload, sig_header, secret, *, stripe_module):
    """Check the ``Stripe-Signature`` header and return the decoded event dict."""
    if isinstance(payload, bytes):
        try:
            payload = payload.decode('utf-8')
        except UnicodeDecodeError as exc:
            raise WebhookSignatureError(f'Invalid payload: {exc}') from exc
    try:
        stripe_module.WebhookSignature.verify_header(
            payload, sig_header, secret, tolerance=SIGNATURE_TOLERANCE_SECONDS,
        )
    except stripe_module.SignatureVerificationError as exc:
        raise WebhookSignatureError(str(exc)) from exc
    try:
        event = json.loads(payload)
    except ValueError as exc:
        raise WebhookSignatureError(f'Invalid payload: {exc}') from exc
    if not isinstance(event, dict):
        raise WebhookSignatureError('Invalid payload: not an object')
    return event


def _event_object(event):
    return ((event.get('data') or {}).get('object')) or {}


def _checkout_user_id(session):
    metadata = session.get('metadata') or {}
    return str(metadata.get('userId') or metadata.get('uid') or '').strip()


def handle_checkout_completed(event, *, db, now_ts, logger):
    session = _event_object(event)
    uid = _checkout_user_id(session)
    if not uid:
        logger.warning(f"Checkout session {session.get('id', '')} has no user id in metadata; ignored")
        return None
    profiles_repo.set_doc(db, uid, {
        'plan': PLAN_PLUS,
        'stripe_customer_id': session.get('customer'),
        'stripe_subscription_id': session.get('subscription'),
        'updated_at': now_ts,
    }, merge=True)
    log_event(logger, logging.INFO, 'plan_changed', uid=uid, plan=PLAN_PLUS, reason='checkout_completed')
    return uid


def handle_subscription_updated(event, *, db, now_ts, logger):
    subscription = _event_object(event)
    snapshot = profiles_repo.find_by_customer_id(db, subscription.get('customer'))
    if snapshot is None:
        logger.info(f"No profile for Stripe customer {subscription.get('customer')}; subscription update ignored")
        return None
    plan = PLAN_PLUS if subscription.get('status') == ACTIVE_SUBSCRIPTION_STATUS else PLAN_FREE
    profiles_repo.update_doc(db, snapshot.id, {'plan': plan, 'updated_at': now_ts})
    log_event(logger, logging.INFO, 'plan_changed', uid=snapshot.id, plan=plan, reason='subscription_updated')
    return snapshot.id


def handle_subscription_deleted(event, *, db, now_ts, logger):
    subscription = _event_object(event)
    snapshot = profiles_repo.find_by_customer_id(db, subscription.get('customer'))
    if snapshot is None:
        logger.info(f"No profile for Stripe customer {subscription.get('customer')}; subscription delete ignored")
        return None
    profiles_repo.update_doc(db, snapshot.id, {
        'plan': PLAN_FREE,
        'stripe_subscription_id': None,
        'updated_at': now_ts,
    })
    log_event(logger, logging.INFO, 'plan_changed', uid=snapshot.id, plan=PLAN_FREE, reason='subscription_deleted')
    return snapshot.id


def handle_unhandled(event, *, db, now_ts, logger):
    logger.info(f"Unhandled Stripe event type {event.get('type')}")
    return None


EVENT_HANDLERS = {
    WebhookEventKind.CHECKOUT_COMPLETED: handle_checkout_completed,
    WebhookEventKind.SUBSCRIPTION_UPDATED: handle_subscription_updated,
    WebhookEventKind.SUBSCRIPTION_DELETED: handle_subscription_deleted,
    WebhookEventKind.UNHANDLED: handle_unhandled,
}


def dispatch_event(event, *, db, now_ts, logger):
    kind = WebhookEventKind.from_type(event.get('type'))
    return EVENT_HANDLERS[kind](event, db=db, now_ts=now_ts, logger=logger)
