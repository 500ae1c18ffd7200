"""Daily usage quota per plan, kept on the user's profile document.

The check and the increment are the only two ledger operations handlers use.
Both roll the counter over when the stored reset date is not today, and both
raise ``UsageLedgerError`` when Firestore cannot be reached so callers can
fail closed.
"""

from voice2post.errors import UsageLedgerError
from voice2post.repositories import profiles_repo

PLAN_FREE = 'free'
PLAN_PLUS = 'plus'
PLANS = (PLAN_FREE, PLAN_PLUS)
UNLIMITED = -1
DEFAULT_FREE_DAILY_LIMIT = 3


def normalize_plan(raw_plan):
    plan = str(raw_plan or '').strip().lower()
    return plan if plan in PLANS else PLAN_FREE


def plan_limit(plan, free_limit=DEFAULT_FREE_DAILY_LIMIT):
    if normalize_plan(plan) == PLAN_PLUS:
        return UNLIMITED
    return int(free_limit)


def build_default_profile(uid, today, now_ts, email=''):
    return {
        'uid': uid,
        'email': email,
        'plan': PLAN_FREE,
        'usage_count': 0,
        'usage_reset_date': today.isoformat(),
        'stripe_customer_id': None,
        'stripe_subscription_id': None,
        'created_at': now_ts,
        'updated_at': now_ts,
    }


def effective_usage(profile, today):
    """Return ``(count, reset_date, rolled_over)`` as of ``today``."""
    today_iso = today.isoformat()
    stored_date = str(profile.get('usage_reset_date') or '')
    try:
        count = max(0, int(profile.get('usage_count') or 0))
    except (TypeError, ValueError):
        count = 0
    if stored_date != today_iso:
        return 0, today_iso, True
    return count, stored_date, False


def get_or_create_profile(uid, *, db, today, now_ts, email='', logger=None):
    try:
        snapshot = profiles_repo.get_doc(db, uid)
        if snapshot.exists:
            return snapshot.to_dict() or {}
        profile = build_default_profile(uid, today, now_ts, email=email)
        profiles_repo.set_doc(db, uid, profile)
    except Exception as exc:
        raise UsageLedgerError(f'Could not load profile: {exc}') from exc
    if logger is not None:
        logger.info("Created profile for user %s", uid)
    return profile


def can_perform_action(uid, *, db, today, now_ts, free_limit=DEFAULT_FREE_DAILY_LIMIT, logger=None):
    profile = get_or_create_profile(uid, db=db, today=today, now_ts=now_ts, logger=logger)
    if normalize_plan(profile.get('plan')) == PLAN_PLUS:
        return True
    count, _reset_date, _rolled = effective_usage(profile, today)
    return count < int(free_limit)


def record_action(uid, *, db, today, now_ts, firestore_module):
    """Increment the usage counter atomically and return the new count."""
    profile_ref = profiles_repo.doc_ref(db, uid)
    try:
        transaction = db.transaction()

        @firestore_module.transactional
        def _txn(txn):
            snapshot = profile_ref.get(transaction=txn)
            if snapshot.exists:
                profile = snapshot.to_dict() or {}
            else:
                profile = build_default_profile(uid, today, now_ts)
            count, reset_date, _rolled = effective_usage(profile, today)
            updates = {
                'usage_count': count + 1,
                'usage_reset_date': reset_date,
                'updated_at': now_ts,
            }
            if snapshot.exists:
                txn.update(profile_ref, updates)
            else:
                profile.update(updates)
                txn.set(profile_ref, profile)
            return count + 1

        return _txn(transaction)
    except Exception as exc:
        raise UsageLedgerError(f'Could not record usage: {exc}') from exc


def get_usage_status(uid, *, db, today, now_ts, free_limit=DEFAULT_FREE_DAILY_LIMIT, logger=None):
    profile = get_or_create_profile(uid, db=db, today=today, now_ts=now_ts, logger=logger)
    plan = normalize_plan(profile.get('plan'))
    count, reset_date, _rolled = effective_usage(profile, today)
    max_usage = plan_limit(plan, free_limit)
    return {
        'plan': plan,
        'usage_count': count,
        'usage_reset_date': reset_date,
        'max_usage': max_usage,
        'can_use': max_usage == UNLIMITED or count < max_usage,
    }
