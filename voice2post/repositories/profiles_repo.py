"""Firestore accessors for the profiles collection."""

from .query_utils import apply_equals, first_doc

COLLECTION = 'profiles'


def doc_ref(db, uid):
    return db.collection(COLLECTION).document(uid)


def get_doc(db, uid, transaction=None):
    if transaction is not None:
        return doc_ref(db, uid).get(transaction=transaction)
    return doc_ref(db, uid).get()


def set_doc(db, uid, data, merge=False):
    return doc_ref(db, uid).set(data, merge=merge)


def update_doc(db, uid, updates):
    return doc_ref(db, uid).update(updates)


def find_by_customer_id(db, customer_id):
    if not customer_id:
        return None
    return first_doc(apply_equals(db.collection(COLLECTION), stripe_customer_id=customer_id))
