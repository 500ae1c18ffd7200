"""Firestore accessors for saved generation records.

Every read and write is scoped to the owning uid.
"""

from .query_utils import apply_equals

COLLECTION = 'records'


def doc_ref(db, record_id):
    return db.collection(COLLECTION).document(record_id)


def add_doc(db, data):
    ref = db.collection(COLLECTION).document()
    ref.set(data)
    return ref.id


def get_owned_doc(db, uid, record_id):
    if not record_id:
        return None
    snapshot = doc_ref(db, record_id).get()
    if not snapshot.exists:
        return None
    if (snapshot.to_dict() or {}).get('uid') != uid:
        return None
    return snapshot


def update_owned_doc(db, uid, record_id, updates):
    snapshot = get_owned_doc(db, uid, record_id)
    if snapshot is None:
        return False
    snapshot.reference.update(updates)
    return True


def delete_owned_doc(db, uid, record_id):
    snapshot = get_owned_doc(db, uid, record_id)
    if snapshot is None:
        return False
    snapshot.reference.delete()
    return True


def list_by_uid_recent(db, uid, limit, firestore_module):
    query = apply_equals(db.collection(COLLECTION), uid=uid)
    query = query.order_by('created_at', direction=firestore_module.Query.DESCENDING).limit(limit)
    return list(query.stream())
