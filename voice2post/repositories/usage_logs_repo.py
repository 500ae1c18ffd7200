"""Append-only accessors for usage_logs."""

COLLECTION = 'usage_logs'


def add_doc(db, data):
    return db.collection(COLLECTION).add(data)
