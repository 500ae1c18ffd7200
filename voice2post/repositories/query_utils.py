"""Shared Firestore query helpers.

Keyword ``FieldFilter`` filters keep newer SDKs quiet; simple test doubles that
only accept positional arguments get the positional form instead.
"""

from google.cloud.firestore_v1.base_query import FieldFilter


def apply_where(query, field_path, op_string, value):
    try:
        return query.where(filter=FieldFilter(field_path, op_string, value))
    except TypeError:
        return query.where(field_path, op_string, value)


def apply_equals(query, **fields):
    for field_path, value in fields.items():
        query = apply_where(query, field_path, '==', value)
    return query


def first_doc(query):
    for doc in query.limit(1).stream():
        return doc
    return None
