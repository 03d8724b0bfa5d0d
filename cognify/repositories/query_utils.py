"""Shared Firestore query helpers.

Keyword filters keep newer Firestore SDKs quiet about positional arguments.
Test doubles that only implement the positional form still work.
"""

from google.cloud.firestore_v1.base_query import FieldFilter


def apply_where(query, field_path, op_string, value):
    try:
        return query.where(filter=FieldFilter(field_path, op_string, value))
    except TypeError:
        return query.where(field_path, op_string, value)


def snapshot_to_record(snapshot):
    """Flatten a document snapshot into a dict carrying its id, or None if it does not exist."""
    if snapshot is None or not snapshot.exists:
        return None
    record = dict(snapshot.to_dict() or {})
    record['id'] = snapshot.id
    return record
