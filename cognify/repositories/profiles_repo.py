"""Firestore accessors for per-user billing and streak profiles."""

from .query_utils import apply_where

COLLECTION = 'profiles'
SUBSCRIPTION_LIFETIME = 'lifetime'


def doc_ref(db, uid):
    return db.collection(COLLECTION).document(uid)


def get_profile(db, uid):
    snapshot = doc_ref(db, uid).get()
    if not snapshot.exists:
        return {}
    return snapshot.to_dict() or {}


def enforce_billing_invariants(updates):
    """A lifetime plan never carries a period end."""
    cleaned = dict(updates)
    if cleaned.get('subscription_status') == SUBSCRIPTION_LIFETIME:
        cleaned['current_period_end'] = None
    return cleaned


def update_profile(db, uid, updates):
    return doc_ref(db, uid).set(enforce_billing_invariants(updates), merge=True)


def find_uid_by_customer_id(db, customer_id):
    if not customer_id:
        return None
    docs = list(apply_where(db.collection(COLLECTION), 'stripe_customer_id', '==', customer_id).limit(1).stream())
    if not docs:
        return None
    return docs[0].id
