"""Firestore accessors for the documents collection."""

import time

from .query_utils import apply_where, snapshot_to_record

COLLECTION = 'documents'
STATUS_PROCESSING = 'processing'
STATUS_COMPLETED = 'completed'
STATUS_FAILED = 'failed'
FINAL_DOCUMENT_STATUSES = {STATUS_COMPLETED, STATUS_FAILED}


def is_valid_status_transition(current, target):
    return current == STATUS_PROCESSING and target in FINAL_DOCUMENT_STATUSES


def doc_ref(db, document_id):
    return db.collection(COLLECTION).document(document_id)


def create_document(db, payload):
    ref = db.collection(COLLECTION).document()
    now_ts = time.time()
    record = dict(payload)
    record['status'] = STATUS_PROCESSING
    record.setdefault('folder_id', None)
    record['created_at'] = now_ts
    record['updated_at'] = now_ts
    ref.set(record)
    return ref.id


def get_document(db, document_id):
    return snapshot_to_record(doc_ref(db, document_id).get())


def list_documents_by_uid(db, uid, limit=500):
    docs = apply_where(db.collection(COLLECTION), 'user_id', '==', uid).limit(limit).stream()
    return [snapshot_to_record(doc) for doc in docs]


def count_documents_since(db, uid, created_after):
    query = apply_where(db.collection(COLLECTION), 'user_id', '==', uid)
    query = apply_where(query, 'created_at', '>=', created_after)
    agg = query.count().get()
    if agg:
        return int(agg[0][0].value)
    return 0


def list_documents_by_uid_and_folder(db, uid, folder_id):
    query = apply_where(apply_where(db.collection(COLLECTION), 'user_id', '==', uid), 'folder_id', '==', folder_id)
    return [snapshot_to_record(doc) for doc in query.stream()]


def set_folder(db, document_id, folder_id):
    return doc_ref(db, document_id).update({'folder_id': folder_id, 'updated_at': time.time()})


def clear_folder(db, uid, folder_id):
    documents = list_documents_by_uid_and_folder(db, uid, folder_id)
    if not documents:
        return 0
    batch = db.batch()
    for document in documents:
        batch.update(doc_ref(db, document['id']), {'folder_id': None, 'updated_at': time.time()})
    batch.commit()
    return len(documents)


def finalize_document_status(db, document_id, status, firestore_module):
    """Move a document out of processing exactly once.

    Returns 'updated', 'already_final' or 'missing'.
    """
    if status not in FINAL_DOCUMENT_STATUSES:
        raise ValueError(f"Unsupported final document status: {status}")
    ref = doc_ref(db, document_id)
    transaction = db.transaction()

    @firestore_module.transactional
    def _txn(txn):
        snapshot = ref.get(transaction=txn)
        if not snapshot.exists:
            return 'missing'
        current = (snapshot.to_dict() or {}).get('status')
        if not is_valid_status_transition(current, status):
            return 'already_final'
        txn.update(ref, {'status': status, 'updated_at': time.time()})
        return 'updated'

    return _txn(transaction)
