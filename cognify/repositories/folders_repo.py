"""Firestore accessors for study folders."""

import time

from .query_utils import apply_where, snapshot_to_record

COLLECTION = 'folders'


def doc_ref(db, folder_id):
    return db.collection(COLLECTION).document(folder_id)


def create_folder(db, user_id, name, color):
    ref = db.collection(COLLECTION).document()
    record = {'user_id': user_id, 'name': name, 'color': color, 'created_at': time.time()}
    ref.set(record)
    record['id'] = ref.id
    return record


def get_folder(db, folder_id):
    return snapshot_to_record(doc_ref(db, folder_id).get())


def list_folders_by_uid(db, uid):
    folders = [snapshot_to_record(doc) for doc in apply_where(db.collection(COLLECTION), 'user_id', '==', uid).stream()]
    folders.sort(key=lambda folder: folder.get('created_at') or 0)
    return folders


def delete_folder(db, folder_id):
    return doc_ref(db, folder_id).delete()
