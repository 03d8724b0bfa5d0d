"""Firestore accessors for summaries, quizzes, flashcards and quiz attempts."""

import time

from .query_utils import apply_where, snapshot_to_record

SUMMARIES = 'summaries'
QUIZZES = 'quizzes'
FLASHCARDS = 'flashcards'
QUIZ_ATTEMPTS = 'quiz_attempts'


# Summaries and quizzes are keyed by document id, so a document owns at most one of each.
def set_summary(db, document_id, payload):
    record = dict(payload)
    record['document_id'] = document_id
    record['created_at'] = time.time()
    return db.collection(SUMMARIES).document(document_id).set(record)


def get_summary(db, document_id):
    return snapshot_to_record(db.collection(SUMMARIES).document(document_id).get())


def set_quiz(db, document_id, user_id, questions):
    return db.collection(QUIZZES).document(document_id).set({
        'document_id': document_id,
        'user_id': user_id,
        'questions': questions,
        'created_at': time.time(),
    })


def get_quiz(db, quiz_id):
    return snapshot_to_record(db.collection(QUIZZES).document(quiz_id).get())


def flashcard_doc_ref(db, flashcard_id):
    return db.collection(FLASHCARDS).document(flashcard_id)


def add_flashcards(db, document_id, user_id, cards):
    if not cards:
        return 0
    batch = db.batch()
    now_ts = time.time()
    for index, card in enumerate(cards):
        batch.set(db.collection(FLASHCARDS).document(), {
            'document_id': document_id,
            'user_id': user_id,
            'front': card['front'],
            'back': card['back'],
            'mastery_level': 0,
            'review_count': 0,
            'last_reviewed': None,
            'position': index,
            'created_at': now_ts,
        })
    batch.commit()
    return len(cards)


def get_flashcard(db, flashcard_id):
    return snapshot_to_record(flashcard_doc_ref(db, flashcard_id).get())


def update_flashcard(db, flashcard_id, updates):
    return flashcard_doc_ref(db, flashcard_id).update(updates)


def list_flashcards_by_document(db, document_id, user_id):
    query = apply_where(apply_where(db.collection(FLASHCARDS), 'document_id', '==', document_id), 'user_id', '==', user_id)
    cards = [snapshot_to_record(doc) for doc in query.stream()]
    cards.sort(key=lambda card: (card.get('created_at') or 0, card.get('position') or 0))
    return cards


# Quiz attempts are an append-only log: there is no update or delete accessor.
def add_quiz_attempt(db, quiz_id, user_id, score, total_questions, answers):
    record = {
        'quiz_id': quiz_id,
        'user_id': user_id,
        'score': int(score),
        'total_questions': int(total_questions),
        'answers': list(answers),
        'taken_at': time.time(),
    }
    _, ref = db.collection(QUIZ_ATTEMPTS).add(record)
    record['id'] = ref.id
    return record


def list_quiz_attempts(db, quiz_id, user_id, limit=100):
    query = apply_where(apply_where(db.collection(QUIZ_ATTEMPTS), 'quiz_id', '==', quiz_id), 'user_id', '==', user_id)
    attempts = [snapshot_to_record(doc) for doc in query.limit(limit).stream()]
    attempts.sort(key=lambda attempt: attempt.get('taken_at') or 0, reverse=True)
    return attempts
