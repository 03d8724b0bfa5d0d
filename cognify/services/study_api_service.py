"""Business logic handlers for the study dashboard: documents, quizzes, flashcards, folders and streaks."""

from . import study_progress_service


def _require_user(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return None, (app_ctx.jsonify({'error': 'Unauthorized'}), 401)
    if app_ctx.db is None:
        return None, (app_ctx.jsonify({'error': 'Document storage is not configured'}), 503)
    return decoded_token['uid'], None


def _owned_document(app_ctx, uid, document_id):
    document = app_ctx.documents_repo.get_document(app_ctx.db, document_id)
    if not document or document.get('user_id') != uid:
        return None
    return document


def record_study_activity(app_ctx, uid):
    profile = app_ctx.profiles_repo.get_profile(app_ctx.db, uid)
    updates = study_progress_service.record_study_session(profile, app_ctx.utc_today())
    if updates:
        app_ctx.profiles_repo.update_profile(app_ctx.db, uid, updates)
    merged = dict(profile)
    merged.update(updates)
    return merged


def build_streak_payload(app_ctx, profile):
    last_study_date = profile.get('last_study_date')
    return {
        'current_streak': int(profile.get('current_streak') or 0),
        'longest_streak': int(profile.get('longest_streak') or 0),
        'total_study_sessions': int(profile.get('total_study_sessions') or 0),
        'last_study_date': last_study_date,
        'active': study_progress_service.is_streak_active(last_study_date, app_ctx.utc_today()),
    }


def list_documents(app_ctx, request):
    uid, error_response = _require_user(app_ctx, request)
    if error_response:
        return error_response

    folder_id = request.args.get('folder_id', '').strip()
    try:
        if folder_id:
            documents = app_ctx.documents_repo.list_documents_by_uid_and_folder(app_ctx.db, uid, folder_id)
        else:
            documents = app_ctx.documents_repo.list_documents_by_uid(app_ctx.db, uid, app_ctx.MAX_DOCUMENTS_PER_LIST)
    except Exception as e:
        app_ctx.logger.error(f"Error listing documents for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not fetch documents'}), 500
    documents.sort(key=lambda doc: doc.get('created_at') or 0, reverse=True)
    return app_ctx.jsonify({'documents': documents})


def get_study_pack(app_ctx, request, document_id):
    uid, error_response = _require_user(app_ctx, request)
    if error_response:
        return error_response

    try:
        document = _owned_document(app_ctx, uid, document_id)
        if document is None:
            return app_ctx.jsonify({'error': 'Document not found'}), 404
        summary = app_ctx.study_repo.get_summary(app_ctx.db, document_id)
        quiz = app_ctx.study_repo.get_quiz(app_ctx.db, document_id)
        flashcards = app_ctx.study_repo.list_flashcards_by_document(app_ctx.db, document_id, uid)
        attempts = app_ctx.study_repo.list_quiz_attempts(app_ctx.db, document_id, uid) if quiz else []
    except Exception as e:
        app_ctx.logger.error(f"Error loading study pack {document_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not fetch study pack'}), 500

    return app_ctx.jsonify({
        'document': document,
        'summary': summary,
        'quiz': quiz,
        'flashcards': flashcards,
        'attempts': attempts,
    })


def move_document_to_folder(app_ctx, request, document_id):
    uid, error_response = _require_user(app_ctx, request)
    if error_response:
        return error_response

    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict) or 'folder_id' not in data:
        return app_ctx.jsonify({'error': 'folder_id is required'}), 400
    folder_id = data.get('folder_id') or None
    if folder_id is not None and not isinstance(folder_id, str):
        return app_ctx.jsonify({'error': 'Invalid folder_id'}), 400

    try:
        document = _owned_document(app_ctx, uid, document_id)
        if document is None:
            return app_ctx.jsonify({'error': 'Document not found'}), 404
        if folder_id is not None:
            folder = app_ctx.folders_repo.get_folder(app_ctx.db, folder_id)
            if not folder or folder.get('user_id') != uid:
                return app_ctx.jsonify({'error': 'Folder not found'}), 404
        app_ctx.documents_repo.set_folder(app_ctx.db, document_id, folder_id)
    except Exception as e:
        app_ctx.logger.error(f"Error moving document {document_id} for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not move document'}), 500
    return app_ctx.jsonify({'ok': True, 'document_id': document_id, 'folder_id': folder_id})


def submit_quiz_attempt(app_ctx, request, document_id):
    uid, error_response = _require_user(app_ctx, request)
    if error_response:
        return error_response

    try:
        if _owned_document(app_ctx, uid, document_id) is None:
            return app_ctx.jsonify({'error': 'Document not found'}), 404
        quiz = app_ctx.study_repo.get_quiz(app_ctx.db, document_id)
    except Exception as e:
        app_ctx.logger.error(f"Error loading quiz for document {document_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not load quiz'}), 500
    if not quiz:
        return app_ctx.jsonify({'error': 'Quiz not found'}), 404

    data = request.get_json(silent=True) or {}
    answers = data.get('answers') if isinstance(data, dict) else None
    questions = quiz.get('questions') or []
    if not isinstance(answers, list) or len(answers) != len(questions):
        return app_ctx.jsonify({'error': f"Expected {len(questions)} answers"}), 400
    if any(isinstance(answer, bool) or not isinstance(answer, int) for answer in answers):
        return app_ctx.jsonify({'error': 'Answers must be option indexes'}), 400

    score = study_progress_service.score_quiz_answers(questions, answers)
    try:
        attempt = app_ctx.study_repo.add_quiz_attempt(app_ctx.db, document_id, uid, score, len(questions), answers)
        profile = record_study_activity(app_ctx, uid)
    except Exception as e:
        app_ctx.logger.error(f"Error saving quiz attempt for document {document_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not save quiz attempt'}), 500
    app_ctx.logger.info(f"Quiz attempt for document {document_id} by user {uid}: {score}/{len(questions)}")
    return app_ctx.jsonify({'attempt': attempt, 'streak': build_streak_payload(app_ctx, profile)})


def review_flashcard(app_ctx, request, flashcard_id):
    uid, error_response = _require_user(app_ctx, request)
    if error_response:
        return error_response

    data = request.get_json(silent=True) or {}
    result = str(data.get('result', '') if isinstance(data, dict) else '').strip().lower()
    try:
        card = app_ctx.study_repo.get_flashcard(app_ctx.db, flashcard_id)
    except Exception as e:
        app_ctx.logger.error(f"Error loading flashcard {flashcard_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not load flashcard'}), 500
    if not card or card.get('user_id') != uid:
        return app_ctx.jsonify({'error': 'Flashcard not found'}), 404
    try:
        updates = study_progress_service.build_flashcard_review_update(card, result, app_ctx.time.time())
    except ValueError:
        return app_ctx.jsonify({'error': 'result must be "known" or "learning"'}), 400

    try:
        app_ctx.study_repo.update_flashcard(app_ctx.db, flashcard_id, updates)
        profile = record_study_activity(app_ctx, uid)
    except Exception as e:
        app_ctx.logger.error(f"Error saving review for flashcard {flashcard_id}: {e}")
        return app_ctx.jsonify({'error': 'Could not save flashcard review'}), 500
    card.update(updates)
    return app_ctx.jsonify({'flashcard': card, 'streak': build_streak_payload(app_ctx, profile)})


def list_folders(app_ctx, request):
    uid, error_response = _require_user(app_ctx, request)
    if error_response:
        return error_response
    try:
        folders = app_ctx.folders_repo.list_folders_by_uid(app_ctx.db, uid)
    except Exception as e:
        app_ctx.logger.error(f"Error listing folders for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not fetch folders'}), 500
    return app_ctx.jsonify({'folders': folders})


def create_folder(app_ctx, request):
    uid, error_response = _require_user(app_ctx, request)
    if error_response:
        return error_response

    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        data = {}
    name = str(data.get('name', '') or '').strip()
    if not name:
        return app_ctx.jsonify({'error': 'Folder name is required'}), 400
    if len(name) > app_ctx.MAX_FOLDER_NAME_LENGTH:
        return app_ctx.jsonify({'error': f"Folder name must be at most {app_ctx.MAX_FOLDER_NAME_LENGTH} characters"}), 400
    color = str(data.get('color', '') or '').strip().lower()
    if color not in app_ctx.FOLDER_COLORS:
        color = app_ctx.FOLDER_COLORS[0]

    try:
        folder = app_ctx.folders_repo.create_folder(app_ctx.db, uid, name, color)
    except Exception as e:
        app_ctx.logger.error(f"Error creating folder for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not create folder'}), 500
    return app_ctx.jsonify({'folder': folder}), 201


def delete_folder(app_ctx, request, folder_id):
    uid, error_response = _require_user(app_ctx, request)
    if error_response:
        return error_response

    try:
        folder = app_ctx.folders_repo.get_folder(app_ctx.db, folder_id)
        if not folder or folder.get('user_id') != uid:
            return app_ctx.jsonify({'error': 'Folder not found'}), 404
        moved = app_ctx.documents_repo.clear_folder(app_ctx.db, uid, folder_id)
        app_ctx.folders_repo.delete_folder(app_ctx.db, folder_id)
    except Exception as e:
        app_ctx.logger.error(f"Error deleting folder {folder_id} for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not delete folder'}), 500
    app_ctx.logger.info(f"Deleted folder {folder_id} for user {uid}; {moved} document(s) moved out")
    return app_ctx.jsonify({'ok': True, 'documents_moved': moved})


def get_streak(app_ctx, request):
    uid, error_response = _require_user(app_ctx, request)
    if error_response:
        return error_response
    try:
        profile = app_ctx.profiles_repo.get_profile(app_ctx.db, uid)
    except Exception as e:
        app_ctx.logger.error(f"Error loading streak for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Could not load streak'}), 500
    return app_ctx.jsonify(build_streak_payload(app_ctx, profile))
