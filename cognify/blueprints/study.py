from flask import Blueprint, request

study_bp = Blueprint('study_api', __name__)


@study_bp.route('/api/documents', methods=['GET'])
def list_documents():
    from cognify import runtime
    from cognify.services import study_api_service

    return study_api_service.list_documents(runtime, request)


@study_bp.route('/api/documents/<document_id>', methods=['GET'])
def get_study_pack(document_id):
    from cognify import runtime
    from cognify.services import study_api_service

    return study_api_service.get_study_pack(runtime, request, document_id)


@study_bp.route('/api/documents/<document_id>/folder', methods=['PATCH'])
def move_document_to_folder(document_id):
    from cognify import runtime
    from cognify.services import study_api_service

    return study_api_service.move_document_to_folder(runtime, request, document_id)


@study_bp.route('/api/quizzes/<document_id>/attempts', methods=['POST'])
def submit_quiz_attempt(document_id):
    from cognify import runtime
    from cognify.services import study_api_service

    return study_api_service.submit_quiz_attempt(runtime, request, document_id)


@study_bp.route('/api/flashcards/<flashcard_id>/review', methods=['POST'])
def review_flashcard(flashcard_id):
    from cognify import runtime
    from cognify.services import study_api_service

    return study_api_service.review_flashcard(runtime, request, flashcard_id)


@study_bp.route('/api/folders', methods=['GET'])
def list_folders():
    from cognify import runtime
    from cognify.services import study_api_service

    return study_api_service.list_folders(runtime, request)


@study_bp.route('/api/folders', methods=['POST'])
def create_folder():
    from cognify import runtime
    from cognify.services import study_api_service

    return study_api_service.create_folder(runtime, request)


@study_bp.route('/api/folders/<folder_id>', methods=['DELETE'])
def delete_folder(folder_id):
    from cognify import runtime
    from cognify.services import study_api_service

    return study_api_service.delete_folder(runtime, request, folder_id)


@study_bp.route('/api/streak', methods=['GET'])
def get_streak():
    from cognify import runtime
    from cognify.services import study_api_service

    return study_api_service.get_streak(runtime, request)
