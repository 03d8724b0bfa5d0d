from flask import Blueprint, request

upload_bp = Blueprint('upload_api', __name__)


@upload_bp.route('/api/documents/upload', methods=['POST'])
def upload_document():
    from cognify import runtime
    from cognify.services import upload_api_service

    return upload_api_service.upload_document(runtime, request)


@upload_bp.route('/api/try', methods=['POST'])
def try_study_pack():
    from cognify import runtime
    from cognify.services import upload_api_service

    return upload_api_service.try_study_pack(runtime, request)
