"""Business logic handlers for the upload and guest trial APIs."""

from . import ingestion_service


def upload_document(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    uid = decoded_token['uid']
    if app_ctx.db is None:
        return app_ctx.jsonify({'error': 'Document storage is not configured'}), 503
    if app_ctx.client is None:
        return app_ctx.jsonify({'error': 'AI generation is not configured'}), 503

    limits = ingestion_service.authenticated_limits(app_ctx.MAX_UPLOAD_BYTES)
    try:
        source = ingestion_service.read_source(app_ctx, request, limits)
    except app_ctx.ContentFetchError as e:
        return app_ctx.jsonify({'error': str(e)}), 400

    storage_path = ''
    file_url = source.source_url
    if source.source_type == ingestion_service.SOURCE_PDF:
        try:
            storage_path, file_url = ingestion_service.store_original_pdf(app_ctx, uid, source)
        except Exception as e:
            app_ctx.logger.error(f"Storage upload error for user {uid}: {e}")
            return app_ctx.jsonify({'error': 'Failed to upload file'}), 500

    try:
        document_id = app_ctx.documents_repo.create_document(app_ctx.db, {
            'user_id': uid,
            'title': source.title,
            'file_url': file_url,
            'storage_path': storage_path,
            'file_size': source.size,
            'source_type': source.source_type,
        })
    except Exception as e:
        app_ctx.logger.error(f"Document insert error for user {uid}: {e}")
        return app_ctx.jsonify({'error': 'Failed to create document record'}), 500

    ok, _details = ingestion_service.process_document(app_ctx, uid, document_id, source)
    if not ok:
        return app_ctx.jsonify({'error': 'Failed to process document'}), 500
    return app_ctx.jsonify({
        'success': True,
        'documentId': document_id,
        'message': 'Document processed successfully',
    })


def _trial_text_error(source):
    if source.source_type == ingestion_service.SOURCE_PDF:
        return 'Could not extract enough text from the PDF. Please try a different file.'
    return 'Could not extract enough content from this page. Try a different URL.'


def try_study_pack(app_ctx, request):
    if app_ctx.client is None:
        return app_ctx.jsonify({'error': 'AI generation is not configured'}), 503
    client_ip = app_ctx.resolve_client_ip(request)
    allowed, retry_after = app_ctx.check_trial_limit(app_ctx.normalize_rate_limit_key_part(client_ip, fallback='unknown'))
    if not allowed:
        return app_ctx.build_rate_limited_response(
            'Rate limit exceeded. Please create an account for more uploads.',
            retry_after,
        )

    limits = ingestion_service.trial_limits(app_ctx.MAX_TRIAL_UPLOAD_BYTES, app_ctx.MAX_UPLOAD_BYTES)
    try:
        source = ingestion_service.read_source(app_ctx, request, limits)
    except app_ctx.ContentFetchError as e:
        return app_ctx.jsonify({'error': str(e)}), 400

    try:
        text = ingestion_service.resolve_source_text(app_ctx, source)
    except app_ctx.TextExtractionError as e:
        app_ctx.logger.info(f"Guest trial extraction failed: {e}")
        return app_ctx.jsonify({'error': _trial_text_error(source)}), 400
    if not text or len(text) < app_ctx.MIN_TRIAL_TEXT_CHARS:
        return app_ctx.jsonify({'error': _trial_text_error(source)}), 400

    try:
        summary = app_ctx.generate_summary(text)
        quiz = app_ctx.generate_quiz(text, summary.get('tldr', ''))
    except Exception as e:
        app_ctx.logger.error(f"Guest trial error: {e}")
        app_ctx.capture_exception(e)
        return app_ctx.jsonify({'error': 'Failed to process content. Please try again.'}), 500

    return app_ctx.jsonify({
        'success': True,
        'fileName': source.title,
        'sourceType': source.source_type,
        'summary': summary,
        'quiz': quiz,
        'message': 'Create an account to save this study pack and unlock audio playback!',
    })
