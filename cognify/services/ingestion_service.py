"""Source intake and the extract -> summarize -> quiz -> audio -> persist pipeline."""

import logging
from dataclasses import dataclass
from typing import Optional

from werkzeug.utils import secure_filename

SOURCE_PDF = 'pdf'
SOURCE_WEBPAGE = 'webpage'


@dataclass(frozen=True)
class SourceLimits:
    max_bytes: int
    file_too_large_message: str
    url_too_large_message: str


@dataclass
class IngestionSource:
    source_type: str
    file_name: str
    size: int
    data: Optional[bytes] = None
    text: str = ''
    source_url: str = ''

    @property
    def title(self):
        return self.file_name.replace('.pdf', '')


def authenticated_limits(max_bytes):
    limit_mb = max_bytes // (1024 * 1024)
    return SourceLimits(
        max_bytes=max_bytes,
        file_too_large_message=f'File size must be less than {limit_mb}MB',
        url_too_large_message=f'PDF file is too large. Maximum size is {limit_mb}MB.',
    )


def trial_limits(max_bytes, account_max_bytes):
    limit_mb = max_bytes // (1024 * 1024)
    account_mb = account_max_bytes // (1024 * 1024)
    return SourceLimits(
        max_bytes=max_bytes,
        file_too_large_message=f'File size must be less than {limit_mb}MB. Create an account for {account_mb}MB uploads.',
        url_too_large_message=f'PDF file is too large. Maximum size is {limit_mb}MB for free trial.',
    )


def is_json_request(request):
    return 'application/json' in str(request.content_type or '').lower()


def read_source(app_ctx, request, limits):
    """Turn a JSON {url} body or a multipart `file` into an IngestionSource.

    Raises ContentFetchError with a client-facing message on any input problem.
    """
    if is_json_request(request):
        body = request.get_json(silent=True) or {}
        url = body.get('url') if isinstance(body, dict) else None
        if not url or not isinstance(url, str):
            raise app_ctx.ContentFetchError('No URL provided')
        url = app_ctx.validate_source_url(url)

        if app_ctx.is_pdf_url(url):
            fetched = app_ctx.fetch_pdf_from_url(url, limits.max_bytes, limits.url_too_large_message)
            return IngestionSource(
                source_type=SOURCE_PDF,
                file_name=fetched.file_name,
                size=fetched.size,
                data=fetched.data,
                source_url=url,
            )

        page = app_ctx.extract_web_page_content(url)
        return IngestionSource(
            source_type=SOURCE_WEBPAGE,
            file_name=page.title or app_ctx.get_page_name_from_url(url),
            size=len(page.content),
            text=page.content,
            source_url=url,
        )

    uploaded = app_ctx.read_uploaded_pdf(request.files.get('file'), limits.max_bytes, limits.file_too_large_message)
    return IngestionSource(
        source_type=SOURCE_PDF,
        file_name=uploaded.file_name,
        size=uploaded.size,
        data=uploaded.data,
    )


def store_original_pdf(app_ctx, uid, source):
    safe_name = secure_filename(source.file_name) or 'Document.pdf'
    object_path = app_ctx.storage_repo.document_object_path(uid, app_ctx.time.time() * 1000, safe_name)
    public_url = app_ctx.upload_storage_object(object_path, source.data, 'application/pdf')
    return object_path, public_url


def resolve_source_text(app_ctx, source):
    if source.source_type == SOURCE_PDF and source.data:
        return app_ctx.extract_text_from_pdf(source.data)
    return source.text


def build_study_pack(app_ctx, uid, document_id, text):
    """Generate and persist every artifact for one document.

    Generation errors propagate. Quiz and flashcard insert errors are logged
    and tolerated so the remaining artifacts still land.
    """
    if not text:
        raise app_ctx.TextExtractionError('No text could be extracted from the source')
    app_ctx.log_event(logging.INFO, 'document_text_extracted', document_id=document_id, chars=len(text))

    summary = app_ctx.generate_summary(text)
    app_ctx.log_event(
        logging.INFO,
        'document_summary_generated',
        document_id=document_id,
        key_concepts=len(summary.get('key_concepts') or []),
        definitions=len(summary.get('definitions') or []),
    )

    questions = app_ctx.generate_quiz(text, summary.get('tldr', ''))
    app_ctx.log_event(logging.INFO, 'document_quiz_generated', document_id=document_id, questions=len(questions))

    audio_bytes = app_ctx.generate_audio(app_ctx.study_generation_service.build_audio_script(summary))
    app_ctx.log_event(logging.INFO, 'document_audio_generated', document_id=document_id, bytes=len(audio_bytes))
    audio_url = app_ctx.upload_storage_object(
        app_ctx.storage_repo.audio_object_path(uid, document_id),
        audio_bytes,
        'audio/wav',
    )

    app_ctx.study_repo.set_summary(app_ctx.db, document_id, {
        'tldr': summary.get('tldr', ''),
        'key_concepts': summary.get('key_concepts', []),
        'definitions': summary.get('definitions', []),
        'bullet_summary': summary.get('bullet_summary', []),
        'audio_url': audio_url,
    })

    try:
        app_ctx.study_repo.set_quiz(app_ctx.db, document_id, uid, questions)
    except Exception as e:
        app_ctx.logger.error(f"[Document {document_id}] Quiz insert error: {e}")

    flashcards = app_ctx.generate_flashcards(text, summary.get('definitions', []), summary.get('key_concepts', []))
    app_ctx.log_event(logging.INFO, 'document_flashcards_generated', document_id=document_id, cards=len(flashcards))
    if flashcards:
        try:
            app_ctx.study_repo.add_flashcards(app_ctx.db, document_id, uid, flashcards)
        except Exception as e:
            app_ctx.logger.error(f"[Document {document_id}] Flashcards insert error: {e}")

    return {
        'questions': len(questions),
        'flashcards': len(flashcards),
        'audio_url': audio_url,
    }


def finalize_document(app_ctx, document_id, status):
    try:
        result = app_ctx.documents_repo.finalize_document_status(app_ctx.db, document_id, status, app_ctx.firestore)
    except Exception as e:
        app_ctx.logger.error(f"[Document {document_id}] Could not set status '{status}': {e}")
        return 'error'
    if result != 'updated':
        app_ctx.logger.warning(f"[Document {document_id}] Status '{status}' not applied: {result}")
    return result


def process_document(app_ctx, uid, document_id, source):
    """Run the pipeline for a document already stored in `processing`.

    Returns (ok, details). The document always leaves `processing`.
    """
    try:
        text = resolve_source_text(app_ctx, source)
        details = build_study_pack(app_ctx, uid, document_id, text)
    except Exception as e:
        app_ctx.logger.error(f"[Document {document_id}] Processing error: {e}")
        app_ctx.capture_exception(e)
        finalize_document(app_ctx, document_id, app_ctx.documents_repo.STATUS_FAILED)
        app_ctx.log_event(logging.WARNING, 'document_failed', document_id=document_id, error=e.__class__.__name__)
        return False, {}

    finalize_document(app_ctx, document_id, app_ctx.documents_repo.STATUS_COMPLETED)
    app_ctx.log_event(logging.INFO, 'document_completed', document_id=document_id, **details)
    return True, details
