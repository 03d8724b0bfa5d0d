"""Firebase Storage accessors for original uploads and generated audio."""

DOCUMENTS_PREFIX = 'documents'
AUDIO_PREFIX = 'audio'


def document_object_path(uid, timestamp_ms, file_name):
    return f"{DOCUMENTS_PREFIX}/{uid}/{int(timestamp_ms)}-{file_name}"


def audio_object_path(uid, document_id, extension='wav'):
    return f"{AUDIO_PREFIX}/{uid}/{document_id}-audio.{extension}"


def upload_bytes(bucket, object_path, data, content_type):
    """Upload bytes and return the object's public URL."""
    if bucket is None:
        raise RuntimeError('Storage bucket is not configured')
    blob = bucket.blob(object_path)
    blob.upload_from_string(data, content_type=content_type)
    return blob.public_url
