"""Third-party client bootstrap and per-request hooks."""

import json
import os
import uuid

import firebase_admin
import sentry_sdk
from firebase_admin import credentials, firestore, storage
from flask import g, jsonify, request
from google import genai
from sentry_sdk.integrations.flask import FlaskIntegration
from werkzeug.exceptions import RequestEntityTooLarge

FIREBASE_CREDENTIALS_FILE = 'firebase-credentials.json'


def init_firebase(config, logger):
    """Return (db, bucket, error). Both clients are None when Firebase is not configured."""
    try:
        if os.path.exists(FIREBASE_CREDENTIALS_FILE):
            cred = credentials.Certificate(FIREBASE_CREDENTIALS_FILE)
        else:
            if not config.firebase_credentials:
                raise ValueError('FIREBASE_CREDENTIALS is not set and firebase-credentials.json was not found.')
            cred = credentials.Certificate(json.loads(config.firebase_credentials))
        options = {'storageBucket': config.firebase_storage_bucket} if config.firebase_storage_bucket else None
        if not firebase_admin._apps:
            firebase_admin.initialize_app(cred, options)
        db = firestore.client()
        bucket = storage.bucket() if config.firebase_storage_bucket else None
        if bucket is None:
            logger.info('⚠️ FIREBASE_STORAGE_BUCKET not set; PDF and audio uploads are disabled.')
        return db, bucket, ''
    except Exception as e:
        logger.info(f"⚠️ Firebase initialization skipped: {e}")
        return None, None, str(e)


def init_gemini_client(config, logger):
    if not config.gemini_api_key:
        logger.info('⚠️ GEMINI_API_KEY not set; study pack generation is disabled.')
        return None
    try:
        return genai.Client(api_key=config.gemini_api_key)
    except Exception as e:
        logger.info(f"⚠️ Gemini client disabled: {e}")
        return None


def init_sentry(config):
    if not config.sentry_dsn:
        return False
    sentry_sdk.init(
        dsn=config.sentry_dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=config.sentry_traces_sample_rate,
        send_default_pii=False,
        environment=config.sentry_environment,
        release=config.sentry_release,
    )
    return True


def attach_request_context():
    request_id = str(request.headers.get('X-Request-ID', '') or '').strip()[:120] or uuid.uuid4().hex
    g.request_id = request_id
    scope = sentry_sdk.get_current_scope()
    scope.set_tag('request.id', request_id)
    scope.set_tag('route.path', request.path)
    scope.set_tag('route.method', request.method)
    scope.set_tag('route.auth_header_present', 'true' if request.headers.get('Authorization') else 'false')


def attach_response_context(response):
    request_id = str(getattr(g, 'request_id', '') or '').strip()
    if request_id:
        response.headers['X-Request-ID'] = request_id
    sentry_sdk.get_current_scope().set_tag('route.status_code', str(response.status_code))
    return response


def init_extensions(app, max_upload_bytes) -> None:
    app.before_request(attach_request_context)
    app.after_request(attach_response_context)

    @app.errorhandler(RequestEntityTooLarge)
    def handle_request_entity_too_large(_error):
        limit_mb = max_upload_bytes // (1024 * 1024)
        return jsonify({'error': f'Upload too large. Maximum file size is {limit_mb}MB.'}), 413

    app.extensions.setdefault('cognify', {})
    app.extensions['cognify']['initialized'] = True
