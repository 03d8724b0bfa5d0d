"""Process-wide clients, limits and helpers handed to the service layer as `app_ctx`."""

import logging
import threading
import time
from datetime import datetime, timezone

import sentry_sdk
import stripe
from dotenv import load_dotenv
from firebase_admin import auth, firestore
from flask import jsonify

from cognify.config import load_config
from cognify.extensions import init_firebase, init_gemini_client
from cognify.logging_config import log_event as _log_event
from cognify.repositories import documents_repo, folders_repo, profiles_repo, storage_repo, study_repo
from cognify.services import (
    auth_service,
    content_fetch_service,
    rate_limit_service,
    study_generation_service,
    study_progress_service,
    text_extraction_service,
)
from cognify.services.content_fetch_service import ContentFetchError
from cognify.services.study_generation_service import StudyGenerationError
from cognify.services.text_extraction_service import TextExtractionError

load_dotenv()
config = load_config()
logger = logging.getLogger('cognify')

# --- Limits ---
MAX_UPLOAD_BYTES = config.max_upload_bytes
MAX_TRIAL_UPLOAD_BYTES = config.max_trial_upload_bytes
# Multipart framing adds a little on top of the file itself.
MAX_REQUEST_BYTES = MAX_UPLOAD_BYTES + (1024 * 1024)
MIN_TRIAL_TEXT_CHARS = 100
PDF_MAX_WORDS = config.pdf_max_words
REMOTE_FETCH_TIMEOUT_SECONDS = config.remote_fetch_timeout_seconds
TRIAL_RATE_LIMIT_MAX_REQUESTS = config.trial_rate_limit_max_requests
TRIAL_RATE_LIMIT_WINDOW_SECONDS = config.trial_rate_limit_window_seconds
CHECKOUT_RATE_LIMIT_MAX_REQUESTS = config.checkout_rate_limit_max_requests
CHECKOUT_RATE_LIMIT_WINDOW_SECONDS = config.checkout_rate_limit_window_seconds
MAX_DOCUMENTS_PER_LIST = 500
MAX_FOLDER_NAME_LENGTH = 60
FOLDER_COLORS = [
    '#3b82f6',
    '#10b981',
    '#f59e0b',
    '#ef4444',
    '#8b5cf6',
    '#ec4899',
    '#6b7280',
]

# --- Models ---
MODEL_STUDY = 'gemini-2.5-flash-lite'
MODEL_TTS = 'gemini-2.5-flash-preview-tts'
TTS_VOICE = 'Kore'

# --- Hosted services ---
db, bucket, firebase_init_error = init_firebase(config, logger)
client = init_gemini_client(config, logger)

stripe.api_key = config.stripe_secret_key or None
STRIPE_MODE = config.stripe_mode
STRIPE_WEBHOOK_SECRET = config.stripe_webhook_secret
STRIPE_PRICES = dict(config.stripe_prices)
APP_URL = config.app_url

# --- In-memory limiter state (per process) ---
TRIAL_LIMIT_STATE = {}
TRIAL_LIMIT_LOCK = threading.Lock()
RATE_LIMIT_EVENTS = {}
RATE_LIMIT_LOCK = threading.Lock()


def log_event(level, event, **fields):
    _log_event(logger, level, event, **fields)


def capture_exception(exc):
    sentry_sdk.capture_exception(exc)


def utc_today():
    return datetime.now(timezone.utc).date()


def verify_firebase_token(request):
    return auth_service.verify_firebase_token(request, auth_module=auth, logger=logger)


def check_trial_limit(key):
    return rate_limit_service.check_trial_limit(
        key,
        store=TRIAL_LIMIT_STATE,
        lock=TRIAL_LIMIT_LOCK,
        limit=TRIAL_RATE_LIMIT_MAX_REQUESTS,
        window_seconds=TRIAL_RATE_LIMIT_WINDOW_SECONDS,
        time_module=time,
    )


def check_rate_limit(key, limit, window_seconds):
    return rate_limit_service.check_rate_limit(
        key,
        limit,
        window_seconds,
        in_memory_events=RATE_LIMIT_EVENTS,
        in_memory_lock=RATE_LIMIT_LOCK,
        time_module=time,
    )


def build_rate_limited_response(message, retry_after):
    response = jsonify({
        'error': message,
        'retry_after_seconds': int(max(1, retry_after)),
    })
    response.status_code = 429
    response.headers['Retry-After'] = str(int(max(1, retry_after)))
    return response


def normalize_rate_limit_key_part(value, fallback='anon', max_len=120):
    return rate_limit_service.normalize_rate_limit_key_part(value, fallback=fallback, max_len=max_len)


def resolve_client_ip(request):
    return rate_limit_service.resolve_client_ip(request)


# --- Ingestion collaborators ---
def is_pdf_url(url):
    return content_fetch_service.is_pdf_url(url)


def validate_source_url(raw_url):
    return content_fetch_service.validate_source_url(raw_url)


def fetch_pdf_from_url(url, max_bytes, too_large_message):
    return content_fetch_service.fetch_pdf_from_url(
        url,
        max_bytes,
        too_large_message=too_large_message,
        timeout=REMOTE_FETCH_TIMEOUT_SECONDS,
    )


def read_uploaded_pdf(uploaded_file, max_bytes, too_large_message):
    return content_fetch_service.read_uploaded_pdf(uploaded_file, max_bytes, too_large_message=too_large_message)


def extract_web_page_content(url):
    return text_extraction_service.extract_web_page_content(url, timeout=REMOTE_FETCH_TIMEOUT_SECONDS)


def get_page_name_from_url(url):
    return text_extraction_service.get_page_name_from_url(url)


def extract_text_from_pdf(data):
    raw_text = text_extraction_service.extract_text_from_pdf(data, max_words=PDF_MAX_WORDS)
    return text_extraction_service.format_text_for_summary(raw_text)


def generate_summary(text):
    return study_generation_service.generate_summary(client, MODEL_STUDY, text)


def generate_quiz(text, tldr):
    return study_generation_service.generate_quiz(client, MODEL_STUDY, text, tldr)


def generate_flashcards(text, definitions, key_concepts):
    return study_generation_service.generate_flashcards(client, MODEL_STUDY, text, definitions, key_concepts)


def generate_audio(text):
    return study_generation_service.generate_audio(client, MODEL_TTS, TTS_VOICE, text)


def upload_storage_object(object_path, data, content_type):
    return storage_repo.upload_bytes(bucket, object_path, data, content_type)
