import os
from dataclasses import dataclass, field
from typing import Dict

DEV_ENV_NAMES = {'development', 'dev', 'local', 'test'}
STRIPE_MODES = {'test', 'live'}
BILLING_PERIODS = ('monthly', 'yearly', 'lifetime')


def env_str(name, default=''):
    return (os.getenv(name, default) or default).strip()


def safe_int_env(name, default=0, minimum=1, maximum=100000):
    raw = os.getenv(name, str(default)).strip()
    try:
        value = int(raw)
    except Exception:
        value = int(default)
    return min(max(value, minimum), maximum)


def safe_float_env(name, default=0.0):
    raw = os.getenv(name, str(default)).strip()
    try:
        value = float(raw)
    except Exception:
        return default
    return min(max(value, 0.0), 1.0)


def resolve_runtime_env():
    return (
        os.getenv('SENTRY_ENVIRONMENT')
        or os.getenv('FLASK_ENV')
        or os.getenv('ENV')
        or ('production' if os.getenv('RENDER') else 'development')
    ).strip().lower()


@dataclass(frozen=True)
class AppConfig:
    """Central settings object; every value comes from the environment via load_config()."""

    flask_secret_key: str = ''
    log_level: str = 'INFO'
    runtime_env: str = 'development'
    app_url: str = 'http://localhost:3000'
    sentry_dsn: str = ''
    sentry_environment: str = 'production'
    sentry_release: str = 'cognify'
    sentry_traces_sample_rate: float = 0.0
    gemini_api_key: str = ''
    firebase_credentials: str = ''
    firebase_storage_bucket: str = ''
    stripe_mode: str = 'test'
    stripe_secret_key: str = ''
    stripe_webhook_secret: str = ''
    stripe_prices: Dict[str, str] = field(default_factory=dict)
    max_upload_bytes: int = 10 * 1024 * 1024
    max_trial_upload_bytes: int = 5 * 1024 * 1024
    trial_rate_limit_max_requests: int = 3
    trial_rate_limit_window_seconds: int = 3600
    checkout_rate_limit_max_requests: int = 6
    checkout_rate_limit_window_seconds: int = 600
    pdf_max_words: int = 20000
    remote_fetch_timeout_seconds: int = 20

    @property
    def is_dev_like(self):
        return self.runtime_env in DEV_ENV_NAMES


def load_stripe_settings():
    mode = env_str('STRIPE_MODE', 'test').lower()
    if mode not in STRIPE_MODES:
        mode = 'test'
    suffix = mode.upper()
    prices = {period: env_str(f'STRIPE_PRICE_{period.upper()}_{suffix}') for period in BILLING_PERIODS}
    return {
        'stripe_mode': mode,
        'stripe_secret_key': env_str(f'STRIPE_SECRET_KEY_{suffix}'),
        'stripe_webhook_secret': env_str(f'STRIPE_WEBHOOK_SECRET_{suffix}'),
        'stripe_prices': prices,
    }


def load_config() -> AppConfig:
    runtime_env = resolve_runtime_env()
    config = AppConfig(
        flask_secret_key=env_str('FLASK_SECRET_KEY'),
        log_level=env_str('LOG_LEVEL', 'INFO').upper() or 'INFO',
        runtime_env=runtime_env,
        app_url=env_str('APP_URL', 'http://localhost:3000').rstrip('/'),
        sentry_dsn=env_str('SENTRY_DSN_BACKEND'),
        sentry_environment=env_str('SENTRY_ENVIRONMENT', env_str('FLASK_ENV', 'production')) or 'production',
        sentry_release=env_str('SENTRY_RELEASE', 'cognify') or 'cognify',
        sentry_traces_sample_rate=safe_float_env('SENTRY_TRACES_SAMPLE_RATE', 0.0),
        gemini_api_key=env_str('GEMINI_API_KEY'),
        firebase_credentials=env_str('FIREBASE_CREDENTIALS'),
        firebase_storage_bucket=env_str('FIREBASE_STORAGE_BUCKET'),
        max_upload_bytes=safe_int_env('MAX_UPLOAD_BYTES', 10 * 1024 * 1024, minimum=1024, maximum=100 * 1024 * 1024),
        max_trial_upload_bytes=safe_int_env('MAX_TRIAL_UPLOAD_BYTES', 5 * 1024 * 1024, minimum=1024, maximum=100 * 1024 * 1024),
        trial_rate_limit_max_requests=safe_int_env('TRIAL_RATE_LIMIT_MAX_REQUESTS', 3, minimum=1, maximum=1000),
        trial_rate_limit_window_seconds=safe_int_env('TRIAL_RATE_LIMIT_WINDOW_SECONDS', 3600, minimum=10, maximum=86400),
        checkout_rate_limit_max_requests=safe_int_env('CHECKOUT_RATE_LIMIT_MAX_REQUESTS', 6, minimum=1, maximum=100),
        checkout_rate_limit_window_seconds=safe_int_env('CHECKOUT_RATE_LIMIT_WINDOW_SECONDS', 600, minimum=10, maximum=86400),
        pdf_max_words=safe_int_env('PDF_MAX_WORDS', 20000, minimum=100, maximum=200000),
        remote_fetch_timeout_seconds=safe_int_env('REMOTE_FETCH_TIMEOUT_SECONDS', 20, minimum=1, maximum=120),
        **load_stripe_settings(),
    )
    if not config.is_dev_like and not config.flask_secret_key:
        raise RuntimeError('FLASK_SECRET_KEY must be set in non-development environments.')
    return config
