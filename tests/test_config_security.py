import pytest

from cognify.config import load_config


def test_load_config_requires_secret_key_in_non_dev(monkeypatch):
    monkeypatch.setenv("RENDER", "true")
    monkeypatch.delenv("FLASK_ENV", raising=False)
    monkeypatch.delenv("SENTRY_ENVIRONMENT", raising=False)
    monkeypatch.delenv("ENV", raising=False)
    monkeypatch.delenv("FLASK_SECRET_KEY", raising=False)

    with pytest.raises(RuntimeError):
        load_config()


def test_load_config_allows_missing_secret_in_dev(monkeypatch):
    monkeypatch.delenv("RENDER", raising=False)
    monkeypatch.delenv("SENTRY_ENVIRONMENT", raising=False)
    monkeypatch.setenv("FLASK_ENV", "development")
    monkeypatch.delenv("FLASK_SECRET_KEY", raising=False)

    cfg = load_config()
    assert cfg.flask_secret_key == ""
    assert cfg.is_dev_like is True


def test_load_config_selects_stripe_settings_for_mode(monkeypatch):
    monkeypatch.setenv("FLASK_ENV", "development")
    monkeypatch.delenv("SENTRY_ENVIRONMENT", raising=False)
    monkeypatch.setenv("STRIPE_MODE", "live")
    monkeypatch.setenv("STRIPE_SECRET_KEY_LIVE", "sk_live_abc")
    monkeypatch.setenv("STRIPE_SECRET_KEY_TEST", "sk_test_abc")
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET_LIVE", "whsec_live")
    monkeypatch.setenv("STRIPE_PRICE_MONTHLY_LIVE", "price_monthly_live")
    monkeypatch.setenv("STRIPE_PRICE_LIFETIME_LIVE", "price_lifetime_live")
    monkeypatch.delenv("STRIPE_PRICE_YEARLY_LIVE", raising=False)

    cfg = load_config()

    assert cfg.stripe_mode == "live"
    assert cfg.stripe_secret_key == "sk_live_abc"
    assert cfg.stripe_webhook_secret == "whsec_live"
    assert cfg.stripe_prices == {
        "monthly": "price_monthly_live",
        "yearly": "",
        "lifetime": "price_lifetime_live",
    }


def test_load_config_unknown_stripe_mode_falls_back_to_test(monkeypatch):
    monkeypatch.setenv("FLASK_ENV", "development")
    monkeypatch.delenv("SENTRY_ENVIRONMENT", raising=False)
    monkeypatch.setenv("STRIPE_MODE", "staging")
    monkeypatch.setenv("STRIPE_SECRET_KEY_TEST", "sk_test_fallback")

    cfg = load_config()

    assert cfg.stripe_mode == "test"
    assert cfg.stripe_secret_key == "sk_test_fallback"


def test_load_config_clamps_numeric_limits(monkeypatch):
    monkeypatch.setenv("FLASK_ENV", "development")
    monkeypatch.delenv("SENTRY_ENVIRONMENT", raising=False)
    monkeypatch.setenv("TRIAL_RATE_LIMIT_MAX_REQUESTS", "not-a-number")
    monkeypatch.setenv("SENTRY_TRACES_SAMPLE_RATE", "5")
    monkeypatch.setenv("APP_URL", "https://cognify.example.com/")

    cfg = load_config()

    assert cfg.trial_rate_limit_max_requests == 3
    assert cfg.sentry_traces_sample_rate == 1.0
    assert cfg.app_url == "https://cognify.example.com"
