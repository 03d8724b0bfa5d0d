#!/usr/bin/env python3
"""Stripe configuration checks for a deployed Cognify instance.

Usage:
  python scripts/stripe_config_check.py --base-url https://cognify.example.com --expect-mode live
  python scripts/stripe_config_check.py --base-url http://localhost:5000 --expect-mode test --skip-local-env
"""

from __future__ import annotations

import argparse
import os
from typing import Any, Callable, Mapping

import requests

PRICE_PERIODS = ("monthly", "yearly", "lifetime")
FORGED_WEBHOOK_HEADERS = {"Content-Type": "application/json", "Stripe-Signature": "t=0,v1=forged"}


def infer_key_mode(key_value: str) -> str:
    key = str(key_value or "").strip()
    if not key:
        return "missing"
    if key.startswith(("sk_live_", "rk_live_")):
        return "live"
    if key.startswith(("sk_test_", "rk_test_")):
        return "test"
    return "unknown"


class StripeConfigChecker:
    def __init__(
        self,
        *,
        base_url: str,
        expect_mode: str,
        timeout: float = 12.0,
        env: Mapping[str, str] = os.environ,
        http_request: Callable[..., Any] = requests.request,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.expect_mode = expect_mode
        self.timeout = timeout
        self.env = env
        self.http_request = http_request
        self.results: list[tuple[bool, str, str]] = []

    @property
    def failures(self) -> int:
        return sum(1 for ok, _label, _detail in self.results if not ok)

    def _record(self, label: str, ok: bool, detail: str = "") -> None:
        self.results.append((bool(ok), label, detail))
        print(f"[{'PASS' if ok else 'FAIL'}] {label}")
        if detail:
            print(f"       {detail}")

    def _expect_status(self, label: str, method: str, path: str, expected_status: int, **kwargs: Any) -> None:
        try:
            response = self.http_request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            self._record(label, False, f"request error: {exc.__class__.__name__}")
            return
        self._record(label, response.status_code == expected_status, f"expected {expected_status}, got {response.status_code}")

    def check_remote(self) -> None:
        self._expect_status("Health endpoint reachable", "GET", "/healthz", 200)
        self._expect_status("Checkout requires auth", "POST", "/api/stripe/checkout", 401, json={"period": "monthly"})
        self._expect_status("Portal requires auth", "POST", "/api/stripe/portal", 401, json={})
        self._expect_status("Billing overview requires auth", "GET", "/api/billing", 401)
        self._expect_status(
            "Webhook rejects a forged signature",
            "POST",
            "/api/stripe/webhook",
            400,
            data=b'{"type": "invoice.paid"}',
            headers=FORGED_WEBHOOK_HEADERS,
        )

    def check_local_env(self) -> None:
        mode = self.env.get("STRIPE_MODE", "test").strip().lower() or "test"
        self._record("STRIPE_MODE matches expected", mode == self.expect_mode, f"STRIPE_MODE={mode}")
        suffix = mode.upper()
        secret_mode = infer_key_mode(self.env.get(f"STRIPE_SECRET_KEY_{suffix}", ""))
        self._record(f"STRIPE_SECRET_KEY_{suffix} mode matches expected", secret_mode == self.expect_mode, f"secret_mode={secret_mode}")
        webhook_secret = self.env.get(f"STRIPE_WEBHOOK_SECRET_{suffix}", "").strip()
        self._record(f"STRIPE_WEBHOOK_SECRET_{suffix} configured", webhook_secret.startswith("whsec_"))
        for period in PRICE_PERIODS:
            name = f"STRIPE_PRICE_{period.upper()}_{suffix}"
            price_id = self.env.get(name, "").strip()
            self._record(f"{name} configured", price_id.startswith("price_"), price_id[:12] or "missing")

    def run(self, *, skip_local_env: bool = False) -> int:
        print(f"Running Stripe config checks against {self.base_url} (expecting {self.expect_mode} mode)")
        self.check_remote()
        if not skip_local_env:
            self.check_local_env()
        print(f"Summary: {len(self.results) - self.failures}/{len(self.results)} checks passed.")
        return 1 if self.failures else 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Run Stripe configuration checks.")
    parser.add_argument("--base-url", required=True, help="Base URL (example: https://cognify.example.com)")
    parser.add_argument("--timeout", default=12.0, type=float, help="Request timeout seconds")
    parser.add_argument("--expect-mode", default="live", choices=["live", "test"], help="Expected Stripe key mode")
    parser.add_argument("--skip-local-env", action="store_true", help="Skip checks of the local STRIPE_* environment")
    args = parser.parse_args()

    checker = StripeConfigChecker(base_url=args.base_url, expect_mode=args.expect_mode, timeout=args.timeout)
    return checker.run(skip_local_env=args.skip_local_env)


if __name__ == "__main__":
    raise SystemExit(main())
