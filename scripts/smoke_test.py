#!/usr/bin/env python3
"""Lightweight smoke checks for the Voice2Post HTTP surface.

Usage:
  python scripts/smoke_test.py
  python scripts/smoke_test.py --base-url https://your-domain.com
"""

from __future__ import annotations

import argparse
import json
import os
import time
import urllib.error
import urllib.request
from typing import Any, Dict, Optional, Tuple


class _NoRedirect(urllib.request.HTTPRedirectHandler):
    def redirect_request(self, req, fp, code, msg, headers, newurl):
        return None


_OPENER = urllib.request.build_opener(_NoRedirect)


def _request(
    method: str,
    url: str,
    *,
    json_body: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 10.0,
) -> Tuple[int, str, Dict[str, str]]:
    payload = None
    request_headers: Dict[str, str] = dict(headers or {})
    if json_body is not None:
        payload = json.dumps(json_body).encode("utf-8")
        request_headers.setdefault("Content-Type", "application/json")
    req = urllib.request.Request(url=url, data=payload, method=method.upper(), headers=request_headers)
    try:
        with _OPENER.open(req, timeout=timeout) as response:
            body = response.read().decode("utf-8", errors="replace")
            return int(response.getcode()), body, dict(response.getheaders())
    except urllib.error.HTTPError as exc:
        body = exc.read().decode("utf-8", errors="replace")
        return int(exc.code), body, dict(exc.headers.items())


class SmokeRunner:
    def __init__(self, base_url: str, timeout: float, bearer_token: str = "") -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.bearer_token = bearer_token.strip()
        self.failures = 0
        self.total = 0

    def _print_result(self, ok: bool, label: str, detail: str = "") -> None:
        prefix = "PASS" if ok else "FAIL"
        print(f"[{prefix}] {label}")
        if detail:
            print(f"       {detail}")
        if not ok:
            self.failures += 1

    def _expect_status(self, label: str, method: str, path: str, expected_status: int, **kwargs: Any) -> Tuple[int, str, Dict[str, str]]:
        self.total += 1
        started = time.time()
        try:
            status, body, headers = _request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        except Exception as exc:
            self._print_result(False, label, f"request error: {exc}")
            return 0, "", {}
        elapsed_ms = int((time.time() - started) * 1000)
        detail = f"expected {expected_status}, got {status} ({elapsed_ms}ms)"
        body_preview = body.strip().replace("\n", " ")[:140]
        if body_preview:
            detail += f" | body: {body_preview}"
        self._print_result(status == expected_status, label, detail)
        return status, body, headers

    def _expect_redirect(self, label: str, path: str, location: str) -> None:
        _status, _body, headers = self._expect_status(label, "GET", path, 302)
        self.total += 1
        actual = headers.get("Location", "")
        self._print_result(actual.endswith(location), f"{label} -> {location}", f"Location: {actual}")

    def run(self) -> int:
        print(f"Running smoke tests against: {self.base_url}")
        print(f"Timeout per request: {self.timeout:.1f}s")
        print("")

        # Session gate
        self._expect_redirect("Root without session", "/", "/plan")
        self._expect_redirect("Record page without session", "/record", "/login")
        self._expect_status("Plan page reachable", "GET", "/plan", 200)
        self._expect_status("Login page reachable", "GET", "/login", 200)

        self._expect_status("Stripe config endpoint reachable", "GET", "/api/config", 200)

        # Unauthorized guardrails
        self._expect_status("Usage requires auth", "GET", "/api/usage", 401)
        self._expect_status("Transcribe requires auth", "POST", "/api/transcribe", 401, json_body={"audioUrl": "https://example.com/a.m4a"})
        self._expect_status("Generate requires auth", "POST", "/api/generate-post", 401, json_body={"transcript": "hello"})
        self._expect_status("Checkout requires auth", "POST", "/api/stripe/checkout", 401, json_body={"interval": "monthly"})
        self._expect_status("Webhook rejects unsigned payload", "POST", "/api/stripe-webhook", 400, json_body={})

        if self.bearer_token:
            auth_headers = {"Authorization": f"Bearer {self.bearer_token}"}
            _status, body, _headers = self._expect_status("Authenticated usage", "GET", "/api/usage", 200, headers=auth_headers)
            self.total += 1
            try:
                parsed = json.loads(body or "{}")
                self._print_result("canUse" in parsed, "Usage payload carries canUse")
            except Exception as exc:
                self._print_result(False, "Usage payload carries canUse", f"invalid json: {exc}")
            self._expect_status("Authenticated records", "GET", "/api/records", 200, headers=auth_headers)
        else:
            print("")
            print("Note: Skipped authenticated smoke checks (set FIREBASE_TEST_BEARER to enable).")

        print("")
        passed = self.total - self.failures
        print(f"Summary: {passed}/{self.total} checks passed.")
        if self.failures:
            print("Smoke test status: FAILED")
            return 1
        print("Smoke test status: PASSED")
        return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Run Voice2Post smoke tests.")
    parser.add_argument("--base-url", default="http://127.0.0.1:5000", help="Base URL for the app (default: http://127.0.0.1:5000)")
    parser.add_argument("--timeout", default=10.0, type=float, help="Request timeout in seconds")
    parser.add_argument("--bearer-token", default="", help="Optional Firebase bearer token for authenticated checks")
    args = parser.parse_args()

    token = args.bearer_token.strip() or os.getenv("FIREBASE_TEST_BEARER", "").strip()
    return SmokeRunner(base_url=args.base_url, timeout=args.timeout, bearer_token=token).run()


if __name__ == "__main__":
    raise SystemExit(main())
