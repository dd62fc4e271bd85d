# src/scrapers/base_scraper.py

"""Shared HTTP plumbing for everything that talks to the network."""

import logging
import time
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from curl_cffi import requests as curl_requests

from src.config.settings import Settings
from src.errors import NetworkError


class BaseScraper:
    """Browser-impersonating HTTP session with a small retry budget.

    Subclasses call :meth:`_fetch_text` / :meth:`_fetch_post`; both raise
    :class:`NetworkError` once the budget is spent instead of returning
    ``None``, so callers can tell "unreachable" apart from "no match".
    """

    # Cloudflare challenge page markers (checked before keyword scan)
    _CF_CHALLENGE_MARKERS: list[str] = [
        "challenges.cloudflare.com",
        "cdn-cgi/challenge-platform",
        "just a moment",
        "cf-turnstile",
        "cf_chl_opt",
    ]

    def __init__(self, source_name: str) -> None:
        self.source_name = source_name
        self.logger = logging.getLogger(
            f"value_tracker.{source_name}"
        )
        self.settings = Settings()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self._request_timeout: float = self.settings.REQUEST_TIMEOUT
        self._max_attempts: int = 1 + self.settings.STATIC_RETRIES

    def _headers(self) -> dict[str, str]:
        """Default browser headers plus our descriptive client id."""
        return {
            **self.settings.DEFAULT_HEADERS,
            "User-Agent": self.settings.USER_AGENT,
        }

    def _challenge_reason(self, text: str) -> str | None:
        """Name the bot wall *text* looks like, or ``None`` for a real page.

        JSON bodies are never challenges.  The CAPTCHA keyword scan is
        skipped for large HTML documents, where words like "captcha"
        show up in ordinary scripts and footers.
        """
        if text.lstrip().startswith(("{", "[")):
            return None
        lower = text.lower()

        marker = next(
            (m for m in self._CF_CHALLENGE_MARKERS if m in lower), None,
        )
        if marker is not None:
            return f"challenge page ({marker})"

        if "<body" in lower and len(text) > 5000:
            return None
        keyword = next(
            (k for k in self.settings.CAPTCHA_KEYWORDS if k in lower), None,
        )
        if keyword is not None:
            return f"challenge page ({keyword})"
        return None

    def _fetch_text(self, url: str) -> str:
        """GET *url* and return the body text.

        Non-200 statuses and transport errors are retried
        ``STATIC_RETRIES`` times.  A challenge page gets one
        cloudscraper attempt.

        Raises:
            NetworkError: when no attempt produced a usable page.
        """
        headers = self._headers()
        last_reason = "no attempt made"

        for attempt in range(self._max_attempts):
            if attempt:
                time.sleep(self.settings.RETRY_DELAY)
            try:
                resp = self.session.get(
                    url,
                    headers=headers,
                    timeout=self._request_timeout,
                )
            except Exception as exc:
                last_reason = f"request error: {exc}"
                self.logger.warning(
                    "[%s] Request error on attempt %d for %s: %s",
                    self.source_name,
                    attempt + 1,
                    url,
                    exc,
                    exc_info=True,
                )
                continue

            if resp.status_code != 200:
                last_reason = f"HTTP {resp.status_code}"
                self.logger.warning(
                    "[%s] HTTP %d on attempt %d for %s",
                    self.source_name,
                    resp.status_code,
                    attempt + 1,
                    url,
                )
                continue

            text = str(resp.text)
            challenge = self._challenge_reason(text)
            if challenge is None:
                return text
            self.logger.warning(
                "[%s] %s at %s", self.source_name, challenge, url,
            )
            last_reason = challenge
            break

        if last_reason.startswith("challenge page"):
            rescued = self._fetch_with_cloudscraper(url, headers)
            if rescued is not None:
                return rescued

        self.logger.error(
            "[%s] Giving up on %s: %s",
            self.source_name,
            url,
            last_reason,
        )
        raise NetworkError(url, last_reason)

    def _fetch_with_cloudscraper(
        self,
        url: str,
        headers: dict[str, str],
    ) -> str | None:
        """One JS-challenge-solving attempt; ``None`` on failure."""
        self.logger.info(
            "[%s] curl_cffi challenged, falling back to cloudscraper",
            self.source_name,
        )
        try:
            _cs: Any = cloudscraper
            scraper: Any = _cs.create_scraper()
            fallback_resp: Any = scraper.get(
                url,
                headers=headers,
                timeout=self._request_timeout,
            )
        except Exception as exc:
            self.logger.error(
                "[%s] cloudscraper fallback also failed: %s",
                self.source_name,
                exc,
                exc_info=True,
            )
            return None
        if fallback_resp.status_code == 200:
            return str(fallback_resp.text)
        self.logger.warning(
            "[%s] cloudscraper fallback returned HTTP %d",
            self.source_name,
            fallback_resp.status_code,
        )
        return None

    def _fetch_post(
        self,
        url: str,
        headers: dict[str, str],
        payload: dict[str, Any],
    ) -> curl_requests.Response:
        """POST JSON with the same retry budget as GET.

        Raises:
            NetworkError: when every attempt failed.
        """
        last_reason = "no attempt made"
        for attempt in range(self._max_attempts):
            if attempt:
                time.sleep(self.settings.RETRY_DELAY)
            try:
                resp = self.session.post(
                    url,
                    headers=headers,
                    json=payload,
                    timeout=self._request_timeout,
                )
            except Exception as exc:
                last_reason = f"request error: {exc}"
                self.logger.warning(
                    "[%s] Request error on attempt %d: %s",
                    self.source_name,
                    attempt + 1,
                    exc,
                    exc_info=True,
                )
                continue
            if resp.status_code == 200:
                return resp
            last_reason = f"HTTP {resp.status_code}"
            self.logger.warning(
                "[%s] HTTP %d on attempt %d",
                self.source_name,
                resp.status_code,
                attempt + 1,
            )
        raise NetworkError(url, last_reason)
