# tests/test_base_scraper.py

"""Tests for BaseScraper retry and fallback behaviour."""

import unittest
from typing import Any
from unittest.mock import MagicMock, patch

from curl_cffi import requests as curl_requests

from src.errors import NetworkError
from src.scrapers.base_scraper import BaseScraper

_CHALLENGE_HTML = (
    "<html><head><title>Just a moment...</title></head>"
    "<body>checking your browser</body></html>"
)


class _StubScraper(BaseScraper):
    """Concrete scraper exposing protected members for testing."""

    def __init__(self) -> None:
        super().__init__("test")

    @property
    def max_attempts(self) -> int:
        """Expose the retry budget."""
        return self._max_attempts

    def fetch_text(self, url: str) -> str:
        """Public wrapper for _fetch_text."""
        return self._fetch_text(url)

    def fetch_post(
        self,
        url: str,
        headers: dict[str, str],
        payload: dict[str, Any],
    ) -> curl_requests.Response:
        """Public wrapper for _fetch_post."""
        return self._fetch_post(url, headers, payload)


def _response(status: int, text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    return resp


@patch("src.scrapers.base_scraper.curl_requests.Session")
class TestFetchText(unittest.TestCase):
    """GET retries, then raises NetworkError."""

    def test_returns_body_on_200(self, mock_session_cls: MagicMock) -> None:
        """A healthy page returns its text after one request."""
        session = mock_session_cls.return_value
        session.get.return_value = _response(200, "<p>ok</p>")

        scraper = _StubScraper()
        self.assertEqual(scraper.fetch_text("https://a.test"), "<p>ok</p>")
        self.assertEqual(session.get.call_count, 1)

    def test_retries_then_succeeds(self, mock_session_cls: MagicMock) -> None:
        """A transient 503 is retried within the budget."""
        session = mock_session_cls.return_value
        session.get.side_effect = [
            _response(503),
            _response(200, "<p>second</p>"),
        ]

        scraper = _StubScraper()
        self.assertEqual(scraper.fetch_text("https://a.test"), "<p>second</p>")
        self.assertEqual(session.get.call_count, 2)

    def test_raises_after_budget(self, mock_session_cls: MagicMock) -> None:
        """Persistent failures raise NetworkError with the last reason."""
        session = mock_session_cls.return_value
        session.get.return_value = _response(404)

        scraper = _StubScraper()
        with self.assertRaises(NetworkError) as ctx:
            scraper.fetch_text("https://a.test/missing")
        self.assertEqual(ctx.exception.url, "https://a.test/missing")
        self.assertIn("404", ctx.exception.reason)
        self.assertEqual(session.get.call_count, scraper.max_attempts)

    def test_transport_error_raises(self, mock_session_cls: MagicMock) -> None:
        """Connection errors are retried and then surface as NetworkError."""
        session = mock_session_cls.return_value
        session.get.side_effect = ConnectionError("refused")

        scraper = _StubScraper()
        with self.assertRaises(NetworkError) as ctx:
            scraper.fetch_text("https://a.test")
        self.assertIn("refused", ctx.exception.reason)

    def test_sends_client_user_agent(
        self, mock_session_cls: MagicMock,
    ) -> None:
        """Requests carry the configured User-Agent header."""
        session = mock_session_cls.return_value
        session.get.return_value = _response(200, "<p>ok</p>")

        scraper = _StubScraper()
        scraper.fetch_text("https://a.test")
        headers = session.get.call_args.kwargs["headers"]
        self.assertEqual(headers["User-Agent"], scraper.settings.USER_AGENT)


@patch("src.scrapers.base_scraper.cloudscraper")
@patch("src.scrapers.base_scraper.curl_requests.Session")
class TestChallengeFallback(unittest.TestCase):
    """Challenge pages get a single cloudscraper attempt."""

    def test_cloudscraper_rescues_challenge(
        self,
        mock_session_cls: MagicMock,
        mock_cloudscraper: MagicMock,
    ) -> None:
        """A solved challenge returns the fallback body."""
        mock_session_cls.return_value.get.return_value = _response(
            200, _CHALLENGE_HTML,
        )
        fallback = mock_cloudscraper.create_scraper.return_value
        fallback.get.return_value = _response(200, "<p>real</p>")

        scraper = _StubScraper()
        self.assertEqual(scraper.fetch_text("https://a.test"), "<p>real</p>")
        mock_cloudscraper.create_scraper.assert_called_once()

    def test_failed_fallback_raises(
        self,
        mock_session_cls: MagicMock,
        mock_cloudscraper: MagicMock,
    ) -> None:
        """An unsolved challenge is a network error."""
        mock_session_cls.return_value.get.return_value = _response(
            200, _CHALLENGE_HTML,
        )
        fallback = mock_cloudscraper.create_scraper.return_value
        fallback.get.return_value = _response(403)

        scraper = _StubScraper()
        with self.assertRaises(NetworkError) as ctx:
            scraper.fetch_text("https://a.test")
        self.assertIn("just a moment", ctx.exception.reason)

    def test_json_body_skips_challenge_scan(
        self,
        mock_session_cls: MagicMock,
        mock_cloudscraper: MagicMock,
    ) -> None:
        """JSON bodies are never mistaken for challenge pages."""
        mock_session_cls.return_value.get.return_value = _response(
            200, '{"note": "captcha"}',
        )

        scraper = _StubScraper()
        self.assertEqual(
            scraper.fetch_text("https://a.test"), '{"note": "captcha"}',
        )
        mock_cloudscraper.create_scraper.assert_not_called()


class TestChallengeReason(unittest.TestCase):
    """Bot-wall detection on response bodies."""

    @patch("src.scrapers.base_scraper.curl_requests.Session")
    def setUp(self, mock_session_cls: MagicMock) -> None:
        self.scraper = _StubScraper()

    def test_real_page(self) -> None:
        self.assertIsNone(
            self.scraper._challenge_reason("<html><body>ok</body></html>")
        )

    def test_cloudflare_marker(self) -> None:
        reason = self.scraper._challenge_reason(_CHALLENGE_HTML)
        self.assertEqual(reason, "challenge page (just a moment)")

    def test_captcha_keyword_on_small_page(self) -> None:
        reason = self.scraper._challenge_reason(
            "<html><body>Please verify you are human</body></html>"
        )
        self.assertEqual(reason, "challenge page (verify you are human)")

    def test_keyword_ignored_on_large_page(self) -> None:
        """Long documents mentioning captcha are treated as real."""
        page = "<html><body>" + "x" * 6000 + " recaptcha widget</body></html>"
        self.assertIsNone(self.scraper._challenge_reason(page))


@patch("src.scrapers.base_scraper.curl_requests.Session")
class TestFetchPost(unittest.TestCase):
    """POST shares the GET retry budget."""

    def test_returns_response(self, mock_session_cls: MagicMock) -> None:
        """A 200 response is returned as-is."""
        ok = _response(200, "{}")
        mock_session_cls.return_value.post.return_value = ok

        scraper = _StubScraper()
        resp = scraper.fetch_post("https://api.test", {}, {"a": 1})
        self.assertIs(resp, ok)
        self.assertEqual(
            mock_session_cls.return_value.post.call_args.kwargs["json"],
            {"a": 1},
        )

    def test_raises_after_budget(self, mock_session_cls: MagicMock) -> None:
        """Persistent 5xx responses raise NetworkError."""
        mock_session_cls.return_value.post.return_value = _response(500)

        scraper = _StubScraper()
        with self.assertRaises(NetworkError):
            scraper.fetch_post("https://api.test", {}, {})
        self.assertEqual(
            mock_session_cls.return_value.post.call_count,
            scraper.max_attempts,
        )


if __name__ == "__main__":
    unittest.main()
