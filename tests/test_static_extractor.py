# tests/test_static_extractor.py

"""Tests for the static extraction tier."""

import unittest
from unittest.mock import MagicMock, patch

from src.errors import NetworkError
from src.scrapers.static_extractor import StaticExtractor

_HTML = """
<html><body>
  <span class="price">  $19.99 </span>
  <span class="price">$24.99</span>
  <div class="stock"></div>
</body></html>
"""


@patch("src.scrapers.base_scraper.curl_requests.Session")
class TestStaticExtractor(unittest.TestCase):
    """Selector lookups over fetched markup."""

    def _extractor(self, mock_session_cls: MagicMock) -> StaticExtractor:
        resp = MagicMock()
        resp.status_code = 200
        resp.text = _HTML
        mock_session_cls.return_value.get.return_value = resp
        return StaticExtractor()

    def test_first_match_trimmed(self, mock_session_cls: MagicMock) -> None:
        """The first match's text is returned without padding."""
        extractor = self._extractor(mock_session_cls)
        self.assertEqual(
            extractor.extract("https://shop.test/p", ".price"), "$19.99",
        )

    def test_no_match_returns_none(self, mock_session_cls: MagicMock) -> None:
        """A selector with no matches yields None."""
        extractor = self._extractor(mock_session_cls)
        self.assertIsNone(extractor.extract("https://shop.test/p", ".gone"))

    def test_empty_text_returns_none(
        self, mock_session_cls: MagicMock,
    ) -> None:
        """A match with no text yields None."""
        extractor = self._extractor(mock_session_cls)
        self.assertIsNone(extractor.extract("https://shop.test/p", ".stock"))

    def test_invalid_selector_returns_none(
        self, mock_session_cls: MagicMock,
    ) -> None:
        """A selector the parser rejects counts as no match."""
        extractor = self._extractor(mock_session_cls)
        self.assertIsNone(extractor.extract("https://shop.test/p", "div[[["))

    def test_network_error_propagates(
        self, mock_session_cls: MagicMock,
    ) -> None:
        """Fetch failures are raised, not turned into None."""
        resp = MagicMock()
        resp.status_code = 502
        mock_session_cls.return_value.get.return_value = resp

        extractor = StaticExtractor()
        with self.assertRaises(NetworkError):
            extractor.extract("https://shop.test/p", ".price")


if __name__ == "__main__":
    unittest.main()
