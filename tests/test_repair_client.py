# tests/test_repair_client.py

"""Tests for the HTTP repair collaborator."""

import unittest
from decimal import Decimal
from unittest.mock import MagicMock, patch

from src.config.settings import Settings
from src.errors import NetworkError
from src.models.fingerprint import Fingerprint
from src.services.repair_client import (
    HttpRepairCollaborator,
    proposal_from_payload,
)


class TestProposalFromPayload(unittest.TestCase):
    """Response body parsing."""

    def test_full_payload(self) -> None:
        proposal = proposal_from_payload({
            "selector": " .price-now ",
            "sampleText": "$12.50",
            "type": "price",
            "valueNumeric": 12.5,
            "name": "Desk lamp",
        })
        assert proposal is not None
        self.assertEqual(proposal.selector, ".price-now")
        self.assertEqual(proposal.value_numeric, Decimal("12.5"))
        self.assertEqual(proposal.value_type, "price")
        self.assertEqual(proposal.name, "Desk lamp")

    def test_empty_object_is_no_proposal(self) -> None:
        self.assertIsNone(proposal_from_payload({}))

    def test_missing_sample_text(self) -> None:
        self.assertIsNone(proposal_from_payload({"selector": ".a"}))

    def test_not_an_object(self) -> None:
        self.assertIsNone(proposal_from_payload(["selector"]))

    def test_bad_numeric_dropped(self) -> None:
        """Non-numeric, boolean or non-finite numbers are ignored."""
        for bad in ("n/a", True, "NaN", "Infinity"):
            with self.subTest(value=bad):
                proposal = proposal_from_payload({
                    "selector": ".a", "sampleText": "x", "valueNumeric": bad,
                })
                assert proposal is not None
                self.assertIsNone(proposal.value_numeric)


@patch("src.scrapers.base_scraper.curl_requests.Session")
class TestHttpRepairCollaborator(unittest.TestCase):
    """Request shape and failure handling."""

    def test_posts_context_and_parses(
        self, mock_session_cls: MagicMock,
    ) -> None:
        resp = MagicMock()
        resp.status_code = 200
        resp.json.return_value = {"selector": ".b", "sampleText": "$2"}
        mock_session_cls.return_value.post.return_value = resp
        fp = Fingerprint.from_json({"path": [{"tag": "span"}]})

        client = HttpRepairCollaborator(
            endpoint="https://repair.test/v1", api_key="k",
        )
        proposal = client.propose("https://shop.test", ".a", "$1", fp)

        assert proposal is not None
        self.assertEqual(proposal.selector, ".b")
        call = mock_session_cls.return_value.post.call_args
        self.assertEqual(call.args[0], "https://repair.test/v1")
        self.assertEqual(call.kwargs["headers"]["Authorization"], "Bearer k")
        self.assertEqual(call.kwargs["json"], {
            "url": "https://shop.test",
            "oldSelector": ".a",
            "sampleText": "$1",
            "fingerprint": fp.to_dict(),
        })

    def test_no_endpoint(self, mock_session_cls: MagicMock) -> None:
        client = HttpRepairCollaborator(endpoint="")
        client.endpoint = ""
        self.assertIsNone(
            client.propose("https://shop.test", ".a", None, None)
        )
        mock_session_cls.return_value.post.assert_not_called()

    def test_unreachable_service(self, mock_session_cls: MagicMock) -> None:
        client = HttpRepairCollaborator(endpoint="https://repair.test")
        with patch.object(
            client,
            "_fetch_post",
            side_effect=NetworkError("https://repair.test", "HTTP 503"),
        ):
            self.assertIsNone(
                client.propose("https://shop.test", ".a", None, None)
            )

    def test_non_json_body(self, mock_session_cls: MagicMock) -> None:
        resp = MagicMock()
        resp.status_code = 200
        resp.json.side_effect = ValueError("not json")
        mock_session_cls.return_value.post.return_value = resp

        client = HttpRepairCollaborator(endpoint="https://repair.test")
        self.assertIsNone(
            client.propose("https://shop.test", ".a", None, None)
        )

    @patch.object(Settings, "STATIC_RETRIES", 2)
    @patch.object(Settings, "REPAIR_TIMEOUT", 30.0)
    def test_retries_share_repair_deadline(
        self, mock_session_cls: MagicMock,
    ) -> None:
        """Every attempt together stays within REPAIR_TIMEOUT."""
        resp = MagicMock()
        resp.status_code = 503
        mock_session_cls.return_value.post.return_value = resp

        client = HttpRepairCollaborator(endpoint="https://repair.test")
        self.assertIsNone(
            client.propose("https://shop.test", ".a", None, None)
        )

        calls = mock_session_cls.return_value.post.call_args_list
        self.assertEqual(len(calls), 3)
        timeouts = [c.kwargs["timeout"] for c in calls]
        self.assertEqual(timeouts, [10.0, 10.0, 10.0])
        self.assertLessEqual(sum(timeouts), 30.0)


if __name__ == "__main__":
    unittest.main()
