# src/services/repair_client.py

"""HTTP adapter for an external selector-repair service.

The service receives::

    {"url": ..., "oldSelector": ..., "sampleText": ..., "fingerprint": {...}}

and answers with ``{"selector", "sampleText", "type", "valueNumeric",
"name"}``, or ``{}`` when it found nothing.
"""

from decimal import Decimal, InvalidOperation
from typing import Any

from src.errors import NetworkError
from src.models.fingerprint import Fingerprint
from src.models.repair_proposal import RepairProposal
from src.scrapers.base_scraper import BaseScraper


def proposal_from_payload(data: Any) -> RepairProposal | None:
    """Turn a service response body into a proposal, if it has one."""
    if not isinstance(data, dict):
        return None
    selector = data.get("selector")
    sample_text = data.get("sampleText")
    if not isinstance(selector, str) or not selector.strip():
        return None
    if not isinstance(sample_text, str) or not sample_text.strip():
        return None

    numeric: Decimal | None = None
    raw_numeric = data.get("valueNumeric")
    if raw_numeric is not None and not isinstance(raw_numeric, bool):
        try:
            numeric = Decimal(str(raw_numeric))
        except InvalidOperation:
            numeric = None
        if numeric is not None and not numeric.is_finite():
            numeric = None

    value_type = data.get("type")
    name = data.get("name")
    return RepairProposal(
        selector=selector.strip(),
        sample_text=sample_text.strip(),
        value_type=value_type if isinstance(value_type, str) else None,
        value_numeric=numeric,
        name=name if isinstance(name, str) else None,
    )


class HttpRepairCollaborator(BaseScraper):
    """RepairCollaborator backed by a JSON-over-HTTP endpoint."""

    def __init__(
        self,
        endpoint: str | None = None,
        api_key: str | None = None,
    ) -> None:
        super().__init__("repair_client")
        self.endpoint = endpoint or self.settings.REPAIR_ENDPOINT
        self.api_key = (
            api_key if api_key is not None else self.settings.REPAIR_API_KEY
        )
        # All attempts together must fit inside the orchestrator deadline
        self._request_timeout = (
            self.settings.REPAIR_TIMEOUT / self._max_attempts
        )

    def propose(
        self,
        url: str,
        old_selector: str,
        sample_text: str | None,
        fingerprint: Fingerprint | None,
    ) -> RepairProposal | None:
        """Ask the service for a replacement selector."""
        if not self.endpoint:
            self.logger.warning(
                "[repair_client] REPAIR_ENDPOINT not configured"
            )
            return None

        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        payload: dict[str, Any] = {
            "url": url,
            "oldSelector": old_selector,
            "sampleText": sample_text,
            "fingerprint": fingerprint.to_dict() if fingerprint else None,
        }

        try:
            resp = self._fetch_post(self.endpoint, headers, payload)
        except NetworkError as exc:
            self.logger.error(
                "[repair_client] Repair service unreachable: %s", exc,
            )
            return None
        try:
            data = resp.json()
        except ValueError:
            self.logger.error(
                "[repair_client] Repair service returned non-JSON body"
            )
            return None

        proposal = proposal_from_payload(data)
        if proposal is None:
            self.logger.info(
                "[repair_client] No proposal for %s (%r)", url, old_selector,
            )
        return proposal
