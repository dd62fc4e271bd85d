# src/services/repair_orchestrator.py

"""Rehabilitate a drifting item with an externally proposed selector."""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, replace
from typing import Protocol

from src.config.settings import Settings
from src.models.fingerprint import Fingerprint
from src.models.repair_proposal import RepairProposal
from src.models.snapshot import Snapshot
from src.models.tracked_item import TrackedItem
from src.parsers.numeric_parser import parse_numeric
from src.services.failure_reporter import FailureReport
from src.storage.tracker_db import TrackerDB

logger = logging.getLogger("value_tracker.repair")

REPAIRED = "repaired"
NO_VIABLE_REPAIR = "no_viable_repair"


class RepairCollaborator(Protocol):
    """External generator of replacement selectors."""

    def propose(
        self,
        url: str,
        old_selector: str,
        sample_text: str | None,
        fingerprint: Fingerprint | None,
    ) -> RepairProposal | None:
        ...


@dataclass
class RepairResult:
    """What a repair attempt did.

    ``status`` is ``"repaired"`` with the updated item and its fresh
    snapshot, or ``"no_viable_repair"`` with a ``reason`` and the item
    left untouched.
    """

    item_id: int
    status: str
    item: TrackedItem | None = None
    snapshot: Snapshot | None = None
    reason: str = ""

    @property
    def repaired(self) -> bool:
        return self.status == REPAIRED


class RepairOrchestrator:
    """Ask the collaborator for a proposal and apply it atomically."""

    def __init__(
        self,
        db: TrackerDB,
        collaborator: RepairCollaborator,
        timeout: float | None = None,
    ) -> None:
        self.db = db
        self.collaborator = collaborator
        self.timeout = (
            timeout if timeout is not None else Settings.REPAIR_TIMEOUT
        )

    def best_known_sample_text(self, item: TrackedItem) -> str | None:
        """Latest ok snapshot text, else the stored sample text."""
        last_ok = self.db.latest_ok_snapshot(item.id)
        if last_ok is not None and last_ok.value_raw:
            return last_ok.value_raw
        return item.sample_text

    def _request_proposal(
        self, item: TrackedItem,
    ) -> tuple[RepairProposal | None, str]:
        """Call the collaborator within the timeout.

        Returns the proposal (or ``None``) and a reason when ``None``.
        """
        sample_text = self.best_known_sample_text(item)
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(
            self.collaborator.propose,
            item.url,
            item.selector,
            sample_text,
            item.fingerprint,
        )
        try:
            proposal = future.result(timeout=self.timeout)
        except FutureTimeoutError:
            logger.error(
                "[item %d] Repair collaborator timed out after %.0fs",
                item.id,
                self.timeout,
            )
            return None, "collaborator timed out"
        except Exception as exc:
            logger.error(
                "[item %d] Repair collaborator failed: %s",
                item.id,
                exc,
                exc_info=True,
            )
            return None, f"collaborator error: {exc}"
        finally:
            # Do not block on a hung call; the worker thread is abandoned
            executor.shutdown(wait=False)

        if proposal is None or not proposal.selector.strip():
            return None, "collaborator returned no proposal"
        if not proposal.sample_text.strip():
            return None, "proposal has empty sample text"
        return proposal, ""

    def repair(self, item_id: int) -> RepairResult:
        """Attempt one repair of *item_id*.

        Raises:
            ItemNotFoundError: if the item does not exist.
        """
        item = self.db.get_tracked_item(item_id)
        logger.info(
            "[item %d] Requesting selector repair (current %r)",
            item.id,
            item.selector,
        )
        proposal, reason = self._request_proposal(item)
        if proposal is None:
            logger.warning("[item %d] No viable repair: %s", item.id, reason)
            return RepairResult(
                item_id=item.id, status=NO_VIABLE_REPAIR, reason=reason,
            )

        if (
            proposal.value_type is not None
            and proposal.value_type not in Settings.VALUE_TYPES
        ):
            logger.warning(
                "[item %d] Ignoring unknown proposed type %r",
                item.id,
                proposal.value_type,
            )
            proposal = replace(proposal, value_type=None)

        numeric = proposal.value_numeric
        if numeric is None:
            numeric = parse_numeric(proposal.sample_text)

        updated, snapshot = self.db.apply_repair(item.id, proposal, numeric)
        logger.info(
            "[item %d] Repaired: selector %r -> %r, value %r",
            item.id,
            item.selector,
            updated.selector,
            snapshot.value_raw,
        )
        return RepairResult(
            item_id=item.id,
            status=REPAIRED,
            item=updated,
            snapshot=snapshot,
        )

    def maybe_repair(self, report: FailureReport) -> RepairResult | None:
        """Run :meth:`repair` only when the report crossed the threshold."""
        if not report.should_repair:
            return None
        return self.repair(report.item_id)
