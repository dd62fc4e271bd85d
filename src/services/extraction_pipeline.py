# src/services/extraction_pipeline.py

"""Per-item extraction: static, then dynamic, then one snapshot."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from src.config.settings import Settings
from src.models.snapshot import (
    STATUS_ERROR,
    STATUS_MISSING,
    STATUS_OK,
    Snapshot,
)
from src.models.tracked_item import TrackedItem
from src.models.trigger import TriggerEvent
from src.parsers.numeric_parser import parse_numeric
from src.scrapers.dynamic_extractor import DynamicExtractor
from src.scrapers.static_extractor import StaticExtractor
from src.services.failure_reporter import FailureReport, FailureReporter
from src.services.repair_orchestrator import RepairOrchestrator, RepairResult
from src.services.trigger_evaluator import TriggerEvaluator
from src.storage.tracker_db import TrackerDB

logger = logging.getLogger("value_tracker.pipeline")

TIER_STATIC = "static"
TIER_DYNAMIC = "dynamic"
TIER_NONE = "none"


@dataclass
class ExtractionOutcome:
    """Everything one pipeline invocation produced for one item."""

    item_id: int
    snapshot: Snapshot
    tier: str = TIER_NONE
    error: str = ""
    fired: list[TriggerEvent] = field(
        default_factory=lambda: list[TriggerEvent]()
    )
    failure_report: FailureReport | None = None
    repair: RepairResult | None = None

    @property
    def status(self) -> str:
        return self.snapshot.status


@dataclass
class RunSummary:
    """Tally of one run over a list of items."""

    outcomes: list[ExtractionOutcome] = field(
        default_factory=lambda: list[ExtractionOutcome]()
    )

    def count(self, status: str) -> int:
        """Number of outcomes with the given snapshot status."""
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def ok_count(self) -> int:
        return self.count(STATUS_OK)

    @property
    def missing_count(self) -> int:
        return self.count(STATUS_MISSING)

    @property
    def error_count(self) -> int:
        return self.count(STATUS_ERROR)

    @property
    def fired_count(self) -> int:
        return sum(len(o.fired) for o in self.outcomes)


class ExtractionPipeline:
    """Turn one tracked item into exactly one snapshot.

    By default ``missing``/``error`` outcomes leave health counters alone
    and counting is left to :class:`FailureReporter` callers.  With
    ``auto_report_failures`` the pipeline reports its own failures
    through that same reporter and, when the threshold is crossed, runs
    the repair orchestrator.
    """

    def __init__(
        self,
        db: TrackerDB,
        static: StaticExtractor,
        dynamic: DynamicExtractor,
        evaluator: TriggerEvaluator | None = None,
        reporter: FailureReporter | None = None,
        repairer: RepairOrchestrator | None = None,
        auto_report_failures: bool | None = None,
    ) -> None:
        self.db = db
        self.static = static
        self.dynamic = dynamic
        self.evaluator = evaluator or TriggerEvaluator(db)
        self.reporter = reporter or FailureReporter(db)
        self.repairer = repairer
        self.auto_report_failures = (
            Settings.AUTO_REPORT_FAILURES
            if auto_report_failures is None
            else auto_report_failures
        )

    def _extract(self, item: TrackedItem) -> tuple[str | None, str]:
        """Run the tiers in order; return (text, tier)."""
        text = self.static.extract(item.url, item.selector)
        if text:
            return text, TIER_STATIC
        logger.info("[item %d] Static tier found nothing", item.id)

        text = self.dynamic.extract(item)
        if text:
            return text, TIER_DYNAMIC
        return None, TIER_NONE

    def process_item(self, item: TrackedItem) -> ExtractionOutcome:
        """Extract, classify and persist one snapshot for *item*.

        Never raises for per-item failures; they become an ``error``
        snapshot instead.
        """
        tier = TIER_NONE
        error = ""
        try:
            text, tier = self._extract(item)
        except Exception as exc:
            # NetworkError, ExtractionError or anything unforeseen
            text = None
            error = str(exc) or type(exc).__name__
            logger.error(
                "[item %d] Extraction failed: %s",
                item.id,
                error,
                exc_info=True,
            )

        taken_at = datetime.now()
        if error:
            snapshot = self.db.record_snapshot(
                item.id, "", None, STATUS_ERROR, taken_at,
            )
        elif text is None:
            snapshot = self.db.record_snapshot(
                item.id, "", None, STATUS_MISSING, taken_at,
            )
            logger.warning(
                "[item %d] Selector missing after static + dynamic",
                item.id,
            )
        else:
            numeric = parse_numeric(text)
            snapshot = self.db.record_snapshot(
                item.id, text, numeric, STATUS_OK, taken_at,
            )
            self.db.record_success(item.id, at=taken_at)
            logger.info(
                "[item %d] Captured %r via %s (numeric=%s)",
                item.id,
                text,
                tier,
                numeric,
            )

        outcome = ExtractionOutcome(
            item_id=item.id, snapshot=snapshot, tier=tier, error=error,
        )
        if snapshot.is_ok:
            outcome.fired = self._evaluate_triggers(snapshot)
        elif self.auto_report_failures:
            self._report_failure(outcome)
        return outcome

    def _evaluate_triggers(self, snapshot: Snapshot) -> list[TriggerEvent]:
        if snapshot.value_numeric is None:
            return []
        try:
            return self.evaluator.evaluate(snapshot)
        except Exception as exc:
            logger.error(
                "[item %d] Trigger evaluation failed: %s",
                snapshot.tracked_item_id,
                exc,
                exc_info=True,
            )
            return []

    def _report_failure(self, outcome: ExtractionOutcome) -> None:
        try:
            outcome.failure_report = self.reporter.report_failure(
                outcome.item_id, at=outcome.snapshot.taken_at,
            )
            if self.repairer is not None:
                outcome.repair = self.repairer.maybe_repair(
                    outcome.failure_report
                )
        except Exception as exc:
            logger.error(
                "[item %d] Failure bookkeeping failed: %s",
                outcome.item_id,
                exc,
                exc_info=True,
            )

    def run(self, items: list[TrackedItem]) -> RunSummary:
        """Process *items* sequentially; one failure never stops the run."""
        summary = RunSummary()
        logger.info("Found %d tracked items", len(items))
        for item in items:
            summary.outcomes.append(self.process_item(item))
        logger.info(
            "Run complete: %d ok, %d missing, %d error, %d triggers fired",
            summary.ok_count,
            summary.missing_count,
            summary.error_count,
            summary.fired_count,
        )
        return summary
