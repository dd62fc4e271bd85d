# src/scrapers/dynamic_extractor.py

"""Second extraction tier: render the page, then selector or fingerprint."""

import logging

from src.config.settings import Settings
from src.errors import ExtractionError, NetworkError
from src.models.tracked_item import TrackedItem
from src.scrapers.fingerprint_matcher import FingerprintMatcher
from src.scrapers.rendering_engine import RenderingEngine

logger = logging.getLogger("value_tracker.dynamic")


class DynamicExtractor:
    """Extract an item's value from a fully rendered page.

    The rendering engine is injected and shared across items; this class
    never starts or stops it.
    """

    def __init__(
        self,
        engine: RenderingEngine,
        matcher: FingerprintMatcher | None = None,
        enabled: bool | None = None,
    ) -> None:
        self.engine = engine
        self.matcher = matcher or FingerprintMatcher()
        self.enabled = (
            Settings.ENABLE_DYNAMIC if enabled is None else enabled
        )

    def extract(self, item: TrackedItem) -> str | None:
        """Return captured text, or ``None`` when nothing matched.

        Raises:
            NetworkError: navigation failed or timed out.
            ExtractionError: any other failure while reading the page.
        """
        if not self.enabled:
            logger.info("[item %d] Dynamic tier disabled", item.id)
            return None

        logger.info("[item %d] Rendering %s", item.id, item.url)
        try:
            with self.engine.render(item.url) as page:
                count = page.count(item.selector)
                if count > 0:
                    text = page.first_text(item.selector)
                    if text:
                        logger.info(
                            "[item %d] Selector %r matched %d, got %r",
                            item.id,
                            item.selector,
                            count,
                            text,
                        )
                        return text
                    logger.info(
                        "[item %d] Selector matched but text is empty",
                        item.id,
                    )
                else:
                    logger.info(
                        "[item %d] Selector %r matched 0 elements",
                        item.id,
                        item.selector,
                    )

                if item.fingerprint is None:
                    logger.info(
                        "[item %d] No fingerprint stored, skipping fallback",
                        item.id,
                    )
                    return None
                text = self.matcher.match(page, item.fingerprint)
                if text:
                    logger.info(
                        "[item %d] Fingerprint fallback got %r",
                        item.id,
                        text,
                    )
                return text
        except (NetworkError, ExtractionError):
            raise
        except Exception as exc:
            raise ExtractionError(
                f"dynamic extraction failed for item {item.id}: {exc}"
            ) from exc
