# src/scrapers/static_extractor.py

"""First extraction tier: plain HTTP fetch plus a CSS selector."""

from src.scrapers.base_scraper import BaseScraper
from src.scrapers.rendering_engine import SoupPage


class StaticExtractor(BaseScraper):
    """Fetch raw markup and read the selector's first match."""

    def __init__(self) -> None:
        super().__init__("static")

    def extract(self, url: str, selector: str) -> str | None:
        """Return the trimmed text of the first match, or ``None``.

        ``None`` means the page loaded but the selector found nothing
        usable; it lets the pipeline move on to the dynamic tier.

        Raises:
            NetworkError: when the page could not be fetched.
        """
        page = SoupPage(self._fetch_text(url))
        if page.count(selector) == 0:
            self.logger.info(
                "[static] Selector %r matched nothing on %s",
                selector,
                url,
            )
            return None

        text = page.first_text(selector)
        if not text:
            self.logger.info(
                "[static] Selector %r matched but text is empty on %s",
                selector,
                url,
            )
            return None

        self.logger.info("[static] Got %r from %s", text, url)
        return text
