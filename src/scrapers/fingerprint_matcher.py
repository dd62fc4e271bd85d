# src/scrapers/fingerprint_matcher.py

"""Relocate a value from its stored structural path.

The fingerprint is turned into one composite CSS selector, e.g.::

    body main:nth-of-type(1) div.product.card:nth-of-type(2) span.price

and accepted only when it resolves to exactly one element.  Zero or
several matches both mean "not found": guessing between candidates
would silently track the wrong value.
"""

import logging

from soupsieve import escape as css_escape

from src.models.fingerprint import Fingerprint, NodeDescriptor
from src.scrapers.rendering_engine import RenderedPage

logger = logging.getLogger("value_tracker.fingerprint")


def selector_fragment(node: NodeDescriptor) -> str:
    """CSS compound selector for one node descriptor."""
    fragment = node.tag
    for cls in node.classes:
        fragment += "." + css_escape(cls)
    if node.nth_of_type is not None:
        fragment += f":nth-of-type({node.nth_of_type})"
    return fragment


def build_composite_selector(fingerprint: Fingerprint) -> str:
    """Join node fragments with descendant combinators."""
    return " ".join(selector_fragment(node) for node in fingerprint.path)


class FingerprintMatcher:
    """Resolve a fingerprint against a rendered page."""

    def match(
        self,
        page: RenderedPage,
        fingerprint: Fingerprint,
    ) -> str | None:
        """Text of the single matching element, else ``None``."""
        selector = build_composite_selector(fingerprint)
        count = page.count(selector)
        logger.info(
            "Fingerprint selector %r matched %d element(s)",
            selector,
            count,
        )
        if count != 1:
            return None

        text = page.first_text(selector)
        if not text:
            logger.info("Fingerprint match has empty text")
            return None
        return text
