# tests/test_fingerprint.py

"""Tests for fingerprint validation and the fingerprint matcher."""

import json
import unittest

from src.config.settings import Settings
from src.errors import InvalidFingerprintError
from src.models.fingerprint import Fingerprint, NodeDescriptor
from src.scrapers.fingerprint_matcher import (
    FingerprintMatcher,
    build_composite_selector,
    selector_fragment,
)
from src.scrapers.rendering_engine import SoupPage

_PRODUCT_PAGE = """
<html><body>
  <main>
    <div class="product card"><span class="price">$10.00</span></div>
    <div class="product card"><span class="price">$20.00</span></div>
    <div class="product card"><span class="price"> </span></div>
  </main>
</body></html>
"""


def _fp(*nodes: dict[str, object]) -> Fingerprint:
    return Fingerprint.from_json({"path": list(nodes)})


class TestFingerprintValidation(unittest.TestCase):
    """Fingerprint.from_json accepts good shapes and rejects bad ones."""

    def test_parses_json_string(self) -> None:
        """A JSON string with a path list parses into descriptors."""
        raw = json.dumps({"path": [
            {"tag": "div", "classes": ["product"], "nthOfType": 2},
            {"tag": "span", "classes": [], "nthOfType": None},
        ]})
        fp = Fingerprint.from_json(raw)
        self.assertEqual(len(fp), 2)
        self.assertEqual(
            fp.path[0],
            NodeDescriptor(tag="div", classes=("product",), nth_of_type=2),
        )
        self.assertIsNone(fp.path[1].nth_of_type)

    def test_accepts_bare_node_list(self) -> None:
        """A bare list of nodes is treated as the path."""
        fp = Fingerprint.from_json([{"tag": "span"}])
        self.assertEqual(fp.path[0].tag, "span")

    def test_round_trip_preserves_fields(self) -> None:
        """Encoding keeps node order and every field exactly."""
        raw = {"path": [
            {"tag": "main", "classes": [], "nthOfType": 1},
            {"tag": "div", "classes": ["a", "b", "c"], "nthOfType": 3},
        ]}
        fp = Fingerprint.from_json(raw)
        self.assertEqual(fp.to_dict(), raw)
        self.assertEqual(Fingerprint.from_json(fp.to_json()), fp)

    def test_rejects_empty_path(self) -> None:
        """An empty path is invalid."""
        with self.assertRaises(InvalidFingerprintError):
            Fingerprint.from_json({"path": []})

    def test_rejects_missing_path(self) -> None:
        """An object without a path is invalid."""
        with self.assertRaises(InvalidFingerprintError):
            Fingerprint.from_json({"nodes": [{"tag": "div"}]})

    def test_rejects_bad_json(self) -> None:
        """Unparseable JSON is invalid."""
        with self.assertRaises(InvalidFingerprintError):
            Fingerprint.from_json("{not json")

    def test_rejects_excess_depth(self) -> None:
        """Paths deeper than the configured limit are rejected."""
        nodes = [{"tag": "div"}] * (Settings.FINGERPRINT_MAX_DEPTH + 1)
        with self.assertRaises(InvalidFingerprintError):
            Fingerprint.from_json({"path": nodes})

    def test_rejects_too_many_classes(self) -> None:
        """More than three classes on a node is rejected."""
        with self.assertRaises(InvalidFingerprintError):
            _fp({"tag": "div", "classes": ["a", "b", "c", "d"]})

    def test_rejects_bad_nth_of_type(self) -> None:
        """nthOfType must be a positive integer."""
        for bad in (0, -1, "2", 1.5, True):
            with self.subTest(nth=bad):
                with self.assertRaises(InvalidFingerprintError):
                    _fp({"tag": "div", "nthOfType": bad})

    def test_rejects_bad_tag(self) -> None:
        """Tags must be plain element names."""
        for bad in ("", None, "div.x", "1div", "div > span"):
            with self.subTest(tag=bad):
                with self.assertRaises(InvalidFingerprintError):
                    _fp({"tag": bad})

    def test_rejects_blank_class(self) -> None:
        """Blank class names are rejected."""
        with self.assertRaises(InvalidFingerprintError):
            _fp({"tag": "div", "classes": ["ok", " "]})

    def test_invalid_fingerprint_is_value_error(self) -> None:
        """Callers can catch validation failures as ValueError."""
        with self.assertRaises(ValueError):
            Fingerprint.from_json({"path": "div"})


class TestCompositeSelector(unittest.TestCase):
    """Selector construction from node descriptors."""

    def test_fragment_with_classes_and_nth(self) -> None:
        """Tag, classes and nth-of-type combine into one compound."""
        node = NodeDescriptor(
            tag="div", classes=("product", "card"), nth_of_type=2,
        )
        self.assertEqual(
            selector_fragment(node), "div.product.card:nth-of-type(2)",
        )

    def test_fragment_tag_only(self) -> None:
        """A bare tag stays bare."""
        self.assertEqual(selector_fragment(NodeDescriptor(tag="span")), "span")

    def test_fragment_escapes_class_names(self) -> None:
        """Class names with CSS-special characters are escaped."""
        node = NodeDescriptor(tag="div", classes=("w-1/2",))
        self.assertEqual(selector_fragment(node), "div.w-1\\/2")

    def test_descendant_combinators(self) -> None:
        """Fragments are joined with spaces."""
        fp = _fp(
            {"tag": "main"},
            {"tag": "div", "classes": ["product"], "nthOfType": 2},
            {"tag": "span", "classes": ["price"]},
        )
        self.assertEqual(
            build_composite_selector(fp),
            "main div.product:nth-of-type(2) span.price",
        )


class TestFingerprintMatcher(unittest.TestCase):
    """The matcher only accepts an exact single match."""

    def setUp(self) -> None:
        self.page = SoupPage(_PRODUCT_PAGE)
        self.matcher = FingerprintMatcher()

    def test_single_match_returns_text(self) -> None:
        """Exactly one element yields its trimmed text."""
        fp = _fp(
            {"tag": "main"},
            {"tag": "div", "classes": ["product"], "nthOfType": 2},
            {"tag": "span", "classes": ["price"]},
        )
        self.assertEqual(self.matcher.match(self.page, fp), "$20.00")

    def test_ambiguous_match_returns_none(self) -> None:
        """Several matches are never resolved by guessing."""
        fp = _fp(
            {"tag": "div", "classes": ["product"]},
            {"tag": "span", "classes": ["price"]},
        )
        self.assertEqual(self.page.count(build_composite_selector(fp)), 3)
        self.assertIsNone(self.matcher.match(self.page, fp))

    def test_zero_matches_returns_none(self) -> None:
        """A path that no longer exists yields None."""
        fp = _fp({"tag": "section"}, {"tag": "span", "classes": ["price"]})
        self.assertIsNone(self.matcher.match(self.page, fp))

    def test_single_empty_match_returns_none(self) -> None:
        """A unique match with blank text yields None."""
        fp = _fp(
            {"tag": "div", "classes": ["product"], "nthOfType": 3},
            {"tag": "span", "classes": ["price"]},
        )
        self.assertIsNone(self.matcher.match(self.page, fp))


if __name__ == "__main__":
    unittest.main()
