# src/models/fingerprint.py

"""Structural DOM path used to relocate a value when its selector breaks.

A fingerprint is recorded once, when the user picks the element, as the
chain of ancestors down to the target.  It is stored as JSON of the form::

    {"path": [{"tag": "div", "classes": ["product"], "nthOfType": 2}, ...]}

:meth:`Fingerprint.from_json` is the only way loosely-typed data becomes a
:class:`Fingerprint`; malformed input is rejected there so the matcher
never sees it.
"""

import json
import re
from dataclasses import dataclass
from typing import Any

from src.config.settings import Settings
from src.errors import InvalidFingerprintError

_TAG_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9-]*$")


@dataclass(frozen=True)
class NodeDescriptor:
    """One element on the ancestor chain."""

    tag: str
    classes: tuple[str, ...] = ()
    nth_of_type: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the persisted JSON node shape."""
        return {
            "tag": self.tag,
            "classes": list(self.classes),
            "nthOfType": self.nth_of_type,
        }


@dataclass(frozen=True)
class Fingerprint:
    """Ordered, outermost-first chain of node descriptors."""

    path: tuple[NodeDescriptor, ...]

    def __len__(self) -> int:
        return len(self.path)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the persisted JSON shape."""
        return {"path": [node.to_dict() for node in self.path]}

    def to_json(self) -> str:
        """Serialise to a compact JSON string for storage."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json(cls, raw: Any) -> "Fingerprint":
        """Validate a JSON string, dict or bare node list.

        Raises:
            InvalidFingerprintError: on any shape, depth or field problem.
        """
        data = raw
        if isinstance(raw, (str, bytes)):
            try:
                data = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise InvalidFingerprintError(
                    f"fingerprint is not valid JSON: {exc}"
                ) from exc

        nodes = data.get("path") if isinstance(data, dict) else data
        if not isinstance(nodes, list) or not nodes:
            raise InvalidFingerprintError(
                "fingerprint path must be a non-empty list"
            )
        if len(nodes) > Settings.FINGERPRINT_MAX_DEPTH:
            raise InvalidFingerprintError(
                f"fingerprint depth {len(nodes)} exceeds "
                f"{Settings.FINGERPRINT_MAX_DEPTH}"
            )
        return cls(path=tuple(_parse_node(n, i) for i, n in enumerate(nodes)))


def _parse_node(node: Any, index: int) -> NodeDescriptor:
    """Validate a single raw node dict."""
    if not isinstance(node, dict):
        raise InvalidFingerprintError(f"node {index} is not an object")

    tag = node.get("tag")
    if not isinstance(tag, str) or not _TAG_RE.match(tag):
        raise InvalidFingerprintError(f"node {index} has invalid tag {tag!r}")

    raw_classes = node.get("classes") or []
    if not isinstance(raw_classes, list) or not all(
        isinstance(c, str) for c in raw_classes
    ):
        raise InvalidFingerprintError(
            f"node {index} classes must be a list of strings"
        )
    if any(not c.strip() or " " in c for c in raw_classes):
        raise InvalidFingerprintError(
            f"node {index} has a blank or multi-word class"
        )
    classes = tuple(raw_classes)
    if len(classes) > Settings.FINGERPRINT_MAX_CLASSES:
        raise InvalidFingerprintError(
            f"node {index} has {len(classes)} classes "
            f"(max {Settings.FINGERPRINT_MAX_CLASSES})"
        )

    nth = node.get("nthOfType")
    # bool is an int subclass; reject it explicitly
    if nth is not None and (
        isinstance(nth, bool) or not isinstance(nth, int) or nth < 1
    ):
        raise InvalidFingerprintError(
            f"node {index} nthOfType must be an integer >= 1"
        )

    return NodeDescriptor(tag=tag, classes=classes, nth_of_type=nth)
