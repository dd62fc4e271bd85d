# src/errors.py

"""Exception taxonomy for the extraction core.

A selector that resolves to nothing is *not* an exception: extractors
return ``None`` so the pipeline can fall through to the next tier and
finally record a ``missing`` snapshot.  Only failures that mean "the
page could not be read at all" are raised.
"""


class TrackerError(Exception):
    """Base class for value_tracker errors."""


class NetworkError(TrackerError):
    """Fetch or navigation failed after the retry budget was spent."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class ExtractionError(TrackerError):
    """An extraction tier failed for one item in an unexpected way."""


class ItemNotFoundError(TrackerError, LookupError):
    """No tracked item exists with the requested id."""


class InvalidFingerprintError(TrackerError, ValueError):
    """A stored fingerprint does not have the expected shape."""
