# src/config/settings.py

"""Central configuration for the value_tracker engine."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    """Read a boolean flag from the environment ("false"/"0" disable)."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in ("false", "0", "no", "off", "")


class Settings:
    """Central configuration for the value_tracker engine."""

    # --- Static tier ---
    REQUEST_TIMEOUT: int = 15           # Seconds before a request times out
    STATIC_RETRIES: int = 1             # Extra attempts after the first GET
    RETRY_DELAY: float = 1.0            # Seconds between GET attempts
    USER_AGENT: str = (
        "Mozilla/5.0 (compatible; ValueTracker/0.1; "
        "+https://example.com/value-tracker)"
    )
    CAPTCHA_KEYWORDS: list[str] = [
        "captcha",
        "verify you are human",
        "unusual traffic",
        "automated requests",
    ]

    # --- Dynamic tier ---
    ENABLE_DYNAMIC: bool = _env_flag("ENABLE_DYNAMIC_SCRAPE", True)
    NAVIGATION_TIMEOUT_MS: int = 30_000  # page.goto bound
    SETTLE_DELAY_MS: int = 3_000         # hydration buffer after load
    BROWSER_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/131.0.0.0 Safari/537.36"
    )
    BROWSER_ARGS: list[str] = [
        "--no-sandbox",
        "--disable-dev-shm-usage",
        "--disable-blink-features=AutomationControlled",
    ]

    # --- Fingerprints ---
    FINGERPRINT_MAX_DEPTH: int = 8
    FINGERPRINT_MAX_CLASSES: int = 3

    # --- Health / repair ---
    FAILURE_THRESHOLD: int = 3          # Consecutive failures before repair
    AUTO_REPORT_FAILURES: bool = _env_flag("AUTO_REPORT_FAILURES", False)
    REPAIR_TIMEOUT: float = 60.0        # Seconds allowed for a proposal
    REPAIR_ENDPOINT: str = os.getenv("REPAIR_ENDPOINT", "")
    REPAIR_API_KEY: str = os.getenv("REPAIR_API_KEY", "")

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Logging ---
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "WARNING")  # console threshold
    LOG_RETENTION: int = 30             # run log files kept on disk

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DB_PATH: Path = Path(
        os.getenv("DATABASE_PATH", str(BASE_DIR / "data" / "tracker.db"))
    )
    LOGS_DIR: Path = BASE_DIR / "logs"

    # --- Value types / comparisons ---
    VALUE_TYPES: tuple[str, ...] = ("price", "number", "text")
    COMPARISONS: tuple[str, ...] = ("lt", "lte", "gt", "gte", "eq", "neq")
