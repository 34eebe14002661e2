"""
ePack Export — Configuration & Constants

Every URL, cache key, loader timing and behaviour toggle lives here.
No hardcoded values in extraction or orchestration logic.

Usage:
    from epack_export.config import settings
"""

from __future__ import annotations

from enum import Enum

from pydantic_settings import BaseSettings


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class RulesDisplay(str, Enum):
    """How a rules-table denominator is rendered in the Serial column."""
    UNKNOWN_NUMERATOR = "unknownNumerator"  # "?/149"
    DENOM_ONLY = "denomOnly"                # "/149"


class ExportMode(str, Enum):
    """Which page layout is being exported."""
    COLLECTION = "collection"
    CHECKLIST = "checklist"


class ExportStatus(str, Enum):
    """Terminal state of one export run."""
    EXPORTED = "exported"
    EMPTY = "empty"
    FAILED = "failed"
    BUSY = "busy"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Central configuration for ePack Export.

    Loads from environment variables with fallback defaults.
    """

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # -----------------------------------------------------------------------
    # Serial rules source
    # -----------------------------------------------------------------------
    RULES_URL: str = (
        "https://raw.githubusercontent.com/jacobsfootmib-ux/"
        "upperdeck-epack-export/main/rules.json"
    )
    RULES_CACHE_KEY: str = "epack_serial_rules_v1"
    RULES_FETCH_TIMEOUT_SECONDS: float = 10.0

    # -----------------------------------------------------------------------
    # Persisted cache
    # -----------------------------------------------------------------------
    DATABASE_URL: str = "sqlite+aiosqlite:///epack_export.db"

    # -----------------------------------------------------------------------
    # Page
    # -----------------------------------------------------------------------
    EPACK_BASE_URL: str = "https://www.upperdeckepack.com"
    GROUP_SELECTOR: str = ".group"

    # -----------------------------------------------------------------------
    # Infinite-scroll loader (collection mode)
    # -----------------------------------------------------------------------
    SCROLL_WAIT_MS: int = 700
    SCROLL_IDLE_LIMIT: int = 12
    SCROLL_MAX_PASSES: int = 5
    SCROLL_STEP: float = 0.9

    # -----------------------------------------------------------------------
    # Extraction toggles
    # -----------------------------------------------------------------------
    PHYSICAL_CHECKMARK_MEANS_YES: bool = False

    # -----------------------------------------------------------------------
    # Output / browser
    # -----------------------------------------------------------------------
    EXPORT_OUTPUT_DIR: str = "."
    BROWSER_PROFILE_DIR: str = ".epack-profile"
    HEADLESS: bool = False
    PAGE_LOAD_TIMEOUT_MS: int = 30000

    LOG_LEVEL: str = "INFO"


# Singleton instance
settings = Settings()
