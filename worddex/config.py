"""
Project-wide configuration and directory structure.

This module defines the paths used by the WordDex command-line tools and
the defaults shared across the pipeline.

Module Contents:
    APP_NAME: Application name for display purposes
    DATA_DIR: Main data directory (override with WORDDEX_DATA_DIR)
    STATE_FILE: JSON file backing the usage counters
    MAX_TEXT_LENGTH: Longest text accepted for translation
    MAX_FLASHCARD_TEXT: Longest text accepted on a flashcard
    DEFAULT_TARGET_LANGUAGE: Translation target when none is given
    DEFAULT_TIMEOUT: Seconds before a translator call is abandoned

Example:
    >>> from worddex.config import STATE_FILE
    >>> print(f"Counters stored in: {STATE_FILE}")
"""

import os
from pathlib import Path

# Application name for display and identification
APP_NAME = "WordDex"

# Main data directory (holds the counter state file)
DATA_DIR = Path(os.getenv("WORDDEX_DATA_DIR") or Path.home() / ".worddex")

# Usage counters, one JSON document
STATE_FILE = DATA_DIR / "usage_state.json"

# Input limits
MAX_TEXT_LENGTH = 5000
MAX_FLASHCARD_TEXT = 500

# Translation defaults
DEFAULT_TARGET_LANGUAGE = "en"
DEFAULT_FORCED_LANGUAGE = "auto"
DEFAULT_TIMEOUT = 30.0


def ensure_data_dir() -> Path:
    """Create the data directory if needed and return it."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    return DATA_DIR
