"""
Configuration Module for Voice POS
==================================

This module centralizes the configuration settings, environment variables and
constants used by the voice relay and the cashier cart. Values are read once at
import time from the process environment (a ``.env`` file at the project root
is loaded first when present).

Configuration Categories:
-------------------------
- **Model Stream**: Credential and model name for the conversational model
  that transcribes and interprets spoken orders. A missing or placeholder
  credential disables the model connection; manual cart operation keeps
  working.

- **Persistence**: Database URL for completed sales.

- **Relay Channel**: Reconnect interval (and optional jitter) used by relay
  endpoints after an unexpected close.

- **CORS Settings**: Cross-Origin Resource Sharing configuration for the
  browser pages. Defaults allow all origins for development.

Environment Variables:
----------------------
- GOOGLE_API_KEY: Model credential (default: "your_api_key_here")
- GEMINI_MODEL: Live model name (default: "models/gemini-2.0-flash-live-001")
- GEMINI_LIVE_URL: Live streaming endpoint without the key parameter
- DATABASE_URL: SQLAlchemy URL (default: "sqlite:///./orders.db")
- RELAY_RECONNECT_SECONDS: Fixed reconnect delay (default: 3)
- RELAY_RECONNECT_JITTER: Max random seconds added to the delay (default: 0)
- CORS_ORIGINS: Comma-separated allowed origins (default: "*")

Usage:
------
    from voice_pos.config import GOOGLE_API_KEY, has_usable_api_key
"""

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")


# =============================================================================
# Model Stream Configuration
# =============================================================================

# Value shipped in example .env files; treated the same as no key at all
API_KEY_PLACEHOLDER = "your_api_key_here"

GOOGLE_API_KEY: str = os.getenv("GOOGLE_API_KEY", API_KEY_PLACEHOLDER)
GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "models/gemini-2.0-flash-live-001")
GEMINI_LIVE_URL: str = os.getenv(
    "GEMINI_LIVE_URL",
    "wss://generativelanguage.googleapis.com/ws/"
    "google.ai.generativelanguage.v1alpha.GenerativeService.BidiGenerateContent",
)


def has_usable_api_key(api_key: Optional[str]) -> bool:
    """
    Return True when the credential can be used to open a model session.

    Empty values and the example placeholder both count as "not configured".
    """
    if not api_key:
        return False
    return api_key.strip() not in ("", API_KEY_PLACEHOLDER)


# =============================================================================
# Persistence Configuration
# =============================================================================

DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./orders.db")


# =============================================================================
# Relay Channel Configuration
# =============================================================================
# Endpoints retry forever on a fixed interval. There is no backoff growth and
# no retry cap; messages sent while disconnected are lost.

RELAY_PATH = "/ws"
RELAY_RECONNECT_SECONDS: float = float(os.getenv("RELAY_RECONNECT_SECONDS", "3"))
RELAY_RECONNECT_JITTER: float = float(os.getenv("RELAY_RECONNECT_JITTER", "0"))


# =============================================================================
# CORS Configuration
# =============================================================================

_cors_origins_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS: List[str] = [
    origin.strip()
    for origin in _cors_origins_env.split(",")
    if origin.strip()
] or ["*"]
