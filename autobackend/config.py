"""
Configuration module for the Auto Backend API.

This module centralizes environment-based configuration. Values are loaded from
environment variables (and a local .env file if present), with safe defaults
where appropriate.

Environment variables:
- PORT: Listen port (default: 3000)
- HOST: Listen address (default: 0.0.0.0)
- APP_ENV / NODE_ENV: Operating-mode label (default: development)
- GOOGLE_API_KEY / GEMINI_API_KEY: Gemini API key (required to start, sensitive)
- GEMINI_MODEL: Gemini model id (default: gemini-2.5-flash)
- GEMINI_API_BASE: Gemini REST base URL
- GENERATION_TEMPERATURE: Sampling temperature for generation (default: 0.1)
- GENERATION_TIMEOUT_S: HTTP timeout for the generation call (default: 300)
- CORS_ORIGINS: Comma-separated allowed origins (default: *)
"""
from __future__ import annotations

import os
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from a .env file if present.
load_dotenv()


def _get_int_env(name: str, default: int) -> Optional[int]:
    """Parse an integer environment variable; None when it is set but not an integer."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val.strip())
    except ValueError:
        return None


def _get_float_env(name: str, default: float) -> float:
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return float(val.strip())
    except ValueError:
        return default


def _get_list_env(name: str, default: str) -> List[str]:
    raw = os.getenv(name) or default
    return [item.strip() for item in raw.split(",") if item.strip()]


# PUBLIC_INTERFACE
class Settings:
    """Application settings loaded from environment variables."""

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    # None when PORT is set to something that is not an integer; see check_startup.
    PORT: Optional[int] = _get_int_env("PORT", 3000)
    ENVIRONMENT: str = os.getenv("APP_ENV") or os.getenv("NODE_ENV") or "development"

    # CORS
    CORS_ORIGINS: List[str] = _get_list_env("CORS_ORIGINS", "*")

    # Gemini generation backend
    GOOGLE_API_KEY: Optional[str] = os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY") or None
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    GEMINI_API_BASE: str = os.getenv(
        "GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta"
    ).rstrip("/")
    GENERATION_TEMPERATURE: float = _get_float_env("GENERATION_TEMPERATURE", 0.1)
    GENERATION_TIMEOUT_S: float = _get_float_env("GENERATION_TIMEOUT_S", 300.0)

    # PUBLIC_INTERFACE
    def gemini_is_configured(self) -> bool:
        """Return True if a non-blank Gemini API key is present."""
        return bool((self.GOOGLE_API_KEY or "").strip())


# PUBLIC_INTERFACE
def check_startup(config: Settings) -> List[str]:
    """
    Return the list of problems that must prevent the server from starting.

    An empty list means the configuration is usable. The composition root
    decides what to do with the result; nothing here raises or exits.
    """
    problems: List[str] = []
    if not config.gemini_is_configured():
        problems.append("GOOGLE_API_KEY is not set in the environment variables")
    if config.PORT is None:
        problems.append(f"PORT must be an integer, got {os.getenv('PORT')!r}")
    elif not 0 < config.PORT < 65536:
        problems.append(f"PORT must be between 1 and 65535, got {config.PORT}")
    return problems


# Singleton-like settings instance for convenient import across the app
settings = Settings()
