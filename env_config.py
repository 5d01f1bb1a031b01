"""
Environment Configuration Helper
================================
Centralized env var loading with fallbacks.
Numeric strategy settings live in core/scoring_contract.py; this module only
covers process-level settings (logging, AI predictor endpoint, toggle defaults).
"""

import os
import logging
from typing import Optional, Any

logger = logging.getLogger(__name__)


def get_env(*names: str, default: Any = None) -> Optional[str]:
    """
    Get environment variable with fallback names.

    Tries each name in order, returns first non-empty value.

    Example:
        get_env("AI_PREDICTOR_URL", "SIGNAL_AI_URL")
    """
    for name in names:
        value = os.getenv(name)
        if value and str(value).strip():
            return value.strip()
    return default


def get_env_bool(name: str, default: bool = False) -> bool:
    """Get boolean env var (true/false/1/0)."""
    value = os.getenv(name, "").lower().strip()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    return default


def get_env_float(name: str, default: float) -> float:
    """Get float env var, falling back on missing or unparseable values."""
    value = get_env(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={value!r}, using {default}")
        return default


def get_env_int(name: str, default: int) -> int:
    """Get int env var, falling back on missing or unparseable values."""
    value = get_env(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={value!r}, using {default}")
        return default


# ============================================================================
# CENTRALIZED CONFIG (loaded once at import)
# ============================================================================

class Config:
    """Centralized process configuration."""

    ENGINE_VERSION = "1.4.0"
    API_VERSION = "1.0"

    # Logging
    LOG_FORMAT = get_env("LOG_FORMAT", default="json")
    LOG_LEVEL = get_env("LOG_LEVEL", default="INFO").upper()

    # External AI predictor (optional)
    AI_PREDICTOR_URL = get_env("AI_PREDICTOR_URL", "SIGNAL_AI_URL")
    AI_TIMEOUT_SECONDS = get_env_float("AI_TIMEOUT_SECONDS", 1.0)

    # Context provider defaults
    CONTEXT_PROVIDER_ENABLED = get_env_bool("CONTEXT_PROVIDER_ENABLED", True)

    # Upper bound on /signals/simulate input; every cycle rescans the history
    MAX_SIMULATION_SPINS = get_env_int("MAX_SIMULATION_SPINS", 200)

    @classmethod
    def log_status(cls):
        """Log config status at boot."""
        status = {
            "engine": cls.ENGINE_VERSION,
            "log_format": cls.LOG_FORMAT,
            "ai_predictor": bool(cls.AI_PREDICTOR_URL),
            "ai_timeout_s": cls.AI_TIMEOUT_SECONDS,
            "context": cls.CONTEXT_PROVIDER_ENABLED,
            "max_sim_spins": cls.MAX_SIMULATION_SPINS,
        }

        status_str = " ".join(f"{k}={v}" for k, v in status.items())
        logger.info(f"ENV OK: {status_str}")

        return status
