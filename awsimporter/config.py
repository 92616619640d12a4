"""
Runtime settings, read from the environment.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from .input import DEFAULT_EXTERNAL_NAME_TAG

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class Settings:
    """Process-wide settings for the function."""
    region: Optional[str] = None              # None lets boto3 pick from its own config chain
    debug: bool = False
    ttl_seconds: int = 60                     # Response TTL reported to the orchestrator
    external_name_tag: str = DEFAULT_EXTERNAL_NAME_TAG
    connect_timeout: float = 5.0
    read_timeout: float = 10.0
    max_attempts: int = 1                     # Total attempts per API call; retries happen across passes
    deadline_seconds: Optional[float] = None  # Per-pass budget for tag index queries
    host: str = "0.0.0.0"
    port: int = 9443


def load_settings() -> Settings:
    """
    Load settings from environment variables.

    Returns:
        Settings with environment overrides applied

    Raises:
        ValueError: If a numeric variable cannot be parsed
    """
    return Settings(
        region=os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION") or None,
        debug=os.environ.get("IMPORTER_DEBUG", "").strip().lower() in _TRUTHY,
        ttl_seconds=_int_env("IMPORTER_TTL_SECONDS", 60),
        external_name_tag=os.environ.get("IMPORTER_EXTERNAL_NAME_TAG") or DEFAULT_EXTERNAL_NAME_TAG,
        connect_timeout=_float_env("IMPORTER_CONNECT_TIMEOUT", 5.0),
        read_timeout=_float_env("IMPORTER_READ_TIMEOUT", 10.0),
        max_attempts=_int_env("IMPORTER_MAX_ATTEMPTS", 1),
        deadline_seconds=_float_env("IMPORTER_DEADLINE_SECONDS", 0.0) or None,
        host=os.environ.get("IMPORTER_HOST", "0.0.0.0"),
        port=_int_env("IMPORTER_PORT", 9443),
    )


def configure_logging(debug: bool = False, force: bool = False) -> None:
    """Initialise the root logger; debug emits DEBUG records in addition to INFO."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        force=force,
    )
    # botocore is very chatty at DEBUG
    logging.getLogger("botocore").setLevel(logging.WARNING)


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
