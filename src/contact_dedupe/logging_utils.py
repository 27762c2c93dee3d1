from __future__ import annotations

import logging
import os
from typing import Optional

from .config_loader import PipelineConfig


def _resolve_level(level_name: str) -> int:
    """
    Convert a case-insensitive logging level string to its numeric value.

    Falls back to logging.INFO when the provided string is not a valid level.
    """
    normalized = (level_name or "INFO").upper()
    if normalized.isdigit():
        return int(normalized)
    level = getattr(logging, normalized, logging.INFO)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(config: PipelineConfig, level_override: Optional[str] = None) -> None:
    """
    Configure the root logger for command-line runs, by precedence:

    1. ``CONTACT_DEDUPE_LOG_LEVEL`` environment variable (if set)
    2. ``level_override`` provided by the caller (e.g., CLI flag)
    3. ``config.logging.level`` from ``config.yaml``
    4. Default ``WARNING`` level

    The library modules only create loggers; nothing below the CLI calls this.
    """
    env_level = os.getenv("CONTACT_DEDUPE_LOG_LEVEL")
    effective_level_name = env_level or level_override or config.logging.level or "WARNING"
    level_value = _resolve_level(effective_level_name)

    root_logger = logging.getLogger()
    if root_logger.handlers:
        root_logger.setLevel(level_value)
    else:
        logging.basicConfig(
            level=level_value, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
        )
