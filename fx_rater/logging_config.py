"""Centralised logging configuration utilities."""
from __future__ import annotations

import logging
import os
from typing import Union


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_LEVEL = logging.INFO


def resolve_level(level: Union[int, str, None]) -> int:
    env_level = os.getenv("LOG_LEVEL")
    if env_level:
        level = env_level
    if level is None:
        return DEFAULT_LEVEL
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).strip().upper(), DEFAULT_LEVEL)


def configure_logging(level: Union[int, str, None] = DEFAULT_LEVEL) -> None:
    """Configure root logging if it has not been configured yet."""

    if logging.getLogger().handlers:
        return

    logging.basicConfig(level=resolve_level(level), format=LOG_FORMAT)
