"""Utility helpers for EmoteBot."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger("emotebot.utils")

_truthy = {"1", "true", "yes", "on"}


def int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid integer for %s=%s. Falling back to %s.", name, raw, default)
        return default


def float_from_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid float for %s=%s. Falling back to %s.", name, raw, default)
        return default


def bool_from_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _truthy


def path_from_env(name: str, default: Optional[str] = None) -> Optional[Path]:
    value = os.getenv(name, "").strip() or (default or "")
    if not value:
        return None
    return Path(value).expanduser()


def parse_name_list(raw: str) -> List[str]:
    names: List[str] = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if chunk and chunk not in names:
            names.append(chunk)
    return names


def redact(value: str) -> str:
    if not value:
        return ""
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}...{value[-2:]}"


__all__ = [
    "bool_from_env",
    "float_from_env",
    "int_from_env",
    "parse_name_list",
    "path_from_env",
    "redact",
]
