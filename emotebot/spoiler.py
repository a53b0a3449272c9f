"""Per-channel spoiler mode shared by every session."""

from __future__ import annotations

import logging
import threading
from typing import FrozenSet, Set

logger = logging.getLogger("emotebot.spoiler")

SPOILER_MARKER = "||"


def spoilerize(text: str) -> str:
    """Wrap text in spoiler markers, adding only the missing side(s)."""
    starts = text.startswith(SPOILER_MARKER)
    ends = text.endswith(SPOILER_MARKER)
    if starts and ends:
        return text
    wrapped = text
    if not starts:
        wrapped = f"{SPOILER_MARKER} {wrapped.strip()}"
    if not ends:
        wrapped = f"{wrapped.strip()} {SPOILER_MARKER}"
    return wrapped


def is_trivial_chunk(text: str) -> bool:
    """True for text that is empty or nothing but a spoiler marker pair."""
    stripped = text.strip()
    if not stripped:
        return True
    if stripped.startswith(SPOILER_MARKER) and stripped.endswith(SPOILER_MARKER):
        return not stripped[len(SPOILER_MARKER):-len(SPOILER_MARKER)].strip()
    return False


class SpoilerRegistry:
    """Set of channel ids with spoiler mode enabled."""

    def __init__(self) -> None:
        self._channels: Set[int] = set()
        self._lock = threading.Lock()

    def is_enabled(self, channel_id: int) -> bool:
        with self._lock:
            return channel_id in self._channels

    def toggle(self, channel_id: int) -> bool:
        with self._lock:
            if channel_id in self._channels:
                self._channels.discard(channel_id)
                enabled = False
            else:
                self._channels.add(channel_id)
                enabled = True
        logger.info("Spoiler mode %s for channel %s.", "enabled" if enabled else "disabled", channel_id)
        return enabled

    def enabled_channels(self) -> FrozenSet[int]:
        with self._lock:
            return frozenset(self._channels)

    @staticmethod
    def wrap(text: str) -> str:
        return spoilerize(text)


__all__ = ["SPOILER_MARKER", "SpoilerRegistry", "is_trivial_chunk", "spoilerize"]
