"""In-memory index of the locally bundled emote assets."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional

from .models import Emote

logger = logging.getLogger("emotebot.catalog")


class CatalogLoadError(Exception):
    """Raised when the emote assets cannot be loaded as a whole."""


class EmoteCatalog:
    """Case-insensitive lookup of emotes loaded once at startup."""

    def __init__(self, emotes: Iterable[Emote] = ()):
        self._emotes: List[Emote] = []
        self._lookup: Dict[str, Emote] = {}
        for emote in emotes:
            self._add(emote)

    @classmethod
    def load(cls, directories: Iterable[Path]) -> "EmoteCatalog":
        """Read every regular file in the given directories.

        Any unreadable directory or file aborts the whole load.
        """
        catalog = cls()
        for directory in directories:
            directory = Path(directory)
            try:
                entries = sorted(directory.iterdir(), key=lambda entry: entry.name)
            except OSError as exc:
                raise CatalogLoadError(f"Could not read emote directory {directory}: {exc}") from exc

            for entry in entries:
                if not entry.is_file():
                    continue
                try:
                    entry.name.encode("utf-8")
                except UnicodeEncodeError as exc:
                    raise CatalogLoadError(
                        f"Emote file name in {directory} is not valid text: {entry.name!r}"
                    ) from exc
                try:
                    payload = entry.read_bytes()
                except OSError as exc:
                    raise CatalogLoadError(f"Could not read emote file {entry}: {exc}") from exc
                catalog._add(
                    Emote(
                        name=entry.stem.lower(),
                        payload=payload,
                        file_name=entry.name,
                        path=entry,
                        category=directory.name,
                    )
                )
            logger.debug("Loaded emotes from %s (%s total).", directory, catalog.count())
        return catalog

    def _add(self, emote: Emote) -> None:
        key = emote.name.lower()
        existing = self._lookup.get(key)
        if existing is not None:
            logger.warning(
                "Duplicate emote name '%s': keeping %s, ignoring %s",
                key,
                existing.file_name,
                emote.file_name,
            )
            return
        self._lookup[key] = emote
        self._emotes.append(emote)

    def find_by_name(self, name: str) -> Optional[Emote]:
        if not name:
            return None
        return self._lookup.get(name.lower())

    def count(self) -> int:
        return len(self._emotes)

    def __len__(self) -> int:
        return len(self._emotes)

    def __iter__(self) -> Iterator[Emote]:
        return iter(self._emotes)


__all__ = ["CatalogLoadError", "EmoteCatalog"]
