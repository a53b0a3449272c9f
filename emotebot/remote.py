"""Remote emote resolution backed by an on-disk cache and the provider API."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import aiohttp

from .models import Emote, EmoteRef

logger = logging.getLogger("emotebot.remote")

MAX_SEARCH_RESULTS = 50
DEFAULT_LISTING_URL = "https://api.twitch.tv/kraken/chat/emoticons"
DEFAULT_IMAGE_URL = "https://static-cdn.jtvnw.net/emoticons/v1/{id}/3.0"
LISTING_ACCEPT = "application/vnd.twitchtv.v5+json"
EMOTE_NAME_PATTERN = re.compile(r"\w+")


class RemoteEmoteError(Exception):
    """Raised when a remote emote or listing cannot be fetched or read."""


def parse_listing(payload: Mapping[str, object]) -> Dict[str, str]:
    """Return the ``name -> id`` table from a bulk listing response."""
    emoticons = payload.get("emoticons") if isinstance(payload, Mapping) else None
    if not isinstance(emoticons, list):
        raise RemoteEmoteError("Emote listing is missing the 'emoticons' array.")

    table: Dict[str, str] = {}
    for entry in emoticons:
        if not isinstance(entry, Mapping):
            continue
        name = str(entry.get("regex") or "").strip()
        emote_id = entry.get("id")
        if not name or emote_id is None:
            continue
        table.setdefault(name, str(emote_id))
    return table


def load_listing_file(path: Path) -> Dict[str, str]:
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise RemoteEmoteError(f"Could not read emote listing {path}: {exc}") from exc
    return parse_listing(payload)


async def fetch_listing_payload(
    session: aiohttp.ClientSession,
    url: str,
    client_id: str,
    *,
    timeout: float = 10.0,
) -> Mapping[str, object]:
    headers = {"Accept": LISTING_ACCEPT, "Client-ID": client_id}
    try:
        async with session.get(url, headers=headers, timeout=aiohttp.ClientTimeout(total=timeout)) as resp:
            text = await resp.text()
            if resp.status // 100 != 2:
                raise RemoteEmoteError(_describe_api_error(resp.status, text))
    except aiohttp.ClientError as exc:
        raise RemoteEmoteError(f"Emote listing request failed: {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise RemoteEmoteError(f"Emote listing is not valid JSON: {exc}") from exc


async def fetch_listing(
    session: aiohttp.ClientSession,
    url: str,
    client_id: str,
    *,
    timeout: float = 10.0,
) -> Dict[str, str]:
    payload = await fetch_listing_payload(session, url, client_id, timeout=timeout)
    return parse_listing(payload)


def _describe_api_error(status: int, text: str) -> str:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = None
    if isinstance(data, dict) and "message" in data:
        return "API {} error (status {}): {}".format(
            data.get("error", "unknown"), data.get("status", status), data.get("message")
        )
    return f"API error (status {status}): {text[:200]}"


class RemoteEmoteResolver:
    """Resolve emote names to image bytes.

    The on-disk cache is consulted first; the network is only hit for names
    present in the identifier table. The table is never mutated after
    construction.
    """

    def __init__(
        self,
        cache_dir: Path,
        identifiers: Optional[Mapping[str, str]] = None,
        *,
        image_url: str = DEFAULT_IMAGE_URL,
        timeout: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.cache_dir = Path(cache_dir)
        self.image_url = image_url
        self.timeout = timeout
        self._identifiers: Dict[str, str] = dict(identifiers or {})
        self._lowered: Dict[str, str] = {}
        for name in self._identifiers:
            self._lowered.setdefault(name.lower(), name)
        self._session = session
        self._owns_session = session is None

    def __len__(self) -> int:
        return len(self._identifiers)

    def search(self, query: str, limit: int = 10, exact_match: bool = False) -> List[EmoteRef]:
        limit = min(limit, MAX_SEARCH_RESULTS)
        if limit < 1:
            return []
        needle = query.strip().lower()
        results: List[EmoteRef] = []
        for name, emote_id in self._identifiers.items():
            lowered = name.lower()
            matched = lowered == needle if exact_match else needle in lowered
            if matched:
                results.append(EmoteRef(name=name, id=emote_id))
                if len(results) >= limit:
                    break
        return results

    def cache_path(self, name: str) -> Path:
        return self.cache_dir / f"{name.lower()}.png"

    async def resolve(self, name: str) -> Optional[Emote]:
        # Names become cache file names, so nothing but word characters.
        if not name or not EMOTE_NAME_PATTERN.fullmatch(name):
            return None

        cached = self.cache_path(name)
        if cached.is_file():
            try:
                payload = cached.read_bytes()
            except OSError as exc:
                raise RemoteEmoteError(f"Could not read cached emote {cached}: {exc}") from exc
            logger.debug("Remote emote %s served from cache.", name)
            return Emote(name=name.lower(), payload=payload, file_name=cached.name, path=cached, category="remote")

        canonical = self._lowered.get(name.lower())
        if canonical is None:
            return None

        emote_id = self._identifiers[canonical]
        payload = await self._fetch_bytes(self.image_url.format(id=emote_id))
        logger.debug("Remote emote %s fetched (id %s, %s bytes).", canonical, emote_id, len(payload))
        return Emote(name=name.lower(), payload=payload, file_name=f"{canonical.lower()}.png", category="remote")

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def _fetch_bytes(self, url: str) -> bytes:
        session = await self._get_session()
        try:
            async with session.get(url, timeout=aiohttp.ClientTimeout(total=self.timeout)) as resp:
                if resp.status != 200:
                    raise RemoteEmoteError(f"Emote fetch failed ({resp.status}): {url}")
                return await resp.read()
        except aiohttp.ClientError as exc:
            raise RemoteEmoteError(f"Emote fetch error for {url}: {exc}") from exc

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None


__all__ = [
    "DEFAULT_IMAGE_URL",
    "DEFAULT_LISTING_URL",
    "MAX_SEARCH_RESULTS",
    "RemoteEmoteError",
    "RemoteEmoteResolver",
    "fetch_listing",
    "fetch_listing_payload",
    "load_listing_file",
    "parse_listing",
]
