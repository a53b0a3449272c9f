#!/usr/bin/env python3
"""Download every remote emote into the on-disk cache directory."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import shutil
import time
from pathlib import Path
from typing import Mapping, Sequence, Tuple

import aiohttp
from dotenv import load_dotenv

from emotebot.remote import DEFAULT_LISTING_URL, RemoteEmoteError, fetch_listing_payload

logger = logging.getLogger("emotebot.fetch")

PROGRESS_INTERVAL = 1.0


def _download_targets(payload: Mapping[str, object], cache_dir: Path) -> Sequence[Tuple[str, Path]]:
    targets = []
    for entry in payload.get("emoticons") or []:
        if not isinstance(entry, Mapping):
            continue
        name = str(entry.get("regex") or "").strip()
        images = entry.get("images")
        url = images.get("url") if isinstance(images, Mapping) else None
        if not name or not url:
            continue
        targets.append((str(url).replace("1.0", "3.0"), cache_dir / f"{name.lower()}.png"))
    return targets


async def _save_emote(session: aiohttp.ClientSession, url: str, path: Path) -> bool:
    try:
        async with session.get(url) as resp:
            if resp.status != 200:
                logger.debug("Skipping %s (%s)", url, resp.status)
                return False
            path.write_bytes(await resp.read())
            return True
    except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
        logger.debug("Failed to save %s: %s", url, exc)
        return False


async def fetch_all(cache_dir: Path, url: str, client_id: str, concurrency: int, timeout: float) -> int:
    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout)) as session:
        logger.info("Loading URLs...")
        payload = await fetch_listing_payload(session, url, client_id, timeout=timeout)
        targets = _download_targets(payload, cache_dir)
        logger.info("%s remote emotes available.", len(targets))

        if cache_dir.exists():
            shutil.rmtree(cache_dir)
        cache_dir.mkdir(parents=True, exist_ok=True)

        logger.info("Starting download...")
        semaphore = asyncio.Semaphore(max(1, concurrency))
        done = 0
        saved = 0
        last_report = time.monotonic()

        async def _worker(target_url: str, path: Path) -> None:
            nonlocal done, saved, last_report
            async with semaphore:
                if await _save_emote(session, target_url, path):
                    saved += 1
            done += 1
            now = time.monotonic()
            if now - last_report >= PROGRESS_INTERVAL:
                logger.info("%s/%s (%.0f%%)", done, len(targets), 100.0 * done / max(1, len(targets)))
                last_report = now

        await asyncio.gather(*(_worker(target_url, path) for target_url, path in targets))
        logger.info("Done: saved %s of %s emotes to %s.", saved, len(targets), cache_dir)
        return saved


def main() -> None:
    load_dotenv()
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--cache-dir",
        type=Path,
        default=Path(os.getenv("EMOTEBOT_REMOTE_CACHE_DIR", "assets/twitchemotes")),
    )
    parser.add_argument("--url", default=os.getenv("EMOTEBOT_REMOTE_LISTING_URL") or DEFAULT_LISTING_URL)
    parser.add_argument("--client-id", default=os.getenv("EMOTEBOT_REMOTE_CLIENT_ID", ""))
    parser.add_argument("--concurrency", type=int, default=8)
    parser.add_argument("--timeout", type=float, default=60.0)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    if not args.client_id:
        raise SystemExit("Set EMOTEBOT_REMOTE_CLIENT_ID or pass --client-id.")
    try:
        asyncio.run(fetch_all(args.cache_dir, args.url, args.client_id, args.concurrency, args.timeout))
    except RemoteEmoteError as exc:
        raise SystemExit(str(exc))


if __name__ == "__main__":
    main()
