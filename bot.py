import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import aiohttp
import discord
from dotenv import load_dotenv

load_dotenv()

from emotebot.catalog import CatalogLoadError, EmoteCatalog
from emotebot.commands import CommandDispatcher
from emotebot.config import BotConfig, ConfigError, load_config
from emotebot.library import start_library_server
from emotebot.remote import RemoteEmoteError, RemoteEmoteResolver, fetch_listing, load_listing_file
from emotebot.rewrite import MessageRewriter
from emotebot.session import EmoteSession
from emotebot.spoiler import SpoilerRegistry

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logging.basicConfig(
    level=os.getenv("EMOTEBOT_LOG_LEVEL", "INFO").upper(),
    format=LOG_FORMAT,
)
logger = logging.getLogger("emotebot")
logging.getLogger("discord").setLevel(logging.WARNING)


def _attach_log_file(path: Optional[Path]) -> None:
    if path is None:
        return
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf-8")
    except OSError as exc:
        logger.warning("Unable to open log file %s: %s", path, exc)
        return
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger().addHandler(handler)


def load_emotes(config: BotConfig) -> EmoteCatalog:
    logger.info("Loading emotes...")
    catalog = EmoteCatalog.load(config.emote_directories)
    logger.info("Loaded %s emote assets.", catalog.count())
    return catalog


async def load_remote_resolver(config: BotConfig) -> RemoteEmoteResolver:
    settings = config.remote
    identifiers = {}
    try:
        if settings.listing_file is not None:
            identifiers = load_listing_file(settings.listing_file)
        elif settings.client_id:
            async with aiohttp.ClientSession() as session:
                identifiers = await fetch_listing(
                    session,
                    settings.listing_url,
                    settings.client_id,
                    timeout=settings.timeout,
                )
        else:
            logger.warning("No remote emote client id configured; only cached remote emotes are available.")
    except RemoteEmoteError as exc:
        logger.error("Could not load remote emote listing: %s", exc)
    logger.info("%s remote emotes available.", len(identifiers))
    return RemoteEmoteResolver(
        settings.cache_dir,
        identifiers,
        image_url=settings.image_url,
        timeout=settings.timeout,
    )


async def run(config: BotConfig) -> None:
    catalog = load_emotes(config)
    resolver = await load_remote_resolver(config)
    rewriter = MessageRewriter(catalog, resolver, SpoilerRegistry())
    dispatcher = CommandDispatcher()

    sessions: List[EmoteSession] = [
        EmoteSession(user, rewriter, dispatcher, www_base_url=config.www.base_url)
        for user in config.active_users
    ]
    if not sessions:
        logger.warning("No active users configured; nothing to do.")

    runner = None
    if config.www.enabled:
        logger.info("Starting web server...")
        runner = await start_library_server(
            catalog,
            config.assets_dir,
            config.pages_dir,
            config.www.host,
            config.www.port,
        )

    async def _start(session: EmoteSession) -> None:
        try:
            await session.start(session.identity.token)
        except discord.DiscordException as exc:
            logger.error("Error while starting bot for user %s: %s", session.identity.discord_id, exc)

    logger.info("Starting bots...")
    try:
        await asyncio.gather(*(_start(session) for session in sessions))
    finally:
        for session in sessions:
            if not session.is_closed():
                await session.close()
        if runner is not None:
            await runner.cleanup()
        await resolver.close()


def main() -> int:
    try:
        config = load_config()
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return 1

    logging.getLogger().setLevel(config.log_level)
    _attach_log_file(config.log_file)

    try:
        asyncio.run(run(config))
    except CatalogLoadError as exc:
        logger.error("Could not load emotes from disk: %s", exc)
        return 1
    except KeyboardInterrupt:
        pass
    logger.info("Shutting down.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
