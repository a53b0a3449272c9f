"""Prefix commands handled on the user's own messages."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from .models import Message
from .remote import MAX_SEARCH_RESULTS, RemoteEmoteResolver
from .spoiler import SpoilerRegistry

logger = logging.getLogger("emotebot.commands")

SEARCH_LIMIT = 10


class CommandSession(Protocol):
    """What a command handler needs from the session that received the message."""

    spoilers: SpoilerRegistry
    resolver: Optional[RemoteEmoteResolver]
    www_base_url: str
    palette_enabled: bool

    async def send_text(self, channel_id: int, text: str) -> None:
        ...


class Command:
    names: Tuple[str, ...] = ()

    async def handle(self, session: CommandSession, message: Message, args: str) -> None:
        raise NotImplementedError


class SpoilerCommand(Command):
    names = ("spoiler", "spoil", "spoilermode", "spoilmode", "sm")

    async def handle(self, session: CommandSession, message: Message, args: str) -> None:
        session.spoilers.toggle(message.channel_id)


class PaletteCommand(Command):
    names = ("palette",)

    async def handle(self, session: CommandSession, message: Message, args: str) -> None:
        if not session.palette_enabled:
            logger.debug("Palette command ignored: palette disabled for this user.")
            return
        await session.send_text(message.channel_id, f"{session.www_base_url}/palette")


class SearchCommand(Command):
    names = ("search", "find")

    async def handle(self, session: CommandSession, message: Message, args: str) -> None:
        query = args.strip()
        if not query or session.resolver is None:
            return
        limit = SEARCH_LIMIT
        words = query.split()
        if len(words) > 1 and words[-1].isdigit():
            limit = min(int(words[-1]), MAX_SEARCH_RESULTS)
            query = " ".join(words[:-1])
        results = session.resolver.search(query, limit=limit)
        if results:
            text = ", ".join(ref.name for ref in results)
        else:
            text = f"No remote emotes match '{query}'."
        await session.send_text(message.channel_id, text)


DEFAULT_COMMANDS: Tuple[Command, ...] = (SpoilerCommand(), PaletteCommand(), SearchCommand())


class CommandDispatcher:
    """Fixed table of command names matched after the command prefix."""

    def __init__(self, commands: Sequence[Command] = DEFAULT_COMMANDS):
        self._table: Dict[str, Command] = {}
        for command in commands:
            for name in command.names:
                self._table.setdefault(name.lower(), command)
        self._names: List[str] = sorted(self._table, key=len, reverse=True)

    def match(self, content: str, prefix: str) -> Optional[Tuple[Command, str]]:
        if not prefix or not content.startswith(prefix):
            return None
        body = content[len(prefix):]
        lowered = body.lower()
        for name in self._names:
            if not lowered.startswith(name):
                continue
            rest = body[len(name):]
            if rest and not rest[0].isspace():
                continue
            return self._table[name], rest.strip()
        return None

    async def dispatch(self, session: CommandSession, message: Message, prefix: str) -> bool:
        matched = self.match(message.content, prefix)
        if matched is None:
            return False
        command, args = matched
        logger.debug("Running command %s in channel %s", type(command).__name__, message.channel_id)
        await command.handle(session, message, args)
        return True


__all__ = [
    "Command",
    "CommandDispatcher",
    "CommandSession",
    "DEFAULT_COMMANDS",
    "PaletteCommand",
    "SearchCommand",
    "SpoilerCommand",
]
