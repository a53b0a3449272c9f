"""Per-user Discord session that applies rewrite plans to the user's messages."""

from __future__ import annotations

import asyncio
import io
import logging
from typing import Any, Mapping, Optional

import discord

from .commands import CommandDispatcher
from .config import UserIdentity
from .models import EditOriginal, Message, RewritePlan, SendAttachment, SendText
from .remote import RemoteEmoteResolver
from .rewrite import MessageRewriter
from .spoiler import SpoilerRegistry

logger = logging.getLogger("emotebot.session")


def message_from_discord(message: discord.Message) -> Message:
    return Message(
        content=message.content or "",
        channel_id=message.channel.id,
        has_attachments=bool(message.attachments),
        id=message.id,
        author_id=message.author.id,
    )


def message_from_edit(data: Mapping[str, Any], channel_id: int, message_id: Optional[int]) -> Optional[Message]:
    """Build a Message from a raw edit payload; ``None`` if it carries no content."""
    content = data.get("content")
    if content is None:
        return None
    author = data.get("author") or {}
    author_id = author.get("id") if isinstance(author, Mapping) else None
    return Message(
        content=content,
        channel_id=channel_id,
        has_attachments=bool(data.get("attachments")),
        id=message_id,
        author_id=int(author_id) if author_id is not None else None,
    )


async def execute_plan(channel: discord.abc.Messageable, target: Any, plan: RewritePlan) -> None:
    """Apply each action in order, then delete the original if requested.

    A failed platform call propagates and the remaining actions are dropped.
    """
    for action in plan.actions:
        if isinstance(action, EditOriginal):
            await target.edit(content=action.text)
        elif isinstance(action, SendText):
            await channel.send(action.text)
        elif isinstance(action, SendAttachment):
            payload, filename = action.emote.as_attachment()
            attachment = discord.File(io.BytesIO(payload), filename=filename)
            await channel.send(content=action.text or None, file=attachment)
    if plan.delete_original:
        await target.delete()


class EmoteSession(discord.Client):
    """One Discord connection per configured user identity."""

    def __init__(
        self,
        identity: UserIdentity,
        rewriter: MessageRewriter,
        dispatcher: CommandDispatcher,
        *,
        www_base_url: str = "",
        intents: Optional[discord.Intents] = None,
    ):
        if intents is None:
            intents = discord.Intents.default()
            intents.messages = True
            intents.message_content = True
        super().__init__(intents=intents)
        self.identity = identity
        self.rewriter = rewriter
        self.dispatcher = dispatcher
        self.www_base_url = www_base_url
        self._processing_lock = asyncio.Lock()

    @property
    def spoilers(self) -> SpoilerRegistry:
        return self.rewriter.spoilers

    @property
    def resolver(self) -> Optional[RemoteEmoteResolver]:
        return self.rewriter.resolver

    @property
    def palette_enabled(self) -> bool:
        return self.identity.palette

    async def on_ready(self) -> None:
        logger.info("%s is connected!", self.user)

    async def on_message(self, message: discord.Message) -> None:
        if message.author.id != self.identity.discord_id:
            return
        await self.handle(message_from_discord(message), message.channel, message)

    async def on_raw_message_edit(self, payload: discord.RawMessageUpdateEvent) -> None:
        event = message_from_edit(payload.data, payload.channel_id, payload.message_id)
        if event is None or event.author_id != self.identity.discord_id:
            return
        channel = self.get_channel(payload.channel_id)
        if channel is None:
            try:
                channel = await self.fetch_channel(payload.channel_id)
            except discord.HTTPException as exc:
                logger.warning("Could not fetch channel %s for edit event: %s", payload.channel_id, exc)
                return
        target = channel.get_partial_message(payload.message_id)
        await self.handle(event, channel, target)

    async def send_text(self, channel_id: int, text: str) -> None:
        channel = self.get_channel(channel_id) or await self.fetch_channel(channel_id)
        await channel.send(text)

    async def handle(self, message: Message, channel: discord.abc.Messageable, target: Any) -> None:
        async with self._processing_lock:
            try:
                await self.process(message, channel, target)
            except discord.HTTPException as exc:
                logger.error("Error while handling message %s: %s", message.id, exc)

    async def process(self, message: Message, channel: discord.abc.Messageable, target: Any) -> None:
        # Commands are matched on the raw text, before any rewrite touches it.
        prefix = self.identity.command_prefix
        if self.dispatcher.match(message.content, prefix) is not None:
            await self.dispatcher.dispatch(self, message, prefix)
            await target.delete()
            return

        plan = await self.rewriter.rewrite(message, self.identity)
        if plan:
            logger.debug(
                "Message %s: %s action(s), delete_original=%s",
                message.id,
                len(plan.actions),
                plan.delete_original,
            )
            await execute_plan(channel, target, plan)


__all__ = [
    "EmoteSession",
    "execute_plan",
    "message_from_discord",
    "message_from_edit",
]
