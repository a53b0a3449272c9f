"""Message rewriting: split emote tokens out of a message into attachments.

The engine scans a message for ``<prefix><name>`` tokens that start the text
or follow whitespace, resolves each against the local catalog or the remote
resolver, and produces a :class:`RewritePlan` describing how the original
message is edited, which new messages are sent, and whether the original is
deleted afterwards.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Pattern, Sequence, Tuple

from .catalog import EmoteCatalog
from .models import EditOriginal, Emote, Message, RewritePlan, SendAttachment, SendText
from .remote import RemoteEmoteError, RemoteEmoteResolver
from .spoiler import SpoilerRegistry, is_trivial_chunk, spoilerize
from .text_emotes import apply_text_emotes

if TYPE_CHECKING:
    from .config import UserIdentity

logger = logging.getLogger("emotebot.rewrite")

LOCAL = "local"
REMOTE = "remote"


@dataclass(frozen=True)
class Capture:
    kind: str
    prefix: str
    name: str
    whitespace: str

    @property
    def literal(self) -> str:
        return f"{self.whitespace}{self.prefix}{self.name}"


def _build_pattern(local_prefix: str, remote_prefix: str) -> Optional[Pattern[str]]:
    prefixes = [prefix for prefix in (local_prefix, remote_prefix) if prefix]
    if not prefixes:
        return None
    # Longest first so a prefix that starts another one cannot shadow it.
    ordered = sorted(dict.fromkeys(prefixes), key=len, reverse=True)
    alternation = "|".join(re.escape(prefix) for prefix in ordered)
    return re.compile(rf"(?P<space>^|\s+)(?P<prefix>{alternation})(?P<name>\w+)")


def tokenize(content: str, local_prefix: str, remote_prefix: str) -> Tuple[List[str], List[Capture]]:
    """Split content into literal segments and emote captures.

    ``segments`` always has one more element than ``captures``: the text
    before the first capture, between consecutive captures and after the last.
    """
    pattern = _build_pattern(local_prefix, remote_prefix)
    if pattern is None:
        return [content], []

    segments: List[str] = []
    captures: List[Capture] = []
    cursor = 0
    for match in pattern.finditer(content):
        prefix = match.group("prefix")
        kind = LOCAL if prefix == local_prefix else REMOTE
        segments.append(content[cursor:match.start()])
        captures.append(
            Capture(kind=kind, prefix=prefix, name=match.group("name"), whitespace=match.group("space"))
        )
        cursor = match.end()
    segments.append(content[cursor:])
    return segments, captures


async def resolve_captures(
    captures: Sequence[Capture],
    catalog: EmoteCatalog,
    resolver: Optional[RemoteEmoteResolver],
) -> List[Optional[Emote]]:
    resolved: List[Optional[Emote]] = []
    for capture in captures:
        if capture.kind == LOCAL:
            resolved.append(catalog.find_by_name(capture.name))
            continue
        if resolver is None:
            resolved.append(None)
            continue
        try:
            resolved.append(await resolver.resolve(capture.name))
        except RemoteEmoteError as exc:
            logger.warning("Could not resolve remote emote %s: %s", capture.name, exc)
            resolved.append(None)
    return resolved


def _is_blank(text: str) -> bool:
    return not text.strip()


def reconstruct(
    segments: Sequence[str],
    captures: Sequence[Capture],
    emotes: Sequence[Optional[Emote]],
    *,
    has_attachments: bool = False,
    spoiler: bool = False,
) -> Optional[RewritePlan]:
    """Lay out the actions for already-resolved captures, left to right."""
    if not any(emote is not None for emote in emotes):
        return None

    # Outside spoiler mode a bare marker pair is user text.
    is_empty = is_trivial_chunk if spoiler else _is_blank

    plan = RewritePlan()
    buffer = ""
    first_emission = True
    edited_original = False

    for segment, capture, emote in zip(segments, captures, emotes):
        buffer += segment
        if emote is None:
            buffer += capture.literal
            continue

        buffer += capture.whitespace
        if spoiler and not is_empty(buffer):
            buffer = spoilerize(buffer)

        if first_emission and not is_empty(buffer):
            plan.actions.append(EditOriginal(buffer))
            plan.actions.append(SendAttachment("", emote))
            edited_original = True
        else:
            plan.actions.append(SendAttachment("" if is_empty(buffer) else buffer, emote))
        first_emission = False
        buffer = ""

    buffer += segments[len(captures)]
    if not is_empty(buffer):
        if spoiler:
            buffer = spoilerize(buffer)
        plan.actions.append(SendText(buffer.strip()))

    if not edited_original and plan.attachment_count:
        if has_attachments:
            plan.actions.append(EditOriginal(""))
        else:
            plan.delete_original = True
    return plan


async def build_rewrite_plan(
    content: str,
    *,
    local_prefix: str,
    remote_prefix: str,
    catalog: EmoteCatalog,
    resolver: Optional[RemoteEmoteResolver] = None,
    has_attachments: bool = False,
    spoiler: bool = False,
) -> Optional[RewritePlan]:
    """Return the attachment plan for one message, or ``None`` to leave it alone."""
    if not any(prefix and prefix in content for prefix in (local_prefix, remote_prefix)):
        return None

    segments, captures = tokenize(content, local_prefix, remote_prefix)
    if not captures:
        return None

    emotes = await resolve_captures(captures, catalog, resolver)
    return reconstruct(segments, captures, emotes, has_attachments=has_attachments, spoiler=spoiler)


class MessageRewriter:
    """Runs the text-emote pass and the attachment plan for one identity's messages."""

    def __init__(
        self,
        catalog: EmoteCatalog,
        resolver: Optional[RemoteEmoteResolver],
        spoilers: SpoilerRegistry,
    ):
        self.catalog = catalog
        self.resolver = resolver
        self.spoilers = spoilers

    async def rewrite(self, message: Message, identity: "UserIdentity") -> Optional[RewritePlan]:
        content = message.content
        text_edit: Optional[EditOriginal] = None

        substituted = apply_text_emotes(content, identity.text_emote_prefix)
        if substituted != content:
            text_edit = EditOriginal(substituted)
            content = substituted

        plan = await build_rewrite_plan(
            content,
            local_prefix=identity.emote_prefix,
            remote_prefix=identity.remote_emote_prefix,
            catalog=self.catalog,
            resolver=self.resolver,
            has_attachments=message.has_attachments,
            spoiler=self.spoilers.is_enabled(message.channel_id),
        )

        if text_edit is None:
            return plan
        if plan is None:
            return RewritePlan(actions=[text_edit])
        plan.actions.insert(0, text_edit)
        return plan


__all__ = [
    "Capture",
    "LOCAL",
    "MessageRewriter",
    "REMOTE",
    "build_rewrite_plan",
    "reconstruct",
    "resolve_captures",
    "tokenize",
]
