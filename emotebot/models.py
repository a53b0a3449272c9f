"""Dataclasses and shared type definitions for EmoteBot."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union


@dataclass(frozen=True)
class Emote:
    name: str
    payload: bytes = field(repr=False)
    file_name: str
    path: Optional[Path] = None
    category: str = ""

    def as_attachment(self):
        return self.payload, self.file_name


@dataclass(frozen=True)
class EmoteRef:
    """One row of the remote provider's name -> identifier table."""

    name: str
    id: str


@dataclass(frozen=True)
class Message:
    """Platform-neutral view of a message or message edit event."""

    content: str
    channel_id: int
    has_attachments: bool = False
    id: Optional[int] = None
    author_id: Optional[int] = None


@dataclass(frozen=True)
class EditOriginal:
    text: str


@dataclass(frozen=True)
class SendText:
    text: str


@dataclass(frozen=True)
class SendAttachment:
    text: str
    emote: Emote


Action = Union[EditOriginal, SendText, SendAttachment]


@dataclass
class RewritePlan:
    actions: List[Action] = field(default_factory=list)
    delete_original: bool = False

    @property
    def attachment_count(self) -> int:
        return sum(1 for action in self.actions if isinstance(action, SendAttachment))

    def __bool__(self) -> bool:
        return bool(self.actions) or self.delete_original


__all__ = [
    "Action",
    "EditOriginal",
    "Emote",
    "EmoteRef",
    "Message",
    "RewritePlan",
    "SendAttachment",
    "SendText",
]
