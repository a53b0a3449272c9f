"""Prefix-triggered text emotes replaced in place."""

from __future__ import annotations

from typing import Sequence, Tuple

TextEmote = Tuple[Tuple[str, ...], str]

# Longer triggers sharing a start with shorter ones must come first.
TEXT_EMOTES: Tuple[TextEmote, ...] = (
    (("lf", "lennyface", "lenny"), "( ͡° ͜ʖ ͡°)"),
    (("shrug", "s"), "¯\\\\\\_(ツ)\\_/¯"),
)


def apply_text_emotes(content: str, prefix: str, table: Sequence[TextEmote] = TEXT_EMOTES) -> str:
    if not prefix or prefix not in content:
        return content
    edited = content
    for triggers, replacement in table:
        for trigger in triggers:
            edited = edited.replace(f"{prefix}{trigger}", replacement)
    return edited


__all__ = ["TEXT_EMOTES", "TextEmote", "apply_text_emotes"]
