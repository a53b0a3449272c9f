"""EmoteBot package providing the emote catalog, resolver, rewrite engine and sessions."""

from . import catalog, commands, config, library, models, remote, rewrite, session, spoiler, text_emotes, utils  # noqa: F401

__all__ = [
    "catalog",
    "commands",
    "config",
    "library",
    "models",
    "remote",
    "rewrite",
    "session",
    "spoiler",
    "text_emotes",
    "utils",
]
