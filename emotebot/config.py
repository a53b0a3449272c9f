"""Process configuration read from the environment and the users file."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from .remote import DEFAULT_IMAGE_URL, DEFAULT_LISTING_URL
from .utils import bool_from_env, float_from_env, int_from_env, parse_name_list, path_from_env, redact

logger = logging.getLogger("emotebot.config")

DEFAULT_EMOTE_DIRS = "emojis,gifs,sounds"


class ConfigError(Exception):
    """Raised when the configuration cannot be loaded."""


@dataclass(frozen=True)
class UserIdentity:
    discord_id: int
    token: str
    active: bool = True
    palette: bool = False
    command_prefix: str = ""
    emote_prefix: str = ""
    remote_emote_prefix: str = ""
    text_emote_prefix: str = ""

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> "UserIdentity":
        try:
            discord_id = int(payload["discord_id"])  # type: ignore[arg-type]
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigError(f"User entry has an invalid discord_id: {payload.get('discord_id')!r}") from exc
        token = str(payload.get("token") or "").strip()
        if not token:
            raise ConfigError(f"User {discord_id} has no token configured.")
        return cls(
            discord_id=discord_id,
            token=token,
            active=bool(payload.get("active", True)),
            palette=bool(payload.get("palette", False)),
            command_prefix=str(payload.get("command_prefix") or ""),
            emote_prefix=str(payload.get("emote_prefix") or ""),
            remote_emote_prefix=str(payload.get("remote_emote_prefix") or ""),
            text_emote_prefix=str(payload.get("text_emote_prefix") or ""),
        )


@dataclass(frozen=True)
class WwwSettings:
    enabled: bool = False
    base_url: str = "http://localhost:8080"
    host: str = "0.0.0.0"
    port: int = 8080


@dataclass(frozen=True)
class RemoteSettings:
    cache_dir: Path = Path("assets/twitchemotes")
    client_id: str = ""
    listing_url: str = DEFAULT_LISTING_URL
    listing_file: Optional[Path] = None
    image_url: str = DEFAULT_IMAGE_URL
    timeout: float = 10.0


@dataclass(frozen=True)
class BotConfig:
    users: List[UserIdentity]
    assets_dir: Path = Path("assets")
    emote_dirs: List[str] = field(default_factory=lambda: parse_name_list(DEFAULT_EMOTE_DIRS))
    pages_dir: Path = Path("pages")
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    remote: RemoteSettings = field(default_factory=RemoteSettings)
    www: WwwSettings = field(default_factory=WwwSettings)

    @property
    def active_users(self) -> List[UserIdentity]:
        return [user for user in self.users if user.active]

    @property
    def emote_directories(self) -> List[Path]:
        return [self.assets_dir / name for name in self.emote_dirs]

    def to_dict(self, redact_secrets: bool = True) -> Dict[str, object]:
        data = asdict(self)
        if redact_secrets:
            for user in data["users"]:
                user["token"] = redact(user["token"])
            data["remote"]["client_id"] = redact(data["remote"]["client_id"])
        return json.loads(json.dumps(data, default=str))


def load_users(path: Path) -> List[UserIdentity]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigError(f"Users file not found: {path}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Could not read users file {path}: {exc}") from exc

    entries = raw.get("users") if isinstance(raw, dict) else raw
    if not isinstance(entries, list):
        raise ConfigError(f"Users file {path} must contain a list of users.")

    users: List[UserIdentity] = []
    for entry in entries:
        if not isinstance(entry, dict):
            logger.warning("Ignoring malformed user entry in %s: %r", path, entry)
            continue
        users.append(UserIdentity.from_mapping(entry))
    return users


def load_config() -> BotConfig:
    """Build the configuration from ``EMOTEBOT_*`` environment variables."""
    users = load_users(path_from_env("EMOTEBOT_USERS_FILE", "users.json") or Path("users.json"))

    remote = RemoteSettings(
        cache_dir=path_from_env("EMOTEBOT_REMOTE_CACHE_DIR", "assets/twitchemotes") or Path("assets/twitchemotes"),
        client_id=os.getenv("EMOTEBOT_REMOTE_CLIENT_ID", "").strip(),
        listing_url=os.getenv("EMOTEBOT_REMOTE_LISTING_URL", "").strip() or DEFAULT_LISTING_URL,
        listing_file=path_from_env("EMOTEBOT_REMOTE_LISTING_FILE"),
        image_url=os.getenv("EMOTEBOT_REMOTE_IMAGE_URL", "").strip() or DEFAULT_IMAGE_URL,
        timeout=float_from_env("EMOTEBOT_HTTP_TIMEOUT", 10.0),
    )
    www = WwwSettings(
        enabled=bool_from_env("EMOTEBOT_WWW_ENABLED", False),
        base_url=(os.getenv("EMOTEBOT_WWW_BASE_URL", "").strip() or "http://localhost:8080").rstrip("/"),
        host=os.getenv("EMOTEBOT_WWW_HOST", "").strip() or "0.0.0.0",
        port=int_from_env("EMOTEBOT_WWW_PORT", 8080),
    )
    config = BotConfig(
        users=users,
        assets_dir=path_from_env("EMOTEBOT_ASSETS_DIR", "assets") or Path("assets"),
        emote_dirs=parse_name_list(os.getenv("EMOTEBOT_EMOTE_DIRS", DEFAULT_EMOTE_DIRS)),
        pages_dir=path_from_env("EMOTEBOT_PAGES_DIR", "pages") or Path("pages"),
        log_level=os.getenv("EMOTEBOT_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        log_file=path_from_env("EMOTEBOT_LOG_FILE"),
        remote=remote,
        www=www,
    )
    logger.debug("Loaded configuration for %s user(s).", len(users))
    return config


__all__ = [
    "BotConfig",
    "ConfigError",
    "RemoteSettings",
    "UserIdentity",
    "WwwSettings",
    "load_config",
    "load_users",
]
