"""Room chat relay configuration.

Loads settings from a YAML file:
  * roomchat.settings.yaml  — server, chat, static files and logging

The file location can be overridden with the ROOMCHAT_SETTINGS environment
variable. A missing file is not an error; defaults are used.

The PORT environment variable overrides ``server.port``.
"""
from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("roomchat.settings.yaml")
SETTINGS_ENV_VAR = "ROOMCHAT_SETTINGS"
PORT_ENV_VAR = "PORT"


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:            str  = "0.0.0.0"
    port:            int  = 3000
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])


class ChatSettings(BaseModel):
    """Behaviour of the chat core."""
    admin_name:          str       = "Admin"
    map_host:            str       = "google.com"
    profanity_filter:    bool      = True
    extra_profane_words: List[str] = Field(default_factory=list)

    @field_validator("admin_name", "map_host")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class StaticSettings(BaseModel):
    """Browser client served from disk when the directory exists."""
    directory: str = "public"


class LoggingSettings(BaseModel):
    level: str = "info"


class AppConfig(BaseModel):
    server:  ServerSettings  = Field(default_factory=ServerSettings)
    chat:    ChatSettings    = Field(default_factory=ChatSettings)
    static:  StaticSettings  = Field(default_factory=StaticSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(settings_path: Optional[Path] = None) -> AppConfig:
    """Load settings into a single *AppConfig* object.

    Args:
        settings_path: Explicit YAML path. Falls back to $ROOMCHAT_SETTINGS,
            then ./roomchat.settings.yaml.
    """
    if settings_path is None:
        settings_path = Path(os.environ.get(SETTINGS_ENV_VAR, SETTINGS_FILE))
    settings_data = _load_yaml(Path(settings_path))

    port = os.environ.get(PORT_ENV_VAR)
    if port:
        settings_data["server"] = {**(settings_data.get("server") or {}), "port": port}

    config = AppConfig(**settings_data)

    # Relative static directory resolves from the settings file location.
    static_dir = Path(config.static.directory)
    if not static_dir.is_absolute() and Path(settings_path).exists():
        config.static.directory = str(Path(settings_path).resolve().parent / static_dir)

    logger.info(
        "Settings loaded (server=%s:%s, profanity_filter=%s)",
        config.server.host,
        config.server.port,
        config.chat.profanity_filter,
    )
    return config


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Return the process-wide configuration, loading it on first use."""
    return load_config()
