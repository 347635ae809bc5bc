"""Configuration management for Welcomer.

Loads settings from YAML config file with Pydantic validation.
Config file location: ~/.welcomer/config.yaml
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field


# === Default paths ===

def get_welcomer_home() -> Path:
    """Get the Welcomer data directory (~/.welcomer)."""
    return Path(os.environ.get("WELCOMER_HOME", Path.home() / ".welcomer"))


# === Configuration Models ===


class DiscordConfig(BaseModel):
    """Discord delivery configuration."""

    token_env: str = "DISCORD_TOKEN"  # Environment variable name for bot token
    webhook_name: str = "Welcome"  # Name given to webhooks we create
    max_message_length: int = 1950  # Margin below Discord's 2000 char limit
    purge_limit: int = 100  # Most recent messages removed before sending
    avatar_size: int = 2048  # Guild icon size used as default avatar
    ready_timeout: float = 30.0  # seconds to wait for the gateway

    def get_token(self) -> str | None:
        """Resolve bot token from environment variable."""
        return os.environ.get(self.token_env)


class ContentConfig(BaseModel):
    """Template directory configuration."""

    path: str = "content"
    extension: str = ".md"


class StateConfig(BaseModel):
    """Local state kept between runs."""

    recover_visibility: bool = True
    ledger_file: str | None = None

    def get_ledger_path(self) -> Path:
        """Resolve the visibility ledger location."""
        if self.ledger_file:
            return Path(self.ledger_file).expanduser()
        return get_welcomer_home() / "visibility.json"


class WelcomerConfig(BaseModel):
    """Root configuration for Welcomer."""

    discord: DiscordConfig = Field(default_factory=DiscordConfig)
    content: ContentConfig = Field(default_factory=ContentConfig)
    state: StateConfig = Field(default_factory=StateConfig)


# === Config Loading ===


def load_config(config_path: Path | None = None) -> WelcomerConfig:
    """Load configuration from YAML file.

    Falls back to defaults if the config file doesn't exist.
    """
    if config_path is None:
        config_path = get_welcomer_home() / "config.yaml"

    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        return WelcomerConfig(**raw)

    return WelcomerConfig()


def save_default_config(config_path: Path | None = None) -> Path:
    """Save the default configuration to a YAML file.

    Creates parent directories if needed. Returns the path.
    """
    if config_path is None:
        config_path = get_welcomer_home() / "config.yaml"

    config_path.parent.mkdir(parents=True, exist_ok=True)

    config = WelcomerConfig()
    data = config.model_dump()

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)

    return config_path
