"""Configuration helpers for the Steward bot."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

DEFAULT_COMMAND_PREFIX = "!"


class BotSettings(BaseModel):
    """Runtime configuration parsed from environment variables."""

    discord_token: str = Field(..., alias="DISCORD_TOKEN")
    command_prefix: str = Field(default=DEFAULT_COMMAND_PREFIX, alias="COMMAND_PREFIX")
    welcome_channel_id: Optional[int] = Field(default=None, alias="WELCOME_CHANNEL_ID")
    log_channel_id: Optional[int] = Field(
        default=None,
        alias="LOG_CHANNEL_ID",
        validation_alias=AliasChoices("LOG_CHANNEL_ID", "MOD_LOG_CHANNEL_ID"),
    )
    reaction_role_message_id: Optional[int] = Field(
        default=None, alias="REACTION_ROLE_MESSAGE_ID"
    )
    # Emoji -> role id, supplied as a JSON object in the environment
    reaction_role_map: Dict[str, int] = Field(default_factory=dict, alias="REACTION_ROLE_MAP")
    data_dir: Path = Field(default=Path("."), alias="DATA_DIR")
    daily_reward: int = Field(default=100, alias="DAILY_REWARD", ge=0)
    daily_cooldown_hours: float = Field(default=24, alias="DAILY_COOLDOWN_HOURS", ge=0)
    health_enabled: bool = Field(default=True, alias="HEALTH_ENABLED")
    health_host: str = Field(default="0.0.0.0", alias="HEALTH_HOST")
    health_port: int = Field(default=8080, alias="HEALTH_PORT")

    class Config:
        populate_by_name = True

    @field_validator("command_prefix")
    @classmethod
    def _prefix_not_blank(cls, value: str) -> str:
        if not value.strip():
            return DEFAULT_COMMAND_PREFIX
        return value.strip()

    @field_validator("welcome_channel_id", "log_channel_id", "reaction_role_message_id", mode="before")
    @classmethod
    def _blank_id_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("reaction_role_map", mode="before")
    @classmethod
    def _parse_role_map(cls, value):
        if value is None or value == "":
            return {}
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError as exc:
                raise ValueError("REACTION_ROLE_MAP must be a JSON object") from exc
        if not isinstance(value, dict):
            raise ValueError("REACTION_ROLE_MAP must map emoji to role ids")
        return value


def load_settings(env_file: str | None = ".env") -> BotSettings:
    """Load and validate configuration, raising a helpful error if missing."""

    if env_file and Path(env_file).exists():
        load_dotenv(env_file)

    try:
        settings = BotSettings.model_validate(dict(os.environ))
    except ValidationError as exc:
        missing = [err["loc"][0] for err in exc.errors() if err["type"] == "missing"]
        if not missing:
            raise RuntimeError(f"Invalid configuration: {exc}") from exc
        raise RuntimeError(
            (
                "Missing required configuration values: "
                f"{', '.join(str(name) for name in missing)}. "
                "Ensure DISCORD_TOKEN is set before running the bot."
            )
        ) from exc

    return settings
