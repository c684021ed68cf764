"""
Settings for the signalgrid server and CLI.

Every field can be overridden with a SIGNALGRID_ prefixed environment
variable or a .env file, e.g. SIGNALGRID_PORT=3002.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SIGNALGRID_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = Field(default=3001, ge=1, le=65535)
    reload: bool = False
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Local save slot
    store_dir: Path = Path(".signalgrid")
    save_slot: str = "ads_logic_save"
    autoload: bool = Field(
        default=True,
        description="Load the save slot when the server starts",
    )

    # Blueprint download name
    export_filename: str = "ads_network.json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
