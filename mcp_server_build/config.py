"""Process-wide builder settings, read from `MCP_BUILDER_*` environment variables."""

from __future__ import annotations

import os
import tempfile
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

TEMP_DIR_SUFFIX = "mcp-builds"


class BuilderSettings(BaseSettings):
    """Builder configuration."""

    timeout: int = Field(default=300_000, gt=0, description="Process kill threshold in ms")
    max_connections: int = Field(default=3, ge=1, description="Concurrent build cap")
    temp_directory: str = Field(default="", description="Temp root (blank: system temp)")
    preserve_artifacts: bool = Field(default=True, description="Keep per-build temp dirs")
    log_level: str = Field(default="INFO", description="Logging level")
    drain_grace_seconds: float = Field(
        default=5.0, gt=0, description="Time allowed to flush process output"
    )

    model_config = SettingsConfigDict(env_prefix="MCP_BUILDER_", case_sensitive=False)

    def resolved_temp_directory(self) -> str:
        if self.temp_directory and self.temp_directory.strip():
            return self.temp_directory.strip()
        return os.path.join(tempfile.gettempdir(), TEMP_DIR_SUFFIX)


@lru_cache(maxsize=1)
def get_settings() -> BuilderSettings:
    return BuilderSettings()
