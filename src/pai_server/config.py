"""
Server configuration.

Settings come from the process environment, optionally seeded from a
``.env`` file inside the PAI directory (``$PAI_DIR``, default
``~/.pai``). Variables already set in the environment win over the file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger("pai-server.config")

LogLevel = Literal["debug", "info", "warning", "error"]


def default_pai_dir() -> Path:
    """Resolve the PAI directory from ``PAI_DIR`` or ``~/.pai``."""
    env_dir = os.getenv("PAI_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    return Path.home() / ".pai"


def _optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else None


def _flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Runtime configuration for the PAI server."""

    pai_dir: Path = Field(
        default_factory=default_pai_dir,
        description="Directory holding skills/, agents/, .env and devices.json",
    )
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3000, ge=1, le=65535, description="Bind port")
    log_level: LogLevel = Field(default="info", description="Root log level")
    elevenlabs_api_key: Optional[str] = Field(
        default=None,
        description="Enables the ElevenLabs cloud voice provider",
    )
    anthropic_api_key: Optional[str] = Field(
        default=None,
        description="Key for the hosted LLM chat endpoint",
    )
    llm_model: str = Field(
        default="claude-sonnet-4-5-20250929",
        description="Model identifier used for chat",
    )
    llm_max_tokens: int = Field(default=1024, ge=1, description="Max tokens per reply")
    devices_file: Optional[Path] = Field(
        default=None,
        description="Device store; defaults to <pai_dir>/devices.json",
    )
    voice_detect_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Seconds allowed per provider detection (None = unbounded)",
    )
    voice_speak_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Seconds allowed per speak call (None = unbounded)",
    )
    voice_parallel_detection: bool = Field(
        default=False,
        description="Run provider detection concurrently",
    )

    @property
    def devices_path(self) -> Path:
        return self.devices_file or self.pai_dir / "devices.json"

    @classmethod
    def from_env(cls, pai_dir: Optional[Path] = None) -> Settings:
        """Build settings from the environment and ``<pai_dir>/.env``.

        Args:
            pai_dir: Override for the PAI directory.

        Returns:
            Validated Settings.
        """
        base_dir = pai_dir or default_pai_dir()
        env_path = base_dir / ".env"
        if env_path.is_file():
            load_dotenv(env_path, override=False)
            logger.debug("Loaded environment from %s", env_path)
        else:
            logger.debug("No .env file at %s", env_path)

        devices_file = os.getenv("PAI_DEVICES_FILE")
        return cls(
            pai_dir=base_dir,
            host=os.getenv("PAI_SERVER_HOST", "0.0.0.0"),
            port=int(os.getenv("PAI_SERVER_PORT", "3000")),
            log_level=os.getenv("LOG_LEVEL", "info").lower(),
            elevenlabs_api_key=os.getenv("ELEVENLABS_API_KEY") or None,
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            llm_model=os.getenv("PAI_LLM_MODEL", "claude-sonnet-4-5-20250929"),
            llm_max_tokens=int(os.getenv("PAI_LLM_MAX_TOKENS", "1024")),
            devices_file=Path(devices_file) if devices_file else None,
            voice_detect_timeout=_optional_float("PAI_VOICE_DETECT_TIMEOUT"),
            voice_speak_timeout=_optional_float("PAI_VOICE_SPEAK_TIMEOUT"),
            voice_parallel_detection=_flag("PAI_VOICE_PARALLEL_DETECTION"),
        )
