"""Configuration loading for coursereg.

Settings come from an optional YAML file, then ``COURSEREG_*`` environment
variables override individual values::

    database:
      path: data/coursereg.db
    auth:
      secret_key: change-me
      token_ttl_seconds: 604800
    logging:
      dir: logs
      level: INFO
    advisor:
      api_key: ...
      model: gemini-2.5-pro
    cors_origins:
      - http://localhost:5173
"""

from __future__ import annotations

import logging
import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger("coursereg.config")

DEFAULT_DB_PATH = "coursereg.db"
DEFAULT_TOKEN_TTL_SECONDS = 7 * 24 * 60 * 60
DEFAULT_ADVISOR_MODEL = "gemini-2.5-pro"
DEFAULT_ADVISOR_BASE_URL = "https://generativelanguage.googleapis.com/v1"
DEFAULT_ADVISOR_MAX_WORDS = 60


class ConfigError(Exception):
    """Raised when configuration is invalid."""


@dataclass
class AdvisorConfig:
    """Settings for the AI text-completion collaborator."""

    api_key: str = ""
    model: str = DEFAULT_ADVISOR_MODEL
    base_url: str = DEFAULT_ADVISOR_BASE_URL
    max_words: int = DEFAULT_ADVISOR_MAX_WORDS
    timeout: float = 30.0


@dataclass
class Settings:
    """Runtime settings for the service."""

    db_path: str = DEFAULT_DB_PATH
    secret_key: str = ""
    token_ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS
    log_dir: str = "logs"
    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    advisor: AdvisorConfig = field(default_factory=AdvisorConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        """Create settings from a parsed YAML mapping.

        Args:
            data: Configuration dictionary from YAML.

        Returns:
            Parsed settings object.

        Raises:
            ConfigError: If a section has the wrong shape.
        """
        database = _section(data, "database")
        auth = _section(data, "auth")
        log = _section(data, "logging")
        advisor_data = _section(data, "advisor")

        advisor = AdvisorConfig(
            api_key=str(advisor_data.get("api_key", "")),
            model=str(advisor_data.get("model", DEFAULT_ADVISOR_MODEL)),
            base_url=str(advisor_data.get("base_url", DEFAULT_ADVISOR_BASE_URL)),
            max_words=_as_int(
                advisor_data.get("max_words", DEFAULT_ADVISOR_MAX_WORDS), "max_words"
            ),
            timeout=float(advisor_data.get("timeout", 30.0)),
        )

        origins = data.get("cors_origins", ["*"])
        if not isinstance(origins, list):
            raise ConfigError("cors_origins must be a list")

        return cls(
            db_path=str(database.get("path", DEFAULT_DB_PATH)),
            secret_key=str(auth.get("secret_key", "")),
            token_ttl_seconds=_as_int(
                auth.get("token_ttl_seconds", DEFAULT_TOKEN_TTL_SECONDS), "token_ttl_seconds"
            ),
            log_dir=str(log.get("dir", "logs")),
            log_level=str(log.get("level", "INFO")),
            cors_origins=[str(o) for o in origins],
            advisor=advisor,
        )

    def apply_env(self, environ: dict[str, str] | None = None) -> Settings:
        """Override values from environment variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            self, for chaining.
        """
        env = os.environ if environ is None else environ

        if "COURSEREG_DB_PATH" in env:
            self.db_path = env["COURSEREG_DB_PATH"]
        if "COURSEREG_SECRET_KEY" in env:
            self.secret_key = env["COURSEREG_SECRET_KEY"]
        if "COURSEREG_TOKEN_TTL" in env:
            self.token_ttl_seconds = _as_int(env["COURSEREG_TOKEN_TTL"], "COURSEREG_TOKEN_TTL")
        if "COURSEREG_LOG_DIR" in env:
            self.log_dir = env["COURSEREG_LOG_DIR"]
        if "COURSEREG_LOG_LEVEL" in env:
            self.log_level = env["COURSEREG_LOG_LEVEL"]
        if "COURSEREG_CORS_ORIGINS" in env:
            self.cors_origins = [o.strip() for o in env["COURSEREG_CORS_ORIGINS"].split(",") if o]

        # GEMINI_API_KEY accepted as a fallback
        api_key = env.get("COURSEREG_ADVISOR_API_KEY") or env.get("GEMINI_API_KEY")
        if api_key:
            self.advisor.api_key = api_key
        if "COURSEREG_ADVISOR_MODEL" in env:
            self.advisor.model = env["COURSEREG_ADVISOR_MODEL"]

        return self


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Section '{name}' must be a mapping, got {type(value).__name__}")
    return value


def _as_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"'{name}' must be an integer, got {value!r}") from e


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML (optional) and the environment.

    Args:
        config_path: Path to a YAML config file. Falls back to the
            COURSEREG_CONFIG environment variable; if neither is set only
            defaults and environment overrides apply.

    Returns:
        The resolved settings.

    Raises:
        ConfigError: If the file doesn't exist or is invalid.
    """
    if config_path is None:
        config_path = os.environ.get("COURSEREG_CONFIG")

    if config_path is None:
        settings = Settings()
    else:
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration must be a YAML mapping, got {type(data).__name__}")
        settings = Settings.from_dict(data)

    settings.apply_env()

    if not settings.secret_key:
        logger.warning(
            "No secret key configured; generated an ephemeral one (tokens reset on restart)"
        )
        settings.secret_key = secrets.token_hex(32)

    return settings
