"""Configuration for firon-chat: TOML on disk, pydantic models in memory.

Every section has defaults, so an empty or missing file is a valid config.
User values are layered over the defaults section by section and the result
is validated as a whole; anything invalid puts the entire config back to
defaults rather than half-applying it.
"""

from __future__ import annotations

from copy import deepcopy
import logging
import os
from pathlib import Path
import tomllib
from typing import Any
from urllib.parse import urlparse

from platformdirs import user_config_path, user_state_path
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigValidationError

LOGGER = logging.getLogger(__name__)

APP_NAME = "firon-chat"
CONFIG_DIR = user_config_path(APP_NAME)
CONFIG_PATH = CONFIG_DIR / "config.toml"
DEFAULT_LOG_FILE = str(user_state_path(APP_NAME) / "app.log")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _stripped_text(value: Any, label: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{label} must be text.")
    text = value.strip()
    if not text:
        raise ValueError(f"{label} cannot be blank.")
    return text


class AppConfig(BaseModel):
    """Window title and the terminal window class."""

    model_config = ConfigDict(populate_by_name=True)
    title: str = "Firon"
    window_class: str = Field(default="firon-chat", alias="class")

    @field_validator("title", "window_class", mode="before")
    @classmethod
    def _check_text(cls, value: Any) -> str:
        return _stripped_text(value, "app setting")


class GeminiConfig(BaseModel):
    """Generative Language API endpoint, credentials, and model names."""

    api_key: str = ""
    api_key_env: str = "GEMINI_API_KEY"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    chat_model: str = "gemini-2.0-flash"
    image_model: str = "imagen-3.0-generate-002"
    timeout: int = Field(default=120, ge=1, le=3600)
    sample_count: int = Field(default=1, ge=1, le=4)

    @field_validator("api_key", mode="before")
    @classmethod
    def _clean_api_key(cls, value: Any) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValueError("gemini.api_key must be text.")
        return value.strip()

    @field_validator("api_key_env", "chat_model", "image_model", mode="before")
    @classmethod
    def _check_names(cls, value: Any) -> str:
        return _stripped_text(value, "gemini setting")

    @field_validator("base_url", mode="before")
    @classmethod
    def _check_base_url(cls, value: Any) -> str:
        url = _stripped_text(value, "gemini.base_url").rstrip("/")
        parsed = urlparse(url)
        if parsed.scheme.lower() != "https":
            raise ValueError("gemini.base_url must use the https scheme.")
        if not parsed.hostname:
            raise ValueError("gemini.base_url must include a hostname.")
        return url


class UIConfig(BaseModel):
    """Rendering, notice and upload limits."""

    show_timestamps: bool = True
    notice_seconds: float = Field(default=3.0, gt=0, le=60)
    reply_excerpt_chars: int = Field(default=50, ge=1, le=1000)
    max_image_bytes: int = Field(default=10 * 1024 * 1024, ge=1024, le=50 * 1024 * 1024)


class KeybindsConfig(BaseModel):
    """Key for each bindable app action."""

    send_message: str = "ctrl+enter"
    new_chat: str = "ctrl+n"
    toggle_mode: str = "ctrl+t"
    attach_image: str = "ctrl+o"
    quit: str = "ctrl+q"

    @field_validator("*", mode="before")
    @classmethod
    def _check_key(cls, value: Any) -> str:
        return _stripped_text(value, "keybind")


class LoggingConfig(BaseModel):
    """Log level, output format and optional log file."""

    level: str = "INFO"
    structured: bool = True
    log_to_file: bool = False
    log_file_path: str = DEFAULT_LOG_FILE

    @field_validator("level", mode="before")
    @classmethod
    def _check_level(cls, value: Any) -> str:
        level = _stripped_text(value, "logging.level").upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {', '.join(LOG_LEVELS)}.")
        return level

    @field_validator("log_file_path", mode="before")
    @classmethod
    def _check_log_file_path(cls, value: Any) -> str:
        return _stripped_text(value, "logging.log_file_path")


class Config(BaseModel):
    """All config sections together."""

    model_config = ConfigDict(populate_by_name=True)
    app: AppConfig = AppConfig()
    gemini: GeminiConfig = GeminiConfig()
    ui: UIConfig = UIConfig()
    keybinds: KeybindsConfig = KeybindsConfig()
    logging: LoggingConfig = LoggingConfig()


DEFAULT_CONFIG: dict[str, dict[str, Any]] = Config().model_dump(by_alias=True)


def ensure_config_dir(config_dir: Path | None = None) -> Path:
    """Create the config directory if needed; failures are logged, not raised."""
    directory = config_dir or CONFIG_DIR
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.warning("Could not create config directory %s: %s", directory, exc)
    return directory


def _layer(defaults: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Overlay ``overrides`` on ``defaults``, descending into nested tables."""
    result = deepcopy(defaults)
    for key, value in overrides.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = _layer(current, value)
        else:
            result[key] = value
    return result


def _restrict_permissions(path: Path) -> None:
    # The file may hold an API key.
    if os.name != "posix" or not path.exists():
        return
    try:
        path.chmod(0o600)
    except OSError as exc:
        LOGGER.warning("Could not restrict permissions on %s: %s", path, exc)


def _read_toml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    _restrict_permissions(path)
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        LOGGER.warning("Ignoring unreadable config %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def _validated(candidate: dict[str, Any]) -> dict[str, dict[str, Any]]:
    try:
        return Config.model_validate(candidate).model_dump(by_alias=True)
    except ValidationError as exc:
        LOGGER.warning("Invalid configuration, falling back to defaults: %s", exc)
        return deepcopy(DEFAULT_CONFIG)
    except Exception as exc:  # noqa: BLE001 - surface anything else as a domain error.
        raise ConfigValidationError(f"Configuration could not be validated: {exc}") from exc


def load_config(config_path: Path | None = None) -> dict[str, dict[str, Any]]:
    """Return the validated config as plain dicts, keyed by section.

    ``config_path`` overrides the per-user location (``--config`` and tests).
    """
    path = config_path or CONFIG_PATH
    ensure_config_dir(path.parent)
    return _validated(_layer(DEFAULT_CONFIG, _read_toml(path)))


def resolve_api_key(
    gemini_config: dict[str, Any], environ: dict[str, str] | None = None
) -> str:
    """Return the configured API key, falling back to the named environment variable."""
    explicit = str(gemini_config.get("api_key", "") or "").strip()
    if explicit:
        return explicit
    env = os.environ if environ is None else environ
    env_name = str(gemini_config.get("api_key_env", "GEMINI_API_KEY"))
    return str(env.get(env_name, "")).strip()
