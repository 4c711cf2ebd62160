"""Configuration helpers for the mantle-forge CLI."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from mantle_forge.client import DEFAULT_API_BASE, DEFAULT_TIMEOUT
from mantle_forge.errors import NotConfiguredError
from mantle_forge.layout import DEFAULT_LABEL_WIDTH, DEFAULT_VALUE_WIDTH

DEFAULT_CONFIG_FILENAME = ".mantlepush.json"
API_BASE_ENV_VAR = "MANTLE_FORGE_API_BASE"
CONFIG_FILE_ENV_VAR = "MANTLE_FORGE_CONFIG_FILE"
TIMEOUT_ENV_VAR = "MANTLE_FORGE_TIMEOUT"


class ConfigError(ValueError):
    """Raised when CLI config is invalid."""


@dataclass(frozen=True)
class RuntimeSettings:
    api_base: str = DEFAULT_API_BASE
    config_filename: str = DEFAULT_CONFIG_FILENAME
    timeout: float = DEFAULT_TIMEOUT
    label_width: int = DEFAULT_LABEL_WIDTH
    value_width: int = DEFAULT_VALUE_WIDTH


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip()
    if not value:
        raise ConfigError(f"{name} must not be empty")
    return value


def load_runtime_settings() -> RuntimeSettings:
    api_base = _env_str(API_BASE_ENV_VAR, DEFAULT_API_BASE)
    if not api_base.startswith(("http://", "https://")):
        raise ConfigError(f"{API_BASE_ENV_VAR} must be an http(s) URL")

    config_filename = _env_str(CONFIG_FILE_ENV_VAR, DEFAULT_CONFIG_FILENAME)

    raw_timeout = _env_str(TIMEOUT_ENV_VAR, str(DEFAULT_TIMEOUT))
    try:
        timeout = float(raw_timeout)
    except ValueError as exc:
        raise ConfigError(f"{TIMEOUT_ENV_VAR} must be a number of seconds") from exc
    if timeout <= 0:
        raise ConfigError(f"{TIMEOUT_ENV_VAR} must be > 0")

    return RuntimeSettings(api_base=api_base, config_filename=config_filename, timeout=timeout)


@dataclass(frozen=True)
class ProjectConfig:
    repo_url: str

    def to_dict(self) -> dict[str, str]:
        return {"repo_url": self.repo_url}


class ConfigStore:
    """Single JSON document ``{"repo_url": ...}`` at the repository root."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> ProjectConfig:
        if not self.path.exists():
            raise NotConfiguredError(
                f"This repository is not configured for MantleForge. Missing {self.path.name}."
            )
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigError(f"invalid config file {self.path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise ConfigError(f"config file {self.path} must contain a JSON object")

        repo_url = payload.get("repo_url")
        if not isinstance(repo_url, str) or not repo_url.strip():
            raise ConfigError(f"repo_url must be a non-empty string in {self.path}")
        return ProjectConfig(repo_url=repo_url)

    def save(self, config: ProjectConfig) -> None:
        if self.path.exists():
            raise ConfigError(f"refusing to overwrite existing config: {self.path}")
        if not config.repo_url.strip():
            raise ConfigError("repo_url must not be empty")

        serialized = json.dumps(config.to_dict(), indent=2) + "\n"
        fd, tmp_name = tempfile.mkstemp(prefix=f"{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(serialized)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise ConfigError(f"failed to write config file: {self.path}") from exc
