from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

import yaml

from .exceptions import ConfigError
from .logging_utils import LogConfig

CONFIG_FILENAME = "pi-remote.yml"
LEGACY_CONFIG_FILENAME = "config.json"
DEFAULT_API_TOKEN_ENV = "PI_REMOTE_API_TOKEN"
DEFAULT_MONITOR_INTERVAL_SECONDS = 1


@dataclass(frozen=True)
class BotConfig:
    """Immutable bot settings, loaded once at startup."""

    root: Path
    api_token: str
    available_ids: tuple[str, ...]
    telegram_monitor_interval: int = DEFAULT_MONITOR_INTERVAL_SECONDS
    is_verbose: bool = False
    api_token_env: str = DEFAULT_API_TOKEN_ENV
    log: LogConfig = field(default_factory=LogConfig)

    @classmethod
    def from_raw(
        cls,
        raw: Any,
        *,
        root: Path,
        env: Optional[Mapping[str, str]] = None,
    ) -> "BotConfig":
        cfg: dict[str, Any] = raw if isinstance(raw, dict) else {}
        env = os.environ if env is None else env

        api_token_env = str(cfg.get("api_token_env", DEFAULT_API_TOKEN_ENV)).strip()
        if not api_token_env:
            raise ConfigError("api_token_env must be non-empty")
        api_token = (env.get(api_token_env) or "").strip()
        if not api_token:
            token_value = cfg.get("api_token")
            if token_value is not None and not isinstance(token_value, str):
                raise ConfigError("api_token must be a string")
            api_token = (token_value or "").strip()
        if not api_token:
            raise ConfigError(
                f"missing api_token (set it in the config file or env var {api_token_env})"
            )

        available_ids = tuple(_parse_identities(cfg.get("available_ids")))

        interval = _parse_positive_int_or_default(
            cfg.get("telegram_monitor_interval"),
            default=DEFAULT_MONITOR_INTERVAL_SECONDS,
            key="telegram_monitor_interval",
        )

        is_verbose = cfg.get("is_verbose", False)
        if not isinstance(is_verbose, bool):
            raise ConfigError("is_verbose must be a boolean")

        return cls(
            root=root,
            api_token=api_token,
            available_ids=available_ids,
            telegram_monitor_interval=interval,
            is_verbose=is_verbose,
            api_token_env=api_token_env,
            log=_parse_log_config(cfg.get("log"), root=root),
        )


def find_config_path(root: Path) -> Optional[Path]:
    for name in (CONFIG_FILENAME, LEGACY_CONFIG_FILENAME):
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def load_config(
    path: Optional[Path] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
) -> BotConfig:
    """Load bot config from ``path`` or the default files in the cwd.

    JSON configs are accepted too since JSON parses as YAML.
    """
    config_path = path if path is not None else find_config_path(Path.cwd())
    if config_path is None:
        raise ConfigError(
            f"no config file found (expected {CONFIG_FILENAME} or {LEGACY_CONFIG_FILENAME})"
        )
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"failed to read config {config_path}: {exc}") from exc
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid config {config_path}: {exc}") from exc
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"config {config_path} must be a mapping")
    return BotConfig.from_raw(raw, root=config_path.resolve().parent, env=env)


def collect_env_overrides(
    config: BotConfig, *, env: Optional[Mapping[str, str]] = None
) -> list[str]:
    env = os.environ if env is None else env
    overrides = []
    if env.get(config.api_token_env):
        overrides.append(config.api_token_env)
    return overrides


def _parse_identities(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, Sequence):
        raise ConfigError("available_ids must be a list of usernames")
    parsed: list[str] = []
    for item in value:
        token = str(item).strip()
        if token:
            parsed.append(token)
    return parsed


def _parse_positive_int_or_default(value: Any, *, default: int, key: str) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be an integer")
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be an integer") from exc
    if parsed <= 0:
        return default
    return parsed


def _parse_log_config(value: Any, *, root: Path) -> LogConfig:
    if value is None:
        return LogConfig()
    if not isinstance(value, dict):
        raise ConfigError("log must be a mapping")
    path_value = value.get("path")
    path: Optional[Path] = None
    if path_value is not None:
        if not isinstance(path_value, str) or not path_value.strip():
            raise ConfigError("log.path must be a string path")
        path = (root / path_value).resolve()
    level = str(value.get("level", "INFO")).strip().upper() or "INFO"
    if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigError(f"log.level has unknown value: {level}")
    return LogConfig(
        path=path,
        level=level,
        max_bytes=_parse_positive_int_or_default(
            value.get("max_bytes"), default=LogConfig.max_bytes, key="log.max_bytes"
        ),
        backup_count=_parse_positive_int_or_default(
            value.get("backup_count"),
            default=LogConfig.backup_count,
            key="log.backup_count",
        ),
    )
