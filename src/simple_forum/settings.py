"""Runtime settings loaded from ``config/settings.yaml``."""

from __future__ import annotations

import dataclasses
import datetime
import pathlib
from typing import Any

import yaml

_ROOT = pathlib.Path(__file__).resolve().parents[2]

DEFAULT_CONFIG_PATH = _ROOT / "config" / "settings.yaml"


class ConfigError(Exception):
    """Raised when the settings file is missing or malformed."""


@dataclasses.dataclass(frozen=True)
class SessionSettings:
    ttl_minutes: float = 15
    shards: int = 16
    sweep_interval_seconds: float = 0

    @property
    def ttl(self) -> datetime.timedelta:
        return datetime.timedelta(minutes=self.ttl_minutes)


@dataclasses.dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"
    file: str | None = None


@dataclasses.dataclass(frozen=True)
class Settings:
    session: SessionSettings = dataclasses.field(default_factory=SessionSettings)
    policy_path: pathlib.Path = _ROOT / "policies" / "access.yaml"
    logging: LoggingSettings = dataclasses.field(default_factory=LoggingSettings)

    @classmethod
    def load(cls, path: str | pathlib.Path | None = None) -> Settings:
        """Read *path* (default ``config/settings.yaml``) into ``Settings``.

        Relative paths inside the file resolve against the file's parent's
        parent, i.e. the project root for the default layout.
        """
        config_path = pathlib.Path(path) if path is not None else DEFAULT_CONFIG_PATH
        if not config_path.exists():
            raise ConfigError(f"Settings file not found: {config_path}")
        with open(config_path) as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, dict):
            raise ConfigError("Settings file must contain a mapping")
        return cls.from_dict(data, base_dir=config_path.resolve().parents[1])

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: pathlib.Path = _ROOT) -> Settings:
        session_cfg = _section(data, "session")
        policies_cfg = _section(data, "policies")
        logging_cfg = _section(data, "logging")

        try:
            session = SessionSettings(
                ttl_minutes=float(session_cfg.get("ttl_minutes", 15)),
                shards=int(session_cfg.get("shards", 16)),
                sweep_interval_seconds=float(session_cfg.get("sweep_interval_seconds", 0)),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid session settings: {exc}") from exc
        if session.ttl_minutes <= 0 or session.shards < 1 or session.sweep_interval_seconds < 0:
            raise ConfigError("Session settings out of range")

        policy_path = pathlib.Path(policies_cfg.get("path", "policies/access.yaml"))
        if not policy_path.is_absolute():
            policy_path = base_dir / policy_path

        return cls(
            session=session,
            policy_path=policy_path,
            logging=LoggingSettings(
                level=str(logging_cfg.get("level", "INFO")).upper(),
                file=logging_cfg.get("file"),
            ),
        )


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    block = data.get(name) or {}
    if not isinstance(block, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return block
