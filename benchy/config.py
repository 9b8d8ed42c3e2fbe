from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

DEFAULT_PENDING_TIMEOUT_SECONDS = 400
DEFAULT_POLL_INTERVAL_SECONDS = 10
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0

# Keys of the "settings" section as they appear in config.json, with the
# field each one fills and the JSON type it must have.
_SETTINGS_KEYS: dict[str, tuple[str, str]] = {
    "parallelism": ("parallelism", "int"),
    "iterations": ("iterations", "int"),
    "delay": ("delay_seconds", "float"),
    "retry": ("retry_enabled", "bool"),
    "timeout": ("pending_timeout_seconds", "float"),
    "retry_delay": ("poll_interval_seconds", "float"),
    "max_retries": ("max_retries", "int"),
    "log_level": ("log_level", "str"),
}


class ConfigurationError(Exception):
    """Raised when the benchmark configuration cannot be loaded or is invalid."""


@dataclass(frozen=True)
class HubConfig:
    url: str
    token: str
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS


@dataclass(frozen=True)
class CreatorConfig:
    address: str
    verified: bool = False


@dataclass(frozen=True)
class MintConfig:
    """Static inputs for every mint request sent during a run."""

    collection_id: str
    recipient: str
    creator: CreatorConfig
    description: str
    compressed: bool
    image: str
    symbol: str = "HOLAPLEX"


@dataclass(frozen=True)
class Settings:
    """Knobs that shape the load and the reconciliation policy."""

    parallelism: int = 1
    iterations: int = 1
    delay_seconds: float = 1
    retry_enabled: bool = False
    pending_timeout_seconds: float = DEFAULT_PENDING_TIMEOUT_SECONDS
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    max_retries: int | None = None
    log_level: str = "info"

    @property
    def total_mints(self) -> int:
        return self.parallelism * self.iterations

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Settings":
        values: dict[str, Any] = {}
        for key, value in data.items():
            if key not in _SETTINGS_KEYS or value is None:
                continue
            field_name, kind = _SETTINGS_KEYS[key]
            values[field_name] = _coerce(key, value, kind)
        return cls(**values)

    def merge(self, **overrides: Any) -> "Settings":
        """Return a copy with every override that is not ``None`` applied."""

        applied = {key: value for key, value in overrides.items() if value is not None}
        return dataclasses.replace(self, **applied)

    def validate(self) -> "Settings":
        if self.parallelism < 1:
            raise ConfigurationError(f"parallelism must be >= 1, got {self.parallelism}")
        if self.iterations < 0:
            raise ConfigurationError(f"iterations must be >= 0, got {self.iterations}")
        if self.delay_seconds < 0:
            raise ConfigurationError(f"delay must be >= 0, got {self.delay_seconds}")
        if self.poll_interval_seconds < 0:
            raise ConfigurationError(
                f"poll interval must be >= 0, got {self.poll_interval_seconds}"
            )
        if self.pending_timeout_seconds <= 0:
            raise ConfigurationError(
                f"pending timeout must be > 0, got {self.pending_timeout_seconds}"
            )
        if self.max_retries is not None and self.max_retries < 0:
            raise ConfigurationError(f"max retries must be >= 0, got {self.max_retries}")
        return self


def _coerce(key: str, value: Any, kind: str) -> Any:
    # bool is a subclass of int, so it is rejected explicitly for numbers.
    if kind == "bool" and isinstance(value, bool):
        return value
    if kind == "int" and isinstance(value, int) and not isinstance(value, bool):
        return value
    if kind == "float" and isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if kind == "str" and isinstance(value, str):
        return value
    raise ConfigurationError(f"setting {key!r} must be a JSON {kind}, got {value!r}")


@dataclass(frozen=True)
class BenchmarkConfig:
    hub: HubConfig
    settings: Settings
    mint: MintConfig

    def with_settings(self, settings: Settings) -> "BenchmarkConfig":
        return dataclasses.replace(self, settings=settings)


def load_config(path: str | Path) -> BenchmarkConfig:
    """Read and validate the JSON configuration file at ``path``."""

    config_path = Path(path)
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"unable to read config {config_path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"config {config_path} is not valid JSON: {exc}") from exc
    return parse_config(raw)


def parse_config(raw: Any) -> BenchmarkConfig:
    if not isinstance(raw, dict):
        raise ConfigurationError("config root must be a JSON object")
    try:
        hub = raw["hub"]
        mint = raw["mint"]
        creator = mint["creator"]
        config = BenchmarkConfig(
            hub=HubConfig(
                url=str(hub["url"]),
                token=str(hub["token"]),
                request_timeout_seconds=float(
                    hub.get("request_timeout", DEFAULT_REQUEST_TIMEOUT_SECONDS)
                ),
            ),
            settings=Settings.from_mapping(raw.get("settings") or {}),
            mint=MintConfig(
                collection_id=str(mint["collection_id"]),
                recipient=str(mint["recipient"]),
                creator=CreatorConfig(
                    address=str(creator["address"]),
                    verified=bool(creator.get("verified", False)),
                ),
                description=str(mint.get("description", "")),
                compressed=bool(mint.get("compressed", False)),
                image=str(mint.get("image", "")),
                symbol=str(mint.get("symbol", "HOLAPLEX")),
            ),
        )
        config.settings.validate()
    except KeyError as exc:
        raise ConfigurationError(f"config is missing required key {exc.args[0]!r}") from exc
    except (TypeError, ValueError, AttributeError) as exc:
        raise ConfigurationError(f"config has an invalid value: {exc}") from exc

    return config


__all__ = [
    "BenchmarkConfig",
    "ConfigurationError",
    "CreatorConfig",
    "HubConfig",
    "MintConfig",
    "Settings",
    "load_config",
    "parse_config",
]
