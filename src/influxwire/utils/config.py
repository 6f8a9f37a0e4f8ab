"""Configuration loading and validation."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from influxwire.errors import ValidationError

CONSISTENCY_LEVELS = ("any", "one", "quorum", "all")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class AppConfig:
    """Application configuration."""

    name: str = "influxwire"
    log_level: str = "INFO"


@dataclass(frozen=True)
class InfluxDbSettings:
    """Connection target for the InfluxDB HTTP API."""

    base_uri: str = "http://localhost:8086"
    database: str = "metrics"
    username: Optional[str] = None
    password: Optional[str] = None
    retention_policy: Optional[str] = None
    consistency: Optional[str] = None
    endpoint: str = "write"
    create_database_if_missing: bool = False

    def __post_init__(self) -> None:
        for name in ("base_uri", "database", "endpoint"):
            if not isinstance(getattr(self, name), str):
                raise ValidationError(f"{name} must be a string")
        if not self.base_uri:
            raise ValidationError("base_uri is required")
        if not self.database:
            raise ValidationError("database is required")
        if self.consistency is not None and self.consistency not in CONSISTENCY_LEVELS:
            raise ValidationError(
                f"consistency must be one of {', '.join(CONSISTENCY_LEVELS)}, "
                f"got {self.consistency!r}"
            )

    @property
    def write_url(self) -> str:
        """Absolute URL of the write endpoint."""
        return f"{self.base_uri.rstrip('/')}/{self.endpoint.lstrip('/')}"

    @property
    def query_url(self) -> str:
        """Absolute URL of the query endpoint."""
        return f"{self.base_uri.rstrip('/')}/query"

    @property
    def write_params(self) -> dict[str, str]:
        """Query-string parameters selecting the target database."""
        params = {"db": self.database}
        if self.retention_policy:
            params["rp"] = self.retention_policy
        if self.consistency:
            params["consistency"] = self.consistency
        return params

    @property
    def auth(self) -> Optional[tuple[str, str]]:
        """Basic-auth credentials, or None when no username is set."""
        if not self.username:
            return None
        return (self.username, self.password or "")


@dataclass(frozen=True)
class BackoffPolicy:
    """When to stop sending and for how long.

    After more than ``failures_before_backoff`` consecutive failed writes,
    sends are suppressed for ``backoff_period`` seconds.
    """

    failures_before_backoff: int = 5
    backoff_period: float = 30.0
    timeout_seconds: float = 30.0

    def __post_init__(self) -> None:
        if not _is_int(self.failures_before_backoff):
            raise ValidationError("failures_before_backoff must be an integer")
        for name in ("backoff_period", "timeout_seconds"):
            if not _is_number(getattr(self, name)):
                raise ValidationError(f"{name} must be a number of seconds")
        if self.failures_before_backoff < 0:
            raise ValidationError("failures_before_backoff must be >= 0")
        if self.backoff_period < 0:
            raise ValidationError("backoff_period must be >= 0")
        if self.timeout_seconds <= 0:
            raise ValidationError("timeout_seconds must be > 0")


@dataclass
class ReporterConfig:
    """Periodic reporting configuration."""

    flush_interval_seconds: float = 10.0
    include_timestamps: bool = True


@dataclass
class Config:
    """Root configuration object."""

    app: AppConfig = field(default_factory=AppConfig)
    influxdb: InfluxDbSettings = field(default_factory=InfluxDbSettings)
    policy: BackoffPolicy = field(default_factory=BackoffPolicy)
    reporter: ReporterConfig = field(default_factory=ReporterConfig)


def _dict_to_dataclass(cls: type, data: dict[str, Any]) -> Any:
    """Convert a dictionary to a dataclass instance, ignoring unknown keys."""
    if data is None:
        return cls()

    known = cls.__dataclass_fields__
    return cls(**{key: value for key, value in data.items() if key in known})


def _policy_from_dict(data: dict[str, Any]) -> BackoffPolicy:
    """Build a BackoffPolicy, accepting ``backoff_period_seconds`` in YAML."""
    data = dict(data or {})
    if "backoff_period_seconds" in data:
        data["backoff_period"] = data.pop("backoff_period_seconds")
    return _dict_to_dataclass(BackoffPolicy, data)


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to config file. If None, searches default locations.

    Returns:
        Config object with all settings.

    Raises:
        ValidationError: If a section holds invalid values.
    """
    search_paths = [
        Path(config_path) if config_path else None,
        Path("config/config.yaml"),
        Path("/etc/influxwire/config.yaml"),
        Path.home() / ".config" / "influxwire" / "config.yaml",
    ]

    config_file = None
    for path in search_paths:
        if path and path.exists():
            config_file = path
            break

    if config_file is None:
        return Config()

    with open(config_file) as f:
        data = yaml.safe_load(f) or {}

    return Config(
        app=_dict_to_dataclass(AppConfig, data.get("app", {})),
        influxdb=_dict_to_dataclass(InfluxDbSettings, data.get("influxdb", {})),
        policy=_policy_from_dict(data.get("policy", {})),
        reporter=_dict_to_dataclass(ReporterConfig, data.get("reporter", {})),
    )
