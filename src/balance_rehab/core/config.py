"""Configuration management with dataclasses and YAML loading."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


@dataclass
class DatabaseConfig:
    """Database configuration."""

    url: str = "sqlite:///data/rehab.db"
    echo: bool = False


@dataclass
class SessionConfig:
    """Sample ingest and session lifecycle configuration."""

    user_id: str = "user123"
    sample_interval: float = 0.1  # seconds, 10 Hz
    ingest_window: int = 100
    walking_threshold: float = 0.1
    drain_timeout: float = 5.0  # seconds to wait for queued samples on end


@dataclass
class GaitConfig:
    """Bounds for the placeholder gait generator."""

    step_length_range: tuple[float, float] = (0.5, 0.8)
    step_time_range: tuple[float, float] = (0.8, 1.2)
    symmetry_range: tuple[float, float] = (0.7, 1.0)
    seed: int | None = None

    def __post_init__(self) -> None:
        """Convert YAML lists to tuples."""
        for attr_name in ["step_length_range", "step_time_range", "symmetry_range"]:
            val = getattr(self, attr_name)
            if isinstance(val, list):
                setattr(self, attr_name, tuple(val))


@dataclass
class RecommendationConfig:
    """Recommendation engine configuration."""

    latency_seconds: float = 0.5
    history_window: int = 5
    training_seed: int | None = 42


@dataclass
class ProgressConfig:
    """Progress aggregation windows."""

    trend_window: int = 10
    improvement_window: int = 5


@dataclass
class VRConfig:
    """Simulated VR link configuration."""

    connect_delay: float = 1.5  # seconds
    calibration_delay: float = 2.0  # seconds


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"

    def __post_init__(self) -> None:
        """Let the environment override the configured level."""
        self.level = os.getenv("REHAB_LOG_LEVEL", self.level)


@dataclass
class Settings:
    """Main application settings."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    gait: GaitConfig = field(default_factory=GaitConfig)
    recommendation: RecommendationConfig = field(default_factory=RecommendationConfig)
    progress: ProgressConfig = field(default_factory=ProgressConfig)
    vr: VRConfig = field(default_factory=VRConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Settings:
        """Load settings from YAML file."""
        path = Path(path)
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> Settings:
        """Create Settings from dictionary."""
        return cls(
            database=DatabaseConfig(**data.get("database", {})),
            session=SessionConfig(**data.get("session", {})),
            gait=GaitConfig(**data.get("gait", {})),
            recommendation=RecommendationConfig(**data.get("recommendation", {})),
            progress=ProgressConfig(**data.get("progress", {})),
            vr=VRConfig(**data.get("vr", {})),
            logging=LoggingConfig(**data.get("logging", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary."""
        from dataclasses import asdict

        result = asdict(self)
        # YAML has no tuple type
        for key, val in result["gait"].items():
            if isinstance(val, tuple):
                result["gait"][key] = list(val)
        return result

    def ensure_directories(self) -> None:
        """Create the parent directory of a file-backed SQLite database."""
        url = self.database.url
        if url.startswith("sqlite:///") and url != "sqlite:///:memory:":
            Path(url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)


# Global settings instance
_settings: Settings | None = None


def get_settings(config_path: str | Path | None = None) -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        if config_path is None:
            # Default config paths to check
            for candidate in [
                Path("config/settings.yaml"),
                Path.home() / ".config/balance-rehab/settings.yaml",
            ]:
                if candidate.exists():
                    config_path = candidate
                    break

        _settings = Settings.from_yaml(config_path) if config_path else Settings()

    return _settings


def reload_settings(config_path: str | Path | None = None) -> Settings:
    """Force reload settings from file."""
    global _settings
    _settings = None
    return get_settings(config_path)
