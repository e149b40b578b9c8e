from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from config import ConfigurationSet, config_from_dict, config_from_env, config_from_yaml

from statcast_leaderboards.domain.errors import ConfigError


class AppConfig(Protocol):
    def __getitem__(self, key: str) -> object: ...


_DEFAULTS: dict[str, object] = {
    "report": {
        "default_limit": 100,
        "max_limit": 1000,
        "default_min_pitches": 100,
    },
    "leaderboard": {
        "game_year": 2025,
        "min_pitches": 500,
        "max_limit": 1000,
    },
    "trajectory": {
        "plate_distance_ft": 50.0,
    },
    "deployed": {
        "base_url": "http://localhost:3000",
        "ttl_seconds": 300,
        "timeout_seconds": 10.0,
    },
}


def create_config(
    yaml_path: str = "statcast_leaderboards.yaml",
    env_prefix: str = "SLB",
    defaults: dict[str, object] | None = None,
) -> ConfigurationSet:
    """Create a layered configuration.

    Priority (highest to lowest): env vars > YAML file > defaults dict.

    Args:
        yaml_path: Path to the YAML config file; a missing file is skipped.
        env_prefix: Prefix for environment variables, e.g. ``SLB__REPORT__MAX_LIMIT``.
        defaults: Default configuration values.
    """
    if defaults is None:
        defaults = _DEFAULTS
    return ConfigurationSet(
        config_from_env(env_prefix, separator="__", lowercase_keys=True),
        config_from_yaml(yaml_path, read_from_file=True, ignore_missing_paths=True),
        config_from_dict(defaults),
    )


@dataclass(frozen=True)
class EngineSettings:
    report_default_limit: int = 100
    report_max_limit: int = 1000
    report_default_min_pitches: int = 100
    leaderboard_game_year: int = 2025
    leaderboard_min_pitches: int = 500
    leaderboard_max_limit: int = 1000
    plate_distance_ft: float = 50.0
    deployed_base_url: str = "http://localhost:3000"
    deployed_ttl_seconds: int = 300
    deployed_timeout_seconds: float = 10.0


class InvalidSettingsError(ValueError):
    def __init__(self, error: ConfigError) -> None:
        super().__init__(error.message)
        self.error = error


def load_settings(cfg: AppConfig | None = None) -> EngineSettings:
    """Read engine settings from a layered config, raising ``InvalidSettingsError`` on bad values."""
    if cfg is None:
        cfg = create_config()
    bad: list[str] = []

    def _int(key: str) -> int:
        try:
            return int(str(cfg[key]))
        except ValueError:
            bad.append(key)
            return 0

    def _float(key: str) -> float:
        try:
            return float(str(cfg[key]))
        except ValueError:
            bad.append(key)
            return 0.0

    settings = EngineSettings(
        report_default_limit=_int("report.default_limit"),
        report_max_limit=_int("report.max_limit"),
        report_default_min_pitches=_int("report.default_min_pitches"),
        leaderboard_game_year=_int("leaderboard.game_year"),
        leaderboard_min_pitches=_int("leaderboard.min_pitches"),
        leaderboard_max_limit=_int("leaderboard.max_limit"),
        plate_distance_ft=_float("trajectory.plate_distance_ft"),
        deployed_base_url=str(cfg["deployed.base_url"]),
        deployed_ttl_seconds=_int("deployed.ttl_seconds"),
        deployed_timeout_seconds=_float("deployed.timeout_seconds"),
    )
    if settings.report_max_limit < 1:
        bad.append("report.max_limit")
    if settings.leaderboard_max_limit < 1:
        bad.append("leaderboard.max_limit")
    if bad:
        keys = tuple(dict.fromkeys(bad))
        error = ConfigError(message=f"Invalid configuration values: {', '.join(keys)}", invalid_keys=keys)
        raise InvalidSettingsError(error)
    return settings
