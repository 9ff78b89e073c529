"""Configuration management for ppmcal."""

import logging
import os
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # Python < 3.11

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = "./ppm_data"


def _find_repo_root(start_dir: Path) -> Path:
    """Find repository root by walking upward looking for .git or pyproject.toml."""
    current_dir = start_dir

    while True:
        if (current_dir / ".git").exists() or (current_dir / "pyproject.toml").exists():
            return current_dir

        parent_dir = current_dir.parent

        # Stop if we reach filesystem root
        if parent_dir == current_dir:
            return start_dir

        current_dir = parent_dir


def _load_repo_config_data(repo_root: Path) -> Optional[dict]:
    """Load repo config data from .ppmcal/config.toml if it exists."""
    config_file = repo_root / ".ppmcal" / "config.toml"

    if not config_file.exists():
        return None

    try:
        with open(config_file, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring malformed %s: %s", config_file, e)
        return None


def _get_repo_config_value(data: Optional[dict], keys: list[str]) -> Optional[str]:
    """Safely get a nested repo config value."""
    if not data:
        return None
    current = data
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    if isinstance(current, str):
        return current
    return None


def resolve_data_dir(cli_data_dir: Optional[str] = None) -> Path:
    """Resolve the data directory with the following precedence:

    1. CLI --data-dir option (if provided)
    2. repo-local .ppmcal/config.toml (walk upward from CWD)
    3. PPMCAL_DATA_DIR environment variable
    4. ./ppm_data

    The directory does not need to exist yet; `ppmcal init` creates it.
    """
    if cli_data_dir:
        return Path(cli_data_dir).expanduser().resolve()

    repo_data = _load_repo_config_data(_find_repo_root(Path.cwd()))
    repo_dir = _get_repo_config_value(repo_data, ["data_dir"])
    if repo_dir:
        return Path(repo_dir).expanduser().resolve()

    env_dir = os.environ.get("PPMCAL_DATA_DIR")
    if env_dir:
        return Path(env_dir).expanduser().resolve()

    return Path(DEFAULT_DATA_DIR).resolve()


class PpmConfig(BaseModel):
    """Configuration for the PPM calendar store and archival."""

    data_dir: Path = Field(default_factory=lambda: Path(DEFAULT_DATA_DIR))
    display_timezone: str = Field(default="UTC")
    activity_source: str = Field(default="Project Calendar")

    events_collection: str = Field(default="calendarEvents")
    activity_collection: str = Field(default="activityLogEntries")
    projects_collection: str = Field(default="projectsPPM")

    model_config = {"frozen": False}

    @field_validator("display_timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.display_timezone)

    @classmethod
    def from_env(cls, cli_data_dir: Optional[str] = None) -> "PpmConfig":
        """Load configuration from the CLI option, repo config, environment or defaults.

        Args:
            cli_data_dir: Data directory from CLI --data-dir option (highest precedence)
        """
        data_dir = resolve_data_dir(cli_data_dir)
        repo_config = _load_repo_config_data(_find_repo_root(Path.cwd()))

        def pick(env_name: str, keys: list[str], default: str) -> str:
            return os.environ.get(env_name) or _get_repo_config_value(repo_config, keys) or default

        return cls(
            data_dir=data_dir,
            display_timezone=pick("PPMCAL_TIMEZONE", ["display", "timezone"], "UTC"),
            activity_source=pick("PPMCAL_ACTIVITY_SOURCE", ["archival", "source"], "Project Calendar"),
            events_collection=pick("PPMCAL_EVENTS_COLLECTION", ["collections", "events"], "calendarEvents"),
            activity_collection=pick(
                "PPMCAL_ACTIVITY_COLLECTION", ["collections", "activity"], "activityLogEntries"
            ),
            projects_collection=pick("PPMCAL_PROJECTS_COLLECTION", ["collections", "projects"], "projectsPPM"),
        )

    def to_toml_str(self) -> str:
        """Generate a config.toml snapshot of this configuration."""
        return f"""# ppmcal configuration

data_dir = '{self.data_dir}'

[display]
timezone = '{self.display_timezone}'

[archival]
source = '{self.activity_source}'

[collections]
events = '{self.events_collection}'
activity = '{self.activity_collection}'
projects = '{self.projects_collection}'
"""
