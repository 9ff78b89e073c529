"""Path management for the ppmcal data directory."""

from pathlib import Path

from .config import PpmConfig


class DataPaths:
    """Manages paths within the ppmcal data directory."""

    def __init__(self, data_root: Path):
        """Initialize data paths from root directory.

        Args:
            data_root: Root directory holding the store and logs
        """
        self.root = data_root

        self.store_db = data_root / "ppm.sqlite"
        self.notifications_file = data_root / "notifications.jsonl"
        self.config_file = data_root / "config.toml"

        self.traces = data_root / "traces"
        self.traces_archival = self.traces / "archival"

    @classmethod
    def from_config(cls, config: PpmConfig) -> "DataPaths":
        """Create DataPaths from a PpmConfig."""
        return cls(config.data_dir)

    def is_initialized(self) -> bool:
        return self.store_db.exists()

    def get_all_directories(self) -> list[Path]:
        """Get list of all directories that should exist in the data directory."""
        return [
            self.root,
            self.traces,
            self.traces_archival,
        ]

    def traces_archival_date_folder(self, date_str: str) -> Path:
        """Get path to traces/archival folder for a specific date.

        Args:
            date_str: Date in YYYY-MM-DD format

        Returns:
            Path to the traces/archival date folder
        """
        return self.traces_archival / date_str
