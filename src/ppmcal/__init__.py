"""ppmcal - project calendar, activity log and automatic archival of expired events."""

__version__ = "0.1.0"
