"""Exception hierarchy for gbworkouts.

Structural failures (unreadable catalog, bad export path) raise one of these.
Per-file and per-row problems never do; they end up in result counters.
"""


class GbWorkoutsError(Exception):
    """Base exception for all gbworkouts errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class ConfigurationError(GbWorkoutsError):
    """Config file exists but cannot be used."""


class ExportError(GbWorkoutsError):
    """Export path is neither a directory nor a readable export ZIP."""


class CatalogError(GbWorkoutsError):
    """SQLite catalog cannot be opened or inspected."""


class GpxParseError(GbWorkoutsError):
    """GPX markup is malformed (point mode only)."""


class NoWorkoutsFound(GbWorkoutsError):
    """Neither the database nor the GPX files produced any workout."""
