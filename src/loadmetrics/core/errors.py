"""Exception types raised by loadmetrics."""


class LoadMetricsError(Exception):
    """Base class for loadmetrics errors."""


class ConfigError(LoadMetricsError):
    """Raised when the reporter configuration is missing or malformed.

    Configuration errors are fatal: they are raised before any report is
    processed.
    """


class MetricsWriteError(LoadMetricsError):
    """Raised when a storage writer fails to persist a batch of points."""
