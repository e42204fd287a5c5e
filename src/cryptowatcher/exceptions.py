"""Custom exceptions for the price watcher.

All exceptions live here to avoid circular imports between the
fetcher, the state model and the dashboard loop.
"""


class WatcherError(Exception):
    """Base exception for all watcher errors."""


class ConfigError(WatcherError):
    """Raised when startup configuration is invalid. Fatal before the loop starts."""


class FetchError(WatcherError):
    """A single asset's fetch failed for one cycle.

    Returned as a value in the fetch result mapping rather than raised
    across the loop, so one asset's failure never affects its siblings.
    """

    def __init__(self, symbol: str, cause: str) -> None:
        super().__init__(f"{symbol}: {cause}")
        self.symbol = symbol
        self.cause = cause


class StaleSample(WatcherError):
    """Raised when a sample is not newer than the last stored sample."""


class AlreadyPopulated(WatcherError):
    """Raised when bulk-loading a history buffer that already holds samples."""
