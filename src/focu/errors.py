"""Error types raised inside the conversation engine.

Cancellation is deliberately absent: a stopped reply is signalled through
a ``CancellationToken`` and is never an exception.
"""


class FocuError(Exception):
    """Base class for engine errors."""


class ConfigurationError(FocuError):
    """No usable model or provider for a request (turn is abandoned)."""

    def __init__(self, message: str):
        super().__init__(f"Configuration error: {message}")


class StreamError(FocuError):
    """Transport or provider failure while talking to a model backend."""

    def __init__(self, message: str, provider: str | None = None):
        msg = f"Stream error: {message}"
        if provider:
            msg += f" (provider: {provider})"
        super().__init__(msg)
        self.provider = provider


class ParseError(FocuError):
    """Model output could not be parsed into the expected shape."""

    def __init__(self, message: str):
        super().__init__(f"Parse error: {message}")


class PersistenceError(FocuError):
    """A repository read or write failed."""

    def __init__(self, message: str):
        super().__init__(f"Persistence error: {message}")
