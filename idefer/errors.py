"""Exceptions raised by the deferred command system."""


class IDeferError(Exception):
    """Base class for all idefer errors."""


class DeferUsageError(IDeferError):
    """A `defer` invocation was rejected before anything was queued.

    The message is the full human-readable report (already prefixed with
    the command name) so callers can print it verbatim.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnknownCommandError(IDeferError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown command: {name}")
        self.name = name
