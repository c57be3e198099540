"""Exceptions raised by the HAR logging pipeline."""

from typing import Optional


class HarLoggerError(Exception):
    """Base exception for har_logger errors."""

    pass


class WriterFailedError(HarLoggerError):
    """Raised when a target's writer could not produce its document."""

    def __init__(self, target: str, cause: Optional[BaseException] = None):
        message = f"HAR writer for {target!r} failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.target = target
        self.cause = cause


class ShutdownError(HarLoggerError):
    """Raised by shutdown() after all targets were processed, if any failed.

    ``failures`` maps each affected target to the reason it did not close
    cleanly (the writer's exception, or a timeout error).
    """

    def __init__(self, failures: dict[str, BaseException]):
        targets = ", ".join(sorted(failures))
        super().__init__(f"{len(failures)} HAR target(s) did not close cleanly: {targets}")
        self.failures = failures


class RegistryClosedError(HarLoggerError):
    """Raised when a new target is requested after shutdown has begun."""

    def __init__(self, target: str):
        super().__init__(f"Cannot register HAR target {target!r}: registry is shut down")
        self.target = target
