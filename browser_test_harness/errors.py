"""Exceptions raised by the test session lifecycle controller."""


class HarnessError(Exception):
    """Base class for all harness errors."""


class ConfigurationMissingError(HarnessError):
    """Raised when a required settings section is not found."""


class UnsupportedDriverKindError(HarnessError):
    """Raised when settings name a driver kind with no implementation."""

    def __init__(self, value: object, available: list[str] | None = None) -> None:
        self.value = value
        message = f"Unsupported driver kind: {value!r}"
        if available:
            message += f". Available driver kinds: {available}"
        super().__init__(message)


class ServiceStartFailure(HarnessError):
    """Raised when the driver service cannot be started."""


class ServiceNotRunningError(HarnessError):
    """Raised when a test is started without a live driver service."""


class SessionCreateFailure(HarnessError):
    """Raised when a browser session cannot be created."""


class SessionStateError(HarnessError):
    """Raised when a lifecycle operation is called in the wrong state."""


class UnsupportedOperationError(HarnessError):
    """Raised when a browser session does not support an operation."""


class UnknownOutcomeError(HarnessError):
    """Raised when a host framework outcome has no canonical status."""

    def __init__(self, outcome: object) -> None:
        self.outcome = outcome
        super().__init__(f"Unknown test outcome: {outcome!r}")


class DiagnosticsCaptureFailure(HarnessError):
    """A diagnostics step failed. Recorded and logged, never propagated."""

    def __init__(self, step: str, cause: BaseException) -> None:
        self.step = step
        self.cause = cause
        super().__init__(f"Diagnostics step '{step}' failed: {cause}")
