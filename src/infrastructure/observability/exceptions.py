"""Custom exceptions for telemetry setup."""


class TelemetryError(Exception):
    """Base exception for telemetry errors."""


class TelemetryConfigurationError(TelemetryError):
    """Raised when the trace export pipeline cannot be constructed."""


class CredentialNotFoundError(TelemetryConfigurationError):
    """Raised when the telemetry API key is missing or blank."""

    def __init__(self, message: str, *, source: str) -> None:
        self.source = source
        super().__init__(message)
