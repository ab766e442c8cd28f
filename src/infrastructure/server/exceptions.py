"""Custom exceptions for HTTP serving."""


class ServerError(Exception):
    """Base exception for HTTP server errors."""


class ServerStartupError(ServerError):
    """Raised when the server stops before it begins accepting connections."""
