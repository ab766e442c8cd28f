"""HTTP serving and process shutdown coordination."""

from src.infrastructure.server.exceptions import ServerError, ServerStartupError
from src.infrastructure.server.http_server import HttpServer
from src.infrastructure.server.protocol import Drainable
from src.infrastructure.server.shutdown import (
    ShutdownCoordinator,
    ShutdownState,
    termination_signals,
)

__all__ = [
    "Drainable",
    "HttpServer",
    "ServerError",
    "ServerStartupError",
    "ShutdownCoordinator",
    "ShutdownState",
    "termination_signals",
]
