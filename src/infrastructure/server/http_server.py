"""HTTP server built on uvicorn with an explicit graceful drain."""

import asyncio
import contextlib
from collections.abc import Iterator

import structlog
import uvicorn
from starlette.types import ASGIApp

from src.infrastructure.server.exceptions import ServerStartupError

logger = structlog.get_logger()


class _UvicornServer(uvicorn.Server):
    """uvicorn server that leaves termination signals to the ShutdownCoordinator."""

    def __init__(self, config: uvicorn.Config) -> None:
        super().__init__(config)
        # uvicorn only assigns this inside startup()
        self.servers: list[asyncio.Server] = []
        self.startup_complete = asyncio.Event()
        self.startup_exit: SystemExit | None = None

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield

    async def startup(self, sockets: list | None = None) -> None:
        try:
            await super().startup(sockets=sockets)
        except SystemExit as e:
            # Bind and lifespan failures exit the process from inside uvicorn
            self.startup_exit = e
            self.should_exit = True
        finally:
            self.startup_complete.set()


class HttpServer:
    """Serves an ASGI application until drained.

    The server runs as a task on the current event loop. Signal handling is
    not done here: whoever owns the process lifecycle calls drain().
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        host: str,
        port: int,
        drain_timeout: int | None = None,
        log_level: str = "info",
    ) -> None:
        """Initialize the server.

        Args:
            app: ASGI application to serve.
            host: Interface to bind.
            port: TCP port to bind (0 picks a free port).
            drain_timeout: Seconds to wait for in-flight requests on drain.
                None waits until every request has completed.
            log_level: uvicorn log level.
        """
        config = uvicorn.Config(
            app,
            host=host,
            port=port,
            log_level=log_level,
            log_config=None,  # Logging is configured by configure_logging()
            lifespan="on",
            timeout_graceful_shutdown=drain_timeout,
        )
        self._server = _UvicornServer(config)
        self._task: asyncio.Task[None] | None = None

    @property
    def port(self) -> int:
        """The bound TCP port."""
        if not self._server.servers:
            raise RuntimeError("Server not started")
        port: int = self._server.servers[0].sockets[0].getsockname()[1]
        return port

    @property
    def is_accepting(self) -> bool:
        """Whether the listening sockets are still open."""
        return any(server.is_serving() for server in self._server.servers)

    async def start(self) -> None:
        """Bind the listener and begin serving in the background.

        Returns once the server accepts connections.

        Raises:
            RuntimeError: If the server was already started.
            ServerStartupError: If the server stopped during startup.
        """
        if self._task is not None:
            raise RuntimeError("Server already started")

        self._task = asyncio.create_task(self._server.serve(), name="http-server")
        startup = asyncio.create_task(self._server.startup_complete.wait())
        await asyncio.wait({self._task, startup}, return_when=asyncio.FIRST_COMPLETED)
        startup.cancel()

        if not self._server.started or self._server.should_exit:
            # Surfaces the serve() failure, if any, before the generic error
            await self._task
            raise ServerStartupError(
                "HTTP server stopped during startup"
            ) from self._server.startup_exit

        logger.info("http_server_started", port=self.port)

    async def drain(self) -> None:
        """Stop accepting connections and wait for in-flight requests.

        Safe to call more than once; later calls wait for the same drain.
        """
        if self._task is None:
            return

        if not self._server.should_exit:
            logger.info("http_server_draining")
            self._server.should_exit = True

        await self._task
        logger.info("http_server_stopped")
