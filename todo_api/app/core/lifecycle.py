"""
Server lifecycle: startup, termination signals, draining and shutdown.

``LifecycleManager`` supervises a single uvicorn server:

1. SIGINT/SIGTERM handlers are installed on the running loop; they (or
   ``request_shutdown``) set the shutdown event.
2. The listener socket is bound here, so a bind failure is reported as
   ``BindError`` instead of uvicorn exiting the process on its own.
3. uvicorn serves on the socket in a background task.
4. When the shutdown event fires, uvicorn stops accepting connections
   and in-flight requests are given ``shutdown_timeout`` seconds to
   finish.  Requests still running after that are cancelled and their
   connections dropped, and ``ShutdownTimeoutError`` is raised.
5. The manager waits for the serving task to exit before returning.

State moves STARTING -> SERVING -> SHUTTING_DOWN -> STOPPED; a fatal
error moves it straight to STOPPED.  Nothing leaves STOPPED.
"""

import asyncio
import contextlib
import enum
import logging
import signal
import socket
from typing import Dict, Iterator, List, Optional

import uvicorn
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)
DEFAULT_SHUTDOWN_TIMEOUT = 10.0


class ServerState(enum.Enum):
    STARTING = "starting"
    SERVING = "serving"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


_TRANSITIONS: Dict[ServerState, frozenset] = {
    ServerState.STARTING: frozenset({ServerState.SERVING, ServerState.STOPPED}),
    ServerState.SERVING: frozenset({ServerState.SHUTTING_DOWN, ServerState.STOPPED}),
    ServerState.SHUTTING_DOWN: frozenset({ServerState.STOPPED}),
    ServerState.STOPPED: frozenset(),
}


class LifecycleError(Exception):
    """Base class for fatal server lifecycle failures."""


class BindError(LifecycleError):
    """The listener socket could not be bound."""


class ListenerError(LifecycleError):
    """The server stopped serving without being asked to."""


class ShutdownTimeoutError(LifecycleError):
    """Requests were still running when the shutdown window closed."""

    def __init__(self, outstanding: int, timeout: float) -> None:
        super().__init__(
            f"{outstanding} request(s) still running after {timeout:g}s shutdown window"
        )
        self.outstanding = outstanding
        self.timeout = timeout


class _Server(uvicorn.Server):
    """uvicorn server that leaves signal handling to the manager."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class LifecycleManager:
    """Run ``app`` until a termination signal, then drain and stop."""

    def __init__(
        self,
        app: ASGIApp,
        host: str = "0.0.0.0",
        port: int = 8080,
        shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT,
        backlog: int = 2048,
    ) -> None:
        self.app = app
        self.host = host
        self.port = port
        self.shutdown_timeout = shutdown_timeout
        self.backlog = backlog
        self.state = ServerState.STARTING
        self.bound_port: Optional[int] = None
        self._shutdown_event: Optional[asyncio.Event] = None
        self._server: Optional[_Server] = None
        self._installed_signals: List[signal.Signals] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    def _transition(self, new_state: ServerState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise LifecycleError(
                f"illegal state transition {self.state.value} -> {new_state.value}"
            )
        logger.debug("Server state %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    def request_shutdown(self) -> None:
        """Ask a running manager to shut down, as a signal would."""
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------
    def _on_signal(self, signum: int) -> None:
        logger.info("Received signal %s", signal.Signals(signum).name)
        self.request_shutdown()

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in HANDLED_SIGNALS:
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
            except (NotImplementedError, RuntimeError, ValueError):
                # Windows event loops, or not running in the main thread.
                try:
                    signal.signal(
                        sig,
                        lambda signum, frame: loop.call_soon_threadsafe(self._on_signal, signum),
                    )
                except ValueError:
                    logger.warning("Cannot install handler for %s", sig.name)
                    continue
            self._installed_signals.append(sig)

    def _restore_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        # Back to default handling: a second signal terminates immediately.
        for sig in self._installed_signals:
            try:
                removed = loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError, ValueError):
                removed = False
            if not removed:
                default = signal.default_int_handler if sig == signal.SIGINT else signal.SIG_DFL
                with contextlib.suppress(ValueError):
                    signal.signal(sig, default)
        self._installed_signals.clear()

    # ------------------------------------------------------------------
    # Serving
    # ------------------------------------------------------------------
    def _bind(self) -> socket.socket:
        try:
            sock = socket.create_server((self.host, self.port), backlog=self.backlog)
        except OSError as exc:
            raise BindError(f"cannot listen on {self.host}:{self.port}: {exc}") from exc
        sock.setblocking(False)
        return sock

    def _build_server(self) -> _Server:
        config = uvicorn.Config(
            self.app,
            log_config=None,
            access_log=False,
            lifespan="on",
        )
        return _Server(config)

    async def run(self) -> None:
        """Serve until shutdown is requested and the server has stopped.

        Raises
        ------
        BindError
            The listener could not be bound.
        ListenerError
            The server stopped on its own.
        ShutdownTimeoutError
            In-flight requests outlived the shutdown window.
        """
        loop = asyncio.get_running_loop()
        self._shutdown_event = asyncio.Event()
        self._install_signal_handlers(loop)
        try:
            await self._run(loop)
        finally:
            self._restore_signal_handlers(loop)

    async def _run(self, loop: asyncio.AbstractEventLoop) -> None:
        try:
            sock = self._bind()
        except BindError:
            self._transition(ServerState.STOPPED)
            raise
        self.bound_port = sock.getsockname()[1]

        self._server = server = self._build_server()
        serve_task = loop.create_task(server.serve(sockets=[sock]), name="uvicorn-serve")
        self._transition(ServerState.SERVING)
        logger.info("Listening on %s:%s", self.host, self.bound_port)

        shutdown_wait = loop.create_task(self._shutdown_event.wait(), name="shutdown-wait")
        try:
            await asyncio.wait({serve_task, shutdown_wait}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            shutdown_wait.cancel()

        if serve_task.done():
            self._transition(ServerState.STOPPED)
            sock.close()
            exc = serve_task.exception() if not serve_task.cancelled() else None
            raise ListenerError(f"server stopped unexpectedly: {exc!r}") from exc

        logger.info("Server is shutting down...")
        self._restore_signal_handlers(loop)
        self._transition(ServerState.SHUTTING_DOWN)
        server.should_exit = True

        done, _ = await asyncio.wait({serve_task}, timeout=self.shutdown_timeout)
        if not done:
            outstanding = self._abandon_requests(server)
            await serve_task
            self._transition(ServerState.STOPPED)
            raise ShutdownTimeoutError(outstanding, self.shutdown_timeout)

        # Surfaces any exception raised while uvicorn was shutting down.
        serve_task.result()
        self._transition(ServerState.STOPPED)
        logger.info("Server exited gracefully")

    @staticmethod
    def _abandon_requests(server: uvicorn.Server) -> int:
        tasks = list(server.server_state.tasks)
        logger.error(
            "Shutdown window elapsed, dropping %d in-flight request(s)", len(tasks)
        )
        for connection in list(server.server_state.connections):
            transport = getattr(connection, "transport", None)
            if transport is not None:
                transport.close()
        for task in tasks:
            task.cancel()
        server.force_exit = True
        return len(tasks)
