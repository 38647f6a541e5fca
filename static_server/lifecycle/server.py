"""Listening socket ownership and bounded graceful shutdown."""

import logging
import socket
import threading
import time
from typing import Callable, Optional

from static_server.bootstrap.config import ServerConfig
from static_server.bootstrap.socket_factory import create_server_socket
from static_server.domain.correlation_id import CorrelationLoggerAdapter
from static_server.lifecycle.state import ServerLifecycle, ServerState
from static_server.pipeline.router import Router, build_router
from static_server.transport.accept_loop import accept_connections
from static_server.transport.context import WorkerContext

SERVER_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("static_server.lifecycle.server"), {}
)


class ServerClosed(Exception):
    """Raised when serving is requested after the server was shut down."""


class ShutdownTimeout(Exception):
    """Raised when connections were still in flight at the shutdown deadline."""


class FileServer:
    """Owns the listener and worker threads of one serving session.

    ``start`` binds and accepts on a background thread; ``shutdown`` stops
    accepting, lets in-flight requests finish until the deadline and then
    aborts the rest.
    """

    def __init__(self, config: ServerConfig, router: Optional[Router] = None) -> None:
        self.config = config
        self.router = router if router is not None else build_router(config)
        self.lifecycle = ServerLifecycle()
        self.state = ServerState.INITIALIZING
        self.error: Optional[BaseException] = None
        self.server_address: Optional[tuple] = None
        self._state_lock = threading.Lock()
        self._listener_lock = threading.Lock()
        self._listener: Optional[socket.socket] = None
        self._ready = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _set_state(self, state: ServerState) -> None:
        with self._state_lock:
            self.state = state
        SERVER_LOGGER.debug(
            "Server state changed",
            extra={"event": "state_changed", "state": state.value},
        )

    def _close_listener(self) -> None:
        with self._listener_lock:
            listener, self._listener = self._listener, None
        if listener is None:
            return
        try:
            listener.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        listener.close()

    def serve_forever(self) -> None:
        """Bind the listener and accept connections until shutdown.

        Bind errors propagate to the caller. Raises ServerClosed when the
        server has already been shut down.
        """
        with self._state_lock:
            if self.state is not ServerState.INITIALIZING:
                raise ServerClosed("Server already closed")
            try:
                listener = create_server_socket(self.config)
            except OSError:
                self.state = ServerState.STOPPED
                raise
            with self._listener_lock:
                self._listener = listener
            self.server_address = listener.getsockname()[:2]
            self.state = ServerState.LISTENING

        SERVER_LOGGER.info(
            "Server listening for connections",
            extra={
                "event": "server_listening",
                "host": self.server_address[0],
                "port": self.server_address[1],
            },
        )
        self._ready.set()
        try:
            accept_connections(listener, WorkerContext(self.router, self.lifecycle))
        finally:
            self._close_listener()

    def start(
        self, on_failure: Optional[Callable[[], None]] = None
    ) -> threading.Thread:
        """Run ``serve_forever`` on a background thread.

        A bind or listener failure is stored on ``error`` and reported through
        ``on_failure`` so the controlling thread can stop waiting.
        """

        def run() -> None:
            try:
                self.serve_forever()
            except ServerClosed:
                pass
            except Exception as error:  # pylint: disable=broad-except
                self.error = error
                if on_failure is not None:
                    on_failure()
            finally:
                self._ready.set()

        self._thread = threading.Thread(target=run, name="accept-loop", daemon=True)
        self._thread.start()
        return self._thread

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """Block until the listener is bound (or failed); True when listening."""
        self._ready.wait(timeout)
        return self.state is ServerState.LISTENING

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Stop accepting, wait for in-flight requests, then abort stragglers.

        Shutting down an already closed server is a no-op. Raises
        ShutdownTimeout when connections had to be aborted at the deadline.
        """
        grace = self.config.shutdown_grace_seconds if timeout is None else timeout
        deadline = time.monotonic() + grace
        with self._state_lock:
            if self.state in (ServerState.SHUTTING_DOWN, ServerState.STOPPED):
                return
            self.state = ServerState.SHUTTING_DOWN

        self.lifecycle.begin_draining()
        self._close_listener()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=max(0.0, deadline - time.monotonic()))

        SERVER_LOGGER.info(
            "Waiting for active connections to complete",
            extra={"event": "shutdown_waiting", "grace_seconds": grace},
        )
        completed = self.lifecycle.wait_for_workers(
            max(0.0, deadline - time.monotonic())
        )
        aborted = 0 if completed else self.lifecycle.force_close()
        self._set_state(ServerState.STOPPED)
        SERVER_LOGGER.info(
            "Server shutdown complete", extra={"event": "server_stopped"}
        )
        if not completed:
            raise ShutdownTimeout(
                f"{aborted} connection(s) still active after {grace:g}s"
            )
