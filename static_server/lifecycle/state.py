"""Server lifecycle state management."""

import enum
import logging
import socket
import threading
import time
from dataclasses import dataclass

from static_server.domain.correlation_id import CorrelationLoggerAdapter

LIFECYCLE_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("static_server.lifecycle"), {}
)


class ServerState(enum.Enum):
    """States a FileServer moves through, in order."""

    INITIALIZING = "initializing"
    LISTENING = "listening"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


@dataclass
class _TrackedConnection:
    client_socket: socket.socket
    idle: bool = True
    closed: bool = False


def _shutdown_socket(client_socket: socket.socket) -> None:
    try:
        client_socket.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass


class ServerLifecycle:
    """Manages server lifecycle state and worker connection tracking."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._draining_event = threading.Event()
        self._connections: dict[threading.Thread, _TrackedConnection] = {}

    def should_stop(self) -> bool:
        """Check if the server should stop accepting new connections."""
        return self._stop_event.is_set()

    def is_draining(self) -> bool:
        """Check if the server is in draining mode."""
        return self._draining_event.is_set()

    def register_worker(
        self, thread: threading.Thread, client_socket: socket.socket
    ) -> None:
        """Register a worker thread and the connection it serves."""
        with self._lock:
            self._connections[thread] = _TrackedConnection(client_socket)

    def cleanup_worker(self, thread: threading.Thread) -> None:
        """Remove a worker thread from tracking."""
        with self._lock:
            self._connections.pop(thread, None)

    def has_worker(self, thread: threading.Thread) -> bool:
        """Return True when the worker is currently tracked."""
        with self._lock:
            return thread in self._connections

    def active_worker_count(self) -> int:
        """Return the number of currently tracked worker threads."""
        with self._lock:
            return len(self._connections)

    def mark_idle(self, thread: threading.Thread) -> bool:
        """Flag the connection as waiting for a request.

        Returns False when the server is draining and the worker should close.
        """
        with self._lock:
            connection = self._connections.get(thread)
            if connection is not None:
                connection.idle = True
            return not self._draining_event.is_set()

    def mark_active(self, thread: threading.Thread) -> bool:
        """Flag the connection as serving a request.

        Returns False when draining already closed the connection.
        """
        with self._lock:
            connection = self._connections.get(thread)
            if connection is None:
                return True
            if connection.closed:
                return False
            connection.idle = False
            return True

    def begin_draining(self) -> None:
        """Stop accepting connections and close the idle ones."""
        with self._lock:
            self._draining_event.set()
            self._stop_event.set()
            idle_connections = [
                connection
                for connection in self._connections.values()
                if connection.idle and not connection.closed
            ]
            for connection in idle_connections:
                connection.closed = True
                _shutdown_socket(connection.client_socket)
        LIFECYCLE_LOGGER.info(
            "Beginning graceful shutdown",
            extra={"event": "draining_started", "state": "shutting_down"},
        )

    def wait_for_workers(self, timeout: float) -> bool:
        """Wait for all worker threads to complete within the timeout."""
        deadline = time.monotonic() + timeout
        while True:
            with self._lock:
                self._connections = {
                    thread: connection
                    for thread, connection in self._connections.items()
                    if thread.is_alive()
                }
                active_workers = list(self._connections)
            if not active_workers:
                return True
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                LIFECYCLE_LOGGER.warning(
                    "Shutdown timeout exceeded",
                    extra={"remaining_connections": len(active_workers)},
                )
                return False
            for worker in active_workers:
                worker.join(timeout=min(0.1, remaining))
                if time.monotonic() >= deadline:
                    break

    def force_close(self) -> int:
        """Abort every tracked connection; return how many were closed."""
        with self._lock:
            connections = [c for c in self._connections.values() if not c.closed]
            for connection in connections:
                connection.closed = True
                _shutdown_socket(connection.client_socket)
        return len(connections)
