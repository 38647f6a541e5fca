"""Request routing and access logging."""

import logging
import time
from http import HTTPStatus
from typing import Callable

from static_server.bootstrap.config import ServerConfig
from static_server.domain.correlation_id import CorrelationLoggerAdapter
from static_server.domain.http_types import HttpRequest
from static_server.domain.response_builders import not_found_response
from static_server.handlers.file_handler import FileResponder
from static_server.pipeline.io import send_response
from static_server.pipeline.recorder import StatusRecorder

ROUTER_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("static_server.pipeline.router"), {}
)
ACCESS_LOGGER = CorrelationLoggerAdapter(logging.getLogger("static_server.access"), {})

Handler = Callable[..., None]


class Router:
    """Dispatch requests to the handler registered for the longest path prefix."""

    def __init__(self) -> None:
        self._routes: list[tuple[str, Handler]] = []

    def handle(self, prefix: str, handler: Handler) -> None:
        """Register ``handler`` for every path starting with ``prefix``."""
        if any(existing == prefix for existing, _ in self._routes):
            raise ValueError(f"Multiple registrations for {prefix}")
        self._routes.append((prefix, handler))
        self._routes.sort(key=lambda route: len(route[0]), reverse=True)

    def dispatch(self, writer, request: HttpRequest) -> None:
        """Invoke the matching handler, or answer 404 when none matches."""
        for prefix, handler in self._routes:
            if request.path.startswith(prefix):
                if ROUTER_LOGGER.logger.isEnabledFor(logging.DEBUG):
                    ROUTER_LOGGER.debug(
                        "Route matched",
                        extra={"event": "route_matched", "route": prefix},
                    )
                handler(writer, request)
                return
        send_response(writer, not_found_response())


def log_requests(handler: Handler) -> Handler:
    """Wrap ``handler`` so each completed request logs ``METHOD STATUS PATH``."""

    def logged_handler(writer, request: HttpRequest) -> None:
        started = time.perf_counter()
        recorder = StatusRecorder(writer)
        try:
            handler(recorder, request)
        except OSError:
            raise
        except Exception:
            # the worker answers 500 when nothing reached the wire yet
            if not recorder.header_written:
                recorder.status = int(HTTPStatus.INTERNAL_SERVER_ERROR)
            raise
        finally:
            ACCESS_LOGGER.info(
                "%s %s %s",
                request.method,
                recorder.status,
                request.path,
                extra={
                    "event": "request_complete",
                    "method": request.method,
                    "status_code": recorder.status,
                    "route": request.path,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 3),
                },
            )

    return logged_handler


def build_router(config: ServerConfig) -> Router:
    """Register the file responder on ``/``, wrapped for logging when enabled."""
    handler: Handler = FileResponder(config.directory)
    if config.log_requests:
        handler = log_requests(handler)
    router = Router()
    router.handle("/", handler)
    return router
