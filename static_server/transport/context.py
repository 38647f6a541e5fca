"""Context object shared across worker threads."""

from dataclasses import dataclass

from static_server.lifecycle.state import ServerLifecycle
from static_server.pipeline.router import Router


@dataclass
class WorkerContext:
    """Dependencies shared across handler threads."""

    router: Router
    lifecycle: ServerLifecycle
