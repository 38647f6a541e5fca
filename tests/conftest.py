"""Shared pytest fixtures for integration and unit tests."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import TYPE_CHECKING, Generator, TypedDict

import pytest

from tests.utils.files import populate_directory
from tests.utils.http import reserve_port
from tests.utils.process import PROJECT_ROOT, launch_server, stop_server

if TYPE_CHECKING:
    from _pytest.tmpdir import TempPathFactory


class ServerProcessInfo(TypedDict):
    """Metadata describing a running server fixture instance."""

    base_url: str
    host: str
    port: int
    directory: Path
    process: subprocess.Popen[bytes]
    log_file: Path | None


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Expose the repository root path to tests."""

    return PROJECT_ROOT


@pytest.fixture(name="server_process")
def _server_process(
    tmp_path_factory: "TempPathFactory",
) -> Generator[ServerProcessInfo, None, None]:
    """Launch the file server in a background process for integration tests."""

    host = "127.0.0.1"
    port = reserve_port(host)
    directory = populate_directory(tmp_path_factory.mktemp("served"))
    log_file = tmp_path_factory.mktemp("logs") / "server.log"
    process = launch_server(host, port, directory, log_file=log_file)
    yield {
        "base_url": f"http://{host}:{port}",
        "host": host,
        "port": port,
        "directory": directory,
        "process": process,
        "log_file": log_file,
    }
    stop_server(process)


@pytest.fixture()
def base_url(server_process: ServerProcessInfo) -> str:
    """Expose the running server base URL to integration tests."""

    return server_process["base_url"]
