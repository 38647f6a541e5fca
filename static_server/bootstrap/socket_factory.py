"""Listening socket creation."""

import socket

from static_server.bootstrap.config import ACCEPT_POLL_SECONDS, ServerConfig


def create_server_socket(config: ServerConfig) -> socket.socket:
    """Bind the listening socket for ``config``; bind errors propagate."""
    if config.host:
        server_socket = socket.create_server((config.host, config.port))
    elif socket.has_dualstack_ipv6():
        server_socket = socket.create_server(
            ("", config.port), family=socket.AF_INET6, dualstack_ipv6=True
        )
    else:
        server_socket = socket.create_server(("", config.port))
    server_socket.settimeout(ACCEPT_POLL_SECONDS)
    return server_socket
