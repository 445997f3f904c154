"""Server command: accept one client and run the secure channel over stdio."""

from __future__ import annotations

import logging
import socket
import sys

from minitls.crypto import KeyLoadError
from minitls.net import _relay
from minitls.security import HandshakeError, SecurityLayer, State

USAGE = "Usage: server <port>"


def run_server(port: int, bad_mac: bool = False) -> None:
    """Accept one client on ``port`` and relay until it closes the connection."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as listener:
        listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        listener.bind(("", port))
        listener.listen(5)
        conn, _ = listener.accept()
    with conn:
        layer = SecurityLayer(State.SERVER_CLIENT_HELLO_AWAIT, None, bad_mac)
        _relay(conn, layer)


def main(argv: list[str] | None = None) -> int:
    """Run the server; return the process exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print(USAGE, file=sys.stderr)
        return 1
    try:
        port = int(args[0])
    except ValueError:
        print(USAGE, file=sys.stderr)
        return 1
    if not 0 <= port <= 0xFFFF:
        print(USAGE, file=sys.stderr)
        return 1
    logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format="%(message)s")
    try:
        run_server(port, bad_mac=len(args) > 1)
    except HandshakeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return exc.exit_code
    except KeyLoadError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 255
    except OSError as exc:
        print(f"server: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())