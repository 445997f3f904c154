"""Client command: connect to a server and run the secure channel over stdio."""

from __future__ import annotations

import logging
import socket
import sys

from minitls.crypto import KeyLoadError
from minitls.net import _relay, resolve_hostname
from minitls.security import HandshakeError, SecurityLayer, State

USAGE = "Usage: client <hostname> <port>"


def run_client(hostname: str, port: int, bad_mac: bool = False) -> None:
    """Connect to ``hostname:port`` and relay until the server closes the connection."""
    address = resolve_hostname(hostname)
    layer = SecurityLayer(State.CLIENT_CLIENT_HELLO_SEND, hostname, bad_mac)
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.connect((address, port))
        _relay(sock, layer)


def main(argv: list[str] | None = None) -> int:
    """Run the client; return the process exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) < 2:
        print(USAGE, file=sys.stderr)
        return 1
    try:
        port = int(args[1])
    except ValueError:
        print(USAGE, file=sys.stderr)
        return 1
    if not 0 <= port <= 0xFFFF:
        print(USAGE, file=sys.stderr)
        return 1
    logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format="%(message)s")
    try:
        run_client(args[0], port, bad_mac=len(args) > 2)
    except HandshakeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return exc.exit_code
    except KeyLoadError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 255
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 255
    except OSError as exc:
        print(f"connect: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())