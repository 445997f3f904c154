"""Socket helpers shared by the client and the server."""

from __future__ import annotations

import select
import socket

from minitls.security import SecurityLayer
from minitls.tlv import VN3

BUFFER_SIZE = 2048
_IDLE_WAIT = 0.05


def resolve_hostname(hostname: str) -> str:
    """Return the first IPv4 address of ``hostname``."""
    try:
        return socket.gethostbyname(hostname)
    except (socket.gaierror, socket.herror, UnicodeError) as exc:
        raise ValueError("Invalid hostname") from exc


def send_all(sock: socket.socket, data: bytes) -> None:
    """Send every byte of ``data``, waiting whenever a non-blocking socket is full."""
    view = memoryview(data)
    while view:
        try:
            sent = sock.send(view)
        except BlockingIOError:
            select.select([], [sock], [])
            continue
        view = view[sent:]


class _RecordBuffer:
    """Collects received bytes and hands out complete TLV records."""

    def __init__(self) -> None:
        self._pending = bytearray()

    def feed(self, data: bytes) -> list[bytes]:
        self._pending += data
        records = []
        while True:
            size = self._record_size()
            if size is None or size > len(self._pending):
                return records
            records.append(bytes(self._pending[:size]))
            del self._pending[:size]

    def _record_size(self) -> int | None:
        pending = self._pending
        if len(pending) < 2:
            return None
        if pending[1] == VN3:
            if len(pending) < 4:
                return None
            return 4 + int.from_bytes(pending[2:4], "big")
        return 2 + pending[1]


def _relay(sock: socket.socket, layer: SecurityLayer) -> None:
    """Shuttle records between the socket and the security layer until the peer closes."""
    sock.setblocking(False)
    records = _RecordBuffer()
    while True:
        outgoing = layer.input(BUFFER_SIZE)
        if outgoing:
            send_all(sock, outgoing)
        try:
            incoming = sock.recv(BUFFER_SIZE)
        except BlockingIOError:
            select.select([sock], [], [], _IDLE_WAIT)
            continue
        if not incoming:
            return
        for record in records.feed(incoming):
            layer.output(record)