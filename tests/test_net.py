import ipaddress
import socket
import threading

import pytest

from minitls.net import resolve_hostname, send_all


def test_resolve_numeric_address_returns_itself():
    assert resolve_hostname("127.0.0.1") == "127.0.0.1"


def test_resolve_localhost_is_loopback():
    assert ipaddress.ip_address(resolve_hostname("localhost")).is_loopback


def test_resolve_invalid_hostname_raises():
    with pytest.raises(ValueError, match="Invalid hostname"):
        resolve_hostname("nonexistent.invalid")


def _drain(sock, size, out):
    while len(out) < size:
        chunk = sock.recv(65536)
        if not chunk:
            break
        out += chunk


def _recv_exactly(sock, size):
    received = bytearray()
    _drain(sock, size, received)
    return bytes(received)


def _recv_until_closed(sock):
    return b"".join(iter(lambda: sock.recv(64), b""))


def test_send_all_delivers_everything_on_nonblocking_socket():
    data = bytes(range(256)) * 4096
    sender, receiver = socket.socketpair()
    with sender, receiver:
        sender.setblocking(False)
        received = bytearray()
        reader = threading.Thread(target=_drain, args=(receiver, len(data), received))
        reader.start()
        send_all(sender, data)
        reader.join(timeout=10)
        assert bytes(received) == data


def test_send_all_small_payload():
    sender, receiver = socket.socketpair()
    with sender, receiver:
        send_all(sender, b"hello")
        sender.shutdown(socket.SHUT_WR)
        received = _recv_until_closed(receiver)
        assert received == b"hello"


def test_send_all_empty_sends_nothing():
    sender, receiver = socket.socketpair()
    with sender, receiver:
        send_all(sender, b"")
        send_all(sender, b"tail")
        sender.shutdown(socket.SHUT_WR)
        assert _recv_exactly(receiver, 64) == b"tail"