"""The handshake and record layer that sits between the socket and stdio."""

from __future__ import annotations

import hmac
import logging
import os
from enum import IntEnum
from pathlib import Path

from minitls import crypto
from minitls.stdio import StdioChannel
from minitls.tlv import Tlv, TlvError, TlvType, deserialize_tlv, describe_tlv_bytes

log = logging.getLogger(__name__)

SERVER_CERT_FILE = "server_cert.bin"
SERVER_KEY_FILE = "server_key.bin"
CA_PUBLIC_KEY_FILE = "ca_public_key.bin"

# Largest plaintext read per record, so that the encrypted record fits one send.
PLAINTEXT_LIMIT = 943


class State(IntEnum):
    """Handshake states of the security layer."""

    SERVER_CLIENT_HELLO_AWAIT = 0
    CLIENT_CLIENT_HELLO_SEND = 1
    SERVER_SERVER_HELLO_SEND = 2
    CLIENT_SERVER_HELLO_AWAIT = 3
    SERVER_FINISHED_AWAIT = 6
    CLIENT_FINISHED_SEND = 7
    DATA_STATE = 8


class HandshakeError(Exception):
    """A protocol failure; ``exit_code`` is the status the program exits with."""

    def __init__(self, exit_code: int, message: str):
        super().__init__(message)
        self.exit_code = exit_code


def _require(node: Tlv, tlv_type: TlvType) -> Tlv:
    found = node.find(tlv_type)
    if found is None or (found.value is None and not found.children):
        raise HandshakeError(6, f"missing {tlv_type.name} record")
    return found


def _parse(data: bytes, expected: TlvType) -> Tlv:
    try:
        node = deserialize_tlv(data)
    except TlvError as exc:
        raise HandshakeError(6, f"malformed record: {exc}") from exc
    if node.type != expected:
        raise HandshakeError(6, f"received a record other than {expected.name}")
    return node


class SecurityLayer:
    """Runs the handshake, then encrypts stdin for the peer and decrypts the peer's data."""

    def __init__(
        self,
        initial_state: State,
        hostname: str | None = None,
        bad_mac: bool = False,
        channel: StdioChannel | None = None,
        base_dir: str | os.PathLike = ".",
    ):
        self.state = State(initial_state)
        self.hostname = hostname
        self.bad_mac = bad_mac
        self.channel = channel if channel is not None else StdioChannel()
        self.base_dir = Path(base_dir)
        self.transcript = b""
        self._client_hello: Tlv | None = None
        self._private_key = None
        self._peer_key = None
        self._enc_key: bytes | None = None
        self._mac_key: bytes | None = None
        if self.state is State.CLIENT_CLIENT_HELLO_SEND:
            log.info("Initialize Client's state_sec = CLIENT_CLIENT_HELLO_SEND")
        elif self.state is State.SERVER_CLIENT_HELLO_AWAIT:
            log.info("Initialize Server's state_sec = SERVER_CLIENT_HELLO_AWAIT")

    # -- outgoing -----------------------------------------------------------

    def input(self, max_length: int) -> bytes:
        """Return the next record to send to the peer, or ``b""`` if there is none."""
        handlers = {
            State.CLIENT_CLIENT_HELLO_SEND: self._send_client_hello,
            State.SERVER_SERVER_HELLO_SEND: self._send_server_hello,
            State.CLIENT_FINISHED_SEND: self._send_finished,
            State.DATA_STATE: self._send_data,
        }
        handler = handlers.get(self.state)
        if handler is None:
            return b""
        record = handler()
        if len(record) > max_length:
            raise ValueError(f"record of {len(record)} bytes exceeds {max_length}")
        return record

    def _send_client_hello(self) -> bytes:
        log.debug("SEND CLIENT HELLO")
        hello = Tlv(TlvType.CLIENT_HELLO)
        hello.add_child(Tlv(TlvType.NONCE, crypto.generate_nonce(crypto.NONCE_SIZE)))
        self._private_key = crypto.generate_private_key()
        hello.add_child(Tlv(TlvType.PUBLIC_KEY, crypto.public_key_der(self._private_key)))
        record = hello.serialize()
        self._client_hello = hello
        self.transcript = record
        log.debug("client_hello sent by client:\n%s", describe_tlv_bytes(record))
        self.state = State.CLIENT_SERVER_HELLO_AWAIT
        return record

    def _send_server_hello(self) -> bytes:
        log.debug("SEND SERVER HELLO")
        nonce = Tlv(TlvType.NONCE, crypto.generate_nonce(crypto.NONCE_SIZE))
        cert_bytes = crypto.load_certificate(self.base_dir / SERVER_CERT_FILE)
        try:
            cert = deserialize_tlv(cert_bytes)
        except TlvError as exc:
            raise crypto.KeyLoadError("invalid certificate") from exc

        self._private_key = crypto.generate_private_key()
        public = Tlv(TlvType.PUBLIC_KEY, crypto.public_key_der(self._private_key))

        signed = (
            self._client_hello.serialize()
            + nonce.serialize()
            + cert.serialize()
            + public.serialize()
        )
        server_key = crypto.load_private_key(self.base_dir / SERVER_KEY_FILE)
        signature = Tlv(TlvType.HANDSHAKE_SIGNATURE, crypto.sign(server_key, signed))

        hello = Tlv(TlvType.SERVER_HELLO)
        for child in (nonce, cert, public, signature):
            hello.add_child(child)
        record = hello.serialize()
        self.transcript += record

        secret = crypto.derive_secret(self._private_key, self._peer_key)
        self._enc_key, self._mac_key = crypto.derive_keys(secret, self.transcript)
        log.debug("server_hello sent by server:\n%s", describe_tlv_bytes(record))
        self.state = State.SERVER_FINISHED_AWAIT
        return record

    def _send_finished(self) -> bytes:
        log.debug("SEND FINISHED")
        digest = crypto.hmac_digest(self._mac_key, self.transcript)
        finished = Tlv(TlvType.FINISHED)
        finished.add_child(Tlv(TlvType.TRANSCRIPT, digest))
        self.state = State.DATA_STATE
        return finished.serialize()

    def _send_data(self) -> bytes:
        plaintext = self.channel.read(PLAINTEXT_LIMIT)
        if not plaintext:
            return b""
        iv, ciphertext = crypto.encrypt_data(self._enc_key, plaintext)
        iv_tlv = Tlv(TlvType.IV, iv)
        cipher_tlv = Tlv(TlvType.CIPHERTEXT, ciphertext)
        digest = crypto.hmac_digest(self._mac_key, iv_tlv.serialize() + cipher_tlv.serialize())
        if self.bad_mac:
            digest = bytes([digest[0] ^ 0xFF]) + digest[1:]
        record = Tlv(TlvType.DATA)
        for child in (iv_tlv, cipher_tlv, Tlv(TlvType.MAC, digest)):
            record.add_child(child)
        encoded = record.serialize()
        log.debug("send data\n%s", describe_tlv_bytes(encoded))
        return encoded

    # -- incoming -----------------------------------------------------------

    def output(self, data: bytes) -> None:
        """Handle a record received from the peer."""
        data = bytes(data)
        handlers = {
            State.SERVER_CLIENT_HELLO_AWAIT: self._recv_client_hello,
            State.CLIENT_SERVER_HELLO_AWAIT: self._recv_server_hello,
            State.SERVER_FINISHED_AWAIT: self._recv_finished,
            State.DATA_STATE: self._recv_data,
        }
        handler = handlers.get(self.state)
        if handler is not None:
            handler(data)

    def _recv_client_hello(self, data: bytes) -> None:
        log.debug("RECV CLIENT HELLO\n%s", describe_tlv_bytes(data))
        hello = _parse(data, TlvType.CLIENT_HELLO)
        self.transcript = data
        public = hello.find(TlvType.PUBLIC_KEY)
        if public is None or not public.value:
            raise HandshakeError(6, "missing or invalid PUBLIC_KEY in ClientHello")
        try:
            self._peer_key = crypto.load_peer_public_key(public.value)
        except crypto.KeyLoadError as exc:
            raise HandshakeError(6, "invalid PUBLIC_KEY in ClientHello") from exc
        self._client_hello = hello
        self.state = State.SERVER_SERVER_HELLO_SEND

    def _recv_server_hello(self, data: bytes) -> None:
        log.debug("RECV SERVER HELLO\n%s", describe_tlv_bytes(data))
        hello = _parse(data, TlvType.SERVER_HELLO)
        self.transcript += data

        nonce = _require(hello, TlvType.NONCE)
        cert = _require(hello, TlvType.CERTIFICATE)
        public = _require(hello, TlvType.PUBLIC_KEY)
        signature = _require(hello, TlvType.HANDSHAKE_SIGNATURE)
        dns = _require(cert, TlvType.DNS_NAME)
        cert_public = _require(cert, TlvType.PUBLIC_KEY)
        cert_signature = _require(cert, TlvType.SIGNATURE)

        ca_key = crypto.load_public_key(self.base_dir / CA_PUBLIC_KEY_FILE)
        if not crypto.verify(ca_key, cert_signature.value, dns.serialize() + cert_public.serialize()):
            raise HandshakeError(1, "Certificate signature invalid")

        dns_name = dns.value.split(b"\0", 1)[0].decode("utf-8", errors="replace")
        if dns_name != self.hostname:
            raise HandshakeError(2, "DNS name mismatch")

        try:
            server_key = crypto.load_peer_public_key(cert_public.value)
        except crypto.KeyLoadError as exc:
            raise HandshakeError(3, "invalid certificate public key") from exc
        signed = (
            self._client_hello.serialize()
            + nonce.serialize()
            + cert.serialize()
            + public.serialize()
        )
        if not crypto.verify(server_key, signature.value, signed):
            raise HandshakeError(3, "ServerHello handshake signature invalid")

        try:
            self._peer_key = crypto.load_peer_public_key(public.value)
        except crypto.KeyLoadError as exc:
            raise HandshakeError(6, "invalid PUBLIC_KEY in ServerHello") from exc
        secret = crypto.derive_secret(self._private_key, self._peer_key)
        self._enc_key, self._mac_key = crypto.derive_keys(secret, self.transcript)
        self.state = State.CLIENT_FINISHED_SEND

    def _recv_finished(self, data: bytes) -> None:
        log.debug("RECV FINISHED")
        finished = _parse(data, TlvType.FINISHED)
        received = _require(finished, TlvType.TRANSCRIPT)
        expected = crypto.hmac_digest(self._mac_key, self.transcript)
        if not hmac.compare_digest(expected, received.value[: crypto.MAC_SIZE]):
            raise HandshakeError(4, "Transcript HMAC does not match")
        self.state = State.DATA_STATE

    def _recv_data(self, data: bytes) -> None:
        log.debug("RECV DATA:\n%s", describe_tlv_bytes(data))
        record = _parse(data, TlvType.DATA)
        iv = _require(record, TlvType.IV)
        cipher = _require(record, TlvType.CIPHERTEXT)
        mac = _require(record, TlvType.MAC)
        digest = crypto.hmac_digest(self._mac_key, iv.serialize() + cipher.serialize())
        if not hmac.compare_digest(digest, mac.value[: crypto.MAC_SIZE]):
            raise HandshakeError(5, "MAC verification failed")
        try:
            plaintext = crypto.decrypt_cipher(self._enc_key, cipher.value, iv.value)
        except ValueError as exc:
            raise HandshakeError(5, "ciphertext could not be decrypted") from exc
        self.channel.write(plaintext)