"""Key handling, signatures, key exchange, encryption and MACs."""

from __future__ import annotations

import hashlib
import hmac
import os
from pathlib import Path

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, padding, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

NONCE_SIZE = 32
SECRET_SIZE = 32
MAC_SIZE = 32
IV_SIZE = 16


class KeyLoadError(Exception):
    """Raised when a key or certificate cannot be read or parsed."""


def _read(path: str | os.PathLike, what: str) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise KeyLoadError(f"invalid {what} filename") from exc


def generate_private_key() -> ec.EllipticCurvePrivateKey:
    """Generate a fresh P-256 private key."""
    return ec.generate_private_key(ec.SECP256R1())


def load_private_key(path: str | os.PathLike):
    """Load a DER-encoded private key from a file."""
    data = _read(path, "private key")
    try:
        return serialization.load_der_private_key(data, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise KeyLoadError("invalid private key") from exc


def load_public_key(path: str | os.PathLike):
    """Load a DER-encoded public key from a file, such as the CA key."""
    data = _read(path, "certificate authority public key")
    try:
        return serialization.load_der_public_key(data)
    except (ValueError, UnsupportedAlgorithm) as exc:
        raise KeyLoadError("invalid certificate authority public key") from exc


def load_peer_public_key(data: bytes):
    """Parse a DER-encoded public key received from the peer."""
    try:
        return serialization.load_der_public_key(bytes(data))
    except (ValueError, UnsupportedAlgorithm) as exc:
        raise KeyLoadError("invalid peer public key") from exc


def load_certificate(path: str | os.PathLike) -> bytes:
    """Return the raw bytes of a certificate file."""
    return _read(path, "certificate")


def public_key_der(private_key) -> bytes:
    """DER SubjectPublicKeyInfo encoding of the key's public half."""
    return private_key.public_key().public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def derive_secret(private_key, peer_key) -> bytes:
    """ECDH shared secret between our private key and the peer's public key."""
    return private_key.exchange(ec.ECDH(), peer_key)


def _hkdf(secret: bytes, salt: bytes, info: bytes) -> bytes:
    return HKDF(
        algorithm=hashes.SHA256(),
        length=SECRET_SIZE,
        salt=bytes(salt),
        info=info,
    ).derive(bytes(secret[:SECRET_SIZE]))


def derive_keys(secret: bytes, salt: bytes) -> tuple[bytes, bytes]:
    """Derive the (encryption key, MAC key) pair with HKDF-SHA256."""
    return _hkdf(secret, salt, b"enc"), _hkdf(secret, salt, b"mac")


def sign(private_key, data: bytes) -> bytes:
    """DER-encoded ECDSA-SHA256 signature over ``data``."""
    return private_key.sign(bytes(data), ec.ECDSA(hashes.SHA256()))


def verify(public_key, signature: bytes, data: bytes) -> bool:
    """Check an ECDSA-SHA256 signature; return whether it is valid."""
    try:
        public_key.verify(bytes(signature), bytes(data), ec.ECDSA(hashes.SHA256()))
    except (InvalidSignature, ValueError):
        return False
    return True


def generate_nonce(size: int) -> bytes:
    """Cryptographically random bytes."""
    return os.urandom(size)


def encrypt_data(enc_key: bytes, data: bytes) -> tuple[bytes, bytes]:
    """Encrypt with AES-256-CBC and PKCS#7 padding; return (iv, ciphertext)."""
    iv = generate_nonce(IV_SIZE)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(bytes(data)) + padder.finalize()
    encryptor = Cipher(algorithms.AES(enc_key), modes.CBC(iv)).encryptor()
    return iv, encryptor.update(padded) + encryptor.finalize()


def decrypt_cipher(enc_key: bytes, cipher: bytes, iv: bytes) -> bytes:
    """Decrypt AES-256-CBC ciphertext and strip its padding."""
    decryptor = Cipher(algorithms.AES(enc_key), modes.CBC(bytes(iv))).decryptor()
    padded = decryptor.update(bytes(cipher)) + decryptor.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    return unpadder.update(padded) + unpadder.finalize()


def hmac_digest(mac_key: bytes, data: bytes) -> bytes:
    """HMAC-SHA256 of ``data``."""
    return hmac.new(bytes(mac_key), bytes(data), hashlib.sha256).digest()