"""A small TLS-like secure channel: TLV records, ECDH handshake, AES-CBC with HMAC over TCP."""

__version__ = "0.1.0"