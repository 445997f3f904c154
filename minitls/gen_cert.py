"""Certificate generator: bind a DNS name to a public key under a CA signature."""

from __future__ import annotations

import sys
from pathlib import Path

from minitls import crypto
from minitls.tlv import Tlv, TlvType

USAGE = "Usage: gen_cert <subject_key> <signing_key> <dns_name> <output>"


def build_certificate(subject_key, signing_key, dns_name: str) -> bytes:
    """Encode a certificate for ``subject_key``'s public half, signed by ``signing_key``."""
    dns = Tlv(TlvType.DNS_NAME, dns_name.encode("utf-8") + b"\0")
    public = Tlv(TlvType.PUBLIC_KEY, crypto.public_key_der(subject_key))
    signature = Tlv(
        TlvType.SIGNATURE,
        crypto.sign(signing_key, dns.serialize() + public.serialize()),
    )
    cert = Tlv(TlvType.CERTIFICATE)
    for child in (dns, public, signature):
        cert.add_child(child)
    return cert.serialize()


def main(argv: list[str] | None = None) -> int:
    """Write a certificate file; return the process exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) < 4:
        print(USAGE, file=sys.stderr)
        return 1
    subject_path, signing_path, dns_name, output_path = args[:4]
    try:
        subject_key = crypto.load_private_key(subject_path)
        signing_key = crypto.load_private_key(signing_path)
    except crypto.KeyLoadError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 255
    Path(output_path).write_bytes(build_certificate(subject_key, signing_key, dns_name))
    return 0


if __name__ == "__main__":
    sys.exit(main())