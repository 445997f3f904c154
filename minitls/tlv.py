"""Type-length-value records used on the wire by the handshake and data phases."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

MAX_CHILDREN = 10
VN3 = 0xFD
MAX_LENGTH = 0xFFFF


class TlvType(IntEnum):
    """Record types known to the protocol."""

    NONCE = 0x01
    PUBLIC_KEY = 0x02
    TRANSCRIPT = 0x04
    CLIENT_HELLO = 0x10
    SERVER_HELLO = 0x20
    HANDSHAKE_SIGNATURE = 0x21
    FINISHED = 0x30
    DATA = 0x50
    IV = 0x51
    CIPHERTEXT = 0x52
    MAC = 0x53
    CERTIFICATE = 0xA0
    DNS_NAME = 0xA1
    SIGNATURE = 0xA2


CONTAINER_TYPES = frozenset(
    {
        TlvType.CLIENT_HELLO,
        TlvType.SERVER_HELLO,
        TlvType.CERTIFICATE,
        TlvType.FINISHED,
        TlvType.DATA,
    }
)


class TlvError(ValueError):
    """Raised for malformed or oversized TLV records."""


def _as_type(value: int) -> int:
    try:
        return TlvType(value)
    except ValueError:
        return value


def _encoded_size(length: int) -> int:
    return 1 + (1 if length <= VN3 - 1 else 3) + length


@dataclass
class Tlv:
    """A TLV record holding either a raw value or nested child records."""

    type: int
    value: bytes | None = None
    children: list[Tlv] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.type = _as_type(self.type)
        if self.value is not None:
            self.value = bytes(self.value)

    @property
    def length(self) -> int:
        """Length of the record body in bytes."""
        if self.value is not None:
            return len(self.value)
        return sum(_encoded_size(child.length) for child in self.children)

    def add_child(self, child: Tlv) -> None:
        """Append a nested record."""
        if len(self.children) >= MAX_CHILDREN:
            raise TlvError(f"a TLV holds at most {MAX_CHILDREN} children")
        self.children.append(child)

    def serialize(self) -> bytes:
        """Encode this record and everything nested in it."""
        length = self.length
        if length > MAX_LENGTH:
            raise TlvError(f"TLV body of {length} bytes is too long")
        header = bytes([self.type])
        if length <= VN3 - 1:
            header += bytes([length])
        else:
            header += bytes([VN3]) + length.to_bytes(2, "big")
        if self.value is not None:
            return header + self.value
        return header + b"".join(child.serialize() for child in self.children)

    def find(self, tlv_type: int) -> Tlv | None:
        """Return this record or the first nested one of the given type."""
        if self.type == tlv_type:
            return self
        for child in self.children:
            if child.type == tlv_type:
                return child
        for child in self.children:
            found = child.find(tlv_type)
            if found is not None:
                return found
        return None


def _parse(data: bytes, start: int, end: int) -> tuple[Tlv, int]:
    if end - start < 2:
        raise TlvError("truncated TLV header")
    tlv_type = data[start]
    pos = start + 1
    if data[pos] == VN3:
        if end - pos < 3:
            raise TlvError("truncated TLV length")
        length = int.from_bytes(data[pos + 1:pos + 3], "big")
        pos += 3
    else:
        length = data[pos]
        pos += 1
    body_end = pos + length
    if body_end > end:
        raise TlvError("TLV body runs past the end of the data")

    if tlv_type in CONTAINER_TYPES:
        node = Tlv(tlv_type)
        child_pos = pos
        while child_pos < body_end:
            child, child_pos = _parse(data, child_pos, body_end)
            node.add_child(child)
    else:
        node = Tlv(tlv_type, bytes(data[pos:body_end]))
    return node, body_end


def deserialize_tlv(data: bytes) -> Tlv:
    """Decode the TLV record at the start of ``data``."""
    node, _ = _parse(bytes(data), 0, len(data))
    return node


def hex_line(data: bytes) -> str:
    """Format bytes as two-digit hex values, each followed by a space."""
    return "".join(f"{byte:02x} " for byte in data)


def describe_tlv_bytes(data: bytes) -> str:
    """Describe the records in ``data`` line by line for debugging."""
    lines: list[str] = []
    size = len(data)
    pos = 0
    while pos < size:
        tlv_type = data[pos]
        lines.append(f"Type: 0x{tlv_type:02x}")
        pos += 1
        if pos >= size:
            lines.append("MALFORMED")
            break
        if data[pos] == VN3:
            pos += 1
            if pos + 1 >= size:
                lines.append("MALFORMED")
                break
            length = int.from_bytes(data[pos:pos + 2], "big")
            pos += 2
        else:
            length = data[pos]
            pos += 1
            if pos + length > size:
                lines.append("MALFORMED")
                break
        lines.append(f"Length: {length}")
        if tlv_type in CONTAINER_TYPES:
            continue
        shown = min(size - pos, length)
        lines.append(hex_line(data[pos:pos + shown]))
        pos += shown
    return "\n".join(lines)