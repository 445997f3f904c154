import pytest

from minitls.tlv import (
    MAX_CHILDREN,
    Tlv,
    TlvError,
    TlvType,
    describe_tlv_bytes,
    deserialize_tlv,
    hex_line,
)


def _hello():
    hello = Tlv(TlvType.CLIENT_HELLO)
    hello.add_child(Tlv(TlvType.NONCE, bytes(range(32))))
    hello.add_child(Tlv(TlvType.PUBLIC_KEY, b"k" * 91))
    return hello


def test_short_value_wire_bytes():
    assert Tlv(TlvType.NONCE, b"\xaa\xbb").serialize() == b"\x01\x02\xaa\xbb"


def test_long_value_uses_three_byte_length():
    encoded = Tlv(TlvType.CIPHERTEXT, b"x" * 300).serialize()
    assert encoded[:4] == b"\x52\xfd\x01\x2c"
    assert len(encoded) == 304


def test_length_boundary():
    short = Tlv(TlvType.CIPHERTEXT, b"x" * 252).serialize()
    long = Tlv(TlvType.CIPHERTEXT, b"x" * 253).serialize()
    assert short[1] == 252
    assert long[1] == 0xFD
    assert int.from_bytes(long[2:4], "big") == 253


def test_container_length_counts_child_headers():
    hello = _hello()
    assert hello.length == (2 + 32) + (2 + 91)
    assert len(hello.serialize()) == hello.length + 2


def test_round_trip_nested():
    hello = _hello()
    decoded = deserialize_tlv(hello.serialize())
    assert decoded == hello
    assert decoded.serialize() == hello.serialize()


def test_round_trip_long_container():
    data = Tlv(TlvType.DATA)
    data.add_child(Tlv(TlvType.IV, b"i" * 16))
    data.add_child(Tlv(TlvType.CIPHERTEXT, b"c" * 400))
    data.add_child(Tlv(TlvType.MAC, b"m" * 32))
    decoded = deserialize_tlv(data.serialize())
    assert decoded.find(TlvType.CIPHERTEXT).value == b"c" * 400
    assert decoded.length == data.length


def test_trailing_bytes_ignored():
    encoded = Tlv(TlvType.NONCE, b"ab").serialize()
    assert deserialize_tlv(encoded + b"junk").value == b"ab"


def test_unknown_type_kept_as_int():
    decoded = deserialize_tlv(b"\x77\x01z")
    assert decoded.type == 0x77
    assert decoded.value == b"z"


@pytest.mark.parametrize(
    "data",
    [b"\x01", b"\x01\x05ab", b"\x01\xfd\x00", b"\x10\x03\x01\x05a"],
)
def test_malformed_raises(data):
    with pytest.raises(TlvError):
        deserialize_tlv(data)


def test_too_many_children():
    parent = Tlv(TlvType.CERTIFICATE)
    for _ in range(MAX_CHILDREN):
        parent.add_child(Tlv(TlvType.NONCE, b""))
    with pytest.raises(TlvError):
        parent.add_child(Tlv(TlvType.NONCE, b""))
    assert len(parent.children) == MAX_CHILDREN


def test_oversized_serialize_raises():
    with pytest.raises(TlvError):
        Tlv(TlvType.CIPHERTEXT, b"x" * 70000).serialize()


def test_find_self_direct_and_nested():
    hello = Tlv(TlvType.SERVER_HELLO)
    cert = Tlv(TlvType.CERTIFICATE)
    cert.add_child(Tlv(TlvType.DNS_NAME, b"host\x00"))
    cert.add_child(Tlv(TlvType.PUBLIC_KEY, b"cert-key"))
    hello.add_child(cert)
    hello.add_child(Tlv(TlvType.PUBLIC_KEY, b"eph-key"))
    assert hello.find(TlvType.SERVER_HELLO) is hello
    assert hello.find(TlvType.PUBLIC_KEY).value == b"eph-key"
    assert hello.find(TlvType.DNS_NAME).value == b"host\x00"
    assert hello.find(TlvType.MAC) is None


def test_hex_line():
    assert hex_line(b"\x00\xff") == "00 ff "


def test_describe_value():
    text = describe_tlv_bytes(b"\x01\x02\xaa\xbb")
    assert text.splitlines() == ["Type: 0x01", "Length: 2", "aa bb "]


def test_describe_descends_into_container():
    text = describe_tlv_bytes(_hello().serialize())
    assert text.count("Type: ") == 3
    assert "Type: 0x10" in text
    assert "Type: 0x02" in text


def test_describe_malformed():
    assert describe_tlv_bytes(b"\x01").splitlines()[-1] == "MALFORMED"
    assert describe_tlv_bytes(b"\x01\x09ab").splitlines()[-1] == "MALFORMED"