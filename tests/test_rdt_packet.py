import pytest

from rdt_packet import checksum, decode, encode, make_ack, make_packet, verify
from rdt_types import HEADER_SIZE, MAX_PAYLOAD_SIZE, DecodeError


def test_checksum_of_ab():
    assert checksum(0, b"AB") == (65 + 66) % 256 == 131


def test_checksum_includes_sequence_bytes():
    assert checksum(1) == 1
    assert checksum(0x01020304) == 1 + 2 + 3 + 4
    assert checksum(0xFFFFFFFF, b"\x04") == (4 * 255 + 4) % 256


def test_checksum_wraps_modulo_256():
    assert checksum(0, b"\xff\x02") == 1


def test_checksum_misses_compensating_errors():
    # Known weakness: +1 in one byte and -1 in another cancel out.
    assert checksum(0, b"AB") == checksum(0, b"BA") == checksum(0, b"@C")


def test_data_packet_fields():
    packet = make_packet(0, b"AB")
    assert packet.sequence_number == 0
    assert packet.total_length == 10
    assert packet.checksum == 131
    assert packet.payload == b"AB"
    assert not packet.is_ack


def test_encode_layout():
    raw = encode(make_packet(1, b"hi"))
    assert raw[:2] == (1 + ord("h") + ord("i")).to_bytes(2, "big")
    assert raw[2:4] == (10).to_bytes(2, "big")
    assert raw[4:8] == (1).to_bytes(4, "big")
    assert raw[8:] == b"hi"


def test_roundtrip_data():
    payload = bytes(range(256)) + bytes(range(244))
    assert len(payload) == MAX_PAYLOAD_SIZE
    p = decode(encode(make_packet(1, payload)))
    assert p.sequence_number == 1
    assert p.total_length == HEADER_SIZE + MAX_PAYLOAD_SIZE
    assert p.payload == payload
    assert verify(p)


def test_roundtrip_ack():
    raw = encode(make_ack(1))
    assert len(raw) == HEADER_SIZE
    p = decode(raw)
    assert p.is_ack
    assert p.sequence_number == 1
    assert p.total_length == HEADER_SIZE
    assert p.payload == b""
    assert verify(p)


@pytest.mark.parametrize("bit", range(16))
def test_flipping_checksum_bit_fails_verification(bit):
    raw = bytearray(encode(make_packet(0, b"payload")))
    raw[bit // 8] ^= 0x80 >> (bit % 8)
    assert not verify(decode(bytes(raw)))


def test_corrupted_payload_byte_fails_verification():
    raw = bytearray(encode(make_packet(1, b"hello")))
    raw[-1] ^= 0x01
    assert not verify(decode(bytes(raw)))


def test_decode_too_short():
    with pytest.raises(DecodeError):
        decode(b"\x00\x00\x00")


def test_decode_length_mismatch():
    raw = encode(make_packet(0, b"hello"))
    with pytest.raises(DecodeError):
        decode(raw[:-1])
    with pytest.raises(DecodeError):
        decode(raw + b"!")


def test_decode_copies_payload():
    raw = bytearray(encode(make_packet(0, b"abc")))
    p = decode(raw)
    raw[-1] = 0
    assert p.payload == b"abc"


@pytest.mark.parametrize("bad", [-1, 1.5, True, "0", 2**32])
def test_invalid_sequence_number(bad):
    with pytest.raises(ValueError):
        make_packet(bad, b"x")


def test_payload_too_large():
    with pytest.raises(ValueError):
        make_packet(0, b"x" * (MAX_PAYLOAD_SIZE + 1))


def test_packet_str():
    assert str(make_ack(1)) == "ACK [seq=1, cksum=1]"
    assert str(make_packet(0, b"AB")) == "DATA [seq=0, len=10, size=2, cksum=131]"
