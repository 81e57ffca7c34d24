"""Bit-exact framing, parsing, and checksums for stop-and-wait packets.

Header layout (8 bytes, big-endian):

    +----------+--------------+-----------------+
    | checksum | total length | sequence number |
    | 2 bytes  |   2 bytes    |     4 bytes     |
    +----------+--------------+-----------------+

followed by 0 to 500 payload bytes. Acknowledgments carry no payload.
"""

import struct
from rdt_types import (
    DecodeError,
    HEADER_FORMAT,
    HEADER_SIZE,
    MAX_PAYLOAD_SIZE,
    Packet,
)


# mccole: checksum
def checksum(sequence_number: int, payload: bytes = b"") -> int:
    """8-bit running sum of the sequence number bytes and payload bytes.

    Detects isolated single-byte errors but can miss errors in several
    bytes that cancel each other out.
    """
    total = 0
    for shift in (0, 8, 16, 24):
        total += (sequence_number >> shift) & 0xFF
    for byte in payload:
        total += byte & 0xFF
    return total % 256


# mccole: /checksum


def _check_sequence_number(sequence_number: int) -> None:
    if isinstance(sequence_number, bool) or not isinstance(sequence_number, int):
        raise ValueError(f"Invalid sequence number: {sequence_number!r}")
    if not 0 <= sequence_number <= 0xFFFFFFFF:
        raise ValueError(f"Invalid sequence number: {sequence_number}")


def make_packet(sequence_number: int, payload: bytes | None = None) -> Packet:
    """Build a packet, computing its checksum and total length."""
    _check_sequence_number(sequence_number)
    data = bytes(payload) if payload is not None else b""
    if len(data) > MAX_PAYLOAD_SIZE:
        raise ValueError(
            f"Payload of {len(data)} bytes exceeds {MAX_PAYLOAD_SIZE} bytes"
        )
    return Packet(
        sequence_number=sequence_number,
        checksum=checksum(sequence_number, data),
        total_length=HEADER_SIZE + len(data),
        payload=data,
    )


def make_ack(ack_number: int) -> Packet:
    """Build an acknowledgment for the given sequence number."""
    return make_packet(ack_number)


def encode(packet: Packet) -> bytes:
    """Serialize a packet into its wire form."""
    header = struct.pack(
        HEADER_FORMAT, packet.checksum, packet.total_length, packet.sequence_number
    )
    return header + packet.payload


def decode(data: bytes) -> Packet:
    """Parse a datagram, keeping the checksum exactly as it was received."""
    if len(data) < HEADER_SIZE:
        raise DecodeError(f"Packet too small: {len(data)} bytes")

    cksum, total_length, sequence_number = struct.unpack(
        HEADER_FORMAT, data[:HEADER_SIZE]
    )
    payload = bytes(data[HEADER_SIZE:])
    if total_length != HEADER_SIZE + len(payload):
        raise DecodeError(
            f"Length field says {total_length}, "
            f"datagram has {HEADER_SIZE + len(payload)} bytes"
        )

    return Packet(
        sequence_number=sequence_number,
        checksum=cksum,
        total_length=total_length,
        payload=payload,
    )


def verify(packet: Packet) -> bool:
    """Does the embedded checksum match the packet's contents?"""
    return packet.checksum == checksum(packet.sequence_number, packet.payload)
