"""Data types for stop-and-wait reliable data transfer."""

from dataclasses import dataclass
from enum import Enum
import struct

# checksum, total length, sequence number
HEADER_FORMAT = "!HHI"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)  # 8 bytes
MAX_PAYLOAD_SIZE = 500


class RdtError(Exception):
    """Base class for reliable data transfer errors."""


class DecodeError(RdtError):
    """Datagram too short or its length field disagrees with its size."""


class TransportError(RdtError):
    """The underlying send operation itself failed."""


class RetryExhaustedError(RdtError):
    """A chunk was not acknowledged within the retry bound."""

    def __init__(self, sequence_number: int, attempts: int) -> None:
        super().__init__(
            f"no valid ACK for seq={sequence_number} after {attempts} attempts"
        )
        self.sequence_number = sequence_number
        self.attempts = attempts


class IncompleteTransferError(RdtError):
    """The sender finished but the receiver did not get the whole stream."""

    def __init__(self, bytes_acked: int, bytes_delivered: int) -> None:
        super().__init__(
            f"sender had {bytes_acked} bytes acknowledged "
            f"but receiver delivered {bytes_delivered}"
        )
        self.bytes_acked = bytes_acked
        self.bytes_delivered = bytes_delivered


# mccole: packet
@dataclass(frozen=True)
class Packet:
    """A data or acknowledgment packet.

    An acknowledgment is a packet with an empty payload; its sequence
    number is read as the acknowledgment number.
    """

    sequence_number: int
    checksum: int
    total_length: int
    payload: bytes = b""

    @property
    def is_ack(self) -> bool:
        return len(self.payload) == 0

    @property
    def payload_size(self) -> int:
        return len(self.payload)

    def __str__(self) -> str:
        if self.is_ack:
            return f"ACK [seq={self.sequence_number}, cksum={self.checksum}]"
        return (
            f"DATA [seq={self.sequence_number}, len={self.total_length}, "
            f"size={self.payload_size}, cksum={self.checksum}]"
        )


# mccole: /packet


def _clamp(value: float, low: float, high: float | None, name: str) -> float:
    """Clamp a configuration value, warning when it was out of range."""
    clamped = max(low, value if high is None else min(high, value))
    if clamped != value:
        print(f"Config: {name}={value} out of range, clamped to {clamped}")
    return clamped


# mccole: config
@dataclass(frozen=True)
class ChannelConfig:
    """Fault injection settings for one direction of a channel."""

    loss_probability: float = 0.0
    corruption_probability: float = 0.0
    delay: float = 0.0  # Simulated seconds per transmission

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "loss_probability",
            _clamp(self.loss_probability, 0.0, 1.0, "loss_probability"),
        )
        object.__setattr__(
            self,
            "corruption_probability",
            _clamp(self.corruption_probability, 0.0, 1.0, "corruption_probability"),
        )
        object.__setattr__(self, "delay", _clamp(self.delay, 0.0, None, "delay"))

    def __str__(self) -> str:
        return (
            f"Channel [loss={self.loss_probability:.1%}, "
            f"corruption={self.corruption_probability:.1%}, delay={self.delay}]"
        )


@dataclass(frozen=True)
class ProtocolConfig:
    """Timers and bounds shared by sender and receiver."""

    ack_timeout: float = 2.0  # Sender wait for an ACK
    max_retries: int = 5  # Transmissions per chunk before giving up
    inactivity_timeout: float = 30.0  # Receiver gives up on a silent sender
    drain_timeout: float = 0.1  # Receiver lingers after the final chunk
    max_payload_size: int = MAX_PAYLOAD_SIZE

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")
        if not 0 < self.max_payload_size <= MAX_PAYLOAD_SIZE:
            raise ValueError(
                f"max_payload_size must be in 1..{MAX_PAYLOAD_SIZE}, "
                f"got {self.max_payload_size}"
            )
        if self.ack_timeout <= 0 or self.inactivity_timeout <= 0:
            raise ValueError("timeouts must be positive")
        if self.drain_timeout < 0:
            raise ValueError("drain_timeout must be non-negative")


# mccole: /config


class SenderPhase(Enum):
    """Sender state machine phases."""

    IDLE = "IDLE"
    AWAITING_ACK = "AWAITING_ACK"
    DONE = "DONE"
    FAILED = "FAILED"


class ReceiverPhase(Enum):
    """Receiver state machine phases."""

    LISTENING = "LISTENING"
    DRAINING = "DRAINING"
    CLOSED = "CLOSED"


def flip(sequence_number: int) -> int:
    """Alternate between the two sequence numbers."""
    return 1 - sequence_number
