"""Wire a sender and a receiver together over unreliable channels."""

from dataclasses import dataclass
from typing import Iterable
from asimpy import Environment
from rdt_io import BytesChunkSource, BytesSink, Sink
from rdt_receiver import Receiver, ReceiverState
from rdt_sender import Sender, SenderState
from rdt_types import (
    ChannelConfig,
    IncompleteTransferError,
    ProtocolConfig,
    RdtError,
    SenderPhase,
)
from unreliable_channel import UnreliableChannel
import random


# mccole: result
@dataclass
class TransferResult:
    """Outcome of one transfer."""

    success: bool
    data: bytes | None
    sender: SenderState
    receiver: ReceiverState
    error: RdtError | None
    duration: float

    def raise_for_failure(self) -> None:
        """Re-raise the error that stopped a failed transfer."""
        if self.error is not None:
            raise self.error


# mccole: /result


def outcome(
    sender: SenderState, receiver: ReceiverState
) -> tuple[bool, RdtError | None]:
    """Decide whether a finished transfer really delivered the whole stream.

    A corrupted chunk is answered by re-acknowledging the expected number,
    which the sender cannot tell apart from a positive ACK. The sender then
    moves on and the receiver drops the rest as duplicates, so the sender
    alone can report DONE for a stream that never arrived.
    """
    if sender.phase != SenderPhase.DONE:
        return False, sender.error
    acked = sender.stats.bytes_acked
    delivered = receiver.stats.bytes_delivered
    if not receiver.end_of_stream or acked != delivered:
        return False, IncompleteTransferError(acked, delivered)
    return True, None


def simulation_horizon(
    chunk_count: int,
    protocol: ProtocolConfig,
    data_config: ChannelConfig,
    ack_config: ChannelConfig,
) -> float:
    """Latest simulated time at which a transfer can still be running."""
    round_trip = protocol.ack_timeout + data_config.delay + ack_config.delay
    # One extra slot for the end-of-stream marker.
    sending = (chunk_count + 1) * protocol.max_retries * round_trip
    return sending + protocol.inactivity_timeout + protocol.drain_timeout + 1.0


def run_transfer(
    source: Iterable[bytes],
    sink: Sink,
    channel_config: ChannelConfig | None = None,
    protocol_config: ProtocolConfig | None = None,
    rng: random.Random | None = None,
    ack_channel_config: ChannelConfig | None = None,
) -> TransferResult:
    """Send every chunk of `source` into `sink` and report what happened.

    Data and acknowledgment traffic each get their own channel;
    acknowledgments use the data channel's settings unless told otherwise.
    Both channels draw from the same random source.
    """
    env = Environment()
    protocol = protocol_config or ProtocolConfig()
    data_config = channel_config or ChannelConfig()
    ack_config = ack_channel_config or data_config
    rng = rng or random.Random()

    if not hasattr(source, "__len__"):
        source = list(source)

    data_channel = UnreliableChannel(env, data_config, rng)
    ack_channel = UnreliableChannel(env, ack_config, rng)

    # The receiver listens on the data channel and answers on the ACK channel.
    receiver = Receiver(env, ack_channel, sink, protocol, inbound=data_channel)
    sender = Sender(env, data_channel, source, protocol, inbound=ack_channel)

    env.run(until=simulation_horizon(len(source), protocol, data_config, ack_config))

    success, error = outcome(sender.state, receiver.state)
    error = error or receiver.error
    finished_at = sender.finished_at if sender.finished_at is not None else env.now
    return TransferResult(
        success=success,
        data=sink.getvalue() if isinstance(sink, BytesSink) else None,
        sender=sender.state,
        receiver=receiver.state,
        error=error,
        duration=finished_at - sender.started_at,
    )


def transfer_bytes(
    data: bytes,
    channel_config: ChannelConfig | None = None,
    protocol_config: ProtocolConfig | None = None,
    rng: random.Random | None = None,
    ack_channel_config: ChannelConfig | None = None,
) -> TransferResult:
    """Transfer an in-memory byte string into an in-memory sink."""
    protocol = protocol_config or ProtocolConfig()
    return run_transfer(
        BytesChunkSource(data, protocol.max_payload_size),
        BytesSink(),
        channel_config,
        protocol,
        rng,
        ack_channel_config,
    )
