"""Stop-and-wait sender: a pure state machine and the process that drives it."""

from dataclasses import dataclass, field, replace
from typing import Iterable
from asimpy import FirstOf, Process, Queue, Timeout
from rdt_packet import decode, make_packet, verify
from rdt_types import (
    DecodeError,
    Packet,
    ProtocolConfig,
    RdtError,
    RetryExhaustedError,
    SenderPhase,
    TransportError,
    flip,
)
from unreliable_channel import UnreliableChannel


# mccole: senderstats
@dataclass(frozen=True)
class SenderStats:
    """Cumulative sender counters."""

    packets_sent: int = 0
    acks_received: int = 0
    retransmissions: int = 0
    timeouts: int = 0
    corrupt_acks: int = 0
    mismatched_acks: int = 0
    bytes_acked: int = 0

    @property
    def success_rate(self) -> float:
        """Share of transmissions that were answered by a valid ACK."""
        if self.packets_sent == 0:
            return 0.0
        return self.acks_received / self.packets_sent


# mccole: /senderstats


@dataclass(frozen=True)
class SenderState:
    """Everything the sender knows between two events."""

    phase: SenderPhase = SenderPhase.IDLE
    sequence_number: int = 0
    retry_count: int = 0
    in_flight: Packet | None = None
    error: RdtError | None = None
    stats: SenderStats = field(default_factory=SenderStats)

    @property
    def finished(self) -> bool:
        return self.phase in (SenderPhase.DONE, SenderPhase.FAILED)


# Events fed to the sender.
@dataclass(frozen=True)
class NextChunk:
    payload: bytes


@dataclass(frozen=True)
class SourceExhausted:
    pass


@dataclass(frozen=True)
class AckArrived:
    datagram: bytes


@dataclass(frozen=True)
class AckTimedOut:
    pass


@dataclass(frozen=True)
class TransportFailed:
    error: TransportError


SenderEvent = NextChunk | SourceExhausted | AckArrived | AckTimedOut | TransportFailed


# Actions requested by the sender.
@dataclass(frozen=True)
class Transmit:
    packet: Packet
    retransmission: bool = False


@dataclass(frozen=True)
class Abort:
    error: RdtError


@dataclass(frozen=True)
class Complete:
    pass


SenderAction = Transmit | Abort | Complete


# mccole: senderstep
def sender_step(
    state: SenderState, event: SenderEvent, config: ProtocolConfig
) -> tuple[SenderState, list[SenderAction]]:
    """Advance the sender by one event.

    There is never more than one unacknowledged packet: a new chunk is
    only accepted while idle.
    """
    if state.finished:
        return state, []

    if isinstance(event, TransportFailed):
        return replace(state, phase=SenderPhase.FAILED, error=event.error), [
            Abort(event.error)
        ]

    if state.phase == SenderPhase.IDLE:
        if isinstance(event, NextChunk):
            packet = make_packet(state.sequence_number, event.payload)
            stats = replace(state.stats, packets_sent=state.stats.packets_sent + 1)
            new_state = replace(
                state,
                phase=SenderPhase.AWAITING_ACK,
                retry_count=0,
                in_flight=packet,
                stats=stats,
            )
            return new_state, [Transmit(packet)]
        if isinstance(event, SourceExhausted):
            return replace(state, phase=SenderPhase.DONE), [Complete()]
        return state, []

    # Awaiting an acknowledgment for the packet in flight.
    if isinstance(event, AckTimedOut):
        stats = replace(state.stats, timeouts=state.stats.timeouts + 1)
        return _retry(replace(state, stats=stats), config)

    if isinstance(event, AckArrived):
        try:
            ack = decode(event.datagram)
        except DecodeError:
            ack = None

        if ack is None or not verify(ack):
            stats = replace(state.stats, corrupt_acks=state.stats.corrupt_acks + 1)
            return _retry(replace(state, stats=stats), config)

        if ack.sequence_number != state.sequence_number:
            stats = replace(
                state.stats, mismatched_acks=state.stats.mismatched_acks + 1
            )
            return _retry(replace(state, stats=stats), config)

        stats = replace(
            state.stats,
            acks_received=state.stats.acks_received + 1,
            bytes_acked=state.stats.bytes_acked + state.in_flight.payload_size,
        )
        new_state = replace(
            state,
            phase=SenderPhase.IDLE,
            sequence_number=flip(state.sequence_number),
            retry_count=0,
            in_flight=None,
            stats=stats,
        )
        return new_state, []

    return state, []


# mccole: /senderstep


def _retry(
    state: SenderState, config: ProtocolConfig
) -> tuple[SenderState, list[SenderAction]]:
    """Count a failed attempt and resend the identical packet if allowed."""
    retry_count = state.retry_count + 1
    if retry_count >= config.max_retries:
        error = RetryExhaustedError(state.sequence_number, retry_count)
        return replace(
            state, phase=SenderPhase.FAILED, retry_count=retry_count, error=error
        ), [Abort(error)]

    stats = replace(
        state.stats,
        packets_sent=state.stats.packets_sent + 1,
        retransmissions=state.stats.retransmissions + 1,
    )
    new_state = replace(state, retry_count=retry_count, stats=stats)
    return new_state, [Transmit(state.in_flight, retransmission=True)]


def with_end_marker(chunks: Iterable[bytes], max_payload_size: int) -> Iterable[bytes]:
    """Yield the chunks, then an empty one if the last chunk was full-sized.

    The receiver treats a short chunk as the last one, so a stream whose
    length is a multiple of the chunk size (or zero) needs an explicit
    empty terminator.
    """
    last_size = max_payload_size
    for chunk in chunks:
        if len(chunk) > max_payload_size:
            raise ValueError(
                f"Chunk of {len(chunk)} bytes exceeds {max_payload_size} bytes"
            )
        last_size = len(chunk)
        yield chunk
    if last_size == max_payload_size:
        yield b""


# mccole: sender
class Sender(Process):
    """Sends a chunked byte stream one packet at a time."""

    def init(
        self,
        channel: UnreliableChannel,
        source: Iterable[bytes],
        config: ProtocolConfig | None = None,
        address: str = "sender",
        destination: str = "receiver",
        inbound: UnreliableChannel | None = None,
    ) -> None:
        self.channel = channel
        self.source = source
        self.config = config or ProtocolConfig()
        self.address = address
        self.destination = destination
        self.state = SenderState()
        self.started_at = self.now
        self.finished_at: float | None = None

        # Incoming acknowledgments
        self.inbox: Queue = Queue(self._env)
        self.inbound = inbound or channel
        self.inbound.register_endpoint(address, self.inbox)

        print(f"[{self.now:.1f}] Sender: Created ({channel})")

    async def run(self) -> None:
        """Feed chunks and acknowledgments through the state machine."""
        chunks = iter(with_end_marker(self.source, self.config.max_payload_size))

        while not self.state.finished:
            if self.state.phase == SenderPhase.IDLE:
                chunk = next(chunks, None)
                event = SourceExhausted() if chunk is None else NextChunk(chunk)
            else:
                event = await self.wait_for_ack()

            await self.handle(event)

        self.finished_at = self.now
        self.print_statistics()

    async def wait_for_ack(self) -> SenderEvent:
        """Wait for one datagram or for the ACK timer to expire."""
        name, value = await FirstOf(
            self._env,
            ack=self.inbox.get(),
            timeout=Timeout(self._env, self.config.ack_timeout),
        )
        if name == "ack":
            return AckArrived(value)
        print(
            f"[{self.now:.1f}] Sender: TIMEOUT waiting for ACK "
            f"(seq={self.state.sequence_number})"
        )
        return AckTimedOut()

    async def handle(self, event: SenderEvent) -> None:
        """Apply one event and carry out the resulting actions."""
        before = self.state
        self.state, actions = sender_step(self.state, event, self.config)

        if isinstance(event, AckArrived) and self.state.phase == SenderPhase.IDLE:
            print(f"[{self.now:.1f}] Sender: ACK received (seq={before.sequence_number})")
        elif isinstance(event, AckArrived):
            print(f"[{self.now:.1f}] Sender: Invalid ACK or wrong seq number")

        for action in actions:
            if isinstance(action, Transmit):
                await self.transmit(action)
            elif isinstance(action, Abort):
                print(f"[{self.now:.1f}] Sender: FAILED - {action.error}")
            elif isinstance(action, Complete):
                print(f"[{self.now:.1f}] Sender: All chunks acknowledged")

    async def transmit(self, action: Transmit) -> None:
        packet = action.packet
        if action.retransmission:
            print(
                f"[{self.now:.1f}] Sender: RETRANSMISSION #{self.state.retry_count} "
                f"{packet}"
            )
        else:
            print(f"[{self.now:.1f}] Sender: Sent {packet}")

        try:
            await self.channel.send(packet, self.destination)
        except TransportError as exc:
            await self.handle(TransportFailed(exc))

    @property
    def succeeded(self) -> bool:
        return self.state.phase == SenderPhase.DONE

    def print_statistics(self) -> None:
        """Print sender statistics."""
        stats = self.state.stats
        print(f"\n{'=' * 60}")
        print("Sender Statistics:")
        print("=" * 60)
        print(f"Outcome: {self.state.phase.value}")
        print(f"Packets sent: {stats.packets_sent}")
        print(f"ACKs received: {stats.acks_received}")
        print(f"Retransmissions: {stats.retransmissions}")
        print(f"Timeouts: {stats.timeouts}")
        print(f"Corrupt ACKs: {stats.corrupt_acks}")
        print(f"Mismatched ACKs: {stats.mismatched_acks}")
        print(f"Success rate: {stats.success_rate:.1%}")


# mccole: /sender
