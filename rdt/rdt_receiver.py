"""Stop-and-wait receiver: a pure state machine and the process that drives it."""

from dataclasses import dataclass, field, replace
from asimpy import FirstOf, Process, Queue, Timeout
from rdt_io import Sink
from rdt_packet import decode, make_ack, verify
from rdt_types import (
    DecodeError,
    ProtocolConfig,
    ReceiverPhase,
    TransportError,
    flip,
)
from unreliable_channel import UnreliableChannel


# mccole: receiverstats
@dataclass(frozen=True)
class ReceiverStats:
    """Cumulative receiver counters."""

    packets_received: int = 0
    acks_sent: int = 0
    corrupted: int = 0
    out_of_order: int = 0
    undecodable: int = 0
    bytes_delivered: int = 0

    @property
    def error_rate(self) -> float:
        if self.packets_received == 0:
            return 0.0
        return self.corrupted / self.packets_received


# mccole: /receiverstats


@dataclass(frozen=True)
class ReceiverState:
    phase: ReceiverPhase = ReceiverPhase.LISTENING
    expected_sequence_number: int = 0
    end_of_stream: bool = False  # Final chunk seen, not just silence
    stats: ReceiverStats = field(default_factory=ReceiverStats)


# Events fed to the receiver.
@dataclass(frozen=True)
class DatagramArrived:
    datagram: bytes


@dataclass(frozen=True)
class InactivityExpired:
    pass


@dataclass(frozen=True)
class DrainExpired:
    pass


ReceiverEvent = DatagramArrived | InactivityExpired | DrainExpired


# Actions requested by the receiver.
@dataclass(frozen=True)
class Deliver:
    payload: bytes


@dataclass(frozen=True)
class SendAck:
    ack_number: int
    positive: bool = True


@dataclass(frozen=True)
class FinalizeSink:
    pass


ReceiverAction = Deliver | SendAck | FinalizeSink


# mccole: receiverstep
def receiver_step(
    state: ReceiverState, event: ReceiverEvent, config: ProtocolConfig
) -> tuple[ReceiverState, list[ReceiverAction]]:
    """Advance the receiver by one event.

    Payload reaches the sink at most once per chunk, however many times
    the sender retransmits it.
    """
    if state.phase == ReceiverPhase.CLOSED:
        return state, []

    if isinstance(event, InactivityExpired):
        if state.phase == ReceiverPhase.LISTENING:
            return replace(state, phase=ReceiverPhase.CLOSED), [FinalizeSink()]
        return replace(state, phase=ReceiverPhase.CLOSED), []

    if isinstance(event, DrainExpired):
        if state.phase == ReceiverPhase.DRAINING:
            return replace(state, phase=ReceiverPhase.CLOSED), []
        return state, []

    try:
        packet = decode(event.datagram)
    except DecodeError:
        # No ACK: the sender's timer will resend.
        stats = replace(state.stats, undecodable=state.stats.undecodable + 1)
        return replace(state, stats=stats), []

    stats = replace(state.stats, packets_received=state.stats.packets_received + 1)
    expected = state.expected_sequence_number

    if not verify(packet):
        # Re-acknowledging the expected number acts as a NAK.
        stats = replace(
            stats, corrupted=stats.corrupted + 1, acks_sent=stats.acks_sent + 1
        )
        return replace(state, stats=stats), [SendAck(expected, positive=False)]

    if packet.sequence_number != expected:
        # Duplicate of a chunk already delivered: its ACK was lost.
        stats = replace(
            stats, out_of_order=stats.out_of_order + 1, acks_sent=stats.acks_sent + 1
        )
        return replace(state, stats=stats), [SendAck(flip(expected))]

    if state.phase == ReceiverPhase.DRAINING:
        # Past the end of the stream; accept nothing new.
        return replace(state, stats=stats), []

    actions: list[ReceiverAction] = []
    if packet.payload:
        actions.append(Deliver(packet.payload))
        stats = replace(stats, bytes_delivered=stats.bytes_delivered + packet.payload_size)
    actions.append(SendAck(expected))
    stats = replace(stats, acks_sent=stats.acks_sent + 1)

    phase = state.phase
    if packet.payload_size < config.max_payload_size:
        actions.append(FinalizeSink())
        phase = ReceiverPhase.DRAINING

    new_state = replace(
        state,
        phase=phase,
        expected_sequence_number=flip(expected),
        end_of_stream=phase == ReceiverPhase.DRAINING,
        stats=stats,
    )
    return new_state, actions


# mccole: /receiverstep


# mccole: receiver
class Receiver(Process):
    """Reassembles the byte stream and acknowledges every packet."""

    def init(
        self,
        channel: UnreliableChannel,
        sink: Sink,
        config: ProtocolConfig | None = None,
        address: str = "receiver",
        destination: str = "sender",
        inbound: UnreliableChannel | None = None,
    ) -> None:
        self.channel = channel
        self.sink = sink
        self.config = config or ProtocolConfig()
        self.address = address
        self.destination = destination
        self.state = ReceiverState()
        self.error: TransportError | None = None

        # Incoming data packets
        self.inbox: Queue = Queue(self._env)
        self.inbound = inbound or channel
        self.inbound.register_endpoint(address, self.inbox)

        print(f"[{self.now:.1f}] Receiver: Listening ({channel})")

    async def run(self) -> None:
        """Handle datagrams one at a time until the stream ends or stalls."""
        while self.state.phase != ReceiverPhase.CLOSED:
            draining = self.state.phase == ReceiverPhase.DRAINING
            window = (
                self.config.drain_timeout
                if draining
                else self.config.inactivity_timeout
            )
            name, value = await FirstOf(
                self._env,
                datagram=self.inbox.get(),
                idle=Timeout(self._env, window),
            )

            if name == "datagram":
                event = DatagramArrived(value)
            elif draining:
                event = DrainExpired()
            else:
                print(f"[{self.now:.1f}] Receiver: No packets for {window}, giving up")
                event = InactivityExpired()

            await self.handle(event)

        self.inbound.close_endpoint(self.address)
        self.print_statistics()

    async def handle(self, event: ReceiverEvent) -> None:
        """Apply one event and carry out the resulting actions."""
        before = self.state
        self.state, actions = receiver_step(self.state, event, self.config)

        if isinstance(event, DatagramArrived):
            if self.state.stats.undecodable > before.stats.undecodable:
                print(f"[{self.now:.1f}] Receiver: Packet parsing failed, dropped")
            elif self.state.stats.corrupted > before.stats.corrupted:
                print(f"[{self.now:.1f}] Receiver: Checksum FAILED")
            elif self.state.stats.out_of_order > before.stats.out_of_order:
                print(f"[{self.now:.1f}] Receiver: Duplicate, resending last ACK")

        for action in actions:
            if isinstance(action, Deliver):
                self.sink.append(action.payload)
                print(
                    f"[{self.now:.1f}] Receiver: Delivered {len(action.payload)} "
                    f"bytes (total: {self.state.stats.bytes_delivered})"
                )
            elif isinstance(action, SendAck):
                await self.send_ack(action)
            elif isinstance(action, FinalizeSink):
                self.sink.finalize()
                print(f"[{self.now:.1f}] Receiver: Output finalized")

    async def send_ack(self, action: SendAck) -> None:
        kind = "ACK" if action.positive else "NAK"
        print(f"[{self.now:.1f}] Receiver: Sent {kind} (seq={action.ack_number})")
        try:
            await self.channel.send(make_ack(action.ack_number), self.destination)
        except TransportError as exc:
            # Nobody to acknowledge: stop listening.
            print(f"[{self.now:.1f}] Receiver: FAILED - {exc}")
            self.error = exc
            self.sink.finalize()
            self.state = replace(self.state, phase=ReceiverPhase.CLOSED)

    def print_statistics(self) -> None:
        """Print receiver statistics."""
        stats = self.state.stats
        print(f"\n{'=' * 60}")
        print("Receiver Statistics:")
        print("=" * 60)
        print(f"Packets received: {stats.packets_received}")
        print(f"ACKs sent: {stats.acks_sent}")
        print(f"Bytes received: {stats.bytes_delivered}")
        print(f"Corrupted packets: {stats.corrupted}")
        print(f"Out of order packets: {stats.out_of_order}")
        print(f"Undecodable packets: {stats.undecodable}")
        print(f"Error rate: {stats.error_rate:.1%}")


# mccole: /receiver
