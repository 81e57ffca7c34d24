import pytest

from rdt_packet import encode, make_ack, make_packet
from rdt_sender import (
    Abort,
    AckArrived,
    AckTimedOut,
    Complete,
    NextChunk,
    SenderState,
    SourceExhausted,
    Transmit,
    TransportFailed,
    sender_step,
    with_end_marker,
)
from rdt_types import (
    ProtocolConfig,
    RetryExhaustedError,
    SenderPhase,
    TransportError,
)

CONFIG = ProtocolConfig()


def ack_bytes(seq):
    return encode(make_ack(seq))


def start(payload=b"AB", state=None):
    return sender_step(state or SenderState(), NextChunk(payload), CONFIG)


def test_new_chunk_is_transmitted():
    state, actions = start()
    assert state.phase == SenderPhase.AWAITING_ACK
    assert actions == [Transmit(make_packet(0, b"AB"))]
    assert state.in_flight.checksum == 131
    assert state.stats.packets_sent == 1


def test_matching_ack_flips_sequence_number():
    state, _ = start()
    state, actions = sender_step(state, AckArrived(ack_bytes(0)), CONFIG)
    assert actions == []
    assert state.phase == SenderPhase.IDLE
    assert state.sequence_number == 1
    assert state.in_flight is None
    assert state.stats.acks_received == 1
    assert state.stats.bytes_acked == 2


def test_second_chunk_uses_sequence_number_one():
    state, _ = start()
    state, _ = sender_step(state, AckArrived(ack_bytes(0)), CONFIG)
    state, actions = start(b"CD", state)
    assert actions == [Transmit(make_packet(1, b"CD"))]


def test_mismatched_ack_retransmits_same_packet():
    state, first = start()
    state, actions = sender_step(state, AckArrived(ack_bytes(1)), CONFIG)
    assert actions == [Transmit(first[0].packet, retransmission=True)]
    assert state.phase == SenderPhase.AWAITING_ACK
    assert state.sequence_number == 0
    assert state.retry_count == 1
    assert state.stats.mismatched_acks == 1
    assert state.stats.retransmissions == 1
    assert state.stats.packets_sent == 2


def test_corrupt_ack_retransmits():
    state, _ = start()
    raw = bytearray(ack_bytes(0))
    raw[1] ^= 0xFF
    state, actions = sender_step(state, AckArrived(bytes(raw)), CONFIG)
    assert actions[0].retransmission
    assert state.stats.corrupt_acks == 1


def test_undecodable_ack_retransmits():
    state, _ = start()
    state, actions = sender_step(state, AckArrived(b"\x00"), CONFIG)
    assert actions[0].retransmission
    assert state.stats.corrupt_acks == 1


def test_timeout_retransmits():
    state, _ = start()
    state, actions = sender_step(state, AckTimedOut(), CONFIG)
    assert actions[0].retransmission
    assert state.stats.timeouts == 1


def test_retry_exhaustion_after_max_attempts():
    state, _ = start()
    transmissions = 1
    for _ in range(CONFIG.max_retries):
        state, actions = sender_step(state, AckTimedOut(), CONFIG)
        transmissions += sum(isinstance(a, Transmit) for a in actions)
    assert transmissions == CONFIG.max_retries == 5
    assert state.phase == SenderPhase.FAILED
    assert isinstance(state.error, RetryExhaustedError)
    assert state.error.attempts == 5
    assert actions == [Abort(state.error)]
    assert state.stats.packets_sent == 5
    assert state.stats.retransmissions == 4
    assert state.stats.timeouts == 5


def test_retry_count_resets_for_next_chunk():
    state, _ = start()
    state, _ = sender_step(state, AckTimedOut(), CONFIG)
    state, _ = sender_step(state, AckArrived(ack_bytes(0)), CONFIG)
    state, _ = start(b"CD", state)
    assert state.retry_count == 0


def test_failed_sender_ignores_further_events():
    config = ProtocolConfig(max_retries=1)
    state, _ = start()
    state, _ = sender_step(state, AckTimedOut(), config)
    assert state.phase == SenderPhase.FAILED
    after, actions = sender_step(state, NextChunk(b"more"), config)
    assert after is state
    assert actions == []


def test_source_exhausted_completes():
    state, actions = sender_step(SenderState(), SourceExhausted(), CONFIG)
    assert state.phase == SenderPhase.DONE
    assert actions == [Complete()]


def test_new_chunk_ignored_while_awaiting_ack():
    state, _ = start()
    after, actions = sender_step(state, NextChunk(b"second"), CONFIG)
    assert after is state
    assert actions == []


def test_transport_failure_is_fatal():
    state, _ = start()
    error = TransportError("socket closed")
    state, actions = sender_step(state, TransportFailed(error), CONFIG)
    assert state.phase == SenderPhase.FAILED
    assert state.error is error
    assert actions == [Abort(error)]
    assert state.stats.retransmissions == 0


@pytest.mark.parametrize(
    "chunks, expected",
    [
        ([b"AB"], [b"AB"]),
        ([b"x" * 500, b"y"], [b"x" * 500, b"y"]),
        ([b"x" * 500], [b"x" * 500, b""]),
        ([], [b""]),
    ],
)
def test_end_marker_follows_full_sized_last_chunk(chunks, expected):
    assert list(with_end_marker(chunks, 500)) == expected


def test_end_marker_rejects_oversized_chunk():
    with pytest.raises(ValueError):
        list(with_end_marker([b"x" * 501], 500))
