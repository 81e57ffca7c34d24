"""Checksums catching corrupted packets, and a hopeless channel."""

from rdt_transfer import transfer_bytes
from rdt_types import ChannelConfig, ProtocolConfig
import random


def run_scenario(
    title: str,
    data_corruption: float,
    ack_corruption: float,
    seed: int,
) -> None:
    print("=" * 60)
    print(title)
    print("=" * 60 + "\n")

    payload = b"The quick brown fox jumps over the lazy dog. " * 30
    result = transfer_bytes(
        payload,
        channel_config=ChannelConfig(corruption_probability=data_corruption),
        ack_channel_config=ChannelConfig(corruption_probability=ack_corruption),
        # Linger long enough to answer every retransmission of the last chunk.
        protocol_config=ProtocolConfig(drain_timeout=10.0),
        rng=random.Random(seed),
    )

    print(f"\n{'=' * 60}")
    if result.success:
        print(f"✓ Delivered {len(result.data)} bytes intact: {result.data == payload}")
    else:
        print(f"✗ Transfer failed: {result.error}")
        print(f"  Bytes delivered: {len(result.data)} of {len(payload)}")
    print(f"  Corrupted packets seen by receiver: {result.receiver.stats.corrupted}")
    print(f"  Corrupt ACKs seen by sender: {result.sender.stats.corrupt_acks}")
    print(f"  Retransmissions: {result.sender.stats.retransmissions}\n")


if __name__ == "__main__":
    run_scenario("25% ACK corruption: checksums force retransmission", 0.0, 0.25, 7)
    run_scenario("100% corruption: the sender gives up", 1.0, 1.0, 7)
