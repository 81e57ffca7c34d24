"""Stop-and-wait under heavy packet loss."""

from rdt_transfer import transfer_bytes
from rdt_types import ChannelConfig, ProtocolConfig
import random


def run_high_loss_scenario() -> None:
    """Show retransmission recovering from lost data packets and ACKs."""
    print("=" * 60)
    print("High Loss Stop-and-Wait Scenario")
    print("=" * 60)
    print("Testing retransmission with:")
    print("  - 30% loss on data packets")
    print("  - 20% loss on acknowledgments")
    print("  - 8 attempts per chunk before giving up")
    print("=" * 60 + "\n")

    payload = bytes(range(256)) * 6  # Several chunks, last one short

    result = transfer_bytes(
        payload,
        channel_config=ChannelConfig(loss_probability=0.30, delay=0.05),
        ack_channel_config=ChannelConfig(loss_probability=0.20, delay=0.05),
        protocol_config=ProtocolConfig(
            ack_timeout=1.0, max_retries=8, drain_timeout=8.0
        ),
        rng=random.Random(371),
    )

    print(f"\n{'=' * 60}")
    print("Verification:")
    print("=" * 60)
    if result.success and result.data == payload:
        print(f"✓ SUCCESS: All {len(payload)} bytes delivered correctly!")
    else:
        print(f"✗ FAILED: {result.error}")
    print(f"Simulated duration: {result.duration:.1f}")
    print(f"Retransmissions: {result.sender.stats.retransmissions}")
    print(f"Duplicates discarded: {result.receiver.stats.out_of_order}")


if __name__ == "__main__":
    run_high_loss_scenario()
