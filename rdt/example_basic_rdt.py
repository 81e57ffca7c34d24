"""Basic stop-and-wait transfer over a clean channel."""

from asimpy import Environment
from unreliable_channel import UnreliableChannel
from rdt_io import BytesChunkSource, BytesSink
from rdt_receiver import Receiver
from rdt_sender import Sender
from rdt_types import ChannelConfig


def run_basic_rdt() -> None:
    """Send a short message with no loss, corruption, or delay."""
    env = Environment()

    print("=" * 60)
    print("Basic Stop-and-Wait Demonstration")
    print("=" * 60)
    print("Sending over a perfect channel:")
    print("  - 0% packet loss")
    print("  - 0% corruption")
    print("  - 0.1 delay per packet")
    print("=" * 60 + "\n")

    # One channel carries traffic in both directions
    channel = UnreliableChannel(env, ChannelConfig(delay=0.1))

    message = (
        "Hello from the sender! Every chunk of this message waits for its "
        "own acknowledgment before the next one leaves, so the receiver "
        "sees the bytes in exactly the order they were written. "
    ) * 4

    sink = BytesSink()
    receiver = Receiver(env, channel, sink)
    sender = Sender(env, channel, BytesChunkSource(message.encode("utf-8")))

    # Run simulation
    env.run(until=60)

    print(f"\n{'=' * 60}")
    print("Verification:")
    print("=" * 60)
    received = sink.getvalue().decode("utf-8")
    if sender.succeeded and received == message:
        print(f"✓ SUCCESS: All {len(received)} bytes delivered in order")
    else:
        print(f"✗ INCOMPLETE: {len(received)}/{len(message)} bytes")
    print(f"Receiver ended in {receiver.state.phase.value}")


if __name__ == "__main__":
    run_basic_rdt()
