"""Unreliable channel that loses, corrupts, and delays packets."""

from dataclasses import replace
from asimpy import Environment, Queue, Timeout
from rdt_packet import encode, verify
from rdt_types import ChannelConfig, Packet, TransportError
import random


class UnreliableChannel:
    """Simulates a lossy, error-prone datagram link (like UDP).

    Each transmission is an independent trial, so one channel can be
    shared by any number of transfers.
    """

    def __init__(
        self,
        env: Environment,
        config: ChannelConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._env = env
        self.config = config or ChannelConfig()
        self.rng = rng or random.Random()

        # Network endpoints (name -> queue of raw datagrams)
        self.endpoints: dict[str, Queue] = {}
        self.closed: set[str] = set()

    # mccole: transmit
    async def transmit(self, packet: Packet) -> Packet | None:
        """Pass one packet through the channel; None means it was lost."""
        if self.config.delay > 0:
            await Timeout(self._env, self.config.delay)

        if self.rng.random() < self.config.loss_probability:
            print(f"[{self._env.now:.1f}] Channel: LOST {packet}")
            return None

        if self.rng.random() < self.config.corruption_probability:
            # Model a bit error in the header: payload stays intact.
            corrupted = replace(packet, checksum=self.rng.randrange(256))
            print(f"[{self._env.now:.1f}] Channel: CORRUPTED {corrupted}")
            return corrupted

        return packet

    # mccole: /transmit

    def is_valid(self, packet: Packet | None) -> bool:
        """A lost packet is never valid."""
        if packet is None:
            return False
        return verify(packet)

    def register_endpoint(self, name: str, queue: Queue) -> None:
        """Register an endpoint to receive datagrams."""
        self.endpoints[name] = queue
        self.closed.discard(name)

    def close_endpoint(self, name: str) -> None:
        """Stop delivering to an endpoint, as for a closed UDP port."""
        self.closed.add(name)

    async def send(self, packet: Packet, destination: str) -> bool:
        """Transmit a packet and deliver its bytes if it survives.

        Returns whether a datagram reached the destination queue.
        """
        if destination not in self.endpoints:
            raise TransportError(f"No endpoint for {destination}")

        delivered = await self.transmit(packet)
        if delivered is None or destination in self.closed:
            return False

        await self.endpoints[destination].put(encode(delivered))
        return True

    def __str__(self) -> str:
        return str(self.config)
