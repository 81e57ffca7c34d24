"""Chunk sources feeding the sender and sinks filled by the receiver."""

from pathlib import Path
from typing import BinaryIO, Iterator, Protocol
from rdt_types import MAX_PAYLOAD_SIZE


class Sink(Protocol):
    """Where the receiver puts the reassembled stream."""

    finalized: bool

    def append(self, data: bytes) -> None: ...

    def finalize(self) -> None: ...


class BytesChunkSource:
    """Splits an in-memory byte string into chunks.

    Iterating again starts again from the beginning.
    """

    def __init__(self, data: bytes, chunk_size: int = MAX_PAYLOAD_SIZE) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.data = bytes(data)
        self.chunk_size = chunk_size

    def __iter__(self) -> Iterator[bytes]:
        for offset in range(0, len(self.data), self.chunk_size):
            yield self.data[offset : offset + self.chunk_size]

    def __len__(self) -> int:
        return -(-len(self.data) // self.chunk_size)


class FileChunkSource:
    """Reads a file lazily, one chunk at a time."""

    def __init__(self, path: str | Path, chunk_size: int = MAX_PAYLOAD_SIZE) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.path = Path(path)
        self.chunk_size = chunk_size

    def __iter__(self) -> Iterator[bytes]:
        with self.path.open("rb") as reader:
            while True:
                chunk = reader.read(self.chunk_size)
                if not chunk:
                    break
                yield chunk

    def __len__(self) -> int:
        return -(-self.path.stat().st_size // self.chunk_size)


class BytesSink:
    """Collects the reassembled stream in memory."""

    def __init__(self) -> None:
        self._buffer = bytearray()
        self.finalized = False

    def append(self, data: bytes) -> None:
        if self.finalized:
            raise ValueError("Cannot append to a finalized sink")
        self._buffer.extend(data)

    def finalize(self) -> None:
        self.finalized = True

    def getvalue(self) -> bytes:
        return bytes(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)


class FileSink:
    """Writes the reassembled stream to a file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._writer: BinaryIO | None = self.path.open("wb")
        self.finalized = False
        self.bytes_written = 0

    def append(self, data: bytes) -> None:
        if self._writer is None:
            raise ValueError(f"Cannot append to finalized {self.path}")
        self._writer.write(data)
        self.bytes_written += len(data)

    def finalize(self) -> None:
        if self._writer is not None:
            self._writer.close()
            self._writer = None
        self.finalized = True
