"""Copy a file through a lossy, corrupting channel."""

from pathlib import Path
from rdt_io import FileChunkSource, FileSink
from rdt_transfer import run_transfer
from rdt_types import ChannelConfig
import sys


def copy_file(source_path: str, dest_path: str) -> bool:
    """Transfer one file and compare the copy with the original."""
    print("=" * 60)
    print(f"Transferring {source_path} -> {dest_path}")
    print("=" * 60 + "\n")

    result = run_transfer(
        FileChunkSource(source_path),
        FileSink(dest_path),
        channel_config=ChannelConfig(
            loss_probability=0.1, corruption_probability=0.1, delay=0.02
        ),
    )

    if not result.success:
        print(f"\n✗ Transfer failed: {result.error}")
        return False

    same = Path(source_path).read_bytes() == Path(dest_path).read_bytes()
    print(f"\n{'✓' if same else '✗'} Copy matches original: {same}")
    return same


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print("Usage: python example_file_transfer.py SOURCE DEST")
        sys.exit(1)
    sys.exit(0 if copy_file(sys.argv[1], sys.argv[2]) else 1)
