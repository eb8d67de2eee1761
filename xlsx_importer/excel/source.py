from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Protocol

__all__ = [
    "ByteSource",
    "FileByteSource",
]


class ByteSource(Protocol):
    def get_stream(self, file_id: str) -> BinaryIO:
        """Open the bytes identified by ``file_id``; the caller closes the stream."""
        ...


class FileByteSource:
    """ByteSource over the local filesystem.

    ``file_id`` is a path, resolved against ``base_dir`` when relative.
    """

    def __init__(self, base_dir: Path | None = None) -> None:
        self.base_dir = base_dir

    def resolve(self, file_id: str) -> Path:
        path = Path(file_id)
        if self.base_dir is not None and not path.is_absolute():
            path = self.base_dir / path
        return path

    def get_stream(self, file_id: str) -> BinaryIO:
        return self.resolve(file_id).open("rb")
