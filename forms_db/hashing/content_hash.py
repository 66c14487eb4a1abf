"""
Content hashing for form definition files.

The hash of a definition file's bytes:
    - names its cache artifact (``<hash>.cache``)
    - lets callers find a record by content (FormRegistry.get_by_md5)
    - is recomputed whenever a record is pointed at a new file

Only the bytes count; the file's name and location do not.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Protocol, Union

from ..errors import InvalidInput


def _hash_file(path: Path, algo: str = "md5", chunk_size: int = 8192) -> str:
    """
    Hash a single file incrementally by reading in chunks.

    Raises OSError if the file cannot be read.
    """
    h = hashlib.new(algo)
    with open(path, "rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            h.update(chunk)
    return h.hexdigest()


class ContentHasher(Protocol):
    """Computes a stable, content-only hash for a file's bytes."""

    def hash(self, path: Union[str, Path]) -> str:
        ...


class FileContentHasher:
    """
    Default ContentHasher.

    A missing or unreadable file is InvalidInput: a form definition must
    exist to be fingerprinted.
    """

    def __init__(self, algo: str = "md5"):
        if algo not in hashlib.algorithms_available:
            raise InvalidInput(f"Unknown hash algorithm: {algo!r}")
        self.algo = algo

    def hash(self, path: Union[str, Path]) -> str:
        p = Path(path)
        if not p.is_file():
            raise InvalidInput(f"Cannot hash {p}: not a file")
        try:
            return _hash_file(p, algo=self.algo)
        except OSError as e:
            raise InvalidInput(f"Cannot hash {p}: {e}") from e

    def __repr__(self) -> str:
        return f"FileContentHasher(algo={self.algo!r})"


__all__ = [
    "ContentHasher",
    "FileContentHasher",
]
