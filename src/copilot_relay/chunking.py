"""Synthetic chunking for providers that only return a complete answer."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator


class ChunkingStrategy(ABC):
    """Splits a complete response into fragments emitted as ``data`` events.

    Concatenating the fragments in order must reproduce the input exactly.
    """

    @abstractmethod
    def split(self, text: str) -> Iterator[str]:
        """Yield fragments of ``text`` in order."""
        ...

    @staticmethod
    def fixed_size(size: int = 20) -> FixedSizeChunking:
        return FixedSizeChunking(size)


class FixedSizeChunking(ChunkingStrategy):
    """Fixed-width slices; the last one may be shorter."""

    def __init__(self, size: int = 20) -> None:
        if size < 1:
            raise ValueError(f"Chunk size must be positive, got {size}")
        self.size = size

    def split(self, text: str) -> Iterator[str]:
        for start in range(0, len(text), self.size):
            yield text[start : start + self.size]

    def __repr__(self) -> str:
        return f"FixedSizeChunking(size={self.size})"


class NoChunking(ChunkingStrategy):
    """Emit the whole response as one fragment."""

    def split(self, text: str) -> Iterator[str]:
        if text:
            yield text

    def __repr__(self) -> str:
        return "NoChunking()"
