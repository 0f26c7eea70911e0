from __future__ import annotations

import argparse
from dataclasses import dataclass

from chunkstream.constants import CHUNK_SIZE, CHUNK_Y, PLAYER_TAG, VIEW_DISTANCE


@dataclass(frozen=True)
class StreamingConfig:
    view_distance: int = VIEW_DISTANCE
    chunk_size: float = CHUNK_SIZE
    chunk_y: float = CHUNK_Y
    observer_tag: str = PLAYER_TAG

    def __post_init__(self) -> None:
        if self.view_distance < 0:
            raise ValueError("view_distance must be non-negative")
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not self.observer_tag:
            raise ValueError("observer_tag must not be empty")

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> StreamingConfig:
        return cls(
            view_distance=getattr(args, "view_distance", VIEW_DISTANCE),
            chunk_size=getattr(args, "chunk_size", CHUNK_SIZE),
        )
