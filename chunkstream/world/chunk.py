from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol, Sequence

from chunkstream.constants import Vec3


class DecorationSlot(Protocol):
    """A position inside a chunk where a decoration may or may not be placed.

    ``set_placed`` is an idempotent set: after the call the slot holds exactly
    the requested state, whatever it held before.
    """

    def is_placed(self) -> bool: ...

    def set_placed(self, placed: bool) -> None: ...

    def on_enable(self) -> None: ...

    def on_disable(self) -> None: ...

    def delete(self) -> None: ...


class Chunk:
    """One live or pooled chunk instance built from a single variant."""

    def __init__(self, variant_name: str, spawn_points: Sequence[DecorationSlot] = ()) -> None:
        self.variant_name = variant_name
        self.spawn_points: list[DecorationSlot] = list(spawn_points)
        self.position: Vec3 = (0.0, 0.0, 0.0)
        self.rotation = 0.0
        self.active = False
        self.deleted = False

    def __repr__(self) -> str:
        state = "active" if self.active else "inactive"
        return f"Chunk({self.variant_name!r}, position={self.position}, {state})"

    def place(self, position: Vec3, rotation: float = 0.0) -> None:
        self.position = position
        self.rotation = rotation

    def set_active(self, active: bool) -> None:
        if active == self.active:
            return
        self.active = active
        for spawn_point in self.spawn_points:
            if active:
                spawn_point.on_enable()
            else:
                spawn_point.on_disable()

    def placed_pattern(self) -> tuple[bool, ...]:
        return tuple(spawn_point.is_placed() for spawn_point in self.spawn_points)

    def apply_pattern(self, pattern: Sequence[bool]) -> None:
        # Records may be shorter than the slot list; trailing slots keep their default.
        for spawn_point, placed in zip(self.spawn_points, pattern):
            spawn_point.set_placed(placed)

    def delete(self) -> None:
        self.set_active(False)
        for spawn_point in self.spawn_points:
            spawn_point.delete()
        self.deleted = True


@dataclass(frozen=True)
class ChunkVariant:
    name: str
    factory: Callable[[], Chunk]

    def instantiate(self) -> Chunk:
        return self.factory()


@dataclass(frozen=True)
class ChunkMetadata:
    variant_id: int
    spawn_pattern: tuple[bool, ...]
