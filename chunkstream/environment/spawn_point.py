from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Sequence

from chunkstream.constants import DEFAULT_SPAWN_CHANCE
from chunkstream.world.chunk import Chunk, ChunkVariant


@dataclass
class Decoration:
    offset: tuple[float, float]
    deleted: bool = False

    def delete(self) -> None:
        self.deleted = True


class SpawnPoint:
    """Decoration slot that rolls a weighted coin when its chunk is enabled.

    A state forced through ``set_placed`` wins over the roll until the slot is
    disabled again.
    """

    def __init__(
        self,
        offset: tuple[float, float],
        placed_chance: float = DEFAULT_SPAWN_CHANCE,
        rng: random.Random | None = None,
    ) -> None:
        if not 0.0 <= placed_chance <= 100.0:
            raise ValueError("placed_chance must be a percentage between 0 and 100")
        self.offset = offset
        self.placed_chance = placed_chance
        self.spawned_decoration: Decoration | None = None
        self.enabled = False
        self._rng = rng or random.Random()
        self._forced: bool | None = None

    def is_placed(self) -> bool:
        return self.spawned_decoration is not None

    def set_placed(self, placed: bool) -> None:
        self._forced = placed
        if self.enabled:
            self._apply(placed)

    def on_enable(self) -> None:
        self.enabled = True
        if self._forced is not None:
            self._apply(self._forced)
        elif self.spawned_decoration is None:
            self._apply(self._rng.uniform(0.0, 100.0) < self.placed_chance)

    def on_disable(self) -> None:
        self.enabled = False
        self._forced = None
        self._despawn()

    def delete(self) -> None:
        self.on_disable()

    def _apply(self, placed: bool) -> None:
        if not placed:
            self._despawn()
        elif self.spawned_decoration is None:
            self.spawned_decoration = Decoration(self.offset)

    def _despawn(self) -> None:
        if self.spawned_decoration is not None:
            self.spawned_decoration.delete()
            self.spawned_decoration = None


def make_variant(
    name: str,
    slot_offsets: Sequence[tuple[float, float]],
    placed_chance: float = DEFAULT_SPAWN_CHANCE,
    rng: random.Random | None = None,
) -> ChunkVariant:
    rng = rng or random.Random()

    def build() -> Chunk:
        return Chunk(name, [SpawnPoint(offset, placed_chance, rng) for offset in slot_offsets])

    return ChunkVariant(name=name, factory=build)
