from __future__ import annotations

import logging
import math
import random
from contextlib import nullcontext
from types import MappingProxyType
from typing import Mapping

from chunkstream.config import StreamingConfig
from chunkstream.constants import GridCoordinate, Vec3
from chunkstream.debug.profiler import RuntimeProfiler
from chunkstream.errors import EmptyVariantListError, ObserverMissingError
from chunkstream.gameplay.observer import ObserverLocator
from chunkstream.world.chunk import Chunk, ChunkMetadata
from chunkstream.world.grid import chunk_coords, grid_distance, square_window, world_position
from chunkstream.world.pool import ChunkPoolRegistry

logger = logging.getLogger(__name__)

ORIGIN: Vec3 = (0.0, 0.0, 0.0)


class ChunkStreamingManager:
    """Loads chunks around the observer and recycles the ones it leaves behind.

    Chunk metadata (variant id and decoration pattern) is kept for every cell
    ever visited, so a cell always comes back looking the way it was first
    generated. Metadata is never evicted; memory grows with the explored area.
    """

    def __init__(
        self,
        registry: ChunkPoolRegistry,
        config: StreamingConfig | None = None,
        locator: ObserverLocator | None = None,
        rng: random.Random | None = None,
        profiler: RuntimeProfiler | None = None,
    ) -> None:
        if len(registry) == 0:
            raise EmptyVariantListError()
        self.registry = registry
        self.config = config or StreamingConfig()
        self.locator = locator
        self.profiler = profiler
        self._rng = rng or random.Random()
        self._metadata: dict[GridCoordinate, ChunkMetadata] = {}
        self._active_chunks: dict[GridCoordinate, Chunk] = {}
        self._current_cell: GridCoordinate | None = None

    def _profile(self, name: str):
        if self.profiler is None:
            return nullcontext()
        return self.profiler.section(name)

    @property
    def current_cell(self) -> GridCoordinate | None:
        return self._current_cell

    @property
    def active_chunks(self) -> Mapping[GridCoordinate, Chunk]:
        return MappingProxyType(self._active_chunks)

    def is_active(self, chunk: GridCoordinate) -> bool:
        return chunk in self._active_chunks

    def metadata_for(self, chunk: GridCoordinate) -> ChunkMetadata | None:
        return self._metadata.get(chunk)

    def chunk_coords(self, x: float, z: float) -> GridCoordinate:
        return chunk_coords(x, z, self.config.chunk_size)

    def observer_position(self) -> Vec3:
        if self.locator is None:
            logger.error("No observer locator configured; using the origin")
            return ORIGIN
        try:
            return self.locator.position_of(self.config.observer_tag)
        except ObserverMissingError as exc:
            logger.error("%s", exc)
            return ORIGIN

    def update(self) -> None:
        self.tick(self.observer_position())

    def tick(self, position: Vec3) -> None:
        px, _, pz = position
        if not (math.isfinite(px) and math.isfinite(pz)):
            logger.error("Observer position %s is not finite; keeping cell %s", position, self._current_cell)
            return
        current = self.chunk_coords(px, pz)
        if current == self._current_cell:
            return

        if self.profiler is not None:
            self.profiler.begin_frame("streaming.crossing", {"from": self._current_cell, "to": current})
        try:
            self._reconcile(current)
        finally:
            if self.profiler is not None:
                self.profiler.end_frame({"active": len(self._active_chunks)})

    def _reconcile(self, current: GridCoordinate) -> None:
        view_distance = self.config.view_distance

        # Eviction uses Euclidean distance while the fill pass walks a square, so
        # diagonal corners are loaded on entry and dropped on the next crossing.
        # Kept that way on purpose for compatibility.
        with self._profile("streaming.evict"):
            evicted = [
                chunk for chunk in self._active_chunks if grid_distance(chunk, current) > view_distance
            ]
            for chunk in evicted:
                self._deactivate_chunk(chunk)

        filled = 0
        with self._profile("streaming.fill"):
            for chunk in square_window(current, view_distance):
                if chunk in self._active_chunks:
                    continue
                self._activate_chunk(chunk)
                filled += 1

        logger.debug(
            "Observer moved %s -> %s: evicted %d, filled %d, active %d",
            self._current_cell,
            current,
            len(evicted),
            filled,
            len(self._active_chunks),
        )
        self._current_cell = current

    def _activate_chunk(self, chunk: GridCoordinate) -> None:
        position = world_position(chunk, self.config.chunk_size, self.config.chunk_y)
        metadata = self._metadata.get(chunk)
        if metadata is not None:
            instance = self.registry.checkout(metadata.variant_id, position)
            instance.apply_pattern(metadata.spawn_pattern)
            instance.set_active(True)
            self._active_chunks[chunk] = instance
            return

        variant_id = self._rng.randrange(len(self.registry))
        instance = self.registry.checkout(variant_id, position)
        instance.set_active(True)
        self._active_chunks[chunk] = instance
        self._metadata[chunk] = ChunkMetadata(variant_id=variant_id, spawn_pattern=instance.placed_pattern())
        logger.debug("Created metadata for %s with variant %d", chunk, variant_id)

    def _deactivate_chunk(self, chunk: GridCoordinate) -> None:
        instance = self._active_chunks.get(chunk)
        if instance is None:
            return
        metadata = self._metadata.get(chunk)
        if metadata is None:
            logger.error("Active chunk %s has no metadata; leaving it active", chunk)
            assert metadata is not None, f"missing metadata for active chunk {chunk}"
            return
        del self._active_chunks[chunk]
        self.registry.checkin(instance, metadata.variant_id)

    def diagnostics_snapshot(self) -> dict[str, int]:
        return {
            "active_chunks": len(self._active_chunks),
            "known_chunks": len(self._metadata),
            "pooled_chunks": sum(1 for _ in self.registry.free_chunks()),
            "created_chunks": self.registry.created_count(),
        }

    def shutdown(self) -> None:
        for instance in self._active_chunks.values():
            instance.delete()
        released = len(self._active_chunks)
        self._active_chunks.clear()
        released += self.registry.clear()
        self._current_cell = None
        logger.info("Released %d chunk instances (%d cells remembered)", released, len(self._metadata))
