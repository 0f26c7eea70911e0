from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Iterator, Sequence

from chunkstream.constants import Vec3
from chunkstream.errors import UnknownVariantError
from chunkstream.world.chunk import Chunk, ChunkVariant

logger = logging.getLogger(__name__)


@dataclass
class ChunkVariantPool:
    variant: ChunkVariant
    free: deque[Chunk] = field(default_factory=deque)
    pooled_ids: set[int] = field(default_factory=set)
    slot_count: int | None = None
    created: int = 0


class ChunkPoolRegistry:
    """Recycles chunk instances per variant instead of rebuilding them.

    Variant ids are the 0-based positions of the variants in registration
    order and stay fixed for the lifetime of the registry. An instance is only
    ever returned to the pool of the variant it was built from.
    """

    def __init__(self, variants: Sequence[ChunkVariant] = ()) -> None:
        self._pools: list[ChunkVariantPool] = []
        for variant in variants:
            self.register(variant)

    def __len__(self) -> int:
        return len(self._pools)

    def register(self, variant: ChunkVariant) -> int:
        self._pools.append(ChunkVariantPool(variant=variant))
        return len(self._pools) - 1

    def pool_for(self, variant_id: int) -> ChunkVariantPool:
        if not 0 <= variant_id < len(self._pools):
            raise UnknownVariantError(variant_id)
        return self._pools[variant_id]

    def slot_count(self, variant_id: int) -> int | None:
        return self.pool_for(variant_id).slot_count

    def checkout(self, variant_id: int, position: Vec3, rotation: float = 0.0) -> Chunk:
        pool = self.pool_for(variant_id)
        if pool.free:
            # Slot state from the previous life is left as-is; the caller replays its own record.
            chunk = pool.free.popleft()
            pool.pooled_ids.discard(id(chunk))
            chunk.place(position, rotation)
            return chunk

        chunk = pool.variant.instantiate()
        chunk.place(position, rotation)
        if pool.slot_count is None:
            pool.slot_count = len(chunk.spawn_points)
        pool.created += 1
        logger.debug("Instantiated chunk %d for variant %d (%s)", pool.created, variant_id, pool.variant.name)
        return chunk

    def checkin(self, chunk: Chunk, variant_id: int) -> bool:
        try:
            pool = self.pool_for(variant_id)
        except UnknownVariantError as exc:
            chunk.set_active(False)
            logger.error("%s; dropping %r", exc, chunk)
            return False

        if id(chunk) in pool.pooled_ids:
            logger.error("Chunk %r is already pooled for variant %d", chunk, variant_id)
            assert False, "chunk checked in twice"
            return False

        chunk.set_active(False)
        pool.free.append(chunk)
        pool.pooled_ids.add(id(chunk))
        return True

    def free_chunks(self) -> Iterator[Chunk]:
        for pool in self._pools:
            yield from pool.free

    def created_count(self, variant_id: int | None = None) -> int:
        if variant_id is not None:
            return self.pool_for(variant_id).created
        return sum(pool.created for pool in self._pools)

    def clear(self) -> int:
        released = 0
        for pool in self._pools:
            while pool.free:
                pool.free.popleft().delete()
                released += 1
            pool.pooled_ids.clear()
        return released

    def diagnostics_snapshot(self) -> dict[str, dict[str, int]]:
        return {
            f"{variant_id}:{pool.variant.name}": {
                "free": len(pool.free),
                "created": pool.created,
                "slots": pool.slot_count or 0,
            }
            for variant_id, pool in enumerate(self._pools)
        }
