"""Pytest configuration and fixtures for chunk streaming tests."""

import random

import pytest

from chunkstream.config import StreamingConfig
from chunkstream.environment import make_variant
from chunkstream.world.pool import ChunkPoolRegistry
from chunkstream.world.streaming import ChunkStreamingManager


@pytest.fixture
def seeded_rng():
    """Provide a deterministic RNG for tests."""
    return random.Random(42)


@pytest.fixture
def make_registry(seeded_rng):
    """Build a registry where variant ``i`` exposes ``slots + i`` decoration slots."""

    def _make(variants=1, slots=3, placed_chance=50.0):
        return ChunkPoolRegistry(
            [
                make_variant(f"variant_{i}", [(1.0 + j, 1.0) for j in range(slots + i)], placed_chance, seeded_rng)
                for i in range(variants)
            ]
        )

    return _make


@pytest.fixture
def make_manager(make_registry, seeded_rng):
    def _make(view_distance=1, chunk_size=6, variants=1, slots=3, placed_chance=50.0, **kwargs):
        config = StreamingConfig(view_distance=view_distance, chunk_size=chunk_size)
        registry = make_registry(variants=variants, slots=slots, placed_chance=placed_chance)
        return ChunkStreamingManager(registry, config, rng=seeded_rng, **kwargs)

    return _make

