"""Tests for the streaming manager: window upkeep, pooling and decoration replay."""

import logging
import math
import random

import pytest

from chunkstream.config import StreamingConfig
from chunkstream.debug.profiler import RuntimeProfiler
from chunkstream.errors import EmptyVariantListError
from chunkstream.gameplay.observer import Observer, ObserverLocator
from chunkstream.world.grid import square_window
from chunkstream.world.pool import ChunkPoolRegistry
from chunkstream.world.streaming import ChunkStreamingManager


def cell_position(cell, chunk_size=6):
    cx, cz = cell
    return (cx * chunk_size + chunk_size / 2.0, 0.0, cz * chunk_size + chunk_size / 2.0)


def assert_single_ownership(manager):
    active = [id(chunk) for chunk in manager.active_chunks.values()]
    pooled = [id(chunk) for chunk in manager.registry.free_chunks()]
    assert len(active) == len(set(active))
    assert len(pooled) == len(set(pooled))
    assert not set(active) & set(pooled)
    assert len(active) + len(pooled) == manager.registry.created_count()


def test_first_tick_activates_square_around_observer(make_manager):
    manager = make_manager(view_distance=1)

    manager.tick((0.0, 0.0, 0.0))

    assert manager.current_cell == (0, 0)
    assert set(manager.active_chunks) == {(x, z) for x in (-1, 0, 1) for z in (-1, 0, 1)}
    assert manager.registry.created_count() == 9
    for cell, chunk in manager.active_chunks.items():
        assert chunk.active
        assert chunk.position == (cell[0] * 6, 0.0, cell[1] * 6)
        metadata = manager.metadata_for(cell)
        assert metadata.variant_id == 0
        assert metadata.spawn_pattern == chunk.placed_pattern()
        assert len(metadata.spawn_pattern) == 3


def test_tick_inside_same_cell_is_a_no_op(make_manager):
    manager = make_manager(view_distance=1)
    manager.tick((0.0, 0.0, 0.0))
    before = dict(manager.active_chunks)

    manager.tick((5.9, 3.0, 5.9))

    assert dict(manager.active_chunks) == before
    assert manager.registry.created_count() == 9


def test_end_to_end_crossing_keeps_shared_chunk(make_manager):
    manager = make_manager(view_distance=1)
    manager.tick((0.0, 0.0, 0.0))
    shared = manager.active_chunks[(1, 0)]
    left_behind = [manager.active_chunks[(x, z)] for x in (-1, 0) for z in (-1, 0, 1)]

    manager.tick((13.0, 0.0, 0.0))

    assert manager.current_cell == (2, 0)
    assert set(manager.active_chunks) == set(square_window((2, 0), 1))
    assert manager.active_chunks[(1, 0)] is shared
    for chunk in left_behind:
        assert chunk in manager.active_chunks.values() or chunk in list(manager.registry.free_chunks())
    assert not manager.is_active((0, 0))
    assert manager.metadata_for((0, 0)) is not None
    assert_single_ownership(manager)


def test_diagonal_chunks_are_evicted_then_refilled(make_manager):
    manager = make_manager(view_distance=1)
    manager.tick(cell_position((0, 0)))
    before = dict(manager.active_chunks)

    # (0, 1) and (0, -1) sit at distance sqrt(2) from (1, 0): evicted, then
    # filled again because they are inside the square window.
    manager.tick(cell_position((1, 0)))

    assert set(manager.active_chunks) == set(square_window((1, 0), 1))
    assert manager.active_chunks[(0, 0)] is before[(0, 0)]
    assert manager.active_chunks[(1, 1)] is before[(1, 1)]
    assert manager.active_chunks[(0, 1)] is not before[(0, 1)]
    assert manager.active_chunks[(0, -1)] is not before[(0, -1)]
    assert manager.registry.created_count() == 9
    assert_single_ownership(manager)


def test_view_distance_zero_keeps_only_observer_cell(make_manager):
    manager = make_manager(view_distance=0)
    manager.tick(cell_position((0, 0)))
    first = manager.active_chunks[(0, 0)]

    manager.tick(cell_position((1, 0)))

    assert list(manager.active_chunks) == [(1, 0)]
    assert manager.active_chunks[(1, 0)] is first
    assert manager.registry.created_count() == 1


def test_random_walk_never_double_owns(make_manager):
    manager = make_manager(view_distance=2, variants=3)
    rng = random.Random(7)
    cell = (0, 0)
    for _ in range(200):
        cell = (cell[0] + rng.choice((-1, 0, 1)), cell[1] + rng.choice((-1, 0, 1)))
        manager.tick(cell_position(cell))
        assert_single_ownership(manager)
        assert set(manager.active_chunks) == set(square_window(cell, 2))
        for chunk in manager.active_chunks.values():
            assert chunk.active
        for chunk in manager.registry.free_chunks():
            assert not chunk.active


@pytest.mark.parametrize("view_distance", [0, 1, 2, 3])
def test_straight_line_reuse_stays_bounded(make_manager, view_distance):
    manager = make_manager(view_distance=view_distance)
    for x in range(0, 300):
        manager.tick((x * 2.0, 0.0, 0.0))
    assert manager.registry.created_count() <= (2 * view_distance + 1) ** 2


def test_revisiting_replays_identical_pattern(make_manager):
    manager = make_manager(view_distance=1, slots=6)
    manager.tick(cell_position((0, 0)))
    patterns = {cell: chunk.placed_pattern() for cell, chunk in manager.active_chunks.items()}
    assert len(set(patterns.values())) > 1

    for _ in range(10):
        manager.tick(cell_position((10, 0)))
        assert not manager.is_active((0, 0))
        manager.tick(cell_position((0, 0)))
        for cell, pattern in patterns.items():
            assert manager.active_chunks[cell].placed_pattern() == pattern
            assert manager.metadata_for(cell).spawn_pattern == pattern


def test_variant_assignment_is_stable(make_manager):
    manager = make_manager(view_distance=1, variants=4)
    manager.tick(cell_position((0, 0)))
    assigned = {cell: manager.metadata_for(cell).variant_id for cell in manager.active_chunks}

    for x in (5, -5, 12, 0, -8, 0):
        manager.tick(cell_position((x, x)))

    for cell, variant_id in assigned.items():
        assert manager.metadata_for(cell).variant_id == variant_id
        chunk = manager.active_chunks[cell]
        assert chunk.variant_name == f"variant_{variant_id}"
        assert len(chunk.spawn_points) == 3 + variant_id


def test_metadata_is_kept_for_every_visited_cell(make_manager):
    manager = make_manager(view_distance=1)
    for x in range(0, 10):
        manager.tick(cell_position((x, 0)))

    visited = {(x, z) for x in range(-1, 11) for z in (-1, 0, 1)}
    assert manager.diagnostics_snapshot()["known_chunks"] == len(visited)
    for cell in visited:
        assert manager.metadata_for(cell) is not None


def test_empty_variant_list_fails_fast():
    with pytest.raises(EmptyVariantListError):
        ChunkStreamingManager(ChunkPoolRegistry())


def test_update_polls_observer_through_locator(make_manager):
    locator = ObserverLocator()
    observer = Observer(position=(-7.0, 0.0, 13.0))
    locator.register(observer)
    manager = make_manager(view_distance=1, locator=locator)

    manager.update()

    assert manager.current_cell == (-2, 2)


def test_missing_observer_falls_back_to_origin(make_manager, caplog):
    manager = make_manager(view_distance=1, locator=ObserverLocator())

    with caplog.at_level(logging.ERROR, logger="chunkstream.world.streaming"):
        manager.update()

    assert "Player" in caplog.text
    assert manager.current_cell == (0, 0)
    assert len(manager.active_chunks) == 9


def test_missing_locator_falls_back_to_origin(make_manager, caplog):
    manager = make_manager(view_distance=1)

    with caplog.at_level(logging.ERROR, logger="chunkstream.world.streaming"):
        manager.update()
        manager.update()

    assert manager.current_cell == (0, 0)
    assert manager.registry.created_count() == 9


def test_custom_observer_tag(make_registry):
    locator = ObserverLocator()
    locator.register(Observer(position=(30.0, 0.0, 0.0), tag="Ball"))
    manager = ChunkStreamingManager(
        make_registry(), StreamingConfig(view_distance=0, observer_tag="Ball"), locator=locator
    )

    manager.update()

    assert manager.current_cell == (5, 0)


def test_same_seed_and_path_produce_same_world(make_registry):
    def run(seed):
        registry = make_registry(variants=3, slots=4)
        manager = ChunkStreamingManager(registry, StreamingConfig(view_distance=2), rng=random.Random(seed))
        for x in range(0, 60, 3):
            manager.tick((float(x), 0.0, float(-x)))
        return {cell: manager.metadata_for(cell).variant_id for cell in manager.active_chunks}

    assert run(11) == run(11)


def test_profiler_records_one_frame_per_crossing(make_manager):
    profiler = RuntimeProfiler(slow_frame_ms=1000.0)
    manager = make_manager(view_distance=1, profiler=profiler)

    manager.tick(cell_position((0, 0)))
    manager.tick(cell_position((0, 0)))
    manager.tick(cell_position((1, 0)))

    assert len(profiler.frame_samples_ms["streaming.crossing"]) == 2
    assert len(profiler.section_samples_ms["streaming.evict"]) == 2
    assert len(profiler.section_samples_ms["streaming.fill"]) == 2


def test_shutdown_releases_every_instance(make_manager):
    manager = make_manager(view_distance=1, variants=2)
    manager.tick(cell_position((0, 0)))
    manager.tick(cell_position((4, 0)))
    chunks = list(manager.active_chunks.values()) + list(manager.registry.free_chunks())
    assert len(chunks) == manager.registry.created_count()

    manager.shutdown()

    assert all(chunk.deleted for chunk in chunks)
    assert not manager.active_chunks
    assert list(manager.registry.free_chunks()) == []
    assert manager.metadata_for((0, 0)) is not None


@pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
def test_non_finite_position_keeps_last_cell(make_manager, caplog, bad):
    manager = make_manager(view_distance=1)
    manager.tick(cell_position((2, 3)))
    before = dict(manager.active_chunks)

    with caplog.at_level(logging.ERROR, logger="chunkstream.world.streaming"):
        manager.tick((bad, 0.0, 0.0))
        manager.tick((0.0, 0.0, bad))

    assert "not finite" in caplog.text
    assert manager.current_cell == (2, 3)
    assert dict(manager.active_chunks) == before
    assert manager.registry.created_count() == 9


def test_non_finite_position_before_first_tick_loads_nothing(make_manager):
    manager = make_manager(view_distance=1)

    manager.tick((math.nan, 0.0, math.nan))

    assert manager.current_cell is None
    assert not manager.active_chunks


def test_active_chunk_without_metadata_is_not_pooled(make_manager, caplog):
    manager = make_manager(view_distance=1)
    manager.tick(cell_position((0, 0)))
    orphan = manager.registry.checkout(0, (60.0, 0.0, 0.0))
    orphan.set_active(True)
    manager._active_chunks[(10, 0)] = orphan

    with caplog.at_level(logging.ERROR, logger="chunkstream.world.streaming"):
        with pytest.raises(AssertionError):
            manager.tick(cell_position((1, 0)))

    assert "(10, 0)" in caplog.text
    assert manager.active_chunks[(10, 0)] is orphan
    assert orphan.active
    assert all(chunk is not orphan for chunk in manager.registry.free_chunks())
