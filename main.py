import argparse
import logging
import random

from chunkstream.config import StreamingConfig
from chunkstream.constants import CHUNK_SIZE, DEFAULT_SPAWN_CHANCE, TICKS_PER_SECOND, VIEW_DISTANCE
from chunkstream.debug.profiler import RuntimeProfiler
from chunkstream.environment import make_variant
from chunkstream.gameplay.observer import Observer, ObserverLocator
from chunkstream.world.chunk import ChunkVariant
from chunkstream.world.pool import ChunkPoolRegistry
from chunkstream.world.streaming import ChunkStreamingManager

logger = logging.getLogger("chunkstream")


def build_variants(count: int, chunk_size: float, rng: random.Random) -> list[ChunkVariant]:
    variants: list[ChunkVariant] = []
    for index in range(count):
        # Each variant lays its slots out on its own grid density.
        per_side = index + 1
        step = chunk_size / (per_side + 1)
        offsets = [(step * (i + 1), step * (j + 1)) for i in range(per_side) for j in range(per_side)]
        variants.append(make_variant(f"variant_{index}", offsets, placed_chance=DEFAULT_SPAWN_CHANCE * 3, rng=rng))
    return variants


def run_headless(manager: ChunkStreamingManager, observer: Observer, steps: int, speed: float) -> None:
    for _ in range(steps):
        observer.move(1.0, 0.0, 1.0 / TICKS_PER_SECOND * speed)
        manager.update()
    logger.info("Headless run finished at %s: %s", manager.current_cell, manager.diagnostics_snapshot())
    logger.info("Pools: %s", manager.registry.diagnostics_snapshot())
    manager.shutdown()


def run(args: argparse.Namespace) -> None:
    rng = random.Random(args.seed)
    config = StreamingConfig.from_args(args)
    profiler = RuntimeProfiler(enabled=args.profile)
    registry = ChunkPoolRegistry(build_variants(args.variants, config.chunk_size, rng))
    locator = ObserverLocator()
    observer = Observer(tag=config.observer_tag)
    locator.register(observer)
    manager = ChunkStreamingManager(registry, config, locator=locator, rng=rng, profiler=profiler)

    if args.headless:
        run_headless(manager, observer, args.steps, args.speed)
        if args.profile:
            logger.info("Wrote streaming report: %s", profiler.write_report())
        return

    import pyglet

    from chunkstream.game.window import StreamingWindow
    from chunkstream.graphics.rendering import setup_gl

    window = StreamingWindow(manager, observer, profiler=profiler if args.profile else None)
    setup_gl()
    pyglet.app.run()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Chunk streaming and pooling demo")
    parser.add_argument("--seed", type=int, default=90125, help="Random seed (same seed and path => same world)")
    parser.add_argument("--view-distance", type=int, default=VIEW_DISTANCE, help="View radius in chunks")
    parser.add_argument("--chunk-size", type=float, default=CHUNK_SIZE, help="World units per chunk edge")
    parser.add_argument("--variants", type=int, default=3, help="Number of chunk variants to register")
    parser.add_argument("--headless", action="store_true", help="Walk the observer without opening a window")
    parser.add_argument("--steps", type=int, default=600, help="Ticks to simulate in headless mode")
    parser.add_argument("--speed", type=float, default=1.0, help="Speed multiplier in headless mode")
    parser.add_argument("--profile", action="store_true", help="Record streaming timings and write a report")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run(args)
