import logging
import time

import pyglet
from pyglet.window import key

from chunkstream.constants import DECORATION_COLOR, TICKS_PER_SECOND, VARIANT_COLORS
from chunkstream.debug.profiler import RuntimeProfiler
from chunkstream.environment.spawn_point import SpawnPoint
from chunkstream.gameplay.observer import Observer
from chunkstream.graphics.rendering import set_2d, set_top_down
from chunkstream.world.streaming import ChunkStreamingManager

logger = logging.getLogger(__name__)


class StreamingWindow(pyglet.window.Window):
    PIXELS_PER_UNIT = 8.0
    CHUNK_GAP = 0.15

    def __init__(self, manager: ChunkStreamingManager, observer: Observer, profiler: RuntimeProfiler | None = None):
        super().__init__(width=1280, height=720, caption="Chunk Streaming", resizable=True)
        self.manager = manager
        self.observer = observer
        self.profiler = profiler

        self.keys = key.KeyStateHandler()
        self.push_handlers(self.keys)
        pyglet.clock.schedule_interval(self.update, 1.0 / TICKS_PER_SECOND)

        self.world_batch = pyglet.graphics.Batch()
        self.ui_batch = pyglet.graphics.Batch()
        self._chunk_shapes: list[pyglet.shapes.ShapeBase] = []
        self._shapes_cell: tuple[int, int] | None = None
        self._observer_shape = pyglet.shapes.Circle(0.0, 0.0, 0.5, color=(255, 255, 255))
        self.label = pyglet.text.Label(
            "",
            x=10,
            y=self.height - 10,
            anchor_x="left",
            anchor_y="top",
            color=(255, 255, 255, 255),
            batch=self.ui_batch,
        )
        self._last_update_ms = 0.0

    def get_motion_vector(self) -> tuple[float, float]:
        dx = int(self.keys[key.D]) - int(self.keys[key.A])
        dz = int(self.keys[key.W]) - int(self.keys[key.S])
        return float(dx), float(dz)

    def update(self, dt: float) -> None:
        frame_start = time.perf_counter()
        dt = min(dt, 0.25)
        dx, dz = self.get_motion_vector()
        self.observer.move(dx, dz, dt)
        self.manager.update()

        if self.manager.current_cell != self._shapes_cell:
            self._rebuild_chunk_shapes()

        x, _, z = self.observer.position
        stats = self.manager.diagnostics_snapshot()
        self.label.text = (
            f"XZ: ({x:.1f}, {z:.1f})  Cell: {self.manager.current_cell}  "
            f"Active: {stats['active_chunks']}  Pooled: {stats['pooled_chunks']}  "
            f"Created: {stats['created_chunks']}  Known: {stats['known_chunks']}  "
            f"Update: {self._last_update_ms:.2f}ms"
        )
        self._last_update_ms = (time.perf_counter() - frame_start) * 1000.0

    @staticmethod
    def _shade_color(color: tuple[float, float, float], shade: float) -> tuple[int, int, int]:
        r = max(0, min(255, int(color[0] * shade * 255)))
        g = max(0, min(255, int(color[1] * shade * 255)))
        b = max(0, min(255, int(color[2] * shade * 255)))
        return r, g, b

    def _rebuild_chunk_shapes(self) -> None:
        for shape in self._chunk_shapes:
            shape.delete()
        self._chunk_shapes.clear()

        size = self.manager.config.chunk_size
        for (cx, cz), chunk in self.manager.active_chunks.items():
            metadata = self.manager.metadata_for((cx, cz))
            variant_id = metadata.variant_id if metadata is not None else 0
            # Checkerboard shading keeps neighbouring chunks of one variant apart.
            shade = 1.0 if (cx + cz) % 2 == 0 else 0.8
            color = self._shade_color(VARIANT_COLORS[variant_id % len(VARIANT_COLORS)], shade)
            x, _, z = chunk.position
            self._chunk_shapes.append(
                pyglet.shapes.Rectangle(
                    x + self.CHUNK_GAP,
                    z + self.CHUNK_GAP,
                    size - 2 * self.CHUNK_GAP,
                    size - 2 * self.CHUNK_GAP,
                    color=color,
                    batch=self.world_batch,
                )
            )
            for spawn_point in chunk.spawn_points:
                if not spawn_point.is_placed() or not isinstance(spawn_point, SpawnPoint):
                    continue
                ox, oz = spawn_point.offset
                self._chunk_shapes.append(
                    pyglet.shapes.Circle(
                        x + ox,
                        z + oz,
                        0.4,
                        color=self._shade_color(DECORATION_COLOR, 1.0),
                        batch=self.world_batch,
                    )
                )
        self._shapes_cell = self.manager.current_cell

    def on_resize(self, width, height):
        super().on_resize(width, height)
        self.label.y = height - 10

    def on_draw(self):
        x, _, z = self.observer.position
        self.clear()
        set_top_down(self, (x, z), self.PIXELS_PER_UNIT)
        self.world_batch.draw()
        self._observer_shape.position = (x, z)
        self._observer_shape.draw()
        set_2d(self)
        self.ui_batch.draw()

    def on_close(self):
        if self.profiler is not None:
            report_path = self.profiler.write_report()
            if report_path is not None:
                logger.info("Wrote streaming report: %s", report_path)
        self.manager.shutdown()
        super().on_close()

