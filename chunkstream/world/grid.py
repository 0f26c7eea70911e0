import math
from typing import Iterator

from chunkstream.constants import GridCoordinate, Vec3


def chunk_coords(x: float, z: float, chunk_size: float) -> GridCoordinate:
    return math.floor(x / chunk_size), math.floor(z / chunk_size)


def world_position(chunk: GridCoordinate, chunk_size: float, y: float = 0.0) -> Vec3:
    cx, cz = chunk
    return cx * chunk_size, y, cz * chunk_size


def grid_distance(a: GridCoordinate, b: GridCoordinate) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def square_window(center: GridCoordinate, radius: int) -> Iterator[GridCoordinate]:
    cx, cz = center
    for dcx in range(-radius, radius + 1):
        for dcz in range(-radius, radius + 1):
            yield cx + dcx, cz + dcz
