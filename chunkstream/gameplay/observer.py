from __future__ import annotations

import math
from dataclasses import dataclass

from chunkstream.constants import PLAYER_TAG, WALK_SPEED, Vec3
from chunkstream.errors import ObserverMissingError


@dataclass
class Observer:
    position: Vec3 = (0.0, 0.0, 0.0)
    tag: str = PLAYER_TAG
    speed: float = WALK_SPEED

    def move(self, dx: float, dz: float, dt: float) -> None:
        mag = math.sqrt(dx * dx + dz * dz)
        if not mag:
            return
        x, y, z = self.position
        step = self.speed * dt / mag
        self.position = (x + dx * step, y, z + dz * step)


class ObserverLocator:
    """Finds observers by their identity tag."""

    def __init__(self) -> None:
        self._observers: dict[str, Observer] = {}

    def register(self, observer: Observer) -> None:
        self._observers[observer.tag] = observer

    def unregister(self, tag: str) -> Observer | None:
        return self._observers.pop(tag, None)

    def find(self, tag: str) -> Observer | None:
        return self._observers.get(tag)

    def position_of(self, tag: str) -> Vec3:
        observer = self._observers.get(tag)
        if observer is None:
            raise ObserverMissingError(tag)
        return observer.position
