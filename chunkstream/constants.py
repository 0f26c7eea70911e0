Vec3 = tuple[float, float, float]
GridCoordinate = tuple[int, int]

TICKS_PER_SECOND = 60
CHUNK_SIZE = 6
CHUNK_Y = 0.0
VIEW_DISTANCE = 5
WALK_SPEED = 8.0

PLAYER_TAG = "Player"
DEFAULT_SPAWN_CHANCE = 10.0

VARIANT_COLORS = (
    (0.20, 0.66, 0.20),
    (0.50, 0.35, 0.20),
    (0.50, 0.50, 0.52),
    (0.82, 0.76, 0.52),
    (0.18, 0.40, 0.74),
)
DECORATION_COLOR = (0.12, 0.52, 0.12)
