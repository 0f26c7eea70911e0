from chunkstream.environment.spawn_point import Decoration, SpawnPoint, make_variant

__all__ = ["Decoration", "SpawnPoint", "make_variant"]
