class ChunkStreamError(Exception):
    """Base class for chunk streaming errors."""


class ObserverMissingError(ChunkStreamError):
    def __init__(self, tag: str) -> None:
        super().__init__(f"Observer not found! Make sure an observer is registered with the '{tag}' tag.")
        self.tag = tag


class UnknownVariantError(ChunkStreamError, KeyError):
    def __init__(self, variant_id: int) -> None:
        super().__init__(f"Key not found in pool registry: {variant_id}")
        self.variant_id = variant_id

    def __str__(self) -> str:
        return self.args[0]


class EmptyVariantListError(ChunkStreamError, ValueError):
    def __init__(self) -> None:
        super().__init__("At least one chunk variant must be registered before streaming starts")
