"""Seeded per-entity random streams for deterministic (test/replay) mode."""

DEFAULT_SEED = 1337

_MASK32 = 0xFFFFFFFF
_FNV_OFFSET = 0x811C9DC5
_FNV_PRIME = 0x01000193


def hash_id(entity_id: str) -> int:
    """32-bit FNV-1a hash of an entity identifier."""
    h = _FNV_OFFSET
    for byte in entity_id.encode("utf-8"):
        h ^= byte
        h = (h * _FNV_PRIME) & _MASK32
    return h


class XorShift32:
    """Marsaglia xorshift32. State must never be zero."""

    def __init__(self, seed: int):
        self.state = (seed & _MASK32) or DEFAULT_SEED

    def next_uint(self) -> int:
        x = self.state
        x ^= (x << 13) & _MASK32
        x ^= x >> 17
        x ^= (x << 5) & _MASK32
        self.state = x
        return x

    def next_uniform(self) -> float:
        return self.next_uint() / 4294967296.0


class SeedSource:
    """Hands out one xorshift stream per entity, seeded by ``seed ^ hash(id)``.

    Streams are created lazily and persist for the lifetime of the source, so
    successive draws for the same entity continue its sequence.
    """

    def __init__(self, seed: int | None = None):
        self.seed = DEFAULT_SEED if seed is None else seed
        self._streams: dict[str, XorShift32] = {}

    def stream(self, entity_id: str) -> XorShift32:
        rng = self._streams.get(entity_id)
        if rng is None:
            rng = XorShift32(self.seed ^ hash_id(entity_id))
            self._streams[entity_id] = rng
        return rng

    def next_uniform(self, entity_id: str) -> float:
        return self.stream(entity_id).next_uniform()

    def reset(self, seed: int | None = None) -> None:
        """Return to ``seed`` (or the default) and drop every stream."""
        self.seed = DEFAULT_SEED if seed is None else seed
        self._streams.clear()
