"""Random sources used to draw new trace and span ids."""

from __future__ import annotations

import random
from typing import Optional

from opentelemetry.sdk.trace.id_generator import IdGenerator, RandomIdGenerator

from spantrace.utils.helpers import to_signed_64


class RandomSource:
    """Source of random 64-bit ids. Implementations must be safe to share across threads."""

    def next_long(self) -> int:
        """Return a random signed 64-bit int."""
        raise NotImplementedError


class IdGeneratorRandomSource(RandomSource):
    """
    Draws ids from an OpenTelemetry ``IdGenerator``.

    The default ``RandomIdGenerator`` never returns 0, so every drawn id is valid
    on the OpenTelemetry side as well.
    """

    def __init__(self, id_generator: Optional[IdGenerator] = None) -> None:
        self.id_generator = id_generator or RandomIdGenerator()

    def next_long(self) -> int:
        return to_signed_64(self.id_generator.generate_span_id())


class SeededRandomSource(RandomSource):
    """Reproducible ids from a private ``random.Random`` instance."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self._random = random.Random(seed)

    def next_long(self) -> int:
        value = 0
        while value == 0:
            value = to_signed_64(self._random.getrandbits(64))
        return value
