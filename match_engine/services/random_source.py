"""
Injectable randomness.

Every random decision in the engine (optimizer neighbour choice, Metropolis
acceptance, field tie-breaks, uneven-schedule station shuffles) goes through one
RandomSource so a seeded source replays a run exactly.
"""

import random
from typing import MutableSequence, Optional, Protocol


class RandomSource(Protocol):
    def random(self) -> float:
        """Uniform float in [0, 1)."""
        ...

    def randrange(self, stop: int) -> int:
        """Uniform int in [0, stop)."""
        ...

    def shuffle(self, seq: MutableSequence) -> None: ...


class SeededRandomSource:
    """RandomSource backed by a private random.Random instance."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = random.Random(seed)

    def random(self) -> float:
        return self._rng.random()

    def randrange(self, stop: int) -> int:
        return self._rng.randrange(stop)

    def shuffle(self, seq: MutableSequence) -> None:
        self._rng.shuffle(seq)
