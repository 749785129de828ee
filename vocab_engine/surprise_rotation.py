"""
Surprise Rotation

Round-robin over a shuffled order of practice kinds for "random practice"
mode. Every kind is visited once before any repeats; the order is only
reshuffled on `init()` after enough plays.

One instance per learner context (no module-level state).
"""

from __future__ import annotations

import random
from typing import Optional, Sequence

from vocab_engine.constants import SURPRISE_KINDS, SURPRISE_RESHUFFLE_AFTER, PracticeKind
from vocab_engine.sampling import shuffle


class SurpriseRotation:

    def __init__(
        self,
        kinds: Sequence[PracticeKind] = SURPRISE_KINDS,
        rng: Optional[random.Random] = None,
        reshuffle_after: int = SURPRISE_RESHUFFLE_AFTER
    ):
        if not kinds:
            raise ValueError("SurpriseRotation needs at least one kind")
        self.kinds = tuple(kinds)
        self.rng = rng
        self.reshuffle_after = reshuffle_after

        self.order: list[PracticeKind] = []
        self.cursor = 0
        self.plays_since_shuffle = 0

    def init(self) -> None:
        """Shuffle a new order if there is none yet or it has been played enough."""
        if not self.order or self.plays_since_shuffle >= self.reshuffle_after:
            self.order = shuffle(self.kinds, self.rng)
            self.cursor = 0
            self.plays_since_shuffle = 0

    def next(self) -> PracticeKind:
        if not self.order:
            self.init()
        kind = self.order[self.cursor]
        self.cursor = (self.cursor + 1) % len(self.order)
        self.plays_since_shuffle += 1
        return kind

    def reset(self) -> None:
        self.order = []
        self.cursor = 0
        self.plays_since_shuffle = 0
