# arsampling/utils/seed.py
from __future__ import annotations

from typing import List, Optional

from numpy.random import Generator, SeedSequence, default_rng


def make_rng(seed: Optional[int] = None, rng: Optional[Generator] = None) -> Generator:
    """Return ``rng`` if given, otherwise a fresh generator seeded with ``seed``."""
    if rng is not None:
        return rng
    return default_rng(seed)


def spawn_seeds(seed: Optional[int], n: int) -> List[SeedSequence]:
    """Split one root seed into ``n`` statistically independent child sequences."""
    if n <= 0:
        raise ValueError("Number of streams must be positive.")
    return SeedSequence(seed).spawn(n)

