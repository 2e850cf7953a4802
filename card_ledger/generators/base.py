"""Shared plumbing for the sample-data generators."""

from __future__ import annotations

import random
from abc import ABC
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Sequence, TypeVar

from faker import Faker

T = TypeVar("T")


class BaseGenerator(ABC):
    """Seeded Faker plus a private ``random.Random``.

    Generators never touch the global ``random`` state, so two instances
    built with the same seed produce the same sequence.

    Parameters
    ----------
    seed : int | None
        Random seed for reproducibility.
    locale : str
        Faker locale (default ``en_US``).
    """

    def __init__(
        self,
        seed: int | None = None,
        locale: str = "en_US",
    ) -> None:
        self.fake = Faker(locale)
        self.rng = random.Random(seed)
        if seed is not None:
            self.fake.seed_instance(seed)

    def money(self, low: float, high: float) -> Decimal:
        """Uniform amount in ``[low, high]`` rounded to cents."""
        return Decimal(str(round(self.rng.uniform(low, high), 2)))

    def digits(self, count: int) -> str:
        return "".join(str(self.rng.randint(0, 9)) for _ in range(count))

    def weighted(self, items: Sequence[T], weights: Sequence[float]) -> T:
        return self.rng.choices(items, weights=weights, k=1)[0]

    def moment_between(self, start: datetime, end: datetime) -> datetime:
        """Random timestamp, second resolution, with ``start <= t <= end``."""
        span = max(int((end - start).total_seconds()), 0)
        return start + timedelta(seconds=self.rng.randint(0, span))
