"""Pre-generated value pools for fast sample data generation.

Replaces per-call Faker invocations with O(1) random.choice() lookups
from pre-populated pools.

Usage::

    pool = FakerPool(seed=42)
    name = pool.name()          # random.choice from 2 000 names
    uid  = pool.uuid()          # batch-generated via os.urandom
    city = pool.city()          # one of a small set of cities
"""

from __future__ import annotations

import os
import random
import uuid as _uuid

from faker import Faker


class UUIDPool:
    """Batch-generated UUIDs using os.urandom.

    Parameters
    ----------
    batch_size : int
        Number of UUIDs to generate per batch (default 1024).
    """

    __slots__ = ("_batch_size", "_pool", "_index")

    def __init__(self, batch_size: int = 1024) -> None:
        self._batch_size = batch_size
        self._pool: list[str] = []
        self._index = 0
        self._refill()

    def _refill(self) -> None:
        """Generate a new batch of UUIDs."""
        raw = os.urandom(16 * self._batch_size)
        self._pool = [
            _uuid.UUID(bytes=raw[i : i + 16], version=4).hex
            for i in range(0, len(raw), 16)
        ]
        self._index = 0

    def next(self) -> str:
        """Return next UUID hex string, refilling pool when exhausted."""
        if self._index >= len(self._pool):
            self._refill()
        val = self._pool[self._index]
        self._index += 1
        return val


class FakerPool:
    """Pre-generated pools of Faker values for fast random selection.

    The city pool is kept small on purpose so that generated trust
    preferences and generated applications overlap.

    Parameters
    ----------
    locale : str
        Faker locale (default ``en_IN``).
    seed : int | None
        Random seed for reproducibility.
    pool_sizes : dict[str, int] | None
        Override default pool sizes per field.
    """

    DEFAULT_SIZES: dict[str, int] = {
        "name": 2000,
        "first_name": 500,
        "city": 12,
        "institution": 200,
    }

    def __init__(
        self,
        locale: str = "en_IN",
        seed: int | None = None,
        pool_sizes: dict[str, int] | None = None,
    ) -> None:
        sizes = {**self.DEFAULT_SIZES, **(pool_sizes or {})}
        fake = Faker(locale)
        if seed is not None:
            fake.seed_instance(seed)
            random.seed(seed)

        self._names: list[str] = [fake.name() for _ in range(sizes["name"])]
        self._first_names: list[str] = [fake.first_name() for _ in range(sizes["first_name"])]

        # Distinct cities, stable order for seeded runs
        cities: list[str] = []
        for _ in range(sizes["city"] * 20):
            city = fake.city()
            if city not in cities:
                cities.append(city)
            if len(cities) >= sizes["city"]:
                break
        self._cities = cities

        self._institutions: list[str] = [
            f"{fake.last_name()} {random.choice(('College', 'Institute', 'School'))}"
            for _ in range(sizes["institution"])
        ]

        self._uuid_pool = UUIDPool()

    # --- Public accessors (O(1) random.choice) ---

    def uuid(self) -> str:
        """Return a unique UUID4 hex string."""
        return self._uuid_pool.next()

    def name(self) -> str:
        """Return a random full name."""
        return random.choice(self._names)

    def first_name(self) -> str:
        """Return a random first name."""
        return random.choice(self._first_names)

    def city(self) -> str:
        """Return a random city name."""
        return random.choice(self._cities)

    def cities(self) -> list[str]:
        """Return every city in the pool."""
        return list(self._cities)

    def institution(self) -> str:
        """Return a random school or college name."""
        return random.choice(self._institutions)
