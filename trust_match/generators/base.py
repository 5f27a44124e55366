"""Base generator class for all sample data generators."""

from __future__ import annotations

import random
from abc import ABC

from faker import Faker

from trust_match.generators.pool import FakerPool


class BaseGenerator(ABC):
    """Base class for all sample data generators.

    Provides common initialization: Faker instance creation,
    seed-based reproducibility, and a shared FakerPool.

    Parameters
    ----------
    seed : int | None
        Random seed for reproducibility.
    locale : str
        Faker locale (default ``en_IN``).
    pool : FakerPool | None
        Pre-generated value pool. Share one pool between generators so
        that applications and trust preferences draw cities from the
        same set.
    """

    def __init__(
        self,
        seed: int | None = None,
        locale: str = "en_IN",
        pool: FakerPool | None = None,
    ) -> None:
        self.fake = Faker(locale)
        self.pool = pool or FakerPool(locale=locale, seed=seed)
        if seed is not None:
            self.fake.seed_instance(seed)
            random.seed(seed)
