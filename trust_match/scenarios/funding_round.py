"""Funding round scenario: a pool of applications and the trusts reviewing it."""

from __future__ import annotations

import logging
import random
from datetime import datetime
from decimal import Decimal
from typing import Any

from trust_match.approvals import ApprovalWorkflow
from trust_match.config import SampleConfig
from trust_match.generators import ApplicationGenerator, FakerPool, PreferencesGenerator
from trust_match.store.memory import InMemoryStore

logger = logging.getLogger(__name__)


class FundingRoundScenario:
    """Generate a funding round for demos and load tests.

    This scenario creates:
    - Submitted applications with family income and education history
    - Trusts with randomly strict or permissive preferences
    - Optionally, a first wave of trust decisions (partial approvals and
      rejections) committed through the approval workflow
    """

    def __init__(
        self,
        num_applications: int = 50,
        num_trusts: int = 5,
        decision_rate: float = 0.0,
        seed: int | None = None,
        config: SampleConfig | None = None,
        reference_time: datetime | None = None,
        event_sink: Any | None = None,
        topic_prefix: str = "dev.scholarships",
        lock_timeout: float = 5.0,
    ) -> None:
        """Initialize the funding round scenario.

        Parameters
        ----------
        num_applications : int
            Number of applications to generate.
        num_trusts : int
            Number of trusts to register.
        decision_rate : float
            Probability that a trust decides on a given open application
            during the first wave.
        seed : int | None
            Random seed for reproducibility.
        config : SampleConfig | None
            When given, overrides ``num_applications`` and ``num_trusts``
            and sets the Faker locale.
        reference_time : datetime | None
            Anchor for submission timestamps (default: now).
        event_sink : Any | None
            Sink receiving audit events for first-wave decisions.
        topic_prefix : str
            Prefix of the audit event topics.
        lock_timeout : float
            Seconds an approval waits for an application lock.
        """
        locale = "en_IN"
        if config is not None:
            num_applications = config.num_applications
            num_trusts = config.num_trusts
            locale = config.locale

        self.num_applications = num_applications
        self.num_trusts = num_trusts
        self.decision_rate = decision_rate
        self.seed = seed

        if seed is not None:
            random.seed(seed)

        self.store = InMemoryStore(lock_timeout=lock_timeout)
        self.trust_ids: list[str] = []
        self._pool = FakerPool(locale=locale, seed=seed)
        self._application_gen = ApplicationGenerator(
            seed=seed, locale=locale, pool=self._pool, reference_time=reference_time
        )
        self._preferences_gen = PreferencesGenerator(seed=seed, locale=locale, pool=self._pool)
        self._workflow = ApprovalWorkflow(self.store, event_sink, topic_prefix)

    def generate(self) -> InMemoryStore:
        """Generate all data for the funding round.

        Returns
        -------
        InMemoryStore
            Store containing the generated applications, trusts and decisions.
        """
        # Generators draw from the module-level random; reseed so the round
        # does not depend on what ran since construction
        if self.seed is not None:
            random.seed(self.seed)

        logger.info(
            "Starting funding round scenario: %d applications, %d trusts",
            self.num_applications,
            self.num_trusts,
        )

        for application in self._application_gen.generate_batch(self.num_applications):
            self.store.add_application(application)

        for _ in range(self.num_trusts):
            trust_id = self._pool.uuid()
            self.store.add_trust(trust_id, self._preferences_gen.generate())
            self.trust_ids.append(trust_id)

        if self.decision_rate > 0:
            self._first_wave()

        logger.info("Generated funding round: %s", self.store.summary())
        return self.store

    def _first_wave(self) -> None:
        """Let each trust approve part of, or reject, some open applications."""
        for trust_id in self.trust_ids:
            for application in self.store.list_applications():
                if random.random() >= self.decision_rate:
                    continue
                current = self.store.get_application(application.application_id)
                remaining = current.remaining_amount
                if remaining <= 0:
                    continue

                if random.random() < 0.2:
                    self._workflow.reject(current.application_id, trust_id, "Outside focus area")
                    continue

                # Whole hundreds, at most what is left
                share = Decimal(random.choice([25, 50, 100])) / 100
                amount = max((remaining * share / 100).to_integral_value() * 100, Decimal("100"))
                self._workflow.approve(current.application_id, trust_id, min(amount, remaining))

    def export(self, sinks: list[Any]) -> None:
        """Export generated data to sinks.

        Parameters
        ----------
        sinks : list[Any]
            List of sink instances (ConsoleSink, JsonFileSink, KafkaSink).
        """
        trusts = [
            {"trust_id": trust_id, "preferences": self.store.get_preferences(trust_id).to_dict()}
            for trust_id in self.trust_ids
        ]
        for sink in sinks:
            sink.write_batch("applications", self.store.list_applications())
            sink.write_batch("trusts", trusts)
            sink.write_batch("approvals", list(self.store.approvals.values()))

        logger.info("Exported funding round to %d sinks", len(sinks))
