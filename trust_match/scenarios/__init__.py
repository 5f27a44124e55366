"""Sample scenarios."""

from trust_match.scenarios.funding_round import FundingRoundScenario

__all__ = ["FundingRoundScenario"]
