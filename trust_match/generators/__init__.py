"""Sample data generators for funding rounds."""

from trust_match.generators.application import ApplicationGenerator, PreferencesGenerator
from trust_match.generators.base import BaseGenerator
from trust_match.generators.pool import FakerPool, UUIDPool

__all__ = [
    "ApplicationGenerator",
    "BaseGenerator",
    "FakerPool",
    "PreferencesGenerator",
    "UUIDPool",
]
