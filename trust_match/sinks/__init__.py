"""Output sinks for audit events and exported records."""

from trust_match.sinks.console import ConsoleSink
from trust_match.sinks.json_file import JsonFileSink
from trust_match.sinks.kafka import KafkaSink

__all__ = ["ConsoleSink", "JsonFileSink", "KafkaSink"]
