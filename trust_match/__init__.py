"""Trust application matching, scoring and approval ledger."""

__version__ = "0.1.0"
