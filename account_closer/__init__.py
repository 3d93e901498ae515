"""Daily closure of inactive mailbox accounts."""

__version__ = "1.0.0"
