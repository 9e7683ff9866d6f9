"""Bank account and transaction synchronization with balance histories."""

__version__ = "1.0.0"
