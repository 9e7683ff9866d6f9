"""Shared helpers for amounts, dates, labels and logging."""
