"""Append-only JSON-lines journal of replay events."""

from journal.writer import JournalWriter

__all__ = ["JournalWriter"]
