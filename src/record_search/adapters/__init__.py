"""Adapters layer - host persistence interfaces and implementations.

Following Cosmic Python Chapter 2: Repository Pattern
The search core reads host records only through ``AbstractRecordSource``.
"""

from .memory_record_source import ChangeListener, InMemoryRecordSource, Relation
from .record_source import AbstractRecordSource


__all__ = [
    "AbstractRecordSource",
    "ChangeListener",
    "InMemoryRecordSource",
    "Relation",
]
