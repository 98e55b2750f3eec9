"""Enumerations for docsearch."""
from __future__ import annotations

from enum import Enum


class SortMode(Enum):
    """Ordering applied to the ranked result set."""
    RELEVANCE = "relevance"
    DATE = "date"
