from __future__ import annotations

__version__ = "0.3.0"
__author__ = "Docsearch Contributors"

from docsearch.models import (
    SearchRequest,
    SearchResponse,
    AggregationBucket,
    Suggestion,
)
from docsearch.core.errors import (
    DocSearchError,
    ConfigurationError,
    EngineError,
)

__all__ = [
    "SearchRequest",
    "SearchResponse",
    "AggregationBucket",
    "Suggestion",
    "DocSearchError",
    "ConfigurationError",
    "EngineError",
    "DocumentSearch",
    "open_document_search",
]


def __getattr__(name: str):
    if name in ("DocumentSearch", "open_document_search"):
        from docsearch.core import document_search

        return getattr(document_search, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
