"""Core business logic - query compilation, execution and result shaping."""
from __future__ import annotations

from docsearch.core.query_parser import QueryParser

__all__ = [
    "QueryParser",
    "DocumentSearch",
    "open_document_search",
]


def __getattr__(name: str):
    if name in ("DocumentSearch", "open_document_search"):
        from docsearch.core import document_search

        return getattr(document_search, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
