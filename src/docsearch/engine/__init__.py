"""Search engine collaborators and the DuckDB adapter."""
from __future__ import annotations

from docsearch.engine.protocols import ErrorReporter, IndexResolver, SearchBackend
from docsearch.engine.highlighter import Highlighter
from docsearch.engine.speller import Speller

__all__ = [
    "ErrorReporter",
    "IndexResolver",
    "SearchBackend",
    "Highlighter",
    "Speller",
    "DuckDBBackend",
]


def __getattr__(name: str):
    if name == "DuckDBBackend":
        from docsearch.engine.duckdb_backend import DuckDBBackend

        return DuckDBBackend
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
