from __future__ import annotations

from typing import Any, Protocol

from docsearch.models import CompiledQuery, EngineResponse, SuggestionCandidate


class IndexResolver(Protocol):
    """Maps a collection alias to the physical indexes behind it."""

    def resolve(self, alias: str) -> list[str]:
        ...


class SearchBackend(Protocol):
    """The search engine, seen as a capability.

    Implementations raise ``EngineError`` subclasses (or any exception) on
    failure; the executor treats every exception as an engine failure.
    """

    def execute(self, query: CompiledQuery, index: str) -> EngineResponse:
        """Run ``query`` against one physical index.

        Must return ``total`` for the whole match set and at most
        ``query.window`` hits in ranked order.
        """
        ...

    def suggest(self, text: str, language: str, indexes: list[str]) -> SuggestionCandidate | None:
        ...


class ErrorReporter(Protocol):
    def notify(self, error: BaseException, context: dict[str, Any]) -> None:
        ...
