"""Pytest configuration and fixtures for docsearch tests.

Orchestration tests run against ``FakeBackend``/``FakeResolver``, in-memory
stand-ins for the engine collaborators. Engine adapter tests use a private
in-memory DuckDB connection.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

import pytest

from docsearch.config import Config
from docsearch.models import CompiledQuery, EngineResponse, RawBucket, RawHit, SuggestionCandidate


NAMESPACE = "docsearch-documents"

_DOCSEARCH_ENV_VARS = (
    "DOCSEARCH_DEFAULT_LANGUAGE",
    "DOCSEARCH_DEFAULT_SIZE",
    "DOCSEARCH_INDEX_NAMESPACE",
    "DOCSEARCH_HIGHLIGHT_PRE_TAG",
    "DOCSEARCH_HIGHLIGHT_POST_TAG",
    "DOCSEARCH_FRAGMENT_SIZE",
    "DOCSEARCH_DATABASE",
    "DOCSEARCH_TIMEOUT_SECONDS",
    "DOCSEARCH_MAX_WORKERS",
    "DOCSEARCH_MEMORY_LIMIT_MB",
    "DOCSEARCH_PROMOTE_WEIGHT",
    "DOCSEARCH_CUTOFF_FREQUENCY",
)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without external services")


@pytest.fixture(autouse=True)
def _isolate_docsearch_data_dir(monkeypatch, tmp_path):
    """Keep tests away from the developer's ~/.docsearch settings."""
    data_dir = tmp_path / "docsearch-data"
    data_dir.mkdir()
    monkeypatch.setenv("DOCSEARCH_DATA_DIR", str(data_dir))
    for name in _DOCSEARCH_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config() -> Config:
    cfg = Config.load()
    cfg.logging.file_enabled = False
    return cfg


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# Engine stand-ins
# ============================================================================

Responder = Callable[[CompiledQuery], EngineResponse]


class FakeBackend:
    """SearchBackend returning canned responses per physical index.

    A response may be an ``EngineResponse``, a callable taking the compiled
    query, or an exception instance to raise.
    """

    def __init__(
        self,
        responses: dict[str, EngineResponse | Responder | BaseException] | None = None,
        suggestion: SuggestionCandidate | None = None,
    ):
        self.responses = dict(responses or {})
        self.suggestion = suggestion
        self.calls: list[tuple[CompiledQuery, str]] = []
        self.suggest_calls: list[tuple[str, str, list[str]]] = []

    def execute(self, query: CompiledQuery, index: str) -> EngineResponse:
        self.calls.append((query, index))
        response = self.responses.get(index, EngineResponse(total=0))
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(query)
        return response

    def suggest(self, text: str, language: str, indexes: list[str]) -> SuggestionCandidate | None:
        self.suggest_calls.append((text, language, list(indexes)))
        return self.suggestion


class FakeResolver:
    def __init__(self, aliases: dict[str, list[str]] | None = None):
        self.aliases = dict(aliases or {})
        self.calls: list[str] = []

    def resolve(self, alias: str) -> list[str]:
        self.calls.append(alias)
        return list(self.aliases.get(alias, []))


def make_hit(
    doc_id: str,
    score: float = 1.0,
    index: str = "agency_blogs-v1",
    changed: datetime | None = None,
    highlight: dict[str, list[str]] | None = None,
    **source,
) -> RawHit:
    source.setdefault("title", f"title {doc_id}")
    source.setdefault("path", f"https://www.agency.gov/{doc_id}.html")
    source.setdefault("language", "en")
    if changed is not None:
        source.setdefault("changed", changed)
    return RawHit(
        index=index,
        doc_id=doc_id,
        score=score,
        source=source,
        changed=changed,
        highlight=highlight or {},
    )


def make_response(hits: list[RawHit], total: int | None = None, **aggregations: list[RawBucket]) -> EngineResponse:
    return EngineResponse(
        total=len(hits) if total is None else total,
        hits=hits,
        aggregations=dict(aggregations),
    )


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def fake_resolver() -> FakeResolver:
    return FakeResolver({f"{NAMESPACE}-agency_blogs": ["agency_blogs-v1"]})
