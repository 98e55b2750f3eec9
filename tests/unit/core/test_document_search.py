"""Tests for docsearch.core.document_search.DocumentSearch."""
from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from conftest import FakeBackend, FakeResolver, NAMESPACE, make_hit, make_response
from docsearch.core.document_search import DocumentSearch
from docsearch.core.errors import ConfigurationError, EngineFault, EngineUnavailable
from docsearch.models import RawBucket, SearchRequest, SuggestionCandidate
from docsearch.models.query import SiteClause, TermsFilter


def text_of(query) -> str:
    return query.relevance.text.text if query.relevance.text else ""


@pytest.fixture
def reporter() -> MagicMock:
    return MagicMock()


@pytest.fixture
def make_search(fake_resolver, config, reporter):
    def factory(backend: FakeBackend, resolver: FakeResolver | None = None) -> DocumentSearch:
        return DocumentSearch(backend, resolver or fake_resolver, config=config, error_reporter=reporter)

    return factory


@pytest.mark.unit
class TestSearchFailure:
    def test_engine_failure_returns_empty_response(self, make_search):
        backend = FakeBackend({"agency_blogs-v1": EngineFault("index closed")})
        response = make_search(backend).search(handles=["agency_blogs"], query="uh oh")
        assert response.total == 0
        assert response.results == []
        assert response.aggregations is None
        assert response.suggestion is None

    def test_failure_logs_query_description(self, make_search, caplog):
        backend = FakeBackend({"agency_blogs-v1": EngineFault("index closed")})
        with caplog.at_level(logging.ERROR, logger="docsearch.core.document_search"):
            make_search(backend).search(handles=["agency_blogs"], query="uh oh")
        messages = [r.getMessage() for r in caplog.records if r.levelno == logging.ERROR]
        assert any('"query":"uh oh"' in m for m in messages)

    def test_failure_reported_with_indices(self, make_search, reporter):
        error = EngineFault("index closed")
        backend = FakeBackend({"agency_blogs-v1": error})
        make_search(backend).search(handles=["agency_blogs"], query="uh oh")
        reporter.notify.assert_called_once_with(error, {"indices": ["agency_blogs-v1"]})

    def test_reporter_failure_does_not_escape(self, make_search, reporter):
        reporter.notify.side_effect = RuntimeError("tracker down")
        backend = FakeBackend({"agency_blogs-v1": EngineFault("index closed")})
        response = make_search(backend).search(handles=["agency_blogs"], query="uh oh")
        assert response.total == 0

    def test_unknown_handle_raises(self, make_search):
        with pytest.raises(ConfigurationError):
            make_search(FakeBackend()).search(handles=["missing"], query="common")


@pytest.mark.unit
class TestSearchSuccess:
    def test_results_and_total(self, make_search):
        hits = [make_hit("a", 3.0, description="common"), make_hit("b", 2.0)]
        backend = FakeBackend({"agency_blogs-v1": make_response(hits, total=11)})
        response = make_search(backend).search(handles=["agency_blogs"], query="common", size=3, offset=1)
        assert response.total == 11
        assert [r["title"] for r in response.results] == ["title b"]

    def test_multiple_handles_sum_totals(self, make_search):
        resolver = FakeResolver({
            f"{NAMESPACE}-agency_blogs": ["agency_blogs-v1"],
            f"{NAMESPACE}-agency_news": ["agency_news-v1"],
        })
        backend = FakeBackend({
            "agency_blogs-v1": make_response([make_hit("a", 1.0)]),
            "agency_news-v1": make_response([make_hit("b", 2.0, index="agency_news-v1")]),
        })
        response = make_search(backend, resolver).search(
            handles=["agency_blogs", "agency_news"], query="common"
        )
        assert response.total == 2
        assert [r["title"] for r in response.results] == ["title b", "title a"]

    def test_accepts_a_request_object(self, make_search):
        backend = FakeBackend({"agency_blogs-v1": make_response([make_hit("a")])})
        response = make_search(backend).search(SearchRequest(handles=["agency_blogs"]))
        assert response.total == 1

    def test_request_and_options_together_rejected(self, make_search):
        with pytest.raises(TypeError):
            make_search(FakeBackend()).search(SearchRequest(handles=["agency_blogs"]), size=3)

    def test_default_size_from_config(self, make_search, config):
        config.search.default_size = 4
        backend = FakeBackend()
        make_search(backend).search(handles=["agency_blogs"])
        assert backend.calls[0][0].size == 4

    def test_facet_options_become_filters(self, make_search):
        backend = FakeBackend()
        make_search(backend).search(handles=["agency_blogs"], audience=["everyone"])
        query, _ = backend.calls[0]
        assert TermsFilter("audience", ("everyone",)) in query.filters

    def test_aggregations_none_without_query(self, make_search):
        backend = FakeBackend({"agency_blogs-v1": make_response([make_hit("a")])})
        assert make_search(backend).search(handles=["agency_blogs"]).aggregations is None

    def test_aggregations_present_with_query(self, make_search):
        backend = FakeBackend({
            "agency_blogs-v1": make_response([make_hit("a")], tags=[RawBucket("stats", 1)]),
        })
        response = make_search(backend).search(handles=["agency_blogs"], query="common")
        assert response.aggregation("tags")[0].agg_key == "stats"


@pytest.mark.unit
class TestSuggestions:
    @staticmethod
    def respond_to(text: str):
        def responder(query):
            excluded = any(isinstance(c, SiteClause) and c.exclude for c in query.filters)
            if text_of(query) == text and not excluded:
                return make_response([make_hit("99", title="99 problems")])
            return make_response([], total=0)

        return responder

    def test_zero_results_rerun_with_suggestion(self, make_search):
        backend = FakeBackend(
            {"agency_blogs-v1": self.respond_to("99 problems")},
            suggestion=SuggestionCandidate("99 problems", "99 problems"),
        )
        response = make_search(backend).search(handles=["agency_blogs"], query="99 problemz")
        assert response.total == 1
        assert response.results[0]["title"] == "99 problems"
        assert response.suggestion["text"] == "99 problems"
        assert response.suggestion["highlighted"] == "99 problems"
        assert backend.suggest_calls == [("99 problemz", "en", ["agency_blogs-v1"])]

    def test_suggestion_scoped_to_language(self, make_search):
        backend = FakeBackend(
            {"agency_blogs-v1": self.respond_to("99 problemas")},
            suggestion=SuggestionCandidate("99 problemas", "99 problemas"),
        )
        response = make_search(backend).search(handles=["agency_blogs"], query="99 problemz", language="es")
        assert response.suggestion.text == "99 problemas"
        assert backend.suggest_calls[0][1] == "es"

    def test_suggestion_keeps_site_exclusions(self, make_search):
        backend = FakeBackend(
            {"agency_blogs-v1": self.respond_to("99 problems")},
            suggestion=SuggestionCandidate("99 problems", "99 problems"),
        )
        response = make_search(backend).search(
            handles=["agency_blogs"], query="99 problemz -site:agency.gov"
        )
        assert response.total == 0
        assert response.suggestion is None

    def test_no_suggestion_when_results_found(self, make_search):
        backend = FakeBackend(
            {"agency_blogs-v1": make_response([make_hit("a")])},
            suggestion=SuggestionCandidate("fsands", "fsands"),
        )
        response = make_search(backend).search(handles=["agency_blogs"], query="fsands")
        assert response.suggestion is None
        assert backend.suggest_calls == []

    def test_no_suggestion_without_text(self, make_search):
        backend = FakeBackend(suggestion=SuggestionCandidate("x", "x"))
        response = make_search(backend).search(handles=["agency_blogs"], query="site:agency.gov")
        assert response.suggestion is None
        assert backend.suggest_calls == []

    def test_unchanged_suggestion_ignored(self, make_search):
        backend = FakeBackend(suggestion=SuggestionCandidate("Rutabaga", "Rutabaga"))
        response = make_search(backend).search(handles=["agency_blogs"], query="rutabaga")
        assert response.total == 0
        assert response.suggestion is None
        assert len(backend.calls) == 1

    def test_suggestion_failure_reported_and_empty_response_kept(self, make_search, reporter):
        error = EngineUnavailable("speller down")
        backend = FakeBackend()
        backend.suggest = MagicMock(side_effect=error)
        response = make_search(backend).search(handles=["agency_blogs"], query="problemz")
        assert response.total == 0
        assert response.suggestion is None
        assert response.aggregations == []
        reporter.notify.assert_called_once_with(error, {"indices": ["agency_blogs-v1"]})
