"""Data models for docsearch."""
from docsearch.models.enums import SortMode
from docsearch.models.domain import (
    SiteFilter,
    QuerySpec,
    RawHit,
    RawBucket,
    EngineResponse,
    SuggestionCandidate,
    Ok,
    Err,
    ExecutionResult,
)
from docsearch.models.query import CompiledQuery
from docsearch.models.requests import SearchRequest
from docsearch.models.responses import (
    AggregationBucket,
    Suggestion,
    SearchResponse,
)

__all__ = [
    # Enums
    "SortMode",
    # Domain models
    "SiteFilter",
    "QuerySpec",
    "RawHit",
    "RawBucket",
    "EngineResponse",
    "SuggestionCandidate",
    "Ok",
    "Err",
    "ExecutionResult",
    "CompiledQuery",
    # Request / response
    "SearchRequest",
    "AggregationBucket",
    "Suggestion",
    "SearchResponse",
]
