"""Engine-ready query description.

A ``CompiledQuery`` is a backend-neutral, immutable tree of clauses. Engine
adapters translate it into their native query language; nothing in here
knows about SQL.
"""
from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Union

from docsearch.models.domain import SiteFilter
from docsearch.models.enums import SortMode


@dataclass(frozen=True)
class FieldWeight:
    field: str
    weight: float


# ----------------------------------------------------------------------------
# Relevance
# ----------------------------------------------------------------------------

@dataclass(frozen=True)
class TextMatch:
    """Analyzed (stemmed) match of the free text across weighted fields."""
    text: str
    terms: tuple[str, ...]
    fields: tuple[FieldWeight, ...]
    cutoff_frequency: float
    low_freq_minimum_should_match: str
    high_freq_minimum_should_match: str


@dataclass(frozen=True)
class PhraseMatch:
    """Contiguous, unanalyzed phrase match.

    Required phrases restrict the result set; optional ones only add score.
    """
    phrase: str
    fields: tuple[FieldWeight, ...]
    boost: float
    required: bool


@dataclass(frozen=True)
class ExactFormMatch:
    """Boost for terms appearing in their exact (unstemmed) word form."""
    terms: tuple[str, ...]
    fields: tuple[FieldWeight, ...]
    boost: float


@dataclass(frozen=True)
class ExactValueMatch:
    """Whole query equal to a categorical value (case-insensitive)."""
    value: str
    fields: tuple[str, ...]
    list_fields: tuple[str, ...]
    boost: float


@dataclass(frozen=True)
class PromotionBoost:
    field: str
    weight: float


@dataclass(frozen=True)
class ClickCountBoost:
    """``1 + log1p(factor * count)``; a missing count scores as zero clicks."""
    field: str
    factor: float


@dataclass(frozen=True)
class ExtensionDemotion:
    field: str
    extensions: tuple[tuple[str, float], ...]


@dataclass(frozen=True)
class RecencyDecay:
    """Gaussian decay on a date field; undated documents are not decayed."""
    field: str
    scale_days: int
    offset_days: int
    decay: float


ScoreFunction = Union[PromotionBoost, ClickCountBoost, ExtensionDemotion, RecencyDecay]


@dataclass(frozen=True)
class RelevanceClause:
    text: TextMatch | None = None
    phrases: tuple[PhraseMatch, ...] = ()
    exact_forms: ExactFormMatch | None = None
    exact_value: ExactValueMatch | None = None
    functions: tuple[ScoreFunction, ...] = ()

    @property
    def required_phrases(self) -> tuple[PhraseMatch, ...]:
        return tuple(p for p in self.phrases if p.required)

    @property
    def optional_phrases(self) -> tuple[PhraseMatch, ...]:
        return tuple(p for p in self.phrases if not p.required)

    @property
    def match_all(self) -> bool:
        return self.text is None and self.exact_value is None and not self.required_phrases


# ----------------------------------------------------------------------------
# Filters
# ----------------------------------------------------------------------------

@dataclass(frozen=True)
class TermsFilter:
    """Field value (scalar or any element of a list) in ``values``."""
    field: str
    values: tuple[str, ...]
    list_valued: bool = False
    exclude: bool = False


@dataclass(frozen=True)
class RangeFilter:
    """Inclusive date range; a missing value never satisfies a bound."""
    field: str
    gte: datetime | None = None
    lte: datetime | None = None


@dataclass(frozen=True)
class SiteClause:
    """Inclusion clauses OR their sites together; exclusions hold one site."""
    sites: tuple[SiteFilter, ...]
    exclude: bool = False


FilterClause = Union[TermsFilter, RangeFilter, SiteClause]


# ----------------------------------------------------------------------------
# Aggregations
# ----------------------------------------------------------------------------

@dataclass(frozen=True)
class TermsAggregation:
    field: str
    list_valued: bool = False


@dataclass(frozen=True)
class DateRange:
    key: str
    start: datetime
    end: datetime


@dataclass(frozen=True)
class DateRangeAggregation:
    field: str
    ranges: tuple[DateRange, ...]


AggregationRequest = Union[TermsAggregation, DateRangeAggregation]


# ----------------------------------------------------------------------------
# Whole query
# ----------------------------------------------------------------------------

@dataclass(frozen=True)
class HighlightSpec:
    fields: tuple[str, ...]
    terms: tuple[str, ...]
    phrases: tuple[str, ...]
    pre_tag: str
    post_tag: str
    fragment_size: int


@dataclass(frozen=True)
class CompiledQuery:
    language: str
    relevance: RelevanceClause
    filters: tuple[FilterClause, ...]
    source_fields: tuple[str, ...]
    size: int
    offset: int
    sort: SortMode = SortMode.RELEVANCE
    aggregations: tuple[AggregationRequest, ...] | None = None
    highlight: HighlightSpec | None = None
    raw_query: str | None = None

    @property
    def window(self) -> int:
        """Number of top hits each physical index must return."""
        return self.offset + self.size

    def describe(self) -> dict[str, Any]:
        """JSON-safe description, used for diagnostics."""
        return _jsonable(dataclasses.asdict(self)) | {"query": self.raw_query}

    def to_json(self) -> str:
        return json.dumps(self.describe(), separators=(",", ":"), ensure_ascii=False)


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value
