"""Pydantic response models returned to callers."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AggregationBucket(BaseModel):
    """One facet value's count. Date buckets also carry their boundaries."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    agg_key: str
    doc_count: int
    from_: datetime | None = Field(default=None, alias="from")
    to: datetime | None = None
    from_as_string: str | None = None
    to_as_string: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Suggestion(BaseModel):
    """Alternate spelling offered when the literal query found nothing."""

    model_config = ConfigDict(frozen=True)

    text: str
    highlighted: str

    def __getitem__(self, key: str) -> str:
        return getattr(self, key)


class SearchResponse(BaseModel):
    """Final output of a search call."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    results: list[dict[str, Any]] = Field(default_factory=list)
    aggregations: list[dict[str, list[AggregationBucket]]] | None = None
    suggestion: Suggestion | None = None

    @classmethod
    def empty(cls, *, aggregations: list | None = None) -> "SearchResponse":
        return cls(total=0, results=[], aggregations=aggregations, suggestion=None)

    def aggregation(self, field: str) -> list[AggregationBucket] | None:
        """Buckets for ``field``, or None when the field has none."""
        for entry in self.aggregations or []:
            if field in entry:
                return entry[field]
        return None
