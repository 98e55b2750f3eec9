"""Shapes merged engine output into the public SearchResponse."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any

from docsearch.config.constants import FRAGMENT_SEPARATOR
from docsearch.core.aggregations import AggregationBuilder
from docsearch.models import CompiledQuery, EngineResponse, RawHit, SearchResponse


def coerce(value: Any) -> Any:
    """Make a stored value JSON friendly."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [coerce(v) for v in value]
    return value


class ResultNormalizer:
    def __init__(
        self,
        aggregation_builder: AggregationBuilder | None = None,
        separator: str = FRAGMENT_SEPARATOR,
    ):
        self.aggregation_builder = aggregation_builder or AggregationBuilder()
        self.separator = separator

    def normalize(self, query: CompiledQuery, response: EngineResponse) -> SearchResponse:
        aggregations = None
        if query.aggregations is not None:
            aggregations = self.aggregation_builder.extract(query.aggregations, response.aggregations)

        return SearchResponse(
            total=response.total,
            results=[self.record(query, hit) for hit in response.hits],
            aggregations=aggregations,
        )

    def record(self, query: CompiledQuery, hit: RawHit) -> dict[str, Any]:
        """Requested fields of one hit, highlighted fields substituted."""
        record: dict[str, Any] = {}
        for name in query.source_fields:
            value = hit.source.get(name)
            if value is not None:
                record[name] = coerce(value)

        # Highlighted fields appear even when not requested.
        for name, fragments in hit.highlight.items():
            if fragments:
                record[name] = self.separator.join(fragments)
        return record
