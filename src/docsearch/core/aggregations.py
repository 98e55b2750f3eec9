"""Facet aggregation requests and bucket extraction."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from docsearch.config.constants import DATE_BUCKETS, FACET_DATE, FACET_FIELDS, FACET_KEYWORD_LIST
from docsearch.models import AggregationBucket, QuerySpec, RawBucket
from docsearch.models.query import (
    AggregationRequest,
    DateRange,
    DateRangeAggregation,
    TermsAggregation,
)


def format_date(value: datetime) -> str:
    """Month/day/year without zero padding, e.g. ``6/3/2024``."""
    return f"{value.month}/{value.day}/{value.year}"


class AggregationBuilder:
    def __init__(
        self,
        facet_fields: dict[str, str] | None = None,
        date_buckets: tuple[tuple[str, int, int], ...] = DATE_BUCKETS,
    ):
        self.facet_fields = dict(FACET_FIELDS if facet_fields is None else facet_fields)
        self.date_buckets = date_buckets

    def build(self, spec: QuerySpec, now: datetime | None = None) -> tuple[AggregationRequest, ...] | None:
        """Aggregations to request, or None for filter-only queries."""
        if not spec.has_text:
            return None
        now = now or datetime.now(timezone.utc)

        requests: list[AggregationRequest] = []
        for field_name, kind in self.facet_fields.items():
            if kind == FACET_DATE:
                requests.append(DateRangeAggregation(field_name, self.date_ranges(now)))
            else:
                requests.append(TermsAggregation(field_name, list_valued=kind == FACET_KEYWORD_LIST))
        return tuple(requests)

    def date_ranges(self, now: datetime) -> tuple[DateRange, ...]:
        return tuple(
            DateRange(label, now - timedelta(days=oldest), now - timedelta(days=newest))
            for label, newest, oldest in self.date_buckets
        )

    def extract(
        self,
        requests: tuple[AggregationRequest, ...],
        raw: dict[str, list[RawBucket]],
    ) -> list[dict[str, list[AggregationBucket]]]:
        """Shape raw engine buckets into labeled, non-empty facet lists."""
        aggregations: list[dict[str, list[AggregationBucket]]] = []
        for request in requests:
            counted = [b for b in raw.get(request.field, []) if b.doc_count > 0]
            if not counted:
                continue
            if isinstance(request, DateRangeAggregation):
                buckets = self._date_buckets(request, counted)
            else:
                counted.sort(key=lambda b: (-b.doc_count, b.key))
                buckets = [AggregationBucket(agg_key=b.key, doc_count=b.doc_count) for b in counted]
            if buckets:
                aggregations.append({request.field: buckets})
        return aggregations

    def _date_buckets(
        self,
        request: DateRangeAggregation,
        counted: list[RawBucket],
    ) -> list[AggregationBucket]:
        by_key = {b.key: b for b in counted}
        buckets = []
        for date_range in request.ranges:
            raw = by_key.get(date_range.key)
            if raw is None:
                continue
            start = raw.start or date_range.start
            end = raw.end or date_range.end
            buckets.append(
                AggregationBucket(
                    agg_key=date_range.key,
                    doc_count=raw.doc_count,
                    from_=start,
                    to=end,
                    from_as_string=format_date(start),
                    to_as_string=format_date(end),
                )
            )
        return buckets
