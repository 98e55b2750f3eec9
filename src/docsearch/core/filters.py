"""Structured filter compilation.

Turns the facet map, tag sets, date windows, language and parsed site
operators of a request into a conjunctive list of engine filter clauses.
"""
from __future__ import annotations

from docsearch.config.constants import (
    CHANGED_FIELD,
    CREATED_FIELD,
    ERROR_UNKNOWN_FACET,
    FACET_DATE,
    FACET_FIELDS,
    FACET_KEYWORD_LIST,
    LANGUAGE_FIELD,
    TAGS_FIELD,
)
from docsearch.core.errors import ConfigurationError
from docsearch.models import QuerySpec, SearchRequest
from docsearch.models.query import FilterClause, RangeFilter, SiteClause, TermsFilter


class FilterCompiler:
    def __init__(self, facet_fields: dict[str, str] | None = None):
        self.facet_fields = dict(FACET_FIELDS if facet_fields is None else facet_fields)

    def compile(self, request: SearchRequest, spec: QuerySpec) -> tuple[FilterClause, ...]:
        """Return the clauses every result must satisfy.

        Raises:
            ConfigurationError: If a facet filter names an unknown or
                date-typed field.
        """
        clauses: list[FilterClause] = [TermsFilter(LANGUAGE_FIELD, (request.language,))]

        for field_name, values in request.facets.items():
            kind = self.facet_fields.get(field_name)
            if kind is None or kind == FACET_DATE:
                raise ConfigurationError(ERROR_UNKNOWN_FACET.format(field=field_name))
            if values:
                clauses.append(
                    TermsFilter(field_name, tuple(values), list_valued=kind == FACET_KEYWORD_LIST)
                )

        tags_list = self.facet_fields.get(TAGS_FIELD) == FACET_KEYWORD_LIST
        if request.tags:
            clauses.append(TermsFilter(TAGS_FIELD, request.tags, list_valued=tags_list))
        if request.ignore_tags:
            clauses.append(
                TermsFilter(TAGS_FIELD, request.ignore_tags, list_valued=tags_list, exclude=True)
            )

        clauses.extend(self._date_ranges(request))

        if spec.included_sites:
            clauses.append(SiteClause(spec.included_sites))
        clauses.extend(SiteClause((site,), exclude=True) for site in spec.excluded_sites)

        return tuple(clauses)

    def _date_ranges(self, request: SearchRequest) -> list[RangeFilter]:
        ranges = []
        if request.min_timestamp or request.max_timestamp:
            ranges.append(RangeFilter(CHANGED_FIELD, request.min_timestamp, request.max_timestamp))
        if request.min_timestamp_created or request.max_timestamp_created:
            ranges.append(
                RangeFilter(CREATED_FIELD, request.min_timestamp_created, request.max_timestamp_created)
            )
        return ranges
