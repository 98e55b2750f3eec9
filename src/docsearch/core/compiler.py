"""Composes filters, relevance and aggregations into one CompiledQuery."""
from __future__ import annotations

from datetime import datetime

from docsearch.config import Config
from docsearch.config.constants import DEFAULT_RESULT_FIELDS, HIGHLIGHT_FIELDS
from docsearch.core.aggregations import AggregationBuilder
from docsearch.core.filters import FilterCompiler
from docsearch.core.ranking import RankingComposer, tokenize
from docsearch.models import CompiledQuery, QuerySpec, SearchRequest, SortMode
from docsearch.models.query import HighlightSpec


class QueryCompiler:
    def __init__(self, config: Config):
        self.config = config
        self.filter_compiler = FilterCompiler()
        self.ranking_composer = RankingComposer(config.ranking)
        self.aggregation_builder = AggregationBuilder()

    def compile(
        self,
        request: SearchRequest,
        spec: QuerySpec,
        now: datetime | None = None,
    ) -> CompiledQuery:
        highlight = None
        if spec.has_text:
            search = self.config.search
            highlight = HighlightSpec(
                fields=HIGHLIGHT_FIELDS,
                terms=tuple(tokenize(spec.text)),
                phrases=spec.phrases,
                pre_tag=search.highlight_pre_tag,
                post_tag=search.highlight_post_tag,
                fragment_size=search.fragment_size,
            )

        return CompiledQuery(
            language=request.language,
            relevance=self.ranking_composer.compose(spec),
            filters=self.filter_compiler.compile(request, spec),
            source_fields=tuple(dict.fromkeys(DEFAULT_RESULT_FIELDS + request.include)),
            size=request.size,
            offset=request.offset,
            sort=SortMode.DATE if request.sort_by_date else SortMode.RELEVANCE,
            aggregations=self.aggregation_builder.build(spec, now),
            highlight=highlight,
            raw_query=request.query,
        )
