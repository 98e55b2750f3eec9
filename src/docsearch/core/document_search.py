"""Document search over one or more collections.

``DocumentSearch.search`` is the single entry point: it parses the raw query,
compiles one engine query, runs it across every index behind the requested
handles, and shapes the merged result. Engine failures never escape; they
are logged, reported, and answered with an empty response.
"""
from __future__ import annotations

import time
from pathlib import Path

from docsearch.config import Config
from docsearch.core.compiler import QueryCompiler
from docsearch.core.executor import SearchExecutor
from docsearch.core.logging_config import get_logger, setup_logging
from docsearch.core.normalizer import ResultNormalizer
from docsearch.core.query_parser import QueryParser
from docsearch.core.suggestions import SuggestionResolver
from docsearch.engine.protocols import ErrorReporter, IndexResolver, SearchBackend
from docsearch.models import Err, SearchRequest, SearchResponse
from docsearch.services.error_reporter import LoggingErrorReporter, report_failure


logger = get_logger(__name__)


class DocumentSearch:
    def __init__(
        self,
        backend: SearchBackend,
        resolver: IndexResolver | None = None,
        config: Config | None = None,
        error_reporter: ErrorReporter | None = None,
    ):
        if config is None:
            config = Config.load()
        self.config = config
        # The DuckDB adapter resolves its own aliases.
        resolver = resolver if resolver is not None else backend

        self.parser = QueryParser()
        self.compiler = QueryCompiler(config)
        self.executor = SearchExecutor(
            backend,
            resolver,
            namespace=config.search.index_namespace,
            timeout_seconds=config.engine.timeout_seconds,
            max_workers=config.engine.max_workers,
        )
        self.normalizer = ResultNormalizer(self.compiler.aggregation_builder)
        self.error_reporter = error_reporter or LoggingErrorReporter()
        self.suggestions = SuggestionResolver(
            backend, self.compiler, self.executor, self.normalizer, self.error_reporter
        )

    def search(self, request: SearchRequest | None = None, **options) -> SearchResponse:
        """Run a search.

        Args:
            request: A validated request. When omitted, ``options`` are
                validated into one (facet fields may be passed directly as
                keyword arguments).

        Returns:
            SearchResponse; empty when the engine failed.

        Raises:
            ConfigurationError: Unknown handle or facet field.
            pydantic.ValidationError: Invalid request options.
        """
        if request is None:
            options.setdefault("language", self.config.search.default_language)
            options.setdefault("size", self.config.search.default_size)
            request = SearchRequest.from_options(**options)
        elif options:
            raise TypeError("Pass either a SearchRequest or keyword options, not both")

        started = time.perf_counter()
        spec = self.parser.parse(request.query)
        query = self.compiler.compile(request, spec)

        outcome = self.executor.execute(query, request.handles)
        if isinstance(outcome, Err):
            return self._failed(outcome)

        response = self.normalizer.normalize(query, outcome.value)
        if response.total == 0 and spec.text:
            suggested = self.suggestions.resolve(request, spec, outcome.value.indices)
            if suggested is not None:
                response = suggested

        logger.debug(
            "Search %r on %s: %d total in %.1fms",
            request.query, ",".join(outcome.value.indices), response.total,
            (time.perf_counter() - started) * 1000,
        )
        return response

    def _failed(self, failure: Err) -> SearchResponse:
        report_failure(self.error_reporter, failure, logger)
        return SearchResponse.empty()


def open_document_search(
    config_path: Path | None = None,
    *,
    configure_logging: bool = True,
    error_reporter: ErrorReporter | None = None,
) -> DocumentSearch:
    """Load settings and open a search over the configured DuckDB database.

    Args:
        config_path: Optional explicit settings file
        configure_logging: Install the configured log handlers first

    Returns:
        DocumentSearch whose backend also resolves collection aliases
    """
    config = Config.load(config_path)
    if configure_logging:
        setup_logging(config.logging)

    from docsearch.engine.duckdb_backend import DuckDBBackend

    backend = DuckDBBackend(config)
    logger.info("Opened %s (namespace %s)", config.engine.database, config.search.index_namespace)
    return DocumentSearch(backend, config=config, error_reporter=error_reporter)
