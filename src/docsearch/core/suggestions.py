"""Spelling-suggestion fallback for zero-result searches."""
from __future__ import annotations

import logging

from docsearch.core.compiler import QueryCompiler
from docsearch.core.executor import SearchExecutor
from docsearch.core.normalizer import ResultNormalizer
from docsearch.engine.protocols import ErrorReporter, SearchBackend
from docsearch.models import Err, QuerySpec, SearchRequest, SearchResponse, Suggestion
from docsearch.services.error_reporter import LoggingErrorReporter, report_failure


logger = logging.getLogger(__name__)


class SuggestionResolver:
    """Re-runs a zero-result search with the engine's closest spelling.

    The corrected search keeps the request's filters, site operators and
    quoted phrases; only the free text changes. A suggestion is returned only
    when the corrected search finds something. Engine failures on either
    round trip are reported like any other and leave the original response
    in place.
    """

    def __init__(
        self,
        backend: SearchBackend,
        compiler: QueryCompiler,
        executor: SearchExecutor,
        normalizer: ResultNormalizer,
        error_reporter: ErrorReporter | None = None,
    ):
        self.backend = backend
        self.compiler = compiler
        self.executor = executor
        self.normalizer = normalizer
        self.error_reporter = error_reporter or LoggingErrorReporter()

    def resolve(
        self,
        request: SearchRequest,
        spec: QuerySpec,
        indices: tuple[str, ...],
    ) -> SearchResponse | None:
        if not spec.text or not indices:
            return None

        try:
            candidate = self.backend.suggest(spec.text, request.language, list(indices))
        except Exception as exc:
            failure = Err(exc, indices, self.compiler.compile(request, spec))
            report_failure(self.error_reporter, failure, logger, "Spelling suggestion")
            return None
        if candidate is None or candidate.text.strip().lower() == spec.text.strip().lower():
            return None

        corrected = self.compiler.compile(request, spec.with_text(candidate.text))
        outcome = self.executor.execute_on(corrected, indices)
        if isinstance(outcome, Err):
            report_failure(self.error_reporter, outcome, logger, "Suggested search")
            return None
        if outcome.value.total < 1:
            return None

        response = self.normalizer.normalize(corrected, outcome.value)
        logger.debug("Suggested %r for %r (%d results)", candidate.text, spec.text, response.total)
        return response.model_copy(
            update={"suggestion": Suggestion(text=candidate.text, highlighted=candidate.highlighted)}
        )
