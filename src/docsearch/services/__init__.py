"""Services reached by the search pipeline."""
from __future__ import annotations

from docsearch.services.error_reporter import LoggingErrorReporter, report_failure

__all__ = ["LoggingErrorReporter", "report_failure"]
