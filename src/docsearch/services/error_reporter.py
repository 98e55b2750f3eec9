from __future__ import annotations

import logging
from typing import Any

from docsearch.engine.protocols import ErrorReporter
from docsearch.models import Err


class LoggingErrorReporter:
    """Default error reporter: records the failure with its traceback.

    Deployments wire an exception tracker in its place through the
    ``ErrorReporter`` protocol.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger(__name__)
        self.reported = 0

    def notify(self, error: BaseException, context: dict[str, Any]) -> None:
        self.reported += 1
        details = ", ".join(f"{key}={value}" for key, value in sorted(context.items()))
        self._logger.error(
            "%s: %s (%s)",
            type(error).__name__,
            error,
            details,
            exc_info=(type(error), error, error.__traceback__),
        )


def report_failure(
    reporter: ErrorReporter,
    failure: Err,
    log: logging.Logger,
    action: str = "Search",
) -> None:
    """Log a failed execution with its query description, then report it.

    A reporter that itself fails is only logged.
    """
    log.error(
        "%s failed on %s: %s: %s %s",
        action,
        ",".join(failure.indices),
        type(failure.error).__name__,
        failure.error,
        failure.query.to_json(),
    )
    try:
        reporter.notify(failure.error, {"indices": list(failure.indices)})
    except Exception as exc:
        log.warning("Error reporter failed: %s", exc)
