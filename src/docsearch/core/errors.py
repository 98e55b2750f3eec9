"""Error kinds raised across the search pipeline."""
from __future__ import annotations


class DocSearchError(Exception):
    """Base class for docsearch errors."""


class ParseError(DocSearchError):
    """A query-language token could not be interpreted."""


class ConfigurationError(DocSearchError):
    """A request references something that is not configured (handle, facet)."""


class EngineError(DocSearchError):
    """The search engine could not answer a query."""


class EngineUnavailable(EngineError):
    """The engine could not be reached, or did not answer in time."""


class EngineFault(EngineError):
    """The engine was reached but failed while executing the query."""
