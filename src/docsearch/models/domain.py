"""Domain models for docsearch - parsed queries and raw engine output."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING, Any, Generic, TypeVar, Union
from urllib.parse import urlsplit

if TYPE_CHECKING:
    from docsearch.models.query import CompiledQuery


@dataclass(frozen=True)
class SiteFilter:
    """One ``site:`` (or ``-site:``) operator occurrence.

    ``host`` is compared literally, except that a bare domain (exactly one
    dot, e.g. ``agency.gov``) also matches any of its subdomains. Path
    segments match as a prefix of the candidate's segments; a partial final
    segment never matches.
    """
    host: str
    path_segments: tuple[str, ...] = ()
    exclude: bool = False

    @property
    def path(self) -> str:
        if not self.path_segments:
            return ""
        return "/" + "/".join(self.path_segments)

    @property
    def matches_subdomains(self) -> bool:
        return self.host.count(".") == 1

    def matches(self, url: str) -> bool:
        parts = urlsplit(url)
        host = (parts.hostname or "").lower()
        if host != self.host and not (
            self.matches_subdomains and host.endswith("." + self.host)
        ):
            return False
        segments = tuple(s for s in parts.path.split("/") if s)
        return segments[: len(self.path_segments)] == self.path_segments

    def __str__(self) -> str:
        prefix = "-site:" if self.exclude else "site:"
        return f"{prefix}{self.host}{self.path}"


@dataclass(frozen=True)
class QuerySpec:
    """Parsed decomposition of the raw free-text query."""
    text: str = ""
    phrases: tuple[str, ...] = ()
    included_sites: tuple[SiteFilter, ...] = ()
    excluded_sites: tuple[SiteFilter, ...] = ()

    @property
    def has_text(self) -> bool:
        """True when there is anything to match textually."""
        return bool(self.text or self.phrases)

    def with_text(self, text: str) -> "QuerySpec":
        return replace(self, text=text)


@dataclass
class RawHit:
    """One hit as returned by an engine adapter."""
    index: str
    doc_id: str
    score: float
    source: dict[str, Any]
    changed: datetime | None = None
    highlight: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class RawBucket:
    """One aggregation bucket as counted by the engine."""
    key: str
    doc_count: int
    start: datetime | None = None
    end: datetime | None = None


@dataclass
class EngineResponse:
    """Ranked hits plus aggregation buckets for one engine round trip."""
    total: int
    hits: list[RawHit] = field(default_factory=list)
    aggregations: dict[str, list[RawBucket]] = field(default_factory=dict)
    indices: tuple[str, ...] = ()


@dataclass(frozen=True)
class SuggestionCandidate:
    """Closest spelling proposed by the engine."""
    text: str
    highlighted: str


T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    """Failed execution, carrying what is needed to diagnose it."""
    error: BaseException
    indices: tuple[str, ...]
    query: "CompiledQuery"


ExecutionResult = Union[Ok[EngineResponse], Err]
