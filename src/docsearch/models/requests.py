"""Pydantic request model for a search call."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from docsearch.config.constants import DEFAULT_LANGUAGE, DEFAULT_SIZE, FACET_FIELDS, ERROR_UNKNOWN_FACET
from docsearch.core.errors import ConfigurationError


def _as_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


class SearchRequest(BaseModel):
    """Caller's search intent. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    handles: tuple[str, ...] = Field(min_length=1)
    language: str = DEFAULT_LANGUAGE
    query: str | None = None
    size: int = Field(default=DEFAULT_SIZE, ge=0)
    offset: int = Field(default=0, ge=0)
    include: tuple[str, ...] = ()
    facets: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    tags: tuple[str, ...] = ()
    ignore_tags: tuple[str, ...] = ()
    min_timestamp: datetime | None = None
    max_timestamp: datetime | None = None
    min_timestamp_created: datetime | None = None
    max_timestamp_created: datetime | None = None
    sort_by_date: bool = False

    @field_validator("handles", mode="before")
    @classmethod
    def _dedupe_handles(cls, value: Any) -> tuple[str, ...]:
        handles: list[str] = []
        for handle in _as_tuple(value):
            handle = handle.strip()
            if not handle:
                raise ValueError("handles must not contain blank entries")
            if handle not in handles:
                handles.append(handle)
        return tuple(handles)

    @field_validator("language", mode="before")
    @classmethod
    def _default_language(cls, value: Any) -> str:
        if value is None or str(value).strip() == "":
            return DEFAULT_LANGUAGE
        return str(value).strip().lower()

    @field_validator("include", "tags", "ignore_tags", mode="before")
    @classmethod
    def _coerce_sets(cls, value: Any) -> tuple[str, ...]:
        return _as_tuple(value)

    @field_validator("facets", mode="before")
    @classmethod
    def _coerce_facets(cls, value: Any) -> dict[str, tuple[str, ...]]:
        if not value:
            return {}
        return {str(k): _as_tuple(v) for k, v in dict(value).items()}

    @classmethod
    def from_options(cls, **options: Any) -> "SearchRequest":
        """Build a request from flat options.

        Any option named after a configured facet field (e.g. ``audience``) is
        collected into ``facets``. Unknown options raise ConfigurationError.
        """
        known = set(cls.model_fields)
        fields: dict[str, Any] = {}
        facets: dict[str, Any] = dict(options.pop("facets", None) or {})
        for name, value in options.items():
            if name in known:
                fields[name] = value
            elif name in FACET_FIELDS:
                facets[name] = value
            else:
                raise ConfigurationError(ERROR_UNKNOWN_FACET.format(field=name))
        return cls(**fields, facets=facets)
