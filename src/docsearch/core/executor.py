"""Scatter/gather execution of a compiled query across physical indexes."""
from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait

from docsearch.config.constants import (
    DEFAULT_INDEX_NAMESPACE,
    DEFAULT_MAX_WORKERS,
    DEFAULT_TIMEOUT_SECONDS,
    ERROR_UNKNOWN_HANDLE,
)
from docsearch.core.errors import ConfigurationError, EngineUnavailable
from docsearch.engine.protocols import IndexResolver, SearchBackend
from docsearch.models import CompiledQuery, EngineResponse, Err, ExecutionResult, Ok, RawBucket, RawHit, SortMode


logger = logging.getLogger(__name__)


def rank_key(sort: SortMode, hit: RawHit) -> tuple:
    """Merge order: score desc, or changed desc (undated last) then score."""
    if sort is SortMode.DATE:
        changed = hit.changed
        return (changed is None, -changed.timestamp() if changed is not None else 0.0, -hit.score)
    return (-hit.score,)


class SearchExecutor:
    def __init__(
        self,
        backend: SearchBackend,
        resolver: IndexResolver,
        *,
        namespace: str = DEFAULT_INDEX_NAMESPACE,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        self.backend = backend
        self.resolver = resolver
        self.namespace = namespace
        self.timeout_seconds = timeout_seconds
        self.max_workers = max_workers

    def alias(self, handle: str) -> str:
        return f"{self.namespace}-{handle}"

    def resolve_indices(self, handles: Iterable[str]) -> tuple[str, ...]:
        """Physical index names behind ``handles``, in handle order.

        Raises:
            ConfigurationError: If a handle has no index behind its alias.
        """
        indices: list[str] = []
        for handle in handles:
            alias = self.alias(handle)
            resolved = self.resolver.resolve(alias)
            if not resolved:
                raise ConfigurationError(ERROR_UNKNOWN_HANDLE.format(handle=handle, alias=alias))
            indices.extend(i for i in resolved if i not in indices)
        return tuple(indices)

    def execute(self, query: CompiledQuery, handles: Iterable[str]) -> ExecutionResult:
        handles = tuple(handles)
        try:
            indices = self.resolve_indices(handles)
        except ConfigurationError:
            raise
        except Exception as exc:
            return Err(exc, tuple(self.alias(h) for h in handles), query)
        return self.execute_on(query, indices)

    def execute_on(self, query: CompiledQuery, indices: tuple[str, ...]) -> ExecutionResult:
        """Run ``query`` on every index and merge; any failure is an ``Err``."""
        pool = ThreadPoolExecutor(max_workers=max(1, min(self.max_workers, len(indices))))
        try:
            futures = [pool.submit(self.backend.execute, query, index) for index in indices]
            done, pending = wait(futures, timeout=self.timeout_seconds, return_when=FIRST_EXCEPTION)
            for future in done:
                error = future.exception()
                if error is not None:
                    raise error
            if pending:
                raise EngineUnavailable(
                    f"{len(pending)} of {len(indices)} indexes did not answer "
                    f"within {self.timeout_seconds}s"
                )
            responses = [future.result() for future in futures]
        except Exception as exc:
            return Err(exc, indices, query)
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        return Ok(self.merge(query, indices, responses))

    def merge(
        self,
        query: CompiledQuery,
        indices: tuple[str, ...],
        responses: list[EngineResponse],
    ) -> EngineResponse:
        """Merge per-index responses into one ranked, paginated response."""
        hits = [hit for response in responses for hit in response.hits]
        hits.sort(key=lambda hit: rank_key(query.sort, hit))

        buckets: dict[str, dict[str, RawBucket]] = {}
        for response in responses:
            for field_name, raw in response.aggregations.items():
                merged = buckets.setdefault(field_name, {})
                for bucket in raw:
                    existing = merged.get(bucket.key)
                    if existing is None:
                        merged[bucket.key] = RawBucket(bucket.key, bucket.doc_count, bucket.start, bucket.end)
                    else:
                        existing.doc_count += bucket.doc_count

        return EngineResponse(
            total=sum(response.total for response in responses),
            hits=hits[query.offset: query.offset + query.size],
            aggregations={field_name: list(merged.values()) for field_name, merged in buckets.items()},
            indices=indices,
        )
