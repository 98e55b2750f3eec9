"""DuckDB engine adapter.

Reads collections prepared by the ingestion subsystem: one table per physical
index, keyed by ``id``, with an FTS index built over its text fields, and an
optional ``index_aliases(alias, index_name)`` table mapping collection aliases
to physical tables. A table name also resolves as its own alias.

The FTS index must be built with ``stemmer``, ``stopwords`` and ``ignore`` set
to ``FTS_STEMMER``, ``FTS_STOPWORDS`` and ``FTS_IGNORE`` from
``docsearch.config.constants``. DuckDB's default ``ignore`` drops digits, so a
term such as "99" would never match and, being rare, would block recall.

Text relevance uses ``match_bm25`` per weighted field. Recall follows common
terms semantics: query terms whose document frequency exceeds the cutoff are
"high frequency" and only contribute score while low frequency terms are
present. Exact phrases, exact word forms and categorical values are matched
with regular expressions on the stored, unanalyzed text.
"""
from __future__ import annotations

import logging
import math
import re
import time
from datetime import datetime, timezone
from threading import Lock
from typing import Any

import duckdb

from docsearch.config import Config
from docsearch.config.constants import ALIASES_TABLE, CHANGED_FIELD, LANGUAGE_FIELD, PATH_FIELD
from docsearch.core.errors import EngineFault, EngineUnavailable
from docsearch.core.ranking import minimum_should_match
from docsearch.engine.highlighter import Highlighter
from docsearch.engine.speller import Speller
from docsearch.models import (
    CompiledQuery,
    EngineResponse,
    RawBucket,
    RawHit,
    SiteFilter,
    SortMode,
    SuggestionCandidate,
)
from docsearch.models.query import (
    AggregationRequest,
    ClickCountBoost,
    DateRangeAggregation,
    ExactFormMatch,
    ExactValueMatch,
    ExtensionDemotion,
    FilterClause,
    PhraseMatch,
    PromotionBoost,
    RangeFilter,
    RecencyDecay,
    RelevanceClause,
    ScoreFunction,
    SiteClause,
    TermsFilter,
    TextMatch,
)

logger = logging.getLogger(__name__)

ID_COLUMN = "id"
SPELLING_FIELDS = ("title", "description")

_SCHEME = r"^[A-Za-z][A-Za-z0-9+.-]*://"
_WORD_START = r"(?:^|[^\pL\pM\pN_])"
_WORD_END = r"(?:$|[^\pL\pM\pN_])"
_VOCABULARY_SPLIT = r"[^\pL\pM\pN]+"

Sql = tuple[str, list[Any]]


def quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def column(name: str) -> str:
    return f"d.{quote_ident(name)}"


def host_expr(field: str = PATH_FIELD) -> str:
    """Lowercased host of a stored URL, '' when it has none."""
    return f"lower(regexp_extract(coalesce({column(field)}, ''), '{_SCHEME}([^/:?#]+)', 1))"


def url_path_expr(field: str = PATH_FIELD) -> str:
    """Path component of a stored URL, without query string or fragment."""
    return f"regexp_extract(coalesce({column(field)}, ''), '{_SCHEME}[^/?#]*(/[^?#]*)?', 1)"


def word_pattern(words: list[str]) -> str:
    """RE2 pattern for whitespace-separated ``words`` on word boundaries."""
    return _WORD_START + r"\s+".join(re.escape(w) for w in words) + _WORD_END


def naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class QueryTranslator:
    """Translates a CompiledQuery into DuckDB SQL against one table.

    Fields the table does not have are treated as absent on every document:
    filters on them match nothing (or everything, for exclusions), and score
    contributions from them are neutral.
    """

    def __init__(
        self,
        table: str,
        columns: dict[str, str],
        now: datetime | None = None,
        id_column: str = ID_COLUMN,
    ):
        self.table = table
        self.columns = columns
        self.now = naive_utc(now or datetime.now(timezone.utc))
        self.id_column = id_column
        self.fts = quote_ident(f"fts_main_{table}")

    @property
    def source(self) -> str:
        return f"{quote_ident(self.table)} AS d"

    def has(self, name: str) -> bool:
        return name in self.columns

    def is_list(self, name: str) -> bool:
        return self.columns.get(name, "").endswith("[]")

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def filter_sql(self, clause: FilterClause) -> Sql:
        if isinstance(clause, TermsFilter):
            return self.terms_sql(clause)
        if isinstance(clause, RangeFilter):
            return self.range_sql(clause)
        if isinstance(clause, SiteClause):
            return self.site_clause_sql(clause)
        raise TypeError(f"Unsupported filter clause: {clause!r}")

    def terms_sql(self, clause: TermsFilter) -> Sql:
        if not self.has(clause.field):
            return ("TRUE" if clause.exclude else "FALSE"), []

        col = column(clause.field)
        values = list(clause.values)
        if self.is_list(clause.field):
            condition = f"coalesce(list_has_any({col}, ?::VARCHAR[]), FALSE)"
            params: list[Any] = [values]
        else:
            placeholders = ",".join(["?"] * len(values))
            condition = f"coalesce(CAST({col} AS VARCHAR) IN ({placeholders}), FALSE)"
            params = values

        if clause.exclude:
            return f"NOT {condition}", params
        return condition, params

    def range_sql(self, clause: RangeFilter) -> Sql:
        if not self.has(clause.field):
            return "FALSE", []
        col = column(clause.field)
        conditions = [f"{col} IS NOT NULL"]
        params: list[Any] = []
        if clause.gte is not None:
            conditions.append(f"{col} >= ?")
            params.append(naive_utc(clause.gte))
        if clause.lte is not None:
            conditions.append(f"{col} <= ?")
            params.append(naive_utc(clause.lte))
        return " AND ".join(conditions), params

    def site_sql(self, site: SiteFilter) -> Sql:
        if not self.has(PATH_FIELD):
            return "FALSE", []
        host = host_expr()
        if site.matches_subdomains:
            conditions = [f"({host} = ? OR ends_with({host}, ?))"]
            params: list[Any] = [site.host, "." + site.host]
        else:
            conditions = [f"{host} = ?"]
            params = [site.host]
        if site.path_segments:
            path = url_path_expr()
            conditions.append(f"({path} = ? OR starts_with({path}, ?))")
            params.extend([site.path, site.path + "/"])
        return " AND ".join(conditions), params

    def site_clause_sql(self, clause: SiteClause) -> Sql:
        parts, params = [], []
        for site in clause.sites:
            sql, site_params = self.site_sql(site)
            parts.append(f"({sql})")
            params.extend(site_params)
        condition = " OR ".join(parts) or "FALSE"
        if clause.exclude:
            return f"NOT ({condition})", params
        return f"({condition})", params

    # ------------------------------------------------------------------
    # Relevance
    # ------------------------------------------------------------------

    def bm25(self, field: str | None = None) -> str:
        if field is None:
            return f"{self.fts}.match_bm25({column(self.id_column)}, ?)"
        return f"{self.fts}.match_bm25({column(self.id_column)}, ?, fields := {quote_literal(field)})"

    def frequency_sql(self, terms: tuple[str, ...]) -> Sql:
        """Document count followed by one document frequency per unique term."""
        unique = list(dict.fromkeys(terms))
        parts = ["count(*)"] + [f"count(*) FILTER (WHERE {self.bm25()} IS NOT NULL)" for _ in unique]
        return f"SELECT {', '.join(parts)} FROM {self.source}", unique

    def recall_sql(self, text: TextMatch, frequencies: dict[str, int], doc_count: int) -> Sql:
        terms = list(dict.fromkeys(text.terms))
        cutoff = text.cutoff_frequency
        limit = cutoff * doc_count if cutoff < 1 else cutoff
        high = [t for t in terms if frequencies.get(t, 0) > limit]
        low = [t for t in terms if t not in high]

        if low:
            group, expression = low, text.low_freq_minimum_should_match
        else:
            group, expression = high, text.high_freq_minimum_should_match
        required = max(1, minimum_should_match(expression, len(group)))

        matched = " + ".join(
            f"(CASE WHEN {self.bm25()} IS NOT NULL THEN 1 ELSE 0 END)" for _ in group
        )
        return f"({matched}) >= {required}", list(group)

    def phrase_condition(self, phrase: PhraseMatch) -> Sql:
        pattern = word_pattern(phrase.phrase.split())
        parts, params = [], []
        for fw in phrase.fields:
            if self.has(fw.field):
                parts.append(f"regexp_matches(coalesce({column(fw.field)}, ''), ?, 'i')")
                params.append(pattern)
        return (" OR ".join(parts) or "FALSE"), params

    def exact_value_condition(self, match: ExactValueMatch) -> Sql:
        parts, params = [], []
        for field in match.fields:
            if not self.has(field):
                continue
            if self.is_list(field):
                parts.append(f"coalesce(list_contains([lower(x) FOR x IN {column(field)}], ?), FALSE)")
                params.append(match.value)
            else:
                parts.append(f"lower(CAST({column(field)} AS VARCHAR)) = ?")
                params.append(match.value)
        return (" OR ".join(parts) or "FALSE"), params

    def match_sql(self, relevance: RelevanceClause, frequencies: dict[str, int], doc_count: int) -> Sql | None:
        """Condition a document must meet to be retrieved, None for match-all."""
        if relevance.match_all:
            return None

        conditions, params = [], []
        optional, optional_params = [], []
        if relevance.text is not None:
            sql, p = self.recall_sql(relevance.text, frequencies, doc_count)
            optional.append(sql)
            optional_params.extend(p)
        if relevance.exact_value is not None:
            sql, p = self.exact_value_condition(relevance.exact_value)
            optional.append(sql)
            optional_params.extend(p)
        if optional:
            conditions.append("(" + " OR ".join(f"({o})" for o in optional) + ")")
            params.extend(optional_params)

        for phrase in relevance.required_phrases:
            sql, p = self.phrase_condition(phrase)
            conditions.append(f"({sql})")
            params.extend(p)
        return " AND ".join(conditions), params

    def text_score(self, text: TextMatch) -> Sql:
        parts, params = [], []
        terms = " ".join(dict.fromkeys(text.terms))
        for fw in text.fields:
            if self.has(fw.field):
                parts.append(f"coalesce({self.bm25(fw.field)}, 0) * {float(fw.weight)!r}")
                params.append(terms)
        return (" + ".join(parts) or "0"), params

    def phrase_score(self, phrase: PhraseMatch) -> Sql:
        pattern = word_pattern(phrase.phrase.split())
        parts, params = [], []
        for fw in phrase.fields:
            if self.has(fw.field):
                weight = float(fw.weight * phrase.boost)
                parts.append(
                    f"(CASE WHEN regexp_matches(coalesce({column(fw.field)}, ''), ?, 'i') "
                    f"THEN {weight!r} ELSE 0 END)"
                )
                params.append(pattern)
        return (" + ".join(parts) or "0"), params

    def exact_form_score(self, match: ExactFormMatch) -> Sql:
        parts, params = [], []
        for term in dict.fromkeys(match.terms):
            pattern = word_pattern([term])
            for fw in match.fields:
                if self.has(fw.field):
                    weight = float(fw.weight * match.boost)
                    parts.append(
                        f"(CASE WHEN regexp_matches(coalesce({column(fw.field)}, ''), ?, 'i') "
                        f"THEN {weight!r} ELSE 0 END)"
                    )
                    params.append(pattern)
        return (" + ".join(parts) or "0"), params

    def base_score(self, relevance: RelevanceClause) -> Sql:
        if relevance.match_all:
            return "1.0", []

        parts, params = [], []
        pieces: list[Sql] = []
        if relevance.text is not None:
            pieces.append(self.text_score(relevance.text))
        pieces.extend(self.phrase_score(p) for p in relevance.phrases)
        if relevance.exact_forms is not None:
            pieces.append(self.exact_form_score(relevance.exact_forms))
        if relevance.exact_value is not None:
            sql, p = self.exact_value_condition(relevance.exact_value)
            pieces.append((f"(CASE WHEN {sql} THEN {float(relevance.exact_value.boost)!r} ELSE 0 END)", p))
        for sql, p in pieces:
            parts.append(f"({sql})")
            params.extend(p)
        return (" + ".join(parts) or "0"), params

    def function_sql(self, function: ScoreFunction) -> Sql | None:
        if not self.has(function.field):
            return None
        col = column(function.field)

        if isinstance(function, PromotionBoost):
            return f"(CASE WHEN coalesce(CAST({col} AS BOOLEAN), FALSE) THEN {float(function.weight)!r} ELSE 1.0 END)", []

        if isinstance(function, ClickCountBoost):
            factor = float(function.factor)
            return f"(1.0 + ln(1.0 + {factor!r} * greatest(coalesce(CAST({col} AS DOUBLE), 0), 0)))", []

        if isinstance(function, ExtensionDemotion):
            if not function.extensions:
                return None
            path = url_path_expr(function.field)
            cases, params = [], []
            for extension, factor in function.extensions:
                cases.append(f"WHEN ends_with(lower({path}), ?) THEN {float(factor)!r}")
                params.append("." + extension.lower())
            return f"(CASE {' '.join(cases)} ELSE 1.0 END)", params

        if isinstance(function, RecencyDecay):
            # exp(-max(0, age - offset)^2 / (2 sigma^2)), scored ``decay`` at ``scale``.
            two_sigma_sq = -(function.scale_days ** 2) / math.log(function.decay)
            age_days = f"abs(epoch(CAST(? AS TIMESTAMP)) - epoch(CAST({col} AS TIMESTAMP))) / 86400.0"
            return (
                f"(CASE WHEN {col} IS NULL THEN 1.0 ELSE exp(-pow(greatest({age_days} - "
                f"{float(function.offset_days)!r}, 0), 2) / {two_sigma_sq!r}) END)",
                [self.now],
            )

        raise TypeError(f"Unsupported score function: {function!r}")

    def score_sql(self, relevance: RelevanceClause) -> Sql:
        sql, params = self.base_score(relevance)
        factors = [f"({sql})"]
        for function in relevance.functions:
            translated = self.function_sql(function)
            if translated is not None:
                factors.append(translated[0])
                params.extend(translated[1])
        return " * ".join(factors), params

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def where_sql(self, query: CompiledQuery, frequencies: dict[str, int], doc_count: int) -> Sql:
        conditions, params = [], []
        for clause in query.filters:
            sql, p = self.filter_sql(clause)
            conditions.append(f"({sql})")
            params.extend(p)
        match = self.match_sql(query.relevance, frequencies, doc_count)
        if match is not None:
            conditions.append(f"({match[0]})")
            params.extend(match[1])
        return (" AND ".join(conditions) or "TRUE"), params

    def fetch_fields(self, query: CompiledQuery) -> list[str]:
        wanted = list(query.source_fields)
        if query.highlight is not None:
            wanted.extend(query.highlight.fields)
        return [f for f in dict.fromkeys(wanted) if self.has(f)]

    def hits_sql(self, query: CompiledQuery, where: Sql) -> Sql:
        score, score_params = self.score_sql(query.relevance)
        changed = column(CHANGED_FIELD) if self.has(CHANGED_FIELD) else "NULL"
        selected = [f"{column(self.id_column)} AS _id", f"{changed} AS _changed"]
        selected += [column(f) for f in self.fetch_fields(query)]
        selected.append(f"{score} AS _score")

        if query.sort is SortMode.DATE:
            order = "_changed DESC NULLS LAST, _score DESC, d.rowid"
        else:
            order = "_score DESC, d.rowid"

        sql = (
            f"SELECT {', '.join(selected)} FROM {self.source} "
            f"WHERE {where[0]} ORDER BY {order} LIMIT ?"
        )
        return sql, score_params + where[1] + [query.window]

    def count_sql(self, where: Sql) -> Sql:
        return f"SELECT count(*) FROM {self.source} WHERE {where[0]}", list(where[1])

    def aggregation_sql(self, request: AggregationRequest, where: Sql) -> Sql | None:
        if not self.has(request.field):
            return None
        col = column(request.field)

        if isinstance(request, DateRangeAggregation):
            counts, params = [], []
            for date_range in request.ranges:
                counts.append(f"count(*) FILTER (WHERE {col} >= ? AND {col} < ?)")
                params.extend([naive_utc(date_range.start), naive_utc(date_range.end)])
            return f"SELECT {', '.join(counts)} FROM {self.source} WHERE {where[0]}", params + where[1]

        if self.is_list(request.field):
            return (
                f"SELECT u.k, count(DISTINCT u.rid) FROM ("
                f"SELECT d.rowid AS rid, unnest({col}) AS k FROM {self.source} WHERE {where[0]}"
                f") AS u WHERE u.k IS NOT NULL GROUP BY u.k",
                list(where[1]),
            )
        return (
            f"SELECT CAST({col} AS VARCHAR) AS k, count(*) FROM {self.source} "
            f"WHERE ({where[0]}) AND {col} IS NOT NULL GROUP BY k",
            list(where[1]),
        )


class DuckDBBackend:
    """``SearchBackend`` and ``IndexResolver`` over a DuckDB database."""

    def __init__(
        self,
        config: Config | None = None,
        connection: duckdb.DuckDBPyConnection | None = None,
        *,
        load_fts: bool = True,
    ):
        if config is None:
            config = Config.load()
        self.config = config
        self._lock = Lock()

        if connection is None:
            database = config.engine.database
            connection = duckdb.connect(database=database, read_only=database != ":memory:")
            try:
                mem_mb = int(config.engine.memory_limit_mb)
                connection.execute(f"PRAGMA memory_limit='{mem_mb}MB'")
            except Exception as exc:
                logger.warning("Failed to set DuckDB memory limit: %s", exc)
        self._con = connection

        self.speller = Speller(
            cutoff=config.engine.spelling_cutoff,
            pre_tag=config.search.highlight_pre_tag,
            post_tag=config.search.highlight_post_tag,
        )
        if load_fts:
            self._load_fts()

    def _load_fts(self) -> None:
        try:
            self._con.execute("LOAD fts")
            return
        except duckdb.Error:
            pass
        try:
            self._con.execute("INSTALL fts; LOAD fts;")
        except duckdb.Error as exc:
            logger.warning("FTS extension unavailable, text queries will fail: %s", exc)

    def close(self) -> None:
        """Close the DuckDB connection."""
        if self._con:
            self._con.close()

    def _cursor(self) -> duckdb.DuckDBPyConnection:
        try:
            with self._lock:
                return self._con.cursor()
        except duckdb.Error as exc:
            raise EngineUnavailable(f"DuckDB connection unavailable: {exc}") from exc

    @staticmethod
    def _columns(cur: duckdb.DuckDBPyConnection, table: str) -> dict[str, str]:
        rows = cur.execute(
            "SELECT column_name, data_type FROM information_schema.columns "
            "WHERE table_name = ? ORDER BY ordinal_position",
            [table],
        ).fetchall()
        return {name: data_type for name, data_type in rows}

    # ------------------------------------------------------------------
    # IndexResolver
    # ------------------------------------------------------------------

    def resolve(self, alias: str) -> list[str]:
        cur = self._cursor()
        try:
            tables = {
                r[0] for r in cur.execute("SELECT table_name FROM information_schema.tables").fetchall()
            }
            if ALIASES_TABLE in tables:
                rows = cur.execute(
                    f"SELECT index_name FROM {quote_ident(ALIASES_TABLE)} "
                    "WHERE alias = ? ORDER BY index_name",
                    [alias],
                ).fetchall()
                if rows:
                    return [r[0] for r in rows]
            return [alias] if alias in tables else []
        except duckdb.Error as exc:
            raise EngineFault(f"Alias lookup failed for {alias}: {exc}") from exc
        finally:
            cur.close()

    # ------------------------------------------------------------------
    # SearchBackend
    # ------------------------------------------------------------------

    def execute(self, query: CompiledQuery, index: str) -> EngineResponse:
        started = time.perf_counter()
        cur = self._cursor()
        try:
            columns = self._columns(cur, index)
            if not columns:
                raise EngineFault(f"Index not found: {index}")
            translator = QueryTranslator(index, columns)

            frequencies: dict[str, int] = {}
            doc_count = 0
            if query.relevance.text is not None:
                sql, terms = translator.frequency_sql(query.relevance.text.terms)
                row = cur.execute(sql, terms).fetchone()
                doc_count = int(row[0])
                frequencies = dict(zip(terms, (int(v) for v in row[1:])))

            where = translator.where_sql(query, frequencies, doc_count)
            sql, params = translator.count_sql(where)
            total = int(cur.execute(sql, params).fetchone()[0])

            hits: list[RawHit] = []
            aggregations: dict[str, list[RawBucket]] = {}
            if total:
                if query.window > 0:
                    hits = self._hits(cur, translator, query, index, where)
                if query.aggregations:
                    aggregations = self._aggregate(cur, translator, query.aggregations, where)
        except duckdb.ConnectionException as exc:
            raise EngineUnavailable(f"{index}: {exc}") from exc
        except duckdb.Error as exc:
            raise EngineFault(f"{index}: {exc}") from exc
        finally:
            cur.close()

        logger.debug(
            "Searched %s: %d total, %d hits in %.1fms",
            index, total, len(hits), (time.perf_counter() - started) * 1000,
        )
        return EngineResponse(total=total, hits=hits, aggregations=aggregations, indices=(index,))

    def _hits(
        self,
        cur: duckdb.DuckDBPyConnection,
        translator: QueryTranslator,
        query: CompiledQuery,
        index: str,
        where: tuple[str, list[Any]],
    ) -> list[RawHit]:
        fields = translator.fetch_fields(query)
        sql, params = translator.hits_sql(query, where)
        rows = cur.execute(sql, params).fetchall()

        spec = query.highlight
        highlighter = Highlighter(spec.fragment_size) if spec is not None else None
        hits = []
        for row in rows:
            source = dict(zip(fields, row[2:-1]))
            highlight: dict[str, list[str]] = {}
            if highlighter is not None:
                for field in spec.fields:
                    value = source.get(field)
                    if not isinstance(value, str):
                        continue
                    fragments = highlighter.highlight(
                        value, spec.terms, spec.phrases, spec.pre_tag, spec.post_tag
                    )
                    if fragments:
                        highlight[field] = fragments
            hits.append(
                RawHit(
                    index=index,
                    doc_id=str(row[0]),
                    score=float(row[-1]),
                    source=source,
                    changed=row[1],
                    highlight=highlight,
                )
            )
        return hits

    def _aggregate(
        self,
        cur: duckdb.DuckDBPyConnection,
        translator: QueryTranslator,
        requests: tuple[AggregationRequest, ...],
        where: tuple[str, list[Any]],
    ) -> dict[str, list[RawBucket]]:
        aggregations: dict[str, list[RawBucket]] = {}
        for request in requests:
            statement = translator.aggregation_sql(request, where)
            if statement is None:
                continue
            if isinstance(request, DateRangeAggregation):
                counts = cur.execute(*statement).fetchone()
                aggregations[request.field] = [
                    RawBucket(r.key, int(count), r.start, r.end)
                    for r, count in zip(request.ranges, counts)
                ]
            else:
                aggregations[request.field] = [
                    RawBucket(str(key), int(count)) for key, count in cur.execute(*statement).fetchall()
                ]
        return aggregations

    def suggest(self, text: str, language: str, indexes: list[str]) -> SuggestionCandidate | None:
        """Closest spelling of ``text`` over the same-language vocabulary."""
        vocabulary: set[str] = set()
        cur = self._cursor()
        try:
            for index in indexes:
                columns = self._columns(cur, index)
                fields = [f for f in SPELLING_FIELDS if f in columns]
                if not fields:
                    continue
                joined = " || ' ' || ".join(f"coalesce({column(f)}, '')" for f in fields)
                where, params = "TRUE", []
                if LANGUAGE_FIELD in columns:
                    where, params = f"{column(LANGUAGE_FIELD)} = ?", [language]
                rows = cur.execute(
                    f"SELECT DISTINCT w FROM ("
                    f"SELECT unnest(string_split_regex(lower({joined}), '{_VOCABULARY_SPLIT}')) AS w "
                    f"FROM {quote_ident(index)} AS d WHERE {where}"
                    f") AS v WHERE length(w) > 1",
                    params,
                ).fetchall()
                vocabulary.update(r[0] for r in rows)
        except duckdb.ConnectionException as exc:
            raise EngineUnavailable(f"Spelling lookup failed: {exc}") from exc
        except duckdb.Error as exc:
            raise EngineFault(f"Spelling lookup failed: {exc}") from exc
        finally:
            cur.close()

        return self.speller.correct(text, vocabulary)
