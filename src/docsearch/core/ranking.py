"""Relevance clause composition.

The composer decides *what* contributes to a document's score; the engine
adapter decides how to compute it. Weights and tiers come from
``RankingConfig`` so they can be tuned without touching code.
"""
from __future__ import annotations

from docsearch.config import RankingConfig
from docsearch.config.constants import (
    CHANGED_FIELD,
    CLICK_COUNT_FIELD,
    FACET_DATE,
    FACET_FIELDS,
    FACET_KEYWORD_LIST,
    HIGHLIGHT_FIELDS,
    PATH_FIELD,
    PROMOTE_FIELD,
)
from docsearch.core.query_parser import tokenize
from docsearch.models import QuerySpec
from docsearch.models.query import (
    ClickCountBoost,
    ExactFormMatch,
    ExactValueMatch,
    ExtensionDemotion,
    FieldWeight,
    PhraseMatch,
    PromotionBoost,
    RecencyDecay,
    RelevanceClause,
    ScoreFunction,
    TextMatch,
)


def minimum_should_match(expression: str, clause_count: int) -> int:
    """Number of optional clauses that must match.

    Supports the usual forms: ``3``, ``-1``, ``75%``, ``-25%`` and
    conditional specs such as ``3<90%`` (all clauses required up to three,
    ninety percent rounded down beyond that) or ``2<-25% 9<-3``.
    """
    if clause_count <= 0:
        return 0
    parts = expression.split()
    if not parts:
        return clause_count

    if any("<" in part for part in parts):
        required = clause_count
        conditions = sorted((part.split("<", 1) for part in parts), key=lambda c: int(c[0]))
        for threshold, spec in conditions:
            if clause_count > int(threshold):
                required = _apply_spec(spec, clause_count)
    else:
        required = _apply_spec(parts[0], clause_count)

    return max(0, min(clause_count, required))


def _apply_spec(spec: str, clause_count: int) -> int:
    if spec.endswith("%"):
        percent = float(spec[:-1])
        calculated = int(clause_count * abs(percent) / 100)
        return clause_count - calculated if percent < 0 else calculated
    value = int(spec)
    return clause_count + value if value < 0 else value


class RankingComposer:
    def __init__(self, config: RankingConfig, facet_fields: dict[str, str] | None = None):
        self.config = config
        self.facet_fields = dict(FACET_FIELDS if facet_fields is None else facet_fields)

    def compose(self, spec: QuerySpec) -> RelevanceClause:
        functions = self.score_functions()
        if not spec.has_text:
            return RelevanceClause(functions=functions)

        text_fields = self._weighted(self.config.field_weights)
        phrase_fields = self._weighted(
            {f: w for f, w in self.config.field_weights.items() if f in HIGHLIGHT_FIELDS}
        )

        text_match = None
        exact_forms = None
        exact_value = None
        phrases: list[PhraseMatch] = []

        terms = tuple(tokenize(spec.text))
        if terms:
            text_match = TextMatch(
                text=spec.text,
                terms=terms,
                fields=text_fields,
                cutoff_frequency=self.config.cutoff_frequency,
                low_freq_minimum_should_match=self.config.low_freq_minimum_should_match,
                high_freq_minimum_should_match=self.config.high_freq_minimum_should_match,
            )
            exact_forms = ExactFormMatch(terms, phrase_fields, self.config.exact_form_boost)
            if len(terms) > 1:
                # Unquoted text appearing contiguously still ranks higher.
                phrases.append(
                    PhraseMatch(spec.text, phrase_fields, self.config.phrase_boost, required=False)
                )
            exact_value = self._exact_value(spec.text)

        phrases.extend(
            PhraseMatch(phrase, phrase_fields, self.config.exact_phrase_boost, required=True)
            for phrase in spec.phrases
        )

        return RelevanceClause(
            text=text_match,
            phrases=tuple(phrases),
            exact_forms=exact_forms,
            exact_value=exact_value,
            functions=functions,
        )

    def score_functions(self) -> tuple[ScoreFunction, ...]:
        cfg = self.config
        return (
            PromotionBoost(PROMOTE_FIELD, cfg.promote_weight),
            ClickCountBoost(CLICK_COUNT_FIELD, cfg.click_count_factor),
            ExtensionDemotion(PATH_FIELD, tuple(sorted(cfg.demoted_extensions.items()))),
            RecencyDecay(CHANGED_FIELD, cfg.decay_scale_days, cfg.decay_offset_days, cfg.decay),
        )

    def _exact_value(self, text: str) -> ExactValueMatch:
        fields = tuple(f for f, kind in self.facet_fields.items() if kind != FACET_DATE)
        list_fields = tuple(f for f in fields if self.facet_fields[f] == FACET_KEYWORD_LIST)
        return ExactValueMatch(
            value=text.strip().lower(),
            fields=fields,
            list_fields=list_fields,
            boost=self.config.exact_value_boost,
        )

    @staticmethod
    def _weighted(weights: dict[str, float]) -> tuple[FieldWeight, ...]:
        ordered = sorted(weights.items(), key=lambda item: item[1], reverse=True)
        return tuple(FieldWeight(name, weight) for name, weight in ordered)
