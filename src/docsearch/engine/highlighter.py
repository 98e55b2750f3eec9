"""Fragment highlighting for engines without a native highlighter.

Exact phrases are highlighted in preference to loose terms: a term occurrence
inside a phrase span is never highlighted on its own, and phrase words are not
treated as loose terms.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from docsearch.config.constants import DEFAULT_FRAGMENT_SIZE

_WORD_RE = re.compile(r"[^\s\"'.,;:!?()\[\]{}<>/\\|¿¡।]+")
_SUFFIXES = ("ing", "ed", "es", "s", "al")
MAX_FRAGMENTS = 3


def phrase_pattern(phrase: str) -> re.Pattern[str]:
    """Case-insensitive pattern for a contiguous phrase on word boundaries."""
    words = phrase.split()
    return re.compile(
        r"(?<!\w)" + r"\s+".join(re.escape(w) for w in words) + r"(?!\w)",
        re.IGNORECASE,
    )


def stem(word: str) -> str:
    word = word.lower()
    for suffix in _SUFFIXES:
        if word.endswith(suffix) and len(word) - len(suffix) >= 3:
            return word[: -len(suffix)]
    return word


@dataclass(frozen=True)
class Span:
    start: int
    end: int


class Highlighter:
    def __init__(self, fragment_size: int = DEFAULT_FRAGMENT_SIZE, max_fragments: int = MAX_FRAGMENTS):
        self.fragment_size = fragment_size
        self.max_fragments = max_fragments

    def highlight(
        self,
        text: str,
        terms: tuple[str, ...] | list[str],
        phrases: tuple[str, ...] | list[str] = (),
        pre_tag: str = "",
        post_tag: str = "",
    ) -> list[str]:
        """Return highlighted fragments of ``text``, or [] when nothing matched."""
        if not text:
            return []
        spans = self.spans(text, terms, phrases)
        if not spans:
            return []

        if len(text) <= self.fragment_size:
            return [self._wrap(text, 0, len(text), spans, pre_tag, post_tag)]

        fragments = []
        covered_until = -1
        for span in spans:
            if span.start < covered_until:
                continue
            start, end = self._window(text, span)
            fragments.append(self._wrap(text, start, end, spans, pre_tag, post_tag))
            covered_until = end
            if len(fragments) >= self.max_fragments:
                break
        return fragments

    def spans(
        self,
        text: str,
        terms: tuple[str, ...] | list[str],
        phrases: tuple[str, ...] | list[str] = (),
    ) -> list[Span]:
        spans: list[Span] = []
        for phrase in phrases:
            if phrase.split():
                spans.extend(Span(m.start(), m.end()) for m in phrase_pattern(phrase).finditer(text))

        stems = {stem(t) for t in terms}
        lowered = {t.lower() for t in terms}
        for match in _WORD_RE.finditer(text):
            word = match.group(0).lower()
            if word not in lowered and stem(word) not in stems:
                continue
            if any(s.start <= match.start() < s.end for s in spans):
                continue
            spans.append(Span(match.start(), match.end()))

        spans.sort(key=lambda s: s.start)
        return spans

    def _window(self, text: str, span: Span) -> tuple[int, int]:
        size = self.fragment_size
        pad = max(0, (size - (span.end - span.start)) // 2)
        start = max(0, span.start - pad)
        end = min(len(text), start + max(size, span.end - span.start))
        start = max(0, min(start, end - size))

        # Snap to whole words.
        if start > 0 and not text[start - 1].isspace():
            while start < span.start and not text[start].isspace():
                start += 1
        while start < span.start and text[start].isspace():
            start += 1
        if end < len(text) and not text[end].isspace():
            while end > span.end and not text[end - 1].isspace():
                end -= 1
        while end > span.end and text[end - 1].isspace():
            end -= 1
        return start, end

    @staticmethod
    def _wrap(text: str, start: int, end: int, spans: list[Span], pre_tag: str, post_tag: str) -> str:
        out = []
        cursor = start
        for span in spans:
            if span.end <= start or span.start >= end:
                continue
            s, e = max(span.start, start), min(span.end, end)
            out.append(text[cursor:s])
            out.append(f"{pre_tag}{text[s:e]}{post_tag}")
            cursor = e
        out.append(text[cursor:end])
        return "".join(out)
