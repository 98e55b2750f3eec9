"""Closest-spelling proposals from an indexed vocabulary."""
from __future__ import annotations

import difflib
from collections.abc import Iterable

from docsearch.config.constants import DEFAULT_SPELLING_CUTOFF
from docsearch.models import SuggestionCandidate


class Speller:
    """Corrects each unknown word to its closest vocabulary entry.

    Words already in the vocabulary, and words with no close match, are kept
    as typed. Only corrected words are wrapped in the highlight tags.
    """

    def __init__(self, cutoff: float = DEFAULT_SPELLING_CUTOFF, pre_tag: str = "", post_tag: str = ""):
        self.cutoff = cutoff
        self.pre_tag = pre_tag
        self.post_tag = post_tag

    def correct(self, text: str, vocabulary: Iterable[str]) -> SuggestionCandidate | None:
        vocab = {w.lower() for w in vocabulary}
        if not vocab:
            return None

        corrected: list[str] = []
        highlighted: list[str] = []
        changed = False
        for word in text.split():
            lower = word.lower()
            match = None
            if lower not in vocab:
                candidates = difflib.get_close_matches(lower, vocab, n=1, cutoff=self.cutoff)
                match = candidates[0] if candidates else None
            if match is None:
                corrected.append(lower)
                highlighted.append(lower)
                continue
            changed = True
            corrected.append(match)
            highlighted.append(f"{self.pre_tag}{match}{self.post_tag}")

        if not changed:
            return None
        return SuggestionCandidate(text=" ".join(corrected), highlighted=" ".join(highlighted))
