import logging
import re

from docsearch.core.errors import ParseError
from docsearch.models import QuerySpec, SiteFilter


logger = logging.getLogger(__name__)

_PHRASE_RE = re.compile(r'"([^"]*)"')
_GROUP_RE = re.compile(r"\(([^()]*)\)")
_SITE_RE = re.compile(r"^(-?)site:(.*)$", re.IGNORECASE)
_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)
_TOKEN_RE = re.compile(r"[^\s\"'.,;:!?()\[\]{}<>/\\|¿¡।]+")


def tokenize(text: str) -> list[str]:
    """Lowercased word tokens, punctuation stripped."""
    return [t.lower() for t in _TOKEN_RE.findall(text)]


class QueryParser:
    """Splits a raw query into free text, exact phrases and site filters."""

    def parse(self, query: str | None) -> QuerySpec:
        if not query:
            return QuerySpec()

        # Quoted spans first so a quoted "site:x" stays a phrase.
        phrases = [p.strip() for p in _PHRASE_RE.findall(query) if tokenize(p)]
        query = _PHRASE_RE.sub(" ", query).replace('"', " ")

        included: list[SiteFilter] = []
        excluded: list[SiteFilter] = []

        def collect(token: str) -> bool:
            match = _SITE_RE.match(token)
            if not match:
                return False
            try:
                site = self._site_filter(match.group(2), exclude=bool(match.group(1)))
            except ParseError as exc:
                logger.debug("Ignoring malformed site operator %r: %s", token, exc)
                return True
            target = excluded if site.exclude else included
            if site not in target:
                target.append(site)
            return True

        def replace_group(match: re.Match) -> str:
            tokens = match.group(1).split()
            if tokens and all(_SITE_RE.match(t) for t in tokens):
                for token in tokens:
                    collect(token)
                return " "
            return f" {match.group(1)} "

        query = _GROUP_RE.sub(replace_group, query)

        words = [token for token in query.split() if not collect(token)]
        # Punctuation alone has nothing to match.
        if not tokenize(" ".join(words)):
            words = []

        return QuerySpec(
            text=" ".join(words),
            phrases=tuple(dict.fromkeys(phrases)),
            included_sites=tuple(included),
            excluded_sites=tuple(excluded),
        )

    def _site_filter(self, value: str, *, exclude: bool) -> SiteFilter:
        value = _SCHEME_RE.sub("", value.strip())
        host, _, path = value.partition("/")
        host = host.strip().lower()
        if not host:
            raise ParseError("site operator requires a host")
        segments = tuple(segment for segment in path.split("/") if segment)
        return SiteFilter(host=host, path_segments=segments, exclude=exclude)
