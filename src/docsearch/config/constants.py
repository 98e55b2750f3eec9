"""
Constants and default values for docsearch.

Centralizes ranking weights, boost tiers, bucket boundaries and environment
variable names so they can be reviewed in one place.
"""

from pathlib import Path

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "docsearch"
APP_VERSION = "0.3.0"
CONFIG_DIR_NAME = ".docsearch"

# ============================================================================
# Path Defaults
# ============================================================================

DEFAULT_DATA_DIR = Path.home() / CONFIG_DIR_NAME
DEFAULT_CONFIG_SUBDIR = "config"
DEFAULT_LOGS_SUBDIR = "logs"

# Config file names
SETTINGS_FILE = "settings.toml"
ENV_FILE = ".env"

# ============================================================================
# Search Defaults
# ============================================================================

DEFAULT_LANGUAGE = "en"
DEFAULT_SIZE = 10
DEFAULT_INDEX_NAMESPACE = "docsearch-documents"

# Highlight markers wrapped around matched spans. Empty by default so that
# highlighted fragments read as plain text.
DEFAULT_HIGHLIGHT_PRE_TAG = ""
DEFAULT_HIGHLIGHT_POST_TAG = ""
DEFAULT_FRAGMENT_SIZE = 50
FRAGMENT_SEPARATOR = "..."

# Fields always returned when present in the stored document.
DEFAULT_RESULT_FIELDS: tuple[str, ...] = (
    "title",
    "path",
    "created",
    "changed",
    "language",
    "description",
    "thumbnail_url",
)

# Fields whose matched spans are returned in place of the stored value.
HIGHLIGHT_FIELDS: tuple[str, ...] = ("title", "description", "content")

# ============================================================================
# Facets
# ============================================================================

FACET_KEYWORD = "keyword"
FACET_KEYWORD_LIST = "keyword_list"
FACET_DATE = "date"

# field -> storage kind. Keyword lists are multi-valued (comma separated at
# ingestion time).
FACET_FIELDS: dict[str, str] = {
    "audience": FACET_KEYWORD,
    "changed": FACET_DATE,
    "content_type": FACET_KEYWORD,
    "created": FACET_DATE,
    "mime_type": FACET_KEYWORD,
    "searchgov_custom1": FACET_KEYWORD_LIST,
    "searchgov_custom2": FACET_KEYWORD_LIST,
    "searchgov_custom3": FACET_KEYWORD_LIST,
    "tags": FACET_KEYWORD_LIST,
}

TAGS_FIELD = "tags"
CHANGED_FIELD = "changed"
CREATED_FIELD = "created"
LANGUAGE_FIELD = "language"
PATH_FIELD = "path"
PROMOTE_FIELD = "promote"
CLICK_COUNT_FIELD = "click_count"

# (label, newest age in days, oldest age in days). Anything older than the
# last bucket, or undated, is not reported.
DATE_BUCKETS: tuple[tuple[str, int, int], ...] = (
    ("Last Week", 0, 7),
    ("Last Month", 7, 30),
    ("Last Year", 30, 365),
)

# ============================================================================
# Ranking
# ============================================================================

# Analyzed text fields, highest weight first.
FIELD_WEIGHTS: dict[str, float] = {
    "title": 3.0,
    "description": 2.0,
    "content": 1.0,
    "basename": 1.0,
}

DEFAULT_PHRASE_BOOST = 2.0
DEFAULT_EXACT_PHRASE_BOOST = 4.0
DEFAULT_EXACT_FORM_BOOST = 1.5
DEFAULT_EXACT_VALUE_BOOST = 10.0
DEFAULT_PROMOTE_WEIGHT = 3.0
DEFAULT_CLICK_COUNT_FACTOR = 1.0

# extension -> multiplicative demotion factor
DEMOTED_EXTENSIONS: dict[str, float] = {
    "doc": 0.75,
    "docx": 0.75,
    "pdf": 0.75,
    "ppt": 0.75,
    "pptx": 0.75,
    "xls": 0.75,
    "xlsx": 0.75,
}

# Gaussian decay on the changed date.
DEFAULT_DECAY_SCALE_DAYS = 1825
DEFAULT_DECAY_OFFSET_DAYS = 30
DEFAULT_DECAY = 0.3

# Recall policy (common terms query semantics).
DEFAULT_CUTOFF_FREQUENCY = 0.05
DEFAULT_LOW_FREQ_MINIMUM_SHOULD_MATCH = "3<90%"
DEFAULT_HIGH_FREQ_MINIMUM_SHOULD_MATCH = "2<90%"

# ============================================================================
# Engine Defaults
# ============================================================================

DEFAULT_DATABASE = ":memory:"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_WORKERS = 4
DEFAULT_MEMORY_LIMIT_MB = 1024
ALIASES_TABLE = "index_aliases"

# Settings the ingestion side must build each FTS index with. Stopwords are
# kept so high frequency terms keep their document frequencies, and the
# ignore pattern keeps digits (DuckDB's default drops them).
FTS_STEMMER = "english"
FTS_STOPWORDS = "none"
FTS_IGNORE = r"(\.|[^a-z0-9])+"

# Minimum similarity ratio for a spelling correction.
DEFAULT_SPELLING_CUTOFF = 0.8

# ============================================================================
# Environment Variable Names
# ============================================================================

ENV_DATA_DIR = "DOCSEARCH_DATA_DIR"
ENV_DEFAULT_LANGUAGE = "DOCSEARCH_DEFAULT_LANGUAGE"
ENV_DEFAULT_SIZE = "DOCSEARCH_DEFAULT_SIZE"
ENV_INDEX_NAMESPACE = "DOCSEARCH_INDEX_NAMESPACE"
ENV_HIGHLIGHT_PRE_TAG = "DOCSEARCH_HIGHLIGHT_PRE_TAG"
ENV_HIGHLIGHT_POST_TAG = "DOCSEARCH_HIGHLIGHT_POST_TAG"
ENV_FRAGMENT_SIZE = "DOCSEARCH_FRAGMENT_SIZE"

ENV_DATABASE = "DOCSEARCH_DATABASE"
ENV_TIMEOUT = "DOCSEARCH_TIMEOUT_SECONDS"
ENV_MAX_WORKERS = "DOCSEARCH_MAX_WORKERS"
ENV_MEMORY_LIMIT = "DOCSEARCH_MEMORY_LIMIT_MB"

ENV_PROMOTE_WEIGHT = "DOCSEARCH_PROMOTE_WEIGHT"
ENV_CUTOFF_FREQUENCY = "DOCSEARCH_CUTOFF_FREQUENCY"

# ============================================================================
# Error Messages
# ============================================================================

ERROR_NO_CONFIG = """
Configuration file not found: {path}

Default location:
    {config_dir}/{settings_file}

Sections: [search], [engine], [ranking], [logging]
"""

ERROR_UNKNOWN_HANDLE = "Unknown collection handle: {handle!r} (no index behind alias {alias!r})"
ERROR_UNKNOWN_FACET = "Unknown facet field: {field!r}"
