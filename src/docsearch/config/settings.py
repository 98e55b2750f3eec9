"""
Configuration management with environment variable and .env support.

Configuration precedence (highest to lowest):
1. Environment variables (DOCSEARCH_*)
2. User config file (~/.docsearch/config/settings.toml)
3. Hardcoded constants (constants.py)
"""

from __future__ import annotations

import os
from typing import overload
from dataclasses import dataclass, field
from pathlib import Path
import tomli
from dotenv import load_dotenv

from ..core.logging_config import LogConfig
from .constants import (
    DEFAULT_DATA_DIR,
    DEFAULT_CONFIG_SUBDIR,
    SETTINGS_FILE,
    ENV_FILE,
    # Defaults
    DEFAULT_LANGUAGE,
    DEFAULT_SIZE,
    DEFAULT_INDEX_NAMESPACE,
    DEFAULT_HIGHLIGHT_PRE_TAG,
    DEFAULT_HIGHLIGHT_POST_TAG,
    DEFAULT_FRAGMENT_SIZE,
    DEFAULT_DATABASE,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_MAX_WORKERS,
    DEFAULT_MEMORY_LIMIT_MB,
    DEFAULT_SPELLING_CUTOFF,
    FIELD_WEIGHTS,
    DEMOTED_EXTENSIONS,
    DEFAULT_PHRASE_BOOST,
    DEFAULT_EXACT_PHRASE_BOOST,
    DEFAULT_EXACT_FORM_BOOST,
    DEFAULT_EXACT_VALUE_BOOST,
    DEFAULT_PROMOTE_WEIGHT,
    DEFAULT_CLICK_COUNT_FACTOR,
    DEFAULT_DECAY_SCALE_DAYS,
    DEFAULT_DECAY_OFFSET_DAYS,
    DEFAULT_DECAY,
    DEFAULT_CUTOFF_FREQUENCY,
    DEFAULT_LOW_FREQ_MINIMUM_SHOULD_MATCH,
    DEFAULT_HIGH_FREQ_MINIMUM_SHOULD_MATCH,
    # Environment variable names
    ENV_DATA_DIR,
    ENV_DEFAULT_LANGUAGE,
    ENV_DEFAULT_SIZE,
    ENV_INDEX_NAMESPACE,
    ENV_HIGHLIGHT_PRE_TAG,
    ENV_HIGHLIGHT_POST_TAG,
    ENV_FRAGMENT_SIZE,
    ENV_DATABASE,
    ENV_TIMEOUT,
    ENV_MAX_WORKERS,
    ENV_MEMORY_LIMIT,
    ENV_PROMOTE_WEIGHT,
    ENV_CUTOFF_FREQUENCY,
    ERROR_NO_CONFIG,
)


# Load .env file at module import time
# Search order: ./.env, ~/.docsearch/.env, ~/.docsearch/config/.env
def _load_env_files():
    """Load .env files from standard locations."""
    env_locations = [
        Path.cwd() / ENV_FILE,
        DEFAULT_DATA_DIR / ENV_FILE,
        DEFAULT_DATA_DIR / DEFAULT_CONFIG_SUBDIR / ENV_FILE,
    ]

    for env_path in env_locations:
        if env_path.exists():
            load_dotenv(env_path, override=False)  # Don't override already-set vars


_load_env_files()


@overload
def _get_env_str(key: str, default: str) -> str: ...


@overload
def _get_env_str(key: str, default: None = None) -> str | None: ...


def _get_env_str(key: str, default: str | None = None) -> str | None:
    """Get string value from environment variable. Empty strings are treated as missing."""
    value = os.getenv(key)
    if value is None or value == "":
        return default
    return value


def _get_env_int(key: str, default: int) -> int:
    """Get integer value from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_env_float(key: str, default: float) -> float:
    """Get float value from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class SearchConfig:
    default_language: str
    default_size: int
    index_namespace: str
    highlight_pre_tag: str
    highlight_post_tag: str
    fragment_size: int

    @classmethod
    def from_dict(cls, data: dict) -> "SearchConfig":
        """Create SearchConfig from dict with environment variable overrides."""
        return cls(
            default_language=_get_env_str(
                ENV_DEFAULT_LANGUAGE,
                data.get("default_language", DEFAULT_LANGUAGE)
            ) or DEFAULT_LANGUAGE,
            default_size=_get_env_int(
                ENV_DEFAULT_SIZE,
                data.get("default_size", DEFAULT_SIZE)
            ),
            index_namespace=_get_env_str(
                ENV_INDEX_NAMESPACE,
                data.get("index_namespace", DEFAULT_INDEX_NAMESPACE)
            ) or DEFAULT_INDEX_NAMESPACE,
            # Tags may legitimately be empty, so read them without the
            # empty-as-missing rule.
            highlight_pre_tag=os.getenv(
                ENV_HIGHLIGHT_PRE_TAG,
                data.get("highlight_pre_tag", DEFAULT_HIGHLIGHT_PRE_TAG),
            ),
            highlight_post_tag=os.getenv(
                ENV_HIGHLIGHT_POST_TAG,
                data.get("highlight_post_tag", DEFAULT_HIGHLIGHT_POST_TAG),
            ),
            fragment_size=_get_env_int(
                ENV_FRAGMENT_SIZE,
                data.get("fragment_size", DEFAULT_FRAGMENT_SIZE)
            ),
        )


@dataclass
class EngineConfig:
    database: str
    timeout_seconds: float
    max_workers: int
    memory_limit_mb: int
    spelling_cutoff: float

    @classmethod
    def from_dict(cls, data: dict) -> "EngineConfig":
        """Create EngineConfig from dict with environment variable overrides."""
        return cls(
            database=_get_env_str(
                ENV_DATABASE,
                data.get("database", DEFAULT_DATABASE)
            ) or DEFAULT_DATABASE,
            timeout_seconds=_get_env_float(
                ENV_TIMEOUT,
                float(data.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)),
            ),
            max_workers=_get_env_int(
                ENV_MAX_WORKERS,
                data.get("max_workers", DEFAULT_MAX_WORKERS)
            ),
            memory_limit_mb=_get_env_int(
                ENV_MEMORY_LIMIT,
                data.get("memory_limit_mb", DEFAULT_MEMORY_LIMIT_MB)
            ),
            spelling_cutoff=float(data.get("spelling_cutoff", DEFAULT_SPELLING_CUTOFF)),
        )


@dataclass
class RankingConfig:
    field_weights: dict[str, float] = field(default_factory=lambda: dict(FIELD_WEIGHTS))
    demoted_extensions: dict[str, float] = field(default_factory=lambda: dict(DEMOTED_EXTENSIONS))
    phrase_boost: float = DEFAULT_PHRASE_BOOST
    exact_phrase_boost: float = DEFAULT_EXACT_PHRASE_BOOST
    exact_form_boost: float = DEFAULT_EXACT_FORM_BOOST
    exact_value_boost: float = DEFAULT_EXACT_VALUE_BOOST
    promote_weight: float = DEFAULT_PROMOTE_WEIGHT
    click_count_factor: float = DEFAULT_CLICK_COUNT_FACTOR
    decay_scale_days: int = DEFAULT_DECAY_SCALE_DAYS
    decay_offset_days: int = DEFAULT_DECAY_OFFSET_DAYS
    decay: float = DEFAULT_DECAY
    cutoff_frequency: float = DEFAULT_CUTOFF_FREQUENCY
    low_freq_minimum_should_match: str = DEFAULT_LOW_FREQ_MINIMUM_SHOULD_MATCH
    high_freq_minimum_should_match: str = DEFAULT_HIGH_FREQ_MINIMUM_SHOULD_MATCH

    @classmethod
    def from_dict(cls, data: dict) -> "RankingConfig":
        """Create RankingConfig from dict with environment variable overrides.

        Table entries (``field_weights``, ``demoted_extensions``) merge over
        the defaults rather than replacing them.
        """
        weights = dict(FIELD_WEIGHTS)
        weights.update({k: float(v) for k, v in data.get("field_weights", {}).items()})
        demoted = dict(DEMOTED_EXTENSIONS)
        demoted.update({k.lower(): float(v) for k, v in data.get("demoted_extensions", {}).items()})

        decay = float(data.get("decay", DEFAULT_DECAY))
        if not 0.0 < decay < 1.0:
            raise ValueError("ranking.decay must be between 0 and 1 (exclusive)")

        return cls(
            field_weights=weights,
            demoted_extensions=demoted,
            phrase_boost=float(data.get("phrase_boost", DEFAULT_PHRASE_BOOST)),
            exact_phrase_boost=float(data.get("exact_phrase_boost", DEFAULT_EXACT_PHRASE_BOOST)),
            exact_form_boost=float(data.get("exact_form_boost", DEFAULT_EXACT_FORM_BOOST)),
            exact_value_boost=float(data.get("exact_value_boost", DEFAULT_EXACT_VALUE_BOOST)),
            promote_weight=_get_env_float(
                ENV_PROMOTE_WEIGHT,
                float(data.get("promote_weight", DEFAULT_PROMOTE_WEIGHT)),
            ),
            click_count_factor=float(data.get("click_count_factor", DEFAULT_CLICK_COUNT_FACTOR)),
            decay_scale_days=int(data.get("decay_scale_days", DEFAULT_DECAY_SCALE_DAYS)),
            decay_offset_days=int(data.get("decay_offset_days", DEFAULT_DECAY_OFFSET_DAYS)),
            decay=decay,
            cutoff_frequency=_get_env_float(
                ENV_CUTOFF_FREQUENCY,
                float(data.get("cutoff_frequency", DEFAULT_CUTOFF_FREQUENCY)),
            ),
            low_freq_minimum_should_match=str(
                data.get("low_freq_minimum_should_match", DEFAULT_LOW_FREQ_MINIMUM_SHOULD_MATCH)
            ),
            high_freq_minimum_should_match=str(
                data.get("high_freq_minimum_should_match", DEFAULT_HIGH_FREQ_MINIMUM_SHOULD_MATCH)
            ),
        )


@dataclass
class Config:
    search: SearchConfig
    engine: EngineConfig
    ranking: RankingConfig
    logging: LogConfig

    @classmethod
    def load(cls, config_path: Path | None = None) -> "Config":
        """
        Load configuration with proper precedence.

        Precedence (highest to lowest):
        1. Environment variables (DOCSEARCH_*)
        2. User config (~/.docsearch/config/settings.toml)
        3. Hardcoded constants

        Args:
            config_path: Optional explicit config file path

        Returns:
            Loaded Config object

        Raises:
            FileNotFoundError: If an explicit config path does not exist
        """
        if config_path is not None:
            config_file = config_path
        else:
            base_data_dir = Path(os.getenv(ENV_DATA_DIR, str(DEFAULT_DATA_DIR))).expanduser()
            config_file = base_data_dir / DEFAULT_CONFIG_SUBDIR / SETTINGS_FILE

        data = None
        if config_file.exists():
            with open(config_file, "rb") as f:
                data = tomli.load(f)

        if data is None:
            # Only raise error if an explicit config path was provided
            if config_path is not None:
                raise FileNotFoundError(
                    ERROR_NO_CONFIG.format(
                        path=config_path,
                        config_dir=DEFAULT_DATA_DIR / DEFAULT_CONFIG_SUBDIR,
                        settings_file=SETTINGS_FILE,
                    )
                )
            data = {}

        return cls(
            search=SearchConfig.from_dict(data.get("search", {})),
            engine=EngineConfig.from_dict(data.get("engine", {})),
            ranking=RankingConfig.from_dict(data.get("ranking", {})),
            logging=LogConfig(**data.get("logging", {})),
        )
