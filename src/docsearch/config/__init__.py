"""Configuration management."""
from docsearch.config.settings import Config, SearchConfig, EngineConfig, RankingConfig
from docsearch.config.constants import *

__all__ = [
    "Config",
    "SearchConfig",
    "EngineConfig",
    "RankingConfig",
]
