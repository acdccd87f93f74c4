"""FastAPI dependency providers."""

from functools import lru_cache

from glowcheck.config import GlowCheckConfig, load_config
from glowcheck.db import get_history_collection
from glowcheck.services.pipeline import AnalysisPipeline


@lru_cache(maxsize=1)
def get_config() -> GlowCheckConfig:
    """Configuration read once from the environment."""
    return load_config()


@lru_cache(maxsize=1)
def get_analysis_pipeline() -> AnalysisPipeline:
    return AnalysisPipeline.from_config(get_config())


def get_analyses_collection():
    return get_history_collection()
