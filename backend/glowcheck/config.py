"""Pipeline configuration built from the environment once and passed explicitly."""

from __future__ import annotations

import os
from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

KNOWN_PROVIDERS = ("primary", "openai", "gemini")

DEFAULT_VISION_ENDPOINT = "https://vision.googleapis.com/v1/images:annotate"
DEFAULT_PRIMARY_LLM_URL = "https://toolkit.rork.com/text/llm/"
DEFAULT_OPENAI_URL = "https://api.openai.com/v1/chat/completions"


class GlowCheckConfig(BaseModel):
    vision_api_key: Optional[str] = None
    vision_endpoint: str = DEFAULT_VISION_ENDPOINT

    primary_llm_url: Optional[str] = DEFAULT_PRIMARY_LLM_URL
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_url: str = DEFAULT_OPENAI_URL
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"
    assessment_providers: List[str] = Field(
        default_factory=lambda: ["primary", "openai"]
    )
    assessment_max_tokens: int = 2000
    assessment_temperature: float = 0.7

    detection_timeout_s: float = 20.0
    assessment_timeout_s: float = 60.0
    max_retries: int = 2
    retry_base_delay_s: float = 1.0

    analysis_history_limit: int = 5

    @field_validator("assessment_providers")
    @classmethod
    def _known_providers(cls, value: List[str]) -> List[str]:
        cleaned = [name.strip().lower() for name in value if name.strip()]
        unknown = [name for name in cleaned if name not in KNOWN_PROVIDERS]
        if unknown:
            raise ValueError(
                f"Unknown assessment providers {unknown}; expected any of {KNOWN_PROVIDERS}"
            )
        return cleaned

    def configured_providers(self) -> Dict[str, bool]:
        """Which providers have the credentials/endpoints they need."""
        return {
            "primary": bool(self.primary_llm_url),
            "openai": bool(self.openai_api_key),
            "gemini": bool(self.gemini_api_key),
        }


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    try:
        return float(env.get(key, default))
    except (TypeError, ValueError):
        return default


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    try:
        return int(env.get(key, default))
    except (TypeError, ValueError):
        return default


def load_config(env: Optional[Mapping[str, str]] = None) -> GlowCheckConfig:
    """Read pipeline settings from environment variables."""
    env = os.environ if env is None else env
    providers = env.get("ASSESSMENT_PROVIDERS", "primary,openai")
    return GlowCheckConfig(
        vision_api_key=env.get("GOOGLE_VISION_API_KEY") or None,
        vision_endpoint=env.get("GOOGLE_VISION_ENDPOINT", DEFAULT_VISION_ENDPOINT),
        primary_llm_url=env.get("PRIMARY_LLM_URL", DEFAULT_PRIMARY_LLM_URL) or None,
        openai_api_key=env.get("OPENAI_API_KEY") or None,
        openai_model=env.get("OPENAI_MODEL", "gpt-4o-mini"),
        openai_url=env.get("OPENAI_URL", DEFAULT_OPENAI_URL),
        gemini_api_key=env.get("GEMINI_API_KEY") or None,
        gemini_model=env.get("GEMINI_MODEL", "gemini-2.0-flash"),
        assessment_providers=providers.split(","),
        assessment_max_tokens=_env_int(env, "ASSESSMENT_MAX_TOKENS", 2000),
        assessment_temperature=_env_float(env, "ASSESSMENT_TEMPERATURE", 0.7),
        detection_timeout_s=_env_float(env, "DETECTION_TIMEOUT_S", 20.0),
        assessment_timeout_s=_env_float(env, "ASSESSMENT_TIMEOUT_S", 60.0),
        max_retries=max(0, _env_int(env, "MAX_RETRIES", 2)),
        retry_base_delay_s=max(0.0, _env_float(env, "RETRY_BASE_DELAY_S", 1.0)),
        analysis_history_limit=max(1, _env_int(env, "ANALYSIS_HISTORY_LIMIT", 5)),
    )
