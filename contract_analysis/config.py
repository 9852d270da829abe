"""Configuration dataclasses for the contract analysis pipeline."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import Mapping, Optional

_DATACLASS_KW = {"slots": True} if sys.version_info >= (3, 10) else {}

DEFAULT_MODEL_NAME = "gpt-4o-mini"
DEFAULT_NEBIUS_BASE_URL = "https://api.tokenfactory.nebius.com/v1/"
DEFAULT_MAX_CONTRACT_CHARS = 50_000


@dataclass(**_DATACLASS_KW)
class ModelConfig:
    """Configuration for the OpenAI-compatible chat completions client."""

    model_name: str = DEFAULT_MODEL_NAME
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    max_tokens: int = 8000
    temperature: float = 0.1
    timeout_seconds: float = 120.0
    max_retries: int = 2
    json_mode: bool = False
    message_content_mode: str = "string"  # "string" | "parts"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "ModelConfig":
        """Build a config from environment variables.

        ``NEBIUS_API_KEY`` wins over ``OPENAI_API_KEY``; the matching base URL
        variable is read alongside it. A missing key is not an error here,
        the client raises when it is constructed.
        """

        env = os.environ if environ is None else environ
        if env.get("NEBIUS_API_KEY"):
            api_key = env.get("NEBIUS_API_KEY")
            base_url = env.get("NEBIUS_BASE_URL", DEFAULT_NEBIUS_BASE_URL)
        else:
            api_key = env.get("OPENAI_API_KEY") or None
            base_url = env.get("OPENAI_BASE_URL") or None
        values = {
            "model_name": env.get("CONTRACT_ANALYSIS_MODEL", DEFAULT_MODEL_NAME),
            "api_key": api_key,
            "base_url": base_url,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass(**_DATACLASS_KW)
class AnalysisConfig:
    """Controls prompt rendering for a single analysis."""

    max_contract_chars: int = DEFAULT_MAX_CONTRACT_CHARS


@dataclass(**_DATACLASS_KW)
class PipelineConfig:
    """Top-level configuration bundle for the CLI pipeline."""

    model: ModelConfig = field(default_factory=ModelConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
