"""End-to-end contract analysis: prompt, model call, repair, merge, validate."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

from .config import AnalysisConfig, ModelConfig, PipelineConfig
from .errors import ConfigurationError, ExtractionError, JSONParseError, ModelRequestError
from .fallback import synthesize_fallback
from .json_repair import parse_llm_response
from .llm_client import LLMClient
from .merge import merge_analysis
from .prompts import PROMPT_VERSION, build_analysis_prompt
from .schema import AnalysisDocument, AnalysisMeta
from .validation import validate_analysis

LOGGER = logging.getLogger(__name__)


class ModelClient(Protocol):
    async def get_model_response(self, prompt_text: str) -> str: ...


def _finalize(
    document: AnalysisDocument,
    *,
    source: str,
    truncated: bool,
    parse_strategy: Optional[str] = None,
) -> AnalysisDocument:
    report = validate_analysis(document)
    meta = AnalysisMeta(
        source=source,
        prompt_version=PROMPT_VERSION,
        parse_strategy=parse_strategy,
        truncated=truncated,
        warnings=list(report.warnings),
        is_valid=report.is_valid,
        # Fallback documents are never trusted, whatever the regexes found.
        confidence=report.confidence if source == "model" else 0.0,
    )
    return document.model_copy(update={"analysis_meta": meta})


def fallback_document(contract_text: Optional[str], *, truncated: bool = False) -> AnalysisDocument:
    """Fallback skeleton, validated and annotated like a model result."""

    return _finalize(synthesize_fallback(contract_text), source="fallback", truncated=truncated)


def analyze_response(
    response_text: Optional[str],
    contract_text: Optional[str] = "",
    *,
    truncated: bool = False,
) -> AnalysisDocument:
    """Turn a raw model response into a validated document.

    Extraction and parse failures fall back to pattern matching over
    ``contract_text`` (not the model response). Never raises.
    """

    try:
        data, strategy = parse_llm_response(response_text or "")
    except (ExtractionError, JSONParseError) as exc:
        LOGGER.warning("%s; using fallback extraction", exc)
        return fallback_document(contract_text, truncated=truncated)
    try:
        document = merge_analysis(data)
    except Exception:
        LOGGER.exception("Could not merge parsed analysis; using fallback extraction")
        return fallback_document(contract_text, truncated=truncated)
    if strategy != "direct":
        LOGGER.info("Model JSON needed repair (strategy=%s)", strategy)
    return _finalize(document, source="model", truncated=truncated, parse_strategy=strategy)


class ContractAnalyzer:
    """Runs one contract through the model and the repair pipeline.

    The model client is injected and owned by the caller; the analyzer keeps
    no per-request state and can be shared across concurrent analyses.
    """

    def __init__(self, client: ModelClient, config: Optional[AnalysisConfig] = None) -> None:
        if client is None:
            raise ConfigurationError("ContractAnalyzer requires a model client")
        self.client = client
        self.config = config or AnalysisConfig()

    async def analyze(self, contract_text: str) -> AnalysisDocument:
        """Analyze ``contract_text``. Only configuration errors propagate."""

        text = contract_text or ""
        if not text.strip():
            LOGGER.warning("Contract text is empty; skipping model call")
            return fallback_document(text)

        prompt = build_analysis_prompt(text, max_chars=self.config.max_contract_chars)
        if prompt.truncated:
            LOGGER.warning(
                "Contract text truncated from %s to %s characters", len(text), self.config.max_contract_chars
            )
        LOGGER.info("Requesting contract analysis (%s chars, prompt %s)", len(text), prompt.version)
        try:
            response_text = await self.client.get_model_response(prompt.text)
        except ConfigurationError:
            raise
        except ModelRequestError as exc:
            LOGGER.warning("Model request failed (%s): %s; using fallback extraction", exc.reason, exc)
            return fallback_document(text, truncated=prompt.truncated)
        except Exception:
            LOGGER.exception("Model client raised unexpectedly; using fallback extraction")
            return fallback_document(text, truncated=prompt.truncated)

        LOGGER.debug("Raw model response: %s", (response_text or "")[:1200])
        document = analyze_response(response_text, text, truncated=prompt.truncated)
        LOGGER.info(
            "Contract analysis completed (source=%s, confidence=%.2f, warnings=%s)",
            document.analysis_meta.source,
            document.analysis_meta.confidence,
            len(document.analysis_meta.warnings),
        )
        return document


def analyze_contract(
    contract_text: str,
    client: Optional[ModelClient] = None,
    config: Optional[PipelineConfig] = None,
) -> AnalysisDocument:
    """Synchronous convenience wrapper around :meth:`ContractAnalyzer.analyze`."""

    cfg = config or PipelineConfig(model=ModelConfig.from_env())
    llm = client if client is not None else LLMClient(cfg.model)
    return asyncio.run(ContractAnalyzer(llm, cfg.analysis).analyze(contract_text))
