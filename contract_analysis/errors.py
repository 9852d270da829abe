"""Exception hierarchy for the contract analysis pipeline."""

from __future__ import annotations

from typing import Optional


class ContractAnalysisError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(ContractAnalysisError):
    """Operator misconfiguration. The only error that escapes ``analyze``."""


class MissingCredentialsError(ConfigurationError):
    """No API key is available for the model client."""


class ModelRequestError(ContractAnalysisError):
    """The model call failed or produced nothing usable."""

    def __init__(self, message: str, *, reason: str = "api_error", status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.reason = reason
        self.status_code = status_code


class ExtractionError(ContractAnalysisError):
    """No JSON-like object could be located in the model response."""


class JSONParseError(ContractAnalysisError):
    """Every repair and parse strategy was exhausted."""
