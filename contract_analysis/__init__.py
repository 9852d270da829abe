"""Contract analysis: LLM JSON extraction, repair and validation."""

from importlib.metadata import version, PackageNotFoundError

from .analyzer import ContractAnalyzer, analyze_contract
from .errors import ConfigurationError, MissingCredentialsError, ModelRequestError
from .schema import AnalysisDocument

__all__ = [
    "__version__",
    "AnalysisDocument",
    "ConfigurationError",
    "ContractAnalyzer",
    "MissingCredentialsError",
    "ModelRequestError",
    "analyze_contract",
]

try:
    __version__ = version("contract-analysis")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.1.0"
