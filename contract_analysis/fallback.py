"""Pattern-based skeleton document used when structured extraction fails."""

from __future__ import annotations

import logging
import re
from typing import Optional

from .schema import AnalysisDocument, AnalysisMeta, PropertyInfo, TBD, coerce_optional_amount

LOGGER = logging.getLogger(__name__)

_DOLLAR_AMOUNT = re.compile(r"\$\s?(\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?)")
_ADDRESS_PHRASE = re.compile(
    r"\b(?:property\s+address|located\s+at|commonly\s+known\s+as|premises|address|located|property)\b"
    r"(?:\s+(?:is|at|known\s+as))?\s*:?\s*",
    re.IGNORECASE,
)
_MAX_ADDRESS_CHARS = 200


def find_purchase_price(text: str) -> Optional[float]:
    """First dollar amount in the text."""

    match = _DOLLAR_AMOUNT.search(text)
    if not match:
        return None
    return coerce_optional_amount(match.group(1))


def find_property_address(text: str) -> Optional[str]:
    """Text following an address-introducing phrase.

    A value starting with a street number wins; failing that, the first value
    containing a digit, then the first value found at all.
    """

    first: Optional[str] = None
    with_digit: Optional[str] = None
    for line in text.splitlines():
        for match in _ADDRESS_PHRASE.finditer(line):
            value = line[match.end() :].strip(" \t.,;:-")[:_MAX_ADDRESS_CHARS].strip()
            if not value:
                continue
            if value[0].isdigit():
                return value
            if with_digit is None and any(ch.isdigit() for ch in value):
                with_digit = value
            if first is None:
                first = value
    return with_digit or first


def synthesize_fallback(contract_text: Optional[str]) -> AnalysisDocument:
    """Build a canonical document from whatever simple patterns can recover.

    Never raises: on any internal error the canonical default is returned.
    """

    meta = AnalysisMeta(source="fallback")
    try:
        text = contract_text or ""
        price = find_purchase_price(text)
        address = find_property_address(text)
        LOGGER.info("Fallback extraction found price=%s address=%r", price, address)
        return AnalysisDocument(
            property_info=PropertyInfo(address=address or TBD, purchase_price=price or 0.0),
            analysis_meta=meta,
        )
    except Exception:  # pragma: no cover - terminal safety net
        LOGGER.exception("Fallback extraction failed; returning canonical default")
        return AnalysisDocument(analysis_meta=meta)
