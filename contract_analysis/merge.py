"""Project a loosely-typed parsed tree onto the canonical AnalysisDocument."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from .schema import AnalysisDocument

LOGGER = logging.getLogger(__name__)


def canonical_default() -> Dict[str, Any]:
    """Return the canonical default document as a camelCase dictionary."""

    return AnalysisDocument().model_dump(by_alias=True)


def deep_merge(default: Mapping[str, Any], parsed: Mapping[str, Any]) -> Dict[str, Any]:
    """Key-wise merge of ``parsed`` over ``default``.

    Non-null parsed values win. Nested mappings merge recursively, lists are
    replaced wholesale, and a parsed value whose container type disagrees with
    the default (a string where a section is expected, say) is dropped. Keys
    the default does not know are carried along for the models to resolve
    (legacy aliases such as ``type`` or ``deadline``).
    """

    merged: Dict[str, Any] = dict(default)
    for key, value in parsed.items():
        if value is None:
            continue
        if key not in default:
            merged[key] = value
            continue
        base = default[key]
        if isinstance(base, Mapping):
            if isinstance(value, Mapping):
                merged[key] = deep_merge(base, value)
            else:
                LOGGER.debug("Ignoring non-object value for section %r", key)
        elif isinstance(base, list):
            if isinstance(value, list):
                merged[key] = list(value)
            else:
                LOGGER.debug("Ignoring non-list value for %r", key)
        elif isinstance(value, (Mapping, list)):
            LOGGER.debug("Ignoring structured value for scalar field %r", key)
        else:
            merged[key] = value
    return merged


def merge_analysis(parsed: Optional[Mapping[str, Any]]) -> AnalysisDocument:
    """Merge a parsed model answer into the canonical document.

    A section that still fails validation after coercion is reset to its
    default; the remaining sections are kept.
    """

    default = canonical_default()
    merged = deep_merge(default, parsed or {})
    try:
        return AnalysisDocument.model_validate(merged)
    except ValidationError as exc:
        LOGGER.warning("Merged analysis failed validation (%s errors); resetting bad sections", exc.error_count())
        bad_sections = {str(err["loc"][0]) for err in exc.errors() if err.get("loc")}
        for section in bad_sections:
            if section in default:
                merged[section] = default[section]
        try:
            return AnalysisDocument.model_validate(merged)
        except ValidationError:
            LOGGER.exception("Analysis could not be recovered section-wise; using canonical default")
            return AnalysisDocument()
