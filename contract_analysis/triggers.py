"""Named milestone dates that downstream scheduling keys off."""

from __future__ import annotations

from typing import Dict, Optional

from .schema import TBD, AnalysisDocument


def _concrete(value: Optional[str]) -> Optional[str]:
    if not value or value == TBD:
        return None
    return value


def collect_global_triggers(document: AnalysisDocument) -> Dict[str, Optional[str]]:
    """Map milestone names to ISO dates.

    "Opening of Escrow" is always present (None while unknown). Due diligence
    end, outside closing date and contingency deadlines are included only
    when the document has a concrete date for them.
    """

    triggers: Dict[str, Optional[str]] = {
        "Opening of Escrow": _concrete(document.escrow.opening_date),
    }
    dd_end = _concrete(document.due_diligence.end_date)
    if dd_end:
        triggers["Due Diligence End"] = dd_end
    outside = _concrete(document.closing_info.outside_date)
    if outside:
        triggers["Outside Closing Date"] = outside
    for index, contingency in enumerate(document.contingencies, start=1):
        deadline = _concrete(contingency.actual_date)
        if not deadline:
            continue
        name = contingency.name if contingency.name and contingency.name != TBD else f"Contingency {index}"
        triggers[name] = deadline
    return triggers
