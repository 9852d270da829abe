"""Advisory validation of merged analysis documents."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from typing import Iterator, List, Tuple

from .schema import ISO_DATE_PATTERN, TBD, AnalysisDocument, Deposit

LOGGER = logging.getLogger(__name__)

_DATACLASS_KW = {"slots": True} if sys.version_info >= (3, 10) else {}

# Checks that feed the confidence score, in the order they are reported.
CRITICAL_CHECKS = ("purchase_price", "buyer_name", "seller_name", "opening_date")


@dataclass(**_DATACLASS_KW)
class ValidationReport:
    """Warnings about a document. Never blocks the document."""

    warnings: List[str] = field(default_factory=list)
    failed_checks: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.warnings

    @property
    def confidence(self) -> float:
        """Share of critical fields that were actually extracted."""

        missing = sum(1 for check in CRITICAL_CHECKS if check in self.failed_checks)
        return round(1.0 - missing / len(CRITICAL_CHECKS), 2)


def iter_date_fields(document: AnalysisDocument) -> Iterator[Tuple[str, str]]:
    """Yield ``(path, value)`` for every date-typed field in the document."""

    yield "escrow.openingDate", document.escrow.opening_date
    yield "deposits.firstDeposit.actualDate", document.deposits.first_deposit.actual_date
    yield "deposits.secondDeposit.actualDate", document.deposits.second_deposit.actual_date
    yield "dueDiligence.startDate", document.due_diligence.start_date
    yield "dueDiligence.endDate", document.due_diligence.end_date
    for idx, task in enumerate(document.due_diligence.tasks):
        yield f"dueDiligence.tasks[{idx}].actualDate", task.actual_date
    for idx, contingency in enumerate(document.contingencies):
        yield f"contingencies[{idx}].actualDate", contingency.actual_date
    yield "closingInfo.outsideDate", document.closing_info.outside_date
    for idx, condition in enumerate(document.special_conditions):
        yield f"specialConditions[{idx}].deadline", condition.deadline
    yield "financing.loanContingency.deadline", document.financing.loan_contingency.deadline


def _is_missing_name(name: str) -> bool:
    return not name or name.strip().upper() == TBD


def _check_deposit(label: str, deposit: Deposit, report: ValidationReport) -> None:
    until = deposit.refundable_until
    if until and until.strip().upper() == TBD:
        until = None
    if deposit.refundable and not until:
        report.warnings.append(f"{label} is refundable but has no refundableUntil")
        report.failed_checks.append(f"{label}.refundable")
    elif not deposit.refundable and until:
        report.warnings.append(f"{label} is non-refundable but carries refundableUntil={until!r}")
        report.failed_checks.append(f"{label}.refundable")


def validate_analysis(document: AnalysisDocument) -> ValidationReport:
    """Check a merged document for missing critical fields and inconsistencies."""

    report = ValidationReport()

    if not document.property_info.purchase_price:
        report.warnings.append("Purchase price not found")
        report.failed_checks.append("purchase_price")
    if _is_missing_name(document.parties.buyer.name):
        report.warnings.append("Buyer name not found")
        report.failed_checks.append("buyer_name")
    if _is_missing_name(document.parties.seller.name):
        report.warnings.append("Seller name not found")
        report.failed_checks.append("seller_name")
    if not document.escrow.opening_date or document.escrow.opening_date == TBD:
        report.warnings.append("Opening of escrow date not found")
        report.failed_checks.append("opening_date")

    for path, value in iter_date_fields(document):
        if value != TBD and not ISO_DATE_PATTERN.match(value or ""):
            report.warnings.append(f"Invalid date format in {path}: {value!r}")
            report.failed_checks.append(path)

    deposits = document.deposits
    _check_deposit("deposits.firstDeposit", deposits.first_deposit, report)
    _check_deposit("deposits.secondDeposit", deposits.second_deposit, report)
    total = sum(deposits.amounts)
    if total and abs(total - deposits.total_deposits) > 0.005:
        report.warnings.append(f"totalDeposits {deposits.total_deposits} does not equal sum of deposits {total}")
        report.failed_checks.append("deposits.totalDeposits")

    if report.warnings:
        LOGGER.warning("Analysis validation issues: %s", report.warnings)
    return report
