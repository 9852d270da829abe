"""Canonical analysis document shape.

The defaults on these models *are* the canonical default document: every field
the prompt asks for exists here with a safe value ("TBD" for unknown text and
dates, 0 for amounts, null for fields that may legitimately not apply, empty
lists). Input values are coerced leniently; nothing here raises on a badly
typed model answer, the field simply keeps its default.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional

from dateutil import parser as date_parser
from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

LOGGER = logging.getLogger(__name__)

TBD = "TBD"
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_NULL_STRINGS = {"", "null", "none", "n/a", "na", "not specified", "not provided", "unknown"}
_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")
_MULTIPLIER = re.compile(r"\s*(k|mm|m|thousand|million)\b", re.IGNORECASE)
_MULTIPLIERS = {"k": 1_000, "thousand": 1_000, "m": 1_000_000, "mm": 1_000_000, "million": 1_000_000}
_DEFAULT_A = datetime(2000, 1, 1)
_DEFAULT_B = datetime(2001, 2, 2)


# -- scalar coercion --------------------------------------------------------


def coerce_date(value: Any) -> str:
    """Return an ISO ``YYYY-MM-DD`` string or ``"TBD"``."""

    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        return TBD
    text = value.strip()
    if not text or text.upper() == TBD:
        return TBD
    head = text[:10]
    if ISO_DATE_PATTERN.match(head):
        try:
            return date.fromisoformat(head).isoformat()
        except ValueError:
            return TBD
    try:
        # Anything the text leaves out is filled from the default, so parsing
        # against two different defaults exposes partial dates.
        first = date_parser.parse(text, default=_DEFAULT_A, dayfirst=False, fuzzy=True)
        second = date_parser.parse(text, default=_DEFAULT_B, dayfirst=False, fuzzy=True)
    except (ValueError, OverflowError):
        return TBD
    if first.date() != second.date():
        return TBD
    return first.date().isoformat()


def coerce_amount(value: Any) -> float:
    """Money-ish value to float; unparseable values become 0."""

    result = coerce_optional_amount(value)
    return 0.0 if result is None else result


def coerce_optional_amount(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return None
    text = value.replace(",", "").replace("$", "").strip()
    match = _NUMBER.search(text)
    if not match:
        return None
    number = float(match.group(0))
    suffix = _MULTIPLIER.match(text, match.end())
    if suffix:
        number *= _MULTIPLIERS[suffix.group(1).lower()]
    return number


def coerce_optional_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        match = _NUMBER.search(value)
        if match:
            return int(float(match.group(0)))
    return None


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "y", "1"}
    return False


def coerce_text(value: Any) -> str:
    """Free text that is expected in every contract; missing means ``"TBD"``."""

    result = coerce_optional_text(value)
    return TBD if result is None else result


def coerce_optional_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    if isinstance(value, bool):
        return None
    text = str(value).strip()
    if text.lower() in _NULL_STRINGS:
        return None
    return text


def _normalize_label(value: str) -> str:
    return re.sub(r"[^a-z0-9/]+", " ", value.lower()).strip()


def coerce_choice(value: Any, table: Mapping[str, str], default: Any) -> Any:
    """Map a free-form label onto a closed vocabulary, else ``default``."""

    if not isinstance(value, str):
        return default
    key = _normalize_label(value)
    if key.startswith("the "):
        key = key[4:]
    return table.get(key, default)


DateStr = Annotated[str, BeforeValidator(coerce_date)]
Amount = Annotated[float, BeforeValidator(coerce_amount)]
OptionalAmount = Annotated[Optional[float], BeforeValidator(coerce_optional_amount)]
OptionalInt = Annotated[Optional[int], BeforeValidator(coerce_optional_int)]
Flag = Annotated[bool, BeforeValidator(coerce_bool)]
Text = Annotated[str, BeforeValidator(coerce_text)]
OptionalText = Annotated[Optional[str], BeforeValidator(coerce_optional_text)]


# -- closed vocabularies ----------------------------------------------------

PricingStructure = Literal["per-acre", "per-unit", "per-lot", "per-square-foot", "lump-sum", "unknown"]
PropertyType = Literal["residential", "commercial", "land", "development"]
EntityType = Literal["Individual", "LLC", "Corporation", "Partnership", "Trust"]
TriggerKey = Literal[
    "Opening of Escrow",
    "Title Commitment",
    "Loan Application",
    "Environmental Report",
    "Survey Completion",
]
SilenceRule = Literal["Approval", "Termination", "N/A"]
ResponsibleParty = Literal["buyer", "seller", "both"]
DepositStatus = Literal["not_yet_due", "due_soon", "past_due", "made"]

PRICING_STRUCTURES: Dict[str, str] = {
    "per acre": "per-acre",
    "acre": "per-acre",
    "per unit": "per-unit",
    "unit": "per-unit",
    "per door": "per-unit",
    "per lot": "per-lot",
    "lot": "per-lot",
    "per square foot": "per-square-foot",
    "per sq ft": "per-square-foot",
    "per sqft": "per-square-foot",
    "per sf": "per-square-foot",
    "square foot": "per-square-foot",
    "lump sum": "lump-sum",
    "lumpsum": "lump-sum",
    "fixed": "lump-sum",
    "fixed price": "lump-sum",
    "unknown": "unknown",
}
PROPERTY_TYPES: Dict[str, str] = {
    "residential": "residential",
    "single family": "residential",
    "multifamily": "residential",
    "multi family": "residential",
    "commercial": "commercial",
    "retail": "commercial",
    "office": "commercial",
    "industrial": "commercial",
    "land": "land",
    "vacant land": "land",
    "raw land": "land",
    "development": "development",
}
ENTITY_TYPES: Dict[str, str] = {
    "individual": "Individual",
    "individuals": "Individual",
    "person": "Individual",
    "natural person": "Individual",
    "llc": "LLC",
    "l l c": "LLC",
    "limited liability company": "LLC",
    "corporation": "Corporation",
    "corp": "Corporation",
    "inc": "Corporation",
    "incorporated": "Corporation",
    "partnership": "Partnership",
    "lp": "Partnership",
    "llp": "Partnership",
    "limited partnership": "Partnership",
    "general partnership": "Partnership",
    "trust": "Trust",
    "revocable trust": "Trust",
    "living trust": "Trust",
}
TRIGGER_KEYS: Dict[str, str] = {
    "opening of escrow": "Opening of Escrow",
    "escrow opening": "Opening of Escrow",
    "open of escrow": "Opening of Escrow",
    "opening escrow": "Opening of Escrow",
    "title commitment": "Title Commitment",
    "title commitment received": "Title Commitment",
    "receipt of title commitment": "Title Commitment",
    "loan application": "Loan Application",
    "loan application submission": "Loan Application",
    "loan application submitted": "Loan Application",
    "environmental report": "Environmental Report",
    "environmental report completion": "Environmental Report",
    "receipt of environmental report": "Environmental Report",
    "survey completion": "Survey Completion",
    "completion of survey": "Survey Completion",
    "survey completed": "Survey Completion",
}
SILENCE_RULES: Dict[str, str] = {
    "approval": "Approval",
    "approve": "Approval",
    "approved": "Approval",
    "deemed approval": "Approval",
    "deemed approved": "Approval",
    "termination": "Termination",
    "terminate": "Termination",
    "terminated": "Termination",
    "deemed termination": "Termination",
    "deemed disapproval": "Termination",
    "n/a": "N/A",
    "na": "N/A",
    "not applicable": "N/A",
}
RESPONSIBLE_PARTIES: Dict[str, str] = {
    "buyer": "buyer",
    "purchaser": "buyer",
    "seller": "seller",
    "vendor": "seller",
    "both": "both",
    "buyer and seller": "both",
    "seller and buyer": "both",
    "either": "both",
    "either party": "both",
}
DEPOSIT_STATUSES: Dict[str, str] = {
    "not yet due": "not_yet_due",
    "pending": "not_yet_due",
    "due soon": "due_soon",
    "upcoming": "due_soon",
    "past due": "past_due",
    "overdue": "past_due",
    "late": "past_due",
    "made": "made",
    "paid": "made",
    "deposited": "made",
    "received": "made",
}


# -- records ----------------------------------------------------------------


class _Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _require_mapping(cls, data: Any) -> Any:
        if isinstance(data, (dict, BaseModel)):
            return data
        return {}


def _records(value: Any, promote_key: str) -> List[Any]:
    """Keep mapping entries of a list; bare strings become ``{promote_key: s}``."""

    if not isinstance(value, list):
        return []
    items: List[Any] = []
    for entry in value:
        if isinstance(entry, (dict, BaseModel)):
            items.append(entry)
        elif isinstance(entry, str) and entry.strip():
            items.append({promote_key: entry.strip()})
    return items


class PropertyInfo(_Record):
    address: Text = TBD
    apn: OptionalText = None
    size: OptionalText = None
    purchase_price: Amount = 0.0
    pricing_structure: PricingStructure = "unknown"
    unit_price: Amount = 0.0
    unit_type: OptionalText = None
    property_type: Optional[PropertyType] = None

    @field_validator("pricing_structure", mode="before")
    @classmethod
    def _coerce_pricing_structure(cls, v: Any) -> Any:
        return coerce_choice(v, PRICING_STRUCTURES, "unknown")

    @field_validator("property_type", mode="before")
    @classmethod
    def _coerce_property_type(cls, v: Any) -> Any:
        return coerce_choice(v, PROPERTY_TYPES, None)


class Signatory(_Record):
    name: OptionalText = None
    title: OptionalText = None


class NoticeAddress(_Record):
    street: OptionalText = None
    city: OptionalText = None
    state: OptionalText = None
    zip_code: OptionalText = Field(default=None, alias="zip")
    full: OptionalText = None


class ContactInfo(_Record):
    phone: OptionalText = None
    fax: OptionalText = None
    email: OptionalText = None
    alternate_phone: OptionalText = None
    alternate_email: OptionalText = None


class Attorney(_Record):
    name: OptionalText = None
    firm: OptionalText = None
    address: OptionalText = None
    phone: OptionalText = None
    fax: OptionalText = None
    email: OptionalText = None


class Party(_Record):
    name: Text = TBD
    # Legacy key first: after merging, the canonical key is always present.
    entity_type: Optional[EntityType] = Field(
        default=None, validation_alias=AliasChoices("type", "entityType"), serialization_alias="entityType"
    )
    signatory: Signatory = Field(default_factory=Signatory)
    notice_address: NoticeAddress = Field(default_factory=NoticeAddress)
    contact_info: ContactInfo = Field(default_factory=ContactInfo)
    attorney: Attorney = Field(default_factory=Attorney)

    @field_validator("entity_type", mode="before")
    @classmethod
    def _coerce_entity_type(cls, v: Any) -> Any:
        return coerce_choice(v, ENTITY_TYPES, None)

    @model_validator(mode="before")
    @classmethod
    def _lift_flat_contact(cls, data: Any) -> Any:
        """Accept the flat party shape (contact/phone/email/address on the party)."""

        if not isinstance(data, dict):
            return data
        lifted = dict(data)
        moves = (
            ("contact", "signatory", "name"),
            ("phone", "contactInfo", "phone"),
            ("fax", "contactInfo", "fax"),
            ("email", "contactInfo", "email"),
            ("address", "noticeAddress", "full"),
        )
        for flat_key, section, field in moves:
            flat_value = lifted.get(flat_key)
            if not isinstance(flat_value, str) or not flat_value.strip():
                continue
            nested = lifted.get(section)
            nested = dict(nested) if isinstance(nested, dict) else {}
            if nested.get(field) in (None, "", TBD):
                nested[field] = flat_value
                lifted[section] = nested
        return lifted


class Parties(_Record):
    buyer: Party = Field(default_factory=Party)
    seller: Party = Field(default_factory=Party)


class CompanyContact(_Record):
    name: OptionalText = None
    officer: OptionalText = None
    address: OptionalText = None
    phone: OptionalText = None
    fax: OptionalText = None
    email: OptionalText = None


class Escrow(_Record):
    opening_date: DateStr = TBD
    escrow_company: OptionalText = None
    escrow_officer: OptionalText = None


class Deposit(_Record):
    amount: Amount = 0.0
    timing: Text = TBD
    actual_date: DateStr = TBD
    refundable: Flag = False
    refundable_until: OptionalText = None
    status: DepositStatus = "not_yet_due"

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, v: Any) -> Any:
        return coerce_choice(v, DEPOSIT_STATUSES, "not_yet_due")


def _deposit_amount(data: Mapping[str, Any], alias: str, name: str) -> float:
    deposit = data.get(alias, data.get(name))
    if isinstance(deposit, Deposit):
        return deposit.amount
    if isinstance(deposit, dict):
        return coerce_amount(deposit.get("amount"))
    return 0.0


class Deposits(_Record):
    first_deposit: Deposit = Field(default_factory=Deposit)
    second_deposit: Deposit = Field(default_factory=Deposit)
    total_deposits: Amount = 0.0

    @property
    def amounts(self) -> List[float]:
        return [self.first_deposit.amount, self.second_deposit.amount]

    @model_validator(mode="before")
    @classmethod
    def _sum_total(cls, data: Any) -> Any:
        """totalDeposits is always the sum of the individual deposit amounts."""

        if not isinstance(data, dict):
            return data
        total = _deposit_amount(data, "firstDeposit", "first_deposit") + _deposit_amount(
            data, "secondDeposit", "second_deposit"
        )
        if not total:
            return data
        reported = coerce_amount(data.get("totalDeposits", data.get("total_deposits")))
        if reported and reported != total:
            LOGGER.info("Model reported totalDeposits=%s, replacing with sum of deposits %s", reported, total)
        updated = dict(data)
        updated.pop("total_deposits", None)
        updated["totalDeposits"] = total
        return updated


class Task(_Record):
    name: Text = Field(default=TBD, validation_alias=AliasChoices("name", "task"), serialization_alias="name")
    timing: Text = TBD
    trigger_key: Optional[TriggerKey] = Field(
        default=None,
        validation_alias=AliasChoices("triggerKey", "triggerEvent", "trigger_key"),
        serialization_alias="triggerKey",
    )
    days_from_trigger: OptionalInt = None
    business_days: Flag = False
    actual_date: DateStr = Field(
        default=TBD,
        validation_alias=AliasChoices("actualDate", "deadline", "actual_date"),
        serialization_alias="actualDate",
    )
    critical: Flag = False
    description: OptionalText = None

    @field_validator("trigger_key", mode="before")
    @classmethod
    def _coerce_trigger_key(cls, v: Any) -> Any:
        return coerce_choice(v, TRIGGER_KEYS, None)


class Contingency(Task):
    silence_rule: SilenceRule = "N/A"
    responsible_party: Optional[ResponsibleParty] = Field(
        default=None,
        validation_alias=AliasChoices("responsibleParty", "party", "responsible_party"),
        serialization_alias="responsibleParty",
    )

    @field_validator("silence_rule", mode="before")
    @classmethod
    def _coerce_silence_rule(cls, v: Any) -> Any:
        return coerce_choice(v, SILENCE_RULES, "N/A")

    @field_validator("responsible_party", mode="before")
    @classmethod
    def _coerce_responsible_party(cls, v: Any) -> Any:
        return coerce_choice(v, RESPONSIBLE_PARTIES, None)


class DueDiligence(_Record):
    period: Text = TBD
    start_date: DateStr = TBD
    end_date: DateStr = TBD
    tasks: List[Task] = Field(default_factory=list)

    @field_validator("tasks", mode="before")
    @classmethod
    def _coerce_tasks(cls, v: Any) -> Any:
        return _records(v, "name")


class Extensions(_Record):
    automatic: Flag = False
    buyer_options: OptionalText = None
    seller_options: OptionalText = None


class ClosingInfo(_Record):
    outside_date: DateStr = TBD
    actual_closing: Text = TBD
    extensions: Extensions = Field(default_factory=Extensions)
    possession: Text = TBD
    prorations: Text = TBD


class ClosingDocument(_Record):
    document: Text = TBD
    exhibit: OptionalText = None
    included: Flag = False


class ClosingDocuments(_Record):
    exhibits: List[ClosingDocument] = Field(default_factory=list)
    required: List[ClosingDocument] = Field(default_factory=list)

    @field_validator("exhibits", "required", mode="before")
    @classmethod
    def _coerce_documents(cls, v: Any) -> Any:
        return _records(v, "document")


class SpecialCondition(_Record):
    condition: Text = TBD
    deadline: DateStr = TBD
    party: Optional[ResponsibleParty] = None

    @field_validator("party", mode="before")
    @classmethod
    def _coerce_party(cls, v: Any) -> Any:
        return coerce_choice(v, RESPONSIBLE_PARTIES, None)


class LoanContingency(_Record):
    exists: Flag = False
    deadline: DateStr = TBD
    terms: OptionalText = None


class Financing(_Record):
    cash_deal: Flag = False
    loan_amount: OptionalAmount = None
    loan_type: OptionalText = None
    loan_contingency: LoanContingency = Field(default_factory=LoanContingency)


class AnalysisMeta(_Record):
    """How the document was produced and what the validator found."""

    source: Literal["model", "fallback"] = "model"
    prompt_version: OptionalText = None
    parse_strategy: OptionalText = None
    truncated: Flag = False
    warnings: List[str] = Field(default_factory=list)
    is_valid: Flag = False
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class AnalysisDocument(_Record):
    property_info: PropertyInfo = Field(default_factory=PropertyInfo, alias="property")
    parties: Parties = Field(default_factory=Parties)
    title_company: CompanyContact = Field(default_factory=CompanyContact)
    escrow_company: CompanyContact = Field(default_factory=CompanyContact)
    escrow: Escrow = Field(default_factory=Escrow)
    deposits: Deposits = Field(default_factory=Deposits)
    due_diligence: DueDiligence = Field(default_factory=DueDiligence)
    contingencies: List[Contingency] = Field(default_factory=list)
    closing_info: ClosingInfo = Field(default_factory=ClosingInfo)
    closing_documents: ClosingDocuments = Field(default_factory=ClosingDocuments)
    special_conditions: List[SpecialCondition] = Field(default_factory=list)
    financing: Financing = Field(default_factory=Financing)
    analysis_meta: AnalysisMeta = Field(default_factory=AnalysisMeta)

    @field_validator("contingencies", mode="before")
    @classmethod
    def _coerce_contingencies(cls, v: Any) -> Any:
        return _records(v, "name")

    @field_validator("special_conditions", mode="before")
    @classmethod
    def _coerce_special_conditions(cls, v: Any) -> Any:
        return _records(v, "condition")

    def to_json_dict(self) -> Dict[str, Any]:
        """camelCase dictionary in the shape the prompt requests."""

        return self.model_dump(by_alias=True, mode="json")
