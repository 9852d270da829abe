"""
Prompt template for real estate contract extraction.

There is exactly one template. Any change to the requested JSON shape or the
instructions must bump PROMPT_VERSION so stored analyses can be traced back to
the prompt that produced them. The shape below must stay in step with
contract_analysis/schema.py.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass

from .config import DEFAULT_MAX_CONTRACT_CHARS

_DATACLASS_KW = {"slots": True} if sys.version_info >= (3, 10) else {}

PROMPT_VERSION = "2024-06-r3"

TRUNCATION_MARKER = "\n\n[... contract text truncated after {limit} characters ...]"


CONTRACT_ANALYSIS_PROMPT = """
You are an expert real estate contract analyzer. Analyze this contract and extract key information into a structured JSON format.

CRITICAL REQUIREMENTS:
1. Extract EXACT dates, amounts, and names from the contract text
2. If information is unclear or missing, use "TBD" for dates and text, null for fields that do not apply
3. Calculate all date dependencies accurately
4. Identify ALL contingencies and deadlines
5. Capture complete party information including entity types

REQUIRED JSON STRUCTURE:
{
  "property": {
    "address": "Full property address exactly as written",
    "apn": "Assessor Parcel Number if mentioned, else null",
    "size": "Property size/acreage if mentioned, else null",
    "purchasePrice": <numeric value only>,
    "pricingStructure": "per-acre|per-unit|per-lot|per-square-foot|lump-sum|unknown",
    "unitPrice": <numeric price per unit, 0 for lump-sum>,
    "unitType": "acre|unit|lot|square foot or null",
    "propertyType": "residential|commercial|land|development"
  },
  "parties": {
    "buyer": {
      "name": "Exact legal name",
      "entityType": "Individual|LLC|Corporation|Partnership|Trust",
      "signatory": {"name": "Person signing", "title": "Title of signer"},
      "noticeAddress": {"street": "", "city": "", "state": "", "zip": "", "full": "Address for notices"},
      "contactInfo": {"phone": "", "fax": "", "email": "", "alternatePhone": "", "alternateEmail": ""},
      "attorney": {"name": "", "firm": "", "address": "", "phone": "", "fax": "", "email": ""}
    },
    "seller": {
      "name": "Exact legal name",
      "entityType": "Individual|LLC|Corporation|Partnership|Trust",
      "signatory": {"name": "Person signing", "title": "Title of signer"},
      "noticeAddress": {"street": "", "city": "", "state": "", "zip": "", "full": "Address for notices"},
      "contactInfo": {"phone": "", "fax": "", "email": "", "alternatePhone": "", "alternateEmail": ""},
      "attorney": {"name": "", "firm": "", "address": "", "phone": "", "fax": "", "email": ""}
    }
  },
  "titleCompany": {"name": "", "officer": "", "address": "", "phone": "", "fax": "", "email": ""},
  "escrowCompany": {"name": "", "officer": "", "address": "", "phone": "", "fax": "", "email": ""},
  "escrow": {
    "openingDate": "YYYY-MM-DD or TBD",
    "escrowCompany": "Name if mentioned",
    "escrowOfficer": "Name if mentioned"
  },
  "deposits": {
    "firstDeposit": {
      "amount": <numeric value>,
      "timing": "Exact contract language about when due",
      "actualDate": "YYYY-MM-DD calculated from timing, or TBD",
      "refundable": boolean,
      "refundableUntil": "YYYY-MM-DD or the condition ending refundability; null when not refundable",
      "status": "not_yet_due|due_soon|past_due|made"
    },
    "secondDeposit": {
      "amount": <numeric value>,
      "timing": "Exact contract language about when due",
      "actualDate": "YYYY-MM-DD calculated from timing, or TBD",
      "refundable": boolean,
      "refundableUntil": "YYYY-MM-DD or the condition ending refundability; null when not refundable",
      "status": "not_yet_due|due_soon|past_due|made"
    },
    "totalDeposits": <sum of all deposits>
  },
  "dueDiligence": {
    "period": "Exact contract language (e.g., '30 days from Opening of Escrow')",
    "startDate": "YYYY-MM-DD or TBD",
    "endDate": "YYYY-MM-DD or TBD",
    "tasks": [
      {
        "name": "Property Inspections",
        "timing": "Exact contract language with trigger reference",
        "triggerKey": "Opening of Escrow|Title Commitment|Loan Application|Environmental Report|Survey Completion",
        "daysFromTrigger": <number>,
        "businessDays": boolean,
        "actualDate": "YYYY-MM-DD calculated, or TBD",
        "critical": boolean,
        "description": "What must be done"
      }
    ]
  },
  "contingencies": [
    {
      "name": "Descriptive name",
      "timing": "Exact contract language",
      "triggerKey": "Opening of Escrow|Title Commitment|Loan Application|Environmental Report|Survey Completion",
      "daysFromTrigger": <number>,
      "businessDays": boolean,
      "actualDate": "YYYY-MM-DD calculated, or TBD",
      "critical": boolean,
      "description": "What buyer/seller must do",
      "silenceRule": "Approval|Termination|N/A",
      "responsibleParty": "buyer|seller|both"
    }
  ],
  "closingInfo": {
    "outsideDate": "YYYY-MM-DD or TBD",
    "actualClosing": "Description of actual closing terms",
    "extensions": {
      "automatic": boolean,
      "buyerOptions": "Description",
      "sellerOptions": "Description"
    },
    "possession": "When buyer gets possession",
    "prorations": "How costs are split"
  },
  "closingDocuments": {
    "exhibits": [{"document": "Document name", "exhibit": "Letter/Number", "included": boolean}],
    "required": [{"document": "Document name", "exhibit": "None or letter/number", "included": boolean}]
  },
  "specialConditions": [
    {"condition": "Description of special condition", "deadline": "YYYY-MM-DD or TBD", "party": "buyer|seller|both"}
  ],
  "financing": {
    "cashDeal": boolean,
    "loanAmount": <numeric or null>,
    "loanType": "Conventional|FHA|VA|etc or null",
    "loanContingency": {"exists": boolean, "deadline": "YYYY-MM-DD or TBD", "terms": "Description"}
  }
}

DATE RULES:
- Every date field must be YYYY-MM-DD or the literal string "TBD". Never put a phrase in a date field; contract language goes in "timing" or "period".
- If the contract says "5 business days after X", count only weekdays and set "businessDays": true
- If the contract says "30 days from X", count calendar days
- If the trigger date is unknown, use "TBD" for the actual date

TRIGGER KEYS:
- Use only: Opening of Escrow, Title Commitment, Loan Application, Environmental Report, Survey Completion
- If the trigger is something else, use null

ENTITY TYPE IDENTIFICATION:
- Look for "LLC", "Inc.", "Corporation", "Partnership", "Trust", "LP"
- Individual if no entity designator
- Pay attention to exact legal names

DEPOSITS:
- A refundable deposit must state refundableUntil; a non-refundable deposit must have refundableUntil null

CRITICAL vs STANDARD TASKS:
- Critical: Could terminate contract if not met
- Standard: Important but typically don't terminate contract

OUTPUT FORMAT:
- Return ONE JSON object and nothing else: no markdown fences, no comments, no explanations
- Use double quotes for every key and string value
- No trailing commas

ANALYZE THIS CONTRACT:
"""


@dataclass(frozen=True, **_DATACLASS_KW)
class PromptPayload:
    """Rendered prompt plus what happened to the contract text on the way in."""

    text: str
    truncated: bool
    version: str = PROMPT_VERSION


def truncate_contract_text(text: str, max_chars: int = DEFAULT_MAX_CONTRACT_CHARS) -> tuple[str, bool]:
    """Hard-cap the contract text, appending an explicit truncation marker."""

    if max_chars <= 0 or len(text) <= max_chars:
        return text, False
    return text[:max_chars] + TRUNCATION_MARKER.format(limit=max_chars), True


def build_analysis_prompt(contract_text: str, *, max_chars: int = DEFAULT_MAX_CONTRACT_CHARS) -> PromptPayload:
    """Render the extraction prompt for ``contract_text``."""

    body, truncated = truncate_contract_text(contract_text or "", max_chars)
    return PromptPayload(text=CONTRACT_ANALYSIS_PROMPT + body, truncated=truncated)
