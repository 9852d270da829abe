import sys
import textwrap
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


SAMPLE_CONTRACT = textwrap.dedent(
    """
    VACANT LAND PURCHASE AGREEMENT AND JOINT ESCROW INSTRUCTIONS

    This Agreement is made between Desert Sun Holdings, LLC ("Buyer") and Maria Lopez, Trustee of the
    Lopez Family Trust ("Seller").

    1. Property. Seller agrees to sell the real property located at 4100 Ridge Road, Mesa, AZ 85207
    (APN 219-33-004), consisting of approximately 12.5 acres.

    2. Purchase Price. The purchase price is $1,250,000.00, payable in cash at Close of Escrow.

    3. Deposits. Within three (3) business days after Opening of Escrow, Buyer shall deposit
    $25,000 with Escrow Holder, refundable until expiration of the Feasibility Period.
    """
).strip()


CLEAN_RESPONSE = """Here is the analysis:
{
  "property": {"address": "4100 Ridge Road, Mesa, AZ 85207", "apn": "219-33-004", "purchasePrice": 1250000,
               "pricingStructure": "lump-sum", "propertyType": "land"},
  "parties": {
    "buyer": {"name": "Desert Sun Holdings, LLC", "entityType": "LLC"},
    "seller": {"name": "Lopez Family Trust", "entityType": "Trust"}
  },
  "escrow": {"openingDate": "2024-03-01"},
  "deposits": {
    "firstDeposit": {"amount": 25000, "timing": "3 business days after Opening of Escrow",
                     "actualDate": "2024-03-06", "refundable": true, "refundableUntil": "2024-04-01"},
    "totalDeposits": 25000
  },
  "dueDiligence": {"period": "30 days from Opening of Escrow", "startDate": "2024-03-01", "endDate": "2024-03-31",
    "tasks": [{"name": "Feasibility review", "timing": "30 days from Opening of Escrow",
               "triggerKey": "Opening of Escrow", "daysFromTrigger": 30, "actualDate": "2024-03-31", "critical": true}]},
  "contingencies": [{"name": "Title Review", "timing": "10 days after Title Commitment",
                     "triggerKey": "Title Commitment", "daysFromTrigger": 10, "actualDate": "2024-03-15",
                     "silenceRule": "Termination", "responsibleParty": "buyer"}],
  "closingInfo": {"outsideDate": "2024-05-15"}
}
Let me know if you need anything else."""


@pytest.fixture
def sample_contract() -> str:
    return SAMPLE_CONTRACT


@pytest.fixture
def clean_response() -> str:
    return CLEAN_RESPONSE
