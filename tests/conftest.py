"""
Pytest configuration: make sure `import visadesk` and `import api` work
regardless of where pytest is invoked, and provide shared fixtures.

It prepends the project root (one directory above *tests/*) to
``sys.path`` **before** any tests are collected.
"""

import sys
from datetime import date
from pathlib import Path

import pytest

# /path/to/project/tests -> project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from visadesk.lookups import LookupProvider, LookupSnapshot  # noqa: E402
from visadesk.models import Attachment, Case, ChargeOption  # noqa: E402
from visadesk.registry import CaseRegistry  # noqa: E402
from visadesk.service import CaseService  # noqa: E402
from visadesk.settings import Settings  # noqa: E402

# account 7 and supplier 7 deliberately share a numeric id
LOOKUP_DATA = {
    "currencies": [{"id": 1, "name": "AED"}, {"id": 2, "name": "USD"}],
    "accounts": [{"id": 7, "name": "Visa Expenses"}, {"id": 8, "name": "Government Fees"}],
    "suppliers": [{"id": 7, "name": "Al Noor Typing"}, {"id": 12, "name": "Gulf Medical"}],
    "credit_accounts": [{"id": 3, "name": "Bank Credit Line"}],
    "companies": [{"id": 5, "name": "Desert Rose Trading"}],
    "positions": [{"id": 1, "name": "Accountant"}],
    "nationalities": [{"id": 1, "name": "India"}],
}

OFFER_LETTER = {"mbNumber": "MB123", "company": 5, "offerLetterCost": 50, "offerLetterCostCur": 1}

# minimal valid completion input for stages 1..10
STAGE_INPUT = {
    1: (OFFER_LETTER, ChargeOption.ACCOUNT, 7, None),
    2: ({"insuranceCost": 600, "insuranceCur": 1}, ChargeOption.SUPPLIER, 7, None),
    3: ({"labor_card_id": "LC-1", "labour_card_fee": 300, "laborCardCur": 1}, ChargeOption.ACCOUNT, 8, None),
    4: ({"eVisaCost": 1200, "eVisaCur": 1}, ChargeOption.SUPPLIER, 12, "eVisaFile"),
    5: ({"changeStatusCost": 650, "changeStatusCur": 1}, ChargeOption.ACCOUNT, 8, None),
    6: ({"medical_cost": 320, "medicalCostCur": 1}, ChargeOption.SUPPLIER, 12, None),
    7: ({"emiratesIDNumber": "784-1", "emiratesIDCost": 370, "emiratesIDCur": 1},
        ChargeOption.CREDIT_LINE, 3, None),
    8: ({"visaStampingCost": 500, "visaStampingCur": 1, "expiry_date": "2027-06-30"},
        ChargeOption.ACCOUNT, 7, "visaStampingFile"),
    9: ({"eid_received_date": "2025-01-10", "eid_expiry": "2027-06-30"}, None, None, None),
    10: ({"eid_delivered_datetime": "2025-01-12T10:00:00"}, None, None, None),
}


def stage_kwargs(n):
    """Keyword arguments completing stage *n* with valid demo input."""
    fields, option, entity_id, file_field = STAGE_INPUT[n]
    return {
        "fields": fields,
        "charge_option": option,
        "charged_entity_id": entity_id,
        "attachment": Attachment(file_field, f"{file_field}.pdf", b"%PDF") if file_field else None,
        "mark_complete": True,
    }


@pytest.fixture
def lookups():
    return LookupSnapshot.from_dict(LOOKUP_DATA)


@pytest.fixture
def case():
    return Case(1, "JOHN DOE", "P1234567", date(1990, 1, 1), "M", 1)


@pytest.fixture
def registry(lookups, case):
    reg = CaseRegistry(lookups)
    reg.add(case)
    return reg


@pytest.fixture
def service(registry):
    return CaseService(registry, LookupProvider(registry.get_lookups), Settings())
