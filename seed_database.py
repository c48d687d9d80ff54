#!/usr/bin/env python
"""
Seed database with reference data and sample cases for testing.

This script loads the lookup lists and creates a handful of cases at
different points of the pipeline so the dashboard queues show
meaningful data.  Stages are pushed through the real workflow service,
so every seeded case obeys the same rules as live traffic.
"""

import json
from datetime import date

from visadesk.errors import RejectedUpdate
from visadesk.gateway_db import DBCaseGateway
from visadesk.lookups import LookupSnapshot
from visadesk.models import Attachment, Case, ChargeOption, CustodyStatus
from visadesk.service import CaseService
from visadesk.db import SessionLocal, replace_lookups

# Account and supplier ids deliberately overlap (7 is both)
SAMPLE_LOOKUPS = {
    "currencies": [{"id": 1, "name": "AED"}, {"id": 2, "name": "USD"}],
    "accounts": [{"id": 7, "name": "Visa Expenses"}, {"id": 8, "name": "Government Fees"}],
    "suppliers": [{"id": 7, "name": "Al Noor Typing Centre"}, {"id": 12, "name": "Gulf Medical Clinic"}],
    "credit_accounts": [{"id": 3, "name": "Emirates NBD Credit Line"}],
    "companies": [{"id": 5, "name": "Desert Rose Trading LLC"}, {"id": 6, "name": "Marina Tech FZ-LLC"}],
    "positions": [{"id": 1, "name": "Sales Executive"}, {"id": 2, "name": "Accountant"}],
    "nationalities": [{"id": 1, "name": "India"}, {"id": 2, "name": "Philippines"}],
}

# Override the reference lists from sample_lookups.json if available
try:
    with open("sample_lookups.json", "r") as f:
        SAMPLE_LOOKUPS = json.load(f)
except (FileNotFoundError, json.JSONDecodeError):
    pass

SAMPLE_CASES = [
    Case(1001, "RAHUL MENON", "P1234567", date(1991, 4, 2), "M", 1),
    Case(1002, "MARIA SANTOS", "P7654321", date(1988, 11, 19), "F", 2),
    Case(1003, "ANIL KUMAR", "P5550001", date(1995, 1, 30), "M", 1),
    Case(1004, "GRACE REYES", "P5550002", date(1993, 7, 8), "F", 2),
    Case(1005, "SURESH PILLAI", "P5550003", date(1985, 3, 14), "M", 1),
]

# Per-stage demo inputs: (fields, charge option, entity id, attachment field)
_STAGE_INPUT = {
    1: ({"company": 5, "mbNumber": "MB2024001", "offerLetterCost": 150, "offerLetterCostCur": 1},
        ChargeOption.ACCOUNT, 7, None),
    2: ({"insuranceCost": 600, "insuranceCur": 1}, ChargeOption.SUPPLIER, 7, None),
    3: ({"labor_card_id": "LC-88231", "labour_card_fee": 300, "laborCardCur": 1},
        ChargeOption.ACCOUNT, 8, None),
    4: ({"eVisaCost": 1200, "eVisaCur": 1}, ChargeOption.SUPPLIER, 7, "eVisaFile"),
    5: ({"changeStatusCost": 650, "changeStatusCur": 1}, ChargeOption.ACCOUNT, 8, None),
    6: ({"medical_cost": 320, "medicalCostCur": 1}, ChargeOption.SUPPLIER, 12, None),
    7: ({"emiratesIDNumber": "784-1991-1234567-1", "emiratesIDCost": 370, "emiratesIDCur": 1},
        ChargeOption.CREDIT_LINE, 3, None),
    8: ({"visaStampingCost": 500, "visaStampingCur": 1, "expiry_date": "2027-06-30"},
        ChargeOption.ACCOUNT, 8, "visaStampingFile"),
}

# case id → number of stages to complete
_TARGET_PROGRESS = {1001: 0, 1002: 2, 1003: 4, 1004: 7, 1005: 8}


def advance(svc: CaseService, case_id: int, upto: int) -> None:
    for n in range(1, upto + 1):
        fields, option, entity_id, file_field = _STAGE_INPUT[n]
        attachment = Attachment(file_field, f"{case_id}-{file_field}.pdf", b"%PDF-1.4") if file_field else None
        svc.submit_stage_update(
            case_id, n, fields,
            charge_option=option,
            charged_entity_id=entity_id,
            attachment=attachment,
            mark_complete=True,
        ).unwrap()


def seed_database():
    """Add lookups and sample cases to the database."""
    with SessionLocal() as s:
        replace_lookups(s, LookupSnapshot.from_dict(SAMPLE_LOOKUPS))
    print(f"Loaded lookups: {LookupSnapshot.from_dict(SAMPLE_LOOKUPS).counts()}")

    gateway = DBCaseGateway()
    svc = CaseService(gateway)
    for case in SAMPLE_CASES:
        gateway.add(case)
        try:
            advance(svc, case.case_id, _TARGET_PROGRESS[case.case_id])
        except RejectedUpdate as exc:
            print(f"Skipped remaining stages of {case.case_id}: {exc}")
        print(f"Added: {case.passenger_name} (progress {svc.get_case(case.case_id).progress})")

    # one card already with the back office
    svc.submit_custody_update(1005, CustodyStatus.RECEIVED, {
        "eidNumber": "784-1985-7654321-2",
        "eidExpiryDate": "2027-06-30",
        "passenger_name": "SURESH PILLAI",
        "dob": "1985-03-14",
    }).unwrap()

    print(f"\nAdded {len(SAMPLE_CASES)} cases to the database!")


if __name__ == "__main__":
    # Initialize DB if needed
    from visadesk.db import create_all
    print("Ensuring database tables exist...")
    create_all()

    print("Seeding database with sample cases...")
    seed_database()

    print("\nDone! You can now run the API server with:")
    print("uvicorn api.main:app --reload --port 8000")
