"""
tests/test_custody.py
=====================

Unit tests for the Emirates-ID card custody pipeline.
"""

from datetime import date, datetime

import pytest

from visadesk.custody import BACK_FILE, FRONT_FILE, advance_custody
from visadesk.errors import ErrorKind
from visadesk.models import Attachment, CustodyStatus

CARD = {
    "eidNumber": "784-1990-1234567-1",
    "eidExpiryDate": "2027-06-30",
    "passenger_name": "JOHN A DOE",
    "dob": "1990-01-01",
}


@pytest.fixture
def eligible(case):
    case.progress = 7
    return case


def test_deliver_from_pending_is_illegal(eligible):
    res = advance_custody(eligible, CustodyStatus.DELIVERED, {})
    assert res.error.kind is ErrorKind.ILLEGAL_TRANSITION
    assert eligible.custody.status is CustodyStatus.PENDING


def test_pending_received_delivered(eligible):
    received = advance_custody(eligible, CustodyStatus.RECEIVED, CARD).unwrap()
    assert received.custody.status is CustodyStatus.RECEIVED

    delivered = advance_custody(received, CustodyStatus.DELIVERED, {"recipient": "sponsor"},
                                now=datetime(2025, 3, 1, 12, 0)).unwrap()
    assert delivered.custody.status is CustodyStatus.DELIVERED
    assert delivered.custody.values["delivered_at"] == "2025-03-01T12:00:00"
    assert delivered.custody.values["recipient"] == "sponsor"


def test_no_way_back(eligible):
    received = advance_custody(eligible, CustodyStatus.RECEIVED, CARD).unwrap()
    assert advance_custody(received, CustodyStatus.PENDING, {}).error.kind is ErrorKind.ILLEGAL_TRANSITION
    assert advance_custody(received, CustodyStatus.RECEIVED, CARD).error.kind is ErrorKind.ILLEGAL_TRANSITION


@pytest.mark.parametrize("missing", ["eidNumber", "eidExpiryDate", "passenger_name", "dob"])
def test_received_requires_identity_fields(eligible, missing):
    fields = {k: v for k, v in CARD.items() if k != missing}
    res = advance_custody(eligible, CustodyStatus.RECEIVED, fields)
    assert res.error.kind is ErrorKind.MISSING_FIELD
    assert res.error.field == missing


def test_received_updates_identity_on_case(eligible):
    updated = advance_custody(eligible, CustodyStatus.RECEIVED, {**CARD, "gender": "M"}).unwrap()
    assert updated.passenger_name == "JOHN A DOE"
    assert updated.dob == date(1990, 1, 1)
    assert updated.custody.values["eid_number"] == "784-1990-1234567-1"


def test_received_attachments_are_optional_front_and_back(eligible):
    files = [Attachment(FRONT_FILE, "front.jpg"), Attachment(BACK_FILE, "back.jpg")]
    updated = advance_custody(eligible, CustodyStatus.RECEIVED, CARD, files).unwrap()
    assert updated.custody.attachments == {FRONT_FILE: "front.jpg", BACK_FILE: "back.jpg"}

    dup = [Attachment(FRONT_FILE, "a.jpg"), Attachment(FRONT_FILE, "b.jpg")]
    assert advance_custody(eligible, CustodyStatus.RECEIVED, CARD, dup).error.kind is ErrorKind.UNKNOWN_FIELD


def test_not_eligible_before_emirates_id_stage(case):
    case.progress = 6
    assert advance_custody(case, CustodyStatus.RECEIVED, CARD).error.kind is ErrorKind.NOT_ELIGIBLE


def test_cancelled_and_held_cases(eligible):
    eligible.on_hold = True
    assert advance_custody(eligible, CustodyStatus.RECEIVED, CARD).error.kind is ErrorKind.CASE_ON_HOLD
    eligible.cancelled = True
    assert advance_custody(eligible, CustodyStatus.RECEIVED, CARD).error.kind is ErrorKind.CASE_TERMINAL
