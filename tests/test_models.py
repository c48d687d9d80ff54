"""
tests/test_models.py
====================

Unit tests for the dataclasses and enums defined in visadesk.models.

Run:  pytest -q
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from visadesk.models import (
    Cancellation,
    Case,
    ChargedEntityRef,
    ChargeOption,
    CustodyStatus,
    StageRecord,
)


def test_new_case_defaults():
    """New case starts at progress 0 with pending custody."""
    c = Case(1, "JOHN DOE")
    assert c.progress == 0
    assert c.next_stage == 1
    assert c.custody.status is CustodyStatus.PENDING
    assert c.is_active


def test_str_on_enums():
    """Enum __str__ returns its name (nicer REPL)."""
    assert str(ChargeOption.SUPPLIER) == "SUPPLIER"
    assert str(CustodyStatus.RECEIVED) == "RECEIVED"


def test_progress_out_of_range_raises():
    with pytest.raises(ValueError):
        Case(1, "JOHN DOE", progress=11)


def test_record_unknown_stage_raises():
    with pytest.raises(ValueError):
        Case(1, "JOHN DOE").record(11)


def test_entity_refs_with_same_id_differ():
    """Account 7 and Supplier 7 are different payers."""
    assert ChargedEntityRef.account(7) != ChargedEntityRef.supplier(7)
    assert str(ChargedEntityRef.credit_line(3)) == "CREDIT_LINE(3)"


def test_next_stage_and_percent():
    c = Case(1, "JOHN DOE", progress=10)
    assert c.next_stage is None
    assert c.percent_complete() == 100
    assert Case(2, "JANE DOE", progress=3).percent_complete() == 30


def test_is_stage_completed_uses_progress_marker():
    """A store may return the progress marker without stage records."""
    c = Case(1, "JOHN DOE", progress=4)
    assert c.is_stage_completed(4)
    assert not c.is_stage_completed(5)
    assert c.is_stage_completed(0)


def test_case_dict_roundtrip_keeps_entity_category():
    c = Case(1, "JOHN DOE", dob=date(1990, 1, 1), sale_price=Decimal("1500.50"), progress=1)
    c.stages[1] = StageRecord(1, {"mbNumber": "MB1"}, ChargedEntityRef.supplier(7), "offer.pdf", True)
    c.cancellation = Cancellation(Decimal("25"), "duplicate", datetime(2025, 1, 1, 9, 30))

    restored = Case.from_dict(c.to_dict())

    assert restored == c
    assert restored.stages[1].charge_option is ChargeOption.SUPPLIER
