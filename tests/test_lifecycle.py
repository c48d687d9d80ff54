"""
tests/test_lifecycle.py
=======================

Unit tests for visadesk.lifecycle.apply_update, cancel and set_hold
"""

import copy
import dataclasses
from datetime import datetime

import pytest

from conftest import OFFER_LETTER, stage_kwargs
from visadesk.errors import ErrorKind
from visadesk.lifecycle import apply_update, cancel, contiguous_progress, next_stage, set_hold
from visadesk.models import Attachment, ChargedEntityRef, ChargeOption
from visadesk.stages import definition_for


def _complete(case, lookups, upto):
    for n in range(1, upto + 1):
        case = apply_update(case, n, lookups=lookups, **stage_kwargs(n)).unwrap()
    return case


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------
def test_offer_letter_completion(case, lookups):
    """Completing stage 1 with account 7 moves progress to 1."""
    res = apply_update(case, 1, OFFER_LETTER, lookups,
                       charge_option=ChargeOption.ACCOUNT, charged_entity_id=7,
                       mark_complete=True)
    assert res.ok
    updated = res.value
    assert updated.progress == 1
    assert updated.stages[1].completed
    assert updated.stages[1].charged_entity == ChargedEntityRef.account(7)
    assert updated.stages[1].values["mbNumber"] == "MB123"


def test_offer_letter_resubmission_is_idempotent(case, lookups):
    kwargs = dict(charge_option=ChargeOption.ACCOUNT, charged_entity_id=7, mark_complete=True)
    once = apply_update(case, 1, OFFER_LETTER, lookups, **kwargs).unwrap()
    twice = apply_update(once, 1, OFFER_LETTER, lookups, **kwargs).unwrap()
    assert twice == once
    assert twice.progress == 1


def test_missing_charge_option(case, lookups):
    res = apply_update(case, 1, OFFER_LETTER, lookups, charged_entity_id=7, mark_complete=True)
    assert res.error.kind is ErrorKind.MISSING_CHARGE_OPTION
    assert case.progress == 0

    res = apply_update(case, 1, OFFER_LETTER, lookups, mark_complete=True)
    assert res.error.kind is ErrorKind.MISSING_CHARGE_OPTION


# ---------------------------------------------------------------------------
# Gating and progress
# ---------------------------------------------------------------------------
def test_gating_rejects_out_of_order_completion(case, lookups):
    before = copy.deepcopy(case)
    res = apply_update(case, 2, lookups=lookups, **stage_kwargs(2))
    assert res.error.kind is ErrorKind.PRIOR_STAGE_INCOMPLETE
    assert case == before


def test_gating_honours_progress_marker_without_records(case, lookups):
    case.progress = 3
    res = apply_update(case, 4, lookups=lookups, **stage_kwargs(4))
    assert res.ok
    assert res.value.progress == 4


def test_partial_update_of_later_stage_is_allowed(case, lookups):
    res = apply_update(case, 5, {"changeStatusCost": 100}, lookups)
    assert res.ok
    assert res.value.progress == 0
    assert not res.value.stages[5].completed


def test_progress_is_monotonic_and_equals_completed_prefix(case, lookups):
    seen = []
    for n in range(1, 11):
        case = apply_update(case, n, lookups=lookups, **stage_kwargs(n)).unwrap()
        seen.append(case.progress)
        assert case.progress == contiguous_progress(case)
    assert seen == list(range(1, 11))
    assert next_stage(case) is None


def test_reopening_stage_keeps_completion_and_later_stages(case, lookups):
    case = _complete(case, lookups, 3)
    res = apply_update(case, 2, {"insuranceCost": 650}, lookups)
    assert res.ok
    updated = res.value
    assert updated.stages[2].completed
    assert updated.stages[2].values["insuranceCost"] == "650"
    assert updated.stages[3] == case.stages[3]
    assert updated.progress == 3


# ---------------------------------------------------------------------------
# Field, charge and attachment validation
# ---------------------------------------------------------------------------
def test_missing_required_field_named_by_persisted_name(case, lookups):
    fields = {k: v for k, v in OFFER_LETTER.items() if k != "mbNumber"}
    res = apply_update(case, 1, fields, lookups, charge_option=ChargeOption.ACCOUNT,
                       charged_entity_id=7, mark_complete=True)
    assert res.error.kind is ErrorKind.MISSING_FIELD
    assert res.error.field == "mbNumber"


def test_blank_strings_count_as_not_supplied(case, lookups):
    res = apply_update(case, 1, {**OFFER_LETTER, "mbNumber": "  "}, lookups,
                       charge_option=ChargeOption.ACCOUNT, charged_entity_id=7,
                       mark_complete=True)
    assert res.error.field == "mbNumber"


def test_required_fields_may_come_from_earlier_partial_update(case, lookups):
    case = apply_update(case, 1, {"mbNumber": "MB9", "company": 5}, lookups).unwrap()
    res = apply_update(case, 1, {"offerLetterCost": 50, "offerLetterCostCur": 1}, lookups,
                       charge_option=ChargeOption.ACCOUNT, charged_entity_id=7,
                       mark_complete=True)
    assert res.ok
    assert res.value.stages[1].values["mbNumber"] == "MB9"


def test_supplier_with_account_only_id_rejected(case, lookups):
    """Id 8 exists only in the account list."""
    res = apply_update(case, 1, OFFER_LETTER, lookups,
                       charge_option=ChargeOption.SUPPLIER, charged_entity_id=8,
                       mark_complete=True)
    assert res.error.kind is ErrorKind.INVALID_CHARGE_ENTITY
    assert res.error.field == "offerLChargedEntity"
    assert res.error.lookup_dependent


def test_colliding_id_recorded_with_its_category(case, lookups):
    """7 is both an account and a supplier; the stored ref keeps the submitted one."""
    res = apply_update(case, 1, OFFER_LETTER, lookups,
                       charge_option=ChargeOption.SUPPLIER, charged_entity_id=7,
                       mark_complete=True)
    assert res.value.stages[1].charged_entity == ChargedEntityRef.supplier(7)


def test_option_without_entity_names_entity_column(case, lookups):
    res = apply_update(case, 3, {"labour_card_fee": 10}, lookups, charge_option=ChargeOption.ACCOUNT)
    assert res.error.kind is ErrorKind.MISSING_FIELD
    assert res.error.field == "lbrChargedEntity"


def test_changing_option_discards_stored_entity(case, lookups):
    case = apply_update(case, 1, {}, lookups, charge_option=ChargeOption.ACCOUNT,
                        charged_entity_id=8).unwrap()
    res = apply_update(case, 1, {}, lookups, charge_option=ChargeOption.SUPPLIER)
    assert res.error.kind is ErrorKind.MISSING_FIELD
    assert res.error.field == "offerLChargedEntity"


def test_stored_charge_reused_on_completion(case, lookups):
    case = apply_update(case, 1, OFFER_LETTER, lookups, charge_option=ChargeOption.ACCOUNT,
                        charged_entity_id=7).unwrap()
    res = apply_update(case, 1, {}, lookups, mark_complete=True)
    assert res.ok
    assert res.value.stages[1].charged_entity == ChargedEntityRef.account(7)


def test_charge_on_uncharged_stage_is_unknown_field(case, lookups):
    case.progress = 8
    res = apply_update(case, 9, {"eid_expiry": "2027-01-01"}, lookups,
                       charge_option=ChargeOption.ACCOUNT, charged_entity_id=7)
    assert res.error.kind is ErrorKind.UNKNOWN_FIELD


def test_unknown_field_rejected(case, lookups):
    res = apply_update(case, 2, {"insuranceCost": 5, "offerLetterCost": 5}, lookups)
    assert res.error.kind is ErrorKind.UNKNOWN_FIELD
    assert res.error.field == "offerLetterCost"


def test_non_numeric_cost_is_invalid_value(case, lookups):
    res = apply_update(case, 2, {"insuranceCost": "abc"}, lookups)
    assert res.error.kind is ErrorKind.INVALID_VALUE


def test_evisa_completes_without_file(case, lookups):
    case.progress = 3
    kwargs = stage_kwargs(4)
    kwargs["attachment"] = None

    res = apply_update(case, 4, lookups=lookups, **kwargs)
    assert res.ok
    assert res.value.progress == 4
    assert res.value.stages[4].attachment is None


def test_visa_stamping_completes_without_expiry(case, lookups):
    case.progress = 7
    kwargs = stage_kwargs(8)
    kwargs["fields"] = {k: v for k, v in kwargs["fields"].items() if k != "expiry_date"}

    res = apply_update(case, 8, lookups=lookups, **kwargs)
    assert res.ok
    assert res.value.progress == 8


def test_mandatory_attachment_required_only_at_completion(case, lookups, monkeypatch):
    """A stage that declares its file mandatory cannot complete without one."""
    strict = dataclasses.replace(definition_for(4), file_required=True)
    monkeypatch.setattr(
        "visadesk.lifecycle.definition_for",
        lambda n: strict if n == 4 else definition_for(n),
    )
    case.progress = 3
    kwargs = stage_kwargs(4)
    kwargs["attachment"] = None

    res = apply_update(case, 4, lookups=lookups, **kwargs)
    assert res.error.kind is ErrorKind.MISSING_ATTACHMENT
    assert res.error.field == "eVisaFile"

    # attachment supplied in an earlier partial update counts
    partial = apply_update(case, 4, {}, lookups,
                           attachment=Attachment("eVisaFile", "visa.pdf", b"x")).unwrap()
    assert apply_update(partial, 4, lookups=lookups, **kwargs).ok


def test_attachment_for_wrong_stage_rejected(case, lookups):
    res = apply_update(case, 1, {}, lookups, attachment=Attachment("eVisaFile", "visa.pdf"))
    assert res.error.kind is ErrorKind.UNKNOWN_FIELD


def test_unknown_stage_raises(case, lookups):
    with pytest.raises(ValueError):
        apply_update(case, 11, {}, lookups)


def test_input_case_never_mutated(case, lookups):
    before = copy.deepcopy(case)
    apply_update(case, 1, lookups=lookups, **stage_kwargs(1)).unwrap()
    assert case == before


# ---------------------------------------------------------------------------
# Cancel and hold
# ---------------------------------------------------------------------------
def test_cancelled_case_is_immutable(case, lookups):
    case = _complete(case, lookups, 2)
    cancelled = cancel(case, 0, "customer withdrew").unwrap()
    stages_before = copy.deepcopy(cancelled.stages)

    for n in (2, 3):
        res = apply_update(cancelled, n, lookups=lookups, **stage_kwargs(n))
        assert res.error.kind is ErrorKind.CASE_TERMINAL
    assert cancelled.stages == stages_before
    assert next_stage(cancelled) is None


def test_cancel_requires_remarks(case):
    assert cancel(case, 10, "").error.field == "remarks"
    assert cancel(case, 10, "   ").error.kind is ErrorKind.MISSING_FIELD


def test_cancel_rejects_bad_charge(case):
    assert cancel(case, -5, "x").error.kind is ErrorKind.INVALID_VALUE
    assert cancel(case, "ten", "x").error.field == "cancellation_charge"


def test_cancel_is_idempotent(case):
    first = cancel(case, 25, "duplicate", now=datetime(2025, 1, 1)).unwrap()
    again = cancel(first, 99, "other", now=datetime(2025, 2, 1)).unwrap()
    assert again == first
    assert str(again.cancellation.charge) == "25"


def test_on_hold_soft_rejects(case, lookups):
    held = set_hold(case, True).unwrap()
    res = apply_update(held, 1, lookups=lookups, **stage_kwargs(1))
    assert res.error.kind is ErrorKind.CASE_ON_HOLD
    assert res.error.retryable

    resumed = set_hold(held, False).unwrap()
    assert apply_update(resumed, 1, lookups=lookups, **stage_kwargs(1)).ok


def test_hold_on_cancelled_case_is_terminal(case):
    cancelled = cancel(case, 0, "withdrawn").unwrap()
    assert set_hold(cancelled, True).error.kind is ErrorKind.CASE_TERMINAL
