"""
visadesk.charges
================

Charge-entity resolution: which payer rows are selectable for a charge
option, and whether a submitted entity really belongs to that option.

Account, supplier and credit-line ids overlap numerically, so every
check is made against the list of the *submitted* option only.
"""

from __future__ import annotations

from typing import List

from .errors import ErrorKind, Result
from .lookups import LookupSnapshot
from .models import ChargeEntity, ChargedEntityRef, ChargeOption


def list_entities(option: ChargeOption, lookups: LookupSnapshot) -> List[ChargeEntity]:
    """Return the selectable payer rows for *option*."""
    if option is ChargeOption.ACCOUNT:
        return list(lookups.accounts)
    if option is ChargeOption.SUPPLIER:
        return list(lookups.suppliers)
    if option is ChargeOption.CREDIT_LINE:
        return list(lookups.credit_accounts)
    raise ValueError(f"unknown charge option {option!r}")


def validate_entity(ref: ChargedEntityRef, lookups: LookupSnapshot) -> Result[None]:
    """
    Succeed if ``ref.entity_id`` is listed under ``ref.option``.

    Examples
    --------
    >>> validate_entity(ChargedEntityRef.account(7), lookups).ok
    True
    >>> validate_entity(ChargedEntityRef.supplier(7), lookups).error.kind
    <ErrorKind.INVALID_CHARGE_ENTITY: 'invalid_charge_entity'>
    """
    ids = {e.entity_id for e in list_entities(ref.option, lookups)}
    if ref.entity_id not in ids:
        return Result.failure(ErrorKind.INVALID_CHARGE_ENTITY, detail=str(ref))
    return Result.success()
