"""
visadesk.registry
=================

An in-memory :class:`~visadesk.gateway.CaseGateway` keyed by case id.

This module is intentionally simple (standard library only) so that
the workflow can be unit-tested without a database.
"""

from __future__ import annotations

import copy
from typing import Dict, Iterable, List, Optional, Tuple

from .errors import CaseNotFound, ConcurrentUpdateError
from .gateway import CaseGateway
from .lookups import LookupSnapshot
from .models import Attachment, Case


class CaseRegistry(CaseGateway):
    """
    Dictionary-backed case store.

    Example
    -------
    >>> reg = CaseRegistry(lookups)
    >>> reg.add(Case(1, "JOHN DOE"))
    >>> reg.get_case(1).version
    1
    """

    def __init__(self, lookups: Optional[LookupSnapshot] = None) -> None:
        self._cases: Dict[int, Case] = {}
        self._attachments: Dict[Tuple[int, str], Attachment] = {}
        self.lookups = lookups or LookupSnapshot()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def add(self, case: Case) -> None:
        """Insert or overwrite a case (intake), bypassing the version check."""
        stored = copy.deepcopy(case)
        stored.version = max(stored.version, 1)
        self._cases[case.case_id] = stored

    def get_case(self, case_id: int) -> Case:
        try:
            return copy.deepcopy(self._cases[case_id])
        except KeyError:
            raise CaseNotFound(case_id) from None

    def save_case(self, case: Case, attachments: Iterable[Attachment] = ()) -> Case:
        current = self._cases.get(case.case_id)
        if current is None:
            raise CaseNotFound(case.case_id)
        if current.version != case.version:
            raise ConcurrentUpdateError(case.case_id, case.version, current.version)
        stored = copy.deepcopy(case)
        stored.version = current.version + 1
        self._cases[case.case_id] = stored
        for att in attachments:
            self._attachments[(case.case_id, att.field)] = att
        return copy.deepcopy(stored)

    def list_cases(self) -> List[Case]:
        return [copy.deepcopy(c) for c in self._cases.values()]

    def get_lookups(self) -> LookupSnapshot:
        return self.lookups

    def get_attachment(self, case_id: int, field: str) -> Optional[Attachment]:
        return self._attachments.get((case_id, field))

    def attachment(self, case_id: int, field: str) -> Attachment:
        """Retrieve a stored attachment (raise KeyError if not present)."""
        return self._attachments[(case_id, field)]

    # ------------------------------------------------------------------
    # Dunder helpers for convenience
    # ------------------------------------------------------------------
    def __iter__(self):
        return iter(self.list_cases())

    def __len__(self) -> int:
        return len(self._cases)
