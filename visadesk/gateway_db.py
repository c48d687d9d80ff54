"""
visadesk.gateway_db
===================

SQLite-backed implementation of :class:`visadesk.gateway.CaseGateway`.

This adapter wraps the CRUD helpers in :pymod:`visadesk.db` so that any
code written against the in-memory :class:`~visadesk.registry.CaseRegistry`
can switch to a persistent store without changing its calls.
"""

from __future__ import annotations

import copy
import logging
from typing import Iterable, Iterator, List, Optional

from sqlmodel import Session

from visadesk.db import (
    SessionLocal,
    add_attachment,
    all_cases,
    compare_and_save,
    get_attachment,
    get_case,
    get_version,
    insert_case,
    load_lookups,
)
from visadesk.errors import CaseNotFound, ConcurrentUpdateError
from visadesk.gateway import CaseGateway
from visadesk.lookups import LookupSnapshot
from visadesk.models import Attachment, Case

logger = logging.getLogger(__name__)


class DBCaseGateway(CaseGateway):
    """
    Drop-in replacement for :class:`~visadesk.registry.CaseRegistry` backed by SQLite.

    Methods mirror the in-memory registry:
    * add(case)
    * get_case(case_id) / save_case(case, attachments)
    * list_cases() / get_lookups()
    * iteration / len()
    """

    def __init__(self, session: Session | None = None) -> None:
        self._session: Session = session or SessionLocal()

    # ------------------------------------------------------------------ CRUD
    def add(self, case: Case) -> None:
        stored = copy.deepcopy(case)
        stored.version = max(stored.version, 1)
        insert_case(self._session, stored)

    def get_case(self, case_id: int) -> Case:
        case = get_case(self._session, case_id)
        if case is None:
            raise CaseNotFound(case_id)
        return case

    def save_case(self, case: Case, attachments: Iterable[Attachment] = ()) -> Case:
        if not compare_and_save(self._session, case):
            stored = get_version(self._session, case.case_id)
            if stored is None:
                raise CaseNotFound(case.case_id)
            logger.warning(f"Version conflict on case {case.case_id}: {case.version} != {stored}")
            raise ConcurrentUpdateError(case.case_id, case.version, stored)
        for att in attachments:
            add_attachment(self._session, case.case_id, att)
        return self.get_case(case.case_id)

    def list_cases(self) -> List[Case]:
        return all_cases(self._session)

    def get_attachment(self, case_id: int, field: str) -> Optional[Attachment]:
        return get_attachment(self._session, case_id, field)

    def get_lookups(self) -> LookupSnapshot:
        return load_lookups(self._session)

    # ------------------------------------------------------ dunder helpers
    def __iter__(self) -> Iterator[Case]:
        yield from all_cases(self._session)

    def __len__(self) -> int:
        return len(all_cases(self._session))

    # ----------------------------------------------------- context manager
    def __enter__(self) -> "DBCaseGateway":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._session.close()
