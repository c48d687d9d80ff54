"""
visadesk.gateway
================

Abstract persistence boundary for cases and lookups.

Concrete gateways implement loading, saving (with optimistic-concurrency
check) and listing; the workflow code never talks to storage directly.
"""

__all__ = ["CaseGateway"]

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from visadesk.lookups import LookupSnapshot
from visadesk.models import Attachment, Case, CustodyStatus


class CaseGateway(ABC):
    """
    Abstract base for case stores.

    ``save_case`` must raise :class:`visadesk.errors.ConcurrentUpdateError`
    when ``case.version`` differs from the stored version, and return the
    stored copy with its version bumped.
    """

    @abstractmethod
    def get_case(self, case_id: int) -> Case:
        """Return the case or raise :class:`visadesk.errors.CaseNotFound`."""

    @abstractmethod
    def save_case(self, case: Case, attachments: Iterable[Attachment] = ()) -> Case:
        """Persist *case* (and any attachments) and return the stored copy."""

    @abstractmethod
    def list_cases(self) -> List[Case]:
        """Return every case in the store."""

    @abstractmethod
    def get_attachment(self, case_id: int, field: str) -> Optional[Attachment]:
        """Return the file stored under *field* for the case, or None."""

    @abstractmethod
    def get_lookups(self) -> LookupSnapshot:
        """Return a fresh lookup snapshot."""

    def find_by_custody(self, status: CustodyStatus, min_progress: int = 7) -> List[Case]:
        """Non-cancelled cases past *min_progress* whose card is in *status*."""
        return [
            c for c in self.list_cases()
            if not c.cancelled and c.progress >= min_progress and c.custody.status is status
        ]
