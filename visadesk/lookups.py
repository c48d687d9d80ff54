"""
visadesk.lookups
================

Reference data (currencies, payer accounts, suppliers, credit accounts,
companies, positions, nationalities) and the provider that owns it for
the duration of a session.

The provider has an explicit lifecycle (:pymeth:`LookupProvider.start`
at session start, :pymeth:`LookupProvider.refresh` when a validation
signals staleness, :pymeth:`LookupProvider.close` at session end) and is
passed explicitly to whoever needs a snapshot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .models import ChargeEntity, ChargeOption

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LookupItem:
    """Plain id/name pair for non-payer reference lists."""
    item_id: int
    name: str


@dataclass(frozen=True)
class LookupSnapshot:
    """Immutable copy of every reference list, as returned by ``GetLookups``."""
    currencies: List[LookupItem] = field(default_factory=list)
    accounts: List[ChargeEntity] = field(default_factory=list)
    suppliers: List[ChargeEntity] = field(default_factory=list)
    credit_accounts: List[ChargeEntity] = field(default_factory=list)
    companies: List[LookupItem] = field(default_factory=list)
    positions: List[LookupItem] = field(default_factory=list)
    nationalities: List[LookupItem] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {
            "currencies": len(self.currencies),
            "accounts": len(self.accounts),
            "suppliers": len(self.suppliers),
            "credit_accounts": len(self.credit_accounts),
            "companies": len(self.companies),
            "positions": len(self.positions),
            "nationalities": len(self.nationalities),
        }

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        def items(rows: List[LookupItem]):
            return [{"id": r.item_id, "name": r.name} for r in rows]

        def entities(rows: List[ChargeEntity]):
            return [{"id": r.entity_id, "name": r.name} for r in rows]

        return {
            "currencies": items(self.currencies),
            "accounts": entities(self.accounts),
            "suppliers": entities(self.suppliers),
            "credit_accounts": entities(self.credit_accounts),
            "companies": items(self.companies),
            "positions": items(self.positions),
            "nationalities": items(self.nationalities),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, List[Dict[str, Any]]]) -> "LookupSnapshot":
        def items(key: str) -> List[LookupItem]:
            return [LookupItem(int(r["id"]), r["name"]) for r in data.get(key, [])]

        def entities(key: str, category: ChargeOption) -> List[ChargeEntity]:
            return [ChargeEntity(int(r["id"]), r["name"], category) for r in data.get(key, [])]

        return cls(
            currencies=items("currencies"),
            accounts=entities("accounts", ChargeOption.ACCOUNT),
            suppliers=entities("suppliers", ChargeOption.SUPPLIER),
            credit_accounts=entities("credit_accounts", ChargeOption.CREDIT_LINE),
            companies=items("companies"),
            positions=items("positions"),
            nationalities=items("nationalities"),
        )


class LookupProvider:
    """
    Session-scoped holder of the current :class:`LookupSnapshot`.

    Parameters
    ----------
    fetch : callable
        Zero-argument loader, typically ``gateway.get_lookups``.

    Example
    -------
    >>> with LookupProvider(gateway.get_lookups) as lp:
    ...     lp.snapshot.accounts
    """

    def __init__(self, fetch: Callable[[], LookupSnapshot]) -> None:
        self._fetch = fetch
        self._snapshot: Optional[LookupSnapshot] = None
        self.refresh_count = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> LookupSnapshot:
        """Load the first snapshot; a no-op if already started."""
        if self._snapshot is None:
            self._load()
        return self._snapshot

    def refresh(self) -> LookupSnapshot:
        """Reload from the source, replacing the current snapshot."""
        self.refresh_count += 1
        return self._load()

    def close(self) -> None:
        self._snapshot = None

    @property
    def started(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> LookupSnapshot:
        if self._snapshot is None:
            raise RuntimeError("lookup provider not started")
        return self._snapshot

    def _load(self) -> LookupSnapshot:
        self._snapshot = self._fetch()
        logger.info(f"Loaded lookups: {self._snapshot.counts()}")
        return self._snapshot

    # ----------------------------------------------------- context manager
    def __enter__(self) -> "LookupProvider":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
