"""
visadesk.db
===========

SQLite persistence layer for VisaDesk.

This module exposes:

* ``engine`` – a global SQLModel engine pointing at *visadesk.db*
* ``SessionLocal`` – a session factory used via ``with SessionLocal() as s:``
* ``create_all()`` – helper to create tables at first run
* table models for cases, lookups and attachments plus CRUD helpers
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column, LargeBinary, delete, update
from sqlmodel import Field, Session, SQLModel, create_engine, select

from visadesk.lookups import LookupItem, LookupSnapshot
from visadesk.models import Attachment, Case, ChargeEntity, ChargeOption
from visadesk.settings import DB_ECHO, DB_URL

# ---------------------------------------------------------------------------
# Engine (SQLite file lives in project root unless VISADESK_DB_URL is set)
# ---------------------------------------------------------------------------
_CONNECT_ARGS = {"check_same_thread": False} if DB_URL.startswith("sqlite") else {}
engine = create_engine(DB_URL, echo=DB_ECHO, connect_args=_CONNECT_ARGS)


# ---------------------------------------------------------------------------
# Session factory
# ---------------------------------------------------------------------------
def SessionLocal() -> Session:  # noqa: N802 (factory camel-case for consistency with FastAPI docs)
    """Return a new Session bound to the global engine."""
    return Session(engine)


# ---------------------------------------------------------------------------
# ORM models
# ---------------------------------------------------------------------------
class CaseRow(SQLModel, table=True):
    """
    SQLite-backed representation of a :class:`visadesk.models.Case`.

    Stage records, the custody record and the cancellation are stored as
    JSON documents; the flags used for queue queries are real columns.
    """
    __tablename__ = "cases"

    case_id: int = Field(primary_key=True)
    passenger_name: str
    passport_number: str = ""
    dob: Optional[date] = None
    gender: Optional[str] = None
    nationality: Optional[int] = None
    sale_price: str = "0"
    currency_id: Optional[int] = None
    progress: int = Field(default=0, index=True)
    cancelled: bool = Field(default=False, index=True)
    on_hold: bool = False
    custody_status: str = Field(default="pending", index=True)
    version: int = 0
    stages: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    custody: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    cancellation: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))

    # ---------------------------------------------------------------------
    # Converters
    # ---------------------------------------------------------------------
    @classmethod
    def from_case(cls, case: Case) -> "CaseRow":
        """Create a DB row from an in-memory case."""
        data = case.to_dict()
        return cls(
            case_id=case.case_id,
            passenger_name=case.passenger_name,
            passport_number=case.passport_number,
            dob=case.dob,
            gender=case.gender,
            nationality=case.nationality,
            sale_price=data["sale_price"],
            currency_id=case.currency_id,
            progress=case.progress,
            cancelled=case.cancelled,
            on_hold=case.on_hold,
            custody_status=case.custody.status.value,
            version=case.version,
            stages=data["stages"],
            custody=data["custody"],
            cancellation=data["cancellation"],
        )

    def to_case(self) -> Case:
        """Convert the DB row back into a plain Case."""
        return Case.from_dict({
            "case_id": self.case_id,
            "passenger_name": self.passenger_name,
            "passport_number": self.passport_number,
            "dob": self.dob,
            "gender": self.gender,
            "nationality": self.nationality,
            "sale_price": self.sale_price,
            "currency_id": self.currency_id,
            "progress": self.progress,
            "cancelled": self.cancelled,
            "on_hold": self.on_hold,
            "stages": self.stages or {},
            "custody": self.custody or {},
            "cancellation": self.cancellation,
            "version": self.version,
        })


class LookupRow(SQLModel, table=True):
    """One reference-data row; *category* is the snapshot list it belongs to."""
    __tablename__ = "lookups"

    category: str = Field(primary_key=True)
    item_id: int = Field(primary_key=True)
    name: str


class AttachmentRow(SQLModel, table=True):
    __tablename__ = "attachments"

    id: Optional[int] = Field(default=None, primary_key=True)
    case_id: int = Field(index=True)
    field: str
    filename: str
    content_type: str = "application/octet-stream"
    content: bytes = Field(default=b"", sa_column=Column(LargeBinary))


_ENTITY_CATEGORIES = {
    "accounts": ChargeOption.ACCOUNT,
    "suppliers": ChargeOption.SUPPLIER,
    "credit_accounts": ChargeOption.CREDIT_LINE,
}
_ITEM_CATEGORIES = ("currencies", "companies", "positions", "nationalities")


# ---------------------------------------------------------------------------
# Convenience CRUD helpers
# ---------------------------------------------------------------------------
def insert_case(s: Session, case: Case) -> None:
    """Insert or overwrite a case row (intake / seeding)."""
    s.merge(CaseRow.from_case(case))
    s.commit()


def compare_and_save(s: Session, case: Case) -> bool:
    """
    Write *case* only if the stored version still equals ``case.version``;
    the stored version becomes ``case.version + 1``.  Returns False when
    no row matched.
    """
    row = CaseRow.from_case(case)
    values = row.model_dump(exclude={"case_id"})
    values["version"] = case.version + 1
    result = s.execute(
        update(CaseRow)
        .where(CaseRow.case_id == case.case_id, CaseRow.version == case.version)
        .values(**values)
    )
    s.commit()
    return result.rowcount == 1


def get_case(s: Session, case_id: int) -> Case | None:
    """Return a case by id or *None* if missing."""
    db_row = s.get(CaseRow, case_id)
    return db_row.to_case() if db_row else None


def get_version(s: Session, case_id: int) -> Optional[int]:
    db_row = s.get(CaseRow, case_id)
    return db_row.version if db_row else None


def all_cases(s: Session) -> list[Case]:
    """Return every case in the database."""
    rows = s.exec(select(CaseRow).order_by(CaseRow.case_id)).all()
    return [row.to_case() for row in rows]


def add_attachment(s: Session, case_id: int, att: Attachment) -> None:
    """Store *att*, replacing any earlier file under the same field."""
    s.execute(
        delete(AttachmentRow)
        .where(AttachmentRow.case_id == case_id, AttachmentRow.field == att.field)
    )
    s.add(AttachmentRow(
        case_id=case_id,
        field=att.field,
        filename=att.filename,
        content_type=att.content_type,
        content=att.content,
    ))
    s.commit()


def get_attachment(s: Session, case_id: int, field: str) -> Optional[Attachment]:
    r = s.exec(
        select(AttachmentRow)
        .where(AttachmentRow.case_id == case_id, AttachmentRow.field == field)
    ).first()
    return Attachment(r.field, r.filename, r.content, r.content_type) if r else None


def get_attachments(s: Session, case_id: int) -> List[Attachment]:
    rows = s.exec(select(AttachmentRow).where(AttachmentRow.case_id == case_id)).all()
    return [Attachment(r.field, r.filename, r.content, r.content_type) for r in rows]


def replace_lookups(s: Session, snapshot: LookupSnapshot) -> None:
    """Replace every lookup row with the contents of *snapshot*."""
    s.execute(delete(LookupRow))
    for category in _ITEM_CATEGORIES:
        for item in getattr(snapshot, category):
            s.add(LookupRow(category=category, item_id=item.item_id, name=item.name))
    for category in _ENTITY_CATEGORIES:
        for ent in getattr(snapshot, category):
            s.add(LookupRow(category=category, item_id=ent.entity_id, name=ent.name))
    s.commit()


def load_lookups(s: Session) -> LookupSnapshot:
    rows = s.exec(select(LookupRow).order_by(LookupRow.category, LookupRow.item_id)).all()
    buckets: Dict[str, list] = {c: [] for c in (*_ITEM_CATEGORIES, *_ENTITY_CATEGORIES)}
    for r in rows:
        if r.category in _ENTITY_CATEGORIES:
            buckets[r.category].append(ChargeEntity(r.item_id, r.name, _ENTITY_CATEGORIES[r.category]))
        elif r.category in buckets:
            buckets[r.category].append(LookupItem(r.item_id, r.name))
    return LookupSnapshot(**buckets)


# ---------------------------------------------------------------------------
# Utility: create tables
# ---------------------------------------------------------------------------
def create_all(bind=None) -> None:
    """Create all tables for imported SQLModel subclasses."""
    SQLModel.metadata.create_all(bind or engine)


# ---------------------------------------------------------------------------
# Lightweight CLI
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    """
    Quick bootstrap helper.

    Examples
    --------
    $ python -m visadesk.db --create        # first-time table creation
    $ python -m visadesk.db --count         # number of stored cases
    """
    import argparse
    import textwrap

    parser = argparse.ArgumentParser(
        prog="python -m visadesk.db",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description=textwrap.dedent(
            """\
            VisaDesk DB utilities
            ---------------------
            --create   Create all SQLModel tables (safe if they already exist)
            --count    Print the number of stored cases per progress marker
            """
        ),
    )
    parser.add_argument("--create", action="store_true", help="create tables")
    parser.add_argument("--count", action="store_true", help="count cases by progress")
    args = parser.parse_args()

    if args.create:
        create_all()
        print("visadesk.db schema initialised")

    if args.count:
        with SessionLocal() as s:
            counts: Dict[int, int] = {}
            for c in all_cases(s):
                counts[c.progress] = counts.get(c.progress, 0) + 1
        for progress in sorted(counts):
            print(f"progress {progress:>2}: {counts[progress]}")
