"""
visadesk.models
===============

Dataclasses and enums representing a residence case, its per-stage
records and the Emirates-ID card custody record.  These objects carry
**no** external-library dependencies so that importing `visadesk` stays
fast.

Field values inside a :class:`StageRecord` are kept as JSON primitives
keyed by their *persisted* column name (``offerLetterCost``,
``lbrChargedEntity`` …); the typed view of a stage lives in
:pymod:`visadesk.stages`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any, Dict, Optional

TOTAL_STAGES = 10


class ChargeOption(IntEnum):
    """Payer category that absorbs a stage's cost."""
    ACCOUNT = 1
    SUPPLIER = 2
    CREDIT_LINE = 3

    def __str__(self) -> str:
        return self.name


class CustodyStatus(Enum):
    """Physical Emirates-ID card hand-off states."""
    PENDING = "pending"
    RECEIVED = "received"
    DELIVERED = "delivered"

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ChargedEntityRef:
    """
    A payer reference: an entity id is only meaningful together with its
    :class:`ChargeOption`, since account, supplier and credit-line ids
    share one numeric space.
    """
    option: ChargeOption
    entity_id: int

    @classmethod
    def account(cls, entity_id: int) -> "ChargedEntityRef":
        return cls(ChargeOption.ACCOUNT, entity_id)

    @classmethod
    def supplier(cls, entity_id: int) -> "ChargedEntityRef":
        return cls(ChargeOption.SUPPLIER, entity_id)

    @classmethod
    def credit_line(cls, entity_id: int) -> "ChargedEntityRef":
        return cls(ChargeOption.CREDIT_LINE, entity_id)

    def __str__(self) -> str:
        return f"{self.option.name}({self.entity_id})"


@dataclass(frozen=True)
class ChargeEntity:
    """Reference-data row (account, supplier or credit account)."""
    entity_id: int
    name: str
    category: ChargeOption

    @property
    def ref(self) -> ChargedEntityRef:
        return ChargedEntityRef(self.category, self.entity_id)


@dataclass(frozen=True)
class Attachment:
    """Binary file submitted with an update, keyed by its file field."""
    field: str
    filename: str
    content: bytes = b""
    content_type: str = "application/octet-stream"


@dataclass
class StageRecord:
    """
    Persisted value bag for one stage of one case.

    Parameters
    ----------
    stage : int
        Stage number (1..10).
    values : dict[str, Any]
        Field values keyed by persisted column name.
    charged_entity : ChargedEntityRef | None
        Who absorbs the stage cost.
    attachment : str | None
        Filename of the stored attachment, if any.
    completed : bool
        Whether the stage has been marked complete.
    """
    stage: int
    values: Dict[str, Any] = field(default_factory=dict)
    charged_entity: Optional[ChargedEntityRef] = None
    attachment: Optional[str] = None
    completed: bool = False

    @property
    def charge_option(self) -> Optional[ChargeOption]:
        return self.charged_entity.option if self.charged_entity else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage,
            "values": dict(self.values),
            "charged_entity": (
                {"option": int(self.charged_entity.option), "id": self.charged_entity.entity_id}
                if self.charged_entity else None
            ),
            "attachment": self.attachment,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StageRecord":
        ref = data.get("charged_entity")
        return cls(
            stage=int(data["stage"]),
            values=dict(data.get("values") or {}),
            charged_entity=ChargedEntityRef(ChargeOption(ref["option"]), int(ref["id"])) if ref else None,
            attachment=data.get("attachment"),
            completed=bool(data.get("completed", False)),
        )


@dataclass
class CustodyRecord:
    """Card-custody state plus the identity-document fields captured on receipt."""
    status: CustodyStatus = CustodyStatus.PENDING
    values: Dict[str, Any] = field(default_factory=dict)
    attachments: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "values": dict(self.values),
            "attachments": dict(self.attachments),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CustodyRecord":
        return cls(
            status=CustodyStatus(data.get("status", CustodyStatus.PENDING.value)),
            values=dict(data.get("values") or {}),
            attachments=dict(data.get("attachments") or {}),
        )


@dataclass
class Cancellation:
    """Administrative cancellation details."""
    charge: Decimal
    remarks: str
    cancelled_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "charge": str(self.charge),
            "remarks": self.remarks,
            "cancelled_at": self.cancelled_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Cancellation":
        return cls(
            charge=Decimal(str(data["charge"])),
            remarks=data["remarks"],
            cancelled_at=datetime.fromisoformat(data["cancelled_at"]),
        )


@dataclass
class Case:
    """
    One subject's residence processing record.

    Parameters
    ----------
    case_id : int
        Backing-store identifier.
    passenger_name : str
        Subject name as printed on the passport.
    passport_number, dob, gender, nationality
        Remaining subject identity fields.
    sale_price : Decimal, default=0
        Price charged to the customer.
    currency_id : int | None
        Currency of *sale_price*.
    progress : int, default=0
        Highest stage N such that stages 1..N are all completed.
    cancelled, on_hold : bool
        Terminal and suspended flags.
    version : int, default=0
        Optimistic-concurrency counter bumped by the gateway on every save.
    """
    case_id: int
    passenger_name: str
    passport_number: str = ""
    dob: Optional[date] = None
    gender: Optional[str] = None
    nationality: Optional[int] = None
    sale_price: Decimal = Decimal("0")
    currency_id: Optional[int] = None
    progress: int = 0
    cancelled: bool = False
    on_hold: bool = False
    stages: Dict[int, StageRecord] = field(default_factory=dict)
    custody: CustodyRecord = field(default_factory=CustodyRecord)
    cancellation: Optional[Cancellation] = None
    version: int = 0

    def __post_init__(self):
        if not 0 <= self.progress <= TOTAL_STAGES:
            raise ValueError(f"progress must be between 0 and {TOTAL_STAGES}")

    # Stage helpers -------------------------------------------------------
    def record(self, stage: int) -> StageRecord:
        """Return the record for *stage*, creating it on first touch."""
        if not 1 <= stage <= TOTAL_STAGES:
            raise ValueError(f"unknown stage {stage}")
        if stage not in self.stages:
            self.stages[stage] = StageRecord(stage)
        return self.stages[stage]

    def is_stage_completed(self, stage: int) -> bool:
        if stage < 1 or stage <= self.progress:
            return True
        rec = self.stages.get(stage)
        return bool(rec and rec.completed)

    @property
    def next_stage(self) -> Optional[int]:
        """The next actionable stage, or None once the pipeline is done."""
        return self.progress + 1 if self.progress < TOTAL_STAGES else None

    @property
    def is_active(self) -> bool:
        return not (self.cancelled or self.on_hold)

    def percent_complete(self, precision: int = 0) -> float:
        return round(self.progress / TOTAL_STAGES * 100, precision)

    # Converters ------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "case_id": self.case_id,
            "passenger_name": self.passenger_name,
            "passport_number": self.passport_number,
            "dob": self.dob.isoformat() if self.dob else None,
            "gender": self.gender,
            "nationality": self.nationality,
            "sale_price": str(self.sale_price),
            "currency_id": self.currency_id,
            "progress": self.progress,
            "cancelled": self.cancelled,
            "on_hold": self.on_hold,
            "stages": {str(n): rec.to_dict() for n, rec in sorted(self.stages.items())},
            "custody": self.custody.to_dict(),
            "cancellation": self.cancellation.to_dict() if self.cancellation else None,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Case":
        dob = data.get("dob")
        return cls(
            case_id=int(data["case_id"]),
            passenger_name=data["passenger_name"],
            passport_number=data.get("passport_number") or "",
            dob=date.fromisoformat(dob) if isinstance(dob, str) else dob,
            gender=data.get("gender"),
            nationality=data.get("nationality"),
            sale_price=Decimal(str(data.get("sale_price") or "0")),
            currency_id=data.get("currency_id"),
            progress=int(data.get("progress", 0)),
            cancelled=bool(data.get("cancelled", False)),
            on_hold=bool(data.get("on_hold", False)),
            stages={
                int(n): StageRecord.from_dict(rec)
                for n, rec in (data.get("stages") or {}).items()
            },
            custody=CustodyRecord.from_dict(data.get("custody") or {}),
            cancellation=(
                Cancellation.from_dict(data["cancellation"]) if data.get("cancellation") else None
            ),
            version=int(data.get("version", 0)),
        )
