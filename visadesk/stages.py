"""
visadesk.stages
===============

Static registry of the ten residence stages.

Each stage owns a closed, typed field record (a pydantic model).  The
model's attribute names are the *logical* names used by forms
(``cost``, ``currency`` …) and its aliases are the *persisted* column
names on the case (``offerLetterCost``, ``offerLetterCostCur`` …), so the
logical → persisted mapping lives in one place.  Either spelling is
accepted on input; values are always stored under the persisted name.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, FrozenSet, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ErrorKind, TransitionError
from .models import StageRecord

Cost = Annotated[Decimal, Field(ge=0)]


class StageFields(BaseModel):
    """Base for the per-stage field variants."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True, str_strip_whitespace=True)

    def persisted(self) -> Dict[str, Any]:
        """JSON-ready values keyed by persisted column name, unset fields dropped."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class OfferLetterFields(StageFields):
    company: Optional[int] = None
    mb_number: Optional[str] = Field(None, alias="mbNumber")
    cost: Optional[Cost] = Field(None, alias="offerLetterCost")
    currency: Optional[int] = Field(None, alias="offerLetterCostCur")


class InsuranceFields(StageFields):
    cost: Optional[Cost] = Field(None, alias="insuranceCost")
    currency: Optional[int] = Field(None, alias="insuranceCur")


class LabourCardFields(StageFields):
    labour_card_id: Optional[str] = Field(None, alias="labor_card_id")
    cost: Optional[Cost] = Field(None, alias="labour_card_fee")
    currency: Optional[int] = Field(None, alias="laborCardCur")


class EVisaFields(StageFields):
    cost: Optional[Cost] = Field(None, alias="eVisaCost")
    currency: Optional[int] = Field(None, alias="eVisaCur")


class ChangeStatusFields(StageFields):
    cost: Optional[Cost] = Field(None, alias="changeStatusCost")
    currency: Optional[int] = Field(None, alias="changeStatusCur")


class MedicalFields(StageFields):
    cost: Optional[Cost] = Field(None, alias="medical_cost")
    currency: Optional[int] = Field(None, alias="medicalCostCur")


class EmiratesIDFields(StageFields):
    emirates_id_number: Optional[str] = Field(None, alias="emiratesIDNumber")
    cost: Optional[Cost] = Field(None, alias="emiratesIDCost")
    currency: Optional[int] = Field(None, alias="emiratesIDCur")


class VisaStampingFields(StageFields):
    cost: Optional[Cost] = Field(None, alias="visaStampingCost")
    currency: Optional[int] = Field(None, alias="visaStampingCur")
    expiry_date: Optional[date] = None
    labour_card_number: Optional[str] = Field(None, alias="LabourCardNumber")


class EIDReceivedFields(StageFields):
    received_date: Optional[date] = Field(None, alias="eid_received_date")
    eid_expiry: Optional[date] = None


class EIDDeliveredFields(StageFields):
    delivered_at: Optional[datetime] = Field(None, alias="eid_delivered_datetime")
    recipient: Optional[str] = Field(None, alias="eid_delivered_to")


@dataclass(frozen=True)
class Stage:
    """
    Immutable stage definition.

    Parameters
    ----------
    number : int
        Ordinal position 1..10.
    key, title, icon : str
        Display metadata.
    fields : type[StageFields]
        The closed field record owned by the stage.
    required : frozenset[str]
        Logical names that must be present before completion.
    charge_columns : (str, str) | None
        Persisted names of the charge-option and charged-entity columns;
        ``None`` for stages without a cost.
    file_field : str | None
        Attachment key for the stage document.
    file_required : bool
        Whether completion needs an attachment.
    """
    number: int
    key: str
    title: str
    icon: str
    fields: Type[StageFields]
    required: FrozenSet[str] = frozenset()
    charge_columns: Optional[Tuple[str, str]] = None
    file_field: Optional[str] = None
    file_required: bool = False

    @property
    def chargeable(self) -> bool:
        return self.charge_columns is not None

    def persisted_name(self, logical: str) -> str:
        info = self.fields.model_fields[logical]
        return info.alias or logical

    @property
    def field_names(self) -> Tuple[str, ...]:
        """Persisted names of every owned field, in declaration order."""
        return tuple(self.persisted_name(n) for n in self.fields.model_fields)

    @property
    def required_fields(self) -> Tuple[str, ...]:
        return tuple(self.persisted_name(n) for n in self.fields.model_fields if n in self.required)

    @property
    def cost_field(self) -> Optional[str]:
        return self.persisted_name("cost") if "cost" in self.fields.model_fields else None

    @property
    def currency_field(self) -> Optional[str]:
        return self.persisted_name("currency") if "currency" in self.fields.model_fields else None

    def parse(self, values: Mapping[str, Any]) -> StageFields:
        """Validate *values* into the stage's typed record (raises pydantic.ValidationError)."""
        return self.fields.model_validate(dict(values))

    def export(self, record: StageRecord) -> Dict[str, Any]:
        """Flat view of *record* under the persisted column names."""
        row: Dict[str, Any] = {name: record.values.get(name) for name in self.field_names}
        if self.charge_columns:
            opt_col, ent_col = self.charge_columns
            ref = record.charged_entity
            row[opt_col] = int(ref.option) if ref else None
            row[ent_col] = ref.entity_id if ref else None
        if self.file_field:
            row[self.file_field] = record.attachment
        return row

    def describe(self) -> Dict[str, Any]:
        return {
            "number": self.number,
            "key": self.key,
            "title": self.title,
            "icon": self.icon,
            "fields": list(self.field_names),
            "required": list(self.required_fields),
            "chargeable": self.chargeable,
            "cost_field": self.cost_field,
            "currency_field": self.currency_field,
            "file_field": self.file_field,
            "file_required": self.file_required,
        }


_COST = frozenset({"cost", "currency"})

STAGES: Tuple[Stage, ...] = (
    Stage(1, "offer_letter", "Offer Letter", "fa-file-contract", OfferLetterFields,
          required=_COST | {"company", "mb_number"},
          charge_columns=("offerLChargOpt", "offerLChargedEntity"),
          file_field="offerLetterFile"),
    Stage(2, "insurance", "Insurance", "fa-shield-alt", InsuranceFields,
          required=_COST,
          charge_columns=("insuranceChargOpt", "insuranceChargedEntity"),
          file_field="insuranceFile"),
    Stage(3, "labour_card", "Labour Card", "fa-id-card", LabourCardFields,
          required=_COST | {"labour_card_id"},
          charge_columns=("lrbChargOpt", "lbrChargedEntity"),
          file_field="laborCardFile"),
    Stage(4, "e_visa", "E-Visa", "fa-passport", EVisaFields,
          required=_COST,
          charge_columns=("eVisaChargOpt", "eVisaChargedEntity"),
          file_field="eVisaFile"),
    Stage(5, "change_status", "Change Status", "fa-exchange-alt", ChangeStatusFields,
          required=_COST,
          charge_columns=("changeStatusChargOpt", "changeStatusChargedEntity"),
          file_field="changeStatusFile"),
    Stage(6, "medical", "Medical Test", "fa-heartbeat", MedicalFields,
          required=_COST,
          charge_columns=("medicalTChargOpt", "medicalTChargedEntity"),
          file_field="medicalFile"),
    Stage(7, "emirates_id", "Emirates ID", "fa-id-badge", EmiratesIDFields,
          required=_COST | {"emirates_id_number"},
          charge_columns=("emiratesIDChargOpt", "emiratesIDChargedEntity"),
          file_field="emiratesIDFile"),
    Stage(8, "visa_stamping", "Visa Stamping", "fa-stamp", VisaStampingFields,
          required=_COST,
          charge_columns=("visaStampingChargOpt", "visaStampingChargedEntity"),
          file_field="visaStampingFile"),
    Stage(9, "eid_received", "EID Received", "fa-inbox", EIDReceivedFields,
          required=frozenset({"received_date", "eid_expiry"})),
    Stage(10, "eid_delivered", "EID Delivered", "fa-check-circle", EIDDeliveredFields,
          required=frozenset({"delivered_at"})),
)

_BY_NUMBER: Dict[int, Stage] = {s.number: s for s in STAGES}


def definition_for(number: int) -> Stage:
    """Return the :class:`Stage` for *number*; unknown numbers raise ``ValueError``."""
    try:
        return _BY_NUMBER[number]
    except KeyError:
        raise ValueError(f"unknown stage {number}") from None


def field_error(exc: ValidationError) -> TransitionError:
    """Translate the first pydantic error into the workflow taxonomy."""
    err = exc.errors()[0]
    name = str(err["loc"][0]) if err.get("loc") else None
    if err["type"] == "extra_forbidden":
        return TransitionError(ErrorKind.UNKNOWN_FIELD, name)
    if err["type"] == "missing":
        return TransitionError(ErrorKind.MISSING_FIELD, name)
    return TransitionError(ErrorKind.INVALID_VALUE, name, err.get("msg"))
