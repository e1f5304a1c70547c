import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from pydantic import BaseModel, ConfigDict, Field, AliasChoices, field_validator, model_validator

from spliteasy.utils.currency_utils import round_currency

QUANTITY_STEP = Decimal("0.001")


def _amount(default: str = "0"):
    return Field(default=Decimal(default), ge=0, allow_inf_nan=False)


# Amounts are stored as Numeric(12, 2) and quantities as Numeric(10, 3); round to
# that scale on the way in so the save gate checks exactly what gets stored.
def _to_cents(v):
    return None if v is None else round_currency(v)


def _to_quantity_scale(v):
    return None if v is None else v.quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)


class AssignmentInput(BaseModel):
    # Blank participant_id is an unassigned placeholder row.
    participant_id: str = Field(default="", validation_alias=AliasChoices("participant_id", "participantId"))
    amount: Decimal = _amount()

    @field_validator("amount")
    @classmethod
    def _amount_to_cents(cls, v):
        return _to_cents(v)

    @field_validator("participant_id", mode="before")
    @classmethod
    def _blank_participant(cls, v):
        return "" if v is None else str(v)


class ReceiptItemInput(BaseModel):
    description: str = ""
    quantity: Decimal = _amount("1")
    price: Decimal = _amount()
    is_multiplied: bool = Field(default=False, validation_alias=AliasChoices("is_multiplied", "isMultiplied"))
    assignments: list[AssignmentInput] = []

    @field_validator("price")
    @classmethod
    def _price_to_cents(cls, v):
        return _to_cents(v)

    @field_validator("quantity")
    @classmethod
    def _quantity_scale(cls, v):
        return _to_quantity_scale(v)

    @field_validator("assignments", mode="before")
    @classmethod
    def _missing_assignments(cls, v):
        return [] if v is None else v

    @model_validator(mode="after")
    def _one_assignment_per_participant(self):
        seen = set()
        for a in self.assignments:
            if not a.participant_id:
                continue
            if a.participant_id in seen:
                raise ValueError(f"participant {a.participant_id} is assigned twice to '{self.description}'")
            seen.add(a.participant_id)
        return self


class ParticipantInput(BaseModel):
    id: str
    name: str = Field(min_length=1)
    is_creator: bool = Field(default=False, validation_alias=AliasChoices("is_creator", "isCreator"))

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        return str(v)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("participant name must not be blank")
        return v


def _check_unique_ids(participants: list[ParticipantInput]) -> None:
    ids = [p.id for p in participants]
    if len(ids) != len(set(ids)):
        raise ValueError("participant ids must be unique within a receipt")


class ReceiptCreate(BaseModel):
    name: str | None = None
    subtotal: Decimal = _amount()
    tax: Decimal = _amount()
    tip: Decimal = _amount()
    total: Decimal = _amount()
    participants: list[ParticipantInput] = []
    items: list[ReceiptItemInput] = []

    @field_validator("subtotal", "tax", "tip", "total")
    @classmethod
    def _money_to_cents(cls, v):
        return _to_cents(v)

    @model_validator(mode="after")
    def _unique_participant_ids(self):
        _check_unique_ids(self.participants)
        return self


class ReceiptUpdate(BaseModel):
    name: str | None = None
    subtotal: Decimal | None = Field(default=None, ge=0, allow_inf_nan=False)
    tax: Decimal | None = Field(default=None, ge=0, allow_inf_nan=False)
    tip: Decimal | None = Field(default=None, ge=0, allow_inf_nan=False)
    total: Decimal | None = Field(default=None, ge=0, allow_inf_nan=False)
    # When given, these replace the stored collections wholesale.
    participants: list[ParticipantInput] | None = None
    items: list[ReceiptItemInput] | None = None

    @field_validator("subtotal", "tax", "tip", "total")
    @classmethod
    def _money_to_cents(cls, v):
        return _to_cents(v)

    @model_validator(mode="after")
    def _unique_participant_ids(self):
        if self.participants is not None:
            _check_unique_ids(self.participants)
        return self


def _coerce_number(value, default: Decimal) -> Decimal:
    """Model output -> finite Decimal; anything unusable becomes default."""
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default
    if not number.is_finite():
        return default
    return number


class ParsedReceiptItem(BaseModel):
    """One line as returned by the vision model, with gaps filled in."""
    description: str = "Unknown item"
    quantity: Decimal = Decimal("1")
    price: Decimal = Decimal("0")
    is_multiplied: bool = False
    assignments: list[AssignmentInput] = []

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, v):
        return str(v) if v else "Unknown item"

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, v):
        q = _coerce_number(v, Decimal("1"))
        return q if q > 0 else Decimal("1")

    @field_validator("price", mode="before")
    @classmethod
    def _price(cls, v):
        return _coerce_number(v, Decimal("0"))


class ParsedReceipt(BaseModel):
    items: list[ParsedReceiptItem] = []
    subtotal: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    tip: Decimal = Decimal("0")
    total: Decimal = Decimal("0")

    @field_validator("items", mode="before")
    @classmethod
    def _items(cls, v):
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, dict)]

    @field_validator("subtotal", "tax", "tip", "total", mode="before")
    @classmethod
    def _money(cls, v):
        return _coerce_number(v, Decimal("0"))


class ProcessReceiptRequest(BaseModel):
    image: str = ""  # base64, no data: prefix
    mime_type: str = Field(default="", validation_alias=AliasChoices("mime_type", "mimeType"))


class AssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    participant_id: uuid.UUID
    amount: Decimal


class ParticipantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    name: str
    is_creator: bool


class ReceiptItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    description: str
    quantity: Decimal
    price: Decimal
    is_multiplied: bool
    sort_order: int
    assignments: list[AssignmentResponse] = []


class ReceiptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    name: str | None
    subtotal: Decimal
    tax: Decimal
    tip: Decimal
    total: Decimal
    is_fully_assigned: bool
    created_at: datetime
    updated_at: datetime
    participants: list[ParticipantResponse] = []
    items: list[ReceiptItemResponse] = []


class ReceiptCreateResponse(BaseModel):
    success: bool = True
    receipt_id: uuid.UUID
    is_fully_assigned: bool


class ShareResponse(BaseModel):
    participant_id: uuid.UUID | None
    name: str
    items_total: Decimal
    tax_share: Decimal
    tip_share: Decimal
    total: Decimal


class BreakdownResponse(BaseModel):
    participants: list[ShareResponse]
    unassigned: ShareResponse | None = None
