import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from spliteasy.models.receipt import Receipt, ReceiptItem, Participant, Assignment
from spliteasy.models.user import User
from spliteasy.schemas.receipt import ReceiptCreate, ReceiptUpdate, ReceiptItemInput, ParticipantInput
from spliteasy.utils.allocation import (
    find_allocation_problems, get_item_total, is_receipt_fully_assigned,
)
from spliteasy.utils.currency_utils import split_equally

logger = logging.getLogger(__name__)

UNASSIGNED_FUNDS_MESSAGE = "All funds must be assigned before saving"


class ReceiptValidationError(ValueError):
    """The payload is well-formed but can't be saved as a split."""

    def __init__(self, message: str, problems: list[dict] | None = None):
        super().__init__(message)
        self.message = message
        self.problems = problems or []

    def to_detail(self) -> dict:
        """JSON-safe body for a 422 response; amounts become strings."""
        problems = [
            {k: str(v) if isinstance(v, (Decimal, uuid.UUID)) else v for k, v in p.items()}
            for p in self.problems
        ]
        return {"message": self.message, "problems": problems}


def _check_participant_refs(items_in: list[ReceiptItemInput], known_ids: set[str]) -> None:
    unknown = []
    for index, item in enumerate(items_in):
        for a in item.assignments:
            if a.participant_id and a.participant_id not in known_ids:
                unknown.append({
                    "index": index,
                    "description": item.description,
                    "kind": "unknown_participant",
                    "participant_id": a.participant_id,
                })
    if unknown:
        raise ReceiptValidationError("Assignments reference unknown participants", unknown)


def validate_for_save(data: ReceiptCreate) -> None:
    """Gate for creating a receipt: at least one participant and every item fully assigned.

    Placeholder rows (no participant) are not persisted, so they don't count
    toward an item being covered here.
    """
    if not data.participants:
        raise ReceiptValidationError("Add at least one participant before saving")
    _check_participant_refs(data.items, {p.id for p in data.participants})
    if not is_receipt_fully_assigned(data.items, include_placeholders=False):
        problems = find_allocation_problems(data.items, include_placeholders=False)
        raise ReceiptValidationError(UNASSIGNED_FUNDS_MESSAGE, problems)


def _ensure_creator(participants: list[Participant], user: User) -> None:
    if any(p.is_creator for p in participants):
        return
    name = user.display_name
    for p in participants:
        if p.name.casefold() == name.casefold():
            p.is_creator = True
            return
    participants.insert(0, Participant(name=name, is_creator=True))


def _sync_participants(
    receipt: Receipt, participants_in: list[ParticipantInput], user: User
) -> dict[str, Participant]:
    """
    Make receipt.participants match participants_in and return a map from the
    client's participant ids to rows. Ids of already-stored participants are
    their UUID strings; anything else is a new participant.
    Assignments of dropped participants are removed from every item.
    """
    existing = {str(p.id): p for p in receipt.participants}
    id_map: dict[str, Participant] = {}
    kept: list[Participant] = []
    for p_in in participants_in:
        participant = existing.get(p_in.id)
        if participant is None:
            participant = Participant(name=p_in.name, is_creator=p_in.is_creator)
        else:
            participant.name = p_in.name
            participant.is_creator = p_in.is_creator
        id_map[p_in.id] = participant
        kept.append(participant)
    _ensure_creator(kept, user)

    dropped_ids = {p.id for p in receipt.participants if p not in kept}
    if dropped_ids:
        for item in receipt.items:
            item.assignments = [a for a in item.assignments if a.participant_id not in dropped_ids]
    receipt.participants = kept
    return id_map


def _build_items(items_in: list[ReceiptItemInput], id_map: dict[str, Participant]) -> list[ReceiptItem]:
    items = []
    for sort, item_in in enumerate(items_in):
        item = ReceiptItem(
            description=item_in.description,
            quantity=item_in.quantity,
            price=item_in.price,
            is_multiplied=item_in.is_multiplied,
            sort_order=sort,
        )
        for a in item_in.assignments:
            if not a.participant_id:
                continue  # placeholder row, nothing to store
            item.assignments.append(Assignment(participant=id_map[a.participant_id], amount=a.amount))
        items.append(item)
    return items


def _touch(receipt: Receipt) -> None:
    receipt.updated_at = datetime.now(timezone.utc)


async def get_receipt(db: AsyncSession, receipt_id: uuid.UUID, user_id: uuid.UUID) -> Receipt | None:
    """Receipt with participants, items and assignments, or None if missing or not owned."""
    result = await db.execute(
        select(Receipt)
        .where(Receipt.id == receipt_id, Receipt.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_receipts(db: AsyncSession, user_id: uuid.UUID) -> list[Receipt]:
    result = await db.execute(
        select(Receipt)
        .where(Receipt.user_id == user_id)
        .order_by(Receipt.created_at.desc())
    )
    return list(result.scalars().all())


async def create_receipt(db: AsyncSession, user: User, data: ReceiptCreate) -> Receipt:
    validate_for_save(data)

    receipt = Receipt(
        user_id=user.id,
        name=data.name,
        subtotal=data.subtotal,
        tax=data.tax,
        tip=data.tip,
        total=data.total,
        is_fully_assigned=is_receipt_fully_assigned(data.items, include_placeholders=False),
        participants=[],
        items=[],
    )
    id_map = _sync_participants(receipt, data.participants, user)
    receipt.items = _build_items(data.items, id_map)
    db.add(receipt)
    await db.commit()
    logger.info("Saved receipt %s for user %s (%d items)", receipt.id, user.id, len(receipt.items))
    return receipt


async def update_receipt(
    db: AsyncSession, receipt_id: uuid.UUID, user: User, data: ReceiptUpdate
) -> Receipt | None:
    """
    Partial update. Scalar fields are set when present; participants and items,
    when present, replace the stored collections. is_fully_assigned is always
    recomputed from what ends up stored.
    """
    receipt = await get_receipt(db, receipt_id, user.id)
    if not receipt:
        return None

    if data.participants is not None:
        known_ids = {p.id for p in data.participants}
    else:
        known_ids = {str(p.id) for p in receipt.participants}
    if data.items is not None:
        _check_participant_refs(data.items, known_ids)

    for field in ("name", "subtotal", "tax", "tip", "total"):
        if field in data.model_fields_set:
            value = getattr(data, field)
            if value is None and field != "name":
                continue
            setattr(receipt, field, value)

    if data.participants is not None:
        id_map = _sync_participants(receipt, data.participants, user)
    else:
        id_map = {str(p.id): p for p in receipt.participants}
    if data.items is not None:
        receipt.items = _build_items(data.items, id_map)

    await db.flush()
    receipt.is_fully_assigned = is_receipt_fully_assigned(receipt.items)
    _touch(receipt)
    await db.commit()
    return await get_receipt(db, receipt_id, user.id)


async def delete_receipt(db: AsyncSession, receipt_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    receipt = await get_receipt(db, receipt_id, user_id)
    if not receipt:
        return False
    await db.delete(receipt)
    await db.commit()
    logger.info("Deleted receipt %s", receipt_id)
    return True


async def remove_participant(
    db: AsyncSession, receipt_id: uuid.UUID, participant_id: uuid.UUID, user_id: uuid.UUID
) -> Receipt | None:
    """Drop one participant and their assignments on every item. None if not found."""
    receipt = await get_receipt(db, receipt_id, user_id)
    if not receipt:
        return None
    participant = next((p for p in receipt.participants if p.id == participant_id), None)
    if participant is None:
        return None
    if participant.is_creator:
        raise ReceiptValidationError("The bill's creator can't be removed")

    for item in receipt.items:
        item.assignments = [a for a in item.assignments if a.participant_id != participant_id]
    receipt.participants.remove(participant)

    await db.flush()
    receipt.is_fully_assigned = is_receipt_fully_assigned(receipt.items)
    _touch(receipt)
    await db.commit()
    return await get_receipt(db, receipt_id, user_id)


async def split_item_equally(
    db: AsyncSession, receipt_id: uuid.UUID, item_id: uuid.UUID, user_id: uuid.UUID
) -> Receipt | None:
    """Spread an item's total evenly over the participants already assigned to it."""
    receipt = await get_receipt(db, receipt_id, user_id)
    if not receipt:
        return None
    item = next((i for i in receipt.items if i.id == item_id), None)
    if item is None:
        return None
    if not item.assignments:
        return receipt

    shares = split_equally(
        get_item_total(item), [a.participant_id for a in item.assignments], seed=str(item.id)
    )
    for a in item.assignments:
        a.amount = shares[a.participant_id]

    receipt.is_fully_assigned = is_receipt_fully_assigned(receipt.items)
    _touch(receipt)
    await db.commit()
    return await get_receipt(db, receipt_id, user_id)
