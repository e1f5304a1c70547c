"""
Assignment consistency and cost allocation for a split receipt.

Every function here is pure and works on anything shaped like a receipt item:
``price``, ``quantity``, ``is_multiplied`` and ``assignments`` (each with
``participant_id`` and ``amount``). The request schemas and the ORM rows both
fit, so the save path, the read path, the breakdown endpoint and the PDF
export all share the same arithmetic.

Amounts are ``Decimal``. Inputs are coerced and checked for finiteness at the
API boundary, not here: NaN in means NaN (or ``InvalidOperation``) out.
"""
from collections import Counter
from decimal import Decimal

ZERO = Decimal("0")

# Absolute tolerance, in currency units, for "assignments cover the item".
ASSIGNMENT_TOLERANCE = Decimal("0.01")


def _is_placeholder(assignment) -> bool:
    return not assignment.participant_id


def get_item_total(item) -> Decimal:
    """Nominal line total.

    ``is_multiplied`` means the receipt already printed the extended price
    (e.g. "3 @ $5 = $15" parsed as price 15), so quantity is informational.
    """
    if item.is_multiplied:
        return item.price
    return item.price * item.quantity


def get_assigned_total(item, include_placeholders: bool = True) -> Decimal:
    total = ZERO
    for assignment in item.assignments or []:
        if not include_placeholders and _is_placeholder(assignment):
            continue
        total += assignment.amount
    return total


def get_remaining_amount(item, include_placeholders: bool = True) -> Decimal:
    """Unassigned part of the item, clamped at zero when over-assigned."""
    remaining = get_item_total(item) - get_assigned_total(item, include_placeholders)
    return max(ZERO, remaining)


def get_over_assigned_amount(item, include_placeholders: bool = True) -> Decimal:
    excess = get_assigned_total(item, include_placeholders) - get_item_total(item)
    return max(ZERO, excess)


def is_item_fully_assigned(item, include_placeholders: bool = True) -> bool:
    diff = get_item_total(item) - get_assigned_total(item, include_placeholders)
    return abs(diff) <= ASSIGNMENT_TOLERANCE


def is_receipt_fully_assigned(items, include_placeholders: bool = True) -> bool:
    # all() of an empty list is True: a receipt with no items has nothing left to assign.
    return all(is_item_fully_assigned(item, include_placeholders) for item in items)


def calculate_totals(items) -> dict:
    subtotal = sum((get_item_total(item) for item in items), ZERO)
    return {"subtotal": subtotal, "total": subtotal}


def _proportion(items_total: Decimal, subtotal: Decimal) -> Decimal:
    if subtotal > 0:
        return items_total / subtotal
    return ZERO


def _share(participant, items_total: Decimal, subtotal: Decimal, tax: Decimal, tip: Decimal) -> dict:
    proportion = _proportion(items_total, subtotal)
    tax_share = tax * proportion
    tip_share = tip * proportion
    return {
        "participant": participant,
        "items_total": items_total,
        "tax_share": tax_share,
        "tip_share": tip_share,
        "total": items_total + tax_share + tip_share,
    }


def compute_participant_breakdown(receipt, participants, include_placeholders: bool = True) -> dict:
    """
    Per-participant liability: assigned items plus tax and tip in proportion
    to the participant's share of the receipt subtotal.

    Returns {"participants": [...], "unassigned": {...}, "show_unassigned": bool}.
    Each share is a dict with keys participant, items_total, tax_share,
    tip_share, total. The unassigned share (participant None) applies the same
    proportion to the sum of remaining amounts, so participant totals plus the
    unassigned total add up to subtotal + tax + tip when item totals sum to
    the subtotal.

    Duplicate assignments for one participant on the same item are summed.
    With include_placeholders=False, placeholder amounts count as unassigned,
    so the rows keep adding up to the grand total while placeholders exist.
    Nothing is rounded here; round for display only.
    """
    subtotal = receipt.subtotal
    tax = receipt.tax
    tip = receipt.tip

    assigned_by_participant: dict = {}
    unassigned_items_total = ZERO
    for item in receipt.items:
        for assignment in item.assignments or []:
            if _is_placeholder(assignment):
                continue
            pid = assignment.participant_id
            assigned_by_participant[pid] = assigned_by_participant.get(pid, ZERO) + assignment.amount
        unassigned_items_total += get_remaining_amount(item, include_placeholders)

    shares = [
        _share(p, assigned_by_participant.get(p.id, ZERO), subtotal, tax, tip)
        for p in participants
    ]
    unassigned = _share(None, unassigned_items_total, subtotal, tax, tip)

    return {
        "participants": shares,
        "unassigned": unassigned,
        "show_unassigned": unassigned["total"] > 0,
    }


def find_allocation_problems(items, include_placeholders: bool = True) -> list[dict]:
    """
    List why a receipt is not fully assigned, one entry per issue.

    kind is one of "unassigned" (amount left to assign), "over_assigned"
    (amount assigned beyond the item total) or "duplicate_participant".
    Differences within the assignment tolerance are not reported.
    """
    problems = []
    for index, item in enumerate(items):
        description = getattr(item, "description", "")

        counts = Counter(
            a.participant_id for a in item.assignments or [] if not _is_placeholder(a)
        )
        for participant_id, count in counts.items():
            if count > 1:
                problems.append({
                    "index": index,
                    "description": description,
                    "kind": "duplicate_participant",
                    "participant_id": participant_id,
                })

        if is_item_fully_assigned(item, include_placeholders):
            continue
        remaining = get_remaining_amount(item, include_placeholders)
        if remaining > 0:
            problems.append({
                "index": index,
                "description": description,
                "kind": "unassigned",
                "amount": remaining,
            })
        else:
            problems.append({
                "index": index,
                "description": description,
                "kind": "over_assigned",
                "amount": get_over_assigned_amount(item, include_placeholders),
            })
    return problems
