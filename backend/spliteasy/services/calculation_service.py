from spliteasy.models.receipt import Receipt
from spliteasy.utils.allocation import compute_participant_breakdown
from spliteasy.utils.currency_utils import round_currency


def _rounded(share: dict, name: str) -> dict:
    participant = share["participant"]
    return {
        "participant_id": participant.id if participant is not None else None,
        "name": name,
        "items_total": round_currency(share["items_total"]),
        "tax_share": round_currency(share["tax_share"]),
        "tip_share": round_currency(share["tip_share"]),
        "total": round_currency(share["total"]),
    }


def get_receipt_breakdown(receipt: Receipt) -> dict:
    """
    Cost breakdown of a saved receipt, rounded to cents for display.
    The unassigned row is included only when something is left to assign.
    """
    breakdown = compute_participant_breakdown(receipt, receipt.participants)
    return {
        "participants": [_rounded(s, s["participant"].name) for s in breakdown["participants"]],
        "unassigned": _rounded(breakdown["unassigned"], "Unassigned") if breakdown["show_unassigned"] else None,
    }
