from decimal import Decimal, ROUND_HALF_UP
import hashlib

CENT = Decimal("0.01")


def round_currency(amount: Decimal) -> Decimal:
    """Quantize to cents, half up, for display and export."""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(amount: Decimal) -> str:
    return f"${round_currency(amount):,.2f}"


def split_equally(total: Decimal, participant_ids: list, seed: str | None = None) -> dict:
    """
    Split total into per-participant amounts that sum EXACTLY to total.
    Works in integer cents so a $10.00 item over three people becomes
    3.33 / 3.33 / 3.34 instead of three repeating decimals.

    The leftover cents go to participants in an order derived from seed
    (e.g. the item's description), so the same people don't always absorb
    them. Without a seed the order is the sorted ids.

    Args:
        total: The item total to split.
        participant_ids: Participants sharing the item. Duplicates and blank
            placeholder ids are ignored.
        seed: Optional string that makes the remainder order deterministic.

    Returns:
        Dictionary mapping participant id to its amount (Decimal).
    """
    ids = []
    for pid in participant_ids:
        if pid and pid not in ids:
            ids.append(pid)
    n = len(ids)
    if n == 0:
        return {}

    total_cents = int((Decimal(total) * 100).to_integral_value(rounding=ROUND_HALF_UP))
    base_cents = total_cents // n
    extra_count = total_cents % n

    if seed:
        def get_hash(pid):
            return hashlib.md5(f"{seed}:{pid}".encode()).hexdigest()
        ordered = sorted(ids, key=get_hash)
    else:
        ordered = sorted(ids, key=str)

    shares = {}
    for i, pid in enumerate(ordered):
        cents = base_cents + (1 if i < extra_count else 0)
        shares[pid] = Decimal(cents) / Decimal(100)
    return shares
