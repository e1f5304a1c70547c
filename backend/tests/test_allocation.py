from decimal import Decimal
from types import SimpleNamespace

import pytest

from spliteasy.utils.allocation import (
    calculate_totals,
    compute_participant_breakdown,
    find_allocation_problems,
    get_assigned_total,
    get_item_total,
    get_over_assigned_amount,
    get_remaining_amount,
    is_item_fully_assigned,
    is_receipt_fully_assigned,
)

D = Decimal
ALICE = SimpleNamespace(id="alice", name="Alice")
BOB = SimpleNamespace(id="bob", name="Bob")


def item(price, quantity="1", is_multiplied=False, assignments=None, description="item"):
    return SimpleNamespace(
        description=description,
        price=D(price),
        quantity=D(quantity),
        is_multiplied=is_multiplied,
        assignments=assignments if assignments is not None else [],
    )


def assign(participant_id, amount):
    return SimpleNamespace(participant_id=participant_id, amount=D(amount))


def receipt(items, subtotal, tax="0", tip="0"):
    return SimpleNamespace(items=items, subtotal=D(subtotal), tax=D(tax), tip=D(tip))


@pytest.mark.parametrize("price,quantity,expected", [
    ("4.50", "3", "13.50"),
    ("15.99", "1", "15.99"),
    ("2.25", "0.5", "1.125"),
    ("9.99", "0", "0"),
])
def test_item_total_multiplies_unit_price(price, quantity, expected):
    assert get_item_total(item(price, quantity)) == D(expected)


@pytest.mark.parametrize("price,quantity", [("8.99", "2"), ("15.00", "3"), ("1.00", "0")])
def test_item_total_uses_extended_price_as_is(price, quantity):
    assert get_item_total(item(price, quantity, is_multiplied=True)) == D(price)


def test_missing_assignments_treated_as_empty():
    line = item("5.00", assignments=None)
    line.assignments = None
    assert get_assigned_total(line) == D("0")
    assert get_remaining_amount(line) == D("5.00")


def test_remaining_never_negative():
    line = item("10.00", assignments=[assign("alice", "7.00"), assign("bob", "6.00")])
    assert get_remaining_amount(line) == D("0")
    assert get_over_assigned_amount(line) == D("3.00")


def test_remaining_is_total_minus_assigned():
    line = item("10.00", quantity="2", assignments=[assign("alice", "12.50")])
    assert get_remaining_amount(line) == D("7.50")


def test_fully_assigned_at_tolerance_boundary():
    assert is_item_fully_assigned(item("10.00", assignments=[assign("alice", "9.99")]))
    assert is_item_fully_assigned(item("10.00", assignments=[assign("alice", "10.01")]))


def test_not_fully_assigned_just_past_tolerance():
    assert not is_item_fully_assigned(item("10.00", assignments=[assign("alice", "9.989")]))
    assert not is_item_fully_assigned(item("10.00", assignments=[assign("alice", "10.011")]))


def test_empty_receipt_is_fully_assigned():
    assert is_receipt_fully_assigned([])


def test_receipt_fully_assigned_needs_every_item():
    done = item("5.00", assignments=[assign("alice", "5.00")])
    open_ = item("3.00", assignments=[assign("bob", "1.00")])
    assert is_receipt_fully_assigned([done])
    assert not is_receipt_fully_assigned([done, open_])


def test_single_item_assigned_to_one_participant():
    line = item("15.99", assignments=[assign("alice", "15.99")])
    assert get_item_total(line) == D("15.99")
    assert get_remaining_amount(line) == D("0")
    assert is_item_fully_assigned(line)


def test_multiplied_item_without_assignments():
    line = item("8.99", quantity="2", is_multiplied=True)
    assert get_item_total(line) == D("8.99")
    assert get_assigned_total(line) == D("0")
    assert get_remaining_amount(line) == D("8.99")
    assert not is_item_fully_assigned(line)


def test_placeholder_counts_toward_assigned_by_default():
    line = item("10.00", assignments=[assign("alice", "6.00"), assign("", "4.00")])
    assert get_assigned_total(line) == D("10.00")
    assert is_item_fully_assigned(line)
    assert get_remaining_amount(line) == D("0")


def test_placeholder_excluded_when_asked():
    line = item("10.00", assignments=[assign("alice", "6.00"), assign(None, "4.00")])
    assert get_assigned_total(line, include_placeholders=False) == D("6.00")
    assert not is_item_fully_assigned(line, include_placeholders=False)
    assert get_remaining_amount(line, include_placeholders=False) == D("4.00")


def test_calculate_totals_sums_item_totals():
    totals = calculate_totals([item("4.00", "2"), item("3.50", "4", is_multiplied=True)])
    assert totals == {"subtotal": D("11.50"), "total": D("11.50")}


def test_breakdown_proportional_tax_and_tip():
    r = receipt(
        [item("60", assignments=[assign("alice", "60")]), item("40", assignments=[assign("bob", "40")])],
        subtotal="100", tax="8", tip="15",
    )
    result = compute_participant_breakdown(r, [ALICE, BOB])
    a, b = result["participants"]

    assert a["participant"] is ALICE
    assert a["tax_share"] == D("4.8")
    assert a["tip_share"] == D("9.0")
    assert a["total"] == D("73.8")
    assert b["tax_share"] == D("3.2")
    assert b["tip_share"] == D("6.0")
    assert b["total"] == D("49.2")
    assert a["items_total"] + b["items_total"] == D("100")
    assert a["total"] + b["total"] == D("123")
    assert not result["show_unassigned"]


def test_breakdown_totals_add_up_when_fully_assigned():
    r = receipt(
        [
            item("12.34", assignments=[assign("alice", "6.17"), assign("bob", "6.17")]),
            item("7.66", "3", assignments=[assign("alice", "22.98")]),
        ],
        subtotal="35.32", tax="2.91", tip="6.00",
    )
    result = compute_participant_breakdown(r, [ALICE, BOB])
    items_sum = sum(s["items_total"] for s in result["participants"])
    total_sum = sum(s["total"] for s in result["participants"])
    assert abs(items_sum - r.subtotal) <= D("0.01")
    assert abs(total_sum - (r.subtotal + r.tax + r.tip)) <= D("0.01")


def test_breakdown_zero_subtotal_has_zero_shares():
    r = receipt([item("0", assignments=[assign("alice", "0")])], subtotal="0", tax="5", tip="3")
    result = compute_participant_breakdown(r, [ALICE, BOB])
    for share in result["participants"]:
        assert share["tax_share"] == 0
        assert share["tip_share"] == 0
    assert result["unassigned"]["tax_share"] == 0


def test_breakdown_unassigned_row_uses_same_proportion():
    r = receipt(
        [item("50", assignments=[assign("alice", "30")]), item("50")],
        subtotal="100", tax="10", tip="0",
    )
    result = compute_participant_breakdown(r, [ALICE])
    unassigned = result["unassigned"]
    assert result["show_unassigned"]
    assert unassigned["participant"] is None
    assert unassigned["items_total"] == D("70")
    assert unassigned["tax_share"] == D("7")
    assert result["participants"][0]["total"] + unassigned["total"] == D("110")


def test_breakdown_ignores_assignment_order_and_sums_duplicates():
    r = receipt(
        [item("10", assignments=[assign("bob", "4"), assign("alice", "3"), assign("alice", "3")])],
        subtotal="10",
    )
    result = compute_participant_breakdown(r, [BOB, ALICE])
    assert [s["items_total"] for s in result["participants"]] == [D("4"), D("6")]


def test_breakdown_placeholder_amount_hidden_or_shown():
    r = receipt([item("10", assignments=[assign("alice", "6"), assign("", "4")])], subtotal="10")

    counted = compute_participant_breakdown(r, [ALICE])
    assert not counted["show_unassigned"]

    excluded = compute_participant_breakdown(r, [ALICE], include_placeholders=False)
    assert excluded["show_unassigned"]
    assert excluded["unassigned"]["items_total"] == D("4")


def test_problems_report_unassigned_and_over_assigned():
    items = [
        item("10", assignments=[assign("alice", "10")], description="Pizza"),
        item("5", assignments=[assign("alice", "2")], description="Soda"),
        item("3", assignments=[assign("bob", "4")], description="Fries"),
    ]
    problems = find_allocation_problems(items)
    assert problems == [
        {"index": 1, "description": "Soda", "kind": "unassigned", "amount": D("3")},
        {"index": 2, "description": "Fries", "kind": "over_assigned", "amount": D("1")},
    ]


def test_problems_report_duplicate_participant():
    items = [item("6", assignments=[assign("alice", "3"), assign("alice", "3")], description="Wings")]
    problems = find_allocation_problems(items)
    assert problems == [
        {"index": 0, "description": "Wings", "kind": "duplicate_participant", "participant_id": "alice"},
    ]


def test_no_problems_within_tolerance():
    assert find_allocation_problems([item("10.00", assignments=[assign("alice", "9.995")])]) == []
