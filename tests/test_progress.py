from datetime import date
from decimal import Decimal

import pytest

from goalledger.progress import compute_progress, goal_progress, status_label
from goalledger.schema import Allocation, Goal, Installment, load_ledger
from tests.helpers import SAMPLE_LEDGER, clone_ledger, write_ledger


def _goal(target: str = "12000", target_date: date = date(2026, 12, 1)) -> Goal:
    return Goal(
        id="g",
        name="Goal",
        target_value=Decimal(target),
        target_date=target_date,
        created_at=date(2026, 1, 1),
    )


def test_suggested_monthly_spreads_remaining():
    row = goal_progress(_goal(), [Allocation("inv", "g", Decimal("3000"))], date(2026, 6, 1))

    assert row.months_remaining == 6
    assert row.remaining == Decimal("9000")
    assert row.suggested_monthly == Decimal("1500")
    assert row.percent == Decimal("25")
    assert row.months_total == 12
    assert row.days_remaining == 183
    assert row.status == "on track"


def test_overfunded_goal_is_clamped_and_done():
    row = goal_progress(_goal("1000"), [Allocation("inv", "g", Decimal("1500"))], date(2026, 6, 1))

    assert row.remaining == Decimal("0")
    assert row.percent == Decimal("100")
    assert row.suggested_monthly == Decimal("0")
    assert row.remaining_this_month == Decimal("0")
    assert row.is_funded
    assert row.status == "done"


def test_past_target_date_floors_time_left():
    row = goal_progress(_goal(target_date=date(2026, 3, 1)), [], date(2026, 6, 1))

    assert row.months_remaining == 0
    assert row.days_remaining == 0
    assert row.suggested_monthly == Decimal("12000")
    assert row.status == "urgent"


def test_percent_is_monotonic_in_contributions():
    goal = _goal("1000")
    percents = [
        goal_progress(goal, [Allocation("inv", "g", Decimal(amount))], date(2026, 6, 1)).percent
        for amount in ("0", "1", "250", "999", "1000", "5000")
    ]

    assert percents == sorted(percents)
    assert all(Decimal("0") <= p <= Decimal("100") for p in percents)


def test_zero_and_foreign_allocations_are_ignored():
    rows = [
        Allocation("inv", "g", Decimal("0")),
        Allocation("inv", "other", Decimal("500")),
        Allocation("inv", "g", Decimal("100")),
    ]
    assert goal_progress(_goal(), rows, date(2026, 6, 1)).contributed == Decimal("100")


def test_redeemed_allocations_follow_policy():
    rows = [Allocation("old", "g", Decimal("2000")), Allocation("inv", "g", Decimal("1000"))]

    counted = goal_progress(_goal(), rows, date(2026, 6, 1), redeemed={"old"})
    skipped = goal_progress(_goal(), rows, date(2026, 6, 1), redeemed={"old"}, count_redeemed=False)

    assert counted.contributed == Decimal("3000")
    assert skipped.contributed == Decimal("1000")


def test_current_month_uses_dated_allocations():
    rows = [
        Allocation("inv", "g", Decimal("3000"), date(2026, 2, 1)),
        Allocation("inv", "g", Decimal("400"), date(2026, 6, 12)),
    ]
    row = goal_progress(_goal(), rows, date(2026, 6, 20))

    assert row.contributed_this_month == Decimal("400")
    # 8600 over 6 months
    assert row.remaining_this_month == row.suggested_monthly - Decimal("400")


def test_current_month_prefers_installment():
    installments = [
        Installment("g", date(2026, 5, 1), Decimal("1500"), Decimal("1500"), "closed"),
        Installment("g", date(2026, 6, 1), Decimal("1500"), Decimal("600")),
    ]
    row = goal_progress(
        _goal(),
        [Allocation("inv", "g", Decimal("3000"), date(2026, 6, 3))],
        date(2026, 6, 10),
        installments=installments,
    )

    assert row.contributed_this_month == Decimal("600")
    assert row.remaining_this_month == Decimal("900")


@pytest.mark.parametrize(
    ("remaining", "months", "expected"),
    [
        (Decimal("0"), 5, "done"),
        (Decimal("10"), 0, "urgent"),
        (Decimal("10"), 1, "urgent"),
        (Decimal("10"), 3, "attention"),
        (Decimal("10"), 4, "on track"),
    ],
)
def test_status_label(remaining, months, expected):
    assert status_label(remaining, months) == expected


def test_compute_progress_on_sample(today):
    batch = compute_progress(load_ledger(SAMPLE_LEDGER), today)
    rows = batch.by_goal()

    assert batch.omitted == []
    assert rows["g-trip"].remaining == Decimal("9000")
    assert rows["g-trip"].suggested_monthly == Decimal("1500")
    assert rows["g-emergency"].contributed == Decimal("24000")
    assert rows["g-emergency"].suggested_monthly == Decimal("500")
    assert rows["g-emergency"].contributed_this_month == Decimal("4000")
    assert rows["g-emergency"].remaining_this_month == Decimal("0")
    assert rows["g-car"].contributed == Decimal("15000")
    assert rows["g-course"].status == "done"


def test_compute_progress_can_skip_redeemed(tmp_path, sample_ledger_dict, today):
    data = clone_ledger(sample_ledger_dict)
    data["settings"]["count_redeemed_allocations"] = False

    rows = compute_progress(load_ledger(write_ledger(tmp_path, data)), today).by_goal()
    assert rows["g-car"].contributed == Decimal("10000")


def test_compute_progress_reports_dangling_allocations(tmp_path, sample_ledger_dict, today):
    data = clone_ledger(sample_ledger_dict)
    data["allocations"].append({"investment_id": "inv-ghost", "goal_id": "g-trip", "amount": 500})
    data["allocations"].append({"investment_id": "inv-cdb-b", "goal_id": "g-ghost", "amount": 500})

    batch = compute_progress(load_ledger(write_ledger(tmp_path, data)), today)

    assert [ref.message for ref in batch.omitted] == [
        "allocations[6].investment_id: 'inv-ghost' does not match any investment",
        "allocations[7].goal_id: 'g-ghost' does not match any goal",
    ]
    assert batch.by_goal()["g-trip"].contributed == Decimal("3000")
    assert len(batch.rows) == 4
