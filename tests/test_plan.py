from datetime import date
from decimal import Decimal
import random

from goalledger.plan import allocatable_goals, rank, summarize
from goalledger.progress import GoalProgress, compute_progress, goal_progress
from goalledger.schema import Allocation, Goal, load_ledger
from tests.helpers import SAMPLE_LEDGER


def _row(goal_id: str, target: str, contributed: str, target_date: date, monthly: bool = True) -> GoalProgress:
    goal = Goal(
        id=goal_id,
        name=goal_id.upper(),
        target_value=Decimal(target),
        target_date=target_date,
        created_at=date(2026, 1, 1),
        is_monthly_plan=monthly,
    )
    return goal_progress(goal, [Allocation("inv", goal_id, Decimal(contributed))], date(2026, 6, 1))


def test_summary_of_sample(today):
    rows = compute_progress(load_ledger(SAMPLE_LEDGER), today).rows
    summary = summarize(rows)

    assert summary.goal_count == 3
    assert summary.total_suggested == Decimal("2000")
    assert summary.total_contributed_this_month == Decimal("4000")
    assert summary.total_remaining_this_month == Decimal("1500")
    assert summary.overall_percent == Decimal("100")


def test_funded_goal_adds_no_shortfall():
    funded = _row("done", "1000", "1000", date(2026, 7, 1))
    open_goal = _row("open", "1200", "0", date(2026, 12, 1))

    summary = summarize([funded, open_goal])

    assert funded.status == "done"
    assert summary.total_remaining_this_month == Decimal("200")


def test_goals_outside_the_plan_are_excluded():
    rows = [
        _row("plan", "600", "0", date(2026, 12, 1)),
        _row("other", "6000", "0", date(2026, 12, 1), monthly=False),
    ]

    assert summarize(rows).goal_count == 1
    assert [r.goal_id for r in rank(rows)] == ["plan"]


def test_empty_summary():
    summary = summarize([])
    assert summary.total_suggested == Decimal("0")
    assert summary.overall_percent == Decimal("0")


def test_rank_orders_by_urgency_then_size():
    rows = [
        _row("funded", "100", "100", date(2026, 7, 1)),
        _row("later", "12000", "0", date(2027, 6, 1)),
        _row("soon-small", "600", "0", date(2026, 9, 1)),
        _row("soon-big", "6000", "0", date(2026, 9, 1)),
    ]

    ranked = rank(rows)

    assert [r.goal_id for r in ranked] == ["soon-big", "soon-small", "later", "funded"]
    assert [r.priority_rank for r in ranked] == [1, 2, 3, 4]
    assert ranked[0].priority_score == Decimal("4000")
    assert ranked[-1].priority_score == Decimal("0")


def test_rank_is_deterministic_under_reordering():
    rows = [
        _row("b", "600", "0", date(2026, 9, 1)),
        _row("a", "600", "0", date(2026, 9, 1)),
        _row("c", "900", "300", date(2026, 9, 1)),
        _row("d", "100", "100", date(2026, 8, 1)),
    ]
    expected = [r.goal_id for r in rank(rows)]

    shuffled = list(rows)
    random.Random(7).shuffle(shuffled)

    assert [r.goal_id for r in rank(shuffled)] == expected
    assert expected == ["a", "b", "c", "d"]


def test_allocatable_goals_hides_funded_unless_already_allocated():
    rows = [
        _row("funded", "100", "100", date(2026, 7, 1)),
        _row("open", "1200", "0", date(2026, 12, 1)),
    ]

    assert [r.goal_id for r in allocatable_goals(rows, {})] == ["open"]
    assert [r.goal_id for r in allocatable_goals(rows, {"funded": Decimal("50")})] == ["funded", "open"]
