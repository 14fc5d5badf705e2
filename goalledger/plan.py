"""Monthly plan totals and goal priority ranking."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Mapping

from .amounts import ZERO, percent_of, total
from .progress import GoalProgress


@dataclass(slots=True, frozen=True)
class PlanSummary:
    goal_count: int
    total_suggested: Decimal
    total_contributed_this_month: Decimal
    total_remaining_this_month: Decimal

    @property
    def overall_percent(self) -> Decimal:
        return percent_of(self.total_contributed_this_month, self.total_suggested)


@dataclass(slots=True, frozen=True)
class RankedGoal:
    progress: GoalProgress
    priority_rank: int
    priority_score: Decimal

    @property
    def goal_id(self) -> str:
        return self.progress.goal_id

    @property
    def name(self) -> str:
        return self.progress.name


def plan_goals(rows: Iterable[GoalProgress]) -> list[GoalProgress]:
    return [row for row in rows if row.is_monthly_plan]


def summarize(rows: Iterable[GoalProgress]) -> PlanSummary:
    selected = plan_goals(rows)
    return PlanSummary(
        goal_count=len(selected),
        total_suggested=total(row.suggested_monthly for row in selected),
        total_contributed_this_month=total(row.contributed_this_month for row in selected),
        total_remaining_this_month=total(row.remaining_this_month for row in selected),
    )


def _priority_key(row: GoalProgress) -> tuple[bool, int, Decimal, str]:
    # Funded goals last, then fewest months left, then biggest monthly lever.
    return (row.is_funded, row.months_remaining, -row.suggested_monthly, row.goal_id)


def _priority_score(row: GoalProgress) -> Decimal:
    per_month = row.remaining / row.months_remaining if row.months_remaining > 0 else row.remaining
    return per_month + row.remaining_this_month


def rank(rows: Iterable[GoalProgress]) -> list[RankedGoal]:
    ordered = sorted(plan_goals(rows), key=_priority_key)
    return [
        RankedGoal(progress=row, priority_rank=idx, priority_score=_priority_score(row))
        for idx, row in enumerate(ordered, start=1)
    ]


def allocatable_goals(rows: Iterable[GoalProgress], current: Mapping[str, Decimal]) -> list[GoalProgress]:
    """Goals that can still receive money from an investment being edited.

    Completed goals are hidden unless the investment already allocates to them.
    """
    return [row for row in rows if not row.is_funded or current.get(row.goal_id, ZERO) > 0]
