"""Per-goal progress, time left and suggested monthly contribution."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
import logging
from typing import Collection, Iterable

from .amounts import ZERO, percent_of, total
from .errors import DanglingReference
from .months import days_remaining, months_inclusive, months_remaining, same_month
from .schema import Allocation, Goal, Installment, Ledger
from .validate import dangling_allocations

logger = logging.getLogger(__name__)

STATUS_DONE = "done"
STATUS_URGENT = "urgent"
STATUS_ATTENTION = "attention"
STATUS_ON_TRACK = "on track"


def status_label(remaining: Decimal, months_left: int) -> str:
    if remaining <= 0:
        return STATUS_DONE
    if months_left <= 1:
        return STATUS_URGENT
    if months_left <= 3:
        return STATUS_ATTENTION
    return STATUS_ON_TRACK


@dataclass(slots=True, frozen=True)
class GoalProgress:
    goal_id: str
    name: str
    target_value: Decimal
    target_date: date
    is_monthly_plan: bool
    contributed: Decimal
    remaining: Decimal
    percent: Decimal
    months_remaining: int
    days_remaining: int
    months_total: int
    suggested_monthly: Decimal
    contributed_this_month: Decimal
    remaining_this_month: Decimal

    @property
    def is_funded(self) -> bool:
        return self.remaining <= 0

    @property
    def status(self) -> str:
        return status_label(self.remaining, self.months_remaining)


@dataclass(slots=True)
class ProgressBatch:
    rows: list[GoalProgress] = field(default_factory=list)
    omitted: list[DanglingReference] = field(default_factory=list)

    def by_goal(self) -> dict[str, GoalProgress]:
        return {row.goal_id: row for row in self.rows}


def goal_progress(
    goal: Goal,
    allocations: Iterable[Allocation],
    today: date,
    *,
    installments: Iterable[Installment] = (),
    redeemed: Collection[str] = (),
    count_redeemed: bool = True,
) -> GoalProgress:
    """Progress of one goal as of ``today``.

    Allocations on redeemed investments still count unless ``count_redeemed``
    is False, in which case ``redeemed`` names the investments to skip.
    """
    own = [a for a in allocations if a.goal_id == goal.id and a.amount > 0]
    if not count_redeemed:
        own = [a for a in own if a.investment_id not in redeemed]

    contributed = total(a.amount for a in own)
    remaining = max(ZERO, goal.target_value - contributed)
    months_left = months_remaining(today, goal.target_date)
    suggested = remaining / max(1, months_left)

    current = [i for i in installments if i.goal_id == goal.id and same_month(i.reference_month, today)]
    if current:
        contributed_this_month = total(i.contributed_amount for i in current)
        remaining_this_month = total(i.outstanding for i in current)
    else:
        contributed_this_month = total(
            a.amount for a in own if a.allocated_on is not None and same_month(a.allocated_on, today)
        )
        remaining_this_month = max(ZERO, suggested - contributed_this_month)
    if remaining <= 0:
        remaining_this_month = ZERO

    return GoalProgress(
        goal_id=goal.id,
        name=goal.name,
        target_value=goal.target_value,
        target_date=goal.target_date,
        is_monthly_plan=goal.is_monthly_plan,
        contributed=contributed,
        remaining=remaining,
        percent=percent_of(contributed, goal.target_value),
        months_remaining=months_left,
        days_remaining=days_remaining(today, goal.target_date),
        months_total=months_inclusive(goal.created_at, goal.target_date),
        suggested_monthly=suggested,
        contributed_this_month=contributed_this_month,
        remaining_this_month=remaining_this_month,
    )


def compute_progress(ledger: Ledger, today: date) -> ProgressBatch:
    """Progress for every goal in the snapshot.

    Allocations pointing at a missing goal or investment are left out of the
    sums and listed in ``omitted``.
    """
    batch = ProgressBatch(omitted=dangling_allocations(ledger))
    for ref in batch.omitted:
        logger.warning("Omitting %s", ref.message)

    investment_ids = {i.id for i in ledger.investments}
    by_goal: dict[str, list[Allocation]] = defaultdict(list)
    for allocation in ledger.allocations:
        if allocation.investment_id in investment_ids:
            by_goal[allocation.goal_id].append(allocation)

    installments_by_goal: dict[str, list[Installment]] = defaultdict(list)
    for item in ledger.installments:
        installments_by_goal[item.goal_id].append(item)

    redeemed = {i.id for i in ledger.investments if i.is_redeemed}
    for goal in ledger.goals:
        batch.rows.append(
            goal_progress(
                goal,
                by_goal.get(goal.id, []),
                today,
                installments=installments_by_goal.get(goal.id, []),
                redeemed=redeemed,
                count_redeemed=ledger.settings.count_redeemed_allocations,
            )
        )
    logger.debug("Computed progress for %d goal(s) as of %s", len(batch.rows), today.isoformat())
    return batch
