"""Monthly installment view derived from a goal's allocations.

Allocations are the only writable record of contributions. When a snapshot
carries no installment rows, the year projection runs on installments built
here, so the two views cannot drift apart.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal
import logging
from typing import Iterable

from .amounts import ZERO, total
from .months import add_months, month_start, months_remaining
from .schema import INSTALLMENT_CLOSED, INSTALLMENT_OPEN, Allocation, Goal, Installment, Ledger

logger = logging.getLogger(__name__)


def derive_installments(goal: Goal, allocations: Iterable[Allocation], today: date) -> tuple[Installment, ...]:
    """Closed rows for months already funded, open rows for the months still to fund.

    Undated allocations are booked in the goal's creation month. The plan
    spreads what is left over ``max(1, months_remaining)`` months starting
    with the current one, one ``suggested_monthly`` each.
    """
    by_month: dict[date, Decimal] = defaultdict(lambda: ZERO)
    for allocation in allocations:
        if allocation.goal_id != goal.id or allocation.amount <= 0:
            continue
        booked = allocation.allocated_on or goal.created_at
        by_month[month_start(booked)] += allocation.amount

    remaining = max(ZERO, goal.target_value - total(by_month.values()))
    months_left = months_remaining(today, goal.target_date)
    suggested = remaining / max(1, months_left)
    current = month_start(today)
    open_months: set[date] = set()
    if remaining > 0:
        open_months = {add_months(current, offset) for offset in range(max(1, months_left))}

    rows: list[Installment] = []
    for month in sorted(set(by_month) | open_months):
        contributed = by_month.get(month, ZERO)
        if month in open_months:
            rows.append(Installment(goal.id, month, suggested + contributed, contributed, INSTALLMENT_OPEN))
        else:
            rows.append(Installment(goal.id, month, contributed, contributed, INSTALLMENT_CLOSED))
    return tuple(rows)


def installments_for(ledger: Ledger, today: date) -> tuple[Installment, ...]:
    """Installments carried by the snapshot, plus a derived schedule for every goal without any.

    Explicit rows are returned as given, dangling ones included, so the
    projection can still report them.
    """
    explicit_goals = {item.goal_id for item in ledger.installments}

    investment_ids = {i.id for i in ledger.investments}
    redeemed = {i.id for i in ledger.investments if i.is_redeemed}
    by_goal: dict[str, list[Allocation]] = defaultdict(list)
    for allocation in ledger.allocations:
        if allocation.investment_id not in investment_ids:
            continue
        if not ledger.settings.count_redeemed_allocations and allocation.investment_id in redeemed:
            continue
        by_goal[allocation.goal_id].append(allocation)

    rows: list[Installment] = list(ledger.installments)
    derived = 0
    for goal in ledger.goals:
        if goal.id in explicit_goals:
            continue
        schedule = derive_installments(goal, by_goal.get(goal.id, []), today)
        rows.extend(schedule)
        derived += len(schedule)
    logger.debug(
        "Using %d explicit and %d derived installment(s) for %d goal(s)",
        len(ledger.installments),
        derived,
        len(ledger.goals),
    )
    return tuple(rows)
