"""Year-ahead projection blending realized contributions with open installments."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
import logging
from typing import Iterable, Sequence

from .amounts import ZERO, percent_of, total
from .errors import DanglingReference
from .months import iter_year_months, month_start
from .schema import INSTALLMENT_OPEN, Goal, Installment
from .validate import dangling_installments

logger = logging.getLogger(__name__)

UPCOMING_GOALS_PER_YEAR = 4


@dataclass(slots=True, frozen=True)
class GoalYearProjection:
    goal_id: str
    name: str
    target_value: Decimal
    is_monthly_plan: bool
    ytd: Decimal
    raw_remaining: Decimal
    proj_add: Decimal

    @property
    def projected(self) -> Decimal:
        return self.ytd + self.proj_add

    @property
    def ytd_pct(self) -> Decimal:
        return percent_of(self.ytd, self.target_value)

    @property
    def projected_pct(self) -> Decimal:
        return percent_of(self.projected, self.target_value)


@dataclass(slots=True, frozen=True)
class MonthGoalDetail:
    goal_id: str
    name: str
    contributed: Decimal
    planned: Decimal


@dataclass(slots=True, frozen=True)
class MonthProjection:
    month: date
    contributed: Decimal
    planned: Decimal
    contributed_cum: Decimal
    projected_cum: Decimal
    details: tuple[MonthGoalDetail, ...] = ()


@dataclass(slots=True, frozen=True)
class ProjectionTotals:
    ytd: Decimal
    proj_add: Decimal
    projected: Decimal


@dataclass(slots=True)
class YearProjection:
    year: int
    totals: ProjectionTotals
    per_goal: list[GoalYearProjection] = field(default_factory=list)
    per_month: list[MonthProjection] = field(default_factory=list)
    omitted: list[DanglingReference] = field(default_factory=list)


def projection_window(year: int, today: date) -> tuple[date, date] | None:
    """Months of ``year`` whose open installments still count as planned money."""
    if year < today.year:
        return None
    start = month_start(today) if year == today.year else date(year, 1, 1)
    return start, date(year, 12, 1)


def project(goals: Sequence[Goal], installments: Sequence[Installment], year: int, today: date) -> YearProjection:
    """Project every goal through December of ``year``.

    Each installment's contributed amount counts toward the year-to-date
    figure; only the unpaid part of an open installment inside the window can
    add to the projection, and never beyond what the goal still lacks this year.
    """
    omitted = dangling_installments(goals, installments)
    for ref in omitted:
        logger.warning("Omitting %s", ref.message)

    window = projection_window(year, today)
    goal_ids = {g.id for g in goals}
    by_goal: dict[str, list[Installment]] = defaultdict(list)
    for item in installments:
        if item.goal_id in goal_ids and item.reference_month.year == year:
            by_goal[item.goal_id].append(item)

    contributed_by_month: dict[date, dict[str, Decimal]] = defaultdict(lambda: defaultdict(lambda: ZERO))
    planned_by_month: dict[date, dict[str, Decimal]] = defaultdict(lambda: defaultdict(lambda: ZERO))

    per_goal: list[GoalYearProjection] = []
    for goal in goals:
        rows = sorted(by_goal.get(goal.id, []), key=lambda item: item.reference_month)
        for item in rows:
            contributed_by_month[item.reference_month][goal.id] += item.contributed_amount

        ytd = total(item.contributed_amount for item in rows)
        pending = [
            item
            for item in rows
            if item.status == INSTALLMENT_OPEN
            and window is not None
            and window[0] <= item.reference_month <= window[1]
        ]
        raw_remaining = total(item.outstanding for item in pending)
        proj_add = min(raw_remaining, max(ZERO, goal.target_value - ytd))

        budget = proj_add
        for item in pending:
            if budget <= 0:
                break
            take = min(item.outstanding, budget)
            planned_by_month[item.reference_month][goal.id] += take
            budget -= take

        per_goal.append(
            GoalYearProjection(
                goal_id=goal.id,
                name=goal.name,
                target_value=goal.target_value,
                is_monthly_plan=goal.is_monthly_plan,
                ytd=ytd,
                raw_remaining=raw_remaining,
                proj_add=proj_add,
            )
        )

    names = {g.id: g.name for g in goals}
    per_month: list[MonthProjection] = []
    contributed_cum = ZERO
    projected_cum = ZERO
    for month in iter_year_months(year):
        contributed_map = contributed_by_month.get(month, {})
        planned_map = planned_by_month.get(month, {})
        contributed = total(contributed_map.values())
        planned = total(planned_map.values())
        contributed_cum += contributed
        projected_cum += contributed + planned

        details = [
            MonthGoalDetail(
                goal_id=goal_id,
                name=names[goal_id],
                contributed=contributed_map.get(goal_id, ZERO),
                planned=planned_map.get(goal_id, ZERO),
            )
            for goal_id in set(contributed_map) | set(planned_map)
        ]
        details = [d for d in details if d.contributed != 0 or d.planned != 0]
        details.sort(key=lambda d: (-(d.contributed + d.planned), d.name))

        per_month.append(
            MonthProjection(
                month=month,
                contributed=contributed,
                planned=planned,
                contributed_cum=contributed_cum,
                projected_cum=projected_cum,
                details=tuple(details),
            )
        )

    totals = ProjectionTotals(
        ytd=total(row.ytd for row in per_goal),
        proj_add=total(row.proj_add for row in per_goal),
        projected=total(row.projected for row in per_goal),
    )
    logger.debug("Projected %d goal(s) for %d: %s", len(per_goal), year, totals)
    return YearProjection(year=year, totals=totals, per_goal=per_goal, per_month=per_month, omitted=omitted)


@dataclass(slots=True, frozen=True)
class UpcomingGoal:
    goal_id: str
    name: str
    target_date: date
    target_value: Decimal
    settled: bool


@dataclass(slots=True)
class YearSummary:
    year: int
    goal_count: int = 0
    open_count: int = 0
    settled_count: int = 0
    total_targets: Decimal = ZERO
    total_planned: Decimal = ZERO
    total_contributed: Decimal = ZERO
    total_remaining: Decimal = ZERO
    monthly_plan_targets: Decimal = ZERO
    upcoming: list[UpcomingGoal] = field(default_factory=list)

    @property
    def progress_pct(self) -> Decimal:
        return percent_of(self.total_contributed, self.total_targets)


@dataclass(slots=True)
class MultiYearSummary:
    years: list[YearSummary] = field(default_factory=list)

    @property
    def total_targets(self) -> Decimal:
        return total(y.total_targets for y in self.years)

    @property
    def total_contributed(self) -> Decimal:
        return total(y.total_contributed for y in self.years)

    @property
    def total_remaining(self) -> Decimal:
        return total(y.total_remaining for y in self.years)


def _is_settled(rows: Iterable[Installment]) -> bool:
    statuses = [item.status for item in rows]
    return bool(statuses) and INSTALLMENT_OPEN not in statuses


def summarize_years(goals: Sequence[Goal], installments: Sequence[Installment]) -> MultiYearSummary:
    """Group goals by the year of their target date."""
    by_goal: dict[str, list[Installment]] = defaultdict(list)
    for item in installments:
        by_goal[item.goal_id].append(item)

    by_year: dict[int, YearSummary] = {}
    for goal in sorted(goals, key=lambda g: (g.target_date, g.name)):
        summary = by_year.setdefault(goal.target_date.year, YearSummary(year=goal.target_date.year))
        rows = by_goal.get(goal.id, [])
        settled = _is_settled(rows)
        contributed = total(item.contributed_amount for item in rows)

        summary.goal_count += 1
        if settled:
            summary.settled_count += 1
        else:
            summary.open_count += 1
        summary.total_targets += goal.target_value
        if goal.is_monthly_plan:
            summary.monthly_plan_targets += goal.target_value
        summary.total_planned += total(item.expected_amount for item in rows)
        summary.total_contributed += contributed
        summary.total_remaining += max(ZERO, goal.target_value - contributed)
        if len(summary.upcoming) < UPCOMING_GOALS_PER_YEAR:
            summary.upcoming.append(
                UpcomingGoal(
                    goal_id=goal.id,
                    name=goal.name,
                    target_date=goal.target_date,
                    target_value=goal.target_value,
                    settled=settled,
                )
            )

    return MultiYearSummary(years=[by_year[year] for year in sorted(by_year)])
