"""Allocation invariant and the ledger write operations built on it.

An investment's allocations may never add up to more than the investment's
own value. ``validate_allocations`` is the single place that arithmetic
lives, so live validation while editing and the final save agree.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
import logging
from typing import Iterable, Mapping

from .amounts import ZERO, total
from .errors import DanglingReferenceError, LedgerError, OverAllocated, OverAllocatedError, RedeemedInvestmentError
from .schema import Allocation, Investment, Ledger

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class AllocationCheck:
    investment_id: str
    total_value: Decimal
    allocations: tuple[Allocation, ...]

    @property
    def allocated(self) -> Decimal:
        return total(a.amount for a in self.allocations)

    @property
    def is_valid(self) -> bool:
        return self.allocated <= self.total_value

    @property
    def excess(self) -> Decimal:
        return max(ZERO, self.allocated - self.total_value)

    @property
    def remaining_to_allocate(self) -> Decimal:
        return max(ZERO, self.total_value - self.allocated)

    @property
    def issue(self) -> OverAllocated | None:
        if self.is_valid:
            return None
        return OverAllocated(investment_id=self.investment_id, total_value=self.total_value, allocated=self.allocated)


def normalize_allocations(allocations: Iterable[Allocation]) -> tuple[Allocation, ...]:
    """Drop entries that do not commit any money; they are never persisted."""
    return tuple(a for a in allocations if a.amount > 0)


def validate_allocations(investment: Investment, allocations: Iterable[Allocation]) -> AllocationCheck:
    return AllocationCheck(
        investment_id=investment.id,
        total_value=investment.total_value,
        allocations=normalize_allocations(allocations),
    )


def proposal(
    investment_id: str,
    amounts: Mapping[str, Decimal],
    allocated_on: date | None = None,
) -> tuple[Allocation, ...]:
    """Build an allocation set from a goal_id -> amount mapping."""
    return tuple(
        Allocation(investment_id=investment_id, goal_id=goal_id, amount=amount, allocated_on=allocated_on)
        for goal_id, amount in amounts.items()
    )


def replace_allocations(ledger: Ledger, investment_id: str, allocations: Iterable[Allocation]) -> Ledger:
    """Return a ledger whose allocations for ``investment_id`` are exactly ``allocations``.

    The input ledger is left untouched. Either the whole replacement applies
    or an error is raised and no new ledger exists.
    """
    investment = ledger.investment(investment_id)
    if investment is None:
        raise DanglingReferenceError(f"investment '{investment_id}' does not exist")
    if investment.is_redeemed:
        raise RedeemedInvestmentError(f"investment '{investment_id}' is redeemed; its allocations are read-only")

    proposed = tuple(allocations)
    goal_ids = {g.id for g in ledger.goals}
    for item in proposed:
        if item.investment_id != investment_id:
            raise LedgerError(
                f"allocation for investment '{item.investment_id}' passed while replacing '{investment_id}'"
            )
        if item.goal_id not in goal_ids:
            raise DanglingReferenceError(f"goal '{item.goal_id}' does not exist")

    check = validate_allocations(investment, proposed)
    if not check.is_valid:
        raise OverAllocatedError(investment_id, check.excess)

    kept = tuple(a for a in ledger.allocations if a.investment_id != investment_id)
    logger.debug(
        "Replacing allocations of %s: %d row(s), %s of %s allocated",
        investment_id,
        len(check.allocations),
        check.allocated,
        investment.total_value,
    )
    return replace(ledger, allocations=kept + check.allocations)


def delete_goal(ledger: Ledger, goal_id: str) -> Ledger:
    """Remove a goal together with every allocation and installment pointing at it."""
    if ledger.goal(goal_id) is None:
        raise DanglingReferenceError(f"goal '{goal_id}' does not exist")
    return replace(
        ledger,
        goals=tuple(g for g in ledger.goals if g.id != goal_id),
        allocations=tuple(a for a in ledger.allocations if a.goal_id != goal_id),
        installments=tuple(i for i in ledger.installments if i.goal_id != goal_id),
    )


def auto_distribute(total_value: Decimal, suggestions: Mapping[str, Decimal]) -> dict[str, Decimal]:
    """Split ``total_value`` across goals in proportion to their monthly suggestions.

    Suggestions larger than the value are scaled down to fit it. When no goal
    has a positive suggestion the value is split evenly.
    """
    if total_value <= 0 or not suggestions:
        return {}

    positive = {goal_id: max(ZERO, amount) for goal_id, amount in suggestions.items()}
    suggested_sum = total(positive.values())
    if suggested_sum > 0:
        scale = total_value / suggested_sum if suggested_sum > total_value else Decimal("1")
        return {goal_id: amount * scale for goal_id, amount in positive.items()}

    each = total_value / len(positive)
    return {goal_id: each for goal_id in positive}


def apply_suggested(
    total_value: Decimal,
    current: Mapping[str, Decimal],
    goal_id: str,
    suggested: Decimal,
) -> Decimal:
    """Amount to pre-fill for one goal, limited to the room left in the investment."""
    desired = max(ZERO, suggested)
    if total_value <= 0:
        return desired
    others = total(amount for gid, amount in current.items() if gid != goal_id and amount > 0)
    room = max(ZERO, total_value - others)
    return min(desired, room)
