"""Semantic and cross-reference validation for ledger snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Sequence

from .amounts import HUNDRED, total
from .errors import DanglingReference, InvalidLiquidityDate
from .ledger import validate_allocations
from .schema import (
    INSTALLMENT_CLOSED,
    INSTALLMENT_OPEN,
    LIQUIDITY_IMMEDIATE,
    LIQUIDITY_MATURITY,
    Goal,
    Installment,
    Investment,
    Ledger,
)

LIQUIDITY_TYPES = {LIQUIDITY_IMMEDIATE, LIQUIDITY_MATURITY}
INSTALLMENT_STATUS = {INSTALLMENT_OPEN, INSTALLMENT_CLOSED}


@dataclass(slots=True)
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _check_enum(result: ValidationResult, path: str, value: str, allowed: Iterable[str]) -> None:
    allowed_set = set(allowed)
    if value not in allowed_set:
        expected = ", ".join(sorted(allowed_set))
        result.errors.append(f"{path}: '{value}' is not valid; expected one of [{expected}]")


def _check_unique(result: ValidationResult, collection: str, ids: Iterable[str]) -> None:
    seen: set[str] = set()
    for idx, item_id in enumerate(ids):
        if item_id in seen:
            result.errors.append(f"{collection}[{idx}].id: duplicate id '{item_id}'")
        seen.add(item_id)


def check_liquidity(investment: Investment) -> InvalidLiquidityDate | None:
    """A maturity investment needs a due date; an immediate one must not carry one."""
    if investment.liquidity_type == LIQUIDITY_MATURITY and investment.due_date is None:
        return InvalidLiquidityDate(investment.id, investment.liquidity_type, None)
    if investment.liquidity_type == LIQUIDITY_IMMEDIATE and investment.due_date is not None:
        return InvalidLiquidityDate(investment.id, investment.liquidity_type, investment.due_date)
    return None


def dangling_allocations(ledger: Ledger) -> list[DanglingReference]:
    goal_ids = {g.id for g in ledger.goals}
    investment_ids = {i.id for i in ledger.investments}
    found: list[DanglingReference] = []
    for idx, allocation in enumerate(ledger.allocations):
        base = f"allocations[{idx}]"
        if allocation.investment_id not in investment_ids:
            found.append(DanglingReference(base, "investment_id", allocation.investment_id, "investment"))
        if allocation.goal_id not in goal_ids:
            found.append(DanglingReference(base, "goal_id", allocation.goal_id, "goal"))
    return found


def dangling_installments(goals: Sequence[Goal], installments: Sequence[Installment]) -> list[DanglingReference]:
    goal_ids = {g.id for g in goals}
    return [
        DanglingReference(f"installments[{idx}]", "goal_id", item.goal_id, "goal")
        for idx, item in enumerate(installments)
        if item.goal_id not in goal_ids
    ]


def find_dangling(ledger: Ledger) -> list[DanglingReference]:
    """Every reference in the snapshot that points at a record which does not exist."""
    found = dangling_allocations(ledger)
    found.extend(dangling_installments(ledger.goals, ledger.installments))
    institution_ids = {i.id for i in ledger.institutions}
    class_ids = {c.id for c in ledger.classes}
    for idx, investment in enumerate(ledger.investments):
        base = f"investments[{idx}]"
        if investment.institution_id is not None and investment.institution_id not in institution_ids:
            found.append(DanglingReference(base, "institution_id", investment.institution_id, "institution"))
        if investment.class_id is not None and investment.class_id not in class_ids:
            found.append(DanglingReference(base, "class_id", investment.class_id, "asset class"))
    return found


def validate_ledger(ledger: Ledger) -> ValidationResult:
    result = ValidationResult()

    _check_unique(result, "goals", (g.id for g in ledger.goals))
    _check_unique(result, "investments", (i.id for i in ledger.investments))
    _check_unique(result, "institutions", (i.id for i in ledger.institutions))
    _check_unique(result, "classes", (c.id for c in ledger.classes))

    if ledger.settings.coverage_limit < 0:
        result.errors.append("settings.coverage_limit: must be >= 0")
    if ledger.settings.maturity_window_days < 0:
        result.errors.append("settings.maturity_window_days: must be >= 0")

    for idx, goal in enumerate(ledger.goals):
        base = f"goals[{idx}]"
        if goal.target_value <= 0:
            result.errors.append(f"{base}.target_value: must be > 0")
        if goal.target_date < goal.created_at:
            result.warnings.append(f"{base}.target_date: earlier than created_at; months_total is floored at 1")

    for idx, investment in enumerate(ledger.investments):
        base = f"investments[{idx}]"
        if investment.total_value <= 0:
            result.errors.append(f"{base}.total_value: must be > 0")
        _check_enum(result, f"{base}.liquidity_type", investment.liquidity_type, LIQUIDITY_TYPES)
        issue = check_liquidity(investment)
        if issue is not None:
            result.errors.append(f"{base}.due_date: {issue.message}")

    redeemed = {i.id for i in ledger.investments if i.is_redeemed}
    for idx, allocation in enumerate(ledger.allocations):
        base = f"allocations[{idx}]"
        if allocation.amount < 0:
            result.errors.append(f"{base}.amount: must be >= 0")
        elif allocation.amount == 0:
            result.warnings.append(f"{base}.amount: zero allocation is ignored and will not be saved")
        if allocation.investment_id in redeemed:
            result.warnings.append(
                f"{base}.investment_id: '{allocation.investment_id}' is redeemed; allocation kept as history"
            )

    for idx, investment in enumerate(ledger.investments):
        check = validate_allocations(investment, ledger.allocations_for_investment(investment.id))
        issue = check.issue
        if issue is not None:
            result.errors.append(f"investments[{idx}]: {issue.message}")

    for idx, item in enumerate(ledger.installments):
        base = f"installments[{idx}]"
        _check_enum(result, f"{base}.status", item.status, INSTALLMENT_STATUS)
        if item.expected_amount < 0:
            result.errors.append(f"{base}.expected_amount: must be >= 0")
        if item.contributed_amount < 0:
            result.errors.append(f"{base}.contributed_amount: must be >= 0")

    for idx, asset_class in enumerate(ledger.classes):
        if not (0 <= asset_class.target_percent <= HUNDRED):
            result.errors.append(f"classes[{idx}].target_percent: must be between 0 and 100")

    result.errors.extend(ref.message for ref in find_dangling(ledger))
    return result


def check_ledger_sanity(ledger: Ledger, today: date) -> ValidationResult:
    """Warnings for snapshots that are valid but probably not what the user meant."""
    result = ValidationResult()

    for idx, goal in enumerate(ledger.goals):
        if goal.target_date < today:
            result.warnings.append(f"goals[{idx}].target_date: {goal.target_date.isoformat()} is in the past")

    for idx, investment in enumerate(ledger.investments):
        if investment.is_redeemed or investment.due_date is None:
            continue
        if investment.due_date < today:
            result.warnings.append(
                f"investments[{idx}].due_date: matured on {investment.due_date.isoformat()} but is not redeemed"
            )

    class_total = total(c.target_percent for c in ledger.classes)
    if class_total > HUNDRED:
        result.warnings.append(f"classes: target_percent adds up to {class_total}%, above 100%")

    return result
