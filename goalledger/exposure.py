"""Deposit-insurance exposure and portfolio concentration."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
import logging
from typing import Callable, Iterable, Sequence

from .amounts import ZERO, HUNDRED, total
from .schema import LIQUIDITY_IMMEDIATE, LIQUIDITY_MATURITY, AssetClass, Institution, Investment

logger = logging.getLogger(__name__)

UNASSIGNED = "Unassigned"

LIQUIDITY_LABELS = {
    LIQUIDITY_IMMEDIATE: "Immediate",
    LIQUIDITY_MATURITY: "At maturity",
}


@dataclass(slots=True, frozen=True)
class InstitutionExposure:
    institution_id: str | None
    name: str
    total: Decimal
    covered: Decimal
    at_risk: Decimal
    not_eligible: Decimal

    @property
    def held(self) -> Decimal:
        return self.total + self.not_eligible


@dataclass(slots=True)
class ExposureReport:
    coverage_limit: Decimal
    institutions: list[InstitutionExposure] = field(default_factory=list)
    market_risk_total: Decimal = ZERO

    @property
    def covered_total(self) -> Decimal:
        return total(row.covered for row in self.institutions)

    @property
    def exceeding_total(self) -> Decimal:
        return total(row.at_risk for row in self.institutions)


@dataclass(slots=True, frozen=True)
class EquitySummary:
    total: Decimal
    liquid: Decimal
    fgc_protected: Decimal


@dataclass(slots=True, frozen=True)
class ConcentrationRow:
    name: str
    value: Decimal
    share: Decimal


def active(investments: Iterable[Investment]) -> list[Investment]:
    return [inv for inv in investments if not inv.is_redeemed]


def exposure(
    investments: Iterable[Investment],
    coverage_limit: Decimal,
    institutions: Sequence[Institution] = (),
) -> ExposureReport:
    """Covered and at-risk value per institution.

    The coverage limit applies to each institution separately. Investments
    without an institution are reported in an "Unassigned" bucket.
    """
    names = {inst.id: inst.name for inst in institutions}
    eligible: dict[str | None, Decimal] = defaultdict(lambda: ZERO)
    not_eligible: dict[str | None, Decimal] = defaultdict(lambda: ZERO)

    held = active(investments)
    for inv in held:
        if inv.is_fgc_covered:
            eligible[inv.institution_id] += inv.total_value
        else:
            not_eligible[inv.institution_id] += inv.total_value

    report = ExposureReport(coverage_limit=coverage_limit)
    for inst_id in set(eligible) | set(not_eligible):
        covered_value = eligible[inst_id]
        if inst_id is None:
            name = UNASSIGNED
        else:
            name = names.get(inst_id, inst_id)
        report.institutions.append(
            InstitutionExposure(
                institution_id=inst_id,
                name=name,
                total=covered_value,
                covered=min(covered_value, coverage_limit),
                at_risk=max(ZERO, covered_value - coverage_limit),
                not_eligible=not_eligible[inst_id],
            )
        )
    report.institutions.sort(key=lambda row: (-row.held, row.name))

    portfolio = total(inv.total_value for inv in held)
    protected = total(inv.total_value for inv in held if inv.is_fgc_covered)
    report.market_risk_total = portfolio - protected
    logger.debug(
        "Exposure over %d institution(s): covered=%s exceeding=%s market_risk=%s",
        len(report.institutions),
        report.covered_total,
        report.exceeding_total,
        report.market_risk_total,
    )
    return report


def equity_summary(investments: Iterable[Investment]) -> EquitySummary:
    held = active(investments)
    return EquitySummary(
        total=total(inv.total_value for inv in held),
        liquid=total(inv.total_value for inv in held if inv.liquidity_type == LIQUIDITY_IMMEDIATE),
        fgc_protected=total(inv.total_value for inv in held if inv.is_fgc_covered),
    )


def _concentration(investments: Iterable[Investment], label_for: Callable[[Investment], str]) -> list[ConcentrationRow]:
    values: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for inv in active(investments):
        values[label_for(inv)] += inv.total_value
    grand = total(values.values())
    rows = [
        ConcentrationRow(name=name, value=value, share=(HUNDRED * value / grand) if grand > 0 else ZERO)
        for name, value in values.items()
    ]
    rows.sort(key=lambda row: (-row.value, row.name))
    return rows


def concentration_by_class(investments: Iterable[Investment], classes: Sequence[AssetClass] = ()) -> list[ConcentrationRow]:
    names = {c.id: c.name for c in classes}
    return _concentration(investments, lambda inv: names.get(inv.class_id, inv.class_id) if inv.class_id else UNASSIGNED)


def concentration_by_liquidity(investments: Iterable[Investment]) -> list[ConcentrationRow]:
    return _concentration(investments, lambda inv: LIQUIDITY_LABELS.get(inv.liquidity_type, inv.liquidity_type))


def concentration_by_institution(
    investments: Iterable[Investment],
    institutions: Sequence[Institution] = (),
) -> list[ConcentrationRow]:
    names = {i.id: i.name for i in institutions}
    return _concentration(
        investments,
        lambda inv: names.get(inv.institution_id, inv.institution_id) if inv.institution_id else UNASSIGNED,
    )


def upcoming_maturities(investments: Iterable[Investment], today: date, window_days: int = 30) -> list[Investment]:
    """Active investments maturing between today and ``window_days`` from now, soonest first."""
    due = [
        inv
        for inv in active(investments)
        if inv.due_date is not None and 0 <= (inv.due_date - today).days <= window_days
    ]
    due.sort(key=lambda inv: (inv.due_date, inv.name))
    return due


def class_target_total(classes: Iterable[AssetClass]) -> Decimal:
    return total(c.target_percent for c in classes)
