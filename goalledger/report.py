"""Report assembly: every derivation for one snapshot, as JSON or a text summary."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal
import json
from pathlib import Path
from typing import Any

from .amounts import to_cents
from .exposure import (
    ConcentrationRow,
    EquitySummary,
    ExposureReport,
    class_target_total,
    concentration_by_class,
    concentration_by_institution,
    concentration_by_liquidity,
    equity_summary,
    exposure,
    upcoming_maturities,
)
from .plan import PlanSummary, RankedGoal, rank, summarize
from .progress import ProgressBatch, compute_progress
from .projection import MultiYearSummary, YearProjection, project, summarize_years
from .schedule import installments_for
from .schema import Investment, Ledger
from .validate import check_ledger_sanity


@dataclass(slots=True)
class Report:
    today: date
    currency: str
    progress: ProgressBatch
    plan: PlanSummary
    ranking: list[RankedGoal]
    exposure: ExposureReport
    equity: EquitySummary
    concentration: dict[str, list[ConcentrationRow]]
    maturities: list[Investment]
    class_target_total: Decimal
    projection: YearProjection
    years: MultiYearSummary
    warnings: list[str] = field(default_factory=list)


def build_report(ledger: Ledger, *, today: date, year: int | None = None) -> Report:
    """Run every derivation against ``ledger`` as of ``today``.

    The projection covers ``year`` when given, otherwise the current year.
    """
    settings = ledger.settings
    batch = compute_progress(ledger, today)
    installments = installments_for(ledger, today)
    return Report(
        today=today,
        currency=settings.currency,
        progress=batch,
        plan=summarize(batch.rows),
        ranking=rank(batch.rows),
        exposure=exposure(ledger.investments, settings.coverage_limit, ledger.institutions),
        equity=equity_summary(ledger.investments),
        concentration={
            "class": concentration_by_class(ledger.investments, ledger.classes),
            "liquidity": concentration_by_liquidity(ledger.investments),
            "institution": concentration_by_institution(ledger.investments, ledger.institutions),
        },
        maturities=upcoming_maturities(ledger.investments, today, settings.maturity_window_days),
        class_target_total=class_target_total(ledger.classes),
        projection=project(ledger.goals, installments, year or today.year, today),
        years=summarize_years(ledger.goals, installments),
        warnings=check_ledger_sanity(ledger, today).warnings,
    )


def _report_payload(report: Report) -> dict[str, object]:
    # asdict() skips properties; derived fields are added next to the rows they belong to.
    return {
        "today": report.today,
        "currency": report.currency,
        "goals": [
            {**asdict(row), "status": row.status, "is_funded": row.is_funded}
            for row in report.progress.rows
        ],
        "plan": {**asdict(report.plan), "overall_percent": report.plan.overall_percent},
        "ranking": [
            {"goal_id": r.goal_id, "name": r.name, "priority_rank": r.priority_rank, "priority_score": r.priority_score}
            for r in report.ranking
        ],
        "exposure": {
            "coverage_limit": report.exposure.coverage_limit,
            "covered_total": report.exposure.covered_total,
            "exceeding_total": report.exposure.exceeding_total,
            "market_risk_total": report.exposure.market_risk_total,
            "institutions": [{**asdict(row), "held": row.held} for row in report.exposure.institutions],
        },
        "equity": asdict(report.equity),
        "concentration": {key: [asdict(row) for row in rows] for key, rows in report.concentration.items()},
        "maturities": [
            {"id": inv.id, "name": inv.name, "due_date": inv.due_date, "total_value": inv.total_value}
            for inv in report.maturities
        ],
        "class_target_total": report.class_target_total,
        "projection": {
            "year": report.projection.year,
            "totals": asdict(report.projection.totals),
            "per_goal": [
                {
                    **asdict(row),
                    "projected": row.projected,
                    "ytd_pct": row.ytd_pct,
                    "projected_pct": row.projected_pct,
                }
                for row in report.projection.per_goal
            ],
            "per_month": [asdict(row) for row in report.projection.per_month],
        },
        "years": {
            "total_targets": report.years.total_targets,
            "total_contributed": report.years.total_contributed,
            "total_remaining": report.years.total_remaining,
            "years": [{**asdict(y), "progress_pct": y.progress_pct} for y in report.years.years],
        },
        "omitted": [ref.message for ref in report.progress.omitted + report.projection.omitted],
        "warnings": report.warnings,
    }


def _json_default(value: Any) -> str:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def render_json(report: Report) -> str:
    return json.dumps(_report_payload(report), indent=2, default=_json_default)


def _money(value: Decimal) -> str:
    return f"{to_cents(value):,.2f}"


def render_text(report: Report) -> str:
    lines = [f"As of {report.today.isoformat()} ({report.currency})"]

    plan = report.plan
    lines.append(
        f"Monthly plan: {plan.goal_count} goal(s) | suggested {_money(plan.total_suggested)}"
        f" | contributed {_money(plan.total_contributed_this_month)}"
        f" | remaining {_money(plan.total_remaining_this_month)}"
        f" | {plan.overall_percent:.0f}%"
    )
    if report.ranking:
        lines.append("Priorities:")
        for ranked in report.ranking:
            row = ranked.progress
            lines.append(
                f"  {ranked.priority_rank}. {row.name} [{row.status}] suggested {_money(row.suggested_monthly)}"
                f" remaining {_money(row.remaining)} ({row.months_remaining} month(s) left)"
            )

    exp = report.exposure
    lines.append(
        f"Exposure: covered {_money(exp.covered_total)} | exceeding {_money(exp.exceeding_total)}"
        f" | market risk {_money(exp.market_risk_total)}"
    )
    for row in exp.institutions:
        if row.at_risk > 0:
            lines.append(f"  {row.name}: {_money(row.at_risk)} above the {_money(exp.coverage_limit)} limit")

    totals = report.projection.totals
    lines.append(
        f"Projection {report.projection.year}: so far {_money(totals.ytd)}"
        f" | to come {_money(totals.proj_add)} | projected {_money(totals.projected)}"
    )
    if report.maturities:
        lines.append(f"Maturing soon: {', '.join(inv.name for inv in report.maturities)}")

    omitted = len(report.progress.omitted) + len(report.projection.omitted)
    if omitted:
        lines.append(f"Omitted records: {omitted}")
    return "\n".join(lines)


def write_report(path: str | Path, content: str) -> None:
    Path(path).write_text(content, encoding="utf-8")
