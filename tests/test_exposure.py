from datetime import date
from decimal import Decimal

from goalledger.exposure import (
    UNASSIGNED,
    class_target_total,
    concentration_by_class,
    concentration_by_institution,
    concentration_by_liquidity,
    equity_summary,
    exposure,
    upcoming_maturities,
)
from goalledger.schema import Institution, Investment, load_ledger
from tests.helpers import SAMPLE_LEDGER

LIMIT = Decimal("250000")


def _inv(inv_id: str, value: str, institution: str | None = "x", *, covered: bool = True, redeemed: bool = False) -> Investment:
    return Investment(
        id=inv_id,
        name=inv_id,
        total_value=Decimal(value),
        liquidity_type="immediate",
        is_fgc_covered=covered,
        is_redeemed=redeemed,
        institution_id=institution,
    )


def test_limit_applies_per_institution():
    report = exposure([_inv("a", "200000"), _inv("b", "100000")], LIMIT, [Institution("x", "Bank X")])

    (row,) = report.institutions
    assert row.name == "Bank X"
    assert row.covered == Decimal("250000")
    assert row.at_risk == Decimal("50000")
    assert report.covered_total == Decimal("250000")
    assert report.exceeding_total == Decimal("50000")
    assert report.market_risk_total == Decimal("0")


def test_institutions_are_not_pooled():
    report = exposure([_inv("a", "200000", "x"), _inv("b", "200000", "y")], LIMIT)

    assert report.exceeding_total == Decimal("0")
    assert report.covered_total == Decimal("400000")


def test_redeemed_and_uncovered_investments():
    report = exposure(
        [
            _inv("a", "240000"),
            _inv("gone", "90000", redeemed=True),
            _inv("fund", "30000", covered=False),
        ],
        LIMIT,
    )

    (row,) = report.institutions
    assert row.total == Decimal("240000")
    assert row.at_risk == Decimal("0")
    assert row.not_eligible == Decimal("30000")
    assert row.held == Decimal("270000")
    assert report.market_risk_total == Decimal("30000")


def test_unassigned_bucket():
    report = exposure([_inv("a", "300000", None)], LIMIT)

    (row,) = report.institutions
    assert row.institution_id is None
    assert row.name == UNASSIGNED
    assert row.at_risk == Decimal("50000")


def test_sample_exposure():
    ledger = load_ledger(SAMPLE_LEDGER)
    report = exposure(ledger.investments, ledger.settings.coverage_limit, ledger.institutions)

    assert [row.name for row in report.institutions] == ["Bank A", "Bank B", "Broker C", UNASSIGNED]
    assert report.covered_total == Decimal("310000")
    assert report.exceeding_total == Decimal("50000")
    assert report.market_risk_total == Decimal("41500")
    assert all(row.covered + row.at_risk == row.total for row in report.institutions)


def test_equity_summary():
    summary = equity_summary(load_ledger(SAMPLE_LEDGER).investments)

    assert summary.total == Decimal("401500")
    assert summary.liquid == Decimal("81500")
    assert summary.fgc_protected == Decimal("360000")


def test_concentration():
    ledger = load_ledger(SAMPLE_LEDGER)

    by_class = concentration_by_class(ledger.investments, ledger.classes)
    assert [(row.name, row.value) for row in by_class] == [
        ("Fixed income", Decimal("385000")),
        ("Equities", Decimal("15000")),
        (UNASSIGNED, Decimal("1500")),
    ]
    assert abs(sum(row.share for row in by_class) - Decimal("100")) < Decimal("0.000001")

    by_liquidity = concentration_by_liquidity(ledger.investments)
    assert [(row.name, row.value) for row in by_liquidity] == [
        ("At maturity", Decimal("320000")),
        ("Immediate", Decimal("81500")),
    ]

    by_institution = concentration_by_institution(ledger.investments, ledger.institutions)
    assert by_institution[0].name == "Bank A"
    assert by_institution[-1].name == UNASSIGNED


def test_concentration_of_nothing():
    assert concentration_by_liquidity([]) == []


def test_upcoming_maturities(today):
    ledger = load_ledger(SAMPLE_LEDGER)

    assert [inv.id for inv in upcoming_maturities(ledger.investments, today)] == ["inv-lci"]
    assert upcoming_maturities(ledger.investments, today, window_days=10) == []
    assert upcoming_maturities(ledger.investments, date(2026, 12, 20)) == [ledger.investment("inv-cdb-a")]


def test_class_target_total():
    assert class_target_total(load_ledger(SAMPLE_LEDGER).classes) == Decimal("100")
