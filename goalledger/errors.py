"""Ledger issue records and the exceptions raised on the write path."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


class LedgerError(ValueError):
    """Raised when a ledger change cannot be applied."""


class OverAllocatedError(LedgerError):
    def __init__(self, investment_id: str, excess: Decimal) -> None:
        super().__init__(f"investment '{investment_id}': allocations exceed total_value by {excess}")
        self.investment_id = investment_id
        self.excess = excess


class DanglingReferenceError(LedgerError):
    """Raised when a change references a goal or investment that does not exist."""


class RedeemedInvestmentError(LedgerError):
    """Raised when allocations of a redeemed investment are edited."""


@dataclass(slots=True, frozen=True)
class OverAllocated:
    investment_id: str
    total_value: Decimal
    allocated: Decimal

    @property
    def excess(self) -> Decimal:
        return self.allocated - self.total_value

    @property
    def message(self) -> str:
        return f"allocations total {self.allocated} exceed total_value {self.total_value} by {self.excess}"


@dataclass(slots=True, frozen=True)
class InvalidLiquidityDate:
    investment_id: str
    liquidity_type: str
    due_date: date | None

    @property
    def message(self) -> str:
        if self.due_date is None:
            return f"required when liquidity_type is '{self.liquidity_type}'"
        return f"must be empty when liquidity_type is '{self.liquidity_type}'"


@dataclass(slots=True, frozen=True)
class DanglingReference:
    record: str
    field: str
    missing_id: str
    target: str

    @property
    def message(self) -> str:
        return f"{self.record}.{self.field}: '{self.missing_id}' does not match any {self.target}"
