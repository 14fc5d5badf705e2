"""Ledger snapshot dataclasses and JSON loading."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
import json
from pathlib import Path
from typing import Any

LIQUIDITY_IMMEDIATE = "immediate"
LIQUIDITY_MATURITY = "maturity"

INSTALLMENT_OPEN = "open"
INSTALLMENT_CLOSED = "closed"

DEFAULT_COVERAGE_LIMIT = Decimal("250000")


class SchemaError(ValueError):
    """Raised when raw JSON cannot be parsed into ledger records."""


def _expect_dict(value: Any, path: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise SchemaError(f"{path}: expected object")
    return value


def _expect_list(value: Any, path: str) -> list[Any]:
    if not isinstance(value, list):
        raise SchemaError(f"{path}: expected array")
    return value


def _require(data: dict[str, Any], key: str, path: str) -> Any:
    if key not in data:
        raise SchemaError(f"{path}.{key}: missing required field")
    return data[key]


def _optional(data: dict[str, Any], key: str, default: Any = None) -> Any:
    return data.get(key, default)


def _amount(value: Any, path: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise SchemaError(f"{path}: expected a number")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise SchemaError(f"{path}: '{value}' is not a valid amount") from None
    if not amount.is_finite():
        raise SchemaError(f"{path}: '{value}' is not a valid amount")
    return amount


def _date(value: Any, path: str) -> date:
    if isinstance(value, date):
        return value
    text = str(value)
    # Timestamps keep only their calendar date.
    if len(text) > 10 and text[10] in "T ":
        text = text[:10]
    try:
        return date.fromisoformat(text)
    except ValueError:
        raise SchemaError(f"{path}: '{value}' is not valid; expected YYYY-MM-DD") from None


def _optional_date(value: Any, path: str) -> date | None:
    if value is None or value == "":
        return None
    return _date(value, path)


def _month(value: Any, path: str) -> date:
    text = str(value)
    if len(text) == 7:
        text = f"{text}-01"
    try:
        return _date(text, path).replace(day=1)
    except SchemaError:
        raise SchemaError(f"{path}: '{value}' is not valid; expected YYYY-MM or YYYY-MM-DD") from None


def _flag(value: Any, path: str) -> bool:
    if not isinstance(value, bool):
        raise SchemaError(f"{path}: expected true or false")
    return value


def _whole_number(value: Any, path: str) -> int:
    if isinstance(value, bool):
        raise SchemaError(f"{path}: expected a whole number")
    if isinstance(value, int):
        return value
    if isinstance(value, Decimal) and value.is_finite() and value == value.to_integral_value():
        return int(value)
    raise SchemaError(f"{path}: '{value}' is not a whole number")


def _optional_id(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


@dataclass(slots=True, frozen=True)
class Goal:
    id: str
    name: str
    target_value: Decimal
    target_date: date
    created_at: date
    is_monthly_plan: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str) -> "Goal":
        created_raw = _optional(data, "created_at")
        created_path = f"{path}.created_at"
        if created_raw is None:
            created_raw = _optional(data, "start_date")
            created_path = f"{path}.start_date"
        if created_raw is None:
            raise SchemaError(f"{path}.created_at: missing required field")
        return cls(
            id=str(_require(data, "id", path)),
            name=str(_require(data, "name", path)),
            target_value=_amount(_require(data, "target_value", path), f"{path}.target_value"),
            target_date=_date(_require(data, "target_date", path), f"{path}.target_date"),
            created_at=_date(created_raw, created_path),
            is_monthly_plan=_flag(_optional(data, "is_monthly_plan", True), f"{path}.is_monthly_plan"),
        )


@dataclass(slots=True, frozen=True)
class Investment:
    id: str
    name: str
    total_value: Decimal
    liquidity_type: str
    due_date: date | None = None
    is_fgc_covered: bool = False
    is_redeemed: bool = False
    institution_id: str | None = None
    class_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str) -> "Investment":
        return cls(
            id=str(_require(data, "id", path)),
            name=str(_require(data, "name", path)),
            total_value=_amount(_require(data, "total_value", path), f"{path}.total_value"),
            liquidity_type=str(_require(data, "liquidity_type", path)),
            due_date=_optional_date(_optional(data, "due_date"), f"{path}.due_date"),
            is_fgc_covered=_flag(_optional(data, "is_fgc_covered", False), f"{path}.is_fgc_covered"),
            is_redeemed=_flag(_optional(data, "is_redeemed", False), f"{path}.is_redeemed"),
            institution_id=_optional_id(_optional(data, "institution_id")),
            class_id=_optional_id(_optional(data, "class_id")),
        )


@dataclass(slots=True, frozen=True)
class Allocation:
    investment_id: str
    goal_id: str
    amount: Decimal
    allocated_on: date | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str) -> "Allocation":
        return cls(
            investment_id=str(_require(data, "investment_id", path)),
            goal_id=str(_require(data, "goal_id", path)),
            amount=_amount(_require(data, "amount", path), f"{path}.amount"),
            allocated_on=_optional_date(_optional(data, "allocated_on"), f"{path}.allocated_on"),
        )


@dataclass(slots=True, frozen=True)
class Institution:
    id: str
    name: str

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str) -> "Institution":
        return cls(id=str(_require(data, "id", path)), name=str(_require(data, "name", path)))


@dataclass(slots=True, frozen=True)
class AssetClass:
    id: str
    name: str
    target_percent: Decimal = Decimal("0")

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str) -> "AssetClass":
        return cls(
            id=str(_require(data, "id", path)),
            name=str(_require(data, "name", path)),
            target_percent=_amount(_optional(data, "target_percent", 0), f"{path}.target_percent"),
        )


@dataclass(slots=True, frozen=True)
class Installment:
    goal_id: str
    reference_month: date
    expected_amount: Decimal
    contributed_amount: Decimal = Decimal("0")
    status: str = INSTALLMENT_OPEN

    @property
    def outstanding(self) -> Decimal:
        return max(Decimal("0"), self.expected_amount - self.contributed_amount)

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str) -> "Installment":
        return cls(
            goal_id=str(_require(data, "goal_id", path)),
            reference_month=_month(_require(data, "reference_month", path), f"{path}.reference_month"),
            expected_amount=_amount(_require(data, "expected_amount", path), f"{path}.expected_amount"),
            contributed_amount=_amount(_optional(data, "contributed_amount", 0), f"{path}.contributed_amount"),
            status=str(_optional(data, "status", INSTALLMENT_OPEN)),
        )


@dataclass(slots=True, frozen=True)
class EngineSettings:
    coverage_limit: Decimal = DEFAULT_COVERAGE_LIMIT
    count_redeemed_allocations: bool = True
    maturity_window_days: int = 30
    currency: str = "BRL"

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str = "settings") -> "EngineSettings":
        return cls(
            coverage_limit=_amount(_optional(data, "coverage_limit", DEFAULT_COVERAGE_LIMIT), f"{path}.coverage_limit"),
            count_redeemed_allocations=_flag(
                _optional(data, "count_redeemed_allocations", True), f"{path}.count_redeemed_allocations"
            ),
            maturity_window_days=_whole_number(_optional(data, "maturity_window_days", 30), f"{path}.maturity_window_days"),
            currency=str(_optional(data, "currency", "BRL")),
        )


@dataclass(slots=True, frozen=True)
class Ledger:
    goals: tuple[Goal, ...] = ()
    investments: tuple[Investment, ...] = ()
    allocations: tuple[Allocation, ...] = ()
    institutions: tuple[Institution, ...] = ()
    classes: tuple[AssetClass, ...] = ()
    installments: tuple[Installment, ...] = ()
    settings: EngineSettings = EngineSettings()

    def goal(self, goal_id: str) -> Goal | None:
        return next((g for g in self.goals if g.id == goal_id), None)

    def investment(self, investment_id: str) -> Investment | None:
        return next((i for i in self.investments if i.id == investment_id), None)

    def allocations_for_goal(self, goal_id: str) -> tuple[Allocation, ...]:
        return tuple(a for a in self.allocations if a.goal_id == goal_id)

    def allocations_for_investment(self, investment_id: str) -> tuple[Allocation, ...]:
        return tuple(a for a in self.allocations if a.investment_id == investment_id)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Ledger":
        return cls(
            goals=tuple(
                Goal.from_dict(_expect_dict(item, f"goals[{idx}]"), f"goals[{idx}]")
                for idx, item in enumerate(_expect_list(_optional(data, "goals", []), "goals"))
            ),
            investments=tuple(
                Investment.from_dict(_expect_dict(item, f"investments[{idx}]"), f"investments[{idx}]")
                for idx, item in enumerate(_expect_list(_optional(data, "investments", []), "investments"))
            ),
            allocations=tuple(
                Allocation.from_dict(_expect_dict(item, f"allocations[{idx}]"), f"allocations[{idx}]")
                for idx, item in enumerate(_expect_list(_optional(data, "allocations", []), "allocations"))
            ),
            institutions=tuple(
                Institution.from_dict(_expect_dict(item, f"institutions[{idx}]"), f"institutions[{idx}]")
                for idx, item in enumerate(_expect_list(_optional(data, "institutions", []), "institutions"))
            ),
            classes=tuple(
                AssetClass.from_dict(_expect_dict(item, f"classes[{idx}]"), f"classes[{idx}]")
                for idx, item in enumerate(_expect_list(_optional(data, "classes", []), "classes"))
            ),
            installments=tuple(
                Installment.from_dict(_expect_dict(item, f"installments[{idx}]"), f"installments[{idx}]")
                for idx, item in enumerate(_expect_list(_optional(data, "installments", []), "installments"))
            ),
            settings=EngineSettings.from_dict(_expect_dict(_optional(data, "settings", {}), "settings")),
        )


def load_ledger(path: str | Path) -> Ledger:
    """Load a ledger snapshot JSON file into immutable dataclasses."""
    source = Path(path)
    raw = json.loads(source.read_text(encoding="utf-8"), parse_float=Decimal)
    if not isinstance(raw, dict):
        raise SchemaError("ledger: root must be a JSON object")
    return Ledger.from_dict(raw)
