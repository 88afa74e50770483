"""
Input Validation at the Engine Boundary
=======================================

Each validator inspects a snapshot of records and returns a report:

    {
        "valid": bool,
        "errors": [critical issues - the calculation must not run],
        "warnings": [issues that degrade quality but are handled],
        "summary": {key counts}
    }

Calculators call ``ensure_valid`` on these reports, so negative hours, rates,
costs or quantities are rejected with ``InvalidInputError`` instead of
flowing into the results. The engine never clamps bad input silently.
"""

import logging
from datetime import date
from typing import Iterable, List, Optional

import pandas as pd

from engine_config import (
    EXPENSE_FREQUENCIES,
    EXPENSE_TYPES,
    ORDER_STATUSES,
    WASTE_TIMEFRAMES,
    WEEKDAYS_ORDERED,
)
from records import (
    Employee,
    Expense,
    FinancialSettings,
    InventoryItem,
    MenuItem,
    Order,
    Shift,
    utc_timestamp,
)

logger = logging.getLogger(__name__)


class InvalidInputError(ValueError):
    """Raised when records handed to the engine break its input contract."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Invalid analytics input:\n" + "\n".join(f"  • {e}" for e in self.errors))


def _report(errors: list, warnings: list, summary: dict) -> dict:
    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "summary": summary,
    }


def _count(frame: pd.DataFrame, column: str, predicate) -> int:
    if frame.empty:
        return 0
    return int(predicate(pd.to_numeric(frame[column], errors="coerce")).sum())


def validate_labor_inputs(employees: List[Employee],
                          shifts: List[Shift],
                          period_start: Optional[date] = None,
                          period_end: Optional[date] = None) -> dict:
    errors = []
    warnings = []
    summary = {"employees": len(employees), "shifts": len(shifts)}

    if (period_start is not None and period_end is not None
            and utc_timestamp(period_end) < utc_timestamp(period_start)):
        errors.append(f"CRITICAL: period_end {period_end} is before period_start {period_start}")

    emp_df = pd.DataFrame(
        [{"id": e.id, "hourly_rate": e.hourly_rate} for e in employees],
        columns=["id", "hourly_rate"],
    )
    negative_rates = _count(emp_df, "hourly_rate", lambda s: s < 0)
    if negative_rates > 0:
        errors.append(f"CRITICAL: {negative_rates} employees have a negative hourly rate")

    duplicate_ids = int(emp_df["id"].duplicated().sum()) if not emp_df.empty else 0
    if duplicate_ids > 0:
        warnings.append(f"WARNING: {duplicate_ids} duplicate employee ids - the last record wins")

    shift_df = pd.DataFrame(
        [{"employee_id": s.employee_id, "hours_worked": s.hours_worked,
          "start_time": s.start_time or ""} for s in shifts],
        columns=["employee_id", "hours_worked", "start_time"],
    )
    negative_hours = _count(shift_df, "hours_worked", lambda s: s < 0)
    if negative_hours > 0:
        errors.append(f"CRITICAL: {negative_hours} shifts have negative hours_worked")

    missing_hours = _count(shift_df, "hours_worked", lambda s: s.isna())
    if missing_hours > 0:
        errors.append(f"CRITICAL: {missing_hours} shifts have non-numeric hours_worked")

    if not shift_df.empty:
        start_times = shift_df["start_time"].astype(str).str.strip()
        unreadable = int((start_times.ne("") & ~start_times.str.match(r"^\d{1,2}:\d{2}")).sum())
        if unreadable > 0:
            warnings.append(
                f"WARNING: {unreadable} shifts have a start_time that is not H:MM - "
                "they sort first within their day"
            )

    if not shift_df.empty:
        known = set(emp_df["id"])
        orphans = shift_df[~shift_df["employee_id"].isin(known)]
        if len(orphans) > 0:
            warnings.append(
                f"WARNING: {len(orphans)} shifts reference unknown employees and will be skipped"
            )

    return _report(errors, warnings, summary)


def validate_waste_inputs(inventory_items: List[InventoryItem],
                          orders: List[Order],
                          menu_items: List[MenuItem],
                          timeframe: str = "month") -> dict:
    errors = []
    warnings = []
    summary = {
        "inventory_items": len(inventory_items),
        "orders": len(orders),
        "menu_items": len(menu_items),
    }

    if timeframe not in WASTE_TIMEFRAMES:
        errors.append(f"CRITICAL: Unknown timeframe '{timeframe}' (expected one of {list(WASTE_TIMEFRAMES)})")

    inv_df = pd.DataFrame(
        [{
            "cost_per_unit": i.cost_per_unit,
            "disposed_quantity": i.disposed_quantity,
            "current_stock": i.current_stock,
        } for i in inventory_items],
        columns=["cost_per_unit", "disposed_quantity", "current_stock"],
    )
    negative_cost = _count(inv_df, "cost_per_unit", lambda s: s < 0)
    if negative_cost > 0:
        errors.append(f"CRITICAL: {negative_cost} inventory items have a negative cost_per_unit")

    negative_disposed = _count(inv_df, "disposed_quantity", lambda s: s < 0)
    if negative_disposed > 0:
        errors.append(f"CRITICAL: {negative_disposed} inventory items have a negative disposed_quantity")

    negative_stock = _count(inv_df, "current_stock", lambda s: s < 0)
    if negative_stock > 0:
        warnings.append(f"WARNING: {negative_stock} inventory items have negative stock (oversold?)")

    negative_recipe = sum(
        1 for m in menu_items for ing in m.ingredients if ing.quantity < 0
    )
    if negative_recipe > 0:
        errors.append(f"CRITICAL: {negative_recipe} recipe lines have a negative quantity")

    negative_qty = sum(1 for o in orders for line in o.items if line.quantity < 0)
    if negative_qty > 0:
        warnings.append(f"WARNING: {negative_qty} order lines with negative quantity (returns?)")

    unknown_status = sum(1 for o in orders if o.status not in ORDER_STATUSES)
    if unknown_status > 0:
        warnings.append(f"WARNING: {unknown_status} orders have an unknown status and will be ignored")

    completed = sum(1 for o in orders if o.status == "completed")
    summary["completed_orders"] = completed
    if orders and completed == 0:
        warnings.append("INFO: No completed orders - waste rates fall back to stock estimates")

    return _report(errors, warnings, summary)


def validate_expenses(expenses: List[Expense]) -> dict:
    errors = []
    warnings = []
    summary = {
        "expenses": len(expenses),
        "active_expenses": sum(1 for e in expenses if e.is_active),
    }

    exp_df = pd.DataFrame(
        [{"name": e.name, "amount": e.amount, "type": e.type, "frequency": e.frequency}
         for e in expenses],
        columns=["name", "amount", "type", "frequency"],
    )
    negative_amounts = _count(exp_df, "amount", lambda s: s < 0)
    if negative_amounts > 0:
        errors.append(f"CRITICAL: {negative_amounts} expenses have a negative amount")

    if not exp_df.empty:
        unknown_freq = exp_df[~exp_df["frequency"].isin(EXPENSE_FREQUENCIES)]
        if len(unknown_freq) > 0:
            warnings.append(
                f"WARNING: {len(unknown_freq)} expenses have an unknown frequency and count as 0/month: "
                f"{unknown_freq['name'].tolist()[:5]}"
            )
        unknown_type = int((~exp_df["type"].isin(EXPENSE_TYPES)).sum())
        if unknown_type > 0:
            warnings.append(f"WARNING: {unknown_type} expenses have an unknown type")

    return _report(errors, warnings, summary)


def validate_financial_settings(settings: FinancialSettings,
                                operating_days: Iterable[str]) -> dict:
    errors = []
    warnings = []
    days = [str(d).lower() for d in operating_days]
    summary = {"operating_days": days}

    if settings.custom_average_order_value is not None and settings.custom_average_order_value < 0:
        errors.append("CRITICAL: custom_average_order_value is negative")
    if settings.custom_profit_margin is not None and settings.custom_profit_margin < 0:
        errors.append("CRITICAL: custom_profit_margin is negative")
    if settings.working_days_per_week is not None and not 0 <= settings.working_days_per_week <= 7:
        errors.append(f"CRITICAL: working_days_per_week must be between 0 and 7, got {settings.working_days_per_week}")
    if settings.weeks_per_month < 0:
        errors.append("CRITICAL: weeks_per_month is negative")

    for season, mult in settings.seasonal_multipliers.items():
        if mult <= 0:
            errors.append(f"CRITICAL: seasonal multiplier for {season} must be positive, got {mult}")
    for day, mult in settings.day_performance_multipliers.items():
        if mult < 0:
            errors.append(f"CRITICAL: performance multiplier for {day} is negative")

    unknown_days = [d for d in days if d not in WEEKDAYS_ORDERED]
    if unknown_days:
        errors.append(f"CRITICAL: Unknown operating days {unknown_days}")
    if not days:
        warnings.append("WARNING: No operating days configured - no per-day break-even will be produced")

    return _report(errors, warnings, summary)


def merge_reports(*reports: dict) -> dict:
    errors = []
    warnings = []
    summary = {}
    for r in reports:
        errors.extend(r["errors"])
        warnings.extend(r["warnings"])
        summary.update(r["summary"])
    return _report(errors, warnings, summary)


def ensure_valid(report: dict) -> dict:
    """Raise InvalidInputError if the report has errors; log its warnings otherwise."""
    if not report["valid"]:
        raise InvalidInputError(report["errors"])
    for warning in report["warnings"]:
        logger.warning(warning)
    return report
