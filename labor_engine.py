"""
Labor Cost Engine
=================

- calculate_labor_costs: regular/overtime split per employee-week, wage,
  employer burden, and weekly/monthly/yearly normalisation
- calculate_labor_efficiency: sales per labor hour, labor % of revenue,
  productivity score
- project_labor_costs: forward-looking weekly projection with a recommended
  allocation against a target labor %
- insights, staffing and labor-expense helpers built on the above

Overtime is attributed per employee per ISO week: shifts are sorted by date
and start time before hours accumulate, so the caller's ordering never
changes the result.
"""

import logging
import math
from datetime import date, datetime
from typing import List, Optional, Union

import numpy as np
import pandas as pd

from engine_config import CONFIG, EngineConfig
from records import (
    Employee,
    Expense,
    LaborCostSummary,
    LaborEfficiencyMetrics,
    LaborProjection,
    Shift,
    ShiftCost,
    utc_timestamp,
)
from validation import ensure_valid, validate_labor_inputs

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, pd.Timestamp]

SHIFT_COLUMNS = ["shift_id", "employee_id", "date", "start_time", "hours"]

DEFAULT_BENCHMARKS = {
    "labor_percentage": 28.0,
    "sales_per_labor_hour": 45.0,
    "average_wage": 16.0,
}


def shifts_to_frame(shifts: List[Shift]) -> pd.DataFrame:
    if not shifts:
        return pd.DataFrame(columns=SHIFT_COLUMNS)
    return pd.DataFrame(
        [
            {
                "shift_id": s.id,
                "employee_id": s.employee_id,
                "date": s.date,
                "start_time": s.start_time or "",
                "hours": float(s.hours_worked),
            }
            for s in shifts
        ],
        columns=SHIFT_COLUMNS,
    )


def employees_to_frame(employees: List[Employee]) -> pd.DataFrame:
    columns = ["employee_id", "hourly_rate", "position"]
    if not employees:
        return pd.DataFrame(columns=columns)
    df = pd.DataFrame(
        [{"employee_id": e.id, "hourly_rate": float(e.hourly_rate), "position": e.position}
         for e in employees],
        columns=columns,
    )
    return df.drop_duplicates("employee_id", keep="last")


def days_between(period_start: DateLike, period_end: DateLike) -> int:
    """Days between the period bounds, a partial day counting as a whole one; never less than 1."""
    elapsed = (utc_timestamp(period_end) - utc_timestamp(period_start)) / pd.Timedelta(days=1)
    return max(1, math.ceil(elapsed))


def start_minutes(start_time: str) -> float:
    """Minutes after midnight for an "H:MM" or "HH:MM" start time; NaN when blank or unreadable."""
    hours, sep, minutes = (start_time or "").strip().partition(":")
    minutes = minutes[:2]
    if not sep or not hours.isdigit() or len(minutes) != 2 or not minutes.isdigit():
        return np.nan
    return float(int(hours) * 60 + int(minutes))


def split_overtime(costed: pd.DataFrame, config: EngineConfig = CONFIG) -> pd.DataFrame:
    """
    Add regular_hours / overtime_hours / wage columns to chronologically
    sorted shift rows (needs day, employee_id, hours, hourly_rate).
    """
    df = costed.copy()
    iso = df["day"].dt.isocalendar()
    df["iso_year"] = iso["year"].astype(int)
    df["iso_week_num"] = iso["week"].astype(int)
    df["iso_week"] = (
        df["iso_year"].astype(str) + "-W" + df["iso_week_num"].astype(str).str.zfill(2)
    )

    df["cumulative_hours"] = df.groupby(
        ["employee_id", "iso_year", "iso_week_num"], sort=False
    )["hours"].cumsum()

    over_threshold = (df["cumulative_hours"] - config.overtime_threshold_hours).clip(lower=0)
    df["overtime_hours"] = np.minimum(df["hours"], over_threshold)
    df["regular_hours"] = df["hours"] - df["overtime_hours"]

    df["wage"] = (
        df["regular_hours"] * df["hourly_rate"]
        + df["overtime_hours"] * df["hourly_rate"] * config.overtime_multiplier
    )
    return df


def calculate_labor_costs(employees: List[Employee],
                          shifts: List[Shift],
                          period_start: DateLike,
                          period_end: DateLike,
                          config: EngineConfig = CONFIG) -> LaborCostSummary:
    """
    Labor cost for shifts dated within [period_start, period_end].

    Shifts whose employee is not in ``employees`` are skipped and counted in
    ``skipped_shifts``.
    """
    ensure_valid(validate_labor_inputs(employees, shifts, period_start, period_end))

    days_in_period = days_between(period_start, period_end)
    weeks_in_period = days_in_period / 7
    summary = LaborCostSummary(
        period_start=utc_timestamp(period_start).date(),
        period_end=utc_timestamp(period_end).date(),
        days_in_period=days_in_period,
    )

    df = shifts_to_frame(shifts)
    if df.empty:
        return summary

    df["day"] = pd.to_datetime(df["date"].map(utc_timestamp)).dt.normalize()
    start_day = utc_timestamp(period_start).normalize()
    end_day = utc_timestamp(period_end).normalize()
    df = df[(df["day"] >= start_day) & (df["day"] <= end_day)]

    costed = df.merge(employees_to_frame(employees), on="employee_id", how="inner")
    summary.skipped_shifts = len(df) - len(costed)
    if summary.skipped_shifts:
        logger.warning("Skipped %d shifts with no matching employee", summary.skipped_shifts)
    if costed.empty:
        return summary

    # Blank or unreadable start times sort first within their day
    costed["start_minutes"] = costed["start_time"].map(start_minutes)
    costed = costed.sort_values(
        ["day", "start_minutes"], kind="mergesort", na_position="first"
    ).reset_index(drop=True)
    costed = split_overtime(costed, config)

    total_wages = float(costed["wage"].sum())
    total_hours = float(costed["hours"].sum())
    employer_taxes = total_wages * config.employer_burden_rate
    benefits = total_wages * config.benefits_percentage
    total_labor_cost = total_wages + employer_taxes + benefits

    summary.total_wages = total_wages
    summary.total_hours = total_hours
    summary.regular_hours = float(costed["regular_hours"].sum())
    summary.overtime_hours = float(costed["overtime_hours"].sum())
    summary.employer_taxes = employer_taxes
    summary.benefits = benefits
    summary.total_labor_cost = total_labor_cost

    summary.total_weekly_cost = total_labor_cost / weeks_in_period
    summary.total_monthly_cost = summary.total_weekly_cost * config.weeks_per_month
    summary.total_yearly_cost = summary.total_weekly_cost * config.weeks_per_year
    summary.total_weekly_hours = total_hours / weeks_in_period
    summary.average_hourly_rate = total_wages / total_hours if total_hours > 0 else 0.0
    summary.labor_cost_per_hour = total_labor_cost / total_hours if total_hours > 0 else 0.0

    by_employee = costed.groupby("employee_id", sort=True)["wage"].sum()
    summary.cost_by_employee = {str(k): float(v) for k, v in by_employee.items()}
    by_position = costed.groupby("position", sort=True)["wage"].sum()
    summary.cost_by_position = {str(k): float(v) for k, v in by_position.items()}

    summary.shift_costs = [
        ShiftCost(
            shift_id=str(row.shift_id),
            employee_id=str(row.employee_id),
            position=str(row.position),
            date=row.day.date(),
            iso_week=row.iso_week,
            hours=float(row.hours),
            regular_hours=float(row.regular_hours),
            overtime_hours=float(row.overtime_hours),
            wage=float(row.wage),
        )
        for row in costed.itertuples(index=False)
    ]

    logger.debug(
        "Labor %s..%s: %d shifts, %.1f h (%.1f OT), total cost %.2f",
        summary.period_start, summary.period_end, len(costed),
        total_hours, summary.overtime_hours, total_labor_cost,
    )
    return summary


def calculate_labor_efficiency(labor_costs: LaborCostSummary,
                               total_revenue: float,
                               total_orders: float,
                               total_sales: float) -> LaborEfficiencyMetrics:
    weekly_hours = labor_costs.total_weekly_hours
    sales_per_labor_hour = total_sales / weekly_hours if weekly_hours > 0 else 0.0

    labor_cost_percentage = (
        labor_costs.total_weekly_cost / total_revenue * 100 if total_revenue > 0 else 0.0
    )

    staffed = len(labor_costs.cost_by_employee)
    average_orders_per_employee = total_orders / staffed if staffed > 0 else 0.0

    # Higher is better
    productivity_score = (
        sales_per_labor_hour / labor_cost_percentage * 10
        if sales_per_labor_hour > 0 and labor_cost_percentage > 0 else 0.0
    )

    return LaborEfficiencyMetrics(
        sales_per_labor_hour=sales_per_labor_hour,
        labor_cost_percentage=labor_cost_percentage,
        average_orders_per_employee=average_orders_per_employee,
        peak_hour_coverage=0.0,  # needs shift timing analysis
        productivity_score=productivity_score,
    )


def project_labor_costs(employees: List[Employee],
                        projected_weekly_hours: float,
                        projected_revenue: float,
                        target_labor_percentage: float = 25.0,
                        as_of: Optional[DateLike] = None,
                        config: EngineConfig = CONFIG) -> LaborProjection:
    """
    Weekly labor projection for a planned number of hours.

    The recommended allocation is the labor budget at ``target_labor_percentage``
    of projected revenue and the hours it affords at the average wage loaded
    with employer costs.
    """
    ensure_valid(validate_labor_inputs(employees, []))

    employee_count = len(employees)
    average_wage = (
        sum(e.hourly_rate for e in employees) / employee_count
        if employee_count > 0 else config.default_hourly_wage
    )

    projected_labor_cost = projected_weekly_hours * average_wage
    projected_overtime_cost = (
        max(0.0, projected_weekly_hours - config.overtime_threshold_hours)
        * average_wage * config.overtime_premium
    )
    projected_benefits_cost = projected_labor_cost * config.benefits_percentage
    total_projected_cost = projected_labor_cost + projected_overtime_cost + projected_benefits_cost

    target_labor_cost = projected_revenue * (target_labor_percentage / 100)
    loaded_wage = average_wage * config.employer_cost_factor
    max_affordable_hours = target_labor_cost / loaded_wage if loaded_wage > 0 else 0.0

    stamp = utc_timestamp(as_of)

    return LaborProjection(
        name=f"Labor Projection {stamp.date().isoformat()}",
        projection_period="weekly",
        employee_count=employee_count,
        average_wage=average_wage,
        average_hours_per_employee=projected_weekly_hours / max(employee_count, 1),
        projected_weekly_hours=projected_weekly_hours,
        projected_revenue=projected_revenue,
        projected_labor_cost=projected_labor_cost,
        projected_overtime_cost=projected_overtime_cost,
        projected_benefits_cost=projected_benefits_cost,
        total_projected_cost=total_projected_cost,
        labor_cost_percentage=(
            total_projected_cost / projected_revenue * 100 if projected_revenue > 0 else 0.0
        ),
        target_labor_percentage=target_labor_percentage,
        target_labor_cost=target_labor_cost,
        max_affordable_hours=max_affordable_hours,
    )


def calculate_optimal_staffing(projected_orders_per_hour: float,
                               average_order_time: float = 3.0,
                               shift_length: float = 8.0,
                               efficiency_factor: float = 0.8) -> dict:
    """
    Staff needed to cover a projected order rate.

    Args:
        average_order_time: Minutes of work per order
        shift_length: Hours per shift
        efficiency_factor: Share of a shift spent on orders (breaks, setup...)
    """
    orders_per_shift = projected_orders_per_hour * shift_length
    total_time_needed = orders_per_shift * average_order_time
    available_per_employee = shift_length * 60 * efficiency_factor

    if available_per_employee <= 0:
        return {"recommended_staffing": 0, "orders_per_shift": orders_per_shift,
                "utilization_rate": 0.0, "cost_per_order": 0.0}

    required = int(math.ceil(total_time_needed / available_per_employee))
    utilization = total_time_needed / (available_per_employee * required) * 100 if required > 0 else 0.0
    return {
        "recommended_staffing": required,
        "orders_per_shift": orders_per_shift,
        "utilization_rate": utilization,
        "cost_per_order": 0.0,
    }


def generate_labor_insights(labor_costs: LaborCostSummary,
                            efficiency: LaborEfficiencyMetrics,
                            benchmarks: Optional[dict] = None) -> dict:
    bench = dict(DEFAULT_BENCHMARKS)
    if benchmarks:
        bench.update(benchmarks)

    insights = []
    recommendations = []

    if efficiency.labor_cost_percentage > bench["labor_percentage"] + 5:
        insights.append("Labor costs are significantly above industry average")
        recommendations.append("Consider optimizing schedules or cross-training employees")
    elif efficiency.labor_cost_percentage < bench["labor_percentage"] - 5:
        insights.append("Labor costs are well below industry average - good efficiency!")

    if efficiency.sales_per_labor_hour < bench["sales_per_labor_hour"]:
        insights.append("Employee productivity could be improved")
        recommendations.append("Consider implementing productivity incentives or better training")

    if labor_costs.overtime_hours > labor_costs.regular_hours * 0.1:
        insights.append("High overtime costs detected")
        recommendations.append("Consider hiring additional part-time staff to reduce overtime")

    if labor_costs.average_hourly_rate < bench["average_wage"]:
        insights.append("Wages are below market rate - may affect retention")
        recommendations.append("Consider wage increases to improve retention and attract better talent")

    return {
        "insights": insights,
        "recommendations": recommendations,
        "score": efficiency.productivity_score,
        "status": "good" if efficiency.labor_cost_percentage <= bench["labor_percentage"] else "needs_attention",
    }


# =============================================================================
# LABOR EXPENSE INTEGRATION
# =============================================================================

def create_labor_expense(employees: List[Employee],
                         shifts: List[Shift],
                         period_start: DateLike,
                         period_end: DateLike,
                         config: EngineConfig = CONFIG) -> Expense:
    """Monthly variable expense record for the period's fully loaded labor cost."""
    labor = calculate_labor_costs(employees, shifts, period_start, period_end, config)
    return Expense(
        name="Labor Costs (Auto-calculated)",
        amount=labor.total_monthly_cost,
        type="variable",
        frequency="monthly",
        is_active=True,
        description=(
            "Automatically calculated labor costs including wages, taxes, and benefits. "
            f"Employees: {len(employees)}, Total Hours: {labor.total_weekly_hours:.1f}/week"
        ),
    )


def create_employee_expenses(employees: List[Employee],
                             shifts: List[Shift],
                             period_start: DateLike,
                             period_end: DateLike,
                             config: EngineConfig = CONFIG) -> List[Expense]:
    """One monthly expense per employee from their period wages, scaled to a month."""
    labor = calculate_labor_costs(employees, shifts, period_start, period_end, config)
    weeks_in_period = labor.days_in_period / 7

    expenses = []
    for employee in employees:
        period_wages = labor.cost_by_employee.get(employee.id, 0.0)
        monthly = period_wages / weeks_in_period * config.weeks_per_month
        expenses.append(Expense(
            name=f"{employee.full_name} - Labor",
            amount=monthly,
            type="variable",
            frequency="monthly",
            is_active=employee.is_active,
            description=(
                f"Labor costs for {employee.position} at "
                f"{config.currency}{employee.hourly_rate}/hour"
            ),
        ))
    return expenses


def calculate_labor_percentage(labor_cost: float, revenue: float) -> float:
    if revenue <= 0:
        return 0.0
    return labor_cost / revenue * 100


def suggest_labor_optimization(target_revenue: float,
                               current_labor_cost: float,
                               target_labor_percentage: float = 28.0,
                               understaffed_margin: float = 500.0) -> dict:
    target_labor_cost = target_revenue * (target_labor_percentage / 100)
    difference = current_labor_cost - target_labor_cost
    current_percentage = calculate_labor_percentage(current_labor_cost, target_revenue)

    if difference > 0:
        suggestion = {
            "type": "reduce",
            "message": f"Labor cost is {abs(difference):.2f} over target",
            "recommendation": "Consider reducing hours or optimizing schedules",
        }
    elif difference < -understaffed_margin:
        suggestion = {
            "type": "increase",
            "message": f"Labor cost is {abs(difference):.2f} under target",
            "recommendation": "Consider hiring additional staff or increasing hours",
        }
    else:
        suggestion = {
            "type": "optimal",
            "message": "Labor costs are within optimal range",
            "recommendation": "Current staffing levels appear appropriate",
        }

    return {
        "current_percentage": current_percentage,
        "target_percentage": target_labor_percentage,
        "difference": difference,
        "suggestions": [suggestion],
    }


def generate_schedule_recommendations(target_weekly_revenue: float,
                                      average_order_value: float,
                                      orders_per_employee_day: int = 50,
                                      peak_orders_per_employee: int = 30) -> dict:
    """Per-weekday staffing plan for a weekly revenue target (weekends run busier and longer)."""
    target_orders = target_weekly_revenue / average_order_value if average_order_value > 0 else 0.0
    orders_per_day = target_orders / 7

    schedule = []
    for day in ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]:
        is_weekend = day in ("Saturday", "Sunday")
        expected = orders_per_day * (1.3 if is_weekend else 0.9)
        schedule.append({
            "day": day,
            "expected_orders": int(round(expected)),
            "recommended_staff": max(1, int(math.ceil(expected / 40))),
            "estimated_hours": 10 if is_weekend else 8,
        })

    return {
        "minimum_staff": int(math.ceil(orders_per_day / orders_per_employee_day)),
        "peak_staff": int(math.ceil(orders_per_day / peak_orders_per_employee)),
        "total_weekly_hours": sum(d["estimated_hours"] * d["recommended_staff"] for d in schedule),
        "schedule": schedule,
    }
