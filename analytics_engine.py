"""
Food Truck Analytics - Full Analysis Runner
===========================================

Validates a BusinessSnapshot once, then runs every calculator over it and
returns the results as a dictionary so callers can render or persist what
they need.
"""

import logging
from typing import Optional

from break_even_engine import get_break_even_analysis
from engine_config import CONFIG, EngineConfig
from expense_normalizer import calculate_financial_insights, get_expense_summary
from labor_engine import (
    calculate_labor_costs,
    calculate_labor_efficiency,
    generate_labor_insights,
    project_labor_costs,
)
from records import BusinessSnapshot, utc_timestamp
from validation import (
    merge_reports,
    validate_expenses,
    validate_financial_settings,
    validate_labor_inputs,
    validate_waste_inputs,
)
from waste_engine import calculate_waste_analytics, calculate_waste_impact

logger = logging.getLogger(__name__)


def validate_snapshot(snapshot: BusinessSnapshot, timeframe: str = "month") -> dict:
    return merge_reports(
        validate_labor_inputs(
            snapshot.employees, snapshot.shifts, snapshot.period_start, snapshot.period_end
        ),
        validate_waste_inputs(
            snapshot.inventory_items, snapshot.orders, snapshot.menu_items, timeframe
        ),
        validate_expenses(snapshot.expenses),
        validate_financial_settings(snapshot.settings, snapshot.operating_days),
    )


def completed_sales_in_period(orders, period_start, period_end) -> dict:
    """Revenue and order count of completed orders dated inside the period (inclusive)."""
    start = utc_timestamp(period_start).normalize()
    end = utc_timestamp(period_end).normalize()
    revenue = 0.0
    count = 0
    for order in orders:
        if order.status != "completed":
            continue
        day = utc_timestamp(order.order_time).normalize()
        if start <= day <= end:
            revenue += order.total
            count += 1
    return {"revenue": revenue, "orders": count}


def run_full_analysis(snapshot: BusinessSnapshot,
                      timeframe: str = "month",
                      projected_weekly_hours: Optional[float] = None,
                      target_labor_percentage: float = 25.0,
                      config: EngineConfig = CONFIG) -> dict:
    """
    Run labor, waste, expense and break-even analysis over one snapshot.

    Args:
        timeframe: Waste window ("week", "month" or "quarter")
        projected_weekly_hours: Hours for the labor projection; defaults to the
            weekly hours actually worked in the period
        target_labor_percentage: Labor budget as % of projected revenue

    Returns:
        A dictionary with keys: labor_summary, labor_efficiency,
        labor_projection, labor_insights, waste_analytics, waste_impact,
        expense_summary, financial_insights, break_even, sales, validation.
        If validation fails only ``validation`` and ``error`` are returned.
    """
    validation_result = validate_snapshot(snapshot, timeframe)

    if not validation_result["valid"]:
        for error in validation_result["errors"]:
            logger.error(error)
        return {
            "validation": validation_result,
            "error": "Data validation failed - see validation results",
        }

    logger.info(
        "Analysing %s: %s", snapshot.business_name,
        ", ".join(f"{k}={v}" for k, v in validation_result["summary"].items()),
    )

    # Labor
    labor_summary = calculate_labor_costs(
        snapshot.employees, snapshot.shifts, snapshot.period_start, snapshot.period_end, config
    )
    weeks_in_period = labor_summary.days_in_period / 7
    sales = completed_sales_in_period(snapshot.orders, snapshot.period_start, snapshot.period_end)
    weekly_revenue = sales["revenue"] / weeks_in_period
    weekly_orders = sales["orders"] / weeks_in_period

    labor_efficiency = calculate_labor_efficiency(
        labor_summary, weekly_revenue, weekly_orders, weekly_revenue
    )
    labor_insights = generate_labor_insights(labor_summary, labor_efficiency)

    hours = projected_weekly_hours if projected_weekly_hours is not None else labor_summary.total_weekly_hours
    labor_projection = project_labor_costs(
        [e for e in snapshot.employees if e.is_active],
        hours,
        weekly_revenue,
        target_labor_percentage,
        as_of=snapshot.as_of,
        config=config,
    )

    # Waste
    waste_analytics = calculate_waste_analytics(
        snapshot.inventory_items, snapshot.orders, snapshot.menu_items, snapshot.ingredients,
        timeframe=timeframe, as_of=snapshot.as_of, config=config,
    )
    monthly_revenue = weekly_revenue * config.weeks_per_month
    waste_impact = calculate_waste_impact(waste_analytics, monthly_revenue)

    # Finance
    expense_summary = get_expense_summary(snapshot.expenses, config)
    financial_insights = calculate_financial_insights(
        snapshot.expenses,
        projected_monthly_revenue=monthly_revenue,
        average_order_value=(
            sales["revenue"] / sales["orders"] if sales["orders"] > 0
            else config.default_average_order_value
        ),
        config=config,
    )
    break_even = get_break_even_analysis(
        snapshot.expenses,
        labor_summary.total_monthly_cost,
        snapshot.orders,
        snapshot.menu_items,
        snapshot.settings,
        snapshot.operating_days,
        as_of=snapshot.as_of,
        waste_analytics=waste_analytics,
        config=config,
    )

    return {
        "business_name": snapshot.business_name,
        "labor_summary": labor_summary,
        "labor_efficiency": labor_efficiency,
        "labor_projection": labor_projection,
        "labor_insights": labor_insights,
        "waste_analytics": waste_analytics,
        "waste_impact": waste_impact,
        "expense_summary": expense_summary,
        "financial_insights": financial_insights,
        "break_even": break_even,
        "sales": {
            "period_revenue": sales["revenue"],
            "period_orders": sales["orders"],
            "weekly_revenue": weekly_revenue,
            "monthly_revenue": monthly_revenue,
        },
        "validation": validation_result,
    }
