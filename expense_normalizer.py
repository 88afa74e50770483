"""
Expense Normalisation & Financial Insights
==========================================

Converts recurring expenses to a common monthly basis and derives the
headline finance numbers (burn rate, runway, break-even orders, scenarios).

Daily expenses use 30.44 average days per month and weekly expenses 4.33
average weeks per month (both from ``EngineConfig``). One-time expenses never
enter the recurring monthly baseline.
"""

import logging
import math
from dataclasses import replace
from typing import Dict, List

import pandas as pd

from engine_config import CONFIG, EngineConfig
from records import Expense, ExpenseSummary, FinancialInsights, FinancialProjection
from validation import ensure_valid, validate_expenses

logger = logging.getLogger(__name__)


def monthly_equivalent(amount: float, frequency: str, config: EngineConfig = CONFIG) -> float:
    if frequency == "daily":
        return amount * config.days_per_month
    if frequency == "weekly":
        return amount * config.weeks_per_month
    if frequency == "monthly":
        return amount
    if frequency == "yearly":
        return amount / config.months_per_year
    # one_time and unknown frequencies stay out of the recurring baseline
    return 0.0


def expense_monthly_equivalent(expense: Expense, config: EngineConfig = CONFIG) -> float:
    if not expense.is_active:
        return 0.0
    return monthly_equivalent(expense.amount, expense.frequency, config)


def expenses_to_frame(expenses: List[Expense], config: EngineConfig = CONFIG) -> pd.DataFrame:
    """One row per expense with its monthly equivalent (0 for inactive/one-time)."""
    columns = ["name", "amount", "type", "frequency", "is_active", "monthly_amount", "category"]
    if not expenses:
        return pd.DataFrame(columns=columns)
    df = pd.DataFrame([
        {
            "name": e.name,
            "amount": e.amount,
            "type": e.type,
            "frequency": e.frequency,
            "is_active": e.is_active,
            "monthly_amount": expense_monthly_equivalent(e, config),
            # First word of the name stands in for a category
            "category": e.name.split(" ")[0] if e.name else "Uncategorized",
        }
        for e in expenses
    ], columns=columns)
    return df


def calculate_monthly_expenses(expenses: List[Expense], config: EngineConfig = CONFIG) -> float:
    ensure_valid(validate_expenses(expenses))
    total = float(sum(expense_monthly_equivalent(e, config) for e in expenses))
    logger.debug("Monthly recurring expenses: %.2f from %d records", total, len(expenses))
    return total


def calculate_break_even_orders(monthly_expenses: float,
                                average_order_value: float,
                                profit_margin_percent: float = 65.0) -> int:
    if average_order_value <= 0:
        return 0
    profit_per_order = average_order_value * (profit_margin_percent / 100)
    if profit_per_order <= 0:
        return 0
    return int(math.ceil(monthly_expenses / profit_per_order))


def get_expense_summary(expenses: List[Expense], config: EngineConfig = CONFIG) -> ExpenseSummary:
    """
    Summarise active expenses by type and name-derived category.

    Fixed and variable totals are monthly equivalents; the one-time total keeps
    the raw amounts. The largest expense is chosen by monthly equivalent.
    """
    ensure_valid(validate_expenses(expenses))
    active = [e for e in expenses if e.is_active]
    summary = ExpenseSummary()
    if not active:
        return summary

    df = expenses_to_frame(active, config)

    summary.total_fixed = float(df.loc[df["type"] == "fixed", "monthly_amount"].sum())
    summary.total_variable = float(df.loc[df["type"] == "variable", "monthly_amount"].sum())
    summary.total_one_time = float(df.loc[df["type"] == "one_time", "amount"].sum())
    summary.monthly_total = float(df["monthly_amount"].sum())

    if df["monthly_amount"].max() > 0:
        summary.largest_expense = active[int(df["monthly_amount"].idxmax())]

    by_category = df.groupby("category", sort=True)["monthly_amount"].sum()
    summary.expenses_by_category = {str(k): float(v) for k, v in by_category.items()}
    return summary


def calculate_financial_insights(expenses: List[Expense],
                                 projected_monthly_revenue: float = 0.0,
                                 current_cash: float = 0.0,
                                 average_order_value: float = 15.0,
                                 config: EngineConfig = CONFIG) -> FinancialInsights:
    monthly_expenses = calculate_monthly_expenses(expenses, config)
    daily_burn_rate = monthly_expenses / config.days_per_month
    break_even_orders = calculate_break_even_orders(
        monthly_expenses, average_order_value, config.default_profit_margin * 100
    )
    break_even_revenue = break_even_orders * average_order_value

    runway_months = (
        current_cash / monthly_expenses
        if current_cash > 0 and monthly_expenses > 0 else 0.0
    )
    profit_margin = (
        (projected_monthly_revenue - monthly_expenses) / projected_monthly_revenue * 100
        if projected_monthly_revenue > 0 else 0.0
    )
    roi = (
        (projected_monthly_revenue - monthly_expenses) / monthly_expenses * 100
        if monthly_expenses > 0 and projected_monthly_revenue > monthly_expenses else 0.0
    )

    return FinancialInsights(
        monthly_burn_rate=monthly_expenses,
        daily_burn_rate=daily_burn_rate,
        break_even_revenue=break_even_revenue,
        break_even_orders=break_even_orders,
        runway_months=runway_months,
        profit_margin=profit_margin,
        roi=roi,
    )


def _recompute_profit(projection: FinancialProjection) -> FinancialProjection:
    profit = projection.projected_revenue - projection.projected_expenses
    margin = profit / projection.projected_revenue * 100 if projection.projected_revenue > 0 else 0.0
    return replace(projection, projected_profit=profit, profit_margin_percentage=margin)


def calculate_scenarios(base: FinancialProjection) -> Dict[str, FinancialProjection]:
    """Pessimistic / realistic / optimistic variants of a projection."""
    pessimistic = replace(
        base,
        projected_revenue=base.projected_revenue * 0.7,
        orders_per_day=math.floor(base.orders_per_day * 0.7),
        profit_margin_percentage=base.profit_margin_percentage * 0.8,
    )
    optimistic = replace(
        base,
        projected_revenue=base.projected_revenue * 1.3,
        orders_per_day=math.floor(base.orders_per_day * 1.3),
        profit_margin_percentage=min(base.profit_margin_percentage * 1.2, 100.0),
    )
    return {
        "pessimistic": _recompute_profit(pessimistic),
        "realistic": _recompute_profit(base),
        "optimistic": _recompute_profit(optimistic),
    }


def calculate_food_truck_metrics(expenses: List[Expense],
                                 average_order_value: float,
                                 working_days_per_month: float = 22,
                                 average_customers_per_hour: float = 10,
                                 operating_hours_per_day: float = 8,
                                 config: EngineConfig = CONFIG) -> dict:
    monthly_expenses = calculate_monthly_expenses(expenses, config)

    cost_per_day = monthly_expenses / working_days_per_month if working_days_per_month > 0 else 0.0
    cost_per_hour = cost_per_day / operating_hours_per_day if operating_hours_per_day > 0 else 0.0
    cost_per_customer = (
        cost_per_hour / average_customers_per_hour if average_customers_per_hour > 0 else 0.0
    )

    required_orders_per_day = (
        int(math.ceil(cost_per_day / average_order_value)) if average_order_value > 0 else 0
    )
    required_customers_per_hour = (
        int(math.ceil(required_orders_per_day / operating_hours_per_day))
        if operating_hours_per_day > 0 else 0
    )

    margin = config.default_profit_margin
    return {
        "cost_per_day": cost_per_day,
        "cost_per_hour": cost_per_hour,
        "cost_per_customer": cost_per_customer,
        "required_revenue_per_day": cost_per_day,
        "required_orders_per_day": required_orders_per_day,
        "required_customers_per_hour": required_customers_per_hour,
        "profit_scenarios": {
            f"at_{n}_orders": n * average_order_value * margin - cost_per_day
            for n in (50, 100, 150)
        },
    }


def get_financial_health(profit_margin: float) -> dict:
    if profit_margin >= 30:
        return {"status": "excellent",
                "message": "Excellent profit margins! Your business is very healthy."}
    if profit_margin >= 20:
        return {"status": "good",
                "message": "Good profit margins. Your business is performing well."}
    if profit_margin >= 10:
        return {"status": "fair",
                "message": "Fair profit margins. Consider optimizing costs or increasing prices."}
    if profit_margin >= 0:
        return {"status": "poor",
                "message": "Low profit margins. Focus on cost reduction and efficiency."}
    return {"status": "critical",
            "message": "Operating at a loss. Immediate action required!"}
