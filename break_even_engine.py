"""
Break-Even Engine
=================

How many orders per month (and per operating day) cover recurring expenses,
labor and, optionally, food waste.

    profit_per_order   = avg_order_value x avg_profit_margin
    monthly_break_even = ceil(monthly_expenses / profit_per_order / seasonal_multiplier)
    per operating day  = ceil(monthly_break_even / working_days_per_month x day_multiplier)

Overrides in FinancialSettings win when set; otherwise values are computed
from live orders and the menu, with fixed fallbacks when there is no data.
"""

import logging
import math
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from engine_config import CONFIG, EngineConfig, WEEKDAYS_ORDERED
from expense_normalizer import calculate_monthly_expenses
from records import (
    BreakEvenAnalysis,
    DailyBreakEven,
    Expense,
    FinancialSettings,
    MenuItem,
    Order,
    WasteAnalytics,
    utc_timestamp,
)
from validation import ensure_valid, validate_financial_settings

logger = logging.getLogger(__name__)


def season_for_month(month: int) -> str:
    """Northern-hemisphere season for a calendar month (1-12)."""
    if 3 <= month <= 5:
        return "spring"
    if 6 <= month <= 8:
        return "summer"
    if 9 <= month <= 11:
        return "fall"
    return "winter"


def get_current_season_multiplier(settings: FinancialSettings, as_of=None) -> Tuple[str, float]:
    now = utc_timestamp(as_of)
    season = season_for_month(now.month)
    return season, float(settings.seasonal_multipliers.get(season, 1.0))


def calculate_average_order_value(orders: List[Order],
                                  menu_items: List[MenuItem],
                                  settings: FinancialSettings,
                                  config: EngineConfig = CONFIG) -> Tuple[float, str]:
    """
    Returns:
        (value, source) where source is "custom", "orders", "menu" or "default"
    """
    if settings.custom_average_order_value is not None:
        return float(settings.custom_average_order_value), "custom"

    totals = [o.total for o in orders if o.status == "completed"]
    if totals:
        return float(sum(totals) / len(totals)), "orders"

    prices = [m.price for m in menu_items if m.is_available]
    if prices:
        return float(sum(prices) / len(prices)), "menu"

    return config.default_average_order_value, "default"


def units_sold_by_menu_item(orders: List[Order]) -> Dict[str, float]:
    sold: Dict[str, float] = {}
    for order in orders:
        if order.status != "completed":
            continue
        for line in order.items:
            sold[line.menu_item_id] = sold.get(line.menu_item_id, 0.0) + line.quantity
    return sold


def calculate_average_profit_margin(menu_items: List[MenuItem],
                                    settings: FinancialSettings,
                                    orders: Optional[List[Order]] = None,
                                    config: EngineConfig = CONFIG) -> float:
    """
    Average margin as a fraction (0.65 = 65%).

    Available items are weighted by units sold in completed orders; with no
    sales every available item counts equally.
    """
    if settings.custom_profit_margin is not None:
        return settings.custom_profit_margin / 100

    available = [m for m in menu_items if m.is_available]
    if not available:
        return config.default_profit_margin

    margins = pd.Series([m.resolved_profit_margin() / 100 for m in available])
    sold = units_sold_by_menu_item(orders or [])
    weights = pd.Series([max(sold.get(m.id, 0.0), 0.0) for m in available])

    if weights.sum() <= 0:
        return float(margins.mean())
    return float((margins * weights).sum() / weights.sum())


def calculate_break_even_point(monthly_expenses: float,
                               avg_order_value: float,
                               avg_profit_margin: float,
                               seasonal_multiplier: float) -> int:
    profit_per_order = avg_order_value * avg_profit_margin
    if profit_per_order <= 0 or seasonal_multiplier <= 0:
        return 0
    return int(math.ceil(monthly_expenses / profit_per_order / seasonal_multiplier))


def calculate_daily_break_even(monthly_break_even: int,
                               operating_days: Iterable[str],
                               settings: FinancialSettings) -> DailyBreakEven:
    days = _normalise_days(operating_days)
    days_per_week = (
        settings.working_days_per_week
        if settings.working_days_per_week is not None else len(days)
    )
    working_days_per_month = days_per_week * settings.weeks_per_month
    avg_orders_per_day = (
        monthly_break_even / working_days_per_month if working_days_per_month > 0 else 0.0
    )

    by_day = {
        day: int(math.ceil(avg_orders_per_day * settings.day_performance_multipliers.get(day, 1.0)))
        for day in days
    }
    return DailyBreakEven(
        total=int(math.ceil(avg_orders_per_day)),
        average_orders_per_day=avg_orders_per_day,
        working_days_per_month=int(round(working_days_per_month)),
        by_day=by_day,
    )


def _normalise_days(operating_days: Iterable[str]) -> List[str]:
    wanted = {str(d).strip().lower() for d in operating_days}
    return [d for d in WEEKDAYS_ORDERED if d in wanted]


def get_break_even_analysis(expenses: List[Expense],
                            labor_monthly_cost: float,
                            orders: List[Order],
                            menu_items: List[MenuItem],
                            settings: FinancialSettings,
                            operating_days: Iterable[str],
                            as_of=None,
                            waste_analytics: Optional[WasteAnalytics] = None,
                            config: EngineConfig = CONFIG) -> BreakEvenAnalysis:
    """
    Break-even analysis with every intermediate value.

    Args:
        labor_monthly_cost: Typically ``LaborCostSummary.total_monthly_cost``
        operating_days: Weekday names the business trades on, e.g.
            ["thursday", "friday", "saturday"]
        as_of: Date that selects the season (default: now)
        waste_analytics: When given, its monthly waste expense is added to costs
    """
    operating_days = list(operating_days)
    ensure_valid(validate_financial_settings(settings, operating_days))

    recurring = calculate_monthly_expenses(expenses, config)
    waste_monthly = waste_analytics.monthly_waste_expense if waste_analytics is not None else 0.0
    monthly_expenses = recurring + labor_monthly_cost + waste_monthly

    avg_order_value, order_value_source = calculate_average_order_value(
        orders, menu_items, settings, config
    )
    avg_profit_margin = calculate_average_profit_margin(menu_items, settings, orders, config)
    season, seasonal_multiplier = get_current_season_multiplier(settings, as_of)

    profit_per_order = avg_order_value * avg_profit_margin
    monthly_break_even = calculate_break_even_point(
        monthly_expenses, avg_order_value, avg_profit_margin, seasonal_multiplier
    )
    daily = calculate_daily_break_even(monthly_break_even, operating_days, settings)

    days = _normalise_days(operating_days)
    analysis = BreakEvenAnalysis(
        monthly_expenses=monthly_expenses,
        recurring_expenses=recurring,
        labor_monthly_cost=labor_monthly_cost,
        waste_monthly_cost=waste_monthly,
        avg_order_value=avg_order_value,
        avg_profit_margin=avg_profit_margin * 100,
        season=season,
        seasonal_multiplier=seasonal_multiplier,
        profit_per_order=profit_per_order,
        monthly_break_even=monthly_break_even,
        daily_break_even=daily,
        working_days_per_month=daily.working_days_per_month,
        operating_schedule={
            "operating_days": days,
            "days_per_week": (
                settings.working_days_per_week
                if settings.working_days_per_week is not None else len(days)
            ),
            "weeks_per_month": settings.weeks_per_month,
            "day_multipliers": {d: settings.day_performance_multipliers.get(d, 1.0) for d in days},
        },
        using_calculated_values={
            "order_value": settings.custom_average_order_value is None,
            "profit_margin": settings.custom_profit_margin is None,
        },
        order_value_source=order_value_source,
    )

    logger.debug(
        "Break-even: expenses %.2f, %.2f/order, %s x%.2f -> %d orders/month",
        monthly_expenses, profit_per_order, season, seasonal_multiplier, monthly_break_even,
    )
    return analysis
