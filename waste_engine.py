"""
Waste Analytics Engine
======================

Reconciles what completed sales say was consumed (theoretical usage from
menu recipes) against what staff marked as disposed, per inventory item.

Pipeline:
    1. calculate_theoretical_usage  - recipe quantity x units sold, per ingredient
    2. calculate_waste_rates        - per inventory item rate, value, advisory tier
    3. generate_recommendations     - ranked reduce_order / improve_storage /
                                      menu_optimization actions
    4. calculate_waste_analytics    - totals, category split, monthly and annual
                                      projection

When an item has no sales signal its usage is estimated from stock on hand
plus disposals, so waste is still reported for items that never sold.
"""

import logging
from typing import Dict, List, Optional

import pandas as pd

from engine_config import CONFIG, EngineConfig
from records import (
    Expense,
    Ingredient,
    IngredientUsage,
    InventoryItem,
    MenuItem,
    Order,
    WasteAnalytics,
    WasteRateItem,
    WasteRecommendation,
    utc_timestamp,
)
from validation import ensure_valid, validate_waste_inputs

logger = logging.getLogger(__name__)

UNKNOWN_INGREDIENT = "Unknown"

WASTE_EXPENSE_NAME = "Food Waste (Auto-calculated)"


def timeframe_window(timeframe: str):
    if timeframe == "week":
        return pd.Timedelta(days=7)
    if timeframe == "month":
        return pd.DateOffset(months=1)
    if timeframe == "quarter":
        return pd.DateOffset(months=3)
    raise ValueError(f"Unknown timeframe '{timeframe}' (expected week, month or quarter)")


def months_in_timeframe(timeframe: str, config: EngineConfig = CONFIG) -> float:
    """Calendar months covered by a timeframe."""
    if timeframe == "week":
        return 1 / config.weeks_per_month
    if timeframe == "month":
        return 1.0
    if timeframe == "quarter":
        return 3.0
    raise ValueError(f"Unknown timeframe '{timeframe}' (expected week, month or quarter)")


def advisory_tier(waste_rate: float, config: EngineConfig = CONFIG) -> str:
    if waste_rate > config.waste_high_rate:
        return "High waste rate - consider reducing order quantities or improving storage"
    if waste_rate > config.waste_moderate_rate:
        return "Moderate waste - monitor closely and optimize portion sizes"
    if waste_rate > config.waste_normal_rate:
        return "Normal waste levels - maintain current practices"
    return "Excellent efficiency - use as benchmark for other items"


# =============================================================================
# STEP 1: THEORETICAL USAGE
# =============================================================================

def calculate_theoretical_usage(orders: List[Order],
                                menu_items: List[MenuItem],
                                ingredients: List[Ingredient],
                                timeframe: str = "month",
                                as_of=None) -> Dict[str, IngredientUsage]:
    """
    Ingredient quantities implied by completed orders inside the timeframe
    window ending at ``as_of`` (default: now).

    Returns:
        ingredient_id -> IngredientUsage. ``total_sold`` counts the order-line
        units that drew on the ingredient; ``quantity`` is the recipe quantity
        times those units.
    """
    now = utc_timestamp(as_of)
    cutoff = now - timeframe_window(timeframe)

    menu_by_id = {m.id: m for m in menu_items}
    names = {i.id: i.name for i in ingredients}
    usage: Dict[str, IngredientUsage] = {}

    for order in orders:
        if order.status != "completed" or utc_timestamp(order.order_time) < cutoff:
            continue
        for line in order.items:
            menu_item = menu_by_id.get(line.menu_item_id)
            if menu_item is None:
                continue
            for recipe_line in menu_item.ingredients:
                entry = usage.get(recipe_line.ingredient_id)
                if entry is None:
                    entry = IngredientUsage(
                        ingredient_id=recipe_line.ingredient_id,
                        ingredient_name=names.get(recipe_line.ingredient_id, UNKNOWN_INGREDIENT),
                        total_sold=0.0,
                        quantity=0.0,
                    )
                    usage[recipe_line.ingredient_id] = entry
                entry.total_sold += line.quantity
                entry.quantity += line.quantity * recipe_line.quantity

    return usage


# =============================================================================
# STEP 2: WASTE RATES
# =============================================================================

def _match_usage(item: InventoryItem,
                 usage: Dict[str, IngredientUsage],
                 usage_by_name: Dict[str, IngredientUsage]) -> Optional[IngredientUsage]:
    if item.ingredient_id is not None and item.ingredient_id in usage:
        return usage[item.ingredient_id]
    return usage_by_name.get(item.name.strip().lower())


def calculate_waste_rates(inventory_items: List[InventoryItem],
                          usage: Dict[str, IngredientUsage],
                          config: EngineConfig = CONFIG) -> List[WasteRateItem]:
    usage_by_name = {}
    for entry in usage.values():
        # The placeholder name must never pair with an inventory line
        if entry.ingredient_name == UNKNOWN_INGREDIENT:
            continue
        usage_by_name.setdefault(entry.ingredient_name.strip().lower(), entry)

    rates = []
    for item in inventory_items:
        matched = _match_usage(item, usage, usage_by_name)
        theoretical = matched.quantity if matched is not None else 0.0
        disposed = item.disposed_quantity

        if theoretical > 0:
            actual = theoretical + disposed
        else:
            actual = max(disposed, item.current_stock + disposed)

        if actual > 0:
            raw_rate = disposed / actual * 100
        else:
            raw_rate = 100.0 if disposed > 0 else 0.0

        if raw_rate > 100:
            logger.warning(
                "Waste rate for %s clamped to 100%% (raw %.1f%%, disposed %.2f vs usage %.2f)",
                item.name, raw_rate, disposed, actual,
            )
        waste_rate = min(max(raw_rate, 0.0), 100.0)

        rates.append(WasteRateItem(
            inventory_item_id=item.id,
            item_name=item.name,
            category=item.category,
            theoretical_usage=theoretical,
            actual_usage=actual,
            disposed_quantity=disposed,
            waste_rate=waste_rate,
            waste_value=disposed * item.cost_per_unit,
            unit=item.unit,
            recommendation=advisory_tier(waste_rate, config),
        ))
    return rates


# =============================================================================
# STEP 3: RECOMMENDATIONS
# =============================================================================

def generate_recommendations(waste_rates: List[WasteRateItem],
                             config: EngineConfig = CONFIG) -> List[WasteRecommendation]:
    """
    Ranked actions, in this order:
        - reduce_order      top items by waste value among rate > 15%
        - improve_storage   top items by waste value among value > 50
        - menu_optimization top categories by waste value among value > 100
    Ties keep inventory order.
    """
    recommendations: List[WasteRecommendation] = []
    if not waste_rates:
        return recommendations

    df = pd.DataFrame([r.to_dict() for r in waste_rates])

    high_rate = (
        df[df["waste_rate"] > config.reduce_order_min_rate]
        .sort_values("waste_value", ascending=False, kind="mergesort")
        .head(config.reduce_order_limit)
    )
    for row in high_rate.itertuples(index=False):
        recommendations.append(WasteRecommendation(
            type="reduce_order",
            item_name=row.item_name,
            current_waste_rate=float(row.waste_rate),
            potential_savings=float(row.waste_value) * config.reduce_order_savings,
            description=f"Reduce order quantities for {row.item_name} by 20-30% to minimize waste",
            priority="high" if row.waste_rate > config.reduce_order_high_priority_rate else "medium",
            description_key="wa_reduce_order_desc",
            description_args={"item": row.item_name},
        ))

    high_value = (
        df[df["waste_value"] > config.improve_storage_min_value]
        .sort_values("waste_value", ascending=False, kind="mergesort")
        .head(config.improve_storage_limit)
    )
    for row in high_value.itertuples(index=False):
        recommendations.append(WasteRecommendation(
            type="improve_storage",
            item_name=row.item_name,
            current_waste_rate=float(row.waste_rate),
            potential_savings=float(row.waste_value) * config.improve_storage_savings,
            description=f"Improve storage conditions for {row.item_name} to extend shelf life",
            priority="high",
            description_key="wa_improve_storage_desc",
            description_args={"item": row.item_name},
        ))

    by_category = df.groupby("category", sort=False)["waste_value"].sum()
    top_categories = (
        by_category[by_category > config.menu_optimization_min_value]
        .sort_values(ascending=False, kind="mergesort")
        .head(config.menu_optimization_limit)
    )
    for category, value in top_categories.items():
        recommendations.append(WasteRecommendation(
            type="menu_optimization",
            item_name=str(category),
            current_waste_rate=0.0,
            potential_savings=float(value) * config.menu_optimization_savings,
            description=f"Consider menu optimization for {category} items to reduce overall waste",
            priority="medium",
            description_key="wa_menu_optimization_desc",
            description_args={"category": str(category)},
        ))

    return recommendations


# =============================================================================
# STEP 4: AGGREGATE
# =============================================================================

def calculate_waste_analytics(inventory_items: List[InventoryItem],
                              orders: List[Order],
                              menu_items: List[MenuItem],
                              ingredients: List[Ingredient],
                              timeframe: str = "month",
                              as_of=None,
                              config: EngineConfig = CONFIG) -> WasteAnalytics:
    """
    Full waste picture for the timeframe ("week", "month" or "quarter").

    ``monthly_waste_expense`` is the timeframe total divided by the months the
    timeframe covers, so a weekly total is scaled up by weeks-per-month and a
    quarterly total is divided by 3.
    """
    ensure_valid(validate_waste_inputs(inventory_items, orders, menu_items, timeframe))

    usage = calculate_theoretical_usage(orders, menu_items, ingredients, timeframe, as_of)
    waste_rates = calculate_waste_rates(inventory_items, usage, config)

    if waste_rates:
        df = pd.DataFrame([r.to_dict() for r in waste_rates])
        total_waste_value = float(df["waste_value"].sum())
        by_category = df.groupby("category", sort=False)["waste_value"].sum()
        waste_by_category = {str(k): float(v) for k, v in by_category.items()}
        average_waste_percentage = float(df["waste_rate"].mean())
    else:
        total_waste_value = 0.0
        waste_by_category = {}
        average_waste_percentage = 0.0

    total_inventory_value = float(sum(i.current_stock * i.cost_per_unit for i in inventory_items))

    monthly_waste_expense = total_waste_value / months_in_timeframe(timeframe, config)

    analytics = WasteAnalytics(
        timeframe=timeframe,
        total_waste_value=total_waste_value,
        monthly_waste_expense=monthly_waste_expense,
        waste_by_category=waste_by_category,
        waste_efficiency_rate=100 - average_waste_percentage,
        average_waste_percentage=average_waste_percentage,
        projected_annual_waste=monthly_waste_expense * config.months_per_year,
        total_inventory_value=total_inventory_value,
        waste_rate_by_item=waste_rates,
        recommendations=generate_recommendations(waste_rates, config),
    )

    logger.debug(
        "Waste (%s): %d items, total %.2f, monthly %.2f, avg rate %.1f%%",
        timeframe, len(waste_rates), total_waste_value, monthly_waste_expense,
        average_waste_percentage,
    )
    return analytics


# =============================================================================
# WASTE -> FINANCE INTEGRATION
# =============================================================================

def build_waste_expense(analytics: WasteAnalytics, config: EngineConfig = CONFIG) -> Expense:
    """Monthly variable expense carrying the waste cost and its category breakdown."""
    breakdown = ", ".join(
        f"{category}: {config.currency}{value:.2f}"
        for category, value in analytics.waste_by_category.items()
        if value > 0
    )
    return Expense(
        name=WASTE_EXPENSE_NAME,
        amount=analytics.monthly_waste_expense,
        type="variable",
        frequency="monthly",
        is_active=True,
        description=(
            "Calculated waste based on disposed inventory and usage patterns. "
            f"Breakdown: {breakdown}. "
            "Auto-calculated based on disposed inventory and usage patterns."
        ),
    )


def calculate_waste_impact(analytics: WasteAnalytics, monthly_revenue: float) -> dict:
    waste_percentage = (
        analytics.monthly_waste_expense / monthly_revenue * 100 if monthly_revenue > 0 else 0.0
    )

    recommendations = []
    if waste_percentage > 10:
        recommendations.append("Critical: Waste exceeds 10% of revenue - immediate action required")
    elif waste_percentage > 5:
        recommendations.append("High waste impact - implement waste reduction strategies")
    elif waste_percentage > 2:
        recommendations.append("Moderate waste levels - monitor and optimize")
    else:
        recommendations.append("Excellent waste control - maintain current practices")

    if analytics.projected_annual_waste > 5000:
        recommendations.append("Consider investing in better storage or inventory management systems")

    return {
        "waste_percentage_of_revenue": waste_percentage,
        "annual_waste_impact": analytics.projected_annual_waste,
        "recommendations": recommendations,
    }


def should_trigger_alert(amount: float, monthly_revenue: float,
                         config: EngineConfig = CONFIG) -> dict:
    waste_percentage = amount / monthly_revenue * 100 if monthly_revenue > 0 else 0.0

    if waste_percentage > 8:
        return {
            "should_alert": True,
            "alert_type": "critical",
            "message": (
                f"Waste expense ({waste_percentage:.1f}% of revenue) is critically high "
                "and requires immediate attention"
            ),
        }
    if waste_percentage > 4:
        return {
            "should_alert": True,
            "alert_type": "warning",
            "message": f"Waste expense ({waste_percentage:.1f}% of revenue) is above recommended levels",
        }
    if amount > 500:
        return {
            "should_alert": True,
            "alert_type": "info",
            "message": f"Monthly waste expense of {config.currency}{amount:.2f} detected",
        }
    return {"should_alert": False, "alert_type": "info", "message": ""}
