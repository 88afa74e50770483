"""
Business Records - Typed Inputs and Outputs of the Analytics Engine

Input records are snapshots supplied by the data layer (employees, shifts,
inventory, menu, orders, expenses, settings). The engine never creates,
mutates or persists them.

Output records are plain result containers (labor summary, waste analytics,
break-even analysis, ...). Each offers ``to_dict()``; the tabular ones also
offer ``to_frame()`` for analysis in pandas.
"""

from dataclasses import asdict, dataclass, field, fields
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from engine_config import DEFAULT_SEASONAL_MULTIPLIERS


def records_to_frame(records: list, columns: List[str]) -> pd.DataFrame:
    """Build a DataFrame from dataclass records, keeping column order even when empty."""
    if not records:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame([asdict(r) for r in records], columns=columns)


def utc_timestamp(value=None) -> pd.Timestamp:
    """
    Timestamp on one naive UTC clock so order times, periods and ``as_of``
    compare safely. Aware values are converted to UTC; naive values are taken
    as already UTC. ``None`` means now.
    """
    stamp = pd.Timestamp.now(tz="UTC") if value is None else pd.Timestamp(value)
    if stamp.tzinfo is not None:
        stamp = stamp.tz_convert("UTC").tz_localize(None)
    return stamp


def _column_names(record_type) -> List[str]:
    return [f.name for f in fields(record_type)]


class _ResultRecord:
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# INPUT RECORDS
# =============================================================================

@dataclass(frozen=True)
class Employee:
    id: str
    hourly_rate: float
    position: str
    is_active: bool = True
    first_name: str = ""
    last_name: str = ""

    @property
    def full_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.id


@dataclass(frozen=True)
class Shift:
    """
    A worked shift.

    Attributes:
        hours_worked: Caller-computed paid hours for the shift (>= 0)
        start_time: "HH:MM"; breaks ties between shifts on the same date
    """
    id: str
    employee_id: str
    date: date
    hours_worked: float
    start_time: str = ""
    end_time: str = ""
    role: str = ""
    location: Optional[str] = None


@dataclass(frozen=True)
class Ingredient:
    id: str
    name: str
    unit: str = ""
    cost_per_unit: float = 0.0


@dataclass(frozen=True)
class InventoryItem:
    """
    A stocked inventory line.

    Attributes:
        disposed_quantity: Cumulative quantity staff marked as waste
        ingredient_id: Link to the ingredient used in menu recipes (optional)
    """
    id: str
    name: str
    category: str
    current_stock: float
    unit: str
    cost_per_unit: float
    disposed_quantity: float = 0.0
    ingredient_id: Optional[str] = None


@dataclass(frozen=True)
class MenuItemIngredient:
    ingredient_id: str
    quantity: float
    unit: str = ""


@dataclass(frozen=True)
class MenuItem:
    """
    A menu item and its recipe.

    Attributes:
        total_ingredient_cost: Precomputed recipe cost (optional)
        profit_margin: Precomputed margin in percent, e.g. 65.0 (optional)
    """
    id: str
    name: str
    category: str
    price: float
    ingredients: List[MenuItemIngredient] = field(default_factory=list)
    is_available: bool = True
    total_ingredient_cost: Optional[float] = None
    profit_margin: Optional[float] = None

    def resolved_profit_margin(self) -> float:
        """Margin in percent: precomputed value, else derived from recipe cost, else 0."""
        if self.profit_margin is not None:
            return float(self.profit_margin)
        if self.total_ingredient_cost is not None and self.price > 0:
            return (self.price - self.total_ingredient_cost) / self.price * 100
        return 0.0


@dataclass(frozen=True)
class OrderItem:
    menu_item_id: str
    quantity: float
    unit_price: float = 0.0


@dataclass(frozen=True)
class Order:
    id: str
    status: str
    order_time: datetime
    items: List[OrderItem] = field(default_factory=list)
    total: float = 0.0


@dataclass(frozen=True)
class Expense:
    name: str
    amount: float
    type: str = "fixed"
    frequency: str = "monthly"
    is_active: bool = True
    description: str = ""
    id: Optional[str] = None


@dataclass(frozen=True)
class FinancialSettings:
    """
    Break-even settings owned by the business.

    ``None`` for an override means "use the value computed from live data".
    ``working_days_per_week`` defaults to the number of operating days passed
    to the break-even calculation.
    """
    custom_average_order_value: Optional[float] = None
    custom_profit_margin: Optional[float] = None   # percent
    working_days_per_week: Optional[float] = None
    weeks_per_month: float = 4.33
    day_performance_multipliers: Dict[str, float] = field(default_factory=dict)
    seasonal_multipliers: Dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_SEASONAL_MULTIPLIERS)
    )

    @classmethod
    def from_legacy(cls, raw: Mapping[str, Any]) -> "FinancialSettings":
        """
        Build settings from the dashboard's stored shape, where camelCase keys
        are used and 0 means "no override".
        """
        def _override(key):
            value = raw.get(key)
            if value is None or float(value) == 0:
                return None
            return float(value)

        day_multipliers = {
            str(day).lower(): float(mult)
            for day, mult in (raw.get("dayPerformanceMultipliers") or {}).items()
        }
        seasonal = dict(DEFAULT_SEASONAL_MULTIPLIERS)
        seasonal.update({
            str(season).lower(): float(mult)
            for season, mult in (raw.get("seasonalMultipliers") or {}).items()
        })
        working_days = raw.get("workingDaysPerWeek")
        return cls(
            custom_average_order_value=_override("customAverageOrderValue"),
            custom_profit_margin=_override("customProfitMargin"),
            working_days_per_week=float(working_days) if working_days else None,
            weeks_per_month=float(raw.get("weeksPerMonth") or 4.33),
            day_performance_multipliers=day_multipliers,
            seasonal_multipliers=seasonal,
        )


@dataclass(frozen=True)
class FinancialProjection:
    name: str
    projected_revenue: float
    projected_expenses: float
    average_order_value: float = 0.0
    orders_per_day: float = 0.0
    working_days_per_month: float = 22.0
    projection_period: str = "monthly"
    projected_profit: float = 0.0
    profit_margin_percentage: float = 0.0
    break_even_point: int = 0


# =============================================================================
# OUTPUT RECORDS - Labor
# =============================================================================

@dataclass
class ShiftCost(_ResultRecord):
    shift_id: str
    employee_id: str
    position: str
    date: date
    iso_week: str
    hours: float
    regular_hours: float
    overtime_hours: float
    wage: float


@dataclass
class LaborCostSummary(_ResultRecord):
    """
    Labor cost for a reporting period, normalised to weekly/monthly/yearly.

    Attributes:
        total_labor_cost: Wages + employer taxes + benefits for the whole period
        total_weekly_hours: Hours worked per week of the period
        cost_by_employee / cost_by_position: Wages (before burden)
        shift_costs: One row per costed shift with its regular/overtime split
        skipped_shifts: In-period shifts with no matching employee
    """
    period_start: date
    period_end: date
    days_in_period: int
    total_wages: float = 0.0
    total_hours: float = 0.0
    regular_hours: float = 0.0
    overtime_hours: float = 0.0
    employer_taxes: float = 0.0
    benefits: float = 0.0
    total_labor_cost: float = 0.0
    total_weekly_cost: float = 0.0
    total_monthly_cost: float = 0.0
    total_yearly_cost: float = 0.0
    total_weekly_hours: float = 0.0
    average_hourly_rate: float = 0.0
    labor_cost_per_hour: float = 0.0
    cost_by_employee: Dict[str, float] = field(default_factory=dict)
    cost_by_position: Dict[str, float] = field(default_factory=dict)
    shift_costs: List[ShiftCost] = field(default_factory=list)
    skipped_shifts: int = 0

    def to_frame(self) -> pd.DataFrame:
        return records_to_frame(self.shift_costs, _column_names(ShiftCost))


@dataclass
class LaborEfficiencyMetrics(_ResultRecord):
    sales_per_labor_hour: float
    labor_cost_percentage: float
    average_orders_per_employee: float
    peak_hour_coverage: float
    productivity_score: float


@dataclass
class LaborProjection(_ResultRecord):
    name: str
    projection_period: str
    employee_count: int
    average_wage: float
    average_hours_per_employee: float
    projected_weekly_hours: float
    projected_revenue: float
    projected_labor_cost: float
    projected_overtime_cost: float
    projected_benefits_cost: float
    total_projected_cost: float
    labor_cost_percentage: float
    target_labor_percentage: float
    target_labor_cost: float
    max_affordable_hours: float


# =============================================================================
# OUTPUT RECORDS - Waste
# =============================================================================

@dataclass
class IngredientUsage(_ResultRecord):
    ingredient_id: str
    ingredient_name: str
    total_sold: float
    quantity: float


@dataclass
class WasteRateItem(_ResultRecord):
    inventory_item_id: str
    item_name: str
    category: str
    theoretical_usage: float
    actual_usage: float
    disposed_quantity: float
    waste_rate: float
    waste_value: float
    unit: str
    recommendation: str


@dataclass
class WasteRecommendation(_ResultRecord):
    """
    A ranked waste-reduction action.

    Attributes:
        type: "reduce_order", "improve_storage" or "menu_optimization"
        item_name: Inventory item name, or the category for menu_optimization
        description_key / description_args: Translation key and arguments
            for callers that localise the description
    """
    type: str
    item_name: str
    current_waste_rate: float
    potential_savings: float
    description: str
    priority: str
    description_key: str = ""
    description_args: Dict[str, Any] = field(default_factory=dict)


@dataclass
class WasteAnalytics(_ResultRecord):
    timeframe: str
    total_waste_value: float
    monthly_waste_expense: float
    waste_by_category: Dict[str, float]
    waste_efficiency_rate: float
    average_waste_percentage: float
    projected_annual_waste: float
    total_inventory_value: float
    waste_rate_by_item: List[WasteRateItem] = field(default_factory=list)
    recommendations: List[WasteRecommendation] = field(default_factory=list)

    def to_frame(self) -> pd.DataFrame:
        return records_to_frame(self.waste_rate_by_item, _column_names(WasteRateItem))


# =============================================================================
# OUTPUT RECORDS - Finance
# =============================================================================

@dataclass
class DailyBreakEven(_ResultRecord):
    total: int
    average_orders_per_day: float
    working_days_per_month: int
    by_day: Dict[str, int] = field(default_factory=dict)


@dataclass
class BreakEvenAnalysis(_ResultRecord):
    """
    Break-even point with every intermediate value used to reach it.

    Attributes:
        avg_profit_margin: Percent (65.0 = 65%)
        using_calculated_values: {"order_value": bool, "profit_margin": bool};
            True when the value was computed rather than overridden
        order_value_source: "custom", "orders", "menu" or "default"
    """
    monthly_expenses: float
    recurring_expenses: float
    labor_monthly_cost: float
    waste_monthly_cost: float
    avg_order_value: float
    avg_profit_margin: float
    season: str
    seasonal_multiplier: float
    profit_per_order: float
    monthly_break_even: int
    daily_break_even: DailyBreakEven
    working_days_per_month: int
    operating_schedule: Dict[str, Any] = field(default_factory=dict)
    using_calculated_values: Dict[str, bool] = field(default_factory=dict)
    order_value_source: str = "default"


@dataclass
class ExpenseSummary(_ResultRecord):
    total_fixed: float = 0.0
    total_variable: float = 0.0
    total_one_time: float = 0.0
    monthly_total: float = 0.0
    largest_expense: Optional[Expense] = None
    expenses_by_category: Dict[str, float] = field(default_factory=dict)


@dataclass
class FinancialInsights(_ResultRecord):
    monthly_burn_rate: float
    daily_burn_rate: float
    break_even_revenue: float
    break_even_orders: int
    runway_months: float
    profit_margin: float
    roi: float


# =============================================================================
# SNAPSHOT
# =============================================================================

@dataclass(frozen=True)
class BusinessSnapshot:
    """
    Everything the full analysis reads, captured at one point in time.

    ``operating_days`` are the weekday names the business trades on; the
    labor period is [period_start, period_end] and ``as_of`` anchors the waste
    window and the season.
    """
    employees: List[Employee]
    shifts: List[Shift]
    ingredients: List[Ingredient]
    inventory_items: List[InventoryItem]
    menu_items: List[MenuItem]
    orders: List[Order]
    expenses: List[Expense]
    settings: FinancialSettings
    operating_days: List[str]
    period_start: date
    period_end: date
    as_of: datetime
    business_name: str = "Food Truck"
