"""
Engine Configuration - Master Settings
======================================

Every rate, threshold and fallback used by the calculators lives in one
frozen record. Calculators accept it as their ``config`` argument, so a
caller (or a test) can run with different rates without touching the
module default:

    from dataclasses import replace
    from engine_config import CONFIG

    quebec = replace(CONFIG, overtime_threshold_hours=44.0)
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class EngineConfig:
    currency: str = "$"

    # Labor
    overtime_threshold_hours: float = 40.0   # per employee per ISO week
    overtime_multiplier: float = 1.5
    overtime_premium: float = 0.5            # projection: extra 50% above base
    employer_tax_rate: float = 0.0765        # Social Security + Medicare
    unemployment_tax_rate: float = 0.006     # FUTA
    workers_comp_rate: float = 0.02
    benefits_percentage: float = 0.15
    employer_cost_factor: float = 1.3        # wage loading for affordable-hours estimate
    default_hourly_wage: float = 15.0

    # Calendar normalisation
    days_per_month: float = 30.44
    weeks_per_month: float = 4.33
    weeks_per_year: float = 52.0
    months_per_year: int = 12

    # Break-even fallbacks
    default_average_order_value: float = 15.0
    default_profit_margin: float = 0.65

    # Waste advisory tiers (percent)
    waste_high_rate: float = 20.0
    waste_moderate_rate: float = 10.0
    waste_normal_rate: float = 5.0

    # Waste recommendations
    reduce_order_min_rate: float = 15.0
    reduce_order_high_priority_rate: float = 25.0
    reduce_order_limit: int = 5
    reduce_order_savings: float = 0.7
    improve_storage_min_value: float = 50.0
    improve_storage_limit: int = 3
    improve_storage_savings: float = 0.5
    menu_optimization_min_value: float = 100.0
    menu_optimization_limit: int = 2
    menu_optimization_savings: float = 0.3

    @property
    def employer_burden_rate(self) -> float:
        return self.employer_tax_rate + self.unemployment_tax_rate + self.workers_comp_rate


CONFIG = EngineConfig()

# Default demand multipliers by season. Values above 1.0 mean stronger trade
# (fewer orders needed per day to break even).
DEFAULT_SEASONAL_MULTIPLIERS = {
    "spring": 1.0,
    "summer": 1.2,
    "fall": 1.0,
    "winter": 0.8,
}

WEEKDAYS_ORDERED = [
    "sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday",
]

ORDER_STATUSES = ("pending", "preparing", "ready", "completed", "cancelled", "refunded")
EXPENSE_TYPES = ("fixed", "variable", "one_time")
EXPENSE_FREQUENCIES = ("daily", "weekly", "monthly", "yearly", "one_time")
WASTE_TIMEFRAMES = ("week", "month", "quarter")
