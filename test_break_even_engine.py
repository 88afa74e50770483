"""
Break-Even Engine Tests
=======================
"""

from datetime import date, datetime
from pathlib import Path
import math
import sys

import pytest

# Add current directory to path
sys.path.insert(0, str(Path(__file__).parent))

import break_even_engine as be
from records import Expense, FinancialSettings, MenuItem, Order, OrderItem, WasteAnalytics
from validation import InvalidInputError

SPRING = date(2024, 4, 10)
TRUCK_DAYS = ["thursday", "friday", "saturday"]


@pytest.fixture
def rent_6000():
    return [Expense(name="Commissary Rent", amount=6000.0, type="fixed", frequency="monthly")]


@pytest.fixture
def menu():
    return [
        MenuItem(id="a", name="Taco", category="Tacos", price=10.0, profit_margin=60.0),
        MenuItem(id="b", name="Bowl", category="Bowls", price=10.0, total_ingredient_cost=8.0),
        MenuItem(id="c", name="Special", category="Tacos", price=100.0, profit_margin=90.0, is_available=False),
    ]


def _order(oid, total, status="completed", lines=()):
    return Order(id=oid, status=status, order_time=datetime(2024, 4, 1, 12), total=total,
                 items=[OrderItem(menu_item_id=m, quantity=q) for m, q in lines])


class TestBreakEvenPoint:

    def test_reference_scenario(self, rent_6000):
        analysis = be.get_break_even_analysis(
            rent_6000, 0.0, [], [], FinancialSettings(), TRUCK_DAYS, as_of=SPRING
        )

        assert analysis.avg_order_value == 15
        assert analysis.avg_profit_margin == pytest.approx(65)
        assert analysis.seasonal_multiplier == 1.0
        assert analysis.profit_per_order == pytest.approx(9.75)
        assert analysis.monthly_break_even == 616
        assert analysis.order_value_source == "default"

    def test_labor_added_to_expenses(self, rent_6000):
        analysis = be.get_break_even_analysis(
            rent_6000, 1000.0, [], [], FinancialSettings(), TRUCK_DAYS, as_of=SPRING
        )
        assert analysis.recurring_expenses == pytest.approx(6000)
        assert analysis.monthly_expenses == pytest.approx(7000)
        assert analysis.monthly_break_even == math.ceil(7000 / 9.75)

    def test_waste_added_when_given(self, rent_6000):
        waste = WasteAnalytics(
            timeframe="month", total_waste_value=97.5, monthly_waste_expense=97.5,
            waste_by_category={}, waste_efficiency_rate=90.0, average_waste_percentage=10.0,
            projected_annual_waste=1170.0, total_inventory_value=0.0,
        )
        analysis = be.get_break_even_analysis(
            rent_6000, 0.0, [], [], FinancialSettings(), TRUCK_DAYS, as_of=SPRING, waste_analytics=waste
        )
        assert analysis.waste_monthly_cost == pytest.approx(97.5)
        assert analysis.monthly_expenses == pytest.approx(6097.5)
        assert analysis.monthly_break_even == 626

    def test_zero_margin_short_circuits(self, rent_6000):
        settings = FinancialSettings(custom_profit_margin=0.0)
        analysis = be.get_break_even_analysis(rent_6000, 0.0, [], [], settings, TRUCK_DAYS, as_of=SPRING)

        assert analysis.profit_per_order == 0
        assert analysis.monthly_break_even == 0
        assert analysis.daily_break_even.total == 0
        assert all(v == 0 for v in analysis.daily_break_even.by_day.values())

    def test_seasonal_adjustment(self, rent_6000):
        summer = be.get_break_even_analysis(
            rent_6000, 0.0, [], [], FinancialSettings(), TRUCK_DAYS, as_of=date(2024, 7, 1)
        )
        assert summer.season == "summer"
        assert summer.monthly_break_even == math.ceil(6000 / 9.75 / 1.2)

    def test_one_time_expenses_excluded(self):
        expenses = [
            Expense(name="Rent", amount=6000.0),
            Expense(name="Truck Wrap", amount=4000.0, type="one_time", frequency="one_time"),
            Expense(name="Old Lease", amount=900.0, is_active=False),
        ]
        analysis = be.get_break_even_analysis(expenses, 0.0, [], [], FinancialSettings(), TRUCK_DAYS, as_of=SPRING)
        assert analysis.monthly_expenses == pytest.approx(6000)


class TestDailyBreakEven:

    def test_per_operating_day(self, rent_6000):
        settings = FinancialSettings(day_performance_multipliers={"friday": 1.2, "saturday": 1.5})
        analysis = be.get_break_even_analysis(rent_6000, 0.0, [], [], settings, TRUCK_DAYS, as_of=SPRING)
        daily = analysis.daily_break_even
        avg = 616 / (3 * 4.33)

        assert daily.average_orders_per_day == pytest.approx(avg)
        assert daily.total == math.ceil(avg)
        assert daily.working_days_per_month == 13
        assert daily.by_day == {
            "thursday": math.ceil(avg),
            "friday": math.ceil(avg * 1.2),
            "saturday": math.ceil(avg * 1.5),
        }
        assert analysis.operating_schedule["days_per_week"] == 3

    def test_working_days_override(self):
        settings = FinancialSettings(working_days_per_week=5)
        daily = be.calculate_daily_break_even(433, ["Monday", "tuesday"], settings)

        assert daily.working_days_per_month == 22
        assert daily.average_orders_per_day == pytest.approx(433 / 21.65)
        assert list(daily.by_day) == ["monday", "tuesday"]

    def test_no_operating_days(self):
        daily = be.calculate_daily_break_even(616, [], FinancialSettings())
        assert daily.total == 0
        assert daily.by_day == {}
        assert daily.working_days_per_month == 0

    def test_unknown_day_rejected(self, rent_6000):
        with pytest.raises(InvalidInputError, match="Unknown operating days"):
            be.get_break_even_analysis(rent_6000, 0.0, [], [], FinancialSettings(), ["funday"], as_of=SPRING)


class TestResolvedInputs:

    @pytest.mark.parametrize("month,season", [
        (1, "winter"), (2, "winter"), (3, "spring"), (5, "spring"), (6, "summer"),
        (8, "summer"), (9, "fall"), (11, "fall"), (12, "winter"),
    ])
    def test_season_for_month(self, month, season):
        assert be.season_for_month(month) == season

    def test_custom_order_value(self, menu):
        value, source = be.calculate_average_order_value([], menu, FinancialSettings(custom_average_order_value=20.0))
        assert (value, source) == (20.0, "custom")

    def test_order_value_from_completed_orders(self, menu):
        orders = [_order("1", 10.0), _order("2", 20.0), _order("3", 100.0, status="cancelled")]
        value, source = be.calculate_average_order_value(orders, menu, FinancialSettings())
        assert (value, source) == (15.0, "orders")

    def test_order_value_from_menu(self, menu):
        value, source = be.calculate_average_order_value([], menu, FinancialSettings())
        assert (value, source) == (10.0, "menu")

    def test_margin_equal_weights_without_sales(self, menu):
        assert be.calculate_average_profit_margin(menu, FinancialSettings()) == pytest.approx(0.4)

    def test_margin_weighted_by_units_sold(self, menu):
        orders = [_order("1", 40.0, lines=[("a", 3), ("b", 1)])]
        margin = be.calculate_average_profit_margin(menu, FinancialSettings(), orders)
        assert margin == pytest.approx(0.5)

    def test_custom_margin(self, menu):
        margin = be.calculate_average_profit_margin(menu, FinancialSettings(custom_profit_margin=50.0))
        assert margin == pytest.approx(0.5)

    def test_no_available_items_uses_default_margin(self):
        assert be.calculate_average_profit_margin([], FinancialSettings()) == pytest.approx(0.65)

    def test_calculated_flags(self, rent_6000, menu):
        settings = FinancialSettings(custom_average_order_value=12.0)
        analysis = be.get_break_even_analysis(rent_6000, 0.0, [], menu, settings, TRUCK_DAYS, as_of=SPRING)
        assert analysis.using_calculated_values == {"order_value": False, "profit_margin": True}

    def test_legacy_zero_means_computed(self, rent_6000):
        settings = FinancialSettings.from_legacy({
            "customAverageOrderValue": 0,
            "customProfitMargin": 0,
            "workingDaysPerWeek": 3,
            "weeksPerMonth": 4.33,
            "dayPerformanceMultipliers": {"Friday": 1.2},
        })
        assert settings.custom_average_order_value is None
        assert settings.custom_profit_margin is None
        assert settings.day_performance_multipliers == {"friday": 1.2}

        analysis = be.get_break_even_analysis(rent_6000, 0.0, [], [], settings, TRUCK_DAYS, as_of=SPRING)
        assert analysis.monthly_break_even == 616
