"""
Labor Engine Test Suite
=======================

Covers weekly overtime attribution, employer burden, period normalisation,
efficiency metrics, projections and the labor-expense helpers.
"""

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
import math
import sys

import pytest

# Add current directory to path
sys.path.insert(0, str(Path(__file__).parent))

import labor_engine as le
from engine_config import CONFIG
from records import Employee, LaborCostSummary, LaborEfficiencyMetrics, Shift
from validation import InvalidInputError


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def cook():
    return Employee(id="emp-1", hourly_rate=20.0, position="Cook", first_name="Ana", last_name="Diaz")


@pytest.fixture
def week_45_hours():
    """Mon 2024-01-01 .. Sat 2024-01-06: five 8h shifts then a 5h shift (ISO week 2024-W01)."""
    hours = [8, 8, 8, 8, 8, 5]
    return [
        Shift(id=f"s{i}", employee_id="emp-1", date=date(2024, 1, 1) + timedelta(days=i),
              hours_worked=float(h), start_time="09:00")
        for i, h in enumerate(hours)
    ]


# =============================================================================
# LABOR COSTS
# =============================================================================

class TestOvertimeSplit:
    """Regular/overtime attribution per employee per ISO week"""

    def test_45_hour_week(self, cook, week_45_hours):
        summary = le.calculate_labor_costs([cook], week_45_hours, date(2024, 1, 1), date(2024, 1, 7))

        assert summary.regular_hours == pytest.approx(40)
        assert summary.overtime_hours == pytest.approx(5)
        assert summary.total_wages == pytest.approx(950)
        assert summary.employer_taxes == pytest.approx(97.375)
        assert summary.benefits == pytest.approx(142.5)
        assert summary.total_labor_cost == pytest.approx(1189.875)

    def test_every_shift_splits_exactly(self, cook, week_45_hours):
        summary = le.calculate_labor_costs([cook], week_45_hours, date(2024, 1, 1), date(2024, 1, 7))

        cumulative = 0.0
        for row in summary.shift_costs:
            cumulative += row.hours
            assert row.regular_hours + row.overtime_hours == pytest.approx(row.hours)
            assert row.overtime_hours == pytest.approx(max(0.0, min(row.hours, cumulative - 40)))

    def test_input_order_does_not_change_result(self, cook, week_45_hours):
        start, end = date(2024, 1, 1), date(2024, 1, 7)
        ordered = le.calculate_labor_costs([cook], week_45_hours, start, end)
        reversed_ = le.calculate_labor_costs([cook], list(reversed(week_45_hours)), start, end)

        assert reversed_.to_dict() == ordered.to_dict()
        assert reversed_.shift_costs[-1].shift_id == "s5"
        assert reversed_.shift_costs[-1].overtime_hours == pytest.approx(5)

    def test_same_day_shifts_ordered_by_start_time(self, cook):
        shifts = [
            Shift(id=f"d{i}", employee_id="emp-1", date=date(2024, 1, 1) + timedelta(days=i),
                  hours_worked=9.0, start_time="09:00")
            for i in range(4)
        ]
        # Listed afternoon first; the morning shift still counts first
        shifts += [
            Shift(id="late", employee_id="emp-1", date=date(2024, 1, 5), hours_worked=4.0, start_time="14:00"),
            Shift(id="early", employee_id="emp-1", date=date(2024, 1, 5), hours_worked=4.0, start_time="08:00"),
        ]
        summary = le.calculate_labor_costs([cook], shifts, date(2024, 1, 1), date(2024, 1, 7))
        by_id = {row.shift_id: row for row in summary.shift_costs}

        assert by_id["early"].overtime_hours == pytest.approx(0)
        assert by_id["late"].overtime_hours == pytest.approx(4)

    def test_unpadded_start_time_sorts_by_clock(self, cook):
        shifts = [
            Shift(id=f"d{i}", employee_id="emp-1", date=date(2024, 1, 1) + timedelta(days=i),
                  hours_worked=9.0, start_time="09:00")
            for i in range(4)
        ]
        # "9:00" sorts after "13:00" as text
        shifts += [
            Shift(id="afternoon", employee_id="emp-1", date=date(2024, 1, 5), hours_worked=4.0, start_time="13:00"),
            Shift(id="morning", employee_id="emp-1", date=date(2024, 1, 5), hours_worked=4.0, start_time="9:00"),
        ]
        summary = le.calculate_labor_costs([cook], shifts, date(2024, 1, 1), date(2024, 1, 7))
        by_id = {row.shift_id: row for row in summary.shift_costs}

        assert by_id["morning"].overtime_hours == pytest.approx(0)
        assert by_id["afternoon"].overtime_hours == pytest.approx(4)

    @pytest.mark.parametrize("value,expected", [
        ("09:00", 540), ("9:00", 540), ("13:30", 810), ("07:15:00", 435),
    ])
    def test_start_minutes(self, value, expected):
        assert le.start_minutes(value) == expected

    @pytest.mark.parametrize("value", ["", "noon", "9", "9:5"])
    def test_start_minutes_unreadable(self, value):
        assert math.isnan(le.start_minutes(value))

    def test_overtime_resets_each_iso_week(self, cook):
        # 30h in the week of Jan 1 and 30h in the week of Jan 8
        days = [date(2024, 1, 2), date(2024, 1, 4), date(2024, 1, 8), date(2024, 1, 10)]
        shifts = [
            Shift(id=f"w{i}", employee_id="emp-1", date=d, hours_worked=15.0)
            for i, d in enumerate(days)
        ]
        summary = le.calculate_labor_costs([cook], shifts, date(2024, 1, 1), date(2024, 1, 14))

        assert {row.iso_week for row in summary.shift_costs} == {"2024-W01", "2024-W02"}
        assert summary.overtime_hours == pytest.approx(0)
        assert summary.total_wages == pytest.approx(60 * 20)

    def test_overtime_is_per_employee(self, cook):
        helper = Employee(id="emp-2", hourly_rate=15.0, position="Cashier")
        shifts = [
            Shift(id=f"{emp}-{i}", employee_id=emp, date=date(2024, 1, 1) + timedelta(days=i),
                  hours_worked=7.0)
            for emp in ("emp-1", "emp-2") for i in range(5)
        ]
        summary = le.calculate_labor_costs([cook, helper], shifts, date(2024, 1, 1), date(2024, 1, 7))

        assert summary.overtime_hours == pytest.approx(0)
        assert summary.cost_by_employee == pytest.approx({"emp-1": 700, "emp-2": 525})
        assert summary.cost_by_position == pytest.approx({"Cashier": 525, "Cook": 700})

    def test_custom_threshold_via_config(self, cook, week_45_hours):
        config = replace(CONFIG, overtime_threshold_hours=44.0)
        summary = le.calculate_labor_costs(
            [cook], week_45_hours, date(2024, 1, 1), date(2024, 1, 7), config=config
        )
        assert summary.overtime_hours == pytest.approx(1)


class TestPeriodNormalisation:

    def test_two_week_period(self, cook):
        shifts = [Shift(id="s1", employee_id="emp-1", date=date(2024, 1, 3), hours_worked=10.0)]
        summary = le.calculate_labor_costs([cook], shifts, date(2024, 1, 1), date(2024, 1, 15))

        assert summary.days_in_period == 14
        assert summary.total_labor_cost == pytest.approx(250.5)
        assert summary.total_weekly_cost == pytest.approx(125.25)
        assert summary.total_monthly_cost == pytest.approx(125.25 * 4.33)
        assert summary.total_yearly_cost == pytest.approx(125.25 * 52)
        assert summary.total_weekly_hours == pytest.approx(5)
        assert summary.average_hourly_rate == pytest.approx(20)
        assert summary.labor_cost_per_hour == pytest.approx(25.05)

    def test_same_day_period_counts_as_one_day(self, cook):
        shifts = [Shift(id="s1", employee_id="emp-1", date=date(2024, 1, 3), hours_worked=7.0)]
        summary = le.calculate_labor_costs([cook], shifts, date(2024, 1, 3), date(2024, 1, 3))

        assert summary.days_in_period == 1
        assert summary.total_hours == pytest.approx(7)

    def test_datetime_end_bound_counts_partial_day(self, cook):
        shifts = [
            Shift(id=f"s{i}", employee_id="emp-1", date=date(2024, 1, 1) + timedelta(days=i), hours_worked=8.0)
            for i in range(7)
        ]
        summary = le.calculate_labor_costs(
            [cook], shifts, datetime(2024, 1, 1), datetime(2024, 1, 7, 23, 59)
        )

        assert summary.days_in_period == 7
        assert summary.total_hours == pytest.approx(56)
        assert summary.total_weekly_hours == pytest.approx(56)
        assert summary.total_weekly_cost == pytest.approx(summary.total_labor_cost)

    @pytest.mark.parametrize("start,end,days", [
        (date(2024, 1, 1), date(2024, 1, 8), 7),
        (datetime(2024, 1, 1, 6, 0), datetime(2024, 1, 1, 18, 0), 1),
        (datetime(2024, 1, 1), datetime(2024, 1, 3, 0, 1), 3),
    ])
    def test_days_between(self, start, end, days):
        assert le.days_between(start, end) == days

    def test_timezone_aware_bounds(self, cook, week_45_hours):
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        end = datetime(2024, 1, 7, tzinfo=timezone.utc)
        summary = le.calculate_labor_costs([cook], week_45_hours, start, end)

        assert summary.days_in_period == 6
        assert summary.total_hours == pytest.approx(45)
        assert summary.period_end == date(2024, 1, 7)

    def test_shifts_outside_period_ignored(self, cook, week_45_hours):
        summary = le.calculate_labor_costs([cook], week_45_hours, date(2024, 1, 1), date(2024, 1, 3))
        assert summary.total_hours == pytest.approx(24)
        assert summary.overtime_hours == pytest.approx(0)

    def test_no_shifts_gives_zeroes(self, cook):
        summary = le.calculate_labor_costs([cook], [], date(2024, 1, 1), date(2024, 1, 7))
        assert summary.total_labor_cost == 0
        assert summary.average_hourly_rate == 0
        assert summary.to_frame().empty


class TestDegradedInput:

    def test_unknown_employee_skipped(self, cook, week_45_hours):
        stray = Shift(id="x", employee_id="ghost", date=date(2024, 1, 2), hours_worked=6.0)
        summary = le.calculate_labor_costs([cook], week_45_hours + [stray], date(2024, 1, 1), date(2024, 1, 7))

        assert summary.skipped_shifts == 1
        assert summary.total_hours == pytest.approx(45)

    def test_negative_hours_rejected(self, cook):
        bad = [Shift(id="s1", employee_id="emp-1", date=date(2024, 1, 2), hours_worked=-3.0)]
        with pytest.raises(InvalidInputError, match="negative hours_worked"):
            le.calculate_labor_costs([cook], bad, date(2024, 1, 1), date(2024, 1, 7))

    def test_period_end_before_start_rejected(self, cook):
        with pytest.raises(InvalidInputError):
            le.calculate_labor_costs([cook], [], date(2024, 1, 7), date(2024, 1, 1))

    def test_repeat_calls_identical(self, cook, week_45_hours):
        a = le.calculate_labor_costs([cook], week_45_hours, date(2024, 1, 1), date(2024, 1, 7))
        b = le.calculate_labor_costs([cook], week_45_hours, date(2024, 1, 1), date(2024, 1, 7))
        assert a.to_dict() == b.to_dict()


# =============================================================================
# EFFICIENCY / INSIGHTS
# =============================================================================

def _summary(**overrides):
    base = dict(
        period_start=date(2024, 1, 1),
        period_end=date(2024, 1, 8),
        days_in_period=7,
        total_weekly_hours=20.0,
        total_weekly_cost=500.0,
        cost_by_employee={"a": 300.0, "b": 200.0},
        regular_hours=20.0,
        average_hourly_rate=18.0,
    )
    base.update(overrides)
    return LaborCostSummary(**base)


class TestLaborEfficiency:

    def test_metrics(self):
        metrics = le.calculate_labor_efficiency(_summary(), total_revenue=2000, total_orders=100, total_sales=1000)

        assert metrics.sales_per_labor_hour == pytest.approx(50)
        assert metrics.labor_cost_percentage == pytest.approx(25)
        assert metrics.average_orders_per_employee == pytest.approx(50)
        assert metrics.productivity_score == pytest.approx(20)
        assert metrics.peak_hour_coverage == 0

    @pytest.mark.parametrize("revenue,orders,sales", [
        (0, 100, 1000),
        (2000, 100, 0),
    ])
    def test_zero_operands_give_zero_score(self, revenue, orders, sales):
        metrics = le.calculate_labor_efficiency(_summary(), revenue, orders, sales)
        assert metrics.productivity_score == 0

    def test_no_hours_or_employees(self):
        empty = _summary(total_weekly_hours=0.0, cost_by_employee={})
        metrics = le.calculate_labor_efficiency(empty, 1000, 50, 1000)
        assert metrics.sales_per_labor_hour == 0
        assert metrics.average_orders_per_employee == 0


class TestLaborInsights:

    def test_all_flags_raised(self):
        summary = _summary(overtime_hours=5.0, regular_hours=20.0, average_hourly_rate=14.0)
        efficiency = LaborEfficiencyMetrics(30.0, 40.0, 10.0, 0.0, 7.5)
        result = le.generate_labor_insights(summary, efficiency)

        assert len(result["insights"]) == 4
        assert len(result["recommendations"]) == 4
        assert result["status"] == "needs_attention"
        assert result["score"] == 7.5

    def test_lean_labor_is_good(self):
        efficiency = LaborEfficiencyMetrics(60.0, 20.0, 10.0, 0.0, 30.0)
        result = le.generate_labor_insights(_summary(), efficiency)

        assert result["status"] == "good"
        assert result["insights"] == ["Labor costs are well below industry average - good efficiency!"]
        assert result["recommendations"] == []


def test_optimal_staffing():
    result = le.calculate_optimal_staffing(20)
    assert result["orders_per_shift"] == 160
    assert result["recommended_staffing"] == 2
    assert result["utilization_rate"] == pytest.approx(62.5)


# =============================================================================
# PROJECTION
# =============================================================================

class TestLaborProjection:

    def test_projection_with_overtime(self):
        crew = [
            Employee(id="a", hourly_rate=15.0, position="Cashier"),
            Employee(id="b", hourly_rate=25.0, position="Cook"),
        ]
        projection = le.project_labor_costs(crew, 50, 4000, as_of=date(2024, 3, 1))

        assert projection.average_wage == pytest.approx(20)
        assert projection.projected_labor_cost == pytest.approx(1000)
        assert projection.projected_overtime_cost == pytest.approx(100)
        assert projection.projected_benefits_cost == pytest.approx(150)
        assert projection.total_projected_cost == pytest.approx(1250)
        assert projection.labor_cost_percentage == pytest.approx(31.25)
        assert projection.average_hours_per_employee == pytest.approx(25)
        assert projection.target_labor_cost == pytest.approx(1000)
        assert projection.max_affordable_hours == pytest.approx(1000 / 26)
        assert projection.name == "Labor Projection 2024-03-01"

    def test_no_employees_uses_default_wage(self):
        projection = le.project_labor_costs([], 10, 0)
        assert projection.average_wage == 15
        assert projection.labor_cost_percentage == 0
        assert projection.projected_overtime_cost == 0


# =============================================================================
# LABOR EXPENSE INTEGRATION
# =============================================================================

class TestLaborExpenses:

    def test_labor_expense_record(self, cook, week_45_hours):
        expense = le.create_labor_expense([cook], week_45_hours, date(2024, 1, 1), date(2024, 1, 8))
        summary = le.calculate_labor_costs([cook], week_45_hours, date(2024, 1, 1), date(2024, 1, 8))

        assert expense.name == "Labor Costs (Auto-calculated)"
        assert expense.type == "variable"
        assert expense.frequency == "monthly"
        assert expense.amount == pytest.approx(summary.total_monthly_cost)
        assert "Employees: 1" in expense.description

    def test_employee_expenses(self, cook, week_45_hours):
        expenses = le.create_employee_expenses([cook], week_45_hours, date(2024, 1, 1), date(2024, 1, 8))

        assert len(expenses) == 1
        assert expenses[0].name == "Ana Diaz - Labor"
        assert expenses[0].amount == pytest.approx(950 * 4.33)

    @pytest.mark.parametrize("cost,expected", [
        (3000, "reduce"),
        (2000, "increase"),
        (2600, "optimal"),
    ])
    def test_optimization_suggestion(self, cost, expected):
        result = le.suggest_labor_optimization(10000, cost)
        assert result["suggestions"][0]["type"] == expected
        assert result["current_percentage"] == pytest.approx(cost / 100)

    def test_labor_percentage_zero_revenue(self):
        assert le.calculate_labor_percentage(500, 0) == 0

    def test_schedule_recommendations(self):
        plan = le.generate_schedule_recommendations(7000, 10)

        assert plan["minimum_staff"] == 2
        assert plan["peak_staff"] == 4
        assert plan["total_weekly_hours"] == 200
        saturday = plan["schedule"][5]
        assert saturday["day"] == "Saturday"
        assert saturday["expected_orders"] == 130
        assert saturday["recommended_staff"] == 4
