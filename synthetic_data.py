"""
Synthetic Food Truck Generator
==============================

Builds a reproducible BusinessSnapshot for demos and integration tests:
- a small menu with ingredient recipes
- inventory lines linked to those ingredients, with disposals
- crew and shifts on the operating days (with some overtime)
- completed / cancelled orders weighted by day of week
- a typical recurring expense sheet

The same seed always produces the same snapshot.
"""

from datetime import datetime, time, timedelta
from typing import Dict, List

import numpy as np
import pandas as pd

from records import (
    BusinessSnapshot,
    Employee,
    Expense,
    FinancialSettings,
    Ingredient,
    InventoryItem,
    MenuItem,
    MenuItemIngredient,
    Order,
    OrderItem,
    Shift,
)

SYNTHETIC_DEFAULTS = {
    "business_name": "Taco Wheels",
    "as_of": "2024-07-01 09:00",
    "weeks": 4,
    "orders_per_day": 60,
    "operating_days": ["thursday", "friday", "saturday"],
    "seed": 42,
}

# (id, name, unit, cost_per_unit, category)
INGREDIENTS = [
    ("ing-tortilla", "Corn Tortilla", "pcs", 0.10, "Bakery"),
    ("ing-beef", "Ground Beef", "lb", 4.50, "Protein"),
    ("ing-chicken", "Chicken Thigh", "lb", 3.20, "Protein"),
    ("ing-cheese", "Cheddar", "lb", 3.80, "Dairy"),
    ("ing-lettuce", "Lettuce", "head", 1.20, "Produce"),
    ("ing-tomato", "Tomato", "lb", 1.60, "Produce"),
    ("ing-avocado", "Avocado", "pcs", 0.90, "Produce"),
    ("ing-rice", "Rice", "lb", 0.70, "Dry Goods"),
    ("ing-soda", "Soda Can", "pcs", 0.45, "Beverages"),
]

# (id, name, category, price, recipe {ingredient_id: qty})
MENU = [
    ("menu-beef-taco", "Beef Taco", "Tacos", 4.50,
     {"ing-tortilla": 2, "ing-beef": 0.15, "ing-cheese": 0.05, "ing-lettuce": 0.05}),
    ("menu-chicken-taco", "Chicken Taco", "Tacos", 4.25,
     {"ing-tortilla": 2, "ing-chicken": 0.15, "ing-tomato": 0.05, "ing-lettuce": 0.05}),
    ("menu-burrito", "Burrito Bowl", "Bowls", 11.00,
     {"ing-rice": 0.30, "ing-chicken": 0.25, "ing-avocado": 1, "ing-tomato": 0.10}),
    ("menu-nachos", "Loaded Nachos", "Sides", 8.00,
     {"ing-tortilla": 4, "ing-cheese": 0.15, "ing-tomato": 0.10}),
    ("menu-guac", "Guacamole Cup", "Sides", 3.50,
     {"ing-avocado": 1, "ing-tomato": 0.05}),
    ("menu-soda", "Soda", "Drinks", 2.50,
     {"ing-soda": 1}),
]

CREW = [
    ("emp-1", "Maya", "Lopez", "Owner/Cook", 22.00),
    ("emp-2", "Devon", "Reed", "Cook", 18.50),
    ("emp-3", "Sam", "Okafor", "Cashier", 15.75),
    ("emp-4", "Riley", "Chen", "Cashier", 15.00),
]

DAY_WEIGHTS = {
    "thursday": 0.9,
    "friday": 1.2,
    "saturday": 1.3,
}

EXPENSES = [
    ("Commissary Kitchen Rent", 900.0, "fixed", "monthly"),
    ("Truck Loan Payment", 650.0, "fixed", "monthly"),
    ("Insurance Premium", 2400.0, "fixed", "yearly"),
    ("Propane Refill", 45.0, "variable", "weekly"),
    ("Generator Fuel", 18.0, "variable", "daily"),
    ("POS Subscription", 69.0, "fixed", "monthly"),
    ("Health Permit", 350.0, "one_time", "one_time"),
]


def generate_synthetic_ingredients() -> List[Ingredient]:
    return [Ingredient(id=i, name=n, unit=u, cost_per_unit=c) for i, n, u, c, _ in INGREDIENTS]


def generate_synthetic_inventory(rng: np.random.Generator) -> List[InventoryItem]:
    """Inventory linked to ingredients; produce spoils most, drinks barely at all."""
    disposal_lam = {"Produce": 8, "Protein": 4, "Dairy": 3, "Bakery": 20, "Dry Goods": 1, "Beverages": 0.5}
    items = []
    for ing_id, name, unit, cost, category in INGREDIENTS:
        stock = float(rng.integers(10, 60))
        disposed = float(rng.poisson(disposal_lam[category]))
        items.append(InventoryItem(
            id=f"inv-{ing_id[4:]}",
            name=name,
            category=category,
            current_stock=stock,
            unit=unit,
            cost_per_unit=cost,
            disposed_quantity=disposed,
            ingredient_id=ing_id,
        ))
    return items


def generate_synthetic_menu() -> List[MenuItem]:
    costs = {i: c for i, _, _, c, _ in INGREDIENTS}
    menu = []
    for item_id, name, category, price, recipe in MENU:
        ingredient_cost = sum(costs[i] * q for i, q in recipe.items())
        menu.append(MenuItem(
            id=item_id,
            name=name,
            category=category,
            price=price,
            ingredients=[MenuItemIngredient(ingredient_id=i, quantity=q) for i, q in recipe.items()],
            is_available=True,
            total_ingredient_cost=round(ingredient_cost, 2),
        ))
    return menu


def generate_synthetic_crew() -> List[Employee]:
    return [
        Employee(id=i, first_name=f, last_name=l, position=p, hourly_rate=r)
        for i, f, l, p, r in CREW
    ]


def operating_dates(start: pd.Timestamp, end: pd.Timestamp, operating_days: List[str]) -> pd.DatetimeIndex:
    dates = pd.date_range(start.normalize(), end.normalize(), freq="D")
    return dates[dates.day_name().str.lower().isin(operating_days)]


def generate_synthetic_shifts(employees: List[Employee],
                              dates: pd.DatetimeIndex,
                              rng: np.random.Generator) -> List[Shift]:
    """
    The owner works every operating day plus a prep day, so weekly hours go
    past the overtime threshold; the rest of the crew works part time.
    """
    shifts = []
    counter = 1
    for day in dates:
        for emp in employees:
            if emp.id != "emp-1" and rng.random() < 0.25:
                continue
            hours = 12.0 if emp.id == "emp-1" else float(rng.choice([6.0, 7.0, 8.0]))
            start = "10:00" if emp.id in ("emp-1", "emp-2") else "11:00"
            shifts.append(Shift(
                id=f"shift-{counter}",
                employee_id=emp.id,
                date=day.date(),
                hours_worked=hours,
                start_time=start,
                role=emp.position,
            ))
            counter += 1
        if day.day_name() == "Thursday":
            prep_day = day - timedelta(days=1)
            shifts.append(Shift(
                id=f"shift-{counter}",
                employee_id="emp-1",
                date=prep_day.date(),
                hours_worked=8.0,
                start_time="08:00",
                role="Prep",
            ))
            counter += 1
    return shifts


def generate_synthetic_orders(menu: List[MenuItem],
                              dates: pd.DatetimeIndex,
                              orders_per_day: int,
                              rng: np.random.Generator) -> List[Order]:
    popularity = np.array([3.0, 2.5, 1.5, 1.2, 0.8, 2.0])
    popularity = popularity / popularity.sum()

    orders = []
    counter = 1
    for day in dates:
        weight = DAY_WEIGHTS.get(day.day_name().lower(), 1.0)
        n_orders = int(rng.poisson(orders_per_day * weight))
        for _ in range(n_orders):
            n_lines = int(rng.integers(1, 4))
            picks = rng.choice(len(menu), size=n_lines, replace=False, p=popularity)
            lines = [
                OrderItem(menu_item_id=menu[p].id, quantity=float(rng.integers(1, 3)), unit_price=menu[p].price)
                for p in picks
            ]
            minute = int(rng.integers(0, 9 * 60))
            order_time = datetime.combine(day.date(), time(11, 0)) + timedelta(minutes=minute)
            status = "cancelled" if rng.random() < 0.03 else "completed"
            orders.append(Order(
                id=f"order-{counter}",
                status=status,
                order_time=order_time,
                items=lines,
                total=round(sum(l.quantity * l.unit_price for l in lines), 2),
            ))
            counter += 1
    return orders


def generate_synthetic_expenses() -> List[Expense]:
    return [
        Expense(id=f"exp-{n}", name=name, amount=amount, type=kind, frequency=freq)
        for n, (name, amount, kind, freq) in enumerate(EXPENSES, start=1)
    ]


def generate_synthetic_truck(config: Dict = None) -> BusinessSnapshot:
    """Full synthetic snapshot; ``config`` overrides keys of SYNTHETIC_DEFAULTS."""
    cfg = dict(SYNTHETIC_DEFAULTS)
    cfg.update(config or {})

    rng = np.random.default_rng(cfg["seed"])
    as_of = pd.Timestamp(cfg["as_of"])
    period_end = (as_of - timedelta(days=1)).normalize()
    period_start = period_end - timedelta(days=7 * cfg["weeks"])

    dates = operating_dates(period_start, period_end, cfg["operating_days"])
    menu = generate_synthetic_menu()
    employees = generate_synthetic_crew()

    settings = FinancialSettings(
        day_performance_multipliers={day: w for day, w in DAY_WEIGHTS.items()},
    )

    return BusinessSnapshot(
        employees=employees,
        shifts=generate_synthetic_shifts(employees, dates, rng),
        ingredients=generate_synthetic_ingredients(),
        inventory_items=generate_synthetic_inventory(rng),
        menu_items=menu,
        orders=generate_synthetic_orders(menu, dates, cfg["orders_per_day"], rng),
        expenses=generate_synthetic_expenses(),
        settings=settings,
        operating_days=list(cfg["operating_days"]),
        period_start=period_start.date(),
        period_end=period_end.date(),
        as_of=as_of.to_pydatetime(),
        business_name=cfg["business_name"],
    )
