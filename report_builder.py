"""
Summary Block Builder
=====================

Renders the results of ``run_full_analysis`` as one plain-text block with
markdown tables, ready to paste into a report or a chat assistant.
"""

import pandas as pd

from engine_config import CONFIG, EngineConfig


def to_markdown_table(df: pd.DataFrame, cols: list, index: bool = False) -> str:
    if df.empty:
        return pd.DataFrame(columns=cols).to_markdown(index=index)
    return df[cols].to_markdown(index=index, floatfmt=".2f")


def format_labor_by_position_table(labor_summary) -> str:
    """Wages by position as markdown table."""
    if not labor_summary.cost_by_position:
        return "No labor data available."
    df = pd.DataFrame(
        sorted(labor_summary.cost_by_position.items(), key=lambda kv: kv[1], reverse=True),
        columns=["position", "wages"],
    )
    total = df["wages"].sum()
    df["share_pct"] = df["wages"] / total * 100 if total > 0 else 0.0
    return to_markdown_table(df, ["position", "wages", "share_pct"])


def format_top_waste_items_table(waste_analytics, limit: int = 10) -> str:
    """Highest-value waste items as markdown table."""
    df = waste_analytics.to_frame()
    if df.empty:
        return "No waste data available."
    top = df[df["waste_value"] > 0].sort_values("waste_value", ascending=False).head(limit)
    if top.empty:
        return "No disposed inventory recorded."
    return to_markdown_table(
        top, ["item_name", "category", "disposed_quantity", "waste_rate", "waste_value"]
    )


def format_daily_break_even_table(break_even) -> str:
    by_day = break_even.daily_break_even.by_day
    if not by_day:
        return "No operating days configured."
    multipliers = break_even.operating_schedule.get("day_multipliers", {})
    df = pd.DataFrame(
        [{"day": day.capitalize(), "multiplier": multipliers.get(day, 1.0), "orders_needed": orders}
         for day, orders in by_day.items()]
    )
    return to_markdown_table(df, ["day", "multiplier", "orders_needed"])


def format_recommendations(waste_analytics, labor_insights: dict) -> str:
    lines = [f"- [{r.priority}] {r.description}" for r in waste_analytics.recommendations]
    lines.extend(f"- {r}" for r in labor_insights.get("recommendations", []))
    return "\n".join(lines) or "- (None detected)"


def build_summary_block(results: dict, config: EngineConfig = CONFIG) -> str:
    """Plain-text summary of a full analysis. Invalid runs render their validation errors."""
    currency = config.currency

    if "error" in results:
        errors = "\n".join(f"- {e}" for e in results["validation"]["errors"])
        return f"ANALYSIS_FAILED: {results['error']}\n\nERRORS:\n{errors}"

    labor = results["labor_summary"]
    efficiency = results["labor_efficiency"]
    waste = results["waste_analytics"]
    expenses = results["expense_summary"]
    break_even = results["break_even"]
    sales = results["sales"]

    warnings = results["validation"]["warnings"]
    data_quality = "\n".join(f"- {w}" for w in warnings) or "- No data quality issues detected."

    insights = "\n".join(f"- {i}" for i in results["labor_insights"]["insights"]) or "- (None)"

    block = f"""
BUSINESS_NAME: {results.get('business_name', '')}
LABOR_PERIOD: {labor.period_start} to {labor.period_end} ({labor.days_in_period} days)

TOPLINE_METRICS:
- Revenue in period: {currency}{sales['period_revenue']:,.2f} ({sales['period_orders']} completed orders)
- Monthly recurring expenses: {currency}{expenses.monthly_total:,.2f}
- Monthly labor cost: {currency}{labor.total_monthly_cost:,.2f}
- Monthly waste expense: {currency}{waste.monthly_waste_expense:,.2f}
- Break-even: {break_even.monthly_break_even:,} orders/month, {break_even.daily_break_even.total} orders/day

LABOR:
- Hours: {labor.total_hours:,.1f} ({labor.overtime_hours:,.1f} overtime)
- Total labor cost: {currency}{labor.total_labor_cost:,.2f} (wages {currency}{labor.total_wages:,.2f})
- Labor cost % of revenue: {efficiency.labor_cost_percentage:.1f}%
- Sales per labor hour: {currency}{efficiency.sales_per_labor_hour:,.2f}
- Status: {results['labor_insights']['status']}

LABOR_BY_POSITION_TABLE (markdown):
{format_labor_by_position_table(labor)}

LABOR_INSIGHTS:
{insights}

WASTE ({waste.timeframe}):
- Total waste value: {currency}{waste.total_waste_value:,.2f}
- Average waste rate: {waste.average_waste_percentage:.1f}%
- Projected annual waste: {currency}{waste.projected_annual_waste:,.2f}

TOP_WASTE_ITEMS_TABLE (markdown):
{format_top_waste_items_table(waste)}

BREAK_EVEN:
- Average order value: {currency}{break_even.avg_order_value:,.2f} ({break_even.order_value_source})
- Average profit margin: {break_even.avg_profit_margin:.1f}%
- Season: {break_even.season} (x{break_even.seasonal_multiplier:.2f})
- Profit per order: {currency}{break_even.profit_per_order:,.2f}

DAILY_BREAK_EVEN_TABLE (markdown):
{format_daily_break_even_table(break_even)}

RECOMMENDATIONS:
{format_recommendations(waste, results['labor_insights'])}

DATA_QUALITY_SUMMARY:
{data_quality}
"""
    return block.strip()
