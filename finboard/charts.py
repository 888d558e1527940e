from typing import Dict, List

import plotly.express as px
import plotly.graph_objects as go

from finboard.analytics import format_category_pie, format_monthly_trend, format_weekly_comparison

TEMPLATE = "plotly_white"
INCOME_COLOR = "#10b981"
EXPENSE_COLOR = "#ef4444"


def monthly_trend_figure(monthly_data: Dict[str, dict]) -> go.Figure:
    rows = format_monthly_trend(monthly_data)
    x = [r["month"] for r in rows]
    fig = go.Figure()
    fig.add_trace(go.Scatter(x=x, y=[r["income"] for r in rows], mode="lines+markers", name="Income", line=dict(color=INCOME_COLOR)))
    fig.add_trace(go.Scatter(x=x, y=[r["expenses"] for r in rows], mode="lines+markers", name="Expenses", line=dict(color=EXPENSE_COLOR)))
    fig.add_trace(go.Scatter(x=x, y=[r["savings"] for r in rows], mode="lines+markers", name="Savings"))
    fig.update_layout(template=TEMPLATE, title="Monthly Trend", margin=dict(t=40, b=10, l=10, r=10))
    return fig


def category_pie_figure(category_breakdown: Dict[str, float]) -> go.Figure:
    rows = format_category_pie(category_breakdown)
    fig = px.pie(
        values=[r["value"] for r in rows],
        names=[r["name"] for r in rows],
        title="Spending by Category",
        template=TEMPLATE,
    )
    return fig


def weekly_comparison_figure(weekly_data: Dict[str, dict]) -> go.Figure:
    rows = format_weekly_comparison(weekly_data)
    weeks = [r["week"] for r in rows]
    fig = go.Figure()
    fig.add_trace(go.Bar(x=weeks, y=[r["income"] for r in rows], name="Income", marker_color=INCOME_COLOR))
    fig.add_trace(go.Bar(x=weeks, y=[r["expenses"] for r in rows], name="Expenses", marker_color=EXPENSE_COLOR))
    fig.update_layout(template=TEMPLATE, barmode="group", title="Weekly Comparison")
    return fig


def income_expense_figure(total_income: float, total_expenses: float) -> go.Figure:
    fig = go.Figure(go.Pie(
        labels=["Income", "Expenses"],
        values=[total_income, total_expenses],
        marker=dict(colors=[INCOME_COLOR, EXPENSE_COLOR]),
        textinfo="label+percent",
    ))
    fig.update_layout(template=TEMPLATE, title="Income vs Expense Distribution")
    return fig


def dashboard_figures(stats: dict, metrics: dict, monthly_data: Dict[str, dict]) -> List[go.Figure]:
    categories = {row["category"]: row["amount"] for row in stats["category_spending"]}
    return [
        income_expense_figure(stats["total_income"], stats["total_expenses"]),
        monthly_trend_figure(monthly_data),
        category_pie_figure(categories),
        weekly_comparison_figure(metrics["weekly_data"]),
    ]
