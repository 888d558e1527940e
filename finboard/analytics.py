"""Aggregations behind the dashboard and analytics views.

Everything here is a pure reduction over an in-memory sequence of
Transaction objects. Functions that depend on "now" accept an optional
`today` so callers (and tests) can pin the calendar.
"""
import math
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from finboard.domain import EXPENSE, INCOME, Budget, Insight, Transaction
from finboard.filters import by_month, newest_first, sort_key
from finboard.functional import pipe
from finboard.lazy import category_totals, iter_transactions, lazy_top_categories
from finboard.transforms import expense_transactions, income_transactions, total_amount

MONTHS_SHOWN = 6
WEEKS_SHOWN = 4


def round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def percent(part: float, whole: float) -> float:
    return part / whole * 100 if whole > 0 else 0.0


def month_key(d: date) -> str:
    return d.strftime("%Y-%m")


def shift_month(d: date, months: int) -> date:
    """First day of the month `months` away from d's month."""
    index = d.year * 12 + (d.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def month_label(key: str) -> str:
    year, month = key.split("-")
    return date(int(year), int(month), 1).strftime("%b %Y")


def _parse_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat((value or "")[:10])
    except ValueError:
        return None


def _month_of(t: Transaction) -> Optional[str]:
    d = _parse_date(t.date)
    return month_key(d) if d else None


def _month_totals(trans: Iterable[Transaction], key: str) -> Dict[str, float]:
    in_month = tuple(iter_transactions(trans, by_month(key)))
    return {
        "income": total_amount(income_transactions(in_month)),
        "expenses": total_amount(expense_transactions(in_month)),
    }


def only_income_and_expense(trans: Iterable[Transaction]) -> tuple:
    return tuple(t for t in trans if t.type in (INCOME, EXPENSE))


# --- dashboard --------------------------------------------------------------

def _empty_dashboard() -> dict:
    return {
        "total_income": 0.0,
        "total_expenses": 0.0,
        "net_savings": 0.0,
        "savings_rate": 0.0,
        "monthly_breakdown": [],
        "category_spending": [],
        "recent_transactions": [],
        "goal_progress": [],
    }


def recent_month_keys(trans: Sequence[Transaction], today: Optional[date] = None) -> List[str]:
    keys = sorted({_month_of(t) for t in trans} - {None})[-MONTHS_SHOWN:]
    if keys:
        return keys
    today = today or date.today()
    return [month_key(shift_month(today, -i)) for i in range(MONTHS_SHOWN - 1, -1, -1)]


def monthly_breakdown(trans: Sequence[Transaction], today: Optional[date] = None) -> List[dict]:
    keys = recent_month_keys(trans, today)
    rows = {k: {"month": month_label(k), "key": k, "income": 0.0, "expenses": 0.0, "transactions": 0} for k in keys}
    for t in trans:
        row = rows.get(_month_of(t))
        if row is None:
            continue
        if t.type == INCOME:
            row["income"] += t.amount or 0
        elif t.type == EXPENSE:
            row["expenses"] += t.amount or 0
        row["transactions"] += 1
    return [rows[k] for k in keys]


def goal_progress(trans: Iterable[Transaction], limit: int = 3) -> List[dict]:
    goals: Dict[str, dict] = {}
    for t in trans:
        if not t.goal.is_set():
            continue
        entry = goals.setdefault(t.goal.name, {
            "name": t.goal.name,
            "target": t.goal.target_amount,
            "duration": t.goal.duration_months,
            "saved": 0.0,
        })
        if t.type == INCOME:
            entry["saved"] += t.amount or 0
    return list(goals.values())[:limit]


def calculate_dashboard_stats(transactions: Sequence[Transaction], today: Optional[date] = None) -> dict:
    if not transactions:
        return _empty_dashboard()

    valid = only_income_and_expense(transactions)
    income = total_amount(income_transactions(valid))
    expenses = total_amount(expense_transactions(valid))
    net = income - expenses

    return {
        "total_income": income,
        "total_expenses": expenses,
        "net_savings": net,
        "savings_rate": percent(net, income),
        "monthly_breakdown": monthly_breakdown(valid, today),
        "category_spending": [
            {"category": c, "amount": a} for c, a in lazy_top_categories(valid, 6)
        ],
        "recent_transactions": newest_first(valid)[:5],
        "goal_progress": goal_progress(valid),
    }


def savings_rate_label(rate: float) -> str:
    if rate >= 20:
        return "Excellent!"
    if rate >= 10:
        return "Good"
    return "Needs improvement"


def income_expense_split(income: float, expenses: float) -> dict:
    whole = income + expenses
    return {
        "income_share": round_half_up(percent(income, whole), 1),
        "expense_share": round_half_up(percent(expenses, whole), 1),
        "net": income - expenses,
        "label": "Surplus" if income - expenses >= 0 else "Deficit",
    }


# --- financial metrics -------------------------------------------------------

def get_weekly_breakdown(transactions: Iterable[Transaction], today: Optional[date] = None) -> Dict[str, dict]:
    """Last four Sunday-to-Saturday weeks, oldest first, the current week being "Week 4"."""
    today = today or date.today()
    days_since_sunday = (today.weekday() + 1) % 7
    dated = [(t, _parse_date(t.date)) for t in transactions]

    weeks = {}
    for i in range(WEEKS_SHOWN - 1, -1, -1):
        start = today - timedelta(days=i * 7 + days_since_sunday)
        end = start + timedelta(days=6)
        in_week = [t for t, d in dated if d is not None and start <= d <= end]
        weeks[f"Week {WEEKS_SHOWN - i}"] = {
            "start": start.isoformat(),
            "end": end.isoformat(),
            "income": total_amount(income_transactions(in_week)),
            "expenses": total_amount(expense_transactions(in_week)),
            "transactions": len(in_week),
        }
    return weeks


def get_category_trends(transactions: Iterable[Transaction], today: Optional[date] = None) -> Dict[str, dict]:
    today = today or date.today()
    this_month = month_key(today)
    last_month = month_key(shift_month(today, -1))

    current: Dict[str, float] = defaultdict(float)
    previous: Dict[str, float] = defaultdict(float)
    for t in expense_transactions(tuple(transactions)):
        category = t.category or "Other"
        if t.date.startswith(this_month):
            current[category] += t.amount or 0
        elif t.date.startswith(last_month):
            previous[category] += t.amount or 0

    trends = {}
    for category in list(current) + [c for c in previous if c not in current]:
        now, before = current.get(category, 0.0), previous.get(category, 0.0)
        if before > 0:
            change = (now - before) / before * 100
        else:
            change = 100.0 if now > 0 else 0.0
        trends[category] = {"current": now, "last": before, "change": round_half_up(change, 1)}
    return trends


def top_category_trends(trends: Dict[str, dict], k: int = 6) -> List[tuple]:
    return sorted(trends.items(), key=lambda item: item[1]["current"], reverse=True)[:k]


def trend_direction(change: float) -> str:
    if change > 0:
        return "up"
    if change < 0:
        return "down"
    return "flat"


def calculate_financial_metrics(transactions: Sequence[Transaction], today: Optional[date] = None) -> dict:
    today = today or date.today()
    current = _month_totals(transactions, month_key(today))
    previous = _month_totals(transactions, month_key(shift_month(today, -1)))
    savings = current["income"] - current["expenses"]

    return {
        "current_month": {
            "income": current["income"],
            "expenses": current["expenses"],
            "savings": savings,
            "savings_rate": percent(savings, current["income"]),
        },
        "changes": {
            "income": percent(current["income"] - previous["income"], previous["income"]),
            "expenses": percent(current["expenses"] - previous["expenses"], previous["expenses"]),
        },
        "weekly_data": get_weekly_breakdown(transactions, today),
        "category_trends": get_category_trends(transactions, today),
    }


# --- budgets and goals -------------------------------------------------------

def calculate_budget_spent(transactions: Iterable[Transaction], category: str, today: Optional[date] = None) -> float:
    this_month = month_key(today or date.today())
    return pipe(
        transactions,
        lambda ts: iter_transactions(ts, lambda t: t.type == EXPENSE and t.category == category),
        lambda ts: iter_transactions(ts, by_month(this_month)),
        total_amount,
    )


def budget_status(percentage: float) -> str:
    if percentage > 100:
        return "over"
    if percentage > 80:
        return "warning"
    return "good"


def get_budget_analysis(
    transactions: Iterable[Transaction],
    budget_limits: Optional[Dict[str, float]] = None,
    today: Optional[date] = None,
) -> Dict[str, dict]:
    budget_limits = budget_limits or {}
    this_month = month_key(today or date.today())
    spending = category_totals(iter_transactions(transactions, by_month(this_month)))

    analysis = {}
    for category, spent in spending.items():
        limit = budget_limits.get(category, 0) or 0
        percentage = percent(spent, limit)
        analysis[category] = {
            "spent": spent,
            "budget": limit,
            "remaining": limit - spent,
            "percentage": round_half_up(percentage, 1),
            "status": budget_status(percentage),
        }
    return analysis


def budget_usage(budget: Budget, spent: float) -> dict:
    """Usage of one budget; `percentage` is uncapped, `bar` is capped for display."""
    percentage = percent(spent, budget.monthly_limit)
    if percentage > 100:
        status = "Over Budget"
    elif percentage >= budget.alert_threshold:
        status = "Near Limit"
    else:
        status = "On Track"
    return {
        "spent": spent,
        "limit": budget.monthly_limit,
        "remaining": budget.monthly_limit - spent,
        "percentage": percentage,
        "bar": min(percentage, 100.0),
        "status": status,
    }


def goal_progress_percentage(current: float, target: float) -> float:
    return min(percent(current, target), 100.0)


# --- insights ----------------------------------------------------------------

def get_spending_insights(transactions: Iterable[Transaction]) -> List[Insight]:
    transactions = tuple(transactions)
    expenses = expense_transactions(transactions)
    insights = []

    daily: Dict[str, float] = defaultdict(float)
    for t in expenses:
        daily[t.date] += t.amount or 0
    if daily:
        avg_daily = sum(daily.values()) / len(daily)
        high_days = [d for d, amount in daily.items() if amount > avg_daily * 2]
        if high_days:
            insights.append(Insight(
                type="warning",
                title="High Spending Days Detected",
                message=f"You had {len(high_days)} days with spending above ₹{int(round_half_up(avg_daily * 2))}",
            ))

    totals = category_totals(expenses)
    total_expenses = sum(totals.values())
    dominant, dominant_amount = "", 0.0
    for category, amount in totals.items():
        if amount > dominant_amount:
            dominant, dominant_amount = category, amount
    if dominant_amount > total_expenses * 0.4:
        insights.append(Insight(
            type="info",
            title="Category Concentration",
            message=f"{dominant} accounts for {int(round_half_up(dominant_amount / total_expenses * 100))}% of your expenses",
        ))

    total_income = total_amount(income_transactions(transactions))
    rate = percent(total_income - total_expenses, total_income)
    if rate < 10:
        insights.append(Insight(
            type="warning",
            title="Low Savings Rate",
            message=f"Your savings rate is {int(round_half_up(rate))}%. Consider reducing expenses or increasing income.",
        ))
    elif rate > 30:
        insights.append(Insight(
            type="success",
            title="Excellent Savings Rate",
            message=f"Great job! Your savings rate of {int(round_half_up(rate))}% is above recommended levels.",
        ))
    return insights


# --- summary tables ----------------------------------------------------------

def top_spending_categories(transactions: Iterable[Transaction], k: int = 5) -> List[dict]:
    transactions = tuple(transactions)
    counts: Dict[str, int] = defaultdict(int)
    for t in expense_transactions(transactions):
        counts[t.category or "Other"] += 1
    return [
        {"category": c, "amount": a, "transactions": counts[c]}
        for c, a in lazy_top_categories(transactions, k)
    ]


def largest_transactions(transactions: Iterable[Transaction], k: int = 5) -> List[Transaction]:
    return sorted(transactions, key=lambda t: t.amount or 0, reverse=True)[:k]


def transaction_statistics(transactions: Sequence[Transaction]) -> dict:
    count = len(transactions)
    incomes = len(income_transactions(tuple(transactions)))
    expenses = len(expense_transactions(tuple(transactions)))
    total = total_amount(transactions)
    return {
        "total": count,
        "income_count": incomes,
        "expense_count": expenses,
        "income_share": percent(incomes, count),
        "expense_share": percent(expenses, count),
        "categories": len({t.category for t in transactions}),
        "average_amount": round_half_up(total / count) if count else 0,
        "largest_amount": max((t.amount or 0 for t in transactions), default=0),
        "daily_average": round_half_up(total / 30) if count else 0,
    }


def monthly_totals(transactions: Iterable[Transaction]) -> Dict[str, dict]:
    """{"YYYY-MM": {"income": .., "expenses": ..}} in calendar order."""
    months: Dict[str, dict] = {}
    for t in sorted(transactions, key=sort_key):
        key = _month_of(t)
        if key is None:
            continue
        row = months.setdefault(key, {"income": 0.0, "expenses": 0.0})
        if t.type == INCOME:
            row["income"] += t.amount or 0
        elif t.type == EXPENSE:
            row["expenses"] += t.amount or 0
    return months


# --- chart data --------------------------------------------------------------

def format_monthly_trend(monthly_data: Dict[str, dict]) -> List[dict]:
    return [
        {
            "month": month[-2:],
            "income": data["income"],
            "expenses": data["expenses"],
            "savings": data["income"] - data["expenses"],
        }
        for month, data in monthly_data.items()
        if data["income"] > 0 or data["expenses"] > 0
    ]


def format_category_pie(category_breakdown: Dict[str, float], k: int = 8) -> List[dict]:
    ordered = sorted(category_breakdown.items(), key=lambda item: item[1], reverse=True)
    return [{"name": c, "value": v} for c, v in ordered[:k]]


def format_weekly_comparison(weekly_data: Dict[str, dict]) -> List[dict]:
    return [
        {"week": week, "income": d["income"], "expenses": d["expenses"], "net": d["income"] - d["expenses"]}
        for week, d in weekly_data.items()
    ]
