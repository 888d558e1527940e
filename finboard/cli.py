import argparse
import logging
import os
import sys
from dataclasses import replace
from datetime import date
from typing import List, Optional

from finboard.analytics import (
    calculate_dashboard_stats,
    calculate_financial_metrics,
    goal_progress_percentage,
    get_spending_insights,
    monthly_totals,
    savings_rate_label,
    top_category_trends,
)
from finboard.charts import dashboard_figures
from finboard.config import configure_logging, load_settings
from finboard.domain import CATEGORIES, CURRENCIES, GOAL_CATEGORIES, PRIORITIES, TRANSACTION_TYPES, Budget, Goal
from finboard.errors import FinboardError
from finboard.export import export_to_csv
from finboard.services import BudgetService, GoalService, TransactionService
from finboard.store import open_store
from finboard.transforms import new_transaction, parse_amount

logger = logging.getLogger(__name__)


def money(value: float) -> str:
    return f"₹{value:,.2f}"


def amount_arg(value: str) -> float:
    parsed = parse_amount(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="finboard", description="Personal finance tracker")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Record a transaction")
    add.add_argument("--type", choices=TRANSACTION_TYPES, default="expense")
    add.add_argument("--amount", type=amount_arg, required=True)
    add.add_argument("--category", required=True)
    add.add_argument("--description", default="")
    add.add_argument("--currency", choices=CURRENCIES, default=None)
    add.add_argument("--date", type=date.fromisoformat, default=None)

    say = sub.add_parser("say", help='Record a transaction from text, e.g. "Spent 600 Rs on Dinner"')
    say.add_argument("text", nargs="+")

    lst = sub.add_parser("list", help="List transactions, newest first")
    lst.add_argument("--search", default="")
    lst.add_argument("--type", choices=("all",) + TRANSACTION_TYPES, default="all")
    lst.add_argument("--category", default="all")

    edit = sub.add_parser("edit", help="Change fields of a transaction")
    edit.add_argument("id")
    edit.add_argument("--type", choices=TRANSACTION_TYPES)
    edit.add_argument("--amount", type=amount_arg)
    edit.add_argument("--category")
    edit.add_argument("--description")
    edit.add_argument("--date", type=date.fromisoformat)

    delete = sub.add_parser("delete", help="Delete a transaction")
    delete.add_argument("id")

    sub.add_parser("summary", help="Dashboard totals and monthly overview")
    sub.add_parser("metrics", help="This month against last month")
    sub.add_parser("insights", help="Spending insights")

    export = sub.add_parser("export", help="Export transactions to CSV")
    export.add_argument("path", nargs="?")

    charts = sub.add_parser("charts", help="Write dashboard charts as HTML files")
    charts.add_argument("out_dir")

    goal = sub.add_parser("goal", help="Savings goals")
    goal_sub = goal.add_subparsers(dest="goal_command", required=True)
    goal_add = goal_sub.add_parser("add")
    goal_add.add_argument("name")
    goal_add.add_argument("target_amount", type=amount_arg)
    goal_add.add_argument("--current", type=amount_arg, default=0.0)
    goal_add.add_argument("--deadline", default="")
    goal_add.add_argument("--category", choices=GOAL_CATEGORIES, default="savings")
    goal_add.add_argument("--priority", choices=PRIORITIES, default="medium")
    goal_add.add_argument("--description", default="")
    goal_sub.add_parser("list")
    goal_del = goal_sub.add_parser("delete")
    goal_del.add_argument("id")
    goal_fund = goal_sub.add_parser("contribute")
    goal_fund.add_argument("id")
    goal_fund.add_argument("amount", type=amount_arg)

    budget = sub.add_parser("budget", help="Monthly category budgets")
    budget_sub = budget.add_subparsers(dest="budget_command", required=True)
    budget_add = budget_sub.add_parser("add")
    budget_add.add_argument("category", choices=CATEGORIES["expense"])
    budget_add.add_argument("monthly_limit", type=amount_arg)
    budget_add.add_argument("--threshold", type=amount_arg, default=80.0)
    budget_add.add_argument("--description", default="")
    budget_sub.add_parser("list")
    budget_del = budget_sub.add_parser("delete")
    budget_del.add_argument("id")

    return parser


def _print_alerts(alerts: List[dict]) -> None:
    for alert in alerts:
        print(f"! {alert['alert']}")


def _print_transaction(t) -> None:
    sign = "+" if t.type == "income" else "-"
    print(f"{t.id}  {t.date}  {t.type:<8} {sign}{money(t.amount):>14}  {t.category:<15} {t.description}")


def run(args: argparse.Namespace, settings) -> int:
    store = open_store(settings)
    transactions = TransactionService(store, settings)

    if args.command == "add":
        t = new_transaction(args.type, args.amount, args.category, args.description,
                            args.currency or settings.currency, args.date)
        saved = transactions.add(t)
        print(f"Added {saved.transaction.id}")
        _print_alerts(saved.alerts)

    elif args.command == "say":
        saved = transactions.add_from_text(" ".join(args.text))
        _print_transaction(saved.transaction)
        _print_alerts(saved.alerts)

    elif args.command == "list":
        rows = transactions.filtered(args.search, args.type, args.category)
        if not rows:
            print("No transactions found")
        for t in rows:
            _print_transaction(t)

    elif args.command == "edit":
        current = transactions.get(args.id)
        changes = {k: v for k, v in (
            ("type", args.type), ("amount", args.amount), ("category", args.category),
            ("description", args.description), ("date", args.date and args.date.isoformat()),
        ) if v is not None}
        saved = transactions.update(args.id, replace(current, **changes))
        _print_transaction(saved.transaction)
        _print_alerts(saved.alerts)

    elif args.command == "delete":
        transactions.delete(args.id)
        print(f"Deleted {args.id}")

    elif args.command == "summary":
        stats = calculate_dashboard_stats(transactions.list())
        print(f"Income:       {money(stats['total_income'])}")
        print(f"Expenses:     {money(stats['total_expenses'])}")
        print(f"Net savings:  {money(stats['net_savings'])}")
        print(f"Savings rate: {stats['savings_rate']:.1f}% ({savings_rate_label(stats['savings_rate'])})")
        for row in stats["monthly_breakdown"]:
            print(f"  {row['month']:<9} in {money(row['income']):>14}  out {money(row['expenses']):>14}  ({row['transactions']} tx)")
        for row in stats["category_spending"]:
            print(f"  {row['category']:<15} {money(row['amount'])}")
        for g in stats["goal_progress"]:
            print(f"  goal {g['name']}: {money(g['saved'])} of {money(g['target'])}")

    elif args.command == "metrics":
        metrics = calculate_financial_metrics(transactions.list())
        cm = metrics["current_month"]
        print(f"This month: income {money(cm['income'])}, expenses {money(cm['expenses'])}, "
              f"savings {money(cm['savings'])} ({cm['savings_rate']:.1f}%)")
        print(f"Change vs last month: income {metrics['changes']['income']:+.1f}%, "
              f"expenses {metrics['changes']['expenses']:+.1f}%")
        for week, data in metrics["weekly_data"].items():
            print(f"  {week}: in {money(data['income'])}, out {money(data['expenses'])}, {data['transactions']} tx")
        for category, trend in top_category_trends(metrics["category_trends"]):
            print(f"  {category:<15} {money(trend['current'])} vs {money(trend['last'])} ({trend['change']:+.1f}%)")

    elif args.command == "insights":
        insights = get_spending_insights(transactions.list())
        for i in insights:
            print(f"[{i.type}] {i.title}: {i.message}")

    elif args.command == "export":
        print(f"Wrote {export_to_csv(transactions.list(), args.path)}")

    elif args.command == "charts":
        data = transactions.list()
        os.makedirs(args.out_dir, exist_ok=True)
        figures = dashboard_figures(calculate_dashboard_stats(data), calculate_financial_metrics(data), monthly_totals(data))
        for name, fig in zip(("distribution", "monthly", "categories", "weekly"), figures):
            path = os.path.join(args.out_dir, f"{name}.html")
            fig.write_html(path)
            print(f"Wrote {path}")

    elif args.command == "goal":
        goals = GoalService(store, settings)
        if args.goal_command == "add":
            g = goals.save(Goal(
                name=args.name, target_amount=args.target_amount, current_amount=args.current,
                deadline=args.deadline, category=args.category, priority=args.priority,
                description=args.description,
            ))
            print(f"Added goal {g.id}")
        elif args.goal_command == "list":
            for g in goals.list():
                pct = goal_progress_percentage(g.current_amount, g.target_amount)
                print(f"{g.id}  {g.name:<20} {money(g.current_amount)} / {money(g.target_amount)} "
                      f"({pct:.0f}%) {g.priority} priority {g.deadline}")
        elif args.goal_command == "delete":
            goals.delete(args.id)
            print(f"Deleted goal {args.id}")
        elif args.goal_command == "contribute":
            g = goals.contribute(args.id, args.amount)
            print(f"{g.name}: {money(g.current_amount)} / {money(g.target_amount)} ({g.status})")

    elif args.command == "budget":
        budgets = BudgetService(store, settings)
        if args.budget_command == "add":
            b = budgets.save(Budget(
                category=args.category, monthly_limit=args.monthly_limit,
                alert_threshold=args.threshold, description=args.description,
            ))
            print(f"Added budget {b.id}")
        elif args.budget_command == "list":
            for b, usage in budgets.status():
                print(f"{b.id}  {b.category:<15} {money(usage['spent'])} / {money(b.monthly_limit)} "
                      f"({usage['percentage']:.0f}%) {usage['status']}")
        elif args.budget_command == "delete":
            budgets.delete(args.id)
            print(f"Deleted budget {args.id}")

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings()
    configure_logging("DEBUG" if args.verbose else settings.log_level)
    try:
        return run(args, settings)
    except FinboardError as e:
        logger.debug("command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
