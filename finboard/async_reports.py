import asyncio
from dataclasses import asdict
from datetime import date
from typing import Dict, Optional, Tuple

from finboard.analytics import (
    calculate_dashboard_stats,
    calculate_financial_metrics,
    get_budget_analysis,
    get_spending_insights,
)
from finboard.config import Settings
from finboard.domain import Budget, Goal, Transaction
from finboard.store import DocumentStore
from finboard.transforms import budget_from_document, goal_from_document, transaction_from_document


async def load_collections(
    store: DocumentStore, settings: Settings = Settings()
) -> Tuple[Tuple[Transaction, ...], Tuple[Goal, ...], Tuple[Budget, ...]]:
    """Fetch transactions, goals and budgets concurrently.

    Store calls are blocking, so each one runs in a worker thread.
    """
    tx_docs, goal_docs, budget_docs = await asyncio.gather(
        asyncio.to_thread(store.find_all, settings.transactions_collection),
        asyncio.to_thread(store.find_all, settings.goals_collection),
        asyncio.to_thread(store.find_all, settings.budgets_collection),
    )
    return (
        tuple(transaction_from_document(d) for d in tx_docs),
        tuple(goal_from_document(d) for d in goal_docs),
        tuple(budget_from_document(d) for d in budget_docs),
    )


async def analytics_report(
    store: DocumentStore, settings: Settings = Settings(), today: Optional[date] = None
) -> Dict[str, object]:
    """Everything the analytics view shows, computed from one concurrent load."""
    transactions, goals, budgets = await load_collections(store, settings)
    limits = {b.category: b.monthly_limit for b in budgets}
    return {
        "transactions": transactions,
        "goals": goals,
        "budgets": budgets,
        "dashboard": calculate_dashboard_stats(transactions, today),
        "metrics": calculate_financial_metrics(transactions, today),
        "budget_analysis": get_budget_analysis(transactions, limits, today),
        "insights": [asdict(i) for i in get_spending_insights(transactions)],
    }


def run_report(store: DocumentStore, settings: Settings = Settings(), today: Optional[date] = None) -> Dict[str, object]:
    return asyncio.run(analytics_report(store, settings, today))
