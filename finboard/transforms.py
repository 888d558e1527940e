import re
from dataclasses import asdict, replace
from datetime import date
from functools import reduce
from typing import Any, Dict, Optional, Tuple

from finboard.domain import (
    DEFAULT_CURRENCY,
    EXPENSE,
    INCOME,
    Budget,
    Goal,
    GoalLink,
    Transaction,
)

_NUMBER_PREFIX = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def parse_amount(value: Any) -> Optional[float]:
    """Read a number the way a form field would: "600", "12.5kg" -> 12.5, "abc" -> None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _NUMBER_PREFIX.match(str(value))
    if not match:
        return None
    return float(match.group(0))


def _number(value: Any, default: float = 0.0) -> float:
    parsed = parse_amount(value)
    return default if parsed is None or parsed != parsed else parsed


def _text(value: Any, default: str = "") -> str:
    return default if value is None else str(value)


def goal_link_from_document(doc: Any) -> GoalLink:
    if not isinstance(doc, dict):
        return GoalLink()
    return GoalLink(
        name=_text(doc.get("name")),
        target_amount=_number(doc.get("target_amount")),
        duration_months=int(_number(doc.get("duration_months"))),
    )


def transaction_from_document(doc: Dict[str, Any]) -> Transaction:
    return Transaction(
        id=doc.get("_id"),
        type=_text(doc.get("type")),
        amount=_number(doc.get("amount")),
        currency=_text(doc.get("currency"), DEFAULT_CURRENCY) or DEFAULT_CURRENCY,
        category=_text(doc.get("category")),
        description=_text(doc.get("description")),
        date=_text(doc.get("date")),
        time=doc.get("time"),
        goal=goal_link_from_document(doc.get("goal")),
    )


def goal_from_document(doc: Dict[str, Any]) -> Goal:
    return Goal(
        id=doc.get("_id"),
        name=_text(doc.get("name")),
        target_amount=_number(doc.get("target_amount")),
        current_amount=_number(doc.get("current_amount")),
        deadline=_text(doc.get("deadline")),
        category=_text(doc.get("category"), "savings") or "savings",
        priority=_text(doc.get("priority"), "medium") or "medium",
        description=_text(doc.get("description")),
        status=_text(doc.get("status"), "active"),
        created_at=doc.get("created_at"),
    )


def budget_from_document(doc: Dict[str, Any]) -> Budget:
    return Budget(
        id=doc.get("_id"),
        category=_text(doc.get("category")),
        monthly_limit=_number(doc.get("monthly_limit")),
        current_spent=_number(doc.get("current_spent")),
        period=_text(doc.get("period"), "monthly") or "monthly",
        alert_threshold=_number(doc.get("alert_threshold"), 80.0) or 80.0,
        description=_text(doc.get("description")),
        month=doc.get("month"),
        year=doc.get("year"),
        created_at=doc.get("created_at"),
    )


def to_document(entity) -> Dict[str, Any]:
    """Plain dict for the store; the id travels separately so it is dropped here."""
    doc = asdict(entity)
    doc.pop("id", None)
    if isinstance(entity, Transaction) and entity.time is None:
        doc.pop("time")
    return doc


def new_transaction(type: str, amount: float, category: str, description: str = "",
                    currency: str = DEFAULT_CURRENCY, on: Optional[date] = None) -> Transaction:
    return Transaction(
        type=type,
        amount=amount,
        category=category,
        description=description,
        currency=currency,
        date=(on or date.today()).isoformat(),
    )


def with_id(entity, doc_id: str):
    return replace(entity, id=doc_id)


def load_documents(store, transactions: str = "hack", goals: str = "goals", budgets: str = "budgets") -> Tuple[
    Tuple[Transaction, ...],
    Tuple[Goal, ...],
    Tuple[Budget, ...],
]:
    return (
        tuple(transaction_from_document(d) for d in store.find_all(transactions)),
        tuple(goal_from_document(d) for d in store.find_all(goals)),
        tuple(budget_from_document(d) for d in store.find_all(budgets)),
    )


def income_transactions(trans: Tuple[Transaction, ...]) -> Tuple[Transaction, ...]:
    return tuple(filter(lambda t: t.type == INCOME, trans))


def expense_transactions(trans: Tuple[Transaction, ...]) -> Tuple[Transaction, ...]:
    return tuple(filter(lambda t: t.type == EXPENSE, trans))


def total_amount(trans) -> float:
    return reduce(lambda acc, t: acc + (t.amount or 0), trans, 0.0)
