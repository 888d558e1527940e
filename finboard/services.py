import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Dict, List, NamedTuple, Optional, Tuple

from finboard.analytics import budget_usage, calculate_budget_spent
from finboard.config import Settings
from finboard.domain import EXPENSE, Budget, Goal, Transaction
from finboard.errors import ValidationFailed
from finboard.events import (
    BUDGET_ALERT,
    TRANSACTION_ADDED,
    TRANSACTION_DELETED,
    TRANSACTION_UPDATED,
    EventBus,
    event_bus,
)
from finboard.filters import filter_transactions
from finboard.functional import Either, safe_category, validate_budget, validate_goal, validate_transaction
from finboard.parsing import parse_text_input
from finboard.store import DocumentStore
from finboard.transforms import (
    budget_from_document,
    goal_from_document,
    to_document,
    transaction_from_document,
    with_id,
)

logger = logging.getLogger(__name__)


def _unwrap(result: Either):
    if result.is_left():
        raise ValidationFailed(result.get_error())
    return result.get_or_else(None)


def _known_category(t: Transaction) -> Transaction:
    return replace(t, category=safe_category(t.category, t.type).get_or_else(t.category))


class Saved(NamedTuple):
    transaction: Transaction
    alerts: List[dict]


class TransactionService:
    """Record, edit and remove transactions, publishing events for budget checks."""

    def __init__(self, store: DocumentStore, settings: Settings = Settings(), bus: EventBus = event_bus):
        self.store = store
        self.settings = settings
        self.bus = bus
        self.collection = settings.transactions_collection

    def list(self) -> Tuple[Transaction, ...]:
        return tuple(transaction_from_document(d) for d in self.store.find_all(self.collection))

    def get(self, tx_id: str) -> Transaction:
        return transaction_from_document(self.store.find_one(self.collection, tx_id))

    def filtered(self, search: str = "", tx_type: str = "all", category: str = "all") -> List[Transaction]:
        return filter_transactions(self.list(), search, tx_type, category)

    def _budget_payload(self, t: Transaction, exclude_id: Optional[str] = None) -> dict:
        payload = {
            "id": t.id,
            "type": t.type,
            "amount": t.amount,
            "category": t.category,
            "date": t.date,
        }
        if t.type != EXPENSE:
            return payload
        budget = next(
            (budget_from_document(d) for d in self.store.find_all(self.settings.budgets_collection)
             if d.get("category") == t.category),
            None,
        )
        if budget is None:
            return payload
        others = tuple(x for x in self.list() if x.id not in (exclude_id, t.id))
        month = date.fromisoformat(t.date[:10])
        payload.update(
            monthly_limit=budget.monthly_limit,
            alert_threshold=budget.alert_threshold,
            current_spent=calculate_budget_spent(others, t.category, month),
        )
        return payload

    def _alerts(self, event_name: str, payload: dict) -> List[dict]:
        alerts = [r for r in self.bus.publish(event_name, payload) if r and "alert" in r]
        for alert in alerts:
            self.bus.publish(BUDGET_ALERT, alert)
        return alerts

    def add(self, t: Transaction) -> Saved:
        t = _unwrap(validate_transaction(_known_category(t)))
        saved = with_id(t, self.store.insert(self.collection, to_document(t)))
        logger.info("added %s of %.2f in %s", saved.type, saved.amount, saved.category)
        return Saved(saved, self._alerts(TRANSACTION_ADDED, self._budget_payload(saved)))

    def add_from_text(self, text: str, today: Optional[date] = None) -> Saved:
        parsed = parse_text_input(text, today)
        if parsed is None:
            raise ValidationFailed({
                "error": "unparseable",
                "message": "Could not parse the transaction. Please try again or use manual input.",
                "text": text,
            })
        return self.add(parsed)

    def update(self, tx_id: str, t: Transaction) -> Saved:
        t = with_id(_unwrap(validate_transaction(_known_category(t))), tx_id)
        # an explicit None clears a stored time under merge semantics
        self.store.update(self.collection, tx_id, {"time": None, **to_document(t)})
        return Saved(t, self._alerts(TRANSACTION_UPDATED, self._budget_payload(t, exclude_id=tx_id)))

    def delete(self, tx_id: str) -> None:
        self.store.delete(self.collection, tx_id)
        self.bus.publish(TRANSACTION_DELETED, {"id": tx_id})
        logger.info("deleted transaction %s", tx_id)


class GoalService:
    def __init__(self, store: DocumentStore, settings: Settings = Settings()):
        self.store = store
        self.collection = settings.goals_collection

    def list(self) -> Tuple[Goal, ...]:
        return tuple(goal_from_document(d) for d in self.store.find_all(self.collection))

    def get(self, goal_id: str) -> Goal:
        return goal_from_document(self.store.find_one(self.collection, goal_id))

    def save(self, goal: Goal) -> Goal:
        """Create the goal, or update it when it already carries an id."""
        goal = _unwrap(validate_goal(goal))
        created_at = goal.created_at
        if goal.id and not created_at:
            created_at = self.get(goal.id).created_at
        goal = replace(goal, status="active", created_at=created_at or datetime.now().isoformat())
        if goal.id:
            self.store.update(self.collection, goal.id, to_document(goal))
            return goal
        return with_id(goal, self.store.insert(self.collection, to_document(goal)))

    def contribute(self, goal_id: str, amount: float) -> Goal:
        if amount <= 0:
            raise ValidationFailed({"error": "invalid_amount", "message": "Contribution must be positive"})
        goal = self.get(goal_id)
        current = goal.current_amount + amount
        status = "completed" if current >= goal.target_amount else goal.status
        self.store.update(self.collection, goal_id, {"current_amount": current, "status": status})
        return replace(goal, current_amount=current, status=status)

    def delete(self, goal_id: str) -> None:
        self.store.delete(self.collection, goal_id)


class BudgetService:
    """Monthly category budgets, with spending computed from recorded expenses."""

    def __init__(self, store: DocumentStore, settings: Settings = Settings()):
        self.store = store
        self.collection = settings.budgets_collection
        self.transactions_collection = settings.transactions_collection

    def _transactions(self) -> Tuple[Transaction, ...]:
        return tuple(transaction_from_document(d) for d in self.store.find_all(self.transactions_collection))

    def list(self) -> Tuple[Budget, ...]:
        return tuple(budget_from_document(d) for d in self.store.find_all(self.collection))

    def limits(self) -> Dict[str, float]:
        return {b.category: b.monthly_limit for b in self.list()}

    def save(self, budget: Budget, today: Optional[date] = None) -> Budget:
        today = today or date.today()
        budget = _unwrap(validate_budget(budget))
        budget = replace(
            budget,
            current_spent=calculate_budget_spent(self._transactions(), budget.category, today),
            created_at=budget.created_at or datetime.now().isoformat(),
            month=today.month,
            year=today.year,
        )
        if budget.id:
            self.store.update(self.collection, budget.id, to_document(budget))
            return budget
        return with_id(budget, self.store.insert(self.collection, to_document(budget)))

    def delete(self, budget_id: str) -> None:
        self.store.delete(self.collection, budget_id)

    def status(self, today: Optional[date] = None) -> List[Tuple[Budget, dict]]:
        transactions = self._transactions()
        return [
            (b, budget_usage(b, calculate_budget_spent(transactions, b.category, today)))
            for b in self.list()
        ]
