import logging
from datetime import datetime
from typing import Callable, Dict, List, NamedTuple

from finboard.domain import EXPENSE

__all__ = [
    'event_bus', 'TRANSACTION_ADDED', 'TRANSACTION_UPDATED', 'TRANSACTION_DELETED',
    'BUDGET_ALERT', 'Event', 'EventBus', 'new_event_bus',
]

logger = logging.getLogger(__name__)


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event, dict], dict]


class EventBus:
    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        self._subscribers.setdefault(name, []).append(handler)

    def publish(self, name: str, payload: dict) -> List[dict]:
        handlers = self._subscribers.get(name)
        if not handlers:
            return []

        event = Event(name=name, ts=datetime.now().isoformat(), payload=payload)
        results = []
        for handler in list(handlers):
            results.append(handler(event, payload))
        logger.debug("%s delivered to %d handler(s)", name, len(handlers))
        return results

    def unsubscribe(self, name: str, handler: Handler) -> None:
        if handler in self._subscribers.get(name, []):
            self._subscribers[name].remove(handler)


TRANSACTION_ADDED = "TRANSACTION_ADDED"
TRANSACTION_UPDATED = "TRANSACTION_UPDATED"
TRANSACTION_DELETED = "TRANSACTION_DELETED"
BUDGET_ALERT = "BUDGET_ALERT"


def check_budget_handler(event: Event, payload: dict) -> dict:
    """Compare an expense against its category budget.

    payload keys: type, amount, category, monthly_limit, current_spent
    (spent before this expense), alert_threshold (percent).
    """
    if payload.get("type") != EXPENSE:
        return {}
    limit = payload.get("monthly_limit") or 0
    if limit <= 0:
        return {}

    category = payload.get("category", "")
    threshold = payload.get("alert_threshold") or 80
    spent = (payload.get("current_spent") or 0) + (payload.get("amount") or 0)
    usage = spent / limit * 100

    if usage > 100:
        return {
            "alert": f"Budget exceeded for {category}: ₹{spent:,.0f} / ₹{limit:,.0f}",
            "level": "over",
            "category": category,
            "spent": spent,
            "limit": limit,
        }
    if usage >= threshold:
        return {
            "alert": f"{category} budget is at {usage:.0f}% of ₹{limit:,.0f}",
            "level": "near",
            "category": category,
            "spent": spent,
            "limit": limit,
        }
    return {"spent": spent}


def log_alert_handler(event: Event, payload: dict) -> dict:
    logger.warning("budget alert: %s", payload.get("alert"))
    return {}


def register_default_handlers(bus: EventBus) -> EventBus:
    bus.subscribe(TRANSACTION_ADDED, check_budget_handler)
    bus.subscribe(TRANSACTION_UPDATED, check_budget_handler)
    bus.subscribe(BUDGET_ALERT, log_alert_handler)
    return bus


def new_event_bus() -> EventBus:
    return register_default_handlers(EventBus())


event_bus = new_event_bus()
