from datetime import datetime

from finboard.events import (
    BUDGET_ALERT,
    TRANSACTION_ADDED,
    TRANSACTION_DELETED,
    Event,
    EventBus,
    check_budget_handler,
    new_event_bus,
)


def budget_payload(**overrides):
    payload = {
        "type": "expense",
        "amount": 600,
        "category": "Food",
        "monthly_limit": 1000,
        "current_spent": 0,
        "alert_threshold": 80,
    }
    payload.update(overrides)
    return payload


def make_event(payload):
    return Event(name=TRANSACTION_ADDED, ts=datetime.now().isoformat(), payload=payload)


def test_event_bus_subscribe_and_publish():
    bus = EventBus()
    seen = []

    def handler(event: Event, payload: dict) -> dict:
        seen.append(event.name)
        return {"processed": True}

    bus.subscribe(TRANSACTION_ADDED, handler)
    results = bus.publish(TRANSACTION_ADDED, {"amount": 50})

    assert results == [{"processed": True}]
    assert seen == [TRANSACTION_ADDED]


def test_publish_without_subscribers():
    assert EventBus().publish(TRANSACTION_DELETED, {"id": "x"}) == []


def test_multiple_subscribers_in_order():
    bus = EventBus()
    bus.subscribe(TRANSACTION_ADDED, lambda e, p: {"handler": 1})
    bus.subscribe(TRANSACTION_ADDED, lambda e, p: {"handler": 2})
    assert bus.publish(TRANSACTION_ADDED, {}) == [{"handler": 1}, {"handler": 2}]


def test_unsubscribe():
    bus = EventBus()
    calls = []

    def handler(event, payload):
        calls.append(payload)
        return {}

    bus.subscribe(TRANSACTION_ADDED, handler)
    bus.publish(TRANSACTION_ADDED, {"n": 1})
    bus.unsubscribe(TRANSACTION_ADDED, handler)
    bus.unsubscribe(BUDGET_ALERT, handler)
    bus.publish(TRANSACTION_ADDED, {"n": 2})

    assert calls == [{"n": 1}]


def test_budget_handler_under_threshold():
    payload = budget_payload()
    result = check_budget_handler(make_event(payload), payload)
    assert result == {"spent": 600}


def test_budget_handler_near_limit():
    payload = budget_payload(current_spent=250)
    result = check_budget_handler(make_event(payload), payload)
    assert result["level"] == "near"
    assert result["spent"] == 850
    assert "85%" in result["alert"]


def test_budget_handler_exceeded():
    payload = budget_payload(amount=1500)
    result = check_budget_handler(make_event(payload), payload)
    assert result["level"] == "over"
    assert result["alert"].startswith("Budget exceeded for Food")
    assert result["limit"] == 1000


def test_budget_handler_is_pure():
    payload = budget_payload(amount=900)
    snapshot = dict(payload)
    first = check_budget_handler(make_event(payload), payload)
    second = check_budget_handler(make_event(payload), payload)
    assert first == second
    assert payload == snapshot


def test_budget_handler_ignores_income_and_unbudgeted():
    income = budget_payload(type="income", amount=5000)
    assert check_budget_handler(make_event(income), income) == {}
    no_budget = budget_payload(monthly_limit=0)
    assert check_budget_handler(make_event(no_budget), no_budget) == {}


def test_default_bus_wires_budget_check():
    bus = new_event_bus()
    results = bus.publish(TRANSACTION_ADDED, budget_payload(amount=2000))
    assert any(r.get("level") == "over" for r in results)
    assert bus.publish(BUDGET_ALERT, {"alert": "x"}) == [{}]
