from dataclasses import replace
from datetime import date

import pytest

from finboard.config import Settings
from finboard.domain import Budget, Goal, Transaction
from finboard.errors import DocumentNotFound, ValidationFailed
from finboard.events import TRANSACTION_DELETED, new_event_bus
from finboard.services import BudgetService, GoalService, TransactionService
from finboard.store import JsonDocumentStore

TODAY = date.today()


def make_services(tmp_path):
    store = JsonDocumentStore(str(tmp_path / "db.json"))
    settings = Settings()
    bus = new_event_bus()
    return store, TransactionService(store, settings, bus), GoalService(store, settings), BudgetService(store, settings)


def expense(amount, category="Food", on=TODAY, description=""):
    return Transaction(type="expense", amount=amount, category=category, date=on.isoformat(), description=description)


def test_add_transaction_stores_document(tmp_path):
    store, transactions, _, _ = make_services(tmp_path)

    saved = transactions.add(expense(600, description="Dinner"))

    assert saved.transaction.id is not None
    assert saved.alerts == []
    doc = store.find_one("hack", saved.transaction.id)
    assert doc["amount"] == 600
    assert doc["currency"] == "INR"
    assert transactions.list() == (saved.transaction,)


def test_add_rejects_invalid_transaction(tmp_path):
    store, transactions, _, _ = make_services(tmp_path)

    with pytest.raises(ValidationFailed) as exc:
        transactions.add(expense(0))

    assert exc.value.error["error"] == "missing_fields"
    assert store.find_all("hack") == []


def test_add_from_text(tmp_path):
    _, transactions, _, _ = make_services(tmp_path)

    saved = transactions.add_from_text("Spent 600 Rs on Dinner", TODAY)

    assert saved.transaction.category == "Food"
    assert transactions.get(saved.transaction.id).description == "Dinner"


def test_add_from_unparseable_text(tmp_path):
    _, transactions, _, _ = make_services(tmp_path)
    with pytest.raises(ValidationFailed) as exc:
        transactions.add_from_text("bought stuff")
    assert exc.value.error["error"] == "unparseable"


def test_budget_alerts_on_add(tmp_path):
    _, transactions, _, budgets = make_services(tmp_path)
    budgets.save(Budget(category="Food", monthly_limit=1000, alert_threshold=80), TODAY)

    assert transactions.add(expense(500)).alerts == []
    near = transactions.add(expense(350)).alerts
    assert [a["level"] for a in near] == ["near"]
    over = transactions.add(expense(400)).alerts
    assert [a["level"] for a in over] == ["over"]
    assert over[0]["spent"] == 1250


def test_budget_alerts_only_count_same_month(tmp_path):
    _, transactions, _, budgets = make_services(tmp_path)
    budgets.save(Budget(category="Food", monthly_limit=1000), TODAY)
    transactions.add(expense(900, on=date(2020, 1, 5)))

    assert transactions.add(expense(100, on=date(2020, 2, 5))).alerts == []


def test_update_does_not_double_count_itself(tmp_path):
    _, transactions, _, budgets = make_services(tmp_path)
    budgets.save(Budget(category="Food", monthly_limit=1000), TODAY)
    saved = transactions.add(expense(500))

    updated = transactions.update(saved.transaction.id, expense(600))

    assert updated.alerts == []
    assert updated.transaction.id == saved.transaction.id
    assert transactions.get(saved.transaction.id).amount == 600


def test_delete_publishes_event(tmp_path):
    _, transactions, _, _ = make_services(tmp_path)
    deleted = []
    transactions.bus.subscribe(TRANSACTION_DELETED, lambda e, p: deleted.append(p["id"]) or {})
    saved = transactions.add(expense(10))

    transactions.delete(saved.transaction.id)

    assert transactions.list() == ()
    assert deleted == [saved.transaction.id]
    with pytest.raises(DocumentNotFound):
        transactions.delete(saved.transaction.id)


def test_filtered(tmp_path):
    _, transactions, _, _ = make_services(tmp_path)
    transactions.add(expense(10, on=date(2025, 1, 1), description="Groceries"))
    transactions.add(expense(20, category="Bills", on=date(2025, 1, 2), description="Phone"))
    transactions.add(Transaction(type="income", amount=99, category="Salary", date="2025-01-03"))

    assert [t.amount for t in transactions.filtered(tx_type="expense")] == [20, 10]
    assert [t.amount for t in transactions.filtered(search="phone")] == [20]


def test_goal_save_and_edit(tmp_path):
    _, _, goals, _ = make_services(tmp_path)

    created = goals.save(Goal(name="Emergency Fund", target_amount=100000, priority="high"))
    assert created.id is not None
    assert created.status == "active"
    assert created.created_at is not None

    goals.save(Goal(name="Emergency Fund", target_amount=120000, id=created.id, created_at=created.created_at))
    stored = goals.get(created.id)
    assert stored.target_amount == 120000
    assert stored.created_at == created.created_at
    assert len(goals.list()) == 1


def test_goal_validation(tmp_path):
    _, _, goals, _ = make_services(tmp_path)
    with pytest.raises(ValidationFailed):
        goals.save(Goal(name="", target_amount=10))


def test_goal_contribute(tmp_path):
    _, _, goals, _ = make_services(tmp_path)
    goal = goals.save(Goal(name="Trip", target_amount=1000, current_amount=600))

    assert goals.contribute(goal.id, 100).status == "active"
    done = goals.contribute(goal.id, 300)
    assert done.current_amount == 1000
    assert done.status == "completed"
    assert goals.get(goal.id).status == "completed"

    with pytest.raises(ValidationFailed):
        goals.contribute(goal.id, -5)


def test_goal_delete(tmp_path):
    _, _, goals, _ = make_services(tmp_path)
    goal = goals.save(Goal(name="Trip", target_amount=1000))
    goals.delete(goal.id)
    assert goals.list() == ()


def test_budget_save_stamps_current_spending(tmp_path):
    _, transactions, _, budgets = make_services(tmp_path)
    transactions.add(expense(300))
    transactions.add(expense(200))
    transactions.add(expense(999, category="Bills"))

    budget = budgets.save(Budget(category="Food", monthly_limit=1000), TODAY)

    assert budget.current_spent == 500
    assert (budget.month, budget.year) == (TODAY.month, TODAY.year)
    assert budgets.limits() == {"Food": 1000}


def test_budget_status(tmp_path):
    _, transactions, _, budgets = make_services(tmp_path)
    budgets.save(Budget(category="Food", monthly_limit=1000, alert_threshold=50), TODAY)
    budgets.save(Budget(category="Bills", monthly_limit=100), TODAY)
    transactions.add(expense(600))
    transactions.add(expense(150, category="Bills"))

    status = {b.category: usage["status"] for b, usage in budgets.status(TODAY)}
    assert status == {"Food": "Near Limit", "Bills": "Over Budget"}


def test_budget_validation_and_delete(tmp_path):
    _, _, _, budgets = make_services(tmp_path)
    with pytest.raises(ValidationFailed):
        budgets.save(Budget(category="Food", monthly_limit=0))
    b = budgets.save(Budget(category="Food", monthly_limit=10))
    budgets.delete(b.id)
    assert budgets.list() == ()


def test_lowercase_category_matches_budget(tmp_path):
    _, transactions, _, budgets = make_services(tmp_path)
    budgets.save(Budget(category="Food", monthly_limit=1000), TODAY)

    saved = transactions.add(expense(1200, category="food"))

    assert saved.transaction.category == "Food"
    assert [a["level"] for a in saved.alerts] == ["over"]
    assert [t.amount for t in transactions.filtered(category="Food")] == [1200]


def test_unknown_category_is_kept_as_typed(tmp_path):
    _, transactions, _, _ = make_services(tmp_path)
    saved = transactions.add(expense(10, category="Pets"))
    assert transactions.get(saved.transaction.id).category == "Pets"


def test_update_normalises_category(tmp_path):
    _, transactions, _, _ = make_services(tmp_path)
    saved = transactions.add(expense(10))
    transactions.update(saved.transaction.id, expense(10, category="BILLS"))
    assert transactions.get(saved.transaction.id).category == "Bills"


def test_update_clears_time(tmp_path):
    store, transactions, _, _ = make_services(tmp_path)
    saved = transactions.add(replace(expense(10), time="21:30"))
    assert transactions.get(saved.transaction.id).time == "21:30"

    transactions.update(saved.transaction.id, expense(10))

    assert transactions.get(saved.transaction.id).time is None
    assert store.find_one("hack", saved.transaction.id)["time"] is None


def test_goal_edit_without_created_at_keeps_stored_one(tmp_path):
    _, _, goals, _ = make_services(tmp_path)
    created = goals.save(Goal(name="Trip", target_amount=1000))

    edited = goals.save(Goal(name="Trip", target_amount=2000, id=created.id))

    assert edited.created_at == created.created_at
    assert goals.get(created.id).created_at == created.created_at
