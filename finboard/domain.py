from dataclasses import dataclass, field
from typing import Optional

INCOME = "income"
EXPENSE = "expense"
LEND = "lend"
BORROW = "borrow"
TRANSACTION_TYPES = (INCOME, EXPENSE, LEND, BORROW)

DEFAULT_CURRENCY = "INR"
CURRENCIES = ("INR", "USD", "EUR")

CATEGORIES = {
    EXPENSE: ("Food", "Entertainment", "Transportation", "Shopping", "Bills", "Healthcare", "Education", "Other"),
    INCOME: ("Salary", "Freelance", "Investment", "Business", "Gift", "Other"),
}

GOAL_CATEGORIES = ("savings", "investment", "purchase", "emergency", "vacation", "education", "other")
PRIORITIES = ("low", "medium", "high")


@dataclass(frozen=True)
class GoalLink:
    name: str = ""
    target_amount: float = 0.0
    duration_months: int = 0

    def is_set(self) -> bool:
        return bool(self.name) and self.target_amount > 0


@dataclass(frozen=True)
class Transaction:
    type: str             # income | expense | lend | borrow
    amount: float         # always positive, sign comes from type
    category: str
    date: str             # "2025-08-14"
    currency: str = DEFAULT_CURRENCY
    description: str = ""
    time: Optional[str] = None
    goal: GoalLink = field(default_factory=GoalLink)
    id: Optional[str] = None


@dataclass(frozen=True)
class Goal:
    name: str
    target_amount: float
    current_amount: float = 0.0
    deadline: str = ""
    category: str = "savings"
    priority: str = "medium"
    description: str = ""
    status: str = "active"
    created_at: Optional[str] = None
    id: Optional[str] = None


# A monthly spending cap for one category
@dataclass(frozen=True)
class Budget:
    category: str
    monthly_limit: float
    current_spent: float = 0.0
    period: str = "monthly"
    alert_threshold: float = 80.0  # percent of the limit
    description: str = ""
    month: Optional[int] = None
    year: Optional[int] = None
    created_at: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class Insight:
    type: str  # warning | info | success
    title: str
    message: str
