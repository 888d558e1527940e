"""Turn short sentences such as "Spent 600 Rs on Dinner" into transactions.

Only four sentence shapes are understood:

    spent <amount> [rs|rupee(s)|inr] on <description>       -> expense
    earned <amount> [rs|rupee(s)|inr] from <description>    -> income
    lent <amount> [rs|rupee(s)|inr] to <description>        -> lend
    borrowed <amount> [rs|rupee(s)|inr] from <description>  -> borrow

Anything else yields None so the caller can fall back to manual entry.
"""
import logging
import re
from datetime import date
from typing import Optional

from finboard.domain import BORROW, EXPENSE, INCOME, LEND, Transaction
from finboard.transforms import new_transaction

logger = logging.getLogger(__name__)

_CURRENCY = r"(?:rs|rupees?|inr)?"

PATTERNS = (
    (EXPENSE, re.compile(rf"spent\s+(\d+)\s*{_CURRENCY}\s+on\s+(.+)", re.IGNORECASE)),
    (INCOME, re.compile(rf"earned\s+(\d+)\s*{_CURRENCY}\s+from\s+(.+)", re.IGNORECASE)),
    (LEND, re.compile(rf"lent\s+(\d+)\s*{_CURRENCY}\s+to\s+(.+)", re.IGNORECASE)),
    (BORROW, re.compile(rf"borrowed\s+(\d+)\s*{_CURRENCY}\s+from\s+(.+)", re.IGNORECASE)),
)

# first matching keyword wins, order matters
KEYWORDS = {
    EXPENSE: (
        ("Food", ("food", "dinner", "lunch", "restaurant")),
        ("Entertainment", ("movie", "netflix", "entertainment")),
        ("Transportation", ("uber", "taxi", "bus", "transport")),
        ("Shopping", ("shopping", "clothes", "amazon")),
        ("Bills", ("bill", "electricity", "phone", "internet")),
        ("Healthcare", ("doctor", "medicine", "hospital")),
    ),
    INCOME: (
        ("Salary", ("salary", "job", "work")),
        ("Freelance", ("freelance", "project", "client")),
        ("Investment", ("investment", "dividend", "interest")),
    ),
}


def guess_category(description: str, tx_type: str) -> str:
    desc = description.lower()
    for category, words in KEYWORDS.get(tx_type, ()):
        if any(w in desc for w in words):
            return category
    return "Other"


def parse_text_input(text: str, today: Optional[date] = None) -> Optional[Transaction]:
    if not text:
        return None
    for tx_type, pattern in PATTERNS:
        match = pattern.search(text)
        if match:
            amount, description = match.groups()
            description = description.strip()
            return new_transaction(
                type=tx_type,
                amount=float(amount),
                category=guess_category(description, tx_type),
                description=description,
                on=today,
            )
    logger.info("could not parse transaction text %r", text)
    return None
