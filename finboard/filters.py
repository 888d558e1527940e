from datetime import date
from typing import Iterable, List

from finboard.domain import Transaction
from finboard.lazy import iter_transactions


def by_search(term: str):
    needle = (term or "").lower()

    def _filter(t: Transaction) -> bool:
        return needle in (t.description or "").lower() or needle in (t.category or "").lower()

    return _filter


def by_type(tx_type: str):
    def _filter(t: Transaction) -> bool:
        return tx_type == "all" or t.type == tx_type

    return _filter


def by_category(category: str):
    def _filter(t: Transaction) -> bool:
        return category == "all" or t.category == category

    return _filter


def by_date_range(start: str, end: str):
    def _filter(t: Transaction) -> bool:
        return bool(t.date) and start <= t.date[:10] <= end

    return _filter


def by_month(month: str):
    """month is "YYYY-MM"."""
    def _filter(t: Transaction) -> bool:
        return bool(t.date) and t.date.startswith(month)

    return _filter


def sort_key(t: Transaction) -> date:
    try:
        return date.fromisoformat(t.date[:10])
    except (TypeError, ValueError):
        return date.min


def newest_first(trans: Iterable[Transaction]) -> List[Transaction]:
    return sorted(trans, key=sort_key, reverse=True)


def filter_transactions(
    trans: Iterable[Transaction],
    search: str = "",
    tx_type: str = "all",
    category: str = "all",
) -> List[Transaction]:
    preds = (by_search(search), by_type(tx_type), by_category(category))
    return newest_first(iter_transactions(trans, lambda t: all(p(t) for p in preds)))
