from collections import defaultdict
from typing import Callable, Iterable, Iterator, Tuple

from finboard.domain import EXPENSE, Transaction


def iter_transactions(
    trans: Iterable[Transaction], pred: Callable[[Transaction], bool]
) -> Iterator[Transaction]:
    for t in trans:
        if pred(t):
            yield t


def category_totals(trans: Iterable[Transaction], tx_type: str = EXPENSE) -> dict[str, float]:
    totals: dict[str, float] = defaultdict(float)
    for t in iter_transactions(trans, lambda t: t.type == tx_type):
        totals[t.category or "Other"] += t.amount or 0
    return dict(totals)


def lazy_top_categories(trans: Iterable[Transaction], k: int) -> Iterator[Tuple[str, float]]:
    ordered = sorted(category_totals(trans).items(), key=lambda item: item[1], reverse=True)

    for name, total in ordered[: max(0, k)]:
        yield name, total
