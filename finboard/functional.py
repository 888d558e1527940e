"""Small Maybe / Either types and the validators built on them.

Validators never raise: they return Right(value) or Left(error_dict),
where error_dict always has "error" (a machine code) and "message".
"""
from dataclasses import dataclass
from datetime import date
from functools import reduce
from typing import Callable, Generic, TypeVar

from finboard.domain import CATEGORIES, TRANSACTION_TYPES, Budget, Goal, Transaction

T = TypeVar('T')
U = TypeVar('U')
E = TypeVar('E')


class Maybe(Generic[T]):

    def is_some(self) -> bool:
        return isinstance(self, Some)

    def is_none(self) -> bool:
        return not self.is_some()


@dataclass(frozen=True)
class Some(Maybe[T]):
    value: T

    def map(self, f: Callable[[T], U]) -> Maybe[U]:
        return Some(f(self.value))

    def get_or_else(self, default: T) -> T:
        return self.value


@dataclass(frozen=True)
class Nothing(Maybe[T]):

    def map(self, f: Callable[[T], U]) -> Maybe[U]:
        return self

    def get_or_else(self, default: T) -> T:
        return default


class Either(Generic[E, T]):

    def is_right(self) -> bool:
        return isinstance(self, Right)

    def is_left(self) -> bool:
        return not self.is_right()


@dataclass(frozen=True)
class Right(Either[E, T]):
    value: T

    def bind(self, f: Callable[[T], Either[E, U]]) -> Either[E, U]:
        return f(self.value)

    def get_or_else(self, default: T) -> T:
        return self.value

    def get_error(self) -> E:
        raise ValueError("Right carries no error")


@dataclass(frozen=True)
class Left(Either[E, T]):
    error: E

    def bind(self, f: Callable[[T], Either[E, U]]) -> Either[E, U]:
        return self

    def get_or_else(self, default: T) -> T:
        return default

    def get_error(self) -> E:
        return self.error


def safe_category(category: str, tx_type: str) -> Maybe[str]:
    """Match a free-form category against the known list for the type, ignoring case."""
    for known in CATEGORIES.get(tx_type, ()):
        if known.lower() == (category or "").strip().lower():
            return Some(known)
    return Nothing()


def _is_iso_date(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except (TypeError, ValueError):
        return False
    return True


def _require_fields(t: Transaction) -> Either[dict, Transaction]:
    if not t.amount or not t.category:
        return Left({
            "error": "missing_fields",
            "message": "Please fill in amount and category",
        })
    return Right(t)


def _check_amount(t: Transaction) -> Either[dict, Transaction]:
    if t.amount < 0:
        return Left({
            "error": "invalid_amount",
            "message": f"Amount must be positive, got {t.amount}",
            "amount": t.amount,
        })
    return Right(t)


def _check_type(t: Transaction) -> Either[dict, Transaction]:
    if t.type not in TRANSACTION_TYPES:
        return Left({
            "error": "invalid_type",
            "message": f"Unknown transaction type {t.type!r}",
            "type": t.type,
        })
    return Right(t)


def _check_date(t: Transaction) -> Either[dict, Transaction]:
    if not _is_iso_date(t.date):
        return Left({
            "error": "invalid_date",
            "message": f"Date must look like YYYY-MM-DD, got {t.date!r}",
            "date": t.date,
        })
    return Right(t)


def validate_transaction(t: Transaction) -> Either[dict, Transaction]:
    return (
        Right(t)
        .bind(_require_fields)
        .bind(_check_amount)
        .bind(_check_type)
        .bind(_check_date)
    )


def validate_goal(g: Goal) -> Either[dict, Goal]:
    if not g.name or not g.target_amount:
        return Left({
            "error": "missing_fields",
            "message": "Please fill in required fields",
        })
    if g.target_amount < 0 or g.current_amount < 0:
        return Left({
            "error": "invalid_amount",
            "message": "Goal amounts must be positive",
        })
    if g.deadline and not _is_iso_date(g.deadline):
        return Left({
            "error": "invalid_date",
            "message": f"Deadline must look like YYYY-MM-DD, got {g.deadline!r}",
        })
    return Right(g)


def validate_budget(b: Budget) -> Either[dict, Budget]:
    if not b.category or not b.monthly_limit:
        return Left({
            "error": "missing_fields",
            "message": "Please fill in required fields",
        })
    if b.monthly_limit < 0:
        return Left({
            "error": "invalid_amount",
            "message": "Monthly limit must be positive",
        })
    if not 0 < b.alert_threshold <= 100:
        return Left({
            "error": "invalid_threshold",
            "message": f"Alert threshold must be between 1 and 100, got {b.alert_threshold}",
            "alert_threshold": b.alert_threshold,
        })
    return Right(b)


def pipe(x, *funcs):
    """pipe(x, f, g) == g(f(x))"""
    return reduce(lambda acc, f: f(acc), funcs, x)
