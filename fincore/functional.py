from abc import ABC, abstractmethod
from typing import Callable, Generic, Iterable, Optional, TypeVar

from fincore.domain import Account, Category, EXPENSE, INCOME, TRANSFER
from fincore.errors import InputError

T = TypeVar('T')
U = TypeVar('U')
E = TypeVar('E')


class Maybe(Generic[T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def is_some(self) -> bool:
        pass

    def is_none(self) -> bool:
        return not self.is_some()


class Some(Maybe[T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        return Some(f(self._value))

    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        return f(self._value)

    def get_or_else(self, default: T) -> T:
        return self._value

    def is_some(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"Some({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Some) and self._value == other._value


class Nothing(Maybe[T]):

    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        return Nothing()

    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        return Nothing()

    def get_or_else(self, default: T) -> T:
        return default

    def is_some(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "Nothing()"

    def __eq__(self, other) -> bool:
        return isinstance(other, Nothing)


class Either(Generic[E, T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def is_right(self) -> bool:
        pass

    def is_left(self) -> bool:
        return not self.is_right()

    @abstractmethod
    def get_error(self) -> E:
        pass


class Right(Either[E, T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        return Right(f(self._value))

    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        return f(self._value)

    def get_or_else(self, default: T) -> T:
        return self._value

    def is_right(self) -> bool:
        return True

    def get_error(self) -> E:
        raise ValueError("Cannot get error from Right")

    def __repr__(self) -> str:
        return f"Right({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Right) and self._value == other._value


class Left(Either[E, T]):

    def __init__(self, error: E):
        self._error = error

    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        return self

    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        return self

    def get_or_else(self, default: T) -> T:
        return default

    def is_right(self) -> bool:
        return False

    def get_error(self) -> E:
        return self._error

    def __repr__(self) -> str:
        return f"Left({self._error!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Left) and self._error == other._error


def safe_account(accs: Iterable[Account], acc_id: Optional[str]) -> Maybe[Account]:
    for acc in accs:
        if acc.id == acc_id:
            return Some(acc)
    return Nothing()


def safe_category(cats: Iterable[Category], cat_id: Optional[str]) -> Maybe[Category]:
    for cat in cats:
        if cat.id == cat_id:
            return Some(cat)
    return Nothing()


def validate_window(days) -> Either[dict, int]:
    # bool is an int subclass but never a window size
    if isinstance(days, bool) or not isinstance(days, int):
        return Left({
            "error": "invalid_window",
            "message": f"Window must be a whole number of days, got {days!r}",
        })
    if days < 1:
        return Left({
            "error": "invalid_window",
            "message": f"Window must cover at least one day, got {days}",
        })
    return Right(days)


def validate_frequency(frequency: str, allowed: Iterable[str]) -> Either[dict, str]:
    allowed = tuple(allowed)
    if frequency not in allowed:
        return Left({
            "error": "unknown_frequency",
            "message": f"Frequency {frequency!r} is not one of {', '.join(allowed)}",
            "frequency": frequency,
        })
    return Right(frequency)


def validate_intent_shape(type_: str, amount: float, to_account_id: Optional[str]) -> Either[dict, str]:
    if type_ not in (INCOME, EXPENSE, TRANSFER):
        return Left({
            "error": "unknown_type",
            "message": f"Transaction type {type_!r} is not income, expense or transfer",
        })
    if amount < 0:
        return Left({
            "error": "negative_amount",
            "message": f"Amount must be a non-negative magnitude, got {amount}",
            "amount": amount,
        })
    if (type_ == TRANSFER) != (to_account_id is not None):
        return Left({
            "error": "transfer_destination",
            "message": "A destination account is required for transfers and only for transfers",
        })
    return Right(type_)


def pipe(x, *funcs):
    """Pipe a value through a series of functions.

    pipe(x, f, g, h) == h(g(f(x)))
    """
    res = x
    for f in funcs:
        res = f(res)
    return res


def require(result: Either[dict, T]) -> T:
    """Unwrap a validation result, raising InputError for a Left."""
    if result.is_left():
        raise InputError(result.get_error()["message"])
    return result.get_or_else(None)
