from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Callable, Generic, TypeVar, Union

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

    @abstractmethod
    def get_error(self) -> E:
        pass

    def is_left(self) -> bool:
        return not self.is_right()


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
        return Left(self._error)

    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        return Left(self._error)

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


def parse_amount(raw: Union[str, int, float, Decimal, None]) -> Either[dict, Decimal]:
    """Turn form input into a positive Decimal amount.

    Strings may carry a peso sign, a leading "P" and thousands separators.
    """
    if raw is None or isinstance(raw, bool):
        return Left({"error": "invalid_amount", "message": "Please enter a valid amount."})

    if isinstance(raw, str):
        text = raw.strip().replace(",", "").replace("₱", "")
        if text[:1] in ("P", "p"):
            text = text[1:].strip()
    else:
        text = str(raw)

    try:
        amount = Decimal(text)
    except InvalidOperation:
        return Left({"error": "invalid_amount", "message": f"'{raw}' is not a valid amount."})

    if not amount.is_finite():
        return Left({"error": "invalid_amount", "message": f"'{raw}' is not a valid amount."})
    try:
        amount = amount.quantize(Decimal("0.01"))
    except InvalidOperation:
        return Left({"error": "invalid_amount", "message": f"'{raw}' is too large."})
    # checked after rounding: "0.004" would otherwise post as 0.00
    if amount <= 0:
        return Left({
            "error": "non_positive_amount",
            "message": "Payment amount must be greater than zero.",
            "amount": amount,
        })
    return Right(amount)


def validate_channel(channel: str) -> Either[dict, str]:
    if channel is None or not str(channel).strip():
        return Left({"error": "missing_channel", "message": "A payment channel is required."})
    return Right(str(channel).strip())

