"""
Result Type

Explicit two-variant success/failure type returned by every store, upstream
and service operation. Failures carry a human-readable message and an
``ErrorCode`` so callers can surface them without raising.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, TypeVar, Union

from lawwatch.core.exceptions import ErrorCode, LawWatchError

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome holding a value."""
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def is_err(self) -> bool:
        return False


@dataclass(frozen=True)
class Err:
    """Failed outcome holding a message and error code."""
    error: str
    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_err(self) -> bool:
        return True


Result = Union[Ok[T], Err]


def ok(value: T = None) -> Ok[T]:
    return Ok(value)


def err(error: str, code: ErrorCode = ErrorCode.INTERNAL_ERROR) -> Err:
    return Err(error, code)


def is_success(result: "Result[Any]") -> bool:
    return isinstance(result, Ok)


def map_result(result: "Result[T]", fn: Callable[[T], U]) -> "Result[U]":
    """Apply ``fn`` to a success value; failures pass through."""
    if isinstance(result, Ok):
        return Ok(fn(result.value))
    return result


def map_error(result: "Result[T]", fn: Callable[[str], str]) -> "Result[T]":
    """Rewrite a failure message; successes pass through."""
    if isinstance(result, Err):
        return Err(fn(result.error), result.code)
    return result


def flat_map(result: "Result[T]", fn: Callable[[T], "Result[U]"]) -> "Result[U]":
    if isinstance(result, Ok):
        return fn(result.value)
    return result


def get_or_else(result: "Result[T]", default: T) -> T:
    if isinstance(result, Ok):
        return result.value
    return default


def combine(results: List["Result[Any]"]) -> "Result[List[Any]]":
    """Collect success values in order; the first failure wins."""
    values = []
    for result in results:
        if isinstance(result, Err):
            return result
        values.append(result.value)
    return Ok(values)


def _error_from_exception(exc: Exception) -> Err:
    if isinstance(exc, LawWatchError):
        return Err(exc.message, exc.error_code)
    return Err(str(exc) or type(exc).__name__, ErrorCode.INTERNAL_ERROR)


def try_catch(fn: Callable[[], T]) -> "Result[T]":
    """Run ``fn`` and normalize any raised exception into ``Err``."""
    try:
        return Ok(fn())
    except Exception as e:
        return _error_from_exception(e)


async def try_catch_async(fn: Union[Callable[[], Awaitable[T]], Awaitable[T]]) -> "Result[T]":
    """Await ``fn`` (a coroutine function or awaitable) and normalize failures into ``Err``."""
    try:
        awaitable = fn() if callable(fn) and not inspect.isawaitable(fn) else fn
        return Ok(await awaitable)
    except Exception as e:
        return _error_from_exception(e)


__all__ = [
    "Ok",
    "Err",
    "Result",
    "ok",
    "err",
    "is_success",
    "map_result",
    "map_error",
    "flat_map",
    "get_or_else",
    "combine",
    "try_catch",
    "try_catch_async",
]
