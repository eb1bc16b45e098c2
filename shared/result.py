"""
Tagged success/error values for the boundary between core logic and the
HTTP edge.
"""

from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")

_UNSET = object()


class Result(Generic[T, E]):
    """Either a success payload or one error value, never both."""

    __slots__ = ("_value", "_error")

    def __init__(self, value: Union[T, object] = _UNSET, error: Union[E, object] = _UNSET):
        if (value is _UNSET) == (error is _UNSET):
            raise ValueError("Result needs exactly one of value or error")
        self._value = value
        self._error = error

    @classmethod
    def ok(cls, value: T) -> "Result[T, E]":
        return cls(value=value)

    @classmethod
    def err(cls, error: E) -> "Result[T, E]":
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self._error is _UNSET

    @property
    def is_err(self) -> bool:
        return not self.is_ok

    @property
    def value(self) -> T:
        if self.is_err:
            raise ValueError("Called value on Result.err")
        return self._value  # type: ignore[return-value]

    @property
    def error(self) -> E:
        if self.is_ok:
            raise ValueError("Called error on Result.ok")
        return self._error  # type: ignore[return-value]

    def __repr__(self) -> str:
        if self.is_ok:
            return f"Result.ok({self._value!r})"
        return f"Result.err({self._error!r})"
