"""
Property storage cells.

Each storage shape a property field can be declared with has a cell class
here. Generated imp classes hold one cell per stored property; the object
machinery only uses the common ``get``/``set`` surface.
"""

from __future__ import annotations

import copy
import threading
import weakref
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Generic, TypeVar

from .errors import ContractViolation

T = TypeVar("T")

_UNSET: Any = object()


class Cell(Generic[T]):
    """Interior-mutable value; the getter returns the value itself."""

    thread_safe = False

    def __init__(self, value: T | None = None):
        self._value = value

    def get(self) -> T:
        return self._value  # type: ignore[return-value]

    def set(self, value: T) -> None:
        self._value = value

    def replace(self, value: T) -> T:
        """Store a new value and return the previous one."""
        old = self.get()
        self.set(value)
        return old

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"


class RefCell(Cell[T]):
    """Borrowed storage: ``get`` returns a copy, ``borrow`` the live value."""

    def get(self) -> T:
        return copy.copy(self._value)  # type: ignore[return-value]

    def borrow(self) -> T:
        return self._value  # type: ignore[return-value]


class OnceCell(Cell[T]):
    """Settable exactly once."""

    def __init__(self) -> None:
        super().__init__(_UNSET)

    @property
    def is_set(self) -> bool:
        return self._value is not _UNSET

    def get(self) -> T:
        if not self.is_set:
            raise ContractViolation("OnceCell read before it was set")
        return self._value  # type: ignore[return-value]

    def get_or(self, default: T) -> T:
        return self._value if self.is_set else default  # type: ignore[return-value]

    def set(self, value: T) -> None:
        if self.is_set:
            raise ContractViolation("OnceCell can only be set once")
        self._value = value


class WeakCell(Cell[T]):
    """
    Weak back-reference.

    Reading after the referent has been collected is a contract violation;
    a cell that was never set reads as None.
    """

    def __init__(self, value: T | None = None):
        self._ref: weakref.ReferenceType[Any] | None = None
        if value is not None:
            self.set(value)

    def get(self) -> T:
        if self._ref is None:
            return None  # type: ignore[return-value]
        value = self._ref()
        if value is None:
            raise ContractViolation("WeakCell referent no longer exists")
        return value

    def upgrade(self) -> T | None:
        """The referent, or None once it is gone."""
        return self._ref() if self._ref is not None else None

    def set(self, value: T) -> None:
        self._ref = weakref.ref(value) if value is not None else None

    def __repr__(self) -> str:
        return f"WeakCell({self.upgrade()!r})"


class Mutex(Cell[T]):
    """Exclusive-lock storage, safe to share across threads."""

    thread_safe = True

    def __init__(self, value: T | None = None):
        super().__init__(value)
        self._lock = threading.Lock()

    def get(self) -> T:
        with self._lock:
            return self._value  # type: ignore[return-value]

    def set(self, value: T) -> None:
        with self._lock:
            self._value = value

    def replace(self, value: T) -> T:
        with self._lock:
            old, self._value = self._value, value
            return old  # type: ignore[return-value]

    @contextmanager
    def lock(self) -> Iterator[Mutex[T]]:
        """Hold the lock across several operations on the raw value."""
        with self._lock:
            yield self


class RwLock(Cell[T]):
    """Reader/writer-lock storage: concurrent readers, one writer."""

    thread_safe = True

    def __init__(self, value: T | None = None):
        super().__init__(value)
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self) -> Iterator[T]:
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield self._value  # type: ignore[misc]
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[RwLock[T]]:
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield self
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()

    def get(self) -> T:
        with self.read() as value:
            return value

    def set(self, value: T) -> None:
        with self.write():
            self._value = value

    def replace(self, value: T) -> T:
        with self.write():
            old, self._value = self._value, value
            return old  # type: ignore[return-value]


class Placeholder(Generic[T]):
    """Marker for properties without local storage; never instantiated."""

    def __init__(self) -> None:
        raise TypeError("Placeholder properties have no storage")
