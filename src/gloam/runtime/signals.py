"""
Signal specifications and emission.

Emission runs in five stages: the run-first class handler, connected
handlers in connection order, the run-last class handler, ``after``
handlers, and the run-cleanup class handler. An accumulator folds each
return value; returning ``Break`` stops the remaining stages except cleanup.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import ContractViolation

logger = logging.getLogger(__name__)


class RunTiming(str, Enum):
    FIRST = "run_first"
    LAST = "run_last"
    CLEANUP = "run_cleanup"


@dataclass(frozen=True)
class Continue:
    """Accumulator result: keep folding with this value."""

    value: Any


@dataclass(frozen=True)
class Break:
    """Accumulator result: stop emission with this value."""

    value: Any


@dataclass(frozen=True)
class SignalInvocationHint:
    """Passed to three-argument accumulators."""

    signal_name: str
    detail: str | None
    run_type: RunTiming


@dataclass
class SignalSpec:
    """
    One registered signal.

    Attributes:
        name: Registered signal name
        param_types: Declared argument annotations, one per argument
        run_timing: Stage the class handler runs in
        class_handler: Default handler, called with the owner's imp
        accumulator: Fold function ``(accu, value)`` or ``(hint, accu, value)``
        initial: Starting accumulated value
    """

    name: str
    param_types: tuple[str | None, ...] = ()
    return_type: str | None = None
    run_timing: RunTiming = RunTiming.LAST
    detailed: bool = False
    action: bool = False
    deprecated: bool = False
    class_handler: Callable[..., Any] | None = None
    accumulator: Callable[..., Any] | None = None
    takes_hint: bool = False
    initial: Any = None
    owner: type | None = None

    @property
    def param_count(self) -> int:
        return len(self.param_types)


@dataclass(eq=False)
class Handler:
    """A connected callback."""

    id: int
    signal: str
    callback: Callable[..., Any]
    detail: str | None = None
    after: bool = False
    blocked: int = 0
    connected: bool = True

    def matches(self, detail: str | None) -> bool:
        return self.connected and not self.blocked and (self.detail is None or self.detail == detail)


@dataclass
class HandlerRegistry:
    """Per-instance connected handlers, in connection order."""

    _handlers: dict[str, list[Handler]] = field(default_factory=dict)
    _next_id: int = 1

    def connect(
        self,
        signal: str,
        callback: Callable[..., Any],
        detail: str | None = None,
        after: bool = False,
    ) -> int:
        handler = Handler(id=self._next_id, signal=signal, callback=callback, detail=detail, after=after)
        self._next_id += 1
        self._handlers.setdefault(signal, []).append(handler)
        return handler.id

    def find(self, handler_id: int) -> Handler | None:
        for handlers in self._handlers.values():
            for handler in handlers:
                if handler.id == handler_id:
                    return handler
        return None

    def disconnect(self, handler_id: int) -> bool:
        handler = self.find(handler_id)
        if handler is None:
            return False
        handler.connected = False
        self._handlers[handler.signal].remove(handler)
        return True

    def block(self, handler_id: int) -> None:
        handler = self.find(handler_id)
        if handler is None:
            raise ContractViolation(f"No handler with id {handler_id}")
        handler.blocked += 1

    def unblock(self, handler_id: int) -> None:
        handler = self.find(handler_id)
        if handler is None or not handler.blocked:
            raise ContractViolation(f"Handler {handler_id} is not blocked")
        handler.blocked -= 1

    def handlers(self, signal: str) -> list[Handler]:
        """Snapshot of the handlers for one signal."""
        return list(self._handlers.get(signal, []))

    def clear(self) -> None:
        for handlers in self._handlers.values():
            for handler in handlers:
                handler.connected = False
        self._handlers.clear()


class _Emission:
    """Fold state for a single emission."""

    def __init__(self, spec: SignalSpec, detail: str | None):
        self.spec = spec
        self.detail = detail
        self.value = spec.initial if spec.accumulator is not None else None
        self.stopped = False

    def fold(self, result: Any, run_type: RunTiming) -> None:
        spec = self.spec
        if spec.accumulator is None:
            self.value = result
            return
        if spec.takes_hint:
            hint = SignalInvocationHint(signal_name=spec.name, detail=self.detail, run_type=run_type)
            folded = spec.accumulator(hint, self.value, result)
        else:
            folded = spec.accumulator(self.value, result)

        if isinstance(folded, Break):
            self.value = folded.value
            self.stopped = True
        elif isinstance(folded, Continue):
            self.value = folded.value
        else:
            self.value = folded


def emit_signal(
    instance: Any,
    spec: SignalSpec,
    args: tuple[Any, ...],
    detail: str | None,
    class_handler: Callable[..., Any] | None,
    registry: HandlerRegistry,
) -> Any:
    """
    Run one emission and return the accumulated result.

    Args:
        instance: The emitting object, passed first to every connected handler
        spec: The signal being emitted
        args: Emission arguments, excluding the instance
        detail: Detail string for detailed signals
        class_handler: Resolved class handler, already bound to its receiver
        registry: The instance's connected handlers
    """
    if len(args) != spec.param_count:
        raise ContractViolation(
            f"Signal '{spec.name}' takes {spec.param_count} argument(s), {len(args)} given"
        )
    if detail is not None and not spec.detailed:
        raise ContractViolation(f"Signal '{spec.name}' is not detailed")

    emission = _Emission(spec, detail)
    handlers = registry.handlers(spec.name)

    stages: list[tuple[RunTiming, Callable[[], Any]]] = []
    if class_handler is not None and spec.run_timing == RunTiming.FIRST:
        stages.append((RunTiming.FIRST, lambda: class_handler(*args)))
    for handler in handlers:
        if not handler.after:
            stages.append((RunTiming.FIRST, _bind(handler, instance, args, detail)))
    if class_handler is not None and spec.run_timing == RunTiming.LAST:
        stages.append((RunTiming.LAST, lambda: class_handler(*args)))
    for handler in handlers:
        if handler.after:
            stages.append((RunTiming.LAST, _bind(handler, instance, args, detail)))

    cleanup = class_handler if spec.run_timing == RunTiming.CLEANUP else None
    completed = False
    try:
        for run_type, call in stages:
            if emission.stopped:
                break
            result = call()
            if result is _SKIPPED:
                continue
            emission.fold(result, run_type)
        completed = True
    finally:
        # runs even if a handler raised
        if cleanup is not None:
            result = cleanup(*args)
            if completed and not emission.stopped:
                emission.fold(result, RunTiming.CLEANUP)

    logger.debug("Emitted %s (detail=%s) -> %r", spec.name, detail, emission.value)
    return emission.value


_SKIPPED: Any = object()


def _bind(handler: Handler, instance: Any, args: tuple[Any, ...], detail: str | None) -> Callable[[], Any]:
    def call() -> Any:
        # Handlers can be blocked or disconnected by an earlier stage.
        if not handler.matches(detail):
            return _SKIPPED
        return handler.callback(instance, *args)

    return call
