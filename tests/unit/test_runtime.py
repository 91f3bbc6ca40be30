"""
Tests for the runtime support library.

Tests cover:
- Storage cells
- ParamSpec validation and flags
- Handler registry bookkeeping
- Signal emission stages and accumulation
"""

import gc
import threading

import pytest

from gloam.runtime import (
    Break,
    Cell,
    Continue,
    ContractViolation,
    Mutex,
    OnceCell,
    ParamFlags,
    ParamSpec,
    Placeholder,
    PropertyValidationError,
    RefCell,
    RunTiming,
    RwLock,
    SignalSpec,
    WeakCell,
)
from gloam.runtime.signals import HandlerRegistry, emit_signal


class Referent:
    pass


class TestCells:
    def test_cell_replace(self):
        cell = Cell(1)

        assert cell.replace(2) == 1
        assert cell.get() == 2

    def test_refcell_get_copies(self):
        cell = RefCell([1, 2])
        cell.get().append(3)

        assert cell.get() == [1, 2]
        cell.borrow().append(3)
        assert cell.get() == [1, 2, 3]

    def test_oncecell(self):
        cell = OnceCell()

        assert not cell.is_set
        assert cell.get_or("fallback") == "fallback"
        with pytest.raises(ContractViolation):
            cell.get()

        cell.set("value")
        assert cell.get() == "value"
        with pytest.raises(ContractViolation):
            cell.set("again")

    def test_weakcell(self):
        referent = Referent()
        cell = WeakCell(referent)

        assert cell.get() is referent
        del referent
        gc.collect()

        assert cell.upgrade() is None
        with pytest.raises(ContractViolation):
            cell.get()

    def test_unset_weakcell_reads_none(self):
        assert WeakCell().get() is None

    def test_mutex_across_threads(self):
        cell = Mutex(0)

        def bump():
            for _ in range(1000):
                with cell.lock():
                    cell._value += 1

        threads = [threading.Thread(target=bump) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert cell.get() == 4000

    def test_rwlock(self):
        cell = RwLock("a")

        with cell.read() as value:
            assert value == "a"
        assert cell.replace("b") == "a"
        assert cell.get() == "b"

    def test_thread_safety_flags(self):
        assert not Cell.thread_safe
        assert not RefCell.thread_safe
        assert Mutex.thread_safe
        assert RwLock.thread_safe

    def test_placeholder_has_no_storage(self):
        with pytest.raises(TypeError):
            Placeholder()


class TestParamSpec:
    def test_flags(self):
        pspec = ParamSpec(
            "tag",
            "str",
            ParamFlags.READABLE | ParamFlags.WRITABLE | ParamFlags.CONSTRUCT_ONLY,
        )

        assert pspec.readable
        assert pspec.writable
        assert pspec.construct_only
        assert pspec.is_construct
        assert not pspec.lax
        assert not pspec.explicit_notify

    def test_strict_bounds(self):
        pspec = ParamSpec("count", "u8", minimum=0, maximum=10)

        assert pspec.validate(10) == 10
        with pytest.raises(PropertyValidationError) as exc_info:
            pspec.validate(11)
        assert exc_info.value.name == "count"

    def test_lax_bounds(self):
        pspec = ParamSpec("level", "int", ParamFlags.READWRITE | ParamFlags.LAX_VALIDATION, minimum=1, maximum=5)

        assert pspec.validate(0) == 1
        assert pspec.validate(9) == 5

    @pytest.mark.parametrize(
        "value_type,value",
        [("int", "1"), ("int", True), ("bool", 1), ("str", 3), ("f64", "1.0")],
    )
    def test_wrong_type(self, value_type, value):
        with pytest.raises(PropertyValidationError):
            ParamSpec("value", value_type).validate(value)

    def test_float_coercion(self):
        assert ParamSpec("ratio", "f32").validate(2) == 2.0
        assert isinstance(ParamSpec("ratio", "f32").validate(2), float)

    def test_untyped_accepts_anything(self):
        marker = object()

        assert ParamSpec("data").validate(marker) is marker


class TestHandlerRegistry:
    def test_ids_are_unique(self):
        registry = HandlerRegistry()
        first = registry.connect("changed", print)
        second = registry.connect("changed", print)

        assert first != second
        assert [h.id for h in registry.handlers("changed")] == [first, second]

    def test_disconnect(self):
        registry = HandlerRegistry()
        handler_id = registry.connect("changed", print)

        assert registry.disconnect(handler_id)
        assert not registry.disconnect(handler_id)
        assert registry.handlers("changed") == []

    def test_block_is_counted(self):
        registry = HandlerRegistry()
        handler_id = registry.connect("changed", print)
        registry.block(handler_id)
        registry.block(handler_id)
        registry.unblock(handler_id)

        assert not registry.find(handler_id).matches(None)
        registry.unblock(handler_id)
        assert registry.find(handler_id).matches(None)
        with pytest.raises(ContractViolation):
            registry.unblock(handler_id)

    def test_detail_filter(self):
        registry = HandlerRegistry()
        handler = registry.find(registry.connect("changed", print, detail="a"))

        assert handler.matches("a")
        assert not handler.matches("b")


def emit(spec, *args, class_handler=None, registry=None, detail=None):
    return emit_signal(object(), spec, args, detail, class_handler, registry or HandlerRegistry())


class TestEmission:
    def test_stage_order(self):
        calls = []
        registry = HandlerRegistry()
        registry.connect("go", lambda obj: calls.append("after"), after=True)
        registry.connect("go", lambda obj: calls.append("handler"))

        emit(SignalSpec("go"), class_handler=lambda: calls.append("class"), registry=registry)

        assert calls == ["handler", "class", "after"]

    def test_run_first(self):
        calls = []
        registry = HandlerRegistry()
        registry.connect("go", lambda obj: calls.append("handler"))

        emit(
            SignalSpec("go", run_timing=RunTiming.FIRST),
            class_handler=lambda: calls.append("class"),
            registry=registry,
        )

        assert calls == ["class", "handler"]

    def test_last_value_wins_without_accumulator(self):
        registry = HandlerRegistry()
        registry.connect("value", lambda obj: 2)

        assert emit(SignalSpec("value"), class_handler=lambda: 1, registry=registry) == 1

    def test_accumulator(self):
        spec = SignalSpec("sum", param_types=("int",), accumulator=lambda accu, value: accu + value, initial=0)
        registry = HandlerRegistry()
        registry.connect("sum", lambda obj, n: n * 10)

        assert emit(spec, 2, class_handler=lambda n: n, registry=registry) == 22

    def test_continue_and_break(self):
        def fold(accu, value):
            if value < 0:
                return Break(accu)
            return Continue(accu + value)

        calls = []
        spec = SignalSpec("sum", accumulator=fold, initial=0)
        registry = HandlerRegistry()
        registry.connect("sum", lambda obj: 5)
        registry.connect("sum", lambda obj: -1)
        registry.connect("sum", lambda obj: calls.append("late") or 100)

        assert emit(spec, registry=registry) == 5
        assert calls == []

    def test_cleanup_runs_after_break_without_folding(self):
        calls = []
        spec = SignalSpec(
            "sum",
            run_timing=RunTiming.CLEANUP,
            accumulator=lambda accu, value: Break(value),
            initial=0,
        )
        registry = HandlerRegistry()
        registry.connect("sum", lambda obj: 3)

        result = emit(spec, class_handler=lambda: calls.append("cleanup") or 99, registry=registry)

        assert result == 3
        assert calls == ["cleanup"]

    def test_cleanup_runs_when_a_handler_raises(self):
        calls = []
        spec = SignalSpec("changed", run_timing=RunTiming.CLEANUP)
        registry = HandlerRegistry()

        def fail(obj):
            raise ValueError("handler failed")

        registry.connect("changed", fail)

        with pytest.raises(ValueError):
            emit(spec, class_handler=lambda: calls.append("cleanup"), registry=registry)
        assert calls == ["cleanup"]

    def test_hint_accumulator(self):
        hints = []

        def fold(hint, accu, value):
            hints.append((hint.signal_name, hint.detail, hint.run_type))
            return accu + value

        spec = SignalSpec("sum", detailed=True, accumulator=fold, takes_hint=True, initial=0)

        assert emit(spec, class_handler=lambda: 4, detail="x") == 4
        assert hints == [("sum", "x", RunTiming.LAST)]

    def test_handler_blocked_by_earlier_handler(self):
        registry = HandlerRegistry()
        seen = []
        second = None

        def first(obj):
            registry.block(second)
            seen.append("first")

        registry.connect("go", first)
        second = registry.connect("go", lambda obj: seen.append("second"))

        emit(SignalSpec("go"), registry=registry)

        assert seen == ["first"]

    def test_wrong_argument_count(self):
        with pytest.raises(ContractViolation):
            emit(SignalSpec("go", param_types=("int",)))

    def test_detail_on_plain_signal(self):
        with pytest.raises(ContractViolation):
            emit(SignalSpec("go"), detail="x")
