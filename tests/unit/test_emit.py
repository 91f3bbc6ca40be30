"""
Tests for module emission.

Tests cover:
- Header, import order and copied module items
- Class layout of the imp, ext and wrapper classes
- Registration call contents
- Registration function for hand-written wrappers
- Determinism and refusal to emit unnamed definitions
"""

import ast

import pytest

from gloam.core.errors import EmitError
from gloam.emit import EmitOptions, emit_definition

COUNTER = """
import math
from typing import Optional

SCALE = 2

@gclass(ns="Demo")
class Counter:
    \"\"\"Counts things.\"\"\"

    count: Cell[u8] = prop(get, set, explicit_notify, maximum=100)
    name: RefCell[Optional[str]] = prop(get)

    @signal(run_first)
    def changed(self, value: int) -> None:
        self.count.set(value)

    @virt
    def scaled(self) -> float:
        return math.sqrt(self.count.get()) * SCALE
"""


def class_names(output):
    return [node.name for node in ast.parse(output).body if isinstance(node, ast.ClassDef)]


class TestModuleLayout:
    def test_header_and_imports(self, compile_text):
        output = compile_text(COUNTER, file="counter.py").output
        lines = output.splitlines()

        assert lines[0] == "# Generated by gloam from counter.py. Do not edit."
        assert lines[1] == "from __future__ import annotations"
        assert "import math" in lines
        assert "from typing import Optional" in lines
        assert "from gloam import runtime as _rt" in lines
        assert "SCALE = 2" in lines

    def test_future_import_is_not_repeated(self, compile_text):
        output = compile_text("from __future__ import annotations\n\n@gclass\nclass Plain:\n    pass\n").output

        assert output.count("from __future__ import annotations") == 1

    def test_class_order(self, compile_text):
        output = compile_text(COUNTER).output

        assert class_names(output) == ["_CounterImp", "CounterExt", "Counter"]

    def test_output_is_valid_python(self, compile_text):
        ast.parse(compile_text(COUNTER).output)

    def test_deterministic(self, compile_text):
        assert compile_text(COUNTER).output == compile_text(COUNTER).output

    def test_docstring_on_wrapper(self, compile_text):
        tree = ast.parse(compile_text(COUNTER).output)
        wrapper = next(n for n in tree.body if isinstance(n, ast.ClassDef) and n.name == "Counter")

        assert ast.get_docstring(wrapper) == "Counts things."

    def test_runtime_module_option(self, compile_text):
        output = compile_text(COUNTER, runtime_module="rt").output

        assert "import rt as _rt" in output.splitlines()

    def test_nothing_emitted_with_diagnostics(self, compile_text):
        result = compile_text("@gclass\nclass Broken:\n    value: int = prop(get)\n")

        assert not result.success
        assert result.output is None


class TestMembers:
    def test_ext_members(self, compile_text):
        output = compile_text(COUNTER).output

        for member in (
            "def count(self) -> int:",
            "def set_count(self, value: int) -> None:",
            "def pspec_count(self) -> _rt.ParamSpec:",
            "def notify_count(self) -> None:",
            "def connect_count_notify(self, callback) -> int:",
            "def borrow_name(self) -> Optional[str]:",
            "def emit_changed(self, value: int) -> None:",
            "def connect_changed(self, callback, after: bool=False) -> int:",
            "def scaled(self) -> float:",
        ):
            assert member in output

    def test_read_only_property_has_no_setter(self, compile_text):
        assert "def set_name" not in compile_text(COUNTER).output

    def test_detailed_signal_takes_detail(self, compile_text):
        output = compile_text(
            """
            @gclass
            class Button:
                @signal(detailed)
                def clicked(self, times: int) -> None:
                    pass
            """
        ).output

        assert "def emit_clicked(self, detail: str | None, times: int) -> None:" in output
        assert "return self.emit('clicked', times, detail=detail)" in output

    def test_storage_cells(self, compile_text):
        output = compile_text(COUNTER).output

        assert "self.count = _rt.Cell(0)" in output
        assert "self.name = _rt.RefCell(None)" in output

    def test_final_class_has_no_ext(self, compile_text):
        output = compile_text(
            """
            @gclass(final)
            class Leaf:
                value: Cell[int] = prop(get)
            """
        ).output

        assert class_names(output) == ["_LeafImp", "Leaf"]
        assert "def value(self) -> int:" in output

    def test_custom_ext_name(self, compile_text):
        output = compile_text("@gclass(ext_trait='CounterApi')\nclass Counter:\n    pass\n").output

        assert class_names(output) == ["_CounterImp", "CounterApi", "Counter"]

    def test_interface_layout(self, compile_text):
        output = compile_text(
            """
            @ginterface(ns="Demo")
            class Named:
                name: Placeholder[str] = prop(get)
            """
        ).output

        assert class_names(output) == ["_NamedIface", "NamedExt", "Named"]
        assert "class Named(NamedExt, _rt.Interface):" in output
        assert "_rt.register_interface(" in output


class TestRegistration:
    def test_param_spec(self, compile_text):
        output = compile_text(COUNTER).output

        assert (
            "_rt.ParamSpec('count', 'u8', _rt.ParamFlags.READABLE | _rt.ParamFlags.WRITABLE | "
            "_rt.ParamFlags.EXPLICIT_NOTIFY, default=0, minimum=0, maximum=100, field='count')"
        ) in output

    def test_signal_spec(self, compile_text):
        output = compile_text(COUNTER).output

        assert (
            "_rt.SignalSpec('changed', param_types=('int',), run_timing=_rt.RunTiming.FIRST, "
            "class_handler=_CounterImp.changed)"
        ) in output

    def test_vtable(self, compile_text):
        assert "vtable={'scaled': _CounterImp.scaled}" in compile_text(COUNTER).output

    def test_type_name(self, compile_text):
        assert "_rt.register_class(\n    Counter,\n    'DemoCounter'," in compile_text(COUNTER).output

    def test_register_function_without_wrapper(self, compile_text):
        output = compile_text("@gclass(wrapper=False)\nclass Counter:\n    value: Cell[int] = prop(get)\n").output

        assert class_names(output) == ["_CounterImp", "CounterExt"]
        assert "def register_counter(cls):" in output
        assert "cls.__imp__ = _CounterImp" in output


class TestEmitDefinition:
    def test_unnamed_definition(self, compile_text):
        definition = compile_text("@methods\nclass Loose:\n    pass\n").definition

        with pytest.raises(EmitError):
            emit_definition(definition, EmitOptions())
