"""
Tests for signal derivation.

Tests cover:
- Run timing, detail and connect flags
- Accumulator pairing from either side
- Duplicate signals reported without dropping either
- Receiver and accumulator shape checks
"""

from gloam.core.errors import DiagnosticCode
from gloam.core.ir import RunTiming
from gloam.core.signals import unwrap_optional


def signals_of(result):
    return {s.name: s for s in result.definition.inner.signals}


class TestSignalOptions:
    def test_timing_and_flags(self, compile_text):
        result = compile_text(
            """
            @gclass
            class Button:
                @signal(run_first, detailed)
                def clicked(self, times: int) -> None:
                    pass

                @signal
                def released(self):
                    ...

                @signal(run_cleanup, action, connect=False)
                def activate(self):
                    print("activated")
            """
        )
        assert result.success, result.diagnostics.format()
        signals = signals_of(result)

        assert signals["clicked"].run_timing == RunTiming.FIRST
        assert signals["clicked"].detailed
        assert [p.name for p in signals["clicked"].params] == ["times"]
        assert signals["released"].run_timing == RunTiming.LAST
        assert not signals["released"].has_class_handler
        assert signals["activate"].run_timing == RunTiming.CLEANUP
        assert signals["activate"].action
        assert not signals["activate"].connect
        assert signals["activate"].has_class_handler

    def test_name_from_method(self, compile_text):
        result = compile_text(
            """
            @gclass
            class Button:
                @signal
                def size_changed(self):
                    pass

                @signal(name="explicit-name")
                def other(self):
                    pass
            """
        )
        assert set(signals_of(result)) == {"size-changed", "explicit-name"}

    def test_timing_is_exclusive(self, compile_text):
        result = compile_text(
            """
            @gclass
            class Button:
                @signal(run_first, run_last)
                def clicked(self):
                    pass
            """
        )
        assert result.diagnostics.codes() == [
            DiagnosticCode.DISALLOWED_COMBINATION,
            DiagnosticCode.DISALLOWED_COMBINATION,
        ]

    def test_receiver_required(self, compile_text):
        result = compile_text(
            """
            @gclass
            class Button:
                @signal
                def clicked(times: int):
                    pass
            """
        )
        assert result.diagnostics.codes() == [DiagnosticCode.RECEIVER_ORDER]

    def test_override_on_interface(self, compile_text):
        result = compile_text(
            """
            @ginterface
            class Clickable:
                @signal(override)
                def clicked(self):
                    pass
            """
        )
        assert DiagnosticCode.DISALLOWED_COMBINATION in result.diagnostics.codes()


class TestDuplicates:
    def test_duplicate_signal_is_reported_and_kept(self, compile_text):
        result = compile_text(
            """
            @gclass
            class Button:
                @signal
                def clicked(self):
                    pass

                @signal(name="clicked")
                def clicked_again(self):
                    pass

                @signal
                def released(self):
                    pass
            """
        )
        assert result.diagnostics.codes() == [DiagnosticCode.DUPLICATE_NAME]
        names = [s.name for s in result.definition.inner.signals]
        assert names == ["clicked", "clicked", "released"]
        assert result.output is None

    def test_duplicate_across_collections(self, compile_text):
        result = compile_text(
            """
            @gclass
            class Button:
                @signal
                def clicked(self):
                    pass

            @methods
            class ButtonSignals:
                @signal
                def clicked(self):
                    pass
            """
        )
        assert result.diagnostics.codes() == [DiagnosticCode.DUPLICATE_NAME]
        assert [s.name for s in result.definition.inner.signals] == ["clicked", "clicked"]
        assert result.output is None

    def test_signal_and_virtual_method_share_a_name(self, compile_text):
        result = compile_text(
            """
            @gclass
            class Button:
                @signal
                def clicked(self):
                    pass

            @methods
            class ButtonVirtuals:
                @virt
                def clicked(self) -> None:
                    pass
            """
        )
        assert result.diagnostics.codes() == [DiagnosticCode.DUPLICATE_NAME]
        assert "both as a signal and as a virtual method" in result.diagnostics.messages()[0]
        assert result.output is None


class TestAccumulators:
    def test_named_by_signal(self, compile_text):
        result = compile_text(
            """
            @gclass
            class Counter:
                @signal(accumulator="sum_up")
                def changed(self, value: int) -> int:
                    return value

                def sum_up(accu: int, value: int) -> int:
                    return accu + value
            """
        )
        assert result.success, result.diagnostics.format()
        signal = signals_of(result)["changed"]

        assert signal.accumulator.name == "sum_up"
        assert not signal.accumulator.takes_hint
        assert signal.accumulator.initial == 0
        # the accumulator is no longer a plain method
        plain = [m.name for c in result.definition.inner.method_collections for m in c.methods]
        assert "sum_up" not in plain

    def test_named_by_accumulator_tag(self, compile_text):
        result = compile_text(
            """
            @gclass
            class Counter:
                @signal
                def changed(self, value: int) -> int:
                    return value

                @accumulator("changed")
                def first_wins(hint, accu: int, value: int) -> int:
                    return accu or value
            """
        )
        assert result.success, result.diagnostics.format()
        signal = signals_of(result)["changed"]

        assert signal.accumulator.name == "first_wins"
        assert signal.accumulator.takes_hint

    def test_optional_accumulated_type_starts_at_none(self, compile_text):
        result = compile_text(
            """
            from typing import Optional

            @gclass
            class Joiner:
                @signal(accumulator="join")
                def text(self, part: str) -> Optional[str]:
                    return part

                def join(accu: Optional[str], value: Optional[str]) -> Optional[str]:
                    return (accu or "") + (value or "")
            """
        )
        assert result.success, result.diagnostics.format()
        assert signals_of(result)["text"].accumulator.initial is None

    def test_missing_accumulator(self, compile_text):
        result = compile_text(
            """
            @gclass
            class Counter:
                @signal(accumulator="nowhere")
                def changed(self, value: int) -> int:
                    return value
            """
        )
        assert result.diagnostics.codes() == [DiagnosticCode.UNRESOLVED_ACCUMULATOR]

    def test_accumulator_for_missing_signal(self, compile_text):
        result = compile_text(
            """
            @gclass
            class Counter:
                @accumulator("nowhere")
                def fold(accu: int, value: int) -> int:
                    return accu
            """
        )
        assert result.diagnostics.codes() == [DiagnosticCode.UNRESOLVED_ACCUMULATOR]

    def test_accumulator_needs_return_type(self, compile_text):
        result = compile_text(
            """
            @gclass
            class Counter:
                @signal(accumulator="fold")
                def changed(self, value: int):
                    pass

                def fold(accu, value):
                    return accu
            """
        )
        assert result.diagnostics.codes() == [DiagnosticCode.TYPE_SHAPE_MISMATCH]

    def test_accumulator_type_mismatch(self, compile_text):
        result = compile_text(
            """
            @gclass
            class Counter:
                @signal(accumulator="fold")
                def changed(self, value: int) -> int:
                    return value

                def fold(accu: str, value: int) -> str:
                    return accu
            """
        )
        assert result.diagnostics.codes() == [DiagnosticCode.TYPE_SHAPE_MISMATCH]

    def test_accumulator_must_not_take_receiver(self, compile_text):
        result = compile_text(
            """
            @gclass
            class Counter:
                @signal(accumulator="fold")
                def changed(self, value: int) -> int:
                    return value

                def fold(self, accu: int, value: int) -> int:
                    return accu
            """
        )
        assert DiagnosticCode.RECEIVER_ORDER in result.diagnostics.codes()


class TestUnwrapOptional:
    def test_forms(self):
        assert unwrap_optional("Optional[int]") == ("int", True)
        assert unwrap_optional("typing.Optional[str]") == ("str", True)
        assert unwrap_optional("int | None") == ("int", True)
        assert unwrap_optional("None | int") == ("int", True)
        assert unwrap_optional("int") == ("int", False)
