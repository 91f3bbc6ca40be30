"""
Signal deriver.

Takes signal-tagged methods out of their collections and turns them into
SignalDefinitions, pairing each with its accumulator function when one is
named. Duplicate names are reported but both signals are still derived.
"""

from __future__ import annotations

import logging
import re

from .attributes import ACCUMULATOR_OPTIONS, SIGNAL_OPTIONS, AttributeParser, ParsedOptions
from .errors import DiagnosticCode, Diagnostics
from .ir import (
    AccumulatorDefinition,
    MethodItem,
    MethodRole,
    RunTiming,
    SignalDefinition,
    TypeBase,
)
from .ir.items import RECEIVER, ParameterKind
from .ir.properties import zero_value
from .naming import is_valid_name, member_name
from .source import RawCollection, RawMethod
from .validations import disallow, only_one

logger = logging.getLogger(__name__)

_OPTIONAL = re.compile(r"^(?:typing\.)?Optional\[(?P<a>.+)\]$|^(?P<b>.+?)\s*\|\s*None$|^None\s*\|\s*(?P<c>.+)$")


def unwrap_optional(annotation: str) -> tuple[str, bool]:
    """``Optional[int]`` / ``int | None`` -> ("int", True)."""
    match = _OPTIONAL.match(annotation.strip())
    if not match:
        return annotation.strip(), False
    inner = match.group("a") or match.group("b") or match.group("c")
    return inner.strip(), True


def check_receiver(item: MethodItem, what: str, diagnostics: Diagnostics) -> bool:
    """The implicit receiver must come first, and only there."""
    ok = True
    if not item.has_receiver:
        diagnostics.push(
            DiagnosticCode.RECEIVER_ORDER,
            f"First argument to {what} `{item.name}` must be `{RECEIVER}`",
            item.location,
        )
        ok = False
    for param in item.params[1:]:
        if param.name == RECEIVER:
            diagnostics.push(
                DiagnosticCode.RECEIVER_ORDER,
                f"`{RECEIVER}` must be the first argument of {what} `{item.name}`",
                item.location,
            )
            ok = False
    return ok


class SignalDeriver:
    """Derives SignalDefinitions across every method collection."""

    def __init__(self, parser: AttributeParser, diagnostics: Diagnostics, base: TypeBase = TypeBase.CLASS):
        self.parser = parser
        self.diagnostics = diagnostics
        self.base = base

    def derive(self, collections: list[RawCollection]) -> list[SignalDefinition]:
        signals: list[SignalDefinition] = []
        seen: set[str] = set()
        for collection in collections:
            signals.extend(self._derive_collection(collection, seen))
        logger.debug("Derived %d signals", len(signals))
        return signals

    def _derive_collection(self, collection: RawCollection, seen: set[str]) -> list[SignalDefinition]:
        """Derive one collection; ``seen`` holds signal names from every collection so far."""
        diagnostics = self.diagnostics
        derived: list[tuple[SignalDefinition, ParsedOptions]] = []

        for entry in collection.of_role(MethodRole.SIGNAL):
            collection.take(entry)
            options = self.parser.parse(entry.tag, SIGNAL_OPTIONS)
            signal = self._signal(entry, options, collection.index)
            if signal.name in seen:
                diagnostics.push(
                    DiagnosticCode.DUPLICATE_NAME,
                    f"Duplicate definition for signal `{signal.name}`",
                    signal.location,
                )
            seen.add(signal.name)
            derived.append((signal, options))

        tagged: list[tuple[RawMethod, str | None]] = []
        for entry in collection.of_role(MethodRole.ACCUMULATOR):
            collection.take(entry)
            options = self.parser.parse(entry.tag, ACCUMULATOR_OPTIONS)
            target = options.get("signal")
            if target is None:
                diagnostics.push(
                    DiagnosticCode.UNRESOLVED_ACCUMULATOR,
                    f"Accumulator `{entry.item.name}` does not name its signal",
                    entry.item.location,
                )
            tagged.append((entry, target))

        # Accumulators named by the signal option are siblings in the same collection.
        for signal, options in derived:
            if signal.accumulator_name is None:
                continue
            entry = collection.find(signal.accumulator_name)
            if entry is not None and entry.item.role != MethodRole.PLAIN:
                entry = None
            if entry is None:
                entry = next((e for e, _ in tagged if e.item.name == signal.accumulator_name), None)
                if entry is not None:
                    tagged = [(e, t) for e, t in tagged if e is not entry]
            else:
                collection.take(entry)
            if entry is None:
                diagnostics.push(
                    DiagnosticCode.UNRESOLVED_ACCUMULATOR,
                    f"No definition for accumulator `{signal.accumulator_name}` of signal `{signal.name}`",
                    options.location("accumulator") or signal.location,
                )
                continue
            self._attach(signal, entry.item)

        # Accumulators naming their signal from the tag side.
        for entry, target in tagged:
            if target is None:
                continue
            matches = [s for s, _ in derived if s.name == target or s.method_name == target]
            if not matches:
                diagnostics.push(
                    DiagnosticCode.UNRESOLVED_ACCUMULATOR,
                    f"No definition for signal `{target}` of accumulator `{entry.item.name}`",
                    entry.item.location,
                )
                continue
            signal = matches[0]
            if signal.accumulator is not None:
                diagnostics.push(
                    DiagnosticCode.DUPLICATE_NAME,
                    f"Signal `{signal.name}` already has accumulator `{signal.accumulator.name}`",
                    entry.item.location,
                )
                continue
            signal.accumulator_name = entry.item.name
            self._attach(signal, entry.item)

        return [signal for signal, _ in derived]

    def _signal(self, entry: RawMethod, options: ParsedOptions, collection: int) -> SignalDefinition:
        item = entry.item
        diagnostics = self.diagnostics

        only_one(
            [options.flag("run_first"), options.flag("run_last"), options.flag("run_cleanup")],
            diagnostics,
        )
        if options.has("run_first"):
            run_timing = RunTiming.FIRST
        elif options.has("run_cleanup"):
            run_timing = RunTiming.CLEANUP
        else:
            run_timing = RunTiming.LAST

        if self.base == TypeBase.INTERFACE:
            disallow("interface signal", [options.flag("override")], diagnostics)

        name = options.get("name") or member_name(item.name)
        if not is_valid_name(name):
            diagnostics.push(
                DiagnosticCode.INVALID_NAME,
                f"Invalid signal name `{name}`",
                options.location("name") or item.location,
            )
        check_receiver(item, "signal handler", diagnostics)

        return SignalDefinition(
            name=name,
            handler=item,
            params=item.arguments,
            return_type=item.returns,
            run_timing=run_timing,
            detailed=options.has("detailed"),
            action=options.has("action"),
            deprecated=options.has("deprecated"),
            override=options.has("override"),
            connect=options.get("connect", True) is not False,
            accumulator_name=options.get("accumulator"),
            collection=collection,
            location=item.location,
        )

    def _attach(self, signal: SignalDefinition, method: MethodItem) -> None:
        diagnostics = self.diagnostics

        if signal.override:
            diagnostics.push(
                DiagnosticCode.DISALLOWED_COMBINATION,
                f"Accumulator not allowed on overridden signal `{signal.name}`",
                method.location,
            )
        if signal.return_type is None or signal.return_type == "None":
            diagnostics.push(
                DiagnosticCode.TYPE_SHAPE_MISMATCH,
                f"Signal `{signal.name}` with accumulator must have a return type",
                signal.location,
            )
        if method.has_receiver:
            diagnostics.push(
                DiagnosticCode.RECEIVER_ORDER,
                f"Accumulator `{method.name}` must not take `{RECEIVER}`",
                method.location,
            )

        positional = [p for p in method.params if p.kind == ParameterKind.POSITIONAL]
        if len(positional) not in (2, 3) or len(positional) != len(method.params):
            diagnostics.push(
                DiagnosticCode.TYPE_SHAPE_MISMATCH,
                f"Accumulator `{method.name}` must take (accu, value) or (hint, accu, value)",
                method.location,
            )
            signal.accumulator = AccumulatorDefinition(method=method)
            return

        accu = positional[-2]
        optional = False
        if accu.annotation is not None:
            inner, optional = unwrap_optional(accu.annotation)
            if signal.return_type is not None:
                expected, _ = unwrap_optional(signal.return_type)
                if inner != expected:
                    diagnostics.push(
                        DiagnosticCode.TYPE_SHAPE_MISMATCH,
                        f"Accumulator `{method.name}` accumulates `{inner}` "
                        f"but signal `{signal.name}` returns `{expected}`",
                        method.location,
                    )

        initial = None
        if not optional and signal.return_type is not None:
            initial = zero_value(unwrap_optional(signal.return_type)[0])

        signal.accumulator = AccumulatorDefinition(
            method=method,
            takes_hint=len(positional) == 3,
            initial=initial,
        )
