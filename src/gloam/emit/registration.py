"""
Wrapper and registration generator.

Renders the wrapper class (or, with ``wrapper=False``, a registration
function to apply to a hand-written one) and the ``register_class`` /
``register_interface`` call with the property table in field order, the
signal table, and the dispatch slots.
"""

from __future__ import annotations

import logging

from ..core.ir import (
    ConstructorDefinition,
    Fallibility,
    PropertyDefinition,
    SignalDefinition,
    TypeMode,
)
from ..core.ir.properties import INTEGER_RANGES
from ..core.ir.signals import RunTiming
from ..core.naming import snake_case
from .accessors import AccessorsGenerator
from .base import ClassBuilder, EmitResult, Generator, join_params, mixin_name, wrapped_mixin

logger = logging.getLogger(__name__)

_FLAG_ORDER = (
    "READABLE",
    "WRITABLE",
    "CONSTRUCT",
    "CONSTRUCT_ONLY",
    "LAX_VALIDATION",
    "EXPLICIT_NOTIFY",
    "DEPRECATED",
)


class RegistrationGenerator(Generator):
    """Generates the wrapper class and its registration."""

    def generate(self) -> EmitResult:
        result = EmitResult()

        for collection in self.inner.collections(TypeMode.WRAPPER):
            if collection.wrapped_by:
                result.add_block(wrapped_mixin(collection))

        if self.definition.wrapper:
            result.add_block(self._wrapper_class())
            result.add_block(self._register_call())
        else:
            result.add_block(self._register_function())

        logger.debug("Rendered registration for %s", self.names.gtype)
        return result

    # =========================================================================
    # Wrapper
    # =========================================================================

    def _bases(self) -> list[str]:
        bases = []
        if self.names.ext is not None:
            bases.append(self.names.ext)
        bases.extend(mixin_name(c) for c in self.inner.collections(TypeMode.WRAPPER) if c.wrapped_by)
        if self.is_interface:
            bases.append(f"{self.rt}.Interface")
        else:
            bases.append(self.definition.parent or f"{self.rt}.Object")
            bases.extend(self.definition.implements)
        return bases

    def _wrapper_class(self) -> str:
        builder = ClassBuilder(self.names.wrapper, self._bases(), docstring=self.inner.docstring)
        if not self.is_interface:
            builder.add(f"__imp__ = {self.names.imp}")

        if self.names.ext is None:
            for member in AccessorsGenerator(self.definition, self.options).members():
                builder.add(member)

        for collection in self.inner.collections(TypeMode.WRAPPER):
            if collection.wrapped_by:
                continue
            for method in collection.methods:
                builder.add_method(method)
        for accessor in self.inner.accessors:
            if accessor.mode == TypeMode.WRAPPER:
                builder.add_method(accessor.method)
        for public in self.inner.public_methods:
            if public.mode == TypeMode.WRAPPER:
                builder.add_method(public.method, decorators=["staticmethod"] if public.static else [])

        for constructor in self.inner.constructors:
            builder.add(self._constructor(constructor))
        return builder.render()

    def _constructor(self, constructor: ConstructorDefinition) -> str:
        item = constructor.method
        params = join_params("cls", item.signature(include_receiver=False))
        fallible = ", fallible=True" if constructor.fallibility == Fallibility.FALLIBLE else ""

        if constructor.maps_parameters:
            entries = []
            for param in constructor.params:
                prop = self.inner.find_property(param.name)
                key = prop.name if prop is not None else param.name
                entries.append(f"{key!r}: {param.name}")
            props = "{" + ", ".join(entries) + "}"
        else:
            props = f"{self.names.imp}._{constructor.name}_props({item.call_arguments()})"

        return (
            f"@classmethod\ndef {constructor.name}({params}) -> {self.names.wrapper}:\n"
            f"    return {self.rt}.construct(cls, {props}{fallible})"
        )

    def _register_function(self) -> str:
        lines = [
            f"def register_{snake_case(self.names.wrapper)}(cls):",
            f'    """Register ``cls`` as the {self.names.gtype} type."""',
            f"    global {self.names.wrapper}",
            f"    {self.names.wrapper} = cls",
        ]
        if not self.is_interface:
            lines.append(f"    cls.__imp__ = {self.names.imp}")
        lines.extend("    " + line for line in self._register_call().splitlines())
        lines.append("    return cls")
        return "\n".join(lines)

    # =========================================================================
    # Registration call
    # =========================================================================

    def _register_call(self) -> str:
        rt = self.rt
        imp = self.names.imp
        inner = self.inner
        definition = self.definition
        args: list[str] = [self.names.wrapper, repr(self.names.gtype)]

        if self.is_interface:
            if definition.requires:
                args.append(f"requires=[{', '.join(definition.requires)}]")
        else:
            if definition.abstract:
                args.append("abstract=True")
            if definition.final:
                args.append("final=True")
        if definition.sync:
            args.append("sync=True")

        pspecs = [self._param_spec(p) for p in inner.properties]
        if pspecs:
            args.append("properties=[\n" + "".join(f"    {p},\n" for p in pspecs) + "]")

        signals = [self._signal_spec(s) for s in inner.signals if not s.override]
        if signals:
            args.append("signals=[\n" + "".join(f"    {s},\n" for s in signals) + "]")

        vtable = [f"{v.name!r}: {imp}.{v.name}" for v in inner.virtual_methods if not v.is_override]
        if vtable:
            args.append("vtable={" + ", ".join(vtable) + "}")

        if not self.is_interface:
            overrides = [f"{v.name!r}: {imp}.{v.name}" for v in inner.virtual_methods if v.override]
            if overrides:
                args.append("overrides={" + ", ".join(overrides) + "}")
            iface_overrides = [
                f"({v.override_iface}, {v.name!r}): {imp}.{v.name}"
                for v in inner.virtual_methods
                if v.override_iface
            ]
            if iface_overrides:
                args.append("interface_overrides={" + ", ".join(iface_overrides) + "}")
            signal_overrides = [
                f"{s.name!r}: {imp}.{s.method_name}" for s in inner.signals if s.override and s.has_class_handler
            ]
            if signal_overrides:
                args.append("signal_overrides={" + ", ".join(signal_overrides) + "}")

        if "class_init" in inner.lifecycle or inner.custom_stmts_for("class_init"):
            args.append(f"class_init={imp}.class_init")

        function = "register_interface" if self.is_interface else "register_class"
        body = "".join(f"    {line}\n" for arg in args for line in _with_comma(arg))
        return f"{rt}.{function}(\n{body})"

    def _param_spec(self, prop: PropertyDefinition) -> str:
        rt = self.rt
        flags = []
        if prop.readable:
            flags.append("READABLE")
        if prop.writable:
            flags.append("WRITABLE")
        if prop.construct_flag:
            flags.append("CONSTRUCT")
        if prop.is_construct_only:
            flags.append("CONSTRUCT_ONLY")
        if prop.lax_validation:
            flags.append("LAX_VALIDATION")
        if prop.explicit_notify:
            flags.append("EXPLICIT_NOTIFY")
        if prop.deprecated:
            flags.append("DEPRECATED")
        flags.sort(key=_FLAG_ORDER.index)
        flag_expr = " | ".join(f"{rt}.ParamFlags.{f}" for f in flags) or f"{rt}.ParamFlags.NONE"

        args = [repr(prop.name), repr(prop.value_type), flag_expr]
        default = prop.effective_default()
        if default is not None:
            args.append(f"default={default!r}")

        minimum, maximum = INTEGER_RANGES.get(prop.value_type, (None, None))
        if prop.bounds is not None:
            if prop.bounds.minimum is not None:
                minimum = prop.bounds.minimum
            if prop.bounds.maximum is not None:
                maximum = prop.bounds.maximum
        if minimum is not None:
            args.append(f"minimum={minimum!r}")
        if maximum is not None:
            args.append(f"maximum={maximum!r}")

        if prop.nick:
            args.append(f"nick={prop.nick!r}")
        if prop.blurb:
            args.append(f"blurb={prop.blurb!r}")
        if prop.has_storage:
            args.append(f"field={prop.storage_path!r}")
        if prop.getter.is_custom and prop.getter.method:
            args.append(f"getter={prop.getter.method!r}")
            if prop.getter.on_wrapper:
                args.append("getter_on_wrapper=True")
        if prop.setter.is_custom and prop.setter.method:
            args.append(f"setter={prop.setter.method!r}")
            if prop.setter.on_wrapper:
                args.append("setter_on_wrapper=True")
        if prop.override is not None:
            args.append(f"override_of={prop.override.target!r}")
        return f"{rt}.ParamSpec({', '.join(args)})"

    def _signal_spec(self, signal: SignalDefinition) -> str:
        rt = self.rt
        imp = self.names.imp
        args = [repr(signal.name)]
        if signal.params:
            types = ", ".join(repr(p.annotation) for p in signal.params)
            args.append(f"param_types=({types},)")
        if signal.return_type and signal.return_type != "None":
            args.append(f"return_type={signal.return_type!r}")
        if signal.run_timing != RunTiming.LAST:
            args.append(f"run_timing={rt}.RunTiming.{signal.run_timing.name}")
        if signal.detailed:
            args.append("detailed=True")
        if signal.action:
            args.append("action=True")
        if signal.deprecated:
            args.append("deprecated=True")
        if signal.has_class_handler:
            args.append(f"class_handler={imp}.{signal.method_name}")
        if signal.accumulator is not None:
            args.append(f"accumulator={imp}.{signal.accumulator.name}")
            if signal.accumulator.takes_hint:
                args.append("takes_hint=True")
            if signal.accumulator.initial is not None:
                args.append(f"initial={signal.accumulator.initial!r}")
        return f"{rt}.SignalSpec({', '.join(args)})"


def _with_comma(arg: str) -> list[str]:
    lines = arg.splitlines()
    lines[-1] += ","
    return lines
