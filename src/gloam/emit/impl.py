"""
Imp class generator.

Renders the instance-private class of a generated type: storage cells and
plain fields set up in ``__init__``, the subclass-side methods, signal class
handlers, virtual defaults, accessor overrides, lifecycle hooks,
accumulators and ``parent_<name>`` chain helpers. Interfaces get a plain
namespace class instead, whose methods take the instance itself.
"""

from __future__ import annotations

import logging

from ..core.ir import MethodItem, PropertyDefinition, StorageMode, TypeMode
from .base import ClassBuilder, EmitResult, Generator, def_line, join_params, mixin_name, returns, wrapped_mixin

logger = logging.getLogger(__name__)


class ImplGenerator(Generator):
    """Generates the ``_<Name>Imp`` (or ``_<Name>Iface``) class."""

    def generate(self) -> EmitResult:
        result = EmitResult()

        for collection in self.inner.collections(TypeMode.SUBCLASS):
            if collection.wrapped_by:
                result.add_block(wrapped_mixin(collection))

        if self.is_interface:
            result.add_block(self._interface_class())
        else:
            result.add_block(self._imp_class())

        logger.debug("Rendered %s", self.names.imp)
        return result

    # =========================================================================
    # Classes
    # =========================================================================

    def _bases(self) -> list[str]:
        bases = [
            mixin_name(c) for c in self.inner.collections(TypeMode.SUBCLASS) if c.wrapped_by
        ]
        if not self.is_interface:
            bases.append(f"{self.rt}.ObjectImpl")
        return bases

    def _imp_class(self) -> str:
        builder = ClassBuilder(self.names.imp, self._bases())
        builder.add(self._init())
        self._add_members(builder)
        self._add_lifecycle(builder)
        for constructor in self.inner.constructors:
            if not constructor.maps_parameters:
                builder.add_method(constructor.method, rename=f"_{constructor.name}_props", decorators=["staticmethod"])
        self._add_parent_helpers(builder)
        return builder.render()

    def _interface_class(self) -> str:
        builder = ClassBuilder(self.names.imp, self._bases())
        self._add_members(builder)
        self._add_class_init(builder)
        return builder.render()

    # =========================================================================
    # Members
    # =========================================================================

    def _init(self) -> str:
        lines = [
            "def __init__(self, obj):",
            "    super().__init__(obj)",
        ]
        for field in self.inner.fields:
            if field.prop is not None:
                if field.prop.has_storage and field.prop.delegate is None:
                    lines.append(f"    self.{field.name} = {self._cell(field.prop)}")
                continue
            annotation = f": {field.annotation}" if field.annotation else ""
            lines.append(f"    self.{field.name}{annotation} = {field.default or 'None'}")
        for stmt in self.inner.custom_stmts_for("instance_init"):
            lines.extend(f"    {line}" for line in stmt.splitlines())
        lines.append("    self.init()")
        return "\n".join(lines)

    def _cell(self, prop: PropertyDefinition) -> str:
        shape = f"{self.rt}.{prop.storage_shape}"
        if prop.storage_mode in (StorageMode.CONSTRUCT_ONLY, StorageMode.WEAK):
            return f"{shape}()"
        return f"{shape}({prop.effective_default()!r})"

    def _add_members(self, builder: ClassBuilder) -> None:
        inner = self.inner

        for collection in inner.collections(TypeMode.SUBCLASS):
            if collection.wrapped_by:
                continue
            for method in collection.methods:
                builder.add_method(method)

        for signal in inner.signals:
            if signal.has_class_handler:
                builder.add_method(signal.handler)

        for virtual in inner.virtual_methods:
            builder.add_method(virtual.method)

        for accessor in inner.accessors:
            if accessor.mode == TypeMode.SUBCLASS:
                builder.add_method(accessor.method)

        for public in inner.public_methods:
            if public.mode == TypeMode.SUBCLASS:
                builder.add_method(public.method, decorators=["staticmethod"] if public.static else [])

        for signal in inner.signals:
            if signal.accumulator is not None:
                builder.add_method(signal.accumulator.method, decorators=["staticmethod"])

    def _add_lifecycle(self, builder: ClassBuilder) -> None:
        lifecycle = self.inner.lifecycle
        if "init" in lifecycle:
            builder.add_method(lifecycle["init"])
        for phase in ("constructed", "dispose"):
            self._add_phase(builder, phase, lifecycle.get(phase))
        self._add_class_init(builder)

        standard = ("init", "constructed", "dispose", "class_init")
        for name, method in lifecycle.items():
            if name not in standard:
                builder.add_method(method)

    def _add_phase(self, builder: ClassBuilder, phase: str, method: MethodItem | None) -> None:
        stmts = self.inner.custom_stmts_for(phase)
        if not stmts:
            if method is not None:
                builder.add_method(method)
            return
        lines = [f"def {phase}(self):"]
        for stmt in stmts:
            lines.extend(f"    {line}" for line in stmt.splitlines())
        if method is not None:
            builder.add_method(method, rename=f"_{phase}_body")
            lines.append(f"    self._{phase}_body()")
        builder.add("\n".join(lines))

    def _add_class_init(self, builder: ClassBuilder) -> None:
        method = self.inner.lifecycle.get("class_init")
        stmts = self.inner.custom_stmts_for("class_init")
        if not stmts:
            if method is not None:
                builder.add_method(method, decorators=["staticmethod"])
            return
        lines = ["@staticmethod", "def class_init(cls):"]
        for stmt in stmts:
            lines.extend(f"    {line}" for line in stmt.splitlines())
        if method is not None:
            builder.add_method(method, rename="_class_init_body", decorators=["staticmethod"])
            lines.append(f"    {self.names.imp}._class_init_body(cls)")
        builder.add("\n".join(lines))

    def _add_parent_helpers(self, builder: ClassBuilder) -> None:
        wrapper = self.names.wrapper
        for virtual in self.inner.virtual_methods:
            if not virtual.is_override:
                continue
            item = virtual.method
            iface = f", iface={virtual.override_iface}" if virtual.override_iface else ""
            call = join_params("self.obj", wrapper, repr(virtual.name), item.call_arguments())
            builder.add(
                def_line(f"parent_{virtual.name}", item.signature(), item.returns)
                + f"\n    return {self.rt}.parent_vcall({call}{iface})"
            )
        for signal in self.inner.signals:
            if not signal.override:
                continue
            item = signal.handler
            call = join_params("self.obj", wrapper, repr(signal.name), item.call_arguments())
            builder.add(
                f"def parent_{item.name}({item.signature()}){returns(item)}:"
                f"\n    return {self.rt}.chain_signal({call})"
            )
