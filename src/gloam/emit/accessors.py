"""
Ext mixin generator.

Renders the public, typed surface of a generated type: property getters,
setters and notification helpers, signal ``emit_x``/``connect_x`` pairs,
virtual method dispatchers, and forwarders for exported subclass-side
methods. Final types have no ext mixin; their members go straight onto the
wrapper class.
"""

from __future__ import annotations

import logging

from ..core.ir import PropertyDefinition, SignalDefinition, StorageMode, TypeMode, VirtualMethodDefinition
from ..core.ir.items import RECEIVER
from ..core.naming import snake_case
from .base import ClassBuilder, EmitResult, Generator, def_line, join_params, py_type, returns

logger = logging.getLogger(__name__)


class AccessorsGenerator(Generator):
    """Generates the ``<Name>Ext`` mixin."""

    def generate(self) -> EmitResult:
        result = EmitResult()
        if self.names.ext is None:
            return result

        builder = ClassBuilder(self.names.ext)
        for member in self.members():
            builder.add(member)
        result.add_block(builder.render())
        logger.debug("Rendered %s", self.names.ext)
        return result

    def members(self) -> list[str]:
        """Member sources, in property, signal, virtual, public order."""
        members: list[str] = []
        for prop in self.inner.properties:
            if not prop.is_inherited:
                members.extend(self._property(prop))
        for signal in self.inner.signals:
            if not signal.override:
                members.extend(self._signal(signal))
        for virtual in self.inner.virtual_methods:
            if not virtual.is_override:
                members.append(self._dispatcher(virtual))
        for public in self.inner.public_methods:
            if public.mode == TypeMode.SUBCLASS:
                members.append(self._forwarder(public.method, public.static))
        return members

    # =========================================================================
    # Properties
    # =========================================================================

    def _property(self, prop: PropertyDefinition) -> list[str]:
        name = snake_case(prop.name)
        key = repr(prop.name)
        value_type = py_type(prop.value_type)
        members = []

        if prop.readable:
            members.append(f"def {name}(self) -> {value_type}:\n    return self.get_property({key})")
            if prop.storage_mode == StorageMode.BORROWED:
                members.append(
                    f"def borrow_{name}(self) -> {value_type}:\n    return self.borrow_property({key})"
                )
        if prop.writable and not prop.is_construct_only:
            members.append(
                f"def set_{name}(self, value: {value_type}) -> None:\n    self.set_property({key}, value)"
            )
        members.append(f"def pspec_{name}(self) -> {self.rt}.ParamSpec:\n    return self.find_property({key})")
        if prop.notify:
            members.append(f"def notify_{name}(self) -> None:\n    self.notify({key})")
        if prop.connect_notify:
            members.append(
                f"def connect_{name}_notify(self, callback) -> int:\n"
                f"    return self.connect_notify({key}, callback)"
            )
        return members

    # =========================================================================
    # Signals
    # =========================================================================

    def _signal(self, signal: SignalDefinition) -> list[str]:
        name = snake_case(signal.name)
        key = repr(signal.name)
        item = signal.handler
        args = item.call_arguments()
        members = []

        if signal.detailed:
            params = join_params("self", "detail: str | None", item.signature(include_receiver=False))
            call = join_params(key, args, "detail=detail")
        else:
            params = join_params("self", item.signature(include_receiver=False))
            call = join_params(key, args)
        members.append(def_line(f"emit_{name}", params, signal.return_type) + f"\n    return self.emit({call})")

        if signal.connect:
            if signal.detailed:
                params = "self, callback, detail: str | None = None, after: bool = False"
                call = f"{key}, callback, detail=detail, after=after"
            else:
                params = "self, callback, after: bool = False"
                call = f"{key}, callback, after=after"
            members.append(def_line(f"connect_{name}", params, "int") + f"\n    return self.connect({call})")
        return members

    # =========================================================================
    # Methods
    # =========================================================================

    def _dispatcher(self, virtual: VirtualMethodDefinition) -> str:
        item = virtual.method
        call = join_params("self", self.names.wrapper, repr(virtual.name), item.call_arguments())
        return def_line(virtual.name, item.signature(), item.returns) + f"\n    return {self.rt}.vcall({call})"

    def _forwarder(self, item, static: bool) -> str:
        if static:
            return (
                f"@staticmethod\n{def_line(item.name, item.signature(), item.returns)}"
                f"\n    return {self.names.imp}.{item.name}({item.call_arguments()})"
            )
        if self.is_interface:
            target = f"{self.names.imp}.{item.name}"
            call = join_params(RECEIVER, item.call_arguments())
        else:
            target = f"self.imp({self.names.wrapper}).{item.name}"
            call = item.call_arguments()
        return f"def {item.name}({item.signature()}){returns(item)}:\n    return {target}({call})"
