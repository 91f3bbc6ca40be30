"""
Constructor, public method, accessor override and lifecycle derivation.

The remaining method roles after signals and virtual methods. Each role is
taken out of its collection; only plain methods stay behind.
"""

from __future__ import annotations

import logging

from .attributes import ACCESSOR_OPTIONS, CONSTRUCTOR_OPTIONS, PUBLIC_OPTIONS, AttributeParser
from .errors import DiagnosticCode, Diagnostics
from .ir import (
    AccessorDefinition,
    AccessorKind,
    ConstructorDefinition,
    Fallibility,
    MethodItem,
    MethodRole,
    PublicMethodDefinition,
    TypeBase,
)
from .ir.items import RECEIVER
from .signals import check_receiver
from .source import RawCollection

logger = logging.getLogger(__name__)


class MethodDeriver:
    def __init__(self, parser: AttributeParser, diagnostics: Diagnostics, base: TypeBase = TypeBase.CLASS):
        self.parser = parser
        self.diagnostics = diagnostics
        self.base = base

    def constructors(self, collections: list[RawCollection]) -> list[ConstructorDefinition]:
        constructors: list[ConstructorDefinition] = []
        seen: set[str] = set()

        for collection in collections:
            for entry in collection.of_role(MethodRole.CONSTRUCTOR):
                collection.take(entry)
                item = entry.item
                options = self.parser.parse(entry.tag, CONSTRUCTOR_OPTIONS)

                if self.base == TypeBase.INTERFACE:
                    self.diagnostics.push(
                        DiagnosticCode.DISALLOWED_COMBINATION,
                        f"Constructor `{item.name}` not allowed on interface",
                        item.location,
                    )
                if item.has_receiver:
                    self.diagnostics.push(
                        DiagnosticCode.RECEIVER_ORDER,
                        f"Constructor `{item.name}` must not take `{RECEIVER}`",
                        item.location,
                    )

                name = options.get("name") or item.name
                if name in seen:
                    self.diagnostics.push(
                        DiagnosticCode.DUPLICATE_NAME,
                        f"Duplicate definition for constructor `{name}`",
                        item.location,
                    )
                    continue
                seen.add(name)

                constructors.append(
                    ConstructorDefinition(
                        name=name,
                        method=item,
                        params=item.arguments,
                        fallibility=Fallibility.FALLIBLE if options.has("fallible") else Fallibility.INFALLIBLE,
                        location=item.location,
                    )
                )
        return constructors

    def public_methods(self, collections: list[RawCollection]) -> list[PublicMethodDefinition]:
        methods: list[PublicMethodDefinition] = []
        for collection in collections:
            for entry in collection.of_role(MethodRole.PUBLIC):
                collection.take(entry)
                item = entry.item
                options = self.parser.parse(entry.tag, PUBLIC_OPTIONS)
                static = options.has("static")
                if static and item.has_receiver:
                    self.diagnostics.push(
                        DiagnosticCode.RECEIVER_ORDER,
                        f"`{RECEIVER}` not allowed on static public method `{item.name}`",
                        item.location,
                    )
                elif not static:
                    check_receiver(item, "public method", self.diagnostics)
                methods.append(
                    PublicMethodDefinition(
                        name=item.name,
                        method=item,
                        static=static,
                        mode=collection.mode,
                        location=item.location,
                    )
                )
        return methods

    def accessors(self, collections: list[RawCollection]) -> list[AccessorDefinition]:
        accessors: list[AccessorDefinition] = []
        for collection in collections:
            for entry in collection.of_role(MethodRole.ACCESSOR):
                collection.take(entry)
                item = entry.item
                kind = AccessorKind.SETTER if entry.item.tag == "setter" else AccessorKind.GETTER
                options = self.parser.parse(entry.tag, ACCESSOR_OPTIONS)

                target = options.get("prop")
                if target is None:
                    target = item.name
                    if kind == AccessorKind.SETTER and target.startswith("set_"):
                        target = target[len("set_") :]

                check_receiver(item, kind.value, self.diagnostics)
                expected = 1 if kind == AccessorKind.SETTER else 0
                if len(item.arguments) != expected:
                    self.diagnostics.push(
                        DiagnosticCode.TYPE_SHAPE_MISMATCH,
                        f"{kind.value.capitalize()} `{item.name}` must take {expected} argument(s) besides `{RECEIVER}`",
                        item.location,
                    )
                accessors.append(
                    AccessorDefinition(
                        kind=kind,
                        property_name=target,
                        method=item,
                        mode=collection.mode,
                        location=item.location,
                    )
                )
        return accessors

    def lifecycle(self, collections: list[RawCollection]) -> dict[str, MethodItem]:
        hooks: dict[str, MethodItem] = {}
        for collection in collections:
            for entry in collection.of_role(MethodRole.LIFECYCLE):
                collection.take(entry)
                item = entry.item
                if item.name in hooks:
                    self.diagnostics.push(
                        DiagnosticCode.DUPLICATE_NAME,
                        f"Duplicate definition for lifecycle method `{item.name}`",
                        item.location,
                    )
                    continue
                if item.name == "class_init":
                    if len(item.params) != 1:
                        self.diagnostics.push(
                            DiagnosticCode.RECEIVER_ORDER,
                            "`class_init` takes the class as its only argument",
                            item.location,
                        )
                else:
                    check_receiver(item, "lifecycle method", self.diagnostics)
                hooks[item.name] = item
        logger.debug("Lifecycle hooks: %s", ", ".join(hooks) or "none")
        return hooks
