"""
Type definition assembler.

Runs the derivers over a parsed module and combines their output with the
remaining plain methods into one TypeDefinition: resolves the name, links
accessor overrides to their properties, and checks constructors against
the properties they set.
"""

from __future__ import annotations

import logging

from .attributes import AttributeParser
from .errors import DiagnosticCode, Diagnostics
from .ir import (
    Accessor,
    AccessorKind,
    AccessorMode,
    MethodCollection,
    MethodItem,
    MethodRole,
    ParameterKind,
    SourceLocation,
    TypeBase,
    TypeDefinition,
    TypeMode,
)
from .methods import MethodDeriver
from .properties import PropertyDeriver
from .signals import SignalDeriver
from .source import DEFAULT_LIFECYCLE_METHODS, SourceModule, parse_module
from .virtual_methods import VirtualMethodDeriver

logger = logging.getLogger(__name__)


class TypeDefinitionParser:
    """
    Parses and assembles one annotated module.

    Extensions may register additional lifecycle method names with
    ``add_custom_method``; such methods are kept out of the plain method
    collections and exposed through ``TypeDefinition.lifecycle``.
    """

    def __init__(self) -> None:
        self.custom_methods: list[str] = list(DEFAULT_LIFECYCLE_METHODS)

    def add_custom_method(self, name: str) -> None:
        if name not in self.custom_methods:
            self.custom_methods.append(name)

    def parse_source(self, text: str, file: str, diagnostics: Diagnostics) -> SourceModule | None:
        return parse_module(text, file, diagnostics, tuple(self.custom_methods))

    def assemble(
        self,
        module: SourceModule,
        diagnostics: Diagnostics,
        base: TypeBase = TypeBase.CLASS,
        name: str | None = None,
        pod: bool = False,
    ) -> TypeDefinition:
        """
        Derive every member and combine them into a TypeDefinition.

        Args:
            module: Parsed source module
            diagnostics: Shared diagnostic list
            base: Resolved type base
            name: Explicit name option, if given
            pod: Treat every field as a read-write property

        Returns:
            The assembled definition; ``name`` is None when it could not be resolved
        """
        parser = AttributeParser(module.file, diagnostics)

        fields = PropertyDeriver(parser, diagnostics, base=base, pod=pod).derive(module.fields)
        signals = SignalDeriver(parser, diagnostics, base=base).derive(module.collections)
        virtual_methods = VirtualMethodDeriver(parser, diagnostics, base=base).derive(module.collections)

        methods = MethodDeriver(parser, diagnostics, base=base)
        constructors = methods.constructors(module.collections)
        public_methods = methods.public_methods(module.collections)
        accessors = methods.accessors(module.collections)
        lifecycle = methods.lifecycle(module.collections)

        location = (
            SourceLocation.of(module.file, module.data_class)
            if module.data_class is not None
            else SourceLocation(file=module.file, line=1, column=1)
        )

        resolved = name or (module.data_class.name if module.data_class is not None else None)
        if resolved is None:
            diagnostics.push(
                DiagnosticCode.MISSING_NAME,
                "No usable type name: add a data definition class or pass the `name` option",
                location,
            )

        collections = [
            MethodCollection(
                index=raw.index,
                name=raw.name,
                mode=raw.mode,
                methods=[entry.item for entry in raw.entries],
                location=raw.location,
            )
            for raw in module.collections
        ]

        definition = TypeDefinition(
            name=resolved,
            base=base,
            file=module.file,
            docstring=module.docstring,
            imports=list(module.imports),
            module_items=list(module.module_items),
            fields=fields,
            method_collections=collections,
            signals=signals,
            virtual_methods=virtual_methods,
            constructors=constructors,
            public_methods=public_methods,
            accessors=accessors,
            lifecycle=lifecycle,
            location=location,
        )

        self._link_accessors(definition, diagnostics)
        self._check_constructors(definition, diagnostics)
        self._check_imp_names(definition, diagnostics)

        logger.debug(
            "Assembled %s: %d properties, %d signals, %d virtual methods",
            resolved,
            len(definition.properties),
            len(signals),
            len(virtual_methods),
        )
        return definition

    def _link_accessors(self, definition: TypeDefinition, diagnostics: Diagnostics) -> None:
        for accessor in definition.accessors:
            prop = definition.find_property(accessor.property_name)
            if prop is None:
                diagnostics.push(
                    DiagnosticCode.UNRESOLVED_REFERENCE,
                    f"No property `{accessor.property_name}` for {accessor.kind.value} `{accessor.method.name}`",
                    accessor.location,
                )
                continue
            getter = accessor.kind == AccessorKind.GETTER
            slot = prop.getter if getter else prop.setter
            if not slot.allowed:
                diagnostics.push(
                    DiagnosticCode.DISALLOWED_COMBINATION,
                    f"Property `{prop.name}` is not {'readable' if getter else 'writable'}; "
                    f"{accessor.kind.value} `{accessor.method.name}` has nothing to override",
                    accessor.location,
                )
                continue
            linked = Accessor(
                mode=AccessorMode.CUSTOM,
                method=accessor.method.name,
                on_wrapper=accessor.mode == TypeMode.WRAPPER,
            )
            if getter:
                prop.getter = linked
            else:
                prop.setter = linked

        plain = {
            method.name
            for collection in definition.collections(TypeMode.SUBCLASS)
            for method in collection.methods
            if method.role == MethodRole.PLAIN
        }
        for prop in definition.properties:
            for kind, slot in (("getter", prop.getter), ("setter", prop.setter)):
                if not slot.is_custom:
                    continue
                if slot.method is None:
                    diagnostics.push(
                        DiagnosticCode.UNRESOLVED_REFERENCE,
                        f"Property `{prop.name}` needs a @{kind} method",
                        prop.location,
                    )
                elif slot.method not in plain and not any(
                    a.method.name == slot.method for a in definition.accessors
                ):
                    diagnostics.push(
                        DiagnosticCode.UNRESOLVED_REFERENCE,
                        f"No method `{slot.method}` for the custom {kind} of property `{prop.name}`",
                        prop.location,
                    )

    def _check_constructors(self, definition: TypeDefinition, diagnostics: Diagnostics) -> None:
        for constructor in definition.constructors:
            if not constructor.maps_parameters:
                continue
            for param in constructor.params:
                prop = definition.find_property(param.name)
                if param.kind in (ParameterKind.VAR_POSITIONAL, ParameterKind.VAR_KEYWORD):
                    prop = None
                if prop is None or not prop.writable:
                    diagnostics.push(
                        DiagnosticCode.UNRESOLVED_REFERENCE,
                        f"Constructor `{constructor.name}` parameter `{param.name}` "
                        "does not name a writable property",
                        constructor.location,
                    )

    def _check_imp_names(self, definition: TypeDefinition, diagnostics: Diagnostics) -> None:
        """Methods that land in the imp class must not share a name across roles."""
        members: list[tuple[str, MethodItem]] = []
        members.extend(("signal", s.handler) for s in definition.signals)
        members.extend(("virtual method", v.method) for v in definition.virtual_methods)
        members.extend(("accumulator", s.accumulator.method) for s in definition.signals if s.accumulator)
        members.extend((a.kind.value, a.method) for a in definition.accessors if a.mode == TypeMode.SUBCLASS)
        members.extend(("public method", p.method) for p in definition.public_methods if p.mode == TypeMode.SUBCLASS)
        members.extend(("lifecycle method", m) for m in definition.lifecycle.values())
        members.extend(("method", m) for c in definition.collections(TypeMode.SUBCLASS) for m in c.methods)

        seen: dict[str, str] = {}
        for role, item in members:
            first = seen.setdefault(item.name, role)
            if first != role:
                diagnostics.push(
                    DiagnosticCode.DUPLICATE_NAME,
                    f"`{item.name}` is defined both as a {first} and as a {role}",
                    item.location,
                )
