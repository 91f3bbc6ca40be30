"""
Class and interface definition builder.

Parses the top-level options, drives the assembler, and applies the
options to the assembled TypeDefinition: naming, inheritance and
capability lists, finality, and the cross-cutting checks that need the
whole type at once.
"""

from __future__ import annotations

import logging

from .attributes import (
    CLASS_OPTIONS,
    INTERFACE_OPTIONS,
    PROPERTIES_OPTIONS,
    AttributeParser,
    ParsedOptions,
    tag_name,
)
from .errors import DiagnosticCode, Diagnostics
from .ir import (
    ClassDefinition,
    InterfaceDefinition,
    OverrideKind,
    SourceLocation,
    TypeBase,
    TypeDefinition,
)
from .naming import same_path
from .source import SourceModule
from .type_definition import TypeDefinitionParser
from .validations import disallow, only_one

logger = logging.getLogger(__name__)

Definition = ClassDefinition | InterfaceDefinition


def resolve_base(module: SourceModule, kind: TypeBase | None, diagnostics: Diagnostics) -> TypeBase:
    """The caller's kind wins; a conflicting source tag is reported."""
    if kind is not None and module.base is not None and kind != module.base:
        diagnostics.push(
            DiagnosticCode.DISALLOWED_COMBINATION,
            f"Source declares a {module.base.value} but is being compiled as a {kind.value}",
            SourceLocation.of(module.file, module.data_tag) if module.data_tag is not None else None,
        )
    return kind or module.base or TypeBase.CLASS


def parse_type_options(
    module: SourceModule,
    base: TypeBase,
    diagnostics: Diagnostics,
    extra: str | None = None,
) -> ParsedOptions:
    """
    Parse the top-level options from the data tag plus extra option text.

    An option given in both places is reported once, at the extra text.
    """
    parser = AttributeParser(module.file, diagnostics)
    schema = CLASS_OPTIONS if base == TypeBase.CLASS else INTERFACE_OPTIONS

    options = ParsedOptions()
    if module.data_tag is not None:
        tag_schema = PROPERTIES_OPTIONS if tag_name(module.data_tag) == "properties" else schema
        options = parser.parse(module.data_tag, tag_schema)

    if extra:
        origin = SourceLocation(file=f"{module.file} (options)", line=1, column=1)
        extra_options = parser.parse_text(extra, schema, origin)
        for key, value in extra_options.values.items():
            if key in options.values:
                diagnostics.push(
                    DiagnosticCode.MALFORMED_ATTRIBUTE,
                    f"Option `{key}` is given both in the source and in the option text",
                    extra_options.location(key),
                )
                continue
            options.values[key] = value
            options.locations[key] = extra_options.locations[key]
    return options


class DefinitionBuilder:
    """
    Builds a ClassDefinition or InterfaceDefinition from one module.

    Example:
        builder = DefinitionBuilder(diagnostics)
        definition = builder.build(module, kind=None, options_text="final")
    """

    def __init__(
        self,
        diagnostics: Diagnostics,
        parser: TypeDefinitionParser | None = None,
        default_ns: str | None = None,
    ):
        self.diagnostics = diagnostics
        self.parser = parser or TypeDefinitionParser()
        self.default_ns = default_ns

    def build(
        self,
        module: SourceModule,
        kind: TypeBase | None = None,
        options_text: str | None = None,
    ) -> Definition:
        base = resolve_base(module, kind, self.diagnostics)
        options = parse_type_options(module, base, self.diagnostics, options_text)
        inner = self.parser.assemble(
            module,
            self.diagnostics,
            base=base,
            name=options.get("name"),
            pod=options.has("pod"),
        )
        if base == TypeBase.INTERFACE:
            return self.build_interface(inner, options)
        return self.build_class(inner, options)

    def build_class(self, inner: TypeDefinition, options: ParsedOptions) -> ClassDefinition:
        diagnostics = self.diagnostics
        name = inner.name or ""
        final = options.has("final")
        extends: list[str] = options.get("extends", [])
        implements: list[str] = options.get("implements", [])

        only_one([options.flag("abstract"), options.flag("final")], diagnostics)

        ext_trait = self._ext_trait(name, options, final)

        if final:
            for method in inner.virtual_methods:
                if not method.is_override:
                    diagnostics.push(
                        DiagnosticCode.DISALLOWED_COMBINATION,
                        f"Virtual method `{method.name}` not allowed on final class",
                        method.location,
                    )
            for prop in inner.properties:
                if prop.is_abstract:
                    diagnostics.push(
                        DiagnosticCode.DISALLOWED_COMBINATION,
                        f"Abstract property `{prop.name}` not allowed on final class",
                        prop.location,
                    )

        self._check_overrides(inner, extends, implements, options)

        sync = options.has("sync")
        if sync:
            sync = self._check_sync(inner)

        definition = ClassDefinition(
            inner=inner,
            ns=options.get("ns") or self.default_ns,
            ext_trait=ext_trait,
            wrapper=options.get("wrapper", True),
            pod=options.has("pod"),
            final=final,
            abstract=options.has("abstract"),
            sync=sync,
            extends=extends,
            implements=implements,
        )
        logger.debug("Built class %s (%s)", name, definition.gtype_name)
        return definition

    def build_interface(self, inner: TypeDefinition, options: ParsedOptions) -> InterfaceDefinition:
        name = inner.name or ""
        sync = options.has("sync")
        if sync:
            sync = self._check_sync(inner)
        definition = InterfaceDefinition(
            inner=inner,
            ns=options.get("ns") or self.default_ns,
            ext_trait=self._ext_trait(name, options, final=False),
            wrapper=options.get("wrapper", True),
            sync=sync,
            requires=options.get("requires", []),
        )
        logger.debug("Built interface %s (%s)", name, definition.gtype_name)
        return definition

    def _ext_trait(self, name: str, options: ParsedOptions, final: bool) -> str | None:
        value = options.get("ext_trait")
        if final:
            if isinstance(value, str):
                disallow("final class", [options.flag("ext_trait")], self.diagnostics)
            return None
        if value is False:
            return None
        if isinstance(value, str):
            return value
        return f"{name}Ext"

    def _check_overrides(
        self,
        inner: TypeDefinition,
        extends: list[str],
        implements: list[str],
        options: ParsedOptions,
    ) -> None:
        diagnostics = self.diagnostics

        for prop in inner.properties:
            if prop.override is None:
                continue
            listed = extends if prop.override.kind == OverrideKind.CLASS else implements
            option = "extends" if prop.override.kind == OverrideKind.CLASS else "implements"
            if not any(same_path(prop.override.target, path) for path in listed):
                diagnostics.push(
                    DiagnosticCode.UNRESOLVED_REFERENCE,
                    f"Property `{prop.name}` overrides `{prop.override.target}`, which is not listed in `{option}`",
                    prop.location,
                )

        for method in inner.virtual_methods:
            if method.override and not extends:
                diagnostics.push(
                    DiagnosticCode.UNRESOLVED_REFERENCE,
                    f"`override` on virtual method `{method.name}` requires an ancestor in `extends`",
                    method.location,
                )
            if method.override_iface and not any(same_path(method.override_iface, p) for p in implements):
                diagnostics.push(
                    DiagnosticCode.UNRESOLVED_REFERENCE,
                    f"Virtual method `{method.name}` overrides `{method.override_iface}`, "
                    "which is not listed in `implements`",
                    method.location,
                )

        for signal in inner.signals:
            if signal.override and not extends:
                diagnostics.push(
                    DiagnosticCode.UNRESOLVED_REFERENCE,
                    f"`override` on signal `{signal.name}` requires an ancestor in `extends`",
                    signal.location,
                )

        for target in implements:
            satisfied = any(
                p.override is not None and p.override.kind == OverrideKind.INTERFACE and same_path(p.override.target, target)
                for p in inner.properties
            ) or any(m.override_iface is not None and same_path(m.override_iface, target) for m in inner.virtual_methods)
            if not satisfied:
                diagnostics.push(
                    DiagnosticCode.UNMET_CAPABILITY,
                    f"`{target}` is listed in `implements` but no property or virtual method "
                    "carries `override_iface` for it",
                    options.location("implements"),
                )

    def _check_sync(self, inner: TypeDefinition) -> bool:
        """Every stored property must lock; otherwise the sync capability is withheld."""
        ok = True
        for prop in inner.properties:
            if not prop.is_thread_safe:
                self.diagnostics.push(
                    DiagnosticCode.DISALLOWED_COMBINATION,
                    f"`sync` requires thread-safe storage (Mutex or RwLock); "
                    f"property `{prop.name}` uses {prop.storage_shape}",
                    prop.location,
                )
                ok = False
        return ok
