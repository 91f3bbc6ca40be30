"""
Property deriver.

Scans the data definition's fields in declaration order. A field tagged
``prop(...)`` (or any field of a pod type) becomes a PropertyDefinition
whose storage mode comes from the field's declared storage shape. The
resulting order is the registration order, so it is never changed.
"""

from __future__ import annotations

import ast
import logging
from typing import Any

from .attributes import PROPERTY_OPTIONS, AttributeParser, ParsedOptions, dotted_name, tag_name
from .errors import DiagnosticCode, Diagnostics
from .ir import (
    Accessor,
    AccessorMode,
    FieldDefinition,
    OverrideKind,
    PropertyBounds,
    PropertyDefinition,
    PropertyOverride,
    StorageMode,
    TypeBase,
)
from .ir.properties import FLOAT_TYPES, INTEGER_RANGES, STORAGE_SHAPES, is_integer, is_numeric
from .naming import is_valid_name, last_segment, member_name
from .source import RawField
from .validations import disallow, only_one

logger = logging.getLogger(__name__)

PROPERTY_TAG = "prop"

OVERRIDE_DISALLOWED = (
    "construct",
    "storage",
    "lax_validation",
    "explicit_notify",
    "deprecated",
    "nick",
    "blurb",
    "minimum",
    "maximum",
    "default",
)


def _accessor(value: Any) -> Accessor:
    if value is True:
        return Accessor(mode=AccessorMode.DEFAULT)
    if isinstance(value, str):
        return Accessor(mode=AccessorMode.CUSTOM, method=None if value == "_" else value)
    return Accessor()


def _storage_shape(annotation: ast.expr | None) -> tuple[str, str] | None:
    """``Cell[int]`` -> ("Cell", "int")."""
    if not isinstance(annotation, ast.Subscript):
        return None
    shape = dotted_name(annotation.value)
    if shape is None:
        return None
    return last_segment(shape), ast.unparse(annotation.slice)


class PropertyDeriver:
    """
    Derives PropertyDefinitions for one data definition.

    Attributes:
        base: Class or interface; interface properties are always abstract
        pod: Every untagged field is a read-write property
    """

    def __init__(
        self,
        parser: AttributeParser,
        diagnostics: Diagnostics,
        base: TypeBase = TypeBase.CLASS,
        pod: bool = False,
    ):
        self.parser = parser
        self.diagnostics = diagnostics
        self.base = base
        self.pod = pod

    def derive(self, raw_fields: list[RawField]) -> list[FieldDefinition]:
        fields: list[FieldDefinition] = []
        seen: set[str] = set()

        for raw in raw_fields:
            definition = self._derive_field(raw)
            prop = definition.prop
            if prop is not None:
                if prop.name in seen:
                    self.diagnostics.push(
                        DiagnosticCode.DUPLICATE_NAME,
                        f"Duplicate definition for property `{prop.name}`",
                        prop.location,
                    )
                seen.add(prop.name)
            fields.append(definition)

        self._check_delegates(fields)
        logger.debug("Derived %d properties from %d fields", len(seen), len(fields))
        return fields

    def _check_delegates(self, fields: list[FieldDefinition]) -> None:
        """Delegated storage must start at a plain field of the data definition."""
        plain = {f.name for f in fields if f.prop is None}
        for definition in fields:
            prop = definition.prop
            if prop is None or prop.delegate is None:
                continue
            root = prop.delegate.split(".", 1)[0]
            if root not in plain:
                self.diagnostics.push(
                    DiagnosticCode.UNRESOLVED_REFERENCE,
                    f"`storage` of property `{prop.name}` starts at `{root}`, which is not a plain field",
                    prop.location,
                )

    def _derive_field(self, raw: RawField) -> FieldDefinition:
        annotation = ast.unparse(raw.annotation) if raw.annotation is not None else None
        tagged = raw.value is not None and tag_name(raw.value) == PROPERTY_TAG
        options = self.parser.parse(raw.value, PROPERTY_OPTIONS) if tagged else ParsedOptions()

        if options.has("skip"):
            others = [options.flag(name) for name in PROPERTY_OPTIONS.options if name != "skip"]
            disallow(f"skipped field `{raw.name}`", others, self.diagnostics)
            return FieldDefinition(name=raw.name, annotation=annotation, location=raw.location)

        if not tagged and not self.pod:
            default = ast.unparse(raw.value) if raw.value is not None else None
            return FieldDefinition(name=raw.name, annotation=annotation, default=default, location=raw.location)

        prop = self._derive_property(raw, options)
        return FieldDefinition(name=raw.name, annotation=annotation, prop=prop, location=raw.location)

    def _derive_property(self, raw: RawField, options: ParsedOptions) -> PropertyDefinition | None:
        diagnostics = self.diagnostics
        interface = self.base == TypeBase.INTERFACE

        shape = _storage_shape(raw.annotation)
        if shape is None or shape[0] not in STORAGE_SHAPES:
            written = ast.unparse(raw.annotation) if raw.annotation is not None else "no annotation"
            expected = ", ".join(f"{name}[T]" for name in STORAGE_SHAPES)
            diagnostics.push(
                DiagnosticCode.TYPE_SHAPE_MISMATCH,
                f"Property field `{raw.name}` has unsupported storage type `{written}`; expected one of {expected}",
                raw.location,
            )
            return None
        storage_shape, value_type = shape

        if self.pod and not options.has("override_class") and not options.has("override_iface"):
            options.set_default("get", True)
            options.set_default("set", True)
            options.set_default("lax_validation", True)
            options.set_default("explicit_notify", True)

        name = options.get("name") or member_name(raw.name)
        if not is_valid_name(name):
            diagnostics.push(
                DiagnosticCode.INVALID_NAME,
                f"Invalid property name `{name}`",
                options.location("name") or raw.location,
            )

        getter = _accessor(options.get("get", False))
        setter = _accessor(options.get("set", False))
        if options.has("computed"):
            if getter.mode == AccessorMode.DEFAULT:
                getter = Accessor(mode=AccessorMode.CUSTOM)
            if setter.mode == AccessorMode.DEFAULT:
                setter = Accessor(mode=AccessorMode.CUSTOM)

        only_one(
            [
                options.flag("construct_only"),
                options.flag("abstract"),
                options.flag("computed"),
                options.flag("override_class"),
                options.flag("override_iface"),
            ],
            diagnostics,
        )

        if not getter.allowed and not setter.allowed:
            diagnostics.push(
                DiagnosticCode.DISALLOWED_COMBINATION,
                f"Property `{name}` must be readable or writable",
                raw.location,
            )
        if not setter.allowed:
            disallow(
                "read-only property",
                [options.flag("construct"), options.flag("construct_only")],
                diagnostics,
            )

        custom_flags = [
            ("get", options.location("get") if getter.is_custom else None),
            ("set", options.location("set") if setter.is_custom else None),
        ]
        if interface:
            disallow(
                "interface property",
                [
                    options.flag("abstract"),
                    options.flag("computed"),
                    options.flag("override_class"),
                    options.flag("override_iface"),
                    options.flag("storage"),
                    *custom_flags,
                ],
                diagnostics,
            )

        override = None
        if options.has("override_class"):
            override = PropertyOverride(kind=OverrideKind.CLASS, target=options.get("override_class"))
        elif options.has("override_iface"):
            override = PropertyOverride(kind=OverrideKind.INTERFACE, target=options.get("override_iface"))
        if override is not None:
            disallow(
                "overridden property",
                [options.flag(flag) for flag in OVERRIDE_DISALLOWED] + custom_flags,
                diagnostics,
            )

        thread_safety = STORAGE_SHAPES[storage_shape][1]
        storage_mode = self._storage_mode(raw, storage_shape, options)
        delegate = self._delegate(name, storage_mode, options)

        if storage_mode == StorageMode.WEAK and setter.allowed and not options.has("construct_only"):
            diagnostics.push(
                DiagnosticCode.DISALLOWED_COMBINATION,
                f"`set` not allowed on weak property `{name}` unless it is `construct_only`",
                options.location("set") or raw.location,
            )

        bounds = self._bounds(name, value_type, options)
        has_default = "default" in options.values
        default = options.get("default")
        if has_default:
            self._check_default(name, value_type, default, bounds, options)

        return PropertyDefinition(
            name=name,
            field_name=raw.name,
            value_type=value_type,
            storage_shape=storage_shape,
            storage_mode=storage_mode,
            thread_safety=thread_safety,
            getter=getter,
            setter=setter,
            construct_flag=options.has("construct"),
            construct_only=options.has("construct_only"),
            explicit_notify=options.has("explicit_notify"),
            lax_validation=options.has("lax_validation"),
            deprecated=options.has("deprecated"),
            notify=options.get("notify", True) is not False,
            connect_notify=options.get("connect_notify", True) is not False,
            override=override,
            delegate=delegate,
            bounds=bounds,
            default=default,
            has_default=has_default,
            nick=options.get("nick"),
            blurb=options.get("blurb"),
            location=raw.location,
        )

    def _storage_mode(self, raw: RawField, storage_shape: str, options: ParsedOptions) -> StorageMode:
        mode = STORAGE_SHAPES[storage_shape][0]
        if self.base == TypeBase.INTERFACE:
            if storage_shape != "Placeholder":
                self.diagnostics.push(
                    DiagnosticCode.TYPE_SHAPE_MISMATCH,
                    f"Interface property `{raw.name}` must use Placeholder[T] storage, not {storage_shape}",
                    raw.location,
                )
            return StorageMode.ABSTRACT

        if mode is None:
            if options.has("abstract"):
                return StorageMode.ABSTRACT
            if not options.has("computed"):
                self.diagnostics.push(
                    DiagnosticCode.TYPE_SHAPE_MISMATCH,
                    f"Property field `{raw.name}` uses Placeholder storage but is neither `abstract` nor `computed`",
                    raw.location,
                )
            return StorageMode.COMPUTED

        for flag in ("abstract", "computed"):
            if options.has(flag):
                self.diagnostics.push(
                    DiagnosticCode.TYPE_SHAPE_MISMATCH,
                    f"`{flag}` property `{raw.name}` must use Placeholder[T] storage, not {storage_shape}",
                    options.location(flag),
                )
        return mode

    def _delegate(self, name: str, storage_mode: StorageMode, options: ParsedOptions) -> str | None:
        """Dotted attribute path of delegated storage, relative to the imp."""
        if not options.has("storage"):
            return None
        ok = disallow(
            f"delegated property `{name}`",
            [options.flag("abstract"), options.flag("computed")],
            self.diagnostics,
        )
        if not ok or storage_mode in (StorageMode.ABSTRACT, StorageMode.COMPUTED):
            return None
        return options.get("storage")

    def _bounds(self, name: str, value_type: str, options: ParsedOptions) -> PropertyBounds | None:
        if "minimum" not in options.values and "maximum" not in options.values:
            return None
        if not is_numeric(value_type):
            disallow(
                f"non-numeric property `{name}`",
                [options.flag("minimum"), options.flag("maximum")],
                self.diagnostics,
            )
            return None

        minimum = options.get("minimum")
        maximum = options.get("maximum")
        for bound, value in (("minimum", minimum), ("maximum", maximum)):
            if value is not None and not self._fits(value_type, value):
                self.diagnostics.push(
                    DiagnosticCode.TYPE_SHAPE_MISMATCH,
                    f"`{bound}` {value!r} does not fit property `{name}` of type `{value_type}`",
                    options.location(bound),
                )
        if minimum is not None and maximum is not None and minimum > maximum:
            self.diagnostics.push(
                DiagnosticCode.TYPE_SHAPE_MISMATCH,
                f"`minimum` is greater than `maximum` on property `{name}`",
                options.location("minimum"),
            )
        return PropertyBounds(minimum=minimum, maximum=maximum)

    def _fits(self, value_type: str, value: Any) -> bool:
        if isinstance(value, bool):
            return False
        if is_integer(value_type):
            if not isinstance(value, int):
                return False
            low, high = INTEGER_RANGES[value_type]
            return (low is None or value >= low) and (high is None or value <= high)
        if value_type in FLOAT_TYPES:
            return isinstance(value, (int, float))
        return False

    def _check_default(
        self,
        name: str,
        value_type: str,
        default: Any,
        bounds: PropertyBounds | None,
        options: ParsedOptions,
    ) -> None:
        location = options.location("default")
        if is_numeric(value_type):
            ok = self._fits(value_type, default)
            if ok and bounds is not None:
                ok = (bounds.minimum is None or default >= bounds.minimum) and (
                    bounds.maximum is None or default <= bounds.maximum
                )
        elif value_type == "bool":
            ok = isinstance(default, bool)
        elif value_type == "str":
            ok = default is None or isinstance(default, str)
        else:
            ok = True
        if not ok:
            self.diagnostics.push(
                DiagnosticCode.TYPE_SHAPE_MISMATCH,
                f"Default {default!r} is not valid for property `{name}` of type `{value_type}`",
                location,
            )
