"""
Attribute parser.

Turns metadata tags (decorator calls, ``prop(...)`` field values, or raw
option text) into typed option values against a schema. Problems are
recorded as diagnostics and the offending option falls back to the schema
default, so one malformed tag never hides the errors after it.
"""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import DiagnosticCode, Diagnostics
from .ir.location import SourceLocation

logger = logging.getLogger(__name__)


class OptionKind(Enum):
    """Value shapes an option accepts."""

    FLAG = "flag"  # bare name, or =True / =False
    BOOL = "bool"
    STRING = "string"
    IDENT = "ident"
    NUMBER = "number"
    PATH = "path"
    PATH_LIST = "path_list"
    ACCESSOR = "accessor"  # bool, or a custom accessor name
    NAME_OR_FLAG = "name_or_flag"  # identifier, or False to suppress
    LITERAL = "literal"


@dataclass(frozen=True)
class OptionSchema:
    """
    Accepted options for one kind of tag.

    Attributes:
        label: How the tag is named in diagnostics, e.g. ``@signal``
        options: Option name to value kind
        positional: Option that a single positional value binds to
    """

    label: str
    options: dict[str, OptionKind]
    positional: str | None = None


@dataclass
class ParsedOptions:
    """Typed option values plus the location each one was written at."""

    values: dict[str, Any] = field(default_factory=dict)
    locations: dict[str, SourceLocation] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    def has(self, name: str) -> bool:
        """True when the option was given and is not an explicit False."""
        return name in self.values and self.values[name] is not False

    def location(self, name: str) -> SourceLocation | None:
        return self.locations.get(name)

    def flag(self, name: str) -> tuple[str, SourceLocation | None]:
        """(name, location) pair for the flag-set checks; location is None when unset."""
        if self.has(name):
            return (name, self.locations.get(name))
        return (name, None)

    def set_default(self, name: str, value: Any) -> None:
        self.values.setdefault(name, value)


def dotted_name(node: ast.expr) -> str | None:
    """``a.b.C`` from Name/Attribute chains, or a string constant."""
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        base = dotted_name(node.value)
        return f"{base}.{node.attr}" if base else None
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    return None


def tag_name(node: ast.expr) -> str | None:
    """Name of a tag: ``signal`` for ``@signal``, ``@signal(...)`` or ``@gloam.signal(...)``."""
    if isinstance(node, ast.Call):
        node = node.func
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return None


_KIND_NAMES = {
    OptionKind.BOOL: "a boolean",
    OptionKind.STRING: "a string",
    OptionKind.IDENT: "an identifier",
    OptionKind.NUMBER: "a number",
    OptionKind.PATH: "a type path",
    OptionKind.PATH_LIST: "a list of type paths",
    OptionKind.ACCESSOR: "a boolean or accessor name",
    OptionKind.NAME_OR_FLAG: "a name or False",
    OptionKind.LITERAL: "a literal value",
    OptionKind.FLAG: "True or False",
}


class _Invalid(Exception):
    """Internal: a value did not match its option kind."""


class AttributeParser:
    """
    Parses tags for one compilation unit.

    Example:
        parser = AttributeParser("counter.py", diagnostics)
        options = parser.parse(decorator_node, SIGNAL_OPTIONS)
        if options.has("run_first"):
            ...
    """

    def __init__(self, file: str, diagnostics: Diagnostics):
        self.file = file
        self.diagnostics = diagnostics
        self._origin: SourceLocation | None = None

    def parse(self, node: ast.expr | None, schema: OptionSchema) -> ParsedOptions:
        """Parse a bare tag (``@virt``) or a tag call (``@signal(run_first)``)."""
        options = ParsedOptions()
        if node is None or not isinstance(node, ast.Call):
            return options
        for arg in node.args:
            self._parse_positional(arg, schema, options)
        for keyword in node.keywords:
            self._parse_keyword(keyword, schema, options)
        return options

    def parse_text(self, text: str, schema: OptionSchema, origin: SourceLocation | None = None) -> ParsedOptions:
        """
        Parse raw option text such as ``final, extends=[Base]``.

        Args:
            text: Option text without surrounding parentheses
            schema: Target schema
            origin: Location of the text's first character

        Returns:
            Parsed options; schema defaults on malformed text
        """
        origin = origin or SourceLocation(file=self.file, line=1, column=1)
        try:
            tree = ast.parse(f"_({text}\n)", mode="eval")
        except SyntaxError as e:
            line = origin.line + (e.lineno or 1) - 1
            column = origin.column + max((e.offset or 1) - 3, 0) if (e.lineno or 1) == 1 else (e.offset or 1)
            self.diagnostics.push(
                DiagnosticCode.MALFORMED_ATTRIBUTE,
                f"Malformed options for {schema.label}: {e.msg}",
                SourceLocation(file=origin.file, line=line, column=column),
            )
            return ParsedOptions()

        self._origin = origin
        try:
            return self.parse(tree.body, schema)
        finally:
            self._origin = None

    def _location(self, node: ast.AST) -> SourceLocation:
        if self._origin is None:
            return SourceLocation.of(self.file, node)
        lineno = getattr(node, "lineno", 1)
        col = getattr(node, "col_offset", 0)
        if lineno == 1:
            # text was wrapped as "_(" + text
            return SourceLocation(file=self._origin.file, line=self._origin.line, column=self._origin.column + col - 2)
        return SourceLocation(file=self._origin.file, line=self._origin.line + lineno - 1, column=col + 1)

    def _parse_positional(self, node: ast.expr, schema: OptionSchema, options: ParsedOptions) -> None:
        location = self._location(node)

        if isinstance(node, ast.Name) and node.id in schema.options:
            kind = schema.options[node.id]
            if kind in (OptionKind.FLAG, OptionKind.BOOL, OptionKind.ACCESSOR, OptionKind.NAME_OR_FLAG):
                self._store(node.id, True, location, schema, options)
            else:
                self._malformed(f"Option `{node.id}` on {schema.label} requires a value", location)
            return

        if isinstance(node, ast.Call) and isinstance(node.func, ast.Name) and node.func.id in schema.options:
            name = node.func.id
            if schema.options[name] != OptionKind.PATH_LIST or node.keywords:
                self._malformed(f"Option `{name}` on {schema.label} does not take arguments", location)
                return
            try:
                paths = [self._path(arg) for arg in node.args]
            except _Invalid:
                self._malformed(f"Option `{name}` on {schema.label} expects a list of type paths", location)
                return
            self._store(name, paths, location, schema, options)
            return

        if schema.positional and schema.positional not in options.values:
            self._convert_and_store(schema.positional, node, location, schema, options)
            return

        if isinstance(node, ast.Name):
            self._unknown(node.id, schema, location)
        elif isinstance(node, ast.Call) and isinstance(node.func, ast.Name):
            self._unknown(node.func.id, schema, location)
        elif isinstance(node, ast.Starred):
            self._malformed(f"Unpacking is not allowed in {schema.label}", location)
        else:
            self._malformed(f"Unexpected positional argument in {schema.label}", location)

    def _parse_keyword(self, keyword: ast.keyword, schema: OptionSchema, options: ParsedOptions) -> None:
        location = self._location(keyword)
        if keyword.arg is None:
            self._malformed(f"Unpacking is not allowed in {schema.label}", location)
            return
        if keyword.arg not in schema.options:
            self._unknown(keyword.arg, schema, location)
            return
        self._convert_and_store(keyword.arg, keyword.value, location, schema, options)

    def _convert_and_store(
        self,
        name: str,
        node: ast.expr,
        location: SourceLocation,
        schema: OptionSchema,
        options: ParsedOptions,
    ) -> None:
        kind = schema.options[name]
        try:
            value = self._convert(kind, node)
        except _Invalid:
            self._malformed(f"Option `{name}` on {schema.label} expects {_KIND_NAMES[kind]}", location)
            return
        self._store(name, value, location, schema, options)

    def _store(
        self,
        name: str,
        value: Any,
        location: SourceLocation,
        schema: OptionSchema,
        options: ParsedOptions,
    ) -> None:
        if name in options.values:
            self._malformed(f"Duplicate option `{name}` on {schema.label}", location)
            return
        options.values[name] = value
        options.locations[name] = location

    def _convert(self, kind: OptionKind, node: ast.expr) -> Any:
        if kind in (OptionKind.FLAG, OptionKind.BOOL):
            if isinstance(node, ast.Constant) and isinstance(node.value, bool):
                return node.value
            raise _Invalid()
        if kind == OptionKind.STRING:
            if isinstance(node, ast.Constant) and isinstance(node.value, str):
                return node.value
            raise _Invalid()
        if kind == OptionKind.IDENT:
            value = dotted_name(node)
            if value is None or not value.isidentifier():
                raise _Invalid()
            return value
        if kind == OptionKind.NUMBER:
            value = self._literal(node)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise _Invalid()
            return value
        if kind == OptionKind.PATH:
            return self._path(node)
        if kind == OptionKind.PATH_LIST:
            if isinstance(node, (ast.List, ast.Tuple)):
                return [self._path(elt) for elt in node.elts]
            return [self._path(node)]
        if kind == OptionKind.ACCESSOR:
            if isinstance(node, ast.Constant) and isinstance(node.value, (bool, str)):
                if isinstance(node.value, str) and node.value != "_" and not node.value.isidentifier():
                    raise _Invalid()
                return node.value
            raise _Invalid()
        if kind == OptionKind.NAME_OR_FLAG:
            if isinstance(node, ast.Constant) and isinstance(node.value, bool):
                return node.value
            if isinstance(node, ast.Constant) and isinstance(node.value, str) and node.value.isidentifier():
                return node.value
            raise _Invalid()
        return self._literal(node)

    def _literal(self, node: ast.expr) -> Any:
        try:
            return ast.literal_eval(node)
        except (ValueError, TypeError, SyntaxError) as e:
            raise _Invalid() from e

    def _path(self, node: ast.expr) -> str:
        value = dotted_name(node)
        if not value or not all(part.isidentifier() for part in value.split(".")):
            raise _Invalid()
        return value

    def _unknown(self, name: str, schema: OptionSchema, location: SourceLocation) -> None:
        logger.debug("Unknown option %s on %s at %s", name, schema.label, location)
        self.diagnostics.push(
            DiagnosticCode.UNKNOWN_OPTION,
            f"Unknown option `{name}` on {schema.label}",
            location,
        )

    def _malformed(self, message: str, location: SourceLocation) -> None:
        self.diagnostics.push(DiagnosticCode.MALFORMED_ATTRIBUTE, message, location)


# =============================================================================
# Option schemas
# =============================================================================

F = OptionKind

PROPERTY_OPTIONS = OptionSchema(
    label="prop()",
    options={
        "skip": F.FLAG,
        "get": F.ACCESSOR,
        "set": F.ACCESSOR,
        "construct": F.FLAG,
        "construct_only": F.FLAG,
        "explicit_notify": F.FLAG,
        "lax_validation": F.FLAG,
        "deprecated": F.FLAG,
        "notify": F.FLAG,
        "connect_notify": F.FLAG,
        "abstract": F.FLAG,
        "computed": F.FLAG,
        "override_class": F.PATH,
        "override_iface": F.PATH,
        "storage": F.PATH,
        "name": F.STRING,
        "nick": F.STRING,
        "blurb": F.STRING,
        "minimum": F.NUMBER,
        "maximum": F.NUMBER,
        "default": F.LITERAL,
    },
)

SIGNAL_OPTIONS = OptionSchema(
    label="@signal",
    options={
        "run_first": F.FLAG,
        "run_last": F.FLAG,
        "run_cleanup": F.FLAG,
        "detailed": F.FLAG,
        "action": F.FLAG,
        "deprecated": F.FLAG,
        "override": F.FLAG,
        "connect": F.FLAG,
        "name": F.STRING,
        "accumulator": F.IDENT,
    },
)

ACCUMULATOR_OPTIONS = OptionSchema(
    label="@accumulator",
    options={"signal": F.STRING},
    positional="signal",
)

VIRTUAL_OPTIONS = OptionSchema(
    label="@virt",
    options={"override": F.FLAG, "override_iface": F.PATH},
)

CONSTRUCTOR_OPTIONS = OptionSchema(
    label="@constructor",
    options={"fallible": F.FLAG, "name": F.IDENT},
)

PUBLIC_OPTIONS = OptionSchema(
    label="@public",
    options={"static": F.FLAG},
)

ACCESSOR_OPTIONS = OptionSchema(
    label="@getter",
    options={"prop": F.STRING},
    positional="prop",
)

METHODS_OPTIONS = OptionSchema(
    label="@methods",
    options={"wrapper": F.FLAG},
)

PROPERTIES_OPTIONS = OptionSchema(
    label="@properties",
    options={"pod": F.FLAG},
)

CLASS_OPTIONS = OptionSchema(
    label="@gclass",
    options={
        "name": F.IDENT,
        "ns": F.IDENT,
        "ext_trait": F.NAME_OR_FLAG,
        "wrapper": F.BOOL,
        "pod": F.FLAG,
        "final": F.FLAG,
        "abstract": F.FLAG,
        "sync": F.FLAG,
        "extends": F.PATH_LIST,
        "implements": F.PATH_LIST,
    },
)

INTERFACE_OPTIONS = OptionSchema(
    label="@ginterface",
    options={
        "name": F.IDENT,
        "ns": F.IDENT,
        "ext_trait": F.NAME_OR_FLAG,
        "wrapper": F.BOOL,
        "sync": F.FLAG,
        "requires": F.PATH_LIST,
    },
)
