"""
Source front end.

Reads an annotated module with the standard ``ast`` module (it is never
imported or executed), locates the data definition and the method
collections, and gives every method exactly one role.
"""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass, field

from .attributes import METHODS_OPTIONS, AttributeParser, tag_name
from .errors import DiagnosticCode, Diagnostics
from .ir import MethodItem, MethodRole, Parameter, ParameterKind, SourceLocation, TypeBase, TypeMode

logger = logging.getLogger(__name__)

# Tags that mark the data definition, with the type base they select.
DATA_TAGS: dict[str, TypeBase | None] = {
    "gclass": TypeBase.CLASS,
    "ginterface": TypeBase.INTERFACE,
    "properties": None,
}

COLLECTION_TAG = "methods"

ROLE_TAGS: dict[str, MethodRole] = {
    "signal": MethodRole.SIGNAL,
    "accumulator": MethodRole.ACCUMULATOR,
    "virt": MethodRole.VIRTUAL,
    "virtual": MethodRole.VIRTUAL,
    "constructor": MethodRole.CONSTRUCTOR,
    "public": MethodRole.PUBLIC,
    "getter": MethodRole.ACCESSOR,
    "setter": MethodRole.ACCESSOR,
}

DEFAULT_LIFECYCLE_METHODS = ("init", "constructed", "dispose", "class_init")


@dataclass
class RawField:
    """A field statement of the data definition."""

    name: str
    annotation: ast.expr | None
    value: ast.expr | None
    location: SourceLocation


@dataclass(eq=False)
class RawMethod:
    """A classified method plus its role tag node for option parsing."""

    item: MethodItem
    tag: ast.expr | None = None


@dataclass
class RawCollection:
    """A method collection before the derivers take their methods out."""

    index: int
    name: str
    mode: TypeMode
    location: SourceLocation
    entries: list[RawMethod] = field(default_factory=list)

    def of_role(self, role: MethodRole) -> list[RawMethod]:
        return [e for e in self.entries if e.item.role == role]

    def take(self, entry: RawMethod) -> None:
        self.entries.remove(entry)

    def find(self, name: str) -> RawMethod | None:
        for entry in self.entries:
            if entry.item.name == name:
                return entry
        return None


@dataclass
class SourceModule:
    """
    Everything the derivers need from one annotated module.

    Attributes:
        data_class: The data definition, if any
        data_tag: Its ``@gclass``/``@ginterface``/``@properties`` decorator
        base: Type base selected by the data tag, if any
        fields: Field statements of the data definition
        collections: Method collections, collection 0 first when a data class exists
        imports: Top-level import statements, as source
        module_items: Other top-level statements kept verbatim
    """

    file: str
    text: str
    data_class: ast.ClassDef | None = None
    data_tag: ast.expr | None = None
    base: TypeBase | None = None
    fields: list[RawField] = field(default_factory=list)
    collections: list[RawCollection] = field(default_factory=list)
    imports: list[str] = field(default_factory=list)
    module_items: list[str] = field(default_factory=list)
    docstring: str | None = None


def parse_module(
    text: str,
    file: str,
    diagnostics: Diagnostics,
    lifecycle_methods: tuple[str, ...] = DEFAULT_LIFECYCLE_METHODS,
) -> SourceModule | None:
    """
    Parse a module and classify its items.

    Returns:
        The SourceModule, or None when the text is not valid Python
    """
    try:
        tree = ast.parse(text, filename=file)
    except SyntaxError as e:
        diagnostics.push(
            DiagnosticCode.MALFORMED_SOURCE,
            f"Invalid source: {e.msg}",
            SourceLocation(file=file, line=e.lineno or 1, column=e.offset or 1),
        )
        return None

    parser = AttributeParser(file, diagnostics)
    module = SourceModule(file=file, text=text)
    reader = _MethodReader(file, diagnostics, lifecycle_methods)

    data_classes: list[tuple[ast.ClassDef, ast.expr | None]] = []
    untagged: list[ast.ClassDef] = []
    collection_classes: list[tuple[ast.ClassDef, ast.expr]] = []

    for stmt in tree.body:
        if isinstance(stmt, (ast.Import, ast.ImportFrom)):
            module.imports.append(ast.unparse(stmt))
        elif isinstance(stmt, ast.ClassDef):
            data_tags = [d for d in stmt.decorator_list if tag_name(d) in DATA_TAGS]
            collection_tags = [d for d in stmt.decorator_list if tag_name(d) == COLLECTION_TAG]
            tags = data_tags + collection_tags
            if len(tags) > 1:
                diagnostics.push(
                    DiagnosticCode.DUPLICATE_ROLE,
                    f"Class `{stmt.name}` carries more than one of "
                    + ", ".join(f"`@{tag_name(t)}`" for t in tags),
                    SourceLocation.of(file, tags[1]),
                )
            if data_tags:
                data_classes.append((stmt, data_tags[0]))
            elif collection_tags:
                collection_classes.append((stmt, collection_tags[0]))
            else:
                untagged.append(stmt)
        elif isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Constant) and isinstance(stmt.value.value, str):
            if module.docstring is None and stmt is tree.body[0]:
                module.docstring = stmt.value.value
        else:
            module.module_items.append(ast.unparse(stmt))

    if len(data_classes) > 1:
        for cls, tag in data_classes[1:]:
            diagnostics.push(
                DiagnosticCode.DUPLICATE_ROLE,
                f"Only one data definition is allowed in a module; `{cls.name}` repeats it",
                SourceLocation.of(file, tag if tag is not None else cls),
            )
    if data_classes:
        module.data_class, module.data_tag = data_classes[0]
        module.base = DATA_TAGS[tag_name(module.data_tag) or ""]
        for cls in untagged:
            module.module_items.append(ast.unparse(cls))
    elif len(untagged) == 1:
        module.data_class = untagged[0]
    else:
        for cls in untagged:
            module.module_items.append(ast.unparse(cls))

    if module.data_class is not None:
        module.docstring = ast.get_docstring(module.data_class) or module.docstring
        module.fields, methods = _read_class_body(module.data_class, file, diagnostics, allow_fields=True)
        collection = RawCollection(
            index=0,
            name=module.data_class.name,
            mode=TypeMode.SUBCLASS,
            location=SourceLocation.of(file, module.data_class),
        )
        collection.entries = [reader.read(m, TypeMode.SUBCLASS) for m in methods]
        module.collections.append(collection)

    for cls, tag in collection_classes:
        options = parser.parse(tag, METHODS_OPTIONS)
        mode = TypeMode.WRAPPER if options.has("wrapper") else TypeMode.SUBCLASS
        _, methods = _read_class_body(cls, file, diagnostics, allow_fields=False)
        collection = RawCollection(
            index=len(module.collections),
            name=cls.name,
            mode=mode,
            location=SourceLocation.of(file, cls),
        )
        collection.entries = [reader.read(m, mode) for m in methods]
        module.collections.append(collection)

    logger.debug(
        "Parsed %s: data=%s, %d collection(s)",
        file,
        module.data_class.name if module.data_class else None,
        len(module.collections),
    )
    return module


def _read_class_body(
    cls: ast.ClassDef,
    file: str,
    diagnostics: Diagnostics,
    allow_fields: bool,
) -> tuple[list[RawField], list[ast.FunctionDef | ast.AsyncFunctionDef]]:
    fields: list[RawField] = []
    methods: list[ast.FunctionDef | ast.AsyncFunctionDef] = []

    for i, stmt in enumerate(cls.body):
        if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
            methods.append(stmt)
            continue
        if i == 0 and isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Constant):
            continue  # docstring
        if isinstance(stmt, ast.Pass) or (
            isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Constant) and stmt.value.value is Ellipsis
        ):
            continue
        location = SourceLocation.of(file, stmt)
        if allow_fields and isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
            fields.append(RawField(stmt.target.id, stmt.annotation, stmt.value, location))
        elif (
            allow_fields
            and isinstance(stmt, ast.Assign)
            and len(stmt.targets) == 1
            and isinstance(stmt.targets[0], ast.Name)
        ):
            fields.append(RawField(stmt.targets[0].id, None, stmt.value, location))
        elif allow_fields:
            diagnostics.push(
                DiagnosticCode.MALFORMED_SOURCE,
                f"Unsupported statement in data definition `{cls.name}`",
                location,
            )
        else:
            diagnostics.push(
                DiagnosticCode.MALFORMED_SOURCE,
                f"Only methods are allowed in method collection `{cls.name}`",
                location,
            )
    return fields, methods


def _is_empty_body(body: list[ast.stmt]) -> bool:
    for stmt in body:
        if isinstance(stmt, ast.Pass):
            continue
        if isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Constant):
            if isinstance(stmt.value.value, str) or stmt.value.value is Ellipsis:
                continue
        return False
    return True


def _parameters(args: ast.arguments) -> list[Parameter]:
    params: list[Parameter] = []
    positional = args.posonlyargs + args.args
    defaults: list[ast.expr | None] = [None] * (len(positional) - len(args.defaults)) + list(args.defaults)
    for arg, default in zip(positional, defaults):
        params.append(_parameter(arg, default, ParameterKind.POSITIONAL))
    if args.vararg is not None:
        params.append(_parameter(args.vararg, None, ParameterKind.VAR_POSITIONAL))
    for arg, default in zip(args.kwonlyargs, args.kw_defaults):
        params.append(_parameter(arg, default, ParameterKind.KEYWORD_ONLY))
    if args.kwarg is not None:
        params.append(_parameter(args.kwarg, None, ParameterKind.VAR_KEYWORD))
    return params


def _parameter(arg: ast.arg, default: ast.expr | None, kind: ParameterKind) -> Parameter:
    return Parameter(
        name=arg.arg,
        annotation=ast.unparse(arg.annotation) if arg.annotation is not None else None,
        default=ast.unparse(default) if default is not None else None,
        kind=kind,
    )


class _MethodReader:
    """Builds MethodItems and assigns each one a single role."""

    def __init__(self, file: str, diagnostics: Diagnostics, lifecycle_methods: tuple[str, ...]):
        self.file = file
        self.diagnostics = diagnostics
        self.lifecycle_methods = lifecycle_methods

    def read(self, node: ast.FunctionDef | ast.AsyncFunctionDef, mode: TypeMode) -> RawMethod:
        role_tags = [d for d in node.decorator_list if tag_name(d) in ROLE_TAGS]
        others = [d for d in node.decorator_list if tag_name(d) not in ROLE_TAGS]

        if len(role_tags) > 1:
            self.diagnostics.push(
                DiagnosticCode.DUPLICATE_ROLE,
                f"Method `{node.name}` carries more than one role tag: "
                + ", ".join(f"`@{tag_name(t)}`" for t in role_tags),
                SourceLocation.of(self.file, role_tags[1]),
            )

        tag = role_tags[0] if role_tags else None
        if tag is not None:
            role = ROLE_TAGS[tag_name(tag) or ""]
            for other in others:
                self.diagnostics.push(
                    DiagnosticCode.UNKNOWN_OPTION,
                    f"Decorator `@{ast.unparse(other)}` is not allowed on a `@{tag_name(tag)}` method",
                    SourceLocation.of(self.file, other),
                )
            others = []
        elif mode == TypeMode.SUBCLASS and node.name in self.lifecycle_methods:
            role = MethodRole.LIFECYCLE
        else:
            role = MethodRole.PLAIN

        stripped = _strip_decorators(node, others)
        item = MethodItem(
            name=node.name,
            params=_parameters(node.args),
            returns=ast.unparse(node.returns) if node.returns is not None else None,
            source=ast.unparse(stripped),
            empty_body=_is_empty_body(node.body),
            is_async=isinstance(node, ast.AsyncFunctionDef),
            role=role,
            tag=tag_name(tag) if tag is not None else None,
            location=SourceLocation.of(self.file, node),
        )
        return RawMethod(item=item, tag=tag)


def _strip_decorators(
    node: ast.FunctionDef | ast.AsyncFunctionDef,
    keep: list[ast.expr],
) -> ast.FunctionDef | ast.AsyncFunctionDef:
    cls = type(node)
    copy = cls(**{name: getattr(node, name) for name in node._fields})
    copy.decorator_list = list(keep)
    return ast.copy_location(copy, node)
