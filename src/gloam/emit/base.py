"""
Base generator classes for module emission.

Each generator renders one part of the generated module from a validated
definition:
- ImplGenerator: the instance-private imp class
- AccessorsGenerator: the ext mixin with typed accessors and dispatchers
- RegistrationGenerator: the wrapper class and the registration call

Generators are pure: the same definition always renders to the same text.
"""

from __future__ import annotations

import ast
import textwrap
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from ..core.ir import ClassDefinition, InterfaceDefinition, MethodCollection, MethodItem, TypeBase
from ..core.ir.properties import FLOAT_TYPES, INTEGER_RANGES

Definition = ClassDefinition | InterfaceDefinition


@dataclass(frozen=True)
class EmitOptions:
    """
    Emission settings.

    Attributes:
        runtime_module: Module the generated code imports the runtime from
        runtime_alias: Name the runtime is bound to in the generated module
        source_name: Source file name written into the header
    """

    runtime_module: str = "gloam.runtime"
    runtime_alias: str = "_rt"
    source_name: str = "<source>"


@dataclass
class EmitResult:
    """
    Result from a generator execution.

    Attributes:
        blocks: Top-level code blocks, in module order
    """

    blocks: list[str] = field(default_factory=list)

    def add_block(self, code: str) -> None:
        if code:
            self.blocks.append(code.rstrip("\n"))

    def merge(self, other: EmitResult) -> None:
        """Merge another result into this one."""
        self.blocks.extend(other.blocks)

    def render(self) -> str:
        return "\n\n\n".join(self.blocks) + "\n"


@dataclass(frozen=True)
class EmitNames:
    """Names of the generated module's classes."""

    wrapper: str
    imp: str
    ext: str | None
    gtype: str

    @classmethod
    def of(cls, definition: Definition) -> EmitNames:
        name = definition.name
        if definition.kind == TypeBase.INTERFACE:
            imp = f"_{name}Iface"
        else:
            imp = f"_{name}Imp"
        return cls(wrapper=name, imp=imp, ext=definition.ext_trait, gtype=definition.gtype_name)


class Generator(ABC):
    """
    Base class for all generators.

    Example:
        class DocGenerator(Generator):
            def generate(self) -> EmitResult:
                result = EmitResult()
                result.add_block(f"__doc__ = {self.definition.name!r}")
                return result
    """

    def __init__(self, definition: Definition, options: EmitOptions | None = None):
        """
        Initialize generator.

        Args:
            definition: Validated class or interface definition
            options: Emission settings
        """
        self.definition = definition
        self.options = options or EmitOptions()
        self.names = EmitNames.of(definition)
        self.rt = self.options.runtime_alias

    @property
    def inner(self):
        return self.definition.inner

    @property
    def is_interface(self) -> bool:
        return self.definition.kind == TypeBase.INTERFACE

    @abstractmethod
    def generate(self) -> EmitResult:
        """
        Render this generator's blocks.

        Returns:
            EmitResult with code blocks
        """
        pass


class CompositeGenerator(Generator):
    """Generator that runs multiple sub-generators in order."""

    @abstractmethod
    def get_generators(self) -> list[Generator]:
        pass

    def generate(self) -> EmitResult:
        combined = EmitResult()

        for generator in self.get_generators():
            combined.merge(generator.generate())

        return combined


# =============================================================================
# Rendering helpers
# =============================================================================


class ClassBuilder:
    """
    Assembles a class statement from source snippets.

    Snippets are parsed and the class is rendered with ``ast.unparse``, so
    user method bodies are re-indented without touching their contents.
    """

    def __init__(
        self,
        name: str,
        bases: Sequence[str] = (),
        decorators: Sequence[str] = (),
        docstring: str | None = None,
    ):
        header = "".join(f"@{d}\n" for d in decorators)
        header += f"class {name}({', '.join(bases)}):\n    pass\n" if bases else f"class {name}:\n    pass\n"
        self.node = ast.parse(header).body[0]
        self.node.body = []
        if docstring:
            self.node.body.append(ast.Expr(value=ast.Constant(value=docstring)))

    def add(self, source: str) -> None:
        """Append statements written at any indentation."""
        self.node.body.extend(ast.parse(textwrap.dedent(source)).body)

    def add_method(
        self,
        item: MethodItem,
        rename: str | None = None,
        decorators: Sequence[str] = (),
    ) -> None:
        """Append a user method, optionally renamed and with extra decorators."""
        node = ast.parse(item.source).body[0]
        if rename is not None:
            node.name = rename
        extra = [ast.parse(d, mode="eval").body for d in decorators]
        node.decorator_list = extra + node.decorator_list
        self.node.body.append(node)

    def __bool__(self) -> bool:
        return bool(self.node.body)

    def render(self) -> str:
        if not self.node.body:
            self.node.body.append(ast.Pass())
        return ast.unparse(self.node)


def mixin_name(collection: MethodCollection) -> str:
    """Class name of a wrapped collection; collection 0 shares the data class name."""
    if collection.index == 0:
        return f"_{collection.name}Methods"
    return collection.name


def wrapped_mixin(collection: MethodCollection) -> str:
    builder = ClassBuilder(mixin_name(collection), decorators=[collection.wrapped_by or ""])
    for method in collection.methods:
        builder.add_method(method)
    return builder.render()


def py_type(value_type: str) -> str:
    """Annotation for a declared value type: sized numeric aliases map to int/float."""
    if value_type in INTEGER_RANGES:
        return "int"
    if value_type in FLOAT_TYPES:
        return "float"
    return value_type


def returns(item: MethodItem) -> str:
    return f" -> {item.returns}" if item.returns else ""


def def_line(name: str, params: str, annotation: str | None = None) -> str:
    return f"def {name}({params})" + (f" -> {annotation}" if annotation else "") + ":"


def join_params(*parts: str) -> str:
    return ", ".join(p for p in parts if p)
