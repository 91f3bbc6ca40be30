"""
Type, class and interface definitions.

TypeDefinition is what the assembler produces; ClassDefinition and
InterfaceDefinition add the top-level options applied by the builder and
are what the emitter and extension hooks consume.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from ..naming import member_name, upper_camel_case
from .items import MethodCollection, MethodItem, TypeMode
from .location import SourceLocation
from .methods import (
    AccessorDefinition,
    ConstructorDefinition,
    PublicMethodDefinition,
    VirtualMethodDefinition,
)
from .properties import FieldDefinition, PropertyDefinition
from .signals import SignalDefinition


class TypeBase(str, Enum):
    """Kind of type being defined."""

    CLASS = "class"
    INTERFACE = "interface"


LIFECYCLE_PHASES = ("class_init", "instance_init", "constructed", "dispose")


class TypeDefinition(BaseModel):
    """
    The assembled type, before top-level options are applied.

    Attributes:
        name: Resolved type name (None only when resolution failed)
        base: Class or interface
        fields: Data-definition fields in declaration order
        method_collections: Collections with their remaining plain methods
        lifecycle: Lifecycle hook methods keyed by phase
        custom_stmts: Extra statements keyed by lifecycle phase
    """

    name: str | None = None
    base: TypeBase = TypeBase.CLASS
    file: str = "<source>"
    docstring: str | None = None
    imports: list[str] = Field(default_factory=list)
    module_items: list[str] = Field(default_factory=list)
    fields: list[FieldDefinition] = Field(default_factory=list)
    method_collections: list[MethodCollection] = Field(default_factory=list)
    signals: list[SignalDefinition] = Field(default_factory=list)
    virtual_methods: list[VirtualMethodDefinition] = Field(default_factory=list)
    constructors: list[ConstructorDefinition] = Field(default_factory=list)
    public_methods: list[PublicMethodDefinition] = Field(default_factory=list)
    accessors: list[AccessorDefinition] = Field(default_factory=list)
    lifecycle: dict[str, MethodItem] = Field(default_factory=dict)
    custom_stmts: dict[str, list[str]] = Field(default_factory=dict)
    location: SourceLocation

    @property
    def properties(self) -> list[PropertyDefinition]:
        return [f.prop for f in self.fields if f.prop is not None]

    @property
    def plain_fields(self) -> list[FieldDefinition]:
        return [f for f in self.fields if f.prop is None]

    def find_property(self, name: str) -> PropertyDefinition | None:
        """Look up by registered name or field name."""
        for prop in self.properties:
            if prop.name == name or prop.field_name == name or prop.name == member_name(name):
                return prop
        return None

    def collections(self, mode: TypeMode) -> list[MethodCollection]:
        return [c for c in self.method_collections if c.mode == mode]

    def wrap_collection(self, index: int, decorator: str) -> None:
        """Emit collection ``index`` as a separate mixin class decorated with ``decorator``."""
        for collection in self.method_collections:
            if collection.index == index:
                collection.wrapped_by = decorator
                return
        raise ValueError(f"No method collection with index {index}")

    def add_custom_stmt(self, phase: str, stmt: str) -> None:
        """Append a generated statement to a lifecycle phase."""
        if phase not in LIFECYCLE_PHASES:
            raise ValueError(f"Unknown lifecycle phase '{phase}'")
        self.custom_stmts.setdefault(phase, []).append(stmt)

    def custom_stmts_for(self, phase: str) -> list[str]:
        return list(self.custom_stmts.get(phase, []))


class ClassDefinition(BaseModel):
    """
    A class type with its top-level options applied.

    Attributes:
        inner: The assembled TypeDefinition
        ns: Namespace prefix for the registered type name
        ext_trait: Extension mixin name, None when final or suppressed
        wrapper: Whether the wrapper class is generated
        sync: Whether instances may be shared across threads
    """

    inner: TypeDefinition
    ns: str | None = None
    ext_trait: str | None = None
    wrapper: bool = True
    pod: bool = False
    final: bool = False
    abstract: bool = False
    sync: bool = False
    extends: list[str] = Field(default_factory=list)
    implements: list[str] = Field(default_factory=list)

    @property
    def kind(self) -> TypeBase:
        return TypeBase.CLASS

    @property
    def name(self) -> str:
        return self.inner.name or ""

    @property
    def gtype_name(self) -> str:
        return upper_camel_case(f"{self.ns or ''}{self.name}")

    @property
    def parent(self) -> str | None:
        return self.extends[0] if self.extends else None


class InterfaceDefinition(BaseModel):
    """An interface type with its top-level options applied."""

    inner: TypeDefinition
    ns: str | None = None
    ext_trait: str | None = None
    wrapper: bool = True
    sync: bool = False
    requires: list[str] = Field(default_factory=list)

    @property
    def kind(self) -> TypeBase:
        return TypeBase.INTERFACE

    @property
    def name(self) -> str:
        return self.inner.name or ""

    @property
    def gtype_name(self) -> str:
        return upper_camel_case(f"{self.ns or ''}{self.name}")

    @property
    def final(self) -> bool:
        return False

    @property
    def implements(self) -> list[str]:
        return []
