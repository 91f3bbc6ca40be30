"""
Virtual method, constructor, public method and accessor definitions.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from .items import MethodItem, Parameter, TypeMode
from .location import SourceLocation


class VirtualMethodDefinition(BaseModel):
    """
    A dispatch slot with a default implementation.

    Attributes:
        override: True when this replaces an ancestor class slot
        override_iface: Interface path when this replaces an interface slot
        method: The default (or overriding) body
    """

    name: str
    method: MethodItem
    params: list[Parameter] = Field(default_factory=list)
    return_type: str | None = None
    override: bool = False
    override_iface: str | None = None
    collection: int = 0
    location: SourceLocation

    @property
    def is_override(self) -> bool:
        return self.override or self.override_iface is not None


class Fallibility(str, Enum):
    INFALLIBLE = "infallible"
    FALLIBLE = "fallible"


class ConstructorDefinition(BaseModel):
    """
    A named constructor on the wrapper type.

    An empty body maps each parameter to the property with the same field
    name; a non-empty body returns the property mapping itself.
    """

    name: str
    method: MethodItem
    params: list[Parameter] = Field(default_factory=list)
    fallibility: Fallibility = Fallibility.INFALLIBLE
    location: SourceLocation

    @property
    def maps_parameters(self) -> bool:
        return self.method.empty_body


class PublicMethodDefinition(BaseModel):
    """A subclass-side method exported on the wrapper."""

    name: str
    method: MethodItem
    static: bool = False
    mode: TypeMode = TypeMode.SUBCLASS
    location: SourceLocation


class AccessorKind(str, Enum):
    GETTER = "getter"
    SETTER = "setter"


class AccessorDefinition(BaseModel):
    """A method overriding a property's generated getter or setter."""

    kind: AccessorKind
    property_name: str
    method: MethodItem
    mode: TypeMode = TypeMode.SUBCLASS
    location: SourceLocation
