"""
gloam model types.

All model types are re-exported from this package.
"""

from .definition import (
    LIFECYCLE_PHASES,
    ClassDefinition,
    InterfaceDefinition,
    TypeBase,
    TypeDefinition,
)
from .items import (
    MethodCollection,
    MethodItem,
    MethodRole,
    Parameter,
    ParameterKind,
    TypeMode,
)
from .location import SourceLocation
from .methods import (
    AccessorDefinition,
    AccessorKind,
    ConstructorDefinition,
    Fallibility,
    PublicMethodDefinition,
    VirtualMethodDefinition,
)
from .properties import (
    Accessor,
    AccessorMode,
    FieldDefinition,
    OverrideKind,
    PropertyBounds,
    PropertyDefinition,
    PropertyOverride,
    StorageMode,
    ThreadSafety,
)
from .signals import AccumulatorDefinition, RunTiming, SignalDefinition

__all__ = [
    "LIFECYCLE_PHASES",
    "Accessor",
    "AccessorDefinition",
    "AccessorKind",
    "AccessorMode",
    "AccumulatorDefinition",
    "ClassDefinition",
    "ConstructorDefinition",
    "Fallibility",
    "FieldDefinition",
    "InterfaceDefinition",
    "MethodCollection",
    "MethodItem",
    "MethodRole",
    "OverrideKind",
    "Parameter",
    "ParameterKind",
    "PropertyBounds",
    "PropertyDefinition",
    "PropertyOverride",
    "PublicMethodDefinition",
    "RunTiming",
    "SignalDefinition",
    "SourceLocation",
    "StorageMode",
    "ThreadSafety",
    "TypeBase",
    "TypeDefinition",
    "TypeMode",
    "VirtualMethodDefinition",
]
