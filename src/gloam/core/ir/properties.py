"""
Property definitions for gloam models.

One PropertyDefinition per tagged field, with its storage mode classified
from the field's declared type shape.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .location import SourceLocation


class StorageMode(str, Enum):
    """How a property's value is held."""

    OWNED = "owned"  # interior-mutable, getter returns the value
    BORROWED = "borrowed"  # getter copies, borrow_x() returns the live reference
    CONSTRUCT_ONLY = "construct_only"  # settable exactly once
    WEAK = "weak"  # back-reference, read-only after construction
    COMPUTED = "computed"  # no storage, served by accessor overrides
    ABSTRACT = "abstract"  # no storage, satisfied by a descendant's override


class ThreadSafety(str, Enum):
    """Locking discipline of the storage."""

    NONE = "none"
    EXCLUSIVE = "exclusive"  # Mutex
    SHARED = "shared"  # RwLock


class OverrideKind(str, Enum):
    CLASS = "class"
    INTERFACE = "interface"


class AccessorMode(str, Enum):
    """Whether an accessor exists and who implements it."""

    NONE = "none"
    DEFAULT = "default"  # generated against the storage
    CUSTOM = "custom"  # implemented by a tagged accessor method


# Storage shape -> (storage mode, thread safety). Placeholder resolves to
# COMPUTED or ABSTRACT from the property's flags.
STORAGE_SHAPES: dict[str, tuple[StorageMode | None, ThreadSafety]] = {
    "Cell": (StorageMode.OWNED, ThreadSafety.NONE),
    "RefCell": (StorageMode.BORROWED, ThreadSafety.NONE),
    "Mutex": (StorageMode.OWNED, ThreadSafety.EXCLUSIVE),
    "RwLock": (StorageMode.OWNED, ThreadSafety.SHARED),
    "OnceCell": (StorageMode.CONSTRUCT_ONLY, ThreadSafety.NONE),
    "WeakCell": (StorageMode.WEAK, ThreadSafety.NONE),
    "Placeholder": (None, ThreadSafety.NONE),
}

INTEGER_RANGES: dict[str, tuple[int | None, int | None]] = {
    "int": (None, None),
    "i8": (-(2**7), 2**7 - 1),
    "i16": (-(2**15), 2**15 - 1),
    "i32": (-(2**31), 2**31 - 1),
    "i64": (-(2**63), 2**63 - 1),
    "u8": (0, 2**8 - 1),
    "u16": (0, 2**16 - 1),
    "u32": (0, 2**32 - 1),
    "u64": (0, 2**64 - 1),
}

FLOAT_TYPES = ("float", "f32", "f64")

# Value types with a runtime type check; anything else is passed through.
RUNTIME_TYPES: dict[str, str] = {
    **{name: "int" for name in INTEGER_RANGES},
    **{name: "float" for name in FLOAT_TYPES},
    "bool": "bool",
    "str": "str",
}


def is_numeric(value_type: str) -> bool:
    return value_type in INTEGER_RANGES or value_type in FLOAT_TYPES


def is_integer(value_type: str) -> bool:
    return value_type in INTEGER_RANGES


def zero_value(value_type: str) -> Any:
    """Default value for a value type with no explicit default."""
    runtime = RUNTIME_TYPES.get(value_type)
    if runtime == "int":
        return 0
    if runtime == "float":
        return 0.0
    if runtime == "bool":
        return False
    if runtime == "str":
        return ""
    return None


class Accessor(BaseModel):
    """A getter or setter slot of a property."""

    mode: AccessorMode = AccessorMode.NONE
    method: str | None = None  # accessor override method, once resolved
    on_wrapper: bool = False  # the override is a wrapper-side method

    @property
    def allowed(self) -> bool:
        return self.mode != AccessorMode.NONE

    @property
    def is_custom(self) -> bool:
        return self.mode == AccessorMode.CUSTOM


class PropertyOverride(BaseModel):
    """The ancestor or interface property this one implements."""

    kind: OverrideKind
    target: str

    model_config = ConfigDict(frozen=True)


class PropertyBounds(BaseModel):
    minimum: int | float | None = None
    maximum: int | float | None = None

    model_config = ConfigDict(frozen=True)


class PropertyDefinition(BaseModel):
    """
    A property derived from one tagged field.

    Attributes:
        name: Registered (kebab-case) property name
        field_name: Field identifier in the data definition
        value_type: Inner type of the storage shape, e.g. ``int`` for ``Cell[int]``
        storage_shape: Outer storage shape, e.g. ``Cell``
        storage_mode: Classified storage mode
        getter / setter: Accessor slots
        construct_flag: Set from the ``construct`` option; the value is applied at construction
        override: Set when this property implements an ancestor's or interface's
        delegate: Dotted imp attribute path holding the storage cell, instead of the field
        bounds: Optional numeric bounds
        default: Literal default value when has_default is set
    """

    name: str
    field_name: str
    value_type: str
    storage_shape: str
    storage_mode: StorageMode
    thread_safety: ThreadSafety = ThreadSafety.NONE
    getter: Accessor = Field(default_factory=Accessor)
    setter: Accessor = Field(default_factory=Accessor)
    construct_flag: bool = False
    construct_only: bool = False
    explicit_notify: bool = False
    lax_validation: bool = False
    deprecated: bool = False
    notify: bool = True
    connect_notify: bool = True
    override: PropertyOverride | None = None
    delegate: str | None = None
    bounds: PropertyBounds | None = None
    default: Any = None
    has_default: bool = False
    nick: str | None = None
    blurb: str | None = None
    location: SourceLocation

    @property
    def readable(self) -> bool:
        return self.getter.allowed

    @property
    def writable(self) -> bool:
        return self.setter.allowed

    @property
    def is_inherited(self) -> bool:
        return self.override is not None

    @property
    def is_abstract(self) -> bool:
        return self.storage_mode == StorageMode.ABSTRACT

    @property
    def has_storage(self) -> bool:
        return self.storage_mode not in (StorageMode.ABSTRACT, StorageMode.COMPUTED)

    @property
    def is_construct_only(self) -> bool:
        return self.construct_only or self.storage_mode == StorageMode.CONSTRUCT_ONLY

    @property
    def is_thread_safe(self) -> bool:
        return not self.has_storage or self.thread_safety != ThreadSafety.NONE

    @property
    def storage_path(self) -> str:
        """Imp attribute path of the storage cell."""
        return self.delegate or self.field_name

    def effective_default(self) -> Any:
        """The explicit default, else the type's zero value clamped into the bounds."""
        if self.has_default:
            return self.default
        value = zero_value(self.value_type)
        if value is None or self.bounds is None:
            return value
        if self.bounds.minimum is not None and value < self.bounds.minimum:
            return type(value)(self.bounds.minimum)
        if self.bounds.maximum is not None and value > self.bounds.maximum:
            return type(value)(self.bounds.maximum)
        return value


class FieldDefinition(BaseModel):
    """
    A field of the data definition.

    Plain storage when ``prop`` is None. Plain fields keep their
    annotation and default expression source for the instance-private struct.
    """

    name: str
    annotation: str | None = None
    default: str | None = None
    prop: PropertyDefinition | None = None
    location: SourceLocation

    @property
    def is_property(self) -> bool:
        return self.prop is not None
