"""
Property specifications.

A ParamSpec describes one registered property: its value type, access
flags, bounds and default, and where its value lives. Generated modules
build one ParamSpec per property field, in field order.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from .errors import PropertyValidationError


class ParamFlags(enum.Flag):
    NONE = 0
    READABLE = 1
    WRITABLE = 2
    CONSTRUCT = 4
    CONSTRUCT_ONLY = 8
    LAX_VALIDATION = 16
    EXPLICIT_NOTIFY = 1 << 30
    DEPRECATED = 1 << 31

    READWRITE = 3


_INTEGER_TYPES = ("int", "i8", "i16", "i32", "i64", "u8", "u16", "u32", "u64")
_FLOAT_TYPES = ("float", "f32", "f64")


@dataclass
class ParamSpec:
    """
    One registered property.

    Attributes:
        name: Registered property name
        value_type: Declared value type label (``int``, ``u8``, ``str``...)
        flags: Access and behavior flags
        owner: Class that registered the property (set at registration)
        field: Storage attribute on the owner's imp; None without storage
        getter / setter: Custom accessor method names, if any
        override_of: Path of the ancestor or interface property being implemented
    """

    name: str
    value_type: str | None = None
    flags: ParamFlags = ParamFlags.READWRITE
    default: Any = None
    minimum: int | float | None = None
    maximum: int | float | None = None
    nick: str | None = None
    blurb: str | None = None
    owner: type | None = None
    field: str | None = None
    getter: str | None = None
    getter_on_wrapper: bool = False
    setter: str | None = None
    setter_on_wrapper: bool = False
    override_of: str | None = None

    @property
    def readable(self) -> bool:
        return ParamFlags.READABLE in self.flags

    @property
    def writable(self) -> bool:
        return ParamFlags.WRITABLE in self.flags

    @property
    def construct_only(self) -> bool:
        return ParamFlags.CONSTRUCT_ONLY in self.flags

    @property
    def is_construct(self) -> bool:
        return bool(self.flags & (ParamFlags.CONSTRUCT | ParamFlags.CONSTRUCT_ONLY))

    @property
    def lax(self) -> bool:
        return ParamFlags.LAX_VALIDATION in self.flags

    @property
    def explicit_notify(self) -> bool:
        return ParamFlags.EXPLICIT_NOTIFY in self.flags

    def validate(self, value: Any) -> Any:
        """
        Check a value against the type and bounds.

        Lax properties clamp out-of-range values to the bounds; strict ones
        raise PropertyValidationError. A wrong type always raises.

        Returns:
            The value to store
        """
        if not self._type_ok(value):
            raise PropertyValidationError(self.name, self.value_type or "object", value)
        if self.value_type in _FLOAT_TYPES:
            value = float(value)

        if self.minimum is not None and value < self.minimum:
            if not self.lax:
                raise PropertyValidationError(self.name, self.value_type or "object", value)
            value = self.minimum
        if self.maximum is not None and value > self.maximum:
            if not self.lax:
                raise PropertyValidationError(self.name, self.value_type or "object", value)
            value = self.maximum
        return value

    def _type_ok(self, value: Any) -> bool:
        if self.value_type in _INTEGER_TYPES:
            return isinstance(value, int) and not isinstance(value, bool)
        if self.value_type in _FLOAT_TYPES:
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        if self.value_type == "bool":
            return isinstance(value, bool)
        if self.value_type == "str":
            return value is None or isinstance(value, str)
        return True

    def __repr__(self) -> str:
        owner = self.owner.__name__ if self.owner is not None else "?"
        return f"<ParamSpec {owner}:{self.name} ({self.value_type})>"
