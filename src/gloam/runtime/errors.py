"""
Runtime errors raised by generated objects.
"""

from __future__ import annotations


class ContractViolation(RuntimeError):
    """
    A caller broke the object-model contract.

    Raised for misuse the compiler cannot see: setting an unknown or
    read-only property, reading an unimplemented abstract property, emitting
    with the wrong argument count, touching a non-sync object from another
    thread, or an invalid value passed to an infallible constructor.
    """


class PropertyValidationError(ValueError):
    """A value failed a property's type or bounds check."""

    def __init__(self, name: str, value_type: str, value: object):
        self.name = name
        self.value_type = value_type
        self.value = value
        super().__init__(f"property '{name}' of type '{value_type}' can't be set from given value {value!r}")


class ConstructError(Exception):
    """Raised by fallible constructors when construction fails."""

    def __init__(self, type_name: str, reason: str):
        self.type_name = type_name
        self.reason = reason
        super().__init__(f"Failed to construct {type_name}: {reason}")
