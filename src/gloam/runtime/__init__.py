"""
gloam runtime support.

The library generated modules import as ``_rt``: storage cells, property
and signal specifications, the ``Object`` base and type registration.
"""

from .cells import Cell, Mutex, OnceCell, Placeholder, RefCell, RwLock, WeakCell
from .errors import ConstructError, ContractViolation, PropertyValidationError
from .object import (
    Interface,
    Object,
    ObjectImpl,
    TypeInfo,
    chain_signal,
    construct,
    lookup_type,
    parent_vcall,
    register_class,
    register_interface,
    registered_types,
    type_info,
    vcall,
)
from .params import ParamFlags, ParamSpec
from .signals import Break, Continue, RunTiming, SignalInvocationHint, SignalSpec

__all__ = [
    # Cells
    "Cell",
    "RefCell",
    "Mutex",
    "RwLock",
    "OnceCell",
    "WeakCell",
    "Placeholder",
    # Errors
    "ContractViolation",
    "PropertyValidationError",
    "ConstructError",
    # Specs
    "ParamFlags",
    "ParamSpec",
    "RunTiming",
    "SignalSpec",
    "SignalInvocationHint",
    "Continue",
    "Break",
    # Objects
    "Object",
    "ObjectImpl",
    "Interface",
    "TypeInfo",
    "construct",
    "register_class",
    "register_interface",
    "lookup_type",
    "registered_types",
    "type_info",
    "vcall",
    "parent_vcall",
    "chain_signal",
]
