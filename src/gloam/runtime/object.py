"""
Object model runtime.

Generated modules subclass ``Object`` (through their ext mixin), hold
per-class private state in ``ObjectImpl`` subclasses, and describe their
properties, signals and dispatch slots with ``register_class`` /
``register_interface``. Everything here is what that generated code calls.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

from .errors import ConstructError, ContractViolation, PropertyValidationError
from .params import ParamSpec
from .signals import HandlerRegistry, RunTiming, SignalSpec, emit_signal

logger = logging.getLogger(__name__)

O = TypeVar("O", bound="Object")

# (class whose imp receives the call, or None for the instance itself, function)
SlotImpl = tuple[type | None, Callable[..., Any]]


# =============================================================================
# Type registry
# =============================================================================


@dataclass
class TypeInfo:
    """
    Registered type data.

    Attributes:
        name: Registered type name
        cls: The wrapper class
        parent: Nearest registered ancestor class type
        properties: Own property specs, in registration order
        signals: Own signal specs
        slots: Dispatch slots declared by this type
        class_struct: Resolved dispatch table keyed by (declaring type, slot)
        requires: Types an interface's implementors must also derive from
    """

    name: str
    cls: type
    parent: TypeInfo | None = None
    abstract: bool = False
    final: bool = False
    sync: bool = False
    interface: bool = False
    properties: dict[str, ParamSpec] = field(default_factory=dict)
    signals: dict[str, SignalSpec] = field(default_factory=dict)
    slots: tuple[str, ...] = ()
    class_struct: dict[tuple[type, str], SlotImpl] = field(default_factory=dict)
    requires: tuple[type, ...] = ()

    def __repr__(self) -> str:
        kind = "interface" if self.interface else "class"
        return f"<TypeInfo {kind} {self.name}>"


_types: dict[str, TypeInfo] = {}
_types_lock = threading.Lock()


def lookup_type(name: str) -> TypeInfo | None:
    """Find a registered type by name."""
    with _types_lock:
        return _types.get(name)


def registered_types() -> list[str]:
    with _types_lock:
        return sorted(_types)


def _record(info: TypeInfo) -> None:
    with _types_lock:
        if info.name in _types and _types[info.name].cls is not info.cls:
            logger.info("Replacing registered type %s", info.name)
        _types[info.name] = info


def type_info(cls: type) -> TypeInfo:
    """The TypeInfo of the nearest registered class in ``cls``'s MRO."""
    for klass in cls.__mro__:
        info = klass.__dict__.get("__gtype__")
        if info is not None and not info.interface:
            return info
    raise ContractViolation(f"{cls.__name__} is not a registered type")


def _own_info(klass: type) -> TypeInfo | None:
    return klass.__dict__.get("__gtype__")


# =============================================================================
# Instances
# =============================================================================


class ObjectImpl:
    """
    Instance-private state of one class in the hierarchy.

    Generated imp classes extend this and add storage cells, plain fields
    and the subclass-side methods. ``obj`` is the owning wrapper instance.
    """

    def __init__(self, obj: Object):
        self.obj = obj

    def init(self) -> None:
        pass

    def constructed(self) -> None:
        pass

    def dispose(self) -> None:
        pass


NOTIFY = SignalSpec(name="notify", param_types=("ParamSpec",), run_timing=RunTiming.FIRST, detailed=True)


class Object:
    """
    Base of every generated class.

    Keyword arguments set properties at construction. Unknown properties
    and invalid values are contract violations.
    """

    __imp__: type[ObjectImpl] | None = None

    def __init_subclass__(cls, **kwargs: Any):
        super().__init_subclass__(**kwargs)
        for base in cls.__mro__[1:]:
            info = _own_info(base)
            if info is not None and info.final:
                raise TypeError(f"Cannot subclass final type {info.name}")

    def __init__(self, **props: Any):
        try:
            self._initialize(props)
        except PropertyValidationError as e:
            raise ContractViolation(str(e)) from e

    def _initialize(self, props: Mapping[str, Any]) -> None:
        info = type_info(type(self))
        if info.abstract:
            raise ContractViolation(f"Cannot instantiate abstract type {info.name}")

        self._owner_thread = None if info.sync else threading.get_ident()
        self._handlers = HandlerRegistry()
        self._disposed = False
        self._imps: dict[type, ObjectImpl] = {}
        for klass in reversed(type(self).__mro__):
            imp_cls = klass.__dict__.get("__imp__")
            if imp_cls is not None:
                self._imps[klass] = imp_cls(self)

        given: set[str] = set()
        for key, value in props.items():
            pspec = self.find_property(key)
            if pspec is None:
                raise ContractViolation(f"{info.name} has no property named '{key}'")
            if not pspec.writable:
                raise ContractViolation(f"Property '{pspec.name}' of {info.name} is not writable")
            self._store(pspec, pspec.validate(value))
            given.add(pspec.name)

        for pspec in self.list_properties():
            if pspec.is_construct and pspec.name not in given and pspec.field is not None:
                self._store(pspec, pspec.default)

        for imp in self._imps.values():
            imp.constructed()

    def __repr__(self) -> str:
        return f"<{type_info(type(self)).name} object at {id(self):#x}>"

    # -------------------------------------------------------------------------
    # Private state
    # -------------------------------------------------------------------------

    def imp(self, cls: type | None = None) -> ObjectImpl:
        """The imp of ``cls`` (default: the most derived class with one)."""
        if cls is None:
            for klass in type(self).__mro__:
                if klass in self._imps:
                    return self._imps[klass]
            raise ContractViolation(f"{type(self).__name__} has no private state")
        try:
            return self._imps[cls]
        except KeyError:
            raise ContractViolation(f"{cls.__name__} is not a class of {type(self).__name__}") from None

    def _receiver(self, owner: type | None) -> Any:
        if owner is not None and owner.__dict__.get("__imp__") is not None:
            return self.imp(owner)
        return self

    def _check_thread(self) -> None:
        if self._owner_thread is not None and threading.get_ident() != self._owner_thread:
            raise ContractViolation(
                f"{type_info(type(self)).name} is not thread-safe and was used from another thread"
            )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @classmethod
    def list_properties(cls) -> list[ParamSpec]:
        """Every property, base first; overrides replace the property they implement."""
        specs: dict[str, ParamSpec] = {}
        for klass in reversed(cls.__mro__):
            info = _own_info(klass)
            if info is None:
                continue
            for name, pspec in info.properties.items():
                specs[name] = pspec
        return list(specs.values())

    @classmethod
    def find_property(cls, name: str) -> ParamSpec | None:
        candidates = (name, name.replace("_", "-"))
        for klass in cls.__mro__:
            info = _own_info(klass)
            if info is None:
                continue
            for candidate in candidates:
                if candidate in info.properties:
                    return info.properties[candidate]
        return None

    def _pspec(self, name: str) -> ParamSpec:
        pspec = self.find_property(name)
        if pspec is None:
            raise ContractViolation(f"{type_info(type(self)).name} has no property named '{name}'")
        return pspec

    def get_property(self, name: str) -> Any:
        self._check_thread()
        pspec = self._pspec(name)
        if not pspec.readable:
            raise ContractViolation(f"Property '{pspec.name}' is not readable")
        return self._load(pspec)

    def set_property(self, name: str, value: Any) -> None:
        self._check_thread()
        pspec = self._pspec(name)
        if not pspec.writable:
            raise ContractViolation(f"Property '{pspec.name}' is not writable")
        if pspec.construct_only:
            raise ContractViolation(f"Property '{pspec.name}' can only be set at construction")
        try:
            value = pspec.validate(value)
        except PropertyValidationError as e:
            raise ContractViolation(str(e)) from e

        if pspec.setter is not None:
            target = self if pspec.setter_on_wrapper else self.imp(pspec.owner)
            getattr(target, pspec.setter)(value)
            if not pspec.explicit_notify:
                self.notify(pspec.name)
            return

        if pspec.explicit_notify:
            old = self._load(pspec)
            self._store(pspec, value)
            if old != value:
                self.notify(pspec.name)
        else:
            self._store(pspec, value)
            self.notify(pspec.name)

    def borrow_property(self, name: str) -> Any:
        """The live value of a borrowed (RefCell) property."""
        self._check_thread()
        pspec = self._pspec(name)
        cell = self._cell(pspec)
        if not hasattr(cell, "borrow"):
            raise ContractViolation(f"Property '{pspec.name}' cannot be borrowed")
        return cell.borrow()

    def _cell(self, pspec: ParamSpec) -> Any:
        if pspec.field is None:
            raise ContractViolation(
                f"Property '{pspec.name}' of {pspec.owner.__name__ if pspec.owner else '?'} "
                "is abstract and has no implementation"
            )
        target = self.imp(pspec.owner)
        for part in pspec.field.split("."):
            target = getattr(target, part)
        return target

    def _load(self, pspec: ParamSpec) -> Any:
        if pspec.getter is not None:
            target = self if pspec.getter_on_wrapper else self.imp(pspec.owner)
            return getattr(target, pspec.getter)()
        return self._cell(pspec).get()

    def _store(self, pspec: ParamSpec, value: Any) -> None:
        if pspec.setter is not None:
            target = self if pspec.setter_on_wrapper else self.imp(pspec.owner)
            getattr(target, pspec.setter)(value)
            return
        self._cell(pspec).set(value)

    def notify(self, name: str) -> None:
        """Emit ``notify::name``."""
        pspec = self._pspec(name)
        self.emit("notify", pspec, detail=pspec.name)

    def connect_notify(self, name: str | None, callback: Callable[..., Any]) -> int:
        """Connect ``callback(obj, pspec)`` to changes of one property, or all when name is None."""
        detail = self._pspec(name).name if name is not None else None
        return self.connect("notify", callback, detail=detail)

    # -------------------------------------------------------------------------
    # Signals
    # -------------------------------------------------------------------------

    @classmethod
    def find_signal(cls, name: str) -> SignalSpec | None:
        candidates = (name, name.replace("_", "-"))
        for klass in cls.__mro__:
            info = _own_info(klass)
            if info is None:
                continue
            for candidate in candidates:
                if candidate in info.signals:
                    return info.signals[candidate]
        return None

    def _signal(self, name: str) -> SignalSpec:
        spec = self.find_signal(name)
        if spec is None:
            raise ContractViolation(f"{type_info(type(self)).name} has no signal named '{name}'")
        return spec

    def connect(
        self,
        name: str,
        callback: Callable[..., Any],
        detail: str | None = None,
        after: bool = False,
    ) -> int:
        """
        Connect ``callback(obj, *args)`` to a signal.

        ``name`` may carry the detail as ``signal::detail``.

        Returns:
            Handler id for disconnect/block/unblock
        """
        self._check_thread()
        if "::" in name:
            name, detail = name.split("::", 1)
        spec = self._signal(name)
        if detail is not None and not spec.detailed:
            raise ContractViolation(f"Signal '{spec.name}' is not detailed")
        return self._handlers.connect(spec.name, callback, detail=detail, after=after)

    def disconnect(self, handler_id: int) -> None:
        if not self._handlers.disconnect(handler_id):
            raise ContractViolation(f"No handler with id {handler_id}")

    def block_handler(self, handler_id: int) -> None:
        self._handlers.block(handler_id)

    def unblock_handler(self, handler_id: int) -> None:
        self._handlers.unblock(handler_id)

    def emit(self, name: str, *args: Any, detail: str | None = None) -> Any:
        """Emit a signal and return its accumulated result."""
        self._check_thread()
        if "::" in name:
            name, detail = name.split("::", 1)
        spec = self._signal(name)
        return emit_signal(self, spec, args, detail, self._bound_class_handler(spec), self._handlers)

    def _bound_class_handler(self, spec: SignalSpec) -> Callable[..., Any] | None:
        resolved = _class_handler(type(self), spec)
        if resolved is None:
            return None
        owner, function = resolved
        receiver = self._receiver(owner)

        def handler(*args: Any) -> Any:
            return function(receiver, *args)

        return handler

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def dispose(self) -> None:
        """Run dispose hooks derived first, then drop every handler."""
        if self._disposed:
            return
        self._disposed = True
        for imp in reversed(list(self._imps.values())):
            imp.dispose()
        self._handlers.clear()


class Interface:
    """Base of every generated interface. Interfaces carry no private state."""


# =============================================================================
# Dispatch
# =============================================================================


def _class_handler(cls: type, spec: SignalSpec, after: type | None = None) -> tuple[type, Callable[..., Any]] | None:
    mro = cls.__mro__
    if after is not None:
        mro = mro[mro.index(after) + 1 :]
    for klass in mro:
        overrides = klass.__dict__.get("__signal_overrides__")
        if overrides and spec.name in overrides:
            return klass, overrides[spec.name]
        if klass is spec.owner:
            return (klass, spec.class_handler) if spec.class_handler is not None else None
    return None


def chain_signal(obj: Object, from_cls: type, name: str, *args: Any) -> Any:
    """Run the class handler that ``from_cls`` overrides."""
    spec = obj._signal(name)
    resolved = _class_handler(type(obj), spec, after=from_cls)
    if resolved is None:
        return None
    owner, function = resolved
    return function(obj._receiver(owner), *args)


def vcall(obj: Object, decl_cls: type, name: str, *args: Any, **kwargs: Any) -> Any:
    """Dispatch slot ``name`` declared by ``decl_cls`` through ``obj``'s class struct."""
    info = type_info(type(obj))
    try:
        owner, function = info.class_struct[(decl_cls, name)]
    except KeyError:
        interface = _own_info(decl_cls)
        if interface is None or (decl_cls, name) not in interface.class_struct:
            raise ContractViolation(f"{info.name} has no virtual method {decl_cls.__name__}.{name}") from None
        owner, function = interface.class_struct[(decl_cls, name)]
    return function(obj._receiver(owner), *args, **kwargs)


def parent_vcall(
    obj: Object,
    cls: type,
    name: str,
    *args: Any,
    iface: type | None = None,
    **kwargs: Any,
) -> Any:
    """
    Call the implementation ``cls`` inherited for slot ``name``.

    Class slots resolve to the nearest ancestor declaring ``name``;
    interface slots are named by ``iface``.
    """
    info = _own_info(cls)
    if info is None:
        raise ContractViolation(f"{cls.__name__} is not a registered type")
    decl_cls = iface if iface is not None else _resolve_slot(info.parent, name)
    struct = info.parent.class_struct if info.parent is not None else {}
    slot = struct.get((decl_cls, name))
    if slot is None:
        interface = _own_info(decl_cls)
        if interface is not None and interface.interface:
            slot = interface.class_struct.get((decl_cls, name))
    if slot is None:
        raise ContractViolation(f"{cls.__name__} has no parent implementation of {name}")
    owner, function = slot
    return function(obj._receiver(owner), *args, **kwargs)


def construct(cls: type[O], props: Mapping[str, Any], fallible: bool = False) -> O:
    """
    Construct an instance from a property mapping.

    Invalid property values raise ConstructError for fallible constructors
    and ContractViolation otherwise.
    """
    obj = cls.__new__(cls)
    try:
        obj._initialize(props)
    except PropertyValidationError as e:
        if fallible:
            raise ConstructError(type_info(cls).name, str(e)) from e
        raise ContractViolation(str(e)) from e
    return obj


# =============================================================================
# Registration
# =============================================================================


def _parent_info(cls: type) -> TypeInfo | None:
    for klass in cls.__mro__[1:]:
        info = _own_info(klass)
        if info is not None and not info.interface:
            return info
    return None


def _resolve_slot(parent: TypeInfo | None, name: str) -> type:
    """The nearest ancestor declaring slot ``name``."""
    info = parent
    while info is not None:
        if name in info.slots:
            return info.cls
        info = info.parent
    raise ContractViolation(f"No ancestor declares a virtual method named '{name}'")


def register_class(
    cls: type,
    name: str,
    *,
    abstract: bool = False,
    final: bool = False,
    sync: bool = False,
    properties: Iterable[ParamSpec] = (),
    signals: Iterable[SignalSpec] = (),
    vtable: Mapping[str, Callable[..., Any]] | None = None,
    overrides: Mapping[str, Callable[..., Any]] | None = None,
    interface_overrides: Mapping[tuple[type, str], Callable[..., Any]] | None = None,
    signal_overrides: Mapping[str, Callable[..., Any]] | None = None,
    class_init: Callable[[type], None] | None = None,
) -> TypeInfo:
    """
    Register a generated class.

    The class struct starts as a copy of the parent's, then gets this
    class's own slot defaults, its overrides of ancestor slots, and finally
    the default and overriding implementations of each implemented
    interface.
    """
    parent = _parent_info(cls)
    if parent is not None and parent.final:
        raise ContractViolation(f"Cannot subclass final type {parent.name}")

    info = TypeInfo(
        name=name,
        cls=cls,
        parent=parent,
        abstract=abstract,
        final=final,
        sync=sync,
        slots=tuple(vtable or ()),
    )

    for pspec in properties:
        pspec.owner = cls
        info.properties[pspec.name] = pspec
    for spec in signals:
        spec.owner = cls
        info.signals[spec.name] = spec

    struct: dict[tuple[type, str], SlotImpl] = dict(parent.class_struct) if parent is not None else {}
    for slot, function in (vtable or {}).items():
        struct[(cls, slot)] = (cls, function)
    for slot, function in (overrides or {}).items():
        struct[(_resolve_slot(parent, slot), slot)] = (cls, function)

    for klass in cls.__mro__:
        iface = _own_info(klass)
        if iface is None or not iface.interface:
            continue
        for required in iface.requires:
            if not issubclass(cls, required):
                raise ContractViolation(f"{name} implements {iface.name}, which requires {required.__name__}")
        for key, slot in iface.class_struct.items():
            struct.setdefault(key, slot)
    for (iface_cls, slot), function in (interface_overrides or {}).items():
        if not issubclass(cls, iface_cls):
            raise ContractViolation(f"{name} overrides {iface_cls.__name__}.{slot} but does not implement it")
        struct[(iface_cls, slot)] = (cls, function)
    info.class_struct = struct

    cls.__signal_overrides__ = dict(signal_overrides or {})
    cls.__gtype__ = info
    _record(info)

    if class_init is not None:
        class_init(cls)

    logger.debug(
        "Registered %s: %d properties, %d signals, %d slots",
        name,
        len(info.properties),
        len(info.signals),
        len(struct),
    )
    return info


def register_interface(
    cls: type,
    name: str,
    *,
    requires: Iterable[type] = (),
    properties: Iterable[ParamSpec] = (),
    signals: Iterable[SignalSpec] = (),
    vtable: Mapping[str, Callable[..., Any]] | None = None,
    class_init: Callable[[type], None] | None = None,
) -> TypeInfo:
    """Register a generated interface; slot defaults are called with the instance itself."""
    info = TypeInfo(
        name=name,
        cls=cls,
        interface=True,
        requires=tuple(requires),
        slots=tuple(vtable or ()),
    )
    for pspec in properties:
        pspec.owner = cls
        info.properties[pspec.name] = pspec
    for spec in signals:
        spec.owner = cls
        info.signals[spec.name] = spec
    info.class_struct = {(cls, slot): (None, function) for slot, function in (vtable or {}).items()}

    cls.__gtype__ = info
    _record(info)

    if class_init is not None:
        class_init(cls)

    logger.debug("Registered interface %s", name)
    return info


Object.__gtype__ = TypeInfo(name="GObject", cls=Object, signals={"notify": NOTIFY})
NOTIFY.owner = Object
_record(Object.__gtype__)
