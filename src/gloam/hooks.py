"""
Extension hook system.

Hooks run after a definition passed core validation and before it is
emitted. They see the definition through a DefinitionHandle, which can
read the derived members and add to the generated code, but never remove
or rename anything:
- add_statement: extra statements for a lifecycle phase
- wrap_collection: emit a method collection as a decorated mixin
- push_diagnostic: report a problem against the unit
"""

from __future__ import annotations

import ast
import importlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from .core.errors import DiagnosticCode, Diagnostics, HookError
from .core.ir import (
    LIFECYCLE_PHASES,
    ClassDefinition,
    InterfaceDefinition,
    MethodCollection,
    PropertyDefinition,
    SignalDefinition,
    SourceLocation,
    TypeBase,
    TypeMode,
    VirtualMethodDefinition,
)

logger = logging.getLogger(__name__)


class DefinitionHandle:
    """
    Bounded access to a definition for extension hooks.

    Members are returned as copies; changes go through the mutation methods.
    """

    def __init__(self, definition: ClassDefinition | InterfaceDefinition, diagnostics: Diagnostics):
        self._definition = definition
        self._diagnostics = diagnostics
        self.hook_name: str | None = None

    @property
    def name(self) -> str:
        return self._definition.name

    @property
    def gtype_name(self) -> str:
        return self._definition.gtype_name

    @property
    def base_kind(self) -> TypeBase:
        return self._definition.kind

    @property
    def properties(self) -> tuple[PropertyDefinition, ...]:
        return tuple(p.model_copy(deep=True) for p in self._definition.inner.properties)

    @property
    def signals(self) -> tuple[SignalDefinition, ...]:
        return tuple(s.model_copy(deep=True) for s in self._definition.inner.signals)

    @property
    def virtual_methods(self) -> tuple[VirtualMethodDefinition, ...]:
        return tuple(v.model_copy(deep=True) for v in self._definition.inner.virtual_methods)

    @property
    def location(self) -> SourceLocation:
        """Where the data definition is declared."""
        return self._definition.inner.location

    def collections(self, mode: TypeMode) -> tuple[MethodCollection, ...]:
        return tuple(c.model_copy(deep=True) for c in self._definition.inner.collections(mode))

    def add_statement(self, phase: str, code: str) -> None:
        """
        Append statements to a lifecycle phase.

        Statements run with ``self`` bound to the imp (``cls`` for class_init).

        Interfaces have no instances, so only ``class_init`` applies to them.

        Raises:
            ValueError: Unknown phase, or code that is not valid Python
        """
        if phase not in LIFECYCLE_PHASES:
            raise ValueError(f"Unknown lifecycle phase '{phase}'; expected one of {', '.join(LIFECYCLE_PHASES)}")
        if self.base_kind == TypeBase.INTERFACE and phase != "class_init":
            raise ValueError(f"Interface {self.name} has no instance phase '{phase}'")
        try:
            ast.parse(code)
        except SyntaxError as e:
            raise ValueError(f"Statement for {phase} is not valid Python: {e.msg}") from e
        self._definition.inner.add_custom_stmt(phase, code)

    def wrap_collection(self, index: int, decorator: str) -> None:
        """Emit method collection ``index`` as a mixin decorated with ``@decorator``."""
        try:
            ast.parse(decorator, mode="eval")
        except SyntaxError as e:
            raise ValueError(f"Invalid decorator expression '{decorator}'") from e
        self._definition.inner.wrap_collection(index, decorator)

    def push_diagnostic(self, message: str, location: SourceLocation | None = None) -> None:
        if self.hook_name:
            message = f"[{self.hook_name}] {message}"
        self._diagnostics.push(DiagnosticCode.EXTENSION, message, location or self.location)


@dataclass
class HookResult:
    """
    Result from hook execution.

    Attributes:
        success: Whether the hook applied cleanly
        message: Human-readable message about what happened
    """

    success: bool
    message: str

    def __str__(self) -> str:
        status = "✓" if self.success else "✗"
        return f"{status} {self.message}"


class ExtensionHook(ABC):
    """
    Base class for all extension hooks.

    Example:
        class ReprHook(ExtensionHook):
            name = "repr"
            description = "Log construction of every instance"

            def apply(self, handle: DefinitionHandle) -> HookResult:
                handle.add_statement("constructed", "print('constructed', self.obj)")
                return HookResult(success=True, message="added constructed statement")
    """

    name: str = "unnamed_hook"
    description: str = "No description"
    enabled: bool = True

    @abstractmethod
    def apply(self, handle: DefinitionHandle) -> HookResult:
        """
        Apply the hook to one definition.

        Args:
            handle: Bounded access to the definition

        Returns:
            HookResult; a failed result is reported as a diagnostic
        """
        pass

    def should_run(self, handle: DefinitionHandle) -> bool:
        """
        Determine if this hook should run.

        Override to add conditional logic (e.g., only for interfaces).
        """
        return self.enabled

    def __str__(self) -> str:
        return f"{self.name}: {self.description}"


class HookManager:
    """Registers extension hooks and runs them in registration order."""

    def __init__(self) -> None:
        self._hooks: list[ExtensionHook] = []

    def register(self, hook: ExtensionHook) -> None:
        self._hooks.append(hook)

    def register_many(self, hooks: list[ExtensionHook]) -> None:
        for hook in hooks:
            self.register(hook)

    def run(self, handle: DefinitionHandle, diagnostics: Diagnostics) -> list[HookResult]:
        """
        Run every enabled hook against one definition.

        A hook that raises, or returns a failed result, adds one diagnostic
        naming the hook; the remaining hooks still run.
        """
        results = []
        for hook in self._hooks:
            if not hook.should_run(handle):
                continue

            handle.hook_name = hook.name
            try:
                result = hook.apply(handle)
            except Exception as e:
                logger.debug("Hook %s raised", hook.name, exc_info=True)
                result = HookResult(success=False, message=f"Hook '{hook.name}' failed: {e}")
            finally:
                handle.hook_name = None

            if not result.success:
                diagnostics.push(DiagnosticCode.EXTENSION, result.message, handle.location)
            logger.debug("Hook %s: %s", hook.name, result)
            results.append(result)
        return results

    def get_hooks(self) -> list[ExtensionHook]:
        return list(self._hooks)

    def has_hooks(self) -> bool:
        return len(self._hooks) > 0


def load_hook(spec: str) -> ExtensionHook:
    """
    Load a hook from a ``package.module:ClassName`` reference.

    Raises:
        HookError: If the reference is malformed or does not name a hook
    """
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise HookError(f"Invalid hook reference '{spec}'; expected 'module:Class'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise HookError(f"Cannot import hook module '{module_name}': {e}") from e

    target = getattr(module, attr, None)
    if target is None:
        raise HookError(f"Module '{module_name}' has no attribute '{attr}'")
    hook = target() if isinstance(target, type) else target
    if not isinstance(hook, ExtensionHook):
        raise HookError(f"'{spec}' is not an ExtensionHook")
    return hook
