"""
Compiler pipeline.

One call compiles one unit: parse the source, parse the options,
assemble, build, run extension hooks, and emit. Every stage appends to
the unit's Diagnostics; emission only happens when nothing was reported.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .core.builder import Definition, DefinitionBuilder
from .core.errors import CompileError, Diagnostics
from .core.ir import TypeBase
from .core.type_definition import TypeDefinitionParser
from .emit import EmitOptions, emit_definition
from .hooks import DefinitionHandle, ExtensionHook, HookManager, load_hook

logger = logging.getLogger(__name__)


@dataclass
class CompileOptions:
    """
    Caller-side settings for one compilation.

    Attributes:
        kind: Force class or interface; None follows the source tag
        options_text: Extra top-level option text, e.g. ``"final, ns=Demo"``
        runtime_module: Module the generated code imports as its runtime
        namespace: Default ``ns`` for definitions that do not set one
        hooks: Extension hooks, instances or ``module:Class`` references
        custom_methods: Extra lifecycle method names to recognize
    """

    kind: TypeBase | None = None
    options_text: str | None = None
    runtime_module: str = "gloam.runtime"
    namespace: str | None = None
    hooks: list[ExtensionHook | str] = field(default_factory=list)
    custom_methods: list[str] = field(default_factory=list)


@dataclass
class CompileResult:
    """
    Outcome of one compilation.

    Attributes:
        definition: The built model, None when the source could not be parsed
        diagnostics: Every problem found, in discovery order
        output: Generated source, None when diagnostics were reported
    """

    definition: Definition | None
    diagnostics: Diagnostics
    output: str | None = None

    @property
    def success(self) -> bool:
        return not self.diagnostics

    def raise_for_errors(self) -> None:
        if self.diagnostics:
            raise CompileError(self.diagnostics)


def _hook_manager(hooks: list[ExtensionHook | str]) -> HookManager:
    manager = HookManager()
    manager.register_many([load_hook(h) if isinstance(h, str) else h for h in hooks])
    return manager


def compile_source(text: str, file: str = "<source>", options: CompileOptions | None = None) -> CompileResult:
    """
    Compile one annotated source module.

    Raises:
        HookError: If a hook reference in ``options.hooks`` cannot be loaded
    """
    options = options or CompileOptions()
    diagnostics = Diagnostics(file=file, source=text)
    hooks = _hook_manager(options.hooks)

    parser = TypeDefinitionParser()
    for name in options.custom_methods:
        parser.add_custom_method(name)

    module = parser.parse_source(text, file, diagnostics)
    if module is None:
        logger.debug("%s: source could not be parsed", file)
        return CompileResult(definition=None, diagnostics=diagnostics)

    builder = DefinitionBuilder(diagnostics, parser=parser, default_ns=options.namespace)
    definition = builder.build(module, kind=options.kind, options_text=options.options_text)

    if definition.name and hooks.has_hooks():
        hooks.run(DefinitionHandle(definition, diagnostics), diagnostics)

    if diagnostics:
        logger.debug("%s: %d diagnostic(s), nothing emitted", file, len(diagnostics))
        return CompileResult(definition=definition, diagnostics=diagnostics)

    emit_options = EmitOptions(runtime_module=options.runtime_module, source_name=file)
    output = emit_definition(definition, emit_options)
    logger.debug("%s: emitted %s", file, definition.gtype_name)
    return CompileResult(definition=definition, diagnostics=diagnostics, output=output)


def compile_file(path: Path | str, options: CompileOptions | None = None) -> CompileResult:
    path = Path(path)
    return compile_source(path.read_text(encoding="utf-8"), file=str(path), options=options)
