"""
gloam - declarative object-model compiler.

Reads an annotated Python module describing a class or interface and
generates GObject-style scaffolding on top of ``gloam.runtime``.
"""

from __future__ import annotations

from ._version import get_version
from .compiler import CompileOptions, CompileResult, compile_file, compile_source
from .core import ir
from .core.errors import CompileError, Diagnostics, EmitError, GloamError, ManifestError, ParseError
from .hooks import DefinitionHandle, ExtensionHook, HookManager, HookResult

__version__ = get_version()

__all__ = [
    "__version__",
    "ir",
    "compile_source",
    "compile_file",
    "CompileOptions",
    "CompileResult",
    "Diagnostics",
    "GloamError",
    "ParseError",
    "CompileError",
    "EmitError",
    "ManifestError",
    "DefinitionHandle",
    "ExtensionHook",
    "HookManager",
    "HookResult",
]
