"""Core gloam functionality: model, attribute parsing, member derivation, assembly, validation."""

from . import ir
from .builder import DefinitionBuilder
from .errors import (
    CompileError,
    Diagnostic,
    DiagnosticCode,
    Diagnostics,
    EmitError,
    ErrorContext,
    GloamError,
    HookError,
    ManifestError,
    ParseError,
)
from .manifest import GloamManifest, load_manifest
from .type_definition import TypeDefinitionParser

__all__ = [
    "ir",
    "DefinitionBuilder",
    "TypeDefinitionParser",
    "GloamManifest",
    "load_manifest",
    # Errors
    "GloamError",
    "ParseError",
    "CompileError",
    "EmitError",
    "ManifestError",
    "HookError",
    "ErrorContext",
    "Diagnostic",
    "DiagnosticCode",
    "Diagnostics",
]
