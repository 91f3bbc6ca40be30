"""
Error types and diagnostics for gloam compilation.

Compilation never stops at the first problem. Every stage appends to one
``Diagnostics`` list owned by the compilation unit; exceptions are reserved
for callers that want a hard failure (``CompileError``) and for problems
outside a single unit (manifest loading, emission of an unvalidated model).
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .ir.location import SourceLocation


class GloamError(Exception):
    """Base exception for all gloam errors."""

    def __init__(self, message: str, context: ErrorContext | None = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message


class ParseError(GloamError):
    """
    Raised when a source module cannot be read as Python.

    The compiler itself reports syntax errors as diagnostics; this is raised
    only by callers that asked for a hard failure.
    """

    pass


class CompileError(GloamError):
    """
    Raised when a compilation unit produced diagnostics.

    Carries the complete diagnostic list, never only the first entry.
    """

    def __init__(self, diagnostics: Diagnostics):
        self.diagnostics = diagnostics
        count = len(diagnostics)
        plural = "s" if count != 1 else ""
        super().__init__(f"compilation failed with {count} diagnostic{plural}:\n{diagnostics.format()}")


class EmitError(GloamError):
    """
    Raised when the emitter is handed a model it cannot render.

    Examples:
    - Definition without a resolved name
    - Output directory issues
    """

    pass


class ManifestError(GloamError):
    """Raised when gloam.toml is missing or invalid."""

    pass


class HookError(GloamError):
    """Raised when a configured extension hook cannot be loaded."""

    pass


@dataclass
class ErrorContext:
    """
    Context information for an error, including source location.

    Attributes:
        file: Path to the source file where error occurred
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        snippet: Optional code snippet showing the error location
    """

    file: Path
    line: int
    column: int
    snippet: str | None = None

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "counter.py:10:5"
        """
        location = f"{self.file}:{self.line}:{self.column}"
        if self.snippet:
            return f"{location}\n{self._format_snippet()}"
        return location

    def _format_snippet(self) -> str:
        """Format code snippet with line numbers and error marker."""
        if not self.snippet:
            return ""

        lines = self.snippet.split("\n")
        formatted = []

        # Snippet shows up to 2 lines before the error
        start_line = max(1, self.line - 2)

        for i, line in enumerate(lines):
            line_num = start_line + i
            prefix = f"{line_num:4d} | "
            formatted.append(prefix + line)

            if line_num == self.line:
                marker_pos = len(prefix) + self.column - 1
                formatted.append(" " * marker_pos + "^^^")

        return "\n".join(formatted)


class DiagnosticCode(str, Enum):
    """Closed taxonomy of compile-time diagnostics."""

    MALFORMED_ATTRIBUTE = "malformed-attribute-syntax"
    UNKNOWN_OPTION = "unknown-option"
    DUPLICATE_ROLE = "duplicate-role-tag"
    DUPLICATE_NAME = "duplicate-name"
    UNRESOLVED_ACCUMULATOR = "unresolved-accumulator-reference"
    DISALLOWED_COMBINATION = "disallowed-modifier-combination"
    MISSING_NAME = "missing-name"
    UNMET_CAPABILITY = "unmet-capability"
    TYPE_SHAPE_MISMATCH = "type-shape-mismatch"
    RECEIVER_ORDER = "receiver-ordering"
    UNRESOLVED_REFERENCE = "unresolved-reference"
    INVALID_NAME = "invalid-name"
    MALFORMED_SOURCE = "malformed-source"
    EXTENSION = "extension-hook"


@dataclass(frozen=True)
class Diagnostic:
    """One problem found in a compilation unit."""

    code: DiagnosticCode
    message: str
    location: SourceLocation

    def __str__(self) -> str:
        return f"{self.location}: {self.code.value}: {self.message}"

    def context(self, source: str | None = None) -> ErrorContext:
        """Build an ErrorContext, with a snippet when the source text is known."""
        snippet = None
        if source is not None:
            lines = source.splitlines()
            start = max(1, self.location.line - 2)
            snippet = "\n".join(lines[start - 1 : self.location.line]) or None
        return ErrorContext(
            file=Path(self.location.file),
            line=self.location.line,
            column=self.location.column,
            snippet=snippet,
        )


@dataclass
class Diagnostics:
    """
    Append-only diagnostic list for one compilation unit.

    Passed explicitly to every stage. Stages only ever append; nothing
    removes or rewrites an earlier entry.

    Attributes:
        file: Source file name used for locations that carry no node
        source: Source text, used for snippets when formatting
    """

    file: str = "<source>"
    source: str | None = None
    items: list[Diagnostic] = field(default_factory=list)

    def push(self, code: DiagnosticCode, message: str, location: SourceLocation | None = None) -> None:
        """Record a diagnostic; a missing location points at the module start."""
        if location is None:
            location = SourceLocation(file=self.file, line=1, column=1)
        self.items.append(Diagnostic(code=code, message=message, location=location))

    def extend(self, other: Diagnostics) -> None:
        self.items.extend(other.items)

    def codes(self) -> list[DiagnosticCode]:
        return [d.code for d in self.items]

    def messages(self) -> list[str]:
        return [d.message for d in self.items]

    def has_errors(self) -> bool:
        return bool(self.items)

    def format(self) -> str:
        """Render every diagnostic with its location and snippet."""
        blocks = []
        for diagnostic in self.items:
            context = diagnostic.context(self.source)
            blocks.append(f"{context.format()}\n{diagnostic.code.value}: {diagnostic.message}")
        return "\n\n".join(blocks)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.items)

    def __bool__(self) -> bool:
        return bool(self.items)
