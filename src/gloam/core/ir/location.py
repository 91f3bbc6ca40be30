"""Source location tracking for model nodes.

Records the file, line, and column where a tagged item was written,
so every diagnostic can point at its originating span.
"""

from __future__ import annotations

import ast

from pydantic import BaseModel, ConfigDict


class SourceLocation(BaseModel):
    """Source position of a tagged item.

    Attributes:
        file: Path to the source module (relative or absolute)
        line: 1-indexed line number
        column: 1-indexed column number
    """

    file: str
    line: int
    column: int

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"

    @classmethod
    def of(cls, file: str, node: ast.AST) -> SourceLocation:
        """Location of an ast node; ast columns are 0-indexed."""
        return cls(
            file=file,
            line=getattr(node, "lineno", 1),
            column=getattr(node, "col_offset", 0) + 1,
        )
