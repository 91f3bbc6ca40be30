"""
Reusable flag-set checks.

Each check takes ``(name, location)`` pairs where the location is None for
flags that are not set, so every context only supplies its own flag list.
"""

from __future__ import annotations

from collections.abc import Sequence

from .errors import DiagnosticCode, Diagnostics
from .ir.location import SourceLocation

Flag = tuple[str, SourceLocation | None]


def only_one(
    flags: Sequence[Flag],
    diagnostics: Diagnostics,
    code: DiagnosticCode = DiagnosticCode.DISALLOWED_COMBINATION,
) -> bool:
    """
    Report each present flag when more than one of the set is present.

    Returns:
        True if the set was valid
    """
    present = [(name, loc) for name, loc in flags if loc is not None]
    if len(present) <= 1:
        return True
    names = ", ".join(f"`{name}`" for name, _ in flags)
    for _, loc in present:
        diagnostics.push(code, f"Only one of {names} is allowed", loc)
    return False


def disallow(
    context: str,
    flags: Sequence[Flag],
    diagnostics: Diagnostics,
    code: DiagnosticCode = DiagnosticCode.DISALLOWED_COMBINATION,
) -> bool:
    """
    Report every present flag as not allowed in this context.

    Returns:
        True if none of the flags were present
    """
    ok = True
    for name, loc in flags:
        if loc is not None:
            diagnostics.push(code, f"`{name}` not allowed on {context}", loc)
            ok = False
    return ok
