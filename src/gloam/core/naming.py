"""Name conversions shared by the derivers and the emitter."""

from __future__ import annotations

import re

_VALID_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")
_WORD_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|[_\-\s]+")


def is_valid_name(name: str) -> bool:
    """Registered property and signal names."""
    return bool(_VALID_NAME.match(name))


def split_words(name: str) -> list[str]:
    return [w for w in _WORD_BOUNDARY.split(name) if w]


def kebab_case(name: str) -> str:
    return "-".join(w.lower() for w in split_words(name))


def snake_case(name: str) -> str:
    return "_".join(w.lower() for w in split_words(name))


def upper_camel_case(name: str) -> str:
    return "".join(w[:1].upper() + w[1:] for w in split_words(name))


def member_name(field_name: str) -> str:
    """Registered name for a field or method: leading underscores stripped, kebab-cased."""
    return kebab_case(field_name.lstrip("_"))


def last_segment(path: str) -> str:
    return path.rsplit(".", 1)[-1]


def same_path(a: str, b: str) -> bool:
    """Paths match by full text or by last segment."""
    return a == b or last_segment(a) == last_segment(b)
