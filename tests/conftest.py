"""Shared pytest fixtures for gloam tests."""

from __future__ import annotations

import textwrap
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from gloam import CompileOptions, CompileResult, compile_source


def _compile(text: str, file: str = "test_source.py", **options: Any) -> CompileResult:
    return compile_source(textwrap.dedent(text).lstrip(), file=file, options=CompileOptions(**options))


@pytest.fixture
def compile_text() -> Callable[..., CompileResult]:
    """Compile dedented source text; keyword arguments become CompileOptions."""
    return _compile


@pytest.fixture
def load_generated() -> Callable[..., dict[str, Any]]:
    """Compile source text that must be valid and exec the generated module.

    Passing the namespace of an earlier module lets one generated type see
    another, e.g. a class implementing an interface generated just before.
    """

    def load(text: str, namespace: dict[str, Any] | None = None, **options: Any) -> dict[str, Any]:
        result = _compile(text, **options)
        assert result.success, result.diagnostics.format()
        assert result.output is not None
        namespace = namespace if namespace is not None else {}
        namespace["__name__"] = "gloam_generated"
        exec(compile(result.output, "<generated>", "exec"), namespace)
        return namespace

    return load


@pytest.fixture
def sources_dir(tmp_path: Path) -> Path:
    """Directory holding one valid source module."""
    src = tmp_path / "src"
    src.mkdir()
    (src / "counter.py").write_text(
        textwrap.dedent(
            """
            @gclass(ns="Demo")
            class Counter:
                count: Cell[int] = prop(get, set, minimum=0, maximum=10)
            """
        ).lstrip(),
        encoding="utf-8",
    )
    return src
