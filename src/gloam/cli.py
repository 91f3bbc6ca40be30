"""
gloam command line interface.

Commands:
  compile  Compile one source module and write the generated module
  check    Report diagnostics without emitting
  inspect  Print the built model as JSON
  build    Compile every source listed in gloam.toml
"""

from __future__ import annotations

import logging
import platform
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from ._version import get_version
from .compiler import CompileOptions, CompileResult, compile_file
from .core.errors import GloamError
from .core.ir import TypeBase
from .core.manifest import DEFAULT_MANIFEST, load_manifest

app = typer.Typer(
    help="""gloam – declarative object-model compiler

Commands:
  • compile: source module → generated Python module
  • check / inspect: diagnostics or the built model, no output written
  • build: every source listed in gloam.toml
""",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"gloam version {get_version()}")
        typer.echo(f"  Python:        {platform.python_implementation()} {platform.python_version()}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version information",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log pipeline stages"),
) -> None:
    """gloam CLI main callback for global options."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


# =============================================================================
# Output helpers
# =============================================================================


def _print_human_diagnostics(result: CompileResult) -> None:
    if not result.diagnostics:
        return
    typer.echo(result.diagnostics.format(), err=True)
    count = len(result.diagnostics)
    typer.echo(f"\n{count} diagnostic{'s' if count != 1 else ''} reported.", err=True)


def _print_vscode_diagnostics(result: CompileResult) -> None:
    """
    Print diagnostics in VS Code format: file:line:col: severity: message
    """
    for diagnostic in result.diagnostics:
        typer.echo(f"{diagnostic.location}: error: {diagnostic.message} [{diagnostic.code.value}]", err=True)


def _compile(source: Path, options: CompileOptions) -> CompileResult:
    if not source.exists():
        typer.echo(f"Error: source not found: {source}", err=True)
        raise typer.Exit(code=1)
    try:
        return compile_file(source, options)
    except GloamError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


# =============================================================================
# Commands
# =============================================================================


@app.command(name="compile")
def compile_command(
    source: Path = typer.Argument(..., help="Annotated source module"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output file (default: stdout)"),
    kind: TypeBase | None = typer.Option(None, "--kind", help="Compile as class or interface"),
    options_text: str | None = typer.Option(None, "--options", help="Extra top-level options"),
    runtime: str = typer.Option("gloam.runtime", "--runtime", help="Runtime module for generated code"),
    hooks: list[str] = typer.Option([], "--hook", help="Extension hook, as module:Class"),  # noqa: B008
) -> None:
    """
    Compile one source module into a generated Python module.
    """
    options = CompileOptions(kind=kind, options_text=options_text, runtime_module=runtime, hooks=list(hooks))
    result = _compile(source, options)
    if not result.success or result.output is None:
        _print_human_diagnostics(result)
        raise typer.Exit(code=1)

    if output is None:
        typer.echo(result.output, nl=False)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(result.output, encoding="utf-8")
    console.print(f"[green]✓[/green] {source} → {output}")


@app.command(name="check")
def check_command(
    source: Path = typer.Argument(..., help="Annotated source module"),
    kind: TypeBase | None = typer.Option(None, "--kind", help="Compile as class or interface"),
    options_text: str | None = typer.Option(None, "--options", help="Extra top-level options"),
    format: str = typer.Option("human", "--format", "-f", help="Output format: 'human' or 'vscode'"),
) -> None:
    """
    Validate a source module and report every diagnostic.
    """
    if format not in ("human", "vscode"):
        typer.echo(f"Error: unknown format '{format}'", err=True)
        raise typer.Exit(code=2)

    result = _compile(source, CompileOptions(kind=kind, options_text=options_text))
    if format == "vscode":
        _print_vscode_diagnostics(result)
    else:
        _print_human_diagnostics(result)

    if not result.success:
        raise typer.Exit(code=1)
    if format == "human":
        typer.echo(f"OK: {source} is valid.")


@app.command(name="inspect")
def inspect_command(
    source: Path = typer.Argument(..., help="Annotated source module"),
    kind: TypeBase | None = typer.Option(None, "--kind", help="Compile as class or interface"),
    options_text: str | None = typer.Option(None, "--options", help="Extra top-level options"),
) -> None:
    """
    Print the built model as JSON.
    """
    result = _compile(source, CompileOptions(kind=kind, options_text=options_text))
    if result.definition is None or not result.success:
        _print_human_diagnostics(result)
        raise typer.Exit(code=1)
    typer.echo(result.definition.model_dump_json(indent=2))


@app.command(name="build")
def build_command(
    manifest: str = typer.Option(DEFAULT_MANIFEST, "--manifest", "-m", help="Path to gloam.toml"),
) -> None:
    """
    Compile every source module listed in the manifest.
    """
    try:
        mf = load_manifest(Path(manifest).resolve())
    except GloamError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    options = CompileOptions(
        runtime_module=mf.compile.runtime_module,
        namespace=mf.compile.namespace,
        hooks=list(mf.compile.hooks),
    )
    sources = mf.source_files()
    if not sources:
        typer.echo(f"No sources match {', '.join(mf.project.sources)}", err=True)
        raise typer.Exit(code=1)

    table = Table(title=f"gloam build: {mf.project.name}")
    table.add_column("Source")
    table.add_column("Type")
    table.add_column("Result")

    failed = 0
    for source in sources:
        result = _compile(source, options)
        type_name = result.definition.gtype_name if result.definition is not None else "-"
        if result.success and result.output is not None:
            target = mf.output_path(source)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(result.output, encoding="utf-8")
            table.add_row(source.name, type_name, f"[green]{target.relative_to(mf.root)}[/green]")
        else:
            failed += 1
            _print_human_diagnostics(result)
            table.add_row(source.name, type_name, f"[red]{len(result.diagnostics)} diagnostic(s)[/red]")

    console.print(table)
    if failed:
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
