import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ManifestError

DEFAULT_MANIFEST = "gloam.toml"


@dataclass
class ProjectConfig:
    """Which source modules make up the project."""

    name: str = ""
    sources: list[str] = field(default_factory=lambda: ["*.py"])
    output_dir: str = "generated"


@dataclass
class CompileConfig:
    """Compiler settings applied to every source.

    Examples in gloam.toml:

        [compile]
        runtime_module = "gloam.runtime"
        namespace = "Demo"
        hooks = ["myproject.hooks:TraceHook"]
        suffix = "_gen.py"
    """

    runtime_module: str = "gloam.runtime"
    namespace: str | None = None  # default `ns` for definitions that omit it
    hooks: list[str] = field(default_factory=list)
    suffix: str = "_gen.py"


@dataclass
class GloamManifest:
    root: Path
    project: ProjectConfig = field(default_factory=ProjectConfig)
    compile: CompileConfig = field(default_factory=CompileConfig)

    def source_files(self) -> list[Path]:
        """Source modules matched by the project globs, sorted, generated files excluded."""
        found: set[Path] = set()
        for pattern in self.project.sources:
            for path in self.root.glob(pattern):
                if path.is_file() and not path.name.endswith(self.compile.suffix):
                    found.add(path)
        return sorted(found)

    def output_path(self, source: Path) -> Path:
        stem = source.name[: -len(source.suffix)] if source.suffix else source.name
        return self.root / self.project.output_dir / f"{stem}{self.compile.suffix}"


def _expect(value: object, kind: type, key: str) -> None:
    if not isinstance(value, kind):
        raise ManifestError(f"'{key}' must be a {kind.__name__}, got {type(value).__name__}")


def load_manifest(path: Path) -> GloamManifest:
    if not path.exists():
        raise ManifestError(f"Manifest not found: {path}")
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ManifestError(f"Invalid TOML in {path}: {e}") from e

    project_data = data.get("project", {})
    compile_data = data.get("compile", {})
    _expect(project_data, dict, "project")
    _expect(compile_data, dict, "compile")

    sources = project_data.get("sources", ["*.py"])
    _expect(sources, list, "project.sources")
    hooks = compile_data.get("hooks", [])
    _expect(hooks, list, "compile.hooks")

    project = ProjectConfig(
        name=project_data.get("name", path.parent.name),
        sources=[str(s) for s in sources],
        output_dir=project_data.get("output_dir", "generated"),
    )
    compile_config = CompileConfig(
        runtime_module=compile_data.get("runtime_module", "gloam.runtime"),
        namespace=compile_data.get("namespace"),
        hooks=[str(h) for h in hooks],
        suffix=compile_data.get("suffix", "_gen.py"),
    )
    if not compile_config.suffix.endswith(".py"):
        raise ManifestError(f"'compile.suffix' must end with .py, got '{compile_config.suffix}'")

    return GloamManifest(root=path.parent, project=project, compile=compile_config)
