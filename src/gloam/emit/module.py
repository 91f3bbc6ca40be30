"""
Module emitter.

Puts the generated module together: header comment, imports (the source
module's own plus the runtime), the source's other top-level items, and
the blocks of the imp, ext and registration generators.
"""

from __future__ import annotations

import logging

from ..core.errors import EmitError
from .accessors import AccessorsGenerator
from .base import CompositeGenerator, Definition, EmitOptions, EmitResult, Generator
from .impl import ImplGenerator
from .registration import RegistrationGenerator

logger = logging.getLogger(__name__)

FUTURE_IMPORT = "from __future__ import annotations"


class HeaderGenerator(Generator):
    """Header comment, imports and copied module items."""

    def generate(self) -> EmitResult:
        result = EmitResult()
        lines = [f"# Generated by gloam from {self.options.source_name}. Do not edit."]

        future = [line for line in self.inner.imports if line.startswith("from __future__ import")]
        others = [line for line in self.inner.imports if line not in future]
        if FUTURE_IMPORT not in future:
            future.insert(0, FUTURE_IMPORT)
        lines.extend(future)
        lines.append("")
        lines.extend(others)
        lines.append(self._runtime_import())
        result.add_block("\n".join(lines))

        if self.inner.module_items:
            result.add_block("\n\n".join(self.inner.module_items))
        return result

    def _runtime_import(self) -> str:
        module = self.options.runtime_module
        alias = self.options.runtime_alias
        if "." in module:
            package, name = module.rsplit(".", 1)
            return f"from {package} import {name} as {alias}"
        return f"import {module} as {alias}"


class ModuleGenerator(CompositeGenerator):
    """The whole generated module, in dependency order."""

    def get_generators(self) -> list[Generator]:
        return [
            HeaderGenerator(self.definition, self.options),
            ImplGenerator(self.definition, self.options),
            AccessorsGenerator(self.definition, self.options),
            RegistrationGenerator(self.definition, self.options),
        ]


def emit_definition(definition: Definition, options: EmitOptions | None = None) -> str:
    """
    Render a validated definition as Python source.

    Raises:
        EmitError: If the definition has no name
    """
    if not definition.name:
        raise EmitError("Cannot emit a definition without a name")

    options = options or EmitOptions(source_name=definition.inner.file)
    result = ModuleGenerator(definition, options).generate()

    logger.debug("Emitted %s (%d blocks)", definition.name, len(result.blocks))
    return result.render()
