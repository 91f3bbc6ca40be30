"""
Python module emission for gloam definitions.
"""

from .accessors import AccessorsGenerator
from .base import CompositeGenerator, EmitNames, EmitOptions, EmitResult, Generator
from .impl import ImplGenerator
from .module import HeaderGenerator, ModuleGenerator, emit_definition
from .registration import RegistrationGenerator

__all__ = [
    "AccessorsGenerator",
    "CompositeGenerator",
    "EmitNames",
    "EmitOptions",
    "EmitResult",
    "Generator",
    "HeaderGenerator",
    "ImplGenerator",
    "ModuleGenerator",
    "RegistrationGenerator",
    "emit_definition",
]
