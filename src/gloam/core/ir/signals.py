"""
Signal definitions for gloam models.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .items import MethodItem, Parameter
from .location import SourceLocation


class RunTiming(str, Enum):
    """Where the default body runs relative to connected handlers."""

    FIRST = "run_first"
    LAST = "run_last"
    CLEANUP = "run_cleanup"


class AccumulatorDefinition(BaseModel):
    """
    Fold function paired with a signal.

    Attributes:
        method: The relocated accumulator function
        takes_hint: True for the ``(hint, accu, value)`` form
        initial: Starting accumulated value
    """

    method: MethodItem
    takes_hint: bool = False
    initial: Any = None

    @property
    def name(self) -> str:
        return self.method.name


class SignalDefinition(BaseModel):
    """
    A signal derived from one tagged method.

    The method body, unless empty, is the class handler; it behaves as the
    first connected handler for run-first signals.
    """

    name: str
    handler: MethodItem
    params: list[Parameter] = Field(default_factory=list)
    return_type: str | None = None
    run_timing: RunTiming = RunTiming.LAST
    detailed: bool = False
    action: bool = False
    deprecated: bool = False
    override: bool = False
    connect: bool = True
    accumulator: AccumulatorDefinition | None = None
    accumulator_name: str | None = None
    collection: int = 0
    location: SourceLocation

    @property
    def method_name(self) -> str:
        return self.handler.name

    @property
    def has_class_handler(self) -> bool:
        return not self.handler.empty_body
