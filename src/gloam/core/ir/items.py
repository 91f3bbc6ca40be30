"""
Source items for gloam models.

Methods and parameters as read from the annotated module, after the front
end has classified each method's role. Method bodies are kept as normalized
source text so the model stays serializable and emission stays pure.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .location import SourceLocation

RECEIVER = "self"


class ParameterKind(str, Enum):
    """How a parameter binds."""

    POSITIONAL = "positional"
    VAR_POSITIONAL = "var_positional"
    KEYWORD_ONLY = "keyword_only"
    VAR_KEYWORD = "var_keyword"


class Parameter(BaseModel):
    """A single method parameter."""

    name: str
    annotation: str | None = None
    default: str | None = None
    kind: ParameterKind = ParameterKind.POSITIONAL

    model_config = ConfigDict(frozen=True)

    @property
    def is_receiver(self) -> bool:
        return self.name == RECEIVER and self.annotation is None

    def render(self) -> str:
        """Render as it appears in a def statement."""
        prefix = {
            ParameterKind.VAR_POSITIONAL: "*",
            ParameterKind.VAR_KEYWORD: "**",
        }.get(self.kind, "")
        text = prefix + self.name
        if self.annotation:
            text += f": {self.annotation}"
        if self.default is not None:
            text += f" = {self.default}" if self.annotation else f"={self.default}"
        return text

    def forward(self) -> str:
        """Render as it appears in a call forwarding this parameter."""
        if self.kind == ParameterKind.VAR_POSITIONAL:
            return f"*{self.name}"
        if self.kind == ParameterKind.VAR_KEYWORD:
            return f"**{self.name}"
        if self.kind == ParameterKind.KEYWORD_ONLY:
            return f"{self.name}={self.name}"
        return self.name


class MethodRole(str, Enum):
    """Exactly one role per method; the derivers match on this discriminant."""

    PLAIN = "plain"
    ACCESSOR = "accessor"
    SIGNAL = "signal"
    ACCUMULATOR = "accumulator"
    VIRTUAL = "virtual"
    CONSTRUCTOR = "constructor"
    PUBLIC = "public"
    LIFECYCLE = "lifecycle"


class TypeMode(str, Enum):
    """Which side of the type a method collection is written against."""

    SUBCLASS = "subclass"
    WRAPPER = "wrapper"


class MethodItem(BaseModel):
    """
    A method as written in a collection.

    Attributes:
        name: Method name
        params: Every parameter, including the receiver if present
        returns: Return annotation source, if any
        source: The def statement without role decorators, normalized
        empty_body: True when the body is only a docstring, ``...`` or ``pass``
        role: The method's single role
        tag: Name of the role decorator, if any
        location: Where the def (or its role tag) was written
    """

    name: str
    params: list[Parameter] = Field(default_factory=list)
    returns: str | None = None
    source: str
    empty_body: bool = False
    is_async: bool = False
    role: MethodRole = MethodRole.PLAIN
    tag: str | None = None
    location: SourceLocation

    model_config = ConfigDict(frozen=True)

    @property
    def has_receiver(self) -> bool:
        return bool(self.params) and self.params[0].is_receiver

    @property
    def arguments(self) -> list[Parameter]:
        """Parameters excluding the implicit receiver."""
        if self.has_receiver:
            return self.params[1:]
        return list(self.params)

    def signature(self, include_receiver: bool = True) -> str:
        params = self.params if include_receiver else self.arguments
        rendered = []
        star_seen = False
        for param in params:
            if param.kind == ParameterKind.VAR_POSITIONAL:
                star_seen = True
            elif param.kind == ParameterKind.KEYWORD_ONLY and not star_seen:
                rendered.append("*")
                star_seen = True
            rendered.append(param.render())
        return ", ".join(rendered)

    def call_arguments(self) -> str:
        return ", ".join(p.forward() for p in self.arguments)


class MethodCollection(BaseModel):
    """
    A group of methods sharing one type mode.

    Collection 0 is the body of the data definition; each ``@methods``
    class adds another.
    """

    index: int
    name: str
    mode: TypeMode = TypeMode.SUBCLASS
    methods: list[MethodItem] = Field(default_factory=list)
    location: SourceLocation
    wrapped_by: str | None = None

    def find(self, name: str) -> MethodItem | None:
        for method in self.methods:
            if method.name == name:
                return method
        return None

    def take(self, name: str) -> MethodItem | None:
        """Remove and return the first method with this name."""
        for i, method in enumerate(self.methods):
            if method.name == name:
                return self.methods.pop(i)
        return None

    def of_role(self, role: MethodRole) -> list[MethodItem]:
        return [m for m in self.methods if m.role == role]
