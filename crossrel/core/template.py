"""Template engine for names, ldflags, remote directories and alert messages.

The syntax is the subset of Go text/template that release manifests use,
so existing manifests keep working:

    {{.Version}}                 field lookup
    {{ .Env.GITHUB_TOKEN }}      nested lookup (mapping field)
    {{if .Error}}...{{else}}...{{end}}
    {{- .Field -}}               explicit whitespace trimming

Every call site passes its own ``TemplateContext``. Referencing a field the
context does not carry is an error rather than an empty substitution, and
nothing is trimmed unless the template asks for it.

Usage:
    ctx = TemplateContext.of(Version="v1.2.0")
    match render("releases/{{.Version}}", ctx):
        case Ok(path):
            ...
        case Err(error):
            console.error(error.message)
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from .result import Err, Ok, Result

__all__ = [
    "Template",
    "TemplateContext",
    "TemplateError",
    "env_references",
    "parse",
    "render",
]

_ACTION_RE = re.compile(r"\{\{(-\s)?(.*?)(\s-)?\}\}", re.DOTALL)
_FIELD_RE = re.compile(r"^(\.[A-Za-z_][A-Za-z0-9_]*)+$")
_IF_RE = re.compile(r"^if\s+(\S+)$")

ENV_FIELD = "Env"


@dataclass(frozen=True, slots=True)
class TemplateError:
    """Template text is malformed or references a field the context lacks."""

    template: str
    reason: str

    @property
    def message(self) -> str:
        return f"template {self.template!r}: {self.reason}"


@dataclass(frozen=True, slots=True)
class TemplateContext:
    """Immutable set of named values available to one render call."""

    values: Mapping[str, object]

    @classmethod
    def of(cls, **values: object) -> TemplateContext:
        frozen: dict[str, object] = {}
        for key, value in values.items():
            if isinstance(value, Mapping):
                value = MappingProxyType(dict(value))
            frozen[key] = value
        return cls(values=MappingProxyType(frozen))

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(sorted(self.values))


@dataclass(frozen=True, slots=True)
class _Text:
    text: str


@dataclass(frozen=True, slots=True)
class _Field:
    path: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class _If:
    condition: tuple[str, ...]
    then: tuple[_Node, ...]
    otherwise: tuple[_Node, ...]


type _Node = _Text | _Field | _If


def _field_path(expr: str) -> tuple[str, ...] | None:
    if not _FIELD_RE.match(expr):
        return None
    return tuple(expr[1:].split("."))


@dataclass
class _Frame:
    condition: tuple[str, ...] | None
    then: list[_Node]
    otherwise: list[_Node] | None = None

    @property
    def body(self) -> list[_Node]:
        return self.otherwise if self.otherwise is not None else self.then


@dataclass(frozen=True, slots=True)
class Template:
    """A parsed template."""

    source: str
    nodes: tuple[_Node, ...]

    def references(self) -> tuple[tuple[str, ...], ...]:
        """Field paths referenced anywhere in the template, in first-use order."""
        seen: list[tuple[str, ...]] = []

        def walk(nodes: Iterable[_Node]) -> None:
            for node in nodes:
                match node:
                    case _Field(path=path):
                        if path not in seen:
                            seen.append(path)
                    case _If(condition=condition, then=then, otherwise=otherwise):
                        if condition not in seen:
                            seen.append(condition)
                        walk(then)
                        walk(otherwise)
                    case _Text():
                        pass

        walk(self.nodes)
        return tuple(seen)

    def render(self, context: TemplateContext) -> Result[str, TemplateError]:
        out: list[str] = []
        error = self._render_nodes(self.nodes, context, out)
        if error is not None:
            return Err(error)
        return Ok("".join(out))

    def _lookup(
        self, path: tuple[str, ...], context: TemplateContext
    ) -> Result[object, TemplateError]:
        head = path[0]
        if head not in context.values:
            available = ", ".join(f".{f}" for f in context.fields) or "none"
            return Err(
                TemplateError(self.source, f"field .{head} is not available (have: {available})")
            )
        value: object = context.values[head]
        for depth, key in enumerate(path[1:], start=1):
            if not isinstance(value, Mapping):
                dotted = "." + ".".join(path[:depth])
                return Err(TemplateError(self.source, f"{dotted} has no field {key!r}"))
            if key not in value:
                if head == ENV_FIELD and depth == 1:
                    reason = f"environment variable {key} is not set"
                else:
                    reason = f"key {key!r} not found in ." + ".".join(path[:depth])
                return Err(TemplateError(self.source, reason))
            value = value[key]
        return Ok(value)

    def _render_nodes(
        self, nodes: Iterable[_Node], context: TemplateContext, out: list[str]
    ) -> TemplateError | None:
        for node in nodes:
            match node:
                case _Text(text=text):
                    out.append(text)
                case _Field(path=path):
                    looked_up = self._lookup(path, context)
                    if isinstance(looked_up, Err):
                        return looked_up.error
                    value = looked_up.value
                    if isinstance(value, Mapping):
                        dotted = "." + ".".join(path)
                        return TemplateError(self.source, f"{dotted} is a mapping, not a value")
                    if isinstance(value, bool):
                        out.append("true" if value else "false")
                    else:
                        out.append("" if value is None else str(value))
                case _If(condition=condition, then=then, otherwise=otherwise):
                    looked_up = self._lookup(condition, context)
                    if isinstance(looked_up, Err):
                        return looked_up.error
                    branch = then if looked_up.value else otherwise
                    error = self._render_nodes(branch, context, out)
                    if error is not None:
                        return error
        return None


def parse(text: str) -> Result[Template, TemplateError]:
    """Parse template text into a Template."""
    stack: list[_Frame] = [_Frame(condition=None, then=[])]
    trim_next = False
    pos = 0

    def add_text(chunk: str) -> None:
        if chunk:
            stack[-1].body.append(_Text(chunk))

    for match in _ACTION_RE.finditer(text):
        literal = text[pos : match.start()]
        if "{{" in literal:
            return Err(TemplateError(text, "unclosed action"))
        if trim_next:
            literal = literal.lstrip()
        if match.group(1):
            literal = literal.rstrip()
        add_text(literal)
        trim_next = bool(match.group(3))
        pos = match.end()

        action = match.group(2).strip()
        if not action:
            return Err(TemplateError(text, "empty action"))

        path = _field_path(action)
        if path is not None:
            stack[-1].body.append(_Field(path))
            continue

        if_match = _IF_RE.match(action)
        if if_match:
            condition = _field_path(if_match.group(1))
            if condition is None:
                return Err(TemplateError(text, f"unsupported condition: {if_match.group(1)}"))
            stack.append(_Frame(condition=condition, then=[]))
            continue

        if action == "else":
            frame = stack[-1]
            if frame.condition is None or frame.otherwise is not None:
                return Err(TemplateError(text, "unexpected {{else}}"))
            frame.otherwise = []
            continue

        if action == "end":
            if len(stack) == 1:
                return Err(TemplateError(text, "unexpected {{end}}"))
            frame = stack.pop()
            assert frame.condition is not None
            stack[-1].body.append(
                _If(
                    condition=frame.condition,
                    then=tuple(frame.then),
                    otherwise=tuple(frame.otherwise or ()),
                )
            )
            continue

        return Err(TemplateError(text, f"unsupported action: {{{{{action}}}}}"))

    tail = text[pos:]
    if "{{" in tail:
        return Err(TemplateError(text, "unclosed action"))
    if trim_next:
        tail = tail.lstrip()
    add_text(tail)

    if len(stack) != 1:
        return Err(TemplateError(text, "missing {{end}}"))
    return Ok(Template(source=text, nodes=tuple(stack[0].then)))


def render(text: str, context: TemplateContext) -> Result[str, TemplateError]:
    """Parse and render text in one step."""
    parsed = parse(text)
    if isinstance(parsed, Err):
        return parsed
    return parsed.value.render(context)


def env_references(texts: Iterable[str]) -> Result[tuple[str, ...], TemplateError]:
    """Names of environment variables referenced as ``.Env.NAME`` in texts.

    Discovery is static: the templates are parsed, not rendered.
    """
    names: list[str] = []
    for text in texts:
        parsed = parse(text)
        if isinstance(parsed, Err):
            return parsed
        for path in parsed.value.references():
            if len(path) == 2 and path[0] == ENV_FIELD and path[1] not in names:
                names.append(path[1])
    return Ok(tuple(names))
