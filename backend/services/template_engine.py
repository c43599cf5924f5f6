"""
Handlebars-style template engine used by site themes.

Supported syntax:
- ``{{path}}`` HTML-escaped output, ``{{{path}}}`` raw output
- dotted paths, ``this``, ``@root.path``, and ``@index``/``@first``/``@last``
  inside loops
- ``{{#if path}}...{{else}}...{{/if}}``, ``{{#unless path}}...{{/unless}}``
  and ``{{#each path}}...{{/each}}``, nested to any depth
- helpers: ``{{formatDate path}}``

Templates are parsed into a node tree once and cached by source text.
"""

import html
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from functools import lru_cache
from typing import Any, Callable

logger = logging.getLogger(__name__)

BLOCK_TAGS = ("if", "unless", "each")

_TAG = re.compile(r"\{\{\{\s*(.*?)\s*\}\}\}|\{\{\s*(.*?)\s*\}\}", re.DOTALL)
_MISSING = object()


class TemplateSyntaxError(Exception):
    """Raised when a template has unbalanced or malformed block tags."""

    pass


# ---------------------------------------------------------------------------
# Node tree
# ---------------------------------------------------------------------------


@dataclass
class Text:
    value: str


@dataclass
class Output:
    expr: str
    escape: bool
    raw_tag: str  # original tag text, echoed back for unknown helpers


@dataclass
class Block:
    tag: str
    arg: str
    body: list = field(default_factory=list)
    alternate: list = field(default_factory=list)
    in_alternate: bool = False

    @property
    def current(self) -> list:
        return self.alternate if self.in_alternate else self.body


def parse(source: str) -> list:
    """Parse template source into a list of nodes."""
    root: list = []
    stack: list[Block] = []

    def target() -> list:
        return stack[-1].current if stack else root

    pos = 0
    for match in _TAG.finditer(source):
        if match.start() > pos:
            target().append(Text(source[pos:match.start()]))
        pos = match.end()

        if match.group(1) is not None:
            expr = match.group(1)
            target().append(Output(expr, escape=False, raw_tag=match.group(0)))
            continue

        expr = match.group(2)
        if expr.startswith("#"):
            tag, _, arg = expr[1:].partition(" ")
            if tag not in BLOCK_TAGS:
                raise TemplateSyntaxError(f"Unknown block helper '#{tag}'")
            if not arg.strip():
                raise TemplateSyntaxError(f"Block '#{tag}' needs an argument")
            block = Block(tag=tag, arg=arg.strip())
            target().append(block)
            stack.append(block)
        elif expr.startswith("/"):
            tag = expr[1:].strip()
            if not stack:
                raise TemplateSyntaxError(f"Unexpected closing tag '{{{{/{tag}}}}}'")
            if stack[-1].tag != tag:
                raise TemplateSyntaxError(
                    f"Closing tag '/{tag}' does not match open block '#{stack[-1].tag}'"
                )
            stack.pop()
        elif expr == "else":
            if not stack or stack[-1].in_alternate:
                raise TemplateSyntaxError("'{{else}}' outside of a block")
            stack[-1].in_alternate = True
        else:
            target().append(Output(expr, escape=True, raw_tag=match.group(0)))

    if pos < len(source):
        target().append(Text(source[pos:]))

    if stack:
        raise TemplateSyntaxError(f"Unclosed block '#{stack[-1].tag}'")

    return root


@lru_cache(maxsize=256)
def compile_template(source: str) -> tuple:
    return tuple(parse(source))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_date(value: Any) -> datetime | date | None:
    if isinstance(value, (datetime, date)):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # JavaScript-style millisecond timestamps
        seconds = value / 1000 if value > 10**11 else value
        try:
            return datetime.fromtimestamp(seconds)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def format_date(value: Any) -> str:
    """Render a date as e.g. ``December 3, 2024``; unparseable values pass through."""
    if value is None:
        return ""
    parsed = _parse_date(value)
    if parsed is None:
        return html.escape(str(value))
    return f"{parsed.strftime('%B')} {parsed.day}, {parsed.year}"


HELPERS: dict[str, Callable[[Any], str]] = {
    "formatDate": format_date,
}


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


@dataclass
class _Scope:
    this: Any
    data: dict
    parent: "_Scope | None" = None


def _lookup(obj: Any, parts: list[str]) -> Any:
    for part in parts:
        if obj is None:
            return None
        if isinstance(obj, dict):
            obj = obj.get(part)
        elif isinstance(obj, (list, tuple)) and part.isdigit():
            index = int(part)
            obj = obj[index] if index < len(obj) else None
        else:
            obj = getattr(obj, part, None)
    return obj


def _resolve(path: str, scope: _Scope, root: Any) -> Any:
    path = path.strip()
    if path in ("this", "."):
        return scope.this
    if path.startswith("this."):
        return _lookup(scope.this, path[5:].split("."))
    if path.startswith("@root."):
        return _lookup(root, path[6:].split("."))
    if path == "@root":
        return root
    if path.startswith("@"):
        current: _Scope | None = scope
        while current is not None:
            if path[1:] in current.data:
                return current.data[path[1:]]
            current = current.parent
        return None
    return _lookup(scope.this, path.split("."))


def is_truthy(value: Any) -> bool:
    """Empty lists and maps are false, as in Handlebars."""
    if isinstance(value, (list, tuple, dict)):
        return len(value) > 0
    return bool(value)


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _render_output(node: Output, scope: _Scope, root: Any) -> str:
    name, _, arg = node.expr.partition(" ")
    if arg:
        helper = HELPERS.get(name)
        if helper is None:
            return node.raw_tag
        return helper(_resolve(arg, scope, root))

    text = _stringify(_resolve(node.expr, scope, root))
    return html.escape(text) if node.escape else text


def _render_nodes(nodes, scope: _Scope, root: Any, out: list[str]) -> None:
    for node in nodes:
        if isinstance(node, Text):
            out.append(node.value)
        elif isinstance(node, Output):
            out.append(_render_output(node, scope, root))
        elif node.tag == "each":
            items = _resolve(node.arg, scope, root)
            if not isinstance(items, (list, tuple)) or not items:
                _render_nodes(node.alternate, scope, root, out)
                continue
            last = len(items) - 1
            for index, item in enumerate(items):
                item_scope = _Scope(
                    this=item,
                    data={"index": index, "first": index == 0, "last": index == last},
                    parent=scope,
                )
                _render_nodes(node.body, item_scope, root, out)
        else:
            condition = is_truthy(_resolve(node.arg, scope, root))
            if node.tag == "unless":
                condition = not condition
            _render_nodes(node.body if condition else node.alternate, scope, root, out)


def render_template(source: str, context: dict) -> str:
    """
    Render template source against a context dictionary.

    Raises:
        TemplateSyntaxError: If the template's blocks are malformed.
    """
    nodes = compile_template(source)
    out: list[str] = []
    _render_nodes(nodes, _Scope(this=context, data={}), context, out)
    return "".join(out)
