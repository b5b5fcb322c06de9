"""Outline notation: a compact way to write down a scope tree.

``{`` opens a child of the current scope and ``}`` closes it. Every other
token declares a variable in the current scope: ``?`` is anonymous,
``name*`` is anonymous with the prefix ``name`` and anything else is a named
declaration. Tokens are separated by whitespace or commas; tokens outside any
braces belong to the root scope.

    x x { x ? tmp* } { ? ? { x } }
"""

from __future__ import annotations

import re

from .runtime.core import DeclKind
from .runtime.namespace import Namespace

TOKEN_PATTERN = re.compile(r"[{}]|[^\s,{}]+")


class OutlineSyntaxError(ValueError):
    """Raised for unbalanced braces; ``position`` is the offending offset."""

    def __init__(self, message, position):
        super().__init__(f"{message} at offset {position}")
        self.position = position


def token_kind(token: str) -> DeclKind:
    if token == "?":
        return DeclKind.anonymous()
    if token.endswith("*"):
        return DeclKind.prefixed(token[:-1])
    return DeclKind.named(token)


def build_outline(src, namespace=None):
    """Register the scopes and declarations of ``src``.

    Returns ``(namespace, root)``. Nothing is allocated.
    """

    namespace = namespace or Namespace()
    root = namespace.create_scope()
    stack = [(root, None)]

    for match in TOKEN_PATTERN.finditer(src or ""):
        token = match.group()
        current = stack[-1][0]
        if token == "{":
            stack.append((namespace.create_scope(current), match.start()))
        elif token == "}":
            if len(stack) == 1:
                raise OutlineSyntaxError("Unmatched closing brace", match.start())
            stack.pop()
        else:
            namespace.declare(current, token_kind(token))

    if len(stack) > 1:
        raise OutlineSyntaxError("Unclosed scope opened", stack[-1][1])
    return namespace, root


def allocate_outline(src, config=None, *, allow_duplicate_names=True):
    """Build ``src`` into a fresh namespace and allocate every scope."""

    namespace = Namespace(allow_duplicate_names=allow_duplicate_names, config=config)
    build_outline(src, namespace)
    namespace.allocate_all()
    return namespace


def format_outline(namespace, scope=None, *, outputs=False):
    """Render a namespace back into outline notation.

    With ``outputs=True`` allocated declarations are written as their output
    identifiers instead of their input kinds.
    """

    tree = namespace.tree
    if scope is None:
        scope = tree.root
        if scope is None:
            return ""
    parts = []
    for decl in tree.declarations_of(scope):
        if outputs and decl.output is not None:
            parts.append(decl.output)
        else:
            parts.append(str(decl.kind))
    for child in tree.children(scope):
        inner = format_outline(namespace, child, outputs=outputs)
        parts.append("{ " + inner + " }" if inner else "{ }")
    return " ".join(parts)


__all__ = [
    "OutlineSyntaxError",
    "allocate_outline",
    "build_outline",
    "format_outline",
    "token_kind",
]
