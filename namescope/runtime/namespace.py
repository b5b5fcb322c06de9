"""Single-object interface for front-ends driving registration and allocation."""

from __future__ import annotations

from typing import Optional

from .allocator import IdentifierAllocator
from .core import AllocConfig, DeclKind
from .tree import ScopeTree


def as_decl_kind(kind) -> DeclKind:
    """Accept a DeclKind, a plain name (named) or None (anonymous)."""

    if isinstance(kind, DeclKind):
        return kind
    if kind is None:
        return DeclKind.anonymous()
    if isinstance(kind, str):
        return DeclKind.named(kind)
    raise TypeError(f"Cannot declare a variable from {type(kind).__name__}")


class Namespace:
    """A scope tree and its allocator for one compilation unit."""

    def __init__(
        self,
        *,
        allow_duplicate_names: bool = True,
        config: Optional[AllocConfig] = None,
    ):
        self.tree = ScopeTree(allow_duplicate_names=allow_duplicate_names)
        self.allocator = IdentifierAllocator(self.tree, config)

    @property
    def config(self) -> AllocConfig:
        return self.allocator.config

    @property
    def root(self) -> Optional[int]:
        return self.tree.root

    def create_scope(self, parent: Optional[int] = None, label: Optional[str] = None) -> int:
        return self.tree.create_scope(parent, label)

    def declare(self, scope: int, kind=None) -> int:
        return self.tree.declare(scope, as_decl_kind(kind))

    def allocate_scope(self, scope: int, config: Optional[AllocConfig] = None) -> list[str]:
        return self.allocator.allocate_scope(scope, config)

    def allocate_all(self, config: Optional[AllocConfig] = None) -> int:
        """Allocate every open scope of the tree, parents first."""

        if self.tree.root is None:
            return 0
        return self.allocator.allocate_subtree(self.tree.root, config)

    def output_of(self, declaration: int) -> str:
        return self.allocator.output_of(declaration)

    def lookup_input(self, scope: int, name: str) -> Optional[int]:
        return self.tree.lookup_input(scope, name)

    def visible_chain(self, scope: int) -> list[int]:
        return self.tree.visible_chain(scope)


__all__ = ["Namespace", "as_decl_kind"]
