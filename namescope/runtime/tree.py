"""Arena-backed scope tree holding input declarations."""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from .core import Declaration, DeclKind, ScopeRecord
from .errors import (
    DuplicateName,
    DuplicateRoot,
    InvalidParent,
    ScopeClosed,
    UnknownDeclaration,
    UnknownScope,
)

logger = logging.getLogger(__name__)


class ScopeTree:
    """Tree of scopes for one compilation unit.

    Scopes and declarations live in two flat lists and are referred to by
    their integer index. Each scope stores its parent's index, so walking the
    visible chain costs O(depth) and no record references another directly.
    """

    def __init__(self, *, allow_duplicate_names: bool = True):
        self.allow_duplicate_names = allow_duplicate_names
        self._scopes: list[ScopeRecord] = []
        self._declarations: list[Declaration] = []
        # scope id -> input name -> declaration ids in declaration order
        self._named: dict[int, dict[str, list[int]]] = {}
        self._root: Optional[int] = None

    def __len__(self) -> int:
        return len(self._scopes)

    @property
    def root(self) -> Optional[int]:
        return self._root

    @property
    def declaration_count(self) -> int:
        return len(self._declarations)

    # -- Registration ------------------------------------------------
    def create_scope(self, parent: Optional[int] = None, label: Optional[str] = None) -> int:
        """Create a scope under ``parent`` (or the root when ``parent`` is None)."""

        if parent is None:
            if self._root is not None:
                raise DuplicateRoot(
                    f"Root scope already exists (scope {self._root})", scope=self._root
                )
            depth = 0
        else:
            if not self._has_scope(parent):
                raise InvalidParent(f"Parent scope {parent!r} does not exist", scope=parent)
            depth = self._scopes[parent].depth + 1

        scope_id = len(self._scopes)
        self._scopes.append(ScopeRecord(scope_id, parent, depth, label=label))
        self._named[scope_id] = {}
        if parent is None:
            self._root = scope_id
        else:
            self._scopes[parent].children.append(scope_id)
        logger.debug("created scope %s under %s", scope_id, parent)
        return scope_id

    def declare(self, scope: int, kind: DeclKind) -> int:
        """Register a declaration of ``kind`` at the end of ``scope``."""

        record = self.scope(scope)
        if not isinstance(kind, DeclKind):
            raise TypeError(f"Expected a DeclKind, got {type(kind).__name__}")
        if record.allocated:
            raise ScopeClosed(
                f"Scope {self.scope_path(scope)} is already allocated; "
                "no further declarations are accepted",
                scope=scope,
            )
        by_name = self._named[scope]
        if kind.is_named and kind.text in by_name and not self.allow_duplicate_names:
            raise DuplicateName(
                f"Name {kind.text!r} is already declared in scope {self.scope_path(scope)}",
                scope=scope,
                declaration=by_name[kind.text][-1],
            )

        decl_id = len(self._declarations)
        decl = Declaration(decl_id, scope, kind, order=len(record.declarations))
        self._declarations.append(decl)
        record.declarations.append(decl_id)
        if kind.is_named:
            by_name.setdefault(kind.text, []).append(decl_id)
        return decl_id

    def close_scope(self, scope: int) -> None:
        """Mark ``scope`` as allocated. Only the allocator should call this."""
        self.scope(scope).allocated = True

    # -- Lookup ------------------------------------------------------
    def scope(self, scope_id: int) -> ScopeRecord:
        if not self._has_scope(scope_id):
            raise UnknownScope(f"Unknown scope {scope_id!r}", scope=scope_id)
        return self._scopes[scope_id]

    def declaration(self, decl_id: int) -> Declaration:
        if (
            isinstance(decl_id, bool)
            or not isinstance(decl_id, int)
            or not 0 <= decl_id < len(self._declarations)
        ):
            raise UnknownDeclaration(
                f"Unknown declaration {decl_id!r}", declaration=decl_id
            )
        return self._declarations[decl_id]

    def declarations_of(self, scope: int) -> list[Declaration]:
        return [self._declarations[d] for d in self.scope(scope).declarations]

    def lookup_input(self, scope: int, name: str) -> Optional[int]:
        """Resolve an input name the way source code would see it from ``scope``.

        The nearest scope declaring ``name`` wins, and within that scope the
        latest declaration shadows earlier ones.
        """

        for sid in self.visible_chain(scope):
            hits = self._named[sid].get(name)
            if hits:
                return hits[-1]
        return None

    # -- Traversal ---------------------------------------------------
    def visible_chain(self, scope: int) -> list[int]:
        """Return ``scope`` followed by its ancestors, root last."""

        chain = []
        current: Optional[int] = self.scope(scope).id
        while current is not None:
            chain.append(current)
            current = self._scopes[current].parent
        return chain

    def ancestors(self, scope: int) -> list[int]:
        return self.visible_chain(scope)[1:]

    def children(self, scope: int) -> list[int]:
        return list(self.scope(scope).children)

    def descendants(self, scope: int) -> list[int]:
        """Return all scopes below ``scope`` in pre-order, creation order."""

        out = []
        stack = list(reversed(self.scope(scope).children))
        while stack:
            sid = stack.pop()
            out.append(sid)
            stack.extend(reversed(self._scopes[sid].children))
        return out

    def iter_scopes(self) -> Iterator[int]:
        """Yield every scope of the tree in pre-order, starting at the root."""

        if self._root is None:
            return
        yield self._root
        yield from self.descendants(self._root)

    def visible_declarations(self, scope: int) -> list[Declaration]:
        """Declarations visible from ``scope``: its own first, then ancestors'."""

        out = []
        for sid in self.visible_chain(scope):
            out.extend(self._declarations[d] for d in self._scopes[sid].declarations)
        return out

    def is_ancestor(self, ancestor: int, scope: int) -> bool:
        """True if ``ancestor`` is a strict ancestor of ``scope``."""
        self.scope(ancestor)
        return ancestor in self.ancestors(scope)

    def scope_path(self, scope: int) -> str:
        """Return a dotted path such as ``root.1.0`` for diagnostics.

        Each segment is the scope's label if it has one, otherwise its index
        among its siblings.
        """

        parts = []
        for sid in self.visible_chain(scope):
            record = self._scopes[sid]
            if record.label:
                parts.append(record.label)
            elif record.parent is None:
                parts.append("root")
            else:
                parts.append(str(self._scopes[record.parent].children.index(sid)))
        return ".".join(reversed(parts))

    def _has_scope(self, scope_id) -> bool:
        return (
            isinstance(scope_id, int)
            and not isinstance(scope_id, bool)
            and 0 <= scope_id < len(self._scopes)
        )


__all__ = ["ScopeTree"]
