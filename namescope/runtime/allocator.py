"""Greedy, per-scope output identifier allocation."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional

from ..constants import SEARCH_CANDIDATE_LIMIT, SEARCH_LENGTH_LIMIT
from .candidates import CandidateSequence, iter_suffixed
from .core import AllocConfig, Declaration
from .errors import (
    ExhaustedAlphabet,
    NotYetAllocated,
    ParentNotAllocated,
    ScopeClosed,
)
from .tree import ScopeTree

logger = logging.getLogger(__name__)


class _Cursor:
    """Anonymous-search resume point for one scope.

    Every candidate ranked below ``rank`` is either rejected by ``config`` or
    already committed somewhere on the scope's visible chain. Descendants
    inherit that guarantee, but only while they are allocated with the same
    config.
    """

    __slots__ = ("config", "rank")

    def __init__(self, config: AllocConfig, rank: int = 0):
        self.config = config
        self.rank = rank


class IdentifierAllocator:
    """Assigns output identifiers to the declarations of a :class:`ScopeTree`.

    Scopes are allocated one at a time, parents before children. A scope's
    forbidden set is the union of identifiers committed along its visible
    chain, so siblings never see each other and may reuse the same names.
    """

    def __init__(self, tree: ScopeTree, config: Optional[AllocConfig] = None):
        self.tree = tree
        self.config = config or AllocConfig()
        self._committed: dict[int, set[str]] = {}
        self._cursors: dict[int, _Cursor] = {}
        self._sequences: dict[str, CandidateSequence] = {}

    # -- Queries -----------------------------------------------------
    def is_allocated(self, scope: int) -> bool:
        return self.tree.scope(scope).allocated

    def committed(self, scope: int) -> frozenset:
        """Identifiers committed directly in ``scope``."""
        self.tree.scope(scope)
        return frozenset(self._committed.get(scope, ()))

    def forbidden(self, scope: int) -> frozenset:
        """Identifiers a new declaration in ``scope`` would have to avoid."""

        out = set()
        for sid in self.tree.visible_chain(scope):
            out.update(self._committed.get(sid, ()))
        return frozenset(out)

    def output_of(self, decl_id: int) -> str:
        decl = self.tree.declaration(decl_id)
        if decl.output is None:
            raise NotYetAllocated(
                f"Declaration {decl_id} ({decl.kind}) in scope "
                f"{self.tree.scope_path(decl.scope)} has not been allocated yet",
                scope=decl.scope,
                declaration=decl_id,
            )
        return decl.output

    def outputs(self) -> dict[int, str]:
        """Map every allocated declaration id to its output identifier."""

        out = {}
        for sid in self.tree.iter_scopes():
            for decl in self.tree.declarations_of(sid):
                if decl.output is not None:
                    out[decl.id] = decl.output
        return out

    # -- Allocation --------------------------------------------------
    def allocate_scope(self, scope: int, config: Optional[AllocConfig] = None) -> list[str]:
        """Assign outputs to every declaration of ``scope``.

        Either all declarations receive an identifier and the scope is closed,
        or an error is raised and nothing about the scope changes.
        """

        config = config or self.config
        record = self.tree.scope(scope)
        if record.allocated:
            raise ScopeClosed(
                f"Scope {self.tree.scope_path(scope)} is already allocated", scope=scope
            )
        chain = self.tree.visible_chain(scope)
        for ancestor in reversed(chain[1:]):
            if not self.tree.scope(ancestor).allocated:
                raise ParentNotAllocated(
                    f"Cannot allocate scope {self.tree.scope_path(scope)} before its "
                    f"ancestor {self.tree.scope_path(ancestor)}",
                    scope=ancestor,
                )

        outer = [self._committed.get(sid, set()) for sid in chain[1:]]
        staged: set[str] = set()
        cursor = self._inherit_cursor(record.parent, config)
        sequence = self._sequence(config.alphabet)
        suffixes = self._sequence(config.suffix_alphabet)

        def is_free(candidate: str) -> bool:
            return candidate not in staged and not any(candidate in s for s in outer)

        assigned: list[tuple[Declaration, str]] = []
        for decl in self.tree.declarations_of(scope):
            try:
                if decl.kind.tag == "anonymous" or not decl.kind.text:
                    ident, cursor = self._search_anonymous(sequence, cursor, config, is_free)
                else:
                    ident = self._search_based(decl.kind.text, suffixes, config, is_free)
            except ExhaustedAlphabet as exc:
                logger.warning(
                    "allocation of scope %s failed at declaration %s: %s",
                    self.tree.scope_path(scope),
                    decl.id,
                    exc,
                )
                raise ExhaustedAlphabet(
                    f"No free identifier for declaration {decl.id} ({decl.kind}) in "
                    f"scope {self.tree.scope_path(scope)}: {exc}",
                    scope=scope,
                    declaration=decl.id,
                ) from None
            staged.add(ident)
            assigned.append((decl, ident))

        for decl, ident in assigned:
            decl.output = ident
        self._committed[scope] = staged
        self._cursors[scope] = _Cursor(config, cursor)
        self.tree.close_scope(scope)
        logger.debug(
            "allocated scope %s: %s",
            self.tree.scope_path(scope),
            ", ".join(f"{d.kind}->{i}" for d, i in assigned) or "(empty)",
        )
        return [ident for _, ident in assigned]

    def allocate_subtree(self, scope: int, config: Optional[AllocConfig] = None) -> int:
        """Allocate ``scope`` and every descendant, parents first.

        Already allocated scopes are skipped. Returns how many scopes were
        allocated by this call; the first failure propagates and leaves the
        scopes allocated before it committed.
        """

        count = 0
        for sid in self._preorder(scope):
            if self.tree.scope(sid).allocated:
                continue
            self.allocate_scope(sid, config)
            count += 1
        return count

    # -- Candidate search --------------------------------------------
    def _search_based(self, base, suffixes, config, is_free) -> str:
        """Try ``base`` verbatim, then ``base`` with ever longer suffixes."""

        cap = _effective_cap(config)
        examined = 0
        for candidate in _chain_first(base, iter_suffixed(base, suffixes, cap)):
            if len(candidate) > cap:
                break
            if examined == SEARCH_CANDIDATE_LIMIT:
                raise ExhaustedAlphabet(_budget_message(config, f"starting from {base!r}"))
            examined += 1
            if config.is_valid_identifier(candidate) and is_free(candidate):
                return candidate
        raise ExhaustedAlphabet(_exhausted_message(config, f"starting from {base!r}"))

    def _search_anonymous(self, sequence, rank, config, is_free) -> tuple[str, int]:
        """Return the shortest free candidate and the cursor just past it."""

        cap = _effective_cap(config)
        examined = 0
        for pos, candidate in sequence.iter_from(rank, cap):
            if examined == SEARCH_CANDIDATE_LIMIT:
                raise ExhaustedAlphabet(_budget_message(config, "for an anonymous name"))
            examined += 1
            if config.is_valid_identifier(candidate) and is_free(candidate):
                return candidate, pos + 1
        raise ExhaustedAlphabet(_exhausted_message(config, "for an anonymous name"))

    def _inherit_cursor(self, parent: Optional[int], config: AllocConfig) -> int:
        if parent is None:
            return 0
        cursor = self._cursors.get(parent)
        if cursor is None or cursor.config != config:
            return 0
        return cursor.rank

    def _sequence(self, alphabet: str) -> CandidateSequence:
        seq = self._sequences.get(alphabet)
        if seq is None:
            seq = self._sequences[alphabet] = CandidateSequence(alphabet)
        return seq

    def _preorder(self, scope: int) -> Iterable[int]:
        self.tree.scope(scope)
        yield scope
        yield from self.tree.descendants(scope)


def _effective_cap(config: AllocConfig) -> int:
    if config.max_length is not None:
        return config.max_length
    return SEARCH_LENGTH_LIMIT


def _chain_first(first: str, rest: Iterator[str]) -> Iterator[str]:
    yield first
    yield from rest


def _exhausted_message(config: AllocConfig, what: str) -> str:
    if config.max_length is not None:
        limit = f"max_length={config.max_length}"
    else:
        limit = f"the search limit of {SEARCH_LENGTH_LIMIT} characters"
    return f"alphabet {config.alphabet!r} is exhausted {what} within {limit}"


def _budget_message(config: AllocConfig, what: str) -> str:
    return (
        f"no identifier over alphabet {config.alphabet!r} was accepted {what} "
        f"among the first {SEARCH_CANDIDATE_LIMIT} candidates examined"
    )


__all__ = ["IdentifierAllocator"]
