"""Exception hierarchy for scope registration and identifier allocation."""

from __future__ import annotations


class NameScopeError(Exception):
    """Base class for every error raised by namescope.

    ``scope`` and ``declaration`` hold the offending handles (or None) so
    callers can report them without parsing the message.
    """

    def __init__(self, message: str, *, scope=None, declaration=None):
        super().__init__(message)
        self.scope = scope
        self.declaration = declaration

    def __str__(self) -> str:
        return self.args[0] if self.args else ""


class InvalidParent(NameScopeError, ValueError):
    """Raised when a scope is created under a parent the tree does not know."""


class DuplicateRoot(NameScopeError, ValueError):
    """Raised when a second root scope is requested for the same tree."""


class UnknownScope(NameScopeError, KeyError):
    """Raised when a scope handle does not belong to the tree."""


class UnknownDeclaration(NameScopeError, KeyError):
    """Raised when a declaration handle does not belong to the tree."""


class ScopeClosed(NameScopeError, RuntimeError):
    """Raised when a scope is modified or reallocated after allocation."""


class DuplicateName(NameScopeError, ValueError):
    """Raised when a strict tree sees the same input name twice in one scope."""


class ParentNotAllocated(NameScopeError, RuntimeError):
    """Raised when a scope is allocated before one of its ancestors."""


class ExhaustedAlphabet(NameScopeError, RuntimeError):
    """Raised when no valid, free identifier exists within the length cap."""


class NotYetAllocated(NameScopeError, LookupError):
    """Raised when an output identifier is requested before allocation."""


__all__ = [
    "NameScopeError",
    "InvalidParent",
    "DuplicateRoot",
    "UnknownScope",
    "UnknownDeclaration",
    "ScopeClosed",
    "DuplicateName",
    "ParentNotAllocated",
    "ExhaustedAlphabet",
    "NotYetAllocated",
]
