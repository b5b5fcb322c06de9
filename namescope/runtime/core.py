"""Core data structures for scopes, declarations and allocation configs."""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Callable, Optional

from ..constants import (
    DECL_KINDS,
    DEFAULT_ALPHABET,
    DEFAULT_IDENTIFIER_PATTERN,
    DEFAULT_SUFFIX_ALPHABET,
)


@dataclass(frozen=True)
class DeclKind:
    """How an input variable was declared.

    ``tag`` is one of :data:`~namescope.constants.DECL_KINDS`. For ``named``
    the text is the input name; for ``prefixed`` it is the prefix (empty
    meaning no prefix); ``anonymous`` carries no text.
    """

    tag: str
    text: str = ""

    def __post_init__(self):
        if self.tag not in DECL_KINDS:
            raise ValueError(f"Unknown declaration kind: {self.tag!r}")
        if not isinstance(self.text, str):
            raise TypeError("Declaration text must be a string")
        if self.tag == "named" and not self.text:
            raise ValueError("Named declarations require a non-empty name")
        if self.tag == "anonymous" and self.text:
            raise ValueError("Anonymous declarations carry no text")

    @classmethod
    def named(cls, name: str) -> "DeclKind":
        return cls("named", name)

    @classmethod
    def anonymous(cls) -> "DeclKind":
        return cls("anonymous")

    @classmethod
    def prefixed(cls, prefix: str) -> "DeclKind":
        return cls("prefixed", prefix)

    @property
    def is_named(self) -> bool:
        return self.tag == "named"

    def to_dict(self):
        return {"tag": self.tag, "text": self.text}

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise TypeError("Declaration kind must be built from a mapping")
        return cls(data.get("tag", ""), data.get("text") or "")

    def __str__(self) -> str:
        if self.tag == "named":
            return self.text
        if self.tag == "prefixed" and self.text:
            return f"{self.text}*"
        return "?"


@dataclass
class Declaration:
    """One input variable registered in a scope."""

    id: int
    scope: int
    kind: DeclKind
    order: int
    output: Optional[str] = None

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        out = self.output if self.output is not None else "…"
        return f"Decl#{self.id}({self.kind}@{self.scope}->{out})"


@dataclass
class ScopeRecord:
    """Arena entry for one scope of a :class:`~namescope.runtime.tree.ScopeTree`."""

    id: int
    parent: Optional[int]
    depth: int
    label: Optional[str] = None
    children: list = field(default_factory=list)
    declarations: list = field(default_factory=list)
    allocated: bool = False

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return f"Scope({self.label or self.id})"


class IdentifierRule:
    """Validity predicate from a regex ``pattern`` plus ``reserved`` words."""

    def __init__(self, pattern: str = DEFAULT_IDENTIFIER_PATTERN, reserved=()):
        self.pattern = pattern
        self.reserved = frozenset(reserved)
        self._regex = re.compile(pattern)

    def __call__(self, candidate: str) -> bool:
        if candidate in self.reserved:
            return False
        return self._regex.fullmatch(candidate) is not None

    def __eq__(self, other):
        if not isinstance(other, IdentifierRule):
            return NotImplemented
        return self.pattern == other.pattern and self.reserved == other.reserved

    def __hash__(self):
        return hash((self.pattern, self.reserved))

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return f"IdentifierRule({self.pattern!r}, reserved={sorted(self.reserved)})"

    def to_dict(self):
        return {
            "kind": "rule",
            "pattern": self.pattern,
            "reserved": sorted(self.reserved),
        }


def _check_symbols(name: str, symbols: str) -> None:
    if not isinstance(symbols, str):
        raise TypeError(f"{name} must be a string of symbols")
    if not symbols:
        raise ValueError(f"{name} must not be empty")
    if len(set(symbols)) != len(symbols):
        raise ValueError(f"{name} contains repeated symbols: {symbols!r}")


@dataclass(frozen=True)
class AllocConfig:
    """Options steering candidate generation for one allocation call."""

    alphabet: str = DEFAULT_ALPHABET
    is_valid_identifier: Callable[[str], bool] = field(default_factory=IdentifierRule)
    max_length: Optional[int] = None
    suffix_alphabet: Optional[str] = None

    def __post_init__(self):
        _check_symbols("alphabet", self.alphabet)
        if self.suffix_alphabet is None:
            # Digit suffixes only come with the stock alphabet; a custom
            # alphabet suffixes with its own symbols.
            suffixes = (
                DEFAULT_SUFFIX_ALPHABET
                if self.alphabet == DEFAULT_ALPHABET
                else self.alphabet
            )
            object.__setattr__(self, "suffix_alphabet", suffixes)
        _check_symbols("suffix_alphabet", self.suffix_alphabet)
        stray = sorted(set(self.suffix_alphabet) - set(self.alphabet))
        if stray:
            raise ValueError(
                f"suffix_alphabet uses symbols outside the alphabet: {''.join(stray)!r}"
            )
        if not callable(self.is_valid_identifier):
            raise TypeError("is_valid_identifier must be callable")
        if self.max_length is not None:
            if isinstance(self.max_length, bool) or not isinstance(self.max_length, int):
                raise TypeError("max_length must be an integer or None")
            if self.max_length < 1:
                raise ValueError(f"max_length must be positive, got {self.max_length}")

    def to_dict(self):
        validator = self.is_valid_identifier
        if isinstance(validator, IdentifierRule):
            rule = validator.to_dict()
        else:
            rule = {"kind": "custom", "name": getattr(validator, "__name__", repr(validator))}
        return {
            "alphabet": self.alphabet,
            "suffix_alphabet": self.suffix_alphabet,
            "max_length": self.max_length,
            "identifier_rule": rule,
        }

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise TypeError("Allocation config must be built from a mapping")
        rule = data.get("identifier_rule") or {"kind": "rule"}
        if rule.get("kind") != "rule":
            raise ValueError(
                "Config uses a custom identifier predicate that cannot be rebuilt"
            )
        validator = IdentifierRule(
            rule.get("pattern") or DEFAULT_IDENTIFIER_PATTERN,
            rule.get("reserved") or (),
        )
        return cls(
            alphabet=data.get("alphabet") or DEFAULT_ALPHABET,
            is_valid_identifier=validator,
            max_length=data.get("max_length"),
            suffix_alphabet=data.get("suffix_alphabet") or None,
        )


__all__ = [
    "AllocConfig",
    "DeclKind",
    "Declaration",
    "IdentifierRule",
    "ScopeRecord",
]
