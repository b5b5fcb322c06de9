"""Candidate identifier generation.

Strings over an alphabet are numbered shortest first and, within one length,
in alphabet order (the first symbol of the alphabet sorts lowest). A rank in
that numbering is the generation cursor the allocator keeps per scope, so a
search can resume where an ancestor's search stopped instead of starting over
at the shortest strings.
"""

from __future__ import annotations

from typing import Iterator, Optional


class CandidateSequence:
    """Random-access view of every string over ``alphabet`` in search order."""

    def __init__(self, alphabet: str):
        if not alphabet:
            raise ValueError("Cannot enumerate candidates over an empty alphabet")
        self.alphabet = alphabet
        self.base = len(alphabet)
        self._index = {symbol: i for i, symbol in enumerate(alphabet)}

    def first_rank(self, length: int) -> int:
        """Rank of the first string of ``length`` symbols (length >= 1)."""

        if length < 1:
            raise ValueError("Candidate length must be at least 1")
        if self.base == 1:
            return length - 1
        return (self.base ** length - self.base) // (self.base - 1)

    def length_at(self, rank: int) -> int:
        length = 1
        while self.first_rank(length + 1) <= rank:
            length += 1
        return length

    def __getitem__(self, rank: int) -> str:
        if rank < 0:
            raise IndexError("Candidate ranks start at 0")
        length = self.length_at(rank)
        offset = rank - self.first_rank(length)
        symbols = []
        for _ in range(length):
            offset, digit = divmod(offset, self.base)
            symbols.append(self.alphabet[digit])
        return "".join(reversed(symbols))

    def rank(self, text: str) -> int:
        """Inverse of indexing: the rank of ``text`` in this sequence."""

        if not text:
            raise ValueError("The empty string has no rank")
        offset = 0
        for symbol in text:
            try:
                digit = self._index[symbol]
            except KeyError:
                raise ValueError(
                    f"Symbol {symbol!r} is not in the alphabet {self.alphabet!r}"
                ) from None
            offset = offset * self.base + digit
        return self.first_rank(len(text)) + offset

    def iter_from(self, rank: int = 0, max_length: Optional[int] = None) -> Iterator[tuple[int, str]]:
        """Yield ``(rank, candidate)`` pairs from ``rank`` up to ``max_length``."""

        while True:
            candidate = self[rank]
            if max_length is not None and len(candidate) > max_length:
                return
            yield rank, candidate
            rank += 1


def iter_suffixed(
    base: str, suffixes: CandidateSequence, max_length: Optional[int] = None
) -> Iterator[str]:
    """Yield ``base + suffix`` for every suffix in search order."""

    limit = None if max_length is None else max_length - len(base)
    if limit is not None and limit < 1:
        return
    for _, suffix in suffixes.iter_from(0, limit):
        yield base + suffix


__all__ = ["CandidateSequence", "iter_suffixed"]
