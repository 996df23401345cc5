"""
Pairwise sharing detection over completed scopes.

Two scopes share abstractly when one declared writing a variable the other
read or wrote, and share concretely when the same holds for physical
addresses. Comparing the two answers for every pair of scopes that ran on
different contexts exposes physical sharing nobody declared.

All set intersections are merge walks over key-sorted sequences, which keeps
each comparison linear in the size of the two scopes.
"""

import logging
from typing import Any, Callable, Iterator, List, Optional, Sequence, TypeVar

from ..core.data_models import (
    CompletedScope, PairResult, PhysicalAccess, SharedAccess, SharingClass,
)


logger = logging.getLogger(__name__)

T = TypeVar('T')


def intersects(first: Sequence[T], second: Sequence[T]) -> Optional[T]:
    """Return the smallest element common to two sorted sequences, or None."""
    i, j = 0, 0
    while i < len(first) and j < len(second):
        if first[i] < second[j]:
            i += 1
        elif second[j] < first[i]:
            j += 1
        else:
            return first[i]
    return None


def shares(read1: Sequence[T], write1: Sequence[T],
           read2: Sequence[T], write2: Sequence[T]) -> Optional[T]:
    """
    Find a witness of read/write or write/write overlap between two scopes.

    Checks read1/write2, write1/read2 and write1/write2 in that order and
    returns the first common element found.
    """
    for a, b in ((read1, write2), (write1, read2), (write1, write2)):
        witness = intersects(a, b)
        if witness is not None:
            return witness
    return None


def shared_accesses(first: Sequence[PhysicalAccess],
                    second: Sequence[PhysicalAccess]) -> List[SharedAccess]:
    """Pair up every address present in both address-sorted access lists."""
    shared = []
    i, j = 0, 0
    while i < len(first) and j < len(second):
        if first[i].address < second[j].address:
            i += 1
        elif second[j].address < first[i].address:
            j += 1
        else:
            shared.append(SharedAccess(first[i], second[j]))
            i += 1
            j += 1
    return shared


class SharingDetector:
    """Compares every cross-context pair in a frozen scope registry."""

    def __init__(self, scopes: Sequence[CompletedScope],
                 on_imprecise: Optional[Callable[[PairResult], Any]] = None):
        self.scopes = scopes
        self.on_imprecise = on_imprecise or self._warn_imprecise

    @staticmethod
    def _warn_imprecise(result: PairResult) -> None:
        logger.warning(
            "Abstract sharing without concrete sharing: %s and %s (%s)",
            result.first.name, result.second.name, result.abstract_witness,
        )

    def compare(self, s1: CompletedScope, s2: CompletedScope) -> PairResult:
        """Classify one pair of scopes."""
        abstract = shares(s1.abstract_read, s1.abstract_write,
                          s2.abstract_read, s2.abstract_write)
        concrete = shares(s1.read_addresses, s1.write_addresses,
                          s2.read_addresses, s2.write_addresses)
        result = PairResult(s1, s2, abstract, concrete)

        if result.classification is SharingClass.UNEXPECTED:
            for a, b in ((s1.concrete_read, s2.concrete_write),
                         (s1.concrete_write, s2.concrete_read),
                         (s1.concrete_write, s2.concrete_write)):
                result.shared.extend(shared_accesses(a, b))
        return result

    def pairs(self) -> Iterator[PairResult]:
        """
        Yield the comparison of every unordered pair from different contexts.

        Scopes on the same context ran one after the other and routinely
        touch per-CPU data, so they are never compared.
        """
        scopes = self.scopes
        for i, s1 in enumerate(scopes):
            for s2 in scopes[i + 1:]:
                if s1.origin_context == s2.origin_context:
                    continue
                result = self.compare(s1, s2)
                if result.classification is SharingClass.IMPRECISE:
                    self.on_imprecise(result)
                yield result
