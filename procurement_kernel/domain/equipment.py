"""
Equipment applicability value object.

Responsibility:
    Represents the set of fleet equipment a spare part fits: explicit
    equipment numbers plus free-text fleet descriptions.  Delimited text
    ("101-104, 110, GE 200, loader") exists only at the boundary; inside the
    kernel the value is a pair of frozensets.

Architecture position:
    Kernel > Domain -- pure value object, zero I/O.

Invariants enforced:
    - Numbers are de-duplicated integers; ranges are expanded on parse and
      recompressed into maximal consecutive runs on output.
    - Descriptions are upper-cased, stripped of punctuation and
      whitespace-collapsed, so "Loader" and "LOADER." are the same entry.
    - union() is commutative and idempotent.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from procurement_kernel.exceptions import ValidationError

# Widest numeric range one token may name
MAX_RANGE_SPAN = 10_000

_GE_WORD = re.compile(r"\b(ge|GE)\b")
_RANGE = re.compile(r"^(\d+)\s*-\s*(\d+)$")
_NUMBER = re.compile(r"^\d+$")
_NON_WORD = re.compile(r"[^a-zA-Z0-9\s]")
_SPACES = re.compile(r"\s+")


def expand_range(start: int, end: int) -> range:
    """Inclusive range; reversed bounds are accepted.

    Raises:
        ValidationError: If the range covers more than MAX_RANGE_SPAN numbers.
    """
    low, high = sorted((start, end))
    if high - low >= MAX_RANGE_SPAN:
        raise ValidationError(
            f"Equipment range {low}-{high} exceeds {MAX_RANGE_SPAN} numbers",
            field="equipment_number",
        )
    return range(low, high + 1)


def compress_numbers(numbers: Iterable[int]) -> list[str]:
    """
    Compress integers into sorted run tokens.

    >>> compress_numbers([5, 1, 2, 3, 9])
    ['1-3', '5', '9']
    """
    ordered = sorted(set(numbers))
    tokens: list[str] = []
    run_start: int | None = None
    prev: int | None = None
    for n in ordered:
        if prev is not None and n == prev + 1:
            prev = n
            continue
        if run_start is not None:
            tokens.append(_run_token(run_start, prev))
        run_start = prev = n
    if run_start is not None:
        tokens.append(_run_token(run_start, prev))
    return tokens


def _run_token(start: int, end: int | None) -> str:
    if end is None or end == start:
        return str(start)
    return f"{start}-{end}"


@dataclass(frozen=True)
class EquipmentApplicability:
    """Numbers and descriptions of the equipment a stock item applies to."""

    numbers: frozenset[int] = frozenset()
    descriptions: frozenset[str] = frozenset()

    @classmethod
    def parse(cls, raw: str | Iterable[str] | None) -> EquipmentApplicability:
        """Parse comma-delimited text (or an iterable of tokens)."""
        if raw is None:
            return cls()
        if isinstance(raw, str):
            raw_tokens: Iterable[str] = raw.split(",")
        else:
            raw_tokens = [part for token in raw for part in str(token).split(",")]

        numbers: set[int] = set()
        descriptions: set[str] = set()
        for token in raw_tokens:
            item = _GE_WORD.sub("", token).strip()
            if not item:
                continue
            if m := _RANGE.match(item):
                numbers.update(expand_range(int(m.group(1)), int(m.group(2))))
            elif _NUMBER.match(item):
                numbers.add(int(item))
            else:
                cleaned = _SPACES.sub(" ", _NON_WORD.sub("", item)).strip()
                if cleaned:
                    descriptions.add(cleaned.upper())
        return cls(frozenset(numbers), frozenset(descriptions))

    def union(self, other: EquipmentApplicability) -> EquipmentApplicability:
        return EquipmentApplicability(
            self.numbers | other.numbers,
            self.descriptions | other.descriptions,
        )

    def tokens(self) -> tuple[str, ...]:
        """Compressed number runs first, then descriptions, both sorted."""
        return tuple(compress_numbers(self.numbers)) + tuple(sorted(self.descriptions))

    def display(self) -> str:
        return ", ".join(self.tokens())

    def covers(self, equipment_number: int | str) -> bool:
        """True if the equipment number or description is in the set."""
        if isinstance(equipment_number, int) or str(equipment_number).isdigit():
            return int(equipment_number) in self.numbers
        return str(equipment_number).strip().upper() in self.descriptions

    def is_empty(self) -> bool:
        return not self.numbers and not self.descriptions

    def __str__(self) -> str:
        return self.display()
