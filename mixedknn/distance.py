"""
distance.py
===========
Pluggable distance measures and neighbour ordering policies.

A DistanceMeasure is called as ``measure(table, a, b)`` with two points laid
out like ``table``; either point may omit the label field. Every built-in
measure first runs both points through ``table.align()``, so the label
position is handled in exactly one place.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections import Counter
from typing import Optional, Sequence

from mixedknn.errors import SchemaWarning, report
from mixedknn.table import TypedTable


class DistanceMeasure(ABC):
    """Non-negative dissimilarity between two points of a table."""

    # Built-ins are symmetric; asymmetric subclasses must set this to False.
    symmetric: bool = True

    @abstractmethod
    def __call__(self, table: TypedTable, a: Sequence, b: Sequence) -> float:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class MixedMeasure(DistanceMeasure):
    """
    Walk the columns in table order and skip the label.

    Text columns add 1 when the two values differ and 0 when they match
    (overlap penalty). Numeric columns add ``numeric_term(x, y)``; the sum is
    passed through ``finish``.
    """

    @abstractmethod
    def numeric_term(self, x: float, y: float) -> float:
        ...

    def finish(self, total: float) -> float:
        return total

    def __call__(self, table: TypedTable, a: Sequence, b: Sequence) -> float:
        a, b = table.align(a), table.align(b)
        if not a or not b:
            return math.inf

        label = table.label
        total = 0.0
        for i, column in enumerate(table.columns):
            if column == label:
                continue
            if table.is_numeric(column):
                total += self.numeric_term(a[i], b[i])
            elif a[i] != b[i]:
                total += 1.0
        return self.finish(total)


class MixedEuclidean(MixedMeasure):
    """Euclidean on numeric columns, overlap on text columns (the default)."""

    def numeric_term(self, x: float, y: float) -> float:
        return (x - y) ** 2

    def finish(self, total: float) -> float:
        return math.sqrt(total)


class MixedManhattan(MixedMeasure):
    """City-block on numeric columns, overlap on text columns."""

    def numeric_term(self, x: float, y: float) -> float:
        return abs(x - y)


class JaccardDistance(DistanceMeasure):
    """
    ``1 - |A ∩ B| / |A ∪ B|`` over the character multisets of one text column.

    Suited to short tokens such as first names, where shared letters say more
    than exact equality.

    Parameters
    ----------
    column : str, optional
        Text column to compare. Defaults to the first text column that is not
        the label.
    """

    def __init__(self, column: Optional[str] = None) -> None:
        self.column = column

    def __repr__(self) -> str:
        return f"JaccardDistance(column={self.column!r})"

    def _resolve(self, table: TypedTable) -> Optional[str]:
        if self.column is not None:
            return self.column if table.has_column(self.column) else None
        for column in table.columns:
            if column != table.label and not table.is_numeric(column):
                return column
        return None

    def __call__(self, table: TypedTable, a: Sequence, b: Sequence) -> float:
        column = self._resolve(table)
        if column is None:
            report(f"no text column `{self.column or '?'}` to compare.", SchemaWarning)
            return math.inf
        a, b = table.align(a), table.align(b)
        if not a or not b:
            return math.inf

        i = table.columns.index(column)
        left, right = Counter(str(a[i])), Counter(str(b[i]))
        shared = sum((left & right).values())
        union = sum(left.values()) + sum(right.values()) - shared
        return 1.0 - shared / union if union else 0.0


# ════════════════════════════════════════════════════════════════════════════
# Ordering policies
# ════════════════════════════════════════════════════════════════════════════

class Comparison(ABC):
    """Decides which of two scores ranks first."""

    @abstractmethod
    def precedes(self, a: float, b: float) -> bool:
        ...

    def compare(self, a: float, b: float) -> int:
        if self.precedes(a, b):
            return -1
        if self.precedes(b, a):
            return 1
        return 0


class CloserFirst(Comparison):
    """Ascending distance (the default)."""

    def precedes(self, a: float, b: float) -> bool:
        return a < b


class FartherFirst(Comparison):
    """Descending score, for measures where larger means more alike."""

    def precedes(self, a: float, b: float) -> bool:
        return a > b
