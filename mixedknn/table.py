"""
table.py
========
Typed, column-major table with a min/max normalization contract.

A TypedTable keeps one list of values per column, all in lock-step. Each
column is numeric or text; the first row appended decides which, and the
choice never changes afterwards. One column may be designated the label.

Normalization is a pluggable strategy (Normalizer). The default,
MinMaxNormalizer, scales every numeric feature column into [0, 1] and stores
the bounds it found under ``"<column> nmin"`` / ``"<column> nmax"`` so that
any later query point can be scaled the same way with ``renormalize()``.
"""

from __future__ import annotations

import math
import re
from abc import ABC, abstractmethod
from typing import Iterable, Iterator, Optional, Sequence, Union

import numpy as np
import pandas as pd

from mixedknn.config import NMAX_SUFFIX, NMIN_SUFFIX, NUMERIC_PATTERN, SPLIT_RATIO
from mixedknn.errors import BoundsWarning, SchemaWarning, report

Value = Union[float, str]

_NUMERIC_RE = re.compile(NUMERIC_PATTERN)


def looks_numeric(cell) -> bool:
    """True for int/float cells and for strings shaped like a number."""
    if isinstance(cell, bool):
        return False
    if isinstance(cell, (int, float, np.integer, np.floating)):
        return True
    return isinstance(cell, str) and bool(_NUMERIC_RE.match(cell))


def to_number(cell) -> Optional[float]:
    """
    ``cell`` as a finite float, or None.

    Strings must match NUMERIC_PATTERN, so "NaN", "inf" and "1e5" are refused
    even though ``float()`` would take them.
    """
    if not looks_numeric(cell):
        return None
    value = float(cell)
    return value if math.isfinite(value) else None


# ════════════════════════════════════════════════════════════════════════════
# Normalizers
# ════════════════════════════════════════════════════════════════════════════

class Normalizer(ABC):
    """Scales a whole table once, then scales single points the same way."""

    @abstractmethod
    def fit_transform(self, table: "TypedTable") -> None:
        """Record scaling parameters in ``table.params`` and rescale in place."""

    @abstractmethod
    def transform(self, table: "TypedTable", point: list) -> list:
        """Return ``point`` scaled with the parameters stored on ``table``."""


class MinMaxNormalizer(Normalizer):
    """
    Range transform onto [0, 1].

    ``v' = (v - min) / (max - min)`` per numeric feature column. A column whose
    values are all equal has no range and maps to 0.0.
    """

    def fit_transform(self, table: "TypedTable") -> None:
        for column in table.normalized_columns:
            values = np.asarray(table.column(column), dtype=float)
            lo, hi = float(values.min()), float(values.max())
            table.params[column + NMIN_SUFFIX] = lo
            table.params[column + NMAX_SUFFIX] = hi
            span = hi - lo
            scaled = (values - lo) / span if span else np.zeros_like(values)
            table.replace_column(column, scaled.tolist())

    def transform(self, table: "TypedTable", point: list) -> list:
        scaled = list(point)
        for i, column in enumerate(table.columns):
            key = column + NMIN_SUFFIX
            if key not in table.params or scaled[i] is None:
                continue
            lo = table.params[key]
            span = table.params[column + NMAX_SUFFIX] - lo
            scaled[i] = (float(scaled[i]) - lo) / span if span else 0.0
        return scaled


# ════════════════════════════════════════════════════════════════════════════
# TypedTable
# ════════════════════════════════════════════════════════════════════════════

class TypedTable:
    """
    Column-major table of numeric and text values.

    Parameters
    ----------
    columns : sequence of str
        Column names in their fixed order.
    label : str, default=''
        Name of the label column; '' leaves it unset.
    normalizer : Normalizer, optional
        Scaling strategy; defaults to MinMaxNormalizer.

    Notes
    -----
    Schema and bounds problems never raise. The offending call emits a
    SchemaWarning or BoundsWarning and returns a neutral value.
    """

    def __init__(
        self,
        columns: Sequence[str] = (),
        label: str = "",
        normalizer: Optional[Normalizer] = None,
    ) -> None:
        self._columns: list[str] = list(columns)
        self._data: dict[str, list[Value]] = {c: [] for c in self._columns}
        self._numeric: dict[str, bool] = {}
        self._n_rows = 0
        self._label = ""
        self._normalized = False
        self._normalizer = normalizer if normalizer is not None else MinMaxNormalizer()
        self.params: dict[str, float] = {}
        if label:
            self.set_label(label)

    @classmethod
    def from_rows(
        cls,
        columns: Sequence[str],
        rows: Iterable[Sequence],
        label: str = "",
        normalizer: Optional[Normalizer] = None,
    ) -> "TypedTable":
        """Bulk-load ``rows``; the first row fixes every column's type."""
        table = cls(columns, normalizer=normalizer)
        for row in rows:
            table.push_back(row)
        if label:
            table.set_label(label)
        return table

    # ── Schema ──────────────────────────────────────────────────────────────

    @property
    def columns(self) -> list[str]:
        return list(self._columns)

    @property
    def label(self) -> str:
        return self._label

    @property
    def label_index(self) -> Optional[int]:
        return self._columns.index(self._label) if self._label else None

    @property
    def numeric_columns(self) -> list[str]:
        return [c for c in self._columns if self._numeric.get(c, False)]

    @property
    def normalized_columns(self) -> list[str]:
        """Numeric columns other than the label."""
        return [c for c in self.numeric_columns if c != self._label]

    @property
    def normalized(self) -> bool:
        return self._normalized

    @property
    def n_rows(self) -> int:
        return self._n_rows

    def __len__(self) -> int:
        return self._n_rows

    def __repr__(self) -> str:
        return (
            f"TypedTable(columns={self._columns!r}, rows={self._n_rows}, "
            f"label={self._label!r}, normalized={self._normalized})"
        )

    def has_column(self, name: str) -> bool:
        return name in self._data

    def is_numeric(self, name: str) -> bool:
        return self._numeric.get(name, False)

    def set_label(self, name: str) -> bool:
        if not self.has_column(name):
            report(f"`{name}` not found, current label not changed.", SchemaWarning)
            return False
        self._label = name
        return True

    # ── Row / column access ─────────────────────────────────────────────────

    def column(self, name: str) -> list[Value]:
        if not self.has_column(name):
            report(f"failed, attribute `{name}` not found.", SchemaWarning)
            return []
        return list(self._data[name])

    __getitem__ = column

    def replace_column(self, name: str, values: Sequence[Value]) -> bool:
        """Swap a column's values wholesale; the length must not change."""
        if not self.has_column(name):
            report(f"failed, attribute `{name}` not found.", SchemaWarning)
            return False
        if len(values) != self._n_rows:
            report(
                f"column `{name}` needs {self._n_rows} values, got {len(values)}.",
                BoundsWarning,
            )
            return False
        self._data[name] = list(values)
        return True

    def iterrow(self, index: int) -> list[Value]:
        if not 0 <= index < self._n_rows:
            report(
                f"index {index} out of range [0, {self._n_rows}), empty data point returned.",
                BoundsWarning,
            )
            return []
        return [self._data[c][index] for c in self._columns]

    def rows(self) -> Iterator[list[Value]]:
        for index in range(self._n_rows):
            yield [self._data[c][index] for c in self._columns]

    def push_back(self, row: Sequence) -> bool:
        row = list(row)
        if len(row) != len(self._columns):
            report(
                f"row has {len(row)} fields, table has {len(self._columns)} columns.",
                BoundsWarning,
            )
            return False
        if not self._numeric:
            self._numeric = {c: looks_numeric(v) for c, v in zip(self._columns, row)}

        cells: list[Value] = []
        for column, cell in zip(self._columns, row):
            if not self._numeric[column]:
                cells.append(str(cell))
                continue
            value = to_number(cell)
            if value is None:
                report(
                    f"`{cell}` is not numeric but column `{column}` is, row rejected.",
                    SchemaWarning,
                )
                return False
            cells.append(value)

        for column, cell in zip(self._columns, cells):
            self._data[column].append(cell)
        self._n_rows += 1
        return True

    def remove(self, index: int) -> bool:
        if not 0 <= index < self._n_rows:
            report(f"index {index} out of range [0, {self._n_rows}).", BoundsWarning)
            return False
        for column in self._columns:
            del self._data[column][index]
        self._n_rows -= 1
        return True

    # ── Normalization ───────────────────────────────────────────────────────

    def normalize(self) -> bool:
        """
        Scale every numeric feature column in place with the normalizer.

        Runs once per table. A second call is refused: recomputing bounds from
        already scaled data would break ``renormalize()`` for raw points.
        """
        if self._normalized:
            report("table is already normalized, parameters left unchanged.", SchemaWarning)
            return False
        if self._n_rows == 0:
            report("cannot normalize a table with no rows.", SchemaWarning)
            return False
        self._normalizer.fit_transform(self)
        self._normalized = True
        return True

    def renormalize(self, point: Sequence) -> list:
        """
        Scale a raw point with the stored parameters.

        ``point`` follows the table's column layout; the label field may be
        omitted. Returns a new list and leaves ``point`` untouched.
        """
        if not self._normalized:
            report("table was never normalized, point returned unchanged.", SchemaWarning)
            return list(point)
        aligned = self.align(point)
        if not aligned:
            return []
        return self._normalizer.transform(self, aligned)

    def is_normalized(self, point: Sequence) -> bool:
        """True when every numeric field of ``point`` lies in [nmin, nmax]."""
        if not self._normalized:
            return False
        aligned = self.align(point)
        if not aligned:
            return False
        for i, column in enumerate(self._columns):
            key = column + NMIN_SUFFIX
            if key not in self.params or aligned[i] is None:
                continue
            if not self.params[key] <= aligned[i] <= self.params[column + NMAX_SUFFIX]:
                return False
        return True

    def align(self, point: Sequence) -> list:
        """
        Bring ``point`` onto the table's column layout.

        A point one field short of the schema is taken to omit the label and
        gets ``None`` at the label position. Numeric fields are coerced to
        float. Any other width, or a non-numeric value in a numeric column,
        yields [] with a diagnostic.
        """
        aligned = list(point)
        width = len(self._columns)
        if self._label and len(aligned) == width - 1:
            aligned.insert(self.label_index, None)
        elif len(aligned) != width:
            report(
                f"point has {len(aligned)} fields, expected {width}"
                + (f" or {width - 1} without `{self._label}`." if self._label else "."),
                BoundsWarning,
            )
            return []

        for i, column in enumerate(self._columns):
            cell = aligned[i]
            if cell is None or not self._numeric.get(column, False):
                continue
            value = to_number(cell)
            if value is None:
                report(f"`{cell}` is not numeric but column `{column}` is.", SchemaWarning)
                return []
            aligned[i] = value
        return aligned

    # ── Partitioning ────────────────────────────────────────────────────────

    def empty_like(self) -> "TypedTable":
        """A row-less table with this table's columns, types and label."""
        twin = TypedTable(self._columns, normalizer=type(self._normalizer)())
        twin._numeric = dict(self._numeric)
        twin._label = self._label
        return twin

    def split(
        self, ratio: float = SPLIT_RATIO, seed: Optional[int] = None
    ) -> Optional[tuple["TypedTable", "TypedTable"]]:
        """
        Random partition without replacement.

        Parameters
        ----------
        ratio : float, default=SPLIT_RATIO
            Share of rows sent to the first table; must lie in [0, 1].
        seed : int, optional
            Seed for the shuffle.

        Returns
        -------
        (first, second) : tuple of TypedTable
            ``floor(ratio * n)`` rows and the remainder, or None when the
            ratio is out of range. Neither output carries normalization
            parameters.
        """
        if not 0.0 <= ratio <= 1.0:
            report(f"ratio should be >= 0 and <= 1 (got {ratio}).", BoundsWarning)
            return None

        order = np.random.default_rng(seed).permutation(self._n_rows)
        cut = int(np.floor(ratio * self._n_rows))
        first, second = self.empty_like(), self.empty_like()
        for position, index in enumerate(order):
            target = first if position < cut else second
            target.push_back(self.iterrow(int(index)))
        return first, second

    # ── Views ───────────────────────────────────────────────────────────────

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({c: self._data[c] for c in self._columns}, columns=self._columns)
