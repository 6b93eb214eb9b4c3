"""
knn.py
======
k-nearest-neighbour classifier over a TypedTable.

    first_knn(point)  → k (distance, row) pairs, ranked by the comparison policy
    predict(point)    → label with the largest exp(-distance) vote
    evaluate(table)   → EvaluationReport over a held-out table
"""

from __future__ import annotations

from functools import cmp_to_key
from typing import NamedTuple, Optional, Sequence

import numpy as np

from mixedknn.config import DEFAULT_K, check_k
from mixedknn.distance import CloserFirst, Comparison, DistanceMeasure, MixedEuclidean
from mixedknn.errors import BoundsWarning, SchemaWarning, report
from mixedknn.evaluation import EvaluationReport
from mixedknn.table import TypedTable, Value


class Neighbor(NamedTuple):
    distance: float
    index: int


class KNN:
    """
    Distance-weighted k-nearest-neighbour classifier.

    Parameters
    ----------
    dataset : TypedTable
        Reference table with its label set. Normalized here unless it
        already is; the model owns it from now on. A table without a label
        is left unscaled.
    k : int, default=DEFAULT_K
        Number of neighbours voting on each prediction. Must be a positive
        integer; ``k`` larger than the table is reported at search time.
    measure : DistanceMeasure, optional
        Defaults to MixedEuclidean.
    comparison : Comparison, optional
        Ranking policy for neighbours. Defaults to CloserFirst.
    """

    def __init__(
        self,
        dataset: TypedTable,
        k: int = DEFAULT_K,
        measure: Optional[DistanceMeasure] = None,
        comparison: Optional[Comparison] = None,
    ) -> None:
        self.k = check_k(k)
        self._dataset = dataset
        self._measure = measure if measure is not None else MixedEuclidean()
        self._comparison = comparison if comparison is not None else CloserFirst()
        if not dataset.label:
            # scaling now would lock in bounds for a label column chosen later
            report("label unset, searches will return no neighbours.", SchemaWarning)
        elif not dataset.normalized and len(dataset):
            dataset.normalize()

    @classmethod
    def from_csv(
        cls,
        source: str,
        label: str,
        k: int = DEFAULT_K,
        measure: Optional[DistanceMeasure] = None,
        comparison: Optional[Comparison] = None,
    ) -> "KNN":
        """Load ``source`` (path or URL), set ``label`` and build the model."""
        from mixedknn.io import load_table

        return cls(load_table(source, label=label), k, measure, comparison)

    @property
    def dataset(self) -> TypedTable:
        return self._dataset

    @property
    def measure(self) -> DistanceMeasure:
        return self._measure

    @property
    def comparison(self) -> Comparison:
        return self._comparison

    def set_measure(self, measure: DistanceMeasure) -> DistanceMeasure:
        """Swap the distance measure; returns the one it replaces."""
        previous, self._measure = self._measure, measure
        return previous

    # ════════════════════════════════════════════════════════════════════════
    # Neighbour search
    # ════════════════════════════════════════════════════════════════════════

    def first_knn(
        self,
        point: Sequence,
        comparison: Optional[Comparison] = None,
        normalized: bool = False,
    ) -> list[Neighbor]:
        """
        Rank every reference row against ``point`` and keep the best k.

        Parameters
        ----------
        point : sequence
            Raw query point in the table's column layout, with or without
            the label field.
        comparison : Comparison, optional
            Overrides the model's ranking policy for this call.
        normalized : bool, default=False
            True when ``point`` is already scaled, which skips renormalization.

        Returns
        -------
        list of Neighbor
            Exactly k pairs ordered by the policy. The sort is stable, so
            rows with equal scores keep their table order. [] when the label
            is unset, k exceeds the table or the point does not fit the schema.
        """
        table = self._dataset
        if not table.label:
            report("label unset, an empty neighbour list returned.", SchemaWarning)
            return []
        if self.k > len(table):
            report(
                f"k={self.k} exceeds the {len(table)} reference rows, "
                "an empty neighbour list returned.",
                BoundsWarning,
            )
            return []

        query = table.align(point)
        if not query:
            return []
        if not normalized:
            query = table.renormalize(query)

        scored = [
            Neighbor(float(self._measure(table, row, query)), index)
            for index, row in enumerate(table.rows())
        ]
        policy = comparison if comparison is not None else self._comparison
        scored.sort(key=cmp_to_key(lambda a, b: policy.compare(a.distance, b.distance)))
        return scored[: self.k]

    # ════════════════════════════════════════════════════════════════════════
    # Prediction
    # ════════════════════════════════════════════════════════════════════════

    def vote(self, neighbors: Sequence[Neighbor]) -> dict[Value, float]:
        """
        Accumulate normalized ``exp(-distance)`` weights per label.

        Labels appear in the order they are first reached while walking
        ``neighbors``.
        """
        if not neighbors:
            return {}
        distances = np.array([n.distance for n in neighbors], dtype=float)
        finite = distances[np.isfinite(distances)]
        if finite.size:
            # shifting by the minimum leaves the normalized weights unchanged
            weights = np.exp(-(distances - finite.min()))
        else:
            weights = np.ones_like(distances)
        weights = weights / weights.sum()

        label_index = self._dataset.label_index
        votes: dict[Value, float] = {}
        for neighbor, weight in zip(neighbors, weights):
            label = self._dataset.iterrow(neighbor.index)[label_index]
            votes[label] = votes.get(label, 0.0) + float(weight)
        return votes

    def predict(self, point: Sequence) -> Optional[Value]:
        """
        Label of ``point`` by distance-weighted vote of its k neighbours.

        On equal weight the label reached first (from the best-ranked
        neighbour down) wins. Returns None when no neighbours are found.
        """
        votes = self.vote(self.first_knn(point))
        if not votes:
            return None
        return max(votes, key=votes.get)

    # ════════════════════════════════════════════════════════════════════════
    # Evaluation
    # ════════════════════════════════════════════════════════════════════════

    def evaluate(self, test: TypedTable, verbose: bool = True) -> EvaluationReport:
        """
        Predict every row of ``test`` and tabulate against its true label.

        Parameters
        ----------
        test : TypedTable
            Raw (not normalized) rows laid out like the reference table,
            label included.
        verbose : bool, default=True
            Print the micro precision / recall / accuracy block.

        Returns
        -------
        EvaluationReport
            ``report.matrix[actual][predicted]`` holds the counts.
        """
        label = self._dataset.label
        if not label:
            report("label unset, an empty report returned.", SchemaWarning)
            return EvaluationReport()
        if not test.has_column(label):
            report(f"test table has no `{label}` column, an empty report returned.",
                   SchemaWarning)
            return EvaluationReport()

        position = test.columns.index(label)
        actual, predicted = [], []
        for row in test.rows():
            actual.append(row[position])
            predicted.append(self.predict(row))

        result = EvaluationReport.from_predictions(actual, predicted)
        if verbose:
            print(f"[evaluate] Scored {result.total} rows with k={self.k}.")
            result.print_summary()
        return result
