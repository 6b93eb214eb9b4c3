"""
evaluation.py
=============
Confusion matrix and pooled (micro) metrics.

The confusion matrix is a nested dict ``matrix[actual][predicted] -> count``.
EvaluationReport pools the one-vs-rest counts of every label with
scikit-learn's ``multilabel_confusion_matrix``:

    TP  sum of the diagonal
    FN  per actual label, row total minus its diagonal cell, summed
    FP  per predicted label, column total minus its diagonal cell, summed
    TN  per label, everything outside its row and column, summed

Precision, recall and accuracy come from ``sklearn.metrics`` as well.
``legacy_accuracy`` reproduces the accuracy figure older reports printed,
where TN was taken as ``total + TP``. It is not a standard metric and is kept
only so new runs can be compared against those reports.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Hashable, Iterable, Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from sklearn.metrics import (
    ConfusionMatrixDisplay,
    accuracy_score,
    multilabel_confusion_matrix,
    precision_score,
    recall_score,
)

ConfusionMatrix = dict[Hashable, dict[Hashable, int]]


def confusion_matrix(actual: Iterable, predicted: Iterable) -> ConfusionMatrix:
    """Count ``(actual, predicted)`` pairs into a nested dict."""
    matrix: ConfusionMatrix = {}
    for truth, guess in zip(actual, predicted):
        row = matrix.setdefault(truth, {})
        row[guess] = row.get(guess, 0) + 1
    return matrix


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def _percent(value: float) -> int:
    # half away from zero, as the old report did
    return int(math.floor(value * 100 + 0.5))


@dataclass
class EvaluationReport:
    matrix:    ConfusionMatrix = field(default_factory=dict)
    tp:        int = 0
    fp:        int = 0
    fn:        int = 0
    tn:        int = 0
    total:     int = 0
    precision: float = 0.0
    recall:    float = 0.0
    accuracy:  float = 0.0

    @classmethod
    def from_predictions(cls, actual: Iterable, predicted: Iterable) -> "EvaluationReport":
        """
        Score paired true and predicted labels.

        Labels are passed to scikit-learn as integer codes (their first-seen
        position), so a failed prediction (None) or a numeric label next to
        text labels never reaches sklearn as a mixed-type target.
        """
        actual, predicted = list(actual), list(predicted)
        matrix = confusion_matrix(actual, predicted)
        if not actual:
            return cls(matrix=matrix)

        codes = {label: code for code, label in enumerate(_labels(matrix))}
        y_true = [codes[label] for label in actual]
        y_pred = [codes[label] for label in predicted]
        every = list(codes.values())

        # [[TN, FP], [FN, TP]] pooled over one-vs-rest matrices
        (tn, fp), (fn, tp) = multilabel_confusion_matrix(y_true, y_pred, labels=every).sum(axis=0)
        return cls(
            matrix=matrix,
            tp=int(tp), fp=int(fp), fn=int(fn), tn=int(tn),
            total=len(actual),
            precision=float(precision_score(y_true, y_pred, labels=every,
                                            average="micro", zero_division=0)),
            recall=float(recall_score(y_true, y_pred, labels=every,
                                      average="micro", zero_division=0)),
            accuracy=float(accuracy_score(y_true, y_pred)),
        )

    @classmethod
    def from_matrix(cls, matrix: ConfusionMatrix) -> "EvaluationReport":
        actual, predicted = [], []
        for truth, row in matrix.items():
            for guess, count in row.items():
                actual.extend([truth] * count)
                predicted.extend([guess] * count)
        return cls.from_predictions(actual, predicted)

    @property
    def labels(self) -> list:
        """Actual and predicted labels in first-seen order."""
        return _labels(self.matrix)

    @property
    def legacy_accuracy(self) -> float:
        legacy_tn = self.total + self.tp
        return _ratio(self.tp + legacy_tn, self.tp + legacy_tn + self.fp + self.fn)

    def summary(self) -> dict[str, int]:
        """Metrics as rounded percentages."""
        return {
            "precision"      : _percent(self.precision),
            "recall"         : _percent(self.recall),
            "accuracy"       : _percent(self.accuracy),
            "legacy_accuracy": _percent(self.legacy_accuracy),
        }

    def to_array(self) -> np.ndarray:
        labels = self.labels
        return np.array(
            [[self.matrix.get(a, {}).get(p, 0) for p in labels] for a in labels],
            dtype=int,
        ).reshape(len(labels), len(labels))

    def to_frame(self) -> pd.DataFrame:
        labels = self.labels
        frame = pd.DataFrame(self.to_array(), index=labels, columns=labels)
        frame.index.name = "actual"
        frame.columns.name = "predicted"
        return frame

    def print_summary(self) -> None:
        metrics = self.summary()
        print(f"\nModel Micro-Precision : {metrics['precision']}%")
        print(f"Model Micro-Recall    : {metrics['recall']}%")
        print(f"Model Micro-Accuracy  : {metrics['accuracy']}%\n")


def _labels(matrix: ConfusionMatrix) -> list:
    seen: dict = {}
    for truth, row in matrix.items():
        seen.setdefault(truth, None)
        for guess in row:
            seen.setdefault(guess, None)
    return list(seen)


def plot_confusion_matrix(
    report: EvaluationReport,
    ax: Optional[plt.Axes] = None,
    title: str = "Confusion Matrix",
    cmap: str = "Blues",
) -> ConfusionMatrixDisplay:
    """Render ``report`` with scikit-learn's ConfusionMatrixDisplay."""
    if ax is None:
        _, ax = plt.subplots(figsize=(6, 5))
    display = ConfusionMatrixDisplay(
        confusion_matrix=report.to_array(),
        display_labels=[str(label) for label in report.labels],
    )
    display.plot(ax=ax, cmap=cmap, colorbar=True)
    ax.set_title(title, fontsize=12)
    return display
