"""
mixedknn
========
k-nearest-neighbour classification over tables that mix numeric and
categorical columns.
"""

__version__ = "0.1.0"

from mixedknn.distance import (
    CloserFirst,
    Comparison,
    DistanceMeasure,
    FartherFirst,
    JaccardDistance,
    MixedEuclidean,
    MixedManhattan,
)
from mixedknn.errors import (
    BoundsWarning,
    ConfigError,
    LoadWarning,
    MixedKNNError,
    MixedKNNWarning,
    SchemaWarning,
)
from mixedknn.evaluation import EvaluationReport, confusion_matrix
from mixedknn.io import load_table, print_table, save_table, scatter_plot
from mixedknn.knn import KNN, Neighbor
from mixedknn.table import MinMaxNormalizer, Normalizer, TypedTable

__all__ = [
    "KNN",
    "Neighbor",
    "TypedTable",
    "Normalizer",
    "MinMaxNormalizer",
    "DistanceMeasure",
    "MixedEuclidean",
    "MixedManhattan",
    "JaccardDistance",
    "Comparison",
    "CloserFirst",
    "FartherFirst",
    "EvaluationReport",
    "confusion_matrix",
    "load_table",
    "save_table",
    "print_table",
    "scatter_plot",
    "MixedKNNError",
    "ConfigError",
    "MixedKNNWarning",
    "SchemaWarning",
    "BoundsWarning",
    "LoadWarning",
]
