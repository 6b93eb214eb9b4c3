"""
config.py
=========
Module-wide constants and the run configuration for the staged pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass

from mixedknn.errors import ConfigError

# ── Global constants ─────────────────────────────────────────────────────────
RANDOM_STATE: int   = 42       # seed for reproducible splits
SPLIT_RATIO:  float = 0.75     # 75 / 25 train-test split
DEFAULT_K:    int   = 1

# Candidate k values swept by tune_k()
K_GRID: list[int] = [1, 3, 5, 7, 9]

# A cell is numeric when it matches this pattern (sign, digits, optional point)
NUMERIC_PATTERN: str = r"^[-+]?(\d+\.?\d*|\.\d+)$"

# Suffixes of the normalization parameter keys, e.g. "sepal_length nmin"
NMIN_SUFFIX: str = " nmin"
NMAX_SUFFIX: str = " nmax"

MEASURES: tuple[str, ...] = ("euclidean", "manhattan")


def check_k(k) -> int:
    """Return ``k`` when it is a positive integer, else raise ConfigError."""
    if isinstance(k, bool) or not isinstance(k, int) or k < 1:
        raise ConfigError(f"k must be a positive integer (got {k!r})")
    return k


@dataclass(frozen=True)
class PipelineConfig:
    """
    Settings for one end-to-end pipeline run.

    Parameters
    ----------
    source : str
        Path or http(s) URL of the CSV table.
    label : str
        Name of the label column.
    k : int, default=DEFAULT_K
        Neighbours voting on each prediction.
    ratio : float, default=SPLIT_RATIO
        Share of rows kept as the reference (training) table.
    seed : int or None, default=RANDOM_STATE
        Seed for the train/test shuffle; None draws a fresh one.
    measure : str, default='euclidean'
        One of MEASURES.
    """

    source:  str
    label:   str
    k:       int = DEFAULT_K
    ratio:   float = SPLIT_RATIO
    seed:    int | None = RANDOM_STATE
    measure: str = "euclidean"

    def __post_init__(self) -> None:
        check_k(self.k)
        if not 0.0 <= self.ratio <= 1.0:
            raise ConfigError(f"ratio must lie in [0, 1] (got {self.ratio})")
        if self.measure not in MEASURES:
            raise ConfigError(
                f"unknown measure {self.measure!r}; expected one of {MEASURES}"
            )
        if not self.label:
            raise ConfigError("label column name must not be empty")
