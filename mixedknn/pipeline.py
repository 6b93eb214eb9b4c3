"""
pipeline.py
===========
Mixed-Type KNN — Staged Pipeline
================================

End-to-end run of the classifier on any CSV table with one label column.

Pipeline Stages
---------------
1. load_table(source)     → typed table from a path or URL
2. table.split(ratio)     → reference (train) / held-out (test) tables
3. KNN(train, k, measure) → normalize the reference table, build the model
4. model.evaluate(test)   → confusion matrix + micro metrics
5. tune_k(train, test)    → optional sweep over k

Usage
-----
    python -m mixedknn data/iris.csv --label species -k 3
    python -m mixedknn data/iris.csv --label species --tune
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

import matplotlib.pyplot as plt
import pandas as pd

from mixedknn.config import K_GRID, SPLIT_RATIO, RANDOM_STATE, DEFAULT_K, MEASURES, PipelineConfig
from mixedknn.distance import DistanceMeasure, MixedEuclidean, MixedManhattan
from mixedknn.errors import ConfigError
from mixedknn.evaluation import plot_confusion_matrix
from mixedknn.io import load_table
from mixedknn.knn import KNN
from mixedknn.table import TypedTable

_MEASURES: dict[str, type[DistanceMeasure]] = {
    "euclidean": MixedEuclidean,
    "manhattan": MixedManhattan,
}


def build_measure(name: str) -> DistanceMeasure:
    if name not in _MEASURES:
        raise ConfigError(f"unknown measure {name!r}; expected one of {MEASURES}")
    return _MEASURES[name]()


# ════════════════════════════════════════════════════════════════════════════
# Orchestrator — run()
# ════════════════════════════════════════════════════════════════════════════

def run(config: PipelineConfig, verbose: bool = True, plot: bool = False) -> dict:
    """
    Load, split, train and evaluate in one pass.

        load_table(source, label)
            └─► table.split(ratio, seed)
                    ├─► KNN(train, k, measure)
                    └─► model.evaluate(test)

    Parameters
    ----------
    config : PipelineConfig
    verbose : bool, default=True
        Print stage banners and a few sample predictions.
    plot : bool, default=False
        Show the confusion matrix with matplotlib.

    Returns
    -------
    dict
        'table'  : TypedTable — everything that was loaded
        'train'  : TypedTable — reference rows (normalized by the model)
        'test'   : TypedTable — held-out rows (raw)
        'model'  : KNN
        'report' : EvaluationReport
        Empty when loading or splitting failed.
    """
    say = print if verbose else (lambda *args, **kwargs: None)

    say("── Stage 1: Load ──────────────────────────────────────")
    table = load_table(config.source, label=config.label, verbose=verbose)
    if len(table) == 0 or table.label != config.label:
        say("[run] Nothing to train on, stopping.")
        return {}

    say("── Stage 2: Train/Test Split ──────────────────────────")
    parts = table.split(config.ratio, seed=config.seed)
    if parts is None:
        return {}
    train, test = parts
    say(f"  Train : {len(train)} rows")
    say(f"  Test  : {len(test)} rows\n")

    say("── Stage 3: Build Model ───────────────────────────────")
    model = KNN(train, k=config.k, measure=build_measure(config.measure))
    say("[run] KNN ready.")
    say(f"  k       : {model.k}")
    say(f"  measure : {model.measure!r}")
    say(f"  rows    : {len(model.dataset)}\n")

    say("── Stage 4: Evaluation ────────────────────────────────")
    report = model.evaluate(test, verbose=verbose)
    if verbose:
        print("Confusion Matrix:")
        print(report.to_frame().to_string())
        _print_samples(model, test)

    if plot:
        plot_confusion_matrix(report, title=f"Confusion Matrix — KNN (k={model.k})")
        plt.tight_layout()
        plt.show()

    return {"table": table, "train": train, "test": test, "model": model, "report": report}


def _print_samples(model: KNN, test: TypedTable, limit: int = 10) -> None:
    position = test.columns.index(test.label)
    print(f"\n── Sample Predictions (first {limit}) ─────────────────")
    for i, row in enumerate(test.rows()):
        if i == limit:
            break
        truth, guess = row[position], model.predict(row)
        match = "✓" if truth == guess else "✗"
        print(f"  Sample {i + 1:02d}: true={truth!s:<12s}  pred={guess!s:<12s}  {match}")


# ════════════════════════════════════════════════════════════════════════════
# k sweep
# ════════════════════════════════════════════════════════════════════════════

def tune_k(
    train: TypedTable,
    test: TypedTable,
    k_values: Sequence[int] = K_GRID,
    measure: Optional[DistanceMeasure] = None,
    verbose: bool = False,
) -> pd.DataFrame:
    """
    Evaluate one model per k on the same split.

    Small k → low bias / high variance; large k → the reverse. Values of k
    larger than the reference table are skipped.

    Returns
    -------
    pd.DataFrame
        Columns k, precision, recall, accuracy, legacy_accuracy; ranked by
        accuracy (ties keep the smaller k first).

    Notes
    -----
    Every model shares ``train``. The first one normalizes it in place when
    it is not normalized yet, so pass a table the models may own; ``test``
    stays raw.
    """
    records = []
    for k in k_values:
        if k > len(train):
            if verbose:
                print(f"[tune_k] k={k} exceeds {len(train)} reference rows, skipped.")
            continue
        model = KNN(train, k=k, measure=measure)
        report = model.evaluate(test, verbose=False)
        records.append({
            "k"              : k,
            "precision"      : report.precision,
            "recall"         : report.recall,
            "accuracy"       : report.accuracy,
            "legacy_accuracy": report.legacy_accuracy,
        })
        if verbose:
            print(f"[tune_k] k={k:<3d} accuracy={report.accuracy:.4f}")

    results = pd.DataFrame(
        records, columns=["k", "precision", "recall", "accuracy", "legacy_accuracy"]
    )
    return results.sort_values(
        ["accuracy", "k"], ascending=[False, True], kind="stable"
    ).reset_index(drop=True)


# ════════════════════════════════════════════════════════════════════════════
# Entry point
# ════════════════════════════════════════════════════════════════════════════

def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mixedknn",
        description="Train and evaluate a mixed-type KNN classifier on a CSV table.",
    )
    parser.add_argument("source", help="CSV path or http(s) URL.")
    parser.add_argument("--label", required=True, help="Name of the label column.")
    parser.add_argument("-k", type=int, default=DEFAULT_K,
                        help=f"Number of neighbours (default: {DEFAULT_K}).")
    parser.add_argument("--ratio", type=float, default=SPLIT_RATIO,
                        help=f"Share of rows used for training (default: {SPLIT_RATIO}).")
    parser.add_argument("--seed", type=int, default=RANDOM_STATE,
                        help=f"Shuffle seed (default: {RANDOM_STATE}).")
    parser.add_argument("--measure", choices=MEASURES, default="euclidean",
                        help="Distance measure (default: euclidean).")
    parser.add_argument("--tune", action="store_true", help="Sweep k over K_GRID afterwards.")
    parser.add_argument("--plot", action="store_true", help="Show the confusion matrix.")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _parser()
    args = parser.parse_args(argv)
    try:
        config = PipelineConfig(
            source=args.source, label=args.label, k=args.k,
            ratio=args.ratio, seed=args.seed, measure=args.measure,
        )
    except ConfigError as exc:
        parser.error(str(exc))

    print("╔══════════════════════════════════════════════════════╗")
    print("║   Mixed-Type KNN — Pipeline Run                     ║")
    print("╚══════════════════════════════════════════════════════╝\n")
    results = run(config, plot=args.plot)
    if not results:
        return 1

    if args.tune:
        print("\n── Stage 5: k Sweep ───────────────────────────────────")
        ranked = tune_k(
            results["train"], results["test"],
            measure=build_measure(config.measure), verbose=True,
        )
        print("\nRanked by accuracy:")
        print(ranked.round(4).to_string(index=False))

    print("╔══════════════════════════════════════════════════════╗")
    print("║   Pipeline complete.                                 ║")
    print("╚══════════════════════════════════════════════════════╝")
    return 0


if __name__ == "__main__":
    sys.exit(main())
