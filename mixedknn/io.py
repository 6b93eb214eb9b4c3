"""
io.py
=====
Table collaborators: CSV in and out, console printing, scatter plots.

CSV conventions
---------------
- first line holds the column names;
- the first data line fixes each column's type (numeric when the cell
  matches NUMERIC_PATTERN, text otherwise);
- trailing carriage returns are stripped;
- no quoting or escaping: every comma separates two fields.
"""

from __future__ import annotations

import csv
import warnings
from io import StringIO
from typing import Optional

import matplotlib.pyplot as plt
import pandas as pd
import requests

from mixedknn.errors import LoadWarning, SchemaWarning, report
from mixedknn.table import TypedTable


def _read_source(source: str) -> str:
    if source.startswith(("http://", "https://")):
        response = requests.get(source, timeout=30)
        response.raise_for_status()
        return response.text
    with open(source, encoding="utf-8", newline="") as handle:
        return handle.read()


def load_table(source: str, label: str = "", verbose: bool = False) -> TypedTable:
    """
    Read a CSV table from a local path or an http(s) URL.

    Parameters
    ----------
    source : str
        File path, or URL fetched with `requests`.
    label : str, default=''
        Label column to set once the table is loaded.
    verbose : bool, default=False
        Print a one-line load summary.

    Returns
    -------
    TypedTable
        The populated table, or an empty schema-less table (with a
        LoadWarning) when the source cannot be read or parsed.
    """
    try:
        text = _read_source(source)
    except (OSError, requests.RequestException) as exc:
        report(f"{source} : No such file or the path is incorrect ({exc}).", LoadWarning)
        return TypedTable()

    try:
        # lines wider than the header must not be folded into an index
        with warnings.catch_warnings():
            warnings.simplefilter("error", pd.errors.ParserWarning)
            frame = pd.read_csv(
                StringIO(text),
                dtype=str,
                keep_default_na=False,
                quoting=csv.QUOTE_NONE,
                index_col=False,
            )
    except (pd.errors.EmptyDataError, pd.errors.ParserError, pd.errors.ParserWarning) as exc:
        report(f"{source} : could not be parsed ({exc}).", LoadWarning)
        return TypedTable()

    columns = [str(c).rstrip("\r") for c in frame.columns]
    # short lines come back padded with NaN
    rows = (
        [cell.rstrip("\r") if isinstance(cell, str) else "" for cell in record]
        for record in frame.itertuples(index=False, name=None)
    )
    table = TypedTable.from_rows(columns, rows, label=label)

    if verbose:
        print(f"[load_table] Loaded {len(table)} rows, {len(columns)} columns from {source}")
        print(f"  numeric : {table.numeric_columns}")
        print(f"  label   : {table.label or '(unset)'}")
    return table


def _format(value) -> str:
    if isinstance(value, float):
        return f"{value:.15g}"
    return str(value)


def save_table(table: TypedTable, path: str) -> None:
    """Write the header and every row, comma separated, without escaping."""
    with open(path, "w", encoding="utf-8", newline="") as handle:
        handle.write(",".join(table.columns) + "\n")
        for row in table.rows():
            handle.write(",".join(_format(v) for v in row) + "\n")


def print_table(table: TypedTable) -> None:
    if not table.columns or len(table) == 0:
        print("Table is empty.")
        return
    print(table.to_frame().to_string(index=False))
    print(f"\n\nTotal printed records: {len(table)}")


def scatter_plot(
    table: TypedTable,
    x: str,
    y: str,
    target: Optional[tuple[float, float]] = None,
    ax: Optional[plt.Axes] = None,
    title: Optional[str] = None,
) -> Optional[plt.Axes]:
    """
    Scatter two numeric columns, one colour per label value.

    Parameters
    ----------
    table : TypedTable
    x, y : str
        Numeric columns for the horizontal and vertical axes.
    target : (float, float), optional
        Extra point drawn as a black star, e.g. a query being classified.
    ax : matplotlib Axes, optional
        Axes to draw on; a new figure is created otherwise.
    title : str, optional

    Returns
    -------
    matplotlib Axes, or None when a column is missing or not numeric.
    """
    for column in (x, y):
        if not table.has_column(column):
            report(f"failed, attribute `{column}` not found.", SchemaWarning)
            return None
        if not table.is_numeric(column):
            report(f"`{column}` is not a numerical type.", SchemaWarning)
            return None

    if ax is None:
        _, ax = plt.subplots(figsize=(6, 5))

    frame = table.to_frame()
    if table.label:
        for value, group in frame.groupby(table.label, sort=False):
            ax.scatter(group[x], group[y], s=20, label=str(value))
    else:
        ax.scatter(frame[x], frame[y], s=20)

    if target is not None:
        ax.scatter([target[0]], [target[1]], marker="*", s=200, c="black", label="target")

    ax.set_xlabel(x)
    ax.set_ylabel(y)
    ax.set_title(title or f"{y} vs {x}", fontsize=12)
    if table.label or target is not None:
        ax.legend()
    return ax
