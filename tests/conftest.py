import matplotlib

matplotlib.use("Agg")

import pytest

from mixedknn.table import TypedTable

TOY_ROWS = [(0, 0, "A"), (1, 1, "A"), (10, 10, "B")]


@pytest.fixture
def toy_table():
    """Two numeric features and a text label."""
    return TypedTable.from_rows(["x", "y", "label"], TOY_ROWS, label="label")


@pytest.fixture
def mixed_table():
    """Label sits between the features; one text feature."""
    rows = [
        (1.0, "A", 2.0, "red"),
        (4.0, "B", 6.0, "blue"),
        (2.0, "A", 3.0, "red"),
        (7.0, "B", 9.0, "blue"),
    ]
    return TypedTable.from_rows(["x", "label", "y", "color"], rows, label="label")


def write_clusters(path, n_per_class=20):
    """Two well-separated clusters plus a text feature that agrees with them."""
    lines = ["width,height,shade,kind"]
    for i in range(n_per_class):
        lines.append(f"{1 + 0.05 * i:.2f},{2 + 0.05 * i:.2f},light,small")
        lines.append(f"{20 + 0.05 * i:.2f},{30 + 0.05 * i:.2f},dark,large")
    path.write_text("\r\n".join(lines) + "\r\n")
    return path


@pytest.fixture
def clusters_csv(tmp_path):
    return write_clusters(tmp_path / "clusters.csv")
