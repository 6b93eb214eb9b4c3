import matplotlib.pyplot as plt
import numpy as np
import pytest
from sklearn.metrics import ConfusionMatrixDisplay, precision_score, recall_score

from mixedknn.errors import SchemaWarning
from mixedknn.evaluation import EvaluationReport, confusion_matrix, plot_confusion_matrix
from mixedknn.knn import KNN
from mixedknn.table import TypedTable

ACTUAL    = ["A", "A", "A", "B"]
PREDICTED = ["A", "B", "A", "B"]


class TestConfusionMatrix:

    def test_counts(self):
        assert confusion_matrix(ACTUAL, PREDICTED) == {"A": {"A": 2, "B": 1}, "B": {"B": 1}}

    def test_empty(self):
        assert confusion_matrix([], []) == {}


class TestEvaluationReport:

    def test_pooled_counts(self):
        report = EvaluationReport.from_matrix(confusion_matrix(ACTUAL, PREDICTED))
        assert (report.tp, report.fn, report.fp, report.tn, report.total) == (3, 1, 1, 3, 4)
        assert report.labels == ["A", "B"]

    def test_micro_metrics_match_sklearn(self):
        report = EvaluationReport.from_matrix(confusion_matrix(ACTUAL, PREDICTED))
        assert report.precision == pytest.approx(precision_score(ACTUAL, PREDICTED, average="micro"))
        assert report.recall == pytest.approx(recall_score(ACTUAL, PREDICTED, average="micro"))
        assert report.accuracy == pytest.approx(0.75)

    def test_legacy_accuracy_differs_from_accuracy(self):
        # older reports counted TN as total + TP, inflating accuracy
        report = EvaluationReport.from_matrix(confusion_matrix(ACTUAL, PREDICTED))
        assert report.legacy_accuracy == pytest.approx(10 / 12)
        assert report.summary() == {
            "precision": 75, "recall": 75, "accuracy": 75, "legacy_accuracy": 83,
        }

    def test_perfect_predictions(self):
        labels = ["x", "y", "z", "x"]
        report = EvaluationReport.from_matrix(confusion_matrix(labels, labels))
        assert report.fp == report.fn == 0
        assert report.precision == report.recall == report.accuracy == 1.0
        assert report.summary()["legacy_accuracy"] == 100
        array = report.to_array()
        assert np.count_nonzero(array - np.diag(np.diag(array))) == 0

    def test_label_only_predicted(self):
        report = EvaluationReport.from_matrix(confusion_matrix(["A", "A"], ["A", "C"]))
        assert report.labels == ["A", "C"]
        assert report.to_array().tolist() == [[1, 1], [0, 0]]
        assert report.fp == 1

    def test_failed_prediction_and_mixed_label_types(self):
        actual    = [1.0, "A", "A"]
        predicted = [None, "A", 1.0]
        report = EvaluationReport.from_predictions(actual, predicted)
        assert report.labels == [1.0, None, "A"]
        assert (report.tp, report.fn, report.fp, report.tn, report.total) == (1, 2, 2, 4, 3)
        assert report.precision == pytest.approx(1 / 3)
        assert report.recall == pytest.approx(1 / 3)
        assert report.accuracy == pytest.approx(1 / 3)

    def test_from_matrix_equals_from_predictions(self):
        by_pairs = EvaluationReport.from_predictions(ACTUAL, PREDICTED)
        by_matrix = EvaluationReport.from_matrix(confusion_matrix(ACTUAL, PREDICTED))
        assert by_pairs == by_matrix

    def test_to_frame(self):
        frame = EvaluationReport.from_matrix(confusion_matrix(ACTUAL, PREDICTED)).to_frame()
        assert frame.loc["A", "B"] == 1
        assert frame.loc["B", "A"] == 0
        assert frame.index.name == "actual"
        assert frame.columns.name == "predicted"

    def test_empty_report(self):
        report = EvaluationReport()
        assert report.precision == report.recall == report.accuracy == 0.0
        assert report.to_array().shape == (0, 0)

    def test_print_summary(self, capsys):
        EvaluationReport.from_matrix(confusion_matrix(ACTUAL, PREDICTED)).print_summary()
        out = capsys.readouterr().out
        assert "Model Micro-Precision : 75%" in out
        assert "Model Micro-Recall    : 75%" in out

    def test_plot(self):
        report = EvaluationReport.from_matrix(confusion_matrix(ACTUAL, PREDICTED))
        fig, ax = plt.subplots()
        display = plot_confusion_matrix(report, ax=ax, title="toy")
        assert isinstance(display, ConfusionMatrixDisplay)
        assert ax.get_title() == "toy"
        plt.close(fig)


class TestKnnEvaluate:

    def test_all_correct(self, toy_table, capsys):
        model = KNN(toy_table, k=1)
        test = TypedTable.from_rows(
            ["x", "y", "label"], [(0.5, 0.5, "A"), (9.5, 9.5, "B"), (2, 1, "A")], label="label"
        )
        report = model.evaluate(test)
        assert report.matrix == {"A": {"A": 2}, "B": {"B": 1}}
        assert report.summary()["precision"] == 100
        assert report.summary()["recall"] == 100
        assert "Model Micro-Precision : 100%" in capsys.readouterr().out

    def test_quiet(self, toy_table, capsys):
        model = KNN(toy_table, k=1)
        test = TypedTable.from_rows(["x", "y", "label"], [(0, 0, "B")], label="label")
        report = model.evaluate(test, verbose=False)
        assert report.matrix == {"B": {"A": 1}}
        assert report.precision == 0.0
        assert capsys.readouterr().out == ""

    def test_unscorable_row_counts_as_a_miss(self, toy_table):
        model = KNN(toy_table, k=1)
        # x is text here, so the model cannot align the first row
        test = TypedTable.from_rows(
            ["x", "y", "label"], [("wide", 0, "A"), ("0", 0, "A")], label="label"
        )
        with pytest.warns(SchemaWarning):
            report = model.evaluate(test, verbose=False)
        assert report.matrix == {"A": {None: 1, "A": 1}}
        assert report.accuracy == pytest.approx(0.5)

    def test_test_table_without_label_column(self, toy_table):
        model = KNN(toy_table, k=1)
        test = TypedTable.from_rows(["x", "y", "tag"], [(0, 0, "B")])
        with pytest.warns(SchemaWarning):
            report = model.evaluate(test, verbose=False)
        assert report.matrix == {}
