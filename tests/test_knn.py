import math
import warnings

import pytest

from mixedknn.distance import FartherFirst, JaccardDistance, MixedEuclidean, MixedManhattan
from mixedknn.errors import BoundsWarning, ConfigError, SchemaWarning
from mixedknn.knn import KNN, Neighbor
from mixedknn.table import TypedTable


class TestConstruction:

    @pytest.mark.parametrize("k", [0, -1, 2.5, True, "3"])
    def test_k_must_be_positive_integer(self, toy_table, k):
        with pytest.raises(ConfigError, match="k must be a positive integer"):
            KNN(toy_table, k=k)

    def test_defaults(self, toy_table):
        model = KNN(toy_table)
        assert model.k == 1
        assert isinstance(model.measure, MixedEuclidean)
        assert model.dataset is toy_table

    def test_reference_table_is_normalized_once(self, toy_table):
        KNN(toy_table)
        assert toy_table.normalized
        assert toy_table["x"] == pytest.approx([0.0, 0.1, 1.0])

    def test_already_normalized_table_is_left_alone(self, toy_table):
        toy_table.normalize()
        params = dict(toy_table.params)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            KNN(toy_table, k=2)
        assert toy_table.params == params

    def test_unset_label_is_reported(self):
        table = TypedTable.from_rows(["a", "b"], [(1, 2), (3, 4)])
        with pytest.warns(SchemaWarning, match="label unset"):
            KNN(table)

    def test_unlabelled_table_stays_raw(self):
        table = TypedTable.from_rows(["a", "b"], [(1, 2), (3, 4)])
        with pytest.warns(SchemaWarning, match="label unset"):
            KNN(table)
        assert not table.normalized
        assert table.params == {}
        # choosing the label afterwards still leaves it unscaled
        table.set_label("b")
        KNN(table)
        assert table["b"] == [2.0, 4.0]
        assert table["a"] == pytest.approx([0.0, 1.0])

    def test_set_measure_returns_previous(self, toy_table):
        model = KNN(toy_table)
        original = model.measure
        manhattan = MixedManhattan()
        assert model.set_measure(manhattan) is original
        assert model.measure is manhattan

    def test_from_csv(self, clusters_csv):
        model = KNN.from_csv(str(clusters_csv), label="kind", k=3)
        assert model.dataset.label == "kind"
        assert len(model.dataset) == 40
        assert model.dataset.normalized


class TestFirstKnn:

    def test_returns_k_ordered_pairs(self, toy_table):
        model = KNN(toy_table, k=3)
        neighbors = model.first_knn([0.1, 0.1])
        assert len(neighbors) == 3
        assert all(isinstance(n, Neighbor) for n in neighbors)
        assert [n.index for n in neighbors] == [0, 1, 2]
        distances = [n.distance for n in neighbors]
        assert distances == sorted(distances)

    def test_query_is_scaled_with_stored_bounds(self, toy_table):
        model = KNN(toy_table, k=1)
        (nearest,) = model.first_knn([10, 10])
        assert nearest == Neighbor(0.0, 2)

    def test_query_with_label_field(self, toy_table):
        model = KNN(toy_table, k=2)
        assert model.first_knn([1, 1, "B"]) == model.first_knn([1, 1])

    def test_ties_keep_table_order(self):
        rows = [(0, 0, "A"), (5, 5, "B"), (0, 0, "C"), (0, 0, "D")]
        model = KNN(TypedTable.from_rows(["x", "y", "cls"], rows, label="cls"), k=3)
        neighbors = model.first_knn([0, 0])
        assert [n.index for n in neighbors] == [0, 2, 3]
        assert all(n.distance == 0.0 for n in neighbors)

    def test_comparison_override(self, toy_table):
        model = KNN(toy_table, k=1)
        (farthest,) = model.first_knn([0, 0], comparison=FartherFirst())
        assert farthest.index == 2
        # the model's own policy is untouched
        assert model.first_knn([0, 0])[0].index == 0

    def test_normalized_point_skips_rescaling(self, toy_table):
        model = KNN(toy_table, k=1)
        (nearest,) = model.first_knn([0.95, 0.95], normalized=True)
        assert nearest.index == 2
        # read as raw values, 0.95 scales to 0.095 and lands next to (1, 1)
        (nearest,) = model.first_knn([0.95, 0.95])
        assert nearest.index == 1

    def test_unset_label_returns_empty(self):
        table = TypedTable.from_rows(["a", "b"], [(1, 2), (3, 4)])
        with pytest.warns(SchemaWarning):
            model = KNN(table)
        with pytest.warns(SchemaWarning, match="label unset"):
            assert model.first_knn([1, 2]) == []

    def test_k_larger_than_table(self, toy_table):
        model = KNN(toy_table, k=4)
        with pytest.warns(BoundsWarning, match="exceeds"):
            assert model.first_knn([0, 0]) == []

    def test_point_of_wrong_width(self, toy_table):
        model = KNN(toy_table, k=1)
        with pytest.warns(BoundsWarning):
            assert model.first_knn([0]) == []


class TestPredict:

    def test_end_to_end_scenario(self, toy_table):
        model = KNN(toy_table, k=1)
        assert model.predict([0.1, 0.1]) == "A"
        assert model.predict([9, 9]) == "B"

    def test_k1_on_training_row_returns_its_label(self, mixed_table):
        raw = list(mixed_table.rows())
        model = KNN(mixed_table, k=1)
        for row in raw:
            assert model.predict(row) == row[1]

    def test_weighted_vote(self, toy_table):
        model = KNN(toy_table, k=3)
        votes = model.vote(model.first_knn([0, 0]))
        assert list(votes) == ["A", "B"]
        assert sum(votes.values()) == pytest.approx(1.0)
        d = [0.0, math.sqrt(0.02), math.sqrt(2.0)]
        w = [math.exp(-x) for x in d]
        assert votes["B"] == pytest.approx(w[2] / sum(w))
        assert model.predict([0, 0]) == "A"

    def test_unanimous_neighbours(self, toy_table):
        model = KNN(toy_table, k=2)
        votes = model.vote(model.first_knn([0.5, 0.5]))
        assert votes == {"A": pytest.approx(1.0)}

    def test_equal_weight_goes_to_first_ranked_label(self):
        table = TypedTable.from_rows(["x", "cls"], [(0, "A"), (2, "B")], label="cls")
        model = KNN(table, k=2)
        votes = model.vote(model.first_knn([1]))
        assert votes["A"] == pytest.approx(votes["B"])
        assert model.predict([1]) == "A"

    def test_large_distances_do_not_underflow(self, toy_table):
        model = KNN(toy_table, k=2)
        votes = model.vote([Neighbor(1000.0, 0), Neighbor(1001.0, 2)])
        assert votes["A"] > votes["B"]
        assert sum(votes.values()) == pytest.approx(1.0)

    def test_no_neighbours_predicts_none(self, toy_table):
        model = KNN(toy_table, k=5)
        with pytest.warns(BoundsWarning):
            assert model.predict([0, 0]) is None

    def test_custom_measure_on_names(self):
        rows = [("anna", "F"), ("hanna", "F"), ("john", "M"), ("jon", "M")]
        names = TypedTable.from_rows(["name", "gender"], rows, label="gender")
        model = KNN(names, k=1, measure=JaccardDistance("name"))
        assert model.predict(["johnny"]) == "M"
        assert model.predict(["joanna"]) == "F"

    def test_plain_function_as_measure(self, toy_table):
        def x_only(table, a, b):
            a, b = table.align(a), table.align(b)
            return abs(a[0] - b[0])

        model = KNN(toy_table, k=1, measure=x_only)
        assert model.predict([10, 0]) == "B"
