"""Tests for experiment creation, validation and lookup."""
import pytest

from leanab.core.errors import InvalidWeights
from leanab.models.orm.experiment import ExperimentORM, GroupORM
from leanab.models.schemas.experiment import GroupWeight
from leanab.services.experiment_registry import ExperimentRegistry, validate_weights


class TestEnsureExperiment:
    @pytest.mark.parametrize(
        "weights",
        [
            [("control", 100)],
            [("control", 50), ("test", 50)],
            [("control", 20), ("a", 30), ("b", 50)],
            [("control", 0), ("test", 100)],
            [("c", 25), ("d", 25), ("a", 25), ("b", 25)],
        ],
    )
    def test_groups_round_trip_in_supplied_order(self, db, weights):
        registry = ExperimentRegistry(db)
        registry.ensure_experiment("exp", weights)

        assert registry.groups_of("exp") == [GroupWeight(name=n, weight=w) for n, w in weights]

    def test_accepts_group_weight_models(self, db):
        registry = ExperimentRegistry(db)
        groups = [GroupWeight(name="control", weight=40), GroupWeight(name="test", weight=60)]
        registry.ensure_experiment("exp", groups)

        assert registry.groups_of("exp") == groups

    def test_weights_must_sum_to_100(self, db):
        registry = ExperimentRegistry(db)
        with pytest.raises(InvalidWeights, match="add up to 100"):
            registry.ensure_experiment("exp", [("a", 30), ("b", 30), ("c", 30)])

        assert registry.groups_of("exp") == []
        assert not registry.experiment_exists("exp")

    @pytest.mark.parametrize(
        "weights, message",
        [
            ([("a", -10), ("b", 110)], "between 0 and 100"),
            ([("a", 101), ("b", -1)], "between 0 and 100"),
            ([], "at least one group"),
            ([("a", 50), ("a", 50)], "listed twice"),
            ([("", 100)], "must not be empty"),
            ([("a", 50, "extra")], "pair"),
            ([("a", "fifty"), ("b", 50)], "integer weight"),
            ([("a", True), ("b", 99)], "integer weight"),
            ([("a", "50"), ("b", 50)], "integer weight"),
            ([("a", 50.0), ("b", 50)], "integer weight"),
        ],
    )
    def test_invalid_configuration_creates_nothing(self, db, count_rows, weights, message):
        registry = ExperimentRegistry(db)
        with pytest.raises(InvalidWeights, match=message):
            registry.ensure_experiment("exp", weights)

        assert count_rows(ExperimentORM) == 0
        assert count_rows(GroupORM) == 0

    def test_existing_configuration_wins(self, db, count_rows):
        registry = ExperimentRegistry(db)
        registry.ensure_experiment("exp", [("control", 50), ("test", 50)])
        registry.ensure_experiment("exp", [("control", 10), ("test", 90)])
        registry.ensure_experiment("exp", [("other", 100)])

        assert registry.groups_of("exp") == [
            GroupWeight(name="control", weight=50),
            GroupWeight(name="test", weight=50),
        ]
        assert count_rows(ExperimentORM) == 1
        assert count_rows(GroupORM) == 2

    def test_invalid_weights_ignored_once_experiment_exists(self, db):
        registry = ExperimentRegistry(db)
        registry.ensure_experiment("exp", [("control", 50), ("test", 50)])

        # No error: the stored experiment is used as-is
        registry.ensure_experiment("exp", [("control", 30), ("test", 30)])

    def test_same_group_names_in_different_experiments(self, db):
        registry = ExperimentRegistry(db)
        registry.ensure_experiment("one", [("control", 50), ("test", 50)])
        registry.ensure_experiment("two", [("control", 90), ("test", 10)])

        assert [g.weight for g in registry.groups_of("one")] == [50, 50]
        assert [g.weight for g in registry.groups_of("two")] == [90, 10]


class TestLookups:
    def test_groups_of_unknown_experiment_is_empty(self, db):
        assert ExperimentRegistry(db).groups_of("missing") == []

    def test_experiment_exists(self, db):
        registry = ExperimentRegistry(db)
        assert not registry.experiment_exists("exp")
        registry.ensure_experiment("exp", [("control", 100)])
        assert registry.experiment_exists("exp")

    def test_list_names_in_creation_order(self, db):
        registry = ExperimentRegistry(db)
        for name in ["FancyNewDesign1.2", "Checkout", "Apricot"]:
            registry.ensure_experiment(name, [("control", 100)])

        assert registry.list_experiment_names() == ["FancyNewDesign1.2", "Checkout", "Apricot"]

    def test_list_names_empty(self, db):
        assert ExperimentRegistry(db).list_experiment_names() == []


class TestValidateWeights:
    def test_valid(self):
        validate_weights("exp", [GroupWeight(name="a", weight=1), GroupWeight(name="b", weight=99)])

    def test_error_carries_experiment_name(self):
        with pytest.raises(InvalidWeights) as exc_info:
            validate_weights("Checkout", [GroupWeight(name="a", weight=99)])

        assert exc_info.value.experiment_name == "Checkout"
        assert "Checkout" in str(exc_info.value)
