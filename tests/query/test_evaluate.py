import pytest

from statcast_leaderboards.query.evaluate import evaluate_group, evaluate_row, matches
from statcast_leaderboards.query.expr import (
    Arith,
    ArithOp,
    CaseWhen,
    Concat,
    Lit,
    NullIf,
    Round,
    all_of,
    any_of,
    avg,
    col,
    count,
    count_distinct,
    max_,
    ratio,
    sum_,
    times,
)


class TestEvaluateRow:
    def test_arithmetic_propagates_null(self) -> None:
        assert evaluate_row(times(col("pfx_x"), 12), {"pfx_x": 0.5}) == 6.0
        assert evaluate_row(times(col("pfx_x"), 12), {"pfx_x": None}) is None

    def test_nullif_turns_zero_into_null(self) -> None:
        assert evaluate_row(NullIf(col("balls")), {"balls": 0}) is None
        assert evaluate_row(NullIf(col("balls")), {"balls": 2}) == 2

    def test_division_by_zero_raises(self) -> None:
        with pytest.raises(ZeroDivisionError):
            evaluate_row(Arith(ArithOp.DIV, Lit(1), col("balls")), {"balls": 0})

    def test_case_when_without_match_is_null(self) -> None:
        expr = CaseWhen(col("events").is_not_null(), Lit(1))
        assert evaluate_row(expr, {"events": "single"}) == 1
        assert evaluate_row(expr, {"events": None}) is None

    def test_concat_treats_null_as_empty(self) -> None:
        expr = Concat((col("game_pk"), Lit("-"), col("at_bat_number")))
        assert evaluate_row(expr, {"game_pk": 7, "at_bat_number": 3}) == "7-3"
        assert evaluate_row(expr, {"game_pk": 7}) == "7-"

    def test_round_half_up(self) -> None:
        assert evaluate_row(Round(col("release_speed"), 1), {"release_speed": 95.25}) == 95.3

    def test_aggregate_outside_group_raises(self) -> None:
        with pytest.raises(TypeError):
            evaluate_row(count(), {})


class TestMatches:
    def test_comparison_with_null_is_unknown(self) -> None:
        assert matches(col("zone").gt(9), {"zone": None}) is None
        assert matches(col("zone").gt(9), {"zone": 11}) is True

    def test_literal_coerced_to_column_type(self) -> None:
        assert matches(col("game_year").eq("2025"), {"game_year": 2025}) is True
        assert matches(col("release_speed").gte(95), {"release_speed": 95.0}) is True

    def test_between_is_inclusive(self) -> None:
        predicate = col("zone").between(1, 9)
        assert matches(predicate, {"zone": 1}) is True
        assert matches(predicate, {"zone": 9}) is True
        assert matches(predicate, {"zone": 11}) is False

    def test_in_list(self) -> None:
        assert matches(col("events").is_in("single", "double"), {"events": "double"}) is True
        assert matches(col("events").is_in("single"), {"events": None}) is None
        assert matches(col("events").not_in("walk"), {"events": "walk"}) is False
        assert matches(col("events").not_in("walk"), {"events": "single"}) is True

    def test_null_checks(self) -> None:
        assert matches(col("bb_type").is_null(), {}) is True
        assert matches(col("bb_type").is_not_null(), {"bb_type": "popup"}) is True

    def test_like_patterns(self) -> None:
        assert matches(col("description").contains("foul"), {"description": "foul_tip"}) is True
        assert matches(col("description").like("foul_"), {"description": "fouls"}) is True
        assert matches(col("description").like("foul_"), {"description": "foul"}) is False
        assert matches(col("description").contains("ball"), {"description": None}) is None

    def test_three_valued_and(self) -> None:
        unknown = col("zone").gt(9)
        assert matches(all_of(unknown, col("balls").eq(3)), {"zone": None, "balls": 1}) is False
        assert matches(all_of(unknown, col("balls").eq(3)), {"zone": None, "balls": 3}) is None

    def test_three_valued_or(self) -> None:
        unknown = col("zone").gt(9)
        assert matches(any_of(unknown, col("balls").eq(3)), {"zone": None, "balls": 3}) is True
        assert matches(any_of(unknown, col("balls").eq(3)), {"zone": None, "balls": 1}) is None


class TestEvaluateGroup:
    _rows = [
        {"game_pk": 1, "events": "single", "release_speed": 95.0},
        {"game_pk": 1, "events": None, "release_speed": None},
        {"game_pk": 2, "events": "walk", "release_speed": 97.0},
    ]

    def test_counts(self) -> None:
        assert evaluate_group(count(), self._rows) == 3
        assert evaluate_group(count(col("events").is_not_null()), self._rows) == 2
        assert evaluate_group(count_distinct(col("game_pk")), self._rows) == 2

    def test_aggregates_ignore_nulls(self) -> None:
        assert evaluate_group(avg(col("release_speed")), self._rows) == 96.0
        assert evaluate_group(max_(col("release_speed")), self._rows) == 97.0
        assert evaluate_group(sum_(col("game_pk")), self._rows) == 4

    def test_aggregate_over_no_values_is_null(self) -> None:
        assert evaluate_group(avg(col("launch_speed")), self._rows) is None
        assert evaluate_group(avg(col("release_speed")), []) is None

    def test_ratio_with_empty_denominator_is_null(self) -> None:
        expr = ratio(count(), count(col("bb_type").is_not_null()))
        assert evaluate_group(expr, self._rows) is None

    def test_bare_column_in_group_raises(self) -> None:
        with pytest.raises(TypeError, match="must appear in an aggregate"):
            evaluate_group(col("events"), self._rows)
