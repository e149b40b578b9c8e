from typing import Any

import pytest

from statcast_leaderboards.leaderboard.deception import (
    FASTBALL_UNIQUE_WEIGHTS,
    OFFSPEED_DECEPTION_WEIGHTS,
    Baseline,
    CategoryAverages,
    CategoryStandardizer,
    pitch_inputs,
    weighted_score,
)
from statcast_leaderboards.leaderboard.pivot import DECEPTION_LEADERBOARD, LeaderboardPivotAggregator, LeaderboardQuery


def _pitch(pitcher: int, pitch_type: str = "FF", **overrides: Any) -> dict[str, Any]:
    row: dict[str, Any] = {
        "pitcher": pitcher,
        "player_name": f"Pitcher {pitcher}",
        "pitch_type": pitch_type,
        "pitch_name": pitch_type,
        "p_throws": "R",
        "vaa": -5.0,
        "haa": 2.0,
        "pfx_x": 0.5,
        "pfx_z": 1.0,
        "release_extension": 6.0,
    }
    row.update(overrides)
    return row


# Three right-handed four-seamers whose inputs are one standard deviation apart.
_SPREAD = [
    _pitch(1, vaa=-5.0, haa=1.0, pfx_z=1.0, pfx_x=0.0, release_extension=6.0),
    _pitch(2, vaa=-4.0, haa=2.0, pfx_z=1.5, pfx_x=0.5, release_extension=6.5),
    _pitch(3, vaa=-6.0, haa=3.0, pfx_z=0.5, pfx_x=1.0, release_extension=5.5),
]


class TestPitchInputs:
    def test_uses_enriched_angles_and_inches(self) -> None:
        assert pitch_inputs(_pitch(1)) == {"vaa": -5.0, "haa": 2.0, "vb": 12.0, "hb": 6.0, "ext": 6.0}

    def test_computes_angles_when_absent(self) -> None:
        row = _pitch(1)
        del row["vaa"], row["haa"]
        row.update({"vx0": 5.0, "vy0": -130.0, "vz0": -5.0, "ax": -10.0, "ay": 25.0, "az": -15.0})
        inputs = pitch_inputs(row)
        assert inputs is not None
        assert inputs["vaa"] == pytest.approx(-4.834, abs=0.01)

    def test_missing_input_drops_pitch(self) -> None:
        assert pitch_inputs(_pitch(1, release_extension=None)) is None
        assert pitch_inputs(_pitch(1, vaa=None)) is None


class TestWeightedScore:
    def test_absolute_values(self) -> None:
        z = {"vaa": -1.0, "vb": 1.0, "hb": 0.0, "haa": 0.0, "ext": 0.0}
        assert weighted_score(z, FASTBALL_UNIQUE_WEIGHTS, absolute=True) == pytest.approx(0.40)

    def test_signed_values(self) -> None:
        z = {"vaa": 1.0, "ext": 1.0, "vb": 0.0, "hb": 0.0, "haa": 0.0}
        assert weighted_score(z, OFFSPEED_DECEPTION_WEIGHTS, absolute=False) == pytest.approx(0.60)

    def test_missing_required_z_is_none(self) -> None:
        z = {"vaa": 1.0, "vb": 0.0, "hb": 0.0, "haa": 0.0, "ext": None}
        assert weighted_score(z, OFFSPEED_DECEPTION_WEIGHTS, absolute=False) is None


class TestBaseline:
    def test_z_score(self) -> None:
        assert Baseline(mean=10.0, sd=2.0, n=5).z_score(13.0) == 1.5

    def test_zero_spread_is_none(self) -> None:
        assert Baseline(mean=10.0, sd=0.0, n=5).z_score(13.0) is None


class TestAverages:
    def test_min_pitches_and_exclusions(self) -> None:
        rows = [
            *[_pitch(1, vaa=-4.0) for _ in range(3)],
            *[_pitch(1, vaa=-6.0) for _ in range(3)],
            _pitch(2),
            *[_pitch(3, "PO") for _ in range(10)],
        ]
        [category] = CategoryStandardizer(min_pitches=5).averages(rows)
        assert category.pitcher == 1
        assert category.pitches == 6
        assert category.averages["vaa"] == -5.0
        assert category.averages["vb"] == 12.0

    def test_pitch_without_type_is_skipped(self) -> None:
        assert CategoryStandardizer(min_pitches=1).averages([_pitch(1, pitch_type=None)]) == []

    def test_baselines_need_two_pitchers(self) -> None:
        alone = CategoryAverages(1, "A", "FF", "FF", "R", 100, {"vaa": -5.0})
        assert CategoryStandardizer.baselines([alone]) == {("R", "FF"): {}}

    def test_baselines_by_hand_and_pitch_type(self) -> None:
        categories = CategoryStandardizer(min_pitches=1).averages(_SPREAD)
        baselines = CategoryStandardizer.baselines(categories)
        assert baselines[("R", "FF")]["vaa"] == Baseline(-5.0, 1.0, 3)
        assert baselines[("R", "FF")]["vb"] == Baseline(12.0, 6.0, 3)
        assert baselines[("R", "FF")]["ext"] == Baseline(6.0, 0.5, 3)


class TestStandardize:
    def test_scores_fastball_categories(self) -> None:
        rows = {r.entity_id: r for r in CategoryStandardizer(min_pitches=1).standardize(_SPREAD)}
        second = rows[2].values
        assert second["z_vaa"] == 1.0
        assert second["z_haa"] == 0.0
        assert second["z_vb"] == 1.0
        assert second["z_ext"] == 1.0
        assert second["unique_score"] == 0.6
        assert second["deception_score"] == 0.3
        first = rows[1].values
        assert first["unique_score"] == 0.4
        assert first["deception_score"] == 0.2
        assert first["avg_vb"] == 12.0

    def test_category_rows_carry_identity_and_weight(self) -> None:
        rows = CategoryStandardizer(min_pitches=1).standardize(_SPREAD)
        assert {(r.entity_id, r.entity_name, r.category, r.weight) for r in rows} == {
            (1, "Pitcher 1", "FF", 1),
            (2, "Pitcher 2", "FF", 1),
            (3, "Pitcher 3", "FF", 1),
        }

    def test_unscorable_category_is_kept_with_null_scores(self) -> None:
        rows = [*_SPREAD, _pitch(4, "SL", p_throws="L")]
        by_type = {r.category: r for r in CategoryStandardizer(min_pitches=1).standardize(rows)}
        slider = by_type["SL"].values
        assert slider["avg_vaa"] == -5.0
        assert slider["z_vaa"] is None
        assert slider["unique_score"] is None
        assert slider["deception_score"] is None

    def test_offspeed_deception_requires_extension_z(self) -> None:
        rows = [
            _pitch(1, "CH", vaa=-7.0, release_extension=6.0),
            _pitch(2, "CH", vaa=-8.0, release_extension=6.0),
            _pitch(3, "CH", vaa=-9.0, release_extension=6.0),
        ]
        scored = CategoryStandardizer(min_pitches=1).standardize(rows)
        assert all(r.values["z_ext"] is None for r in scored)
        assert all(r.values["deception_score"] is None for r in scored)

    def test_feeds_deception_leaderboard(self) -> None:
        rows = [
            *_SPREAD,
            _pitch(1, "SL", vaa=-8.0, haa=1.0, pfx_z=0.0, pfx_x=-0.5, release_extension=6.0),
            _pitch(2, "SL", vaa=-9.0, haa=2.0, pfx_z=0.5, pfx_x=0.0, release_extension=6.5),
            _pitch(3, "SL", vaa=-7.0, haa=3.0, pfx_z=-0.5, pfx_x=0.5, release_extension=5.5),
        ]
        categories = CategoryStandardizer(min_pitches=1).standardize(rows)
        records = LeaderboardPivotAggregator(DECEPTION_LEADERBOARD).run(categories, LeaderboardQuery(min_weight=0))
        assert len(records) == 3
        by_pitcher = {r["pitcher"]: r for r in records}
        assert by_pitcher[2]["ff_usage"] == 50.0
        assert by_pitcher[2]["ff_unique"] == 0.6
        assert all(r["xdeception_score"] is not None for r in records)
