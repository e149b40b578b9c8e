"""Registry of named aggregate metrics over pitch-level event rows.

Every metric is a single-pass aggregate: counts, conditional counts, averages,
sums, and maxima combined with arithmetic. Percentages and ratios divide by a
``NULLIF(denominator, 0)`` so an empty denominator yields null instead of an error.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from statcast_leaderboards.domain.errors import UnknownMetric, unknown_metric
from statcast_leaderboards.domain.result import Err, Ok, Result
from statcast_leaderboards.query.evaluate import Row, evaluate_group
from statcast_leaderboards.query.expr import (
    CaseWhen,
    Concat,
    Expr,
    Lit,
    Predicate,
    Round,
    all_of,
    any_of,
    avg,
    col,
    count,
    count_distinct,
    max_,
    percentage,
    ratio,
    referenced_columns,
    sum_,
    times,
    weighted_sum,
)


class MetricFamily(enum.Enum):
    COUNTING = "counting"
    AVERAGE = "average"
    BATTED_BALL = "batted_ball"
    RATE = "rate"
    BATTING = "batting"
    EXPECTED = "expected"
    BATTED_BALL_TYPE = "batted_ball_type"
    SWING = "swing"


class MetricDomain(enum.Enum):
    COUNT = "count"
    PERCENTAGE = "percentage"
    RATE = "rate"
    RATIO = "ratio"
    MEASUREMENT = "measurement"


@dataclass(frozen=True)
class MetricDefinition:
    name: str
    label: str
    family: MetricFamily
    domain: MetricDomain
    expression: Expr
    precision: int | None = None

    @property
    def rounded(self) -> Expr:
        """The expression as it is selected: wrapped in ``ROUND`` when the metric has a precision."""
        if self.precision is None:
            return self.expression
        return Round(self.expression, self.precision)

    @property
    def required_columns(self) -> frozenset[str]:
        return referenced_columns(self.expression)


# Outcomes that end a plate appearance without counting as an at-bat.
AT_BAT_EXCLUSIONS: tuple[str, ...] = ("walk", "hit_by_pitch", "sac_fly", "sac_bunt", "catcher_interf")
HIT_EVENTS: tuple[str, ...] = ("single", "double", "triple", "home_run")

_events = col("events")
_description = col("description")
_zone = col("zone")
_bb_type = col("bb_type")

_plate_appearances = count_distinct(
    CaseWhen(_events.is_not_null(), Concat((col("game_pk"), Lit("-"), col("at_bat_number"))))
)
_at_bats = count(all_of(_events.is_not_null(), _events.not_in(*AT_BAT_EXCLUSIONS)))
_swinging_strike = _description.contains("swinging_strike")
_swing = any_of(_swinging_strike, _description.contains("foul"), _description.eq("hit_into_play"))
_out_of_zone = _zone.gt(9)
_batted_ball = count(_bb_type.is_not_null())


def _share(event: Predicate, denominator: Expr) -> Expr:
    return percentage(count(event), denominator)


def _metric(
    name: str,
    label: str,
    family: MetricFamily,
    domain: MetricDomain,
    expression: Expr,
    precision: int | None = None,
) -> MetricDefinition:
    return MetricDefinition(name, label, family, domain, expression, precision)


_C = MetricFamily.COUNTING
_A = MetricFamily.AVERAGE
_BB = MetricFamily.BATTED_BALL
_RT = MetricFamily.RATE
_BAT = MetricFamily.BATTING
_X = MetricFamily.EXPECTED
_BBT = MetricFamily.BATTED_BALL_TYPE
_SW = MetricFamily.SWING

_COUNT = MetricDomain.COUNT
_PCT = MetricDomain.PERCENTAGE
_RATE = MetricDomain.RATE
_RATIO = MetricDomain.RATIO
_MEAS = MetricDomain.MEASUREMENT

DEFAULT_METRICS: tuple[MetricDefinition, ...] = (
    _metric("pitches", "Pitches", _C, _COUNT, count()),
    _metric("pa", "PA", _C, _COUNT, _plate_appearances),
    _metric("games", "Games", _C, _COUNT, count_distinct(col("game_pk"))),
    _metric("avg_velo", "Avg Velocity", _A, _MEAS, avg(col("release_speed")), 1),
    _metric("max_velo", "Max Velocity", _A, _MEAS, max_(col("release_speed")), 1),
    _metric("avg_spin", "Avg Spin Rate", _A, _MEAS, avg(col("release_spin_rate")), 0),
    _metric("avg_ext", "Extension", _A, _MEAS, avg(col("release_extension")), 2),
    _metric("avg_hbreak_in", "H-Break (in)", _A, _MEAS, avg(times(col("pfx_x"), 12)), 1),
    _metric("avg_ivb_in", "IVB (in)", _A, _MEAS, avg(times(col("pfx_z"), 12)), 1),
    _metric("avg_arm_angle", "Arm Angle", _A, _MEAS, avg(col("arm_angle")), 1),
    _metric("avg_ev", "Avg Exit Velo", _BB, _MEAS, avg(col("launch_speed")), 1),
    _metric("max_ev", "Max Exit Velo", _BB, _MEAS, max_(col("launch_speed")), 1),
    _metric("avg_la", "Avg Launch Angle", _BB, _MEAS, avg(col("launch_angle")), 1),
    _metric("avg_dist", "Avg Distance", _BB, _MEAS, avg(col("hit_distance_sc")), 0),
    _metric("k_pct", "K %", _RT, _PCT, _share(_events.contains("strikeout"), _plate_appearances), 1),
    _metric("bb_pct", "BB %", _RT, _PCT, _share(_events.eq("walk"), _plate_appearances), 1),
    _metric("whiff_pct", "Whiff %", _RT, _PCT, _share(_swinging_strike, count(_swing)), 1),
    _metric(
        "csw_pct",
        "CSW %",
        _RT,
        _PCT,
        _share(any_of(_swinging_strike, _description.eq("called_strike")), count()),
        1,
    ),
    _metric("zone_pct", "Zone %", _RT, _PCT, _share(_zone.between(1, 9), count(_zone.is_not_null())), 1),
    _metric("chase_pct", "Chase %", _RT, _PCT, _share(all_of(_out_of_zone, _swing), count(_out_of_zone)), 1),
    _metric("ba", "AVG", _BAT, _RATIO, ratio(count(_events.is_in(*HIT_EVENTS)), _at_bats), 3),
    _metric(
        "slg",
        "SLG",
        _BAT,
        _RATIO,
        ratio(
            weighted_sum(
                (1, count(_events.eq("single"))),
                (2, count(_events.eq("double"))),
                (3, count(_events.eq("triple"))),
                (4, count(_events.eq("home_run"))),
            ),
            _at_bats,
        ),
        3,
    ),
    _metric(
        "obp",
        "OBP",
        _BAT,
        _RATIO,
        ratio(count(_events.is_in(*HIT_EVENTS, "walk", "hit_by_pitch")), _plate_appearances),
        3,
    ),
    _metric("avg_xba", "xBA", _X, _RATE, avg(col("estimated_ba_using_speedangle")), 3),
    _metric("avg_xwoba", "xwOBA", _X, _RATE, avg(col("estimated_woba_using_speedangle")), 3),
    _metric("avg_xslg", "xSLG", _X, _RATE, avg(col("estimated_slg_using_speedangle")), 3),
    _metric("avg_woba", "wOBA", _X, _RATE, avg(col("woba_value")), 3),
    _metric("total_re24", "RE24", _X, _MEAS, sum_(col("delta_run_exp")), 1),
    _metric("gb_pct", "GB %", _BBT, _PCT, _share(_bb_type.eq("ground_ball"), _batted_ball), 1),
    _metric("fb_pct", "FB %", _BBT, _PCT, _share(_bb_type.eq("fly_ball"), _batted_ball), 1),
    _metric("ld_pct", "LD %", _BBT, _PCT, _share(_bb_type.eq("line_drive"), _batted_ball), 1),
    _metric("pu_pct", "PU %", _BBT, _PCT, _share(_bb_type.eq("popup"), _batted_ball), 1),
    _metric("avg_bat_speed", "Bat Speed", _SW, _MEAS, avg(col("bat_speed")), 1),
    _metric("avg_swing_length", "Swing Length", _SW, _MEAS, avg(col("swing_length")), 2),
)

# Metrics offered for scene data binding.
SCENE_METRIC_NAMES: tuple[str, ...] = (
    "avg_velo",
    "max_velo",
    "avg_spin",
    "whiff_pct",
    "k_pct",
    "bb_pct",
    "csw_pct",
    "zone_pct",
    "chase_pct",
    "avg_ev",
    "avg_la",
    "ba",
    "obp",
    "slg",
    "avg_xba",
    "avg_xwoba",
    "avg_hbreak_in",
    "avg_ivb_in",
    "avg_ext",
    "pitches",
    "games",
    "gb_pct",
    "fb_pct",
)


@dataclass(frozen=True)
class MetricLibrary:
    definitions: tuple[MetricDefinition, ...]
    _by_name: dict[str, MetricDefinition] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        by_name: dict[str, MetricDefinition] = {}
        for definition in self.definitions:
            if definition.name in by_name:
                raise ValueError(f"duplicate metric name: {definition.name!r}")
            by_name[definition.name] = definition
        object.__setattr__(self, "_by_name", by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)

    def names(self) -> list[str]:
        return [d.name for d in self.definitions]

    def resolve(self, name: str) -> Result[MetricDefinition, UnknownMetric]:
        definition = self._by_name.get(name)
        if definition is None:
            return Err(unknown_metric(name))
        return Ok(definition)

    def required_columns(self, name: str) -> Result[frozenset[str], UnknownMetric]:
        match self.resolve(name):
            case Ok(definition):
                return Ok(definition.required_columns)
            case Err() as err:
                return err

    def supports(self, name: str, columns: Iterable[str]) -> bool:
        """Whether a row schema with ``columns`` carries every input the metric reads."""
        match self.resolve(name):
            case Ok(definition):
                return definition.required_columns <= frozenset(columns)
            case _:
                return False

    def evaluate(self, name: str, rows: Sequence[Row]) -> Result[Any, UnknownMetric]:
        """Compute one metric over an in-memory group of event rows."""
        match self.resolve(name):
            case Ok(definition):
                return Ok(evaluate_group(definition.rounded, rows))
            case Err() as err:
                return err

    def scene_metrics(self) -> list[tuple[str, str]]:
        return [(name, self._by_name[name].label) for name in SCENE_METRIC_NAMES if name in self._by_name]


DEFAULT_LIBRARY = MetricLibrary(DEFAULT_METRICS)
