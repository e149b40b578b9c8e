"""Fold per-entity, per-category aggregate rows into one leaderboard row per entity.

Composite metrics and per-category values are weighted by each category's sample
size. Accumulation is exact (``Fraction``), so folding rows in any order, or folding
shards separately and merging them, finalizes to identical rows.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Any

from statcast_leaderboards.domain.report import SortDirection
from statcast_leaderboards.leaderboard.scoring import XDECEPTION_SCORER, CompositeScorer, SuperGroupMeans
from statcast_leaderboards.numeric import parse_finite, round_half_up
from statcast_leaderboards.sorting import sort_records

logger = logging.getLogger(__name__)

MAX_LEADERBOARD_LIMIT = 1000

FASTBALL_TYPES: frozenset[str] = frozenset({"FF", "SI", "FC"})

PITCH_TYPE_ABBREVIATIONS: dict[str, str] = {
    "FF": "ff",
    "SI": "si",
    "FC": "fc",
    "SL": "sl",
    "SW": "sw",
    "CU": "cu",
    "CH": "ch",
    "FS": "fs",
    "KC": "kc",
    "SV": "sv",
    "ST": "st",
}


# -- Specs -------------------------------------------------------------------


@dataclass(frozen=True)
class CategoryMetric:
    """A category value kept for display under ``{category}_{suffix}``."""

    source: str
    suffix: str


@dataclass(frozen=True)
class CompositeMetric:
    """An entity-level weighted mean of a category value."""

    name: str
    source: str
    precision: int = 3


@dataclass(frozen=True)
class SuperGroupSpec:
    primary_categories: frozenset[str]
    inputs: Mapping[str, str]
    scorer: CompositeScorer
    required: frozenset[str] = frozenset()


@dataclass(frozen=True)
class LeaderboardSpec:
    name: str
    category_column: str
    entity_column: str = "pitcher"
    name_column: str = "player_name"
    weight_column: str = "pitches"
    category_metrics: tuple[CategoryMetric, ...] = ()
    composites: tuple[CompositeMetric, ...] = ()
    category_aliases: Mapping[str, str] = field(default_factory=dict)
    super_groups: SuperGroupSpec | None = None
    include_usage: bool = False
    default_sort: str = "pitches"
    sortable: frozenset[str] | None = None

    def category_key(self, category: str) -> str:
        alias = self.category_aliases.get(category)
        if alias is not None:
            return alias
        return re.sub(r"[^a-z0-9]+", "_", category.lower()).strip("_")

    def resolve_sort(self, requested: str | None) -> str:
        if requested is None:
            return self.default_sort
        if self.sortable is not None and requested not in self.sortable:
            logger.debug("Sort key %r not sortable on %s; using %r", requested, self.name, self.default_sort)
            return self.default_sort
        return requested


DECEPTION_LEADERBOARD = LeaderboardSpec(
    name="deception",
    category_column="pitch_type",
    category_metrics=(CategoryMetric("unique_score", "unique"), CategoryMetric("deception_score", "deception")),
    composites=(CompositeMetric("unique_score", "unique_score"), CompositeMetric("deception_score", "deception_score")),
    category_aliases=PITCH_TYPE_ABBREVIATIONS,
    super_groups=SuperGroupSpec(
        primary_categories=FASTBALL_TYPES,
        inputs={"vaa": "z_vaa", "haa": "z_haa", "vb": "z_vb", "hb": "z_hb", "ext": "z_ext"},
        required=frozenset({"vaa", "haa", "vb", "hb"}),
        scorer=XDECEPTION_SCORER,
    ),
    include_usage=True,
    default_sort="deception_score",
)

_COMMAND_COMPOSITES = (
    "cmd_plus",
    "rpcom_plus",
    "brink_plus",
    "cluster_plus",
    "hdev_plus",
    "vdev_plus",
    "missfire_plus",
    "waste_pct",
)

COMMAND_LEADERBOARD = LeaderboardSpec(
    name="command",
    category_column="pitch_name",
    composites=tuple(CompositeMetric(name, name, precision=1) for name in _COMMAND_COMPOSITES),
    default_sort="cmd_plus",
    sortable=frozenset({"player_name", "pitches", *_COMMAND_COMPOSITES}),
)

LEADERBOARDS: dict[str, LeaderboardSpec] = {s.name: s for s in (DECEPTION_LEADERBOARD, COMMAND_LEADERBOARD)}


# -- Rows --------------------------------------------------------------------


@dataclass(frozen=True)
class CategoryAggregateRow:
    entity_id: Any
    entity_name: str | None
    category: str
    weight: int
    values: Mapping[str, float | None] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: Mapping[str, Any], spec: LeaderboardSpec) -> CategoryAggregateRow:
        """Read an aggregate-table record; every non-key column is parsed as a number or ``None``."""
        keys = {spec.entity_column, spec.name_column, spec.category_column, spec.weight_column}
        weight = parse_finite(record.get(spec.weight_column))
        name = record.get(spec.name_column)
        return cls(
            entity_id=record[spec.entity_column],
            entity_name=None if name is None else str(name),
            category=str(record[spec.category_column]),
            weight=int(weight) if weight is not None and weight > 0 else 0,
            values={k: parse_finite(v) for k, v in record.items() if k not in keys},
        )


@dataclass
class WeightedMean:
    total: Fraction = Fraction(0)
    weight: Fraction = Fraction(0)

    def add(self, value: float | None, weight: int | Fraction) -> None:
        if value is None:
            return
        self.total += Fraction(value) * weight
        self.weight += weight

    def merge(self, other: WeightedMean) -> WeightedMean:
        return WeightedMean(self.total + other.total, self.weight + other.weight)

    def mean(self) -> Fraction | None:
        return self.total / self.weight if self.weight > 0 else None


@dataclass
class SuperGroupAccumulator:
    weight: Fraction = Fraction(0)
    inputs: dict[str, WeightedMean] = field(default_factory=dict)

    def add(self, values: Mapping[str, float | None], weight: int, required: frozenset[str] = frozenset()) -> None:
        """Count a category toward the group only when every ``required`` input is present."""
        if any(values.get(name) is None for name in required):
            return
        if all(v is None for v in values.values()):
            return
        self.weight += weight
        for name, value in values.items():
            self.inputs.setdefault(name, WeightedMean()).add(value, weight)

    def merge(self, other: SuperGroupAccumulator) -> SuperGroupAccumulator:
        names = self.inputs.keys() | other.inputs.keys()
        return SuperGroupAccumulator(
            self.weight + other.weight,
            {n: self.inputs.get(n, WeightedMean()).merge(other.inputs.get(n, WeightedMean())) for n in names},
        )

    def means(self) -> SuperGroupMeans:
        return SuperGroupMeans(self.weight, {name: acc.mean() for name, acc in self.inputs.items()})


@dataclass
class EntityFold:
    entity_id: Any
    entity_name: str | None = None
    weight: int = 0
    category_values: dict[str, WeightedMean] = field(default_factory=dict)
    category_weights: dict[str, int] = field(default_factory=dict)
    composites: dict[str, WeightedMean] = field(default_factory=dict)
    primary: SuperGroupAccumulator = field(default_factory=SuperGroupAccumulator)
    secondary: SuperGroupAccumulator = field(default_factory=SuperGroupAccumulator)

    def add(self, row: CategoryAggregateRow, spec: LeaderboardSpec) -> None:
        if self.entity_name is None:
            self.entity_name = row.entity_name
        key = spec.category_key(row.category)
        if key in self.category_weights:
            logger.warning(
                "Category %r of entity %r shares key %r with an earlier row; averaging by weight",
                row.category,
                self.entity_id,
                key,
            )
        self.weight += row.weight
        self.category_weights[key] = self.category_weights.get(key, 0) + row.weight
        for metric in spec.category_metrics:
            name = f"{key}_{metric.suffix}"
            self.category_values.setdefault(name, WeightedMean()).add(row.values.get(metric.source), row.weight)
        for composite in spec.composites:
            self.composites.setdefault(composite.name, WeightedMean()).add(row.values.get(composite.source), row.weight)
        if spec.super_groups is not None:
            groups = spec.super_groups
            target = self.primary if row.category in groups.primary_categories else self.secondary
            inputs = {name: row.values.get(source) for name, source in groups.inputs.items()}
            target.add(inputs, row.weight, groups.required)

    def merge(self, other: EntityFold) -> EntityFold:
        weights = dict(self.category_weights)
        for key, weight in other.category_weights.items():
            weights[key] = weights.get(key, 0) + weight
        names = self.composites.keys() | other.composites.keys()
        value_names = self.category_values.keys() | other.category_values.keys()
        return EntityFold(
            entity_id=self.entity_id,
            entity_name=self.entity_name if self.entity_name is not None else other.entity_name,
            weight=self.weight + other.weight,
            category_values={
                n: self.category_values.get(n, WeightedMean()).merge(other.category_values.get(n, WeightedMean()))
                for n in value_names
            },
            category_weights=weights,
            composites={
                n: self.composites.get(n, WeightedMean()).merge(other.composites.get(n, WeightedMean())) for n in names
            },
            primary=self.primary.merge(other.primary),
            secondary=self.secondary.merge(other.secondary),
        )


@dataclass(frozen=True)
class CompositeRow:
    entity_id: Any
    entity_name: str | None
    weight: int
    category_values: Mapping[str, float | None]
    composites: Mapping[str, float | None]
    scores: Mapping[str, float | None] = field(default_factory=dict)

    def to_record(
        self,
        entity_column: str = "pitcher",
        name_column: str = "player_name",
        weight_column: str = "pitches",
    ) -> dict[str, Any]:
        return {
            entity_column: self.entity_id,
            name_column: self.entity_name,
            weight_column: self.weight,
            **self.category_values,
            **self.composites,
            **self.scores,
        }


# -- Query -------------------------------------------------------------------


@dataclass(frozen=True)
class LeaderboardQuery:
    min_weight: int = 500
    sort_by: str | None = None
    sort_dir: SortDirection = SortDirection.DESC
    limit: int = 100
    offset: int = 0
    game_year: int | None = None

    @classmethod
    def from_dict(
        cls,
        body: Mapping[str, Any],
        *,
        default_game_year: int | None = None,
        default_min_weight: int = 500,
        max_limit: int = MAX_LEADERBOARD_LIMIT,
    ) -> LeaderboardQuery:
        """Build a query from a leaderboard request body (``minPitches``, ``sortBy``, ...)."""
        limit = _as_int(body.get("limit"), 100)
        year = body.get("gameYear", default_game_year)
        return cls(
            min_weight=max(_as_int(body.get("minPitches"), default_min_weight), 0),
            sort_by=None if body.get("sortBy") is None else str(body["sortBy"]),
            sort_dir=SortDirection.parse(body.get("sortDir", "DESC")),
            limit=min(max(limit, 1), max_limit),
            offset=max(_as_int(body.get("offset"), 0), 0),
            game_year=None if year is None else _as_int(year, 0),
        )


def _as_float(value: Fraction | None) -> float | None:
    return None if value is None else float(value)


def _as_int(raw: object, default: int) -> int:
    if raw is None:
        return default
    try:
        return int(float(str(raw)))
    except (ValueError, OverflowError):
        return default


# -- Aggregator --------------------------------------------------------------


class LeaderboardPivotAggregator:
    def __init__(self, spec: LeaderboardSpec) -> None:
        self._spec = spec

    @property
    def spec(self) -> LeaderboardSpec:
        return self._spec

    def fold(
        self,
        rows: Iterable[CategoryAggregateRow],
        into: dict[Any, EntityFold] | None = None,
    ) -> dict[Any, EntityFold]:
        folds = {} if into is None else into
        for row in rows:
            entity = folds.get(row.entity_id)
            if entity is None:
                entity = folds[row.entity_id] = EntityFold(row.entity_id)
            entity.add(row, self._spec)
        return folds

    @staticmethod
    def merge(left: dict[Any, EntityFold], right: dict[Any, EntityFold]) -> dict[Any, EntityFold]:
        """Combine folds computed over disjoint shards of the same input."""
        merged = dict(left)
        for entity_id, fold in right.items():
            merged[entity_id] = merged[entity_id].merge(fold) if entity_id in merged else fold
        return merged

    def finalize(self, fold: EntityFold) -> CompositeRow:
        spec = self._spec
        composites = {
            c.name: round_half_up(fold.composites[c.name].mean(), c.precision) if c.name in fold.composites else None
            for c in spec.composites
        }
        category_values: dict[str, float | None] = {
            name: _as_float(acc.mean()) for name, acc in sorted(fold.category_values.items())
        }
        if spec.include_usage:
            for key, weight in sorted(fold.category_weights.items()):
                share = Fraction(100 * weight, fold.weight) if fold.weight > 0 else None
                category_values[f"{key}_usage"] = round_half_up(share, 1)
        scores: dict[str, float | None] = {}
        if spec.super_groups is not None:
            scorer = spec.super_groups.scorer
            scores[scorer.name] = scorer.score(fold.primary.means(), fold.secondary.means())
        return CompositeRow(fold.entity_id, fold.entity_name, fold.weight, category_values, composites, scores)

    def run(self, rows: Iterable[CategoryAggregateRow], query: LeaderboardQuery) -> list[dict[str, Any]]:
        """Fold, finalize, filter by total weight, sort with nulls last, and paginate."""
        spec = self._spec
        folds = self.fold(rows)
        records = [
            self.finalize(f).to_record(spec.entity_column, spec.name_column, spec.weight_column)
            for f in folds.values()
            if f.weight >= query.min_weight
        ]
        logger.debug(
            "%s leaderboard: %d of %d entities meet min weight %d",
            spec.name,
            len(records),
            len(folds),
            query.min_weight,
        )
        ordered = sort_records(records, spec.resolve_sort(query.sort_by), query.sort_dir)
        return ordered[query.offset : query.offset + query.limit]
