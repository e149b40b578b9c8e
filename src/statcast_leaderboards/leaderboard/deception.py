"""Standardize per-pitch-type release and movement traits against league baselines.

Produces the z-scored category rows the deception leaderboard pivots: one row per
(pitcher, pitch type) with average inputs, z-scores against pitchers of the same
throwing hand and pitch type, and per-pitch "unique" and "deception" scores.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from statcast_leaderboards.enrich.trajectory import (
    INCHES_PER_FOOT,
    horizontal_approach_angle,
    vertical_approach_angle,
)
from statcast_leaderboards.leaderboard.pivot import FASTBALL_TYPES, CategoryAggregateRow
from statcast_leaderboards.numeric import parse_finite, round_half_up

logger = logging.getLogger(__name__)

INPUTS: tuple[str, ...] = ("vaa", "haa", "vb", "hb", "ext")
EXCLUDED_PITCH_TYPES: frozenset[str] = frozenset({"PO", "IN"})
MIN_CATEGORY_PITCHES = 100
SCORE_PRECISION = 4

FASTBALL_UNIQUE_WEIGHTS: dict[str, float] = {"vaa": 0.25, "vb": 0.15, "hb": 0.20, "haa": 0.20, "ext": 0.20}
OFFSPEED_UNIQUE_WEIGHTS: dict[str, float] = {"vaa": 0.30, "vb": 0.20, "hb": 0.25, "haa": 0.25}
FASTBALL_DECEPTION_WEIGHTS: dict[str, float] = {"vaa": -0.25, "ext": 0.35, "vb": 0.20, "hb": -0.10, "haa": -0.10}
OFFSPEED_DECEPTION_WEIGHTS: dict[str, float] = {"vaa": 0.35, "ext": 0.25, "vb": 0.20, "hb": -0.10, "haa": 0.10}


@dataclass(frozen=True)
class Baseline:
    mean: float
    sd: float
    n: int

    def z_score(self, value: float) -> float | None:
        return None if self.sd == 0 else (value - self.mean) / self.sd


type BaselineKey = tuple[Any, str]


@dataclass(frozen=True)
class CategoryAverages:
    pitcher: Any
    player_name: str | None
    pitch_type: str
    pitch_name: str | None
    p_throws: str | None
    pitches: int
    averages: Mapping[str, float] = field(default_factory=dict)

    @property
    def baseline_key(self) -> BaselineKey:
        return (self.p_throws, self.pitch_type)

    @property
    def is_fastball(self) -> bool:
        return self.pitch_type in FASTBALL_TYPES


def pitch_inputs(row: Mapping[str, Any]) -> dict[str, float] | None:
    """The five inputs for one pitch, or ``None`` when any is missing."""
    vaa = parse_finite(row["vaa"]) if "vaa" in row else vertical_approach_angle(row)
    haa = parse_finite(row["haa"]) if "haa" in row else horizontal_approach_angle(row)
    pfx_z = parse_finite(row.get("pfx_z"))
    pfx_x = parse_finite(row.get("pfx_x"))
    ext = parse_finite(row.get("release_extension"))
    if vaa is None or haa is None or pfx_z is None or pfx_x is None or ext is None:
        return None
    return {"vaa": vaa, "haa": haa, "vb": pfx_z * INCHES_PER_FOOT, "hb": pfx_x * INCHES_PER_FOOT, "ext": ext}


def weighted_score(
    z_scores: Mapping[str, float | None],
    weights: Mapping[str, float],
    *,
    absolute: bool,
) -> float | None:
    total = 0.0
    for name, weight in weights.items():
        z = z_scores.get(name)
        if z is None:
            return None
        total += weight * (abs(z) if absolute else z)
    return total


class CategoryStandardizer:
    def __init__(self, min_pitches: int = MIN_CATEGORY_PITCHES) -> None:
        self._min_pitches = min_pitches

    def averages(self, rows: Iterable[Mapping[str, Any]]) -> list[CategoryAverages]:
        """Average inputs per (pitcher, pitch type) over pitches with every input present."""
        first_seen: dict[tuple[Any, str], Mapping[str, Any]] = {}
        samples: dict[tuple[Any, str], dict[str, list[float]]] = {}
        for row in rows:
            pitch_type = row.get("pitch_type")
            if pitch_type is None or pitch_type in EXCLUDED_PITCH_TYPES:
                continue
            inputs = pitch_inputs(row)
            if inputs is None:
                continue
            key = (row.get("pitcher"), str(pitch_type))
            first_seen.setdefault(key, row)
            bucket = samples.setdefault(key, {name: [] for name in INPUTS})
            for name, value in inputs.items():
                bucket[name].append(value)

        result: list[CategoryAverages] = []
        for key, bucket in samples.items():
            pitches = len(bucket["vaa"])
            if pitches < self._min_pitches:
                continue
            row = first_seen[key]
            result.append(
                CategoryAverages(
                    pitcher=key[0],
                    player_name=row.get("player_name"),
                    pitch_type=key[1],
                    pitch_name=row.get("pitch_name"),
                    p_throws=row.get("p_throws"),
                    pitches=pitches,
                    averages={name: math.fsum(values) / pitches for name, values in bucket.items()},
                )
            )
        logger.debug("Averaged %d pitcher/pitch-type categories", len(result))
        return result

    @staticmethod
    def baselines(averages: Iterable[CategoryAverages]) -> dict[BaselineKey, dict[str, Baseline]]:
        """League mean and sample standard deviation per (throwing hand, pitch type)."""
        grouped: dict[BaselineKey, list[CategoryAverages]] = {}
        for category in averages:
            grouped.setdefault(category.baseline_key, []).append(category)

        baselines: dict[BaselineKey, dict[str, Baseline]] = {}
        for key, members in grouped.items():
            per_input: dict[str, Baseline] = {}
            for name in INPUTS:
                values = np.array(sorted(m.averages[name] for m in members if name in m.averages))
                if len(values) < 2:
                    continue
                per_input[name] = Baseline(float(np.mean(values)), float(np.std(values, ddof=1)), len(values))
            baselines[key] = per_input
        return baselines

    def standardize(self, rows: Iterable[Mapping[str, Any]]) -> list[CategoryAggregateRow]:
        averages = self.averages(rows)
        baselines = self.baselines(averages)
        return [self.score(category, baselines.get(category.baseline_key, {})) for category in averages]

    @staticmethod
    def score(category: CategoryAverages, baseline: Mapping[str, Baseline]) -> CategoryAggregateRow:
        z_scores: dict[str, float | None] = {}
        for name in INPUTS:
            value = category.averages.get(name)
            reference = baseline.get(name)
            z_scores[name] = None if value is None or reference is None else reference.z_score(value)

        if category.is_fastball:
            unique = weighted_score(z_scores, FASTBALL_UNIQUE_WEIGHTS, absolute=True)
            deception = weighted_score(z_scores, FASTBALL_DECEPTION_WEIGHTS, absolute=False)
        else:
            unique = weighted_score(z_scores, OFFSPEED_UNIQUE_WEIGHTS, absolute=True)
            deception = weighted_score(z_scores, OFFSPEED_DECEPTION_WEIGHTS, absolute=False)

        values: dict[str, float | None] = {}
        for name in INPUTS:
            values[f"avg_{name}"] = round_half_up(category.averages.get(name), SCORE_PRECISION)
        for name in INPUTS:
            values[f"z_{name}"] = round_half_up(z_scores[name], SCORE_PRECISION)
        values["unique_score"] = round_half_up(unique, SCORE_PRECISION)
        values["deception_score"] = round_half_up(deception, SCORE_PRECISION)
        return CategoryAggregateRow(
            entity_id=category.pitcher,
            entity_name=category.player_name,
            category=category.pitch_type,
            weight=category.pitches,
            values=values,
        )
