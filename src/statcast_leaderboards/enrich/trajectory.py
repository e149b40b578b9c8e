"""Row-level derived fields computed from measured pitch kinematics.

Enrichment never mutates a row: each enriched row is a new dict holding the
original columns plus the derived ones. A derived field that cannot be computed
(missing input, no real flight time) is ``None``, never zero.
"""

from __future__ import annotations

import enum
import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from statcast_leaderboards.numeric import parse_finite, round_half_up

logger = logging.getLogger(__name__)

PLATE_DISTANCE_FT = 50.0
ZONE_HALF_WIDTH_FT = 0.83
INCHES_PER_FOOT = 12

type Row = Mapping[str, Any]

DERIVED_FIELDS: tuple[str, ...] = (
    "vaa",
    "haa",
    "pfx_x_in",
    "pfx_z_in",
    "vs_team",
    "batter_name",
    "count",
    "base_situation",
    "brink",
    "cluster",
    "hdev",
    "vdev",
)


class HalfInning(enum.Enum):
    TOP = "Top"
    BOTTOM = "Bot"

    @classmethod
    def parse(cls, raw: object) -> HalfInning | None:
        try:
            return cls(raw)
        except ValueError:
            return None

    @property
    def batting_team_column(self) -> str:
        """The visiting team bats in the top half, the home team in the bottom half."""
        match self:
            case HalfInning.TOP:
                return "away_team"
            case HalfInning.BOTTOM:
                return "home_team"


@dataclass(frozen=True)
class LocationCentroid:
    x: float
    z: float


type CentroidKey = tuple[Any, Any]


def _numbers(row: Row, *names: str) -> list[float] | None:
    values = [parse_finite(row.get(name)) for name in names]
    if any(v is None for v in values):
        return None
    return [v for v in values if v is not None]


def time_to_plate(vy0: float, ay: float, extension: float, plate_distance: float = PLATE_DISTANCE_FT) -> float | None:
    """Flight time from release to the front of home plate, or ``None`` when there is no real root."""
    if ay == 0:
        return None
    discriminant = vy0 * vy0 - 2 * ay * (plate_distance - extension)
    if discriminant < 0:
        return None
    return (-vy0 - math.sqrt(discriminant)) / ay


def _approach_angle(row: Row, component: str, plate_distance: float) -> float | None:
    v, a = ("vz0", "az") if component == "z" else ("vx0", "ax")
    values = _numbers(row, v, "vy0", a, "ay", "release_extension")
    if values is None:
        return None
    v0, vy0, a0, ay, extension = values
    t = time_to_plate(vy0, ay, extension, plate_distance)
    if t is None:
        return None
    return math.degrees(math.atan2(v0 + a0 * t, -(vy0 + ay * t)))


def vertical_approach_angle(row: Row, plate_distance: float = PLATE_DISTANCE_FT) -> float | None:
    return _approach_angle(row, "z", plate_distance)


def horizontal_approach_angle(row: Row, plate_distance: float = PLATE_DISTANCE_FT) -> float | None:
    return _approach_angle(row, "x", plate_distance)


def feet_to_inches(value: Any) -> float | None:
    feet = parse_finite(value)
    return None if feet is None else round_half_up(feet * INCHES_PER_FOOT, 1)


def batting_team(row: Row) -> str | None:
    half = HalfInning.parse(row.get("inning_topbot"))
    return None if half is None else row.get(half.batting_team_column)


def count_label(row: Row) -> str | None:
    balls, strikes = row.get("balls"), row.get("strikes")
    if balls is None or strikes is None:
        return None
    return f"{int(balls)}-{int(strikes)}"


_BASE_SITUATIONS: dict[tuple[bool, bool, bool], str] = {
    (False, False, False): "Bases Empty",
    (True, False, False): "Runner on 1st",
    (False, True, False): "Runner on 2nd",
    (False, False, True): "Runner on 3rd",
    (True, True, False): "Runners 1st & 2nd",
    (True, False, True): "Runners 1st & 3rd",
    (False, True, True): "Runners 2nd & 3rd",
    (True, True, True): "Bases Loaded",
}


def base_situation(row: Row) -> str:
    occupied = (row.get("on_1b") is not None, row.get("on_2b") is not None, row.get("on_3b") is not None)
    return _BASE_SITUATIONS[occupied]


def brink(row: Row) -> float | None:
    """Signed distance in inches to the nearest strike-zone edge; negative outside the zone."""
    values = _numbers(row, "plate_x", "plate_z", "sz_top", "sz_bot")
    if values is None:
        return None
    x, z, top, bottom = values
    nearest = min(x + ZONE_HALF_WIDTH_FT, ZONE_HALF_WIDTH_FT - x, z - bottom, top - z)
    return round_half_up(nearest * INCHES_PER_FOOT, 1)


def location_centroids(rows: Iterable[Row]) -> dict[CentroidKey, LocationCentroid]:
    """Mean plate location per (season, pitch name) across every pitcher in ``rows``."""
    sums: dict[CentroidKey, list[float]] = {}
    for row in rows:
        location = _numbers(row, "plate_x", "plate_z")
        if location is None or row.get("pitch_name") is None:
            continue
        bucket = sums.setdefault((row.get("game_year"), row["pitch_name"]), [0.0, 0.0, 0])
        bucket[0] += location[0]
        bucket[1] += location[1]
        bucket[2] += 1
    return {key: LocationCentroid(sx / n, sz / n) for key, (sx, sz, n) in sums.items()}


type Deviation = tuple[float | None, float | None, float | None]


def centroid_deviation(row: Row, centroid: LocationCentroid | None) -> Deviation | None:
    """``(cluster, hdev, vdev)`` in inches from the pitch type's centroid, to one decimal.

    ``hdev`` is positive when the pitch lands left of the centroid (catcher's view) and
    ``vdev`` is positive when it lands above it.
    """
    location = _numbers(row, "plate_x", "plate_z")
    if location is None or centroid is None:
        return None
    plate_x, plate_z = location
    hdev = (centroid.x - plate_x) * INCHES_PER_FOOT
    vdev = (plate_z - centroid.z) * INCHES_PER_FOOT
    return round_half_up(math.hypot(hdev, vdev), 1), round_half_up(hdev, 1), round_half_up(vdev, 1)


class TrajectoryEnricher:
    def __init__(
        self,
        plate_distance: float = PLATE_DISTANCE_FT,
        batter_names: Mapping[int, str] | None = None,
        centroids: Mapping[CentroidKey, LocationCentroid] | None = None,
    ) -> None:
        self._plate_distance = plate_distance
        self._batter_names = batter_names or {}
        self._centroids = centroids

    def enrich_row(self, row: Row, centroids: Mapping[CentroidKey, LocationCentroid] | None = None) -> dict[str, Any]:
        lookup = centroids if centroids is not None else self._centroids or {}
        deviation = centroid_deviation(row, lookup.get((row.get("game_year"), row.get("pitch_name"))))
        cluster, hdev, vdev = deviation if deviation is not None else (None, None, None)
        batter = row.get("batter")
        derived = {
            "vaa": vertical_approach_angle(row, self._plate_distance),
            "haa": horizontal_approach_angle(row, self._plate_distance),
            "pfx_x_in": feet_to_inches(row.get("pfx_x")),
            "pfx_z_in": feet_to_inches(row.get("pfx_z")),
            "vs_team": batting_team(row),
            "batter_name": self._batter_names.get(batter) if batter is not None else None,
            "count": count_label(row),
            "base_situation": base_situation(row),
            "brink": brink(row),
            "cluster": cluster,
            "hdev": hdev,
            "vdev": vdev,
        }
        return {**row, **derived}

    def enrich(self, rows: Iterable[Row]) -> list[dict[str, Any]]:
        """Enrich a batch; centroids come from the batch itself unless supplied up front."""
        batch = list(rows)
        centroids = self._centroids if self._centroids is not None else location_centroids(batch)
        enriched = [self.enrich_row(row, centroids) for row in batch]
        missing = sum(1 for r in enriched if r["vaa"] is None)
        if missing:
            logger.debug("Approach angles undefined for %d of %d rows", missing, len(enriched))
        return enriched
