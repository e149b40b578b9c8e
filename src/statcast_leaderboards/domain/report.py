from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

DEFAULT_REPORT_METRICS: tuple[str, ...] = ("pitches", "avg_velo", "whiff_pct")
DEFAULT_REPORT_GROUP_BY: tuple[str, ...] = ("player_name",)


class SortDirection(enum.Enum):
    ASC = "ASC"
    DESC = "DESC"

    @classmethod
    def parse(cls, raw: object) -> SortDirection:
        """Anything other than ``ASC`` (case-insensitive) sorts descending."""
        return cls.ASC if str(raw).strip().upper() == "ASC" else cls.DESC


class FilterOperator(enum.Enum):
    IN = "in"
    GTE = "gte"
    LTE = "lte"
    EQ = "eq"
    BETWEEN = "between"

    @classmethod
    def parse(cls, raw: object) -> FilterOperator | None:
        try:
            return cls(str(raw))
        except ValueError:
            return None


@dataclass(frozen=True)
class FilterSpec:
    column: str
    op: str
    value: Any = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> FilterSpec:
        return cls(column=str(raw.get("column", "")), op=str(raw.get("op", "")), value=raw.get("value"))


@dataclass(frozen=True)
class ReportSpec:
    metrics: tuple[str, ...] = DEFAULT_REPORT_METRICS
    group_by: tuple[str, ...] = DEFAULT_REPORT_GROUP_BY
    filters: tuple[FilterSpec, ...] = ()
    sort_by: str = "pitches"
    sort_dir: SortDirection = SortDirection.DESC
    limit: int = 100
    min_sample: int = 100

    @classmethod
    def from_dict(
        cls,
        body: dict[str, Any],
        *,
        default_limit: int = 100,
        default_min_sample: int = 100,
    ) -> ReportSpec:
        """Build a spec from a request body using the report endpoint's field names."""
        return cls(
            metrics=tuple(str(m) for m in body.get("metrics", DEFAULT_REPORT_METRICS)),
            group_by=tuple(str(g) for g in body.get("groupBy", DEFAULT_REPORT_GROUP_BY)),
            filters=tuple(FilterSpec.from_dict(f) for f in body.get("filters", ())),
            sort_by=str(body.get("sortBy", "pitches")),
            sort_dir=SortDirection.parse(body.get("sortDir", "DESC")),
            limit=_as_int(body.get("limit"), default_limit),
            min_sample=_as_int(body.get("minPitches"), default_min_sample),
        )


def _as_int(raw: object, default: int) -> int:
    if raw is None:
        return default
    try:
        return int(float(str(raw)))
    except (ValueError, OverflowError):
        return default
