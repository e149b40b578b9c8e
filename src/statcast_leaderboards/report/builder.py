"""Compile a ``ReportSpec`` into a single grouped aggregate query.

Metrics and group-by dimensions are validated strictly: an unknown name fails the
whole report. Filters are lenient: a filter on a column outside the allow-list, with
an unsupported operator, or with a non-finite numeric bound is dropped and the rest
of the report is still compiled.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from statcast_leaderboards.domain.errors import (
    EngineError,
    InvalidFilterOperator,
    InvalidNumericLiteral,
    UnknownDimension,
    UnknownMetric,
    unknown_dimension,
)
from statcast_leaderboards.domain.event import EVENT_TABLE
from statcast_leaderboards.domain.report import FilterOperator, FilterSpec, ReportSpec
from statcast_leaderboards.domain.result import Err, Ok, Result, collect
from statcast_leaderboards.metrics.allow_lists import FILTER_COLUMNS, GROUP_DIMENSIONS
from statcast_leaderboards.metrics.library import DEFAULT_LIBRARY, MetricLibrary
from statcast_leaderboards.numeric import parse_finite
from statcast_leaderboards.query.expr import (
    AggregateQuery,
    CmpOp,
    Col,
    Compare,
    Lit,
    Measure,
    OrderBy,
    Predicate,
    all_of,
    col,
    count,
)
from statcast_leaderboards.query.render import Dialect, render_query

logger = logging.getLogger(__name__)

MAX_REPORT_LIMIT = 1000


@dataclass(frozen=True)
class CompiledReport:
    sql: str
    query: AggregateQuery
    metrics: tuple[str, ...]
    group_by: tuple[str, ...]
    sort_by: str | None
    applied_filters: tuple[FilterSpec, ...] = ()
    dropped_filters: tuple[FilterSpec, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Echo of the compiled request, shaped like the report endpoint's response metadata."""
        return {"sql": self.sql, "metrics": list(self.metrics), "groupBy": list(self.group_by)}


class ReportQueryBuilder:
    def __init__(
        self,
        library: MetricLibrary = DEFAULT_LIBRARY,
        *,
        dialect: Dialect = Dialect.POSTGRES,
        group_dimensions: frozenset[str] = GROUP_DIMENSIONS,
        filter_columns: frozenset[str] = FILTER_COLUMNS,
        max_limit: int = MAX_REPORT_LIMIT,
        table: str = EVENT_TABLE,
    ) -> None:
        self._library = library
        self._dialect = dialect
        self._group_dimensions = group_dimensions
        self._filter_columns = filter_columns
        self._max_limit = max_limit
        self._table = table

    def build(self, spec: ReportSpec) -> Result[CompiledReport, UnknownMetric | UnknownDimension]:
        metric_names = tuple(dict.fromkeys(spec.metrics))
        resolved = collect(self._library.resolve(name) for name in metric_names)
        if isinstance(resolved, Err):
            return resolved
        definitions = resolved.value

        group_by = tuple(dict.fromkeys(spec.group_by))
        dimensions: list[Col] = []
        for name in group_by:
            if name not in self._group_dimensions:
                return Err(unknown_dimension(name))
            dimensions.append(col(name))

        predicates: list[Predicate] = []
        applied: list[FilterSpec] = []
        dropped: list[FilterSpec] = []
        for spec_filter in spec.filters:
            match self.compile_filter(spec_filter):
                case Ok(predicate):
                    predicates.append(predicate)
                    applied.append(spec_filter)
                case Err(error):
                    _log_dropped_filter(spec_filter, error)
                    dropped.append(spec_filter)

        sort_by = self._resolve_sort(spec.sort_by, metric_names)
        query = AggregateQuery(
            table=self._table,
            dimensions=tuple(dimensions),
            measures=tuple(Measure(d.rounded, d.name) for d in definitions),
            where=all_of(*predicates) if predicates else None,
            having=Compare(count(), CmpOp.GTE, Lit(spec.min_sample)) if spec.min_sample > 0 else None,
            order_by=OrderBy(sort_by, spec.sort_dir) if sort_by is not None else None,
            limit=self.clamp_limit(spec.limit),
        )
        return Ok(
            CompiledReport(
                sql=render_query(query, self._dialect),
                query=query,
                metrics=metric_names,
                group_by=group_by,
                sort_by=sort_by,
                applied_filters=tuple(applied),
                dropped_filters=tuple(dropped),
            )
        )

    def compile_filter(self, spec_filter: FilterSpec) -> Result[Predicate, EngineError]:
        """Translate one filter into a predicate, or return why it cannot be applied."""
        column_name = spec_filter.column
        if column_name not in self._filter_columns:
            return Err(EngineError(message=f"Column not filterable: {column_name}"))
        column = col(column_name)
        value = spec_filter.value
        op = FilterOperator.parse(spec_filter.op)

        if op is FilterOperator.IN and _is_list(value) and len(value) > 0:
            return Ok(column.is_in(*(_text(v) for v in value)))
        if op in (FilterOperator.GTE, FilterOperator.LTE):
            bound = parse_finite(value)
            if bound is None:
                return Err(
                    InvalidNumericLiteral(
                        message=f"Invalid numeric value for {column_name}: {value!r}",
                        column=column_name,
                        raw_value=str(value),
                    )
                )
            return Ok(column.gte(bound) if op is FilterOperator.GTE else column.lte(bound))
        if op is FilterOperator.EQ:
            return Ok(column.eq(_text(value)))
        if op is FilterOperator.BETWEEN and _is_list(value) and len(value) == 2:
            return Ok(column.between(_text(value[0]), _text(value[1])))
        return Err(
            InvalidFilterOperator(
                message=f"Unsupported filter operator for {column_name}: {spec_filter.op!r}",
                column=column_name,
                operator=spec_filter.op,
            )
        )

    def clamp_limit(self, limit: int) -> int:
        return max(1, min(limit, self._max_limit))

    def _resolve_sort(self, requested: str, metric_names: Sequence[str]) -> str | None:
        if requested in metric_names:
            return requested
        fallback = metric_names[0] if metric_names else None
        logger.debug("Sort key %r is not a requested metric; sorting by %r", requested, fallback)
        return fallback


def _log_dropped_filter(spec_filter: FilterSpec, error: EngineError) -> None:
    if isinstance(error, InvalidNumericLiteral):
        logger.warning("Dropping filter on %s: %s", spec_filter.column, error.message)
    else:
        logger.debug("Dropping filter on %s: %s", spec_filter.column, error.message)


def _is_list(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _text(value: Any) -> str:
    """String form of a filter literal; whole floats print without a fractional part."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
