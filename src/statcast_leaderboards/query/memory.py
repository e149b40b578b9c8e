"""Execute an ``AggregateQuery`` over in-memory rows.

Used where rows have already been fetched (scene/player lookups, tests) and as a
reference for what the rendered SQL computes.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from statcast_leaderboards.query.evaluate import Row, evaluate_group, matches, matches_group
from statcast_leaderboards.query.expr import AggregateQuery
from statcast_leaderboards.sorting import sort_records


def execute(query: AggregateQuery, rows: Iterable[Row]) -> list[dict[str, Any]]:
    selected = [r for r in rows if query.where is None or matches(query.where, r) is True]

    groups: dict[tuple[Any, ...], list[Row]] = {}
    if not query.dimensions:
        groups[()] = selected
    for row in selected if query.dimensions else ():
        key = tuple(row.get(d.name) for d in query.dimensions)
        groups.setdefault(key, []).append(row)

    records: list[dict[str, Any]] = []
    for key, members in groups.items():
        if query.having is not None and matches_group(query.having, members) is not True:
            continue
        record: dict[str, Any] = {d.name: value for d, value in zip(query.dimensions, key, strict=True)}
        for measure in query.measures:
            record[measure.alias] = evaluate_group(measure.expr, members)
        records.append(record)

    if query.order_by is not None:
        records = sort_records(records, query.order_by.alias, query.order_by.direction)
    start = query.offset or 0
    end = None if query.limit is None else start + query.limit
    return records[start:end]
