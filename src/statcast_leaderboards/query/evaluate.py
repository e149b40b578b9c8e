"""Evaluate expression trees over in-memory event rows.

Semantics follow SQL: ``NULL`` propagates through arithmetic, predicates are
three-valued (``True``/``False``/``None``), aggregates ignore nulls and return
``None`` over an empty input, and ``ROUND`` rounds half away from zero.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping, Sequence
from functools import lru_cache
from typing import Any

from statcast_leaderboards.numeric import round_half_up
from statcast_leaderboards.query.expr import (
    AggFunc,
    Aggregate,
    And,
    Arith,
    ArithOp,
    Between,
    CaseWhen,
    CmpOp,
    Col,
    Compare,
    Concat,
    Count,
    Expr,
    InList,
    IsNull,
    Like,
    Lit,
    NullIf,
    Numeric,
    Or,
    Predicate,
    Round,
)

type Row = Mapping[str, Any]

_COMPARATORS: dict[CmpOp, Callable[[Any, Any], bool]] = {
    CmpOp.EQ: lambda a, b: a == b,
    CmpOp.GT: lambda a, b: a > b,
    CmpOp.GTE: lambda a, b: a >= b,
    CmpOp.LT: lambda a, b: a < b,
    CmpOp.LTE: lambda a, b: a <= b,
}


def evaluate_row(expr: Expr, row: Row) -> Any:
    """Evaluate a non-aggregate expression against a single row."""
    match expr:
        case Col(name=name):
            return row.get(name)
        case Count() | Aggregate():
            raise TypeError("aggregate used outside of a group")
    return _combine(expr, lambda e: evaluate_row(e, row))


def evaluate_group(expr: Expr, rows: Sequence[Row]) -> Any:
    """Evaluate an aggregate expression over the rows of one group."""
    match expr:
        case Col(name=name):
            raise TypeError(f"column {name!r} must appear in an aggregate")
        case Count():
            return _count(expr, rows)
        case Aggregate():
            return _aggregate(expr, rows)
    return _combine(expr, lambda e: evaluate_group(e, rows))


def matches(predicate: Predicate, row: Row) -> bool | None:
    return _test(predicate, lambda e: evaluate_row(e, row))


def matches_group(predicate: Predicate, rows: Sequence[Row]) -> bool | None:
    return _test(predicate, lambda e: evaluate_group(e, rows))


def _count(expr: Count, rows: Sequence[Row]) -> int:
    members = rows if expr.where is None else [r for r in rows if matches(expr.where, r) is True]
    if expr.arg is None:
        return len(members)
    values = [v for v in (evaluate_row(expr.arg, r) for r in members) if v is not None]
    return len(set(values)) if expr.distinct else len(values)


def _aggregate(expr: Aggregate, rows: Sequence[Row]) -> Any:
    values = [v for v in (evaluate_row(expr.arg, r) for r in rows) if v is not None]
    if not values:
        return None
    if expr.func is AggFunc.AVG:
        return math.fsum(values) / len(values)
    if expr.func is AggFunc.SUM:
        return sum(values) if all(isinstance(v, int) for v in values) else math.fsum(values)
    if expr.func is AggFunc.MIN:
        return min(values)
    return max(values)


def _combine(expr: Expr, ev: Callable[[Expr], Any]) -> Any:
    match expr:
        case Lit(value=value):
            return value
        case Arith(op=op, left=left, right=right):
            a, b = ev(left), ev(right)
            if a is None or b is None:
                return None
            return _arith(op, a, b)
        case NullIf(expr=inner, sentinel=sentinel):
            value = ev(inner)
            return None if value is not None and value == sentinel.value else value
        case Numeric(expr=inner):
            value = ev(inner)
            return None if value is None else float(value)
        case Round(expr=inner, digits=digits):
            return round_half_up(ev(inner), digits)
        case CaseWhen(condition=condition, then=then):
            return ev(then) if _test(condition, ev) is True else None
        case Concat(parts=parts):
            return "".join("" if v is None else str(v) for v in (ev(p) for p in parts))
    raise TypeError(f"cannot evaluate {expr!r}")


def _arith(op: ArithOp, a: Any, b: Any) -> Any:
    if op is ArithOp.ADD:
        return a + b
    if op is ArithOp.SUB:
        return a - b
    if op is ArithOp.MUL:
        return a * b
    if b == 0:
        raise ZeroDivisionError("division by zero")
    return a / b


def _test(predicate: Predicate, ev: Callable[[Expr], Any]) -> bool | None:
    match predicate:
        case Compare(left=left, op=op, right=right):
            a = ev(left)
            b = _coerce(left, ev(right))
            if a is None or b is None:
                return None
            return _COMPARATORS[op](a, b)
        case Between(column=column, low=low, high=high):
            value = ev(column)
            lo, hi = _coerce(column, low.value), _coerce(column, high.value)
            if value is None or lo is None or hi is None:
                return None
            return lo <= value <= hi
        case InList(column=column, values=values, negated=negated):
            value = ev(column)
            if value is None:
                return None
            found = value in {_coerce(column, v.value) for v in values}
            return found != negated
        case IsNull(column=column, negated=negated):
            return (ev(column) is None) != negated
        case Like(column=column, pattern=pattern):
            value = ev(column)
            if value is None:
                return None
            return _like_regex(pattern).fullmatch(str(value)) is not None
        case And(terms=terms):
            results = [_test(t, ev) for t in terms]
            if any(r is False for r in results):
                return False
            return None if any(r is None for r in results) else True
        case Or(terms=terms):
            results = [_test(t, ev) for t in terms]
            if any(r is True for r in results):
                return True
            return None if any(r is None for r in results) else False
    raise TypeError(f"cannot test {predicate!r}")


def _coerce(target: Expr, value: Any) -> Any:
    return target.type.coerce(value) if isinstance(target, Col) else value


@lru_cache(maxsize=256)
def _like_regex(pattern: str) -> re.Pattern[str]:
    parts = [".*" if ch == "%" else "." if ch == "_" else re.escape(ch) for ch in pattern]
    return re.compile("".join(parts), re.DOTALL)
