"""Typed expression tree for aggregate queries over event rows.

Metric definitions and compiled reports are built from these nodes; nothing here
knows about a particular SQL dialect. ``render`` turns a tree into query text and
``evaluate`` computes it over in-memory rows.
"""

from __future__ import annotations

import enum
from collections.abc import Iterator
from dataclasses import dataclass

from statcast_leaderboards.domain.event import EVENT_COLUMNS, ColumnType
from statcast_leaderboards.domain.report import SortDirection


class AggFunc(enum.Enum):
    AVG = "AVG"
    SUM = "SUM"
    MIN = "MIN"
    MAX = "MAX"


class CmpOp(enum.Enum):
    EQ = "="
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="


class ArithOp(enum.Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"


# -- Value expressions -------------------------------------------------------


@dataclass(frozen=True)
class Col:
    name: str
    type: ColumnType

    def eq(self, value: str | int | float) -> Compare:
        return Compare(self, CmpOp.EQ, Lit(value))

    def gt(self, value: int | float) -> Compare:
        return Compare(self, CmpOp.GT, Lit(value))

    def gte(self, value: int | float) -> Compare:
        return Compare(self, CmpOp.GTE, Lit(value))

    def lte(self, value: int | float) -> Compare:
        return Compare(self, CmpOp.LTE, Lit(value))

    def between(self, low: str | int | float, high: str | int | float) -> Between:
        return Between(self, Lit(low), Lit(high))

    def is_in(self, *values: str | int | float) -> InList:
        return InList(self, tuple(Lit(v) for v in values))

    def not_in(self, *values: str | int | float) -> InList:
        return InList(self, tuple(Lit(v) for v in values), negated=True)

    def is_null(self) -> IsNull:
        return IsNull(self)

    def is_not_null(self) -> IsNull:
        return IsNull(self, negated=True)

    def like(self, pattern: str) -> Like:
        return Like(self, pattern)

    def contains(self, fragment: str) -> Like:
        return Like(self, f"%{fragment}%")


@dataclass(frozen=True)
class Lit:
    value: str | int | float


@dataclass(frozen=True)
class Count:
    arg: Expr | None = None
    distinct: bool = False
    where: Predicate | None = None


@dataclass(frozen=True)
class Aggregate:
    func: AggFunc
    arg: Expr


@dataclass(frozen=True)
class Arith:
    op: ArithOp
    left: Expr
    right: Expr


@dataclass(frozen=True)
class NullIf:
    expr: Expr
    sentinel: Lit = Lit(0)


@dataclass(frozen=True)
class Numeric:
    expr: Expr


@dataclass(frozen=True)
class Round:
    expr: Expr
    digits: int


@dataclass(frozen=True)
class CaseWhen:
    condition: Predicate
    then: Expr


@dataclass(frozen=True)
class Concat:
    parts: tuple[Expr, ...]


# -- Predicates --------------------------------------------------------------


@dataclass(frozen=True)
class Compare:
    left: Expr
    op: CmpOp
    right: Expr


@dataclass(frozen=True)
class Between:
    column: Col
    low: Lit
    high: Lit


@dataclass(frozen=True)
class InList:
    column: Col
    values: tuple[Lit, ...]
    negated: bool = False


@dataclass(frozen=True)
class IsNull:
    column: Col
    negated: bool = False


@dataclass(frozen=True)
class Like:
    column: Col
    pattern: str


@dataclass(frozen=True)
class And:
    terms: tuple[Predicate, ...]


@dataclass(frozen=True)
class Or:
    terms: tuple[Predicate, ...]


type Expr = Col | Lit | Count | Aggregate | Arith | NullIf | Numeric | Round | CaseWhen | Concat
type Predicate = Compare | Between | InList | IsNull | Like | And | Or
type Node = Expr | Predicate


# -- Query record ------------------------------------------------------------


@dataclass(frozen=True)
class Measure:
    expr: Expr
    alias: str


@dataclass(frozen=True)
class OrderBy:
    alias: str
    direction: SortDirection = SortDirection.DESC


@dataclass(frozen=True)
class AggregateQuery:
    table: str
    dimensions: tuple[Col, ...]
    measures: tuple[Measure, ...]
    where: Predicate | None = None
    having: Predicate | None = None
    order_by: OrderBy | None = None
    limit: int | None = None
    offset: int | None = None


# -- Builders ----------------------------------------------------------------


def col(name: str) -> Col:
    """Look up a typed event column; raises ``KeyError`` for names outside the schema."""
    return Col(name, EVENT_COLUMNS[name])


def count(where: Predicate | None = None) -> Count:
    return Count(where=where)


def count_distinct(expr: Expr) -> Count:
    return Count(arg=expr, distinct=True)


def avg(expr: Expr) -> Aggregate:
    return Aggregate(AggFunc.AVG, expr)


def max_(expr: Expr) -> Aggregate:
    return Aggregate(AggFunc.MAX, expr)


def sum_(expr: Expr) -> Aggregate:
    return Aggregate(AggFunc.SUM, expr)


def times(expr: Expr, factor: int | float) -> Arith:
    return Arith(ArithOp.MUL, expr, Lit(factor))


def weighted_sum(*terms: tuple[int, Expr]) -> Expr:
    """``w1 * e1 + w2 * e2 + ...``; a weight of 1 is left implicit."""
    parts: list[Expr] = [expr if weight == 1 else Arith(ArithOp.MUL, Lit(weight), expr) for weight, expr in terms]
    total = parts[0]
    for part in parts[1:]:
        total = Arith(ArithOp.ADD, total, part)
    return total


def ratio(numerator: Expr, denominator: Expr) -> Arith:
    return Arith(ArithOp.DIV, Numeric(numerator), NullIf(denominator))


def percentage(numerator: Expr, denominator: Expr) -> Arith:
    return Arith(ArithOp.DIV, Arith(ArithOp.MUL, Lit(100.0), numerator), NullIf(denominator))


def all_of(*terms: Predicate) -> Predicate:
    return terms[0] if len(terms) == 1 else And(terms)


def any_of(*terms: Predicate) -> Predicate:
    return terms[0] if len(terms) == 1 else Or(terms)


# -- Traversal ---------------------------------------------------------------


def walk(node: Node) -> Iterator[Node]:
    """Yield ``node`` and every node beneath it, depth first."""
    yield node
    match node:
        case Count(arg=arg, where=where):
            if arg is not None:
                yield from walk(arg)
            if where is not None:
                yield from walk(where)
        case Aggregate(arg=arg) | NullIf(expr=arg) | Numeric(expr=arg) | Round(expr=arg):
            yield from walk(arg)
        case Arith(left=left, right=right) | Compare(left=left, right=right):
            yield from walk(left)
            yield from walk(right)
        case CaseWhen(condition=condition, then=then):
            yield from walk(condition)
            yield from walk(then)
        case Concat(parts=parts):
            for part in parts:
                yield from walk(part)
        case And(terms=terms) | Or(terms=terms):
            for term in terms:
                yield from walk(term)
        case Between(column=column) | InList(column=column) | IsNull(column=column) | Like(column=column):
            yield column


def referenced_columns(node: Node) -> frozenset[str]:
    return frozenset(n.name for n in walk(node) if isinstance(n, Col))
