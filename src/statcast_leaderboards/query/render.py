"""Render expression trees and aggregate queries to SQL text.

The hosted store is reached only through parameter-free textual queries, so every
literal is embedded here: strings with single quotes doubled, numbers only when
finite.
"""

from __future__ import annotations

import enum
import math

from statcast_leaderboards.query.expr import (
    Aggregate,
    AggregateQuery,
    And,
    Arith,
    Between,
    CaseWhen,
    Col,
    Compare,
    Concat,
    Count,
    Expr,
    InList,
    IsNull,
    Like,
    Lit,
    Node,
    NullIf,
    Numeric,
    Or,
    Predicate,
    Round,
)


class Dialect(enum.Enum):
    POSTGRES = "postgres"
    SQLITE = "sqlite"


def quote_literal(value: str | int | float) -> str:
    if isinstance(value, bool):
        raise TypeError("boolean literals are not supported")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"non-finite numeric literal: {value!r}")
        return repr(value)
    return "'" + value.replace("'", "''") + "'"


def render(node: Node, dialect: Dialect = Dialect.POSTGRES) -> str:
    match node:
        case Col(name=name):
            return name
        case Lit(value=value):
            return quote_literal(value)
        case Count():
            return _render_count(node, dialect)
        case Aggregate(func=func, arg=arg):
            return f"{func.value}({render(arg, dialect)})"
        case Arith(op=op, left=left, right=right):
            return f"{_operand(left, dialect)} {op.value} {_operand(right, dialect)}"
        case NullIf(expr=expr, sentinel=sentinel):
            return f"NULLIF({render(expr, dialect)}, {render(sentinel, dialect)})"
        case Numeric(expr=expr):
            return _render_numeric(expr, dialect)
        case Round(expr=expr, digits=digits):
            inner = expr if dialect is Dialect.SQLITE or isinstance(expr, Numeric) else Numeric(expr)
            return f"ROUND({render(inner, dialect)}, {digits})"
        case CaseWhen(condition=condition, then=then):
            return f"CASE WHEN {render(condition, dialect)} THEN {render(then, dialect)} END"
        case Concat(parts=parts):
            if dialect is Dialect.SQLITE:
                return "(" + " || ".join(f"IFNULL({render(p, dialect)}, '')" for p in parts) + ")"
            return "CONCAT(" + ", ".join(render(p, dialect) for p in parts) + ")"
        case Compare(left=left, op=op, right=right):
            return f"{render(left, dialect)} {op.value} {render(right, dialect)}"
        case Between(column=column, low=low, high=high):
            return f"{render(column, dialect)} BETWEEN {render(low, dialect)} AND {render(high, dialect)}"
        case InList(column=column, values=values, negated=negated):
            keyword = "NOT IN" if negated else "IN"
            return f"{render(column, dialect)} {keyword} ({','.join(render(v, dialect) for v in values)})"
        case IsNull(column=column, negated=negated):
            return f"{render(column, dialect)} IS {'NOT NULL' if negated else 'NULL'}"
        case Like(column=column, pattern=pattern):
            return f"{render(column, dialect)} LIKE {quote_literal(pattern)}"
        case And(terms=terms):
            return " AND ".join(_term(t, dialect) for t in terms)
        case Or(terms=terms):
            return " OR ".join(_term(t, dialect) for t in terms)
    raise TypeError(f"cannot render {node!r}")


def render_query(query: AggregateQuery, dialect: Dialect = Dialect.POSTGRES) -> str:
    """Return the full ``SELECT ... GROUP BY ... ORDER BY ... LIMIT`` text for a query."""
    select_parts = [render(d, dialect) for d in query.dimensions]
    select_parts.extend(f"{render(m.expr, dialect)} AS {m.alias}" for m in query.measures)

    parts = [f"SELECT {', '.join(select_parts)}", f"FROM {query.table}"]
    if query.where is not None:
        parts.append(f"WHERE {render(query.where, dialect)}")
    if query.dimensions:
        parts.append(f"GROUP BY {', '.join(render(d, dialect) for d in query.dimensions)}")
    if query.having is not None:
        parts.append(f"HAVING {render(query.having, dialect)}")
    if query.order_by is not None:
        parts.append(f"ORDER BY {query.order_by.alias} {query.order_by.direction.value} NULLS LAST")
    if query.limit is not None:
        parts.append(f"LIMIT {query.limit}")
    if query.offset:
        parts.append(f"OFFSET {query.offset}")
    return " ".join(parts)


def _render_count(node: Count, dialect: Dialect) -> str:
    if node.arg is None:
        body = "COUNT(*)"
    elif node.distinct:
        body = f"COUNT(DISTINCT {render(node.arg, dialect)})"
    else:
        body = f"COUNT({render(node.arg, dialect)})"
    if node.where is not None:
        body += f" FILTER (WHERE {render(node.where, dialect)})"
    return body


def _render_numeric(expr: Expr, dialect: Dialect) -> str:
    inner = render(expr, dialect)
    if dialect is Dialect.SQLITE:
        return f"CAST({inner} AS REAL)"
    if isinstance(expr, (Arith, Count)):
        return f"({inner})::numeric"
    return f"{inner}::numeric"


def _operand(expr: Expr, dialect: Dialect) -> str:
    text = render(expr, dialect)
    return f"({text})" if isinstance(expr, Arith) else text


def _term(predicate: Predicate, dialect: Dialect) -> str:
    text = render(predicate, dialect)
    return f"({text})" if isinstance(predicate, (And, Or)) else text
