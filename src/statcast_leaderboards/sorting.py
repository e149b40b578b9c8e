from __future__ import annotations

import functools
import unicodedata
from collections.abc import Iterable, Mapping
from typing import Any

from statcast_leaderboards.domain.report import SortDirection


def collation_key(text: str) -> tuple[str, str, str]:
    """Sort key approximating a root-locale collation.

    Base letters decide first, ignoring accents and case, so ``"Álvarez"`` sits
    between ``"abreu"`` and ``"Bell"``. Accents break ties next, then case with
    lower case first.
    """
    folded = text.casefold()
    decomposed = unicodedata.normalize("NFD", folded)
    base = "".join(c for c in decomposed if unicodedata.category(c) != "Mn")
    return base, folded, text.swapcase()


def _sign(diff: Any) -> int:
    return (diff > 0) - (diff < 0)


def compare_values(a: Any, b: Any, direction: SortDirection) -> int:
    """Order two sort-key values; nulls always sort after non-null values.

    Strings compare by ``collation_key``, numbers by difference.
    """
    if a is None and b is None:
        return 0
    if a is None:
        return 1
    if b is None:
        return -1
    sign = 1 if direction is SortDirection.ASC else -1
    if isinstance(a, str) or isinstance(b, str):
        left, right = collation_key(str(a)), collation_key(str(b))
        return sign * ((left > right) - (left < right))
    return sign * _sign(a - b)


def sort_records[R: Mapping[str, Any]](records: Iterable[R], key: str, direction: SortDirection) -> list[R]:
    """Stable sort of records by ``key`` with nulls last in either direction."""
    return sorted(
        records,
        key=functools.cmp_to_key(lambda a, b: compare_values(a.get(key), b.get(key), direction)),
    )
