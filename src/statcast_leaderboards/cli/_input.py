from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pandas as pd

logger = logging.getLogger(__name__)


def load_rows(path: Path) -> list[dict[str, Any]]:
    """Read a CSV, Parquet, JSON or JSON-lines file into row dicts with missing values as ``None``."""
    suffix = path.suffix.lower()
    if suffix == ".parquet":
        df = pd.read_parquet(path)
    elif suffix == ".jsonl":
        df = pd.read_json(path, lines=True)
    elif suffix == ".json":
        df = pd.read_json(path)
    else:
        df = pd.read_csv(path)
    df = df.astype(object).where(pd.notna(df), None)
    logger.debug("Loaded %d rows from %s", len(df), path)
    return df.to_dict(orient="records")


def write_rows(rows: Sequence[dict[str, Any]], path: Path) -> None:
    df = pd.DataFrame(list(rows))
    suffix = path.suffix.lower()
    if suffix == ".parquet":
        df.to_parquet(path, index=False)
    elif suffix == ".jsonl":
        df.to_json(path, orient="records", lines=True)
    elif suffix == ".json":
        df.to_json(path, orient="records")
    else:
        df.to_csv(path, index=False)
    logger.info("Wrote %d rows to %s", len(df), path)


def load_name_lookup(path: Path, id_column: str = "id", name_column: str = "name") -> dict[int, str]:
    """Map player ids to display names from a two-column lookup file."""
    lookup: dict[int, str] = {}
    for row in load_rows(path):
        player_id, name = row.get(id_column), row.get(name_column)
        if player_id is not None and name is not None:
            lookup[int(player_id)] = str(name)
    return lookup
