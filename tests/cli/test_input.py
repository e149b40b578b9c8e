import json
from pathlib import Path

import pandas as pd
import pytest

from statcast_leaderboards.cli._input import load_name_lookup, load_rows, write_rows

_ROWS = [
    {"pitcher": 1, "pitch_type": "FF", "release_speed": 95.5, "on_1b": None},
    {"pitcher": 2, "pitch_type": "SL", "release_speed": None, "on_1b": 123},
]


class TestLoadRows:
    def test_csv_missing_values_are_none(self, tmp_path: Path) -> None:
        path = tmp_path / "rows.csv"
        pd.DataFrame(_ROWS).to_csv(path, index=False)
        rows = load_rows(path)
        assert rows[0]["release_speed"] == 95.5
        assert rows[1]["release_speed"] is None
        assert rows[0]["on_1b"] is None
        assert rows[1]["pitch_type"] == "SL"

    def test_json_lines(self, tmp_path: Path) -> None:
        path = tmp_path / "rows.jsonl"
        path.write_text("\n".join(json.dumps(r) for r in _ROWS))
        rows = load_rows(path)
        assert [r["pitcher"] for r in rows] == [1, 2]
        assert rows[1]["release_speed"] is None

    def test_json(self, tmp_path: Path) -> None:
        path = tmp_path / "rows.json"
        path.write_text(json.dumps(_ROWS))
        assert [r["pitch_type"] for r in load_rows(path)] == ["FF", "SL"]


class TestWriteRows:
    @pytest.mark.parametrize("suffix", [".csv", ".json", ".jsonl", ".parquet"])
    def test_written_rows_load_back(self, tmp_path: Path, suffix: str) -> None:
        path = tmp_path / f"rows{suffix}"
        write_rows([{"pitcher": 1, "vaa": -4.8}, {"pitcher": 2, "vaa": None}], path)
        rows = load_rows(path)
        assert [r["pitcher"] for r in rows] == [1, 2]
        assert rows[0]["vaa"] == -4.8
        assert rows[1]["vaa"] is None


class TestLoadNameLookup:
    def test_maps_ids_to_names(self, tmp_path: Path) -> None:
        path = tmp_path / "names.csv"
        pd.DataFrame([{"id": 10, "name": "Judge, Aaron"}, {"id": 11, "name": None}]).to_csv(path, index=False)
        assert load_name_lookup(path) == {10: "Judge, Aaron"}

    def test_custom_columns(self, tmp_path: Path) -> None:
        path = tmp_path / "names.csv"
        pd.DataFrame([{"key_mlbam": 10, "full_name": "Aaron Judge"}]).to_csv(path, index=False)
        assert load_name_lookup(path, id_column="key_mlbam", name_column="full_name") == {10: "Aaron Judge"}
