"""Typed column schema for pitch-level event rows.

Event rows travel through the engine as plain ``dict[str, Any]`` records keyed by
the Statcast column names below. The schema is used to type query columns, to
coerce filter literals, and to create local tables for query execution.
"""

from __future__ import annotations

import enum
import math
from typing import Any


class ColumnType(enum.Enum):
    INTEGER = "INTEGER"
    REAL = "REAL"
    TEXT = "TEXT"

    def coerce(self, value: Any) -> Any:
        """Convert a literal to this column's Python type, or ``None`` when it cannot be."""
        if value is None:
            return None
        if self is ColumnType.TEXT:
            return str(value)
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(number):
            return None
        if self is ColumnType.INTEGER and number.is_integer():
            return int(number)
        return number


_I = ColumnType.INTEGER
_R = ColumnType.REAL
_T = ColumnType.TEXT

EVENT_TABLE = "pitches"

EVENT_COLUMNS: dict[str, ColumnType] = {
    # identifiers
    "game_pk": _I,
    "game_date": _T,
    "game_year": _I,
    "game_type": _T,
    "at_bat_number": _I,
    "pitch_number": _I,
    "pitcher": _I,
    "batter": _I,
    "player_name": _T,
    # situation
    "home_team": _T,
    "away_team": _T,
    "inning": _I,
    "inning_topbot": _T,
    "balls": _I,
    "strikes": _I,
    "outs_when_up": _I,
    "on_1b": _I,
    "on_2b": _I,
    "on_3b": _I,
    "home_score": _I,
    "away_score": _I,
    "n_thruorder_pitcher": _I,
    "stand": _T,
    "p_throws": _T,
    "if_fielding_alignment": _T,
    "of_fielding_alignment": _T,
    # pitch classification and outcome
    "pitch_type": _T,
    "pitch_name": _T,
    "type": _T,
    "description": _T,
    "events": _T,
    "bb_type": _T,
    "zone": _I,
    # release and flight
    "release_speed": _R,
    "effective_speed": _R,
    "release_spin_rate": _R,
    "spin_axis": _R,
    "release_extension": _R,
    "release_pos_x": _R,
    "release_pos_z": _R,
    "arm_angle": _R,
    "pfx_x": _R,
    "pfx_z": _R,
    "plate_x": _R,
    "plate_z": _R,
    "sz_top": _R,
    "sz_bot": _R,
    "vx0": _R,
    "vy0": _R,
    "vz0": _R,
    "ax": _R,
    "ay": _R,
    "az": _R,
    # contact
    "launch_speed": _R,
    "launch_angle": _R,
    "hit_distance_sc": _R,
    "bat_speed": _R,
    "swing_length": _R,
    "estimated_ba_using_speedangle": _R,
    "estimated_woba_using_speedangle": _R,
    "estimated_slg_using_speedangle": _R,
    "woba_value": _R,
    "delta_run_exp": _R,
}


def column_type(name: str) -> ColumnType:
    return EVENT_COLUMNS[name]
