"""Columns a report may group by or filter on.

Both lists are versioned with the engine and are not mutable at runtime.
"""

from __future__ import annotations

GROUP_DIMENSIONS: frozenset[str] = frozenset(
    {
        "player_name",
        "pitcher",
        "batter",
        "game_year",
        "pitch_name",
        "pitch_type",
        "stand",
        "p_throws",
        "home_team",
        "away_team",
        "inning",
        "inning_topbot",
        "balls",
        "strikes",
        "outs_when_up",
        "bb_type",
        "events",
        "type",
        "zone",
        "game_date",
        "game_pk",
        "if_fielding_alignment",
        "of_fielding_alignment",
    }
)

FILTER_COLUMNS: frozenset[str] = frozenset(
    {
        "pitcher",
        "batter",
        "game_year",
        "game_date",
        "pitch_name",
        "pitch_type",
        "stand",
        "p_throws",
        "home_team",
        "away_team",
        "inning",
        "inning_topbot",
        "balls",
        "strikes",
        "outs_when_up",
        "events",
        "description",
        "type",
        "bb_type",
        "zone",
        "game_type",
        "release_speed",
        "release_spin_rate",
        "launch_speed",
        "launch_angle",
        "pfx_x",
        "pfx_z",
        "plate_x",
        "plate_z",
        "if_fielding_alignment",
        "of_fielding_alignment",
        "bat_speed",
        "swing_length",
        "estimated_ba_using_speedangle",
        "estimated_woba_using_speedangle",
        "release_extension",
        "arm_angle",
        "effective_speed",
        "spin_axis",
        "hit_distance_sc",
        "home_score",
        "away_score",
        "n_thruorder_pitcher",
        "player_name",
    }
)
