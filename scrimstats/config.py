# scrimstats/config.py

"""
Shared constants and run configuration.

Column positions describe the game client's stats export, which is
positional rather than header-keyed. Values can be overridden through
environment variables where noted.
"""

import os
from pathlib import Path
from typing import Dict, Iterable, Optional

DEFAULT_DB = "data/scrimstats.db"
DB_PATH_ENV = "SCRIMSTATS_DB_PATH"

# Positional export layout (0-based)
COL_TEAM_COLOR = 0
COL_PLAYER_NAME = 1
COL_GOALS = 2
COL_ASSISTS = 3
COL_SAVES = 4
COL_SHOTS = 5
COL_DEMOS = 6
COL_SCORE = 7
COL_RESULT = 8
COL_TIMESTAMP = 9
COL_PLAYER_ID = 10
EXPORT_COLUMN_COUNT = 11

# The export repeats its header record mid-file; this is its team-color cell.
HEADER_SENTINEL = "Team"

COLOR_A = "Blue"
COLOR_B = "Orange"
TEAM_COLORS = (COLOR_A, COLOR_B)

RESULT_WIN = "WIN"
RESULT_LOSS = "LOSS"

DEFAULT_TEAMS = ("A-Team", "B-Team")

MAX_RENDERED_ERRORS = 10
RECENT_GAMES_DEFAULT = 10
RECENT_GAMES_MAX = 20

STAT_FIELDS = ("goals", "assists", "saves", "shots", "demos")

# Career achievements: ledger field -> (threshold, name, description), ascending
ACHIEVEMENTS = {
    "goals": (
        (10, "Sniper", "Score 10+ goals"),
        (25, "Sharp Shooter", "Score 25+ goals"),
        (50, "Goal Machine", "Score 50+ goals"),
        (100, "Legend", "Score 100+ goals"),
    ),
    "assists": (
        (10, "Playmaker", "Get 10+ assists"),
        (25, "Master Tactician", "Get 25+ assists"),
        (50, "Assist King", "Get 50+ assists"),
    ),
    "saves": (
        (15, "Safe Hands", "Make 15+ saves"),
        (30, "Wall", "Make 30+ saves"),
        (75, "Guardian", "Make 75+ saves"),
    ),
    "shots": (
        (50, "Trigger Happy", "Take 50+ shots"),
        (100, "Shot Caller", "Take 100+ shots"),
        (250, "Sharpshooter", "Take 250+ shots"),
    ),
    "mvps": (
        (5, "Star Player", "Win 5+ MVPs"),
        (10, "MVP King", "Win 10+ MVPs"),
        (20, "Champion", "Win 20+ MVPs"),
    ),
    "games_played": (
        (50, "Veteran", "Play 50+ games"),
        (100, "Dedicated", "Play 100+ games"),
        (200, "Unstoppable", "Play 200+ games"),
    ),
}


def resolve_db_path(arg_db: Optional[str] = None) -> Path:
    """Pick the database path from the CLI flag, then the environment, then the default."""
    env_db = os.getenv(DB_PATH_ENV, "").strip()
    chosen = (arg_db or "").strip() or env_db or DEFAULT_DB
    path = Path(chosen)
    if not path.is_absolute():
        path = Path(__file__).resolve().parents[1] / path
    return path


def canonical_color(raw: str) -> Optional[str]:
    """Return the canonical spelling of a team color, or None if unrecognized."""
    key = (raw or "").strip().lower()
    for color in TEAM_COLORS:
        if color.lower() == key:
            return color
    return None


class TeamAssignment:
    """
    Color-to-team mapping for one import run.

    The mapping is fixed at construction; colors without an entry
    credit no team.
    """

    def __init__(self, color_to_team: Optional[Dict[str, str]] = None):
        mapping: Dict[str, str] = {}
        for raw_color, raw_team in (color_to_team or {}).items():
            color = canonical_color(raw_color)
            if color is None:
                raise ValueError(
                    f"Unknown team color '{raw_color}' (expected one of: {', '.join(TEAM_COLORS)})"
                )
            team = (raw_team or "").strip()
            if not team:
                raise ValueError(f"Team name for color '{color}' must not be empty")
            mapping[color] = team
        self._mapping = mapping

    @classmethod
    def parse(cls, pairs: Iterable[str]) -> "TeamAssignment":
        """Build from ``COLOR=TEAM`` strings, e.g. ``Orange=A-Team``."""
        mapping: Dict[str, str] = {}
        for pair in pairs or ():
            if "=" not in pair:
                raise ValueError(f"Invalid team assignment '{pair}' (expected COLOR=TEAM)")
            color, team = pair.split("=", 1)
            mapping[color.strip()] = team.strip()
        return cls(mapping)

    def team_for_color(self, color: Optional[str]) -> Optional[str]:
        canonical = canonical_color(color or "")
        if canonical is None:
            return None
        return self._mapping.get(canonical)

    def as_dict(self) -> Dict[str, str]:
        return dict(self._mapping)

    def __bool__(self) -> bool:
        return bool(self._mapping)

    def __repr__(self) -> str:
        return f"TeamAssignment({self._mapping!r})"
