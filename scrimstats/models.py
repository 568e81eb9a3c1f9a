# scrimstats/models.py

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from scrimstats.config import RESULT_WIN, RESULT_LOSS


@dataclass(frozen=True)
class MatchRow:
    """One player's line in one match, as read from the export."""

    external_player_name: str
    team_color: str
    goals: int
    assists: int
    saves: int
    shots: int
    demos: int
    score: int
    result: str
    match_timestamp: str
    external_player_id: str
    line_number: int = 0

    @property
    def name_key(self) -> str:
        return self.external_player_name.strip().lower()

    @property
    def dedup_key(self) -> str:
        # Rows without an id fall back to the player name so two id-less
        # players in one match do not collide.
        player_ref = self.external_player_id or self.name_key
        return f"{self.match_timestamp}_{player_ref}"

    @property
    def is_win(self) -> bool:
        return self.result.upper() == RESULT_WIN

    @property
    def is_loss(self) -> bool:
        return self.result.upper() == RESULT_LOSS


@dataclass
class MatchGroup:
    """All admitted rows sharing a match timestamp."""

    match_timestamp: str
    rows: List[MatchRow] = field(default_factory=list)

    @property
    def player_count(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class StatDelta:
    """Additive change to a ledger. Fields are enumerated, never discovered."""

    games_played: int = 0
    goals: int = 0
    assists: int = 0
    saves: int = 0
    shots: int = 0
    demos: int = 0
    mvps: int = 0

    FIELDS = ("games_played", "goals", "assists", "saves", "shots", "demos", "mvps")

    def is_zero(self) -> bool:
        return all(getattr(self, name) == 0 for name in self.FIELDS)

    def has_negative(self) -> bool:
        return any(getattr(self, name) < 0 for name in self.FIELDS)

    def as_dict(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in self.FIELDS}


@dataclass(frozen=True)
class StatLedger:
    """Cumulative per-account totals."""

    account_id: str
    games_played: int = 0
    goals: int = 0
    assists: int = 0
    saves: int = 0
    shots: int = 0
    demos: int = 0
    mvps: int = 0

    def apply(self, delta: StatDelta) -> "StatLedger":
        return StatLedger(
            account_id=self.account_id,
            games_played=self.games_played + delta.games_played,
            goals=self.goals + delta.goals,
            assists=self.assists + delta.assists,
            saves=self.saves + delta.saves,
            shots=self.shots + delta.shots,
            demos=self.demos + delta.demos,
            mvps=self.mvps + delta.mvps,
        )

    def subtract(self, delta: StatDelta) -> "StatLedger":
        """Remove a delta with every field clamped at zero."""
        return StatLedger(
            account_id=self.account_id,
            games_played=max(0, self.games_played - delta.games_played),
            goals=max(0, self.goals - delta.goals),
            assists=max(0, self.assists - delta.assists),
            saves=max(0, self.saves - delta.saves),
            shots=max(0, self.shots - delta.shots),
            demos=max(0, self.demos - delta.demos),
            mvps=max(0, self.mvps - delta.mvps),
        )

    def rates(self) -> Dict[str, float]:
        """Goals and assists per game, and MVPs as a percentage of games."""
        games = self.games_played
        if games <= 0:
            return {"goals_per_game": 0.0, "assists_per_game": 0.0, "mvp_rate": 0.0}
        return {
            "goals_per_game": round(self.goals / games, 2),
            "assists_per_game": round(self.assists / games, 2),
            "mvp_rate": round(self.mvps / games * 100, 1),
        }

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TeamRecord:
    team_name: str
    wins: int = 0
    losses: int = 0

    @property
    def total_games(self) -> int:
        return self.wins + self.losses

    @property
    def win_rate(self) -> float:
        """Win percentage, one decimal; 0.0 before any games."""
        if self.total_games == 0:
            return 0.0
        return round(self.wins / self.total_games * 100, 1)

    def add(self, wins: int = 0, losses: int = 0) -> "TeamRecord":
        return TeamRecord(
            team_name=self.team_name,
            wins=max(0, self.wins + wins),
            losses=max(0, self.losses + losses),
        )

    def subtract(self, wins: int = 0, losses: int = 0) -> "TeamRecord":
        return self.add(wins=-wins, losses=-losses)

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["total_games"] = self.total_games
        data["win_rate"] = self.win_rate
        return data


@dataclass(frozen=True)
class CanonicalAccount:
    account_id: str
    username: str
    display_name: str
    team: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AggregatedPlayerStat:
    """Totals for one external player built from a single run's admitted rows."""

    name: str
    external_player_id: str = ""
    total_games: int = 0
    total_goals: int = 0
    total_assists: int = 0
    total_saves: int = 0
    total_shots: int = 0
    total_demos: int = 0
    total_wins: int = 0
    total_losses: int = 0
    total_mvps: int = 0
    last_seen_timestamp: Optional[str] = None
    last_team_color: Optional[str] = None

    @property
    def name_key(self) -> str:
        return self.name.strip().lower()

    def to_delta(self) -> StatDelta:
        return StatDelta(
            games_played=self.total_games,
            goals=self.total_goals,
            assists=self.total_assists,
            saves=self.total_saves,
            shots=self.total_shots,
            demos=self.total_demos,
            mvps=self.total_mvps,
        )

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)
