# scrimstats/aggregator.py

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence

from scrimstats.models import AggregatedPlayerStat, MatchRow

logger = logging.getLogger(__name__)

# Formats seen in client exports besides ISO 8601
_TIMESTAMP_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %I:%M %p",
    "%Y.%m.%d-%H.%M.%S",
)


def parse_timestamp(raw: Optional[str]) -> Optional[datetime]:
    """Best-effort parse of a match timestamp token into naive UTC. None if unparseable."""
    text = (raw or "").strip()
    if not text:
        return None
    parsed = None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        for fmt in _TIMESTAMP_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def later_timestamp(current: Optional[str], candidate: Optional[str]) -> bool:
    """
    True when ``candidate`` is at least as recent as ``current``.

    Compares chronologically when both tokens parse, otherwise falls back
    to plain string order. Only used for last-seen display; grouping and
    dedup never depend on it.
    """
    if current is None:
        return True
    if candidate is None:
        return False
    current_dt = parse_timestamp(current)
    candidate_dt = parse_timestamp(candidate)
    if current_dt is not None and candidate_dt is not None:
        return candidate_dt >= current_dt
    return candidate >= current


class PlayerAggregator:
    """Fold a run's admitted rows into per-player totals keyed by lowercased name."""

    def aggregate(self, rows: Sequence[MatchRow]) -> Dict[str, AggregatedPlayerStat]:
        aggregates: Dict[str, AggregatedPlayerStat] = {}
        for row in rows:
            key = row.name_key
            stat = aggregates.get(key)
            if stat is None:
                stat = AggregatedPlayerStat(name=row.external_player_name)
                aggregates[key] = stat
            self._fold(stat, row)
        return aggregates

    @staticmethod
    def _fold(stat: AggregatedPlayerStat, row: MatchRow) -> None:
        stat.total_games += 1
        stat.total_goals += row.goals
        stat.total_assists += row.assists
        stat.total_saves += row.saves
        stat.total_shots += row.shots
        stat.total_demos += row.demos
        if row.is_win:
            stat.total_wins += 1
        elif row.is_loss:
            stat.total_losses += 1

        if later_timestamp(stat.last_seen_timestamp, row.match_timestamp):
            stat.last_seen_timestamp = row.match_timestamp
            stat.last_team_color = row.team_color
            if row.external_player_id:
                stat.external_player_id = row.external_player_id
        elif not stat.external_player_id and row.external_player_id:
            stat.external_player_id = row.external_player_id

    @staticmethod
    def apply_mvp_credits(
        aggregates: Dict[str, AggregatedPlayerStat],
        mvps: Mapping[str, MatchRow],
    ) -> List[str]:
        """
        Give one MVP per match to the winner's aggregate, looked up by lowercased name.

        Returns the match timestamps whose credit found no aggregate and was dropped.
        """
        dropped: List[str] = []
        for match_timestamp, row in mvps.items():
            stat = aggregates.get(row.name_key)
            if stat is None:
                logger.debug(
                    "Dropping MVP for match %s: no aggregate named '%s'",
                    match_timestamp, row.name_key,
                )
                dropped.append(match_timestamp)
                continue
            stat.total_mvps += 1
        return dropped
