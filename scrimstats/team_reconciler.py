# scrimstats/team_reconciler.py

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from scrimstats.database import StorageError
from scrimstats.models import MatchRow
from scrimstats.stores import TeamStore

logger = logging.getLogger(__name__)


@dataclass
class TeamCredits:
    credits: Dict[str, Dict[str, int]] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    def record(self, team_name: str, wins: int, losses: int) -> None:
        entry = self.credits.setdefault(team_name, {"wins": 0, "losses": 0})
        entry["wins"] += wins
        entry["losses"] += losses


class TeamReconciler:
    """Credit each team one win or loss per real match, however many of its players appear."""

    def __init__(self, store: TeamStore):
        self.store = store

    def reconcile(
        self,
        rows: Sequence[MatchRow],
        team_for_row: Callable[[MatchRow], Optional[str]],
    ) -> TeamCredits:
        """
        Apply team credits for a run's admitted rows.

        Args:
            rows: Admitted rows for the run
            team_for_row: Returns the assigned team for a row's player, or None

        Returns:
            TeamCredits with what was applied and any storage errors.
            A failed update is reported and the remaining credits still apply.
        """
        result = TeamCredits()
        credited: Set[Tuple[str, str, str]] = set()

        for row in rows:
            team_name = team_for_row(row)
            if not team_name:
                continue
            key = (row.match_timestamp, team_name, row.result)
            if key in credited:
                continue
            credited.add(key)

            wins, losses = (1, 0) if row.is_win else (0, 1)
            try:
                current = self.store.get(team_name)
                self.store.put(current.add(wins=wins, losses=losses))
            except StorageError as e:
                logger.warning("Failed to credit %s for match %s: %s", team_name, row.match_timestamp, e)
                result.errors.append(f"Team '{team_name}' (match {row.match_timestamp}): {e}")
                continue
            result.record(team_name, wins, losses)

        return result
