# scrimstats/ledger_manager.py

import logging
from typing import Dict, List

from scrimstats import config
from scrimstats.database import Database
from scrimstats.models import StatDelta, StatLedger, TeamRecord
from scrimstats.stores import SqliteLedgerStore, SqliteTeamStore

logger = logging.getLogger(__name__)


class LedgerManager:
    """Manual corrections to player ledgers and team records."""

    def __init__(self, db: Database):
        self.db = db
        self.ledgers = SqliteLedgerStore(db)
        self.teams = SqliteTeamStore(db)

    # --- Player ledgers ---

    def add_stats(self, account_id: str, delta: StatDelta) -> StatLedger:
        """Add to an account's totals. Adding games also records a game-history entry."""
        self._check_delta(delta)
        with self.db.write_lock:
            self._require_account(account_id)
            updated = self.ledgers.get(account_id).apply(delta)
            self.ledgers.put(updated)
            if delta.games_played > 0:
                games = delta.games_played
                self.db.add_game_record(account_id, {
                    "goals": round(delta.goals / games),
                    "assists": round(delta.assists / games),
                    "saves": round(delta.saves / games),
                    "shots": round(delta.shots / games),
                    "demos": round(delta.demos / games),
                    "mvp": delta.mvps,
                })
        logger.info("Added stats for %s: %s", account_id, delta.as_dict())
        return updated

    def remove_stats(self, account_id: str, delta: StatDelta) -> StatLedger:
        """Subtract from an account's totals; no field drops below zero."""
        self._check_delta(delta)
        with self.db.write_lock:
            self._require_account(account_id)
            updated = self.ledgers.get(account_id).subtract(delta)
            self.ledgers.put(updated)
        logger.info("Removed stats for %s: %s", account_id, delta.as_dict())
        return updated

    def get_ledger(self, account_id: str) -> StatLedger:
        self._require_account(account_id)
        return self.ledgers.get(account_id)

    def get_achievements(self, account_id: str) -> Dict[str, List[Dict]]:
        """
        Achievements earned by an account and progress toward the next one.

        Returns:
            {'unlocked': [...], 'progress': [...]}
            - unlocked: every threshold met, in category then threshold order
            - progress: per category with a threshold still ahead, the
              current value, target, amount needed and percentage
        """
        ledger = self.get_ledger(account_id)
        unlocked: List[Dict] = []
        progress: List[Dict] = []
        for category, tiers in config.ACHIEVEMENTS.items():
            value = getattr(ledger, category)
            for threshold, name, description in tiers:
                if value >= threshold:
                    unlocked.append({
                        "category": category,
                        "name": name,
                        "description": description,
                        "threshold": threshold,
                    })
            upcoming = next((tier for tier in tiers if value < tier[0]), None)
            if upcoming is None:
                continue
            threshold, name, description = upcoming
            progress.append({
                "category": category,
                "name": name,
                "current": value,
                "target": threshold,
                "needed": threshold - value,
                "percentage": round(value / threshold * 100),
            })
        return {"unlocked": unlocked, "progress": progress}

    def compare(self, first_id: str, second_id: str) -> Dict[str, Dict]:
        """Side-by-side totals and per-game rates for two accounts."""
        result = {}
        for key, account_id in (("first", first_id), ("second", second_id)):
            ledger = self.get_ledger(account_id)
            account = self.db.get_account(account_id)
            entry = ledger.as_dict()
            entry["display_name"] = account["display_name"]
            entry["team"] = account["team"]
            entry.update(ledger.rates())
            result[key] = entry
        return result

    def get_leaderboard(self, team: str = None) -> List[Dict]:
        return self.db.get_all_ledgers(team=team)

    def get_recent_games(self, account_id: str, limit: int = config.RECENT_GAMES_DEFAULT) -> List[Dict]:
        self._require_account(account_id)
        limit = max(1, min(int(limit), config.RECENT_GAMES_MAX))
        return self.db.get_recent_games(account_id, limit)

    def wipe_ledgers(self) -> int:
        count = self.db.reset_all_ledgers()
        logger.warning("Reset %s player ledgers", count)
        return count

    # --- Team records ---

    def adjust_team(self, team_name: str, wins: int = 0, losses: int = 0, remove: bool = False) -> TeamRecord:
        """Add (or with ``remove`` subtract, clamped at zero) wins and losses for a team."""
        team_name = (team_name or "").strip()
        if not team_name:
            raise ValueError("team name is required")
        if wins < 0 or losses < 0:
            raise ValueError("wins and losses must not be negative")
        if wins == 0 and losses == 0:
            raise ValueError("Provide at least one win or loss to adjust")
        with self.db.write_lock:
            current = self.teams.get(team_name)
            updated = current.subtract(wins, losses) if remove else current.add(wins, losses)
            self.teams.put(updated)
        return updated

    def get_team_record(self, team_name: str) -> TeamRecord:
        row = self.db.get_team_record(team_name)
        if not row:
            raise ValueError(f"Team '{team_name}' has no record")
        return TeamRecord(team_name=row["team_name"], wins=row["wins"], losses=row["losses"])

    def get_team_records(self) -> List[TeamRecord]:
        return [
            TeamRecord(team_name=row["team_name"], wins=row["wins"], losses=row["losses"])
            for row in self.db.get_all_team_records()
        ]

    def wipe_team_records(self) -> int:
        count = self.db.reset_all_team_records()
        logger.warning("Reset %s team records", count)
        return count

    @staticmethod
    def _check_delta(delta: StatDelta) -> None:
        if delta.has_negative():
            raise ValueError("Stat adjustments must not be negative")
        if delta.is_zero():
            raise ValueError("Provide at least one stat to adjust")

    def _require_account(self, account_id: str) -> None:
        if not self.db.account_exists(account_id):
            raise ValueError(f"Account '{account_id}' is not registered")
