# scrimstats/importer.py
"""
Import coordinator
==================
Runs one export through the reconciliation pipeline:

  Parsing -> Validating -> Deduplicating -> Grouping + MVP -> Aggregating
  -> Resolving identities -> Persisting (ledgers + team records) -> Summarizing

Validation problems abort the run before anything is written. Once
persisting starts, each account and team update stands on its own: a
failure is reported in the summary and the run carries on.
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from scrimstats.aggregator import PlayerAggregator
from scrimstats.config import TeamAssignment
from scrimstats.database import StorageError
from scrimstats.dedup import DedupIndex
from scrimstats.identity import IdentityResolver
from scrimstats.matches import group_matches, select_mvps
from scrimstats.models import AggregatedPlayerStat, CanonicalAccount, MatchRow
from scrimstats.parser import MatchExportParser
from scrimstats.stores import Stores
from scrimstats.team_reconciler import TeamReconciler
from scrimstats.validation import format_validation_errors, validate_rows

logger = logging.getLogger(__name__)


class ImportState(str, Enum):
    PENDING = "pending"
    PARSING = "parsing"
    VALIDATING = "validating"
    DEDUPLICATING = "deduplicating"
    GROUPING = "grouping"
    AGGREGATING = "aggregating"
    RESOLVING = "resolving"
    PERSISTING = "persisting"
    SUMMARIZING = "summarizing"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class ImportRun:
    state: ImportState = ImportState.PENDING
    started_at: str = field(default_factory=lambda: datetime.now().isoformat())
    finished_at: Optional[str] = None
    rows_processed: int = 0
    rows_skipped: int = 0
    duplicates_skipped: int = 0
    rows_admitted: int = 0
    matches_seen: int = 0
    distinct_players: int = 0
    matched: Dict[str, str] = field(default_factory=dict)
    unmatched: Dict[str, AggregatedPlayerStat] = field(default_factory=dict)
    mvps: Dict[str, str] = field(default_factory=dict)
    team_credits: Dict[str, Dict[str, int]] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    @property
    def completed(self) -> bool:
        return self.state == ImportState.COMPLETED

    @property
    def aborted(self) -> bool:
        return self.state == ImportState.ABORTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "rows_processed": self.rows_processed,
            "rows_skipped": self.rows_skipped,
            "duplicates_skipped": self.duplicates_skipped,
            "rows_admitted": self.rows_admitted,
            "matches_seen": self.matches_seen,
            "distinct_players": self.distinct_players,
            "matched": dict(self.matched),
            "unmatched": {name: stat.as_dict() for name, stat in self.unmatched.items()},
            "mvps": dict(self.mvps),
            "team_credits": {team: dict(credit) for team, credit in self.team_credits.items()},
            "errors": list(self.errors),
        }

    def summary_lines(self) -> List[str]:
        if self.aborted:
            lines = ["Import aborted:"]
            lines.extend(f"  {error}" for error in self.errors)
            return lines

        lines = [
            f"Rows processed:      {self.rows_processed}",
            f"Rows skipped:        {self.rows_skipped}",
            f"Duplicates skipped:  {self.duplicates_skipped}",
            f"Matches:             {self.matches_seen}",
            f"Players seen:        {self.distinct_players}",
            f"Accounts matched:    {len(self.matched)}",
            f"Unmatched players:   {len(self.unmatched)}",
        ]
        for name, stat in self.unmatched.items():
            lines.append(
                f"  - {name}: {stat.total_games} games, {stat.total_goals} goals, "
                f"{stat.total_assists} assists, {stat.total_saves} saves, "
                f"{stat.total_shots} shots, {stat.total_mvps} MVPs"
            )
        for team_name, credit in self.team_credits.items():
            lines.append(f"Team {team_name}: +{credit['wins']} W / +{credit['losses']} L")
        if self.errors:
            lines.append("Errors:")
            lines.extend(f"  {error}" for error in format_validation_errors(self.errors))
        return lines


class ImportCoordinator:
    """Orchestrates one import run against an explicit set of stores."""

    def __init__(
        self,
        stores: Stores,
        assignment: Optional[TeamAssignment] = None,
        parser: Optional[MatchExportParser] = None,
    ):
        self.stores = stores
        self.assignment = assignment or TeamAssignment()
        self.parser = parser or MatchExportParser()
        self.aggregator = PlayerAggregator()
        self.dedup = DedupIndex(stores.dedup)
        self.team_reconciler = TeamReconciler(stores.teams)

    def run(self, raw: Union[bytes, str]) -> ImportRun:
        lock = self.stores.lock if self.stores.lock is not None else contextlib.nullcontext()
        with lock:
            run = ImportRun()
            try:
                self._execute(run, raw)
            finally:
                run.finished_at = datetime.now().isoformat()
            return run

    def _enter(self, run: ImportRun, state: ImportState) -> None:
        run.state = state
        logger.info("Import state -> %s", state.value)

    def _abort(self, run: ImportRun, errors: List[str]) -> None:
        run.errors = list(errors)
        self._enter(run, ImportState.ABORTED)

    def _execute(self, run: ImportRun, raw: Union[bytes, str]) -> None:
        try:
            accounts = self.stores.roster.list_accounts()
            self.stores.dedup.contains("")
        except StorageError as e:
            logger.error("Storage unavailable at import start: %s", e)
            self._abort(run, [f"Storage unavailable: {e}"])
            return

        self._enter(run, ImportState.PARSING)
        parsed = self.parser.parse(raw)
        run.rows_processed = len(parsed.rows)
        run.rows_skipped = parsed.skipped

        self._enter(run, ImportState.VALIDATING)
        rows, validation_errors = validate_rows(parsed.rows)
        if validation_errors:
            logger.warning("Import rejected: %s validation error(s)", len(validation_errors))
            self._abort(run, format_validation_errors(validation_errors))
            return

        self._enter(run, ImportState.DEDUPLICATING)
        try:
            admitted, duplicates = self.dedup.admit(rows)
        except StorageError as e:
            logger.error("Dedup index write failed: %s", e)
            self._abort(run, [f"Storage unavailable: {e}"])
            return
        run.duplicates_skipped = duplicates
        run.rows_admitted = len(admitted)

        self._enter(run, ImportState.GROUPING)
        groups = group_matches(admitted)
        mvps = select_mvps(groups)
        run.matches_seen = len(groups)

        self._enter(run, ImportState.AGGREGATING)
        aggregates = self.aggregator.aggregate(admitted)
        dropped = set(self.aggregator.apply_mvp_credits(aggregates, mvps))
        credited_mvps = {ts: row for ts, row in mvps.items() if ts not in dropped}
        run.mvps = {ts: row.external_player_name for ts, row in credited_mvps.items()}
        run.distinct_players = len(aggregates)

        self._enter(run, ImportState.RESOLVING)
        resolved = self._resolve_identities(run, aggregates, accounts)

        self._enter(run, ImportState.PERSISTING)
        mvp_keys = {(ts, row.name_key) for ts, row in credited_mvps.items()}
        self._persist_ledgers(run, aggregates, resolved, admitted, mvp_keys)
        self._persist_team_records(run, aggregates, admitted)

        self._enter(run, ImportState.SUMMARIZING)
        logger.info(
            "Import summary: %s rows, %s duplicates, %s matches, %s matched, %s unmatched, %s errors",
            run.rows_processed, run.duplicates_skipped, run.matches_seen,
            len(run.matched), len(run.unmatched), len(run.errors),
        )
        self._enter(run, ImportState.COMPLETED)

    def _resolve_identities(
        self,
        run: ImportRun,
        aggregates: Dict[str, AggregatedPlayerStat],
        accounts: List[CanonicalAccount],
    ) -> Dict[str, CanonicalAccount]:
        resolver = IdentityResolver(self.stores.mappings, self.stores.roster, accounts=accounts)
        resolved: Dict[str, CanonicalAccount] = {}
        for key, stat in aggregates.items():
            try:
                account = resolver.resolve(stat)
            except StorageError as e:
                run.errors.append(f"Player '{stat.name}': identity lookup failed ({e})")
                run.unmatched[stat.name] = stat
                continue
            if account is None:
                run.unmatched[stat.name] = stat
                continue
            resolved[key] = account
            run.matched[stat.name] = account.account_id
        return resolved

    def _persist_ledgers(
        self,
        run: ImportRun,
        aggregates: Dict[str, AggregatedPlayerStat],
        resolved: Dict[str, CanonicalAccount],
        admitted: List[MatchRow],
        mvp_keys: Set[Tuple[str, str]],
    ) -> None:
        rows_by_player: Dict[str, List[MatchRow]] = {}
        for row in admitted:
            rows_by_player.setdefault(row.name_key, []).append(row)

        for key, account in resolved.items():
            stat = aggregates[key]
            try:
                ledger = self.stores.ledgers.get(account.account_id)
                self.stores.ledgers.put(ledger.apply(stat.to_delta()))
                for row in rows_by_player.get(key, []):
                    self.stores.history.add(account.account_id, {
                        "match_timestamp": row.match_timestamp,
                        "team_color": row.team_color,
                        "result": row.result,
                        "goals": row.goals,
                        "assists": row.assists,
                        "saves": row.saves,
                        "shots": row.shots,
                        "demos": row.demos,
                        "score": row.score,
                        "mvp": 1 if (row.match_timestamp, key) in mvp_keys else 0,
                    })
            except StorageError as e:
                logger.warning("Failed to persist stats for %s (%s): %s", stat.name, account.account_id, e)
                run.errors.append(f"Player '{stat.name}' ({account.account_id}): {e}")

    def _persist_team_records(
        self,
        run: ImportRun,
        aggregates: Dict[str, AggregatedPlayerStat],
        admitted: List[MatchRow],
    ) -> None:
        if not self.assignment:
            return

        def team_for_row(row: MatchRow) -> Optional[str]:
            # A player's team follows their most recent color in this run
            stat = aggregates.get(row.name_key)
            color = stat.last_team_color if stat else row.team_color
            return self.assignment.team_for_color(color)

        credits = self.team_reconciler.reconcile(admitted, team_for_row)
        run.team_credits = credits.credits
        run.errors.extend(credits.errors)
