# scrimstats/stores.py
"""
Storage interfaces used by the import engine.

The engine only ever calls get/put/contains/add on these, so a
different backend can be dropped in by implementing the protocols.
The sqlite adapters below wrap a shared Database.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from scrimstats.database import Database
from scrimstats.models import CanonicalAccount, StatLedger, TeamRecord


class DedupStore(Protocol):
    def contains(self, key: str) -> bool: ...

    def add(self, key: str, match_timestamp: str, external_player_id: str) -> None: ...


class LedgerStore(Protocol):
    def get(self, account_id: str) -> StatLedger: ...

    def put(self, ledger: StatLedger) -> None: ...


class TeamStore(Protocol):
    def get(self, team_name: str) -> TeamRecord: ...

    def put(self, record: TeamRecord) -> None: ...


class NameMappingStore(Protocol):
    def get(self, external_name: str) -> Optional[str]: ...


class RosterLookup(Protocol):
    def resolve_account(self, account_id: str) -> Optional[CanonicalAccount]: ...

    def list_accounts(self) -> List[CanonicalAccount]: ...


class GameHistoryStore(Protocol):
    def add(self, account_id: str, record: Dict[str, Any]) -> None: ...


def _account_from_row(row: Dict[str, Any]) -> CanonicalAccount:
    return CanonicalAccount(
        account_id=row["account_id"],
        username=row["username"],
        display_name=row["display_name"],
        team=row.get("team"),
    )


class SqliteDedupStore:
    def __init__(self, db: Database):
        self.db = db

    def contains(self, key: str) -> bool:
        return self.db.is_row_imported(key)

    def add(self, key: str, match_timestamp: str, external_player_id: str) -> None:
        self.db.mark_row_imported(key, match_timestamp, external_player_id)


class SqliteLedgerStore:
    def __init__(self, db: Database):
        self.db = db

    def get(self, account_id: str) -> StatLedger:
        row = self.db.get_ledger(account_id)
        if not row:
            return StatLedger(account_id=account_id)
        return StatLedger(
            account_id=account_id,
            games_played=row["games_played"],
            goals=row["goals"],
            assists=row["assists"],
            saves=row["saves"],
            shots=row["shots"],
            demos=row["demos"],
            mvps=row["mvps"],
        )

    def put(self, ledger: StatLedger) -> None:
        totals = ledger.as_dict()
        totals.pop("account_id")
        self.db.put_ledger(ledger.account_id, totals)


class SqliteTeamStore:
    def __init__(self, db: Database):
        self.db = db

    def get(self, team_name: str) -> TeamRecord:
        row = self.db.get_team_record(team_name)
        if not row:
            return TeamRecord(team_name=team_name)
        return TeamRecord(team_name=team_name, wins=row["wins"], losses=row["losses"])

    def put(self, record: TeamRecord) -> None:
        self.db.put_team_record(record.team_name, record.wins, record.losses)


class SqliteNameMappingStore:
    def __init__(self, db: Database):
        self.db = db

    def get(self, external_name: str) -> Optional[str]:
        return self.db.get_name_mapping(external_name)


class SqliteRoster:
    def __init__(self, db: Database):
        self.db = db

    def resolve_account(self, account_id: str) -> Optional[CanonicalAccount]:
        row = self.db.get_account(account_id)
        return _account_from_row(row) if row else None

    def list_accounts(self) -> List[CanonicalAccount]:
        return [_account_from_row(row) for row in self.db.get_all_accounts()]


class SqliteGameHistoryStore:
    def __init__(self, db: Database):
        self.db = db

    def add(self, account_id: str, record: Dict[str, Any]) -> None:
        self.db.add_game_record(account_id, record)


@dataclass
class Stores:
    """Everything an import run reads or writes."""

    dedup: DedupStore
    ledgers: LedgerStore
    teams: TeamStore
    mappings: NameMappingStore
    roster: RosterLookup
    history: GameHistoryStore
    lock: Any = None

    @classmethod
    def from_database(cls, db: Database) -> "Stores":
        return cls(
            dedup=SqliteDedupStore(db),
            ledgers=SqliteLedgerStore(db),
            teams=SqliteTeamStore(db),
            mappings=SqliteNameMappingStore(db),
            roster=SqliteRoster(db),
            history=SqliteGameHistoryStore(db),
            lock=db.write_lock,
        )
