# scrimstats/database.py

import os
import sqlite3
import threading
import time
from pathlib import Path
from typing import Dict, List, Optional, Any

from scrimstats import config

LEDGER_COLUMNS = ("games_played", "goals", "assists", "saves", "shots", "demos", "mvps")


class StorageError(RuntimeError):
    """Raised when the sqlite store cannot be read or written."""


class Database:
    """Handle all database operations."""

    def __init__(self, db_path: str = config.DEFAULT_DB):
        self.db_path = self._resolve_db_path(db_path)
        self.conn = None
        # Single writer: every read-modify-write on the stores happens under this lock.
        self.write_lock = threading.RLock()
        self.init_database()

    @staticmethod
    def _resolve_db_path(db_path: str) -> str:
        """Return an absolute database path anchored to project root when relative."""
        path = Path(db_path)
        if path.is_absolute():
            return str(path)

        project_root = Path(__file__).resolve().parents[1]
        return str(project_root / path)

    def init_database(self):
        """Create tables if they don't exist."""
        try:
            db_dir = os.path.dirname(self.db_path)
            if db_dir:
                try:
                    os.makedirs(db_dir, exist_ok=True)
                except OSError as e:
                    raise StorageError(f"Failed to create database directory '{db_dir}': {e}")

            self.conn = sqlite3.connect(self.db_path, timeout=30.0, check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA busy_timeout = 30000")
            self.conn.execute("PRAGMA foreign_keys = ON")
            self._set_wal_mode_best_effort()

            cursor = self.conn.cursor()

            # Known accounts (the roster identities resolve against)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS accounts (
                    seq             INTEGER PRIMARY KEY AUTOINCREMENT,
                    account_id      TEXT UNIQUE NOT NULL,
                    username        TEXT NOT NULL,
                    display_name    TEXT NOT NULL,
                    team            TEXT,
                    created_at      TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at      TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            # Admin-curated external name -> account links (one-to-one)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS name_mappings (
                    external_name   TEXT PRIMARY KEY,
                    account_id      TEXT UNIQUE NOT NULL,
                    created_at      TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (account_id) REFERENCES accounts(account_id)
                )
            """)

            # Cumulative per-account totals
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS player_ledgers (
                    account_id      TEXT PRIMARY KEY,
                    games_played    INTEGER NOT NULL DEFAULT 0,
                    goals           INTEGER NOT NULL DEFAULT 0,
                    assists         INTEGER NOT NULL DEFAULT 0,
                    saves           INTEGER NOT NULL DEFAULT 0,
                    shots           INTEGER NOT NULL DEFAULT 0,
                    demos           INTEGER NOT NULL DEFAULT 0,
                    mvps            INTEGER NOT NULL DEFAULT 0,
                    updated_at      TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (account_id) REFERENCES accounts(account_id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS team_records (
                    team_name       TEXT PRIMARY KEY,
                    wins            INTEGER NOT NULL DEFAULT 0,
                    losses          INTEGER NOT NULL DEFAULT 0,
                    updated_at      TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            # Append-only idempotency index: one key per (match timestamp, player id)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS imported_rows (
                    dedup_key           TEXT PRIMARY KEY,
                    match_timestamp     TEXT,
                    external_player_id  TEXT,
                    imported_at         TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            # Per-game records used for recent form
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS game_history (
                    history_id      INTEGER PRIMARY KEY AUTOINCREMENT,
                    account_id      TEXT NOT NULL,
                    match_timestamp TEXT,
                    team_color      TEXT,
                    result          TEXT,
                    goals           INTEGER DEFAULT 0,
                    assists         INTEGER DEFAULT 0,
                    saves           INTEGER DEFAULT 0,
                    shots           INTEGER DEFAULT 0,
                    demos           INTEGER DEFAULT 0,
                    score           INTEGER DEFAULT 0,
                    mvp             INTEGER DEFAULT 0,
                    recorded_at     TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (account_id) REFERENCES accounts(account_id)
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_game_history_account
                ON game_history(account_id, history_id)
            """)

            for team_name in config.DEFAULT_TEAMS:
                cursor.execute(
                    "INSERT OR IGNORE INTO team_records (team_name, wins, losses) VALUES (?, 0, 0)",
                    (team_name,),
                )

            self._commit_with_retry(context="init schema commit")
        except sqlite3.Error as e:
            raise StorageError(f"Failed to initialize database at '{self.db_path}': {e}")

    def _commit_with_retry(self, retries: int = 8, delay_seconds: float = 0.25, context: str = "commit") -> None:
        """
        Retry commit on transient SQLITE_BUSY/locked errors.
        """
        last_error = None
        for attempt in range(retries):
            try:
                self.conn.commit()
                return
            except sqlite3.OperationalError as e:
                last_error = e
                if "locked" not in str(e).lower() and "busy" not in str(e).lower():
                    raise
                if attempt == retries - 1:
                    break
                time.sleep(delay_seconds)
        raise StorageError(
            f"Failed to {context}: database remained locked after {retries} attempts ({last_error})"
        )

    def _set_wal_mode_best_effort(self, retries: int = 5, delay_seconds: float = 0.2) -> None:
        """Try to enable WAL without failing startup if the DB is temporarily locked."""
        for attempt in range(retries):
            try:
                self.conn.execute("PRAGMA journal_mode = WAL")
                return
            except sqlite3.OperationalError as e:
                msg = str(e).lower()
                if "locked" not in msg and "busy" not in msg:
                    raise
                if attempt == retries - 1:
                    return
                time.sleep(delay_seconds)

    def _fetch_one(self, sql: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
        try:
            cursor = self.conn.cursor()
            cursor.execute(sql, params)
            row = cursor.fetchone()
            return dict(row) if row else None
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read from database: {e}")

    def _fetch_all(self, sql: str, params: tuple = ()) -> List[Dict[str, Any]]:
        try:
            cursor = self.conn.cursor()
            cursor.execute(sql, params)
            return [dict(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read from database: {e}")

    def _write(self, sql: str, params: tuple, context: str) -> int:
        """Execute one statement and commit. Returns lastrowid."""
        with self.write_lock:
            try:
                cursor = self.conn.cursor()
                cursor.execute(sql, params)
                self._commit_with_retry(context=context)
                return cursor.lastrowid
            except StorageError:
                # Commit gave up; drop the pending statement so a later commit cannot pick it up
                self.conn.rollback()
                raise
            except sqlite3.Error as e:
                self.conn.rollback()
                raise StorageError(f"Failed to {context}: {e}")

    # --- Accounts ---

    def add_account(self, account_id: str, username: str, display_name: str, team: str = None) -> None:
        """Insert an account and its zeroed ledger in one transaction."""
        with self.write_lock:
            try:
                cursor = self.conn.cursor()
                cursor.execute(
                    "INSERT INTO accounts (account_id, username, display_name, team) VALUES (?, ?, ?, ?)",
                    (account_id, username, display_name, team),
                )
                cursor.execute(
                    "INSERT OR IGNORE INTO player_ledgers (account_id) VALUES (?)",
                    (account_id,),
                )
                self._commit_with_retry(context=f"add account '{account_id}'")
            except StorageError:
                self.conn.rollback()
                raise
            except sqlite3.Error as e:
                self.conn.rollback()
                raise StorageError(f"Failed to add account '{account_id}': {e}")

    def get_account(self, account_id: str) -> Optional[Dict]:
        return self._fetch_one("SELECT * FROM accounts WHERE account_id = ?", (account_id,))

    def get_all_accounts(self) -> List[Dict]:
        """All accounts in registration order."""
        return self._fetch_all("SELECT * FROM accounts ORDER BY seq")

    def account_exists(self, account_id: str) -> bool:
        return self.get_account(account_id) is not None

    def update_account_display_name(self, account_id: str, display_name: str) -> None:
        self._write(
            "UPDATE accounts SET display_name = ?, updated_at = CURRENT_TIMESTAMP WHERE account_id = ?",
            (display_name, account_id),
            context=f"rename account '{account_id}'",
        )

    def update_account_team(self, account_id: str, team: Optional[str]) -> None:
        self._write(
            "UPDATE accounts SET team = ?, updated_at = CURRENT_TIMESTAMP WHERE account_id = ?",
            (team, account_id),
            context=f"update team for account '{account_id}'",
        )

    # --- Name mappings ---

    def set_name_mapping(self, external_name: str, account_id: str) -> None:
        self._write(
            "INSERT INTO name_mappings (external_name, account_id) VALUES (?, ?)",
            (external_name.strip().lower(), account_id),
            context=f"link '{external_name}'",
        )

    def delete_name_mapping(self, external_name: str) -> int:
        with self.write_lock:
            try:
                cursor = self.conn.cursor()
                cursor.execute(
                    "DELETE FROM name_mappings WHERE external_name = ?",
                    (external_name.strip().lower(),),
                )
                self._commit_with_retry(context=f"unlink '{external_name}'")
                return cursor.rowcount
            except StorageError:
                self.conn.rollback()
                raise
            except sqlite3.Error as e:
                self.conn.rollback()
                raise StorageError(f"Failed to unlink '{external_name}': {e}")

    def get_name_mapping(self, external_name: str) -> Optional[str]:
        row = self._fetch_one(
            "SELECT account_id FROM name_mappings WHERE external_name = ?",
            (external_name.strip().lower(),),
        )
        return row["account_id"] if row else None

    def get_mapping_for_account(self, account_id: str) -> Optional[str]:
        row = self._fetch_one(
            "SELECT external_name FROM name_mappings WHERE account_id = ?",
            (account_id,),
        )
        return row["external_name"] if row else None

    def get_all_name_mappings(self) -> List[Dict]:
        return self._fetch_all("""
            SELECT m.external_name, m.account_id, a.display_name
            FROM name_mappings m
            LEFT JOIN accounts a ON a.account_id = m.account_id
            ORDER BY m.external_name
        """)

    # --- Ledgers ---

    def get_ledger(self, account_id: str) -> Optional[Dict]:
        return self._fetch_one("SELECT * FROM player_ledgers WHERE account_id = ?", (account_id,))

    def put_ledger(self, account_id: str, totals: Dict[str, int]) -> None:
        """Write a full ledger row, creating it if needed."""
        values = tuple(int(totals.get(column, 0)) for column in LEDGER_COLUMNS)
        self._write(
            f"""
            INSERT INTO player_ledgers (account_id, {', '.join(LEDGER_COLUMNS)}, updated_at)
            VALUES (?, {', '.join('?' for _ in LEDGER_COLUMNS)}, CURRENT_TIMESTAMP)
            ON CONFLICT(account_id) DO UPDATE SET
                {', '.join(f'{column} = excluded.{column}' for column in LEDGER_COLUMNS)},
                updated_at = CURRENT_TIMESTAMP
            """,
            (account_id,) + values,
            context=f"write ledger for '{account_id}'",
        )

    def get_all_ledgers(self, team: str = None) -> List[Dict]:
        """Ledgers joined with their account, ordered by goals descending."""
        sql = """
            SELECT a.account_id, a.username, a.display_name, a.team,
                   l.games_played, l.goals, l.assists, l.saves, l.shots, l.demos, l.mvps
            FROM accounts a
            JOIN player_ledgers l ON l.account_id = a.account_id
        """
        params: tuple = ()
        if team:
            sql += " WHERE a.team = ?"
            params = (team,)
        sql += " ORDER BY l.goals DESC, a.seq"
        return self._fetch_all(sql, params)

    def reset_all_ledgers(self) -> int:
        with self.write_lock:
            try:
                cursor = self.conn.cursor()
                cursor.execute(
                    f"UPDATE player_ledgers SET {', '.join(f'{c} = 0' for c in LEDGER_COLUMNS)}, "
                    "updated_at = CURRENT_TIMESTAMP"
                )
                reset_count = cursor.rowcount
                cursor.execute("DELETE FROM game_history")
                self._commit_with_retry(context="reset ledgers")
                return reset_count
            except StorageError:
                self.conn.rollback()
                raise
            except sqlite3.Error as e:
                self.conn.rollback()
                raise StorageError(f"Failed to reset ledgers: {e}")

    # --- Team records ---

    def get_team_record(self, team_name: str) -> Optional[Dict]:
        return self._fetch_one("SELECT * FROM team_records WHERE team_name = ?", (team_name,))

    def put_team_record(self, team_name: str, wins: int, losses: int) -> None:
        self._write(
            """
            INSERT INTO team_records (team_name, wins, losses, updated_at)
            VALUES (?, ?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(team_name) DO UPDATE SET
                wins = excluded.wins,
                losses = excluded.losses,
                updated_at = CURRENT_TIMESTAMP
            """,
            (team_name, max(0, int(wins)), max(0, int(losses))),
            context=f"write team record for '{team_name}'",
        )

    def get_all_team_records(self) -> List[Dict]:
        return self._fetch_all("SELECT * FROM team_records ORDER BY team_name")

    def reset_all_team_records(self) -> int:
        with self.write_lock:
            try:
                cursor = self.conn.cursor()
                cursor.execute(
                    "UPDATE team_records SET wins = 0, losses = 0, updated_at = CURRENT_TIMESTAMP"
                )
                self._commit_with_retry(context="reset team records")
                return cursor.rowcount
            except StorageError:
                self.conn.rollback()
                raise
            except sqlite3.Error as e:
                self.conn.rollback()
                raise StorageError(f"Failed to reset team records: {e}")

    # --- Import dedup index ---

    def is_row_imported(self, dedup_key: str) -> bool:
        row = self._fetch_one("SELECT 1 AS hit FROM imported_rows WHERE dedup_key = ?", (dedup_key,))
        return row is not None

    def mark_row_imported(self, dedup_key: str, match_timestamp: str = None, external_player_id: str = None) -> None:
        self._write(
            """
            INSERT OR IGNORE INTO imported_rows (dedup_key, match_timestamp, external_player_id)
            VALUES (?, ?, ?)
            """,
            (dedup_key, match_timestamp, external_player_id),
            context=f"mark '{dedup_key}' imported",
        )

    def imported_row_count(self) -> int:
        row = self._fetch_one("SELECT COUNT(*) AS n FROM imported_rows")
        return int(row["n"]) if row else 0

    # --- Game history ---

    def add_game_record(self, account_id: str, record: Dict[str, Any]) -> int:
        return self._write(
            """
            INSERT INTO game_history (
                account_id, match_timestamp, team_color, result,
                goals, assists, saves, shots, demos, score, mvp
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                account_id,
                record.get("match_timestamp"),
                record.get("team_color"),
                record.get("result"),
                int(record.get("goals", 0) or 0),
                int(record.get("assists", 0) or 0),
                int(record.get("saves", 0) or 0),
                int(record.get("shots", 0) or 0),
                int(record.get("demos", 0) or 0),
                int(record.get("score", 0) or 0),
                int(record.get("mvp", 0) or 0),
            ),
            context=f"record game for '{account_id}'",
        )

    def get_recent_games(self, account_id: str, limit: int = config.RECENT_GAMES_DEFAULT) -> List[Dict]:
        """Newest game-history entries first."""
        return self._fetch_all(
            """
            SELECT * FROM game_history
            WHERE account_id = ?
            ORDER BY history_id DESC
            LIMIT ?
            """,
            (account_id, limit),
        )

    def close(self):
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
