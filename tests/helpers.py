# tests/helpers.py

import os
import tempfile
from typing import Iterable, List, Sequence

from scrimstats.database import Database
from scrimstats.models import MatchRow

HEADER = "Team,Name,Goals,Assists,Saves,Shots,Demos,Score,Result,Timestamp,PlayerID"


def create_test_db() -> Database:
    """Create a fresh test database in a temp file."""
    fd, db_path = tempfile.mkstemp(suffix='.db')
    os.close(fd)
    os.remove(db_path)
    return Database(db_path=db_path)


def remove_test_db(db: Database) -> None:
    path = db.db_path
    db.close()
    for suffix in ('', '-wal', '-shm'):
        if os.path.exists(path + suffix):
            os.remove(path + suffix)


def make_row(name: str = "Alpha", color: str = "Orange", goals: int = 0, assists: int = 0,
             saves: int = 0, shots: int = 0, demos: int = 0, score: int = 0,
             result: str = "WIN", ts: str = "t1", player_id: str = None,
             line_number: int = 0) -> MatchRow:
    return MatchRow(
        external_player_name=name,
        team_color=color,
        goals=goals,
        assists=assists,
        saves=saves,
        shots=shots,
        demos=demos,
        score=score,
        result=result,
        match_timestamp=ts,
        external_player_id=player_id if player_id is not None else f"id-{name.lower()}",
        line_number=line_number,
    )


def export_line(color: str, name: str, goals=0, assists=0, saves=0, shots=0, demos=0,
                score=0, result="WIN", ts="2025-06-30 19:00:00", player_id=None) -> str:
    player_id = player_id if player_id is not None else f"id-{name.lower()}"
    return ",".join(str(value) for value in (
        color, name, goals, assists, saves, shots, demos, score, result, ts, player_id,
    ))


def build_export(lines: Iterable[str], header: bool = True) -> bytes:
    body: List[str] = [HEADER] if header else []
    body.extend(lines)
    return ("\n".join(body) + "\n").encode("utf-8")


def sample_export() -> bytes:
    """Two matches, three players on Orange, two on Blue."""
    return build_export([
        export_line("Orange", "Alpha", goals=2, assists=1, saves=3, shots=5, demos=1, score=390,
                    result="WIN", ts="2025-06-30 19:00:00"),
        export_line("Orange", "Bravo", goals=1, assists=2, saves=1, shots=3, score=682,
                    result="WIN", ts="2025-06-30 19:00:00"),
        export_line("Blue", "Charlie", goals=1, saves=4, shots=2, score=300,
                    result="LOSS", ts="2025-06-30 19:00:00"),
        export_line("Orange", "Alpha", goals=0, assists=0, saves=2, shots=1, score=150,
                    result="LOSS", ts="2025-06-30 19:10:00"),
        export_line("Orange", "Bravo", goals=3, shots=6, demos=2, score=510,
                    result="LOSS", ts="2025-06-30 19:10:00"),
        export_line("Blue", "Charlie", goals=2, assists=1, shots=4, score=600,
                    result="WIN", ts="2025-06-30 19:10:00"),
    ])


def add_sample_accounts(db: Database, names: Sequence[str] = ("Alpha", "Bravo", "Charlie")) -> None:
    """Register one account per name, with the name as username and display name."""
    for index, name in enumerate(names, start=1):
        db.add_account(f"acc-{index}", name.lower(), name, "A-Team")
