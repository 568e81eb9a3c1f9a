# scrimstats/dedup.py

import logging
from typing import List, Sequence, Tuple

from scrimstats.models import MatchRow
from scrimstats.stores import DedupStore

logger = logging.getLogger(__name__)


def make_key(match_timestamp: str, player_id: str) -> str:
    return f"{match_timestamp}_{player_id}"


class DedupIndex:
    """Idempotency gate: each (match timestamp, player id) is admitted once, ever."""

    def __init__(self, store: DedupStore):
        self.store = store

    def is_imported(self, match_timestamp: str, player_id: str) -> bool:
        return self.store.contains(make_key(match_timestamp, player_id))

    def mark_imported(self, match_timestamp: str, player_id: str) -> None:
        self.store.add(make_key(match_timestamp, player_id), match_timestamp, player_id)

    def admit(self, rows: Sequence[MatchRow]) -> Tuple[List[MatchRow], int]:
        """
        Filter rows through the index, marking each new row as it is admitted.

        A row repeated within the same batch is a duplicate of its first
        occurrence. Returns (admitted_rows, duplicate_count).
        """
        admitted: List[MatchRow] = []
        duplicates = 0
        for row in rows:
            key = row.dedup_key
            if self.store.contains(key):
                duplicates += 1
                logger.debug("Skipping duplicate row %s (line %s)", key, row.line_number)
                continue
            self.store.add(key, row.match_timestamp, row.external_player_id)
            admitted.append(row)
        return admitted, duplicates
