# tests/test_dedup.py

import pytest

from scrimstats.database import Database
from scrimstats.dedup import DedupIndex, make_key
from scrimstats.stores import SqliteDedupStore
from tests.helpers import create_test_db, make_row, remove_test_db


class TestDedupIndex:
    """Idempotency gate backed by the sqlite imported_rows table."""

    @pytest.fixture
    def db(self):
        database = create_test_db()
        yield database
        remove_test_db(database)

    @pytest.fixture
    def index(self, db):
        return DedupIndex(SqliteDedupStore(db))

    def test_make_key(self):
        assert make_key("2025-06-30 19:00:00", "steam-1") == "2025-06-30 19:00:00_steam-1"

    def test_mark_and_check(self, index):
        assert not index.is_imported("t1", "p1")
        index.mark_imported("t1", "p1")
        assert index.is_imported("t1", "p1")
        assert not index.is_imported("t1", "p2")
        assert not index.is_imported("t2", "p1")

    def test_mark_is_idempotent(self, index, db):
        index.mark_imported("t1", "p1")
        index.mark_imported("t1", "p1")
        assert db.imported_row_count() == 1

    def test_admit_new_rows(self, index, db):
        rows = [make_row(name="Alpha", ts="t1"), make_row(name="Bravo", ts="t1")]
        admitted, duplicates = index.admit(rows)

        assert admitted == rows
        assert duplicates == 0
        assert db.imported_row_count() == 2

    def test_admit_skips_previously_imported(self, index):
        index.admit([make_row(name="Alpha", ts="t1")])
        admitted, duplicates = index.admit([
            make_row(name="Alpha", ts="t1"),
            make_row(name="Alpha", ts="t2"),
        ])

        assert [row.match_timestamp for row in admitted] == ["t2"]
        assert duplicates == 1

    def test_repeat_within_batch_is_duplicate(self, index):
        row = make_row(name="Alpha", ts="t1")
        admitted, duplicates = index.admit([row, row])

        assert admitted == [row]
        assert duplicates == 1

    def test_key_uses_player_id_not_name(self, index):
        index.admit([make_row(name="Alpha", ts="t1", player_id="steam-1")])
        admitted, duplicates = index.admit([make_row(name="AlphaRenamed", ts="t1", player_id="steam-1")])

        assert admitted == []
        assert duplicates == 1

    def test_missing_id_falls_back_to_name(self, index):
        rows = [
            make_row(name="Alpha", ts="t1", player_id=""),
            make_row(name="Bravo", ts="t1", player_id=""),
        ]
        admitted, duplicates = index.admit(rows)

        assert len(admitted) == 2
        assert duplicates == 0
        assert index.store.contains("t1_alpha")

    def test_index_survives_reopen(self, db):
        DedupIndex(SqliteDedupStore(db)).mark_imported("t1", "p1")
        path = db.db_path
        db.close()

        reopened = Database(path)
        try:
            assert DedupIndex(SqliteDedupStore(reopened)).is_imported("t1", "p1")
        finally:
            reopened.close()
