# tests/test_ledger_manager.py

import pytest

from scrimstats.ledger_manager import LedgerManager
from scrimstats.models import StatDelta, TeamRecord
from tests.helpers import add_sample_accounts, create_test_db, remove_test_db


class TestLedgerManager:
    """Manual ledger and team record corrections."""

    @pytest.fixture
    def db(self):
        database = create_test_db()
        add_sample_accounts(database)
        yield database
        remove_test_db(database)

    @pytest.fixture
    def mgr(self, db):
        return LedgerManager(db)

    def test_add_stats(self, mgr):
        ledger = mgr.add_stats("acc-1", StatDelta(games_played=2, goals=5, saves=3, mvps=1))

        assert ledger.games_played == 2
        assert ledger.goals == 5
        assert mgr.get_ledger("acc-1") == ledger

    def test_add_stats_records_game_averages(self, mgr):
        mgr.add_stats("acc-1", StatDelta(games_played=2, goals=5, assists=2, saves=3, mvps=1))
        games = mgr.get_recent_games("acc-1")

        assert len(games) == 1
        assert games[0]['goals'] == round(5 / 2)
        assert games[0]['assists'] == 1
        assert games[0]['saves'] == 2
        assert games[0]['mvp'] == 1

    def test_add_stats_without_games_skips_history(self, mgr):
        mgr.add_stats("acc-1", StatDelta(goals=2))
        assert mgr.get_recent_games("acc-1") == []

    def test_remove_stats_clamps_at_zero(self, mgr):
        mgr.add_stats("acc-1", StatDelta(games_played=1, goals=3))
        ledger = mgr.remove_stats("acc-1", StatDelta(games_played=5, goals=1))

        assert ledger.games_played == 0
        assert ledger.goals == 2

    def test_negative_delta_raises(self, mgr):
        with pytest.raises(ValueError):
            mgr.add_stats("acc-1", StatDelta(goals=-1))

    def test_zero_delta_raises(self, mgr):
        with pytest.raises(ValueError):
            mgr.remove_stats("acc-1", StatDelta())

    def test_unknown_account_raises(self, mgr):
        with pytest.raises(ValueError):
            mgr.add_stats("nobody", StatDelta(goals=1))
        with pytest.raises(ValueError):
            mgr.get_recent_games("nobody")

    def test_recent_games_limit_is_clamped(self, mgr, db):
        for n in range(25):
            db.add_game_record("acc-1", {"match_timestamp": f"t{n}"})

        assert len(mgr.get_recent_games("acc-1", 50)) == 20
        assert len(mgr.get_recent_games("acc-1", 0)) == 1
        assert len(mgr.get_recent_games("acc-1")) == 10

    def test_leaderboard(self, mgr):
        mgr.add_stats("acc-2", StatDelta(goals=3))
        board = mgr.get_leaderboard()
        assert board[0]['account_id'] == "acc-2"
        assert len(mgr.get_leaderboard(team="B-Team")) == 0

    def test_wipe_ledgers(self, mgr):
        mgr.add_stats("acc-1", StatDelta(games_played=1, goals=3))
        assert mgr.wipe_ledgers() == 3
        assert mgr.get_ledger("acc-1").goals == 0
        assert mgr.get_recent_games("acc-1") == []

    def test_adjust_team(self, mgr):
        assert mgr.adjust_team("A-Team", wins=2, losses=1) == TeamRecord("A-Team", 2, 1)
        assert mgr.adjust_team("A-Team", wins=5, remove=True) == TeamRecord("A-Team", 0, 1)

    def test_adjust_new_team(self, mgr):
        mgr.adjust_team("C-Team", losses=1)
        assert TeamRecord("C-Team", 0, 1) in mgr.get_team_records()

    @pytest.mark.parametrize("kwargs", [
        {"team_name": "", "wins": 1},
        {"team_name": "A-Team", "wins": -1},
        {"team_name": "A-Team"},
    ])
    def test_adjust_team_invalid(self, mgr, kwargs):
        with pytest.raises(ValueError):
            mgr.adjust_team(**kwargs)

    def test_wipe_team_records(self, mgr):
        mgr.adjust_team("A-Team", wins=3)
        mgr.wipe_team_records()
        assert all(r.wins == 0 and r.losses == 0 for r in mgr.get_team_records())

    # --- Achievements, comparison and team summaries ---

    def test_no_achievements_for_fresh_account(self, mgr):
        report = mgr.get_achievements("acc-1")

        assert report["unlocked"] == []
        assert [item["category"] for item in report["progress"]] == [
            "goals", "assists", "saves", "shots", "mvps", "games_played",
        ]
        assert all(item["percentage"] == 0 for item in report["progress"])

    def test_achievements_unlock_at_threshold(self, mgr):
        mgr.add_stats("acc-1", StatDelta(goals=10, saves=74))
        report = mgr.get_achievements("acc-1")

        names = [item["name"] for item in report["unlocked"]]
        assert names == ["Sniper", "Safe Hands", "Wall"]
        saves = next(item for item in report["progress"] if item["category"] == "saves")
        assert (saves["name"], saves["needed"], saves["percentage"]) == ("Guardian", 1, 99)

    def test_maxed_category_has_no_progress_entry(self, mgr):
        mgr.add_stats("acc-1", StatDelta(mvps=25))
        report = mgr.get_achievements("acc-1")

        assert {"Star Player", "MVP King", "Champion"} <= {item["name"] for item in report["unlocked"]}
        assert "mvps" not in [item["category"] for item in report["progress"]]

    def test_achievements_unknown_account(self, mgr):
        with pytest.raises(ValueError):
            mgr.get_achievements("nobody")

    def test_compare(self, mgr):
        mgr.add_stats("acc-1", StatDelta(games_played=4, goals=6, assists=2, mvps=1))
        result = mgr.compare("acc-1", "acc-2")

        first, second = result["first"], result["second"]
        assert first["display_name"] == "Alpha"
        assert first["goals_per_game"] == 1.5
        assert first["assists_per_game"] == 0.5
        assert first["mvp_rate"] == 25.0
        assert second["games_played"] == 0
        assert second["goals_per_game"] == 0.0

    def test_compare_unknown_account(self, mgr):
        with pytest.raises(ValueError):
            mgr.compare("acc-1", "nobody")

    def test_team_record_summary(self, mgr):
        mgr.adjust_team("A-Team", wins=2, losses=1)
        record = mgr.get_team_record("A-Team")

        assert record.total_games == 3
        assert record.win_rate == 66.7

    def test_unknown_team_record(self, mgr):
        with pytest.raises(ValueError):
            mgr.get_team_record("Z-Team")
