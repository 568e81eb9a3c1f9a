# tests/test_matches.py

from scrimstats.matches import group_matches, select_mvp, select_mvps
from scrimstats.models import MatchGroup
from tests.helpers import make_row


class TestGroupMatches:

    def test_groups_by_exact_timestamp(self):
        rows = [
            make_row(name="Alpha", ts="2025-06-30 19:00:00"),
            make_row(name="Bravo", ts="2025-06-30 19:10:00"),
            make_row(name="Charlie", ts="2025-06-30 19:00:00"),
        ]
        groups = group_matches(rows)

        assert [group.match_timestamp for group in groups] == ["2025-06-30 19:00:00", "2025-06-30 19:10:00"]
        assert [row.external_player_name for row in groups[0].rows] == ["Alpha", "Charlie"]
        assert groups[1].player_count == 1

    def test_near_timestamps_are_separate_matches(self):
        rows = [
            make_row(name="Alpha", ts="2025-06-30 19:00:00"),
            make_row(name="Bravo", ts="2025-06-30 19:00:01"),
            make_row(name="Charlie", ts="2025-06-30T19:00:00"),
        ]
        assert len(group_matches(rows)) == 3

    def test_every_row_lands_in_one_group(self):
        rows = [make_row(name=f"P{n}", ts=f"t{n % 3}") for n in range(9)]
        groups = group_matches(rows)

        assert sum(group.player_count for group in groups) == 9
        assert len(groups) == 3

    def test_empty_input(self):
        assert group_matches([]) == []


class TestSelectMvp:

    def test_highest_scoring_winner(self):
        group = MatchGroup("t1", [
            make_row(name="Alpha", score=390, result="WIN"),
            make_row(name="Bravo", score=682, result="WIN"),
            make_row(name="Charlie", score=900, result="LOSS"),
        ])
        assert select_mvp(group).external_player_name == "Bravo"

    def test_tie_keeps_first_maximal_row(self):
        group = MatchGroup("t1", [
            make_row(name="Alpha", score=390, result="WIN"),
            make_row(name="Bravo", score=682, result="WIN"),
            make_row(name="Charlie", score=682, result="WIN"),
        ])
        assert select_mvp(group).external_player_name == "Bravo"

    def test_no_winner_means_no_mvp(self):
        group = MatchGroup("t1", [
            make_row(name="Alpha", score=390, result="LOSS"),
            make_row(name="Bravo", score=682, result="LOSS"),
        ])
        assert select_mvp(group) is None

    def test_select_mvps_per_match(self):
        groups = group_matches([
            make_row(name="Alpha", score=300, result="WIN", ts="t1"),
            make_row(name="Bravo", score=500, result="LOSS", ts="t1"),
            make_row(name="Alpha", score=100, result="LOSS", ts="t2"),
            make_row(name="Bravo", score=200, result="LOSS", ts="t2"),
            make_row(name="Charlie", score=50, result="WIN", ts="t3"),
        ])
        mvps = select_mvps(groups)

        assert set(mvps) == {"t1", "t3"}
        assert mvps["t1"].external_player_name == "Alpha"
        assert mvps["t3"].external_player_name == "Charlie"
