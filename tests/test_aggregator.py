# tests/test_aggregator.py

from datetime import datetime

import pytest

from scrimstats.aggregator import PlayerAggregator, later_timestamp, parse_timestamp
from tests.helpers import make_row


class TestParseTimestamp:

    def test_iso_format(self):
        assert parse_timestamp("2025-06-30T19:00:00") == datetime(2025, 6, 30, 19, 0, 0)

    def test_zulu_is_normalized_to_naive_utc(self):
        assert parse_timestamp("2025-06-30T19:00:00Z") == datetime(2025, 6, 30, 19, 0, 0)

    def test_offset_is_converted_to_utc(self):
        assert parse_timestamp("2025-06-30T21:00:00+02:00") == datetime(2025, 6, 30, 19, 0, 0)

    def test_us_format_with_meridiem(self):
        assert parse_timestamp("06/30/2025 7:05 PM") == datetime(2025, 6, 30, 19, 5, 0)

    @pytest.mark.parametrize("raw", ["", None, "match-7", "yesterday"])
    def test_unparseable_returns_none(self, raw):
        assert parse_timestamp(raw) is None


class TestLaterTimestamp:

    def test_first_value_always_wins(self):
        assert later_timestamp(None, "t1")

    def test_chronological_when_parseable(self):
        # 2 PM is later than 9 AM even though "09" sorts after "02" as text
        assert later_timestamp("06/30/2025 09:00 AM", "06/30/2025 02:00 PM")
        assert not later_timestamp("06/30/2025 02:00 PM", "06/30/2025 09:00 AM")

    def test_lexicographic_fallback(self):
        assert later_timestamp("match-1", "match-2")
        assert not later_timestamp("match-2", "match-1")

    def test_missing_candidate(self):
        assert not later_timestamp("t1", None)


class TestPlayerAggregator:

    @pytest.fixture
    def aggregator(self):
        return PlayerAggregator()

    def test_sums_rows_per_player(self, aggregator):
        aggregates = aggregator.aggregate([
            make_row(name="Alpha", goals=2, assists=1, saves=3, shots=5, demos=1, result="WIN", ts="t1"),
            make_row(name="Alpha", goals=1, assists=0, saves=2, shots=1, demos=0, result="LOSS", ts="t2"),
            make_row(name="Bravo", goals=4, result="WIN", ts="t1"),
        ])

        alpha = aggregates["alpha"]
        assert alpha.total_games == 2
        assert alpha.total_goals == 3
        assert alpha.total_assists == 1
        assert alpha.total_saves == 5
        assert alpha.total_shots == 6
        assert alpha.total_demos == 1
        assert alpha.total_wins == 1
        assert alpha.total_losses == 1
        assert aggregates["bravo"].total_goals == 4

    def test_names_are_keyed_case_insensitively(self, aggregator):
        aggregates = aggregator.aggregate([
            make_row(name="Alpha", goals=1, ts="t1"),
            make_row(name="ALPHA", goals=2, ts="t2"),
        ])

        assert list(aggregates) == ["alpha"]
        assert aggregates["alpha"].name == "Alpha"
        assert aggregates["alpha"].total_goals == 3

    def test_last_seen_tracks_most_recent_row(self, aggregator):
        aggregates = aggregator.aggregate([
            make_row(name="Alpha", color="Blue", ts="2025-06-30 19:10:00", player_id="new-id"),
            make_row(name="Alpha", color="Orange", ts="2025-06-30 19:00:00", player_id="old-id"),
        ])
        alpha = aggregates["alpha"]

        assert alpha.last_seen_timestamp == "2025-06-30 19:10:00"
        assert alpha.last_team_color == "Blue"
        assert alpha.external_player_id == "new-id"

    def test_missing_id_is_filled_from_older_row(self, aggregator):
        aggregates = aggregator.aggregate([
            make_row(name="Alpha", ts="t2", player_id=""),
            make_row(name="Alpha", ts="t1", player_id="steam-1"),
        ])
        assert aggregates["alpha"].external_player_id == "steam-1"

    def test_apply_mvp_credits(self, aggregator):
        winner = make_row(name="alpha", score=500, ts="t1")
        ghost = make_row(name="Ghost", score=900, ts="t2")
        aggregates = aggregator.aggregate([make_row(name="Alpha", ts="t1")])

        dropped = aggregator.apply_mvp_credits(aggregates, {"t1": winner, "t2": ghost})

        assert aggregates["alpha"].total_mvps == 1
        assert dropped == ["t2"]

    def test_to_delta(self, aggregator):
        aggregates = aggregator.aggregate([make_row(name="Alpha", goals=2, saves=1)])
        delta = aggregates["alpha"].to_delta()

        assert delta.games_played == 1
        assert delta.goals == 2
        assert delta.saves == 1
        assert delta.mvps == 0
