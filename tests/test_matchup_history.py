"""
Tests for opponent history and RED/BLUE split selection.
"""

import pytest

from match_engine.services.matchup_history import MatchupHistoryTracker
from match_engine.services.records import AllianceEntry, MatchRecord


class TestRecording:
    def test_only_cross_alliance_pairs_count(self):
        tracker = MatchupHistoryTracker()
        tracker.record(["A", "B"], ["C", "D"])
        assert tracker.have_met("A", "C")
        assert tracker.have_met("D", "B")
        assert not tracker.have_met("A", "B")
        assert tracker.opponents_of("A") == {"C", "D"}

    def test_unknown_team_has_no_opponents(self):
        assert MatchupHistoryTracker().opponents_of("Z") == set()

    def test_from_matches(self):
        match = MatchRecord(
            match_number=1,
            round_number=1,
            red=[AllianceEntry("A", 1), AllianceEntry("B", 2)],
            blue=[AllianceEntry("C", 1), AllianceEntry("D", 2)],
        )
        tracker = MatchupHistoryTracker.from_matches([match])
        assert tracker.have_met("B", "C")

    def test_repeat_penalty(self):
        tracker = MatchupHistoryTracker()
        tracker.record(["A", "B"], ["C", "D"])
        assert tracker.repeat_penalty(["A", "B"], ["C", "D"]) == 4
        assert tracker.repeat_penalty(["A", "C"], ["B", "D"]) == 2
        assert tracker.repeat_penalty(["A", "B"], ["E", "F"]) == 0


class TestBestSplit:
    def test_default_split_without_history(self):
        assert MatchupHistoryTracker().best_split(["A", "B", "C", "D"]) == (["A", "B"], ["C", "D"])

    def test_avoids_previous_opponents(self):
        tracker = MatchupHistoryTracker()
        tracker.record(["A"], ["C"])
        tracker.record(["B"], ["D"])
        assert tracker.best_split(["A", "B", "C", "D"]) == (["A", "C"], ["B", "D"])

    def test_ties_keep_earliest_split(self):
        tracker = MatchupHistoryTracker()
        tracker.record(["A"], ["B"])
        tracker.record(["A"], ["C"])
        assert tracker.repeat_penalty(["A", "B"], ["C", "D"]) == 1
        assert tracker.repeat_penalty(["A", "C"], ["B", "D"]) == 1
        assert tracker.best_split(["A", "B", "C", "D"]) == (["A", "B"], ["C", "D"])

    def test_six_team_group_takes_fewest_repeats(self):
        tracker = MatchupHistoryTracker()
        tracker.record(["A"], ["D"])
        tracker.record(["B"], ["E"])
        tracker.record(["C"], ["F"])
        red, blue = tracker.best_split(["A", "B", "C", "D", "E", "F"])
        assert red == ["A", "B", "D"]
        assert tracker.repeat_penalty(red, blue) == 1

    def test_requires_even_group(self):
        with pytest.raises(ValueError):
            MatchupHistoryTracker().best_split(["A", "B", "C"])
