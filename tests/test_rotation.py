"""Tests for slate rotation statistics."""

from __future__ import annotations

import unittest

from openplay.event.rotation import RotationAnalyzer
from openplay.event.scheduler import DoublesMatchScheduler


def _match(number: int, team1: list[str], team2: list[str]) -> dict:
    return {
        "matchNumber": number,
        "court": 1,
        "players": team1 + team2,
        "team1": team1,
        "team2": team2,
        "status": "scheduled",
    }


class RotationAnalyzerTestCase(unittest.TestCase):
    """Test case for RotationAnalyzer."""

    def test_analyze_counts_matches(self) -> None:
        """Test per-player counts and match numbers."""
        matches = [
            _match(1, ["a", "b"], ["c", "d"]),
            _match(2, ["a", "e"], ["b", "c"]),
        ]
        report = RotationAnalyzer.analyze(["a", "b", "c", "d", "e"], matches)
        self.assertEqual(report["totalMatches"], 2)
        self.assertEqual(report["perPlayer"]["a"], {"matchCount": 2, "matchNumbers": [1, 2]})
        self.assertEqual(report["perPlayer"]["d"], {"matchCount": 1, "matchNumbers": [1]})
        self.assertEqual(report["perPlayer"]["e"]["matchNumbers"], [2])

    def test_analyze_includes_idle_players(self) -> None:
        """Test that confirmed players without matches report zero."""
        report = RotationAnalyzer.analyze(["a", "b", "c", "d", "z"], [])
        self.assertEqual(report["perPlayer"]["z"], {"matchCount": 0, "matchNumbers": []})
        self.assertEqual(report["totalMatches"], 0)

    def test_report_for_generated_slate(self) -> None:
        """Test that a generated seven-player slate reports no violations."""
        players = [f"p{i}" for i in range(1, 8)]
        matches = DoublesMatchScheduler.generate(players, seed="r")
        report = RotationAnalyzer.build_report(players, matches)
        self.assertEqual(report["base"], 3)
        self.assertEqual(report["extra"], 3)
        self.assertEqual(report["fairnessViolations"], [])
        counts = sorted(e["matchCount"] for e in report["perPlayer"].values())
        self.assertEqual(counts, [3, 3, 3, 3, 4, 4, 4])

    def test_report_four_players_repeat_partners(self) -> None:
        """Test that four players partner each teammate exactly twice."""
        players = ["a", "b", "c", "d"]
        matches = DoublesMatchScheduler.generate(players, seed="r")
        report = RotationAnalyzer.build_report(players, matches)
        self.assertEqual(len(report["repeatedPartnerships"]), 6)
        self.assertEqual({p["times"] for p in report["repeatedPartnerships"]}, {2})

    def test_unbalanced_slate(self) -> None:
        """Test that an uneven slate is flagged."""
        players = ["a", "b", "c", "d", "e"]
        matches = [
            _match(1, ["a", "b"], ["c", "d"]),
            _match(2, ["a", "b"], ["c", "d"]),
        ]
        violations = RotationAnalyzer.fairness_violations(players, matches)
        self.assertIn("Match counts range from 0 to 2.", violations)

    def test_malformed_match(self) -> None:
        """Test that matches with a bad shape are flagged."""
        players = ["a", "b", "c", "d"]
        bad = {
            "matchNumber": 1,
            "players": ["a", "b", "c", "c"],
            "team1": ["a", "b"],
            "team2": ["c"],
        }
        problems = RotationAnalyzer.match_shape_problems(bad)
        self.assertIn("Match 1 does not have 4 distinct players.", problems)
        self.assertIn("Match 1 does not have two teams of 2.", problems)
        self.assertTrue(RotationAnalyzer.fairness_violations(players, [bad]))

    def test_unconfirmed_player(self) -> None:
        """Test that a scheduled player missing from the roster is flagged."""
        matches = [_match(1, ["a", "b"], ["c", "x"])]
        violations = RotationAnalyzer.fairness_violations(["a", "b", "c", "d"], matches)
        self.assertIn("Player x is scheduled but not confirmed.", violations)

    def test_empty_roster_report(self) -> None:
        """Test that an event without players yields an empty report."""
        report = RotationAnalyzer.build_report([], [])
        self.assertEqual(report["base"], 0)
        self.assertEqual(report["extra"], 0)
        self.assertEqual(report["fairnessViolations"], [])
        self.assertEqual(report["repeatedPartnerships"], [])


if __name__ == "__main__":
    unittest.main()
