"""Read-only statistics over a generated slate."""

from __future__ import annotations

import itertools
from collections import Counter
from collections.abc import Mapping, Sequence
from typing import Any, TypedDict

from openplay.core.constants import PLAYERS_PER_MATCH, PLAYERS_PER_TEAM


class PlayerRotation(TypedDict):
    """How often, and in which matches, one player appears."""

    matchCount: int
    matchNumbers: list[int]


class Partnership(TypedDict):
    """Two players who were teammates more than once."""

    players: list[str]
    times: int


class RotationReport(TypedDict, total=False):
    """Per-player rotation statistics for a slate."""

    perPlayer: dict[str, PlayerRotation]
    totalMatches: int

    # Extended diagnostics
    base: int
    extra: int
    fairnessViolations: list[str]
    repeatedPartnerships: list[Partnership]


class RotationAnalyzer:
    """Aggregates a slate without modifying it."""

    @staticmethod
    def analyze(
        players: Sequence[str], matches: Sequence[Mapping[str, Any]]
    ) -> RotationReport:
        """Count matches per player and record which match numbers they play."""
        per_player: dict[str, PlayerRotation] = {
            p: {"matchCount": 0, "matchNumbers": []} for p in players
        }
        for match in matches:
            for p in match.get("players") or []:
                entry = per_player.setdefault(p, {"matchCount": 0, "matchNumbers": []})
                entry["matchCount"] += 1
                entry["matchNumbers"].append(match.get("matchNumber"))
        return {"perPlayer": per_player, "totalMatches": len(matches)}

    @staticmethod
    def match_shape_problems(match: Mapping[str, Any]) -> list[str]:
        """Return the ways a single match breaks the doubles shape."""
        label = f"Match {match.get('matchNumber', '?')}"
        players = list(match.get("players") or [])
        team1 = list(match.get("team1") or [])
        team2 = list(match.get("team2") or [])
        problems = []
        if len(players) != PLAYERS_PER_MATCH or len(set(players)) != PLAYERS_PER_MATCH:
            problems.append(f"{label} does not have {PLAYERS_PER_MATCH} distinct players.")
        if len(team1) != PLAYERS_PER_TEAM or len(team2) != PLAYERS_PER_TEAM:
            problems.append(f"{label} does not have two teams of {PLAYERS_PER_TEAM}.")
        if set(team1) & set(team2):
            problems.append(f"{label} has a player on both teams.")
        if set(team1) | set(team2) != set(players):
            problems.append(f"{label} teams do not match its players.")
        return problems

    @staticmethod
    def fairness_violations(
        players: Sequence[str],
        matches: Sequence[Mapping[str, Any]],
        report: RotationReport | None = None,
    ) -> list[str]:
        """Return every broken slate invariant as a readable message."""
        if report is None:
            report = RotationAnalyzer.analyze(players, matches)
        per_player = report["perPlayer"]
        violations: list[str] = []

        for match in matches:
            violations.extend(RotationAnalyzer.match_shape_problems(match))

        roster = set(players)
        for p in per_player:
            if p not in roster:
                violations.append(f"Player {p} is scheduled but not confirmed.")

        slots = sum(entry["matchCount"] for entry in per_player.values())
        if slots != PLAYERS_PER_MATCH * len(matches):
            violations.append(
                f"Slate uses {slots} player-slots, expected "
                f"{PLAYERS_PER_MATCH * len(matches)}."
            )

        if players and matches:
            base = PLAYERS_PER_MATCH * len(matches) // len(players)
            counts = [per_player[p]["matchCount"] for p in players]
            for p, count in zip(players, counts):
                if count > base + 1:
                    violations.append(
                        f"Player {p} plays {count} matches, more than {base + 1}."
                    )
            if max(counts) - min(counts) > 1:
                violations.append(
                    f"Match counts range from {min(counts)} to {max(counts)}."
                )
        return violations

    @staticmethod
    def repeated_partnerships(
        matches: Sequence[Mapping[str, Any]],
    ) -> list[Partnership]:
        """Return teammate pairs that appear together more than once."""
        partners: Counter[tuple[str, ...]] = Counter()
        for match in matches:
            for team in (match.get("team1") or [], match.get("team2") or []):
                for pair in itertools.combinations(sorted(team), 2):
                    partners[pair] += 1
        return [
            {"players": list(pair), "times": times}
            for pair, times in sorted(partners.items())
            if times > 1
        ]

    @staticmethod
    def build_report(
        players: Sequence[str], matches: Sequence[Mapping[str, Any]]
    ) -> RotationReport:
        """Return ``analyze`` output extended with fairness diagnostics."""
        report = RotationAnalyzer.analyze(players, matches)
        base, extra = (
            divmod(PLAYERS_PER_MATCH * len(matches), len(players))
            if players
            else (0, 0)
        )
        report["base"] = base
        report["extra"] = extra
        report["fairnessViolations"] = RotationAnalyzer.fairness_violations(
            players, matches, report
        )
        report["repeatedPartnerships"] = RotationAnalyzer.repeated_partnerships(
            matches
        )
        return report
