"""Doubles slate generation with balanced per-player match counts."""

from __future__ import annotations

import itertools
import logging
import random
from collections import Counter, defaultdict
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from openplay.core.constants import (
    DEFAULT_COURTS,
    DEFAULT_TOTAL_SLOTS,
    MAX_PLAYERS,
    MIN_PLAYERS,
    PLAYERS_PER_MATCH,
)
from openplay.errors import InvalidPlayerCountError, SchedulingExhaustionError

if TYPE_CHECKING:
    from .models import OpenPlayMatch, SchedulingSettings

logger = logging.getLogger(__name__)

# The three ways of splitting four players into two teams of two.
TEAM_SPLITS = (((0, 1), (2, 3)), ((0, 2), (1, 3)), ((0, 3), (1, 2)))


def check_player_count(
    count: int, min_players: int = MIN_PLAYERS, max_players: int = MAX_PLAYERS
) -> None:
    """Raise InvalidPlayerCountError if ``count`` cannot be scheduled."""
    if count < min_players:
        raise InvalidPlayerCountError(
            f"Need at least {min_players} players to generate matches."
        )
    if count > max_players:
        raise InvalidPlayerCountError(
            f"Maximum {max_players} players allowed for Open Play."
        )


def allocate_slots(players: Sequence[str], total_slots: int) -> dict[str, int]:
    """Split ``4 * total_slots`` player-slots across the roster.

    The first ``extra`` players in roster order get one slot more than the
    rest, so no two players differ by more than one match.
    """
    base, extra = divmod(PLAYERS_PER_MATCH * total_slots, len(players))
    return {p: base + (1 if i < extra else 0) for i, p in enumerate(players)}


def court_for(match_number: int, courts: int) -> int:
    """Return the court a match is played on, assigned round-robin."""
    return (match_number - 1) % courts + 1


class _SlateBuilder:
    """Mutable drawing state for a single call to ``generate``."""

    def __init__(
        self, roster: list[str], pool: Counter[str], rng: random.Random
    ) -> None:
        self.roster = roster
        self.order = {p: i for i, p in enumerate(roster)}
        self.remaining = pool
        self.rng = rng
        self.together: Counter[frozenset[str]] = Counter()
        self.partners: Counter[frozenset[str]] = Counter()
        self.last_partnered: dict[frozenset[str], int] = {}
        self.rounds: defaultdict[int, set[str]] = defaultdict(set)

    def draw(self, match_index: int, matches_left: int, round_index: int) -> list[str]:
        """Take four distinct players out of the pool."""
        available = [p for p in self.roster if self.remaining[p] > 0]
        if len(available) < PLAYERS_PER_MATCH:
            raise SchedulingExhaustionError(
                f"Only {len(available)} distinct players left in the pool "
                f"for match {match_index + 1}."
            )

        # A player owed a slot in every remaining match must play now,
        # otherwise their allocation can no longer be met.
        forced = tuple(p for p in available if self.remaining[p] >= matches_left)
        if len(forced) > PLAYERS_PER_MATCH:
            raise SchedulingExhaustionError(
                f"{len(forced)} players must all play match {match_index + 1}."
            )
        optional = [p for p in available if p not in forced]
        candidates = [
            forced + combo
            for combo in itertools.combinations(
                optional, PLAYERS_PER_MATCH - len(forced)
            )
        ]

        busy = self.rounds[round_index]

        def cost(group: tuple[str, ...]) -> tuple[Any, ...]:
            return (
                sum(1 for p in group if p in busy),
                sum(
                    self.together[frozenset(pair)]
                    for pair in itertools.combinations(group, 2)
                ),
                -sum(self.remaining[p] for p in group),
                self.rng.random(),
            )

        group = sorted(min(candidates, key=cost), key=self.order.__getitem__)
        for p in group:
            self.remaining[p] -= 1
        for pair in itertools.combinations(group, 2):
            self.together[frozenset(pair)] += 1
        busy.update(group)
        return group

    def split(self, group: list[str], match_index: int) -> tuple[list[str], list[str]]:
        """Partition four players into two teams, avoiding repeat partners."""
        options = [
            ([group[a], group[b]], [group[c], group[d]])
            for (a, b), (c, d) in TEAM_SPLITS
        ]

        def cost(option: tuple[list[str], list[str]]) -> tuple[Any, ...]:
            pairs = [frozenset(option[0]), frozenset(option[1])]
            return (
                sum(self.partners[pair] for pair in pairs),
                max(self.last_partnered.get(pair, -1) for pair in pairs),
                self.rng.random(),
            )

        team1, team2 = min(options, key=cost)
        for team in (team1, team2):
            pair = frozenset(team)
            self.partners[pair] += 1
            self.last_partnered[pair] = match_index
        return team1, team2


class DoublesMatchScheduler:
    """Generates a fixed-length slate of doubles matches for one event."""

    @staticmethod
    def generate(
        players: Sequence[str],
        total_slots: int = DEFAULT_TOTAL_SLOTS,
        courts: int = DEFAULT_COURTS,
        *,
        seed: Any = 0,
        min_players: int = MIN_PLAYERS,
        max_players: int = MAX_PLAYERS,
    ) -> list[OpenPlayMatch]:
        """Build ``total_slots`` matches from the confirmed roster.

        Each player is allotted ``floor(4 * total_slots / n)`` matches, and the
        first ``(4 * total_slots) % n`` players in roster order one more. Matches
        are drawn greedily from that pool, preferring players who have not yet
        shared a match, then players with the most slots left. The same
        ``seed`` always yields the same slate.
        """
        roster = list(players)
        if len(set(roster)) != len(roster):
            raise ValueError("Players must be unique.")
        check_player_count(len(roster), min_players, max_players)
        if total_slots < 1:
            raise ValueError("At least one match must be scheduled.")
        if courts < 1:
            raise ValueError("At least one court is required.")

        pool = Counter(allocate_slots(roster, total_slots))
        if sum(pool.values()) != PLAYERS_PER_MATCH * total_slots:
            raise SchedulingExhaustionError(
                f"Pool holds {sum(pool.values())} slots for {total_slots} matches."
            )

        builder = _SlateBuilder(roster, pool, random.Random(seed))
        matches: list[OpenPlayMatch] = []
        for index in range(total_slots):
            number = index + 1
            group = builder.draw(
                index, total_slots - index, round_index=index // courts
            )
            team1, team2 = builder.split(group, index)
            logger.debug(f"Match {number}: {team1} vs {team2}")
            matches.append(
                {
                    "matchNumber": number,
                    "court": court_for(number, courts),
                    "players": team1 + team2,
                    "team1": team1,
                    "team2": team2,
                    "status": "scheduled",
                }
            )
        return matches

    @staticmethod
    def generate_for(
        players: Sequence[str], settings: SchedulingSettings, seed: Any = 0
    ) -> list[OpenPlayMatch]:
        """Generate a slate using configured slot, court and roster bounds."""
        return DoublesMatchScheduler.generate(
            players,
            settings.total_slots,
            settings.courts,
            seed=seed,
            min_players=settings.min_players,
            max_players=settings.max_players,
        )
