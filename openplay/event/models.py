"""Data models for the Open Play event blueprint."""

from __future__ import annotations

import datetime
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal, Optional, TypedDict, Union

from openplay.core.constants import (
    DEFAULT_COURTS,
    DEFAULT_TOTAL_SLOTS,
    DEFAULT_TOURNAMENT_TIER,
    EARLIEST_START_HOUR,
    LATEST_END_HOUR,
    MAX_PLAYERS,
    MAX_SCORE_LENGTH,
    MIN_PLAYERS,
    TOURNAMENT_TIERS,
)
from openplay.core.types import FirestoreDocument
from openplay.poll.models import PollOption

from .lifecycle import GenerationPolicy

MatchStatus = Literal["scheduled", "in_progress", "completed"]


class _OpenPlayMatchBase(TypedDict):
    matchNumber: int
    court: int
    players: list[str]
    team1: list[str]
    team2: list[str]
    status: MatchStatus


class OpenPlayMatch(_OpenPlayMatchBase, total=False):
    """One doubles fixture embedded in an event's slate."""

    # Only present once the match is completed
    score: str
    winningTeam: int


class OpenPlayEvent(FirestoreDocument, total=False):
    """An Open Play event document in Firestore."""

    title: str
    description: str
    status: str
    eventDate: Any
    startTime: int
    endTime: int
    playerFee: float
    maxPlayers: int
    tournamentTier: str
    createdBy: str

    options: list[PollOption]
    confirmedPlayers: list[str]
    matches: list[OpenPlayMatch]
    matchesGenerated: bool


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.lower() in ["true", "1", "t", "yes"]
    return bool(value)


@dataclass(frozen=True)
class SchedulingSettings:
    """Configuration consumed by match generation."""

    total_slots: int = DEFAULT_TOTAL_SLOTS
    courts: int = DEFAULT_COURTS
    min_players: int = MIN_PLAYERS
    max_players: int = MAX_PLAYERS
    generation_policy: GenerationPolicy = GenerationPolicy.ALLOW_ACTIVE
    auto_close_when_full: bool = True

    def __post_init__(self) -> None:
        """Reject configurations the scheduler cannot honour."""
        if self.total_slots < 1:
            raise ValueError("OPEN_PLAY_TOTAL_SLOTS must be at least 1.")
        if self.courts < 1:
            raise ValueError("OPEN_PLAY_COURTS must be at least 1.")
        if self.min_players < MIN_PLAYERS:
            raise ValueError(f"OPEN_PLAY_MIN_PLAYERS must be at least {MIN_PLAYERS}.")
        if self.max_players < self.min_players:
            raise ValueError("OPEN_PLAY_MAX_PLAYERS must not be below the minimum.")
        try:
            policy = GenerationPolicy(self.generation_policy)
        except ValueError as e:
            raise ValueError(
                f"Unknown generation policy: {self.generation_policy!r}."
            ) from e
        object.__setattr__(self, "generation_policy", policy)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> SchedulingSettings:
        """Read settings from a Flask config mapping."""
        return cls(
            total_slots=int(config.get("OPEN_PLAY_TOTAL_SLOTS", DEFAULT_TOTAL_SLOTS)),
            courts=int(config.get("OPEN_PLAY_COURTS", DEFAULT_COURTS)),
            min_players=int(config.get("OPEN_PLAY_MIN_PLAYERS", MIN_PLAYERS)),
            max_players=int(config.get("OPEN_PLAY_MAX_PLAYERS", MAX_PLAYERS)),
            generation_policy=config.get(
                "OPEN_PLAY_GENERATION_POLICY", GenerationPolicy.ALLOW_ACTIVE
            ),
            auto_close_when_full=_as_bool(
                config.get("OPEN_PLAY_AUTO_CLOSE_WHEN_FULL", True)
            ),
        )


@dataclass
class EventSubmission:
    """Dataclass for an Open Play event creation request."""

    event_date: Union[datetime.date, datetime.datetime]
    start_time: int
    end_time: int
    title: Optional[str] = None
    description: Optional[str] = None
    player_fee: float = 0.0
    max_players: int = MAX_PLAYERS
    tournament_tier: str = DEFAULT_TOURNAMENT_TIER

    def validate(self) -> None:
        """Validate the submission for obvious errors."""
        for hour in (self.start_time, self.end_time):
            if not EARLIEST_START_HOUR <= hour <= LATEST_END_HOUR:
                raise ValueError(
                    f"Times must be between {EARLIEST_START_HOUR} "
                    f"and {LATEST_END_HOUR}."
                )
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time.")
        if self.title is not None and not 5 <= len(self.title.strip()) <= 200:
            raise ValueError("Title must be 5-200 characters.")
        description = self.description
        if description is not None and not 10 <= len(description.strip()) <= 1000:
            raise ValueError("Description must be 10-1000 characters.")
        if self.player_fee < 0:
            raise ValueError("Player fee cannot be negative.")
        if not MIN_PLAYERS <= self.max_players <= MAX_PLAYERS:
            raise ValueError(
                f"Max players must be between {MIN_PLAYERS} and {MAX_PLAYERS}."
            )
        if self.tournament_tier not in TOURNAMENT_TIERS:
            raise ValueError(
                f"Tournament tier must be one of {', '.join(TOURNAMENT_TIERS)}."
            )

    def default_title(self) -> str:
        """Return a title derived from the event date."""
        return f"Open Play - {self.event_date.strftime('%b %d, %Y')}"


@dataclass
class MatchResultSubmission:
    """Dataclass for recording the result of one slate match."""

    match_number: int
    winning_team: int
    score: Optional[str] = None

    def validate(self) -> None:
        """Validate the submission for obvious errors."""
        if self.match_number < 1:
            raise ValueError("Match number must be positive.")
        if self.winning_team not in (1, 2):
            raise ValueError("Winning team must be 1 or 2.")
        if self.score is not None and len(self.score.strip()) > MAX_SCORE_LENGTH:
            raise ValueError(
                f"Score must be at most {MAX_SCORE_LENGTH} characters."
            )
