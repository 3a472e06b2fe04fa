"""Data models for the poll blueprint."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict

from openplay.core.constants import DEFAULT_OPTIONS


class PollOption(TypedDict):
    """A labelled choice embedded in an event document."""

    text: str
    votes: int
    voters: list[str]


def default_options() -> list[PollOption]:
    """Return fresh, empty Yes/No options for a new event."""
    return [{"text": text, "votes": 0, "voters": []} for text in DEFAULT_OPTIONS]


@dataclass
class VoteSubmission:
    """Dataclass for a single vote request."""

    user_id: str
    option: str

    def validate(self) -> None:
        """Validate the submission for obvious errors."""
        if not self.user_id or not isinstance(self.user_id, str):
            raise ValueError("A voter is required.")
        if not self.option or not isinstance(self.option, str):
            raise ValueError("An option must be selected.")
