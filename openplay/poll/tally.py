"""Vote aggregation over the options embedded in an event document."""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from typing import Any

from openplay.core.constants import YES_OPTION
from openplay.errors import DataIntegrityError, NotFoundError

from .models import PollOption


class VoteTally:
    """Counts ballots per option and exposes the voter set of an option.

    A voter holds at most one option at a time. Instances are immutable:
    ``cast`` and ``retract`` return a new tally.
    """

    def __init__(self, options: Iterable[Mapping[str, Any]] | None) -> None:
        if options is None or isinstance(options, (str, bytes, Mapping)):
            raise DataIntegrityError("Poll options are missing or malformed.")
        self._options: list[dict[str, Any]] = [
            copy.deepcopy(dict(o)) if isinstance(o, Mapping) else o for o in options
        ]

    @staticmethod
    def _key(text: str) -> str:
        return text.strip().lower()

    def validate(self) -> None:
        """Raise DataIntegrityError unless every option is well formed."""
        seen_labels: set[str] = set()
        seen_voters: dict[str, str] = {}
        for option in self._options:
            if not isinstance(option, dict):
                raise DataIntegrityError("Poll option is not a mapping.")
            text = option.get("text")
            if not isinstance(text, str) or not text.strip():
                raise DataIntegrityError("Poll option has no label.")
            key = self._key(text)
            if key in seen_labels:
                raise DataIntegrityError(f"Poll option '{text}' appears twice.")
            seen_labels.add(key)

            voters = option.get("voters", [])
            if not isinstance(voters, list):
                raise DataIntegrityError(f"Voters of option '{text}' are not a list.")
            for voter in voters:
                if not isinstance(voter, str) or not voter:
                    raise DataIntegrityError(
                        f"Option '{text}' holds an invalid voter id: {voter!r}."
                    )
                if voter in seen_voters:
                    raise DataIntegrityError(
                        f"Voter {voter} appears in both '{seen_voters[voter]}' "
                        f"and '{text}'."
                    )
                seen_voters[voter] = text

            votes = option.get("votes")
            if votes is not None and votes != len(voters):
                raise DataIntegrityError(
                    f"Option '{text}' records {votes} votes for {len(voters)} voters."
                )

    def _find(self, text: str) -> dict[str, Any]:
        key = self._key(text)
        for option in self._options:
            if self._key(option["text"]) == key:
                return option
        raise NotFoundError(f"Option '{text}' not found.")

    def voters_for(self, text: str) -> list[str]:
        """Return the voters of ``text`` in the order they voted."""
        self.validate()
        return list(self._find(text).get("voters", []))

    def yes_voters(self) -> list[str]:
        """Return the voter list of the Yes option."""
        try:
            return self.voters_for(YES_OPTION)
        except NotFoundError as e:
            raise DataIntegrityError("Poll has no 'Yes' option.") from e

    def counts(self) -> dict[str, int]:
        """Return a mapping of option label to number of votes."""
        self.validate()
        return {o["text"]: len(o.get("voters", [])) for o in self._options}

    def option_of(self, voter: str) -> str | None:
        """Return the label the voter currently holds, if any."""
        self.validate()
        for option in self._options:
            if voter in option.get("voters", []):
                return option["text"]
        return None

    def cast(self, voter: str, text: str) -> VoteTally:
        """Return a tally where ``voter`` holds ``text`` and nothing else."""
        self.validate()
        target = self._key(self._find(text)["text"])
        tally = self.retract(voter)
        for option in tally._options:
            if tally._key(option["text"]) == target:
                option.setdefault("voters", []).append(voter)
                option["votes"] = len(option["voters"])
        return tally

    def retract(self, voter: str) -> VoteTally:
        """Return a tally without any vote from ``voter``."""
        self.validate()
        tally = VoteTally(self._options)
        for option in tally._options:
            voters = option.get("voters", [])
            option["voters"] = [v for v in voters if v != voter]
            option["votes"] = len(option["voters"])
        return tally

    def to_options(self) -> list[PollOption]:
        """Return the options in their stored form with derived vote counts."""
        self.validate()
        return [
            {
                "text": o["text"],
                "votes": len(o.get("voters", [])),
                "voters": list(o.get("voters", [])),
            }
            for o in self._options
        ]
