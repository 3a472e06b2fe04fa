"""Keeps an event's confirmed roster equal to its Yes voters."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from openplay.errors import DataIntegrityError
from openplay.poll.tally import VoteTally

from .lifecycle import EventLifecycle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncResult:
    """Outcome of a roster synchronisation."""

    roster: list[str]
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    # True when the stored roster has to be rewritten, including reorders.
    changed: bool = False


class ConfirmedPlayerSynchronizer:
    """Derives ``confirmedPlayers`` from the Yes-voter set.

    The roster is never edited by hand: it is recomputed from the tally after
    every vote mutation, so it cannot drift from the votes.
    """

    @staticmethod
    def _resolve(yes_voters: Any) -> list[str]:
        if yes_voters is None or isinstance(yes_voters, (str, bytes, Mapping)):
            raise DataIntegrityError("Yes voters could not be resolved.")
        try:
            voters = list(yes_voters)
        except TypeError as e:
            raise DataIntegrityError("Yes voters could not be resolved.") from e
        for voter in voters:
            if not isinstance(voter, str) or not voter:
                raise DataIntegrityError(f"Invalid voter id in Yes votes: {voter!r}.")
        return voters

    @staticmethod
    def sync(current: Sequence[str] | None, yes_voters: Iterable[str]) -> SyncResult:
        """Return the roster implied by ``yes_voters``.

        The new roster keeps the voters' insertion order with duplicates
        removed. ``current`` is only used to report what changed.
        """
        roster = list(dict.fromkeys(ConfirmedPlayerSynchronizer._resolve(yes_voters)))
        previous = list(current or [])
        previous_set = set(previous)
        roster_set = set(roster)
        return SyncResult(
            roster=roster,
            added=[p for p in roster if p not in previous_set],
            removed=[p for p in dict.fromkeys(previous) if p not in roster_set],
            changed=previous != roster,
        )

    @staticmethod
    def sync_event(event: Mapping[str, Any]) -> SyncResult | None:
        """Synchronise an event document against its own poll options.

        Returns None when the event's status freezes the roster.
        """
        status = event.get("status")
        if not EventLifecycle.syncs_roster(status):
            logger.debug(f"Skipping roster sync for event in status '{status}'.")
            return None
        yes_voters = VoteTally(event.get("options")).yes_voters()
        return ConfirmedPlayerSynchronizer.sync(
            event.get("confirmedPlayers"), yes_voters
        )
