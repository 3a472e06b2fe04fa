"""State machine gating voting, roster sync and match generation."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

from openplay.errors import (
    AlreadyGeneratedError,
    EventFrozenError,
    EventStateError,
    InvalidPlayerCountError,
)

from .scheduler import check_player_count

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .models import SchedulingSettings


class EventStatus:
    """Allowed values of an event's ``status`` field."""

    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"
    CANCELLED = "cancelled"

    ALL = (DRAFT, ACTIVE, CLOSED, CANCELLED)


class GenerationPolicy(str, Enum):
    """When an operator may generate matches."""

    # Only after voting has closed.
    CLOSED_ONLY = "closed_only"
    # Also while voting is still open, on manual request.
    ALLOW_ACTIVE = "allow_active"


class EventLifecycle:
    """Transition rules for an Open Play event."""

    TRANSITIONS: dict[str, frozenset[str]] = {
        EventStatus.DRAFT: frozenset({EventStatus.ACTIVE, EventStatus.CANCELLED}),
        EventStatus.ACTIVE: frozenset({EventStatus.CLOSED, EventStatus.CANCELLED}),
        EventStatus.CLOSED: frozenset({EventStatus.CANCELLED}),
        EventStatus.CANCELLED: frozenset(),
    }

    @staticmethod
    def _known(status: Any) -> str:
        if status not in EventStatus.ALL:
            raise EventStateError(f"Unknown event status: {status!r}.")
        return status

    @staticmethod
    def assert_mutable(status: Any) -> None:
        """Raise EventFrozenError if the event is cancelled."""
        if EventLifecycle._known(status) == EventStatus.CANCELLED:
            raise EventFrozenError()

    @staticmethod
    def transition(current: Any, target: str) -> str:
        """Validate a status change and return the new status."""
        EventLifecycle.assert_mutable(current)
        if target not in EventLifecycle.TRANSITIONS[current]:
            raise EventStateError(
                f"Cannot move an event from '{current}' to '{target}'."
            )
        return target

    @staticmethod
    def syncs_roster(status: Any) -> bool:
        """Return True while the roster must mirror the Yes votes."""
        return EventLifecycle._known(status) in (EventStatus.DRAFT, EventStatus.ACTIVE)

    @staticmethod
    def check_vote_allowed(
        status: Any, on_behalf: bool = False, matches_generated: bool = False
    ) -> None:
        """Raise unless a vote may be changed in this status.

        Players vote while the event is active. Admins acting on behalf of a
        player may also do so while it is still a draft. Once a slate exists
        the roster it was built from is locked until the slate is reset.
        """
        EventLifecycle.assert_mutable(status)
        allowed = {EventStatus.ACTIVE}
        if on_behalf:
            allowed.add(EventStatus.DRAFT)
        if status not in allowed:
            if status == EventStatus.CLOSED:
                raise EventStateError("Voting for this event is closed.")
            raise EventStateError("Voting for this event has not opened yet.")
        if matches_generated:
            raise EventStateError(
                "Matches have been generated. Reset them before changing votes."
            )

    @staticmethod
    def check_generation_allowed(
        event: Mapping[str, Any], settings: SchedulingSettings
    ) -> None:
        """Raise unless a slate may be generated for ``event`` right now."""
        status = event.get("status")
        EventLifecycle.assert_mutable(status)
        if event.get("matchesGenerated"):
            raise AlreadyGeneratedError()
        if status == EventStatus.DRAFT:
            raise EventStateError("Voting has not opened for this event yet.")
        if (
            status == EventStatus.ACTIVE
            and settings.generation_policy is GenerationPolicy.CLOSED_ONLY
        ):
            raise EventStateError("Close voting before generating matches.")
        check_player_count(
            len(event.get("confirmedPlayers") or []),
            settings.min_players,
            settings.max_players,
        )

    @staticmethod
    def can_generate(event: Mapping[str, Any], settings: SchedulingSettings) -> bool:
        """Return True if ``check_generation_allowed`` would pass."""
        try:
            EventLifecycle.check_generation_allowed(event, settings)
        except (EventStateError, AlreadyGeneratedError, InvalidPlayerCountError):
            return False
        return True
