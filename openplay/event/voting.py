"""Service layer for voting on Open Play events."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore

from openplay.core.constants import EVENTS_COLLECTION
from openplay.errors import ValidationError
from openplay.poll.models import VoteSubmission
from openplay.poll.tally import VoteTally

from .lifecycle import EventLifecycle
from .models import SchedulingSettings
from .services import read_event, resolve_settings, roster_updates

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction

logger = logging.getLogger(__name__)


class VoteService:
    """Casts and retracts votes, keeping the roster in step.

    The vote and the resulting roster are written in the same transaction,
    so readers never see one without the other.
    """

    @staticmethod
    def _apply_in_transaction(
        transaction: Transaction,
        ref: DocumentReference,
        mutate: Callable[[VoteTally], VoteTally],
        on_behalf: bool,
        settings: SchedulingSettings,
    ) -> dict[str, Any]:
        data = read_event(ref, transaction)
        EventLifecycle.check_vote_allowed(
            data.get("status"),
            on_behalf=on_behalf,
            matches_generated=bool(data.get("matchesGenerated")),
        )

        data["options"] = mutate(VoteTally(data.get("options"))).to_options()
        updates = {"options": data["options"], **roster_updates(data, settings)}
        transaction.update(
            ref, {**updates, "updatedAt": firestore.SERVER_TIMESTAMP}
        )
        # The timestamp sentinel only exists server-side.
        data.update(updates)
        return data

    @staticmethod
    def _apply(
        event_id: str,
        mutate: Callable[[VoteTally], VoteTally],
        on_behalf: bool,
        db: Client | None,
        settings: SchedulingSettings | None,
    ) -> dict[str, Any]:
        if db is None:
            db = firestore.client()
        ref = db.collection(EVENTS_COLLECTION).document(event_id)
        run = firestore.transactional(VoteService._apply_in_transaction)
        return cast(
            dict[str, Any],
            run(db.transaction(), ref, mutate, on_behalf, resolve_settings(settings)),
        )

    @staticmethod
    def get_yes_voters(event_id: str, db: Client | None = None) -> list[str]:
        """Return the current Yes voters of an event."""
        if db is None:
            db = firestore.client()
        data = read_event(db.collection(EVENTS_COLLECTION).document(event_id))
        return VoteTally(data.get("options")).yes_voters()

    @staticmethod
    def get_results(event_id: str, db: Client | None = None) -> dict[str, int]:
        """Return the number of votes per option."""
        if db is None:
            db = firestore.client()
        data = read_event(db.collection(EVENTS_COLLECTION).document(event_id))
        return VoteTally(data.get("options")).counts()

    @staticmethod
    def cast_vote(
        event_id: str,
        submission: VoteSubmission,
        db: Client | None = None,
        settings: SchedulingSettings | None = None,
        on_behalf: bool = False,
    ) -> dict[str, Any]:
        """Record a vote, replacing any earlier choice of the same voter."""
        try:
            submission.validate()
        except ValueError as e:
            raise ValidationError(str(e)) from e

        event = VoteService._apply(
            event_id,
            lambda tally: tally.cast(submission.user_id, submission.option),
            on_behalf,
            db,
            settings,
        )
        logger.info(
            f"{submission.user_id} voted '{submission.option}' on event {event_id}"
        )
        return event

    @staticmethod
    def retract_vote(
        event_id: str,
        user_id: str,
        db: Client | None = None,
        settings: SchedulingSettings | None = None,
        on_behalf: bool = False,
    ) -> dict[str, Any]:
        """Remove a voter's choice altogether."""
        if not user_id:
            raise ValidationError("A voter is required.")
        event = VoteService._apply(
            event_id, lambda tally: tally.retract(user_id), on_behalf, db, settings
        )
        logger.info(f"{user_id} retracted their vote on event {event_id}")
        return event

    @staticmethod
    def add_admin_vote(
        event_id: str,
        submission: VoteSubmission,
        db: Client | None = None,
        settings: SchedulingSettings | None = None,
    ) -> dict[str, Any]:
        """Vote on behalf of a player, also allowed before voting opens."""
        return VoteService.cast_vote(
            event_id, submission, db=db, settings=settings, on_behalf=True
        )

    @staticmethod
    def remove_admin_vote(
        event_id: str,
        user_id: str,
        db: Client | None = None,
        settings: SchedulingSettings | None = None,
    ) -> dict[str, Any]:
        """Retract a player's vote on their behalf."""
        return VoteService.retract_vote(
            event_id, user_id, db=db, settings=settings, on_behalf=True
        )
