"""Service layer for Open Play event business logic."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore
from flask import current_app, has_app_context

from openplay.core.constants import EVENTS_COLLECTION
from openplay.errors import (
    EventStateError,
    NotFoundError,
    SchedulingExhaustionError,
    ValidationError,
)
from openplay.poll.models import default_options

from .lifecycle import EventLifecycle, EventStatus
from .models import (
    EventSubmission,
    MatchResultSubmission,
    OpenPlayMatch,
    SchedulingSettings,
)
from .rotation import RotationAnalyzer, RotationReport
from .scheduler import DoublesMatchScheduler
from .sync import ConfirmedPlayerSynchronizer

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction

logger = logging.getLogger(__name__)

# Editable event attributes and the document fields they are stored in.
EVENT_FIELDS = {
    "event_date": "eventDate",
    "start_time": "startTime",
    "end_time": "endTime",
    "title": "title",
    "description": "description",
    "player_fee": "playerFee",
    "max_players": "maxPlayers",
    "tournament_tier": "tournamentTier",
}


def resolve_settings(settings: SchedulingSettings | None) -> SchedulingSettings:
    """Return explicit settings, else those of the current app."""
    if settings is not None:
        return settings
    if has_app_context():
        return SchedulingSettings.from_config(current_app.config)
    return SchedulingSettings()


def read_event(
    ref: DocumentReference, transaction: Transaction | None = None
) -> dict[str, Any]:
    """Fetch an event document, raising NotFoundError if it is missing."""
    snapshot = cast(Any, ref.get(transaction=transaction))
    if not snapshot.exists:
        raise NotFoundError("Open Play event not found.")
    data = cast(dict[str, Any], snapshot.to_dict() or {})
    data["id"] = snapshot.id
    return data


def roster_updates(
    event: Mapping[str, Any], settings: SchedulingSettings
) -> dict[str, Any]:
    """Return the fields to write so the roster mirrors the Yes votes.

    Empty when the roster is frozen or already in sync. Also closes voting
    when the roster fills up and auto-close is enabled.
    """
    result = ConfirmedPlayerSynchronizer.sync_event(event)
    if result is None:
        return {}
    updates: dict[str, Any] = {}
    if result.changed:
        logger.info(
            f"Roster of event {event.get('id')}: +{result.added} -{result.removed}"
        )
        updates["confirmedPlayers"] = result.roster

    max_players = event.get("maxPlayers")
    if (
        settings.auto_close_when_full
        and event.get("status") == EventStatus.ACTIVE
        and max_players
        and len(result.roster) >= max_players
    ):
        updates["status"] = EventLifecycle.transition(
            EventStatus.ACTIVE, EventStatus.CLOSED
        )
        logger.info(f"Event {event.get('id')} is full, closing voting.")
    return updates


def _find_match(matches: list[dict[str, Any]], match_number: int) -> dict[str, Any]:
    for match in matches:
        if match.get("matchNumber") == match_number:
            return match
    raise NotFoundError(f"Match {match_number} not found.")


class OpenPlayService:
    """Handles business logic and data access for Open Play events.

    Every mutation runs inside a single Firestore transaction, which
    serialises writers of the same event document.
    """

    @staticmethod
    def _ref(db: Client, event_id: str) -> DocumentReference:
        return db.collection(EVENTS_COLLECTION).document(event_id)

    @staticmethod
    def _run(db: Client, fn: Callable[..., Any], *args: Any) -> Any:
        """Run ``fn(transaction, *args)`` as a Firestore transaction."""
        return firestore.transactional(fn)(db.transaction(), *args)

    @staticmethod
    def create_event(
        submission: EventSubmission, user_uid: str, db: Client | None = None
    ) -> str:
        """Create a draft event and return its ID."""
        if db is None:
            db = firestore.client()
        try:
            submission.validate()
        except ValueError as e:
            raise ValidationError(str(e)) from e

        event_date = submission.event_date
        payload = {
            "title": (submission.title or submission.default_title()).strip(),
            "description": (submission.description or "").strip(),
            "status": EventStatus.DRAFT,
            "eventDate": event_date.isoformat(),
            "startTime": submission.start_time,
            "endTime": submission.end_time,
            "playerFee": submission.player_fee,
            "maxPlayers": submission.max_players,
            "tournamentTier": submission.tournament_tier,
            "createdBy": user_uid,
            "options": default_options(),
            "confirmedPlayers": [],
            "matches": [],
            "matchesGenerated": False,
            "createdAt": firestore.SERVER_TIMESTAMP,
        }
        _, ref = db.collection(EVENTS_COLLECTION).add(payload)
        logger.info(f"Created Open Play event {ref.id} for {payload['eventDate']}")
        return str(ref.id)

    @staticmethod
    def _update_in_transaction(
        transaction: Transaction, ref: DocumentReference, changes: dict[str, Any]
    ) -> dict[str, Any]:
        data = read_event(ref, transaction)
        status = data.get("status")
        EventLifecycle.assert_mutable(status)
        if status != EventStatus.DRAFT:
            raise EventStateError("Only draft events can be edited.")

        stored: dict[str, Any] = {
            attr: data[field]
            for attr, field in EVENT_FIELDS.items()
            if data.get(field) not in (None, "")
        }
        if isinstance(stored.get("event_date"), str):
            try:
                stored["event_date"] = datetime.date.fromisoformat(
                    stored["event_date"]
                )
            except ValueError as e:
                raise ValidationError("Stored event date is invalid.") from e
        try:
            submission = EventSubmission(**{**stored, **changes})
        except TypeError as e:
            raise ValidationError("Event date and times are required.") from e
        try:
            submission.validate()
        except ValueError as e:
            raise ValidationError(str(e)) from e

        updates: dict[str, Any] = {}
        for attr in changes:
            value = getattr(submission, attr)
            if attr == "event_date":
                value = value.isoformat()
            elif isinstance(value, str):
                value = value.strip()
            updates[EVENT_FIELDS[attr]] = value
        transaction.update(ref, {**updates, "updatedAt": firestore.SERVER_TIMESTAMP})
        data.update(updates)
        return data

    @staticmethod
    def update_event(
        event_id: str, changes: Mapping[str, Any], db: Client | None = None
    ) -> dict[str, Any]:
        """Edit the details of a draft event.

        ``changes`` maps ``EventSubmission`` attribute names to new values;
        the merged event is validated as a whole before anything is written.
        """
        if db is None:
            db = firestore.client()
        unknown = sorted(set(changes) - set(EVENT_FIELDS))
        if unknown:
            raise ValidationError(f"Cannot edit: {', '.join(unknown)}.")
        if not changes:
            raise ValidationError("Nothing to update.")
        event = OpenPlayService._run(
            db,
            OpenPlayService._update_in_transaction,
            OpenPlayService._ref(db, event_id),
            dict(changes),
        )
        logger.info(f"Updated event {event_id}: {', '.join(sorted(changes))}")
        return cast(dict[str, Any], event)

    @staticmethod
    def get_event(event_id: str, db: Client | None = None) -> dict[str, Any]:
        """Fetch a single event."""
        if db is None:
            db = firestore.client()
        return read_event(OpenPlayService._ref(db, event_id))

    @staticmethod
    def list_events(
        db: Client | None = None, status: str | None = None
    ) -> list[dict[str, Any]]:
        """Fetch events, newest event date first."""
        if db is None:
            db = firestore.client()
        query: Any = db.collection(EVENTS_COLLECTION)
        if status:
            query = query.where(filter=firestore.FieldFilter("status", "==", status))

        events = []
        for doc in query.stream():
            data = doc.to_dict()
            if data:
                data["id"] = doc.id
                events.append(data)
        events.sort(key=lambda e: str(e.get("eventDate") or ""), reverse=True)
        return events

    # Lifecycle

    @staticmethod
    def _transition_in_transaction(
        transaction: Transaction, ref: DocumentReference, target: str
    ) -> str:
        data = read_event(ref, transaction)
        status = EventLifecycle.transition(data.get("status"), target)
        transaction.update(
            ref, {"status": status, "updatedAt": firestore.SERVER_TIMESTAMP}
        )
        return status

    @staticmethod
    def _transition(event_id: str, target: str, db: Client | None) -> str:
        if db is None:
            db = firestore.client()
        status = OpenPlayService._run(
            db,
            OpenPlayService._transition_in_transaction,
            OpenPlayService._ref(db, event_id),
            target,
        )
        logger.info(f"Event {event_id} is now {status}")
        return cast(str, status)

    @staticmethod
    def activate_event(event_id: str, db: Client | None = None) -> str:
        """Open voting."""
        return OpenPlayService._transition(event_id, EventStatus.ACTIVE, db)

    @staticmethod
    def close_event(event_id: str, db: Client | None = None) -> str:
        """Close voting and freeze the roster."""
        return OpenPlayService._transition(event_id, EventStatus.CLOSED, db)

    @staticmethod
    def cancel_event(event_id: str, db: Client | None = None) -> str:
        """Cancel the event, freezing all of its state."""
        return OpenPlayService._transition(event_id, EventStatus.CANCELLED, db)

    # Roster synchronisation

    @staticmethod
    def _sync_in_transaction(
        transaction: Transaction,
        ref: DocumentReference,
        settings: SchedulingSettings,
    ) -> list[str] | None:
        data = read_event(ref, transaction)
        if not EventLifecycle.syncs_roster(data.get("status")):
            return None
        updates = roster_updates(data, settings)
        if updates:
            updates["updatedAt"] = firestore.SERVER_TIMESTAMP
            transaction.update(ref, updates)
        roster = updates.get("confirmedPlayers", data.get("confirmedPlayers") or [])
        return cast(list[str], roster)

    @staticmethod
    def on_vote_changed(
        event_id: str,
        db: Client | None = None,
        settings: SchedulingSettings | None = None,
    ) -> list[str] | None:
        """Recompute the roster from the Yes votes.

        Returns the roster, or None if the event no longer syncs (closed or
        cancelled). A DataIntegrityError leaves the stored roster untouched.
        """
        if db is None:
            db = firestore.client()
        return cast(
            "list[str] | None",
            OpenPlayService._run(
                db,
                OpenPlayService._sync_in_transaction,
                OpenPlayService._ref(db, event_id),
                resolve_settings(settings),
            ),
        )

    # Slate generation

    @staticmethod
    def _generate_in_transaction(
        transaction: Transaction,
        ref: DocumentReference,
        settings: SchedulingSettings,
    ) -> list[OpenPlayMatch]:
        data = read_event(ref, transaction)
        updates: dict[str, Any] = {}
        if EventLifecycle.syncs_roster(data.get("status")):
            result = ConfirmedPlayerSynchronizer.sync_event(data)
            if result is not None and result.changed:
                data["confirmedPlayers"] = updates["confirmedPlayers"] = result.roster

        EventLifecycle.check_generation_allowed(data, settings)
        roster = list(data.get("confirmedPlayers") or [])
        matches = DoublesMatchScheduler.generate_for(roster, settings, seed=ref.id)

        violations = RotationAnalyzer.fairness_violations(roster, matches)
        if violations:
            logger.error(f"Rejected slate for event {ref.id}: {violations}")
            raise SchedulingExhaustionError("; ".join(violations))

        updates.update(
            {
                "matches": matches,
                "matchesGenerated": True,
                "updatedAt": firestore.SERVER_TIMESTAMP,
            }
        )
        transaction.update(ref, updates)
        return matches

    @staticmethod
    def request_generation(
        event_id: str,
        db: Client | None = None,
        settings: SchedulingSettings | None = None,
    ) -> list[OpenPlayMatch]:
        """Generate and store the slate for an event, exactly once."""
        if db is None:
            db = firestore.client()
        matches = OpenPlayService._run(
            db,
            OpenPlayService._generate_in_transaction,
            OpenPlayService._ref(db, event_id),
            resolve_settings(settings),
        )
        logger.info(f"Generated {len(matches)} matches for event {event_id}")
        return cast(list[OpenPlayMatch], matches)

    @staticmethod
    def _reset_in_transaction(transaction: Transaction, ref: DocumentReference) -> None:
        data = read_event(ref, transaction)
        EventLifecycle.assert_mutable(data.get("status"))
        transaction.update(
            ref,
            {
                "matches": [],
                "matchesGenerated": False,
                "updatedAt": firestore.SERVER_TIMESTAMP,
            },
        )

    @staticmethod
    def reset_matches(event_id: str, db: Client | None = None) -> None:
        """Clear the slate and its generated flag together."""
        if db is None:
            db = firestore.client()
        OpenPlayService._run(
            db, OpenPlayService._reset_in_transaction, OpenPlayService._ref(db, event_id)
        )
        logger.info(f"Reset matches for event {event_id}")

    # Slate maintenance

    @staticmethod
    def _update_slate_in_transaction(
        transaction: Transaction,
        ref: DocumentReference,
        change: Callable[[list[dict[str, Any]]], list[dict[str, Any]]],
    ) -> list[dict[str, Any]]:
        data = read_event(ref, transaction)
        EventLifecycle.assert_mutable(data.get("status"))
        if not data.get("matchesGenerated"):
            raise EventStateError("Matches have not been generated yet.")
        matches = change([dict(m) for m in data.get("matches") or []])
        transaction.update(
            ref, {"matches": matches, "updatedAt": firestore.SERVER_TIMESTAMP}
        )
        return matches

    @staticmethod
    def _update_slate(
        event_id: str,
        change: Callable[[list[dict[str, Any]]], list[dict[str, Any]]],
        db: Client | None,
    ) -> list[dict[str, Any]]:
        if db is None:
            db = firestore.client()
        return cast(
            list[dict[str, Any]],
            OpenPlayService._run(
                db,
                OpenPlayService._update_slate_in_transaction,
                OpenPlayService._ref(db, event_id),
                change,
            ),
        )

    @staticmethod
    def start_match(
        event_id: str, match_number: int, db: Client | None = None
    ) -> dict[str, Any]:
        """Mark a scheduled match as in progress."""

        def change(matches: list[dict[str, Any]]) -> list[dict[str, Any]]:
            match = _find_match(matches, match_number)
            if match.get("status") != "scheduled":
                raise EventStateError(
                    f"Match {match_number} is already {match.get('status')}."
                )
            match["status"] = "in_progress"
            return matches

        matches = OpenPlayService._update_slate(event_id, change, db)
        return _find_match(matches, match_number)

    @staticmethod
    def record_match_result(
        event_id: str, submission: MatchResultSubmission, db: Client | None = None
    ) -> dict[str, Any]:
        """Store the winner and score of a match and mark it completed."""
        try:
            submission.validate()
        except ValueError as e:
            raise ValidationError(str(e)) from e

        def change(matches: list[dict[str, Any]]) -> list[dict[str, Any]]:
            match = _find_match(matches, submission.match_number)
            match["status"] = "completed"
            match["winningTeam"] = submission.winning_team
            if submission.score:
                match["score"] = submission.score.strip()
            return matches

        matches = OpenPlayService._update_slate(event_id, change, db)
        logger.info(
            f"Match {submission.match_number} of event {event_id}: "
            f"team {submission.winning_team} wins"
        )
        return _find_match(matches, submission.match_number)

    @staticmethod
    def reorder_matches(
        event_id: str, order: list[int], db: Client | None = None
    ) -> list[dict[str, Any]]:
        """Change the play order of the slate.

        ``order`` lists every existing match number once. Numbers, courts,
        teams and results travel with their match.
        """

        def change(matches: list[dict[str, Any]]) -> list[dict[str, Any]]:
            by_number = {m.get("matchNumber"): m for m in matches}
            if len(order) != len(set(order)) or set(order) != set(by_number):
                raise ValidationError(
                    "Order must list every match number exactly once."
                )
            return [by_number[number] for number in order]

        return OpenPlayService._update_slate(event_id, change, db)

    # Reporting

    @staticmethod
    def get_rotation_report(
        event_id: str, db: Client | None = None
    ) -> RotationReport:
        """Return per-player match counts for the stored slate."""
        if db is None:
            db = firestore.client()
        data = read_event(OpenPlayService._ref(db, event_id))
        return RotationAnalyzer.build_report(
            list(data.get("confirmedPlayers") or []), data.get("matches") or []
        )
