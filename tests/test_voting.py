"""Tests for the vote service using mockfirestore."""

from __future__ import annotations

import unittest
from typing import Any
from unittest.mock import MagicMock, patch

from mockfirestore import MockFirestore

from openplay.errors import (
    EventFrozenError,
    EventStateError,
    NotFoundError,
    ValidationError,
)
from openplay.event.models import SchedulingSettings
from openplay.event.services import OpenPlayService
from openplay.event.voting import VoteService
from openplay.poll.models import VoteSubmission
from tests.mock_utils import MockFirestoreBuilder, MockTransaction

EVENT_ID = "event1"


class VoteServiceTestCase(unittest.TestCase):
    """Test case for VoteService."""

    def setUp(self) -> None:
        """Set up a mock Firestore database with one event."""
        self.mock_db = MockFirestore()
        self.mock_firestore_module = MockFirestoreBuilder.firestore_module(self.mock_db)

        patchers = [
            patch("openplay.event.services.firestore", new=self.mock_firestore_module),
            patch("openplay.event.voting.firestore", new=self.mock_firestore_module),
        ]
        for p in patchers:
            p.start()
            self.addCleanup(p.stop)

    def _seed(self, status: str = "active", yes: list[str] | None = None, **fields: Any) -> None:
        yes = list(yes or [])
        data = {
            "status": status,
            "maxPlayers": 12,
            "options": [
                {"text": "Yes", "votes": len(yes), "voters": yes},
                {"text": "No", "votes": 0, "voters": []},
            ],
            "confirmedPlayers": list(yes),
            "matches": [],
            "matchesGenerated": False,
        }
        data.update(fields)
        self.mock_db.collection("open_play_events").document(EVENT_ID).set(data)

    def _stored(self) -> dict[str, Any]:
        return self.mock_db.collection("open_play_events").document(EVENT_ID).get().to_dict()

    def test_cast_vote_updates_roster(self) -> None:
        """Test that a Yes vote adds the player to the roster."""
        self._seed(yes=["u1"])
        event = VoteService.cast_vote(EVENT_ID, VoteSubmission("u2", "Yes"))

        stored = self._stored()
        self.assertEqual(stored["confirmedPlayers"], ["u1", "u2"])
        self.assertEqual(stored["options"][0], {"text": "Yes", "votes": 2, "voters": ["u1", "u2"]})
        self.assertEqual(event["confirmedPlayers"], ["u1", "u2"])
        self.assertEqual(event["id"], EVENT_ID)

    def test_vote_and_roster_written_together(self) -> None:
        """Test that a vote is a single write carrying both fields."""
        self._seed(yes=["u1"])
        transaction = MockTransaction()
        self.mock_db.transaction = MagicMock(return_value=transaction)

        VoteService.cast_vote(EVENT_ID, VoteSubmission("u2", "Yes"))

        self.assertEqual(len(transaction.updates), 1)
        _, data = transaction.updates[0]
        self.assertIn("options", data)
        self.assertEqual(data["confirmedPlayers"], ["u1", "u2"])

    def test_change_vote_removes_from_roster(self) -> None:
        """Test that switching to No takes the player off the roster."""
        self._seed(yes=["u1", "u2", "u3"])
        VoteService.cast_vote(EVENT_ID, VoteSubmission("u2", "No"))
        stored = self._stored()
        self.assertEqual(stored["confirmedPlayers"], ["u1", "u3"])
        self.assertEqual(stored["options"][1]["voters"], ["u2"])

    def test_retract_vote(self) -> None:
        """Test that retracting removes the vote and the roster entry."""
        self._seed(yes=["u1", "u2"])
        VoteService.retract_vote(EVENT_ID, "u1")
        stored = self._stored()
        self.assertEqual(stored["confirmedPlayers"], ["u2"])
        self.assertEqual(stored["options"][0]["votes"], 1)

    def test_vote_on_draft(self) -> None:
        """Test that players wait for voting to open but admins do not."""
        self._seed(status="draft")
        with self.assertRaises(EventStateError):
            VoteService.cast_vote(EVENT_ID, VoteSubmission("u1", "Yes"))

        VoteService.add_admin_vote(EVENT_ID, VoteSubmission("u1", "Yes"))
        self.assertEqual(self._stored()["confirmedPlayers"], ["u1"])

        VoteService.remove_admin_vote(EVENT_ID, "u1")
        self.assertEqual(self._stored()["confirmedPlayers"], [])

    def test_vote_on_closed(self) -> None:
        """Test that a closed event rejects votes and keeps its roster."""
        self._seed(status="closed", yes=["u1"])
        with self.assertRaisesRegex(EventStateError, "closed"):
            VoteService.cast_vote(EVENT_ID, VoteSubmission("u2", "Yes"))
        with self.assertRaises(EventStateError):
            VoteService.add_admin_vote(EVENT_ID, VoteSubmission("u2", "Yes"))
        self.assertEqual(self._stored()["confirmedPlayers"], ["u1"])

    def test_vote_on_cancelled(self) -> None:
        """Test that a cancelled event is frozen."""
        self._seed(status="cancelled", yes=["u1"])
        with self.assertRaises(EventFrozenError):
            VoteService.retract_vote(EVENT_ID, "u1")

    def test_vote_fills_event(self) -> None:
        """Test that the vote filling the last place closes voting."""
        self._seed(yes=["u1", "u2", "u3"], maxPlayers=4)
        event = VoteService.cast_vote(EVENT_ID, VoteSubmission("u4", "Yes"))
        self.assertEqual(event["status"], "closed")
        self.assertEqual(self._stored()["status"], "closed")
        with self.assertRaises(EventStateError):
            VoteService.cast_vote(EVENT_ID, VoteSubmission("u5", "Yes"))

    def test_vote_fills_event_auto_close_disabled(self) -> None:
        """Test that a full event stays open when auto-close is off."""
        self._seed(yes=["u1", "u2", "u3"], maxPlayers=4)
        settings = SchedulingSettings(auto_close_when_full=False)
        VoteService.cast_vote(EVENT_ID, VoteSubmission("u4", "Yes"), settings=settings)
        self.assertEqual(self._stored()["status"], "active")

    def test_invalid_votes(self) -> None:
        """Test that missing fields and unknown options are rejected."""
        self._seed()
        with self.assertRaises(ValidationError):
            VoteService.cast_vote(EVENT_ID, VoteSubmission("", "Yes"))
        with self.assertRaises(ValidationError):
            VoteService.retract_vote(EVENT_ID, "")
        with self.assertRaises(NotFoundError):
            VoteService.cast_vote(EVENT_ID, VoteSubmission("u1", "Maybe"))

    def test_vote_on_missing_event(self) -> None:
        """Test that voting on an unknown event raises NotFoundError."""
        with self.assertRaises(NotFoundError):
            VoteService.cast_vote("missing", VoteSubmission("u1", "Yes"))

    def test_results(self) -> None:
        """Test vote counts and the Yes voter list."""
        self._seed(yes=["u2", "u1"])
        VoteService.cast_vote(EVENT_ID, VoteSubmission("u3", "No"))
        self.assertEqual(VoteService.get_results(EVENT_ID), {"Yes": 2, "No": 1})
        self.assertEqual(VoteService.get_yes_voters(EVENT_ID), ["u2", "u1"])

    def test_votes_locked_after_generation(self) -> None:
        """Test that a generated slate freezes votes until it is reset."""
        players = ["u1", "u2", "u3", "u4", "u5", "u6", "u7"]
        self._seed(yes=players)
        OpenPlayService.request_generation(EVENT_ID)

        with self.assertRaisesRegex(EventStateError, "Reset them"):
            VoteService.cast_vote(EVENT_ID, VoteSubmission("u7", "No"))
        with self.assertRaises(EventStateError):
            VoteService.remove_admin_vote(EVENT_ID, "u7")
        self.assertEqual(self._stored()["confirmedPlayers"], players)
        report = OpenPlayService.get_rotation_report(EVENT_ID)
        self.assertEqual(report["fairnessViolations"], [])

        OpenPlayService.reset_matches(EVENT_ID)
        VoteService.cast_vote(EVENT_ID, VoteSubmission("u7", "No"))
        self.assertEqual(self._stored()["confirmedPlayers"], players[:6])

    def test_returned_event_omits_timestamp_sentinel(self) -> None:
        """Test that the server timestamp placeholder is written but not returned."""
        sentinel = object()
        self.mock_firestore_module.SERVER_TIMESTAMP = sentinel
        self._seed(yes=["u1"])
        transaction = MockTransaction()
        self.mock_db.transaction = MagicMock(return_value=transaction)

        event = VoteService.cast_vote(EVENT_ID, VoteSubmission("u2", "Yes"))

        self.assertNotIn("updatedAt", event)
        self.assertIs(transaction.updates[0][1]["updatedAt"], sentinel)


if __name__ == "__main__":
    unittest.main()
