"""Routes for the Open Play event blueprint."""

from __future__ import annotations

from typing import Any

from flask import jsonify, request, session

from openplay.auth.decorators import login_required
from openplay.core.types import APIResponse
from openplay.errors import ValidationError
from openplay.poll.models import VoteSubmission

from . import bp
from .forms import (
    AdminVoteForm,
    EventForm,
    EventUpdateForm,
    MatchResultForm,
    VoteForm,
)
from .models import EventSubmission, MatchResultSubmission
from .services import OpenPlayService
from .voting import VoteService


def _respond(data: Any = None, message: str = "OK", status: int = 200) -> Any:
    body: APIResponse = {"success": True, "message": message, "data": data}
    return jsonify(body), status


def _validated(form: Any) -> Any:
    if not form.validate():
        raise ValidationError(form.first_error())
    return form


@bp.route("/", methods=["GET"])
@login_required
def list_events() -> Any:
    """List events, optionally filtered by ``?status=``."""
    events = OpenPlayService.list_events(status=request.args.get("status"))
    return _respond(events)


@bp.route("/", methods=["POST"])
@login_required(admin_required=True)
def create_event() -> Any:
    """Create a draft event."""
    form = _validated(EventForm())
    submission = EventSubmission(
        event_date=form.event_date.data,
        start_time=form.start_time.data,
        end_time=form.end_time.data,
        title=form.title.data or None,
        description=form.description.data or None,
        player_fee=form.player_fee.data or 0.0,
        max_players=form.max_players.data or form.max_players.default,
        tournament_tier=form.tournament_tier.data or form.tournament_tier.default,
    )
    event_id = OpenPlayService.create_event(submission, session["user_id"])
    return _respond({"id": event_id}, "Event created.", 201)


@bp.route("/<string:event_id>", methods=["GET"])
@login_required
def view_event(event_id: str) -> Any:
    """Return a single event."""
    return _respond(OpenPlayService.get_event(event_id))


@bp.route("/<string:event_id>", methods=["PATCH"])
@login_required(admin_required=True)
def update_event(event_id: str) -> Any:
    """Edit the details of a draft event."""
    form = _validated(EventUpdateForm())
    event = OpenPlayService.update_event(event_id, form.changes())
    return _respond(event, "Event updated.")


@bp.route("/<string:event_id>/activate", methods=["POST"])
@login_required(admin_required=True)
def activate_event(event_id: str) -> Any:
    """Open voting."""
    status = OpenPlayService.activate_event(event_id)
    return _respond({"status": status}, "Voting is open.")


@bp.route("/<string:event_id>/close", methods=["POST"])
@login_required(admin_required=True)
def close_event(event_id: str) -> Any:
    """Close voting."""
    status = OpenPlayService.close_event(event_id)
    return _respond({"status": status}, "Voting is closed.")


@bp.route("/<string:event_id>/cancel", methods=["POST"])
@login_required(admin_required=True)
def cancel_event(event_id: str) -> Any:
    """Cancel the event."""
    status = OpenPlayService.cancel_event(event_id)
    return _respond({"status": status}, "Event cancelled.")


@bp.route("/<string:event_id>/votes", methods=["GET"])
@login_required
def vote_results(event_id: str) -> Any:
    """Return the vote count per option."""
    return _respond(VoteService.get_results(event_id))


@bp.route("/<string:event_id>/votes", methods=["POST"])
@login_required
def cast_vote(event_id: str) -> Any:
    """Cast or change the logged-in user's vote."""
    form = _validated(VoteForm())
    submission = VoteSubmission(user_id=session["user_id"], option=form.option.data)
    event = VoteService.cast_vote(event_id, submission)
    return _respond(event, "Vote recorded.")


@bp.route("/<string:event_id>/votes", methods=["DELETE"])
@login_required
def retract_vote(event_id: str) -> Any:
    """Withdraw the logged-in user's vote."""
    event = VoteService.retract_vote(event_id, session["user_id"])
    return _respond(event, "Vote removed.")


@bp.route("/<string:event_id>/admin-votes", methods=["POST"])
@login_required(admin_required=True)
def add_admin_vote(event_id: str) -> Any:
    """Vote on behalf of a player."""
    form = _validated(AdminVoteForm())
    submission = VoteSubmission(user_id=form.user_id.data, option=form.option.data)
    event = VoteService.add_admin_vote(event_id, submission)
    return _respond(event, "Vote recorded.")


@bp.route("/<string:event_id>/admin-votes", methods=["DELETE"])
@login_required(admin_required=True)
def remove_admin_vote(event_id: str) -> Any:
    """Withdraw a player's vote on their behalf."""
    payload = request.get_json(silent=True) or {}
    user_id = payload.get("user_id")
    if not isinstance(user_id, str) or not user_id:
        raise ValidationError("A player is required.")
    event = VoteService.remove_admin_vote(event_id, user_id)
    return _respond(event, "Vote removed.")


@bp.route("/<string:event_id>/sync", methods=["POST"])
@login_required(admin_required=True)
def sync_players(event_id: str) -> Any:
    """Recompute the confirmed roster from the Yes votes."""
    roster = OpenPlayService.on_vote_changed(event_id)
    if roster is None:
        return _respond(None, "Roster is frozen.")
    return _respond({"confirmedPlayers": roster}, "Roster synchronised.")


@bp.route("/<string:event_id>/matches/generate", methods=["POST"])
@login_required(admin_required=True)
def generate_matches(event_id: str) -> Any:
    """Build and store the slate."""
    matches = OpenPlayService.request_generation(event_id)
    return _respond({"matches": matches}, f"Generated {len(matches)} matches.", 201)


@bp.route("/<string:event_id>/matches/reset", methods=["POST"])
@login_required(admin_required=True)
def reset_matches(event_id: str) -> Any:
    """Clear the slate so it can be generated again."""
    OpenPlayService.reset_matches(event_id)
    return _respond(None, "Matches reset.")


@bp.route("/<string:event_id>/matches/order", methods=["PUT"])
@login_required(admin_required=True)
def reorder_matches(event_id: str) -> Any:
    """Change the play order of the slate."""
    payload = request.get_json(silent=True) or {}
    order = payload.get("order")
    if not isinstance(order, list) or not all(
        isinstance(n, int) and not isinstance(n, bool) for n in order
    ):
        raise ValidationError("Order must be a list of match numbers.")
    matches = OpenPlayService.reorder_matches(event_id, order)
    return _respond({"matches": matches}, "Matches reordered.")


@bp.route("/<string:event_id>/matches/<int:match_number>/start", methods=["POST"])
@login_required(admin_required=True)
def start_match(event_id: str, match_number: int) -> Any:
    """Mark a match as in progress."""
    match = OpenPlayService.start_match(event_id, match_number)
    return _respond(match, f"Match {match_number} started.")


@bp.route("/<string:event_id>/matches/<int:match_number>/result", methods=["POST"])
@login_required(admin_required=True)
def record_result(event_id: str, match_number: int) -> Any:
    """Record the winner and score of a match."""
    form = _validated(MatchResultForm())
    submission = MatchResultSubmission(
        match_number=match_number,
        winning_team=form.winning_team.data,
        score=form.score.data or None,
    )
    match = OpenPlayService.record_match_result(event_id, submission)
    return _respond(match, f"Result recorded for match {match_number}.")


@bp.route("/<string:event_id>/rotation", methods=["GET"])
@login_required
def rotation_report(event_id: str) -> Any:
    """Return per-player match counts for the slate."""
    return _respond(OpenPlayService.get_rotation_report(event_id))
