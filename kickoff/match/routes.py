"""Routes for the match blueprint."""

from __future__ import annotations

import datetime
from firebase_admin import firestore
from flask import current_app, jsonify

from kickoff.core.forms import validated
from kickoff.core.types import APIResponse
from kickoff.errors import StoreFailureError, ValidationError

from . import bp
from .forms import MatchForm, MatchUpdateForm, PaymentForm, UserActionForm
from .models import MatchSubmission
from .queue_processor import QueueProcessor
from .roster import RosterService
from .services import MatchService
from .status_updater import StatusUpdateJob
from .store import MatchStore


def _get_store() -> MatchStore:
    return MatchStore(firestore.client())


def _status_job(store: MatchStore) -> StatusUpdateJob:
    minutes = current_app.config["MATCH_DURATION_MINUTES"]
    return StatusUpdateJob(store, default_duration=datetime.timedelta(minutes=minutes))


@bp.route("", methods=["GET"])
def list_matches():
    """List all matches, newest first."""
    return jsonify({"matches": MatchService.list_matches(_get_store())})


@bp.route("", methods=["POST"])
def create_match():
    """Create a new match with the requesting user as its first player."""
    form = validated(MatchForm())

    start_time = form.startTime.data
    if start_time.tzinfo is None:
        start_time = start_time.replace(tzinfo=datetime.timezone.utc)

    submission = MatchSubmission(
        title=form.title.data,
        start_time=start_time,
        venue_id=form.venueId.data,
        match_type=form.matchType.data,
        total_slots=form.totalSlots.data,
        created_by=form.userId.data,
        visibility=form.visibility.data,
        total_cost=float(form.totalCost.data)
        if form.totalCost.data is not None
        else None,
        duration_minutes=form.durationMinutes.data,
        notes=form.notes.data or None,
        creator_position=form.preferredPosition.data,
    )
    try:
        match = MatchService.create_match(_get_store(), submission)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    return jsonify({"match": match}), 201


@bp.route("/<string:match_id>", methods=["GET"])
def view_match(match_id):
    """Return a match with its venue, creator and player details."""
    return jsonify({"match": MatchService.get_match(_get_store(), match_id)})


@bp.route("/<string:match_id>", methods=["PATCH"])
def update_match(match_id):
    """Edit a scheduled match on behalf of its creator."""
    form = validated(MatchUpdateForm())
    changes = form.submitted_changes()

    start_time = changes.get("startTime")
    if start_time is not None and start_time.tzinfo is None:
        changes["startTime"] = start_time.replace(tzinfo=datetime.timezone.utc)
    if changes.get("totalCost") is not None:
        changes["totalCost"] = float(changes["totalCost"])

    match = MatchService.update_match(_get_store(), match_id, form.userId.data, changes)
    return jsonify({"match": match})


@bp.route("/user/<string:user_id>", methods=["GET"])
def user_matches(user_id):
    """List the matches a user created or plays in."""
    return jsonify({"matches": MatchService.list_user_matches(_get_store(), user_id)})


@bp.route("/<string:match_id>/cancel", methods=["POST"])
def cancel_match(match_id):
    """Cancel a match on behalf of its creator."""
    form = validated(UserActionForm())
    match = MatchService.cancel_match(_get_store(), match_id, form.userId.data)
    return jsonify({"match": match})


@bp.route("/<string:match_id>/join", methods=["POST"])
def join_match(match_id):
    """Join a match, or its queue when the match is full."""
    form = validated(UserActionForm())
    user_id = form.userId.data
    match = RosterService.join_match(_get_store(), match_id, user_id)
    queued = any(e.get("userId") == user_id for e in match.get("queue") or [])
    return jsonify({"match": match, "queued": queued})


@bp.route("/<string:match_id>/leave", methods=["POST"])
def leave_match(match_id):
    """Leave a match and hand the freed slot to the queue."""
    form = validated(UserActionForm())
    store = _get_store()
    match = RosterService.leave_match(store, match_id, form.userId.data)

    if match.get("queue"):
        current_app.logger.info(f"Processing queue for match {match_id} after leave")
        try:
            result = QueueProcessor.process_queue(store, match_id)
        except StoreFailureError as e:
            # The leave is already committed; the next status pass fills the slot.
            current_app.logger.error(
                f"Queue processing failed for match {match_id} after leave: {e}"
            )
        else:
            match = result.match or match

    return jsonify({"match": match})


@bp.route("/<string:match_id>/queue", methods=["POST"])
def join_queue(match_id):
    """Join the waiting queue of a match."""
    form = validated(UserActionForm())
    match = RosterService.join_queue(_get_store(), match_id, form.userId.data)
    return jsonify({"match": match})


@bp.route("/<string:match_id>/queue/leave", methods=["POST"])
def leave_queue(match_id):
    """Leave the waiting queue of a match."""
    form = validated(UserActionForm())
    match = RosterService.leave_queue(_get_store(), match_id, form.userId.data)
    return jsonify({"match": match})


@bp.route("/<string:match_id>/process-queue", methods=["POST"])
def process_queue(match_id):
    """Promote queued players into any free slots."""
    result = QueueProcessor.process_queue(_get_store(), match_id)
    return jsonify({"match": result.match, **result.to_dict()})


@bp.route("/<string:match_id>/payments", methods=["POST"])
def record_payment(match_id):
    """Record a player's payment for a match."""
    form = validated(PaymentForm())
    payment = MatchService.record_payment(
        _get_store(),
        match_id,
        form.userId.data,
        float(form.amount.data),
        form.method.data,
        form.notes.data or None,
        status=form.status.data,
    )
    return jsonify({"payment": payment}), 201


@bp.route("/update-statuses", methods=["POST"])
def update_statuses():
    """Run the status update pass over every match."""
    result = _status_job(_get_store()).run()
    response: APIResponse = {
        "success": True,
        "message": (
            f"Match statuses updated successfully. Updated: {result.updated}, "
            f"Skipped: {result.skipped}"
        ),
        "data": result.to_dict(),
    }
    return jsonify(response)


@bp.route("/<string:match_id>/update-status", methods=["POST"])
def update_status(match_id):
    """Run the status update pass over a single match."""
    result = _status_job(_get_store()).run_for_match(match_id)
    return jsonify(result.to_dict())
