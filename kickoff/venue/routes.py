"""Routes for the venue blueprint."""

from firebase_admin import firestore
from flask import jsonify

from kickoff.core.constants import VENUES_COLLECTION
from kickoff.match.store import MatchStore

from . import bp


def _get_store():
    return MatchStore(firestore.client())


@bp.route("", methods=["GET"])
def list_venues():
    """List the venues matches can be played at, by name."""
    venues = _get_store().list_documents(VENUES_COLLECTION, order_by="name")
    return jsonify({"venues": venues})
