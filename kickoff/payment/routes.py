"""Routes for the payment blueprint."""

from firebase_admin import firestore
from flask import jsonify, request

from kickoff.core.forms import validated
from kickoff.match.store import MatchStore

from . import bp
from .forms import PaymentStatusForm
from .services import PaymentService


def _get_store():
    return MatchStore(firestore.client())


@bp.route("", methods=["GET"])
def list_payments():
    """List payments, optionally for one match or one player."""
    payments = PaymentService.list_payments(
        _get_store(),
        match_id=request.args.get("matchId"),
        user_id=request.args.get("userId"),
    )
    return jsonify({"payments": payments})


@bp.route("/<string:payment_id>", methods=["GET"])
def view_payment(payment_id):
    """Return a single payment."""
    return jsonify({"payment": PaymentService.get_payment(_get_store(), payment_id)})


@bp.route("/<string:payment_id>", methods=["PATCH"])
def update_payment_status(payment_id):
    """Move a payment to a new status."""
    form = validated(PaymentStatusForm())
    payment = PaymentService.update_payment_status(
        _get_store(), payment_id, form.status.data
    )
    return jsonify({"payment": payment})
