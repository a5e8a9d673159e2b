"""Forms for the payment blueprint."""

from wtforms import SelectField
from wtforms.validators import DataRequired

from kickoff.core.constants import PAYMENT_STATUSES
from kickoff.core.forms import JSONForm


class PaymentStatusForm(JSONForm):
    """Form for moving a payment to a new status."""

    status = SelectField(
        "Status",
        choices=[(s, s) for s in PAYMENT_STATUSES],
        validators=[DataRequired()],
    )
