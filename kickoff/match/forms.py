"""Forms for the match blueprint.

The forms are filled from JSON request bodies; Flask-WTF reads
``request.get_json()`` when the request is JSON.
"""

from wtforms import (
    DateTimeField,
    DecimalField,
    IntegerField,
    SelectField,
    StringField,
    ValidationError,
)
from wtforms.validators import DataRequired, InputRequired, NumberRange, Optional

from kickoff.core.constants import (
    MATCH_TYPES,
    PAYMENT_METHODS,
    PAYMENT_PENDING,
    PAYMENT_STATUSES,
    POSITION_UNASSIGNED,
    POSITIONS,
    VISIBILITY_OPTIONS,
)
from kickoff.core.forms import JSONForm

# ISO 8601 as sent by browsers (``Date.toISOString()``) and by Python clients.
START_TIME_FORMATS = [
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M%z",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
]


class UserActionForm(JSONForm):
    """Identifies the user performing a roster or queue action."""

    userId = StringField("User", validators=[DataRequired()])  # noqa: N815


class MatchForm(UserActionForm):
    """Form for creating a new match."""

    title = StringField("Title", validators=[DataRequired()])
    startTime = DateTimeField(  # noqa: N815
        "Start time", format=START_TIME_FORMATS, validators=[DataRequired()]
    )
    venueId = StringField("Venue", validators=[DataRequired()])  # noqa: N815
    matchType = SelectField(  # noqa: N815
        "Match Type",
        choices=[(t, t) for t in MATCH_TYPES],
        validators=[DataRequired()],
    )
    totalSlots = IntegerField(  # noqa: N815
        "Total slots", validators=[InputRequired(), NumberRange(min=1)]
    )
    totalCost = DecimalField(  # noqa: N815
        "Total cost", places=2, validators=[Optional(), NumberRange(min=0)]
    )
    durationMinutes = IntegerField(  # noqa: N815
        "Duration (minutes)", validators=[Optional(), NumberRange(min=1)]
    )
    visibility = SelectField(
        "Visibility", choices=[(v, v) for v in VISIBILITY_OPTIONS], default="public"
    )
    preferredPosition = SelectField(  # noqa: N815
        "Your position",
        choices=[(p, p) for p in POSITIONS],
        default=POSITION_UNASSIGNED,
    )
    notes = StringField("Notes", validators=[Optional()])


class MatchUpdateForm(UserActionForm):
    """Form for editing a match; only the fields sent are changed."""

    title = StringField("Title", validators=[Optional()])
    startTime = DateTimeField(  # noqa: N815
        "Start time", format=START_TIME_FORMATS, validators=[Optional()]
    )
    venueId = StringField("Venue", validators=[Optional()])  # noqa: N815
    matchType = SelectField(  # noqa: N815
        "Match Type", choices=[(t, t) for t in MATCH_TYPES], validators=[Optional()]
    )
    totalSlots = IntegerField(  # noqa: N815
        "Total slots", validators=[Optional(), NumberRange(min=1)]
    )
    totalCost = DecimalField(  # noqa: N815
        "Total cost", places=2, validators=[Optional(), NumberRange(min=0)]
    )
    durationMinutes = IntegerField(  # noqa: N815
        "Duration (minutes)", validators=[Optional(), NumberRange(min=1)]
    )
    visibility = SelectField(
        "Visibility",
        choices=[(v, v) for v in VISIBILITY_OPTIONS],
        validators=[Optional()],
    )
    notes = StringField("Notes", validators=[Optional()])

    def submitted_changes(self):
        """Return the fields present in the request body, keyed by name."""
        return {
            field.name: field.data
            for field in self
            if field.name != "userId" and field.raw_data
        }


class PaymentForm(UserActionForm):
    """Form for recording a player's payment."""

    amount = DecimalField("Amount", places=2, validators=[InputRequired()])
    method = SelectField(
        "Method", choices=[(m, m) for m in PAYMENT_METHODS], validators=[DataRequired()]
    )
    status = SelectField(
        "Status", choices=[(s, s) for s in PAYMENT_STATUSES], default=PAYMENT_PENDING
    )
    notes = StringField("Notes", validators=[Optional()])

    def validate_amount(self, field):
        """Validate that the amount is not negative."""
        if field.data is None:
            return
        if field.data < 0:
            raise ValidationError("Amount cannot be negative.")
