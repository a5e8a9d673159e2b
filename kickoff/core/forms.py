"""Form helpers shared by the JSON blueprints."""

from typing import Any

from flask_wtf import FlaskForm  # type: ignore

from kickoff.errors import ValidationError


class JSONForm(FlaskForm):
    """A form filled from a JSON request body, without a CSRF token."""

    class Meta:
        csrf = False


def validated(form: Any) -> Any:
    """Return the form if valid, otherwise raise with its first error."""
    if not form.validate_on_submit():
        messages = [
            f"{name}: {errors[0]}" for name, errors in form.errors.items() if errors
        ]
        raise ValidationError("; ".join(messages) or "Validation failed.")
    return form
