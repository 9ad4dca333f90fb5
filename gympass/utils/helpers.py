from flask import request

from gympass.errors import ValidationError


def validate_form(form):
    """
    Validate a FlaskForm filled from the request body (JSON or form data).

    Raises ValidationError carrying the per-field errors.
    """
    if not form.validate_on_submit():
        raise ValidationError(errors=form.errors)
    return form


def idempotency_key_from_request(form_value=None):
    """Idempotency-Key header, falling back to the value sent in the body"""
    key = request.headers.get('Idempotency-Key') or form_value
    key = (key or '').strip()
    return key[:64] or None


def format_currency(amount, currency='د.ع'):
    """Format amount as currency"""
    if amount is None:
        return f"0 {currency}"
    return f"{float(amount):,.0f} {currency}"
