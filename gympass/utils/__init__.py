# Utils package
from .decorators import subscription_required, admin_key_required
from .helpers import validate_form, idempotency_key_from_request, format_currency
