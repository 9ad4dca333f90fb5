import logging
from functools import wraps
from flask import current_app, jsonify, request
from flask_login import current_user, logout_user

from gympass.errors import SubscriptionExpired

logger = logging.getLogger(__name__)


def subscription_required(f):
    """
    Decorator for owner endpoints: requires a logged-in owner whose
    subscription has not expired.

    An expired owner is logged out on the spot and gets a 401.

    Usage:
        @members_bp.route('/')
        @subscription_required
        def list_members():
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return current_app.login_manager.unauthorized()

        accounts = current_app.extensions['gympass']['accounts']
        try:
            accounts.check_subscription(current_user)
        except SubscriptionExpired:
            logger.info(f"Subscription of owner {current_user.id} expired, logging out")
            logout_user()
            raise

        return f(*args, **kwargs)
    return decorated_function


def admin_key_required(f):
    """Decorator to require the admin API key in the X-Admin-Key header"""
    @wraps(f)
    def decorated(*args, **kwargs):
        api_key = request.headers.get('X-Admin-Key')
        expected_key = current_app.config.get('ADMIN_API_KEY')

        if not api_key or not expected_key or api_key != expected_key:
            return jsonify({'success': False, 'error': 'Invalid admin key'}), 401

        return f(*args, **kwargs)
    return decorated
