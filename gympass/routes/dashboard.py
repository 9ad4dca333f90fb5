from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from gympass.utils.decorators import subscription_required
from gympass.utils.helpers import format_currency

dashboard_bp = Blueprint('dashboard', __name__)


@dashboard_bp.route('/')
@subscription_required
def index():
    """Owner dashboard - profits and member counts"""
    summary = current_app.extensions['gympass']['accounts'].profit_summary(current_user)

    return jsonify({
        'success': True,
        'summary': summary,
        'display': {
            'total_collected': format_currency(summary['total_collected']),
            'total_debt': format_currency(summary['total_debt']),
        },
        'subscription': {
            'type': current_user.subscription_type,
            'end_date': current_user.subscription_end_date.isoformat(),
        },
        'unread_notifications': current_user.unread_notifications_count
    })


@dashboard_bp.route('/notifications')
@subscription_required
def notifications():
    """Notification inbox"""
    unread_only = request.args.get('unread') in ('1', 'true')
    items = current_app.extensions['gympass']['accounts'].list_notifications(current_user, unread_only)

    return jsonify({
        'success': True,
        'notifications': [n.to_dict() for n in items]
    })


@dashboard_bp.route('/notifications/<int:notification_id>/read', methods=['POST'])
@subscription_required
def mark_read(notification_id):
    notification = current_app.extensions['gympass']['accounts'].mark_notification_read(
        current_user, notification_id
    )
    return jsonify({'success': True, 'notification': notification.to_dict()})
