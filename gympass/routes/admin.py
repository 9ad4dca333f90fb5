"""
Platform admin API.

Authenticated by the X-Admin-Key header only; owner sessions never reach it.
"""
from flask import Blueprint, current_app, jsonify

from gympass.forms import PromoCodeForm, SubscriptionActionForm, NotificationForm
from gympass.utils.decorators import admin_key_required
from gympass.utils.helpers import validate_form

admin_bp = Blueprint('admin', __name__)


def _admin():
    return current_app.extensions['gympass']['admin']


@admin_bp.route('/promo-codes')
@admin_key_required
def promo_codes():
    codes = _admin().list_promo_codes()
    return jsonify({'success': True, 'promo_codes': [c.to_dict() for c in codes]})


@admin_bp.route('/promo-codes', methods=['POST'])
@admin_key_required
def create_promo_code():
    """Create promo code"""
    form = validate_form(PromoCodeForm())
    promo = _admin().create_promo_code(form.code.data, form.type.data, form.max_uses.data or 1)
    return jsonify({'success': True, 'message': 'تم إنشاء الكود بنجاح', 'promo_code': promo.to_dict()}), 201


@admin_bp.route('/promo-codes/<int:promo_id>', methods=['DELETE'])
@admin_key_required
def delete_promo_code(promo_id):
    _admin().delete_promo_code(promo_id)
    return jsonify({'success': True, 'message': 'تم حذف الكود'})


@admin_bp.route('/users')
@admin_key_required
def users():
    """All gym owners with their subscription status"""
    owners = _admin().list_owners()
    return jsonify({
        'success': True,
        'users': [
            dict(o.to_dict(), members_count=o.members.count())
            for o in owners
        ]
    })


@admin_bp.route('/users/<int:owner_id>/subscription', methods=['POST'])
@admin_key_required
def update_user_subscription(owner_id):
    """Extend or deactivate a gym owner's subscription"""
    form = validate_form(SubscriptionActionForm())
    owner = _admin().update_user_subscription(owner_id, form.action.data)
    return jsonify({'success': True, 'message': 'تم تحديث الاشتراك بنجاح', 'user': owner.to_dict()})


@admin_bp.route('/notifications', methods=['POST'])
@admin_key_required
def send_notification():
    """Broadcast a notification to gym owners"""
    form = validate_form(NotificationForm())
    count = _admin().send_notification(form.message.data, form.target.data or 'all')
    return jsonify({
        'success': True,
        'message': f'تم إرسال الإشعار إلى {count} مستخدمين',
        'count': count
    })
