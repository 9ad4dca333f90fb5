from flask import Blueprint, current_app, jsonify
from flask_login import current_user

from gympass.forms import PricingForm
from gympass.utils.decorators import subscription_required
from gympass.utils.helpers import validate_form

settings_bp = Blueprint('settings', __name__)


@settings_bp.route('/')
@subscription_required
def index():
    """Account settings"""
    return jsonify({'success': True, 'owner': current_user.to_dict()})


@settings_bp.route('/pricing', methods=['PUT'])
@subscription_required
def update_pricing():
    """Update subscription prices"""
    form = validate_form(PricingForm())
    owner = current_app.extensions['gympass']['accounts'].update_pricing(current_user, form.pricing_data())

    return jsonify({
        'success': True,
        'message': 'تم حفظ الأسعار بنجاح',
        'pricing': owner.to_dict()['pricing']
    })
