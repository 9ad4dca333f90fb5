import logging

from flask import Blueprint, current_app, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from flask_wtf.csrf import generate_csrf

from gympass.forms import LoginForm, SignupForm
from gympass.utils.helpers import validate_form

auth_bp = Blueprint('auth', __name__)

logger = logging.getLogger(__name__)


@auth_bp.route('/csrf-token')
def csrf_token():
    """Token for the X-CSRFToken header of later requests"""
    return jsonify({'success': True, 'csrf_token': generate_csrf()})


@auth_bp.route('/signup', methods=['POST'])
def signup():
    """Create a gym owner account with a promo code"""
    form = validate_form(SignupForm())

    owner = current_app.extensions['gympass']['accounts'].signup(
        email=form.email.data,
        password=form.password.data,
        promo_code=form.promo_code.data,
        pricing=form.pricing_data(),
        phone=form.phone.data or None
    )
    login_user(owner)

    return jsonify({
        'success': True,
        'message': 'تم إنشاء الحساب بنجاح',
        'owner': owner.to_dict()
    }), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    """Login"""
    form = validate_form(LoginForm())
    accounts = current_app.extensions['gympass']['accounts']

    owner = accounts.authenticate(form.email.data, form.password.data)
    if owner is None:
        return jsonify({'success': False, 'error': 'البريد الإلكتروني أو كلمة المرور غير صحيحة'}), 401

    # Expired owners are refused at the door
    accounts.check_subscription(owner)

    login_user(owner, remember=form.remember_me.data)
    logger.info(f"Gym owner {owner.id} logged in")

    return jsonify({'success': True, 'owner': owner.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """Logout"""
    logout_user()
    return jsonify({'success': True, 'message': 'تم تسجيل الخروج بنجاح'})


@auth_bp.route('/me')
@login_required
def me():
    return jsonify({
        'success': True,
        'owner': current_user.to_dict(),
        'unread_notifications': current_user.unread_notifications_count
    })
