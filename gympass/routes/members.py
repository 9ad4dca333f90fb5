from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from gympass.errors import ValidationError
from gympass.forms import MemberForm, MemberUpdateForm, RenewForm, PaymentForm, MealPlanForm
from gympass.utils.decorators import subscription_required
from gympass.utils.helpers import validate_form, idempotency_key_from_request

members_bp = Blueprint('members', __name__)


def _members():
    return current_app.extensions['gympass']['members']


@members_bp.route('/')
@subscription_required
def index():
    """List members with search and status filter"""
    search = request.args.get('search', '').strip()
    status = request.args.get('status', '')

    members = _members().list_for_owner(current_user, search=search, status=status)

    return jsonify({
        'success': True,
        'members': [m.to_dict(include_meal_plan=False) for m in members],
        'count': len(members)
    })


@members_bp.route('/', methods=['POST'])
@subscription_required
def create():
    """Register a new member"""
    form = validate_form(MemberForm())
    member = _members().register(current_user, form.member_data())

    return jsonify({
        'success': True,
        'message': f'تم إضافة العضو {member.name} بنجاح',
        'member': member.to_dict()
    }), 201


@members_bp.route('/<int:member_id>')
@subscription_required
def view(member_id):
    """View member details"""
    member = _members().get_for_owner(member_id, current_user)
    payments = member.payments.all()

    return jsonify({
        'success': True,
        'member': member.to_dict(),
        'payments': [p.to_dict() for p in payments]
    })


@members_bp.route('/<int:member_id>', methods=['PUT'])
@subscription_required
def edit(member_id):
    """Edit member details"""
    service = _members()
    member = service.get_for_owner(member_id, current_user)
    form = validate_form(MemberUpdateForm())

    member = service.update(member, form.member_data())
    return jsonify({'success': True, 'message': 'تم تحديث بيانات العضو', 'member': member.to_dict()})


@members_bp.route('/<int:member_id>', methods=['DELETE'])
@subscription_required
def delete(member_id):
    """Delete member"""
    service = _members()
    member = service.get_for_owner(member_id, current_user)
    service.delete(member)
    return jsonify({'success': True, 'message': 'تم حذف العضو'})


@members_bp.route('/<int:member_id>/renew', methods=['POST'])
@subscription_required
def renew(member_id):
    """Renew member subscription"""
    service = _members()
    member = service.get_for_owner(member_id, current_user)
    form = validate_form(RenewForm())

    member = service.renew(member, form.period.data, form.classes.data)
    return jsonify({'success': True, 'message': 'تم تجديد الاشتراك بنجاح', 'member': member.to_dict()})


@members_bp.route('/<int:member_id>/payments', methods=['POST'])
@subscription_required
def add_payment(member_id):
    """Record a payment against the member's debt"""
    service = _members()
    member = service.get_for_owner(member_id, current_user)
    form = validate_form(PaymentForm())

    payment, created = service.apply_payment(
        member,
        form.amount.data,
        idempotency_key=idempotency_key_from_request(form.idempotency_key.data)
    )

    return jsonify({
        'success': True,
        'message': 'تم تسجيل الدفعة' if created else 'تم تسجيل هذه الدفعة مسبقاً',
        'payment': payment.to_dict(),
        'member': member.to_dict(include_meal_plan=False)
    }), 201 if created else 200


@members_bp.route('/<int:member_id>/meal-plan', methods=['POST'])
@subscription_required
def generate_meal_plan(member_id):
    """Generate and store a meal plan for the member"""
    service = _members()
    member = service.get_for_owner(member_id, current_user)
    form = validate_form(MealPlanForm())

    calories = form.calories.data or member.daily_calories
    if not calories:
        raise ValidationError('يرجى إدخال بيانات العضو الصحية أولاً لحساب السعرات الحرارية')

    plan = current_app.extensions['gympass']['meal_plans'].generate(calories, form.goal.data or 'maintenance')
    member = service.attach_meal_plan(member, plan.model_dump())

    return jsonify({'success': True, 'meal_plan': member.meal_plan})
