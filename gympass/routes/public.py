from flask import Blueprint, current_app, jsonify

public_bp = Blueprint('public', __name__)


@public_bp.route('/members/<public_token>')
def member_card(public_token):
    """
    Read-only member card shared with the member (subscription, calories,
    meal plan). No login: the random share token is the only key, and money
    and contact details stay off the card.
    """
    member = current_app.extensions['gympass']['members'].get_by_public_token(public_token)
    data = member.to_dict()

    return jsonify({
        'success': True,
        'member': {
            'name': data['name'],
            'subscription_type': data['subscription_type'],
            'start_date': data['start_date'],
            'end_date': data['end_date'],
            'status': data['status'],
            'daily_calories': data['daily_calories'],
            'meal_plan': data['meal_plan'],
        }
    })
