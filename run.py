#!/usr/bin/env python3
"""
Main entry point for GymPass
"""
import os
from gympass import create_app, db
from gympass.models import GymOwner, Member, MemberPayment, PromoCode, Notification

# Create the Flask application
app = create_app(os.getenv('FLASK_ENV', 'development'))


@app.shell_context_processor
def make_shell_context():
    """Make database models available in flask shell"""
    return {
        'db': db,
        'GymOwner': GymOwner,
        'Member': Member,
        'MemberPayment': MemberPayment,
        'PromoCode': PromoCode,
        'Notification': Notification
    }


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=5001, debug=True, use_reloader=False)
