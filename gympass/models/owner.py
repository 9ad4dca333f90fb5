from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from gympass import db, login_manager
from gympass.utils.calculators import derive_status, STATUS_EXPIRED

# pricing key => column
PRICE_FIELDS = {
    'dailyIron': 'price_daily_iron',
    'weeklyIron': 'price_weekly_iron',
    'monthlyIron': 'price_monthly_iron',
    'dailyFitness': 'price_daily_fitness',
    'weeklyFitness': 'price_weekly_fitness',
    'monthlyFitness': 'price_monthly_fitness',
}


class GymOwner(UserMixin, db.Model):
    """Gym owner account - the tenant every member belongs to"""
    __tablename__ = 'gym_owners'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    phone = db.Column(db.String(20))
    password_hash = db.Column(db.String(255), nullable=False)

    # Subscription window, opened by a promo code and extended by admins
    subscription_type = db.Column(db.String(20))  # gift, monthly, 6-months, yearly
    subscription_start_date = db.Column(db.DateTime, nullable=False)
    subscription_end_date = db.Column(db.DateTime, nullable=False)

    # Pricing table (period x class)
    price_daily_iron = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    price_weekly_iron = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    price_monthly_iron = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    price_daily_fitness = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    price_weekly_fitness = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    price_monthly_fitness = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    used_promo_codes = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    members = db.relationship('Member', backref='gym_owner', lazy='dynamic',
                              cascade='all, delete-orphan')
    notifications = db.relationship('Notification', backref='gym_owner', lazy='dynamic',
                                    cascade='all, delete-orphan',
                                    order_by='Notification.created_at.desc()')

    def __repr__(self):
        return f'<GymOwner {self.email}>'

    def set_password(self, password):
        """Set password hash"""
        self.password_hash = generate_password_hash(password, method='pbkdf2:sha256')

    def check_password(self, password):
        """Check password"""
        return check_password_hash(self.password_hash, password)

    @property
    def pricing(self):
        """Pricing table keyed like 'monthlyIron'"""
        return {key: getattr(self, column) for key, column in PRICE_FIELDS.items()}

    def set_pricing(self, pricing):
        for key, column in PRICE_FIELDS.items():
            if key in pricing and pricing[key] is not None:
                setattr(self, column, pricing[key])

    def subscription_status(self, now=None):
        """'active' or 'expired' - derived, never stored"""
        status = derive_status(now or datetime.utcnow(), self.subscription_end_date)
        return 'expired' if status == STATUS_EXPIRED else 'active'

    @property
    def unread_notifications_count(self):
        return self.notifications.filter_by(is_read=False).count()

    def to_dict(self, now=None):
        return {
            'id': self.id,
            'email': self.email,
            'phone': self.phone,
            'subscription_type': self.subscription_type,
            'subscription_start_date': self.subscription_start_date.isoformat(),
            'subscription_end_date': self.subscription_end_date.isoformat(),
            'status': self.subscription_status(now),
            'pricing': {key: float(value or 0) for key, value in self.pricing.items()},
            'created_at': self.created_at.isoformat() if self.created_at else None
        }


@login_manager.user_loader
def load_user(user_id):
    """Load gym owner for Flask-Login"""
    return db.session.get(GymOwner, int(user_id))
