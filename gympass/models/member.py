import secrets
from datetime import datetime

from gympass import db
from gympass.utils.calculators import derive_status, compute_debt, parse_subscription_type


class Member(db.Model):
    """Member model - Gym members/clients"""
    __tablename__ = 'members'

    id = db.Column(db.Integer, primary_key=True)
    gym_owner_id = db.Column(db.Integer, db.ForeignKey('gym_owners.id'), nullable=False, index=True)

    # Basic info
    name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(20))

    # Subscription, e.g. 'Monthly Iron & Fitness'
    subscription_type = db.Column(db.String(50), nullable=False)
    subscription_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    amount_paid = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)

    # Biometrics
    age = db.Column(db.Integer)
    weight = db.Column(db.Float)  # kg
    height = db.Column(db.Float)  # cm
    gender = db.Column(db.String(10))  # 'male' or 'female'
    daily_calories = db.Column(db.Integer)  # BMR, kcal/day

    # Unguessable key for the shareable member card
    public_token = db.Column(db.String(32), unique=True, nullable=False, index=True)

    # Latest generated meal plan snapshot
    meal_plan = db.Column(db.JSON)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    payments = db.relationship('MemberPayment', backref='member', lazy='dynamic',
                               cascade='all, delete-orphan',
                               order_by='MemberPayment.created_at.desc()')

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if not self.public_token:
            self.public_token = secrets.token_hex(16)

    def __repr__(self):
        return f'<Member {self.name}>'

    def subscription_status(self, now=None):
        """'Active' or 'Expired'"""
        return derive_status(now or datetime.utcnow(), self.end_date)

    @property
    def debt(self):
        """Outstanding balance"""
        return compute_debt(self.subscription_price, self.amount_paid)

    @property
    def period(self):
        return parse_subscription_type(self.subscription_type)[0]

    @property
    def classes(self):
        return parse_subscription_type(self.subscription_type)[1]

    def to_dict(self, now=None, include_meal_plan=True):
        data = {
            'id': self.id,
            'gym_owner_id': self.gym_owner_id,
            'name': self.name,
            'phone': self.phone,
            'subscription_type': self.subscription_type,
            'period': self.period,
            'classes': self.classes,
            'subscription_price': float(self.subscription_price or 0),
            'amount_paid': float(self.amount_paid or 0),
            'debt': float(self.debt),
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat(),
            'status': self.subscription_status(now),
            'public_token': self.public_token,
            'age': self.age,
            'weight': self.weight,
            'height': self.height,
            'gender': self.gender,
            'daily_calories': self.daily_calories,
        }
        if include_meal_plan:
            data['meal_plan'] = self.meal_plan
        return data


class MemberPayment(db.Model):
    """Payment records, one per applied payment request"""
    __tablename__ = 'member_payments'
    __table_args__ = (
        db.UniqueConstraint('member_id', 'idempotency_key', name='uq_member_payment_key'),
    )

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=False)

    requested_amount = db.Column(db.Numeric(10, 2), nullable=False)
    applied_amount = db.Column(db.Numeric(10, 2), nullable=False)
    idempotency_key = db.Column(db.String(64))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<Payment {self.applied_amount}>'

    def to_dict(self):
        return {
            'id': self.id,
            'member_id': self.member_id,
            'requested_amount': float(self.requested_amount),
            'applied_amount': float(self.applied_amount),
            'idempotency_key': self.idempotency_key,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
