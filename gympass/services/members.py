"""
Member lifecycle: register, renew, update, pay, delete.

Every read that crosses the tenant boundary goes through `get_for_owner`,
which refuses a member belonging to another gym owner outright.
"""
import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError

from gympass.errors import MemberNotFound, OutstandingDebt, Unauthorized, ValidationError
from gympass.models.member import Member, MemberPayment
from gympass.utils.calculators import (
    compute_bmr, compute_end_date, compute_subscription_price, format_subscription_type,
    STATUS_ACTIVE, STATUS_EXPIRED
)

logger = logging.getLogger(__name__)

RENEWAL_DEBT_POLICIES = ('carry_forward', 'write_off', 'block')

BIOMETRIC_FIELDS = ('gender', 'weight', 'height', 'age')


class MemberService:
    """Member operations for one gym owner at a time"""

    def __init__(self, session, renewal_debt_policy='carry_forward'):
        if renewal_debt_policy not in RENEWAL_DEBT_POLICIES:
            raise ValueError(f"Unknown renewal debt policy: {renewal_debt_policy}")
        self.session = session
        self.renewal_debt_policy = renewal_debt_policy

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, member_id):
        member = self.session.get(Member, member_id)
        if member is None:
            raise MemberNotFound()
        return member

    def get_by_public_token(self, token):
        member = Member.query.filter_by(public_token=token).first()
        if member is None:
            raise MemberNotFound()
        return member

    def get_for_owner(self, member_id, owner):
        """Fetch a member, failing closed when it belongs to another owner"""
        member = self.get(member_id)
        if member.gym_owner_id != owner.id:
            logger.warning(f"Owner {owner.id} tried to access member {member_id} of owner {member.gym_owner_id}")
            raise Unauthorized()
        return member

    def list_for_owner(self, owner, search='', status='', now=None):
        """Members of one owner, newest first, optionally filtered"""
        now = now or datetime.utcnow()
        query = Member.query.filter_by(gym_owner_id=owner.id)

        if search:
            query = query.filter(
                or_(
                    Member.name.ilike(f'%{search}%'),
                    Member.phone.ilike(f'%{search}%')
                )
            )

        # Same rule as derive_status: Expired only strictly after end_date
        if status == STATUS_ACTIVE:
            query = query.filter(Member.end_date >= now)
        elif status == STATUS_EXPIRED:
            query = query.filter(Member.end_date < now)

        return query.order_by(Member.created_at.desc(), Member.id.desc()).all()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def register(self, owner, data, now=None):
        """
        Create a member for `owner`.

        data keys: name, phone, period, classes, gender, weight, height, age,
        and optionally subscription_price and amount_paid.
        """
        now = now or datetime.utcnow()
        period = data['period']
        classes = data['classes']

        price = data.get('subscription_price')
        if price is None:
            price = compute_subscription_price(owner.pricing, period, classes)
        price = Decimal(str(price))
        if price < 0:
            raise ValidationError('سعر الاشتراك يجب أن يكون موجباً')

        # Initial payment never exceeds the price
        paid = Decimal(str(data.get('amount_paid') or 0))
        if paid < 0:
            raise ValidationError('المبلغ المدفوع يجب أن يكون موجباً')
        paid = min(paid, price)

        member = Member(
            gym_owner_id=owner.id,
            name=data['name'].strip(),
            phone=(data.get('phone') or '').strip() or None,
            subscription_type=format_subscription_type(period, classes),
            subscription_price=price,
            amount_paid=paid,
            start_date=now,
            end_date=compute_end_date(now, period),
        )
        self._set_biometrics(member, data)

        self.session.add(member)
        self.session.commit()

        logger.info(f"Member {member.id} registered for owner {owner.id}: {member.subscription_type}")
        return member

    def renew(self, member, period, classes, now=None):
        """
        Start a new subscription window from now.

        Only start_date, end_date and subscription_type change; what happens to
        unpaid debt is decided by the configured renewal debt policy. The end
        date is never moved earlier than the one already paid for.
        """
        now = now or datetime.utcnow()
        subscription_type = format_subscription_type(period, classes)

        if member.debt > 0:
            if self.renewal_debt_policy == 'block':
                raise OutstandingDebt()
            if self.renewal_debt_policy == 'write_off':
                logger.info(f"Writing off debt {member.debt} of member {member.id} on renewal")
                member.amount_paid = member.subscription_price

        member.subscription_type = subscription_type
        member.start_date = now
        member.end_date = max(member.end_date, compute_end_date(now, period))
        self.session.commit()

        logger.info(f"Member {member.id} renewed until {member.end_date.isoformat()}")
        return member

    def update(self, member, data):
        """Edit personal details and biometrics"""
        if 'name' in data and data['name']:
            member.name = data['name'].strip()
        if 'phone' in data:
            member.phone = (data.get('phone') or '').strip() or None

        if any(data.get(field) is not None for field in BIOMETRIC_FIELDS):
            merged = {field: getattr(member, field) for field in BIOMETRIC_FIELDS}
            merged.update({k: v for k, v in data.items() if k in BIOMETRIC_FIELDS and v is not None})
            self._set_biometrics(member, merged)

        self.session.commit()
        return member

    def apply_payment(self, member, amount, idempotency_key=None):
        """
        Apply a payment, clamped to the outstanding debt.

        Returns (payment, created). A key already used for this member returns
        the earlier payment with created=False and changes nothing.
        """
        amount = Decimal(str(amount))
        if amount <= 0:
            raise ValidationError('المبلغ يجب أن يكون أكبر من صفر')

        if idempotency_key:
            existing = member.payments.filter_by(idempotency_key=idempotency_key).first()
            if existing:
                logger.info(f"Payment {idempotency_key} for member {member.id} already applied")
                return existing, False

        applied = max(Decimal('0'), min(amount, member.debt))

        # Increment in SQL so a concurrent write to the row is not lost
        self.session.execute(
            update(Member)
            .where(Member.id == member.id)
            .values(amount_paid=Member.amount_paid + applied)
            .execution_options(synchronize_session=False)
        )
        payment = MemberPayment(
            member_id=member.id,
            requested_amount=amount,
            applied_amount=applied,
            idempotency_key=idempotency_key
        )
        self.session.add(payment)

        try:
            self.session.commit()
        except IntegrityError:
            # Same key committed by a concurrent request
            self.session.rollback()
            existing = member.payments.filter_by(idempotency_key=idempotency_key).first()
            if existing is None:
                raise
            return existing, False

        self.session.refresh(member)
        logger.info(f"Payment of {applied} (requested {amount}) applied to member {member.id}")
        return payment, True

    def attach_meal_plan(self, member, plan):
        """Replace the stored meal plan snapshot"""
        member.meal_plan = plan
        self.session.commit()
        return member

    def delete(self, member):
        """Hard delete"""
        member_id = member.id
        self.session.delete(member)
        self.session.commit()
        logger.info(f"Member {member_id} deleted")

    # ------------------------------------------------------------------

    def _set_biometrics(self, member, data):
        gender = data.get('gender')
        weight = data.get('weight')
        height = data.get('height')
        age = data.get('age')

        member.gender = gender
        member.weight = weight
        member.height = height
        member.age = age

        if all(v is not None for v in (gender, weight, height, age)):
            member.daily_calories = compute_bmr(gender, weight, height, age)
        else:
            member.daily_calories = None
