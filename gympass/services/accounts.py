"""
Gym owner accounts: signup through a promo code, login, pricing settings,
the expired-subscription gate, the notification inbox and the profits summary.
"""
import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from gympass.errors import NotFound, SubscriptionExpired, ValidationError
from gympass.models.member import Member, MemberPayment
from gympass.models.notification import Notification
from gympass.models.owner import GymOwner, PRICE_FIELDS
from gympass.services.promo_codes import redeem_promo_code
from gympass.utils.calculators import compute_owner_end_date

logger = logging.getLogger(__name__)

EMAIL_TAKEN = 'هذا البريد الإلكتروني مستخدم بالفعل.'


class AccountService:
    """Operations a gym owner performs on their own account"""

    def __init__(self, session):
        self.session = session

    def signup(self, email, password, promo_code, pricing=None, phone=None, now=None):
        """
        Create a gym owner whose subscription window is paid for by a promo
        code. The redemption and the new account commit together.
        """
        now = now or datetime.utcnow()
        email = (email or '').strip().lower()

        if self._email_taken(email):
            raise ValidationError(EMAIL_TAKEN)

        try:
            subscription_type = redeem_promo_code(self.session, promo_code)

            owner = GymOwner(
                email=email,
                phone=phone,
                subscription_type=subscription_type,
                subscription_start_date=now,
                subscription_end_date=compute_owner_end_date(now, subscription_type),
                used_promo_codes=[promo_code.strip().upper()]
            )
            owner.set_password(password)
            owner.set_pricing(self._clean_pricing(pricing or {}))

            self.session.add(owner)
            self.session.commit()
        except IntegrityError:
            # Another signup with this email committed after the check above
            self.session.rollback()
            raise ValidationError(EMAIL_TAKEN)
        except Exception:
            self.session.rollback()
            raise

        logger.info(f"Gym owner {owner.id} signed up with a {subscription_type} subscription "
                    f"until {owner.subscription_end_date.isoformat()}")
        return owner

    def authenticate(self, email, password):
        """Return the owner for valid credentials, else None"""
        owner = GymOwner.query.filter_by(email=(email or '').strip().lower()).first()
        if owner is None or not owner.check_password(password):
            return None
        return owner

    def check_subscription(self, owner, now=None):
        """Hard gate: raise SubscriptionExpired once the window has passed"""
        if owner.subscription_status(now) == 'expired':
            raise SubscriptionExpired()
        return owner

    def update_pricing(self, owner, pricing):
        owner.set_pricing(self._clean_pricing(pricing))
        self.session.commit()
        logger.info(f"Gym owner {owner.id} updated pricing")
        return owner

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def list_notifications(self, owner, unread_only=False):
        query = owner.notifications
        if unread_only:
            query = query.filter_by(is_read=False)
        return query.all()

    def mark_notification_read(self, owner, notification_id):
        notification = Notification.query.filter_by(
            id=notification_id,
            gym_owner_id=owner.id
        ).first()
        if notification is None:
            raise NotFound('الإشعار غير موجود')
        notification.is_read = True
        self.session.commit()
        return notification

    # ------------------------------------------------------------------
    # Profits
    # ------------------------------------------------------------------

    def profit_summary(self, owner, now=None):
        """Collected money, outstanding debt and member counts for one owner"""
        now = now or datetime.utcnow()

        collected, expected = self.session.query(
            func.coalesce(func.sum(Member.amount_paid), 0),
            func.coalesce(func.sum(Member.subscription_price), 0)
        ).filter(Member.gym_owner_id == owner.id).one()

        total_members = Member.query.filter_by(gym_owner_id=owner.id).count()
        active_members = Member.query.filter(
            Member.gym_owner_id == owner.id,
            Member.end_date >= now
        ).count()

        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        collected_this_month = self.session.query(
            func.coalesce(func.sum(MemberPayment.applied_amount), 0)
        ).select_from(MemberPayment).join(Member).filter(
            Member.gym_owner_id == owner.id,
            MemberPayment.created_at >= month_start
        ).scalar()

        collected = Decimal(str(collected))
        expected = Decimal(str(expected))
        return {
            'total_members': total_members,
            'active_members': active_members,
            'expired_members': total_members - active_members,
            'total_collected': float(collected),
            'total_expected': float(expected),
            'total_debt': float(expected - collected),
            'collected_this_month': float(collected_this_month or 0)
        }

    def _email_taken(self, email):
        return GymOwner.query.filter_by(email=email).first() is not None

    @staticmethod
    def _clean_pricing(pricing):
        cleaned = {}
        for key in PRICE_FIELDS:
            if key not in pricing or pricing[key] is None:
                continue
            try:
                value = Decimal(str(pricing[key]))
            except ArithmeticError:
                raise ValidationError(f'السعر غير صالح: {key}')
            if value < 0:
                raise ValidationError('يجب أن يكون السعر موجبًا.')
            cleaned[key] = value
        return cleaned
