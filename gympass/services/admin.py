"""
Platform administration: promo codes, gym owner subscriptions and broadcasts.
"""
import logging
from datetime import datetime, timedelta

from gympass.errors import OwnerNotFound, PromoCodeNotFound, ValidationError
from gympass.models.notification import Notification, NOTIFICATION_TARGETS
from gympass.models.owner import GymOwner
from gympass.models.promo_code import PromoCode, PROMO_CODE_TYPES
from gympass.utils.calculators import add_months, OWNER_SUBSCRIPTION_MONTHS

logger = logging.getLogger(__name__)

SUBSCRIPTION_ACTIONS = tuple(OWNER_SUBSCRIPTION_MONTHS) + ('deactivate',)


class AdminService:

    def __init__(self, session):
        self.session = session

    # Promo codes

    def create_promo_code(self, code, code_type, max_uses=1):
        normalized = PromoCode.normalize(code)
        if not normalized:
            raise ValidationError('يرجى إدخال الكود')
        if normalized == 'GIFT':
            raise ValidationError('هذا الكود محجوز')
        if code_type not in PROMO_CODE_TYPES:
            raise ValidationError(f'نوع الكود غير صالح: {code_type}')
        try:
            max_uses = int(max_uses)
        except (TypeError, ValueError):
            raise ValidationError('عدد الاستخدامات يجب أن يكون رقماً')
        if max_uses < 1:
            raise ValidationError('عدد الاستخدامات يجب أن يكون 1 على الأقل')

        if PromoCode.get_by_code(normalized):
            raise ValidationError('هذا الكود موجود بالفعل')

        promo = PromoCode(code=normalized, type=code_type, max_uses=max_uses)
        self.session.add(promo)
        self.session.commit()

        logger.info(f"Promo code created: {promo.code} ({promo.type}, max {promo.max_uses})")
        return promo

    def list_promo_codes(self):
        return PromoCode.query.order_by(PromoCode.created_at.desc(), PromoCode.id.desc()).all()

    def delete_promo_code(self, promo_id):
        promo = self.session.get(PromoCode, promo_id)
        if promo is None:
            raise PromoCodeNotFound()
        self.session.delete(promo)
        self.session.commit()
        logger.info(f"Promo code deleted: {promo.code}")

    # Gym owners

    def list_owners(self):
        return GymOwner.query.order_by(GymOwner.created_at.desc(), GymOwner.id.desc()).all()

    def update_user_subscription(self, owner_id, action, now=None):
        """
        Extend an owner's subscription by a month, six months or a year, or
        deactivate it.

        Extensions start from the later of the current end date and now, so
        unused time is kept. Deactivation moves the end date to yesterday.
        """
        now = now or datetime.utcnow()
        if action not in SUBSCRIPTION_ACTIONS:
            raise ValidationError(f'الإجراء غير صالح: {action}')

        owner = self.session.get(GymOwner, owner_id)
        if owner is None:
            raise OwnerNotFound()

        if action == 'deactivate':
            owner.subscription_end_date = now - timedelta(days=1)
        else:
            base = max(owner.subscription_end_date, now)
            owner.subscription_end_date = add_months(base, OWNER_SUBSCRIPTION_MONTHS[action])
            owner.subscription_type = action

        self.session.commit()
        logger.info(f"Admin set subscription of owner {owner.id} ({action}) "
                    f"to end {owner.subscription_end_date.isoformat()}")
        return owner

    # Notifications

    def send_notification(self, message, target='all', now=None):
        """Fan a message out to every owner matching `target`; returns the count"""
        now = now or datetime.utcnow()
        message = (message or '').strip()
        if not message:
            raise ValidationError('يرجى كتابة رسالة')
        if target not in NOTIFICATION_TARGETS:
            raise ValidationError(f'الفئة المستهدفة غير صالحة: {target}')

        query = GymOwner.query
        if target == 'active':
            query = query.filter(GymOwner.subscription_end_date >= now)
        elif target == 'expired':
            query = query.filter(GymOwner.subscription_end_date < now)

        count = 0
        for owner in query.all():
            self.session.add(Notification(
                gym_owner_id=owner.id,
                message=message,
                target=target,
                is_read=False,
                created_at=now
            ))
            count += 1
        self.session.commit()

        logger.info(f"Notification sent to {count} gym owners (target: {target})")
        return count
