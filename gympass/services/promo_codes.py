"""
Promo code redemption.

One conditional UPDATE does the check and the increment together, so the
database serialises concurrent redemptions of the same row: of two requests
racing for the last use, exactly one matches the WHERE clause.
"""
import logging

from sqlalchemy import case, select, update

from gympass.errors import PromoCodeExhausted, PromoCodeNotFound
from gympass.models.promo_code import PromoCode

logger = logging.getLogger(__name__)

# Signup code for the 14-day trial; never stored, never consumed
GIFT_CODE = 'GIFT'
GIFT_TYPE = 'gift'


def redeem_promo_code(session, code):
    """
    Consume one use of `code` and return the subscription type it grants.

    Flushes but does not commit: the caller commits together with whatever
    the code pays for, or rolls back and leaves the code untouched.

    Raises PromoCodeNotFound or PromoCodeExhausted.
    """
    normalized = PromoCode.normalize(code)
    if not normalized:
        raise PromoCodeNotFound()

    if normalized == GIFT_CODE:
        return GIFT_TYPE

    stmt = (
        update(PromoCode)
        .where(
            PromoCode.code == normalized,
            PromoCode.status == 'active',
            PromoCode.uses < PromoCode.max_uses
        )
        .values(
            uses=PromoCode.uses + 1,
            status=case((PromoCode.uses + 1 >= PromoCode.max_uses, 'used'), else_='active')
        )
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)

    row = session.execute(
        select(PromoCode.type, PromoCode.uses, PromoCode.max_uses)
        .where(PromoCode.code == normalized)
    ).first()

    if result.rowcount != 1:
        if row is None:
            logger.info(f"Promo code not found: {normalized}")
            raise PromoCodeNotFound()
        logger.info(f"Promo code exhausted: {normalized} ({row.uses}/{row.max_uses})")
        raise PromoCodeExhausted()

    # Objects already loaded in this session must not keep the old counter
    for obj in list(session.identity_map.values()):
        if isinstance(obj, PromoCode) and obj.code == normalized:
            session.expire(obj)

    logger.info(f"Promo code redeemed: {normalized} ({row.uses}/{row.max_uses})")
    return row.type
