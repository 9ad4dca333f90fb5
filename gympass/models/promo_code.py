from datetime import datetime
from gympass import db

PROMO_CODE_TYPES = ('monthly', '6-months', 'yearly')


class PromoCode(db.Model):
    """Promo codes that open a gym owner's subscription at signup"""
    __tablename__ = 'promo_codes'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(40), unique=True, nullable=False)

    # Subscription granted: monthly, 6-months, yearly
    type = db.Column(db.String(20), nullable=False)

    # Status: active, used
    status = db.Column(db.String(10), nullable=False, default='active')

    # Usage limits - only ever incremented
    uses = db.Column(db.Integer, nullable=False, default=0)
    max_uses = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<PromoCode {self.code}>'

    @property
    def remaining_uses(self):
        return max(0, self.max_uses - self.uses)

    @property
    def type_arabic(self):
        type_map = {
            'monthly': 'اشتراك شهري',
            '6-months': 'اشتراك 6 شهور',
            'yearly': 'اشتراك سنوي'
        }
        return type_map.get(self.type, self.type)

    @staticmethod
    def normalize(code):
        return (code or '').strip().upper()

    @classmethod
    def get_by_code(cls, code):
        """Get promo code by its text"""
        return cls.query.filter_by(code=cls.normalize(code)).first()

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'type': self.type,
            'type_arabic': self.type_arabic,
            'status': self.status,
            'uses': self.uses,
            'max_uses': self.max_uses,
            'remaining_uses': self.remaining_uses,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
