from datetime import datetime
from gympass import db

NOTIFICATION_TARGETS = ('all', 'active', 'expired')


class Notification(db.Model):
    """Admin broadcast delivered to a gym owner's inbox"""
    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True)
    gym_owner_id = db.Column(db.Integer, db.ForeignKey('gym_owners.id'), nullable=False, index=True)

    message = db.Column(db.Text, nullable=False)
    target = db.Column(db.String(10), nullable=False, default='all')
    is_read = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<Notification {self.id} for {self.gym_owner_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'message': self.message,
            'target': self.target,
            'is_read': self.is_read,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
