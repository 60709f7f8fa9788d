import hashlib
import secrets
from datetime import datetime, timedelta

from docketwise.extensions import db

EMAIL_VERIFICATION = 'email_verification'
PASSWORD_RESET = 'password_reset'


class VerificationToken(db.Model):
    __tablename__ = 'verification_token'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    token_hash = db.Column(db.String(128), nullable=False, unique=True, index=True)
    token_type = db.Column(db.String(32), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)

    user = db.relationship('User', backref=db.backref('verification_tokens', cascade='all, delete-orphan'))

    @staticmethod
    def hash_token(raw_token):
        return hashlib.sha256(raw_token.encode()).hexdigest()

    @classmethod
    def create_token(cls, user_id, token_type, expiry_hours):
        """
        Create a new token for the user.

        Returns:
            tuple: (VerificationToken instance, raw_token_string)
        """
        raw_token = secrets.token_urlsafe(32)
        token = cls(
            user_id=user_id,
            token_type=token_type,
            token_hash=cls.hash_token(raw_token),
            expires_at=datetime.utcnow() + timedelta(hours=expiry_hours),
        )
        return token, raw_token

    @classmethod
    def find(cls, raw_token, token_type):
        if not raw_token:
            return None
        return cls.query.filter_by(token_hash=cls.hash_token(raw_token), token_type=token_type).first()

    def is_expired(self):
        return datetime.utcnow() > self.expires_at

    @classmethod
    def cleanup_expired_tokens(cls):
        """Remove expired tokens from database"""
        return cls.query.filter(cls.expires_at < datetime.utcnow()).delete(synchronize_session=False)

    def __repr__(self):
        return f'<VerificationToken user_id={self.user_id} type={self.token_type} expires_at={self.expires_at}>'
