import logging
import uuid
from datetime import datetime
from typing import Optional, Tuple

from flask import current_app
from flask_security.utils import hash_password, verify_password, login_user, logout_user

from docketwise.extensions import db
from docketwise.models.role import Role, WORKER
from docketwise.models.user import User
from docketwise.models.verification_token import VerificationToken, EMAIL_VERIFICATION, PASSWORD_RESET
from docketwise.services.email_service import EmailService
from docketwise.services.service_error import (
    ServiceError, UnauthorizedError, ForbiddenError, ConflictError, NotFoundError,
)

INVALID_CREDENTIALS = "Invalid email or password"
USER_ALREADY_EXISTS = "User already exists with this email"
EMAIL_NOT_VERIFIED = "Please verify your email before signing in"
INVALID_TOKEN = "Invalid or expired token"
CURRENT_PASSWORD_INCORRECT = "Current password is incorrect"

REGISTRATION_SUCCESS = "Account created successfully. Please check your email to verify your account."
EMAIL_VERIFIED = "Email verified successfully. You can now sign in."
PASSWORD_RESET_SENT = "If an account with that email exists, you will receive password reset instructions."
PASSWORD_RESET_DONE = "Password reset successfully. You can now sign in with your new password."
PASSWORD_CHANGED = "Password changed successfully."
VERIFICATION_SENT = "If the account exists and is unverified, a verification email has been sent."


class AuthService:
    """Account lifecycle: registration, sign-in and the token-based email flows."""

    @staticmethod
    def _find_by_email(email: str) -> Optional[User]:
        return User.query.filter_by(email=(email or '').strip().lower()).first()

    @staticmethod
    def cleanup_expired_tokens() -> int:
        """
        Delete expired verification and reset tokens.

        Returns:
            int: number of tokens removed
        """
        try:
            count = VerificationToken.cleanup_expired_tokens()
            db.session.commit()
            logging.info(f"Cleaned up {count} expired verification tokens")
            return count
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error cleaning up expired tokens: {e}", exc_info=True)
            raise ServiceError("Could not clean up expired tokens. Please try again later.", 500)

    @staticmethod
    def _issue_token(user: User, token_type: str, expiry_hours: int) -> str:
        VerificationToken.query.filter_by(user_id=user.id, token_type=token_type).delete()
        token, raw_token = VerificationToken.create_token(user.id, token_type, expiry_hours)
        db.session.add(token)
        db.session.commit()
        return raw_token

    @staticmethod
    def register(email: str, password: str, name: Optional[str] = None) -> User:
        """
        Create a WORKER account and send the verification email.

        When ``REQUIRE_EMAIL_VERIFICATION`` is off the account is marked verified straight away.
        A failed verification email is logged; the account is still created.
        """
        email = email.strip().lower()
        if AuthService._find_by_email(email):
            raise ConflictError(USER_ALREADY_EXISTS)

        require_verification = current_app.config.get('REQUIRE_EMAIL_VERIFICATION', True)
        try:
            user = User(
                email=email,
                password=hash_password(password),
                name=(name or '').strip() or None,
                active=True,
                fs_uniquifier=str(uuid.uuid4()),
                email_verified=None if require_verification else datetime.utcnow(),
            )
            worker_role = Role.query.filter_by(name=WORKER).first()
            if worker_role:
                user.roles.append(worker_role)
            db.session.add(user)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error registering user: {e}", exc_info=True)
            raise ServiceError("Could not create account. Please try again later.", 500)

        if require_verification:
            try:
                raw_token = AuthService._issue_token(
                    user, EMAIL_VERIFICATION, current_app.config.get('VERIFICATION_TOKEN_EXPIRY_HOURS', 24))
                EmailService.send_verification_email(user.email, raw_token)
            except ServiceError as se:
                logging.warning(f"Verification email not sent to {user.email}: {se.message}")

        logging.info(f"User registered: {user.email}")
        return user

    @staticmethod
    def authenticate(email: str, password: str) -> Tuple[User, str]:
        """Check credentials, start the session and return ``(user, auth_token)``."""
        user = AuthService._find_by_email(email)
        if not user or not user.active or not verify_password(password or '', user.password):
            logging.warning(f"Failed sign-in attempt for {email}")
            raise UnauthorizedError(INVALID_CREDENTIALS)
        if current_app.config.get('REQUIRE_EMAIL_VERIFICATION', True) and not user.email_verified:
            raise ForbiddenError(EMAIL_NOT_VERIFIED)
        try:
            login_user(user)
            db.session.commit()
            return user, user.get_auth_token()
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error signing in {email}: {e}", exc_info=True)
            raise ServiceError("Could not sign in. Please try again later.", 500)

    @staticmethod
    def logout():
        logout_user()
        return True

    @staticmethod
    def change_password(user: User, current_password: str, new_password: str) -> bool:
        if not verify_password(current_password or '', user.password):
            raise ServiceError(CURRENT_PASSWORD_INCORRECT)
        try:
            user.password = hash_password(new_password)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error changing password for user {user.id}: {e}", exc_info=True)
            raise ServiceError("Could not change password. Please try again later.", 500)
        EmailService.send_password_changed_email(user.email, user.name)
        logging.info(f"Password changed for user {user.id}")
        return True

    @staticmethod
    def forgot_password(email: str) -> str:
        """Always answers with the same message so callers cannot discover which accounts exist."""
        user = AuthService._find_by_email(email)
        if not user or not user.active:
            logging.warning(f"Password reset requested for unknown or inactive email: {email}")
            return PASSWORD_RESET_SENT
        try:
            raw_token = AuthService._issue_token(
                user, PASSWORD_RESET, current_app.config.get('PASSWORD_RESET_TOKEN_EXPIRY_HOURS', 1))
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error creating password reset token: {e}", exc_info=True)
            raise ServiceError("Unable to process password reset request. Please try again later.", 500)
        try:
            EmailService.send_password_reset_email(user.email, raw_token)
        except ServiceError as se:
            logging.error(f"Password reset email not sent to {user.email}: {se.message}")
        return PASSWORD_RESET_SENT

    @staticmethod
    def _consume_token(raw_token: str, token_type: str) -> VerificationToken:
        token = VerificationToken.find(raw_token, token_type)
        if not token:
            raise ServiceError(INVALID_TOKEN)
        if token.is_expired():
            db.session.delete(token)
            db.session.commit()
            raise ServiceError(INVALID_TOKEN)
        return token

    @staticmethod
    def reset_password(raw_token: str, new_password: str) -> str:
        token = AuthService._consume_token(raw_token, PASSWORD_RESET)
        user = token.user
        if not user:
            raise NotFoundError("User not found")
        try:
            user.password = hash_password(new_password)
            db.session.delete(token)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error resetting password: {e}", exc_info=True)
            raise ServiceError("Could not reset password. Please try again later.", 500)
        EmailService.send_password_changed_email(user.email, user.name)
        logging.info(f"Password reset completed for user {user.id}")
        return PASSWORD_RESET_DONE

    @staticmethod
    def verify_email(raw_token: str) -> str:
        token = AuthService._consume_token(raw_token, EMAIL_VERIFICATION)
        user = token.user
        try:
            user.email_verified = datetime.utcnow()
            db.session.delete(token)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error verifying email: {e}", exc_info=True)
            raise ServiceError("Could not verify email. Please try again later.", 500)
        try:
            EmailService.send_welcome_email(user.email, user.name)
        except ServiceError as se:
            logging.warning(f"Welcome email not sent to {user.email}: {se.message}")
        return EMAIL_VERIFIED

    @staticmethod
    def resend_verification(email: str) -> str:
        user = AuthService._find_by_email(email)
        if not user or user.email_verified:
            return VERIFICATION_SENT
        raw_token = AuthService._issue_token(
            user, EMAIL_VERIFICATION, current_app.config.get('VERIFICATION_TOKEN_EXPIRY_HOURS', 24))
        EmailService.send_verification_email(user.email, raw_token)
        return VERIFICATION_SENT
