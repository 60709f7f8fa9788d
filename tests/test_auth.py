import unittest
from datetime import datetime, timedelta

from docketwise.extensions import db, mail
from docketwise.models import User
from docketwise.models.verification_token import VerificationToken, EMAIL_VERIFICATION, PASSWORD_RESET
from docketwise.services.auth_service import AuthService, PASSWORD_RESET_SENT
from flask_security.utils import verify_password
from tests.base import ApiTestCase, PASSWORD


class AuthApiTestCase(ApiTestCase):

    def test_register_creates_unverified_worker_and_sends_email(self):
        with mail.record_messages() as outbox:
            resp = self.post('/api/auth/register', json={
                'email': 'New.Worker@Example.com', 'password': 'abcd', 'name': 'New Worker'})
        self.assertEqual(resp.status_code, 201)
        body = resp.get_json()
        self.assertEqual(body['user']['email'], 'new.worker@example.com')
        self.assertEqual(body['user']['role'], 'WORKER')
        self.assertIsNone(body['user']['email_verified'])
        self.assertEqual(len(outbox), 1)
        self.assertEqual(outbox[0].recipients, ['new.worker@example.com'])
        self.assertEqual(VerificationToken.query.filter_by(token_type=EMAIL_VERIFICATION).count(), 1)

    def test_register_duplicate_email_conflicts(self):
        self.make_user('worker', email='taken@example.com')
        resp = self.post('/api/auth/register', json={'email': 'taken@example.com', 'password': 'abcd'})
        self.assertEqual(resp.status_code, 409)

    def test_register_validates_payload(self):
        resp = self.post('/api/auth/register', json={'email': 'not-an-email', 'password': 'abc'})
        self.assertEqual(resp.status_code, 400)
        errors = resp.get_json()['errors']
        self.assertIn('email', errors)
        self.assertIn('password', errors)

    def test_login_returns_token(self):
        user = self.make_user('supervisor', email='sup@example.com')
        resp = self.post('/api/auth/login', json={'email': 'sup@example.com', 'password': PASSWORD})
        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertTrue(body['token'])
        self.assertEqual(body['user']['id'], user.id)
        self.assertEqual(body['user']['role'], 'SUPERVISOR')

    def test_login_wrong_password(self):
        self.make_user('worker', email='w@example.com')
        resp = self.post('/api/auth/login', json={'email': 'w@example.com', 'password': 'wrong'})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.get_json()['error'], 'Invalid email or password')

    def test_login_unknown_user(self):
        resp = self.post('/api/auth/login', json={'email': 'ghost@example.com', 'password': PASSWORD})
        self.assertEqual(resp.status_code, 401)

    def test_login_unverified_email_is_forbidden(self):
        self.make_user('worker', email='pending@example.com', verified=False)
        resp = self.post('/api/auth/login', json={'email': 'pending@example.com', 'password': PASSWORD})
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.get_json()['error'], 'Please verify your email before signing in')

    def test_me_requires_authentication(self):
        resp = self.app.test_client().get('/api/auth/me', headers={'Accept': 'application/json'})
        self.assertEqual(resp.status_code, 401)

    def test_me_includes_permissions(self):
        user = self.make_user('supervisor')
        resp = self.get('/api/auth/me', user)
        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertEqual(body['email'], user.email)
        self.assertIn('builders.view', body['permissions'])
        self.assertNotIn('builders.create', body['permissions'])

    def test_change_password(self):
        user = self.make_user('worker')
        with mail.record_messages() as outbox:
            resp = self.post('/api/auth/change-password', user,
                             json={'current_password': PASSWORD, 'new_password': 'brandnew'})
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(verify_password('brandnew', db.session.get(User, user.id).password))
        self.assertEqual(len(outbox), 1)

    def test_change_password_wrong_current(self):
        user = self.make_user('worker')
        resp = self.post('/api/auth/change-password', user,
                         json={'current_password': 'nope', 'new_password': 'brandnew'})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['error'], 'Current password is incorrect')

    def test_forgot_password_same_message_for_unknown_email(self):
        self.make_user('worker', email='known@example.com')
        with mail.record_messages() as outbox:
            known = self.post('/api/auth/forgot-password', json={'email': 'known@example.com'})
            unknown = self.post('/api/auth/forgot-password', json={'email': 'unknown@example.com'})
        self.assertEqual(known.status_code, 200)
        self.assertEqual(unknown.status_code, 200)
        self.assertEqual(known.get_json()['message'], PASSWORD_RESET_SENT)
        self.assertEqual(unknown.get_json()['message'], PASSWORD_RESET_SENT)
        self.assertEqual(len(outbox), 1)

    def test_reset_password_with_valid_token(self):
        user = self.make_user('worker')
        raw_token = AuthService._issue_token(user, PASSWORD_RESET, 1)
        resp = self.post('/api/auth/reset-password', json={'token': raw_token, 'password': 'fresh123'})
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(verify_password('fresh123', db.session.get(User, user.id).password))
        # tokens are single use
        again = self.post('/api/auth/reset-password', json={'token': raw_token, 'password': 'other123'})
        self.assertEqual(again.status_code, 400)

    def test_expired_reset_token_is_deleted(self):
        user = self.make_user('worker')
        raw_token = AuthService._issue_token(user, PASSWORD_RESET, 1)
        token = VerificationToken.find(raw_token, PASSWORD_RESET)
        token.expires_at = datetime.utcnow() - timedelta(minutes=1)
        db.session.commit()
        resp = self.post('/api/auth/reset-password', json={'token': raw_token, 'password': 'fresh123'})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(VerificationToken.query.count(), 0)

    def test_cleanup_tokens_command_removes_only_expired(self):
        stale = self.make_user('worker', verified=False)
        fresh = self.make_user('worker', verified=False)
        stale_token = VerificationToken.find(AuthService._issue_token(stale, EMAIL_VERIFICATION, 24),
                                             EMAIL_VERIFICATION)
        stale_token.expires_at = datetime.utcnow() - timedelta(hours=1)
        fresh_raw = AuthService._issue_token(fresh, EMAIL_VERIFICATION, 24)
        db.session.commit()

        result = self.app.test_cli_runner().invoke(args=['cleanup-tokens'])
        self.assertEqual(result.exit_code, 0)
        self.assertIn('Removed 1 expired token(s)', result.output)
        db.session.expire_all()
        self.assertEqual(VerificationToken.query.count(), 1)
        self.assertIsNotNone(VerificationToken.find(fresh_raw, EMAIL_VERIFICATION))

    def test_verify_email_marks_user_verified(self):
        user = self.make_user('worker', verified=False)
        raw_token = AuthService._issue_token(user, EMAIL_VERIFICATION, 24)
        with mail.record_messages() as outbox:
            resp = self.post('/api/auth/verify-email', json={'token': raw_token})
        self.assertEqual(resp.status_code, 200)
        self.assertIsNotNone(db.session.get(User, user.id).email_verified)
        self.assertEqual(len(outbox), 1)

    def test_verify_email_rejects_bad_token(self):
        resp = self.post('/api/auth/verify-email', json={'token': 'bogus'})
        self.assertEqual(resp.status_code, 400)

    def test_resend_verification_only_for_unverified(self):
        self.make_user('worker', email='done@example.com')
        self.make_user('worker', email='todo@example.com', verified=False)
        with mail.record_messages() as outbox:
            self.post('/api/auth/resend-verification', json={'email': 'done@example.com'})
            self.post('/api/auth/resend-verification', json={'email': 'todo@example.com'})
        self.assertEqual([m.recipients for m in outbox], [['todo@example.com']])


if __name__ == '__main__':
    unittest.main()
