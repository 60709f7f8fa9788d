import shutil
import tempfile
import unittest
import uuid
from datetime import datetime, timedelta

from flask_security.utils import hash_password

from docketwise.config import TestConfig
from docketwise.extensions import db
from docketwise.models import Role, User, Builder, BuilderLocation, Contractor, Docket, DocketEntry
from docketwise.seed_data import seed_roles
from docketwise.server import create_app
from docketwise.utils.timezone_utils import local_today
from docketwise.utils.week_utils import start_of_iso_week

PASSWORD = 'secret123'


class ApiTestCase(unittest.TestCase):
    """
    Builds a fresh app per test with an in-memory database and a temporary
    invoice storage directory. Helpers create users per role and sign requests
    with Flask-Security auth tokens.
    """

    def setUp(self):
        self.storage_dir = tempfile.mkdtemp()
        config = type('IsolatedTestConfig', (TestConfig,), {'INVOICE_STORAGE_ROOT': self.storage_dir})
        self.app = create_app(config)
        self.ctx = self.app.app_context()
        self.ctx.push()
        db.create_all()
        seed_roles()
        self.client = self.app.test_client()

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.ctx.pop()
        shutil.rmtree(self.storage_dir, ignore_errors=True)

    # ------------------------------------------------------------------
    # factories
    # ------------------------------------------------------------------
    def make_user(self, role='worker', email=None, verified=True, name=None):
        user = User(
            email=email or f"{role}-{uuid.uuid4().hex[:8]}@example.com",
            password=hash_password(PASSWORD),
            active=True,
            fs_uniquifier=str(uuid.uuid4()),
            name=name,
            email_verified=datetime.utcnow() if verified else None,
        )
        user.roles = [Role.query.filter_by(name=role).first()]
        db.session.add(user)
        db.session.commit()
        return user

    def make_builder(self, name='Acme Constructions', company_code='ACME', **extra):
        builder = Builder(name=name, company_code=company_code, **extra)
        db.session.add(builder)
        db.session.commit()
        return builder

    def make_location(self, builder, label='Tower A', address=None):
        location = BuilderLocation(builder_id=builder.id, label=label, address=address)
        db.session.add(location)
        db.session.commit()
        return location

    def make_contractor(self, nickname='Johnny', hourly_rate=50, user=None, **extra):
        contractor = Contractor(nickname=nickname, hourly_rate=hourly_rate,
                                user_id=user.id if user else None, **extra)
        db.session.add(contractor)
        db.session.commit()
        return contractor

    def make_docket(self, supervisor, builder, location, day, entries, **extra):
        """``entries`` is a list of (contractor, tonnage_hours, day_labour_hours)."""
        docket = Docket(date=day, builder_id=builder.id, location_id=location.id,
                        supervisor_id=supervisor.id, **extra)
        docket.entries = [
            DocketEntry(contractor_id=c.id, tonnage_hours=t, day_labour_hours=d)
            for c, t, d in entries
        ]
        db.session.add(docket)
        db.session.commit()
        return docket

    # ------------------------------------------------------------------
    # dates
    # ------------------------------------------------------------------
    @staticmethod
    def last_monday():
        """Monday of the previous ISO week, always in the past."""
        return start_of_iso_week(local_today()) - timedelta(days=7)

    # ------------------------------------------------------------------
    # requests
    # ------------------------------------------------------------------
    def headers(self, user=None):
        headers = {'Accept': 'application/json'}
        if user is not None:
            headers['Authentication-Token'] = user.get_auth_token()
        return headers

    def request(self, method, url, user=None, **kwargs):
        headers = self.headers(user)
        # each request gets its own app context, so its own g and database session
        with self.app.app_context():
            response = self.client.open(url, method=method, headers=headers, **kwargs)
        db.session.expire_all()
        return response

    def get(self, url, user=None, **kwargs):
        return self.request('GET', url, user, **kwargs)

    def post(self, url, user=None, **kwargs):
        return self.request('POST', url, user, **kwargs)

    def put(self, url, user=None, **kwargs):
        return self.request('PUT', url, user, **kwargs)

    def patch(self, url, user=None, **kwargs):
        return self.request('PATCH', url, user, **kwargs)

    def delete(self, url, user=None, **kwargs):
        return self.request('DELETE', url, user, **kwargs)
