from .role import Role, roles_users
from .user import User
from .verification_token import VerificationToken
from .builder import Builder, BuilderLocation
from .contractor import Contractor
from .docket import Docket, DocketEntry, DocketMedia
from .worker_invoice import WorkerInvoice

__all__ = [
    'Role', 'roles_users', 'User', 'VerificationToken', 'Builder', 'BuilderLocation',
    'Contractor', 'Docket', 'DocketEntry', 'DocketMedia', 'WorkerInvoice',
]
