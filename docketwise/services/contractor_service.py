import logging
from sqlalchemy import func, or_
from docketwise.extensions import db
from docketwise.models.contractor import Contractor, BANK_FIELDS
from docketwise.models.user import User
from docketwise.models.role import WORKER
from docketwise.services.service_error import ServiceError, NotFoundError, ConflictError, BusinessRuleError
from docketwise.utils.encryption import encrypt_bank_fields, decrypt_bank_fields, is_encrypted, encrypt

CONTRACTOR_NOT_FOUND = "Contractor not found"
NICKNAME_EXISTS = "A contractor with this nickname already exists"
EMAIL_EXISTS = "A contractor with this email already exists"

SORT_FIELDS = {
    'nickname': Contractor.nickname,
    'full_name': Contractor.full_name,
    'hourly_rate': Contractor.hourly_rate,
    'created_at': Contractor.created_at,
    'updated_at': Contractor.updated_at,
}


class ContractorService:
    @staticmethod
    def list_contractors(search=None, position=None, active=None, page=1, limit=20,
                         sort_by='created_at', sort_order='desc'):
        try:
            query = Contractor.query
            if search:
                term = f"%{search.strip()}%"
                query = query.filter(or_(
                    Contractor.nickname.ilike(term),
                    Contractor.first_name.ilike(term),
                    Contractor.last_name.ilike(term),
                    Contractor.full_name.ilike(term),
                    Contractor.email.ilike(term),
                    Contractor.position.ilike(term),
                    Contractor.abn.ilike(term),
                ))
            if position:
                query = query.filter(Contractor.position == position)
            if active is not None:
                query = query.filter(Contractor.active == active)
            total = query.count()
            column = SORT_FIELDS.get(sort_by, Contractor.created_at)
            query = query.order_by(column.asc() if sort_order == 'asc' else column.desc())
            return query.offset((page - 1) * limit).limit(limit).all(), total
        except Exception as e:
            logging.error(f"Error fetching contractors: {e}", exc_info=True)
            raise ServiceError("Could not fetch contractors. Please try again later.", 500)

    @staticmethod
    def get_contractor(contractor_id):
        contractor = db.session.get(Contractor, contractor_id)
        if not contractor:
            raise NotFoundError(CONTRACTOR_NOT_FOUND)
        return contractor

    @staticmethod
    def get_bank_info(contractor):
        """Decrypted bank details. Callers decide whether the user may see them."""
        return decrypt_bank_fields(contractor)

    @staticmethod
    def get_active_for_lookup():
        return Contractor.query_active().order_by(Contractor.nickname.asc()).all()

    @staticmethod
    def _check_unique(nickname=None, email=None, exclude_id=None):
        if nickname:
            query = Contractor.query.filter(func.lower(Contractor.nickname) == nickname.lower())
            if exclude_id is not None:
                query = query.filter(Contractor.id != exclude_id)
            if db.session.query(query.exists()).scalar():
                raise ConflictError(NICKNAME_EXISTS)
        if email:
            query = Contractor.query.filter(func.lower(Contractor.email) == email.lower())
            if exclude_id is not None:
                query = query.filter(Contractor.id != exclude_id)
            if db.session.query(query.exists()).scalar():
                raise ConflictError(EMAIL_EXISTS)

    @staticmethod
    def create_contractor(data):
        data = dict(data)
        data['email'] = data.get('email') or None
        ContractorService._check_unique(data.get('nickname'), data.get('email'))
        try:
            contractor = Contractor(**encrypt_bank_fields(data))
            db.session.add(contractor)
            db.session.commit()
            logging.info(f"Contractor created: {contractor.nickname}")
            return contractor
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error creating contractor: {e}", exc_info=True)
            raise ServiceError("Could not create contractor. Please try again later.", 500)

    @staticmethod
    def update_contractor(contractor_id, data):
        contractor = ContractorService.get_contractor(contractor_id)
        data = dict(data)
        if 'email' in data:
            data['email'] = data['email'] or None
        ContractorService._check_unique(data.get('nickname'), data.get('email'), exclude_id=contractor.id)
        try:
            for key, value in encrypt_bank_fields(data).items():
                setattr(contractor, key, value)
            db.session.commit()
            return contractor
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error updating contractor: {e}", exc_info=True)
            raise ServiceError("Could not update contractor. Please try again later.", 500)

    @staticmethod
    def delete_contractor(contractor_id):
        contractor = ContractorService.get_contractor(contractor_id)
        if contractor.entries.first() is not None:
            raise ConflictError("Cannot delete a contractor with docket entries. Deactivate them instead.")
        try:
            db.session.delete(contractor)
            db.session.commit()
            return True
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error deleting contractor: {e}", exc_info=True)
            raise ServiceError("Could not delete contractor. Please try again later.", 500)

    @staticmethod
    def link_user(contractor_id, user_id):
        """Attach a worker login to a contractor profile."""
        contractor = ContractorService.get_contractor(contractor_id)
        user = db.session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        if not user.has_role(WORKER):
            raise BusinessRuleError("Only worker accounts can be linked to a contractor")
        existing = Contractor.query.filter(Contractor.user_id == user.id, Contractor.id != contractor.id).first()
        if existing:
            raise ConflictError(f"User is already linked to contractor {existing.nickname}")
        try:
            contractor.user_id = user.id
            db.session.commit()
            logging.info(f"Contractor {contractor.nickname} linked to user {user.email}")
            return contractor
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error linking contractor to user: {e}", exc_info=True)
            raise ServiceError("Could not link contractor. Please try again later.", 500)

    @staticmethod
    def encrypt_existing_bank_data():
        """Encrypt any bank values still stored as plaintext."""
        encrypted = 0
        skipped = 0
        try:
            for contractor in Contractor.query.all():
                changed = False
                for field in BANK_FIELDS:
                    value = getattr(contractor, field)
                    if not value:
                        continue
                    if is_encrypted(value):
                        skipped += 1
                        continue
                    setattr(contractor, field, encrypt(value))
                    encrypted += 1
                    changed = True
                if changed:
                    logging.info(f"Encrypted bank data for contractor {contractor.id}")
            db.session.commit()
            return {'encrypted': encrypted, 'skipped': skipped}
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error encrypting bank data: {e}", exc_info=True)
            raise ServiceError("Could not encrypt bank data. Please try again later.", 500)
