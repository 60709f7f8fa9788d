import logging
from sqlalchemy import or_
from sqlalchemy.orm import joinedload, selectinload
from docketwise.extensions import db
from docketwise.models.builder import Builder, BuilderLocation
from docketwise.models.contractor import Contractor
from docketwise.models.docket import Docket, DocketEntry, DocketMedia
from docketwise.models.role import ADMIN, SUPERVISOR
from docketwise.services.service_error import ServiceError, NotFoundError, ForbiddenError, BusinessRuleError

DOCKET_NOT_FOUND = "Docket not found"
FORBIDDEN = "You don't have permission to access this docket"
UNAUTHORIZED = "You are not authorized to perform this action"
BUILDER_NOT_FOUND = "Builder not found"
LOCATION_NOT_FOUND = "Location not found"
CONTRACTOR_NOT_FOUND = "Contractor not found"

SORT_FIELDS = {
    'date': Docket.date,
    'created_at': Docket.created_at,
    'updated_at': Docket.updated_at,
}


class DocketService:
    @staticmethod
    def generate_docket_reference(docket):
        """``ACME-15092025-0042``: company code, ddmmyyyy, last four of the id."""
        code = docket.builder.company_code if docket.builder else 'DOCKET'
        return f"{code}-{docket.date.strftime('%d%m%Y')}-{str(docket.id).zfill(4)[-4:].upper()}"

    @staticmethod
    def calculate_docket_totals(entries):
        tonnage = sum(float(e.tonnage_hours or 0) for e in entries)
        day_labour = sum(float(e.day_labour_hours or 0) for e in entries)
        return {
            'tonnage_hours': tonnage,
            'day_labour_hours': day_labour,
            'total_hours': tonnage + day_labour,
            'entry_count': len(entries),
        }

    @staticmethod
    def _scope_query(user, query):
        if user.has_role(ADMIN):
            return query
        if user.has_role(SUPERVISOR):
            return query.filter(Docket.supervisor_id == user.id)
        raise ForbiddenError(UNAUTHORIZED)

    @staticmethod
    def _check_access(user, docket):
        if user.has_role(ADMIN):
            return
        if user.has_role(SUPERVISOR) and docket.supervisor_id == user.id:
            return
        raise ForbiddenError(FORBIDDEN)

    @staticmethod
    def list_dockets(user, page=1, limit=10, builder_id=None, location_id=None, supervisor_id=None,
                     start_date=None, end_date=None, search=None, sort_by='date', sort_order='desc'):
        query = DocketService._scope_query(user, Docket.query)
        try:
            if not user.has_role(ADMIN):
                supervisor_id = user.id
            if builder_id:
                query = query.filter(Docket.builder_id == builder_id)
            if location_id:
                query = query.filter(Docket.location_id == location_id)
            if supervisor_id:
                query = query.filter(Docket.supervisor_id == supervisor_id)
            if start_date:
                query = query.filter(Docket.date >= start_date)
            if end_date:
                query = query.filter(Docket.date <= end_date)
            if search:
                term = f"%{search.strip()}%"
                query = query.join(Builder, Docket.builder_id == Builder.id) \
                    .join(BuilderLocation, Docket.location_id == BuilderLocation.id) \
                    .filter(or_(
                        Docket.schedule_no.ilike(term),
                        Docket.description.ilike(term),
                        Docket.site_manager_name.ilike(term),
                        Builder.name.ilike(term),
                        Builder.company_code.ilike(term),
                        BuilderLocation.label.ilike(term),
                    ))
            total = query.count()
            column = SORT_FIELDS.get(sort_by, Docket.date)
            query = query.order_by(column.asc() if sort_order == 'asc' else column.desc(), Docket.id.desc())
            dockets = query.options(
                joinedload(Docket.builder),
                joinedload(Docket.location),
                joinedload(Docket.supervisor),
                selectinload(Docket.entries).joinedload(DocketEntry.contractor),
                selectinload(Docket.media),
            ).offset((page - 1) * limit).limit(limit).all()
            return dockets, total
        except Exception as e:
            logging.error(f"Error fetching dockets: {e}", exc_info=True)
            raise ServiceError("Could not fetch dockets. Please try again later.", 500)

    @staticmethod
    def get_docket(user, docket_id):
        if not (user.has_role(ADMIN) or user.has_role(SUPERVISOR)):
            raise ForbiddenError(UNAUTHORIZED)
        docket = db.session.get(Docket, docket_id)
        if not docket:
            raise NotFoundError(DOCKET_NOT_FOUND)
        DocketService._check_access(user, docket)
        return docket

    @staticmethod
    def _validate_references(builder_id, location_id, entries):
        builder = db.session.get(Builder, builder_id)
        if not builder:
            raise BusinessRuleError(BUILDER_NOT_FOUND)
        location = db.session.get(BuilderLocation, location_id)
        if not location or location.builder_id != builder.id:
            raise BusinessRuleError(LOCATION_NOT_FOUND)
        if entries is not None:
            contractor_ids = {e['contractor_id'] for e in entries}
            found = Contractor.query.filter(Contractor.id.in_(contractor_ids), Contractor.active.is_(True)).count()
            if found != len(contractor_ids):
                raise BusinessRuleError(CONTRACTOR_NOT_FOUND)

    @staticmethod
    def _build_entries(entries):
        return [
            DocketEntry(
                contractor_id=e['contractor_id'],
                tonnage_hours=e.get('tonnage_hours', 0),
                day_labour_hours=e.get('day_labour_hours', 0),
            )
            for e in entries
        ]

    @staticmethod
    def _build_media(media):
        return [DocketMedia(type=m.get('type', 'PHOTO'), url=m['url'], caption=m.get('caption')) for m in media]

    @staticmethod
    def create_docket(user, data):
        if not (user.has_role(ADMIN) or user.has_role(SUPERVISOR)):
            raise ForbiddenError(UNAUTHORIZED)
        DocketService._validate_references(data['builder_id'], data['location_id'], data['entries'])
        try:
            docket = Docket(
                date=data['date'],
                builder_id=data['builder_id'],
                location_id=data['location_id'],
                supervisor_id=user.id,
                schedule_no=data.get('schedule_no'),
                description=data.get('description'),
                site_manager_name=data.get('site_manager_name'),
                site_manager_signature_url=data.get('site_manager_signature_url'),
            )
            docket.entries = DocketService._build_entries(data['entries'])
            docket.media = DocketService._build_media(data.get('media') or [])
            db.session.add(docket)
            db.session.commit()
            logging.info(f"Docket {docket.id} created by {user.email} with {len(docket.entries)} entries")
            return docket
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error creating docket: {e}", exc_info=True)
            raise ServiceError("Could not create docket. Please try again later.", 500)

    @staticmethod
    def update_docket(user, docket_id, data):
        """Partial update. Supplied ``entries``/``media`` replace the existing rows."""
        docket = DocketService.get_docket(user, docket_id)
        if 'builder_id' in data or 'location_id' in data or 'entries' in data:
            DocketService._validate_references(
                data.get('builder_id', docket.builder_id),
                data.get('location_id', docket.location_id),
                data.get('entries'),
            )
        try:
            for key in ('date', 'builder_id', 'location_id', 'schedule_no', 'description',
                        'site_manager_name', 'site_manager_signature_url'):
                if key in data:
                    setattr(docket, key, data[key])
            if 'entries' in data:
                docket.entries = DocketService._build_entries(data['entries'])
            if 'media' in data:
                docket.media = DocketService._build_media(data['media'] or [])
            db.session.commit()
            return docket
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error updating docket: {e}", exc_info=True)
            raise ServiceError("Could not update docket. Please try again later.", 500)

    @staticmethod
    def delete_docket(user, docket_id):
        docket = DocketService.get_docket(user, docket_id)
        try:
            db.session.delete(docket)
            db.session.commit()
            logging.info(f"Docket {docket_id} deleted by {user.email}")
            return True
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error deleting docket: {e}", exc_info=True)
            raise ServiceError("Could not delete docket. Please try again later.", 500)
