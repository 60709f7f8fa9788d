import logging
from sqlalchemy import func, or_
from docketwise.extensions import db
from docketwise.models.builder import Builder, BuilderLocation
from docketwise.services.service_error import ServiceError, NotFoundError, ConflictError

BUILDER_NOT_FOUND = "Builder not found"
COMPANY_CODE_EXISTS = "Company code already exists"
LOCATION_NOT_FOUND = "Builder location not found"
LOCATION_LABEL_EXISTS = "Location label already exists for this builder"

SORT_FIELDS = {
    'name': Builder.name,
    'company_code': Builder.company_code,
    'created_at': Builder.created_at,
    'updated_at': Builder.updated_at,
}


class BuilderService:
    @staticmethod
    def list_builders(search=None, page=1, limit=20, sort_by='created_at', sort_order='desc'):
        """Paginated builders with the number of locations each one has."""
        try:
            location_count = (
                db.session.query(func.count(BuilderLocation.id))
                .filter(BuilderLocation.builder_id == Builder.id)
                .correlate(Builder)
                .scalar_subquery()
            )
            query = db.session.query(Builder, location_count.label('location_count'))
            if search:
                term = f"%{search.strip()}%"
                query = query.filter(or_(
                    Builder.name.ilike(term),
                    Builder.company_code.ilike(term),
                    Builder.contact_person.ilike(term),
                    Builder.contact_email.ilike(term),
                ))
            total = query.count()
            column = SORT_FIELDS.get(sort_by, Builder.created_at)
            query = query.order_by(column.asc() if sort_order == 'asc' else column.desc())
            rows = query.offset((page - 1) * limit).limit(limit).all()
            return rows, total
        except Exception as e:
            logging.error(f"Error fetching builders: {e}", exc_info=True)
            raise ServiceError("Could not fetch builders. Please try again later.", 500)

    @staticmethod
    def get_builder(builder_id):
        builder = db.session.get(Builder, builder_id)
        if not builder:
            raise NotFoundError(BUILDER_NOT_FOUND)
        return builder

    @staticmethod
    def get_all_for_lookup():
        return Builder.query.order_by(Builder.name.asc()).all()

    @staticmethod
    def _company_code_taken(company_code, exclude_id=None):
        query = Builder.query.filter(func.lower(Builder.company_code) == company_code.lower())
        if exclude_id is not None:
            query = query.filter(Builder.id != exclude_id)
        return db.session.query(query.exists()).scalar()

    @staticmethod
    def create_builder(data):
        if BuilderService._company_code_taken(data['company_code']):
            raise ConflictError(COMPANY_CODE_EXISTS)
        try:
            builder = Builder(**data)
            db.session.add(builder)
            db.session.commit()
            logging.info(f"Builder created: {builder.company_code}")
            return builder
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error creating builder: {e}", exc_info=True)
            raise ServiceError("Could not create builder. Please try again later.", 500)

    @staticmethod
    def update_builder(builder_id, data):
        builder = BuilderService.get_builder(builder_id)
        company_code = data.get('company_code')
        if company_code and BuilderService._company_code_taken(company_code, exclude_id=builder.id):
            raise ConflictError(COMPANY_CODE_EXISTS)
        try:
            for key, value in data.items():
                setattr(builder, key, value)
            db.session.commit()
            return builder
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error updating builder: {e}", exc_info=True)
            raise ServiceError("Could not update builder. Please try again later.", 500)

    @staticmethod
    def delete_builder(builder_id):
        builder = BuilderService.get_builder(builder_id)
        if builder.dockets.first() is not None:
            raise ConflictError("Cannot delete a builder that has dockets")
        try:
            db.session.delete(builder)
            db.session.commit()
            logging.info(f"Builder {builder_id} deleted with its locations")
            return True
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error deleting builder: {e}", exc_info=True)
            raise ServiceError("Could not delete builder. Please try again later.", 500)

    # ------------------------------------------------------------------
    # locations
    # ------------------------------------------------------------------
    @staticmethod
    def list_locations(builder_id, search=None, page=1, limit=20):
        BuilderService.get_builder(builder_id)
        query = BuilderLocation.query.filter_by(builder_id=builder_id)
        if search:
            term = f"%{search.strip()}%"
            query = query.filter(or_(BuilderLocation.label.ilike(term), BuilderLocation.address.ilike(term)))
        total = query.count()
        locations = query.order_by(BuilderLocation.label.asc()).offset((page - 1) * limit).limit(limit).all()
        return locations, total

    @staticmethod
    def get_all_locations_for_lookup():
        return BuilderLocation.query.join(Builder).order_by(BuilderLocation.label.asc()).all()

    @staticmethod
    def get_location(builder_id, location_id):
        location = BuilderLocation.query.filter_by(id=location_id, builder_id=builder_id).first()
        if not location:
            raise NotFoundError(LOCATION_NOT_FOUND)
        return location

    @staticmethod
    def _label_taken(builder_id, label, exclude_id=None):
        query = BuilderLocation.query.filter(
            BuilderLocation.builder_id == builder_id,
            func.lower(BuilderLocation.label) == label.lower(),
        )
        if exclude_id is not None:
            query = query.filter(BuilderLocation.id != exclude_id)
        return db.session.query(query.exists()).scalar()

    @staticmethod
    def create_location(builder_id, data):
        BuilderService.get_builder(builder_id)
        if BuilderService._label_taken(builder_id, data['label']):
            raise ConflictError(LOCATION_LABEL_EXISTS)
        try:
            location = BuilderLocation(builder_id=builder_id, **data)
            db.session.add(location)
            db.session.commit()
            return location
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error creating location: {e}", exc_info=True)
            raise ServiceError("Could not create location. Please try again later.", 500)

    @staticmethod
    def update_location(builder_id, location_id, data):
        BuilderService.get_builder(builder_id)
        location = BuilderService.get_location(builder_id, location_id)
        label = data.get('label')
        if label and BuilderService._label_taken(builder_id, label, exclude_id=location.id):
            raise ConflictError(LOCATION_LABEL_EXISTS)
        try:
            for key, value in data.items():
                setattr(location, key, value)
            db.session.commit()
            return location
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error updating location: {e}", exc_info=True)
            raise ServiceError("Could not update location. Please try again later.", 500)

    @staticmethod
    def delete_location(builder_id, location_id):
        BuilderService.get_builder(builder_id)
        location = BuilderService.get_location(builder_id, location_id)
        if location.dockets.first() is not None:
            raise ConflictError("Cannot delete a location that has dockets")
        try:
            db.session.delete(location)
            db.session.commit()
            return True
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error deleting location: {e}", exc_info=True)
            raise ServiceError("Could not delete location. Please try again later.", 500)
