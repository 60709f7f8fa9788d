from flask import Blueprint, request, jsonify, send_file
from marshmallow import ValidationError
from docketwise.services.invoice_service import InvoiceService, INVOICE_CREATED, EXPORT_HEADERS
from docketwise.services.service_error import ServiceError
from docketwise.schemas.invoice_schema import (
    WorkerInvoiceSchema, CreateInvoiceSchema, UpdateInvoiceSchema, UpdateInvoiceStatusSchema,
)
from docketwise.utils.export_utils import EXPORT_FORMATS, export_response
from docketwise.utils.validation import QueryParamError, parse_pagination, paginated
import logging
import os
from flask_security import auth_required, roles_accepted, current_user

invoice_bp = Blueprint('invoice', __name__)
schema = WorkerInvoiceSchema()
schema_many = WorkerInvoiceSchema(many=True)


@invoice_bp.route('/invoices', methods=['POST'])
@auth_required()
@roles_accepted('worker')
def create_invoice():
    try:
        data = CreateInvoiceSchema().load(request.get_json() or {})
        invoice = InvoiceService.create_invoice(current_user, data['week_start'])
        return jsonify({'message': INVOICE_CREATED, 'invoice': schema.dump(invoice)}), 201
    except ValidationError as ve:
        return jsonify({'error': 'Validation failed', 'errors': ve.messages}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in create_invoice: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@invoice_bp.route('/invoices', methods=['GET'])
@auth_required()
@roles_accepted('admin')
def list_invoices():
    try:
        page, limit = parse_pagination(request.args)
        invoices, total = InvoiceService.get_invoices(
            week=request.args.get('week'), q=request.args.get('q'), page=page, limit=limit)
        return jsonify(paginated(schema_many.dump(invoices), total, page, limit)), 200
    except (ValueError, QueryParamError) as ve:
        return jsonify({'error': str(ve)}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in list_invoices: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@invoice_bp.route('/invoices/<int:invoice_id>', methods=['PATCH'])
@auth_required()
@roles_accepted('admin')
def update_invoice(invoice_id):
    try:
        data = UpdateInvoiceSchema().load(request.get_json() or {})
        invoice = InvoiceService.update_invoice(current_user, invoice_id, data)
        return jsonify(schema.dump(invoice)), 200
    except ValidationError as ve:
        return jsonify({'error': 'Validation failed', 'errors': ve.messages}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in update_invoice: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@invoice_bp.route('/invoices/<int:invoice_id>/status', methods=['PATCH'])
@auth_required()
@roles_accepted('admin')
def update_invoice_status(invoice_id):
    try:
        data = UpdateInvoiceStatusSchema().load(request.get_json() or {})
        invoice = InvoiceService.update_invoice_status(
            current_user, invoice_id, data['status'], data.get('audit_note'))
        return jsonify(schema.dump(invoice)), 200
    except ValidationError as ve:
        return jsonify({'error': 'Validation failed', 'errors': ve.messages}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in update_invoice_status: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@invoice_bp.route('/invoices/export', methods=['GET'])
@auth_required()
@roles_accepted('admin')
def export_invoices():
    try:
        week = request.args.get('week')
        if not week:
            return jsonify({'error': 'Week parameter is required'}), 400
        export_format = (request.args.get('format') or 'csv').lower()
        if export_format not in EXPORT_FORMATS:
            return jsonify({'error': 'Invalid format. Use csv or xlsx'}), 400
        rows = InvoiceService.export_rows(week)
        return export_response(EXPORT_HEADERS, rows, f"invoices-{week}", export_format, sheet_name='Invoices')
    except ValueError as ve:
        return jsonify({'error': str(ve)}), 400
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in export_invoices: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500


@invoice_bp.route('/invoices/<int:invoice_id>/pdf', methods=['GET'])
@auth_required()
@roles_accepted('admin', 'worker')
def download_invoice_pdf(invoice_id):
    try:
        path = InvoiceService.get_pdf_path(current_user, invoice_id)
        return send_file(path, mimetype='application/pdf', as_attachment=True,
                         download_name=os.path.basename(path))
    except ServiceError as se:
        return jsonify({'error': se.message}), se.code
    except Exception as e:
        logging.error(f"Unhandled error in download_invoice_pdf: {e}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred. Please try again later.'}), 500
