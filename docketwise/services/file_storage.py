"""
Local disk storage for generated invoice PDFs.

Files live under ``<INVOICE_STORAGE_ROOT>/uploads/invoices`` and are addressed by a
public-style URL ``/uploads/invoices/<filename>``.
"""

import logging
import os
import re
from datetime import datetime
from pathlib import Path

from flask import current_app

UPLOAD_SUBDIR = os.path.join('uploads', 'invoices')
URL_PREFIX = '/uploads/invoices'


class FileStorage:
    @staticmethod
    def upload_dir() -> Path:
        return Path(current_app.config['INVOICE_STORAGE_ROOT']) / UPLOAD_SUBDIR

    @staticmethod
    def ensure_upload_dir() -> Path:
        path = FileStorage.upload_dir()
        path.mkdir(parents=True, exist_ok=True)
        return path

    @staticmethod
    def safe_name(name: str) -> str:
        return re.sub(r'[^a-zA-Z0-9]', '_', name or '')

    @staticmethod
    def generate_pdf_filename(invoice_id, contractor_name: str) -> str:
        stamp = datetime.utcnow().strftime('%Y-%m-%d')
        return f"invoice_{invoice_id}_{FileStorage.safe_name(contractor_name)}_{stamp}.pdf"

    @staticmethod
    def save_pdf(pdf_bytes: bytes, filename: str) -> str:
        """Write the PDF and return its URL."""
        path = FileStorage.ensure_upload_dir() / os.path.basename(filename)
        path.write_bytes(pdf_bytes)
        logging.info(f"Invoice PDF saved: {path}")
        return f"{URL_PREFIX}/{path.name}"

    @staticmethod
    def resolve_path(pdf_url: str) -> Path:
        # only the basename is trusted so a crafted URL cannot escape the upload dir
        return FileStorage.upload_dir() / os.path.basename(pdf_url or '')

    @staticmethod
    def pdf_exists(pdf_url: str) -> bool:
        if not pdf_url:
            return False
        return FileStorage.resolve_path(pdf_url).is_file()

    @staticmethod
    def delete_pdf(pdf_url: str) -> bool:
        try:
            FileStorage.resolve_path(pdf_url).unlink()
            return True
        except Exception as e:
            logging.error(f"Error deleting PDF {pdf_url}: {e}")
            return False
