"""
Field-level encryption for contractor bank details.

Values are Fernet tokens keyed by BANK_ENCRYPTION_KEY. Outside production a key is
derived from SECRET_KEY so local databases stay readable between restarts.
"""

import base64
import hashlib
import logging

from cryptography.fernet import Fernet, InvalidToken
from flask import current_app

from docketwise.models.contractor import BANK_FIELDS

# Fernet tokens always start with the version byte 0x80, which base64-encodes to "gAAAAA"
FERNET_PREFIX = 'gAAAAA'


class EncryptionError(Exception):
    def __init__(self, message):
        super().__init__(message)
        self.message = message


def _get_fernet():
    key = current_app.config.get('BANK_ENCRYPTION_KEY')
    if not key:
        if not (current_app.debug or current_app.testing):
            raise EncryptionError(
                "BANK_ENCRYPTION_KEY environment variable must be set. "
                "Generate with: python -c 'from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())'"
            )
        digest = hashlib.sha256(current_app.config['SECRET_KEY'].encode()).digest()
        key = base64.urlsafe_b64encode(digest).decode()
    return Fernet(key.encode() if isinstance(key, str) else key)


def is_encrypted(value):
    return isinstance(value, str) and value.startswith(FERNET_PREFIX)


def encrypt(value):
    if value is None or value == '':
        return value
    return _get_fernet().encrypt(str(value).encode()).decode()


def decrypt(value):
    if value is None or value == '':
        return value
    return _get_fernet().decrypt(value.encode()).decode()


def safe_encrypt(value):
    """Encrypt unless the value is empty or already a Fernet token."""
    if not value or is_encrypted(value):
        return value
    return encrypt(value)


def safe_decrypt(value):
    """Decrypt Fernet tokens; plaintext passes through unchanged."""
    if not value or not is_encrypted(value):
        return value
    try:
        return decrypt(value)
    except InvalidToken:
        logging.warning("Bank field decryption failed. Encryption key may have changed or data is corrupted")
        return value


def encrypt_bank_fields(data):
    """Return a copy of ``data`` with any bank fields encrypted."""
    result = dict(data)
    for field in BANK_FIELDS:
        if field in result:
            result[field] = safe_encrypt(result[field])
    return result


def decrypt_bank_fields(contractor):
    return {field: safe_decrypt(getattr(contractor, field, None)) for field in BANK_FIELDS}
