"""
Tests for bank field encryption
"""
import pytest
from flask import Flask

from docketwise.config import TestConfig
from docketwise.utils.encryption import (
    EncryptionError,
    encrypt,
    decrypt,
    is_encrypted,
    safe_encrypt,
    safe_decrypt,
    encrypt_bank_fields,
)


@pytest.fixture
def app():
    app = Flask(__name__)
    app.config.from_object(TestConfig)
    with app.app_context():
        yield app


class TestEncryption:

    def test_round_trip(self, app):
        token = encrypt('062-000')
        assert token != '062-000'
        assert is_encrypted(token)
        assert decrypt(token) == '062-000'

    def test_empty_values_pass_through(self, app):
        assert encrypt('') == ''
        assert encrypt(None) is None
        assert safe_decrypt(None) is None

    def test_safe_encrypt_does_not_double_encrypt(self, app):
        token = safe_encrypt('12345678')
        assert safe_encrypt(token) == token

    def test_safe_decrypt_passes_plaintext_through(self, app):
        assert safe_decrypt('Commonwealth Bank') == 'Commonwealth Bank'

    def test_safe_decrypt_with_wrong_key_returns_value(self, app):
        token = encrypt('12345678')
        app.config['BANK_ENCRYPTION_KEY'] = 'mS3TnVw3V1yqgJb2oYz2Kx5n8W0pXlq4cQe7RrT9sUk='
        assert safe_decrypt(token) == token

    def test_encrypt_bank_fields_only_touches_bank_fields(self, app):
        result = encrypt_bank_fields({'nickname': 'Johnny', 'bsb': '062-000', 'account_no': None})
        assert result['nickname'] == 'Johnny'
        assert is_encrypted(result['bsb'])
        assert result['account_no'] is None
        assert 'bank_name' not in result

    def test_missing_key_outside_debug_is_an_error(self):
        app = Flask(__name__)
        app.config.update(SECRET_KEY='x', BANK_ENCRYPTION_KEY=None, TESTING=False, DEBUG=False)
        with app.app_context():
            with pytest.raises(EncryptionError):
                encrypt('12345678')

    def test_missing_key_in_testing_derives_one(self):
        app = Flask(__name__)
        app.config.update(SECRET_KEY='x', BANK_ENCRYPTION_KEY=None, TESTING=True)
        with app.app_context():
            assert decrypt(encrypt('12345678')) == '12345678'
