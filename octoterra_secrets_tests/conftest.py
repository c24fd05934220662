"""Shared fixtures: a master key, an encrypt helper and a source database."""

import base64
import json
import os

import pytest
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

# Known vector produced by an Octopus server: decrypts to "success"
KNOWN_MASTER_KEY = "6EdU6IWsCtMEwk0kPKflQQ=="
KNOWN_ENCRYPTED_VALUE = "tHdE5KI9QVdsFSq6F6HeSA==|7oD+XzuTFF1uCQLXm8A3eg=="

SOURCE_TABLES = {
    "VariableSet": "Id TEXT, JSON TEXT, IsFrozen INTEGER, OwnerType TEXT",
    "Account": "Name TEXT, JSON TEXT",
    "TenantVariable": "Id TEXT, JSON TEXT",
    "Certificate": "Name TEXT, JSON TEXT",
    "Feed": "Name TEXT, JSON TEXT",
    "GitCredential": "Id TEXT, JSON TEXT",
    "ActionTemplate": "JSON TEXT",
    "DeploymentProcess": "OwnerId TEXT, JSON TEXT",
    "Machine": "Name TEXT, JSON TEXT",
    "Proxy": "Name TEXT, JSON TEXT",
}


def encrypt_value(master_key: str, plaintext: str, iv: bytes = None) -> str:
    """Encrypt like Octopus does: AES-CBC, PKCS#7, ``ciphertext|iv``."""
    key = base64.b64decode(master_key)
    iv = iv or os.urandom(16)
    padder = padding.PKCS7(128).padder()
    padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    cipher_text = encryptor.update(padded) + encryptor.finalize()
    return f"{base64.b64encode(cipher_text).decode()}|{base64.b64encode(iv).decode()}"


@pytest.fixture
def master_key():
    return KNOWN_MASTER_KEY


@pytest.fixture
def encrypt(master_key):
    """Return a function encrypting plaintext under the test master key."""
    def _encrypt(plaintext: str) -> str:
        return encrypt_value(master_key, plaintext)
    return _encrypt


@pytest.fixture
def source_engine():
    """In-memory SQLite database with the Octopus source tables."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    with engine.begin() as connection:
        for table, columns in SOURCE_TABLES.items():
            connection.execute(text(f"CREATE TABLE {table} ({columns})"))
    yield engine
    engine.dispose()


@pytest.fixture
def insert_row(source_engine):
    """Insert one row; dict and list values are stored as JSON text."""
    def _insert(table: str, **columns):
        values = {
            name: json.dumps(value) if isinstance(value, (dict, list)) else value
            for name, value in columns.items()
        }
        names = ", ".join(values)
        params = ", ".join(f":{name}" for name in values)
        with source_engine.begin() as connection:
            connection.execute(text(f"INSERT INTO {table} ({names}) VALUES ({params})"), values)
    return _insert


@pytest.fixture
def known_encrypted_value():
    return KNOWN_ENCRYPTED_VALUE
