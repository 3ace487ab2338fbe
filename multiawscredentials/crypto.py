"""
Password based encryption of profile content.

Envelope format: ``ENCRYPTED|`` followed by a JSON record.

Version 1 (written by earlier releases, still readable)::

    {"iv": <base64 16 bytes>, "contents": <base64 AES-256-CBC ciphertext>}

    key = SHA-256(password), PKCS7 padding, no integrity check.

Version 2 (default)::

    {"v": 2, "kdf": "pbkdf2-sha256", "iterations": N, "salt": <base64 16 bytes>,
     "iv": <base64 12 bytes>, "contents": <base64 AES-256-GCM ciphertext + tag>}

    key = PBKDF2-HMAC-SHA256(password, salt, N)
"""

import base64
import binascii
import json
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .exceptions import (
    AuthenticationFailed,
    MalformedEnvelope,
    NotAnEnvelope,
    WrongPasswordOrCorrupt,
)

ENCRYPTED_PREFIX = "ENCRYPTED|"
_ENCRYPTED_PREFIX_BYTES = ENCRYPTED_PREFIX.encode("ascii")

LEGACY_VERSION = 1
CURRENT_VERSION = 2

KDF_NAME = "pbkdf2-sha256"
DEFAULT_KDF_ITERATIONS = 600_000
KEY_LENGTH = 32
SALT_LENGTH = 16
CBC_IV_LENGTH = 16
GCM_NONCE_LENGTH = 12


def _to_bytes(value):
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def derive_key(password, salt=None, iterations=DEFAULT_KDF_ITERATIONS):
    """
    Derive a 256-bit AES key from a password.

    Without a salt this is the legacy single SHA-256 pass used by version 1
    envelopes. With a salt, PBKDF2-HMAC-SHA256 is used.

    Args:
        password: Password as str or bytes
        salt: Random salt, or None for the legacy derivation
        iterations: PBKDF2 iteration count

    Returns:
        bytes: 32-byte key
    """
    password = _to_bytes(password)
    if salt is None:
        digest = hashes.Hash(hashes.SHA256(), backend=default_backend())
        digest.update(password)
        return digest.finalize()

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
        backend=default_backend(),
    )
    return kdf.derive(password)


def _b64(data):
    return base64.b64encode(data).decode("ascii")


def _encrypt_v1(password, plaintext):
    iv = os.urandom(CBC_IV_LENGTH)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = Cipher(
        algorithms.AES(derive_key(password)), modes.CBC(iv), backend=default_backend()
    ).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return {"iv": _b64(iv), "contents": _b64(ciphertext)}


def _encrypt_v2(password, plaintext, iterations):
    salt = os.urandom(SALT_LENGTH)
    nonce = os.urandom(GCM_NONCE_LENGTH)
    key = derive_key(password, salt, iterations)
    ciphertext = AESGCM(key).encrypt(nonce, plaintext, None)
    return {
        "v": CURRENT_VERSION,
        "kdf": KDF_NAME,
        "iterations": iterations,
        "salt": _b64(salt),
        "iv": _b64(nonce),
        "contents": _b64(ciphertext),
    }


def encrypt(password, plaintext, version=CURRENT_VERSION, iterations=DEFAULT_KDF_ITERATIONS):
    """
    Wrap plaintext in a password protected envelope.

    A fresh IV (and for version 2 a fresh salt) is generated on every call, so
    encrypting the same plaintext twice never yields the same envelope.

    Args:
        password: Password as str or bytes
        plaintext: Data to protect, bytes or str
        version: Envelope version to write (1 or 2)
        iterations: PBKDF2 iteration count for version 2

    Returns:
        bytes: ``ENCRYPTED|{...}`` envelope
    """
    plaintext = _to_bytes(plaintext)
    if version == LEGACY_VERSION:
        record = _encrypt_v1(password, plaintext)
    elif version == CURRENT_VERSION:
        if iterations < 1:
            raise ValueError("iterations must be a positive integer")
        record = _encrypt_v2(password, plaintext, iterations)
    else:
        raise ValueError(f"Unsupported envelope version: {version}")
    return _ENCRYPTED_PREFIX_BYTES + json.dumps(record).encode("ascii")


def is_envelope(data):
    """Check whether data is an encrypted envelope, without decrypting it."""
    if isinstance(data, str):
        return data.startswith(ENCRYPTED_PREFIX)
    if isinstance(data, (bytes, bytearray)):
        return bytes(data).startswith(_ENCRYPTED_PREFIX_BYTES)
    return False


def _load_record(envelope):
    if not is_envelope(envelope):
        raise NotAnEnvelope()
    body = _to_bytes(envelope)[len(_ENCRYPTED_PREFIX_BYTES):]
    try:
        record = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedEnvelope(f"Envelope record is not valid JSON: {e}") from e
    if not isinstance(record, dict):
        raise MalformedEnvelope("Envelope record must be a JSON object")
    return record


def _field(record, name, expected_length=None):
    value = record.get(name)
    if not isinstance(value, str):
        raise MalformedEnvelope(f"Envelope is missing the {name} field")
    try:
        decoded = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedEnvelope(f"Envelope field {name} is not valid base64") from e
    if expected_length is not None and len(decoded) != expected_length:
        raise MalformedEnvelope(
            f"Envelope field {name} has {len(decoded)} bytes, expected {expected_length}"
        )
    return decoded


def _record_version(record):
    version = record.get("v", LEGACY_VERSION)
    if isinstance(version, bool) or version not in (LEGACY_VERSION, CURRENT_VERSION):
        raise MalformedEnvelope(f"Unsupported envelope version: {version!r}")
    return version


def envelope_version(envelope):
    """
    Return the format version of an envelope.

    Raises:
        NotAnEnvelope: If the data is not tagged as encrypted
        MalformedEnvelope: If the record cannot be read
    """
    return _record_version(_load_record(envelope))


def _decrypt_v1(password, record):
    iv = _field(record, "iv", CBC_IV_LENGTH)
    ciphertext = _field(record, "contents")
    if not ciphertext or len(ciphertext) % CBC_IV_LENGTH:
        raise WrongPasswordOrCorrupt(
            "Ciphertext length is not a multiple of the AES block size"
        )

    decryptor = Cipher(
        algorithms.AES(derive_key(password)), modes.CBC(iv), backend=default_backend()
    ).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise WrongPasswordOrCorrupt(
            "Decryption failed (invalid padding)\n"
            "  Either the password is wrong or the profile file is corrupted."
        ) from e


def _decrypt_v2(password, record):
    if record.get("kdf") != KDF_NAME:
        raise MalformedEnvelope(f"Unsupported key derivation: {record.get('kdf')!r}")
    iterations = record.get("iterations")
    if not isinstance(iterations, int) or isinstance(iterations, bool) or iterations < 1:
        raise MalformedEnvelope(f"Invalid iteration count: {iterations!r}")
    salt = _field(record, "salt", SALT_LENGTH)
    nonce = _field(record, "iv", GCM_NONCE_LENGTH)
    ciphertext = _field(record, "contents")

    key = derive_key(password, salt, iterations)
    try:
        return AESGCM(key).decrypt(nonce, ciphertext, None)
    except InvalidTag as e:
        raise AuthenticationFailed(
            "Decryption failed (authentication tag mismatch)\n"
            "  Either the password is wrong or the profile file has been modified."
        ) from e


def decrypt(password, envelope):
    """
    Recover the plaintext from an envelope.

    Args:
        password: Password as str or bytes
        envelope: Envelope bytes or str, including the ``ENCRYPTED|`` tag

    Returns:
        bytes: The exact plaintext that was encrypted

    Raises:
        NotAnEnvelope: If the tag is absent
        MalformedEnvelope: If the record, encodings or lengths are invalid
        WrongPasswordOrCorrupt: If the key does not decrypt the data
            (AuthenticationFailed for version 2 envelopes)
    """
    record = _load_record(envelope)
    if _record_version(record) == LEGACY_VERSION:
        return _decrypt_v1(password, record)
    return _decrypt_v2(password, record)
