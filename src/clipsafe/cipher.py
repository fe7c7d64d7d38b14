"""Field-level encryption: AES-256-GCM sealing plus base64 wrapping for text columns.

Binary payloads (image data, file data) are stored as the raw sealed blob
``nonce || ciphertext || tag``. Text values (clipboard text/html/rtf, file
names, extensions, mime types) and image thumbnails are stored as base64 of
that blob so they fit a text column.
"""

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from clipsafe.config import NONCE_LEN, TAG_LEN
from clipsafe.errors import DecryptionFailedError, InvalidKeyError, NotEncryptedError
from clipsafe.keystore import KeyStore

_PRINTABLE = frozenset(range(0x20, 0x7F)) | {0x09, 0x0A, 0x0D}
_PRINTABLE_THRESHOLD = 0.9


def looks_like_encrypted_data(blob: bytes) -> bool:
    """Guess whether ``blob`` is a sealed blob rather than plain content.

    Only used to pick an error label after authentication has already failed;
    it never decides whether data is decrypted.
    """
    if len(blob) < NONCE_LEN + TAG_LEN:
        return False
    printable = sum(1 for b in blob if b in _PRINTABLE)
    return printable / len(blob) < _PRINTABLE_THRESHOLD


def encrypt_data(keystore: KeyStore, plaintext: bytes) -> bytes:
    nonce = os.urandom(NONCE_LEN)
    with keystore.key() as key:
        sealed = AESGCM(key).encrypt(nonce, plaintext, None)
    return nonce + sealed


def decrypt_data(keystore: KeyStore, blob: bytes) -> bytes:
    """Open a blob produced by :func:`encrypt_data`.

    Raises:
        NotEncryptedError: the blob is too short or does not look sealed
        InvalidKeyError: the blob looks sealed but fails authentication
        NoKeyError, KeyLockError: the key is unavailable
    """
    if len(blob) < NONCE_LEN:
        raise NotEncryptedError()
    nonce, sealed = blob[:NONCE_LEN], blob[NONCE_LEN:]
    with keystore.key() as key:
        try:
            return AESGCM(key).decrypt(nonce, sealed, None)
        except InvalidTag:
            pass
    if looks_like_encrypted_data(blob):
        raise InvalidKeyError()
    raise NotEncryptedError()


def _b64decode(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecryptionFailedError("invalid base64 data") from e


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def encrypt_text(keystore: KeyStore, text: str) -> str:
    return _b64encode(encrypt_data(keystore, text.encode("utf-8")))


def decrypt_text(keystore: KeyStore, value: str) -> str:
    decrypted = decrypt_data(keystore, _b64decode(value))
    try:
        return decrypted.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecryptionFailedError("decrypted data is not valid UTF-8") from e


def encrypt_thumbnail(keystore: KeyStore, thumbnail: str) -> str:
    # Plain thumbnails are base64 image bytes; the sealed form wraps the raw bytes.
    return _b64encode(encrypt_data(keystore, _b64decode(thumbnail)))


def decrypt_thumbnail(keystore: KeyStore, thumbnail: str) -> str:
    return _b64encode(decrypt_data(keystore, _b64decode(thumbnail)))
