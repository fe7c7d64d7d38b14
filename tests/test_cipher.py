import base64
import os

import pytest
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from clipsafe import cipher
from clipsafe.errors import DecryptionFailedError, InvalidKeyError, KeyLockError, NoKeyError, NotEncryptedError
from clipsafe.keystore import KeyStore, derive_key


@pytest.fixture
def other_keystore():
    ks = KeyStore()
    ks.set_key("a different password")
    return ks


class TestEncryptDecrypt:
    @pytest.mark.parametrize("plaintext", [b"", b"hello", b"\x00\xff" * 50, os.urandom(4096)])
    def test_round_trip(self, keystore, plaintext):
        assert cipher.decrypt_data(keystore, cipher.encrypt_data(keystore, plaintext)) == plaintext

    def test_layout_is_nonce_ciphertext_tag(self, keystore):
        blob = cipher.encrypt_data(keystore, b"hello")
        assert len(blob) == 12 + 5 + 16

    def test_fresh_nonce_each_call(self, keystore):
        a = cipher.encrypt_data(keystore, b"same")
        b = cipher.encrypt_data(keystore, b"same")
        assert a[:12] != b[:12]
        assert a != b

    def test_interoperates_with_plain_aesgcm(self, keystore):
        nonce = os.urandom(12)
        blob = nonce + AESGCM(derive_key("correct horse battery staple")).encrypt(nonce, b"hello", None)
        assert cipher.decrypt_data(keystore, blob) == b"hello"

    def test_wrong_key_is_invalid_key(self, keystore, other_keystore):
        blob = cipher.encrypt_data(keystore, b"hello")
        with pytest.raises(InvalidKeyError):
            cipher.decrypt_data(other_keystore, blob)

    def test_tampered_blob_is_invalid_key(self, keystore):
        blob = bytearray(cipher.encrypt_data(keystore, b"hello world"))
        blob[-1] ^= 0x01
        with pytest.raises(InvalidKeyError):
            cipher.decrypt_data(keystore, bytes(blob))

    @pytest.mark.parametrize("length", [0, 1, 5, 11])
    def test_short_input_not_encrypted(self, keystore, length):
        with pytest.raises(NotEncryptedError):
            cipher.decrypt_data(keystore, os.urandom(length))

    def test_short_input_checked_before_key(self):
        with pytest.raises(NotEncryptedError):
            cipher.decrypt_data(KeyStore(), b"short")

    def test_plaintext_blob_not_encrypted(self, keystore):
        with pytest.raises(NotEncryptedError):
            cipher.decrypt_data(keystore, b"this is just a plain legacy clipboard entry")

    def test_decrypt_without_key(self):
        with pytest.raises(NoKeyError):
            cipher.decrypt_data(KeyStore(), os.urandom(40))

    def test_encrypt_without_key(self):
        with pytest.raises(NoKeyError):
            cipher.encrypt_data(KeyStore(), b"hello")

    def test_lock_failure_surfaces(self, keystore):
        keystore._lock_timeout = 0.01
        keystore._lock.acquire()
        try:
            with pytest.raises(KeyLockError):
                cipher.encrypt_data(keystore, b"hello")
        finally:
            keystore._lock.release()


class TestLooksLikeEncryptedData:
    def test_random_bytes(self):
        assert cipher.looks_like_encrypted_data(os.urandom(64)) is True

    def test_sealed_blob(self, keystore):
        assert cipher.looks_like_encrypted_data(cipher.encrypt_data(keystore, b"hi")) is True

    def test_printable_text(self):
        assert cipher.looks_like_encrypted_data(b"The quick brown fox jumps over the lazy dog") is False

    def test_too_short_for_nonce_and_tag(self):
        assert cipher.looks_like_encrypted_data(os.urandom(27)) is False

    def test_empty(self):
        assert cipher.looks_like_encrypted_data(b"") is False


class TestTextWrapping:
    def test_round_trip(self, keystore):
        wrapped = cipher.encrypt_text(keystore, "héllo wörld")
        assert cipher.decrypt_text(keystore, wrapped) == "héllo wörld"

    def test_wrapped_is_base64(self, keystore):
        wrapped = cipher.encrypt_text(keystore, "hello")
        raw = base64.b64decode(wrapped, validate=True)
        assert cipher.decrypt_data(keystore, raw) == b"hello"

    def test_hello_scenario(self, keystore):
        nonce = os.urandom(12)
        sealed = AESGCM(derive_key("correct horse battery staple")).encrypt(nonce, b"hello", None)
        assert cipher.decrypt_text(keystore, base64.b64encode(nonce + sealed).decode()) == "hello"

    def test_invalid_base64(self, keystore):
        with pytest.raises(DecryptionFailedError):
            cipher.decrypt_text(keystore, "not base64 at all!")

    def test_invalid_utf8_after_open(self, keystore):
        wrapped = base64.b64encode(cipher.encrypt_data(keystore, b"\xff\xfe\xfd")).decode()
        with pytest.raises(DecryptionFailedError):
            cipher.decrypt_text(keystore, wrapped)

    def test_wrong_key_propagates(self, keystore, other_keystore):
        wrapped = cipher.encrypt_text(keystore, "hello")
        with pytest.raises(InvalidKeyError):
            cipher.decrypt_text(other_keystore, wrapped)


class TestThumbnail:
    def test_round_trip_keeps_base64_text(self, keystore):
        plain = base64.b64encode(b"\x89PNG thumbnail bytes").decode()
        sealed = cipher.encrypt_thumbnail(keystore, plain)
        assert sealed != plain
        base64.b64decode(sealed, validate=True)
        assert cipher.decrypt_thumbnail(keystore, sealed) == plain

    def test_invalid_base64(self, keystore):
        with pytest.raises(DecryptionFailedError):
            cipher.decrypt_thumbnail(keystore, "%%%")
