import hashlib
import hmac
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from clipsafe.config import KEY_LOCK_TIMEOUT
from clipsafe.errors import KeyLockError, NoKeyError

logger = logging.getLogger(__name__)


def derive_key(password: str) -> bytes:
    """Derive the 256-bit key for ``password`` (SHA-256 of its UTF-8 bytes)."""
    return hashlib.sha256(password.encode("utf-8")).digest()


class KeyStore:
    """Holds the active encryption key behind a lock.

    Callers borrow the key through :meth:`key` for the duration of a single
    cryptographic call and must not keep a reference to it afterwards.
    """

    def __init__(self, lock_timeout: float = KEY_LOCK_TIMEOUT):
        self._lock = threading.Lock()
        self._lock_timeout = lock_timeout
        self._key: bytes | None = None

    @contextmanager
    def _guard(self) -> Iterator[None]:
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise KeyLockError()
        try:
            yield
        finally:
            self._lock.release()

    def set_key(self, password: str) -> None:
        key = derive_key(password)
        with self._guard():
            self._key = key
        logger.info("Encryption key set")

    def is_key_set(self) -> bool:
        with self._guard():
            return self._key is not None

    def clear_key(self) -> None:
        with self._guard():
            self._key = None
        logger.info("Encryption key cleared")

    def verify_password(self, password: str) -> bool:
        candidate = derive_key(password)
        with self._guard():
            if self._key is None:
                raise NoKeyError()
            return hmac.compare_digest(candidate, self._key)

    @contextmanager
    def key(self) -> Iterator[bytes]:
        """Yield the key bytes while holding the lock.

        Raises:
            KeyLockError: the lock could not be acquired in time
            NoKeyError: no key is set
        """
        with self._guard():
            if self._key is None:
                raise NoKeyError()
            yield self._key
