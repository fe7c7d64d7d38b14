"""Error taxonomy for the encryption pipeline."""

from collections.abc import Iterator
from contextlib import contextmanager

NO_ENCRYPTION_KEY_SET = "MAIN.ERROR.NO_ENCRYPTION_KEY_SET"
INCORRECT_PASSWORD = "MAIN.ERROR.INCORRECT_PASSWORD"
KEY_LOCK_FAILED = "MAIN.ERROR.KEY_LOCK_FAILED"
REMOTE_FETCH_FAILED = "MAIN.ERROR.REMOTE_FETCH_FAILED"
SYNC_STOP_FAILED = "MAIN.ERROR.SYNC_STOP_FAILED"
ENCRYPTION_ALREADY_ENABLED = "MAIN.ERROR.ENCRYPTION_ALREADY_ENABLED"


class EncryptionError(Exception):
    """Base class for key, cipher and decoding failures.

    ``record_id``, ``field`` and ``index`` locate the failing field when the
    error is raised by the record transformer. Messages never carry key
    material or clipboard content.
    """

    default_message = "encryption error"

    def __init__(
        self,
        message: str | None = None,
        *,
        record_id: int | None = None,
        field: str | None = None,
        index: int | None = None,
    ):
        self.record_id = record_id
        self.field = field
        self.index = index
        super().__init__(message or self.default_message)

    def with_context(self, record_id: int | None, field: str, index: int | None = None) -> "EncryptionError":
        return type(self)(self.args[0], record_id=record_id, field=field, index=index)

    def __str__(self) -> str:
        base = super().__str__()
        if self.field is None:
            return base
        where = f"clipboard {self.record_id} {self.field}"
        if self.index is not None:
            where += f" [file {self.index}]"
        return f"{base} ({where})"


class NoKeyError(EncryptionError):
    default_message = "no encryption key set"


class KeyLockError(EncryptionError):
    default_message = "failed to acquire encryption key lock"


class InvalidKeyError(EncryptionError):
    default_message = "data failed authentication, wrong key"


class NotEncryptedError(EncryptionError):
    default_message = "data is not encrypted"


class AlreadyEncryptedError(EncryptionError):
    default_message = "data is already encrypted"


class DecryptionFailedError(EncryptionError):
    default_message = "failed to decode decrypted data"


class CommandError(Exception):
    """A user-facing failure identified by a stable reason code."""

    def __init__(self, reason: str, detail: str | None = None):
        self.reason = reason
        self.detail = detail
        super().__init__(f"{reason}: {detail}" if detail else reason)


@contextmanager
def key_errors_as_command() -> Iterator[None]:
    """Re-raise key availability failures as user-facing command errors."""
    try:
        yield
    except NoKeyError as e:
        raise CommandError(NO_ENCRYPTION_KEY_SET, str(e)) from e
    except KeyLockError as e:
        raise CommandError(KEY_LOCK_FAILED, str(e)) from e
