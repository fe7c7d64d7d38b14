import logging

from clipsafe.bulk import BulkReencryptOrchestrator, BulkResult
from clipsafe.errors import (
    ENCRYPTION_ALREADY_ENABLED,
    INCORRECT_PASSWORD,
    NO_ENCRYPTION_KEY_SET,
    CommandError,
    EncryptionError,
    KeyLockError,
    NoKeyError,
    key_errors_as_command,
)
from clipsafe.keystore import KeyStore
from clipsafe.models import ClipboardRecord
from clipsafe.transform import ClipboardTransformer

logger = logging.getLogger(__name__)


def unlock(password: str, orchestrator: BulkReencryptOrchestrator) -> None:
    """Set the key from ``password`` once it has opened a stored clipboard.

    The key is not persisted, so a fresh process must be unlocked before any
    encrypted clipboard can be read. The password is tried on a scratch
    keystore against each encrypted clipboard in turn and accepted only when
    one of them decrypts; the active key is left alone until then. When
    nothing is encrypted yet the password is accepted as is.
    """
    records = orchestrator.storage.find_encrypted_records()
    with key_errors_as_command():
        if records:
            candidate = KeyStore()
            candidate.set_key(password)
            if not _opens_any(ClipboardTransformer(candidate), records):
                logger.warning("Password rejected: none of %d encrypted clipboards could be opened", len(records))
                raise CommandError(INCORRECT_PASSWORD)
        orchestrator.keystore.set_key(password)


def _opens_any(transformer: ClipboardTransformer, records: list[ClipboardRecord]) -> bool:
    for record in records:
        try:
            transformer.decrypt_one(record)
        except (NoKeyError, KeyLockError):
            raise
        except EncryptionError as e:
            logger.debug("Password did not open clipboard %s: %s", record.id, e)
        else:
            return True
    return False


async def remove_encryption(password: str, orchestrator: BulkReencryptOrchestrator) -> BulkResult:
    """Decrypt every clipboard, mark encryption disabled, then forget the key.

    The key is cleared last: until the decrypted records and the settings
    change are persisted it is the only way to read the stored data.
    """
    keystore = orchestrator.keystore
    with key_errors_as_command():
        if not keystore.is_key_set():
            raise CommandError(NO_ENCRYPTION_KEY_SET)
        if not keystore.verify_password(password):
            raise CommandError(INCORRECT_PASSWORD)

    result = await orchestrator.decrypt_all_clipboards()

    settings = orchestrator.storage.get_global_settings()
    settings.encryption = False
    orchestrator.storage.update_settings(settings)

    with key_errors_as_command():
        keystore.clear_key()
    logger.info("Encryption removed: %d clipboards decrypted, %d purged", len(result.transformed), len(result.deleted))
    return result


async def enable_encryption(password: str, orchestrator: BulkReencryptOrchestrator) -> BulkResult:
    """Set the key from ``password``, encrypt every clipboard and mark encryption enabled.

    A failed pass leaves the key set, since some records may already be
    sealed with it. Retrying then requires the same password.
    """
    storage = orchestrator.storage
    if storage.get_global_settings().encryption:
        raise CommandError(ENCRYPTION_ALREADY_ENABLED)

    keystore = orchestrator.keystore
    with key_errors_as_command():
        if not keystore.is_key_set():
            keystore.set_key(password)
        elif not keystore.verify_password(password):
            raise CommandError(INCORRECT_PASSWORD)

    result = await orchestrator.encrypt_all_clipboards()

    settings = storage.get_global_settings()
    settings.encryption = True
    storage.update_settings(settings)
    logger.info("Encryption enabled: %d clipboards encrypted, %d left as is", len(result.transformed), len(result.failed))
    return result
