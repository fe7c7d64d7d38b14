import copy
import logging
from collections.abc import Callable

from clipsafe import cipher
from clipsafe.errors import AlreadyEncryptedError, EncryptionError, NotEncryptedError
from clipsafe.keystore import KeyStore
from clipsafe.models import ClipboardRecord

logger = logging.getLogger(__name__)


class ClipboardTransformer:
    """Encrypts or decrypts every present field of a clipboard record.

    Both directions work on a deep copy of the input. The caller only ever
    sees the original record (on failure) or a fully transformed copy whose
    ``encrypted`` flag has been flipped (on success).
    """

    def __init__(self, keystore: KeyStore):
        self._keystore = keystore

    def decrypt_one(self, record: ClipboardRecord) -> ClipboardRecord:
        if not record.encrypted:
            raise NotEncryptedError(record_id=record.id)
        result = self._apply(
            record,
            text=cipher.decrypt_text,
            binary=cipher.decrypt_data,
            thumbnail=cipher.decrypt_thumbnail,
        )
        result.encrypted = False
        return result

    def encrypt_one(self, record: ClipboardRecord) -> ClipboardRecord:
        if record.encrypted:
            raise AlreadyEncryptedError(record_id=record.id)
        result = self._apply(
            record,
            text=cipher.encrypt_text,
            binary=cipher.encrypt_data,
            thumbnail=cipher.encrypt_thumbnail,
        )
        result.encrypted = True
        return result

    def _apply(
        self,
        record: ClipboardRecord,
        text: Callable[[KeyStore, str], str],
        binary: Callable[[KeyStore, bytes], bytes],
        thumbnail: Callable[[KeyStore, str], str],
    ) -> ClipboardRecord:
        result = copy.deepcopy(record)
        ks = self._keystore

        def run(field: str, fn, value, index: int | None = None):
            try:
                return fn(ks, value)
            except EncryptionError as e:
                logger.debug("Transform failed for clipboard %s field %s: %s", record.id, field, e)
                raise e.with_context(record.id, field, index) from e

        for slot in result.text_slots():
            slot.data = run(slot.kind.value, text, slot.data)

        if result.image is not None:
            result.image.data = run("image", binary, result.image.data)
            if result.image.thumbnail is not None:
                result.image.thumbnail = run("thumbnail", thumbnail, result.image.thumbnail)

        for index, attachment in enumerate(result.files):
            attachment.name = run("file_name", text, attachment.name, index)
            attachment.data = run("file_data", binary, attachment.data, index)
            if attachment.extension is not None:
                attachment.extension = run("file_extension", text, attachment.extension, index)
            if attachment.mime_type is not None:
                attachment.mime_type = run("file_mime_type", text, attachment.mime_type, index)

        return result
