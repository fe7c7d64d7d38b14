import base64
from datetime import datetime

import pytest

from clipsafe.events import EventBus
from clipsafe.keystore import KeyStore
from clipsafe.models import ClipboardRecord, ContentType, FileAttachment, ImageContent, TextContent, TextKind
from clipsafe.storage import StorageManager
from clipsafe.transform import ClipboardTransformer

PASSWORD = "correct horse battery staple"
THUMBNAIL_BYTES = b"\x89PNG\r\n\x1a\nthumbnail"


@pytest.fixture
def storage():
    mgr = StorageManager(db_path=":memory:")
    yield mgr
    mgr.close()


@pytest.fixture
def keystore():
    ks = KeyStore()
    ks.set_key(PASSWORD)
    return ks


@pytest.fixture
def events():
    bus = EventBus()
    bus.received = []
    bus.subscribe(lambda event, payload: bus.received.append((event, payload)))
    return bus


@pytest.fixture
def make_record():
    """Factory fixture to create plaintext ClipboardRecord instances for testing."""

    def _make_record(
        text: str | None = "hello world",
        html: str | None = None,
        rtf: str | None = None,
        image: bytes | None = None,
        files: list[tuple[str, bytes, str | None, str | None]] | None = None,
        record_id: int | None = None,
        content_type: ContentType = ContentType.TEXT,
    ) -> ClipboardRecord:
        record = ClipboardRecord(
            id=record_id,
            content_type=content_type,
            encrypted=False,
            created_date=datetime.now(),
        )
        if text is not None:
            record.text = TextContent(id=None, clipboard_id=record_id, kind=TextKind.TEXT, data=text)
        if html is not None:
            record.html = TextContent(id=None, clipboard_id=record_id, kind=TextKind.HTML, data=html)
        if rtf is not None:
            record.rtf = TextContent(id=None, clipboard_id=record_id, kind=TextKind.RTF, data=rtf)
        if image is not None:
            record.image = ImageContent(
                id=None,
                clipboard_id=record_id,
                data=image,
                thumbnail=base64.b64encode(THUMBNAIL_BYTES).decode("ascii"),
                extension="png",
                width=10,
                height=10,
                size=str(len(image)),
            )
        for name, data, extension, mime_type in files or []:
            record.files.append(FileAttachment(
                id=None,
                clipboard_id=record_id,
                name=name,
                data=data,
                extension=extension,
                mime_type=mime_type,
                size=len(data),
            ))
        return record

    return _make_record


@pytest.fixture
def make_encrypted(keystore, make_record):
    """Factory fixture returning records sealed with the ``keystore`` key."""
    transformer = ClipboardTransformer(keystore)

    def _make_encrypted(**kwargs) -> ClipboardRecord:
        return transformer.encrypt_one(make_record(**kwargs))

    return _make_encrypted
