from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class ContentType(str, Enum):
    TEXT = "text"
    HTML = "html"
    RTF = "rtf"
    IMAGE = "image"
    FILES = "files"


class TextKind(str, Enum):
    """Which text slot of a record a TextContent occupies."""

    TEXT = "text"
    HTML = "html"
    RTF = "rtf"


@dataclass
class TextContent:
    id: int | None
    clipboard_id: int | None
    kind: TextKind
    data: str


@dataclass
class ImageContent:
    id: int | None
    clipboard_id: int | None
    data: bytes
    thumbnail: str | None = None
    extension: str | None = None
    width: int | None = None
    height: int | None = None
    size: str | None = None


@dataclass
class FileAttachment:
    id: int | None
    clipboard_id: int | None
    name: str
    data: bytes
    extension: str | None = None
    mime_type: str | None = None
    size: int | None = None


@dataclass
class ClipboardRecord:
    id: int | None
    content_type: ContentType
    encrypted: bool = False
    created_date: datetime = field(default_factory=datetime.now)
    star: bool | None = None
    text: TextContent | None = None
    html: TextContent | None = None
    rtf: TextContent | None = None
    image: ImageContent | None = None
    files: list[FileAttachment] = field(default_factory=list)

    def text_slots(self) -> list[TextContent]:
        return [t for t in (self.text, self.html, self.rtf) if t is not None]


@dataclass
class RemoteClipboardSummary:
    """What the sync provider reports about one remote clipboard."""

    id: int
    provider_id: str
    encrypted: bool


@dataclass
class Settings:
    sync: bool = False
    encryption: bool = False


@dataclass
class Progress:
    label: str
    total: int
    current: int
