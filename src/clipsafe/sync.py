"""Contracts the encryption core expects from the sync layer.

The transport is provided elsewhere; these protocols only name the calls the
bulk orchestrator makes. Every method is a coroutine.
"""

from typing import Protocol

from clipsafe.models import ClipboardRecord, RemoteClipboardSummary


class SyncManager(Protocol):
    async def start(self) -> None: ...

    async def stop(self) -> None: ...


class SyncProvider(Protocol):
    async def fetch_all_clipboards(self) -> list[RemoteClipboardSummary]: ...

    async def download_by_id(self, provider_id: str) -> ClipboardRecord: ...

    async def update_clipboard(self, record: ClipboardRecord, remote: RemoteClipboardSummary) -> None: ...

    async def mark_for_deletion(self, remote: RemoteClipboardSummary) -> None: ...
