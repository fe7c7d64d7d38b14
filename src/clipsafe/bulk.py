import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from clipsafe.config import (
    DECRYPTION_PROGRESS_LABEL,
    DOWNLOAD_PROGRESS_LABEL,
    ENCRYPTION_PROGRESS_LABEL,
    RESUME_SYNC_DELAY,
)
from clipsafe.errors import (
    NO_ENCRYPTION_KEY_SET,
    REMOTE_FETCH_FAILED,
    SYNC_STOP_FAILED,
    CommandError,
    EncryptionError,
    key_errors_as_command,
)
from clipsafe.events import EventBus
from clipsafe.keystore import KeyStore
from clipsafe.models import ClipboardRecord, RemoteClipboardSummary
from clipsafe.storage import StorageManager
from clipsafe.sync import SyncManager, SyncProvider
from clipsafe.transform import ClipboardTransformer

logger = logging.getLogger(__name__)


@dataclass
class BulkResult:
    processed: int = 0
    transformed: list[int] = field(default_factory=list)
    deleted: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)
    skipped_downloads: list[str] = field(default_factory=list)


class BulkReencryptOrchestrator:
    """Rewrites the encryption state of every stored clipboard.

    Records are processed one at a time, in order, with a progress event
    before each one. A record whose fields cannot be transformed is handled
    on its own (purged on decrypt, left as is on encrypt); only missing keys,
    lock failures and the remote manifest fetch abort a batch.
    """

    def __init__(
        self,
        keystore: KeyStore,
        storage: StorageManager,
        events: EventBus,
        sync_manager: SyncManager | None = None,
        provider: SyncProvider | None = None,
        resume_delay: float = RESUME_SYNC_DELAY,
    ):
        self.keystore = keystore
        self.storage = storage
        self.events = events
        self.transformer = ClipboardTransformer(keystore)
        self._sync_manager = sync_manager
        self._provider = provider
        self._resume_delay = resume_delay
        self.resume_task: asyncio.Task | None = None

    async def decrypt_all_clipboards(self) -> BulkResult:
        return await self._run(
            encrypted=True,
            label=DECRYPTION_PROGRESS_LABEL,
            transform=self.transformer.decrypt_one,
            purge_failed=True,
        )

    async def encrypt_all_clipboards(self) -> BulkResult:
        return await self._run(
            encrypted=False,
            label=ENCRYPTION_PROGRESS_LABEL,
            transform=self.transformer.encrypt_one,
            purge_failed=False,
        )

    def cancel_resume(self) -> None:
        if self.resume_task is not None and not self.resume_task.done():
            self.resume_task.cancel()

    async def _run(
        self,
        encrypted: bool,
        label: str,
        transform: Callable[[ClipboardRecord], ClipboardRecord],
        purge_failed: bool,
    ) -> BulkResult:
        with key_errors_as_command():
            if not self.keystore.is_key_set():
                raise CommandError(NO_ENCRYPTION_KEY_SET)

        settings = self.storage.get_global_settings()
        sync_paused = await self._pause_sync(settings.sync)
        try:
            records = self.storage.find_encrypted_records() if encrypted else self.storage.find_plaintext_records()
            remotes: list[RemoteClipboardSummary] = []
            skipped: list[str] = []
            if settings.sync and self._provider is not None:
                remotes, downloaded, skipped = await self._gather_remote(records, encrypted)
                records.extend(downloaded)

            result = await self._process(records, remotes, label, transform, purge_failed)
            result.skipped_downloads = skipped
        finally:
            if sync_paused:
                self._schedule_resume()

        logger.info(
            "Bulk pass finished: %d processed, %d transformed, %d deleted, %d failed",
            result.processed, len(result.transformed), len(result.deleted), len(result.failed),
        )
        return result

    async def _pause_sync(self, sync_enabled: bool) -> bool:
        if not sync_enabled:
            return False
        if self._sync_manager is None:
            logger.warning("Sync is enabled but no sync manager is available")
            return False
        try:
            await self._sync_manager.stop()
        except Exception as e:
            logger.exception("Failed to stop sync before bulk pass")
            raise CommandError(SYNC_STOP_FAILED, str(e)) from e
        return True

    async def _gather_remote(
        self, local: list[ClipboardRecord], encrypted: bool
    ) -> tuple[list[RemoteClipboardSummary], list[ClipboardRecord], list[str]]:
        try:
            remotes = await self._provider.fetch_all_clipboards()
        except Exception as e:
            logger.exception("Failed to fetch remote clipboards")
            raise CommandError(REMOTE_FETCH_FAILED, str(e)) from e

        local_ids = {r.id for r in local}
        downloaded: list[ClipboardRecord] = []
        skipped: list[str] = []
        total = len(remotes)
        for current, remote in enumerate(remotes, start=1):
            self.events.emit_progress(DOWNLOAD_PROGRESS_LABEL, total, current)
            if remote.encrypted != encrypted or remote.id in local_ids:
                continue
            try:
                downloaded.append(await self._provider.download_by_id(remote.provider_id))
            except Exception:
                logger.warning("Failed to download remote clipboard %s, skipping", remote.provider_id, exc_info=True)
                skipped.append(remote.provider_id)
        return remotes, downloaded, skipped

    async def _process(
        self,
        records: list[ClipboardRecord],
        remotes: list[RemoteClipboardSummary],
        label: str,
        transform: Callable[[ClipboardRecord], ClipboardRecord],
        purge_failed: bool,
    ) -> BulkResult:
        remote_by_id = {r.id: r for r in remotes}
        result = BulkResult()
        total = len(records)

        for current, record in enumerate(records, start=1):
            self.events.emit_progress(label, total, current)
            result.processed += 1
            remote = remote_by_id.get(record.id)

            try:
                with key_errors_as_command():
                    updated = transform(record)
            except EncryptionError as e:
                logger.error("Failed to transform clipboard %s: %s", record.id, e)
                if purge_failed:
                    await self._purge(record, remote)
                    result.deleted.append(record.id)
                else:
                    result.failed.append(record.id)
                continue

            self.storage.upsert(updated)
            result.transformed.append(record.id)
            if remote is not None:
                await self._push_remote(updated, remote)

        return result

    async def _purge(self, record: ClipboardRecord, remote: RemoteClipboardSummary | None) -> None:
        self.storage.delete_by_id(record.id)
        if remote is None or self._provider is None:
            return
        try:
            await self._provider.mark_for_deletion(remote)
        except Exception:
            logger.warning("Failed to mark remote clipboard %s for deletion", remote.provider_id, exc_info=True)

    async def _push_remote(self, record: ClipboardRecord, remote: RemoteClipboardSummary) -> None:
        try:
            await self._provider.update_clipboard(record, remote)
        except Exception:
            logger.warning("Failed to update remote clipboard %s", remote.provider_id, exc_info=True)

    def _schedule_resume(self) -> None:
        self.cancel_resume()
        self.resume_task = asyncio.get_running_loop().create_task(self._resume_sync())

    async def _resume_sync(self) -> None:
        # Delay lets local deletions and tombstones settle before the sync loop reads them.
        await asyncio.sleep(self._resume_delay)
        try:
            await self._sync_manager.start()
        except Exception:
            logger.exception("Failed to resume sync after bulk pass")
