"""
Upload orchestration: validate, store the PDF, create the extraction record.

The pipeline is strictly sequential. The blob write must succeed before a
record may reference it, and a record that cannot be inserted must not leave
its blob behind: the just-stored object is removed before the failure is
reported.

The put and the insert run as shielded tasks. When the caller stops waiting
(timeout or cancellation) the compensation first lets them settle, then
undoes whatever they actually wrote.
"""

import asyncio
import logging
import re
import time
from collections.abc import Callable

from ..config import Settings
from ..exceptions import InvalidInputError, RecordError, StorageError
from ..models import ExtractionRecord, NewExtraction
from ..models_db import ExtractionStatus
from .record_store import RecordStore
from .storage_service import BlobStore

logger = logging.getLogger(__name__)

UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9.-]")


def sanitize_filename(filename: str) -> str:
    """Replace every character outside ``[A-Za-z0-9.-]`` with ``_``."""
    return UNSAFE_FILENAME_CHARS.sub("_", filename)


def build_storage_path(user_id: str, filename: str, timestamp_ms: int) -> str:
    """
    Derive the object key for an upload.

    The millisecond timestamp makes the key unique per user without any
    coordination between concurrent requests.
    """
    return f"{user_id}/{timestamp_ms}-{sanitize_filename(filename)}"


def current_millis() -> int:
    return time.time_ns() // 1_000_000


def validate_upload(
    data: bytes | None,
    content_type: str | None,
    size: int | None,
    accepted_content_type: str = "application/pdf",
    max_bytes: int = 20 * 1024 * 1024,
) -> None:
    """
    Check an inbound file before anything is written.

    Raises:
        InvalidInputError: If the file is missing, is not a PDF, or is too large.
    """
    if data is None:
        raise InvalidInputError("No file provided")

    if content_type != accepted_content_type:
        raise InvalidInputError("Invalid file type. Only PDF files are accepted.")

    declared_size = len(data) if size is None else size
    if declared_size > max_bytes or len(data) > max_bytes:
        raise InvalidInputError(
            f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB."
        )


class UploadService:
    """Runs one upload from validation to a pending extraction record."""

    def __init__(
        self,
        blob_store: BlobStore,
        record_store: RecordStore,
        settings: Settings,
        clock: Callable[[], int] = current_millis,
    ):
        self.blob_store = blob_store
        self.record_store = record_store
        self.settings = settings
        self.clock = clock

    async def upload(
        self,
        user_id: str,
        data: bytes | None,
        content_type: str | None,
        filename: str | None,
        size: int | None = None,
    ) -> ExtractionRecord:
        """
        Store an uploaded PDF and create its extraction record.

        Args:
            user_id: Authenticated owner of the upload.
            data: Raw file bytes, or None when no file was sent.
            content_type: Declared MIME type.
            filename: Declared (untrusted) filename.
            size: Declared size in bytes.

        Returns:
            The stored extraction record with status ``pending``.

        Raises:
            InvalidInputError: If the file fails validation (nothing is written).
            StorageError: If the blob could not be stored.
            RecordError: If the record insert failed (the blob has been removed).
        """
        validate_upload(
            data,
            content_type,
            size,
            accepted_content_type=self.settings.accepted_content_type,
            max_bytes=self.settings.max_upload_bytes,
        )
        if not filename:
            raise InvalidInputError("No filename provided")

        storage_path = build_storage_path(user_id, filename, self.clock())
        await self._store_blob(storage_path, data, content_type)

        new_record = NewExtraction(
            user_id=user_id,
            filename=filename,
            storage_path=storage_path,
            status=ExtractionStatus.PENDING,
        )
        insert = asyncio.ensure_future(self.record_store.insert(new_record))
        try:
            record = await asyncio.wait_for(
                asyncio.shield(insert),
                timeout=self.settings.database_timeout_seconds,
            )
        except asyncio.CancelledError:
            logger.warning("Upload cancelled before %s was recorded", storage_path)
            await asyncio.shield(self._undo_insert(storage_path, insert))
            raise
        except Exception as e:
            logger.error("Database insert error for %s: %s", storage_path, e)
            await asyncio.shield(self._undo_insert(storage_path, insert))
            raise RecordError("Failed to create extraction record") from e

        logger.info(
            "Created extraction %s for user %s (%s, %d bytes)",
            record.id,
            user_id,
            storage_path,
            len(data),
        )
        return record

    async def _store_blob(self, storage_path: str, data: bytes, content_type: str) -> None:
        put = asyncio.ensure_future(
            self.blob_store.put(storage_path, data, content_type, overwrite=False)
        )
        try:
            await asyncio.wait_for(
                asyncio.shield(put),
                timeout=self.settings.storage_timeout_seconds,
            )
        except asyncio.CancelledError:
            logger.warning("Upload cancelled while storing %s", storage_path)
            await asyncio.shield(self._undo_put(storage_path, put))
            raise
        except asyncio.TimeoutError as e:
            logger.error("Storage upload to %s timed out", storage_path)
            await asyncio.shield(self._undo_put(storage_path, put))
            raise StorageError("Failed to upload file") from e
        except Exception as e:
            logger.error("Storage upload error for %s: %s", storage_path, e)
            raise StorageError("Failed to upload file") from e

    async def _undo_put(self, storage_path: str, put: asyncio.Future) -> None:
        """Remove the blob of an abandoned put once the put has settled."""
        # The write may still land after the caller stopped waiting
        await asyncio.wait({put})
        if put.cancelled() or put.exception() is not None:
            return
        await self._discard_blob(storage_path)

    async def _undo_insert(self, storage_path: str, insert: asyncio.Future) -> None:
        """
        Compensate a failed insert once it has settled.

        An insert that outlived its timeout may still commit; that record is
        removed first, and the blob is kept if the record cannot be removed.
        """
        await asyncio.wait({insert})
        if not insert.cancelled() and insert.exception() is None:
            late_record = insert.result()
            logger.warning("Extraction %s was recorded after the upload failed", late_record.id)
            try:
                await self.record_store.discard(late_record.id)
            except Exception:
                logger.exception(
                    "Failed to remove late extraction %s; keeping blob %s",
                    late_record.id,
                    storage_path,
                )
                return
        await self._discard_blob(storage_path)

    async def _discard_blob(self, storage_path: str) -> None:
        """Best-effort removal of a blob that no record will reference."""
        try:
            await asyncio.wait_for(
                self.blob_store.remove(storage_path),
                timeout=self.settings.storage_timeout_seconds,
            )
        except Exception:
            logger.exception("Failed to remove orphaned blob %s", storage_path)
        else:
            logger.info("Removed orphaned blob %s", storage_path)
