"""FastAPI dependency providers for the capability implementations."""

from fastapi import Depends

from .config import Settings, get_settings
from .database import get_session_factory
from .services.quote_service import QuoteService
from .services.record_store import QuoteStore, RecordStore, SqlQuoteStore, SqlRecordStore
from .services.storage_service import BlobStore, SupabaseStorage
from .services.upload_service import UploadService
from .services.webhook_service import WebhookService


def get_blob_store(settings: Settings = Depends(get_settings)) -> BlobStore:
    return SupabaseStorage.from_settings(settings)


def get_record_store() -> RecordStore:
    return SqlRecordStore(get_session_factory())


def get_quote_store() -> QuoteStore:
    return SqlQuoteStore(get_session_factory())


def get_webhook_service(settings: Settings = Depends(get_settings)) -> WebhookService | None:
    return WebhookService.from_settings(settings)


def get_upload_service(
    blob_store: BlobStore = Depends(get_blob_store),
    record_store: RecordStore = Depends(get_record_store),
    settings: Settings = Depends(get_settings),
) -> UploadService:
    return UploadService(blob_store, record_store, settings)


def get_quote_service(
    record_store: RecordStore = Depends(get_record_store),
    quote_store: QuoteStore = Depends(get_quote_store),
    webhook: WebhookService | None = Depends(get_webhook_service),
    settings: Settings = Depends(get_settings),
) -> QuoteService:
    return QuoteService(record_store, quote_store, settings, webhook=webhook)
