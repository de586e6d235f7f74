"""
Services package for the fact-finder intake application.

Contains:
- storage_service: Supabase Storage blob store
- record_store: SQLAlchemy-backed extraction and quote records
- upload_service: upload-to-extraction orchestration
- webhook_service: RPA webhook delivery
- quote_service: quote submission from reviewed extractions
"""

from .quote_service import QuoteService
from .record_store import SqlQuoteStore, SqlRecordStore
from .storage_service import SupabaseStorage
from .upload_service import UploadService
from .webhook_service import SubmissionResult, WebhookService

__all__ = [
    "QuoteService",
    "SqlQuoteStore",
    "SqlRecordStore",
    "SubmissionResult",
    "SupabaseStorage",
    "UploadService",
    "WebhookService",
]
