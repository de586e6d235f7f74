"""
Durable extraction and quote records.

The services depend on the ``RecordStore`` and ``QuoteStore`` protocols; the
SQLAlchemy implementations below open one session per call and run it in
the threadpool so the event loop never blocks on the database.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Protocol

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session, sessionmaker

from ..models import ExtractionRecord, NewExtraction, NewQuote, QuoteRecord
from ..models_db import ExtractionRow, ExtractionStatus, QuoteRow, QuoteStatus

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """Table of extraction records."""

    async def insert(self, record: NewExtraction) -> ExtractionRecord: ...

    async def get(self, extraction_id: uuid.UUID) -> ExtractionRecord | None: ...

    async def list_for_user(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> list[ExtractionRecord]: ...

    async def set_status(self, extraction_id: uuid.UUID, status: ExtractionStatus) -> None: ...

    async def update_extracted_data(
        self, extraction_id: uuid.UUID, extracted_data: dict[str, Any]
    ) -> ExtractionRecord | None: ...

    async def discard(self, extraction_id: uuid.UUID) -> None:
        """Remove a record; only used to undo an upload that failed."""
        ...


class QuoteStore(Protocol):
    """Table of submitted quotes."""

    async def insert(self, quote: NewQuote) -> QuoteRecord: ...

    async def mark_submitted(self, quote_id: uuid.UUID, job_id: str | None) -> None: ...

    async def mark_failed(self, quote_id: uuid.UUID, error: str) -> None: ...


class SqlRecordStore:
    """Extraction records persisted with SQLAlchemy."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    def _insert(self, record: NewExtraction) -> ExtractionRecord:
        with self.session_factory() as db:
            row = ExtractionRow(**record.model_dump())
            db.add(row)
            db.commit()
            db.refresh(row)
            return ExtractionRecord.model_validate(row)

    async def insert(self, record: NewExtraction) -> ExtractionRecord:
        return await run_in_threadpool(self._insert, record)

    def _get(self, extraction_id: uuid.UUID) -> ExtractionRecord | None:
        with self.session_factory() as db:
            row = db.get(ExtractionRow, extraction_id)
            return ExtractionRecord.model_validate(row) if row else None

    async def get(self, extraction_id: uuid.UUID) -> ExtractionRecord | None:
        return await run_in_threadpool(self._get, extraction_id)

    def _list_for_user(self, user_id: str, limit: int, offset: int) -> list[ExtractionRecord]:
        with self.session_factory() as db:
            rows = (
                db.query(ExtractionRow)
                .filter(ExtractionRow.user_id == user_id)
                .order_by(ExtractionRow.created_at.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            return [ExtractionRecord.model_validate(row) for row in rows]

    async def list_for_user(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> list[ExtractionRecord]:
        return await run_in_threadpool(self._list_for_user, user_id, limit, offset)

    def _set_status(self, extraction_id: uuid.UUID, status: ExtractionStatus) -> None:
        with self.session_factory() as db:
            row = db.get(ExtractionRow, extraction_id)
            if row is None:
                raise LookupError(f"Extraction {extraction_id} not found")
            row.status = status
            db.commit()

    async def set_status(self, extraction_id: uuid.UUID, status: ExtractionStatus) -> None:
        await run_in_threadpool(self._set_status, extraction_id, status)

    def _update_extracted_data(
        self, extraction_id: uuid.UUID, extracted_data: dict[str, Any]
    ) -> ExtractionRecord | None:
        with self.session_factory() as db:
            row = db.get(ExtractionRow, extraction_id)
            if row is None:
                return None
            row.extracted_data = extracted_data
            db.commit()
            db.refresh(row)
            return ExtractionRecord.model_validate(row)

    async def update_extracted_data(
        self, extraction_id: uuid.UUID, extracted_data: dict[str, Any]
    ) -> ExtractionRecord | None:
        """Store reviewed extraction data; returns None if the record is gone."""
        return await run_in_threadpool(self._update_extracted_data, extraction_id, extracted_data)

    def _discard(self, extraction_id: uuid.UUID) -> None:
        with self.session_factory() as db:
            row = db.get(ExtractionRow, extraction_id)
            if row is not None:
                db.delete(row)
                db.commit()

    async def discard(self, extraction_id: uuid.UUID) -> None:
        await run_in_threadpool(self._discard, extraction_id)


class SqlQuoteStore:
    """Quote records persisted with SQLAlchemy."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    def _insert(self, quote: NewQuote) -> QuoteRecord:
        with self.session_factory() as db:
            row = QuoteRow(**quote.model_dump(), status=QuoteStatus.PENDING)
            db.add(row)
            db.commit()
            db.refresh(row)
            return QuoteRecord.model_validate(row)

    async def insert(self, quote: NewQuote) -> QuoteRecord:
        return await run_in_threadpool(self._insert, quote)

    def _update(self, quote_id: uuid.UUID, **values) -> None:
        with self.session_factory() as db:
            row = db.get(QuoteRow, quote_id)
            if row is None:
                raise LookupError(f"Quote {quote_id} not found")
            for key, value in values.items():
                setattr(row, key, value)
            db.commit()

    async def mark_submitted(self, quote_id: uuid.UUID, job_id: str | None) -> None:
        await run_in_threadpool(
            self._update,
            quote_id,
            status=QuoteStatus.PROCESSING,
            rpa_job_id=job_id,
            rpa_started_at=datetime.now(timezone.utc),
        )

    async def mark_failed(self, quote_id: uuid.UUID, error: str) -> None:
        await run_in_threadpool(
            self._update,
            quote_id,
            status=QuoteStatus.FAILED,
            rpa_error=error,
        )
