"""
Quote submission: turn reviewed data into a delivered webhook payload.

Handles:
- Ownership check of the source extraction
- Payload assembly and validation
- Quote record bookkeeping around the webhook call
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from ..config import Settings
from ..exceptions import (
    DeliveryError,
    ForbiddenError,
    NotFoundError,
    RecordError,
    RejectedByReceiverError,
)
from ..models import NewQuote, QuoteSubmitRequest, QuoteSubmitResponse
from ..models_db import ExtractionStatus
from ..webhook import validate_payload
from .record_store import QuoteStore, RecordStore
from .webhook_service import WebhookService

logger = logging.getLogger(__name__)


class QuoteService:
    """Submits one reviewed quote per call."""

    def __init__(
        self,
        record_store: RecordStore,
        quote_store: QuoteStore,
        settings: Settings,
        webhook: WebhookService | None = None,
    ):
        self.record_store = record_store
        self.quote_store = quote_store
        self.settings = settings
        self.webhook = webhook

    async def submit(self, user_id: str, request: QuoteSubmitRequest) -> QuoteSubmitResponse:
        """
        Validate, record and deliver a quote.

        Raises:
            NotFoundError: If the extraction does not exist.
            ForbiddenError: If the extraction belongs to another user.
            InvalidPayloadError: If the assembled payload is invalid.
            RecordError: If the quote or the extraction status could not be written.
            DeliveryError: If the webhook could not be reached.
            RejectedByReceiverError: If the webhook refused the payload.
        """
        extraction = await self.record_store.get(request.extraction_id)
        if extraction is None:
            raise NotFoundError("Extraction not found")
        if extraction.user_id != user_id:
            raise ForbiddenError("Unauthorized access to extraction")

        quote_id = uuid.uuid4()
        raw: dict[str, Any] = {
            "metadata": {
                "quoteId": str(quote_id),
                "extractionId": str(extraction.id),
                "userId": user_id,
                "filename": extraction.filename,
                "submittedAt": datetime.now(timezone.utc),
                "version": self.settings.payload_version,
            },
        }
        # Absent fields stay absent so validation names them
        if request.quote_type is not None:
            raw["metadata"]["quoteType"] = request.quote_type
        if request.personal is not None:
            raw["personal"] = request.personal
        if request.home is not None:
            raw["home"] = request.home
        if request.auto is not None:
            raw["auto"] = request.auto

        payload = validate_payload(raw)
        wire = payload.to_wire()

        try:
            await self.quote_store.insert(
                NewQuote(
                    id=quote_id,
                    user_id=user_id,
                    extraction_id=extraction.id,
                    quote_type=payload.metadata.quote_type.value,
                    quote_data=wire,
                )
            )
        except Exception as e:
            logger.error("Failed to create quote for extraction %s: %s", extraction.id, e)
            raise RecordError("Failed to create quote record") from e

        try:
            await self.record_store.set_status(extraction.id, ExtractionStatus.QUOTED)
        except Exception as e:
            logger.error("Failed to mark extraction %s as quoted: %s", extraction.id, e)
            # Close the quote so a retry does not leave a second pending one
            await self._record_failure(quote_id, RecordError("Extraction status update failed"))
            raise RecordError("Failed to update extraction status") from e

        logger.info("Created quote %s for extraction %s", quote_id, extraction.id)

        if self.webhook is None:
            return QuoteSubmitResponse(
                success=True,
                quote_id=str(quote_id),
                message="Quote submitted successfully (webhook payload ready)",
                webhook_payload=wire,
            )

        try:
            result = await self.webhook.submit(payload)
        except (DeliveryError, RejectedByReceiverError) as e:
            await self._record_failure(quote_id, e)
            raise

        try:
            await self.quote_store.mark_submitted(quote_id, result.job_id)
        except Exception:
            # The receiver already holds the job; report it rather than fail
            logger.exception("Failed to store job %s for quote %s", result.job_id, quote_id)

        return QuoteSubmitResponse(
            success=True,
            quote_id=str(quote_id),
            job_id=result.job_id,
            message=result.message or "Quote submitted and sent to webhook",
            webhook_payload=wire,
        )

    async def _record_failure(self, quote_id: uuid.UUID, error: Exception) -> None:
        detail = str(error)
        errors = getattr(error, "errors", None)
        if errors:
            detail = f"{detail}: {'; '.join(errors)}"
        try:
            await self.quote_store.mark_failed(quote_id, detail)
        except Exception:
            logger.exception("Failed to mark quote %s as failed", quote_id)
