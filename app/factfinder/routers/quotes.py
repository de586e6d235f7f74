"""
Router for quote validation and submission.

Handles:
- Dry-run validation of a webhook payload
- Submission of reviewed quote data to the RPA webhook
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends

from ..auth import CurrentUser, get_current_user
from ..dependencies import get_quote_service
from ..models import (
    ErrorResponse,
    QuoteSubmitRequest,
    QuoteSubmitResponse,
    ValidatePayloadResponse,
)
from ..services.quote_service import QuoteService
from ..webhook import collect_payload_errors

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.post("/validate", response_model=ValidatePayloadResponse)
async def validate_quote_payload(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    payload: Annotated[Any, Body(description="Webhook payload to check")],
) -> ValidatePayloadResponse:
    """Report every schema violation in a payload without submitting it."""
    errors = collect_payload_errors(payload)
    if errors:
        logger.info("Payload validation for user %s found %d errors", user.id, len(errors))
    return ValidatePayloadResponse(valid=not errors, errors=errors)


@router.post(
    "/submit",
    response_model=QuoteSubmitResponse,
    response_model_by_alias=True,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def submit_quote(
    request: QuoteSubmitRequest,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    quote_service: Annotated[QuoteService, Depends(get_quote_service)],
) -> QuoteSubmitResponse:
    """
    Submit reviewed quote data for one extraction.

    The payload is validated in full before a quote record is written or
    anything is sent to the webhook.
    """
    return await quote_service.submit(user.id, request)
