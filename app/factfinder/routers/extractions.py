"""
Router for extraction record retrieval.

Handles:
- Listing the caller's extractions, newest first
- Fetching a single extraction by ID
- Saving reviewed extraction data
"""

import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ..auth import CurrentUser, get_current_user
from ..dependencies import get_record_store
from ..exceptions import InvalidInputError, NotFoundError, RecordError
from ..models import ExtractionListResponse, ExtractionUpdateRequest, UploadResponse
from ..services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/extractions", tags=["extractions"])


@router.get("", response_model=ExtractionListResponse)
async def list_extractions(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    record_store: Annotated[RecordStore, Depends(get_record_store)],
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> ExtractionListResponse:
    """List the caller's extraction records."""
    extractions = await record_store.list_for_user(user.id, limit=limit, offset=offset)
    return ExtractionListResponse(extractions=extractions, total=len(extractions))


@router.get("/{extraction_id}", response_model=UploadResponse)
async def get_extraction(
    extraction_id: str,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    record_store: Annotated[RecordStore, Depends(get_record_store)],
) -> UploadResponse:
    """
    Fetch one extraction record.

    Records owned by other users are reported as not found.
    """
    try:
        extraction_uuid = uuid.UUID(extraction_id)
    except ValueError:
        raise InvalidInputError("Invalid extraction ID format")

    extraction = await record_store.get(extraction_uuid)
    if extraction is None or extraction.user_id != user.id:
        raise NotFoundError("Extraction not found")

    return UploadResponse(extraction=extraction)


@router.patch("/{extraction_id}", response_model=UploadResponse)
async def update_extraction(
    extraction_id: str,
    update: ExtractionUpdateRequest,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    record_store: Annotated[RecordStore, Depends(get_record_store)],
) -> UploadResponse:
    """Replace the extracted data of one of the caller's records after review."""
    try:
        extraction_uuid = uuid.UUID(extraction_id)
    except ValueError:
        raise InvalidInputError("Invalid extraction ID format")

    extraction = await record_store.get(extraction_uuid)
    if extraction is None or extraction.user_id != user.id:
        raise NotFoundError("Extraction not found")

    try:
        updated = await record_store.update_extracted_data(extraction_uuid, update.extracted_data)
    except Exception as e:
        logger.error("Failed to update extraction %s: %s", extraction_uuid, e)
        raise RecordError("Failed to update extraction") from e
    if updated is None:
        raise NotFoundError("Extraction not found")

    logger.info("Updated extracted data for %s", extraction_uuid)
    return UploadResponse(extraction=updated)
