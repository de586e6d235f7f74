"""
Router for the document upload endpoint.

Handles:
- PDF fact-finder upload into blob storage plus a pending extraction record
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile

from ..auth import CurrentUser, get_current_user
from ..dependencies import get_upload_service
from ..models import ErrorResponse, UploadResponse
from ..services.upload_service import UploadService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["upload"])


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def upload_document(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    upload_service: Annotated[UploadService, Depends(get_upload_service)],
    file: Annotated[UploadFile | None, File(description="PDF fact-finder to ingest")] = None,
) -> UploadResponse:
    """
    Upload a PDF and create its extraction record.

    The file is stored under ``{user_id}/{timestamp}-{sanitized name}`` and
    a record with status ``pending`` is returned for tracking.
    """
    if file is None:
        extraction = await upload_service.upload(user.id, None, None, None)
        return UploadResponse(extraction=extraction)

    try:
        data = await file.read()
        logger.info("Received upload %s (%d bytes) from user %s", file.filename, len(data), user.id)
        extraction = await upload_service.upload(
            user.id,
            data,
            file.content_type,
            file.filename,
            size=file.size,
        )
    finally:
        await file.close()

    return UploadResponse(extraction=extraction)
