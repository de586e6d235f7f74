"""
Pydantic models for records and the HTTP API.

Defines the stored-record views handed between services and the
request/response bodies of the endpoints.
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models_db import ExtractionStatus, InsuranceType, QuoteStatus


# =============================================================================
# Records
# =============================================================================


class NewExtraction(BaseModel):
    """Values for an extraction record about to be inserted."""

    user_id: str
    filename: str
    storage_path: str
    status: ExtractionStatus = ExtractionStatus.PENDING
    insurance_type: InsuranceType = InsuranceType.GENERIC


class ExtractionRecord(BaseModel):
    """An extraction record as stored, including store-assigned fields."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID = Field(..., description="Extraction ID (UUID)")
    user_id: str = Field(..., description="Owner of the uploaded document")
    filename: str = Field(..., description="Original filename as uploaded")
    storage_path: str = Field(..., description="Object key in blob storage")
    status: ExtractionStatus = Field(..., description="Processing status")
    insurance_type: InsuranceType = Field(
        default=InsuranceType.GENERIC,
        description="Insurance line the document was extracted for",
    )
    extracted_data: dict[str, Any] | None = Field(
        default=None,
        description="Data written by the extraction engine",
    )
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime | None = Field(default=None, description="Last update timestamp")


class NewQuote(BaseModel):
    """Values for a quote record about to be inserted."""

    id: uuid.UUID
    user_id: str
    extraction_id: uuid.UUID
    quote_type: str
    quote_data: dict[str, Any]


class QuoteRecord(BaseModel):
    """A quote record as stored."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: str
    extraction_id: uuid.UUID
    quote_type: str
    quote_data: dict[str, Any]
    status: QuoteStatus
    rpa_job_id: str | None = None
    rpa_started_at: datetime | None = None
    rpa_completed_at: datetime | None = None
    rpa_error: str | None = None
    created_at: datetime


# =============================================================================
# API
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    message: str | None = Field(default=None)
    version: str = Field(default="1.0.0")


class ErrorResponse(BaseModel):
    """Body returned for every categorized failure."""

    error: str = Field(..., description="Machine-readable error category")
    detail: str = Field(..., description="Concise human-readable message")
    errors: list[str] | None = Field(
        default=None,
        description="Complete list of violations, when there are several",
    )


class UploadResponse(BaseModel):
    """Response model for the upload endpoint."""

    extraction: ExtractionRecord = Field(..., description="The created extraction record")


class ExtractionListResponse(BaseModel):
    """Response model for listing a user's extractions."""

    extractions: list[ExtractionRecord] = Field(default_factory=list)
    total: int = Field(..., ge=0, description="Total number of extractions returned")


class CamelModel(BaseModel):
    """Request/response bodies exchanged with the review frontend."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuoteSubmitRequest(CamelModel):
    """
    Reviewed quote data for one extraction.

    Everything except ``extractionId`` is passed through untyped so that every
    schema violation, a missing section included, is reported together by
    payload validation rather than one request field at a time.
    """

    extraction_id: uuid.UUID
    quote_type: Any = None
    personal: Any = None
    home: Any = None
    auto: Any = None


class ExtractionUpdateRequest(BaseModel):
    """Reviewed extraction data to store on a record."""

    extracted_data: dict[str, Any] = Field(..., description="Reviewed extraction data")


class QuoteSubmitResponse(CamelModel):
    """Outcome of a quote submission."""

    success: bool
    quote_id: str
    job_id: str | None = None
    message: str | None = None
    webhook_payload: dict[str, Any] | None = None


class ValidatePayloadResponse(CamelModel):
    """Result of validating a payload without submitting it."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
