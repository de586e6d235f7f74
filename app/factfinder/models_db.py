"""
SQLAlchemy database models for the fact-finder intake service.

Defines the ORM rows for uploaded documents (extractions) and the quotes
submitted from them.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    ForeignKey,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExtractionStatus(str, enum.Enum):
    """Lifecycle status of an uploaded document."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    QUOTED = "quoted"


class InsuranceType(str, enum.Enum):
    """Kind of insurance a fact-finder was extracted for."""

    HOME = "home"
    AUTO = "auto"
    BOTH = "both"
    GENERIC = "generic"


class QuoteStatus(str, enum.Enum):
    """RPA processing status of a submitted quote."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


def _values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class ExtractionRow(Base):
    """
    One user-submitted document and its processing lifecycle.

    Only ``pending`` is written by the upload pipeline; the extraction
    engine owns the transitions that follow.
    """

    __tablename__ = "extractions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    filename: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
    )
    storage_path: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
        unique=True,
        comment="Object key: {user_id}/{timestamp}-{sanitized filename}",
    )
    insurance_type: Mapped[InsuranceType] = mapped_column(
        Enum(InsuranceType, values_callable=_values),
        default=InsuranceType.GENERIC,
        nullable=False,
        index=True,
    )
    extracted_data: Mapped[dict | None] = mapped_column(
        JSON,
        nullable=True,
        comment="Data written by the extraction engine",
    )
    status: Mapped[ExtractionStatus] = mapped_column(
        Enum(ExtractionStatus, values_callable=_values),
        default=ExtractionStatus.PENDING,
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    # Relationships
    quotes: Mapped[list["QuoteRow"]] = relationship(
        "QuoteRow",
        back_populates="extraction",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<ExtractionRow(id={self.id}, filename='{self.filename}', status={self.status.value})>"


class QuoteRow(Base):
    """
    A quote request prepared from a reviewed extraction.

    ``quote_data`` holds the normalized webhook payload exactly as delivered.
    """

    __tablename__ = "quotes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    extraction_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("extractions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    quote_type: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
    )
    quote_data: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )
    status: Mapped[QuoteStatus] = mapped_column(
        Enum(QuoteStatus, values_callable=_values),
        default=QuoteStatus.PENDING,
        nullable=False,
        index=True,
    )

    # RPA execution tracking
    rpa_job_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    rpa_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    rpa_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    rpa_error: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    # Relationships
    extraction: Mapped[ExtractionRow] = relationship(
        "ExtractionRow",
        back_populates="quotes",
    )

    def __repr__(self) -> str:
        return f"<QuoteRow(id={self.id}, type='{self.quote_type}', status={self.status.value})>"
