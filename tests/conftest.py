"""Pytest configuration and fixtures."""

import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.factfinder.auth import CurrentUser, get_current_user
from app.factfinder.config import Settings, get_settings
from app.factfinder.database import init_db
from app.factfinder.dependencies import (
    get_quote_service,
    get_record_store,
    get_upload_service,
)
from app.factfinder.exceptions import StorageError
from app.factfinder.main import app
from app.factfinder.models import (
    ExtractionRecord,
    NewExtraction,
    NewQuote,
    QuoteRecord,
)
from app.factfinder.models_db import ExtractionStatus, QuoteStatus
from app.factfinder.services.quote_service import QuoteService
from app.factfinder.services.upload_service import UploadService

FIXED_TIMESTAMP_MS = 1700000000000
TEST_USER_ID = "u123"


# =============================================================================
# In-memory capabilities
# =============================================================================


class InMemoryBlobStore:
    """Blob store double that records every call."""

    def __init__(self, fail_put: bool = False, fail_remove: bool = False):
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.put_calls: list[str] = []
        self.remove_calls: list[str] = []
        self.fail_put = fail_put
        self.fail_remove = fail_remove

    async def put(self, path: str, data: bytes, content_type: str, overwrite: bool = False) -> None:
        self.put_calls.append(path)
        if self.fail_put:
            raise StorageError("simulated storage outage")
        if path in self.objects and not overwrite:
            raise StorageError("object already exists")
        self.objects[path] = (data, content_type)

    async def remove(self, path: str) -> None:
        self.remove_calls.append(path)
        if self.fail_remove:
            raise RuntimeError("simulated remove failure")
        self.objects.pop(path, None)


class InMemoryRecordStore:
    """Record store double; ``fail_insert`` injects an insert fault."""

    def __init__(self, fail_insert: bool = False):
        self.records: dict[uuid.UUID, ExtractionRecord] = {}
        self.insert_calls = 0
        self.fail_insert = fail_insert

    async def insert(self, record: NewExtraction) -> ExtractionRecord:
        self.insert_calls += 1
        if self.fail_insert:
            raise RuntimeError("simulated database outage")
        stored = ExtractionRecord(
            id=uuid.uuid4(),
            created_at=datetime.now(timezone.utc),
            **record.model_dump(),
        )
        self.records[stored.id] = stored
        return stored

    async def get(self, extraction_id: uuid.UUID) -> ExtractionRecord | None:
        return self.records.get(extraction_id)

    async def list_for_user(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> list[ExtractionRecord]:
        owned = [r for r in self.records.values() if r.user_id == user_id]
        owned.sort(key=lambda r: r.created_at, reverse=True)
        return owned[offset : offset + limit]

    async def set_status(self, extraction_id: uuid.UUID, status: ExtractionStatus) -> None:
        record = self.records[extraction_id]
        self.records[extraction_id] = record.model_copy(update={"status": status})

    async def update_extracted_data(
        self, extraction_id: uuid.UUID, extracted_data: dict[str, Any]
    ) -> ExtractionRecord | None:
        record = self.records.get(extraction_id)
        if record is None:
            return None
        updated = record.model_copy(
            update={
                "extracted_data": copy.deepcopy(extracted_data),
                "updated_at": datetime.now(timezone.utc),
            }
        )
        self.records[extraction_id] = updated
        return updated

    async def discard(self, extraction_id: uuid.UUID) -> None:
        self.records.pop(extraction_id, None)

    def add(self, user_id: str = TEST_USER_ID, filename: str = "fact-finder.pdf") -> ExtractionRecord:
        """Seed a stored record directly."""
        record = ExtractionRecord(
            id=uuid.uuid4(),
            user_id=user_id,
            filename=filename,
            storage_path=f"{user_id}/{FIXED_TIMESTAMP_MS}-{filename}",
            status=ExtractionStatus.COMPLETED,
            created_at=datetime.now(timezone.utc),
        )
        self.records[record.id] = record
        return record


class InMemoryQuoteStore:
    """Quote store double."""

    def __init__(self):
        self.quotes: dict[uuid.UUID, QuoteRecord] = {}

    async def insert(self, quote: NewQuote) -> QuoteRecord:
        stored = QuoteRecord(
            **quote.model_dump(),
            status=QuoteStatus.PENDING,
            created_at=datetime.now(timezone.utc),
        )
        self.quotes[stored.id] = stored
        return stored

    async def mark_submitted(self, quote_id: uuid.UUID, job_id: str | None) -> None:
        self.quotes[quote_id] = self.quotes[quote_id].model_copy(
            update={"status": QuoteStatus.PROCESSING, "rpa_job_id": job_id}
        )

    async def mark_failed(self, quote_id: uuid.UUID, error: str) -> None:
        self.quotes[quote_id] = self.quotes[quote_id].model_copy(
            update={"status": QuoteStatus.FAILED, "rpa_error": error}
        )


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        supabase_jwt_secret="test-jwt-secret-with-enough-length-1234",
        webhook_url=None,
    )


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def quote_store() -> InMemoryQuoteStore:
    return InMemoryQuoteStore()


@pytest.fixture
def session_factory():
    """Session factory over a fresh in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    engine.dispose()


@pytest.fixture
def upload_service(
    blob_store: InMemoryBlobStore,
    record_store: InMemoryRecordStore,
    settings: Settings,
) -> UploadService:
    return UploadService(blob_store, record_store, settings, clock=lambda: FIXED_TIMESTAMP_MS)


@pytest.fixture
def quote_service(
    record_store: InMemoryRecordStore,
    quote_store: InMemoryQuoteStore,
    settings: Settings,
) -> QuoteService:
    return QuoteService(record_store, quote_store, settings)


@pytest.fixture
def client(
    upload_service: UploadService,
    record_store: InMemoryRecordStore,
    quote_service: QuoteService,
) -> Generator[TestClient, None, None]:
    """Test client authenticated as ``u123`` with in-memory capabilities."""
    app.dependency_overrides[get_current_user] = lambda: CurrentUser(id=TEST_USER_ID)
    app.dependency_overrides[get_upload_service] = lambda: upload_service
    app.dependency_overrides[get_record_store] = lambda: record_store
    app.dependency_overrides[get_quote_service] = lambda: quote_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(
    upload_service: UploadService,
    record_store: InMemoryRecordStore,
    quote_service: QuoteService,
    settings: Settings,
) -> Generator[TestClient, None, None]:
    """Test client with the real token check and in-memory capabilities."""
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_upload_service] = lambda: upload_service
    app.dependency_overrides[get_record_store] = lambda: record_store
    app.dependency_overrides[get_quote_service] = lambda: quote_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# =============================================================================
# Documents
# =============================================================================


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """A minimal PDF structure."""
    return b"""%PDF-1.4
1 0 obj
<< /Type /Catalog /Pages 2 0 R >>
endobj
2 0 obj
<< /Type /Pages /Kids [] /Count 0 >>
endobj
trailer
<< /Size 3 /Root 1 0 R >>
%%EOF"""


@pytest.fixture
def two_megabyte_pdf(sample_pdf_bytes: bytes) -> bytes:
    """A PDF padded to 2 MB."""
    return sample_pdf_bytes + b"\n%" + b"0" * (2 * 1000 * 1000 - len(sample_pdf_bytes) - 2)


# =============================================================================
# Webhook payloads
# =============================================================================


ADDRESS = {
    "street": "12 Elm St",
    "city": "Springfield",
    "state": "IL",
    "zipCode": "62704",
}

PERSONAL = {
    "firstName": "Jane",
    "lastName": "Doe",
    "dateOfBirth": "1985-04-12",
    "phone": "555-123-4567",
    "email": "jane.doe@example.com",
    "maritalStatus": "Married",
    "occupation": "Engineer",
    "spouseFirstName": "John",
    "spouseLastName": "Doe",
    "spouseDateOfBirth": "1984-09-30",
    "address": ADDRESS,
    "yearsAtCurrentAddress": 6,
}

HOME = {
    "property": {
        "yearBuilt": 1998,
        "squareFootage": 2400,
        "numberOfStories": 2,
        "bedroomCount": 4,
        "bathroomCount": "2.5",
        "dwellingType": "Single Family",
        "constructionStyle": "Colonial",
        "exteriorConstruction": "Vinyl Siding",
        "roofAge": 8,
        "roofConstruction": "Asphalt Shingle",
        "foundation": "Basement",
        "heatType": "Gas Forced Air",
        "condoOrTownhouse": False,
    },
    "occupancy": {
        "dwellingOccupancy": "Owner Occupied",
        "businessOnPremises": False,
        "shortTermRental": False,
        "numberOfFamilies": 1,
    },
    "safety": {
        "alarmSystem": True,
        "monitoredAlarm": True,
        "pool": False,
        "trampoline": False,
        "dog": True,
        "dogBreed": "Labrador",
    },
    "coverage": {
        "dwellingCoverage": "$450,000",
        "liabilityCoverage": "$300,000",
        "deductible": "$1,000",
    },
    "scheduledItems": {
        "jewelry": [{"description": "Engagement ring", "value": "$8,500"}],
    },
    "insurance": {
        "effectiveDate": "2025-01-01",
        "reasonForPolicy": "Existing Home",
        "currentlyInsured": "Yes - Different Carrier",
        "currentInsuranceCompany": "Acme Mutual",
        "escrowed": True,
    },
}

AUTO = {
    "effectiveDate": "2025-01-01",
    "garagingAddress": ADDRESS,
    "garagingAddressSameAsMailing": True,
    "rideShare": False,
    "delivery": False,
    "drivers": [
        {
            "firstName": "Jane",
            "lastName": "Doe",
            "dateOfBirth": "1985-04-12",
            "driversLicense": "D1234567",
            "licenseState": "IL",
            "relationship": "Primary Insured",
        }
    ],
    "vehicles": [
        {
            "year": 2021,
            "make": "Toyota",
            "model": "Camry",
            "vin": "4T1B11HK5MU000001",
            "usage": "Commute",
            "estimatedMileage": 12000,
            "ownership": "Financed",
            "comprehensiveDeductible": "$500",
            "collisionDeductible": "$1,000",
        }
    ],
    "coverage": {
        "bodilyInjury": "250/500",
        "propertyDamage": "100",
        "towing": True,
        "rental": False,
    },
    "priorInsurance": {
        "company": "Acme Mutual",
        "premium": "$1,240.00",
        "expirationDate": "2024-12-31",
    },
    "incidents": [],
}


@pytest.fixture
def personal_section() -> dict[str, Any]:
    return copy.deepcopy(PERSONAL)


@pytest.fixture
def home_section() -> dict[str, Any]:
    return copy.deepcopy(HOME)


@pytest.fixture
def auto_section() -> dict[str, Any]:
    return copy.deepcopy(AUTO)


@pytest.fixture
def make_payload() -> Callable[..., dict[str, Any]]:
    """Build a raw camelCase payload whose sections match ``quote_type``."""

    def _make(quote_type: str = "both") -> dict[str, Any]:
        payload: dict[str, Any] = {
            "metadata": {
                "quoteId": "q-1",
                "extractionId": "e-1",
                "userId": TEST_USER_ID,
                "filename": "My Quote (final).pdf",
                "submittedAt": "2024-11-14T22:13:20Z",
                "quoteType": quote_type,
                "version": "1.0",
            },
            "personal": copy.deepcopy(PERSONAL),
        }
        if quote_type in ("home", "both"):
            payload["home"] = copy.deepcopy(HOME)
        if quote_type in ("auto", "both"):
            payload["auto"] = copy.deepcopy(AUTO)
        return payload

    return _make
