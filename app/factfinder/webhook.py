"""
Webhook payload schema for the RPA quoting system.

Every quote that leaves this service is one ``WebhookPayload``: metadata,
personal information and at least one of a home or an auto section. The
models below are the single point of truth that any extraction or review
step must satisfy before submission is attempted.

Wire names are camelCase (``zipCode``, ``quoteType``); Python attributes
are snake_case. Currency values stay strings such as ``"$450,000"`` because
the receiver types them into carrier forms verbatim.
"""

import re
from collections.abc import Mapping
from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    AwareDatetime,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    ValidationError,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .exceptions import InvalidPayloadError

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
CURRENCY_PATTERN = r"^\$(\d{1,3}(,\d{3})+|\d+)(\.\d{2})?$"
SSN_PATTERN = r"^\d{3}-\d{2}-\d{4}$"


def _check_iso_date(value: str) -> str:
    """Accept only real calendar dates written as YYYY-MM-DD."""
    if not DATE_PATTERN.match(value):
        raise ValueError("Date must use the YYYY-MM-DD format")
    try:
        date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"'{value}' is not a valid calendar date") from None
    return value


NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
IsoDate = Annotated[str, StringConstraints(strip_whitespace=True), AfterValidator(_check_iso_date)]
Currency = Annotated[str, StringConstraints(strip_whitespace=True, pattern=CURRENCY_PATTERN)]
Ssn = Annotated[str, StringConstraints(strip_whitespace=True, pattern=SSN_PATTERN)]


class QuoteType(str, Enum):
    """Which lines of business a quote covers."""

    HOME = "home"
    AUTO = "auto"
    BOTH = "both"

    @property
    def includes_home(self) -> bool:
        return self in (QuoteType.HOME, QuoteType.BOTH)

    @property
    def includes_auto(self) -> bool:
        return self in (QuoteType.AUTO, QuoteType.BOTH)

    @classmethod
    def for_sections(cls, has_home: bool, has_auto: bool) -> "QuoteType":
        """Derive the quote type from the sections that are attached."""
        if has_home and has_auto:
            return cls.BOTH
        if has_home:
            return cls.HOME
        if has_auto:
            return cls.AUTO
        raise InvalidPayloadError(["home/auto: at least one section is required"])


def section_mismatches(quote_type: QuoteType, has_home: bool, has_auto: bool) -> list[str]:
    """List every way the attached sections disagree with ``quote_type``."""
    problems = []
    if quote_type.includes_home and not has_home:
        problems.append(f"home: required when quoteType is '{quote_type.value}'")
    if not quote_type.includes_home and has_home:
        problems.append(f"home: must be absent when quoteType is '{quote_type.value}'")
    if quote_type.includes_auto and not has_auto:
        problems.append(f"auto: required when quoteType is '{quote_type.value}'")
    if not quote_type.includes_auto and has_auto:
        problems.append(f"auto: must be absent when quoteType is '{quote_type.value}'")
    return problems


class WebhookModel(BaseModel):
    """Base for all payload models: camelCase on the wire, no unknown keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


# =============================================================================
# Shared
# =============================================================================


class WebhookAddress(WebhookModel):
    street: NonEmptyStr
    city: NonEmptyStr
    state: NonEmptyStr
    zip_code: NonEmptyStr


class WebhookLienholder(WebhookModel):
    name: NonEmptyStr
    address: NonEmptyStr
    city: NonEmptyStr
    state: NonEmptyStr
    zip_code: NonEmptyStr


# =============================================================================
# Personal
# =============================================================================


class WebhookPersonal(WebhookModel):
    """Primary insured identity, contact details and addresses."""

    first_name: NonEmptyStr
    last_name: NonEmptyStr
    date_of_birth: IsoDate
    ssn: Ssn | None = None
    phone: NonEmptyStr
    email: EmailStr
    marital_status: NonEmptyStr
    occupation: str | None = None

    # Spouse info (if applicable)
    spouse_first_name: str | None = None
    spouse_last_name: str | None = None
    spouse_date_of_birth: IsoDate | None = None
    spouse_ssn: Ssn | None = None
    spouse_occupation: str | None = None

    address: WebhookAddress
    years_at_current_address: int | None = Field(default=None, ge=0)
    prior_address: WebhookAddress | None = None


# =============================================================================
# Home
# =============================================================================


class WebhookHomeProperty(WebhookModel):
    year_built: int = Field(..., ge=1600, le=2100)
    square_footage: int = Field(..., gt=0)
    number_of_stories: int = Field(..., gt=0)
    bedroom_count: int = Field(..., ge=0)
    bathroom_count: NonEmptyStr  # "2.5" is a valid count
    dwelling_type: NonEmptyStr
    construction_style: NonEmptyStr
    exterior_construction: NonEmptyStr
    roof_age: int = Field(..., ge=0)
    roof_construction: NonEmptyStr
    roof_shape: str | None = None
    foundation: NonEmptyStr
    heat_type: NonEmptyStr
    garage_type: str | None = None
    garage_location: str | None = None
    purchase_date: IsoDate | None = None
    condo_or_townhouse: bool
    special_features: str | None = None


class WebhookHomeOccupancy(WebhookModel):
    dwelling_occupancy: NonEmptyStr
    business_on_premises: bool
    short_term_rental: bool
    number_of_families: int = Field(..., ge=1)


class WebhookHomeSafety(WebhookModel):
    alarm_system: bool
    monitored_alarm: bool
    pool: bool
    trampoline: bool
    dog: bool
    dog_breed: str | None = None


class WebhookHomeCoverage(WebhookModel):
    dwelling_coverage: Currency
    liability_coverage: Currency
    medical_payments: Currency | None = None
    deductible: Currency


class WebhookScheduledItem(WebhookModel):
    description: NonEmptyStr
    value: Currency


class WebhookScheduledItems(WebhookModel):
    jewelry: list[WebhookScheduledItem] | None = None
    other_valuables: list[WebhookScheduledItem] | None = None


class WebhookHomeInsurance(WebhookModel):
    effective_date: IsoDate
    reason_for_policy: NonEmptyStr
    currently_insured: NonEmptyStr
    current_insurance_company: str | None = None
    current_policy_number: str | None = None
    escrowed: bool
    lienholder: WebhookLienholder | None = None


class WebhookHomeData(WebhookModel):
    property: WebhookHomeProperty
    occupancy: WebhookHomeOccupancy
    safety: WebhookHomeSafety
    coverage: WebhookHomeCoverage
    scheduled_items: WebhookScheduledItems | None = None
    insurance: WebhookHomeInsurance


# =============================================================================
# Auto
# =============================================================================


class WebhookDriver(WebhookModel):
    first_name: NonEmptyStr
    last_name: NonEmptyStr
    date_of_birth: IsoDate
    drivers_license: NonEmptyStr
    license_state: NonEmptyStr
    relationship: NonEmptyStr
    occupation: str | None = None
    education: str | None = None
    good_student_discount: bool | None = None


class WebhookVehicle(WebhookModel):
    year: int = Field(..., ge=1900, le=2100)
    make: NonEmptyStr
    model: NonEmptyStr
    vin: NonEmptyStr
    usage: NonEmptyStr
    estimated_mileage: int | None = Field(default=None, ge=0)
    ownership: NonEmptyStr
    comprehensive_deductible: Currency
    collision_deductible: Currency
    lienholder: WebhookLienholder | None = None


class WebhookAutoCoverage(WebhookModel):
    bodily_injury: NonEmptyStr  # "250/500", per person/per accident in thousands
    property_damage: NonEmptyStr
    uninsured_motorist: str | None = None
    underinsured_motorist: str | None = None
    medical_payments: str | None = None
    towing: bool
    rental: bool


class WebhookPriorInsurance(WebhookModel):
    company: NonEmptyStr
    premium: Currency | None = None
    policy_number: str | None = None
    expiration_date: IsoDate | None = None


class WebhookIncident(WebhookModel):
    type: NonEmptyStr
    date: IsoDate
    description: str | None = None
    driver_name: str | None = None


class WebhookAutoData(WebhookModel):
    effective_date: IsoDate
    garaging_address: WebhookAddress
    garaging_address_same_as_mailing: bool
    ride_share: bool
    delivery: bool
    drivers: list[WebhookDriver] = Field(..., min_length=1)
    vehicles: list[WebhookVehicle] = Field(..., min_length=1)
    coverage: WebhookAutoCoverage
    prior_insurance: WebhookPriorInsurance | None = None
    incidents: list[WebhookIncident] = Field(default_factory=list)


# =============================================================================
# Complete payload
# =============================================================================


class WebhookMetadata(WebhookModel):
    quote_id: NonEmptyStr
    extraction_id: NonEmptyStr
    user_id: NonEmptyStr
    filename: NonEmptyStr
    submitted_at: AwareDatetime
    quote_type: QuoteType
    version: NonEmptyStr


class WebhookPayload(WebhookModel):
    """
    One normalized quote submission.

    ``home`` is present iff ``metadata.quoteType`` is home or both, ``auto``
    iff it is auto or both.
    """

    metadata: WebhookMetadata
    personal: WebhookPersonal
    home: WebhookHomeData | None = None
    auto: WebhookAutoData | None = None

    @model_validator(mode="after")
    def check_sections_match_quote_type(self) -> "WebhookPayload":
        problems = section_mismatches(
            self.metadata.quote_type,
            has_home=self.home is not None,
            has_auto=self.auto is not None,
        )
        if problems:
            raise ValueError("; ".join(problems))
        return self

    @classmethod
    def assemble(
        cls,
        *,
        quote_id: str,
        extraction_id: str,
        user_id: str,
        filename: str,
        submitted_at: datetime,
        version: str,
        personal: WebhookPersonal | Mapping[str, Any],
        home: WebhookHomeData | Mapping[str, Any] | None = None,
        auto: WebhookAutoData | Mapping[str, Any] | None = None,
    ) -> "WebhookPayload":
        """
        Build a payload whose ``quoteType`` follows from the attached sections.

        Raises:
            InvalidPayloadError: With every violation found in the sections.
        """
        quote_type = QuoteType.for_sections(has_home=home is not None, has_auto=auto is not None)
        raw: dict[str, Any] = {
            "metadata": {
                "quoteId": quote_id,
                "extractionId": extraction_id,
                "userId": user_id,
                "filename": filename,
                "submittedAt": submitted_at,
                "quoteType": quote_type.value,
                "version": version,
            },
            "personal": _as_wire_dict(personal),
        }
        if home is not None:
            raw["home"] = _as_wire_dict(home)
        if auto is not None:
            raw["auto"] = _as_wire_dict(auto)
        return validate_payload(raw)

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys, optional blanks omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class WebhookResponse(BaseModel):
    """Acknowledgment returned by the RPA system."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    success: bool
    job_id: str | None = None
    message: str | None = None
    errors: list[str] = Field(default_factory=list)


# =============================================================================
# Validation entry points
# =============================================================================


def _as_wire_dict(section: BaseModel | Mapping[str, Any]) -> Any:
    if isinstance(section, BaseModel):
        return section.model_dump(by_alias=True, exclude_none=True)
    return section


def format_location(loc: tuple[int | str, ...]) -> str:
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path


def _raw_section_errors(raw: Mapping[str, Any]) -> list[str]:
    metadata = raw.get("metadata")
    if not isinstance(metadata, Mapping):
        return []
    declared = metadata.get("quoteType", metadata.get("quote_type"))
    try:
        quote_type = QuoteType(declared)
    except ValueError:
        # An unknown quoteType is already reported as a field error
        return []
    return section_mismatches(
        quote_type,
        has_home=raw.get("home") is not None,
        has_auto=raw.get("auto") is not None,
    )


def collect_payload_errors(raw: Any) -> list[str]:
    """
    Validate ``raw`` and return every violation found, in input order.

    The home/auto consistency check runs on the raw structure as well, so it
    is reported even when field-level errors stop the model validator.
    """
    errors: list[str] = []
    try:
        WebhookPayload.model_validate(raw)
    except ValidationError as exc:
        for error in exc.errors():
            if not error["loc"] and error["type"] == "value_error":
                # Cross-field problems are recomputed below, one entry each
                continue
            location = format_location(error["loc"])
            message = error["msg"]
            errors.append(f"{location}: {message}" if location else message)

    if isinstance(raw, Mapping):
        errors.extend(_raw_section_errors(raw))

    return list(dict.fromkeys(errors))


def validate_payload(raw: Any) -> WebhookPayload:
    """
    Parse and validate a raw payload.

    Raises:
        InvalidPayloadError: Carrying the full list of violations.
    """
    if isinstance(raw, WebhookPayload):
        raw = raw.model_dump(by_alias=True, exclude_none=True)
    errors = collect_payload_errors(raw)
    if errors:
        raise InvalidPayloadError(errors)
    return WebhookPayload.model_validate(raw)
