"""
Tax domain models.

Entries and snapshots are frozen: the reducer in
``peergos.services.tax_state`` produces a new ``TaxState`` for every command
and nothing mutates a snapshot in place. All amounts are AED floats.
"""
from __future__ import annotations

from datetime import date, datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from peergos.utils.id_generator import generate_entry_id
from peergos.utils.validators import validate_trn


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# ENTRIES
# ============================================================================

class RevenueEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: generate_entry_id("revenue"))
    date: date
    amount: float = Field(..., ge=0, allow_inf_nan=False, description="Amount in AED")
    source: str = Field(..., min_length=1)
    vat_amount: float = Field(0.0, ge=0, allow_inf_nan=False, description="VAT recorded at entry time")
    category: str | None = None
    vat_included: bool = False

    @field_validator("date")
    @classmethod
    def not_in_future(cls, v: date) -> date:
        if v > date.today():
            raise ValueError("Date cannot be in the future")
        return v


class ExpenseEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: generate_entry_id("expense"))
    date: date
    amount: float = Field(..., ge=0, allow_inf_nan=False, description="Amount in AED")
    category: str = Field(..., min_length=1, description="Free-text grouping label")
    description: str | None = Field(None, max_length=500)

    @field_validator("date")
    @classmethod
    def not_in_future(cls, v: date) -> date:
        if v > date.today():
            raise ValueError("Date cannot be in the future")
        return v


# ============================================================================
# PROFILE & STATE
# ============================================================================

class CompanyProfile(BaseModel):
    """Company registration details captured at Setup. One per tenant."""

    company_name: str
    trn_number: str
    license_type: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    business_activity: str = ""
    vat_registered: bool = False
    cit_registered: bool = False
    cit_submission_date: date | None = None
    license_file: str | None = Field(None, description="Reference to the uploaded trade license")
    tax_registration_cert: str | None = Field(None, description="Reference to the uploaded tax certificate")

    @field_validator("trn_number")
    @classmethod
    def canonical_trn(cls, v: str) -> str:
        result = validate_trn(v)
        if not result.is_valid:
            raise ValueError(result.errors[0])
        return v


class SubmissionReceipt(BaseModel):
    model_config = ConfigDict(frozen=True)

    reference_number: str
    submitted_at: datetime = Field(default_factory=_utcnow)


class TaxState(BaseModel):
    """Aggregate root owned by the session. ``profile is None`` means setup incomplete."""

    model_config = ConfigDict(frozen=True)

    profile: CompanyProfile | None = None
    revenues: tuple[RevenueEntry, ...] = ()
    expenses: tuple[ExpenseEntry, ...] = ()
    is_draft_mode: bool = False
    last_submission: SubmissionReceipt | None = None
    # ids carried by an accepted filing; those entries can no longer change
    submitted_entry_ids: frozenset[str] = frozenset()

    @model_validator(mode="after")
    def unique_ids(self) -> TaxState:
        ids = [e.id for e in self.revenues] + [e.id for e in self.expenses]
        if len(ids) != len(set(ids)):
            raise ValueError("Entry ids must be unique within a tax state")
        return self

    def entry_ids(self) -> set[str]:
        return {e.id for e in self.revenues} | {e.id for e in self.expenses}


# ============================================================================
# FILINGS
# ============================================================================

class FilingRecord(BaseModel):
    """A submitted return. Appended to the filings history, never rewritten."""

    model_config = ConfigDict(frozen=True)

    period: str
    trn: str
    total_revenue: float
    total_expenses: float
    vat_payable: float
    reference_number: str | None = None
    submitted_at: datetime = Field(default_factory=_utcnow)


class DraftRecord(BaseModel):
    """The overwritable in-progress filing, stored under its own key."""

    period: str = ""
    trn: str = ""
    step: int = 1
    declaration_accepted: bool = False
    state: TaxState = Field(default_factory=TaxState)
    last_updated: datetime = Field(default_factory=_utcnow)


class SubmissionData(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    revenues: list[RevenueEntry]
    expenses: list[ExpenseEntry]
    vat_due: float
    cit_due: float
    compliance_score: int


class SubmissionPayload(BaseModel):
    """Body sent to the FTA gateway; serialised camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    trn: str
    timestamp: datetime = Field(default_factory=_utcnow)
    reference_number: str
    data: SubmissionData

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
