"""
Result shapes returned by the validator, calculator, compliance scorer and
TRN lookup. Derived on demand, never persisted.
"""
from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field


class ValidationResult(BaseModel):
    """Outcome of a validator call."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: list[str]) -> ValidationResult:
        return cls(is_valid=not errors, errors=list(errors))


class TaxSummary(BaseModel):
    total_revenue: float
    total_expenses: float
    net_income: float
    vat_amount: float
    cit_amount: float
    effective_tax_rate: float


class MonthlyRevenue(BaseModel):
    month: str = Field(..., description="YYYY-MM bucket key")
    amount: float


class CategoryExpense(BaseModel):
    category: str
    amount: float
    percentage: float


class RegistrationRequirements(BaseModel):
    vat_required: bool
    cit_required: bool


class ComplianceCategory(BaseModel):
    """One row of a compliance breakdown."""

    category: str
    score: int
    max_score: int
    issues: list[str] = Field(default_factory=list)


class ComplianceResult(BaseModel):
    score: int = Field(..., ge=0, le=100)
    breakdown: list[ComplianceCategory] = Field(default_factory=list)
    strategy: str

    @property
    def issues(self) -> list[str]:
        return [issue for row in self.breakdown for issue in row.issues]


class ComplianceWarning(BaseModel):
    """Informational threshold breach. Shown as a banner, never blocking."""

    code: Literal["VAT_REGISTRATION_REQUIRED", "CIT_REGISTRATION_REQUIRED"]
    severity: Literal["warning", "error"] = "warning"
    message: str
    threshold: float
    total_revenue: float


class TRNLookupResult(BaseModel):
    trn: str
    company_name: str
    status: Literal["active", "suspended", "cancelled"]
    registration_date: date
    compliance_status: Literal["compliant", "non-compliant", "under-review"]
    business_type: str
    emirate: str
    last_filing_date: date | None = None
