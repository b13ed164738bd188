"""
Compliance scoring service.

Handles:
- 0-100 compliance score with per-category breakdown
- Compliance status and registration badge for the dashboard
- Threshold warnings (informational, never raised)

Two scoring strategies are available behind ``ComplianceScoringStrategy``:

- ``weighted``: four categories (VAT 30, CIT 30, Documentation 20,
  Financial Records 20), score = round(sum(score) / sum(max_score) * 100).
- ``penalty``: start at 100, subtract for missing registrations above the
  thresholds and for incomplete entries, floor at 0.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Literal, Sequence

from peergos import metrics
from peergos.core.config import settings
from peergos.models.schemas import ComplianceCategory, ComplianceResult, ComplianceWarning
from peergos.models.tax_models import CompanyProfile, TaxState
from peergos.services.tax_reporting.computations import (
    CIT_REGISTRATION_THRESHOLD,
    VAT_REGISTRATION_THRESHOLD,
    get_registration_requirements,
)
from peergos.utils.currency_fmt import fmt_aed
from peergos.utils.validators import parse_amount

logger = logging.getLogger(__name__)

ComplianceStatus = Literal["compliant", "pending", "non-compliant"]


def _field(entry: Any, name: str) -> Any:
    if isinstance(entry, dict):
        return entry.get(name)
    return getattr(entry, name, None)


def _missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


@dataclass(frozen=True)
class ComplianceSnapshot:
    """Everything a strategy needs to score a business.

    Entries may be models or raw mappings (e.g. imported rows not yet
    validated); scoring only reads them.
    """

    profile: CompanyProfile | None
    revenues: Sequence[Any] = ()
    expenses: Sequence[Any] = ()
    has_vat_submission: bool = False
    vat_returns_up_to_date: bool = False
    has_cit_submission: bool = False
    cit_returns_up_to_date: bool = False
    total_revenue: float = field(init=False)

    def __post_init__(self):
        total = sum((parse_amount(_field(r, "amount")) or 0.0 for r in self.revenues), 0.0)
        object.__setattr__(self, "total_revenue", total)

    @classmethod
    def from_state(cls, state: TaxState, **filing_facts: bool) -> ComplianceSnapshot:
        if state.last_submission is not None:
            filing_facts.setdefault("has_vat_submission", True)
        return cls(profile=state.profile, revenues=state.revenues, expenses=state.expenses, **filing_facts)

    @property
    def vat_registered(self) -> bool:
        return bool(self.profile and self.profile.vat_registered)

    @property
    def cit_registered(self) -> bool:
        return bool(self.profile and self.profile.cit_registered)

    def has_incomplete_entries(self) -> bool:
        for r in self.revenues:
            if any(_missing(_field(r, name)) for name in ("source", "date", "amount")):
                return True
        for e in self.expenses:
            if any(_missing(_field(e, name)) for name in ("category", "date", "amount")):
                return True
        return False


def _clamp(score: float) -> int:
    return max(0, min(100, int(round(score))))


class ComplianceScoringStrategy(ABC):
    name: str

    @abstractmethod
    def evaluate(self, snapshot: ComplianceSnapshot) -> ComplianceResult:
        ...


class WeightedCategoryStrategy(ComplianceScoringStrategy):
    name = "weighted"

    def evaluate(self, snapshot: ComplianceSnapshot) -> ComplianceResult:
        vat = ComplianceCategory(category="VAT Compliance", score=0, max_score=30)
        cit = ComplianceCategory(category="CIT Compliance", score=0, max_score=30)
        docs = ComplianceCategory(category="Documentation", score=0, max_score=20)
        records = ComplianceCategory(category="Financial Records", score=0, max_score=20)

        if snapshot.vat_registered:
            if snapshot.has_vat_submission:
                vat.score += 20
            else:
                vat.issues.append("Missing VAT submission")
            if snapshot.vat_returns_up_to_date:
                vat.score += 10
            else:
                vat.issues.append("VAT returns not up to date")
        elif snapshot.total_revenue < VAT_REGISTRATION_THRESHOLD:
            vat.score = 30
        else:
            vat.issues.append("VAT registration required")

        cit_applicable = (
            snapshot.cit_registered
            or get_registration_requirements(snapshot.total_revenue).cit_required
        )
        if cit_applicable:
            if snapshot.has_cit_submission:
                cit.score += 20
            else:
                cit.issues.append("Missing CIT submission")
            if snapshot.cit_returns_up_to_date:
                cit.score += 10
            else:
                cit.issues.append("CIT returns not up to date")
        else:
            cit.score = 30

        profile = snapshot.profile
        if profile and profile.license_file:
            docs.score += 10
        else:
            docs.issues.append("Missing business license")
        if profile and profile.tax_registration_cert:
            docs.score += 10
        else:
            docs.issues.append("Missing tax registration certificate")

        if snapshot.expenses:
            records.score += 10
        else:
            records.issues.append("No expense records found")
        if snapshot.revenues:
            records.score += 10
        else:
            records.issues.append("No revenue records found")

        breakdown = [vat, cit, docs, records]
        total = sum(c.score for c in breakdown)
        max_total = sum(c.max_score for c in breakdown)
        return ComplianceResult(score=_clamp(total / max_total * 100), breakdown=breakdown, strategy=self.name)


class PenaltyStrategy(ComplianceScoringStrategy):
    name = "penalty"

    VAT_PENALTY = 30
    CIT_PENALTY = 30
    INCOMPLETE_PENALTY = 20

    def _penalties(self, snapshot: ComplianceSnapshot) -> list[ComplianceCategory]:
        rows: list[ComplianceCategory] = []
        if snapshot.total_revenue > VAT_REGISTRATION_THRESHOLD and not snapshot.vat_registered:
            rows.append(
                ComplianceCategory(
                    category="VAT Registration",
                    score=-self.VAT_PENALTY,
                    max_score=0,
                    issues=["VAT registration required"],
                )
            )
        if snapshot.total_revenue > CIT_REGISTRATION_THRESHOLD and not snapshot.cit_registered:
            rows.append(
                ComplianceCategory(
                    category="CIT Registration",
                    score=-self.CIT_PENALTY,
                    max_score=0,
                    issues=["CIT registration required"],
                )
            )
        if snapshot.has_incomplete_entries():
            rows.append(
                ComplianceCategory(
                    category="Documentation",
                    score=-self.INCOMPLETE_PENALTY,
                    max_score=0,
                    issues=["Incomplete revenue or expense records"],
                )
            )
        return rows

    def score(self, snapshot: ComplianceSnapshot) -> int:
        return max(0, 100 + sum(row.score for row in self._penalties(snapshot)))

    def evaluate(self, snapshot: ComplianceSnapshot) -> ComplianceResult:
        rows = self._penalties(snapshot)
        return ComplianceResult(
            score=max(0, 100 + sum(row.score for row in rows)),
            breakdown=rows,
            strategy=self.name,
        )


_STRATEGIES: dict[str, type[ComplianceScoringStrategy]] = {
    WeightedCategoryStrategy.name: WeightedCategoryStrategy,
    PenaltyStrategy.name: PenaltyStrategy,
}


def get_strategy(name: str) -> ComplianceScoringStrategy:
    try:
        return _STRATEGIES[name.lower()]()
    except KeyError:
        raise ValueError(f"Unknown compliance scoring strategy: {name}") from None


class ComplianceScorer:
    """Evaluate a snapshot with one strategy (default from settings)."""

    def __init__(self, strategy: ComplianceScoringStrategy | str | None = None):
        if strategy is None:
            strategy = settings.COMPLIANCE_SCORING_STRATEGY
        self.strategy = get_strategy(strategy) if isinstance(strategy, str) else strategy

    def evaluate(self, snapshot: ComplianceSnapshot) -> ComplianceResult:
        result = self.strategy.evaluate(snapshot)
        metrics.compliance_check_record(self.strategy.name)
        logger.debug("Compliance score %s via %s", result.score, self.strategy.name)
        return result

    def evaluate_state(self, state: TaxState, **filing_facts: bool) -> ComplianceResult:
        return self.evaluate(ComplianceSnapshot.from_state(state, **filing_facts))


def calculate_penalty_score(snapshot: ComplianceSnapshot) -> int:
    """Bare integer score from the penalty policy."""
    return PenaltyStrategy().score(snapshot)


def get_compliance_status(score: int) -> ComplianceStatus:
    if score >= 90:
        return "compliant"
    if score >= 70:
        return "pending"
    return "non-compliant"


def get_registration_badge(total_revenue: float) -> str:
    if total_revenue > CIT_REGISTRATION_THRESHOLD:
        return "VAT + CIT Required"
    if total_revenue > VAT_REGISTRATION_THRESHOLD:
        return "VAT Only"
    return "No Tax Filing Required"


def get_threshold_warnings(total_revenue: float, profile: CompanyProfile | None) -> list[ComplianceWarning]:
    warnings: list[ComplianceWarning] = []
    vat_registered = bool(profile and profile.vat_registered)
    cit_registered = bool(profile and profile.cit_registered)

    if total_revenue > VAT_REGISTRATION_THRESHOLD and not vat_registered:
        warnings.append(
            ComplianceWarning(
                code="VAT_REGISTRATION_REQUIRED",
                severity="error",
                message=(
                    f"Revenue of {fmt_aed(total_revenue)} exceeds the "
                    f"{fmt_aed(VAT_REGISTRATION_THRESHOLD)} VAT registration threshold"
                ),
                threshold=VAT_REGISTRATION_THRESHOLD,
                total_revenue=total_revenue,
            )
        )
    if total_revenue > CIT_REGISTRATION_THRESHOLD and not cit_registered:
        warnings.append(
            ComplianceWarning(
                code="CIT_REGISTRATION_REQUIRED",
                message=(
                    f"Revenue of {fmt_aed(total_revenue)} exceeds the "
                    f"{fmt_aed(CIT_REGISTRATION_THRESHOLD)} CIT registration threshold"
                ),
                threshold=CIT_REGISTRATION_THRESHOLD,
                total_revenue=total_revenue,
            )
        )
    return warnings
