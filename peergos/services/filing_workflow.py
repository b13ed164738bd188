"""
Tax filing wizard.

Steps:
    1 PERIOD_AND_TRN  -> 2 REVENUE_REVIEW -> 3 EXPENSE_REVIEW -> 4 SUMMARY -> SUBMITTED

Only the 1 -> 2 transition validates (period and TRN). Steps 2 to 4 show
read-only aggregates from the tax calculator. Submission is the only async
operation; a gateway failure leaves the wizard on step 4 for a manual retry.
Once the gateway accepts, the wizard always reaches SUBMITTED with the
reference number, even if the filing history or state cannot be stored.
Drafts are a side channel available from any step and never move the wizard.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, Field, TypeAdapter

from peergos import metrics
from peergos.core.exceptions import DeclarationRequiredError, FilingStepError, StorageError, SubmissionError
from peergos.core.storage import SecureStorage
from peergos.models.tax_models import DraftRecord, FilingRecord, SubmissionData, SubmissionPayload
from peergos.services import tax_state
from peergos.services.compliance_service import ComplianceScorer
from peergos.services.session_service import TaxSession
from peergos.services.submission_service import FTASubmissionClient
from peergos.services.tax_reporting.computations import (
    calculate_expenses_by_category,
    calculate_tax_summary,
    calculate_total_expenses,
    calculate_total_revenue,
)
from peergos.utils.currency_fmt import fmt_aed, fmt_percent
from peergos.utils.validators import validate_trn

logger = logging.getLogger(__name__)

FILINGS_KEY = "filings"
CONFIRMATION_MESSAGE = "Filing Submitted Successfully"

_FilingList = TypeAdapter(list[FilingRecord])


class FilingStep(IntEnum):
    PERIOD_AND_TRN = 1
    REVENUE_REVIEW = 2
    EXPENSE_REVIEW = 3
    SUMMARY = 4
    SUBMITTED = 5


class StepView(BaseModel):
    """Read-only aggregates for the current step. ``display`` is pre-formatted text."""

    step: FilingStep
    figures: dict[str, float] = Field(default_factory=dict)
    display: dict[str, str] = Field(default_factory=dict)
    errors: dict[str, str] = Field(default_factory=dict)


def get_filings(storage: SecureStorage) -> list[FilingRecord]:
    return storage.get_as(FILINGS_KEY, list[FilingRecord]) or []


def append_filing(storage: SecureStorage, record: FilingRecord) -> bool:
    """Append-only: earlier records are written back unchanged.

    Returns False when the storage backend rejected the write.
    """
    filings = get_filings(storage)
    filings.append(record)
    return storage.set(FILINGS_KEY, _FilingList.dump_python(filings, mode="json"))


class FilingWorkflow:
    def __init__(
        self,
        session: TaxSession,
        submission_client: FTASubmissionClient,
        scorer: ComplianceScorer | None = None,
    ):
        self.session = session
        self.submission_client = submission_client
        self.scorer = scorer if scorer is not None else ComplianceScorer()
        self._reset()
        session.wizard_fields = self.wizard_fields

    def _reset(self) -> None:
        self.step = FilingStep.PERIOD_AND_TRN
        self.period = ""
        self.trn = ""
        self.declaration_accepted = False
        self.errors: dict[str, str] = {}
        self.confirmation: str | None = None
        self.reference_number: str | None = None
        self.last_error: str | None = None

    # ── Wizard input ─────────────────────────────────────────────────

    def _touched(self) -> None:
        if self.session.state.is_draft_mode:
            self.session.autosaver.schedule()

    def set_period(self, period: str) -> None:
        self.period = period
        self._touched()

    def set_trn(self, trn: str) -> None:
        self.trn = trn
        self._touched()

    def accept_declaration(self, accepted: bool = True) -> None:
        self.declaration_accepted = accepted
        self._touched()

    def wizard_fields(self) -> dict[str, Any]:
        step = self.step if self.step != FilingStep.SUBMITTED else FilingStep.PERIOD_AND_TRN
        return {
            "period": self.period,
            "trn": self.trn,
            "step": int(step),
            "declaration_accepted": self.declaration_accepted,
        }

    # ── Navigation ───────────────────────────────────────────────────

    def validate_step1(self) -> bool:
        errors: dict[str, str] = {}
        if not self.period or not self.period.strip():
            errors["period"] = "Filing Period is required"
        trn_result = validate_trn(self.trn)
        if not trn_result.is_valid:
            errors["trn"] = trn_result.errors[0]
        self.errors = errors
        if errors:
            metrics.validation_failure("filing_step1")
        return not errors

    def next(self) -> bool:
        """Advance one step. Returns False when step 1 validation fails."""
        if self.step >= FilingStep.SUMMARY:
            raise FilingStepError("advance", self.step.name)
        if self.step == FilingStep.PERIOD_AND_TRN and not self.validate_step1():
            return False
        self.step = FilingStep(self.step + 1)
        return True

    def back(self) -> bool:
        if self.step == FilingStep.SUBMITTED:
            raise FilingStepError("go back", self.step.name)
        if self.step == FilingStep.PERIOD_AND_TRN:
            return False
        self.step = FilingStep(self.step - 1)
        return True

    def step_view(self) -> StepView:
        state = self.session.state
        summary = calculate_tax_summary(state.revenues, state.expenses)
        view = StepView(step=self.step, errors=dict(self.errors))

        if self.step == FilingStep.REVENUE_REVIEW:
            view.figures = {"total_revenue": summary.total_revenue, "vat_amount": summary.vat_amount}
        elif self.step == FilingStep.EXPENSE_REVIEW:
            view.figures = {"total_expenses": summary.total_expenses}
            view.display = {
                row.category: f"{fmt_aed(row.amount)} ({fmt_percent(row.percentage)})"
                for row in calculate_expenses_by_category(state.expenses)
            }
        elif self.step == FilingStep.SUMMARY:
            view.figures = {
                "total_revenue": summary.total_revenue,
                "total_expenses": summary.total_expenses,
                "net_income": summary.net_income,
                "vat_payable": summary.vat_amount,
                "cit_due": summary.cit_amount,
            }
        elif self.step == FilingStep.SUBMITTED:
            view.display = {"message": self.confirmation or "", "reference_number": self.reference_number or ""}

        view.display.update({k: fmt_aed(v, decimals=True) for k, v in view.figures.items()})
        return view

    # ── Submission ───────────────────────────────────────────────────

    def build_payload(self) -> SubmissionPayload:
        state = self.session.state
        summary = calculate_tax_summary(state.revenues, state.expenses)
        score = self.scorer.evaluate_state(state).score
        return SubmissionPayload(
            trn=self.trn,
            reference_number=self.submission_client.generate_reference_number(),
            data=SubmissionData(
                revenues=list(state.revenues),
                expenses=list(state.expenses),
                vat_due=summary.vat_amount,
                cit_due=summary.cit_amount,
                compliance_score=score,
            ),
        )

    async def submit(self) -> str | None:
        """Submit the filing.

        Returns the FTA reference number, or None when the gateway failed (the
        wizard stays on SUMMARY and ``last_error`` holds the reason).

        Raises:
            FilingStepError: not on the summary step.
            DeclarationRequiredError: declaration not accepted.
        """
        if self.step != FilingStep.SUMMARY:
            raise FilingStepError("submit", self.step.name)
        if not self.declaration_accepted:
            raise DeclarationRequiredError()

        payload = self.build_payload()
        try:
            reference = await self.submission_client.submit_to_fta(payload)
        except SubmissionError as e:
            logger.error("Filing submission failed for period %s: %s", self.period, e.message)
            metrics.submission_failed("status" if e.details.get("status") else "transport")
            self.session.audit.log_failure("SUBMIT_FILING", error=e.message, period=self.period)
            self.last_error = e.message
            return None

        record = FilingRecord(
            period=self.period,
            trn=self.trn,
            total_revenue=calculate_total_revenue(payload.data.revenues),
            total_expenses=calculate_total_expenses(payload.data.expenses),
            vat_payable=payload.data.vat_due,
            reference_number=reference,
            submitted_at=datetime.now(timezone.utc),
        )
        # The gateway has accepted; from here on storage trouble only costs persistence
        try:
            persisted = append_filing(self.session.storage, record)
        except StorageError as e:
            logger.error("Filing %s accepted but not stored: %s", reference, e.message)
            persisted = False
        if not persisted:
            self.session.audit.log_failure(
                "STORE_FILING", error="filing history not persisted", reference_number=reference
            )

        carried = frozenset(e.id for e in (*payload.data.revenues, *payload.data.expenses))
        self.session.dispatch(tax_state.RecordSubmission(reference, record.submitted_at, carried))
        persisted = persisted and self.session.persisted
        if self.session.state.is_draft_mode:
            self.session.dispatch(tax_state.ClearDraft())
            self.session.clear_stored_draft()

        self.session.audit.log(
            "SUBMIT_FILING",
            {
                "period": self.period,
                "reference_number": reference,
                "vat_payable": record.vat_payable,
                "persisted": persisted,
            },
        )
        self.step = FilingStep.SUBMITTED
        self.confirmation = CONFIRMATION_MESSAGE
        self.reference_number = reference
        self.last_error = None
        return reference

    def restart(self) -> None:
        """Re-enter the wizard at step 1 with empty period, TRN and declaration."""
        self._reset()

    # ── Drafts ───────────────────────────────────────────────────────

    def save_draft(self) -> DraftRecord:
        draft = DraftRecord(
            state=self.session.state,
            last_updated=datetime.now(timezone.utc),
            **self.wizard_fields(),
        )
        self.session.autosaver.cancel()
        self.session.write_draft(draft)
        self.session.audit.log("SAVE_DRAFT", {"period": self.period, "step": draft.step})
        return draft

    def restore_draft(self) -> bool:
        draft = self.session.load_draft()
        if draft is None:
            return False
        self.period = draft.period
        self.trn = draft.trn
        self.declaration_accepted = draft.declaration_accepted
        self.step = FilingStep(draft.step) if 1 <= draft.step <= 4 else FilingStep.PERIOD_AND_TRN
        self.errors = {}
        return True
