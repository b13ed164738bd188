"""
Tax session: owner of the current ``TaxState``.

A session is created at sign-in (or app start) with its collaborators and
closed at the end; nothing here is a module-level singleton. Every mutation
goes through ``dispatch``:

1. pure reducer (``tax_state.apply``)
2. audit entry for the command
3. whole-snapshot persist under ``TAX_STATE_KEY`` (a rejected write sets
   ``persisted`` to False and the session carries on in memory)
4. debounced draft autosave while draft mode is on
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from peergos import metrics
from peergos.core.audit import AuditLog
from peergos.core.config import settings
from peergos.core.logger import init_logging
from peergos.core.rbac import Role, RoleContext
from peergos.core.storage import SecureStorage, get_storage
from peergos.models.schemas import ComplianceResult, TRNLookupResult
from peergos.models.tax_models import DraftRecord, TaxState
from peergos.services import tax_state
from peergos.services.compliance_service import ComplianceScorer, ComplianceScoringStrategy
from peergos.services.trn_lookup_service import clean_trn, lookup_trn

logger = logging.getLogger(__name__)

TAX_STATE_KEY = "taxState"
DRAFT_KEY = "draftFiling"


class DraftAutosaver:
    """Debounced draft writer.

    ``schedule`` (re)starts the timer; the save runs once input has been quiet
    for ``delay`` seconds. Without a running event loop the save happens
    immediately.
    """

    def __init__(self, save: Callable[[], Any], delay: float | None = None):
        self._save = save
        self.delay = settings.DRAFT_AUTOSAVE_DEBOUNCE_SECONDS if delay is None else delay
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self) -> None:
        self.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._save()
            return
        self._handle = loop.call_later(self.delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        try:
            self._save()
        except Exception:  # noqa: BLE001
            # timer callbacks have no caller to propagate to
            logger.exception("Draft autosave failed")

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> None:
        """Run a pending save now."""
        if self._handle is not None:
            self.cancel()
            self._save()


def _audit_details(command: tax_state.Command, state: TaxState) -> dict[str, Any]:
    if isinstance(command, (tax_state.AddRevenue, tax_state.UpdateRevenue,
                            tax_state.AddExpense, tax_state.UpdateExpense)):
        return {"id": command.entry.id, "amount": command.entry.amount}
    if isinstance(command, (tax_state.DeleteRevenue, tax_state.DeleteExpense)):
        return {"id": command.entry_id}
    if isinstance(command, (tax_state.ImportRevenues, tax_state.ImportExpenses)):
        return {"count": len(command.entries)}
    if isinstance(command, tax_state.SetProfile):
        return {"company_name": command.profile.company_name}
    if isinstance(command, tax_state.ToggleDraftMode):
        return {"enabled": state.is_draft_mode}
    if isinstance(command, tax_state.RecordSubmission):
        return {"reference_number": command.reference_number}
    return {}


class TaxSession:
    def __init__(
        self,
        storage: SecureStorage,
        audit: AuditLog,
        role_context: RoleContext,
        state: TaxState | None = None,
        autosave_delay: float | None = None,
    ):
        self.storage = storage
        self.audit = audit
        self.role_context = role_context
        self._state = state if state is not None else TaxState()
        self.autosaver = DraftAutosaver(self._autosave, autosave_delay)
        # Set by an active FilingWorkflow so autosaves carry the wizard fields
        self.wizard_fields: Callable[[], dict[str, Any]] | None = None
        # False while the last snapshot write was rejected by the storage backend
        self.persisted = True

    @classmethod
    def restore(cls, storage: SecureStorage, audit: AuditLog, role_context: RoleContext, **kwargs) -> TaxSession:
        """Rehydrate from the persisted snapshot; a corrupt snapshot starts empty."""
        state = storage.get_as(TAX_STATE_KEY, TaxState, encrypted=True)
        if state is None:
            logger.debug("No usable tax state snapshot; starting empty")
        return cls(storage, audit, role_context, state=state, **kwargs)

    @property
    def state(self) -> TaxState:
        return self._state

    def dispatch(self, command: tax_state.Command) -> TaxState:
        new_state = tax_state.apply(self._state, command)
        self._state = new_state
        self.audit.log(command.action, _audit_details(command, new_state))
        self.persisted = self.storage.set(TAX_STATE_KEY, new_state, encrypted=True)
        if not self.persisted:
            logger.warning("Tax state kept in memory only after %s", command.action)

        if new_state.is_draft_mode:
            self.autosaver.schedule()
        else:
            self.autosaver.cancel()
        return new_state

    # ── Drafts ───────────────────────────────────────────────────────

    def load_draft(self) -> DraftRecord | None:
        return self.storage.get_as(DRAFT_KEY, DraftRecord, encrypted=True)

    def write_draft(self, draft: DraftRecord, trigger: str = "manual") -> DraftRecord:
        if self.storage.set(DRAFT_KEY, draft, encrypted=True):
            metrics.draft_saved(trigger)
        return draft

    def _autosave(self) -> None:
        if self.wizard_fields is not None:
            wizard = self.wizard_fields()
        else:
            existing = self.load_draft()
            wizard = existing.model_dump(include={"period", "trn", "step", "declaration_accepted"}) if existing else {}
        self.write_draft(DraftRecord(state=self._state, **wizard), trigger="autosave")
        logger.debug("Draft autosaved")

    def clear_stored_draft(self) -> None:
        self.autosaver.cancel()
        self.storage.remove(DRAFT_KEY)

    # ── Read-side helpers ────────────────────────────────────────────

    def compliance(
        self,
        strategy: ComplianceScoringStrategy | str | None = None,
        **filing_facts: bool,
    ) -> ComplianceResult:
        return ComplianceScorer(strategy).evaluate_state(self._state, **filing_facts)

    def search_trn(self, trn: str) -> TRNLookupResult | None:
        """Registry lookup, audited as TRN_SEARCH. Invalid input raises InvalidTRNError."""
        result = lookup_trn(trn)
        self.audit.log("TRN_SEARCH", {"trn": clean_trn(trn), "found": result is not None})
        return result

    def close(self) -> None:
        self.autosaver.cancel()


def open_session(role: Role | str = Role.SME, storage: SecureStorage | None = None) -> TaxSession:
    """Start a session with the configured collaborators, restoring any saved state."""
    init_logging()
    audit = AuditLog()
    role_context = RoleContext(audit, Role(role))
    session = TaxSession.restore(storage if storage is not None else get_storage(), audit, role_context)
    audit.log("SESSION_START", {"env": settings.ENV})
    return session
