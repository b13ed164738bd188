"""
Tax state commands and reducer.

Every mutation of a ``TaxState`` is a frozen command passed to ``apply``,
which returns a new snapshot and never touches the old one. Auditing and
persistence are the caller's job (see ``session_service.TaxSession``).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from functools import singledispatch
from typing import ClassVar, Union

from peergos.core.exceptions import (
    DraftNotClearableError,
    DuplicateEntryError,
    EntryNotFoundError,
    SubmittedEntryLockedError,
)
from peergos.models.tax_models import (
    CompanyProfile,
    ExpenseEntry,
    RevenueEntry,
    SubmissionReceipt,
    TaxState,
)


@dataclass(frozen=True)
class SetProfile:
    action: ClassVar[str] = "SET_PROFILE"
    profile: CompanyProfile


@dataclass(frozen=True)
class AddRevenue:
    action: ClassVar[str] = "ADD_REVENUE"
    entry: RevenueEntry


@dataclass(frozen=True)
class AddExpense:
    action: ClassVar[str] = "ADD_EXPENSE"
    entry: ExpenseEntry


@dataclass(frozen=True)
class UpdateRevenue:
    action: ClassVar[str] = "UPDATE_REVENUE"
    entry: RevenueEntry


@dataclass(frozen=True)
class UpdateExpense:
    action: ClassVar[str] = "UPDATE_EXPENSE"
    entry: ExpenseEntry


@dataclass(frozen=True)
class DeleteRevenue:
    action: ClassVar[str] = "DELETE_REVENUE"
    entry_id: str


@dataclass(frozen=True)
class DeleteExpense:
    action: ClassVar[str] = "DELETE_EXPENSE"
    entry_id: str


@dataclass(frozen=True)
class ImportRevenues:
    """Bulk upload; the batch must already have passed ``validate_bulk_upload``."""

    action: ClassVar[str] = "IMPORT_REVENUES"
    entries: tuple[RevenueEntry, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ImportExpenses:
    action: ClassVar[str] = "IMPORT_EXPENSES"
    entries: tuple[ExpenseEntry, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ToggleDraftMode:
    action: ClassVar[str] = "TOGGLE_DRAFT_MODE"
    enabled: bool | None = None  # None flips the current flag


@dataclass(frozen=True)
class RecordSubmission:
    """Marks a filing as accepted and locks the entries it carried.

    ``entry_ids`` defaults to every entry currently in the state.
    """

    action: ClassVar[str] = "RECORD_SUBMISSION"
    reference_number: str
    submitted_at: datetime | None = None
    entry_ids: frozenset[str] | None = None


@dataclass(frozen=True)
class ClearDraft:
    action: ClassVar[str] = "CLEAR_DRAFT"


Command = Union[
    SetProfile,
    AddRevenue,
    AddExpense,
    UpdateRevenue,
    UpdateExpense,
    DeleteRevenue,
    DeleteExpense,
    ImportRevenues,
    ImportExpenses,
    ToggleDraftMode,
    RecordSubmission,
    ClearDraft,
]


def _check_new_ids(state: TaxState, entries, kind: str) -> None:
    seen = state.entry_ids()
    for entry in entries:
        if entry.id in seen:
            raise DuplicateEntryError(entry.id, kind)
        seen.add(entry.id)


def _check_unlocked(state: TaxState, entry_id: str, kind: str) -> None:
    if entry_id in state.submitted_entry_ids:
        raise SubmittedEntryLockedError(entry_id, kind)


def _replace(entries: tuple, entry, kind: str) -> tuple:
    if not any(e.id == entry.id for e in entries):
        raise EntryNotFoundError(entry.id, kind)
    return tuple(entry if e.id == entry.id else e for e in entries)


@singledispatch
def _reduce(command, state: TaxState) -> TaxState:
    raise TypeError(f"Unsupported tax state command: {type(command).__name__}")


@_reduce.register
def _(command: SetProfile, state: TaxState) -> TaxState:
    return state.model_copy(update={"profile": command.profile})


@_reduce.register
def _(command: AddRevenue, state: TaxState) -> TaxState:
    _check_new_ids(state, [command.entry], "revenue")
    return state.model_copy(update={"revenues": state.revenues + (command.entry,)})


@_reduce.register
def _(command: AddExpense, state: TaxState) -> TaxState:
    _check_new_ids(state, [command.entry], "expense")
    return state.model_copy(update={"expenses": state.expenses + (command.entry,)})


@_reduce.register
def _(command: UpdateRevenue, state: TaxState) -> TaxState:
    _check_unlocked(state, command.entry.id, "revenue")
    return state.model_copy(update={"revenues": _replace(state.revenues, command.entry, "revenue")})


@_reduce.register
def _(command: UpdateExpense, state: TaxState) -> TaxState:
    _check_unlocked(state, command.entry.id, "expense")
    return state.model_copy(update={"expenses": _replace(state.expenses, command.entry, "expense")})


@_reduce.register
def _(command: DeleteRevenue, state: TaxState) -> TaxState:
    _check_unlocked(state, command.entry_id, "revenue")
    return state.model_copy(update={"revenues": tuple(e for e in state.revenues if e.id != command.entry_id)})


@_reduce.register
def _(command: DeleteExpense, state: TaxState) -> TaxState:
    _check_unlocked(state, command.entry_id, "expense")
    return state.model_copy(update={"expenses": tuple(e for e in state.expenses if e.id != command.entry_id)})


@_reduce.register
def _(command: ImportRevenues, state: TaxState) -> TaxState:
    _check_new_ids(state, command.entries, "revenue")
    return state.model_copy(update={"revenues": state.revenues + tuple(command.entries)})


@_reduce.register
def _(command: ImportExpenses, state: TaxState) -> TaxState:
    _check_new_ids(state, command.entries, "expense")
    return state.model_copy(update={"expenses": state.expenses + tuple(command.entries)})


@_reduce.register
def _(command: ToggleDraftMode, state: TaxState) -> TaxState:
    enabled = (not state.is_draft_mode) if command.enabled is None else command.enabled
    return state.model_copy(update={"is_draft_mode": enabled})


@_reduce.register
def _(command: RecordSubmission, state: TaxState) -> TaxState:
    fields = {"reference_number": command.reference_number}
    if command.submitted_at is not None:
        fields["submitted_at"] = command.submitted_at
    receipt = SubmissionReceipt(**fields)
    carried = state.entry_ids() if command.entry_ids is None else command.entry_ids
    return state.model_copy(
        update={"last_submission": receipt, "submitted_entry_ids": state.submitted_entry_ids | carried}
    )


@_reduce.register
def _(command: ClearDraft, state: TaxState) -> TaxState:
    if not state.is_draft_mode:
        raise DraftNotClearableError("draft mode is off")
    if state.last_submission is None:
        raise DraftNotClearableError("no successful submission recorded")
    return state.model_copy(
        update={"revenues": (), "expenses": (), "is_draft_mode": False, "submitted_entry_ids": frozenset()}
    )


def apply(state: TaxState, command: Command) -> TaxState:
    """Return the state that results from ``command``. ``state`` is left untouched."""
    return _reduce(command, state)
