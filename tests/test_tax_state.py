"""Tests for tax state commands and the pure reducer."""
import pytest

from factories import make_expense, make_revenue
from peergos.core.exceptions import (
    DraftNotClearableError,
    DuplicateEntryError,
    EntryNotFoundError,
    SubmittedEntryLockedError,
    TaxStateError,
)
from peergos.models.tax_models import TaxState
from peergos.services.tax_state import (
    AddExpense,
    AddRevenue,
    ClearDraft,
    DeleteExpense,
    DeleteRevenue,
    ImportExpenses,
    ImportRevenues,
    RecordSubmission,
    SetProfile,
    ToggleDraftMode,
    UpdateExpense,
    UpdateRevenue,
    apply,
)


@pytest.fixture
def state():
    return TaxState(
        revenues=(make_revenue(1_000, 50, id="r1"),),
        expenses=(make_expense(200, id="e1"),),
    )


def test_apply_returns_new_state_and_leaves_old_untouched(state):
    new = apply(state, AddRevenue(make_revenue(500, 25, id="r2")))
    assert [r.id for r in new.revenues] == ["r1", "r2"]
    assert [r.id for r in state.revenues] == ["r1"]


def test_set_profile(state, profile):
    assert apply(state, SetProfile(profile)).profile == profile


def test_duplicate_ids_rejected_across_collections(state):
    with pytest.raises(DuplicateEntryError):
        apply(state, AddRevenue(make_revenue(1, id="r1")))
    with pytest.raises(DuplicateEntryError):
        apply(state, AddExpense(make_expense(1, id="r1")))


def test_import_rejects_duplicates_within_batch(state):
    batch = (make_revenue(1, id="r9"), make_revenue(2, id="r9"))
    with pytest.raises(DuplicateEntryError):
        apply(state, ImportRevenues(batch))


def test_import_appends(state):
    new = apply(state, ImportExpenses((make_expense(10, id="e2"), make_expense(20, id="e3"))))
    assert [e.id for e in new.expenses] == ["e1", "e2", "e3"]


def test_update_replaces_by_id(state):
    new = apply(state, UpdateRevenue(make_revenue(9_999, 400, id="r1")))
    assert new.revenues[0].amount == 9_999
    new = apply(new, UpdateExpense(make_expense(1, "Utilities", id="e1")))
    assert new.expenses[0].category == "Utilities"


def test_update_unknown_id_raises(state):
    with pytest.raises(EntryNotFoundError):
        apply(state, UpdateExpense(make_expense(1, id="nope")))


def test_delete(state):
    new = apply(state, DeleteRevenue("r1"))
    assert new.revenues == ()
    assert apply(new, DeleteExpense("missing")) == new


def test_toggle_draft_mode_keeps_entries(state):
    on = apply(state, ToggleDraftMode())
    assert on.is_draft_mode
    off = apply(on, ToggleDraftMode(enabled=False))
    assert not off.is_draft_mode
    assert off.revenues == state.revenues
    assert off.expenses == state.expenses


def test_clear_draft_requires_draft_mode_and_submission(state):
    with pytest.raises(DraftNotClearableError):
        apply(state, ClearDraft())

    drafting = apply(state, ToggleDraftMode(enabled=True))
    with pytest.raises(DraftNotClearableError):
        apply(drafting, ClearDraft())

    submitted = apply(drafting, RecordSubmission("FTA-1"))
    cleared = apply(submitted, ClearDraft())
    assert cleared.revenues == ()
    assert cleared.expenses == ()
    assert not cleared.is_draft_mode
    assert cleared.last_submission.reference_number == "FTA-1"
    assert cleared.submitted_entry_ids == frozenset()


def test_submission_locks_carried_entries(state):
    submitted = apply(state, RecordSubmission("FTA-1"))
    assert submitted.submitted_entry_ids == {"r1", "e1"}

    for command in (
        UpdateRevenue(make_revenue(5, id="r1")),
        UpdateExpense(make_expense(5, id="e1")),
        DeleteRevenue("r1"),
        DeleteExpense("e1"),
    ):
        with pytest.raises(SubmittedEntryLockedError) as exc:
            apply(submitted, command)
        assert isinstance(exc.value, TaxStateError)
        assert exc.value.details["entry_id"] in {"r1", "e1"}


def test_submission_locks_only_listed_entries(state):
    submitted = apply(state, RecordSubmission("FTA-1", entry_ids=frozenset({"r1"})))
    assert apply(submitted, DeleteExpense("e1")).expenses == ()
    with pytest.raises(SubmittedEntryLockedError):
        apply(submitted, DeleteRevenue("r1"))

    later = apply(submitted, RecordSubmission("FTA-2", entry_ids=frozenset({"e1"})))
    assert later.submitted_entry_ids == {"r1", "e1"}


def test_locked_ids_survive_a_snapshot_roundtrip(state):
    submitted = apply(state, RecordSubmission("FTA-1"))
    restored = TaxState.model_validate(submitted.model_dump(mode="json"))
    assert restored.submitted_entry_ids == frozenset({"r1", "e1"})


def test_commands_carry_action_names():
    assert AddRevenue.action == "ADD_REVENUE"
    assert ClearDraft().action == "CLEAR_DRAFT"


def test_unknown_command_type():
    with pytest.raises(TypeError):
        apply(TaxState(), object())  # type: ignore[arg-type]


def test_state_rejects_duplicate_ids_on_construction():
    with pytest.raises(ValueError):
        TaxState(revenues=(make_revenue(1, id="x"),), expenses=(make_expense(1, id="x"),))
