"""Exception hierarchy for the Peergos compliance engine.

Field-level problems are never raised: validators return a ``ValidationResult``
and threshold breaches are reported as ``ComplianceWarning`` models. The
exceptions below cover the few places where raising is the contract (the
submission boundary, reducer invariants, explicit permission checks).

Error codes follow pattern: [CATEGORY][NUMBER]
- TRN: Tax registration number errors (300-399)
- FIL: Filing workflow errors (100-199)
- SUB: Submission gateway errors (200-299)
- STA: Tax state / reducer errors (400-499)
- ACC: Access control errors (500-599)
- STO: Storage errors (600-699)
- SYS: System errors (900-999)
"""

from __future__ import annotations

from typing import Any


class PeergosException(Exception):
    """Base exception for all Peergos application errors."""

    def __init__(
        self,
        message: str,
        code: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "message": self.message,
                "code": self.code,
                "details": self.details,
            }
        }


# ============================================================================
# TRN ERRORS (TRN300-399)
# ============================================================================

class InvalidTRNError(PeergosException):
    """Tax Registration Number failed the canonical format rule."""

    def __init__(self, trn: str, reason: str | None = None):
        base_message = "Invalid TRN"
        message = f"{base_message}. {reason}" if reason else base_message
        super().__init__(
            message=message,
            code="TRN300",
            details={"trn": trn, "reason": reason},
        )


# ============================================================================
# FILING ERRORS (FIL100-199)
# ============================================================================

class FilingError(PeergosException):
    """Base class for filing workflow errors."""
    pass


class FilingStepError(FilingError):
    """Operation is not available at the wizard's current step."""

    def __init__(self, operation: str, step: str):
        super().__init__(
            message=f"Cannot {operation} from step '{step}'",
            code="FIL100",
            details={"operation": operation, "step": step},
        )


class DeclarationRequiredError(FilingError):
    """Submission attempted without accepting the declaration."""

    def __init__(self):
        super().__init__(
            message="You must declare that the information provided is true and accurate",
            code="FIL101",
        )


# ============================================================================
# SUBMISSION ERRORS (SUB200-299)
# ============================================================================

class SubmissionError(PeergosException):
    """The FTA submission gateway rejected or failed the request.

    Recoverable: the wizard stays on the summary step and the user may retry.
    """

    def __init__(self, reason: str, reference_number: str | None = None, status: int | None = None):
        super().__init__(
            message=f"FTA submission failed: {reason}",
            code="SUB200",
            details={"reference_number": reference_number, "status": status},
        )


# ============================================================================
# TAX STATE ERRORS (STA400-499)
# ============================================================================

class TaxStateError(PeergosException):
    """Base class for reducer invariant violations."""
    pass


class DuplicateEntryError(TaxStateError):
    def __init__(self, entry_id: str, kind: str):
        super().__init__(
            message=f"A {kind} entry with id '{entry_id}' already exists",
            code="STA400",
            details={"entry_id": entry_id, "kind": kind},
        )


class EntryNotFoundError(TaxStateError):
    def __init__(self, entry_id: str, kind: str):
        super().__init__(
            message=f"No {kind} entry with id '{entry_id}'",
            code="STA401",
            details={"entry_id": entry_id, "kind": kind},
        )


class DraftNotClearableError(TaxStateError):
    """CLEAR_DRAFT is only valid in draft mode after a successful submission."""

    def __init__(self, reason: str):
        super().__init__(
            message=f"Draft cannot be cleared: {reason}",
            code="STA402",
            details={"reason": reason},
        )


class SubmittedEntryLockedError(TaxStateError):
    """Entries included in an accepted filing cannot be edited or deleted."""

    def __init__(self, entry_id: str, kind: str):
        super().__init__(
            message=f"The {kind} entry '{entry_id}' belongs to a submitted filing and cannot be changed",
            code="STA403",
            details={"entry_id": entry_id, "kind": kind},
        )


# ============================================================================
# ACCESS ERRORS (ACC500-599)
# ============================================================================

class PermissionDeniedError(PeergosException):
    """Role lacks the requested permission on a resource."""

    def __init__(self, role: str, resource: str, permission: str):
        super().__init__(
            message=f"Role '{role}' cannot {permission} {resource}",
            code="ACC500",
            details={"role": role, "resource": resource, "permission": permission},
        )


# ============================================================================
# STORAGE ERRORS (STO600-699)
# ============================================================================

class StorageError(PeergosException):
    """A value could not be written to the storage backend."""

    def __init__(self, key: str, reason: str | None = None):
        message = f"Failed to store '{key}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message=message,
            code="STO600",
            details={"key": key, "reason": reason},
        )


# ============================================================================
# SYSTEM ERRORS (SYS900-999)
# ============================================================================

class ConfigurationError(PeergosException):
    """Application configuration is invalid or missing."""

    def __init__(self, parameter: str, reason: str | None = None):
        message = f"Configuration error: {parameter} is not configured properly"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(
            message=message,
            code="SYS900",
            details={"parameter": parameter},
        )
