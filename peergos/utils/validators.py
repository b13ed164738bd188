"""Field and entry validators.

Every function returns a ``ValidationResult`` and never raises; inputs are
never mutated. Composite validators accept a plain mapping (form data, a
bulk-upload row) or a model instance.
"""
from __future__ import annotations

import math
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Sequence

from peergos.models.schemas import ValidationResult

TRN_REQUIRED = "TRN is required"
TRN_FORMAT = "TRN must be exactly 15 digits"

_TRN_RE = re.compile(r"^\d{15}$", re.ASCII)
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_UAE_PHONE_RE = re.compile(r"^(\+971|00971|0)?(?:50|51|52|55|56|58|2|3|4|6|7|9)\d{7}$", re.ASCII)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _as_mapping(entry: Mapping[str, Any] | Any) -> Mapping[str, Any]:
    if hasattr(entry, "model_dump"):
        return entry.model_dump()
    if isinstance(entry, Mapping):
        return entry
    return {}


# ── Primitive fields ─────────────────────────────────────────────────

def validate_trn(trn: str | None) -> ValidationResult:
    """15 digits, nothing else. No checksum is applied."""
    if _blank(trn):
        return ValidationResult.from_errors([TRN_REQUIRED])
    if not _TRN_RE.fullmatch(str(trn)):
        return ValidationResult.from_errors([TRN_FORMAT])
    return ValidationResult.from_errors([])


def validate_email(email: str | None) -> ValidationResult:
    if _blank(email):
        return ValidationResult.from_errors(["Email is required"])
    if not _EMAIL_RE.fullmatch(str(email)):
        return ValidationResult.from_errors(["Invalid email format"])
    return ValidationResult.from_errors([])


def validate_phone(phone: str | None) -> ValidationResult:
    if _blank(phone):
        return ValidationResult.from_errors(["Phone number is required"])
    if not _UAE_PHONE_RE.fullmatch(str(phone).replace(" ", "")):
        return ValidationResult.from_errors(["Invalid UAE phone number format"])
    return ValidationResult.from_errors([])


def parse_amount(amount: Any) -> float | None:
    """Number or numeric string to a finite float; anything else is None."""
    if isinstance(amount, bool) or amount is None:
        return None
    try:
        if isinstance(amount, str):
            value = float(Decimal(amount.strip().replace(",", "")))
        elif isinstance(amount, (int, float, Decimal)):
            value = float(amount)
        else:
            return None
    except (InvalidOperation, ValueError, OverflowError):
        return None
    return value if math.isfinite(value) else None


def validate_amount(amount: Any) -> ValidationResult:
    value = parse_amount(amount)
    if value is None:
        return ValidationResult.from_errors(["Amount must be a valid number"])
    if value < 0:
        return ValidationResult.from_errors(["Amount cannot be negative"])
    return ValidationResult.from_errors([])


def parse_date(value: Any) -> date | datetime | None:
    if isinstance(value, (date, datetime)):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None


def _is_after(parsed: date | datetime, now: datetime | None) -> bool:
    reference = now or datetime.now().astimezone()
    if isinstance(parsed, datetime):
        # naive values are taken as local time
        return parsed.astimezone() > reference.astimezone()
    return parsed > reference.date()


def validate_date(value: Any, now: datetime | None = None) -> ValidationResult:
    """ISO string, ``date`` or ``datetime``; anything strictly after ``now`` fails."""
    if _blank(value):
        return ValidationResult.from_errors(["Date is required"])
    parsed = parse_date(value)
    if parsed is None:
        return ValidationResult.from_errors(["Invalid date format"])
    if _is_after(parsed, now):
        return ValidationResult.from_errors(["Date cannot be in the future"])
    return ValidationResult.from_errors([])


# ── Entries ──────────────────────────────────────────────────────────

def _common_entry_errors(data: Mapping[str, Any], now: datetime | None) -> list[str]:
    errors: list[str] = []
    errors.extend(validate_date(data.get("date"), now).errors)

    amount = data.get("amount")
    if amount is None or amount == "":
        errors.append("Amount is required")
    else:
        errors.extend(validate_amount(amount).errors)
    return errors


def validate_revenue_entry(entry: Mapping[str, Any] | Any, now: datetime | None = None) -> ValidationResult:
    data = _as_mapping(entry)
    errors = _common_entry_errors(data, now)
    if _blank(data.get("source")):
        errors.append("Revenue source is required")

    vat_amount = data.get("vat_amount", data.get("vatAmount"))
    if vat_amount is not None and not validate_amount(vat_amount).is_valid:
        errors.append("Invalid VAT amount")
    return ValidationResult.from_errors(errors)


def validate_expense_entry(entry: Mapping[str, Any] | Any, now: datetime | None = None) -> ValidationResult:
    data = _as_mapping(entry)
    errors = _common_entry_errors(data, now)
    if _blank(data.get("category")):
        errors.append("Expense category is required")
    return ValidationResult.from_errors(errors)


def validate_bulk_upload(
    entries: Sequence[Mapping[str, Any] | Any],
    entry_type: str,
    now: datetime | None = None,
) -> ValidationResult:
    """Validate every row; the batch is invalid if any row is.

    Errors read ``"Row 3: Date is required, Amount is required"`` with 1-based
    row numbers. An empty batch is valid.
    """
    validator = validate_revenue_entry if entry_type == "revenue" else validate_expense_entry
    errors: list[str] = []
    for index, row in enumerate(entries, start=1):
        result = validator(row, now)
        if not result.is_valid:
            errors.append(f"Row {index}: {', '.join(result.errors)}")
    return ValidationResult.from_errors(errors)


def validate_company_profile(profile: Mapping[str, Any] | Any) -> ValidationResult:
    data = _as_mapping(profile)
    errors: list[str] = []
    if _blank(data.get("company_name")):
        errors.append("Company name is required")
    errors.extend(validate_trn(data.get("trn_number")).errors)
    errors.extend(validate_email(data.get("email")).errors)
    errors.extend(validate_phone(data.get("phone")).errors)
    return ValidationResult.from_errors(errors)
