"""TRN lookup against the FTA registry (static directory until a live API is accredited)."""
from __future__ import annotations

import logging
import re
from datetime import date
from types import MappingProxyType

from peergos.core.exceptions import InvalidTRNError
from peergos.models.schemas import TRNLookupResult
from peergos.utils.validators import validate_trn

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")

_REGISTRY = MappingProxyType(
    {
        r.trn: r
        for r in (
            TRNLookupResult(
                trn="100123456700003",
                company_name="Al Mansouri Trading LLC",
                status="active",
                registration_date=date(2018, 1, 1),
                compliance_status="compliant",
                business_type="Trading",
                emirate="Dubai",
                last_filing_date=date(2024, 1, 15),
            ),
            TRNLookupResult(
                trn="100987654300001",
                company_name="Emirates Tech Solutions FZE",
                status="active",
                registration_date=date(2019, 6, 15),
                compliance_status="compliant",
                business_type="Technology Services",
                emirate="Abu Dhabi",
                last_filing_date=date(2024, 1, 20),
            ),
            TRNLookupResult(
                trn="100555666700002",
                company_name="Gulf Construction Company LLC",
                status="active",
                registration_date=date(2017, 3, 10),
                compliance_status="under-review",
                business_type="Construction",
                emirate="Sharjah",
                last_filing_date=date(2023, 12, 28),
            ),
            TRNLookupResult(
                trn="100111222300004",
                company_name="Desert Rose Hospitality Group",
                status="suspended",
                registration_date=date(2020, 2, 20),
                compliance_status="non-compliant",
                business_type="Hospitality",
                emirate="Dubai",
                last_filing_date=date(2023, 10, 15),
            ),
        )
    }
)


def clean_trn(trn: str) -> str:
    """Strip spaces, dashes and other separators users paste in."""
    return _NON_DIGITS.sub("", trn or "")


def lookup_trn(trn: str) -> TRNLookupResult | None:
    """Return the registry record for ``trn`` or ``None`` when unregistered.

    Raises:
        InvalidTRNError: the cleaned value is not 15 digits.
    """
    cleaned = clean_trn(trn)
    result = validate_trn(cleaned)
    if not result.is_valid:
        raise InvalidTRNError(trn, result.errors[0])
    record = _REGISTRY.get(cleaned)
    if record is None:
        logger.info("TRN %s not found in registry", cleaned)
    return record
