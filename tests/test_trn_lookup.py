"""Tests for the TRN registry lookup."""
from datetime import date

import pytest

from peergos.core.exceptions import InvalidTRNError
from peergos.services.trn_lookup_service import clean_trn, lookup_trn


def test_lookup_known_trn():
    record = lookup_trn("100987654300001")
    assert record.company_name == "Emirates Tech Solutions FZE"
    assert record.emirate == "Abu Dhabi"
    assert record.registration_date == date(2019, 6, 15)


def test_lookup_accepts_separators():
    assert clean_trn(" 100-5556-6670-0002 ") == "100555666700002"
    assert lookup_trn("100 5556 6670 0002").compliance_status == "under-review"


def test_suspended_company_is_returned_as_is():
    record = lookup_trn("100111222300004")
    assert record.status == "suspended"
    assert record.compliance_status == "non-compliant"


def test_unknown_trn_returns_none():
    assert lookup_trn("123456789012345") is None


@pytest.mark.parametrize("trn", ["", "12345", "1001234567000031"])
def test_invalid_trn_raises(trn):
    with pytest.raises(InvalidTRNError) as exc:
        lookup_trn(trn)
    assert exc.value.code == "TRN300"
