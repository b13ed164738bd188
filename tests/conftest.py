from __future__ import annotations

import os

os.environ.setdefault("APP_ENV", "test")

import pytest  # noqa: E402

from factories import VALID_TRN  # noqa: E402
from peergos.core.audit import AuditLog  # noqa: E402
from peergos.core.encryption import _get_cipher  # noqa: E402
from peergos.core.rbac import Role, RoleContext  # noqa: E402
from peergos.core.storage import MemoryBackend, SecureStorage  # noqa: E402
from peergos.models.tax_models import CompanyProfile  # noqa: E402
from peergos.services.session_service import TaxSession  # noqa: E402


@pytest.fixture(autouse=True)
def _clear_cipher_cache():
    """Each test sees the ENCRYPTION_KEY it sets."""
    _get_cipher.cache_clear()
    yield
    _get_cipher.cache_clear()


@pytest.fixture
def storage() -> SecureStorage:
    return SecureStorage(MemoryBackend())


@pytest.fixture
def audit(tmp_path) -> AuditLog:
    return AuditLog(path=str(tmp_path / "audit.log"))


@pytest.fixture
def role_context(audit) -> RoleContext:
    return RoleContext(audit, Role.SME)


@pytest.fixture
def session(storage, audit, role_context):
    s = TaxSession(storage, audit, role_context, autosave_delay=0.01)
    yield s
    s.close()


@pytest.fixture
def profile() -> CompanyProfile:
    return CompanyProfile(
        company_name="Al Noor Trading LLC",
        trn_number=VALID_TRN,
        license_type="Commercial",
        email="finance@alnoor.ae",
        phone="+971501234567",
        address="Office 12, Deira, Dubai",
        business_activity="General Trading",
        vat_registered=True,
        cit_registered=False,
    )
