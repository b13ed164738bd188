import pytest
from pydantic import ValidationError

from peergos.core.config import DevSettings, ProdSettings, TestSettings, settings


def test_test_environment_selected():
    assert settings.ENV == "test"
    assert isinstance(settings, TestSettings)


def test_prod_requires_encryption_key(monkeypatch):
    monkeypatch.delenv("ENCRYPTION_KEY", raising=False)
    with pytest.raises(ValidationError) as exc:
        ProdSettings(_env_file=None)
    assert "ENCRYPTION_KEY" in str(exc.value)


def test_prod_live_submission_requires_credentials(monkeypatch):
    monkeypatch.delenv("FTA_API_URL", raising=False)
    monkeypatch.delenv("FTA_API_KEY", raising=False)
    with pytest.raises(ValidationError) as exc:
        ProdSettings(_env_file=None, ENCRYPTION_KEY="k" * 32, FTA_SUBMISSION_ENABLED=True)
    assert "FTA_API_URL" in str(exc.value)


def test_choices_are_normalised_and_checked():
    assert DevSettings(_env_file=None, STORAGE_BACKEND=" Redis ").STORAGE_BACKEND == "redis"
    with pytest.raises(ValidationError):
        DevSettings(_env_file=None, COMPLIANCE_SCORING_STRATEGY="random")
