"""Tests for the FTA submission gateway client."""
import json

import httpx
import pytest

from factories import VALID_TRN, UnwritableBackend, make_expense, make_revenue
from peergos.core.exceptions import SubmissionError
from peergos.core.storage import SecureStorage
from peergos.models.tax_models import SubmissionData, SubmissionPayload
from peergos.services.submission_service import FTASubmissionClient, submissions_key


def _payload(reference: str = "FTA-1718000000000-ABC123") -> SubmissionPayload:
    return SubmissionPayload(
        trn=VALID_TRN,
        reference_number=reference,
        data=SubmissionData(
            revenues=[make_revenue(500_000, 25_000, id="r1")],
            expenses=[make_expense(100_000, id="e1")],
            vat_due=25_000,
            cit_due=2_250,
            compliance_score=90,
        ),
    )


def _live_client(storage, handler) -> FTASubmissionClient:
    return FTASubmissionClient(
        storage,
        api_url="https://fta.example/api/",
        api_key="test-key",
        enabled=True,
        transport=httpx.MockTransport(handler),
    )


def test_payload_wire_format_is_camel_case():
    wire = _payload().to_wire()
    assert wire["referenceNumber"] == "FTA-1718000000000-ABC123"
    assert wire["data"]["vatDue"] == 25_000
    assert wire["data"]["complianceScore"] == 90
    assert wire["data"]["revenues"][0]["vat_amount"] == 25_000
    assert wire["data"]["revenues"][0]["date"] == "2024-01-15"


def test_live_requires_enabled_and_credentials(storage):
    assert not FTASubmissionClient(storage, enabled=False, api_url="u", api_key="k").live
    assert not FTASubmissionClient(storage, enabled=True, api_url=None, api_key="k").live
    assert FTASubmissionClient(storage, enabled=True, api_url="u", api_key="k").live


def test_generated_reference_numbers():
    ref = FTASubmissionClient.generate_reference_number()
    assert ref.startswith("FTA-")
    assert ref != FTASubmissionClient.generate_reference_number()


@pytest.mark.asyncio
async def test_simulated_submission_records_history(storage):
    client = FTASubmissionClient(storage, enabled=False)

    first = await client.submit_to_fta(_payload("FTA-A"))
    second = await client.submit_to_fta(_payload("FTA-B"))

    assert (first, second) == ("FTA-A", "FTA-B")
    history = client.get_submission_history(VALID_TRN)
    assert [h["referenceNumber"] for h in history] == ["FTA-A", "FTA-B"]
    assert storage.get(submissions_key(VALID_TRN)) == history


def test_history_for_unknown_trn_is_empty(storage):
    assert FTASubmissionClient(storage, enabled=False).get_submission_history("100000000000000") == []


@pytest.mark.asyncio
async def test_live_submission_posts_payload(storage):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"referenceNumber": "FTA-GW-0001"})

    reference = await _live_client(storage, handler).submit_to_fta(_payload())

    assert reference == "FTA-GW-0001"
    assert seen["url"] == "https://fta.example/api/submissions"
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"]["trn"] == VALID_TRN
    assert storage.get(submissions_key(VALID_TRN))[0]["referenceNumber"] == "FTA-GW-0001"


@pytest.mark.asyncio
async def test_live_submission_without_reference_in_body(storage):
    client = _live_client(storage, lambda request: httpx.Response(200, text="ok"))
    assert await client.submit_to_fta(_payload("FTA-LOCAL")) == "FTA-LOCAL"


@pytest.mark.asyncio
async def test_live_submission_with_non_object_body(storage):
    client = _live_client(storage, lambda request: httpx.Response(200, json=["ok"]))

    assert await client.submit_to_fta(_payload("FTA-LIST")) == "FTA-LIST"
    assert client.get_submission_history(VALID_TRN)[0]["referenceNumber"] == "FTA-LIST"


@pytest.mark.asyncio
async def test_accepted_submission_survives_history_write_failure():
    client = FTASubmissionClient(SecureStorage(UnwritableBackend()), enabled=False)

    assert await client.submit_to_fta(_payload("FTA-MEM")) == "FTA-MEM"
    assert client.get_submission_history(VALID_TRN) == []


@pytest.mark.asyncio
async def test_gateway_error_status_raises(storage):
    client = _live_client(storage, lambda request: httpx.Response(500, json={"error": "boom"}))

    with pytest.raises(SubmissionError) as exc:
        await client.submit_to_fta(_payload())

    assert exc.value.code == "SUB200"
    assert exc.value.details["status"] == 500
    assert client.get_submission_history(VALID_TRN) == []


@pytest.mark.asyncio
async def test_transport_error_raises(storage):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(SubmissionError) as exc:
        await _live_client(storage, handler).submit_to_fta(_payload("FTA-X"))

    assert "connection refused" in exc.value.message
    assert exc.value.details["reference_number"] == "FTA-X"
