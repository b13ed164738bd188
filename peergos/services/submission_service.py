"""
FTA submission gateway client.

Live transmission is gated by ``settings.FTA_SUBMISSION_ENABLED`` plus
configured credentials; otherwise submissions are simulated and recorded in
storage only. Either way every accepted submission is appended to the
per-TRN history under ``submissions_<trn>``.

No retry happens here: failures raise ``SubmissionError`` and the filing
workflow leaves the user on the summary step to retry manually.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from peergos import metrics
from peergos.core.config import settings
from peergos.core.exceptions import SubmissionError
from peergos.core.storage import SecureStorage
from peergos.models.tax_models import SubmissionPayload
from peergos.utils.id_generator import generate_reference_number

logger = logging.getLogger(__name__)


def submissions_key(trn: str) -> str:
    return f"submissions_{trn}"


class FTASubmissionClient:
    """External FTA API communication (SRP: submission transport only)."""

    def __init__(
        self,
        storage: SecureStorage,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        enabled: Optional[bool] = None,
        timeout: Optional[float] = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.storage = storage
        self.api_url = api_url or settings.FTA_API_URL
        self.api_key = api_key or settings.FTA_API_KEY
        self.enabled = settings.FTA_SUBMISSION_ENABLED if enabled is None else enabled
        self.timeout = timeout or settings.FTA_REQUEST_TIMEOUT_SECONDS
        self._transport = transport

    @property
    def live(self) -> bool:
        return bool(self.enabled and self.api_url and self.api_key)

    @staticmethod
    def generate_reference_number() -> str:
        return generate_reference_number()

    async def submit_to_fta(self, payload: SubmissionPayload) -> str:
        """Submit a filing and return the FTA reference number.

        Raises:
            SubmissionError: transport failure or non-2xx response (live mode).
        """
        started = time.perf_counter()
        if self.live:
            reference = await self._transmit(payload)
            mode = "live"
        else:
            logger.info("FTA submission not enabled; simulating submission %s", payload.reference_number)
            reference = payload.reference_number
            mode = "simulated"

        self._record(payload, reference)
        metrics.filing_submitted(mode, time.perf_counter() - started)
        logger.info("Filing %s accepted (%s)", reference, mode)
        return reference

    async def _transmit(self, payload: SubmissionPayload) -> str:
        async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
            try:
                response = await client.post(
                    f"{self.api_url.rstrip('/')}/submissions",
                    json=payload.to_wire(),
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                )
            except httpx.HTTPError as e:
                logger.error("FTA transmission exception: %s", e)
                raise SubmissionError(str(e) or type(e).__name__, payload.reference_number) from e

        if not response.is_success:
            logger.error("FTA transmission failed: %s", response.status_code)
            raise SubmissionError(
                f"gateway returned HTTP {response.status_code}",
                payload.reference_number,
                status=response.status_code,
            )

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            logger.warning("FTA accepted %s without a JSON object body", payload.reference_number)
            return payload.reference_number
        return body.get("referenceNumber") or body.get("reference_number") or payload.reference_number

    def _record(self, payload: SubmissionPayload, reference: str) -> None:
        key = submissions_key(payload.trn)
        history = self.storage.get(key) or []
        entry = payload.model_dump(mode="json", by_alias=True)
        entry["referenceNumber"] = reference
        entry["timestamp"] = datetime.now(timezone.utc).isoformat()
        history.append(entry)
        if not self.storage.set(key, history):
            logger.warning("Submission %s accepted but not added to stored history", reference)

    def get_submission_history(self, trn: str) -> list[dict[str, Any]]:
        history = self.storage.get(submissions_key(trn))
        return history if isinstance(history, list) else []
