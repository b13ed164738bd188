"""Metrics facade.

Service code should ONLY call the semantic helpers here so we can change the
backend freely.

Metrics:
- filings_submitted_total           Filings accepted by the FTA gateway
- filing_submission_failures_total  Submissions that raised SubmissionError
- filing_submission_latency_seconds Time spent awaiting the gateway
- drafts_saved_total                Draft saves (manual and autosave)
- storage_write_failures_total      Writes the storage backend rejected, by backend
- compliance_checks_total           Compliance evaluations, by strategy
- validation_failures_total         Failed validations surfaced to a user, by kind
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Histogram

logger = logging.getLogger("metrics")

_FILINGS_SUBMITTED = Counter("filings_submitted_total", "Filings accepted by the FTA gateway", ["mode"])
_SUBMISSION_FAILURES = Counter(
    "filing_submission_failures_total", "Filing submissions that failed", ["reason"]
)
_SUBMISSION_LATENCY = Histogram(
    "filing_submission_latency_seconds",
    "Latency of FTA submission calls",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30),
)
_DRAFTS_SAVED = Counter("drafts_saved_total", "Draft filings persisted", ["trigger"])
_STORAGE_WRITE_FAILURES = Counter(
    "storage_write_failures_total", "Storage writes rejected by the backend", ["backend"]
)
_COMPLIANCE_CHECKS = Counter("compliance_checks_total", "Compliance evaluations served", ["strategy"])
_VALIDATION_FAILURES = Counter("validation_failures_total", "Validation failures", ["kind"])


def filing_submitted(mode: str = "simulated", latency_seconds: float | None = None):
    _FILINGS_SUBMITTED.labels(mode=mode).inc()
    if latency_seconds is not None:
        _SUBMISSION_LATENCY.observe(latency_seconds)
    logger.debug("metric filings_submitted_total{mode=%s} += 1", mode)


def submission_failed(reason: str = "unknown"):
    _SUBMISSION_FAILURES.labels(reason=reason).inc()
    logger.debug("metric filing_submission_failures_total{reason=%s} += 1", reason)


def draft_saved(trigger: str = "manual"):
    _DRAFTS_SAVED.labels(trigger=trigger).inc()


def storage_write_failed(backend: str):
    _STORAGE_WRITE_FAILURES.labels(backend=backend).inc()
    logger.debug("metric storage_write_failures_total{backend=%s} += 1", backend)


def compliance_check_record(strategy: str):
    _COMPLIANCE_CHECKS.labels(strategy=strategy).inc()


def validation_failure(kind: str):
    _VALIDATION_FAILURES.labels(kind=kind).inc()
