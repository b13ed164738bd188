from prometheus_client import REGISTRY

from peergos import metrics


def _value(name: str, **labels) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_filing_submitted_counts_and_observes_latency():
    before = _value("filings_submitted_total", mode="simulated")
    observed = _value("filing_submission_latency_seconds_count")

    metrics.filing_submitted("simulated", 0.2)

    assert _value("filings_submitted_total", mode="simulated") == before + 1
    assert _value("filing_submission_latency_seconds_count") == observed + 1


def test_labelled_counters():
    before = _value("drafts_saved_total", trigger="autosave")
    metrics.draft_saved("autosave")
    assert _value("drafts_saved_total", trigger="autosave") == before + 1

    before = _value("validation_failures_total", kind="filing_step1")
    metrics.validation_failure("filing_step1")
    assert _value("validation_failures_total", kind="filing_step1") == before + 1
