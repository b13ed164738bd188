"""TRN redaction in log output."""
import logging

from peergos.core.logger import TRNRedactionFilter, init_logging, redact_trn


def test_redact_trn_keeps_last_four_digits():
    assert redact_trn("lookup 100123456700003 ok") == "lookup ***********0003 ok"


def test_redact_leaves_other_numbers_alone():
    assert redact_trn("amount 375000 and phone 0501234567") == "amount 375000 and phone 0501234567"
    assert redact_trn("ref 1001234567000031") == "ref 1001234567000031"


def test_filter_rewrites_record_args():
    record = logging.LogRecord("peergos", logging.INFO, __file__, 1, "TRN %s not found", ("100987654300001",), None)
    assert TRNRedactionFilter().filter(record) is True
    assert record.getMessage() == "TRN ***********0001 not found"


def test_init_logging_installs_one_redacting_handler(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)

    init_logging()
    init_logging()

    assert len(root.handlers) == 1
    assert any(isinstance(f, TRNRedactionFilter) for f in root.handlers[0].filters)
