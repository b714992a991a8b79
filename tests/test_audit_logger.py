import json
import logging

from image_pipeline.infrastructure.audit.std_logger import StdPipelineAuditLogger


def test_audit_entry_is_json(caplog):
    audit = StdPipelineAuditLogger()
    with caplog.at_level(logging.INFO, logger="image_pipeline.infrastructure.audit.std_logger"):
        audit.log("compress", "abc", success=True, mode="fallback", details={"size": 10})

    line = caplog.records[-1].getMessage()
    assert line.startswith("AUDIT: ")
    entry = json.loads(line[len("AUDIT: "):])
    assert entry["operation"] == "compress"
    assert entry["image_id"] == "abc"
    assert entry["mode"] == "fallback"
    assert entry["details"] == {"size": 10}


def test_failures_are_warnings(caplog):
    audit = StdPipelineAuditLogger()
    with caplog.at_level(logging.INFO):
        audit.log("upload", None, success=False)
    assert caplog.records[-1].levelno == logging.WARNING
