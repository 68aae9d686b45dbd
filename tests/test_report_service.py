"""
test_report_service.py

End-to-end tests for the report parsing service.

Covers:
- Download -> extraction -> classification -> parsing.
- Failure results for storage, extraction and request errors.
- JSON payload shape and async fan-out.
"""

import pytest

from labreport.commons.report_engine import ReportEngine
from labreport.helpers.blob_store import FileBlobStore, MemoryBlobStore
from labreport.parsers.models import ParsedReport, ParseFailure, ProviderTag
from labreport.services.report_service import ReportService, build_service

GLUCOSE_STREAM = b"BT (Glucose) Tj (95) Tj (mg/dL) Tj (70-100) Tj ET"
LABCORP_STREAM = (
    b"BT /F1 10 Tf 72 740 Td (LabCorp) Tj 0 -14 Td (Specimen ID: 555-777) Tj ET\n"
    b"BT 72 700 Td (TSH 6.1 H mIU/L 0.4-4.5) Tj 0 -14 Td (Sodium 140 mmol/L 134-144) Tj ET"
)


def cfg_min(tmp_path, **parsers):
    # Config mínima para el servicio
    return {
        "paths": {"logs_root": "", "storage_root": str(tmp_path)},
        "storage": {"type": "file", "default_bucket": "lab-results"},
        "parsers": {"autodetect": True, "override": "", **parsers},
    }


def make_service(tmp_path, objects=None, **parsers):
    engine = ReportEngine(cfg_min(tmp_path, **parsers))
    return ReportService(engine, MemoryBlobStore(objects))


def test_glucose_fragment_end_to_end(tmp_path, make_pdf):
    svc = make_service(tmp_path, {("lab-results", "orders/1.pdf"): make_pdf(GLUCOSE_STREAM)})
    res = svc.parse({"documentRef": "orders/1.pdf"})
    assert isinstance(res, ParsedReport)
    assert res.success is True
    assert res.metadata.parser_used == ProviderTag.GENERIC
    assert res.metadata.total_markers >= 1
    m = res.markers()[0]
    assert (m.name, m.value, m.unit, m.status) == ("Glucose", 95.0, "mg/dL", "normal")


def test_labcorp_document_end_to_end(tmp_path, make_pdf):
    svc = make_service(tmp_path, {("lab-results", "a.pdf"): make_pdf(LABCORP_STREAM, compress=True)})
    res = svc.parse({"documentRef": "a.pdf", "correlationId": "req-42"})
    assert res.metadata.parser_used == ProviderTag.LABCORP
    assert res.metadata.confidence == "high"
    assert res.provider.lab_number == "555-777"
    tsh, sodium = res.markers()
    assert tsh.status == "high" and tsh.flags == ("H",)
    assert sodium.status == "normal"


def test_missing_object_is_fetch_failure(tmp_path):
    res = make_service(tmp_path).parse({"documentRef": "nope.pdf"})
    assert isinstance(res, ParseFailure)
    assert res.success is False
    assert res.error.startswith("Failed to download file:")
    assert "Object not found: lab-results/nope.pdf" in res.error


def test_store_exception_is_wrapped(tmp_path):
    class BrokenStore:
        def download(self, bucket, key):
            raise ConnectionError("boom")

    svc = ReportService(ReportEngine(cfg_min(tmp_path)), BrokenStore())
    res = svc.parse({"documentRef": "x.pdf"})
    assert res.error == "Failed to download file: boom"


def test_unreadable_pdf_is_extraction_failure(tmp_path):
    svc = make_service(tmp_path, {("lab-results", "scan.pdf"): b"\x00\x01"})
    res = svc.parse({"documentRef": "scan.pdf"})
    assert res.error == "No text could be extracted from PDF. File may be scanned or corrupted."
    assert "size=2 bytes" in res.details


def test_invalid_request(tmp_path):
    res = make_service(tmp_path).parse({"documentRef": "   "})
    assert isinstance(res, ParseFailure)
    assert res.error == "Invalid parse request"


def test_custom_bucket(tmp_path, make_pdf):
    svc = make_service(tmp_path, {("archive", "b.pdf"): make_pdf(GLUCOSE_STREAM)})
    res = svc.parse({"documentRef": "b.pdf", "storageBucket": "archive"})
    assert isinstance(res, ParsedReport)


def test_override_forces_parser_and_warns(tmp_path, make_pdf):
    svc = make_service(tmp_path, {("lab-results", "g.pdf"): make_pdf(GLUCOSE_STREAM)}, override="quest")
    res = svc.parse({"documentRef": "g.pdf"})
    assert res.metadata.parser_used == ProviderTag.QUEST
    assert "Document does not appear to be a Quest Diagnostics report" in res.metadata.warnings


def test_autodetect_off_uses_generic(tmp_path, make_pdf):
    svc = make_service(tmp_path, {("lab-results", "a.pdf"): make_pdf(LABCORP_STREAM)}, autodetect=False)
    res = svc.parse({"documentRef": "a.pdf"})
    assert res.metadata.parser_used == ProviderTag.GENERIC


def test_same_input_same_output(tmp_path, make_pdf):
    svc = make_service(tmp_path, {("lab-results", "a.pdf"): make_pdf(LABCORP_STREAM)})
    assert svc.parse({"documentRef": "a.pdf"}) == svc.parse({"documentRef": "a.pdf"})


def test_payload_shape(tmp_path, make_pdf):
    svc = make_service(tmp_path, {("lab-results", "g.pdf"): make_pdf(GLUCOSE_STREAM)})
    payload = svc.parse_payload({"documentRef": "g.pdf"})
    assert payload["success"] is True
    assert payload["provider"] == {"name": "Generic"}
    assert "patient" not in payload
    assert payload["rawText"] == "Glucose 95 mg/dL 70-100"
    assert payload["sections"] == [
        {
            "sectionName": "Lab Results",
            "markers": [
                {
                    "name": "Glucose",
                    "value": 95.0,
                    "unit": "mg/dL",
                    "referenceRange": {"min": 70.0, "max": 100.0, "text": "70-100"},
                    "status": "normal",
                }
            ],
        }
    ]
    assert payload["metadata"] == {
        "totalMarkers": 1,
        "confidence": "medium",
        "parserUsed": "generic",
        "extractionMethod": "pdf-text",
    }


def test_failure_payload_shape(tmp_path):
    payload = make_service(tmp_path).parse_payload({"documentRef": "nope.pdf"})
    assert payload["success"] is False
    assert payload["error"].startswith("Failed to download file:")
    assert set(payload) <= {"success", "error", "details"}


def test_file_store_end_to_end(tmp_path, make_pdf):
    svc = build_service(cfg_min(tmp_path))
    assert isinstance(svc.store, FileBlobStore)
    svc.store.upload("lab-results", "2024/03/g.pdf", make_pdf(GLUCOSE_STREAM))
    res = svc.parse({"documentRef": "2024/03/g.pdf"})
    assert res.metadata.total_markers == 1


def test_file_store_rejects_escaping_keys(tmp_path):
    (tmp_path / "secret.pdf").write_bytes(b"%PDF")
    res = build_service(cfg_min(tmp_path)).parse({"documentRef": "../secret.pdf"})
    assert isinstance(res, ParseFailure)
    assert "escapes bucket" in res.error


def test_packaged_defaults_load():
    engine = ReportEngine()
    assert engine.settings.storage.default_bucket == "lab-results"
    assert engine.settings.parsers.autodetect is True
    assert engine.preview_bytes == 64


@pytest.mark.asyncio
async def test_aparse_many_keeps_order(tmp_path, make_pdf):
    svc = make_service(
        tmp_path,
        {
            ("lab-results", "g.pdf"): make_pdf(GLUCOSE_STREAM),
            ("lab-results", "a.pdf"): make_pdf(LABCORP_STREAM),
        },
    )
    results = await svc.aparse_many(
        [{"documentRef": "g.pdf"}, {"documentRef": "missing.pdf"}, {"documentRef": "a.pdf"}]
    )
    assert [r.success for r in results] == [True, False, True]
    assert results[0].metadata.parser_used == ProviderTag.GENERIC
    assert results[2].metadata.parser_used == ProviderTag.LABCORP


def test_logging_setup_writes_daily_folder(tmp_path, make_pdf):
    from labreport.commons.logger import logger

    cfg = cfg_min(tmp_path)
    cfg["paths"]["logs_root"] = str(tmp_path / "logs")
    svc = build_service(cfg, store=MemoryBlobStore(), configure_logging=True)
    try:
        svc.parse({"documentRef": "missing.pdf", "correlationId": "abc"})
        logger.complete()
        logs = list((tmp_path / "logs").rglob("app.log"))
        assert len(logs) == 1
        assert "abc" in logs[0].read_text(encoding="utf-8")
    finally:
        logger.remove()


def test_bare_document_ref_string(tmp_path, make_pdf):
    svc = make_service(tmp_path)
    svc.store.upload("lab-results", "a.pdf", make_pdf(GLUCOSE_STREAM))
    res = svc.parse("a.pdf")
    assert isinstance(res, ParsedReport)
    assert res.metadata.total_markers == 1


@pytest.mark.parametrize("request_", [None, 42, ["a.pdf"], ""])
def test_malformed_request_is_failure(tmp_path, request_):
    res = make_service(tmp_path).parse(request_)
    assert isinstance(res, ParseFailure)
    assert res.error == "Invalid parse request"


def test_scanned_pdf_is_failure(tmp_path, scanned_pdf):
    svc = make_service(tmp_path, {("lab-results", "scan.pdf"): scanned_pdf})
    res = svc.parse({"documentRef": "scan.pdf"})
    assert isinstance(res, ParseFailure)
    assert res.error == "No text could be extracted from PDF. File may be scanned or corrupted."


def test_engine_payload_for_failure(tmp_path):
    engine = ReportEngine(cfg_min(tmp_path))
    payload = engine.payload_for(ParseFailure(error="Invalid parse request", details="x"))
    assert payload == {"success": False, "error": "Invalid parse request", "details": "x"}
