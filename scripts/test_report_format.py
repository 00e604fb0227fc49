#!/usr/bin/env python3
"""离线单测：报告段落顺序、header 截断（50 字符 + ...）、多行 body 对齐、verification 段与结构化记录；sink 整块写出。"""
from __future__ import annotations

import io
import json
import logging
import sys
import threading
from datetime import datetime, timezone

from hookprobe.config import ProbeConfig
from hookprobe.inspect_logic import inspect_delivery
from hookprobe.report import ReportSink, display_header_value
from hookprobe.signature import build_signature_header
from hookprobe.snapshot import make_snapshot

CONFIG = ProbeConfig(secret=b"sk_test")
NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


def _report(headers, body=b"", method="POST", path="/hook", query="", config=CONFIG):
    snap = make_snapshot(method, path, headers=headers, body=body, query=query)
    return inspect_delivery(config, snap, now=NOW)


def test_section_order() -> None:
    _, report = _report([("content-type", "application/json")], body=b'{"a":1}')
    lines = list(report.lines)
    markers = ["Request: POST /hook", "[Headers]:", "[Body]: (PRETTY_JSON, 7 bytes)", "[Verification]:"]
    positions = []
    for m in markers:
        idx = next((i for i, line in enumerate(lines) if line.startswith(m)), None)
        if idx is None:
            raise SystemExit(f"FAIL: marker {m!r} missing in report:\n{report.text()}")
        positions.append(idx)
    if positions != sorted(positions):
        raise SystemExit(f"FAIL: section order wrong: {positions}")
    if f"Received: {NOW.isoformat(timespec='seconds')}" not in lines:
        raise SystemExit("FAIL: timestamp line missing")


def test_query_shown_in_request_line() -> None:
    _, report = _report([], path="/cb", query="id=7&x=1", method="GET")
    if "Request: GET /cb?id=7&x=1" not in report.lines:
        raise SystemExit(f"FAIL: request line: {report.lines[1]!r}")


def test_long_header_value_truncated() -> None:
    long_value = "v" * 80
    _, report = _report([("x-long", long_value), ("x-short", "ok")])
    if f"  x-long: {'v' * 50}..." not in report.lines:
        raise SystemExit(f"FAIL: long header not truncated:\n{report.text()}")
    if "  x-short: ok" not in report.lines:
        raise SystemExit("FAIL: short header altered")


def test_exactly_cap_not_truncated() -> None:
    if display_header_value(b"a" * 50) != "a" * 50:
        raise SystemExit("FAIL: 50-char value should not be truncated")
    if display_header_value(b"a" * 51) != "a" * 50 + "...":
        raise SystemExit("FAIL: 51-char value should be truncated")


def test_truncation_does_not_affect_verification() -> None:
    body = b'{"a":1}'
    sig = build_signature_header(CONFIG.secret, body)
    status, report = _report([("X-Super-Signature", sig)], body=body)
    if status != 200 or report.record.outcome != "PASSED":
        raise SystemExit(f"FAIL: truncated header display broke verification: {status} {report.record.outcome}")
    if f"  X-Super-Signature: {sig[:50]}..." not in report.lines:
        raise SystemExit("FAIL: signature header display not truncated")
    if f"  Provided:   {sig.split('=', 1)[1]}" not in report.lines:
        raise SystemExit("FAIL: provided digest should be shown in full")


def test_duplicate_headers_kept_in_order() -> None:
    _, report = _report([("x-a", "1"), ("x-b", "2"), ("x-a", "3")])
    header_lines = [line for line in report.lines if line.startswith("  x-")]
    if header_lines != ["  x-a: 1", "  x-b: 2", "  x-a: 3"]:
        raise SystemExit(f"FAIL: header order/duplicates: {header_lines}")


def test_non_text_header_value_escaped() -> None:
    shown = display_header_value(b"ab\xff\x01")
    if shown != "ab\\xff\\x01":
        raise SystemExit(f"FAIL: escaped header value={shown!r}")


def test_multiline_body_aligned() -> None:
    _, report = _report([], body=b"line one\nline two\n  indented")
    start = report.lines.index("[Body]: (TEXT, 28 bytes)")
    body_lines = list(report.lines[start + 1:start + 4])
    if body_lines != ["  line one", "  line two", "    indented"]:
        raise SystemExit(f"FAIL: body lines not aligned: {body_lines}")


def test_binary_body_placeholder() -> None:
    status, report = _report([], body=b"\xff\xfe\x00")
    if "  <Binary Data: 3 bytes>" not in report.lines:
        raise SystemExit(f"FAIL: binary placeholder missing:\n{report.text()}")
    if status != 200 or report.record.body_kind != "BINARY" or report.record.body_bytes != 3:
        raise SystemExit(f"FAIL: binary record {report.record!r}")


def test_skipped_section() -> None:
    status, report = _report([])
    text = report.text()
    if "X-Super-Signature header is missing, skip verification." not in text:
        raise SystemExit("FAIL: skip info line missing")
    if "Secret:" in text:
        raise SystemExit("FAIL: skipped section should not print secret")
    if status != 200:
        raise SystemExit(f"FAIL: skipped status={status}")


def test_mismatch_section() -> None:
    status, report = _report([("X-Super-Signature", "sha256=" + "0" * 64)], body=b"payload")
    text = report.text()
    for needle in ("Secret:     'sk_test'", "Algorithm:  sha256", "Provided:   " + "0" * 64, "Invalid signature! (401 Unauthorized)"):
        if needle not in text:
            raise SystemExit(f"FAIL: {needle!r} missing:\n{text}")
    if status != 401:
        raise SystemExit(f"FAIL: mismatch status={status}")


def test_malformed_and_undecodable_sections() -> None:
    status, report = _report([("X-Super-Signature", "sha256")])
    if status != 400 or "Malformed signature header format. (400 Bad Request)" not in report.text():
        raise SystemExit(f"FAIL: malformed section:\n{report.text()}")
    status, report = _report([("X-Super-Signature", b"\xff")])
    if status != 400 or "Invalid signature header encoding. (400 Bad Request)" not in report.text():
        raise SystemExit(f"FAIL: undecodable section:\n{report.text()}")
    if "Provided:   <undecodable>" not in report.text():
        raise SystemExit("FAIL: undecodable provided placeholder missing")


def test_masked_secret() -> None:
    config = ProbeConfig(secret=b"sk_test", mask_secret=True)
    _, report = _report([("X-Super-Signature", "sha256=00")], config=config)
    if "sk_test" in report.text() or "Secret:     '********'" not in report.text():
        raise SystemExit(f"FAIL: secret not masked:\n{report.text()}")


def test_record_json() -> None:
    _, report = _report([("a", "b")], body=b"{}", method="PUT", path="/x")
    data = json.loads(report.record.model_dump_json())
    expected = {
        "method": "PUT",
        "path": "/x",
        "header_count": 1,
        "body_kind": "PRETTY_JSON",
        "body_bytes": 2,
        "outcome": "SKIPPED",
        "status_code": 200,
    }
    for k, v in expected.items():
        if data.get(k) != v:
            raise SystemExit(f"FAIL: record[{k}]={data.get(k)!r}, expected {v!r}")


def test_sink_writes_whole_reports() -> None:
    class _ChunkStream(io.StringIO):
        def __init__(self) -> None:
            super().__init__()
            self.writes: list[str] = []

        def write(self, s: str) -> int:
            self.writes.append(s)
            return super().write(s)

    stream = _ChunkStream()
    sink = ReportSink(stream)
    reports = [_report([("x-n", str(i))], body=f"body {i}\nmore".encode())[1] for i in range(20)]
    threads = [threading.Thread(target=sink.emit, args=(r,)) for r in reports]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    if len(stream.writes) != len(reports):
        raise SystemExit(f"FAIL: expected one write per report, got {len(stream.writes)}")
    if sorted(stream.writes) != sorted(r.text() for r in reports):
        raise SystemExit("FAIL: written blocks differ from reports")


def test_sink_logs_record() -> None:
    records: list[logging.LogRecord] = []

    class _Collect(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            records.append(record)

    handler = _Collect()
    log = logging.getLogger("hookprobe.report")
    log.addHandler(handler)
    old_level = log.level
    log.setLevel(logging.INFO)
    try:
        ReportSink(io.StringIO()).emit(_report([])[1])
    finally:
        log.removeHandler(handler)
        log.setLevel(old_level)
    if not records or '"outcome":"SKIPPED"' not in records[-1].getMessage():
        raise SystemExit(f"FAIL: structured record not logged: {[r.getMessage() for r in records]}")


def main() -> int:
    tests = [v for k, v in sorted(globals().items()) if k.startswith("test_") and callable(v)]
    for fn in tests:
        fn()
        print(f"PASS: {fn.__name__}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
