"""
单次请求的人读报告 + 结构化日志记录。
报告先完整构建，再由 ReportSink 一次性写出（加锁），并发请求的报告不会逐行交错。
"""
from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from http import HTTPStatus
from threading import Lock
from typing import TextIO

from pydantic import BaseModel

from hookprobe.body_render import RenderedBody
from hookprobe.config import ProbeConfig
from hookprobe.core import config as defaults
from hookprobe.core.models import VerificationOutcome
from hookprobe.signature import VerificationResult
from hookprobe.snapshot import RequestSnapshot

logger = logging.getLogger(__name__)

BANNER = "=" * 56
RULE = "-" * 56
INDENT = "  "
ELLIPSIS = "..."


class DeliveryRecord(BaseModel):
    timestamp: str
    method: str
    path: str
    header_count: int
    body_kind: str
    body_bytes: int
    outcome: str
    status_code: int


@dataclass(frozen=True)
class DeliveryReport:
    lines: tuple[str, ...]
    record: DeliveryRecord

    @property
    def status_code(self) -> int:
        return self.record.status_code

    def text(self) -> str:
        return "\n".join(self.lines) + "\n"


def _printable(text: str) -> str:
    # 终端安全：控制字符、孤立代理字符转成 \\x / \\u 形式
    out = []
    for ch in text:
        if ch == "\t" or ch.isprintable():
            out.append(ch)
        else:
            out.append(ch.encode("unicode_escape").decode("ascii"))
    return "".join(out)


def display_header_value(raw: bytes, cap: int = defaults.header_display_cap) -> str:
    """header 值展示：不可见字节转义，超过 cap 字符截断加 '...'。只影响展示。"""
    text = raw.decode("ascii", errors="backslashreplace")
    text = _printable(text)
    if len(text) > cap:
        return text[:cap] + ELLIPSIS
    return text


def _body_lines(rendered: RenderedBody) -> list[str]:
    lines = rendered.text.splitlines() or [""]
    return [INDENT + _printable(line) for line in lines]


def _result_line(outcome: VerificationOutcome) -> str:
    status = HTTPStatus(outcome.status_code)
    if outcome is VerificationOutcome.PASSED:
        return f"Signature verified successfully. ({status.value} {status.phrase})"
    if outcome is VerificationOutcome.FAILED_MISMATCH:
        return f"Invalid signature! ({status.value} {status.phrase})"
    if outcome is VerificationOutcome.FAILED_MALFORMED_HEADER:
        return f"Malformed signature header format. ({status.value} {status.phrase})"
    if outcome is VerificationOutcome.FAILED_UNDECODABLE_HEADER:
        return f"Invalid signature header encoding. ({status.value} {status.phrase})"
    return f"Verification skipped. ({status.value} {status.phrase})"


def _verification_lines(result: VerificationResult, config: ProbeConfig) -> list[str]:
    if result.outcome is VerificationOutcome.SKIPPED:
        return [
            f"{INDENT}Info:       {defaults.signature_header_name} header is missing, skip verification.",
            f"{INDENT}Result:     {_result_line(result.outcome)}",
        ]
    provided = result.received_digest
    if provided is None:
        provided = "<undecodable>"
    return [
        f"{INDENT}Secret:     '{_printable(config.secret_for_display())}'",
        f"{INDENT}Algorithm:  {result.algorithm_tag if result.algorithm_tag is not None else '-'}",
        f"{INDENT}Provided:   {provided}",
        f"{INDENT}Calculated: {result.expected_digest or '-'}",
        f"{INDENT}Result:     {_result_line(result.outcome)}",
    ]


def build_report(
    snapshot: RequestSnapshot,
    rendered: RenderedBody,
    result: VerificationResult,
    config: ProbeConfig,
    now: datetime | None = None,
) -> DeliveryReport:
    if now is None:
        now = datetime.now(timezone.utc)
    lines: list[str] = [
        BANNER,
        f"Request: {snapshot.method} {_printable(snapshot.target)}",
        f"Received: {now.isoformat(timespec='seconds')}",
        BANNER,
        "[Headers]:",
    ]
    if not snapshot.headers:
        lines.append(f"{INDENT}<No Headers>")
    for name, value in snapshot.headers:
        lines.append(f"{INDENT}{_printable(name)}: {display_header_value(value, config.header_display_cap)}")

    lines.append("")
    lines.append(f"[Body]: ({rendered.kind.value}, {rendered.byte_count} bytes)")
    lines.extend(_body_lines(rendered))

    lines.append("")
    lines.append("[Verification]:")
    lines.extend(_verification_lines(result, config))
    lines.append(RULE)

    record = DeliveryRecord(
        timestamp=now.isoformat(),
        method=snapshot.method,
        path=snapshot.path,
        header_count=len(snapshot.headers),
        body_kind=rendered.kind.value,
        body_bytes=rendered.byte_count,
        outcome=result.outcome.value,
        status_code=result.status_code,
    )
    return DeliveryReport(lines=tuple(lines), record=record)


class ReportSink:
    """整块写出报告；stream 为 None 时每次写入取当前 sys.stdout。"""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream
        self._lock = Lock()

    def emit(self, report: DeliveryReport) -> None:
        text = report.text()
        stream = self._stream if self._stream is not None else sys.stdout
        with self._lock:
            stream.write(text)
            stream.flush()
        logger.info("delivery %s", report.record.model_dump_json())
