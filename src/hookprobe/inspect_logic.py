from __future__ import annotations

from datetime import datetime

from hookprobe.body_render import render_body
from hookprobe.config import ProbeConfig
from hookprobe.report import DeliveryReport, build_report
from hookprobe.signature import verify_signature
from hookprobe.snapshot import RequestSnapshot


def inspect_delivery(
    config: ProbeConfig,
    snapshot: RequestSnapshot,
    now: datetime | None = None,
) -> tuple[int, DeliveryReport]:
    """(config, snapshot) -> (status_code, report)；纯函数，不写输出、不抛异常。"""
    rendered = render_body(snapshot.body)
    result = verify_signature(snapshot, config.secret)
    report = build_report(snapshot, rendered, result, config, now=now)
    return result.status_code, report
