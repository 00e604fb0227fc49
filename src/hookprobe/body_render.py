from __future__ import annotations

import json
import math
from dataclasses import dataclass
from decimal import Decimal

from hookprobe.core.models import BodyKind

EMPTY_BODY_TEXT = "<Empty Body>"


@dataclass(frozen=True)
class RenderedBody:
    kind: BodyKind
    text: str
    byte_count: int


def _reject_constant(name: str):
    # 严格 JSON：NaN / Infinity / -Infinity 不算合法 JSON
    raise ValueError(f"non-standard JSON constant: {name}")


def _reject_duplicate_keys(pairs: list[tuple[str, object]]) -> dict:
    # 重复 key 转成 dict 会丢值，展示会与实际 payload 不符
    out = dict(pairs)
    if len(out) != len(pairs):
        raise ValueError("duplicate JSON object key")
    return out


def _lossless_float(literal: str) -> float:
    """1e999 -> inf、多余精度被截断等情况 pretty 后与原文不一致，拒绝。"""
    value = float(literal)
    if not math.isfinite(value) or Decimal(literal) != Decimal(repr(value)):
        raise ValueError(f"JSON number not representable as float: {literal}")
    return value


def _try_pretty_json(text: str) -> str | None:
    # 超深嵌套会触发 RecursionError，按非 JSON 处理；任何有损解析都回退为 TEXT
    try:
        parsed = json.loads(
            text,
            parse_constant=_reject_constant,
            parse_float=_lossless_float,
            object_pairs_hook=_reject_duplicate_keys,
        )
        return json.dumps(parsed, indent=2, ensure_ascii=False)
    except (ValueError, RecursionError):
        return None


def render_body(body: bytes) -> RenderedBody:
    """
    仅用于展示，永不抛异常，不改动 body 本身。
    优先级：空 -> JSON（pretty） -> UTF-8 文本（原样） -> 二进制（只给字节数）。
    """
    size = len(body)
    if not size:
        return RenderedBody(BodyKind.EMPTY, EMPTY_BODY_TEXT, 0)
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError:
        return RenderedBody(BodyKind.BINARY, f"<Binary Data: {size} bytes>", size)
    pretty = _try_pretty_json(text)
    if pretty is not None:
        return RenderedBody(BodyKind.PRETTY_JSON, pretty, size)
    return RenderedBody(BodyKind.TEXT, text, size)
