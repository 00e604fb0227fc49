"""
X-Super-Signature 校验：header 形如 <algorithm_tag>=<hex_digest>，按第一个 '=' 切分。
只支持 HMAC-SHA256，tag 不做白名单校验；摘要始终对原始 body bytes 计算（不用展示用的 pretty 文本）。
"""
from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass

from hookprobe.core import config as defaults
from hookprobe.core.models import VerificationOutcome
from hookprobe.snapshot import RequestSnapshot


@dataclass(frozen=True)
class SignatureHeader:
    algorithm_tag: str
    hex_digest: str


@dataclass(frozen=True)
class VerificationResult:
    outcome: VerificationOutcome
    algorithm_tag: str | None = None
    received_digest: str | None = None
    expected_digest: str | None = None

    @property
    def status_code(self) -> int:
        return self.outcome.status_code


def check_secret_usable(secret: bytes) -> None:
    """启动期调用一次：secret 无法初始化 HMAC 时由 hmac 抛 TypeError。"""
    hmac.new(secret, digestmod=hashlib.sha256)


def compute_signature(secret: bytes, body: bytes) -> str:
    return hmac.new(secret, msg=body, digestmod=hashlib.sha256).hexdigest()


def build_signature_header(secret: bytes, body: bytes, tag: str = "sha256") -> str:
    return f"{tag}={compute_signature(secret, body)}"


def decode_header_text(raw: bytes) -> str | None:
    """只接受可见 ASCII（0x20~0x7E）与 TAB；否则视为无法解码。"""
    for b in raw:
        if b != 0x09 and not 0x20 <= b <= 0x7E:
            return None
    return raw.decode("ascii")


def parse_signature_header(value: str) -> SignatureHeader | None:
    if "=" not in value:
        return None
    tag, _, digest = value.partition("=")
    return SignatureHeader(algorithm_tag=tag, hex_digest=digest)


def verify_signature(
    snapshot: RequestSnapshot,
    secret: bytes,
    header_name: str = defaults.signature_header_name,
) -> VerificationResult:
    raw = snapshot.get_header(header_name)
    if raw is None:
        return VerificationResult(VerificationOutcome.SKIPPED)

    text = decode_header_text(raw)
    if text is None:
        return VerificationResult(VerificationOutcome.FAILED_UNDECODABLE_HEADER)

    parsed = parse_signature_header(text)
    if parsed is None:
        return VerificationResult(VerificationOutcome.FAILED_MALFORMED_HEADER, received_digest=text)

    expected = compute_signature(secret, snapshot.body)
    # 常量时间比较；received 原样参与比较（不 strip、不转小写）
    if hmac.compare_digest(parsed.hex_digest.encode("ascii"), expected.encode("ascii")):
        outcome = VerificationOutcome.PASSED
    else:
        outcome = VerificationOutcome.FAILED_MISMATCH
    return VerificationResult(
        outcome,
        algorithm_tag=parsed.algorithm_tag,
        received_digest=parsed.hex_digest,
        expected_digest=expected,
    )
