#!/usr/bin/env python3
"""
对运行中的 hookprobe 做验收（需先启动：hookprobe -s sk_test -p 3000）：
- 正确签名 -> 200
- 篡改一位 -> 401
- 无 '=' -> 400
- 无签名 header -> 200（跳过校验）
- 任意 path / method 均可达
"""
from __future__ import annotations

import argparse
import hashlib
import hmac
import sys

import requests


def _sig(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), msg=body, digestmod=hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def main() -> int:
    p = argparse.ArgumentParser(description="hookprobe live signature check")
    p.add_argument("--base_url", default="http://127.0.0.1:3000")
    p.add_argument("--secret", default="sk_test", help="must match the server's --secret")
    p.add_argument("--timeout", type=float, default=5.0)
    args = p.parse_args()
    base = args.base_url.rstrip("/")
    session = requests.Session()
    session.trust_env = False
    body = b'{"a":1}'
    good = _sig(args.secret, body)
    bad = good[:-1] + ("0" if good[-1] != "0" else "1")

    cases = [
        ("valid signature", "POST", "/webhook", {"X-Super-Signature": good}, body, 200),
        ("altered signature", "POST", "/webhook", {"X-Super-Signature": bad}, body, 401),
        ("malformed header", "POST", "/webhook", {"X-Super-Signature": "sha256"}, body, 400),
        ("missing header", "POST", "/webhook", {}, body, 200),
        ("binary body", "PUT", "/any/path", {"X-Super-Signature": _sig(args.secret, b"\xff\xfe\x00")}, b"\xff\xfe\x00", 200),
        ("GET root", "GET", "/", {}, b"", 200),
        ("DELETE nested", "DELETE", "/a/b/c?x=1", {}, b"", 200),
    ]
    fail = 0
    for name, method, path, headers, data, expected in cases:
        try:
            r = session.request(method, base + path, headers=headers, data=data, timeout=args.timeout)
        except requests.RequestException as e:
            print(f"FAIL: {name}: request error {e}", file=sys.stderr)
            fail += 1
            continue
        if r.status_code != expected:
            print(f"FAIL: {name}: expected {expected}, got {r.status_code} body={r.text[:200]}", file=sys.stderr)
            fail += 1
            continue
        print(f"OK: {name} -> {r.status_code}")
    session.close()
    if fail:
        print(f"{fail} case(s) failed", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
