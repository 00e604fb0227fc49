"""
入站请求快照：method / path / query / 原始 header 列表 / 原始 body bytes。
body 不做任何字符集转换或裁剪；header 保持接收顺序，值保留原始 bytes（用于判断能否解码）。
"""
from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request


@dataclass(frozen=True)
class RequestSnapshot:
    method: str
    path: str
    headers: tuple[tuple[str, bytes], ...] = ()
    body: bytes = b""
    query: str = ""

    @property
    def target(self) -> str:
        """path + ?query，与请求行一致，仅用于展示。"""
        if self.query:
            return f"{self.path}?{self.query}"
        return self.path

    def get_header(self, name: str) -> bytes | None:
        """大小写不敏感查找；重复 header 取第一个。"""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None


def make_snapshot(
    method: str,
    path: str,
    headers: list[tuple[str | bytes, str | bytes]] | None = None,
    body: bytes = b"",
    query: str = "",
) -> RequestSnapshot:
    """测试与脚本用：str header 按 latin-1 转 bytes（与 ASGI 层一致）。"""
    norm: list[tuple[str, bytes]] = []
    for key, value in headers or []:
        if isinstance(key, bytes):
            key = key.decode("latin-1")
        if isinstance(value, str):
            value = value.encode("latin-1")
        norm.append((key, value))
    return RequestSnapshot(method=method.upper(), path=path, headers=tuple(norm), body=bytes(body), query=query)


async def capture_snapshot(request: Request) -> RequestSnapshot:
    body = await request.body()
    raw_headers = request.scope.get("headers") or []
    headers = tuple((k.decode("latin-1"), bytes(v)) for k, v in raw_headers)
    query = (request.scope.get("query_string") or b"").decode("latin-1")
    # raw_path 保留 %2F 等原始编码；没有时退回已解码的 path
    raw_path = request.scope.get("raw_path")
    if raw_path:
        path = bytes(raw_path).split(b"?", 1)[0].decode("latin-1")
    else:
        path = request.url.path
    return RequestSnapshot(
        method=request.method,
        path=path,
        headers=headers,
        body=body,
        query=query,
    )
