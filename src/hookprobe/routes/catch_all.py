"""
唯一 handler：任意 path、任意 method（含 PROPFIND / PURGE 等扩展 method）都进这里。
以 ASGI app 形式挂到 Route 上且不传 methods，Starlette 不做 method 过滤；函数 endpoint 会默认只收 GET。
config / sink 由 create_app 放进 app.state，路由层不持有全局状态。
"""
from __future__ import annotations

from fastapi import Request
from fastapi.responses import Response
from starlette.routing import Route

from hookprobe.core.models import VerificationOutcome
from hookprobe.inspect_logic import inspect_delivery
from hookprobe.snapshot import capture_snapshot

CATCH_ALL_PATH = "/{full_path:path}"


async def webhook_catch_all(request: Request) -> Response:
    snapshot = await capture_snapshot(request)
    status_code, report = inspect_delivery(request.app.state.config, snapshot)
    request.app.state.sink.emit(report)
    return Response(
        status_code=status_code,
        content=VerificationOutcome(report.record.outcome).label,
        media_type="text/plain",
    )


class WebhookCatchAllApp:
    """ASGI 入口：包装 webhook_catch_all。"""

    async def __call__(self, scope, receive, send) -> None:
        response = await webhook_catch_all(Request(scope, receive))
        await response(scope, receive, send)


def catch_all_route() -> Route:
    return Route(CATCH_ALL_PATH, endpoint=WebhookCatchAllApp(), methods=None, include_in_schema=False)
