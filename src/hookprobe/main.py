# src/hookprobe/main.py
from __future__ import annotations

import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from hookprobe.config import ProbeConfig, build_config
from hookprobe.report import ReportSink
from hookprobe.routes.catch_all import catch_all_route


def _run_startup_warnings(config: ProbeConfig) -> None:
    """只打印本 app 所用 config 的告警，统一以 WARN: 打印到 stderr（仅启动时一次）。"""
    for msg in config.warnings:
        print("WARN:", msg, file=sys.stderr)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    _run_startup_warnings(app.state.config)
    yield


def create_app(config: ProbeConfig, sink: Optional[ReportSink] = None) -> FastAPI:
    # 关闭 /docs /redoc /openapi.json，保证所有 path 都落到 catch-all
    app = FastAPI(
        title="hookprobe - webhook inspector",
        lifespan=_lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.config = config
    app.state.sink = sink if sink is not None else ReportSink()
    app.router.routes.append(catch_all_route())
    return app


def create_app_from_env() -> FastAPI:
    """uvicorn --factory hookprobe.main:create_app_from_env；import 本模块时不读环境、不建 app。"""
    return create_app(build_config())
