"""
命令行入口：hookprobe / python -m hookprobe
参数优先于环境变量（HOOKPROBE_*），打印启动 banner 后交给 uvicorn。
"""
from __future__ import annotations

import argparse
import logging
import os
import sys

from hookprobe.config import ConfigError, ProbeConfig, build_config, log_level_from_env
from hookprobe.core import config as defaults

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Webhook inspector with HMAC-SHA256 signature check")
    parser.add_argument("-s", "--secret", default=None, help=f"verification secret (env HOOKPROBE_SECRET, default {defaults.default_secret})")
    parser.add_argument("-p", "--port", type=int, default=None, help=f"listening port (env HOOKPROBE_PORT, default {defaults.default_port})")
    parser.add_argument("--host", default=None, help=f"bind address (env HOOKPROBE_HOST, default {defaults.default_host})")
    parser.add_argument("--mask-secret", action="store_true", default=None, help="hide the secret in reports")
    parser.add_argument("--log-level", default=None, help="logging level (env HOOKPROBE_LOG_LEVEL, default INFO)")
    return parser.parse_args(argv)


def print_banner(config: ProbeConfig) -> None:
    print("-" * 56)
    print(f"Active Secret:   '{config.secret_for_display()}'")
    print(f"Listening Port:  {config.port}")
    print("-" * 56)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    level = (args.log_level or log_level_from_env()).upper()
    if level not in _LOG_LEVELS:
        level = "INFO"
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    try:
        config = build_config(
            secret=os.fsencode(args.secret) if args.secret is not None else None,
            host=args.host,
            port=args.port,
            mask_secret=args.mask_secret,
        )
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    import uvicorn

    from hookprobe.main import create_app

    print_banner(config)
    logger.info("Starting hookprobe on %s:%s", config.host, config.port)
    uvicorn.run(create_app(config), host=config.host, port=config.port, log_level=level.lower())
    return 0
