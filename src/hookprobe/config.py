from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from hookprobe.core import config as defaults
from hookprobe.signature import check_secret_usable

ENV_PREFIX = "HOOKPROBE_"

_ENV_LOADED = False


class ConfigError(RuntimeError):
    """启动期配置错误（secret 无法作为 HMAC key 等）；只在启动时抛出，不在请求路径上出现。"""


def parse_env_text(raw: str) -> dict[str, str]:
    """
    解析 .env 文本，只保留 HOOKPROBE_* 键（同一文件里其它项目的变量不带进进程环境）。
    支持 export 前缀、整行注释、成对引号；未加引号的值允许行尾 " #" 注释。
    """
    out: dict[str, str] = {}
    for line in raw.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[7:].strip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key.startswith(ENV_PREFIX):
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        elif " #" in value:
            value = value.split(" #", 1)[0].rstrip()
        out[key] = value
    return out


def _load_env_file() -> None:
    """从仓库根 .env（或 HOOKPROBE_ENV_FILE）加载；仅 setdefault，不覆盖已有。只执行一次。"""
    global _ENV_LOADED
    if _ENV_LOADED:
        return
    _ENV_LOADED = True
    env_path = os.environ.get("HOOKPROBE_ENV_FILE")
    path = Path(env_path) if env_path else Path(__file__).resolve().parents[2] / ".env"
    try:
        raw = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return
    for key, value in parse_env_text(raw).items():
        os.environ.setdefault(key, value)


def _env_int(name: str, default: int) -> int:
    """None/空字符串/转换失败时返回 default（不记 warning）。"""
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


def _in_range(label: str, value: int, low: int, high: int, default: int, warnings: list[str]) -> int:
    if low <= value <= high:
        return value
    warnings.append(f"{label}={value} 超出 {low}~{high}，已回退默认 {default}。")
    return default


_load_env_file()


@dataclass(frozen=True)
class ProbeConfig:
    secret: bytes
    host: str = defaults.default_host
    port: int = defaults.default_port
    header_display_cap: int = defaults.header_display_cap
    mask_secret: bool = False
    # 仅属于本 config 的启动告警；lifespan 打印
    warnings: tuple[str, ...] = field(default=(), compare=False)

    def secret_for_display(self) -> str:
        if self.mask_secret:
            return "*" * 8 if self.secret else ""
        return self.secret.decode("utf-8", errors="backslashreplace")


def _secret_bytes(secret: str | bytes) -> bytes:
    if isinstance(secret, bytes):
        return secret
    if isinstance(secret, str):
        try:
            return secret.encode("utf-8")
        except UnicodeEncodeError as e:
            raise ConfigError(f"secret is not encodable as UTF-8: {e}") from None
    raise ConfigError(f"secret must be str or bytes, got {type(secret).__name__}")


def build_config(
    secret: str | bytes | None = None,
    host: str | None = None,
    port: int | None = None,
    mask_secret: bool | None = None,
    header_display_cap: int | None = None,
) -> ProbeConfig:
    """
    参数优先，其次环境变量，最后 core/config.py 默认值。
    secret 不可用作 HMAC key 时 raise ConfigError；其余非法值回退默认，告警记在返回的 config.warnings。
    """
    warnings: list[str] = []
    if secret is None:
        # fsencode：环境变量里的非 UTF-8 字节按原样还原
        secret = os.fsencode(os.getenv("HOOKPROBE_SECRET", defaults.default_secret))
    key = _secret_bytes(secret)
    try:
        check_secret_usable(key)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"HMAC initialization failed: invalid secret key bytes ({e})") from None
    if not key:
        warnings.append("secret 为空：HMAC 仍可计算，但任何人都能伪造签名。")

    if host is None:
        host = (os.getenv("HOOKPROBE_HOST") or "").strip() or defaults.default_host

    if port is None:
        port = _env_int("HOOKPROBE_PORT", defaults.default_port)
    port = _in_range("port", port, 0, 65535, defaults.default_port, warnings)

    if mask_secret is None:
        mask_secret = _env_bool("HOOKPROBE_MASK_SECRET", False)

    if header_display_cap is None:
        header_display_cap = _env_int("HOOKPROBE_HEADER_DISPLAY_CAP", defaults.header_display_cap)
    header_display_cap = _in_range(
        "header_display_cap", header_display_cap, 1, 4096, defaults.header_display_cap, warnings
    )

    return ProbeConfig(
        secret=key,
        host=host,
        port=port,
        header_display_cap=header_display_cap,
        mask_secret=bool(mask_secret),
        warnings=tuple(warnings),
    )


def log_level_from_env(default: str = "INFO") -> str:
    return (os.getenv("HOOKPROBE_LOG_LEVEL") or default).strip().upper() or default
