"""Exporter configuration from command-line flags and environment variables."""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, field, replace
from typing import Mapping, Sequence

MAXIMUM_RATE_LIMIT = 10
DEFAULT_RATE_LIMIT = 5
DEFAULT_ZONES = ("is1a", "is1b", "tk1a", "tk1b", "tk1v")

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}

_COLLECTOR_FLAGS = (
    ("no_collector_auto_backup", "--no-collector.auto-backup", "Disable the AutoBackup collector"),
    ("no_collector_bill", "--no-collector.bill", "Disable the Bill collector"),
    ("no_collector_coupon", "--no-collector.coupon", "Disable the Coupon collector"),
    ("no_collector_database", "--no-collector.database", "Disable the Database collector"),
    ("no_collector_esme", "--no-collector.esme", "Disable the ESME collector"),
    ("no_collector_internet", "--no-collector.internet", "Disable the Internet(Switch+Router) collector"),
    ("no_collector_load_balancer", "--no-collector.load-balancer", "Disable the LoadBalancer collector"),
    ("no_collector_local_router", "--no-collector.local-router", "Disable the LocalRouter collector"),
    ("no_collector_mobile_gateway", "--no-collector.mobile-gateway", "Disable the MobileGateway collector"),
    ("no_collector_nfs", "--no-collector.nfs", "Disable the NFS collector"),
    ("no_collector_proxy_lb", "--no-collector.proxy-lb", "Disable the ProxyLB(Enhanced LoadBalancer) collector"),
    ("no_collector_server", "--no-collector.server", "Disable the Server collector"),
    (
        "no_collector_server_except_maintenance",
        "--no-collector.server.except-maintenance",
        "Disable the Server collector except for maintenance information",
    ),
    ("no_collector_sim", "--no-collector.sim", "Disable the SIM collector"),
    ("no_collector_vpc_router", "--no-collector.vpc-router", "Disable the VPCRouter collector"),
    ("no_collector_zone", "--no-collector.zone", "Disable the Zone collector"),
    ("no_collector_webaccel", "--no-collector.webaccel", "Disable the WebAccel collector"),
)


class ConfigError(ValueError):
    """Raised when the configuration is missing or inconsistent."""


@dataclass
class Config:
    """Settings of the exporter."""

    trace: bool = False
    debug: bool = False
    fake_mode: str = ""
    token: str = ""
    secret: str = ""
    zones: list[str] = field(default_factory=lambda: list(DEFAULT_ZONES))
    web_addr: str = ":9542"
    web_path: str = "/metrics"
    rate_limit: int = DEFAULT_RATE_LIMIT

    no_collector_auto_backup: bool = False
    no_collector_bill: bool = False
    no_collector_coupon: bool = False
    no_collector_database: bool = False
    no_collector_esme: bool = False
    no_collector_internet: bool = False
    no_collector_load_balancer: bool = False
    no_collector_local_router: bool = False
    no_collector_mobile_gateway: bool = False
    no_collector_nfs: bool = False
    no_collector_proxy_lb: bool = False
    no_collector_server: bool = False
    no_collector_server_except_maintenance: bool = False
    no_collector_sim: bool = False
    no_collector_vpc_router: bool = False
    no_collector_zone: bool = False
    no_collector_webaccel: bool = False


def _env_bool(environ: Mapping[str, str], key: str) -> bool:
    raw = environ.get(key)
    if raw is None:
        return False
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ConfigError(f"error processing environment variable {key}: invalid boolean {raw!r}")


def _env_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"error processing environment variable {key}: invalid integer {raw!r}") from None


def _build_parser(environ: Mapping[str, str]) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sakuracloud_exporter")
    parser.add_argument(
        "--trace",
        action="store_true",
        default=_env_bool(environ, "TRACE"),
        help="Enable output of trace log of Sakura cloud API call",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=_env_bool(environ, "DEBUG"),
        help="Enable output of debug level log",
    )
    parser.add_argument(
        "--fake-mode",
        dest="fake_mode",
        default=environ.get("FAKE_MODE", ""),
        help="File path to fetch/store fake data. If this flag is specified, enable fake-mode",
    )
    parser.add_argument(
        "--token",
        default=environ.get("SAKURACLOUD_ACCESS_TOKEN", ""),
        help="Token for using the SakuraCloud API",
    )
    parser.add_argument(
        "--secret",
        default=environ.get("SAKURACLOUD_ACCESS_TOKEN_SECRET", ""),
        help="Secret for using the SakuraCloud API",
    )
    parser.add_argument("--webaddr", dest="web_addr", default=environ.get("WEB_ADDR", ":9542"))
    parser.add_argument("--webpath", dest="web_path", default=environ.get("WEB_PATH", "/metrics"))
    parser.add_argument(
        "--ratelimit",
        dest="rate_limit",
        type=int,
        default=_env_int(environ, "SAKURACLOUD_RATE_LIMIT", DEFAULT_RATE_LIMIT),
        help="Rate limit per second for SakuraCloud API calls",
    )
    for dest, flag, help_text in _COLLECTOR_FLAGS:
        parser.add_argument(flag, dest=dest, action="store_true", help=help_text)
    return parser


def parse_config(
    argv: Sequence[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Build and validate a Config from flags and environment variables."""
    env = os.environ if environ is None else environ
    namespace = _build_parser(env).parse_args(argv)
    config = Config(**vars(namespace))

    if not config.token:
        raise ConfigError("SakuraCloud API Token is required")
    if not config.secret:
        raise ConfigError("SakuraCloud API Secret is required")
    if config.rate_limit <= 0:
        config = replace(config, rate_limit=DEFAULT_RATE_LIMIT)
    if config.rate_limit > MAXIMUM_RATE_LIMIT:
        raise ConfigError(f"--ratelimit must be 1 to {MAXIMUM_RATE_LIMIT}")
    if config.no_collector_server_except_maintenance and config.no_collector_server:
        raise ConfigError(
            "--no-collector.server.except-maintenance enabled and --no-collector-server are both enabled"
        )
    return config