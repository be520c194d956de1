"""The exporter's command: configuration, registry and HTTP endpoint."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Sequence
from wsgiref.simple_server import WSGIRequestHandler, make_server

from sakuracloud_exporter.cloud.account import AuthStatus
from sakuracloud_exporter.cloud.client import FAKE_STORE_FILE_NAME, Client, new_sakura_cloud_client
from sakuracloud_exporter.cloud.functions import FeedItem
from sakuracloud_exporter.cloud.global_clients import MonthlyUsage, Region, WebAccelSite, Zone
from sakuracloud_exporter.cloud.monitor import MonitorCondition, MonitorCPUTimeValue, MonitorInterfaceValue
from sakuracloud_exporter.cloud.zonal_network import (
    VPC_ROUTER_PLAN_STANDARD,
    VPCRouter,
    VPCRouterInterface,
    VPCRouterInterfaceSetting,
    VPCRouterPeer,
    VPCRouterSessionAnalysis,
    VPCRouterSetting,
    VPCRouterStatisticsValue,
    VPCRouterStatus,
)
from sakuracloud_exporter.collectors.vpc_router import VPCRouterCollector
from sakuracloud_exporter.collectors.webaccel import WebAccelCollector
from sakuracloud_exporter.collectors.zone import ZoneCollector
from sakuracloud_exporter.config import Config, ConfigError, parse_config
from sakuracloud_exporter.exposition import CONTENT_TYPE, CounterVec, Registry

VERSION = "0.18.6"
LOGGER_NAME = "sakuracloud_exporter"

WSGIApp = Callable[[dict, Callable], Iterable[bytes]]


def build_registry(config: Config, client: Client, logger: logging.Logger) -> Registry:
    """A registry holding the error counter and every enabled collector."""
    errors = CounterVec(
        "sakuracloud_exporter_errors_total",
        "The total number of errors per collector",
        "collector",
    )
    registry = Registry()
    registry.register(errors)
    if not config.no_collector_vpc_router:
        registry.register(VPCRouterCollector(logger, errors, client.vpc_router))
    if not config.no_collector_zone:
        registry.register(ZoneCollector(logger, errors, client.zone))
    if not config.no_collector_webaccel:
        registry.register(WebAccelCollector(logger, errors, client.webaccel))
    return registry


def index_page(web_path: str) -> str:
    """The landing page linking to the metrics endpoint."""
    return (
        "<html>\n"
        "\t\t\t<head><title>SakuraCloud Exporter</title></head>\n"
        "\t\t\t<body>\n"
        "\t\t\t<h1>SakuraCloud Exporter</h1>\n"
        f'\t\t\t<p><a href="{web_path}">Metrics</a></p>\n'
        "\t\t\t</body>\n"
        "\t\t\t</html>"
    )


def make_handler(registry: Registry, web_path: str) -> WSGIApp:
    """A WSGI application serving metrics at ``web_path`` and the index page elsewhere."""

    def app(environ: dict, start_response: Callable) -> list[bytes]:
        path = environ.get("PATH_INFO") or "/"
        if path == web_path:
            body = registry.render().encode("utf-8")
            content_type = CONTENT_TYPE
        else:
            body = index_page(web_path).encode("utf-8")
            content_type = "text/html; charset=utf-8"
        start_response("200 OK", [("Content-Type", content_type), ("Content-Length", str(len(body)))])
        return [body]

    return app


def _unix(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _in_window(values: Iterable[Any], condition: MonitorCondition) -> list[Any]:
    return [value for value in values if condition.start <= value.time <= condition.end]


def _vpc_router(raw: dict) -> VPCRouter:
    settings = raw.get("settings") or {}
    return VPCRouter(
        id=int(raw["id"]),
        name=raw.get("name", ""),
        description=raw.get("description", ""),
        tags=list(raw.get("tags", [])),
        plan_id=raw.get("plan_id", VPC_ROUTER_PLAN_STANDARD),
        instance_status=raw.get("instance_status", ""),
        availability=raw.get("availability", ""),
        instance_host_info_url=raw.get("instance_host_info_url", ""),
        interfaces=[VPCRouterInterface(**nic) for nic in raw.get("interfaces", [])],
        settings=VPCRouterSetting(
            vrid=settings.get("vrid", 0),
            internet_connection_enabled=bool(settings.get("internet_connection_enabled", False)),
            interfaces=[VPCRouterInterfaceSetting(**nic) for nic in settings.get("interfaces", [])],
        ),
    )


def _vpc_router_status(raw: dict) -> VPCRouterStatus:
    analysis = raw.get("session_analysis")
    return VPCRouterStatus(
        session_count=raw.get("session_count", 0),
        dhcp_server_leases=list(raw.get("dhcp_server_leases", [])),
        l2tp_ipsec_server_sessions=list(raw.get("l2tp_ipsec_server_sessions", [])),
        pptp_server_sessions=list(raw.get("pptp_server_sessions", [])),
        site_to_site_ipsec_vpn_peers=[VPCRouterPeer(**peer) for peer in raw.get("site_to_site_ipsec_vpn_peers", [])],
        session_analysis=(
            VPCRouterSessionAnalysis(
                **{
                    group: [VPCRouterStatisticsValue(**value) for value in values]
                    for group, values in analysis.items()
                }
            )
            if analysis
            else None
        ),
    )


class _StoreAPI:
    """Serves cloud resources from a JSON data store file."""

    def __init__(self, path: str) -> None:
        with open(path, encoding="utf-8") as fh:
            self._data: dict = json.load(fh)

    def _section(self, key: str, default: Any) -> Any:
        value = self._data.get(key)
        return default if value is None else value

    def read_auth_status(self) -> AuthStatus | None:
        raw = self._data.get("auth_status")
        return None if raw is None else AuthStatus(**raw)

    def find_zones(self) -> list[Zone]:
        zones = []
        for raw in self._section("zones", []):
            region = raw.get("region")
            zones.append(
                Zone(
                    id=raw["id"],
                    name=raw.get("name", ""),
                    description=raw.get("description", ""),
                    region=Region(**region) if region else None,
                )
            )
        return zones

    def list_webaccel_sites(self) -> list[WebAccelSite]:
        return [WebAccelSite(**raw) for raw in self._section("webaccel_sites", [])]

    def webaccel_monthly_usage(self, target_month: str) -> list[MonthlyUsage]:
        return [MonthlyUsage(**raw) for raw in self._section("webaccel_usage", [])]

    def find_vpc_routers(self, zone: str, count: int) -> list[VPCRouter]:
        routers = self._section("vpc_routers", {}).get(zone, [])
        return [_vpc_router(raw) for raw in routers[:count]]

    def vpc_router_status(self, zone: str, router_id: int) -> VPCRouterStatus | None:
        raw = self._section("vpc_router_status", {}).get(str(router_id))
        return None if raw is None else _vpc_router_status(raw)

    def monitor_vpc_router_interface(
        self, zone: str, router_id: int, index: int, condition: MonitorCondition
    ) -> list[MonitorInterfaceValue]:
        raw = self._section("vpc_router_nic_monitor", {}).get(f"{router_id}/{index}", [])
        values = [
            MonitorInterfaceValue(time=_unix(v["time"]), receive=v.get("receive", 0.0), send=v.get("send", 0.0))
            for v in raw
        ]
        return _in_window(values, condition)

    def monitor_vpc_router_cpu(
        self, zone: str, router_id: int, condition: MonitorCondition
    ) -> list[MonitorCPUTimeValue]:
        raw = self._section("vpc_router_cpu_monitor", {}).get(str(router_id), [])
        values = [MonitorCPUTimeValue(time=_unix(v["time"]), cpu_time=v.get("cpu_time", 0.0)) for v in raw]
        return _in_window(values, condition)

    def maintenance_info(self, info_url: str) -> FeedItem:
        raw = self._section("maintenance", {}).get(info_url)
        if raw is None:
            raise LookupError(f"no maintenance information for {info_url}")
        return FeedItem(**raw)


def _store_path(fake_mode: str) -> str:
    if os.path.isdir(fake_mode):
        return os.path.join(fake_mode, FAKE_STORE_FILE_NAME)
    return fake_mode


def _make_logger(debug: bool) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("time=%(asctime)s level=%(levelname)s msg=%(message)s"))
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    return logger


def _split_addr(addr: str) -> tuple[str, int]:
    host, _, port = addr.rpartition(":")
    return host, int(port)


class _QuietHandler(WSGIRequestHandler):
    def log_message(self, format: str, *args: Any) -> None:
        logging.getLogger(LOGGER_NAME).debug(format, *args)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the exporter until interrupted; returns the exit status."""
    try:
        config = parse_config(argv)
    except ConfigError as err:
        print(err)
        return 1

    logger = _make_logger(config.debug)
    logger.info(
        "starting sakuracloud_exporter rate-limit=%d version=%s pythonVersion=%s",
        config.rate_limit,
        VERSION,
        sys.version.split()[0],
    )

    if not config.fake_mode:
        print("a data store is required: set --fake-mode or FAKE_MODE")
        return 1
    try:
        api = _StoreAPI(_store_path(config.fake_mode))
    except (OSError, ValueError) as err:
        print(f"can't read data store: {err}")
        return 1

    client = new_sakura_cloud_client(config, VERSION, api)
    if not client.has_valid_api_keys():
        raise RuntimeError("unauthorized: invalid API key is applied")
    if not config.no_collector_webaccel and not client.has_webaccel_permission():
        logger.warning("API key doesn't have webaccel permission")

    registry = build_registry(config, client, logger)
    app = make_handler(registry, config.web_path)

    logger.info("listening addr=%s", config.web_addr)
    try:
        host, port = _split_addr(config.web_addr)
        server = make_server(host, port, app, handler_class=_QuietHandler)
    except (OSError, ValueError) as err:
        logger.error("http listenandserve error err=%s", err)
        return 2
    with server:
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            return 0
    return 0