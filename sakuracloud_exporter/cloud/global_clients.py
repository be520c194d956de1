"""Clients for resources that are not bound to a zone."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol, Sequence

from sakuracloud_exporter.cloud.monitor import (
    monitor_condition,
    monitor_connection_value,
    monitor_link_value,
    pick_monitor_value,
)

FIND_COUNT = 10000
SIM_INCLUDE = ("*", "Status.sim")


@dataclass(frozen=True)
class Region:
    """A region that holds zones."""

    id: int
    name: str = ""


@dataclass(frozen=True)
class Zone:
    """A zone of the cloud."""

    id: int
    name: str = ""
    description: str = ""
    region: Region | None = None


@dataclass(frozen=True)
class WebAccelSite:
    """A site delivered through the web accelerator."""

    id: str
    name: str = ""
    domain_type: str = ""
    domain: str = ""
    subdomain: str = ""
    has_certificate: bool = False
    cert_valid_not_after: int = 0


@dataclass(frozen=True)
class MonthlyUsage:
    """Usage of one web accelerator site in the current month."""

    site_id: int
    access_count: int = 0
    bytes_sent: int = 0
    cache_miss_bytes_sent: int = 0
    cache_hit_ratio: float = 0.0
    bytes_cache_hit_ratio: float = 0.0
    price: int = 0


class _GlobalAPI(Protocol):
    def find_esme(self) -> Sequence[Any]: ...

    def esme_logs(self, esme_id: int) -> Sequence[Any]: ...

    def find_local_routers(self, count: int) -> Sequence[Any]: ...

    def local_router_health_status(self, router_id: int) -> Any: ...

    def monitor_local_router(self, router_id: int, condition: Any) -> Sequence[Any]: ...

    def find_proxy_lbs(self, count: int) -> Sequence[Any]: ...

    def proxy_lb_certificates(self, proxy_lb_id: int) -> Any: ...

    def monitor_proxy_lb_connection(self, proxy_lb_id: int, condition: Any) -> Sequence[Any]: ...

    def find_sims(self, include: Sequence[str], count: int) -> Sequence[Any]: ...

    def sim_network_operator(self, sim_id: int) -> Sequence[Any]: ...

    def monitor_sim(self, sim_id: int, condition: Any) -> Sequence[Any]: ...

    def list_webaccel_sites(self) -> Sequence[WebAccelSite]: ...

    def webaccel_monthly_usage(self, target_month: str) -> Sequence[MonthlyUsage]: ...

    def find_zones(self) -> Sequence[Zone]: ...


class _GlobalClient:
    def __init__(self, api: _GlobalAPI) -> None:
        self._api = api


class ESMEClient(_GlobalClient):
    """SMS gateway (ESME) resources."""

    def find(self) -> list[Any]:
        return list(self._api.find_esme() or ())

    def logs(self, esme_id: int) -> list[Any]:
        return list(self._api.esme_logs(esme_id) or ())


class LocalRouterClient(_GlobalClient):
    """Local router resources."""

    def find(self) -> list[Any]:
        return list(self._api.find_local_routers(count=FIND_COUNT) or ())

    def health(self, router_id: int) -> Any:
        return self._api.local_router_health_status(router_id)

    def monitor(self, router_id: int, end: datetime) -> Any:
        """Latest complete traffic sample of the hour up to ``end``."""
        values = self._api.monitor_local_router(router_id, monitor_condition(end))
        return pick_monitor_value(values, 1)


class ProxyLBClient(_GlobalClient):
    """Enhanced load balancer resources."""

    def find(self) -> list[Any]:
        return list(self._api.find_proxy_lbs(count=FIND_COUNT) or ())

    def get_certificate(self, proxy_lb_id: int) -> Any:
        return self._api.proxy_lb_certificates(proxy_lb_id)

    def monitor(self, proxy_lb_id: int, end: datetime) -> Any:
        """Latest complete connection sample of the hour up to ``end``."""
        values = self._api.monitor_proxy_lb_connection(proxy_lb_id, monitor_condition(end))
        return monitor_connection_value(values)


class SIMClient(_GlobalClient):
    """SIM resources."""

    def find(self) -> list[Any]:
        return list(self._api.find_sims(include=list(SIM_INCLUDE), count=FIND_COUNT) or ())

    def get_network_operator_config(self, sim_id: int) -> list[Any]:
        return list(self._api.sim_network_operator(sim_id) or ())

    def monitor_traffic(self, sim_id: int, end: datetime) -> Any:
        """Latest complete traffic sample of the hour up to ``end``."""
        values = self._api.monitor_sim(sim_id, monitor_condition(end))
        return monitor_link_value(values)


class WebAccelClient(_GlobalClient):
    """Web accelerator sites and their usage."""

    def find(self) -> list[WebAccelSite]:
        return list(self._api.list_webaccel_sites() or ())

    def usage(self) -> list[MonthlyUsage]:
        """Usage of every site in the current month."""
        return list(self._api.webaccel_monthly_usage("") or ())


class ZoneClient(_GlobalClient):
    """Zones of the cloud."""

    def find(self) -> list[Zone]:
        return list(self._api.find_zones() or ())