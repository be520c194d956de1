"""Clients for zonal network resources: routers, load balancers, mobile gateways and VPC routers."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Protocol, Sequence

from sakuracloud_exporter.cloud.functions import FeedItem, query_to_zones
from sakuracloud_exporter.cloud.monitor import (
    MonitorCondition,
    MonitorCPUTimeValue,
    MonitorInterfaceValue,
    monitor_condition,
    monitor_cpu_time_value,
    monitor_interface_value,
    pick_monitor_value,
)
from sakuracloud_exporter.cloud.zonal_compute import AVAILABLE, FIND_COUNT, _ZonalResource

INSTANCE_STATUS_UP = "up"
VPC_ROUTER_PLAN_STANDARD = 1
VPC_ROUTER_PLAN_PREMIUM = 2
VPC_ROUTER_PLAN_HIGHSPEC = 3


@dataclass
class Internet(_ZonalResource):
    """A switch+router together with the zone it lives in."""

    resource: Any
    zone_name: str


@dataclass
class LoadBalancer(_ZonalResource):
    """A load balancer appliance together with the zone it lives in."""

    resource: Any
    zone_name: str


@dataclass
class MobileGateway(_ZonalResource):
    """A mobile gateway together with the zone it lives in."""

    resource: Any
    zone_name: str


@dataclass(frozen=True)
class VPCRouterInterface:
    """A network interface attached to a VPC router."""

    index: int = 0
    id: int = 0


@dataclass(frozen=True)
class VPCRouterInterfaceSetting:
    """Addressing of one VPC router interface."""

    index: int = 0
    virtual_ip_address: str = ""
    ip_address: tuple[str, ...] = ()
    network_mask_len: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "ip_address", tuple(self.ip_address))


@dataclass
class VPCRouterSetting:
    """Router-wide settings of a VPC router."""

    vrid: int = 0
    internet_connection_enabled: bool = False
    interfaces: list[VPCRouterInterfaceSetting] = field(default_factory=list)

    def interface(self, index: int) -> VPCRouterInterfaceSetting | None:
        """The interface setting with the given index, if any."""
        return next((setting for setting in self.interfaces if setting.index == index), None)


@dataclass
class VPCRouter:
    """A VPC router together with the zone it lives in."""

    id: int
    name: str = ""
    zone_name: str = ""
    description: str = ""
    tags: list[str] = field(default_factory=list)
    plan_id: int = VPC_ROUTER_PLAN_STANDARD
    instance_status: str = ""
    availability: str = ""
    instance_host_info_url: str = ""
    interfaces: list[VPCRouterInterface] = field(default_factory=list)
    settings: VPCRouterSetting = field(default_factory=VPCRouterSetting)

    @property
    def is_up(self) -> bool:
        return self.instance_status == INSTANCE_STATUS_UP

    @property
    def is_available(self) -> bool:
        return self.availability == AVAILABLE


@dataclass(frozen=True)
class VPCRouterPeer:
    """State of a site-to-site IPsec VPN peer."""

    peer: str = ""
    status: str = ""


@dataclass(frozen=True)
class VPCRouterStatisticsValue:
    """One row of session statistics."""

    name: str = ""
    count: int = 0


@dataclass
class VPCRouterSessionAnalysis:
    """Session statistics grouped by what they are keyed on."""

    source_and_destination: list[VPCRouterStatisticsValue] = field(default_factory=list)
    destination_address: list[VPCRouterStatisticsValue] = field(default_factory=list)
    destination_port: list[VPCRouterStatisticsValue] = field(default_factory=list)
    source_address: list[VPCRouterStatisticsValue] = field(default_factory=list)


@dataclass
class VPCRouterStatus:
    """Runtime status of a VPC router."""

    session_count: int = 0
    dhcp_server_leases: list[Any] = field(default_factory=list)
    l2tp_ipsec_server_sessions: list[Any] = field(default_factory=list)
    pptp_server_sessions: list[Any] = field(default_factory=list)
    site_to_site_ipsec_vpn_peers: list[VPCRouterPeer] = field(default_factory=list)
    session_analysis: VPCRouterSessionAnalysis | None = None


class _ZonalNetworkAPI(Protocol):
    def find_internet(self, zone: str, count: int) -> Sequence[Any]: ...

    def monitor_router(self, zone: str, internet_id: int, condition: MonitorCondition) -> Sequence[Any]: ...

    def find_load_balancers(self, zone: str, count: int) -> Sequence[Any]: ...

    def load_balancer_status(self, zone: str, lb_id: int) -> Sequence[Any]: ...

    def monitor_load_balancer_interface(
        self, zone: str, lb_id: int, condition: MonitorCondition
    ) -> Sequence[Any]: ...

    def find_mobile_gateways(self, zone: str, count: int) -> Sequence[Any]: ...

    def mobile_gateway_traffic_status(self, zone: str, mgw_id: int) -> Any: ...

    def mobile_gateway_traffic_config(self, zone: str, mgw_id: int) -> Any: ...

    def monitor_mobile_gateway_interface(
        self, zone: str, mgw_id: int, index: int, condition: MonitorCondition
    ) -> Sequence[Any]: ...

    def find_vpc_routers(self, zone: str, count: int) -> Sequence[VPCRouter]: ...

    def vpc_router_status(self, zone: str, router_id: int) -> VPCRouterStatus | None: ...

    def monitor_vpc_router_interface(
        self, zone: str, router_id: int, index: int, condition: MonitorCondition
    ) -> Sequence[Any]: ...

    def monitor_vpc_router_cpu(self, zone: str, router_id: int, condition: MonitorCondition) -> Sequence[Any]: ...

    def maintenance_info(self, info_url: str) -> FeedItem: ...


class _ZonalClient:
    def __init__(self, api: _ZonalNetworkAPI, zones: Sequence[str] = ()) -> None:
        self._api = api
        self.zones = list(zones)


class InternetClient(_ZonalClient):
    """Switch+router resources."""

    def _find_in(self, zone: str) -> list[Internet]:
        return [Internet(router, zone) for router in self._api.find_internet(zone, count=FIND_COUNT) or ()]

    def find(self) -> list[Internet]:
        """Routers of every configured zone."""
        return query_to_zones(self.zones, self._find_in)

    def monitor_traffic(self, zone: str, internet_id: int, end: datetime) -> Any:
        """Latest complete traffic sample of the hour up to ``end``."""
        values = self._api.monitor_router(zone, internet_id, monitor_condition(end))
        return pick_monitor_value(values, 1)


class LoadBalancerClient(_ZonalClient):
    """Load balancer appliances."""

    def _find_in(self, zone: str) -> list[LoadBalancer]:
        return [LoadBalancer(lb, zone) for lb in self._api.find_load_balancers(zone, count=FIND_COUNT) or ()]

    def find(self) -> list[LoadBalancer]:
        """Load balancers of every configured zone."""
        return query_to_zones(self.zones, self._find_in)

    def status(self, zone: str, lb_id: int) -> list[Any]:
        """Status of every virtual IP address of the load balancer."""
        return list(self._api.load_balancer_status(zone, lb_id) or ())

    def monitor_nic(self, zone: str, lb_id: int, end: datetime) -> MonitorInterfaceValue | None:
        values = self._api.monitor_load_balancer_interface(zone, lb_id, monitor_condition(end))
        return monitor_interface_value(values)

    def maintenance_info(self, info_url: str) -> FeedItem:
        """The maintenance announcement published at ``info_url``."""
        return self._api.maintenance_info(info_url)


class MobileGatewayClient(_ZonalClient):
    """Mobile gateway appliances."""

    def _find_in(self, zone: str) -> list[MobileGateway]:
        return [
            MobileGateway(mgw, zone) for mgw in self._api.find_mobile_gateways(zone, count=FIND_COUNT) or ()
        ]

    def find(self) -> list[MobileGateway]:
        """Mobile gateways of every configured zone."""
        return query_to_zones(self.zones, self._find_in)

    def traffic_status(self, zone: str, mgw_id: int) -> Any:
        return self._api.mobile_gateway_traffic_status(zone, mgw_id)

    def traffic_control(self, zone: str, mgw_id: int) -> Any:
        return self._api.mobile_gateway_traffic_config(zone, mgw_id)

    def monitor_nic(self, zone: str, mgw_id: int, index: int, end: datetime) -> MonitorInterfaceValue | None:
        values = self._api.monitor_mobile_gateway_interface(zone, mgw_id, index, monitor_condition(end))
        return monitor_interface_value(values)

    def maintenance_info(self, info_url: str) -> FeedItem:
        """The maintenance announcement published at ``info_url``."""
        return self._api.maintenance_info(info_url)


class VPCRouterClient(_ZonalClient):
    """VPC routers."""

    def _find_in(self, zone: str) -> list[VPCRouter]:
        return [replace(router, zone_name=zone) for router in self._api.find_vpc_routers(zone, count=FIND_COUNT) or ()]

    def find(self) -> list[VPCRouter]:
        """VPC routers of every configured zone."""
        return query_to_zones(self.zones, self._find_in)

    def status(self, zone: str, router_id: int) -> VPCRouterStatus | None:
        return self._api.vpc_router_status(zone, router_id)

    def monitor_nic(self, zone: str, router_id: int, index: int, end: datetime) -> MonitorInterfaceValue | None:
        values = self._api.monitor_vpc_router_interface(zone, router_id, index, monitor_condition(end))
        return monitor_interface_value(values)

    def monitor_cpu(self, zone: str, router_id: int, end: datetime) -> MonitorCPUTimeValue | None:
        values = self._api.monitor_vpc_router_cpu(zone, router_id, monitor_condition(end))
        return monitor_cpu_time_value(values)

    def maintenance_info(self, info_url: str) -> FeedItem:
        """The maintenance announcement published at ``info_url``."""
        return self._api.maintenance_info(info_url)