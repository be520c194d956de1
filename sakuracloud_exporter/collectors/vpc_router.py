"""Metrics about VPC routers."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Iterator, Sequence

from sakuracloud_exporter.cloud.zonal_network import (
    VPC_ROUTER_PLAN_HIGHSPEC,
    VPC_ROUTER_PLAN_PREMIUM,
    VPC_ROUTER_PLAN_STANDARD,
    VPCRouter,
    VPCRouterClient,
    VPCRouterInterfaceSetting,
)
from sakuracloud_exporter.exposition import CounterVec, Desc, Metric, const_metric

ERROR_LABEL = "vpc_router"

_PLAN_NAMES = {
    VPC_ROUTER_PLAN_STANDARD: "standard",
    VPC_ROUTER_PLAN_PREMIUM: "premium",
    VPC_ROUTER_PLAN_HIGHSPEC: "highspec",
}

_ROUTER_LABELS = ("id", "name", "zone")
_INFO_LABELS = _ROUTER_LABELS + (
    "plan",
    "ha",
    "vrid",
    "vip",
    "ipaddress1",
    "ipaddress2",
    "nw_mask_len",
    "internet_connection",
    "tags",
    "description",
)
_NIC_LABELS = _ROUTER_LABELS + ("nic_index", "vip", "ipaddress1", "ipaddress2", "nw_mask_len")
_S2S_PEER_LABELS = _ROUTER_LABELS + ("peer_address", "peer_index")
_SESSION_ANALYSIS_LABELS = _ROUTER_LABELS + ("type", "label")
_MAINTENANCE_INFO_LABELS = _ROUTER_LABELS + ("info_url", "info_title", "description", "start_date", "end_date")


def _flatten_tags(tags: Sequence[str]) -> str:
    if not tags:
        return ""
    return "," + ",".join(tags) + ","


def _addresses(setting: VPCRouterInterfaceSetting) -> tuple[str, str]:
    first = setting.ip_address[0] if len(setting.ip_address) > 0 else ""
    second = setting.ip_address[1] if len(setting.ip_address) > 1 else ""
    return first, second


class VPCRouterCollector:
    """Collects metrics about all VPC routers."""

    def __init__(self, logger: logging.Logger, errors: CounterVec, client: VPCRouterClient) -> None:
        self.logger = logger
        self.errors = errors
        self.client = client
        errors.add(ERROR_LABEL, 0)

        self.up = Desc(
            "sakuracloud_vpc_router_up",
            "If 1 the vpc_router is up and running, 0 otherwise",
            _ROUTER_LABELS,
        )
        self.session_count = Desc("sakuracloud_vpc_router_session", "Current session count", _ROUTER_LABELS)
        self.vpc_router_info = Desc(
            "sakuracloud_vpc_router_info",
            "A metric with a constant '1' value labeled by vpc_router information",
            _INFO_LABELS,
        )
        self.cpu_time = Desc("sakuracloud_vpc_router_cpu_time", "VPCRouter's CPU time(unit: ms)", _ROUTER_LABELS)
        self.dhcp_lease_count = Desc(
            "sakuracloud_vpc_router_dhcp_lease", "Current DHCPServer lease count", _ROUTER_LABELS
        )
        self.l2tp_session_count = Desc(
            "sakuracloud_vpc_router_l2tp_session", "Current L2TP-IPsec session count", _ROUTER_LABELS
        )
        self.pptp_session_count = Desc(
            "sakuracloud_vpc_router_pptp_session", "Current PPTP session count", _ROUTER_LABELS
        )
        self.site_to_site_peer_status = Desc(
            "sakuracloud_vpc_router_s2s_peer_up",
            "If 1 the vpc_router's site to site peer is up, 0 otherwise",
            _S2S_PEER_LABELS,
        )
        self.receive = Desc("sakuracloud_vpc_router_receive", "VPCRouter's receive bytes(unit: Kbps)", _NIC_LABELS)
        self.send = Desc("sakuracloud_vpc_router_send", "VPCRouter's receive bytes(unit: Kbps)", _NIC_LABELS)
        self.session_analysis = Desc(
            "sakuracloud_vpc_router_session_analysis",
            "Session statistics for VPC routers",
            _SESSION_ANALYSIS_LABELS,
        )
        self.maintenance_scheduled = Desc(
            "sakuracloud_vpc_router_maintenance_scheduled",
            "If 1 the vpc router has scheduled maintenance info, 0 otherwise",
            _ROUTER_LABELS,
        )
        self.maintenance_info = Desc(
            "sakuracloud_vpc_router_maintenance_info",
            "A metric with a constant '1' value labeled by maintenance information",
            _MAINTENANCE_INFO_LABELS,
        )
        self.maintenance_start_time = Desc(
            "sakuracloud_vpc_router_maintenance_start",
            "Scheduled maintenance start time in seconds since epoch (1970)",
            _ROUTER_LABELS,
        )
        self.maintenance_end_time = Desc(
            "sakuracloud_vpc_router_maintenance_end",
            "Scheduled maintenance end time in seconds since epoch (1970)",
            _ROUTER_LABELS,
        )

    def describe(self) -> Iterator[Desc]:
        """Every descriptor this collector may produce."""
        yield self.up
        yield self.vpc_router_info
        yield self.cpu_time
        yield self.session_count
        yield self.dhcp_lease_count
        yield self.l2tp_session_count
        yield self.pptp_session_count
        yield self.site_to_site_peer_status
        yield self.receive
        yield self.send
        yield self.session_analysis
        yield self.maintenance_scheduled
        yield self.maintenance_info
        yield self.maintenance_start_time
        yield self.maintenance_end_time

    def collect(self) -> list[Metric]:
        """Query every VPC router and return its metrics."""
        try:
            routers = self.client.find()
        except Exception as err:
            self._fail("can't list vpc routers", err)
            routers = []

        metrics: list[Metric] = []
        futures: list[Future[list[Metric]]] = []
        with ThreadPoolExecutor() as pool:
            for router in routers or ():
                labels = self._router_labels(router)
                metrics.append(const_metric(self.up, 1.0 if router.is_up else 0.0, labels))
                metrics.append(const_metric(self.vpc_router_info, 1.0, self._info_labels(router)))

                if not (router.is_available and router.is_up):
                    continue

                now = datetime.now(timezone.utc)
                futures.append(pool.submit(self._collect_cpu_time, router, now))
                if router.interfaces:
                    futures.append(pool.submit(self._collect_status, router))
                    for nic in router.interfaces:
                        futures.append(pool.submit(self._collect_nic_metrics, router, nic.index, now))

                scheduled = 0.0
                if router.instance_host_info_url:
                    scheduled = 1.0
                    futures.append(pool.submit(self._collect_maintenance_info, router))
                metrics.append(const_metric(self.maintenance_scheduled, scheduled, labels))

        for future in futures:
            metrics.extend(future.result())
        return metrics

    def _fail(self, message: str, err: BaseException, label: str = ERROR_LABEL) -> None:
        self.errors.add(label, 1)
        self.logger.warning("%s err=%s", message, err)

    @staticmethod
    def _router_labels(router: VPCRouter) -> list[str]:
        return [str(router.id), router.name, router.zone_name]

    def _info_labels(self, router: VPCRouter) -> list[str]:
        settings = router.settings
        is_ha = "1" if router.plan_id != VPC_ROUTER_PLAN_STANDARD else "0"
        internet_conn = "1" if settings.internet_connection_enabled else "0"
        vrid = "" if settings.vrid < 0 else str(settings.vrid)

        vip = ipaddress1 = ipaddress2 = ""
        nw_mask_len = "-"
        setting = settings.interface(0)
        if setting is not None:
            vip = setting.virtual_ip_address
            ipaddress1, ipaddress2 = _addresses(setting)
            nw_mask_len = str(setting.network_mask_len)

        return self._router_labels(router) + [
            _PLAN_NAMES.get(router.plan_id, ""),
            is_ha,
            vrid,
            vip,
            ipaddress1,
            ipaddress2,
            nw_mask_len,
            internet_conn,
            _flatten_tags(router.tags),
            router.description,
        ]

    def _nic_labels(self, router: VPCRouter, index: int) -> list[str]:
        vip = ipaddress1 = ipaddress2 = nw_mask_len = ""
        setting = router.settings.interface(index)
        if setting is not None:
            vip = setting.virtual_ip_address
            ipaddress1, ipaddress2 = _addresses(setting)
            nw_mask_len = str(setting.network_mask_len)
        return self._router_labels(router) + [str(index), vip, ipaddress1, ipaddress2, nw_mask_len]

    def _collect_status(self, router: VPCRouter) -> list[Metric]:
        try:
            status = self.client.status(router.zone_name, router.id)
        except Exception as err:
            self._fail("can't fetch vpc_router's status", err)
            return []
        if status is None:
            return []

        labels = self._router_labels(router)
        metrics = [
            const_metric(self.session_count, status.session_count, labels),
            const_metric(self.dhcp_lease_count, len(status.dhcp_server_leases), labels),
            const_metric(self.l2tp_session_count, len(status.l2tp_ipsec_server_sessions), labels),
            const_metric(self.pptp_session_count, len(status.pptp_server_sessions), labels),
        ]
        for index, peer in enumerate(status.site_to_site_ipsec_vpn_peers):
            up = 1.0 if peer.status.lower() == "up" else 0.0
            metrics.append(const_metric(self.site_to_site_peer_status, up, labels + [peer.peer, str(index)]))

        analysis = status.session_analysis
        if analysis is not None:
            groups = {
                "SourceAndDestination": analysis.source_and_destination,
                "DestinationAddress": analysis.destination_address,
                "DestinationPort": analysis.destination_port,
                "SourceAddress": analysis.source_address,
            }
            for type_name, values in groups.items():
                for value in values or ():
                    metrics.append(
                        const_metric(self.session_analysis, value.count, labels + [type_name, value.name])
                    )
        return metrics

    def _collect_nic_metrics(self, router: VPCRouter, index: int, now: datetime) -> list[Metric]:
        try:
            values = self.client.monitor_nic(router.zone_name, router.id, index, now)
        except Exception as err:
            self._fail(f"can't get vpc_router's receive bytes: ID={router.id}, NICIndex={index}", err)
            return []
        if values is None:
            return []

        receive = values.receive
        if receive > 0:
            receive = receive * 8 / 1000
        send = values.send
        if send > 0:
            send = send * 8 / 1000
        labels = self._nic_labels(router, index)
        return [
            const_metric(self.receive, receive, labels, values.time),
            const_metric(self.send, send, labels, values.time),
        ]

    def _collect_cpu_time(self, router: VPCRouter, now: datetime) -> list[Metric]:
        try:
            values = self.client.monitor_cpu(router.zone_name, router.id, now)
        except Exception as err:
            self._fail(f"can't get server's CPU-TIME: ID={router.id}", err, label="server")
            return []
        if values is None:
            return []
        return [const_metric(self.cpu_time, values.cpu_time * 1000, self._router_labels(router), values.time)]

    def _collect_maintenance_info(self, router: VPCRouter) -> list[Metric]:
        if not router.instance_host_info_url:
            return []
        try:
            info = self.client.maintenance_info(router.instance_host_info_url)
        except Exception as err:
            self._fail(f"can't get vpc router's maintenance info: ID={router.id}", err)
            return []

        start = int(info.event_start().timestamp())
        end = int(info.event_end().timestamp())
        labels = self._router_labels(router)
        info_labels = labels + [info.url, info.title, info.description, str(start), str(end)]
        return [
            const_metric(self.maintenance_info, 1.0, info_labels),
            const_metric(self.maintenance_start_time, start, labels),
            const_metric(self.maintenance_end_time, end, labels),
        ]