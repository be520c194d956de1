import logging
from datetime import datetime, timezone

import pytest

from sakuracloud_exporter.cloud.functions import FeedItem
from sakuracloud_exporter.cloud.monitor import MonitorInterfaceValue
from sakuracloud_exporter.cloud.zonal_network import (
    VPC_ROUTER_PLAN_PREMIUM,
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
from sakuracloud_exporter.exposition import CounterVec, const_metric

LOGGER_NAME = "test.vpc_router"
MONITOR_TIME = datetime.fromtimestamp(1, tz=timezone.utc)


class DummyVPCRouterClient:
    def __init__(
        self,
        find=None,
        find_err=None,
        status=None,
        status_err=None,
        monitor=None,
        monitor_err=None,
        monitor_cpu=None,
        monitor_cpu_err=None,
        maintenance=None,
        maintenance_err=None,
    ):
        self._find = find or []
        self._find_err = find_err
        self._status = status
        self._status_err = status_err
        self._monitor = monitor
        self._monitor_err = monitor_err
        self._monitor_cpu = monitor_cpu
        self._monitor_cpu_err = monitor_cpu_err
        self._maintenance = maintenance
        self._maintenance_err = maintenance_err

    @staticmethod
    def _answer(value, err):
        if err is not None:
            raise err
        return value

    def find(self):
        return self._answer(self._find, self._find_err)

    def status(self, zone, router_id):
        return self._answer(self._status, self._status_err)

    def monitor_nic(self, zone, router_id, index, end):
        return self._answer(self._monitor, self._monitor_err)

    def monitor_cpu(self, zone, router_id, end):
        return self._answer(self._monitor_cpu, self._monitor_cpu_err)

    def maintenance_info(self, info_url):
        return self._answer(self._maintenance, self._maintenance_err)


def make_errors():
    return CounterVec("sakuracloud_exporter_errors_total", "The total number of errors per collector", "collector")


def make_collector(client):
    return VPCRouterCollector(logging.getLogger(LOGGER_NAME), make_errors(), client)


def expected(desc, value, labels, timestamp=None):
    return const_metric(desc, value, [labels[name] for name in desc.label_names], timestamp)


def ordered(metrics):
    return sorted(metrics, key=lambda m: (m.desc.name, m.label_values, m.value))


def make_router(interface_count=2, host_info_url=""):
    settings = [
        VPCRouterInterfaceSetting(
            index=0,
            virtual_ip_address="192.168.0.1",
            ip_address=("192.168.0.11", "192.168.0.12"),
            network_mask_len=24,
        ),
        VPCRouterInterfaceSetting(
            index=1,
            virtual_ip_address="192.168.1.1",
            ip_address=("192.168.1.11", "192.168.1.12"),
            network_mask_len=24,
        ),
    ][:interface_count]
    return VPCRouter(
        id=101,
        name="router",
        zone_name="is1a",
        description="desc",
        tags=["tag1", "tag2"],
        plan_id=VPC_ROUTER_PLAN_PREMIUM,
        instance_status="up",
        availability="available",
        instance_host_info_url=host_info_url,
        interfaces=[VPCRouterInterface(index=i, id=200 + i) for i in range(interface_count)],
        settings=VPCRouterSetting(vrid=1, internet_connection_enabled=True, interfaces=settings),
    )


ROUTER = {"id": "101", "name": "router", "zone": "is1a"}
INFO = {
    **ROUTER,
    "plan": "premium",
    "ha": "1",
    "vrid": "1",
    "vip": "192.168.0.1",
    "ipaddress1": "192.168.0.11",
    "ipaddress2": "192.168.0.12",
    "nw_mask_len": "24",
    "internet_connection": "1",
    "tags": ",tag1,tag2,",
    "description": "desc",
}
NIC0 = {
    **ROUTER,
    "nic_index": "0",
    "vip": "192.168.0.1",
    "ipaddress1": "192.168.0.11",
    "ipaddress2": "192.168.0.12",
    "nw_mask_len": "24",
}
NIC1 = {
    **ROUTER,
    "nic_index": "1",
    "vip": "192.168.1.1",
    "ipaddress1": "192.168.1.11",
    "ipaddress2": "192.168.1.12",
    "nw_mask_len": "24",
}


def test_describe_yields_all_descriptors():
    collector = make_collector(DummyVPCRouterClient())
    descs = list(collector.describe())
    assert len(descs) == 15
    assert len({d.name for d in descs}) == 15


def test_constructor_initialises_error_counter():
    errors = make_errors()
    VPCRouterCollector(logging.getLogger(LOGGER_NAME), errors, DummyVPCRouterClient())
    assert [m.label_values for m in errors.collect()] == [("vpc_router",)]
    assert errors.value("vpc_router") == 0


def test_collect_find_error(caplog):
    collector = make_collector(DummyVPCRouterClient(find_err=RuntimeError("dummy")))
    with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
        metrics = collector.collect()
    assert metrics == []
    assert caplog.messages == ["can't list vpc routers err=dummy"]
    assert collector.errors.value("vpc_router") == 1


def test_collect_empty_result(caplog):
    collector = make_collector(DummyVPCRouterClient())
    with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
        metrics = collector.collect()
    assert metrics == []
    assert caplog.messages == []
    assert collector.errors.value("vpc_router") == 0


def test_collect_with_activity_monitor(caplog):
    status = VPCRouterStatus(
        session_count=100,
        dhcp_server_leases=[{"ip_address": "172.16.0.1", "mac_address": "02:00:00:00:00:01"}],
        l2tp_ipsec_server_sessions=[{"user": "user1", "ip_address": "172.16.1.1", "time_sec": 10}],
        pptp_server_sessions=[{"user": "user2", "ip_address": "172.16.2.1", "time_sec": 20}],
        site_to_site_ipsec_vpn_peers=[VPCRouterPeer(peer="172.16.3.1", status="UP")],
        session_analysis=VPCRouterSessionAnalysis(
            source_address=[VPCRouterStatisticsValue(name="localhost", count=4)]
        ),
    )
    client = DummyVPCRouterClient(
        find=[make_router()],
        status=status,
        monitor=MonitorInterfaceValue(time=MONITOR_TIME, receive=100, send=200),
    )
    c = make_collector(client)
    with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
        metrics = c.collect()

    want = [
        expected(c.up, 1, ROUTER),
        expected(c.vpc_router_info, 1, INFO),
        expected(c.session_count, 100, ROUTER),
        expected(c.dhcp_lease_count, 1, ROUTER),
        expected(c.l2tp_session_count, 1, ROUTER),
        expected(c.pptp_session_count, 1, ROUTER),
        expected(
            c.site_to_site_peer_status, 1, {**ROUTER, "peer_index": "0", "peer_address": "172.16.3.1"}
        ),
        expected(c.session_analysis, 4, {**ROUTER, "type": "SourceAddress", "label": "localhost"}),
        expected(c.receive, 0.8, NIC0, MONITOR_TIME),
        expected(c.receive, 0.8, NIC1, MONITOR_TIME),
        expected(c.send, 1.6, NIC0, MONITOR_TIME),
        expected(c.send, 1.6, NIC1, MONITOR_TIME),
        expected(c.maintenance_scheduled, 0, ROUTER),
    ]
    assert ordered(metrics) == ordered(want)
    assert caplog.messages == []
    assert c.errors.value("vpc_router") == 0


def test_collect_apis_return_error(caplog):
    client = DummyVPCRouterClient(
        find=[make_router(interface_count=1)],
        status_err=RuntimeError("dummy1"),
        monitor_err=RuntimeError("dummy2"),
    )
    c = make_collector(client)
    with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
        metrics = c.collect()

    want = [
        expected(c.up, 1, ROUTER),
        expected(c.vpc_router_info, 1, INFO),
        expected(c.maintenance_scheduled, 0, ROUTER),
    ]
    assert ordered(metrics) == ordered(want)
    assert sorted(caplog.messages) == [
        "can't fetch vpc_router's status err=dummy1",
        "can't get vpc_router's receive bytes: ID=101, NICIndex=0 err=dummy2",
    ]
    assert c.errors.value("vpc_router") == 2


def test_collect_with_maintenance_info(caplog):
    client = DummyVPCRouterClient(
        find=[make_router(host_info_url="http://example.com/maintenance-info-dummy-url")],
        maintenance=FeedItem(
            url="http://example.com/maintenance",
            title="dummy-title",
            description="desc",
            str_date="947430000",
            str_event_start="946652400",
            str_event_end="949244400",
        ),
    )
    c = make_collector(client)
    with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
        metrics = c.collect()

    want = [
        expected(c.up, 1, ROUTER),
        expected(c.vpc_router_info, 1, INFO),
        expected(c.maintenance_scheduled, 1, ROUTER),
        expected(
            c.maintenance_info,
            1,
            {
                **ROUTER,
                "info_url": "http://example.com/maintenance",
                "info_title": "dummy-title",
                "description": "desc",
                "start_date": "946652400",
                "end_date": "949244400",
            },
        ),
        expected(c.maintenance_start_time, 946652400, ROUTER),
        expected(c.maintenance_end_time, 949244400, ROUTER),
    ]
    assert ordered(metrics) == ordered(want)
    assert caplog.messages == []
    assert c.errors.value("vpc_router") == 0


def test_down_router_reports_only_up_and_info():
    router = make_router()
    router.instance_status = "down"
    c = make_collector(DummyVPCRouterClient(find=[router]))
    metrics = c.collect()
    assert ordered(metrics) == ordered([expected(c.up, 0, ROUTER), expected(c.vpc_router_info, 1, INFO)])


def test_cpu_time_error_counts_against_server_label(caplog):
    c = make_collector(DummyVPCRouterClient(find=[make_router(interface_count=0)], monitor_cpu_err=RuntimeError("x")))
    with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
        c.collect()
    assert c.errors.value("server") == 1
    assert c.errors.value("vpc_router") == 0
    assert caplog.messages == ["can't get server's CPU-TIME: ID=101 err=x"]


def test_info_labels_for_standard_plan_without_interface_settings():
    router = VPCRouter(
        id=5,
        name="plain",
        zone_name="tk1a",
        plan_id=VPC_ROUTER_PLAN_STANDARD,
        instance_status="down",
        settings=VPCRouterSetting(vrid=-1),
    )
    c = make_collector(DummyVPCRouterClient(find=[router]))
    info = next(m for m in c.collect() if m.desc is c.vpc_router_info)
    assert info.labels == {
        "id": "5",
        "name": "plain",
        "zone": "tk1a",
        "plan": "standard",
        "ha": "0",
        "vrid": "",
        "vip": "",
        "ipaddress1": "",
        "ipaddress2": "",
        "nw_mask_len": "-",
        "internet_connection": "0",
        "tags": "",
        "description": "",
    }


@pytest.mark.parametrize("peer_status, want", [("up", 1.0), ("Up", 1.0), ("DOWN", 0.0)])
def test_site_to_site_peer_status_is_case_insensitive(peer_status, want):
    status = VPCRouterStatus(site_to_site_ipsec_vpn_peers=[VPCRouterPeer(peer="10.0.0.1", status=peer_status)])
    c = make_collector(DummyVPCRouterClient(find=[make_router(interface_count=1)], status=status))
    peers = [m for m in c.collect() if m.desc is c.site_to_site_peer_status]
    assert [m.value for m in peers] == [want]
    assert peers[0].labels["peer_address"] == "10.0.0.1"