from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest

from sakuracloud_exporter.cloud.functions import FeedItem
from sakuracloud_exporter.cloud.monitor import MonitorCPUTimeValue, MonitorInterfaceValue
from sakuracloud_exporter.cloud.zonal_compute import (
    AUTO_BACKUP_ZONE,
    AVAILABLE,
    FIND_COUNT,
    NFS_DISK_PLAN_HDD,
    NFS_DISK_PLAN_SSD,
    NFS,
    AutoBackupClient,
    Database,
    DatabaseClient,
    NFSClient,
    Server,
    ServerClient,
)


@dataclass
class Resource:
    id: int
    name: str = ""
    plan_id: int = 0
    availability: str = AVAILABLE


@dataclass
class Plan:
    disk_plan_id: int


@dataclass
class Sample:
    time: datetime
    value: float = 0.0


def _t(seconds):
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


class FakeAPI:
    def __init__(self, per_zone=None, fail_zone=None, samples=(), plans=None, archives=()):
        self.per_zone = per_zone or {}
        self.fail_zone = fail_zone
        self.samples = list(samples)
        self.plans = plans or {}
        self.archives = list(archives)
        self.calls = []

    def _find(self, zone, count):
        self.calls.append(("find", zone, count))
        if zone == self.fail_zone:
            raise RuntimeError("dummy")
        return self.per_zone.get(zone, [])

    find_servers = find_databases = find_nfs = find_auto_backups = _find

    def find_archives(self, zone, count, tags):
        self.calls.append(("archives", zone, count, tuple(tags)))
        return self.archives

    def read_disk(self, zone, disk_id):
        return ("disk", zone, disk_id)

    def _monitor(self, zone, resource_id, condition):
        self.calls.append(("monitor", zone, resource_id, condition))
        return self.samples

    monitor_server = monitor_disk = monitor_interface = _monitor
    monitor_database = monitor_database_cpu = monitor_database_disk = _monitor
    monitor_database_interface = monitor_nfs_free_disk_size = monitor_nfs_interface = _monitor

    def nfs_plan_info(self, plan_id):
        if plan_id not in self.plans:
            raise LookupError("plan")
        return self.plans[plan_id]

    def maintenance_info(self, info_url):
        return FeedItem(url=info_url, title="dummy-title")


def test_server_find_tags_zone_and_keeps_zone_order():
    api = FakeAPI(per_zone={"is1a": [Resource(1, "a")], "is1b": [Resource(2, "b"), Resource(3, "c")]})
    servers = ServerClient(api, ["is1a", "is1b"]).find()
    assert [(s.id, s.zone_name) for s in servers] == [(1, "is1a"), (2, "is1b"), (3, "is1b")]
    assert servers[0] == Server(Resource(1, "a"), "is1a")
    assert servers[1].name == "b"
    assert all(call[2] == FIND_COUNT for call in api.calls)


def test_find_raises_when_a_zone_fails():
    api = FakeAPI(per_zone={"is1a": [Resource(1)]}, fail_zone="is1b")
    with pytest.raises(RuntimeError, match="dummy"):
        DatabaseClient(api, ["is1a", "is1b"]).find()


def test_database_find_wraps_resources():
    api = FakeAPI(per_zone={"tk1a": [Resource(7, "db")]})
    assert DatabaseClient(api, ["tk1a"]).find() == [Database(Resource(7, "db"), "tk1a")]


def test_find_without_zones_is_empty():
    assert ServerClient(FakeAPI(per_zone={"is1a": [Resource(1)]}), []).find() == []


def test_missing_attribute_raises_attribute_error():
    server = Server(Resource(1), "is1a")
    with pytest.raises(AttributeError) as excinfo:
        server.no_such_attribute
    assert "no_such_attribute" in str(excinfo.value)
    assert server.plan_id == 0


def test_auto_backup_find_uses_single_zone():
    api = FakeAPI(per_zone={AUTO_BACKUP_ZONE: [Resource(5)], "is1b": [Resource(6)]})
    result = AutoBackupClient(api, ["is1a", "is1b"]).find()
    assert result == [Resource(5)]
    assert api.calls == [("find", AUTO_BACKUP_ZONE, FIND_COUNT)]


def test_list_backups_filters_available_archives_by_tag():
    archives = [Resource(1), Resource(2, availability="migrating"), Resource(3)]
    api = FakeAPI(archives=archives)
    result = AutoBackupClient(api).list_backups("is1b", 5)
    assert [a.id for a in result] == [1, 3]
    assert api.calls == [("archives", "is1b", FIND_COUNT, ("autobackup-5",))]


def test_monitor_cpu_picks_second_newest_and_passes_window():
    samples = [MonitorCPUTimeValue(_t(0), 0.0), MonitorCPUTimeValue(_t(2), 2.0), MonitorCPUTimeValue(_t(1), 1.0)]
    api = FakeAPI(samples=samples)
    end = _t(100).replace(microsecond=500)
    assert ServerClient(api).monitor_cpu("is1a", 9, end) == MonitorCPUTimeValue(_t(1), 1.0)
    condition = api.calls[-1][3]
    assert condition.end == _t(100)
    assert condition.end - condition.start == timedelta(hours=1)


@pytest.mark.parametrize(
    "method",
    ["monitor_disk", "monitor_nic"],
)
def test_server_monitors_need_two_samples(method):
    client = ServerClient(FakeAPI(samples=[Sample(_t(1))]))
    assert getattr(client, method)("is1a", 1, _t(10)) is None


def test_database_monitors_pick_second_newest():
    samples = [MonitorInterfaceValue(_t(1), 100, 200), MonitorInterfaceValue(_t(2), 300, 400)]
    client = DatabaseClient(FakeAPI(samples=samples))
    assert client.monitor_nic("is1a", 1, _t(10)) == samples[0]
    assert client.monitor_database("is1a", 1, _t(10)) == samples[0]
    assert client.monitor_disk("is1a", 1, _t(10)) == samples[0]


def test_nfs_find_resolves_plan_names():
    api = FakeAPI(
        per_zone={"is1a": [Resource(1, plan_id=10), Resource(2, plan_id=20), Resource(3, plan_id=30)]},
        plans={10: Plan(NFS_DISK_PLAN_HDD), 20: Plan(NFS_DISK_PLAN_SSD), 30: Plan(99)},
    )
    found = NFSClient(api, ["is1a"]).find()
    assert [n.plan_name for n in found] == ["HDD", "SSD", ""]
    assert found[0] == NFS(Resource(1, plan_id=10), Plan(NFS_DISK_PLAN_HDD), "HDD", "is1a")


def test_nfs_find_raises_when_plan_lookup_fails():
    api = FakeAPI(per_zone={"is1a": [Resource(1, plan_id=10)]})
    with pytest.raises(LookupError):
        NFSClient(api, ["is1a"]).find()


def test_nfs_free_disk_size_picks_second_newest():
    samples = [Sample(_t(5), 1.0), Sample(_t(6), 2.0)]
    assert NFSClient(FakeAPI(samples=samples)).monitor_free_disk_size("is1a", 1, _t(10)) == samples[0]


def test_maintenance_info_and_read_disk_delegate():
    api = FakeAPI()
    url = "http://example.com/maintenance"
    assert ServerClient(api).maintenance_info(url).url == url
    assert DatabaseClient(api).maintenance_info(url).url == url
    assert NFSClient(api).maintenance_info(url).title == "dummy-title"
    assert ServerClient(api).read_disk("is1a", 4) == ("disk", "is1a", 4)