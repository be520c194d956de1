"""Clients for zonal compute resources: auto backups, servers, databases and NFS."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol, Sequence

from sakuracloud_exporter.cloud.functions import FeedItem, query_to_zones
from sakuracloud_exporter.cloud.monitor import (
    MonitorCPUTimeValue,
    MonitorCondition,
    MonitorInterfaceValue,
    monitor_condition,
    monitor_cpu_time_value,
    monitor_interface_value,
    pick_monitor_value,
)

FIND_COUNT = 10000
AUTO_BACKUP_ZONE = "is1a"
AVAILABLE = "available"
NFS_DISK_PLAN_HDD = 2
NFS_DISK_PLAN_SSD = 4
_NFS_PLAN_NAMES = {NFS_DISK_PLAN_HDD: "HDD", NFS_DISK_PLAN_SSD: "SSD"}


class _ZonalResource:
    """Exposes the wrapped resource's attributes alongside the zone name."""

    resource: Any

    def __getattr__(self, name: str) -> Any:
        if name == "resource":
            raise AttributeError(name)
        return getattr(self.resource, name)


@dataclass
class Server(_ZonalResource):
    """A server together with the zone it lives in."""

    resource: Any
    zone_name: str


@dataclass
class Database(_ZonalResource):
    """A database appliance together with the zone it lives in."""

    resource: Any
    zone_name: str


@dataclass
class NFS(_ZonalResource):
    """An NFS appliance with its plan details and zone."""

    resource: Any
    plan: Any
    plan_name: str
    zone_name: str


class _ZonalComputeAPI(Protocol):
    def find_auto_backups(self, zone: str, count: int) -> Sequence[Any]: ...

    def find_archives(self, zone: str, count: int, tags: Sequence[str]) -> Sequence[Any]: ...

    def find_servers(self, zone: str, count: int) -> Sequence[Any]: ...

    def read_disk(self, zone: str, disk_id: int) -> Any: ...

    def monitor_server(self, zone: str, server_id: int, condition: MonitorCondition) -> Sequence[Any]: ...

    def monitor_disk(self, zone: str, disk_id: int, condition: MonitorCondition) -> Sequence[Any]: ...

    def monitor_interface(self, zone: str, nic_id: int, condition: MonitorCondition) -> Sequence[Any]: ...

    def find_databases(self, zone: str, count: int) -> Sequence[Any]: ...

    def monitor_database(self, zone: str, database_id: int, condition: MonitorCondition) -> Sequence[Any]: ...

    def monitor_database_cpu(self, zone: str, database_id: int, condition: MonitorCondition) -> Sequence[Any]: ...

    def monitor_database_disk(self, zone: str, database_id: int, condition: MonitorCondition) -> Sequence[Any]: ...

    def monitor_database_interface(
        self, zone: str, database_id: int, condition: MonitorCondition
    ) -> Sequence[Any]: ...

    def find_nfs(self, zone: str, count: int) -> Sequence[Any]: ...

    def nfs_plan_info(self, plan_id: int) -> Any: ...

    def monitor_nfs_free_disk_size(self, zone: str, nfs_id: int, condition: MonitorCondition) -> Sequence[Any]: ...

    def monitor_nfs_interface(self, zone: str, nfs_id: int, condition: MonitorCondition) -> Sequence[Any]: ...

    def maintenance_info(self, info_url: str) -> FeedItem: ...


class _ZonalClient:
    def __init__(self, api: _ZonalComputeAPI, zones: Sequence[str] = ()) -> None:
        self._api = api
        self.zones = list(zones)


class AutoBackupClient(_ZonalClient):
    """Auto backup schedules and the archives they produced."""

    def find(self) -> list[Any]:
        """Auto backups; they are listed from a single zone."""
        return list(self._api.find_auto_backups(AUTO_BACKUP_ZONE, count=FIND_COUNT) or ())

    def list_backups(self, zone: str, auto_backup_id: int) -> list[Any]:
        """Available archives tagged as made by the given auto backup."""
        tag = f"autobackup-{auto_backup_id}"
        archives = self._api.find_archives(zone, count=FIND_COUNT, tags=[tag]) or ()
        return [archive for archive in archives if getattr(archive, "availability", None) == AVAILABLE]


class ServerClient(_ZonalClient):
    """Servers with their disks and network interfaces."""

    def _find_in(self, zone: str) -> list[Server]:
        return [Server(server, zone) for server in self._api.find_servers(zone, count=FIND_COUNT) or ()]

    def find(self) -> list[Server]:
        """Servers of every configured zone."""
        return query_to_zones(self.zones, self._find_in)

    def read_disk(self, zone: str, disk_id: int) -> Any:
        return self._api.read_disk(zone, disk_id)

    def monitor_cpu(self, zone: str, server_id: int, end: datetime) -> MonitorCPUTimeValue | None:
        values = self._api.monitor_server(zone, server_id, monitor_condition(end))
        return monitor_cpu_time_value(values)

    def monitor_disk(self, zone: str, disk_id: int, end: datetime) -> Any:
        values = self._api.monitor_disk(zone, disk_id, monitor_condition(end))
        return pick_monitor_value(values, 1)

    def monitor_nic(self, zone: str, nic_id: int, end: datetime) -> MonitorInterfaceValue | None:
        values = self._api.monitor_interface(zone, nic_id, monitor_condition(end))
        return monitor_interface_value(values)

    def maintenance_info(self, info_url: str) -> FeedItem:
        """The maintenance announcement published at ``info_url``."""
        return self._api.maintenance_info(info_url)


class DatabaseClient(_ZonalClient):
    """Database appliances."""

    def _find_in(self, zone: str) -> list[Database]:
        return [Database(db, zone) for db in self._api.find_databases(zone, count=FIND_COUNT) or ()]

    def find(self) -> list[Database]:
        """Databases of every configured zone."""
        return query_to_zones(self.zones, self._find_in)

    def monitor_database(self, zone: str, database_id: int, end: datetime) -> Any:
        values = self._api.monitor_database(zone, database_id, monitor_condition(end))
        return pick_monitor_value(values, 1)

    def monitor_cpu(self, zone: str, database_id: int, end: datetime) -> MonitorCPUTimeValue | None:
        values = self._api.monitor_database_cpu(zone, database_id, monitor_condition(end))
        return monitor_cpu_time_value(values)

    def monitor_nic(self, zone: str, database_id: int, end: datetime) -> MonitorInterfaceValue | None:
        values = self._api.monitor_database_interface(zone, database_id, monitor_condition(end))
        return monitor_interface_value(values)

    def monitor_disk(self, zone: str, database_id: int, end: datetime) -> Any:
        values = self._api.monitor_database_disk(zone, database_id, monitor_condition(end))
        return pick_monitor_value(values, 1)

    def maintenance_info(self, info_url: str) -> FeedItem:
        """The maintenance announcement published at ``info_url``."""
        return self._api.maintenance_info(info_url)


class NFSClient(_ZonalClient):
    """NFS appliances."""

    def _find_in(self, zone: str) -> list[NFS]:
        results = []
        for nfs in self._api.find_nfs(zone, count=FIND_COUNT) or ():
            plan = self._api.nfs_plan_info(nfs.plan_id)
            plan_name = _NFS_PLAN_NAMES.get(getattr(plan, "disk_plan_id", None), "")
            results.append(NFS(resource=nfs, plan=plan, plan_name=plan_name, zone_name=zone))
        return results

    def find(self) -> list[NFS]:
        """NFS appliances of every configured zone, with their plans."""
        return query_to_zones(self.zones, self._find_in)

    def monitor_free_disk_size(self, zone: str, nfs_id: int, end: datetime) -> Any:
        values = self._api.monitor_nfs_free_disk_size(zone, nfs_id, monitor_condition(end))
        return pick_monitor_value(values, 1)

    def monitor_nic(self, zone: str, nfs_id: int, end: datetime) -> MonitorInterfaceValue | None:
        values = self._api.monitor_nfs_interface(zone, nfs_id, monitor_condition(end))
        return monitor_interface_value(values)

    def maintenance_info(self, info_url: str) -> FeedItem:
        """The maintenance announcement published at ``info_url``."""
        return self._api.maintenance_info(info_url)