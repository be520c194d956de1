"""The bundle of all cloud clients the exporter uses."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from sakuracloud_exporter.cloud.account import BillClient, CouponClient
from sakuracloud_exporter.cloud.global_clients import (
    ESMEClient,
    LocalRouterClient,
    ProxyLBClient,
    SIMClient,
    WebAccelClient,
    ZoneClient,
)
from sakuracloud_exporter.cloud.zonal_compute import (
    AutoBackupClient,
    DatabaseClient,
    NFSClient,
    ServerClient,
)
from sakuracloud_exporter.cloud.zonal_network import (
    InternetClient,
    LoadBalancerClient,
    MobileGatewayClient,
    VPCRouterClient,
)
from sakuracloud_exporter.config import Config

FAKE_STORE_FILE_NAME = "fake-store.json"


@dataclass
class Client:
    """Per-resource clients sharing one API connection."""

    api: Any
    user_agent: str
    fake_store_path: str
    auto_backup: AutoBackupClient
    bill: BillClient
    coupon: CouponClient
    database: DatabaseClient
    esme: ESMEClient
    internet: InternetClient
    load_balancer: LoadBalancerClient
    local_router: LocalRouterClient
    mobile_gateway: MobileGatewayClient
    nfs: NFSClient
    proxy_lb: ProxyLBClient
    server: ServerClient
    sim: SIMClient
    vpc_router: VPCRouterClient
    zone: ZoneClient
    webaccel: WebAccelClient

    def _auth_status(self) -> Any:
        try:
            return self.api.read_auth_status()
        except Exception:
            return None

    def has_valid_api_keys(self) -> bool:
        """Whether the API accepts the configured key."""
        return self._auth_status() is not None

    def has_webaccel_permission(self) -> bool:
        """Whether the configured key may use the web accelerator API."""
        status = self._auth_status()
        return bool(status is not None and status.permitted_webaccel)


def _fake_store_path(fake_mode: str) -> str:
    if fake_mode and os.path.isdir(fake_mode):
        return os.path.join(fake_mode, FAKE_STORE_FILE_NAME)
    return fake_mode


def new_sakura_cloud_client(config: Config, version: str, api: Any) -> Client:
    """Build every resource client on top of ``api`` for the configured zones."""
    zones = list(config.zones)
    return Client(
        api=api,
        user_agent=f"sakuracloud_exporter/{version}",
        fake_store_path=_fake_store_path(config.fake_mode),
        auto_backup=AutoBackupClient(api, zones),
        bill=BillClient(api),
        coupon=CouponClient(api),
        database=DatabaseClient(api, zones),
        esme=ESMEClient(api),
        internet=InternetClient(api, zones),
        load_balancer=LoadBalancerClient(api, zones),
        local_router=LocalRouterClient(api),
        mobile_gateway=MobileGatewayClient(api, zones),
        nfs=NFSClient(api, zones),
        proxy_lb=ProxyLBClient(api),
        server=ServerClient(api, zones),
        sim=SIMClient(api),
        vpc_router=VPCRouterClient(api, zones),
        zone=ZoneClient(api),
        webaccel=WebAccelClient(api),
    )