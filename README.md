# sakuracloud_exporter

An exporter that serves the state of SakuraCloud resources as metrics in the
Prometheus text exposition format over HTTP.

On every scrape the registered collectors ask their resource clients for the
current state and turn the answers into gauges:

- VPC routers: `sakuracloud_vpc_router_up`, `sakuracloud_vpc_router_info`,
  `sakuracloud_vpc_router_cpu_time`, `sakuracloud_vpc_router_session`,
  `sakuracloud_vpc_router_dhcp_lease`, `sakuracloud_vpc_router_l2tp_session`,
  `sakuracloud_vpc_router_pptp_session`, `sakuracloud_vpc_router_s2s_peer_up`,
  `sakuracloud_vpc_router_receive`, `sakuracloud_vpc_router_send`,
  `sakuracloud_vpc_router_session_analysis` and
  `sakuracloud_vpc_router_maintenance_scheduled` / `_info` / `_start` / `_end`
- zones: `sakuracloud_zone_info`
- web acceleration: `webaccel_site_info`, `webaccel_cert_expire`,
  `webaccel_access_count`, `webaccel_bytes_sent`,
  `webaccel_cache_miss_bytes_sent`, `webaccel_cache_hit_ratio`,
  `webaccel_bytes_cache_hit_ratio`, `webaccel_price`
- `sakuracloud_exporter_errors_total`, a counter of failed calls labelled by
  collector (`vpc_router`, `zone`, `webaccel`; a failed VPC router CPU query is
  counted under `server`)

## What it does not do

The exporter does not talk to the live SakuraCloud API. The
`sakuracloud_exporter` command reads every resource from a JSON data store
file named by `--fake-mode` (or `FAKE_MODE`); without one it prints a message
and exits with status 1. The token and secret are checked for presence only.

Only the VPC router, zone and web acceleration collectors exist. The other
`--no-collector.*` flags are accepted and validated, but there are no
collectors for auto backups, bills, coupons, databases, ESME, switch+routers,
load balancers, local routers, mobile gateways, NFS, enhanced load balancers,
servers or SIMs. Their resource clients exist in `sakuracloud_exporter.cloud`
for use from code with an API object of your own.

No process or runtime metrics are exported.

## Running

```
pip install .
sakuracloud_exporter --token token --secret secret --fake-mode ./store.json
```

or through the environment:

```
SAKURACLOUD_ACCESS_TOKEN=token SAKURACLOUD_ACCESS_TOKEN_SECRET=secret FAKE_MODE=./store.json sakuracloud_exporter
```

If `--fake-mode` names a directory, the file `fake-store.json` inside it is
read.

At start-up the store's `auth_status` entry is read. If it is missing the
command stops with `RuntimeError("unauthorized: invalid API key is applied")`.
If `permitted_webaccel` is false (and the web acceleration collector is on) a
warning is logged.

By default it listens on `:9542` and serves metrics at `/metrics`; every other
path returns a small HTML page linking to the metrics path. If the server
cannot listen, the error is logged and the exit status is 2.

## Options

| Option                    | Environment variable              | Meaning                                   | Default    |
|---------------------------|-----------------------------------|-------------------------------------------|------------|
| `--token`                 | `SAKURACLOUD_ACCESS_TOKEN`        | API token (required)                      |            |
| `--secret`                | `SAKURACLOUD_ACCESS_TOKEN_SECRET` | API secret (required)                     |            |
| `--fake-mode`             | `FAKE_MODE`                       | Path of the JSON data store               |            |
| `--webaddr`               | `WEB_ADDR`                        | `host:port` to listen on                  | `:9542`    |
| `--webpath`               | `WEB_PATH`                        | Path the metrics are served at            | `/metrics` |
| `--ratelimit`             | `SAKURACLOUD_RATE_LIMIT`          | Rate limit, 1 to 10                       | `5`        |
| `--debug`                 | `DEBUG`                           | Log at debug level                        | off        |
| `--trace`                 | `TRACE`                           | Trace flag, kept in the configuration     | off        |

A rate limit of zero or below falls back to 5; one above 10 is an error.
Boolean environment variables accept `1`, `t`, `true` and `0`, `f`, `false`
(in the usual capitalisations). Configuration errors are printed and the exit
status is 1.

Collectors are switched off with:

```
--no-collector.vpc-router
--no-collector.zone
--no-collector.webaccel
```

`--no-collector.server.except-maintenance` cannot be combined with
`--no-collector.server`.

## The data store

A JSON object; every key is optional except `auth_status`.

```json
{
  "auth_status": {"account_id": 1, "permitted_bill": false, "permitted_webaccel": true},
  "zones": [
    {"id": 1, "name": "is1a", "description": "desc", "region": {"id": 2, "name": "region"}}
  ],
  "webaccel_sites": [
    {"id": "100", "name": "site", "domain_type": "subdomain", "domain": "",
     "subdomain": "site.example.com", "has_certificate": true, "cert_valid_not_after": 1700000000}
  ],
  "webaccel_usage": [
    {"site_id": 100, "access_count": 10, "bytes_sent": 2048, "cache_miss_bytes_sent": 512,
     "cache_hit_ratio": 0.5, "bytes_cache_hit_ratio": 0.75, "price": 3}
  ],
  "vpc_routers": {
    "is1a": [
      {"id": 101, "name": "router", "description": "desc", "tags": ["tag1"],
       "plan_id": 2, "instance_status": "up", "availability": "available",
       "instance_host_info_url": "",
       "interfaces": [{"index": 0, "id": 200}],
       "settings": {"vrid": 1, "internet_connection_enabled": true,
                    "interfaces": [{"index": 0, "virtual_ip_address": "192.168.0.1",
                                    "ip_address": ["192.168.0.11", "192.168.0.12"],
                                    "network_mask_len": 24}]}}
    ]
  },
  "vpc_router_status": {
    "101": {"session_count": 100,
            "site_to_site_ipsec_vpn_peers": [{"peer": "172.16.3.1", "status": "UP"}],
            "session_analysis": {"source_address": [{"name": "localhost", "count": 4}]}}
  },
  "vpc_router_nic_monitor": {"101/0": [{"time": 1700000000, "receive": 100, "send": 200}]},
  "vpc_router_cpu_monitor": {"101": [{"time": 1700000000, "cpu_time": 0.5}]},
  "maintenance": {}
}
```

VPC routers are listed per zone for the zones `is1a`, `is1b`, `tk1a`, `tk1b`
and `tk1v`. Plan ids 1, 2 and 3 are reported as `standard`, `premium` and
`highspec`. Monitoring samples are Unix seconds; only samples within the hour
before the scrape are used, and the second newest of them is reported, so at
least two recent samples are needed. `maintenance` maps an
`instance_host_info_url` to an item with `url`, `title`, `description`,
`str_date`, `str_event_start` and `str_event_end` (Unix seconds as strings).

## Using it from code

```python
import logging

from sakuracloud_exporter.app import build_registry, make_handler
from sakuracloud_exporter.cloud.client import new_sakura_cloud_client
from sakuracloud_exporter.config import parse_config

config = parse_config(["--token", "token", "--secret", "secret"], environ={})
client = new_sakura_cloud_client(config, "0.18.6", api)  # api: your own API object
registry = build_registry(config, client, logging.getLogger("exporter"))
print(registry.render())
app = make_handler(registry, config.web_path)  # a WSGI application
```

`sakuracloud_exporter.exposition` provides `Desc`, `Metric`, `const_metric`,
`CounterVec` and `Registry`. `BillClient` and `CouponClient` in
`sakuracloud_exporter.cloud.account` keep their last answer until the next
04:30 Japan time, when the billing data is refreshed.