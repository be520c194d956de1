"""Metrics about the zones of the cloud."""

from __future__ import annotations

import logging
from typing import Iterator

from sakuracloud_exporter.cloud.global_clients import ZoneClient
from sakuracloud_exporter.exposition import CounterVec, Desc, Metric, const_metric

ERROR_LABEL = "zone"

_ZONE_LABELS = ("id", "name", "description", "region_id", "region_name")


class ZoneCollector:
    """Collects an information metric for every zone."""

    def __init__(self, logger: logging.Logger, errors: CounterVec, client: ZoneClient) -> None:
        self.logger = logger
        self.errors = errors
        self.client = client
        errors.add(ERROR_LABEL, 0)

        self.zone_info = Desc(
            "sakuracloud_zone_info",
            "A metric with a constant '1' value labeled by id, name, description, region_id and region_name",
            _ZONE_LABELS,
        )

    def describe(self) -> Iterator[Desc]:
        """Every descriptor this collector may produce."""
        yield self.zone_info

    def collect(self) -> list[Metric]:
        """One constant metric per zone."""
        try:
            zones = self.client.find()
        except Exception as err:
            self.errors.add(ERROR_LABEL, 1)
            self.logger.warning("%s err=%s", "can't get zone info", err)
            return []

        metrics = []
        for zone in zones:
            region_id = region_name = ""
            if zone.region is not None:
                region_id = str(zone.region.id)
                region_name = zone.region.name
            labels = [str(zone.id), zone.name, zone.description, region_id, region_name]
            metrics.append(const_metric(self.zone_info, 1.0, labels))
        return metrics