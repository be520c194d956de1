"""Metrics about the web accelerator's sites."""

from __future__ import annotations

import logging
from typing import Iterator

from sakuracloud_exporter.cloud.global_clients import WebAccelClient
from sakuracloud_exporter.exposition import CounterVec, Desc, Metric, const_metric

ERROR_LABEL = "webaccel"

_SITE_LABELS = ("id",)
_SITE_INFO_LABELS = ("id", "name", "domain_type", "domain", "subdomain")


class WebAccelCollector:
    """Collects metrics about the web accelerator's sites and their monthly usage."""

    def __init__(self, logger: logging.Logger, errors: CounterVec, client: WebAccelClient) -> None:
        self.logger = logger
        self.errors = errors
        self.client = client
        errors.add(ERROR_LABEL, 0)

        self.site_info = Desc(
            "webaccel_site_info",
            "A metric with a constant '1' value labeled by id, name, domain_type, domain, subdomain",
            _SITE_INFO_LABELS,
        )
        self.access_count = Desc("webaccel_access_count", "", _SITE_LABELS)
        self.bytes_sent = Desc("webaccel_bytes_sent", "", _SITE_LABELS)
        self.cache_miss_bytes_sent = Desc("webaccel_cache_miss_bytes_sent", "", _SITE_LABELS)
        self.cache_hit_ratio = Desc("webaccel_cache_hit_ratio", "", _SITE_LABELS)
        self.bytes_cache_hit_ratio = Desc("webaccel_bytes_cache_hit_ratio", "", _SITE_LABELS)
        self.price = Desc("webaccel_price", "", _SITE_LABELS)
        self.certificate_expire_date = Desc(
            "webaccel_cert_expire",
            "Certificate expiration date in seconds since epoch (1970)",
            _SITE_LABELS,
        )

    def describe(self) -> Iterator[Desc]:
        """Every descriptor this collector may produce."""
        yield self.site_info
        yield self.access_count
        yield self.bytes_sent
        yield self.cache_miss_bytes_sent
        yield self.cache_hit_ratio
        yield self.bytes_cache_hit_ratio
        yield self.price
        yield self.certificate_expire_date

    def collect(self) -> list[Metric]:
        """Site information first, then the monthly usage of every site."""
        metrics: list[Metric] = []
        try:
            sites = self.client.find()
        except Exception as err:
            self._fail("can't get webAccel info", err)
            return metrics

        for site in sites:
            labels = [site.id, site.name, site.domain_type, site.domain, site.subdomain]
            metrics.append(const_metric(self.site_info, 1.0, labels))
            if site.has_certificate:
                metrics.append(const_metric(self.certificate_expire_date, site.cert_valid_not_after, [site.id]))

        try:
            usages = self.client.usage()
        except Exception as err:
            self._fail("can't get webAccel monthly usage", err)
            return metrics

        for usage in usages:
            labels = [str(usage.site_id)]
            metrics.extend(
                [
                    const_metric(self.access_count, usage.access_count, labels),
                    const_metric(self.bytes_sent, usage.bytes_sent, labels),
                    const_metric(self.cache_miss_bytes_sent, usage.cache_miss_bytes_sent, labels),
                    const_metric(self.cache_hit_ratio, usage.cache_hit_ratio, labels),
                    const_metric(self.bytes_cache_hit_ratio, usage.bytes_cache_hit_ratio, labels),
                    const_metric(self.price, usage.price, labels),
                ]
            )
        return metrics

    def _fail(self, message: str, err: BaseException) -> None:
        self.errors.add(ERROR_LABEL, 1)
        self.logger.warning("%s err=%s", message, err)