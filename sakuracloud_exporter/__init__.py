"""Exporter serving SakuraCloud VPC router, zone and web acceleration metrics."""

__version__ = "0.18.6"