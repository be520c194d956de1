"""Monitoring query windows and selection of the latest complete sample."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol, Sequence, TypeVar


class _Timed(Protocol):
    time: datetime


T = TypeVar("T", bound=_Timed)


@dataclass(frozen=True)
class MonitorCondition:
    """Time window of a monitoring query."""

    start: datetime
    end: datetime


@dataclass(frozen=True)
class MonitorCPUTimeValue:
    """CPU time sample."""

    time: datetime
    cpu_time: float = 0.0


@dataclass(frozen=True)
class MonitorInterfaceValue:
    """Network interface sample in bytes per second."""

    time: datetime
    receive: float = 0.0
    send: float = 0.0


def monitor_condition(end: datetime) -> MonitorCondition:
    """The hour up to ``end``, truncated to whole seconds."""
    end = end.replace(microsecond=0)
    return MonitorCondition(start=end - timedelta(hours=1), end=end)


def pick_monitor_value(values: Sequence[T] | None, minimum: int) -> T | None:
    """Second newest sample, when there are more than ``minimum`` samples."""
    if not values or len(values) <= minimum:
        return None
    return sorted(values, key=lambda value: value.time, reverse=True)[1]


def monitor_cpu_time_value(values: Sequence[MonitorCPUTimeValue] | None) -> MonitorCPUTimeValue | None:
    return pick_monitor_value(values, 1)


def monitor_interface_value(values: Sequence[MonitorInterfaceValue] | None) -> MonitorInterfaceValue | None:
    return pick_monitor_value(values, 1)


def monitor_connection_value(values: Sequence[T] | None) -> T | None:
    return pick_monitor_value(values, 2)


def monitor_link_value(values: Sequence[T] | None) -> T | None:
    return pick_monitor_value(values, 2)