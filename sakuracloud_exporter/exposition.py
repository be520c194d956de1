"""Metric descriptors, constant metrics, counters and the text exposition format."""

from __future__ import annotations

import math
import re
import threading
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, Iterator, Protocol, Sequence

CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

_METRIC_NAME = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
_LABEL_NAME = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


class MetricType(str, Enum):
    """Kind of a metric family as written in the TYPE line."""

    GAUGE = "gauge"
    COUNTER = "counter"


@dataclass(frozen=True)
class Desc:
    """Descriptor of a metric: its name, help text and label names."""

    name: str
    help: str
    label_names: tuple[str, ...] = ()
    kind: MetricType = MetricType.GAUGE

    def __post_init__(self) -> None:
        object.__setattr__(self, "label_names", tuple(self.label_names))
        if not _METRIC_NAME.match(self.name):
            raise ValueError(f"{self.name!r} is not a valid metric name")
        seen: set[str] = set()
        for label in self.label_names:
            if not _LABEL_NAME.match(label) or label.startswith("__"):
                raise ValueError(f"{label!r} is not a valid label name for metric {self.name!r}")
            if label in seen:
                raise ValueError(f"duplicate label name {label!r} for metric {self.name!r}")
            seen.add(label)


@dataclass(frozen=True)
class Metric:
    """A single sample: a descriptor, a value, label values and an optional timestamp."""

    desc: Desc
    value: float
    label_values: tuple[str, ...] = ()
    timestamp: datetime | None = None

    @property
    def labels(self) -> dict[str, str]:
        """Label names mapped to their values."""
        return dict(zip(self.desc.label_names, self.label_values))


def const_metric(
    desc: Desc,
    value: float,
    labels: Sequence[str] = (),
    timestamp: datetime | None = None,
) -> Metric:
    """Build a metric whose label values must match the descriptor's label names."""
    values = tuple(labels)
    if len(values) != len(desc.label_names):
        raise ValueError(
            f"inconsistent label cardinality: expected {len(desc.label_names)} "
            f"label values but got {len(values)} in {values!r}"
        )
    for label_value in values:
        if not isinstance(label_value, str):
            raise TypeError(f"label value {label_value!r} is not a string")
    return Metric(desc, float(value), values, timestamp)


class Collector(Protocol):
    """Anything that can describe and collect metrics."""

    def describe(self) -> Iterable[Desc]: ...

    def collect(self) -> Iterable[Metric]: ...


class CounterVec:
    """A family of monotonically increasing counters keyed by one label."""

    def __init__(self, name: str, help_text: str, label_name: str) -> None:
        self.desc = Desc(name, help_text, (label_name,), MetricType.COUNTER)
        self._values: dict[str, float] = {}
        self._lock = threading.Lock()

    def add(self, label: str, value: float = 1.0) -> None:
        """Increase the counter for ``label`` by ``value``."""
        if value < 0:
            raise ValueError("counter cannot decrease in value")
        with self._lock:
            self._values[label] = self._values.get(label, 0.0) + float(value)

    def value(self, label: str) -> float:
        """Current value of the counter for ``label``."""
        with self._lock:
            return self._values.get(label, 0.0)

    def describe(self) -> Iterator[Desc]:
        yield self.desc

    def collect(self) -> Iterator[Metric]:
        with self._lock:
            items = sorted(self._values.items())
        for label, value in items:
            yield const_metric(self.desc, value, (label,))


class Registry:
    """Holds collectors and renders what they collect."""

    def __init__(self) -> None:
        self._collectors: list[Collector] = []
        self._names: set[str] = set()
        self._lock = threading.Lock()

    def register(self, collector: Collector) -> None:
        """Add a collector; its descriptor names must not be registered already."""
        names = {desc.name for desc in collector.describe()}
        with self._lock:
            if any(existing is collector for existing in self._collectors):
                raise ValueError("duplicate metrics collector registration attempted")
            clash = sorted(names & self._names)
            if clash:
                raise ValueError(f"descriptor {clash[0]!r} already registered")
            self._collectors.append(collector)
            self._names.update(names)

    def collect(self) -> Iterator[Metric]:
        """Yield every metric of every registered collector."""
        with self._lock:
            collectors = list(self._collectors)
        for collector in collectors:
            yield from collector.collect()

    def render(self) -> str:
        """Render all collected metrics in the text exposition format."""
        families: dict[str, list[Metric]] = defaultdict(list)
        for metric in self.collect():
            families[metric.desc.name].append(metric)

        lines: list[str] = []
        for name in sorted(families):
            metrics = families[name]
            desc = metrics[0].desc
            lines.append(f"# HELP {name} {_escape_help(desc.help)}")
            lines.append(f"# TYPE {name} {desc.kind.value}")
            lines.extend(_sample_line(metric) for metric in sorted(metrics, key=_sort_key))
        return "".join(line + "\n" for line in lines)


def _pairs(metric: Metric) -> list[tuple[str, str]]:
    return sorted(zip(metric.desc.label_names, metric.label_values))


def _sort_key(metric: Metric) -> tuple:
    values = tuple(value for _, value in _pairs(metric))
    stamp = metric.timestamp.timestamp() if metric.timestamp is not None else 0.0
    return values, metric.timestamp is not None, stamp


def _escape_help(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def _escape_label(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _sample_line(metric: Metric) -> str:
    line = metric.desc.name
    pairs = _pairs(metric)
    if pairs:
        line += "{" + ",".join(f'{name}="{_escape_label(value)}"' for name, value in pairs) + "}"
    line += " " + _format_value(metric.value)
    if metric.timestamp is not None:
        line += f" {round(metric.timestamp.timestamp() * 1000)}"
    return line


def _format_value(value: float) -> str:
    """Shortest round-trip form, switching to exponent notation like the reference format."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "0"
    sign, digit_tuple, exponent = Decimal(repr(value)).as_tuple()
    digits = "".join(map(str, digit_tuple)).rstrip("0")
    exponent += len(digit_tuple) - len(digits)
    point = len(digits) + exponent
    power = point - 1
    prefix = "-" if sign else ""
    if power < -4 or power >= 6:
        mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
        return f"{prefix}{mantissa}e{'+' if power >= 0 else '-'}{abs(power):02d}"
    if point <= 0:
        return f"{prefix}0.{'0' * -point}{digits}"
    if point >= len(digits):
        return prefix + digits + "0" * (point - len(digits))
    return f"{prefix}{digits[:point]}.{digits[point:]}"