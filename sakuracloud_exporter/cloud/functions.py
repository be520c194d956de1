"""Helpers shared by the cloud clients."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Sequence

PerZoneQuery = Callable[[str], Iterable[Any]]


def query_to_zones(zones: Sequence[str], query: PerZoneQuery) -> list[Any]:
    """Run ``query`` for every zone concurrently and join the results.

    The first failing zone's exception is raised.
    """
    zones = list(zones)
    if not zones:
        return []
    with ThreadPoolExecutor(max_workers=len(zones)) as pool:
        futures = [pool.submit(query, zone) for zone in zones]
    results: list[Any] = []
    for future in futures:
        results.extend(future.result() or ())
    return results


def _unix_time(value: str) -> datetime:
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


@dataclass(frozen=True)
class FeedItem:
    """A maintenance news item; dates are Unix seconds as strings."""

    url: str = ""
    title: str = ""
    description: str = ""
    str_date: str = ""
    str_event_start: str = ""
    str_event_end: str = ""

    def event_start(self) -> datetime:
        """Start of the announced event."""
        return _unix_time(self.str_event_start)

    def event_end(self) -> datetime:
        """End of the announced event."""
        return _unix_time(self.str_event_end)