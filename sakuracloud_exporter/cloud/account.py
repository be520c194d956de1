"""Account-scoped clients: authentication status, bills and coupons."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Protocol, Sequence

from sakuracloud_exporter.cloud.cache import Cache

BILL_API_UPDATE_HOUR_JST = 4
BILL_API_UPDATE_MINUTE_JST = 30
JST = timezone(timedelta(hours=9), "JST")
CACHE_CLEANUP_INTERVAL = timedelta(minutes=30)


@dataclass(frozen=True)
class AuthStatus:
    """Who the API key belongs to and what it may use."""

    account_id: int = 0
    permitted_bill: bool = False
    permitted_webaccel: bool = False


class _AccountAPI(Protocol):
    def read_auth_status(self) -> AuthStatus: ...

    def bills_by_contract(self, account_id: int) -> Sequence[Any]: ...

    def find_coupons(self, account_id: int) -> Sequence[Any] | None: ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def next_cache_expires_at(now: datetime | None = None) -> datetime:
    """The next daily refresh of the billing data, at 4:30 JST.

    Today's refresh when ``now`` is earlier than it, tomorrow's otherwise.
    """
    current = (now if now is not None else _utc_now()).astimezone(JST)
    expires_at = current.replace(
        hour=BILL_API_UPDATE_HOUR_JST,
        minute=BILL_API_UPDATE_MINUTE_JST,
        second=0,
        microsecond=0,
    )
    if current >= expires_at:
        expires_at += timedelta(days=1)
    return expires_at


class _AccountScopedClient:
    """Resolves the account ID once and caches results until the next data refresh."""

    _requires_bill_permission = False

    def __init__(self, api: _AccountAPI, clock: Callable[[], datetime] | None = None) -> None:
        self._api = api
        self._clock = clock or _utc_now
        self._cache = Cache(CACHE_CLEANUP_INTERVAL, clock=self._clock)
        self._auth_lock = threading.Lock()
        self._auth_done = False
        self._account_id = 0

    def _resolve_account_id(self) -> int:
        with self._auth_lock:
            if not self._auth_done:
                self._auth_done = True
                auth = self._api.read_auth_status()
                self._account_id = auth.account_id
                if self._requires_bill_permission and not auth.permitted_bill:
                    raise PermissionError("account doesn't have permissions to use the Billing API")
        if not self._account_id:
            raise RuntimeError("getting AccountID is failed. please check your API Key settings")
        return self._account_id

    def _store(self, item: Any) -> None:
        self._cache.set(item, next_cache_expires_at(self._clock()))


class BillClient(_AccountScopedClient):
    """Reads the latest bill of the account."""

    _requires_bill_permission = True

    def read(self) -> Any:
        """The most recent bill, served from the cache until the next refresh."""
        cached = self._cache.get()
        if cached is not None:
            return cached
        account_id = self._resolve_account_id()
        bills = self._api.bills_by_contract(account_id) or ()
        bill = max(bills, key=lambda candidate: candidate.date, default=None)
        self._store(bill)
        return bill


class CouponClient(_AccountScopedClient):
    """Lists the coupons of the account."""

    def find(self) -> list[Any]:
        """All coupons, served from the cache until the next refresh."""
        cached = self._cache.get()
        if cached is not None:
            return cached
        account_id = self._resolve_account_id()
        coupons = self._api.find_coupons(account_id)
        if coupons is not None:
            coupons = list(coupons)
        self._store(coupons)
        return coupons