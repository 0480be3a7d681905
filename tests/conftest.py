"""
Shared fixtures for the debt ledger tests.

No real API calls in tests: the repository runs against FakeBackend, an
in-memory implementation of the transport contract that speaks the
backend's snake_case JSON.
"""

import asyncio
import itertools
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import pytest

from debt_ledger.cache import LedgerCache
from debt_ledger.config import ApiSettings, CacheSettings, LedgerSettings, Settings
from debt_ledger.diagnostics import LedgerDiagnostics
from debt_ledger.repository import LedgerRepository
from debt_ledger.services.transport import LedgerTransport, TransportResponse


START = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def _iso(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


class FakeBackend(LedgerTransport):
    """
    In-memory debt tracker backend.

    - `shape` picks how collections are wrapped: "bare", "data",
      "nested" ({"data": {"debts": [...]}}) or "named" ({"debts": [...]})
    - `fail(method, path, answer)` makes a route answer with a
      TransportResponse or raise an exception
    - `hold(method, path)` parks the next matching request until the
      returned event is set; the answer is computed before parking, so a
      held GET returns the data as it was when the request arrived
    - `calls` records every request
    """

    def __init__(self, clock: FixedClock):
        self.clock = clock
        self.shape = "data"
        self.supports_contact_filter = True
        self.filter_omits_contact_id = False
        self.supports_overview = False
        self.contacts: dict[str, dict] = {}
        self.debts: dict[str, dict] = {}
        self.payments: dict[str, dict] = {}
        self.calls: list[tuple[str, str, Optional[dict]]] = []
        self._failures: dict[str, Union[TransportResponse, Exception]] = {}
        self._holds: dict[str, asyncio.Event] = {}
        self.arrived: dict[str, asyncio.Event] = {}
        self._ids = itertools.count(1)

    # -------------------------------------------------------------------
    # Seeding and control
    # -------------------------------------------------------------------

    def _next_id(self) -> str:
        return str(next(self._ids))

    def add_contact(self, fullname: str, phone_number: str = "+998901234567", **extra) -> str:
        contact_id = extra.pop("id", None) or self._next_id()
        self.contacts[contact_id] = {
            "id": contact_id,
            "fullname": fullname,
            "phone_number": phone_number,
            "created_at": _iso(self.clock()),
            **extra,
        }
        return contact_id

    def add_debt(
        self,
        contact_id: str,
        amount,
        description: str = "lunch",
        is_my_debt: bool = False,
        is_paid_back: bool = False,
        due_date: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
    ) -> str:
        debt_id = self._next_id()
        contact = self.contacts.get(contact_id, {})
        record = {
            "id": debt_id,
            "contact_id": contact_id,
            "contact_name": contact.get("fullname", ""),
            "debt_amount": amount,
            "debt_description": description,
            "created_at": _iso(created_at or self.clock()),
            "is_my_debt": is_my_debt,
            "is_paid_back": is_paid_back,
        }
        if due_date is not None:
            record["due_date"] = _iso(due_date)
        self.debts[debt_id] = record
        return debt_id

    def add_payment(
        self,
        debt_id: str,
        contact_name: str,
        amount,
        was_my_debt: bool = False,
        payment_date: Optional[datetime] = None,
        description: str = "paid",
    ) -> str:
        payment_id = self._next_id()
        self.payments[payment_id] = {
            "id": payment_id,
            "original_debt_id": debt_id,
            "contact_name": contact_name,
            "paid_amount": amount,
            "payment_description": description,
            "payment_date": _iso(payment_date or self.clock()),
            "was_my_debt": was_my_debt,
        }
        return payment_id

    def fail(
        self,
        method: str,
        path: str,
        answer: Union[TransportResponse, Exception, None] = None,
    ) -> None:
        self._failures[f"{method} {path}"] = answer or TransportResponse(
            success=False, message="Server error. Please try again later.", status_code=500
        )

    def recover(self, method: str, path: str) -> None:
        self._failures.pop(f"{method} {path}", None)

    def hold(self, method: str, path: str) -> asyncio.Event:
        key = f"{method} {path}"
        self._holds[key] = asyncio.Event()
        self.arrived[key] = asyncio.Event()
        return self._holds[key]

    def call_count(self, method: str, path: str) -> int:
        return sum(1 for m, p, _ in self.calls if m == method and p == path)

    def calls_to(self, method: str) -> list[str]:
        return [p for m, p, _ in self.calls if m == method]

    # -------------------------------------------------------------------
    # Transport contract
    # -------------------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        body: Optional[dict] = None,
    ) -> TransportResponse:
        key = f"{method} {path}"
        self.calls.append((method, path, body))

        failure = self._failures.get(key)
        if isinstance(failure, Exception):
            answer = None
        elif failure is not None:
            answer = failure
        else:
            answer = self._route(method, path, body)

        gate = self._holds.pop(key, None)
        if gate is not None:
            self.arrived[key].set()
            await gate.wait()

        if isinstance(failure, Exception):
            raise failure
        return answer

    def _wrap(self, plural: str, records: list[dict]):
        records = [dict(r) for r in records]
        if self.shape == "bare":
            return records
        if self.shape == "nested":
            return {"success": True, "data": {plural: records}}
        if self.shape == "named":
            return {"success": True, plural: records}
        return {"success": True, "data": records}

    @staticmethod
    def _ok(data=None, status: int = 200) -> TransportResponse:
        return TransportResponse(success=True, data=data, status_code=status)

    @staticmethod
    def _missing(message: str = "Not found") -> TransportResponse:
        return TransportResponse(success=False, message=message, status_code=404)

    def _route(self, method: str, path: str, body: Optional[dict]) -> TransportResponse:
        parts = [p for p in path.split("/") if p]

        if path == "/health":
            return self._ok({"status": "ok"})

        if parts[0] == "contacts":
            if len(parts) == 1 and method == "GET":
                return self._ok(self._wrap("contacts", list(self.contacts.values())))
            if len(parts) == 2 and method == "GET":
                contact = self.contacts.get(parts[1])
                return self._ok({"data": dict(contact)}) if contact else self._missing()

        if parts[0] == "contact":
            if len(parts) == 1 and method == "POST":
                contact_id = self.add_contact(
                    body["fullname"], body["phone_number"],
                    **({"email": body["email"]} if "email" in body else {}),
                )
                return self._ok({"success": True, "data": dict(self.contacts[contact_id])}, 201)
            contact_id = parts[1]
            if contact_id not in self.contacts:
                return self._missing("Contact not found")
            if method == "PUT":
                self.contacts[contact_id].update(body)
                return self._ok({"success": True, "data": dict(self.contacts[contact_id])})
            if method == "DELETE":
                del self.contacts[contact_id]
                return self._ok({"success": True, "message": "Contact deleted"})

        if parts[0] == "contact-debt" and method == "POST":
            debt_id = self._next_id()
            self.debts[debt_id] = {
                "id": debt_id,
                "contact_id": body["contact_id"],
                "contact_name": body.get("contact_name", ""),
                "debt_amount": body["debt_amount"],
                "debt_description": body["debt_description"],
                "created_at": _iso(self.clock()),
                "is_my_debt": body["is_my_debt"],
                "is_paid_back": False,
            }
            if "due_date" in body:
                self.debts[debt_id]["due_date"] = body["due_date"]
            return self._ok({"success": True, "data": {"debt": dict(self.debts[debt_id])}}, 201)

        if parts[0] == "contact-debts" and method == "GET":
            if not self.supports_contact_filter:
                return TransportResponse(success=False, message="Method Not Allowed", status_code=405)
            records = [dict(d) for d in self.debts.values() if d["contact_id"] == parts[1]]
            if self.filter_omits_contact_id:
                for record in records:
                    record.pop("contact_id")
            return self._ok(self._wrap("debts", records))

        if parts[0] == "debts":
            if len(parts) == 1 and method == "GET":
                return self._ok(self._wrap("debts", list(self.debts.values())))
            debt = self.debts.get(parts[1])
            if debt is None:
                return self._missing("Debt not found")
            if len(parts) == 3 and parts[2] == "mark-paid" and method == "PUT":
                if not debt["is_paid_back"]:
                    debt["is_paid_back"] = True
                    self.add_payment(
                        debt["id"], debt["contact_name"], debt["debt_amount"],
                        was_my_debt=debt["is_my_debt"],
                        description=(body or {}).get("payment_description", "paid"),
                    )
                return self._ok({"success": True, "data": dict(debt)})
            if method == "GET":
                return self._ok({"data": dict(debt)})
            if method == "PUT":
                debt.update(body)
                return self._ok({"success": True, "data": dict(debt)})
            if method == "DELETE":
                del self.debts[parts[1]]
                return self._ok({"success": True})

        if parts[0] == "payments":
            if len(parts) == 2 and method == "GET":
                payment = self.payments.get(parts[1])
                return self._ok({"payment": dict(payment)}) if payment else self._missing()
            if method == "GET":
                return self._ok(self._wrap("payments", list(self.payments.values())))
            if method == "POST":
                payment_id = self.add_payment(
                    body["original_debt_id"], body["contact_name"], body["paid_amount"],
                    was_my_debt=body["was_my_debt"],
                    description=body["payment_description"],
                )
                return self._ok({"success": True, "data": dict(self.payments[payment_id])}, 201)

        if parts[0] == "home" and method == "GET":
            if not self.supports_overview:
                return self._missing()
            unpaid = [d for d in self.debts.values() if not d["is_paid_back"]]
            return self._ok({
                "success": True,
                "data": {
                    "total_i_owe": sum(d["debt_amount"] for d in unpaid if d["is_my_debt"]),
                    "total_they_owe": sum(d["debt_amount"] for d in unpaid if not d["is_my_debt"]),
                    "active_debts_count": len(unpaid),
                    "overdue_debts_count": 0,
                },
            })

        return self._missing(f"No route for {method} {path}")


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        cache_settings=CacheSettings(ttl_seconds=300),
        api_settings=ApiSettings(max_retries=2, retry_backoff_seconds=0),
        ledger_settings=LedgerSettings(),
    )


@pytest.fixture
def backend(clock) -> FakeBackend:
    return FakeBackend(clock)


@pytest.fixture
def cache(clock) -> LedgerCache:
    return LedgerCache(ttl=timedelta(minutes=5), clock=clock)


@pytest.fixture
def diagnostics() -> LedgerDiagnostics:
    return LedgerDiagnostics(buffer_size=500)


@pytest.fixture
def repository(backend, cache, settings, diagnostics, clock) -> LedgerRepository:
    return LedgerRepository(
        transport=backend,
        cache=cache,
        settings=settings,
        diagnostics=diagnostics,
        clock=clock,
    )
