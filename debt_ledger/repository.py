"""
Ledger Repository

The only component that talks to the transport collaborator. It ties the
decoder, the cache and the aggregation engine together for the UI.

Flow for a read:
    UI -> repository -> cache (hit? done)
                     -> transport GET -> decoder -> cache.put -> UI

DESIGN DECISION: The repository enforces the boundaries:
- Reads never raise. A failed refresh serves the last cached copy, or an
  empty list, and reports what happened on the diagnostics channel
- Writes always return a definite OperationResult; raw transport
  exceptions never escape this module
- Local validation runs before any write reaches the transport
- At most one refresh per collection is in flight; concurrent callers
  share it, and a caller that stops waiting never cancels it for others

FALLBACK POLICIES (one per operation, switchable in LedgerSettings):
- list_debts_by_contact: server filter endpoint, else filter the full
  debts collection locally
- get_overview: server overview endpoint, else compute with the
  aggregation engine from the debts collection
- mark_as_paid: disabled entirely when the backend does not support it;
  the paid-state lookup uses the debts collection when GET /debts/{id}
  is unavailable

CROSS-INVALIDATION:
Every mutation invalidates its own collection. mark_as_paid also
invalidates payments, because the backend records a payment for it.
"""

import asyncio
import functools
from datetime import timedelta
from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import BaseModel, ValidationError

from debt_ledger import aggregation
from debt_ledger.cache import Clock, Collection, LedgerCache, utc_now
from debt_ledger.config import Settings, get_settings
from debt_ledger.decoding import (
    contact_body,
    created_record_id,
    debt_body,
    decode_contact,
    decode_contacts,
    decode_debt,
    decode_debts,
    decode_overview,
    decode_payment,
    decode_payments,
    mark_paid_body,
    payment_body,
    unwrap_record,
)
from debt_ledger.diagnostics import LedgerDiagnostics
from debt_ledger.models.diagnostics import (
    DecodeWarning,
    DiagnosticEvent,
    DiagnosticEventBuilder,
)
from debt_ledger.models.records import (
    Contact,
    ContactDraft,
    DebtDraft,
    DebtRecord,
    LedgerOverview,
    PaymentDraft,
    PaymentRecord,
)
from debt_ledger.models.results import FailureKind, OperationResult
from debt_ledger.models.validation import ValidationResult
from debt_ledger.services.transport import (
    HttpTransport,
    InvalidResponseError,
    LedgerTransport,
    TokenProvider,
    TransportResponse,
)
from debt_ledger.validation import LedgerValidator


MUTATION_INVALIDATES: dict[str, tuple[Collection, ...]] = {
    "create_contact": (Collection.CONTACTS,),
    "update_contact": (Collection.CONTACTS,),
    "delete_contact": (Collection.CONTACTS,),
    "create_debt": (Collection.DEBTS,),
    "update_debt": (Collection.DEBTS,),
    "delete_debt": (Collection.DEBTS,),
    "mark_as_paid": (Collection.DEBTS, Collection.PAYMENTS),
    "create_payment": (Collection.PAYMENTS,),
}

# Statuses meaning the per-contact filter endpoint does not exist
_FILTER_UNSUPPORTED_STATUSES = {405, 501}

Draft = Union[BaseModel, dict]


def _contact_sort_key(contact: Contact) -> tuple[str, str]:
    return (contact.full_name.lower(), contact.id)


def _write_operation(operation: str):
    """Turn any unexpected exception in a write into an UNKNOWN result."""
    def decorator(method):
        @functools.wraps(method)
        async def wrapper(self: "LedgerRepository", *args, **kwargs) -> OperationResult:
            try:
                return await method(self, *args, **kwargs)
            except Exception as e:
                self._record(DiagnosticEventBuilder.unexpected_error(
                    operation=operation,
                    error_type=type(e).__name__,
                    error_message=str(e),
                ))
                return OperationResult.unknown(f"Unexpected error: {e}")
        return wrapper
    return decorator


class LedgerRepository:
    """
    CRUD and query operations over contacts, debts and payments.

    One instance per app session, built around one injected LedgerCache.
    """

    def __init__(
        self,
        transport: LedgerTransport,
        cache: LedgerCache,
        settings: Optional[Settings] = None,
        diagnostics: Optional[LedgerDiagnostics] = None,
        validator: Optional[LedgerValidator] = None,
        clock: Optional[Clock] = None,
    ):
        self._settings = settings or get_settings()
        self._api = self._settings.api
        self._rules = self._settings.ledger
        self._transport = transport
        self._cache = cache
        self._diagnostics = diagnostics or LedgerDiagnostics(
            self._rules.diagnostics_buffer_size
        )
        self._validator = validator or LedgerValidator(self._rules)
        self._clock = clock or utc_now

        self._inflight: dict[Collection, asyncio.Task] = {}
        self._server_contact_filter = self._rules.use_server_contact_filter

    @property
    def cache(self) -> LedgerCache:
        return self._cache

    @property
    def diagnostics(self) -> LedgerDiagnostics:
        return self._diagnostics

    def _record(self, event: DiagnosticEvent) -> None:
        self._diagnostics.record(event)

    # =========================================================================
    # TRANSPORT BOUNDARY
    # =========================================================================

    async def _send(
        self,
        method: str,
        path: str,
        body: Optional[dict] = None,
    ) -> TransportResponse:
        """
        Call the transport; never raises.

        A raised exception becomes success=False with the exception's
        message. Plain dict answers are accepted and coerced.
        """
        try:
            raw = await self._transport.request(method, path, body)
            return self._coerce_response(raw)
        except Exception as e:
            message = str(e) or type(e).__name__
            return TransportResponse(success=False, message=message)

    @staticmethod
    def _coerce_response(raw: Any) -> TransportResponse:
        if isinstance(raw, TransportResponse):
            return raw
        if not isinstance(raw, dict):
            raise InvalidResponseError(
                f"Invalid response format from transport: {type(raw).__name__}"
            )

        errors = raw.get("errors")
        status = raw.get("status_code", raw.get("statusCode"))
        message = raw.get("message")
        return TransportResponse(
            success=raw.get("success") is True,
            data=raw,
            message=message if isinstance(message, str) else None,
            status_code=status if isinstance(status, int) else None,
            errors=(
                {str(k): str(v) for k, v in errors.items()}
                if isinstance(errors, dict) else {}
            ),
            needs_login=raw.get("needs_login", raw.get("needsLogin")) is True,
        )

    @staticmethod
    def _failure_result(response: TransportResponse) -> OperationResult:
        """Map an unsuccessful answer to the failure taxonomy."""
        message = response.message or "Request failed"
        if response.status_code == 404:
            return OperationResult.not_found(message)
        if response.status_code == 409:
            return OperationResult.conflict(message)
        if response.status_code in (400, 422) and response.errors:
            return OperationResult.validation_failed(response.errors, message)
        return OperationResult.transport_error(message)

    # =========================================================================
    # COLLECTION LOADING (cache-first, one shared fetch per collection)
    # =========================================================================

    def _collection_path(self, collection: Collection) -> str:
        return {
            Collection.CONTACTS: self._api.contacts_path,
            Collection.DEBTS: self._api.debts_path,
            Collection.PAYMENTS: self._api.payments_path,
        }[collection]

    def _decode_collection(
        self,
        collection: Collection,
        data: Any,
        warnings: list[DecodeWarning],
    ) -> list:
        now = self._clock()
        if collection is Collection.CONTACTS:
            return sorted(decode_contacts(data, warnings, now), key=_contact_sort_key)
        if collection is Collection.DEBTS:
            return decode_debts(data, warnings, now, self._rules.default_due_days)
        return decode_payments(data, warnings, now)

    def _decode_single(
        self,
        collection: Collection,
        data: Any,
        warnings: list[DecodeWarning],
    ) -> Any:
        now = self._clock()
        if collection is Collection.CONTACTS:
            return decode_contact(data, warnings, now)
        if collection is Collection.DEBTS:
            return decode_debt(data, warnings, now, self._rules.default_due_days)
        return decode_payment(data, warnings, now)

    async def _load(self, collection: Collection, force_refresh: bool = False) -> list:
        records, _ = await self._load_outcome(collection, force_refresh)
        return records

    async def _load_outcome(
        self,
        collection: Collection,
        force_refresh: bool = False,
    ) -> tuple[list, bool]:
        """
        Records for a collection, plus whether they are current.

        The flag is False when a refresh failed and the records are the
        stale copy (or the empty fallback).
        """
        if not force_refresh:
            cached = self._cache.get(collection)
            if cached is not None:
                self._record(DiagnosticEventBuilder.cache_hit(collection.value, len(cached)))
                return cached, True

        task = self._inflight.get(collection)
        if task is not None and not task.done():
            self._record(DiagnosticEventBuilder.fetch_joined(collection.value))
        else:
            self._record(DiagnosticEventBuilder.cache_miss(collection.value, force_refresh))
            task = asyncio.ensure_future(self._refresh(collection))
            self._inflight[collection] = task
            task.add_done_callback(
                functools.partial(self._forget_fetch, collection)
            )

        # shield: a waiter that gets cancelled must not cancel the shared fetch
        records, current = await asyncio.shield(task)
        return list(records), current

    def _forget_fetch(self, collection: Collection, task: asyncio.Task) -> None:
        if self._inflight.get(collection) is task:
            del self._inflight[collection]

    async def _refresh(self, collection: Collection) -> tuple[list, bool]:
        sequence = self._cache.next_sequence(collection)
        path = self._collection_path(collection)
        self._record(DiagnosticEventBuilder.fetch_started(collection.value, sequence, path))

        try:
            response = await self._send("GET", path)
            if not response.success:
                return self._fallback(collection, response.message or "Request failed")

            warnings: list[DecodeWarning] = []
            records = self._decode_collection(collection, response.data, warnings)
            self._diagnostics.record_decode_warnings(collection.value, warnings)

            if not self._cache.put(collection, records, sequence=sequence):
                self._record(DiagnosticEventBuilder.stale_write_discarded(
                    collection.value,
                    sequence,
                    self._cache.current_sequence(collection),
                ))
                newer = self._cache.get(collection)
                if newer is not None:
                    return newer, True

            self._record(DiagnosticEventBuilder.fetch_completed(
                collection.value, sequence, len(records)
            ))
            return records, True
        except Exception as e:
            self._record(DiagnosticEventBuilder.unexpected_error(
                operation=f"refresh_{collection.value}",
                error_type=type(e).__name__,
                error_message=str(e),
            ))
            return self._fallback(collection, str(e))

    def _fallback(self, collection: Collection, message: str) -> tuple[list, bool]:
        last = self._cache.last_known(collection)
        self._record(DiagnosticEventBuilder.fetch_failed(
            collection.value,
            message,
            served_from_cache=last is not None,
        ))
        return (last if last is not None else []), False

    async def _fetch_single(
        self,
        collection: Collection,
        path: str,
    ) -> tuple[Any, TransportResponse]:
        """
        GET one record by id and merge it into a still-valid slot.

        Returns (record or None, the transport answer).
        """
        response = await self._send("GET", path)
        if not response.success:
            self._record(DiagnosticEventBuilder.fetch_failed(
                collection.value, response.message or "Request failed"
            ))
            return None, response

        payload = unwrap_record(response.data, collection.value)
        if not isinstance(payload, dict) or not payload:
            return None, response

        warnings: list[DecodeWarning] = []
        record = self._decode_single(collection, payload, warnings)
        self._diagnostics.record_decode_warnings(collection.value, warnings)

        sort_key = _contact_sort_key if collection is Collection.CONTACTS else None
        self._cache.upsert_single(collection, record, sort_key=sort_key)
        return record, response

    def _cached_record(self, collection: Collection, record_id: str) -> Any:
        cached = self._cache.get(collection)
        if cached is None:
            return None
        for record in cached:
            if getattr(record, collection.id_field) == record_id:
                self._record(DiagnosticEventBuilder.cache_hit(collection.value, 1))
                return record
        return None

    # =========================================================================
    # WRITE PLUMBING
    # =========================================================================

    def _invalidate(self, collection: Collection) -> None:
        self._cache.invalidate(collection)
        # New readers must not join a fetch that started before the mutation
        self._inflight.pop(collection, None)

    def _invalidate_after(self, operation: str) -> list[str]:
        collections = MUTATION_INVALIDATES[operation]
        for collection in collections:
            self._invalidate(collection)
        return [c.value for c in collections]

    def _coerce_draft(
        self,
        model: type[BaseModel],
        data: Draft,
        operation: str,
    ) -> tuple[Optional[Any], Optional[OperationResult]]:
        """Accept a draft model or a plain dict; a bad dict is VALIDATION_FAILED."""
        if isinstance(data, model):
            return data, None
        try:
            if isinstance(data, BaseModel):
                data = data.model_dump()
            return model.model_validate(data), None
        except ValidationError as e:
            names = {
                (info.alias or name): name
                for name, info in model.model_fields.items()
            }
            fields: dict[str, str] = {}
            for error in e.errors():
                loc = [str(part) for part in error.get("loc", ())]
                if loc:
                    loc[0] = names.get(loc[0], loc[0])
                fields.setdefault(".".join(loc) or "_draft", error.get("msg", "Invalid value"))
            self._record(DiagnosticEventBuilder.validation_failed(operation, fields))
            return None, OperationResult.validation_failed(fields)

    def _rejected(self, operation: str, result: ValidationResult) -> OperationResult:
        fields = result.field_errors
        self._record(DiagnosticEventBuilder.validation_failed(operation, fields))
        return OperationResult.validation_failed(fields)

    async def _mutate(
        self,
        operation: str,
        collection: Collection,
        method: str,
        path: str,
        body: Optional[dict] = None,
        entity_id: Optional[str] = None,
    ) -> OperationResult:
        response = await self._send(method, path, body)

        if not response.success:
            result = self._failure_result(response)
            self._record(DiagnosticEventBuilder.mutation_failed(
                operation=operation,
                collection=collection.value,
                entity_id=entity_id,
                error_message=result.message or "",
                failure_kind=result.failure_kind.value,
            ))
            return result

        invalidated = self._invalidate_after(operation)

        record = None
        record_id = created_record_id(response.data, collection.value, collection.id_field)
        if record_id is not None:
            warnings: list[DecodeWarning] = []
            record = self._decode_single(
                collection, unwrap_record(response.data, collection.value), warnings
            )
            self._diagnostics.record_decode_warnings(collection.value, warnings)

        record_id = record_id or entity_id
        self._record(DiagnosticEventBuilder.mutation_completed(
            operation=operation,
            collection=collection.value,
            entity_id=record_id,
            invalidated=invalidated,
        ))
        return OperationResult.ok(
            record_id=record_id,
            record=record,
            message=response.message,
        )

    # =========================================================================
    # CONTACTS
    # =========================================================================

    async def list_contacts(self, force_refresh: bool = False) -> list[Contact]:
        """All contacts, sorted by name (case-insensitive)."""
        return await self._load(Collection.CONTACTS, force_refresh)

    async def get_contact(self, contact_id: str) -> Optional[Contact]:
        """One contact from the cache, else from the backend; None if unavailable."""
        cached = self._cached_record(Collection.CONTACTS, contact_id)
        if cached is not None:
            return cached
        record, _ = await self._fetch_single(
            Collection.CONTACTS, f"{self._api.contacts_path}/{contact_id}"
        )
        return record

    async def search_contacts(self, query: str) -> list[Contact]:
        """Case-insensitive match on name, phone number or email."""
        contacts = await self.list_contacts()
        needle = query.strip().lower()
        if not needle:
            return contacts
        return [
            c for c in contacts
            if needle in c.full_name.lower()
            or needle in c.phone_number.lower()
            or (c.email and needle in c.email.lower())
        ]

    @_write_operation("create_contact")
    async def create_contact(self, data: Draft) -> OperationResult:
        draft, failure = self._coerce_draft(ContactDraft, data, "create_contact")
        if failure:
            return failure

        validation = self._validator.validate_contact(draft)
        if not validation.is_valid:
            return self._rejected("create_contact", validation)

        return await self._mutate(
            "create_contact",
            Collection.CONTACTS,
            "POST",
            self._api.contact_path,
            contact_body(draft),
        )

    @_write_operation("update_contact")
    async def update_contact(self, contact_id: str, data: Draft) -> OperationResult:
        draft, failure = self._coerce_draft(ContactDraft, data, "update_contact")
        if failure:
            return failure

        validation = self._validator.validate_contact(draft)
        if not validation.is_valid:
            return self._rejected("update_contact", validation)

        return await self._mutate(
            "update_contact",
            Collection.CONTACTS,
            "PUT",
            f"{self._api.contact_path}/{contact_id}",
            contact_body(draft),
            entity_id=contact_id,
        )

    @_write_operation("delete_contact")
    async def delete_contact(self, contact_id: str) -> OperationResult:
        """
        Delete a contact that has no unpaid debts.

        The contact's debts are loaded first. If any is unpaid, the delete
        is refused with CONFLICT (count included) and the transport is not
        called. If the debts cannot be loaded, the delete is refused too.
        """
        debts = await self._contact_debts_or_none(contact_id)
        if debts is None:
            result = OperationResult.transport_error(
                "Could not check the contact's debts; delete not attempted"
            )
            self._record(DiagnosticEventBuilder.mutation_failed(
                operation="delete_contact",
                collection=Collection.CONTACTS.value,
                entity_id=contact_id,
                error_message=result.message,
                failure_kind=result.failure_kind.value,
            ))
            return result

        active = [d for d in debts if not d.is_paid_back]
        if active:
            self._record(DiagnosticEventBuilder.delete_blocked(contact_id, len(active)))
            return OperationResult.conflict(
                f"Contact has {len(active)} unpaid debts",
                active_debt_count=len(active),
            )

        return await self._mutate(
            "delete_contact",
            Collection.CONTACTS,
            "DELETE",
            f"{self._api.contact_path}/{contact_id}",
            entity_id=contact_id,
        )

    # =========================================================================
    # DEBTS
    # =========================================================================

    async def list_debts(self, force_refresh: bool = False) -> list[DebtRecord]:
        return await self._load(Collection.DEBTS, force_refresh)

    async def get_debt(self, record_id: str) -> Optional[DebtRecord]:
        cached = self._cached_record(Collection.DEBTS, record_id)
        if cached is not None:
            return cached
        record, _ = await self._fetch_single(
            Collection.DEBTS, f"{self._api.debts_path}/{record_id}"
        )
        return record

    async def list_debts_by_contact(
        self,
        contact_id: str,
        force_refresh: bool = False,
    ) -> list[DebtRecord]:
        """
        Debts with one contact.

        Prefers the server's per-contact endpoint; otherwise filters the
        full debts collection. Both paths return the same records in the
        same order.
        """
        if self._server_contact_filter:
            records = await self._server_contact_debts(contact_id)
            if records is not None:
                return records

        debts = await self._load(Collection.DEBTS, force_refresh)
        return aggregation.sort_debts(aggregation.debts_for_contact(debts, contact_id))

    async def _server_contact_debts(self, contact_id: str) -> Optional[list[DebtRecord]]:
        response = await self._send(
            "GET", f"{self._api.contact_debts_path}/{contact_id}"
        )
        if not response.success:
            if response.status_code in _FILTER_UNSUPPORTED_STATUSES:
                self._server_contact_filter = False
            self._record(DiagnosticEventBuilder.fallback_used(
                "list_debts_by_contact",
                response.message or "server filter unavailable",
            ))
            return None

        warnings: list[DecodeWarning] = []
        records = self._decode_collection(Collection.DEBTS, response.data, warnings)
        self._diagnostics.record_decode_warnings(Collection.DEBTS.value, warnings)

        # The endpoint may omit contact_id on its records
        normalized = [
            d.model_copy(update={"contact_id": contact_id}) if not d.contact_id else d
            for d in records
        ]
        return aggregation.sort_debts(
            aggregation.debts_for_contact(normalized, contact_id)
        )

    async def _contact_debts_or_none(self, contact_id: str) -> Optional[list[DebtRecord]]:
        """Debts with a contact, or None when they could not be loaded fresh."""
        if self._server_contact_filter:
            records = await self._server_contact_debts(contact_id)
            if records is not None:
                return records

        debts, current = await self._load_outcome(Collection.DEBTS)
        if not current:
            return None
        return aggregation.debts_for_contact(debts, contact_id)

    @_write_operation("create_debt")
    async def create_debt(self, data: Draft) -> OperationResult:
        """
        Record a new debt.

        The contact's name is filled in from the contacts collection when the
        draft leaves it out. A draft without a due date is sent without one.
        """
        draft, failure = self._coerce_draft(DebtDraft, data, "create_debt")
        if failure:
            return failure

        validation = self._validator.validate_debt(draft)
        if not validation.is_valid:
            return self._rejected("create_debt", validation)

        contact_name = draft.contact_name
        if not contact_name:
            contact = await self.get_contact(draft.contact_id)
            contact_name = contact.full_name if contact else None

        return await self._mutate(
            "create_debt",
            Collection.DEBTS,
            "POST",
            self._api.create_debt_path,
            debt_body(draft, contact_name),
        )

    @_write_operation("update_debt")
    async def update_debt(self, record_id: str, data: Draft) -> OperationResult:
        """Update amount, description, direction or due date. Never the paid state."""
        draft, failure = self._coerce_draft(DebtDraft, data, "update_debt")
        if failure:
            return failure

        validation = self._validator.validate_debt(draft)
        if not validation.is_valid:
            return self._rejected("update_debt", validation)

        return await self._mutate(
            "update_debt",
            Collection.DEBTS,
            "PUT",
            f"{self._api.debts_path}/{record_id}",
            debt_body(draft),
            entity_id=record_id,
        )

    @_write_operation("delete_debt")
    async def delete_debt(self, record_id: str) -> OperationResult:
        return await self._mutate(
            "delete_debt",
            Collection.DEBTS,
            "DELETE",
            f"{self._api.debts_path}/{record_id}",
            entity_id=record_id,
        )

    @_write_operation("mark_as_paid")
    async def mark_as_paid(
        self,
        record_id: str,
        payment_description: Optional[str] = None,
    ) -> OperationResult:
        """
        Mark a debt as paid back.

        Idempotent: a debt that is already paid yields success with
        changed=False and no write.
        """
        if not self._rules.mark_paid_supported:
            self._record(DiagnosticEventBuilder.operation_unsupported("mark_as_paid"))
            return OperationResult.unknown("Marking a debt as paid is not supported")

        debt, missing = await self._current_debt(record_id)
        if missing:
            return OperationResult.not_found(f"Debt {record_id} not found")
        if debt is not None and debt.is_paid_back:
            return self._already_paid(debt)

        result = await self._mutate(
            "mark_as_paid",
            Collection.DEBTS,
            "PUT",
            f"{self._api.debts_path}/{record_id}/{self._api.mark_paid_suffix}",
            mark_paid_body(payment_description),
            entity_id=record_id,
        )
        if result.success or result.failure_kind is FailureKind.NOT_FOUND:
            return result

        # The debt may have been paid concurrently
        latest, _ = await self._current_debt(record_id, use_cache=False)
        if latest is not None and latest.is_paid_back:
            self._invalidate_after("mark_as_paid")
            return self._already_paid(latest)
        return result

    async def _current_debt(
        self,
        record_id: str,
        use_cache: bool = True,
    ) -> tuple[Optional[DebtRecord], bool]:
        """
        Latest known state of one debt, plus whether the backend says it
        does not exist.

        Tries the cache, then GET /debts/{id}, then the debts collection.
        """
        if use_cache:
            cached = self._cached_record(Collection.DEBTS, record_id)
            if cached is not None:
                return cached, False

        debt, response = await self._fetch_single(
            Collection.DEBTS, f"{self._api.debts_path}/{record_id}"
        )
        if debt is not None:
            return debt, False
        if response.status_code == 404:
            return None, True

        self._record(DiagnosticEventBuilder.fallback_used(
            "mark_as_paid",
            response.message or "single debt lookup unavailable",
        ))
        debts = await self._load(Collection.DEBTS, force_refresh=not use_cache)
        for candidate in debts:
            if candidate.record_id == record_id:
                return candidate, False
        return None, False

    @staticmethod
    def _already_paid(debt: DebtRecord) -> OperationResult:
        return OperationResult.ok(
            record_id=debt.record_id,
            record=debt,
            changed=False,
            message="Debt is already marked as paid",
        )

    # =========================================================================
    # DERIVED VIEWS
    # =========================================================================

    async def get_overview(self, force_refresh: bool = False) -> LedgerOverview:
        """
        Dashboard totals.

        Prefers the backend's overview endpoint; on failure (or an answer
        with no overview fields) computes the same shape from the debts.
        """
        if self._rules.use_server_overview:
            response = await self._send("GET", self._api.overview_path)
            if response.success:
                warnings: list[DecodeWarning] = []
                summary = decode_overview(response.data, warnings)
                self._diagnostics.record_decode_warnings("overview", warnings)
                if summary is not None:
                    return summary
                reason = "response carried no overview fields"
            else:
                reason = response.message or "overview endpoint unavailable"
            self._record(DiagnosticEventBuilder.fallback_used("get_overview", reason))

        debts = await self._load(Collection.DEBTS, force_refresh)
        return aggregation.overview(debts, self._clock())

    async def net_balance(self, contact_id: str) -> Decimal:
        """Signed balance with one contact; positive means they owe the user."""
        debts = await self._load(Collection.DEBTS)
        return aggregation.net_balance(debts, contact_id)

    async def contact_balances(self) -> dict[str, Decimal]:
        debts = await self._load(Collection.DEBTS)
        return aggregation.balances_by_contact(debts)

    async def my_debts(self) -> list[DebtRecord]:
        return aggregation.my_debts(await self._load(Collection.DEBTS))

    async def their_debts(self) -> list[DebtRecord]:
        return aggregation.their_debts(await self._load(Collection.DEBTS))

    async def overdue_debts(self) -> list[DebtRecord]:
        debts = await self._load(Collection.DEBTS)
        return aggregation.overdue_debts(debts, self._clock())

    # =========================================================================
    # PAYMENTS (append-only)
    # =========================================================================

    async def list_payments(self, force_refresh: bool = False) -> list[PaymentRecord]:
        return await self._load(Collection.PAYMENTS, force_refresh)

    async def get_payment(self, payment_id: str) -> Optional[PaymentRecord]:
        cached = self._cached_record(Collection.PAYMENTS, payment_id)
        if cached is not None:
            return cached
        record, _ = await self._fetch_single(
            Collection.PAYMENTS, f"{self._api.payments_path}/{payment_id}"
        )
        return record

    async def payments_by_contact(self, contact_name: str) -> list[PaymentRecord]:
        name = contact_name.strip().lower()
        return [
            p for p in await self.list_payments()
            if p.contact_name.strip().lower() == name
        ]

    async def my_payments(self) -> list[PaymentRecord]:
        return [p for p in await self.list_payments() if p.was_my_debt]

    async def their_payments(self) -> list[PaymentRecord]:
        return [p for p in await self.list_payments() if not p.was_my_debt]

    async def recent_payments(self, days: Optional[int] = None) -> list[PaymentRecord]:
        payments = await self.list_payments()
        return aggregation.recent_payments(
            payments,
            self._clock(),
            days if days is not None else self._rules.recent_payment_days,
        )

    async def total_paid_by_me(self) -> Decimal:
        return aggregation.total_paid_by_me(await self.list_payments())

    async def total_paid_to_me(self) -> Decimal:
        return aggregation.total_paid_to_me(await self.list_payments())

    @_write_operation("create_payment")
    async def create_payment(self, data: Draft) -> OperationResult:
        draft, failure = self._coerce_draft(PaymentDraft, data, "create_payment")
        if failure:
            return failure

        validation = self._validator.validate_payment(draft)
        if not validation.is_valid:
            return self._rejected("create_payment", validation)

        return await self._mutate(
            "create_payment",
            Collection.PAYMENTS,
            "POST",
            self._api.payments_path,
            payment_body(draft),
        )

    # =========================================================================
    # CONNECTIVITY
    # =========================================================================

    async def check_connection(self) -> bool:
        """True when the backend health endpoint answers successfully."""
        response = await self._send("GET", self._api.health_path)
        return response.success


def create_ledger_components(
    settings: Optional[Settings] = None,
    transport: Optional[LedgerTransport] = None,
    token_provider: Optional[TokenProvider] = None,
    clock: Optional[Clock] = None,
) -> tuple[LedgerRepository, LedgerCache, LedgerDiagnostics]:
    """
    Factory function to create the ledger components for one app session.

    Args:
        settings: Settings to use; loaded from the environment when None
        transport: Transport to use; an HttpTransport when None
        token_provider: Session token source for the default HttpTransport
        clock: Time source shared by the cache and the repository

    Returns:
        (repository, cache, diagnostics)
    """
    settings = settings or get_settings()
    clock = clock or utc_now

    cache = LedgerCache(
        ttl=timedelta(seconds=settings.cache.ttl_seconds),
        clock=clock,
    )
    diagnostics = LedgerDiagnostics(settings.ledger.diagnostics_buffer_size)
    transport = transport or HttpTransport(settings.api, token_provider=token_provider)

    repository = LedgerRepository(
        transport=transport,
        cache=cache,
        settings=settings,
        diagnostics=diagnostics,
        clock=clock,
    )
    return repository, cache, diagnostics
