"""
Resilient Record Decoder

Turns one backend JSON object into exactly one canonical record, whatever
shape the backend revision happened to use.

GUARANTEES:
- Never raises on missing, renamed or malformed fields
- A field that is present but unparseable becomes a safe default and adds
  a DecodeWarning to the caller's `warnings` list
- Missing booleans are False ("fail closed": a debt is never treated as
  paid, or as mine, on partial data)
- Missing creation dates become "now"; a missing due date becomes
  created date + the default due period
- One malformed record in a collection never blocks the other records
- Pure: the same input (and the same `now`) always gives the same output

Field spellings live in `debt_ledger.decoding.aliases`.
"""

import hashlib
import json
import math
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional, TypeVar

from debt_ledger.decoding.aliases import (
    CONTACT_ALIASES,
    DEBT_ALIASES,
    OVERVIEW_ALIASES,
    OVERVIEW_ENVELOPES,
    PAYMENT_ALIASES,
    RECORD_ENVELOPES,
)
from debt_ledger.models.diagnostics import DecodeWarning
from debt_ledger.models.records import (
    Contact,
    DebtRecord,
    LedgerOverview,
    PaymentRecord,
)


DEFAULT_DUE_DAYS = 30

_MAX_RAW_LENGTH = 80

_TRUE_STRINGS = {"true", "1", "yes", "y", "t"}
_FALSE_STRINGS = {"false", "0", "no", "n", "f", ""}

T = TypeVar("T")


# =============================================================================
# FIELD RESOLUTION
# =============================================================================

def _resolve(payload: dict, aliases: tuple[str, ...]) -> tuple[Optional[str], Any]:
    """Return (key, value) for the first alias present with a non-null value."""
    for key in aliases:
        value = payload.get(key)
        if value is not None:
            return key, value
    return None, None


def _raw(value: Any) -> str:
    text = repr(value) if not isinstance(value, str) else value
    if len(text) > _MAX_RAW_LENGTH:
        return text[:_MAX_RAW_LENGTH] + "..."
    return text


def _warn(
    warnings: Optional[list[DecodeWarning]],
    entity: str,
    field: str,
    key: Optional[str],
    value: Any,
    message: str,
) -> None:
    if warnings is None:
        return
    warnings.append(DecodeWarning(
        entity=entity,
        field=field,
        source_key=key,
        raw_value=_raw(value) if value is not None else None,
        message=message,
    ))


class _FieldReader:
    """Reads canonical fields from one backend object, collecting warnings."""

    def __init__(
        self,
        payload: dict,
        aliases: dict[str, tuple[str, ...]],
        entity: str,
        warnings: Optional[list[DecodeWarning]],
    ):
        self._payload = payload
        self._aliases = aliases
        self._entity = entity
        self._warnings = warnings

    def _lookup(self, field: str) -> tuple[Optional[str], Any]:
        return _resolve(self._payload, self._aliases[field])

    def _warn(self, field: str, key: Optional[str], value: Any, message: str) -> None:
        _warn(self._warnings, self._entity, field, key, value, message)

    def present(self, field: str) -> bool:
        return self._lookup(field)[0] is not None

    def text(self, field: str, default: str = "") -> str:
        key, value = self._lookup(field)
        if value is None:
            return default
        if isinstance(value, str):
            return value
        if isinstance(value, bool):
            self._warn(field, key, value, "expected text, got a boolean")
            return default
        if isinstance(value, (int, float, Decimal)):
            # Numeric ids are common
            return str(value)
        self._warn(field, key, value, f"expected text, got {type(value).__name__}")
        return default

    def optional_text(self, field: str) -> Optional[str]:
        value = self.text(field, default="")
        return value or None

    def decimal(self, field: str) -> Decimal:
        key, value = self._lookup(field)
        if value is None:
            return Decimal("0")
        if isinstance(value, bool):
            self._warn(field, key, value, "expected a number, got a boolean")
            return Decimal("0")

        if isinstance(value, Decimal):
            number = value
        elif isinstance(value, int):
            number = Decimal(value)
        elif isinstance(value, float):
            if not math.isfinite(value):
                self._warn(field, key, value, "number is not finite")
                return Decimal("0")
            number = Decimal(str(value))
        elif isinstance(value, str):
            try:
                number = Decimal(value.strip().replace(",", ""))
            except InvalidOperation:
                self._warn(field, key, value, "could not parse number")
                return Decimal("0")
        else:
            self._warn(field, key, value, f"expected a number, got {type(value).__name__}")
            return Decimal("0")

        if not number.is_finite():
            self._warn(field, key, value, "number is not finite")
            return Decimal("0")
        if number < 0:
            self._warn(field, key, value, "negative amount")
            return Decimal("0")
        return number

    def count(self, field: str) -> int:
        key, value = self._lookup(field)
        if value is None:
            return 0
        number = self.decimal(field)
        if number != number.to_integral_value():
            self._warn(field, key, value, "expected a whole number")
            return 0
        return int(number)

    def boolean(self, field: str) -> bool:
        key, value = self._lookup(field)
        if value is None:
            return False
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        self._warn(field, key, value, "could not parse boolean")
        return False

    def instant(self, field: str) -> Optional[datetime]:
        key, value = self._lookup(field)
        if value is None:
            return None
        parsed = parse_instant(value)
        if parsed is None:
            self._warn(field, key, value, "could not parse ISO-8601 date")
        return parsed


def parse_instant(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 date or datetime into an aware UTC datetime.

    Date-only values mean midnight UTC. Naive datetimes are taken as UTC.
    Returns None when the value cannot be parsed.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            try:
                day = date.fromisoformat(text)
            except ValueError:
                return None
            parsed = datetime(day.year, day.month, day.day)
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _fallback_id(entity: str, payload: dict) -> str:
    """Deterministic id for records the backend sent without one."""
    body = json.dumps(payload, sort_keys=True, default=str)
    digest = hashlib.sha1(body.encode("utf-8")).hexdigest()
    return f"local-{entity}-{digest[:12]}"


def _as_object(
    payload: Any,
    entity: str,
    warnings: Optional[list[DecodeWarning]],
) -> dict:
    if isinstance(payload, dict):
        return payload
    _warn(warnings, entity, "_record", None, payload, "expected a JSON object")
    return {}


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


# =============================================================================
# SINGLE RECORDS
# =============================================================================

def decode_contact(
    payload: Any,
    warnings: Optional[list[DecodeWarning]] = None,
    now: Optional[datetime] = None,
) -> Contact:
    """Decode one contact object."""
    obj = _as_object(payload, "contact", warnings)
    reader = _FieldReader(obj, CONTACT_ALIASES, "contact", warnings)

    contact_id = reader.text("id")
    if not contact_id and obj:
        contact_id = _fallback_id("contact", obj)

    return Contact(
        id=contact_id,
        full_name=reader.text("full_name"),
        phone_number=reader.text("phone_number"),
        email=reader.optional_text("email"),
        created_date=reader.instant("created_date") or _now(now),
    )


def decode_debt(
    payload: Any,
    warnings: Optional[list[DecodeWarning]] = None,
    now: Optional[datetime] = None,
    default_due_days: int = DEFAULT_DUE_DAYS,
) -> DebtRecord:
    """
    Decode one debt object.

    A debt without a due date is due `default_due_days` after creation.
    """
    obj = _as_object(payload, "debt", warnings)
    reader = _FieldReader(obj, DEBT_ALIASES, "debt", warnings)

    record_id = reader.text("record_id")
    if not record_id and obj:
        record_id = _fallback_id("debt", obj)

    created = reader.instant("created_date") or _now(now)
    due = reader.instant("due_date") or created + timedelta(days=default_due_days)

    return DebtRecord(
        record_id=record_id,
        contact_id=reader.text("contact_id"),
        contact_name=reader.text("contact_name"),
        amount=reader.decimal("amount"),
        description=reader.text("description"),
        created_date=created,
        due_date=due,
        is_my_debt=reader.boolean("is_my_debt"),
        is_paid_back=reader.boolean("is_paid_back"),
    )


def decode_payment(
    payload: Any,
    warnings: Optional[list[DecodeWarning]] = None,
    now: Optional[datetime] = None,
) -> PaymentRecord:
    """Decode one payment object."""
    obj = _as_object(payload, "payment", warnings)
    reader = _FieldReader(obj, PAYMENT_ALIASES, "payment", warnings)

    payment_id = reader.text("payment_id")
    if not payment_id and obj:
        payment_id = _fallback_id("payment", obj)

    return PaymentRecord(
        payment_id=payment_id,
        original_debt_id=reader.text("original_debt_id"),
        contact_name=reader.text("contact_name"),
        paid_amount=reader.decimal("paid_amount"),
        payment_description=reader.text("payment_description"),
        payment_date=reader.instant("payment_date") or _now(now),
        was_my_debt=reader.boolean("was_my_debt"),
    )


def decode_overview(
    payload: Any,
    warnings: Optional[list[DecodeWarning]] = None,
) -> Optional[LedgerOverview]:
    """
    Decode a pre-aggregated overview response.

    Returns None when no known overview field is found anywhere in the
    payload, so the caller can fall back to computing totals itself.
    """
    for candidate in _overview_candidates(payload):
        reader = _FieldReader(candidate, OVERVIEW_ALIASES, "overview", warnings)
        if not any(reader.present(field) for field in OVERVIEW_ALIASES):
            continue
        return LedgerOverview(
            total_i_owe=reader.decimal("total_i_owe"),
            total_they_owe=reader.decimal("total_they_owe"),
            active_count=reader.count("active_count"),
            overdue_count=reader.count("overdue_count"),
        )
    return None


def _overview_candidates(payload: Any) -> list[dict]:
    candidates = []
    if not isinstance(payload, dict):
        return candidates
    levels = [payload]
    if isinstance(payload.get("data"), dict):
        levels.append(payload["data"])
    for level in levels:
        candidates.append(level)
        for envelope in OVERVIEW_ENVELOPES:
            if isinstance(level.get(envelope), dict):
                candidates.append(level[envelope])
    return candidates


# =============================================================================
# ENVELOPES AND COLLECTIONS
# =============================================================================

def unwrap_collection(payload: Any, plural: str) -> list:
    """
    Find the record list inside a collection response.

    Shapes tried, in order:
    1. bare array                      [...]
    2. data array                      {"data": [...]}
    3. named list under data           {"data": {"<plural>": [...]}}
    4. named list at the top level     {"<plural>": [...]}

    Returns [] when none match. Never raises.
    """
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []

    data = payload.get("data")
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get(plural), list):
        return data[plural]
    if isinstance(payload.get(plural), list):
        return payload[plural]
    return []


def unwrap_record(payload: Any, plural: str) -> Any:
    """
    Find the record object inside a single-record response.

    Handles {"data": {"<singular>": {...}}}, {"data": {...}},
    {"<singular>": {...}} and the bare object.
    """
    if not isinstance(payload, dict):
        return payload
    singular = RECORD_ENVELOPES.get(plural, plural)

    data = payload.get("data")
    if isinstance(data, dict):
        if isinstance(data.get(singular), dict):
            return data[singular]
        return data
    if isinstance(payload.get(singular), dict):
        return payload[singular]
    return payload


def _decode_many(
    payload: Any,
    plural: str,
    entity: str,
    decode_one: Callable[[dict], T],
    warnings: Optional[list[DecodeWarning]],
) -> list[T]:
    records = []
    for index, item in enumerate(unwrap_collection(payload, plural)):
        if not isinstance(item, dict):
            _warn(warnings, entity, f"_record[{index}]", None, item,
                  "skipped collection entry that is not a JSON object")
            continue
        try:
            records.append(decode_one(item))
        except Exception as e:
            _warn(warnings, entity, f"_record[{index}]", None, item,
                  f"skipped record: {e}")
    return records


def decode_contacts(
    payload: Any,
    warnings: Optional[list[DecodeWarning]] = None,
    now: Optional[datetime] = None,
) -> list[Contact]:
    """Decode a contacts collection response."""
    now = _now(now)
    return _decode_many(
        payload, "contacts", "contact",
        lambda item: decode_contact(item, warnings, now),
        warnings,
    )


def decode_debts(
    payload: Any,
    warnings: Optional[list[DecodeWarning]] = None,
    now: Optional[datetime] = None,
    default_due_days: int = DEFAULT_DUE_DAYS,
) -> list[DebtRecord]:
    """Decode a debts collection response."""
    now = _now(now)
    return _decode_many(
        payload, "debts", "debt",
        lambda item: decode_debt(item, warnings, now, default_due_days),
        warnings,
    )


def decode_payments(
    payload: Any,
    warnings: Optional[list[DecodeWarning]] = None,
    now: Optional[datetime] = None,
) -> list[PaymentRecord]:
    """Decode a payments collection response."""
    now = _now(now)
    return _decode_many(
        payload, "payments", "payment",
        lambda item: decode_payment(item, warnings, now),
        warnings,
    )


def created_record_id(payload: Any, plural: str, id_field: str) -> Optional[str]:
    """
    Pull the server-assigned id out of a create response.

    Returns None when the response carries no recognizable id.
    """
    aliases = {
        "contacts": CONTACT_ALIASES,
        "debts": DEBT_ALIASES,
        "payments": PAYMENT_ALIASES,
    }[plural][id_field]
    record = unwrap_record(payload, plural)
    if not isinstance(record, dict):
        return None
    _, value = _resolve(record, aliases)
    if value is None or isinstance(value, (bool, dict, list)):
        return None
    return str(value)
