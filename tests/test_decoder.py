"""
Tests for the resilient record decoder.
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from debt_ledger.decoding import (
    created_record_id,
    decode_contact,
    decode_contacts,
    decode_debt,
    decode_debts,
    decode_overview,
    decode_payment,
    decode_payments,
    parse_instant,
    unwrap_collection,
    unwrap_record,
)
from debt_ledger.decoding.payloads import contact_body, debt_body, mark_paid_body, payment_body
from debt_ledger.models import ContactDraft, DebtDraft, PaymentDraft


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestContactDecoding:
    """Alias resolution for contacts."""

    def test_camel_case_contact(self):
        """The camelCase revision decodes."""
        contact = decode_contact({
            "id": 5,
            "fullName": "Ana Li",
            "phoneNumber": "+998901234567",
            "email": "ana@example.com",
        }, now=NOW)
        assert contact.id == "5"
        assert contact.full_name == "Ana Li"
        assert contact.phone_number == "+998901234567"
        assert contact.email == "ana@example.com"

    def test_run_together_lowercase_contact(self):
        """The `fullname`/`phone_number` revision decodes to the same record."""
        contact = decode_contact({
            "user_id": "5",
            "fullname": "Ana Li",
            "phone_number": "+998901234567",
        }, now=NOW)
        assert contact.id == "5"
        assert contact.full_name == "Ana Li"

    def test_id_wins_over_user_id(self):
        """Aliases are tried in order; the first present one wins."""
        contact = decode_contact({"id": "a", "userId": "b"}, now=NOW)
        assert contact.id == "a"

    def test_null_alias_falls_through(self):
        """A null value does not count as present."""
        contact = decode_contact({"id": None, "userId": "b", "fullName": None, "name": "Bo"}, now=NOW)
        assert contact.id == "b"
        assert contact.full_name == "Bo"

    def test_missing_created_date_is_now(self):
        """Creation-type dates default to now."""
        assert decode_contact({"id": "1"}, now=NOW).created_date == NOW

    def test_missing_id_gets_deterministic_fallback(self):
        """Records without an id get a stable local id."""
        payload = {"fullName": "Ana Li", "phoneNumber": "+998901234567"}
        first = decode_contact(payload, now=NOW)
        second = decode_contact(dict(payload), now=NOW)
        assert first.id.startswith("local-contact-")
        assert first.id == second.id

    def test_empty_object_does_not_raise(self):
        """An empty object yields a defaulted record."""
        contact = decode_contact({}, now=NOW)
        assert contact.id == ""
        assert contact.full_name == ""

    def test_non_object_payload_warns(self):
        """A payload that is not an object decodes to defaults with a warning."""
        warnings = []
        contact = decode_contact(["not", "an", "object"], warnings, now=NOW)
        assert contact.full_name == ""
        assert warnings[0].field == "_record"


class TestDebtDecoding:
    """Field resolution, numeric parsing and date derivation for debts."""

    def test_backend_snake_case_debt(self):
        """The backend's write spelling decodes."""
        debt = decode_debt({
            "id": 9,
            "contact_id": 5,
            "contact_name": "Ana Li",
            "debt_amount": 50,
            "debt_description": "lunch",
            "created_at": "2026-02-01T10:00:00Z",
            "due_date": "2026-02-15",
            "is_my_debt": True,
            "is_paid_back": False,
        }, now=NOW)
        assert debt.record_id == "9"
        assert debt.contact_id == "5"
        assert debt.amount == Decimal("50")
        assert debt.description == "lunch"
        assert debt.created_date == datetime(2026, 2, 1, 10, 0, tzinfo=timezone.utc)
        assert debt.due_date == datetime(2026, 2, 15, tzinfo=timezone.utc)
        assert debt.is_my_debt is True

    def test_amount_before_debt_amount(self):
        """`amount` wins over `debt_amount`, which wins over `paidAmount`."""
        assert decode_debt({"amount": 1, "debt_amount": 2}, now=NOW).amount == Decimal("1")
        assert decode_debt({"debt_amount": 2, "paidAmount": 3}, now=NOW).amount == Decimal("2")
        assert decode_debt({"paidAmount": 3}, now=NOW).amount == Decimal("3")

    def test_numeric_string_amount(self):
        """Numeric strings parse exactly."""
        assert decode_debt({"amount": " 12.50 "}, now=NOW).amount == Decimal("12.50")

    def test_float_amount_is_exact(self):
        """Floats go through their string form, so 0.1 stays 0.1."""
        assert decode_debt({"amount": 0.1}, now=NOW).amount == Decimal("0.1")

    @pytest.mark.parametrize("raw", ["abc", "NaN", "Infinity", True, {"v": 1}, -5])
    def test_unparseable_amount_is_zero_with_warning(self, raw):
        """Bad amounts become 0 and add a decode warning."""
        warnings = []
        debt = decode_debt({"id": "1", "amount": raw}, warnings, now=NOW)
        assert debt.amount == Decimal("0")
        assert len(warnings) == 1
        assert warnings[0].field == "amount"
        assert warnings[0].source_key == "amount"

    def test_missing_due_date_is_created_plus_thirty_days(self):
        """The due date is derived when absent."""
        debt = decode_debt({"created_at": "2026-01-10T08:30:00Z"}, now=NOW)
        assert debt.due_date == debt.created_date + timedelta(days=30)

    def test_missing_both_dates(self):
        """Without any dates, creation is now and the due date follows."""
        debt = decode_debt({}, now=NOW)
        assert debt.created_date == NOW
        assert debt.due_date == NOW + timedelta(days=30)

    def test_custom_due_period(self):
        """The default due period is tunable."""
        debt = decode_debt({}, now=NOW, default_due_days=7)
        assert debt.due_date == NOW + timedelta(days=7)

    def test_unparseable_due_date_warns_and_derives(self):
        """A garbage due date is replaced by the derived one."""
        warnings = []
        debt = decode_debt({"created_at": "2026-01-01", "dueDate": "next week"}, warnings, now=NOW)
        assert debt.due_date == datetime(2026, 1, 31, tzinfo=timezone.utc)
        assert warnings[0].field == "due_date"

    def test_missing_booleans_fail_closed(self):
        """Missing booleans are False."""
        debt = decode_debt({"id": "1"}, now=NOW)
        assert debt.is_my_debt is False
        assert debt.is_paid_back is False

    @pytest.mark.parametrize("raw,expected", [
        (True, True), ("true", True), ("1", True), (1, True),
        (False, False), ("false", False), (0, False),
    ])
    def test_boolean_spellings(self, raw, expected):
        """Booleans accept JSON, string and 0/1 spellings."""
        assert decode_debt({"isPaidBack": raw}, now=NOW).is_paid_back is expected

    def test_unparseable_boolean_warns(self):
        """Unknown boolean spellings are False plus a warning."""
        warnings = []
        assert decode_debt({"is_paid": "maybe"}, warnings, now=NOW).is_paid_back is False
        assert warnings[0].field == "is_paid_back"

    def test_decoding_is_pure(self):
        """The same input and `now` give the same record."""
        payload = {"amount": "5", "description": "tea"}
        assert decode_debt(payload, now=NOW) == decode_debt(payload, now=NOW)


class TestPaymentDecoding:
    """Alias resolution for payments."""

    def test_payment_decodes(self):
        """Both spellings of payment fields decode."""
        payment = decode_payment({
            "paymentId": "p1",
            "original_debt_id": 9,
            "contactName": "Ana Li",
            "paid_amount": "50.00",
            "payment_description": "cash",
            "paymentDate": "2026-02-20T09:00:00+05:00",
            "wasMyDebt": True,
        }, now=NOW)
        assert payment.payment_id == "p1"
        assert payment.original_debt_id == "9"
        assert payment.paid_amount == Decimal("50.00")
        assert payment.payment_date == datetime(2026, 2, 20, 4, 0, tzinfo=timezone.utc)
        assert payment.was_my_debt is True

    def test_missing_payment_date_is_now(self):
        """Payment dates default to now."""
        assert decode_payment({"id": "p"}, now=NOW).payment_date == NOW


class TestCollectionUnwrapping:
    """Collection envelopes."""

    RECORDS = [
        {"id": "1", "fullName": "Ana Li", "phoneNumber": "+998901234567", "createdAt": "2026-01-01"},
        {"id": "2", "fullname": "Bo", "phone_number": "+998907654321", "created_at": "2026-01-02"},
    ]

    def test_shapes_decode_identically(self):
        """Bare array, data array, nested and named lists give the same records."""
        shapes = [
            self.RECORDS,
            {"data": self.RECORDS},
            {"data": {"contacts": self.RECORDS}},
            {"contacts": self.RECORDS},
        ]
        decoded = [decode_contacts(shape, now=NOW) for shape in shapes]
        assert all(d == decoded[0] for d in decoded)
        assert [c.id for c in decoded[0]] == ["1", "2"]

    @pytest.mark.parametrize("payload", [
        None, "oops", 42, {}, {"data": None}, {"data": {"debts": "x"}}, {"message": "ok"},
    ])
    def test_unknown_shapes_are_empty(self, payload):
        """Unrecognized shapes return [] and never raise."""
        assert unwrap_collection(payload, "debts") == []

    def test_data_list_wins_over_named_list(self):
        """Shapes are tried in order."""
        payload = {"data": [{"id": "a"}], "debts": [{"id": "b"}]}
        assert unwrap_collection(payload, "debts") == [{"id": "a"}]

    def test_malformed_record_does_not_block_others(self):
        """One bad entry is skipped with a warning; the rest decode."""
        warnings = []
        debts = decode_debts(
            {"data": [{"id": "1", "amount": 5}, "garbage", {"id": "3", "amount": "x"}]},
            warnings,
            now=NOW,
        )
        assert [d.record_id for d in debts] == ["1", "3"]
        assert debts[1].amount == Decimal("0")
        assert {w.field for w in warnings} == {"_record[1]", "amount"}

    def test_payments_collection(self):
        """Payments use the same unwrapping."""
        payments = decode_payments({"data": {"payments": [{"id": "p1", "amount": 3}]}}, now=NOW)
        assert payments[0].paid_amount == Decimal("3")


class TestRecordUnwrapping:
    """Single-record envelopes and created ids."""

    @pytest.mark.parametrize("payload", [
        {"id": "7", "debt_amount": 5},
        {"data": {"id": "7", "debt_amount": 5}},
        {"data": {"debt": {"id": "7", "debt_amount": 5}}},
        {"debt": {"id": "7", "debt_amount": 5}},
    ])
    def test_record_shapes(self, payload):
        """Every single-record envelope yields the inner object."""
        assert unwrap_record(payload, "debts") == {"id": "7", "debt_amount": 5}

    def test_created_record_id(self):
        """The server-assigned id is found inside a create response."""
        assert created_record_id({"success": True, "data": {"id": 12}}, "contacts", "id") == "12"
        assert created_record_id({"success": True, "message": "ok"}, "contacts", "id") is None


class TestOverviewDecoding:
    """Pre-aggregated overview responses."""

    def test_overview_under_data(self):
        """The backend's overview keys decode."""
        overview = decode_overview({"data": {
            "total_i_owe": "50.00",
            "total_they_owe": 20,
            "active_debts_count": 3,
            "overdue_debts_count": "1",
        }})
        assert overview.total_i_owe == Decimal("50.00")
        assert overview.total_they_owe == Decimal("20")
        assert overview.active_count == 3
        assert overview.overdue_count == 1

    def test_overview_nested_envelope(self):
        """{"data": {"overview": {...}}} is accepted."""
        overview = decode_overview({"data": {"overview": {"totalIOwe": 1}}})
        assert overview.total_i_owe == Decimal("1")

    def test_no_overview_fields(self):
        """Payloads without overview fields return None."""
        assert decode_overview({"data": {"something": 1}}) is None
        assert decode_overview([1, 2]) is None


class TestInstantParsing:
    """ISO-8601 parsing."""

    def test_date_only_is_midnight_utc(self):
        assert parse_instant("2026-02-15") == datetime(2026, 2, 15, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        assert parse_instant("2026-02-15T10:00:00") == datetime(2026, 2, 15, 10, tzinfo=timezone.utc)

    def test_garbage_is_none(self):
        assert parse_instant("yesterday") is None
        assert parse_instant(12345) is None


class TestRequestBodies:
    """Outbound bodies use the backend's write spelling."""

    def test_contact_body(self):
        body = contact_body(ContactDraft(full_name="Ana Li", phone_number="+998901234567"))
        assert body == {"fullname": "Ana Li", "phone_number": "+998901234567"}

    def test_debt_body_omits_missing_due_date(self):
        """No due date means no `due_date` key, so the default applies."""
        body = debt_body(DebtDraft(contact_id="1", amount=Decimal("50"), description="lunch"))
        assert "due_date" not in body
        assert "is_paid_back" not in body
        assert body["debt_amount"] == 50.0

    def test_debt_body_sends_date_only(self):
        """Due dates go out as YYYY-MM-DD."""
        draft = DebtDraft(
            contact_id="1",
            amount=Decimal("5"),
            description="tea",
            due_date=datetime(2026, 4, 1, 15, 30, tzinfo=timezone.utc),
        )
        assert debt_body(draft, "Ana Li") == {
            "contact_id": "1",
            "debt_amount": 5.0,
            "debt_description": "tea",
            "is_my_debt": False,
            "contact_name": "Ana Li",
            "due_date": "2026-04-01",
        }

    def test_payment_body(self):
        body = payment_body(PaymentDraft(original_debt_id="9", contact_name="Ana", paid_amount=Decimal("2.5")))
        assert body["original_debt_id"] == "9"
        assert body["paid_amount"] == 2.5

    def test_mark_paid_body(self):
        assert mark_paid_body("cash") == {"payment_description": "cash"}
        assert mark_paid_body() == {}
