"""
Decoding Package

Backend JSON in, canonical records out (and drafts back out as request bodies).
"""

from debt_ledger.decoding.decoder import (
    DEFAULT_DUE_DAYS,
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
from debt_ledger.decoding.payloads import (
    contact_body,
    debt_body,
    mark_paid_body,
    payment_body,
)

__all__ = [
    "DEFAULT_DUE_DAYS",
    "created_record_id",
    "decode_contact",
    "decode_contacts",
    "decode_debt",
    "decode_debts",
    "decode_overview",
    "decode_payment",
    "decode_payments",
    "parse_instant",
    "unwrap_collection",
    "unwrap_record",
    "contact_body",
    "debt_body",
    "mark_paid_body",
    "payment_body",
]
