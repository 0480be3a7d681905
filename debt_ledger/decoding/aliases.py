"""
Backend Field Alias Table

Backend revisions have named the same field differently (camelCase,
snake_case, run-together lowercase, legacy names). This table is the single
place that records every known spelling.

For each canonical field the aliases are tried in order; the first key that
is present with a non-null value wins. To support a new backend spelling,
add it here and nowhere else.
"""

CONTACT_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id", "userId", "user_id", "contactId", "contact_id", "_id"),
    "full_name": ("fullName", "full_name", "fullname", "name"),
    "phone_number": ("phoneNumber", "phone_number", "phone"),
    "email": ("email", "emailAddress", "email_address"),
    "created_date": ("createdDate", "created_date", "created_at", "createdAt"),
}

DEBT_ALIASES: dict[str, tuple[str, ...]] = {
    "record_id": ("id", "recordId", "record_id", "debtId", "debt_id", "_id"),
    "contact_id": ("contactId", "contact_id"),
    "contact_name": ("contactName", "contact_name"),
    "amount": ("amount", "debt_amount", "debtAmount", "paidAmount"),
    "description": ("description", "debt_description", "debtDescription"),
    "created_date": ("createdDate", "created_date", "created_at", "createdAt"),
    "due_date": ("dueDate", "due_date"),
    "is_my_debt": ("isMyDebt", "is_my_debt"),
    "is_paid_back": ("isPaidBack", "is_paid_back", "is_paid", "isPaid"),
}

PAYMENT_ALIASES: dict[str, tuple[str, ...]] = {
    "payment_id": ("paymentId", "payment_id", "id", "_id"),
    "original_debt_id": ("originalDebtId", "original_debt_id", "debtId", "debt_id"),
    "contact_name": ("contactName", "contact_name"),
    "paid_amount": ("paidAmount", "paid_amount", "amount"),
    "payment_description": ("paymentDescription", "payment_description", "description"),
    "payment_date": ("paymentDate", "payment_date", "created_at", "createdAt"),
    "was_my_debt": ("wasMyDebt", "was_my_debt"),
}

OVERVIEW_ALIASES: dict[str, tuple[str, ...]] = {
    "total_i_owe": ("total_i_owe", "totalIOwe", "total_my_debts"),
    "total_they_owe": ("total_they_owe", "totalTheyOwe", "total_their_debts"),
    "active_count": ("active_debts_count", "activeDebtsCount", "active_count", "activeCount"),
    "overdue_count": ("overdue_debts_count", "overdueDebtsCount", "overdue_count", "overdueCount"),
}

# Keys a single-record response may nest the record under
# (e.g. {"data": {"debt": {...}}} or {"contact": {...}}).
RECORD_ENVELOPES: dict[str, str] = {
    "contacts": "contact",
    "debts": "debt",
    "payments": "payment",
}

# Keys an overview response may nest its totals under.
OVERVIEW_ENVELOPES: tuple[str, ...] = ("overview", "summary")
