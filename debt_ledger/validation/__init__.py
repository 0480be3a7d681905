"""
Validation Package
"""

from debt_ledger.validation.validator import EMAIL_PATTERN, LedgerValidator

__all__ = ["EMAIL_PATTERN", "LedgerValidator"]
