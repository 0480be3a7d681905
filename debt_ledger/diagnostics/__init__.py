"""
Diagnostics Package

The channel read paths report through instead of raising.
"""

from debt_ledger.diagnostics.logger import DiagnosticListener, LedgerDiagnostics

__all__ = ["DiagnosticListener", "LedgerDiagnostics"]
