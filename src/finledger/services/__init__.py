"""Service module exports."""

from . import analytics, auth, export, ledger_service, periods

__all__ = [
    "analytics",
    "auth",
    "export",
    "ledger_service",
    "periods",
]
