"""Payroll domain errors, mapped to HTTP responses in main.py."""


class PayrollError(Exception):
    """Base class for salary calculation failures."""


class InvalidInput(PayrollError):
    """Missing or unparseable report month (client error, nothing computed)."""


class StoreUnavailable(PayrollError):
    """A collection/deduction store failed; the whole report is aborted."""
