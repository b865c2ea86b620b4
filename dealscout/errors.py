"""Exception types raised by the wizard, report and company lookups."""
from __future__ import annotations

from typing import Any


class DealScoutError(Exception):
    """Base class for expected, client-visible failures."""


class UnknownCompanyError(DealScoutError):
    """Company id is not part of the dataset (or has no report)."""
    def __init__(self, company_id: str):
        super().__init__(f"Unknown company: {company_id}")
        self.company_id = company_id


class InvalidPayloadError(DealScoutError):
    """Request payload has the wrong shape for its form type."""
    def __init__(self, message: str, details: list[Any] | None = None):
        super().__init__(message)
        self.details = details or []
