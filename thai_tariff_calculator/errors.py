"""Error taxonomy for tariff resolution and bill calculation.

Client-input problems derive from :class:`ValidationError` and always name the
offending field. :class:`CatalogIntegrityError` is raised while loading rate
definitions and must stop the process before it serves anything.
"""

from __future__ import annotations

from typing import Optional


class TariffError(Exception):
    """Base class for all errors raised by the calculator."""


class ValidationError(TariffError, ValueError):
    """Rejected client input. ``field`` names the offending input."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message

    def to_dict(self) -> dict:
        return {"error": type(self).__name__, "field": self.field, "message": self.message}


class InvalidCombination(ValidationError):
    """No rate entry exists for the requested provider/class/scheme/tier."""


class MissingField(ValidationError):
    """A usage or billing field required by the resolved scheme is absent."""


class InvalidMagnitude(ValidationError):
    """A field is non-numeric, non-finite or negative."""


class CatalogIntegrityError(TariffError, ValueError):
    """A rate definition is malformed. Fatal at startup."""

    def __init__(self, message: str, source: Optional[str] = None):
        text = f"{message} (in {source})" if source else message
        super().__init__(text)
        self.source = source


__all__ = [
    "TariffError",
    "ValidationError",
    "InvalidCombination",
    "MissingField",
    "InvalidMagnitude",
    "CatalogIntegrityError",
]
