"""Electricity bill calculator for MEA and PEA business tariffs."""

from .billing import BillBreakdown, BillingExtras, UsageRecord, calculate, list_supported_combinations
from .errors import (
    CatalogIntegrityError,
    InvalidCombination,
    InvalidMagnitude,
    MissingField,
    TariffError,
    ValidationError,
)
from .tariffs import RateCatalog, TariffKey, build_default_catalog

__version__ = "0.1.0"

__all__ = [
    "BillBreakdown",
    "BillingExtras",
    "UsageRecord",
    "calculate",
    "list_supported_combinations",
    "CatalogIntegrityError",
    "InvalidCombination",
    "InvalidMagnitude",
    "MissingField",
    "TariffError",
    "ValidationError",
    "RateCatalog",
    "TariffKey",
    "build_default_catalog",
]
