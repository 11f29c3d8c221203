from .catalog import CatalogHandle, RateCatalog, build_default_catalog, validate_entry
from .combinations import is_legal, legal_keys
from .loader import load_definitions
from .selector import Resolution, TariffSelector
from .types import (
    BillingPolicy,
    FormulaVariant,
    FtBasis,
    RateEntry,
    TariffKey,
    Tier,
    TieredNormalRates,
    TodRates,
    TouRates,
)

__all__ = [
    "CatalogHandle",
    "RateCatalog",
    "build_default_catalog",
    "validate_entry",
    "is_legal",
    "legal_keys",
    "load_definitions",
    "Resolution",
    "TariffSelector",
    "BillingPolicy",
    "FormulaVariant",
    "FtBasis",
    "RateEntry",
    "TariffKey",
    "Tier",
    "TieredNormalRates",
    "TodRates",
    "TouRates",
]
