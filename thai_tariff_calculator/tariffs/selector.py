from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List

from ..errors import InvalidCombination, MissingField
from .catalog import RateCatalog
from .combinations import (
    CUSTOMER_CLASSES,
    PROVIDERS,
    SCHEME_VARIANTS,
    allowed_schemes,
    allowed_tiers,
    normalize_provider,
    normalize_token,
    normalize_voltage_tier,
    variant_for,
)
from .types import FormulaVariant, RateEntry, TariffKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """A legal combination bound to its rate entry and formula."""

    key: TariffKey
    entry: RateEntry
    variant: FormulaVariant


@dataclass
class TariffSelector:
    """Maps (provider, class, scheme, tier) to a rate entry and formula variant."""

    catalog: RateCatalog

    def build_key(self, provider: str, customer_class: str, tariff_scheme: str, voltage_tier: str) -> TariffKey:
        parts = {
            "provider": provider,
            "customer_class": customer_class,
            "tariff_scheme": tariff_scheme,
            "voltage_tier": voltage_tier,
        }
        for name, value in parts.items():
            if value is None or not str(value).strip():
                raise MissingField(name, f"Missing required field: {name}")

        key = TariffKey(
            normalize_provider(provider),
            normalize_token(customer_class),
            normalize_token(tariff_scheme),
            normalize_voltage_tier(voltage_tier),
        )
        if key.provider not in PROVIDERS:
            raise InvalidCombination("provider", f"Invalid provider '{provider}'. Must be one of {list(PROVIDERS)}")
        if key.customer_class not in CUSTOMER_CLASSES:
            raise InvalidCombination(
                "customer_class", f"Invalid customer class '{customer_class}'. Must be one of {list(CUSTOMER_CLASSES)}"
            )
        if key.tariff_scheme not in SCHEME_VARIANTS:
            raise InvalidCombination(
                "tariff_scheme", f"Invalid tariff scheme '{tariff_scheme}'. Must be one of {list(SCHEME_VARIANTS)}"
            )
        return key

    def resolve(self, provider: str, customer_class: str, tariff_scheme: str, voltage_tier: str) -> Resolution:
        key = self.build_key(provider, customer_class, tariff_scheme, voltage_tier)

        schemes = allowed_schemes(key.customer_class)
        if key.tariff_scheme not in schemes:
            logger.info("Rejected %s: scheme not offered for class", key.composite_id)
            raise InvalidCombination(
                "tariff_scheme",
                f"Tariff scheme '{key.tariff_scheme}' is not available for {key.customer_class}. "
                f"Must be one of {schemes}",
            )
        variant = variant_for(key)
        if variant is None:
            tiers = allowed_tiers(key.provider, key.customer_class, key.tariff_scheme)
            logger.info("Rejected %s: voltage tier not offered", key.composite_id)
            raise InvalidCombination(
                "voltage_tier",
                f"Voltage tier '{key.voltage_tier}' is not available for {key.provider.upper()} "
                f"{key.customer_class} {key.tariff_scheme}. Must be one of {tiers}",
            )

        entry = self.catalog.require(key)
        logger.debug("Resolved %s -> %s", key.composite_id, variant.value)
        return Resolution(key=key, entry=entry, variant=variant)

    def supported_combinations(self) -> List[TariffKey]:
        return self.catalog.supported_keys()

    def combinations_by_provider(self) -> Dict[str, List[TariffKey]]:
        out: Dict[str, List[TariffKey]] = {}
        for key in self.supported_combinations():
            out.setdefault(key.provider, []).append(key)
        return out
