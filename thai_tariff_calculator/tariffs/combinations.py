"""Static table of legal tariff combinations.

A combination is legal when the customer class may be billed under the scheme
at the voltage tier for that provider. The table also fixes which formula
variant a scheme maps to, so a rate entry can be checked against it at load
time and a formula can never be applied to rates shaped for another scheme.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from .types import FormulaVariant, TariffKey

PROVIDERS: Tuple[str, ...] = ("mea", "pea")

CUSTOMER_CLASSES: Tuple[str, ...] = ("type-2", "type-3", "type-4", "type-5")

SCHEME_VARIANTS: Dict[str, FormulaVariant] = {
    "normal": FormulaVariant.TIERED_NORMAL,
    "tou": FormulaVariant.TOU,
    "tod": FormulaVariant.TOD,
}

# Voltage tiers per provider, ordered low -> high.
VOLTAGE_TIERS: Dict[str, Dict[str, str]] = {
    "mea": {"low": "<12kV", "medium": "12-24kV", "high": ">=69kV"},
    "pea": {"low": "<22kV", "medium": "22-33kV", "high": ">=69kV"},
}

# customer class -> scheme -> allowed tier levels
_LEGAL: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "type-2": {"tou": ("low", "medium")},
    "type-3": {"normal": ("low", "medium", "high"), "tou": ("low", "medium", "high")},
    "type-4": {"tod": ("low", "medium", "high"), "tou": ("low", "medium", "high")},
    "type-5": {"normal": ("low", "medium", "high"), "tou": ("low", "medium", "high")},
}

# Demand-billed classes get ratchet and power factor surcharges.
DEMAND_BILLED_CLASSES: Tuple[str, ...] = ("type-3", "type-4", "type-5")


def normalize_provider(provider: str) -> str:
    return (provider or "").strip().lower()


def normalize_token(value: str) -> str:
    return (value or "").strip().lower()


def normalize_voltage_tier(tier: str) -> str:
    # Tier labels are matched case-insensitively but reported as published ("<12kV").
    raw = (tier or "").strip().replace(" ", "")
    for tiers in VOLTAGE_TIERS.values():
        for label in tiers.values():
            if raw.lower() == label.lower():
                return label
    return raw


def variant_for(key: TariffKey) -> Optional[FormulaVariant]:
    """Formula variant for a legal key, or None when the combination is illegal."""

    tiers = VOLTAGE_TIERS.get(key.provider)
    schemes = _LEGAL.get(key.customer_class)
    if tiers is None or schemes is None:
        return None
    levels = schemes.get(key.tariff_scheme)
    if levels is None:
        return None
    if key.voltage_tier not in {tiers[level] for level in levels}:
        return None
    return SCHEME_VARIANTS[key.tariff_scheme]


def is_legal(key: TariffKey) -> bool:
    return variant_for(key) is not None


def legal_keys() -> List[TariffKey]:
    """Every legal key, ordered by provider, class, scheme and tier (low -> high)."""

    out: List[TariffKey] = []
    for provider in PROVIDERS:
        tiers = VOLTAGE_TIERS[provider]
        for customer_class in CUSTOMER_CLASSES:
            for scheme, levels in _LEGAL[customer_class].items():
                for level in levels:
                    out.append(TariffKey(provider, customer_class, scheme, tiers[level]))
    return out


def allowed_schemes(customer_class: str) -> List[str]:
    return list(_LEGAL.get(customer_class, {}).keys())


def allowed_tiers(provider: str, customer_class: str, tariff_scheme: str) -> List[str]:
    tiers = VOLTAGE_TIERS.get(provider, {})
    levels = _LEGAL.get(customer_class, {}).get(tariff_scheme, ())
    return [tiers[level] for level in levels if level in tiers]
