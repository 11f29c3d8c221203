"""Usage input handling.

Builds UsageRecord / BillingExtras from plain mappings (request bodies, JSON
files, CLI flags) and checks that the fields a rate entry needs are present.
All magnitude checks happen here, before any charge is computed.
"""

from __future__ import annotations

import logging
from dataclasses import fields
from typing import Any, List, Mapping, Optional, Tuple, Union

from ..errors import MissingField, ValidationError
from ..tariffs.types import RateEntry, TieredNormalRates, TodRates, TouRates
from .records import BillingExtras, UsageRecord

logger = logging.getLogger(__name__)

_USAGE_FIELDS = tuple(f.name for f in fields(UsageRecord))

# Spellings accepted from older request payloads.
_ALIASES = {
    "peakKvar": "peak_kvar",
    "highestDemandChargeLast12m": "highest_demand_charge_last_12m",
    "ftRateSatang": "ft_rate_satang",
}

UsageInput = Union[UsageRecord, Mapping[str, Any]]
ExtrasInput = Union[BillingExtras, Mapping[str, Any]]


def _canonical(key: str) -> str:
    return _ALIASES.get(key, key)


def parse_usage(usage: UsageInput) -> UsageRecord:
    if isinstance(usage, UsageRecord):
        return usage
    if not isinstance(usage, Mapping):
        raise ValidationError("usage", f"usage must be a mapping, got {type(usage).__name__}")

    values = {}
    for raw_key, value in usage.items():
        key = _canonical(str(raw_key))
        if key not in _USAGE_FIELDS:
            raise ValidationError(key, f"Unknown usage field: {raw_key}")
        if value is not None:
            values[key] = value
    return UsageRecord(**values)


def parse_extras(extras: Optional[ExtrasInput]) -> BillingExtras:
    if isinstance(extras, BillingExtras):
        return extras
    if extras is None:
        extras = {}
    if not isinstance(extras, Mapping):
        raise ValidationError("extras", f"extras must be a mapping, got {type(extras).__name__}")
    values = {_canonical(str(k)): v for k, v in extras.items()}
    unknown = sorted(set(values) - {"ft_rate_satang"})
    if unknown:
        raise ValidationError(unknown[0], f"Unknown billing field: {unknown[0]}")
    if values.get("ft_rate_satang") is None:
        raise MissingField("ft_rate_satang", "Missing required field: ft_rate_satang")
    return BillingExtras(ft_rate_satang=values["ft_rate_satang"])


def required_usage_fields(entry: RateEntry) -> Tuple[str, ...]:
    """Usage fields the entry's formula reads unconditionally."""

    out: List[str] = []
    if isinstance(entry, TieredNormalRates):
        out.append("total_kwh")
        if entry.demand_rate is not None:
            out.append("peak_kw")
    elif isinstance(entry, TouRates):
        out.extend(["on_peak_kwh", "off_peak_kwh"])
        if entry.on_peak_demand_rate is not None:
            out.append("on_peak_kw")
        if entry.off_peak_demand_rate is not None:
            out.append("off_peak_kw")
    elif isinstance(entry, TodRates):
        out.extend(["total_kwh", "on_peak_kw", "partial_peak_kw", "off_peak_kw"])
    return tuple(out)


def require_usage(usage: UsageRecord, entry: RateEntry) -> None:
    for name in required_usage_fields(entry):
        if getattr(usage, name) is None:
            logger.info("Rejected usage: missing %s for %s entry", name, entry.variant.value)
            raise MissingField(name, f"Missing required usage field: {name}")

    # The power factor allowance is a share of peak demand, so kVAR needs a peak to compare against.
    if entry.policy.demand_surcharges and usage.peak_kvar is not None:
        if isinstance(entry, TieredNormalRates):
            windows: Tuple[str, ...] = ("peak_kw",)
        elif isinstance(entry, TouRates):
            windows = ("on_peak_kw", "off_peak_kw")
        else:
            windows = ("on_peak_kw", "partial_peak_kw", "off_peak_kw")
        if all(getattr(usage, name) is None for name in windows):
            logger.info("Rejected usage: peak_kvar without %s", windows[0])
            raise MissingField(windows[0], f"peak_kvar needs {windows[0]} to compute the power factor allowance")
