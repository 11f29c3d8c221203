from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional, Tuple

from ..errors import InvalidMagnitude, MissingField
from ..tariffs.types import FormulaVariant, TariffKey


def check_magnitude(name: str, value: Any) -> float:
    """Return ``value`` as a float, or raise InvalidMagnitude naming ``name``."""

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidMagnitude(name, f"{name} must be a number, got {value!r}")
    try:
        value = float(value)
    except OverflowError:
        raise InvalidMagnitude(name, f"{name} is too large to represent as a float") from None
    if not math.isfinite(value):
        raise InvalidMagnitude(name, f"{name} must be finite, got {value!r}")
    if value < 0:
        raise InvalidMagnitude(name, f"{name} cannot be negative, got {value!r}")
    return value


@dataclass(frozen=True)
class UsageRecord:
    """Metered figures for one billing period. Every supplied magnitude is >= 0."""

    total_kwh: Optional[float] = None
    on_peak_kwh: Optional[float] = None
    off_peak_kwh: Optional[float] = None
    peak_kw: Optional[float] = None
    on_peak_kw: Optional[float] = None
    partial_peak_kw: Optional[float] = None
    off_peak_kw: Optional[float] = None
    peak_kvar: Optional[float] = None
    highest_demand_charge_last_12m: Optional[float] = None

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                object.__setattr__(self, f.name, check_magnitude(f.name, value))

    def supplied(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


@dataclass(frozen=True)
class BillingExtras:
    """Per-bill inputs that are not meter readings."""

    ft_rate_satang: float

    def __post_init__(self) -> None:
        if self.ft_rate_satang is None:
            raise MissingField("ft_rate_satang", "Missing required field: ft_rate_satang")
        object.__setattr__(self, "ft_rate_satang", check_magnitude("ft_rate_satang", self.ft_rate_satang))


@dataclass(frozen=True)
class ChargeLine:
    """One auditable line of a bill."""

    key: str
    label: str
    amount: float
    quantity: Optional[float] = None
    unit: str = ""
    rate: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "quantity": self.quantity,
            "unit": self.unit,
            "rate": self.rate,
            "amount": self.amount,
        }


@dataclass(frozen=True)
class BillBreakdown:
    """Final bill. Monetary fields are already rounded to 2 decimal places."""

    tariff_key: TariffKey
    variant: FormulaVariant
    energy_charge: float
    demand_charge: float
    service_charge: float
    fuel_adjustment_charge: float
    tax: float
    total_amount: float
    base_tariff: float
    taxable_amount: float
    calculated_demand_charge: float = 0.0
    minimum_demand_charge: float = 0.0
    power_factor_charge: float = 0.0
    total_kwh: float = 0.0
    ft_rate_satang: float = 0.0
    lines: Tuple[ChargeLine, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tariff_key": self.tariff_key.to_dict(),
            "tariff_id": self.tariff_key.composite_id,
            "variant": self.variant.value,
            "total_kwh": self.total_kwh,
            "ft_rate_satang": self.ft_rate_satang,
            "energy_charge": self.energy_charge,
            "demand_charge": self.demand_charge,
            "calculated_demand_charge": self.calculated_demand_charge,
            "minimum_demand_charge": self.minimum_demand_charge,
            "power_factor_charge": self.power_factor_charge,
            "base_tariff": self.base_tariff,
            "service_charge": self.service_charge,
            "fuel_adjustment_charge": self.fuel_adjustment_charge,
            "taxable_amount": self.taxable_amount,
            "tax": self.tax,
            "total_amount": self.total_amount,
            "lines": [line.to_dict() for line in self.lines],
        }
