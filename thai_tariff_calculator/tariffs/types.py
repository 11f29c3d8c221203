from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union


class FormulaVariant(str, Enum):
    TIERED_NORMAL = "tiered_normal"
    TOU = "tou"
    TOD = "tod"


class FtBasis(str, Enum):
    PER_KWH = "per_kwh"                  # total kWh x FT rate
    PERCENT_OF_BASE = "percent_of_base"  # base tariff x (FT rate / 100) / 100


@dataclass(frozen=True)
class TariffKey:
    """Lookup key into the rate catalog."""

    provider: str
    customer_class: str
    tariff_scheme: str
    voltage_tier: str

    @property
    def composite_id(self) -> str:
        return f"{self.provider}_{self.customer_class}.{self.tariff_scheme}.{self.voltage_tier}"

    def __str__(self) -> str:
        return self.composite_id

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "customer_class": self.customer_class,
            "tariff_scheme": self.tariff_scheme,
            "voltage_tier": self.voltage_tier,
        }


@dataclass(frozen=True)
class Tier:
    threshold_kwh: float
    rate_per_kwh: float


@dataclass(frozen=True)
class BillingPolicy:
    """How the assembler folds a formula's charges into the final bill."""

    ft_basis: FtBasis = FtBasis.PER_KWH
    service_charge_taxed: bool = True
    # Apply demand ratchet and power factor rules (demand-billed classes only).
    demand_surcharges: bool = False


@dataclass(frozen=True)
class TieredNormalRates:
    service_charge: float
    tiers: Tuple[Tier, ...]
    demand_rate: Optional[float] = None
    policy: BillingPolicy = field(default_factory=BillingPolicy)

    variant = FormulaVariant.TIERED_NORMAL


@dataclass(frozen=True)
class TouRates:
    service_charge: float
    on_peak_energy_rate: float
    off_peak_energy_rate: float
    on_peak_demand_rate: Optional[float] = None
    # Off-peak demand is not billed in the published tables; kept configurable.
    off_peak_demand_rate: Optional[float] = None
    policy: BillingPolicy = field(default_factory=BillingPolicy)

    variant = FormulaVariant.TOU


@dataclass(frozen=True)
class TodRates:
    service_charge: float
    on_peak_demand_rate: float
    partial_peak_demand_rate: float
    off_peak_demand_rate: float
    energy_rate: float
    policy: BillingPolicy = field(default_factory=BillingPolicy)

    variant = FormulaVariant.TOD


RateEntry = Union[TieredNormalRates, TouRates, TodRates]
