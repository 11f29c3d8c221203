"""The three tariff formulas.

Each formula is a pure function of usage and rates. ``evaluate`` picks the
formula from the rate entry's type, so rates shaped for one scheme can only be
fed to that scheme's formula. Results are unrounded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from ..tariffs.types import RateEntry, Tier, TieredNormalRates, TodRates, TouRates
from .records import ChargeLine, UsageRecord


@dataclass(frozen=True)
class ChargeComponents:
    energy_charge: float
    demand_charge: float
    total_kwh: float
    # Highest supplied demand window; drives the power factor allowance.
    overall_peak_kw: Optional[float] = None
    lines: Tuple[ChargeLine, ...] = field(default_factory=tuple)


def compute_tiered_energy_lines(total_kwh: float, tiers: Sequence[Tier]) -> List[Tuple[Tier, float, float]]:
    """Split ``total_kwh`` across ``tiers``; returns (tier, kWh billed, amount) per used tier."""

    out: List[Tuple[Tier, float, float]] = []
    remaining = total_kwh
    for i, tier in enumerate(tiers):
        if remaining <= 0:
            break
        if i + 1 < len(tiers):
            quantity = min(remaining, tiers[i + 1].threshold_kwh - tier.threshold_kwh)
        else:
            quantity = remaining
        out.append((tier, quantity, quantity * tier.rate_per_kwh))
        remaining -= quantity
    return out


def compute_tiered_energy_charge(total_kwh: float, tiers: Sequence[Tier]) -> float:
    return sum(amount for _, _, amount in compute_tiered_energy_lines(total_kwh, tiers))


def compute_tou_energy_charge(on_peak_kwh: float, off_peak_kwh: float, on_rate: float, off_rate: float) -> float:
    return on_peak_kwh * on_rate + off_peak_kwh * off_rate


def compute_tou_demand_charge(
    on_peak_kw: float,
    on_rate: float,
    off_peak_kw: Optional[float] = None,
    off_rate: Optional[float] = None,
) -> float:
    charge = on_peak_kw * on_rate
    if off_rate is not None and off_peak_kw is not None:
        charge += off_peak_kw * off_rate
    return charge


def compute_tod_demand_charge(
    on_peak_kw: float,
    partial_peak_kw: float,
    off_peak_kw: float,
    on_rate: float,
    partial_rate: float,
    off_rate: float,
) -> float:
    return on_peak_kw * on_rate + partial_peak_kw * partial_rate + off_peak_kw * off_rate


def _peak(*values: Optional[float]) -> Optional[float]:
    present = [v for v in values if v is not None]
    return max(present) if present else None


def _evaluate_tiered(entry: TieredNormalRates, usage: UsageRecord) -> ChargeComponents:
    lines: List[ChargeLine] = []
    energy = 0.0
    for i, (tier, quantity, amount) in enumerate(compute_tiered_energy_lines(usage.total_kwh, entry.tiers)):
        energy += amount
        label = "Energy" if len(entry.tiers) == 1 else f"Energy tier {i + 1} (from {tier.threshold_kwh:g} kWh)"
        lines.append(ChargeLine(f"energy_tier_{i + 1}", label, amount, quantity, "kWh", tier.rate_per_kwh))

    demand = 0.0
    if entry.demand_rate is not None:
        demand = usage.peak_kw * entry.demand_rate
        lines.append(ChargeLine("demand", "Demand", demand, usage.peak_kw, "kW", entry.demand_rate))

    return ChargeComponents(
        energy_charge=energy,
        demand_charge=demand,
        total_kwh=usage.total_kwh,
        overall_peak_kw=usage.peak_kw,
        lines=tuple(lines),
    )


def _evaluate_tou(entry: TouRates, usage: UsageRecord) -> ChargeComponents:
    on_amount = usage.on_peak_kwh * entry.on_peak_energy_rate
    off_amount = usage.off_peak_kwh * entry.off_peak_energy_rate
    lines = [
        ChargeLine("energy_on_peak", "On-peak energy", on_amount, usage.on_peak_kwh, "kWh", entry.on_peak_energy_rate),
        ChargeLine("energy_off_peak", "Off-peak energy", off_amount, usage.off_peak_kwh, "kWh", entry.off_peak_energy_rate),
    ]

    demand = 0.0
    if entry.on_peak_demand_rate is not None or entry.off_peak_demand_rate is not None:
        demand = compute_tou_demand_charge(
            usage.on_peak_kw or 0.0, entry.on_peak_demand_rate or 0.0, usage.off_peak_kw, entry.off_peak_demand_rate
        )
    if entry.on_peak_demand_rate is not None:
        lines.append(ChargeLine("demand_on_peak", "On-peak demand", usage.on_peak_kw * entry.on_peak_demand_rate,
                                usage.on_peak_kw, "kW", entry.on_peak_demand_rate))
    if entry.off_peak_demand_rate is not None:
        lines.append(ChargeLine("demand_off_peak", "Off-peak demand", usage.off_peak_kw * entry.off_peak_demand_rate,
                                usage.off_peak_kw, "kW", entry.off_peak_demand_rate))

    return ChargeComponents(
        energy_charge=compute_tou_energy_charge(
            usage.on_peak_kwh, usage.off_peak_kwh, entry.on_peak_energy_rate, entry.off_peak_energy_rate
        ),
        demand_charge=demand,
        total_kwh=usage.on_peak_kwh + usage.off_peak_kwh,
        overall_peak_kw=_peak(usage.on_peak_kw, usage.off_peak_kw),
        lines=tuple(lines),
    )


def _evaluate_tod(entry: TodRates, usage: UsageRecord) -> ChargeComponents:
    energy = usage.total_kwh * entry.energy_rate
    demand = compute_tod_demand_charge(
        usage.on_peak_kw,
        usage.partial_peak_kw,
        usage.off_peak_kw,
        entry.on_peak_demand_rate,
        entry.partial_peak_demand_rate,
        entry.off_peak_demand_rate,
    )
    lines = (
        ChargeLine("energy", "Energy", energy, usage.total_kwh, "kWh", entry.energy_rate),
        ChargeLine("demand_on_peak", "On-peak demand", usage.on_peak_kw * entry.on_peak_demand_rate,
                   usage.on_peak_kw, "kW", entry.on_peak_demand_rate),
        ChargeLine("demand_partial_peak", "Partial-peak demand", usage.partial_peak_kw * entry.partial_peak_demand_rate,
                   usage.partial_peak_kw, "kW", entry.partial_peak_demand_rate),
        ChargeLine("demand_off_peak", "Off-peak demand", usage.off_peak_kw * entry.off_peak_demand_rate,
                   usage.off_peak_kw, "kW", entry.off_peak_demand_rate),
    )
    return ChargeComponents(
        energy_charge=energy,
        demand_charge=demand,
        total_kwh=usage.total_kwh,
        overall_peak_kw=_peak(usage.on_peak_kw, usage.partial_peak_kw, usage.off_peak_kw),
        lines=lines,
    )


def evaluate(entry: RateEntry, usage: UsageRecord) -> ChargeComponents:
    """Apply the entry's formula. ``usage`` must already satisfy require_usage(usage, entry)."""

    if isinstance(entry, TieredNormalRates):
        return _evaluate_tiered(entry, usage)
    if isinstance(entry, TouRates):
        return _evaluate_tou(entry, usage)
    if isinstance(entry, TodRates):
        return _evaluate_tod(entry, usage)
    raise TypeError(f"Unsupported rate entry type: {type(entry).__name__}")
