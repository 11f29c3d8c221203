"""Bill assembly: surcharges, fuel adjustment, VAT and rounding.

Order of operations:

1. demand ratchet      effective demand = max(calculated, 70% of the highest
                       demand charge of the previous 12 months)
2. power factor        whole kVAR above 61.97% of peak kW, x 56.07 Baht
3. base tariff         energy + effective demand + power factor
4. FT                  per kWh, or a percentage of the base tariff
5. taxable amount      base + FT (+ service charge when it is taxed)
6. VAT                 7% of the taxable amount
7. total               taxable + VAT (+ service charge when it is not taxed)

Arithmetic runs at full float precision; every reported figure is rounded
independently (half-up, 2 places) when the BillBreakdown is built.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from ..config import MINIMUM_BILL_FACTOR, MONEY_DECIMALS, PF_PENALTY_RATE, PF_THRESHOLD_FACTOR, VAT_RATE
from ..errors import MissingField
from ..tariffs.types import BillingPolicy, FormulaVariant, FtBasis, TariffKey
from .formulas import ChargeComponents
from .records import BillBreakdown, ChargeLine, check_magnitude

logger = logging.getLogger(__name__)

_MONEY_QUANTUM = Decimal(1).scaleb(-MONEY_DECIMALS)


def round_money(value: float) -> float:
    """Round half-up to MONEY_DECIMALS places using the shortest decimal form of ``value``."""

    return float(Decimal(repr(float(value))).quantize(_MONEY_QUANTUM, rounding=ROUND_HALF_UP))


def effective_demand_charge(calculated: float, highest_last_12m: Optional[float]) -> float:
    if highest_last_12m is None:
        return calculated
    return max(calculated, highest_last_12m * MINIMUM_BILL_FACTOR)


def power_factor_charge(peak_kvar: float, overall_peak_kw: float) -> float:
    excess = max(0.0, peak_kvar - overall_peak_kw * PF_THRESHOLD_FACTOR)
    billed_kvar = Decimal(repr(excess)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return float(billed_kvar) * PF_PENALTY_RATE


def fuel_adjustment_charge(basis: FtBasis, ft_rate_satang: float, total_kwh: float, base_tariff: float) -> float:
    if basis is FtBasis.PERCENT_OF_BASE:
        return base_tariff * (ft_rate_satang / 100) / 100
    # satang -> Baht per kWh
    return total_kwh * (ft_rate_satang / 100)


def _rounded(line: ChargeLine) -> ChargeLine:
    return ChargeLine(line.key, line.label, round_money(line.amount), line.quantity, line.unit, line.rate)


def assemble(
    key: TariffKey,
    variant: FormulaVariant,
    components: ChargeComponents,
    *,
    service_charge: float,
    ft_rate_satang: float,
    policy: BillingPolicy,
    peak_kvar: Optional[float] = None,
    highest_demand_charge_last_12m: Optional[float] = None,
) -> BillBreakdown:
    energy = check_magnitude("energy_charge", components.energy_charge)
    calculated_demand = check_magnitude("demand_charge", components.demand_charge)
    total_kwh = check_magnitude("total_kwh", components.total_kwh)
    service = check_magnitude("service_charge", service_charge)
    ft_rate = check_magnitude("ft_rate_satang", ft_rate_satang)
    if peak_kvar is not None:
        peak_kvar = check_magnitude("peak_kvar", peak_kvar)
    if highest_demand_charge_last_12m is not None:
        highest_demand_charge_last_12m = check_magnitude(
            "highest_demand_charge_last_12m", highest_demand_charge_last_12m
        )

    minimum_demand = 0.0
    demand = calculated_demand
    pf_charge = 0.0
    if policy.demand_surcharges:
        if highest_demand_charge_last_12m is not None:
            minimum_demand = highest_demand_charge_last_12m * MINIMUM_BILL_FACTOR
            demand = effective_demand_charge(calculated_demand, highest_demand_charge_last_12m)
        if peak_kvar is not None:
            if components.overall_peak_kw is None:
                raise MissingField("peak_kw", "peak_kvar needs a peak demand to compute the power factor allowance")
            pf_charge = power_factor_charge(peak_kvar, components.overall_peak_kw)
    elif peak_kvar is not None or highest_demand_charge_last_12m is not None:
        logger.debug("%s: ignoring demand surcharge inputs for a non-demand tariff", key.composite_id)

    base_tariff = energy + demand + pf_charge
    ft = fuel_adjustment_charge(policy.ft_basis, ft_rate, total_kwh, base_tariff)
    taxable = base_tariff + ft + (service if policy.service_charge_taxed else 0.0)
    tax = taxable * VAT_RATE
    total = taxable + tax + (0.0 if policy.service_charge_taxed else service)

    lines: List[ChargeLine] = list(components.lines)
    if demand > calculated_demand:
        lines.append(
            ChargeLine("demand_ratchet", "Demand ratchet adjustment", demand - calculated_demand,
                       highest_demand_charge_last_12m, "THB", MINIMUM_BILL_FACTOR)
        )
    if pf_charge:
        lines.append(ChargeLine("power_factor", "Power factor surcharge", pf_charge, peak_kvar, "kVAR", PF_PENALTY_RATE))
    lines.append(ChargeLine("service", "Service charge", service))
    if policy.ft_basis is FtBasis.PERCENT_OF_BASE:
        lines.append(ChargeLine("ft", "Fuel adjustment (FT)", ft, base_tariff, "THB", ft_rate / 100))
    else:
        lines.append(ChargeLine("ft", "Fuel adjustment (FT)", ft, total_kwh, "kWh", ft_rate / 100))
    lines.append(ChargeLine("vat", "VAT", tax, taxable, "THB", VAT_RATE))

    bill = BillBreakdown(
        tariff_key=key,
        variant=variant,
        energy_charge=round_money(energy),
        demand_charge=round_money(demand),
        service_charge=round_money(service),
        fuel_adjustment_charge=round_money(ft),
        tax=round_money(tax),
        total_amount=round_money(total),
        base_tariff=round_money(base_tariff),
        taxable_amount=round_money(taxable),
        calculated_demand_charge=round_money(calculated_demand),
        minimum_demand_charge=round_money(minimum_demand),
        power_factor_charge=round_money(pf_charge),
        total_kwh=total_kwh,
        ft_rate_satang=ft_rate,
        lines=tuple(_rounded(line) for line in lines),
    )
    logger.debug("%s: total %.2f (taxable %.2f, VAT %.2f)", key.composite_id, bill.total_amount, bill.taxable_amount, bill.tax)
    return bill
