"""Calculation entry point.

``calculate`` runs the whole pipeline for one bill:

    selector.resolve -> parse/require usage -> formulas.evaluate -> assembler.assemble

It either returns a complete BillBreakdown or raises a ValidationError; there
are no partial results. The catalog is passed in explicitly and only read.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from ..tariffs.catalog import RateCatalog
from ..tariffs.selector import TariffSelector
from ..tariffs.types import TariffKey
from .assembler import assemble
from .formulas import evaluate
from .records import BillBreakdown
from .usage import ExtrasInput, UsageInput, parse_extras, parse_usage, require_usage

logger = logging.getLogger(__name__)


def calculate(
    catalog: RateCatalog,
    provider: str,
    customer_class: str,
    tariff_scheme: str,
    voltage_tier: str,
    usage: UsageInput,
    extras: Optional[ExtrasInput] = None,
) -> BillBreakdown:
    resolution = TariffSelector(catalog).resolve(provider, customer_class, tariff_scheme, voltage_tier)

    # Validate every input before computing anything.
    record = parse_usage(usage)
    billing = parse_extras(extras)
    require_usage(record, resolution.entry)

    components = evaluate(resolution.entry, record)
    bill = assemble(
        resolution.key,
        resolution.variant,
        components,
        service_charge=resolution.entry.service_charge,
        ft_rate_satang=billing.ft_rate_satang,
        policy=resolution.entry.policy,
        peak_kvar=record.peak_kvar,
        highest_demand_charge_last_12m=record.highest_demand_charge_last_12m,
    )
    logger.debug("Calculated %s: %s", resolution.key.composite_id, bill.total_amount)
    return bill


def list_supported_combinations(catalog: RateCatalog) -> List[TariffKey]:
    return TariffSelector(catalog).supported_combinations()
