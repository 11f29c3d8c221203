from .assembler import assemble, round_money
from .engine import calculate, list_supported_combinations
from .formulas import (
    ChargeComponents,
    compute_tiered_energy_charge,
    compute_tod_demand_charge,
    compute_tou_demand_charge,
    compute_tou_energy_charge,
    evaluate,
)
from .records import BillBreakdown, BillingExtras, ChargeLine, UsageRecord
from .usage import parse_extras, parse_usage, required_usage_fields

__all__ = [
    "assemble",
    "round_money",
    "calculate",
    "list_supported_combinations",
    "ChargeComponents",
    "compute_tiered_energy_charge",
    "compute_tou_energy_charge",
    "compute_tou_demand_charge",
    "compute_tod_demand_charge",
    "evaluate",
    "BillBreakdown",
    "BillingExtras",
    "ChargeLine",
    "UsageRecord",
    "parse_usage",
    "parse_extras",
    "required_usage_fields",
]
